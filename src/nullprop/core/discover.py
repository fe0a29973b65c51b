"""File discovery: find source files of the registered languages."""

from __future__ import annotations

from pathlib import Path

# Default exclusion prefixes (relative to scan root).
_DEFAULT_EXCLUDES = frozenset(
    {
        ".git",
        ".github",
        ".vs",
        ".venv",
        "venv",
        "bin",
        "obj",
        "packages",
        "node_modules",
        "dist",
        "build",
        "TestResults",
    }
)


def discover_source_files(
    root: Path,
    *,
    extensions: frozenset[str] | set[str] | tuple[str, ...],
    include: list[str] | tuple[str, ...] | None = None,
    exclude: list[str] | tuple[str, ...] | None = None,
) -> list[Path]:
    """Recursively find source files under *root*.

    Parameters
    ----------
    root:
        Directory to scan.  A single file is returned as-is when its
        extension is supported.
    extensions:
        Lower-case suffixes to accept, e.g. ``{".cs", ".vb"}``.
    include:
        Glob patterns to include.  Default: every file under *root*.
    exclude:
        Directory basenames to skip.  Merged with built-in defaults.

    Returns
    -------
    Sorted list of absolute ``Path`` objects.
    """
    if root.is_file():
        return [root.resolve()] if root.suffix.lower() in extensions else []

    skip = _DEFAULT_EXCLUDES | set(exclude or [])
    patterns = list(include or ["**/*"])

    results: list[Path] = []
    for pat in patterns:
        for p in root.glob(pat):
            if p.suffix.lower() not in extensions:
                continue
            # Skip any path whose parents include an excluded directory.
            if any(part in skip for part in p.relative_to(root).parts):
                continue
            if p.is_file():
                results.append(p.resolve())

    return sorted(set(results))
