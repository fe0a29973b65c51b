"""
nullprop.api
============

Programmatic entrypoints for using nullprop as a library.

Goals:
  - No argparse / CLI dependencies
  - Deterministic mode support (ci_mode=True)
  - Stable, JSON-friendly outputs that match the bundled schemas

Usage::

    from nullprop.api import analyze_source, scan_project

    result = analyze_source("var n = x == null ? null : x.Name;", language="csharp",
                            symbols={"locals": {"x": "Customer"}, ...})
    scan, scan_dict = scan_project(".", ci_mode=True)
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

from nullprop.analyzers.null_propagation import (
    NullPropagationAnalyzer,
    TreeResult,
    assign_finding_ids,
)
from nullprop.contracts.load import validate_instance
from nullprop.core.cancellation import CancellationToken
from nullprop.core.config import AnalyzerConfig
from nullprop.core.runner import run_scan
from nullprop.languages import detect_language, get_language
from nullprop.model.run_result import ScanResult
from nullprop.semantics.compilation import Compilation

__all__ = [
    "analyze_file",
    "analyze_source",
    "scan_project",
    "validate_instance",
]


def _to_path(p: str | Path) -> Path:
    return p if isinstance(p, Path) else Path(p)


def _compilation(
    compilation: Compilation | None,
    symbols: Mapping[str, Any] | str | Path | None,
) -> Compilation | None:
    if compilation is not None:
        return compilation
    if symbols is None:
        return None
    if isinstance(symbols, Mapping):
        return Compilation.from_mapping(symbols)
    return Compilation.load(_to_path(symbols))


def _config(config: AnalyzerConfig | Mapping[str, Any] | None) -> AnalyzerConfig | None:
    if config is None or isinstance(config, AnalyzerConfig):
        return config
    return AnalyzerConfig.from_mapping(config)


# ── analyze_source / analyze_file ───────────────────────────────────


def analyze_source(
    source: str,
    *,
    language: str = "csharp",
    path: str = "<memory>",
    compilation: Compilation | None = None,
    symbols: Mapping[str, Any] | str | Path | None = None,
    config: AnalyzerConfig | Mapping[str, Any] | None = None,
    cancellation: CancellationToken | None = None,
) -> TreeResult:
    """Analyze one in-memory source text.

    Parameters
    ----------
    source:
        Program text in the grammar named by *language*.
    symbols:
        Symbol table as a mapping or a path to a YAML file.  Ignored when
        *compilation* is given.

    Raises
    ------
    ParseError
        If *source* is malformed, or nested too deeply to bind.
    """
    lang = get_language(language)
    analyzer = NullPropagationAnalyzer(
        _config(config), _compilation(compilation, symbols), cancellation
    )
    tree = lang.parse(source, path)
    result = analyzer.analyze_tree(tree, lang)
    assign_finding_ids(result.findings)
    return result


def analyze_file(
    path: str | Path,
    *,
    compilation: Compilation | None = None,
    symbols: Mapping[str, Any] | str | Path | None = None,
    config: AnalyzerConfig | Mapping[str, Any] | None = None,
    cancellation: CancellationToken | None = None,
) -> TreeResult:
    """Analyze one file; the language is detected from its extension."""
    path_p = _to_path(path)
    source = path_p.read_text(encoding="utf-8", errors="replace")
    return analyze_source(
        source,
        language=detect_language(str(path_p)),
        path=path_p.as_posix(),
        compilation=compilation,
        symbols=symbols,
        config=config,
        cancellation=cancellation,
    )


# ── scan_project ────────────────────────────────────────────────────


def scan_project(
    root: str | Path,
    *,
    project_id: str = "",
    config: AnalyzerConfig | Mapping[str, Any] | None = None,
    symbols: Mapping[str, Any] | str | Path | None = None,
    ci_mode: bool = False,
    out_path: str | Path | None = None,
    cancellation: CancellationToken | None = None,
) -> tuple[ScanResult, dict[str, Any]]:
    """Run the standard scan pipeline programmatically.

    Returns
    -------
    ``(ScanResult, scan_result_dict)``
        The dataclass and the schema-aligned JSON dict.

    Raises
    ------
    FileNotFoundError
        If *root* does not exist.
    """
    root_p = _to_path(root)
    if not root_p.exists():
        raise FileNotFoundError(f"scan_project: root does not exist: {root_p}")

    result = run_scan(
        root_p,
        config=_config(config),
        compilation=_compilation(None, symbols),
        project_id=project_id,
        out_path=_to_path(out_path) if out_path is not None else None,
        cancellation=cancellation,
        ci_mode=ci_mode,
    )
    return result, result.to_dict()
