"""Source-file discovery."""

from __future__ import annotations

from pathlib import Path

import pytest

from nullprop.core.discover import discover_source_files

EXTS = frozenset({".cs", ".vb"})


@pytest.fixture()
def tree(tmp_path: Path) -> Path:
    for rel in [
        "App.cs",
        "lib/Util.VB",
        "lib/readme.md",
        "obj/Debug/Gen.cs",
        "bin/Out.cs",
        "generated/Auto.cs",
        "tests/AppTests.cs",
    ]:
        p = tmp_path / rel
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text("", encoding="utf-8")
    return tmp_path


def _rel(root: Path, paths: list[Path]) -> list[str]:
    return [p.relative_to(root.resolve()).as_posix() for p in paths]


def test_default_excludes_and_extensions(tree: Path) -> None:
    found = _rel(tree, discover_source_files(tree, extensions=EXTS))
    assert found == ["App.cs", "generated/Auto.cs", "lib/Util.VB", "tests/AppTests.cs"]


def test_extra_excludes(tree: Path) -> None:
    found = _rel(tree, discover_source_files(tree, extensions=EXTS, exclude=["generated", "tests"]))
    assert found == ["App.cs", "lib/Util.VB"]


def test_include_patterns(tree: Path) -> None:
    found = _rel(tree, discover_source_files(tree, extensions=EXTS, include=["lib/*", "*.cs"]))
    assert found == ["App.cs", "lib/Util.VB"]


def test_extension_subset(tree: Path) -> None:
    found = _rel(tree, discover_source_files(tree, extensions={".vb"}))
    assert found == ["lib/Util.VB"]


def test_single_file(tree: Path) -> None:
    assert discover_source_files(tree / "App.cs", extensions=EXTS) == [(tree / "App.cs").resolve()]
    assert discover_source_files(tree / "lib" / "readme.md", extensions=EXTS) == []
