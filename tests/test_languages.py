"""Language registry."""

from __future__ import annotations

import pytest

import nullprop.languages as registry
from nullprop.languages import (
    Language,
    detect_language,
    get_language,
    register_language,
    supported_extensions,
    supported_languages,
)
from nullprop.languages import csharp
from nullprop.semantics.compilation import Compilation


def test_builtins_registered() -> None:
    assert [d["id"] for d in supported_languages()] == ["basic", "csharp"]
    assert supported_extensions() >= {".cs", ".vb"}


@pytest.mark.parametrize(
    ("path", "expected"),
    [("a/B.cs", "csharp"), ("Module.VB", "basic")],
)
def test_detect_language(path: str, expected: str) -> None:
    assert detect_language(path) == expected


def test_detect_unknown_extension() -> None:
    with pytest.raises(ValueError, match="Cannot detect language"):
        detect_language("script.py")


def test_get_unknown_language() -> None:
    with pytest.raises(ValueError, match="Unsupported language"):
        get_language("cobol")


def test_minimum_versions() -> None:
    cs = get_language("csharp")
    assert cs.minimum_version == 6
    assert cs.should_analyze(Compilation(language_version=6))
    assert not cs.should_analyze(Compilation(language_version=5))
    assert not get_language("basic").should_analyze(Compilation(language_version=12))


def test_register_language(monkeypatch) -> None:
    monkeypatch.setattr(registry, "_REGISTRY", dict(registry._REGISTRY))
    monkeypatch.setattr(registry, "_EXT_MAP", dict(registry._EXT_MAP))
    custom = Language(
        id="csx",
        name="C# script",
        file_extensions=(".csx",),
        facts=csharp.CSharpSyntaxFacts(),
        minimum_version=6,
        parse=csharp.parse,
    )
    register_language(custom)
    assert detect_language("run.CSX") == "csx"
    assert get_language("csx").to_dict() == {
        "id": "csx",
        "name": "C# script",
        "extensions": [".csx"],
        "minimum_version": 6,
    }
