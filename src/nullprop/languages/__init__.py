"""Language registry.

Maps language ids and file extensions to ``Language`` bundles.  Both built-in
grammars register themselves on import.
"""

from __future__ import annotations

import os

from nullprop.languages.base import Language

_REGISTRY: dict[str, Language] = {}
_EXT_MAP: dict[str, str] = {}


def register_language(language: Language) -> None:
    """Register a language bundle and its file extensions."""
    _REGISTRY[language.id] = language
    for ext in language.file_extensions:
        _EXT_MAP[ext.lower()] = language.id


def get_language(language_id: str) -> Language:
    """Return the registered bundle for *language_id*."""
    language = _REGISTRY.get(language_id)
    if language is None:
        supported = ", ".join(sorted(_REGISTRY))
        raise ValueError(
            f"Unsupported language: '{language_id}'. "
            f"Supported: {supported}"
        )
    return language


def detect_language(filepath: str) -> str:
    """Detect the language id from a file extension."""
    ext = os.path.splitext(str(filepath))[1].lower()
    lang = _EXT_MAP.get(ext)
    if lang is None:
        supported = ", ".join(f"{e} ({l})" for e, l in sorted(_EXT_MAP.items()))
        raise ValueError(
            f"Cannot detect language for extension '{ext}'. "
            f"Supported: {supported}"
        )
    return lang


def supported_languages() -> list[dict]:
    """List all registered languages with their extensions."""
    return [lang.to_dict() for _, lang in sorted(_REGISTRY.items())]


def supported_extensions() -> frozenset[str]:
    return frozenset(_EXT_MAP)


def _register_builtins() -> None:
    from nullprop.languages import basic, csharp

    register_language(Language(
        id="csharp",
        name="C#",
        file_extensions=(".cs",),
        facts=csharp.CSharpSyntaxFacts(),
        minimum_version=6,
        parse=csharp.parse,
    ))
    register_language(Language(
        id="basic",
        name="Visual Basic",
        file_extensions=(".vb",),
        facts=basic.BasicSyntaxFacts(),
        minimum_version=14,
        parse=basic.parse,
    ))


_register_builtins()

__all__ = [
    "Language",
    "detect_language",
    "get_language",
    "register_language",
    "supported_extensions",
    "supported_languages",
]
