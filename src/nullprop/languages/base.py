"""Language bundle: parser, tree facts and the minimum language version."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from nullprop.semantics.compilation import Compilation
from nullprop.syntax.facts import SyntaxFacts
from nullprop.syntax.tree import SyntaxTree


@dataclass(frozen=True)
class Language:
    """Everything the analyzer needs to know about one front-end grammar."""

    id: str
    name: str
    file_extensions: tuple[str, ...]
    facts: SyntaxFacts
    minimum_version: int
    parse: Callable[..., SyntaxTree]

    def should_analyze(self, compilation: Compilation) -> bool:
        """The null-propagation operator exists from ``minimum_version`` on."""
        return compilation.language_version >= self.minimum_version

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "extensions": list(self.file_extensions),
            "minimum_version": self.minimum_version,
        }
