"""Basic-style front end: parser and tree facts."""

from nullprop.languages.basic.facts import BasicSyntaxFacts
from nullprop.languages.basic.parser import parse
from nullprop.languages.basic.syntax import SyntaxKind

__all__ = ["BasicSyntaxFacts", "SyntaxKind", "parse"]
