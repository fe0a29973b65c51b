"""C#-style front end: parser and tree facts."""

from nullprop.languages.csharp.facts import CSharpSyntaxFacts
from nullprop.languages.csharp.parser import parse
from nullprop.languages.csharp.syntax import SyntaxKind

__all__ = ["CSharpSyntaxFacts", "SyntaxKind", "parse"]
