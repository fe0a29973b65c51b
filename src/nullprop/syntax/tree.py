"""Read-only syntax tree shared by every front-end grammar.

Nodes carry a grammar-specific ``kind``, an optional token text for leaves,
ordered children and a source span.  Parent links are filled in once when the
``SyntaxTree`` is built; nothing mutates a tree after that.
"""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Sequence


@dataclass(frozen=True, slots=True)
class TextSpan:
    """Half-open character range ``[start, end)`` into the source text."""

    start: int
    end: int


class SyntaxNode:
    """One node of a parsed tree.

    Identity is the node object itself; equality is identity, so nodes can key
    dictionaries in the semantic model.
    """

    __slots__ = ("kind", "children", "token", "span", "parent", "height")

    def __init__(
        self,
        kind: Enum,
        children: Sequence[SyntaxNode] = (),
        *,
        span: TextSpan,
        token: str | None = None,
    ) -> None:
        self.kind = kind
        self.children: tuple[SyntaxNode, ...] = tuple(children)
        self.token = token
        self.span = span
        self.parent: SyntaxNode | None = None
        self.height: int = 1 + max((c.height for c in self.children), default=0)

    def __repr__(self) -> str:
        name = getattr(self.kind, "name", str(self.kind))
        if self.token is not None:
            return f"<{name} {self.token!r} @{self.span.start}>"
        return f"<{name} @{self.span.start}..{self.span.end}>"

    def child(self, index: int) -> SyntaxNode:
        return self.children[index]

    def walk(self) -> Iterator[SyntaxNode]:
        """Pre-order traversal of this node and its descendants."""
        stack: list[SyntaxNode] = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def ancestors(self) -> Iterator[SyntaxNode]:
        node = self.parent
        while node is not None:
            yield node
            node = node.parent


class SyntaxTree:
    """A parsed file: root node, source text and line index."""

    def __init__(
        self,
        root: SyntaxNode,
        source: str,
        *,
        path: str = "<memory>",
        language: str = "",
    ) -> None:
        self.root = root
        self.source = source
        self.path = path
        self.language = language
        self._line_starts = [0]
        for i, ch in enumerate(source):
            if ch == "\n":
                self._line_starts.append(i + 1)
        _link_parents(root)

    def text_of(self, node: SyntaxNode) -> str:
        return self.source[node.span.start:node.span.end]

    def line_of(self, offset: int) -> int:
        """1-based line number containing *offset*."""
        return bisect_right(self._line_starts, offset)

    def walk(self) -> Iterator[SyntaxNode]:
        return self.root.walk()


def _link_parents(root: SyntaxNode) -> None:
    stack = [root]
    while stack:
        node = stack.pop()
        for child in node.children:
            child.parent = node
            stack.append(child)
