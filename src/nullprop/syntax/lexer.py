"""Regex-driven tokenizer shared by the front-end grammars.

Each grammar supplies its punctuation, keyword set and comment syntax through
a ``LexerRules`` instance; the scanning loop is the same for all of them.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum, auto


class ParseError(SyntaxError):
    """Malformed input for one of the front-end grammars."""

    def __init__(self, message: str, offset: int, *, path: str = "<memory>") -> None:
        super().__init__(f"{path}:{offset}: {message}")
        self.offset = offset
        self.path = path


class TokenKind(Enum):
    IDENT = auto()
    KEYWORD = auto()
    NUMBER = auto()
    STRING = auto()
    PUNCT = auto()
    NEWLINE = auto()
    EOF = auto()


@dataclass(frozen=True, slots=True)
class Token:
    kind: TokenKind
    text: str
    start: int
    end: int

    def __repr__(self) -> str:
        return f"Token({self.kind.name}, {self.text!r}, {self.start})"


@dataclass(frozen=True)
class LexerRules:
    """Grammar-specific lexical rules."""

    punctuation: tuple[str, ...]
    keywords: frozenset[str]
    comment: str
    case_insensitive: bool = False
    significant_newlines: bool = False
    line_continuation: str | None = None

    def normalize(self, word: str) -> str:
        return word.lower() if self.case_insensitive else word


_IDENT = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_NUMBER = re.compile(r"\d+(?:\.\d+)?[A-Za-z]?")
_STRING = re.compile(r'"(?:[^"\\\n]|\\.|"")*"')
_SPACE = re.compile(r"[ \t\r\f\v]+")


def tokenize(source: str, rules: LexerRules, *, path: str = "<memory>") -> list[Token]:
    """Split *source* into tokens according to *rules*.

    Keywords are reported with their normalized spelling in ``text`` so the
    parsers can compare them directly; identifiers keep their source spelling.
    """
    comment = re.compile(rules.comment)
    # Longest punctuation first so ``?.`` wins over ``?``.
    punct = sorted(rules.punctuation, key=len, reverse=True)
    tokens: list[Token] = []
    pos = 0
    n = len(source)
    while pos < n:
        m = _SPACE.match(source, pos)
        if m:
            pos = m.end()
            continue
        m = comment.match(source, pos)
        if m:
            pos = m.end()
            continue
        ch = source[pos]
        if ch == "\n":
            if rules.significant_newlines:
                if tokens and tokens[-1].kind is not TokenKind.NEWLINE:
                    tokens.append(Token(TokenKind.NEWLINE, "\n", pos, pos + 1))
            pos += 1
            continue
        if rules.line_continuation and source.startswith(rules.line_continuation, pos):
            rest = source[pos + len(rules.line_continuation):].split("\n", 1)[0]
            if not rest.strip():
                # Swallow the continuation marker and the newline after it.
                pos = source.find("\n", pos)
                pos = n if pos < 0 else pos + 1
                continue
        m = _IDENT.match(source, pos)
        if m:
            word = m.group()
            norm = rules.normalize(word)
            if norm in rules.keywords:
                tokens.append(Token(TokenKind.KEYWORD, norm, pos, m.end()))
            else:
                tokens.append(Token(TokenKind.IDENT, word, pos, m.end()))
            pos = m.end()
            continue
        m = _NUMBER.match(source, pos)
        if m:
            tokens.append(Token(TokenKind.NUMBER, m.group(), pos, m.end()))
            pos = m.end()
            continue
        m = _STRING.match(source, pos)
        if m:
            tokens.append(Token(TokenKind.STRING, m.group(), pos, m.end()))
            pos = m.end()
            continue
        for p in punct:
            if source.startswith(p, pos):
                tokens.append(Token(TokenKind.PUNCT, p, pos, pos + len(p)))
                pos += len(p)
                break
        else:
            raise ParseError(f"unexpected character {ch!r}", pos, path=path)
    if rules.significant_newlines and tokens and tokens[-1].kind is not TokenKind.NEWLINE:
        tokens.append(Token(TokenKind.NEWLINE, "\n", n, n))
    tokens.append(Token(TokenKind.EOF, "", n, n))
    return tokens


class TokenStream:
    """Cursor over a token list with the lookahead helpers the parsers need."""

    def __init__(self, tokens: list[Token], rules: LexerRules, *, path: str = "<memory>") -> None:
        self.tokens = tokens
        self.rules = rules
        self.path = path
        self.pos = 0

    @property
    def current(self) -> Token:
        return self.tokens[self.pos]

    def peek(self, offset: int = 1) -> Token:
        i = min(self.pos + offset, len(self.tokens) - 1)
        return self.tokens[i]

    def advance(self) -> Token:
        tok = self.tokens[self.pos]
        if tok.kind is not TokenKind.EOF:
            self.pos += 1
        return tok

    def at(self, text: str, *, offset: int = 0) -> bool:
        tok = self.peek(offset) if offset else self.current
        return tok.kind in (TokenKind.PUNCT, TokenKind.KEYWORD) and tok.text == text

    def at_kind(self, kind: TokenKind) -> bool:
        return self.current.kind is kind

    def accept(self, text: str) -> Token | None:
        if self.at(text):
            return self.advance()
        return None

    def expect(self, text: str) -> Token:
        if not self.at(text):
            self.error(f"expected {text!r}, found {self.current.text or 'end of input'!r}")
        return self.advance()

    def expect_ident(self) -> Token:
        if self.current.kind is not TokenKind.IDENT:
            self.error(f"expected identifier, found {self.current.text or 'end of input'!r}")
        return self.advance()

    def skip_newlines(self) -> None:
        while self.current.kind is TokenKind.NEWLINE:
            self.advance()

    def error(self, message: str) -> None:
        raise ParseError(message, self.current.start, path=self.path)
