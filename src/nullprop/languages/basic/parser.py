"""Recursive-descent parser for the Basic-style grammar.

Statements are newline-terminated.  Keywords come out of the lexer already
lower-cased, so every keyword comparison below uses lower-case text.
"""

from __future__ import annotations

from nullprop.languages.basic.syntax import (
    BINARY_OPERATORS,
    PREDEFINED_TYPES,
    RULES,
    SyntaxKind as K,
)
from nullprop.syntax.lexer import ParseError, Token, TokenKind, TokenStream, tokenize
from nullprop.syntax.tree import SyntaxNode, SyntaxTree, TextSpan

# Loosest first.  ``Not`` sits between the And level and comparisons and is
# handled in ``parse_not``.
_LEVELS: tuple[tuple[str, ...], ...] = (
    ("orelse", "or"),
    ("andalso", "and"),
    ("is", "isnot", "=", "<>", "<", "<=", ">", ">="),
    ("&",),
    ("+", "-"),
    ("*", "/", "mod"),
)
_NOT_LEVEL = 2

_CASTS = {
    "ctype": K.CTYPE_EXPRESSION,
    "directcast": K.DIRECT_CAST_EXPRESSION,
    "trycast": K.TRY_CAST_EXPRESSION,
}

_BLOCK_END = ("else", "elseif", "end")


def parse(source: str, path: str = "<memory>") -> SyntaxTree:
    """Parse Basic-style *source* into a ``SyntaxTree``.

    Raises ``ParseError`` on malformed input, and on expressions nested
    deeper than the interpreter's recursion limit.
    """
    parser = _Parser(source, path)
    try:
        root = parser.parse_compilation_unit()
    except RecursionError:
        raise ParseError("input nested too deeply", parser.ts.current.start, path=path) from None
    return SyntaxTree(root, source, path=path, language="basic")


def _node(kind: K, children=(), start: int = 0, end: int = 0, token: str | None = None) -> SyntaxNode:
    return SyntaxNode(kind, children, span=TextSpan(start, end), token=token)


def _leaf(kind: K, tok: Token) -> SyntaxNode:
    return _node(kind, (), tok.start, tok.end, tok.text)


class _Parser:
    def __init__(self, source: str, path: str) -> None:
        self.source = source
        self.ts = TokenStream(tokenize(source, RULES, path=path), RULES, path=path)

    # ── statements ──────────────────────────────────────────────────

    def parse_compilation_unit(self) -> SyntaxNode:
        ts = self.ts
        statements: list[SyntaxNode] = []
        ts.skip_newlines()
        while not ts.at_kind(TokenKind.EOF):
            statements.append(self.parse_statement())
            self.end_of_statement()
        return _node(K.COMPILATION_UNIT, statements, 0, len(self.source))

    def end_of_statement(self) -> None:
        ts = self.ts
        if ts.at_kind(TokenKind.EOF):
            return
        if not ts.at_kind(TokenKind.NEWLINE):
            ts.error(f"expected end of statement, found {ts.current.text!r}")
        ts.skip_newlines()

    def parse_statement(self) -> SyntaxNode:
        ts = self.ts
        tok = ts.current
        if ts.at("if"):
            return self.parse_if()
        if ts.at("call"):
            ts.advance()
            expr = self.parse_postfix(self.parse_primary())
            return _node(K.CALL_STATEMENT, [expr], tok.start, expr.span.end)
        if ts.at("return"):
            ts.advance()
            if self._at_statement_end():
                return _node(K.RETURN_STATEMENT, (), tok.start, tok.end)
            expr = self.parse_expression()
            return _node(K.RETURN_STATEMENT, [expr], tok.start, expr.span.end)
        if ts.at("dim"):
            return self.parse_dim()

        target = self.parse_unary()
        if ts.accept("="):
            value = self.parse_expression()
            return _node(K.ASSIGNMENT_STATEMENT, [target, value], target.span.start, value.span.end)
        return _node(K.EXPRESSION_STATEMENT, [target], target.span.start, target.span.end)

    def _at_statement_end(self) -> bool:
        ts = self.ts
        return ts.at_kind(TokenKind.NEWLINE) or ts.at_kind(TokenKind.EOF) or ts.at("else")

    def parse_dim(self) -> SyntaxNode:
        ts = self.ts
        dim = ts.expect("dim")
        name = ts.expect_ident()
        end = name.end
        as_clause: SyntaxNode | None = None
        if ts.at("as"):
            as_kw = ts.advance()
            type_node = self.parse_type()
            as_clause = _node(K.AS_CLAUSE, [type_node], as_kw.start, type_node.span.end)
            end = type_node.span.end
        initializer: list[SyntaxNode] = []
        if ts.accept("="):
            initializer.append(self.parse_expression())
            end = initializer[0].span.end
        declarator = _node(
            K.VARIABLE_DECLARATOR, initializer, name.start,
            initializer[0].span.end if initializer else name.end, name.text,
        )
        children = [declarator] + ([as_clause] if as_clause is not None else [])
        return _node(K.LOCAL_DECLARATION, children, dim.start, end)

    def parse_if(self) -> SyntaxNode:
        ts = self.ts
        kw = ts.advance()  # ``if`` or ``elseif``
        condition = self.parse_expression()
        ts.expect("then")
        if ts.at_kind(TokenKind.NEWLINE) or ts.at_kind(TokenKind.EOF):
            return self.parse_multi_line_if(kw, condition)

        statement = self.parse_statement()
        children = [condition, statement]
        end = statement.span.end
        if ts.at("else"):
            else_kw = ts.advance()
            else_statement = self.parse_statement()
            children.append(
                _node(K.ELSE_CLAUSE, [else_statement], else_kw.start, else_statement.span.end)
            )
            end = else_statement.span.end
        return _node(K.SINGLE_LINE_IF_STATEMENT, children, kw.start, end)

    def parse_multi_line_if(self, kw: Token, condition: SyntaxNode) -> SyntaxNode:
        ts = self.ts
        body = self.parse_block()
        children = [condition, body]
        if ts.at("elseif"):
            nested = self.parse_if()
            children.append(_node(K.ELSE_CLAUSE, [nested], nested.span.start, nested.span.end))
            return _node(K.MULTI_LINE_IF_BLOCK, children, kw.start, nested.span.end)
        if ts.at("else"):
            else_kw = ts.advance()
            else_body = self.parse_block()
            children.append(_node(K.ELSE_CLAUSE, [else_body], else_kw.start, else_body.span.end))
        ts.expect("end")
        end_if = ts.expect("if")
        return _node(K.MULTI_LINE_IF_BLOCK, children, kw.start, end_if.end)

    def parse_block(self) -> SyntaxNode:
        ts = self.ts
        ts.skip_newlines()
        start = ts.current.start
        statements: list[SyntaxNode] = []
        while not any(ts.at(word) for word in _BLOCK_END):
            if ts.at_kind(TokenKind.EOF):
                ts.error("expected 'End If'")
            statements.append(self.parse_statement())
            self.end_of_statement()
        end = statements[-1].span.end if statements else start
        return _node(K.BLOCK, statements, start, end)

    # ── types ───────────────────────────────────────────────────────

    def parse_type(self) -> SyntaxNode:
        ts = self.ts
        tok = ts.current
        if tok.kind is TokenKind.KEYWORD and tok.text in PREDEFINED_TYPES:
            node = _leaf(K.PREDEFINED_TYPE, ts.advance())
        elif tok.kind is TokenKind.IDENT:
            ts.advance()
            if ts.at("(") and ts.at("of", offset=1):
                ts.advance()
                ts.advance()
                args = [self.parse_type()]
                while ts.accept(","):
                    args.append(self.parse_type())
                close = ts.expect(")")
                node = _node(K.GENERIC_NAME, args, tok.start, close.end, tok.text)
            else:
                node = _leaf(K.NAMED_TYPE, tok)
        else:
            ts.error(f"expected type, found {tok.text or 'end of input'!r}")
            raise AssertionError("unreachable")
        if ts.at("?"):
            q = ts.advance()
            node = _node(K.NULLABLE_TYPE, [node], node.span.start, q.end)
        return node

    # ── expressions ─────────────────────────────────────────────────

    def parse_expression(self) -> SyntaxNode:
        return self.parse_binary(0)

    def parse_binary(self, level: int) -> SyntaxNode:
        if level == len(_LEVELS):
            return self.parse_unary()
        if level == _NOT_LEVEL and self.ts.at("not"):
            return self.parse_not()
        left = self.parse_binary(level + 1)
        operators = _LEVELS[level]
        while True:
            op = next((o for o in operators if self.ts.at(o)), None)
            if op is None:
                return left
            self.ts.advance()
            right = self.parse_binary(level + 1)
            left = _node(BINARY_OPERATORS[op], [left, right], left.span.start, right.span.end)

    def parse_not(self) -> SyntaxNode:
        kw = self.ts.expect("not")
        if self.ts.at("not"):
            operand = self.parse_not()
        else:
            operand = self.parse_binary(_NOT_LEVEL)
        return _node(K.NOT_EXPRESSION, [operand], kw.start, operand.span.end)

    def parse_unary(self) -> SyntaxNode:
        if self.ts.at("-"):
            op = self.ts.advance()
            operand = self.parse_unary()
            return _node(K.UNARY_MINUS, [operand], op.start, operand.span.end)
        return self.parse_postfix(self.parse_primary())

    def parse_postfix(self, expr: SyntaxNode) -> SyntaxNode:
        ts = self.ts
        while True:
            if ts.at("."):
                ts.advance()
                name = _leaf(K.IDENTIFIER_NAME, ts.expect_ident())
                expr = _node(K.SIMPLE_MEMBER_ACCESS, [expr, name], expr.span.start, name.span.end)
            elif ts.at("?."):
                ts.advance()
                binding = _leaf(K.MEMBER_BINDING, ts.expect_ident())
                expr = _node(K.CONDITIONAL_ACCESS, [expr, binding], expr.span.start, binding.span.end)
            elif ts.at("("):
                args = self.parse_arguments()
                expr = _node(K.INVOCATION_EXPRESSION, [expr, args], expr.span.start, args.span.end)
            else:
                return expr

    def parse_arguments(self) -> SyntaxNode:
        ts = self.ts
        open_ = ts.expect("(")
        args: list[SyntaxNode] = []
        if not ts.at(")"):
            while True:
                value = self.parse_expression()
                args.append(_node(K.ARGUMENT, [value], value.span.start, value.span.end))
                if not ts.accept(","):
                    break
        close = ts.expect(")")
        return _node(K.ARGUMENT_LIST, args, open_.start, close.end)

    def parse_primary(self) -> SyntaxNode:
        ts = self.ts
        tok = ts.current
        if tok.kind is TokenKind.IDENT:
            return _leaf(K.IDENTIFIER_NAME, ts.advance())
        if tok.kind is TokenKind.NUMBER:
            return _leaf(K.NUMERIC_LITERAL, ts.advance())
        if tok.kind is TokenKind.STRING:
            return _leaf(K.STRING_LITERAL, ts.advance())
        if ts.at("nothing"):
            return _leaf(K.NOTHING_LITERAL, ts.advance())
        if ts.at("true"):
            return _leaf(K.TRUE_LITERAL, ts.advance())
        if ts.at("false"):
            return _leaf(K.FALSE_LITERAL, ts.advance())
        if ts.at("me"):
            return _leaf(K.ME_EXPRESSION, ts.advance())
        if tok.kind is TokenKind.KEYWORD and tok.text in PREDEFINED_TYPES:
            return _leaf(K.PREDEFINED_TYPE, ts.advance())
        if ts.at("if"):
            return self.parse_if_operator()
        if tok.kind is TokenKind.KEYWORD and tok.text in _CASTS:
            return self.parse_cast()
        if ts.at("function"):
            return self.parse_lambda()
        if ts.at("("):
            open_ = ts.advance()
            inner = self.parse_expression()
            close = ts.expect(")")
            return _node(K.PARENTHESIZED_EXPRESSION, [inner], open_.start, close.end)
        ts.error(f"unexpected token {tok.text or 'end of input'!r}")
        raise AssertionError("unreachable")

    def parse_if_operator(self) -> SyntaxNode:
        ts = self.ts
        kw = ts.expect("if")
        ts.expect("(")
        parts = [self.parse_expression()]
        while ts.accept(","):
            parts.append(self.parse_expression())
        close = ts.expect(")")
        if len(parts) == 3:
            return _node(K.TERNARY_CONDITIONAL, parts, kw.start, close.end)
        if len(parts) == 2:
            return _node(K.BINARY_CONDITIONAL, parts, kw.start, close.end)
        raise ParseError("If() takes two or three arguments", kw.start, path=ts.path)

    def parse_cast(self) -> SyntaxNode:
        ts = self.ts
        kw = ts.advance()
        ts.expect("(")
        operand = self.parse_expression()
        ts.expect(",")
        type_node = self.parse_type()
        close = ts.expect(")")
        return _node(_CASTS[kw.text], [operand, type_node], kw.start, close.end)

    def parse_lambda(self) -> SyntaxNode:
        ts = self.ts
        kw = ts.expect("function")
        open_ = ts.expect("(")
        parameters: list[SyntaxNode] = []
        if not ts.at(")"):
            while True:
                name = ts.expect_ident()
                children: list[SyntaxNode] = []
                end = name.end
                if ts.accept("as"):
                    type_node = self.parse_type()
                    children.append(type_node)
                    end = type_node.span.end
                parameters.append(_node(K.PARAMETER, children, name.start, end, name.text))
                if not ts.accept(","):
                    break
        close = ts.expect(")")
        plist = _node(K.PARAMETER_LIST, parameters, open_.start, close.end)
        body = self.parse_expression()
        return _node(K.LAMBDA, [plist, body], kw.start, body.span.end)
