"""C#-style front end on top of the tree-sitter C# grammar.

tree-sitter yields a concrete syntax tree; ``_Converter`` folds it into the
``SyntaxNode`` shapes ``CSharpSyntaxFacts`` queries.  Member access,
invocation and ``?.`` chains are rebuilt left to right, so ``x?.A.B`` comes
out as ``(x?.A).B``.  Node types with no counterpart become
``SyntaxKind.OTHER`` and keep their converted children, so conditionals
inside methods and classes are still visited.

Conversion uses an explicit work stack: source nested deeper than the
interpreter's recursion limit still converts.
"""

from __future__ import annotations

import functools
from typing import Callable

import tree_sitter
import tree_sitter_c_sharp

from nullprop.languages.csharp.syntax import BINARY_OPERATORS, SyntaxKind as K
from nullprop.syntax.lexer import ParseError
from nullprop.syntax.tree import SyntaxNode, SyntaxTree, TextSpan

# Roles: the same tree-sitter ``identifier`` is a name in an expression and
# a type in a declaration.
_EXPR = "expr"
_TYPE = "type"
_PATTERN = "pattern"

# Children to convert first, and how to assemble them into one node.
_Plan = tuple[list[tuple[tree_sitter.Node, str]], Callable[[list[SyntaxNode]], SyntaxNode]]

_LITERALS: dict[str, K] = {
    "null_literal": K.NULL_LITERAL,
    "integer_literal": K.NUMERIC_LITERAL,
    "real_literal": K.NUMERIC_LITERAL,
    "string_literal": K.STRING_LITERAL,
    "verbatim_string_literal": K.STRING_LITERAL,
    "raw_string_literal": K.STRING_LITERAL,
    "interpolated_string_expression": K.STRING_LITERAL,
}

_TYPE_NODES = frozenset({
    "predefined_type", "implicit_type", "identifier", "generic_name", "qualified_name",
    "nullable_type", "array_type", "pointer_type", "tuple_type",
})

# Patterns with no counterpart in the tree model.
_OTHER_PATTERNS = frozenset({
    "relational_pattern", "or_pattern", "and_pattern", "recursive_pattern",
    "var_pattern", "discard", "list_pattern",
})

_PREFIX_OPERATORS = {"!": K.LOGICAL_NOT, "-": K.UNARY_MINUS}


@functools.lru_cache(maxsize=1)
def _language() -> tree_sitter.Language:
    return tree_sitter.Language(tree_sitter_c_sharp.language())


def parse(source: str, path: str = "<memory>") -> SyntaxTree:
    """Parse C#-style *source* into a ``SyntaxTree``.

    Raises ``ParseError`` at the first error tree-sitter had to recover from.
    """
    data = source.encode("utf-8")
    # Parsers are not shared between threads; one per call.
    parser = tree_sitter.Parser()
    parser.language = _language()
    ts_tree = parser.parse(data)

    converter = _Converter(source, data, path)
    if ts_tree.root_node.has_error:
        converter.raise_first_error(ts_tree.root_node)
    root = converter.convert(ts_tree.root_node)
    return SyntaxTree(root, source, path=path, language="csharp")


def _named(node: tree_sitter.Node) -> list[tree_sitter.Node]:
    return [c for c in node.named_children if c.type != "comment"]


def _part(node: tree_sitter.Node, field: str, index: int) -> tree_sitter.Node:
    """Field *field* of *node*, or its *index*-th named child."""
    child = node.child_by_field_name(field)
    return child if child is not None else _named(node)[index]


def _first(children: list[SyntaxNode]) -> SyntaxNode:
    return children[0]


def _initializer(declarator: tree_sitter.Node) -> tree_sitter.Node | None:
    seen_equals = False
    for child in declarator.children:
        if child.type == "equals_value_clause":
            values = _named(child)
            return values[0] if values else None
        if seen_equals and child.is_named and child.type != "comment":
            return child
        if child.type == "=":
            seen_equals = True
    return None


def _char_offsets(source: str, data: bytes) -> list[int] | None:
    """Map UTF-8 byte offsets to character offsets; ``None`` for ASCII."""
    if len(data) == len(source):
        return None
    offsets = [0] * (len(data) + 1)
    pos = 0
    for i, ch in enumerate(source):
        width = len(ch.encode("utf-8"))
        for k in range(width):
            offsets[pos + k] = i
        pos += width
    offsets[pos] = len(source)
    return offsets


class _Converter:
    def __init__(self, source: str, data: bytes, path: str) -> None:
        self.source = source
        self.path = path
        self._offsets = _char_offsets(source, data)

    # ── offsets and errors ──────────────────────────────────────────

    def _char(self, byte: int) -> int:
        return byte if self._offsets is None else self._offsets[byte]

    def _span(self, node: tree_sitter.Node) -> TextSpan:
        return TextSpan(self._char(node.start_byte), self._char(node.end_byte))

    def _text(self, node: tree_sitter.Node) -> str:
        span = self._span(node)
        return self.source[span.start:span.end]

    def raise_first_error(self, root: tree_sitter.Node) -> None:
        stack = [root]
        while stack:
            node = stack.pop()
            offset = self._char(node.start_byte)
            if node.is_missing:
                raise ParseError(f"missing {node.type!r}", offset, path=self.path)
            if node.type == "ERROR":
                snippet = self._text(node).split("\n", 1)[0][:20]
                raise ParseError(f"unexpected {snippet!r}", offset, path=self.path)
            if node.has_error:
                stack.extend(reversed(node.children))
        raise ParseError("syntax error", 0, path=self.path)

    # ── driver ──────────────────────────────────────────────────────

    def convert(self, root: tree_sitter.Node) -> SyntaxNode:
        results: list[SyntaxNode] = []
        work: list[tuple] = [(False, root, _EXPR)]
        while work:
            entry = work.pop()
            if entry[0]:
                _, build, count = entry
                children = results[len(results) - count:]
                del results[len(results) - count:]
                results.append(build(children))
                continue
            _, node, role = entry
            inputs, build = self._plan(node, role)
            work.append((True, build, len(inputs)))
            for child, child_role in reversed(inputs):
                work.append((False, child, child_role))
        return results[0]

    def _plan(self, node: tree_sitter.Node, role: str) -> _Plan:
        if role == _TYPE:
            return self._type_plan(node)
        if role == _PATTERN:
            return self._pattern_plan(node)
        literal = _LITERALS.get(node.type)
        if literal is not None:
            return self._leaf(literal, node)
        handler = getattr(self, f"_plan_{node.type}", None)
        if handler is None:
            return self._other_plan(node)
        return handler(node)

    def _leaf(self, kind: K, node: tree_sitter.Node, token: str | None = None) -> _Plan:
        span = self._span(node)
        text = token if token is not None else self.source[span.start:span.end]
        return [], lambda _: SyntaxNode(kind, (), span=span, token=text)

    def _wrap(
        self,
        kind: K,
        node: tree_sitter.Node,
        inputs: list[tuple[tree_sitter.Node, str]],
        token: str | None = None,
    ) -> _Plan:
        span = self._span(node)
        return inputs, lambda children: SyntaxNode(kind, children, span=span, token=token)

    def _other_plan(self, node: tree_sitter.Node) -> _Plan:
        return self._wrap(K.OTHER, node, [(c, _EXPR) for c in _named(node)])

    def _operator(self, node: tree_sitter.Node) -> str:
        op = node.child_by_field_name("operator")
        if op is None:
            op = next(
                (c for c in node.children if not c.is_named or c.type == "assignment_operator"),
                None,
            )
        return self._text(op) if op is not None else ""

    def _name_leaf(self, kind: K, node: tree_sitter.Node) -> SyntaxNode:
        if node.type == "generic_name":
            node = next((c for c in _named(node) if c.type == "identifier"), node)
        return SyntaxNode(kind, (), span=self._span(node), token=self._text(node))

    # ── statements ──────────────────────────────────────────────────

    def _plan_compilation_unit(self, node: tree_sitter.Node) -> _Plan:
        span = TextSpan(0, len(self.source))
        inputs = [(c, _EXPR) for c in _named(node)]
        return inputs, lambda children: SyntaxNode(K.COMPILATION_UNIT, children, span=span)

    def _plan_global_statement(self, node: tree_sitter.Node) -> _Plan:
        return [(_named(node)[0], _EXPR)], _first

    def _plan_block(self, node: tree_sitter.Node) -> _Plan:
        return self._wrap(K.BLOCK, node, [(c, _EXPR) for c in _named(node)])

    def _plan_expression_statement(self, node: tree_sitter.Node) -> _Plan:
        return self._wrap(K.EXPRESSION_STATEMENT, node, [(_named(node)[0], _EXPR)])

    def _plan_return_statement(self, node: tree_sitter.Node) -> _Plan:
        return self._wrap(K.RETURN_STATEMENT, node, [(c, _EXPR) for c in _named(node)[:1]])

    def _plan_empty_statement(self, node: tree_sitter.Node) -> _Plan:
        return self._wrap(K.EMPTY_STATEMENT, node, [])

    def _plan_if_statement(self, node: tree_sitter.Node) -> _Plan:
        inputs = [(_part(node, "condition", 0), _EXPR), (_part(node, "consequence", 1), _EXPR)]
        alternative = node.child_by_field_name("alternative")
        if alternative is None:
            return self._wrap(K.IF_STATEMENT, node, inputs)
        inputs.append((alternative, _EXPR))
        else_kw = next((c for c in node.children if c.type == "else"), alternative)
        else_span = TextSpan(self._char(else_kw.start_byte), self._char(alternative.end_byte))
        span = self._span(node)

        def build(children: list[SyntaxNode]) -> SyntaxNode:
            condition, consequence, statement = children
            else_clause = SyntaxNode(K.ELSE_CLAUSE, [statement], span=else_span)
            return SyntaxNode(K.IF_STATEMENT, [condition, consequence, else_clause], span=span)

        return inputs, build

    def _plan_local_declaration_statement(self, node: tree_sitter.Node) -> _Plan:
        declaration = next((c for c in _named(node) if c.type == "variable_declaration"), None)
        if declaration is None:
            return self._other_plan(node)
        type_node = declaration.child_by_field_name("type")
        declarators = [c for c in _named(declaration) if c.type == "variable_declarator"]
        if type_node is None or not declarators:
            return self._other_plan(node)

        inputs: list[tuple[tree_sitter.Node, str]] = []
        shapes: list[tuple[tree_sitter.Node, bool]] = []
        for declarator in declarators:
            name = declarator.child_by_field_name("name")
            if name is None:
                name = next((c for c in _named(declarator) if c.type == "identifier"), None)
            if name is None:
                # Tuple deconstruction.
                return self._other_plan(node)
            value = _initializer(declarator)
            # Every declarator gets its own copy of the type node.
            inputs.append((type_node, _TYPE))
            if value is not None:
                inputs.append((value, _EXPR))
            shapes.append((name, value is not None))
        span = self._span(node)

        def build(children: list[SyntaxNode]) -> SyntaxNode:
            it = iter(children)
            declarations = []
            for name, has_value in shapes:
                type_syntax = next(it)
                initializer = [next(it)] if has_value else []
                name_span = self._span(name)
                end = initializer[0].span.end if initializer else name_span.end
                declarator = SyntaxNode(
                    K.VARIABLE_DECLARATOR, initializer,
                    span=TextSpan(name_span.start, end), token=self._text(name),
                )
                declarations.append(SyntaxNode(K.LOCAL_DECLARATION, [type_syntax, declarator], span=span))
            if len(declarations) == 1:
                return declarations[0]
            return SyntaxNode(K.OTHER, declarations, span=span)

        return inputs, build

    # ── types ───────────────────────────────────────────────────────

    def _type_plan(self, node: tree_sitter.Node) -> _Plan:
        kind = node.type
        if kind == "predefined_type":
            return self._leaf(K.PREDEFINED_TYPE, node)
        if kind == "implicit_type":
            return self._leaf(K.NAMED_TYPE, node, "var")
        if kind == "identifier":
            return self._leaf(K.NAMED_TYPE, node)
        if kind == "generic_name":
            children = _named(node)
            name = next(c for c in children if c.type == "identifier")
            arg_list = next((c for c in children if c.type == "type_argument_list"), None)
            args = _named(arg_list) if arg_list is not None else []
            return self._wrap(K.GENERIC_NAME, node, [(a, _TYPE) for a in args], token=self._text(name))
        if kind == "qualified_name":
            return [(_part(node, "name", -1), _TYPE)], _first
        if kind == "nullable_type":
            return self._wrap(K.NULLABLE_TYPE, node, [(_part(node, "type", 0), _TYPE)])
        if kind == "array_type":
            return self._wrap(K.ARRAY_TYPE, node, [(_part(node, "type", 0), _TYPE)])
        # Pointer, tuple and function-pointer types resolve by their spelling.
        return self._leaf(K.NAMED_TYPE, node, "".join(self._text(node).split()))

    # ── patterns ────────────────────────────────────────────────────

    def _pattern_plan(self, node: tree_sitter.Node) -> _Plan:
        kind = node.type
        if kind == "negated_pattern":
            return self._wrap(K.NOT_PATTERN, node, [(_named(node)[0], _PATTERN)])
        if kind == "parenthesized_pattern":
            return [(_named(node)[0], _PATTERN)], _first
        if kind in ("type_pattern", "declaration_pattern"):
            return self._wrap(K.TYPE_PATTERN, node, [(_part(node, "type", 0), _TYPE)])
        if kind in _OTHER_PATTERNS:
            return self._other_plan(node)
        inner = _named(node)[0] if kind == "constant_pattern" else node
        if inner.type in _TYPE_NODES:
            return self._wrap(K.TYPE_PATTERN, node, [(inner, _TYPE)])
        return self._wrap(K.CONSTANT_PATTERN, node, [(inner, _EXPR)])

    def _plan_is_pattern_expression(self, node: tree_sitter.Node) -> _Plan:
        inputs = [(_part(node, "expression", 0), _EXPR), (_part(node, "pattern", -1), _PATTERN)]
        return self._wrap(K.IS_PATTERN_EXPRESSION, node, inputs)

    def _plan_is_expression(self, node: tree_sitter.Node) -> _Plan:
        inputs = [(_part(node, "left", 0), _EXPR), (_part(node, "right", -1), _PATTERN)]
        return self._wrap(K.IS_PATTERN_EXPRESSION, node, inputs)

    # ── leaves ──────────────────────────────────────────────────────

    def _plan_identifier(self, node: tree_sitter.Node) -> _Plan:
        return self._leaf(K.IDENTIFIER_NAME, node)

    def _plan_this(self, node: tree_sitter.Node) -> _Plan:
        return self._leaf(K.THIS_EXPRESSION, node)

    _plan_this_expression = _plan_this

    def _plan_boolean_literal(self, node: tree_sitter.Node) -> _Plan:
        kind = K.TRUE_LITERAL if self._text(node) == "true" else K.FALSE_LITERAL
        return self._leaf(kind, node)

    def _plan_predefined_type(self, node: tree_sitter.Node) -> _Plan:
        # ``object.ReferenceEquals(...)``
        return self._leaf(K.PREDEFINED_TYPE, node)

    # ── operators ───────────────────────────────────────────────────

    def _plan_parenthesized_expression(self, node: tree_sitter.Node) -> _Plan:
        return self._wrap(K.PARENTHESIZED_EXPRESSION, node, [(_named(node)[0], _EXPR)])

    def _plan_conditional_expression(self, node: tree_sitter.Node) -> _Plan:
        inputs = [
            (_part(node, "condition", 0), _EXPR),
            (_part(node, "consequence", 1), _EXPR),
            (_part(node, "alternative", 2), _EXPR),
        ]
        return self._wrap(K.CONDITIONAL_EXPRESSION, node, inputs)

    def _plan_binary_expression(self, node: tree_sitter.Node) -> _Plan:
        op = self._operator(node)
        if op == "??":
            return self._coalesce_plan(node)
        inputs = [(_part(node, "left", 0), _EXPR), (_part(node, "right", -1), _EXPR)]
        return self._wrap(BINARY_OPERATORS.get(op, K.OTHER), node, inputs)

    def _coalesce_plan(self, node: tree_sitter.Node) -> _Plan:
        """Flatten a ``??`` chain and rebuild it right-associated."""
        operands: list[tree_sitter.Node] = []
        work = [node]
        while work:
            current = work.pop()
            if current.type == "binary_expression" and self._operator(current) == "??":
                work.append(_part(current, "right", -1))
                work.append(_part(current, "left", 0))
            else:
                operands.append(current)

        def build(children: list[SyntaxNode]) -> SyntaxNode:
            result = children[-1]
            for left in reversed(children[:-1]):
                result = SyntaxNode(
                    K.COALESCE_EXPRESSION, [left, result],
                    span=TextSpan(left.span.start, result.span.end),
                )
            return result

        return [(o, _EXPR) for o in operands], build

    def _plan_prefix_unary_expression(self, node: tree_sitter.Node) -> _Plan:
        kind = _PREFIX_OPERATORS.get(self._operator(node), K.OTHER)
        return self._wrap(kind, node, [(_named(node)[-1], _EXPR)])

    def _plan_assignment_expression(self, node: tree_sitter.Node) -> _Plan:
        kind = K.SIMPLE_ASSIGNMENT if self._operator(node) == "=" else K.OTHER
        inputs = [(_part(node, "left", 0), _EXPR), (_part(node, "right", -1), _EXPR)]
        return self._wrap(kind, node, inputs)

    def _plan_cast_expression(self, node: tree_sitter.Node) -> _Plan:
        inputs = [(_part(node, "type", 0), _TYPE), (_part(node, "value", -1), _EXPR)]
        return self._wrap(K.CAST_EXPRESSION, node, inputs)

    # ── access chains ───────────────────────────────────────────────

    def _access_chain_plan(self, node: tree_sitter.Node) -> _Plan:
        """Member access, calls, indexing and ``?.``/``?[]``, left to right."""
        ops: list[tuple[str, tree_sitter.Node]] = []
        work: list[tuple[str, tree_sitter.Node]] = [("expand", node)]
        while work:
            op, current = work.pop()
            if op != "expand":
                ops.append((op, current))
                continue
            kind = current.type
            if kind == "member_access_expression":
                work.append(("member", current))
                work.append(("expand", _part(current, "expression", 0)))
            elif kind == "invocation_expression":
                work.append(("invoke", current))
                work.append(("expand", _part(current, "function", 0)))
            elif kind == "element_access_expression":
                work.append(("element", current))
                work.append(("expand", _part(current, "expression", 0)))
            elif kind == "conditional_access_expression":
                work.append(("expand", _named(current)[-1]))
                work.append(("expand", _part(current, "condition", 0)))
            elif kind == "member_binding_expression":
                ops.append(("bind_member", current))
            elif kind == "element_binding_expression":
                ops.append(("bind_element", current))
            else:
                ops.append(("base", current))

        inputs: list[tuple[tree_sitter.Node, str]] = []
        for op, current in ops:
            if op == "base":
                inputs.append((current, _EXPR))
            elif op == "invoke":
                inputs.append((_part(current, "arguments", -1), _EXPR))
            elif op == "element":
                inputs.append((_part(current, "subscript", -1), _EXPR))
            elif op == "bind_element":
                brackets = next((c for c in _named(current) if c.type == "bracketed_argument_list"), current)
                inputs.append((brackets, _EXPR))

        def build(children: list[SyntaxNode]) -> SyntaxNode:
            it = iter(children)
            expr: SyntaxNode | None = None
            for op, current in ops:
                if op == "base":
                    if expr is not None:
                        raise ParseError("unexpected access chain", self._char(current.start_byte), path=self.path)
                    expr = next(it)
                    continue
                if expr is None:
                    raise ParseError("member access without a receiver", self._char(current.start_byte), path=self.path)
                span = TextSpan(expr.span.start, self._char(current.end_byte))
                if op == "member":
                    name = self._name_leaf(K.IDENTIFIER_NAME, _part(current, "name", -1))
                    expr = SyntaxNode(K.SIMPLE_MEMBER_ACCESS, [expr, name], span=span)
                elif op == "invoke":
                    expr = SyntaxNode(K.INVOCATION_EXPRESSION, [expr, next(it)], span=span)
                elif op == "element":
                    expr = SyntaxNode(K.ELEMENT_ACCESS, [expr, next(it)], span=span)
                elif op == "bind_member":
                    binding = self._name_leaf(K.MEMBER_BINDING, _part(current, "name", -1))
                    expr = SyntaxNode(K.CONDITIONAL_ACCESS, [expr, binding], span=span)
                else:
                    binding = SyntaxNode(K.ELEMENT_BINDING, [next(it)], span=self._span(current))
                    expr = SyntaxNode(K.CONDITIONAL_ACCESS, [expr, binding], span=span)
            if expr is None:
                raise ParseError("member access without a receiver", self._char(node.start_byte), path=self.path)
            return expr

        return inputs, build

    _plan_member_access_expression = _access_chain_plan
    _plan_invocation_expression = _access_chain_plan
    _plan_element_access_expression = _access_chain_plan
    _plan_conditional_access_expression = _access_chain_plan
    _plan_member_binding_expression = _access_chain_plan

    def _plan_element_binding_expression(self, node: tree_sitter.Node) -> _Plan:
        # Reached only when the grammar inlines the bracketed arguments.
        return self._wrap(K.BRACKETED_ARGUMENT_LIST, node, [(c, _EXPR) for c in _named(node)])

    def _plan_argument_list(self, node: tree_sitter.Node) -> _Plan:
        return self._wrap(K.ARGUMENT_LIST, node, [(c, _EXPR) for c in _named(node)])

    def _plan_bracketed_argument_list(self, node: tree_sitter.Node) -> _Plan:
        return self._wrap(K.BRACKETED_ARGUMENT_LIST, node, [(c, _EXPR) for c in _named(node)])

    def _plan_argument(self, node: tree_sitter.Node) -> _Plan:
        # ``name: value`` and ``ref value`` keep only the value.
        return self._wrap(K.ARGUMENT, node, [(_named(node)[-1], _EXPR)])

    # ── lambdas ─────────────────────────────────────────────────────

    def _plan_lambda_expression(self, node: tree_sitter.Node) -> _Plan:
        parameters = node.child_by_field_name("parameters")
        if parameters is None:
            parameters = next(
                (c for c in _named(node) if c.type in ("parameter_list", "implicit_parameter", "identifier")),
                None,
            )
        if parameters is None:
            return self._other_plan(node)
        body = _part(node, "body", -1)
        span = self._span(node)

        if parameters.type != "parameter_list":
            parameter = SyntaxNode(K.PARAMETER, (), span=self._span(parameters), token=self._text(parameters))
            return [(body, _EXPR)], lambda children: SyntaxNode(
                K.SIMPLE_LAMBDA, [parameter, children[0]], span=span
            )

        names = [_part(p, "name", -1) for p in _named(parameters) if p.type == "parameter"]
        list_span = self._span(parameters)

        def build(children: list[SyntaxNode]) -> SyntaxNode:
            parameter_list = SyntaxNode(
                K.PARAMETER_LIST,
                [SyntaxNode(K.PARAMETER, (), span=self._span(n), token=self._text(n)) for n in names],
                span=list_span,
            )
            return SyntaxNode(K.PARENTHESIZED_LAMBDA, [parameter_list, children[0]], span=span)

        return [(body, _EXPR)], build
