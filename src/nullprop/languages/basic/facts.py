"""Tree facts for the Basic-style grammar.

Identifiers and keywords compare case-insensitively.  ``Is``/``IsNot`` are the
reference comparisons; ``=``/``<>`` are value comparisons and never count as a
null check.  ``a(i)`` is always an invocation, so element access is absent.
"""

from __future__ import annotations

from nullprop.languages.basic.syntax import PREDEFINED_TYPES, SyntaxKind as K
from nullprop.syntax.facts import DeclarationParts, LiteralKind, SyntaxFacts, TypeRef
from nullprop.syntax.tree import SyntaxNode

_BOOLEAN_BINARY = frozenset({
    K.OR_ELSE, K.AND_ALSO, K.IS_EXPRESSION, K.IS_NOT_EXPRESSION,
    K.EQUALS_EXPRESSION, K.NOT_EQUALS_EXPRESSION,
    K.LESS_THAN, K.LESS_THAN_OR_EQUAL, K.GREATER_THAN, K.GREATER_THAN_OR_EQUAL,
})

_BINARY = _BOOLEAN_BINARY | {
    K.OR, K.AND, K.CONCATENATE, K.ADD, K.SUBTRACT, K.MULTIPLY, K.DIVIDE, K.MODULO,
}

_CASTS = frozenset({K.CTYPE_EXPRESSION, K.DIRECT_CAST_EXPRESSION, K.TRY_CAST_EXPRESSION})

_TYPES = frozenset({K.PREDEFINED_TYPE, K.NAMED_TYPE, K.GENERIC_NAME, K.NULLABLE_TYPE})

_LITERALS = {
    K.NOTHING_LITERAL: LiteralKind.NULL,
    K.NUMERIC_LITERAL: LiteralKind.NUMERIC,
    K.STRING_LITERAL: LiteralKind.STRING,
    K.TRUE_LITERAL: LiteralKind.BOOLEAN,
    K.FALSE_LITERAL: LiteralKind.BOOLEAN,
}


class BasicSyntaxFacts(SyntaxFacts):
    language = "basic"
    case_insensitive_names = True
    conditional_lifts_null_branch = False

    def is_parenthesized_expression(self, node: SyntaxNode) -> bool:
        return node.kind is K.PARENTHESIZED_EXPRESSION

    def is_ternary_conditional_expression(self, node: SyntaxNode) -> bool:
        return node.kind is K.TERNARY_CONDITIONAL

    def is_if_statement(self, node: SyntaxNode) -> bool:
        return node.kind in (K.SINGLE_LINE_IF_STATEMENT, K.MULTI_LINE_IF_BLOCK)

    def get_parts_of_if_statement(self, node: SyntaxNode) -> tuple[SyntaxNode, SyntaxNode | None]:
        condition, body = node.children[0], node.children[1]
        if len(node.children) > 2:
            return condition, None
        if body.kind is K.BLOCK:
            if len(body.children) != 1:
                return condition, None
            body = body.children[0]
        return condition, body

    def is_expression_statement(self, node: SyntaxNode) -> bool:
        return node.kind in (K.EXPRESSION_STATEMENT, K.CALL_STATEMENT)

    def is_binary_expression(self, node: SyntaxNode) -> bool:
        return node.kind in _BINARY

    def is_reference_equals_expression(self, node: SyntaxNode) -> bool:
        return node.kind is K.IS_EXPRESSION

    def is_reference_not_equals_expression(self, node: SyntaxNode) -> bool:
        return node.kind is K.IS_NOT_EXPRESSION

    def is_boolean_binary_expression(self, node: SyntaxNode) -> bool:
        return node.kind in _BOOLEAN_BINARY

    def is_coalesce_expression(self, node: SyntaxNode) -> bool:
        return node.kind is K.BINARY_CONDITIONAL

    def is_logical_not_expression(self, node: SyntaxNode) -> bool:
        return node.kind is K.NOT_EXPRESSION

    def is_prefix_unary_expression(self, node: SyntaxNode) -> bool:
        return node.kind in (K.NOT_EXPRESSION, K.UNARY_MINUS)

    def is_simple_assignment(self, node: SyntaxNode) -> bool:
        return node.kind is K.ASSIGNMENT_STATEMENT

    def is_invocation_expression(self, node: SyntaxNode) -> bool:
        return node.kind is K.INVOCATION_EXPRESSION

    def is_simple_member_access_expression(self, node: SyntaxNode) -> bool:
        return node.kind is K.SIMPLE_MEMBER_ACCESS

    def is_conditional_access_expression(self, node: SyntaxNode) -> bool:
        return node.kind is K.CONDITIONAL_ACCESS

    def is_member_binding_expression(self, node: SyntaxNode) -> bool:
        return node.kind is K.MEMBER_BINDING

    def is_element_binding_expression(self, node: SyntaxNode) -> bool:
        return False

    def is_element_access_expression(self, node: SyntaxNode) -> bool:
        return False

    def is_identifier_name(self, node: SyntaxNode) -> bool:
        return node.kind is K.IDENTIFIER_NAME

    def is_this_expression(self, node: SyntaxNode) -> bool:
        return node.kind is K.ME_EXPRESSION

    def get_literal_kind(self, node: SyntaxNode) -> LiteralKind | None:
        return _LITERALS.get(node.kind)

    def is_cast_expression(self, node: SyntaxNode) -> bool:
        return node.kind in _CASTS

    def get_parts_of_cast_expression(self, node: SyntaxNode) -> tuple[SyntaxNode, SyntaxNode]:
        operand, type_node = node.children
        return type_node, operand

    def is_type_syntax(self, node: SyntaxNode) -> bool:
        return node.kind in _TYPES

    def get_type_ref(self, node: SyntaxNode) -> TypeRef | None:
        kind = node.kind
        if kind is K.PREDEFINED_TYPE:
            return TypeRef(PREDEFINED_TYPES[node.token.lower()])
        if kind is K.NAMED_TYPE:
            return TypeRef(node.token)
        if kind is K.GENERIC_NAME:
            return TypeRef(node.token, tuple(self.get_type_ref(c) for c in node.children))
        if kind is K.NULLABLE_TYPE:
            inner = self.get_type_ref(node.children[0])
            return TypeRef(inner.name, inner.type_arguments, nullable=True)
        raise ValueError(f"not a type node: {node!r}")

    def is_lambda_expression(self, node: SyntaxNode) -> bool:
        return node.kind is K.LAMBDA

    def get_parameters_of_lambda(self, node: SyntaxNode) -> tuple[str, ...]:
        return tuple(p.token for p in node.children[0].children)

    def get_body_of_lambda(self, node: SyntaxNode) -> SyntaxNode:
        return node.children[1]

    def is_local_declaration(self, node: SyntaxNode) -> bool:
        return node.kind is K.LOCAL_DECLARATION

    def get_parts_of_local_declaration(self, node: SyntaxNode) -> DeclarationParts:
        declarator = node.children[0]
        type_node = node.children[1].children[0] if len(node.children) > 1 else None
        initializer = declarator.children[0] if declarator.children else None
        return DeclarationParts(type_node, declarator.token, initializer)

    def is_scope_boundary(self, node: SyntaxNode) -> bool:
        return node.kind in (K.BLOCK, K.LAMBDA)
