"""Tree facts for the C#-style grammar."""

from __future__ import annotations

from nullprop.languages.csharp.syntax import PREDEFINED_TYPES, SyntaxKind as K
from nullprop.syntax.facts import DeclarationParts, LiteralKind, SyntaxFacts, TypeRef
from nullprop.syntax.tree import SyntaxNode

_BOOLEAN_BINARY = frozenset({
    K.LOGICAL_OR, K.LOGICAL_AND, K.EQUALS_EXPRESSION, K.NOT_EQUALS_EXPRESSION,
    K.LESS_THAN, K.LESS_THAN_OR_EQUAL, K.GREATER_THAN, K.GREATER_THAN_OR_EQUAL,
})

_BINARY = _BOOLEAN_BINARY | {K.ADD, K.SUBTRACT, K.MULTIPLY, K.DIVIDE, K.MODULO}

_TYPES = frozenset({K.PREDEFINED_TYPE, K.NAMED_TYPE, K.GENERIC_NAME, K.NULLABLE_TYPE, K.ARRAY_TYPE})

_LITERALS = {
    K.NULL_LITERAL: LiteralKind.NULL,
    K.NUMERIC_LITERAL: LiteralKind.NUMERIC,
    K.STRING_LITERAL: LiteralKind.STRING,
    K.TRUE_LITERAL: LiteralKind.BOOLEAN,
    K.FALSE_LITERAL: LiteralKind.BOOLEAN,
}


class CSharpSyntaxFacts(SyntaxFacts):
    language = "csharp"
    case_insensitive_names = False
    conditional_lifts_null_branch = True

    def is_parenthesized_expression(self, node: SyntaxNode) -> bool:
        return node.kind is K.PARENTHESIZED_EXPRESSION

    def is_ternary_conditional_expression(self, node: SyntaxNode) -> bool:
        return node.kind is K.CONDITIONAL_EXPRESSION

    def is_if_statement(self, node: SyntaxNode) -> bool:
        return node.kind is K.IF_STATEMENT

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
        return node.kind is K.EXPRESSION_STATEMENT

    def is_binary_expression(self, node: SyntaxNode) -> bool:
        return node.kind in _BINARY

    def is_reference_equals_expression(self, node: SyntaxNode) -> bool:
        return node.kind is K.EQUALS_EXPRESSION

    def is_reference_not_equals_expression(self, node: SyntaxNode) -> bool:
        return node.kind is K.NOT_EQUALS_EXPRESSION

    def is_boolean_binary_expression(self, node: SyntaxNode) -> bool:
        return node.kind in _BOOLEAN_BINARY

    def is_coalesce_expression(self, node: SyntaxNode) -> bool:
        return node.kind is K.COALESCE_EXPRESSION

    def is_logical_not_expression(self, node: SyntaxNode) -> bool:
        return node.kind is K.LOGICAL_NOT

    def is_prefix_unary_expression(self, node: SyntaxNode) -> bool:
        return node.kind in (K.LOGICAL_NOT, K.UNARY_MINUS)

    def is_simple_assignment(self, node: SyntaxNode) -> bool:
        return node.kind is K.SIMPLE_ASSIGNMENT

    def is_invocation_expression(self, node: SyntaxNode) -> bool:
        return node.kind is K.INVOCATION_EXPRESSION

    def is_simple_member_access_expression(self, node: SyntaxNode) -> bool:
        return node.kind is K.SIMPLE_MEMBER_ACCESS

    def is_conditional_access_expression(self, node: SyntaxNode) -> bool:
        return node.kind is K.CONDITIONAL_ACCESS

    def is_member_binding_expression(self, node: SyntaxNode) -> bool:
        return node.kind is K.MEMBER_BINDING

    def is_element_binding_expression(self, node: SyntaxNode) -> bool:
        return node.kind is K.ELEMENT_BINDING

    def is_element_access_expression(self, node: SyntaxNode) -> bool:
        return node.kind is K.ELEMENT_ACCESS

    def is_identifier_name(self, node: SyntaxNode) -> bool:
        return node.kind is K.IDENTIFIER_NAME

    def is_this_expression(self, node: SyntaxNode) -> bool:
        return node.kind is K.THIS_EXPRESSION

    def get_literal_kind(self, node: SyntaxNode) -> LiteralKind | None:
        return _LITERALS.get(node.kind)

    def is_cast_expression(self, node: SyntaxNode) -> bool:
        return node.kind is K.CAST_EXPRESSION

    def get_parts_of_cast_expression(self, node: SyntaxNode) -> tuple[SyntaxNode, SyntaxNode]:
        type_node, operand = node.children
        return type_node, operand

    def is_type_syntax(self, node: SyntaxNode) -> bool:
        return node.kind in _TYPES

    def get_type_ref(self, node: SyntaxNode) -> TypeRef | None:
        kind = node.kind
        if kind is K.PREDEFINED_TYPE:
            return TypeRef(PREDEFINED_TYPES.get(node.token, node.token))
        if kind is K.NAMED_TYPE:
            if node.token == "var":
                return None
            return TypeRef(node.token)
        if kind is K.GENERIC_NAME:
            args = tuple(self._required_type_ref(c) for c in node.children)
            return TypeRef(node.token, args)
        if kind is K.NULLABLE_TYPE:
            inner = self._required_type_ref(node.children[0])
            return TypeRef(inner.name, inner.type_arguments, nullable=True, array=inner.array)
        if kind is K.ARRAY_TYPE:
            return TypeRef("Array", (self._required_type_ref(node.children[0]),), array=True)
        raise ValueError(f"not a type node: {node!r}")

    def _required_type_ref(self, node: SyntaxNode) -> TypeRef:
        ref = self.get_type_ref(node)
        # ``var`` nested inside another type is an ordinary type name.
        return ref if ref is not None else TypeRef(node.token or "var")

    def is_lambda_expression(self, node: SyntaxNode) -> bool:
        return node.kind in (K.SIMPLE_LAMBDA, K.PARENTHESIZED_LAMBDA)

    def get_parameters_of_lambda(self, node: SyntaxNode) -> tuple[str, ...]:
        if node.kind is K.SIMPLE_LAMBDA:
            return (node.children[0].token,)
        return tuple(p.token for p in node.children[0].children)

    def get_body_of_lambda(self, node: SyntaxNode) -> SyntaxNode:
        return node.children[1]

    def is_local_declaration(self, node: SyntaxNode) -> bool:
        return node.kind is K.LOCAL_DECLARATION

    def get_parts_of_local_declaration(self, node: SyntaxNode) -> DeclarationParts:
        type_node, declarator = node.children
        initializer = declarator.children[0] if declarator.children else None
        inferred = type_node.kind is K.NAMED_TYPE and type_node.token == "var"
        return DeclarationParts(None if inferred else type_node, declarator.token, initializer)

    def is_scope_boundary(self, node: SyntaxNode) -> bool:
        return node.kind in (K.BLOCK, K.SIMPLE_LAMBDA, K.PARENTHESIZED_LAMBDA)

    # ── patterns ────────────────────────────────────────────────────

    def is_pattern_expression(self, node: SyntaxNode) -> bool:
        return node.kind is K.IS_PATTERN_EXPRESSION

    def try_analyze_pattern_condition(self, node: SyntaxNode) -> tuple[SyntaxNode, bool] | None:
        """``e is null`` -> ``(e, True)``; ``e is not null`` -> ``(e, False)``."""
        if node.kind is not K.IS_PATTERN_EXPRESSION:
            return None
        expression, pattern = node.children
        is_equals = True
        if pattern.kind is K.NOT_PATTERN:
            is_equals = False
            pattern = pattern.children[0]
        if pattern.kind is not K.CONSTANT_PATTERN:
            return None
        if not self.is_null_literal_expression(self.walk_down_parentheses(pattern.children[0])):
            return None
        return expression, is_equals
