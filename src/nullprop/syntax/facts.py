"""Tree-facts capability interface.

Every grammar answers the same questions about its own node shapes: is this
node an invocation, what is the receiver of this member access, does this
identifier equal that one.  The detector and the binder only ever talk to a
grammar through these queries, so one algorithm serves all grammars.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

from nullprop.syntax.tree import SyntaxNode


class LiteralKind(str, Enum):
    NULL = "null"
    NUMERIC = "numeric"
    STRING = "string"
    BOOLEAN = "boolean"


@dataclass(frozen=True, slots=True)
class TypeRef:
    """Grammar-neutral description of a type written in source.

    ``name`` is the spelled name with predefined keywords already mapped to
    their canonical type name (``int`` -> ``Int32``).
    """

    name: str
    type_arguments: tuple[TypeRef, ...] = ()
    nullable: bool = False
    array: bool = False

    def __str__(self) -> str:
        text = self.name
        if self.type_arguments:
            text += "<" + ", ".join(str(a) for a in self.type_arguments) + ">"
        if self.array:
            text += "[]"
        if self.nullable:
            text += "?"
        return text


@dataclass(frozen=True, slots=True)
class DeclarationParts:
    type_node: SyntaxNode | None     # None for an inferred (``var``/untyped) local
    name: str
    initializer: SyntaxNode | None


class SyntaxFacts(ABC):
    """Capability queries over one grammar's syntax tree."""

    #: Language id of the grammar, e.g. ``"csharp"``.
    language: str = ""

    #: Whether identifiers compare case-insensitively.
    case_insensitive_names: bool = False

    #: Whether ``cond ? null : valueTyped`` takes the lifted ``Nullable<T>`` type.
    conditional_lifts_null_branch: bool = False

    # ── names ───────────────────────────────────────────────────────

    def names_equal(self, left: str, right: str) -> bool:
        if self.case_insensitive_names:
            return left.lower() == right.lower()
        return left == right

    # ── structural equivalence ──────────────────────────────────────

    def are_equivalent(self, left: SyntaxNode | None, right: SyntaxNode | None) -> bool:
        """Trivia-insensitive structural equality of two sub-trees."""
        if left is None or right is None:
            return left is right
        stack = [(left, right)]
        while stack:
            a, b = stack.pop()
            if a.kind != b.kind or len(a.children) != len(b.children):
                return False
            if a.token is not None or b.token is not None:
                if a.token is None or b.token is None:
                    return False
                if not self._tokens_equal(a, b):
                    return False
            stack.extend(zip(a.children, b.children))
        return True

    def _tokens_equal(self, a: SyntaxNode, b: SyntaxNode) -> bool:
        if self.is_identifier_name(a):
            return self.names_equal(a.token, b.token)
        return a.token == b.token

    # ── parentheses ─────────────────────────────────────────────────

    @abstractmethod
    def is_parenthesized_expression(self, node: SyntaxNode) -> bool: ...

    def get_expression_of_parenthesized_expression(self, node: SyntaxNode) -> SyntaxNode:
        return node.children[0]

    def walk_down_parentheses(self, node: SyntaxNode) -> SyntaxNode:
        while self.is_parenthesized_expression(node):
            node = self.get_expression_of_parenthesized_expression(node)
        return node

    # ── conditional / if ────────────────────────────────────────────

    @abstractmethod
    def is_ternary_conditional_expression(self, node: SyntaxNode) -> bool: ...

    def get_parts_of_conditional_expression(
        self, node: SyntaxNode
    ) -> tuple[SyntaxNode, SyntaxNode, SyntaxNode]:
        condition, when_true, when_false = node.children
        return condition, when_true, when_false

    @abstractmethod
    def is_if_statement(self, node: SyntaxNode) -> bool: ...

    @abstractmethod
    def get_parts_of_if_statement(
        self, node: SyntaxNode
    ) -> tuple[SyntaxNode, SyntaxNode | None]:
        """Return ``(condition, single_true_statement)``.

        The statement is ``None`` unless the if-statement has no else part and
        its body holds exactly one statement.
        """

    @abstractmethod
    def is_expression_statement(self, node: SyntaxNode) -> bool: ...

    def get_expression_of_expression_statement(self, node: SyntaxNode) -> SyntaxNode:
        return node.children[0]

    # ── operators ───────────────────────────────────────────────────

    @abstractmethod
    def is_binary_expression(self, node: SyntaxNode) -> bool: ...

    def get_parts_of_binary_expression(self, node: SyntaxNode) -> tuple[SyntaxNode, SyntaxNode]:
        left, right = node.children
        return left, right

    @abstractmethod
    def is_reference_equals_expression(self, node: SyntaxNode) -> bool: ...

    @abstractmethod
    def is_reference_not_equals_expression(self, node: SyntaxNode) -> bool: ...

    @abstractmethod
    def is_boolean_binary_expression(self, node: SyntaxNode) -> bool:
        """Binary operators whose result is always Boolean."""

    @abstractmethod
    def is_coalesce_expression(self, node: SyntaxNode) -> bool: ...

    @abstractmethod
    def is_logical_not_expression(self, node: SyntaxNode) -> bool: ...

    @abstractmethod
    def is_prefix_unary_expression(self, node: SyntaxNode) -> bool: ...

    def get_operand_of_prefix_unary_expression(self, node: SyntaxNode) -> SyntaxNode:
        return node.children[0]

    @abstractmethod
    def is_simple_assignment(self, node: SyntaxNode) -> bool: ...

    def get_parts_of_assignment(self, node: SyntaxNode) -> tuple[SyntaxNode, SyntaxNode]:
        left, right = node.children
        return left, right

    # ── access and invocation ───────────────────────────────────────

    @abstractmethod
    def is_invocation_expression(self, node: SyntaxNode) -> bool: ...

    def get_expression_of_invocation_expression(self, node: SyntaxNode) -> SyntaxNode:
        return node.children[0]

    def get_arguments_of_invocation_expression(self, node: SyntaxNode) -> tuple[SyntaxNode, ...]:
        return node.children[1].children

    def get_expression_of_argument(self, node: SyntaxNode) -> SyntaxNode | None:
        return node.children[0] if node.children else None

    @abstractmethod
    def is_simple_member_access_expression(self, node: SyntaxNode) -> bool: ...

    def get_expression_of_member_access_expression(self, node: SyntaxNode) -> SyntaxNode:
        return node.children[0]

    def get_name_of_member_access_expression(self, node: SyntaxNode) -> SyntaxNode:
        return node.children[1]

    @abstractmethod
    def is_conditional_access_expression(self, node: SyntaxNode) -> bool: ...

    def get_expression_of_conditional_access_expression(self, node: SyntaxNode) -> SyntaxNode:
        return node.children[0]

    def get_when_not_null_of_conditional_access_expression(self, node: SyntaxNode) -> SyntaxNode:
        return node.children[1]

    @abstractmethod
    def is_member_binding_expression(self, node: SyntaxNode) -> bool: ...

    @abstractmethod
    def is_element_binding_expression(self, node: SyntaxNode) -> bool: ...

    @abstractmethod
    def is_element_access_expression(self, node: SyntaxNode) -> bool: ...

    def get_expression_of_element_access_expression(self, node: SyntaxNode) -> SyntaxNode:
        return node.children[0]

    # ── leaves ──────────────────────────────────────────────────────

    @abstractmethod
    def is_identifier_name(self, node: SyntaxNode) -> bool: ...

    @abstractmethod
    def is_this_expression(self, node: SyntaxNode) -> bool: ...

    @abstractmethod
    def get_literal_kind(self, node: SyntaxNode) -> LiteralKind | None: ...

    def is_null_literal_expression(self, node: SyntaxNode) -> bool:
        return self.get_literal_kind(node) is LiteralKind.NULL

    # ── casts, types, lambdas, declarations ─────────────────────────

    @abstractmethod
    def is_cast_expression(self, node: SyntaxNode) -> bool: ...

    @abstractmethod
    def get_parts_of_cast_expression(self, node: SyntaxNode) -> tuple[SyntaxNode, SyntaxNode]:
        """Return ``(type_node, operand)``."""

    @abstractmethod
    def is_type_syntax(self, node: SyntaxNode) -> bool: ...

    @abstractmethod
    def get_type_ref(self, node: SyntaxNode) -> TypeRef | None:
        """Describe a type node, or ``None`` for an implicitly typed ``var``."""

    @abstractmethod
    def is_lambda_expression(self, node: SyntaxNode) -> bool: ...

    @abstractmethod
    def get_parameters_of_lambda(self, node: SyntaxNode) -> tuple[str, ...]: ...

    @abstractmethod
    def get_body_of_lambda(self, node: SyntaxNode) -> SyntaxNode: ...

    @abstractmethod
    def is_local_declaration(self, node: SyntaxNode) -> bool: ...

    @abstractmethod
    def get_parts_of_local_declaration(self, node: SyntaxNode) -> DeclarationParts: ...

    @abstractmethod
    def is_scope_boundary(self, node: SyntaxNode) -> bool:
        """Nodes (blocks, lambdas) whose locals are not visible outside them."""

    # ── grammar hook ────────────────────────────────────────────────

    def try_analyze_pattern_condition(
        self, node: SyntaxNode
    ) -> tuple[SyntaxNode, bool] | None:
        """Recognize a grammar-specific null pattern.

        Returns ``(checked_expression, is_equals)`` or ``None``.  Grammars
        without pattern matching keep this default.
        """
        return None

    def is_pattern_expression(self, node: SyntaxNode) -> bool:
        return False
