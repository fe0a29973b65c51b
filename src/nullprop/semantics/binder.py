"""SemanticModel: static types and resolved symbols for one syntax tree.

Binding happens once, eagerly, in the constructor.  The results are exposed
through read-only mappings so any number of analyzer threads can query the
same model without locking.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Mapping

from nullprop.core.cancellation import CancellationToken
from nullprop.semantics.compilation import Compilation
from nullprop.semantics.symbols import (
    LocalSymbol,
    MethodSymbol,
    SpecialType,
    Symbol,
    TypeKind,
    TypeSymbol,
)
from nullprop.syntax.facts import LiteralKind, SyntaxFacts, TypeRef
from nullprop.syntax.lexer import ParseError
from nullprop.syntax.tree import SyntaxNode, SyntaxTree

_logger = logging.getLogger(__name__)


class SemanticModel:
    """Read-only answers about the nodes of *tree*."""

    def __init__(
        self,
        compilation: Compilation,
        tree: SyntaxTree,
        facts: SyntaxFacts,
        cancellation: CancellationToken | None = None,
    ) -> None:
        self.compilation = compilation
        self.tree = tree
        self.facts = facts

        binder = _Binder(compilation, facts, cancellation or CancellationToken.none())
        try:
            binder.bind_root(tree.root)
        except RecursionError:
            raise ParseError("input nested too deeply", 0, path=tree.path) from None
        self._types: Mapping[SyntaxNode, TypeSymbol] = MappingProxyType(binder.types)
        self._symbols: Mapping[SyntaxNode, Symbol] = MappingProxyType(binder.symbols)
        self._converted: Mapping[SyntaxNode, TypeSymbol] = MappingProxyType(binder.converted)
        _logger.debug(
            "Bound %s: %d typed nodes, %d symbols",
            tree.path, len(self._types), len(self._symbols),
        )

    def get_type_info(self, node: SyntaxNode) -> TypeSymbol | None:
        """Static type of an expression or type-syntax node."""
        return self._types.get(node)

    def get_symbol_info(self, node: SyntaxNode) -> Symbol | None:
        """Symbol an identifier, member access or invocation resolved to."""
        return self._symbols.get(node)

    def get_converted_type(self, node: SyntaxNode) -> TypeSymbol | None:
        """Delegate or expression-tree type a lambda was converted to."""
        return self._converted.get(node)

    def is_in_expression_tree(
        self,
        node: SyntaxNode,
        expression_type: TypeSymbol | None,
        cancellation: CancellationToken,
    ) -> bool:
        """Whether *node* sits inside a lambda converted to ``Expression<T>``."""
        if expression_type is None:
            return False
        for ancestor in node.ancestors():
            cancellation.throw_if_cancellation_requested()
            if not self.facts.is_lambda_expression(ancestor):
                continue
            converted = self._converted.get(ancestor)
            if converted is not None and converted.original_definition == expression_type:
                return True
        return False


# ═══════════════════════════════════════════════════════════════════════
#  Binder
# ═══════════════════════════════════════════════════════════════════════


class _Binder:
    def __init__(self, compilation: Compilation, facts: SyntaxFacts, cancellation: CancellationToken) -> None:
        self.compilation = compilation
        self.facts = facts
        self.ignore_case = facts.case_insensitive_names
        self.cancellation = cancellation
        self.types: dict[SyntaxNode, TypeSymbol] = {}
        self.symbols: dict[SyntaxNode, Symbol] = {}
        self.converted: dict[SyntaxNode, TypeSymbol] = {}
        self.scopes: list[dict[str, TypeSymbol | None]] = [{}]
        self._boolean = compilation.get_special_type(SpecialType.BOOLEAN)
        self._this = compilation.this_type()

    # ── helpers ─────────────────────────────────────────────────────

    def _key(self, name: str) -> str:
        return name.lower() if self.ignore_case else name

    def _define(self, name: str, type_: TypeSymbol | None) -> None:
        self.scopes[-1][self._key(name)] = type_

    def _lookup_scoped(self, name: str) -> tuple[bool, TypeSymbol | None]:
        key = self._key(name)
        for scope in reversed(self.scopes):
            if key in scope:
                return True, scope[key]
        return False, None

    def _resolve(self, ref: TypeRef | None) -> TypeSymbol | None:
        if ref is None:
            return None
        return self.compilation.resolve(ref, ignore_case=self.ignore_case)

    def _resolve_type_node(self, node: SyntaxNode) -> TypeSymbol | None:
        type_ = self._resolve(self.facts.get_type_ref(node))
        return self._record(node, type_)

    def _record(self, node: SyntaxNode, type_: TypeSymbol | None) -> TypeSymbol | None:
        if type_ is not None:
            self.types[node] = type_
        return type_

    def _builtin(self, name: str) -> TypeSymbol | None:
        return self._resolve(TypeRef(name))

    # ── traversal ───────────────────────────────────────────────────

    def bind_root(self, root: SyntaxNode) -> None:
        for child in root.children:
            self.bind(child)

    def _bind_children(self, node: SyntaxNode) -> None:
        for child in node.children:
            self.bind(child)

    def bind(self, node: SyntaxNode, target: TypeSymbol | None = None) -> TypeSymbol | None:
        """Bind *node* and return its static type, if it has one."""
        self.cancellation.throw_if_cancellation_requested()
        f = self.facts

        if f.is_local_declaration(node):
            self._bind_declaration(node)
            return None
        if f.is_lambda_expression(node):
            return self._bind_lambda(node, target)
        if f.is_scope_boundary(node):
            self.scopes.append({})
            try:
                self._bind_children(node)
            finally:
                self.scopes.pop()
            return None
        if f.is_type_syntax(node):
            return self._resolve_type_node(node)
        if f.is_simple_assignment(node):
            left, right = f.get_parts_of_assignment(node)
            left_type = self.bind(left)
            self.bind(right, left_type)
            return self._record(node, left_type)
        if f.is_parenthesized_expression(node):
            parens = [node]
            inner = f.get_expression_of_parenthesized_expression(node)
            while f.is_parenthesized_expression(inner):
                parens.append(inner)
                inner = f.get_expression_of_parenthesized_expression(inner)
            type_ = self.bind(inner, target)
            for paren in parens:
                self._record(paren, type_)
            return type_
        if f.is_ternary_conditional_expression(node):
            return self._record(node, self._bind_conditional(node, target))
        if f.is_coalesce_expression(node):
            left, right = node.children
            left_type = self.bind(left, target)
            right_type = self.bind(right, target)
            if left_type is not None and left_type.is_nullable_value_type:
                left_type = left_type.type_arguments[0]
            return self._record(node, left_type or right_type)
        if f.is_binary_expression(node):
            return self._bind_binary(node)
        if f.is_logical_not_expression(node):
            self.bind(f.get_operand_of_prefix_unary_expression(node))
            return self._record(node, self._boolean)
        if f.is_prefix_unary_expression(node):
            return self._record(node, self.bind(f.get_operand_of_prefix_unary_expression(node)))
        if f.is_pattern_expression(node):
            self.bind(node.children[0])
            return self._record(node, self._boolean)
        if f.is_cast_expression(node):
            type_node, operand = f.get_parts_of_cast_expression(node)
            cast_type = self._resolve_type_node(type_node)
            self.bind(operand, cast_type)
            return self._record(node, cast_type)

        literal = f.get_literal_kind(node)
        if literal is not None:
            return self._record(node, self._bind_literal(node, literal))
        if f.is_this_expression(node):
            return self._record(node, self._this)
        if f.is_identifier_name(node):
            return self._record(node, self._bind_identifier(node))
        if f.is_simple_member_access_expression(node):
            return self._record(node, self._bind_member_access(node))
        if f.is_conditional_access_expression(node):
            return self._record(node, self._bind_conditional_access(node))
        if f.is_element_access_expression(node):
            receiver = self.bind(f.get_expression_of_element_access_expression(node))
            self._bind_children(node.children[1])
            if receiver is None:
                return None
            return self._record(node, self.compilation.get_indexer(receiver, ignore_case=self.ignore_case))
        if f.is_invocation_expression(node):
            return self._record(node, self._bind_invocation(node))

        self._bind_children(node)
        return None

    # ── declarations and lambdas ────────────────────────────────────

    def _bind_declaration(self, node: SyntaxNode) -> None:
        parts = self.facts.get_parts_of_local_declaration(node)
        declared = self._resolve_type_node(parts.type_node) if parts.type_node is not None else None
        init_type = None
        if parts.initializer is not None:
            init_type = self.bind(parts.initializer, declared)
        self._define(parts.name, declared or init_type)

    def _bind_lambda(self, node: SyntaxNode, target: TypeSymbol | None) -> TypeSymbol | None:
        f = self.facts
        delegate = target
        if target is not None:
            self.converted[node] = target
            expression = self.compilation.expression_of_t_type()
            if expression is not None and target.original_definition == expression and target.type_arguments:
                delegate = target.type_arguments[0]

        parameter_types: tuple[TypeSymbol | None, ...] = ()
        return_type: TypeSymbol | None = None
        if delegate is not None and delegate.kind is TypeKind.DELEGATE:
            parameter_types, return_type = _delegate_signature(delegate)

        self.scopes.append({})
        try:
            for i, name in enumerate(f.get_parameters_of_lambda(node)):
                self._define(name, parameter_types[i] if i < len(parameter_types) else None)
            self.bind(f.get_body_of_lambda(node), return_type)
        finally:
            self.scopes.pop()
        return self._record(node, target)

    # ── expressions ─────────────────────────────────────────────────

    def _bind_conditional(self, node: SyntaxNode, target: TypeSymbol | None) -> TypeSymbol | None:
        f = self.facts
        condition, when_true, when_false = f.get_parts_of_conditional_expression(node)
        self.bind(condition)
        true_type = self.bind(when_true, target)
        false_type = self.bind(when_false, target)

        if f.is_null_literal_expression(f.walk_down_parentheses(when_true)):
            other = false_type
        elif f.is_null_literal_expression(f.walk_down_parentheses(when_false)):
            other = true_type
        else:
            return true_type or false_type

        if other is not None and f.conditional_lifts_null_branch:
            return self.compilation.make_nullable(other)
        return other

    def _bind_binary(self, node: SyntaxNode) -> TypeSymbol | None:
        """Bind a left-nested operator chain (``a + b + c``) bottom-up in a loop."""
        f = self.facts
        spine = [node]
        left = f.get_parts_of_binary_expression(node)[0]
        while f.is_binary_expression(left):
            spine.append(left)
            left = f.get_parts_of_binary_expression(left)[0]

        type_ = self.bind(left)
        for current in reversed(spine):
            right_type = self.bind(f.get_parts_of_binary_expression(current)[1])
            if f.is_boolean_binary_expression(current):
                type_ = self._record(current, self._boolean)
            else:
                type_ = self._record(current, type_ or right_type)
        return type_

    def _bind_literal(self, node: SyntaxNode, literal: LiteralKind) -> TypeSymbol | None:
        if literal is LiteralKind.NULL:
            return None
        if literal is LiteralKind.STRING:
            return self._builtin("String")
        if literal is LiteralKind.BOOLEAN:
            return self._boolean
        if "." in (node.token or ""):
            return self._builtin("Double")
        return self._builtin("Int32")

    def _bind_identifier(self, node: SyntaxNode) -> TypeSymbol | None:
        name = node.token
        found, type_ = self._lookup_scoped(name)
        if found:
            self.symbols[node] = LocalSymbol(name, type_)
            return type_

        type_ = self.compilation.get_local(name, ignore_case=self.ignore_case)
        if type_ is not None:
            self.symbols[node] = LocalSymbol(name, type_)
            return type_

        if self._this is not None:
            prop = self.compilation.get_property(self._this, name, ignore_case=self.ignore_case)
            if prop is not None:
                self.symbols[node] = prop
                return prop.type

        type_ = self._resolve(TypeRef(name))
        if type_ is not None:
            self.symbols[node] = type_
            return type_
        return None

    def _member_of(self, receiver: TypeSymbol | None, name_node: SyntaxNode) -> TypeSymbol | None:
        """Property type of ``receiver.name``; records the property symbol."""
        if receiver is None:
            return None
        prop = self.compilation.get_property(receiver, name_node.token, ignore_case=self.ignore_case)
        if prop is None:
            return None
        self.symbols[name_node] = prop
        return prop.type

    def _bind_member_access(self, node: SyntaxNode) -> TypeSymbol | None:
        f = self.facts
        chain = [node]
        receiver = f.get_expression_of_member_access_expression(node)
        while f.is_simple_member_access_expression(receiver):
            chain.append(receiver)
            receiver = f.get_expression_of_member_access_expression(receiver)

        type_ = self.bind(receiver)
        for current in reversed(chain):
            name = f.get_name_of_member_access_expression(current)
            type_ = self._member_of(type_, name)
            if name in self.symbols:
                self.symbols[current] = self.symbols[name]
            if current is not node:
                self._record(current, type_)
        return type_

    def _bind_conditional_access(self, node: SyntaxNode) -> TypeSymbol | None:
        f = self.facts
        receiver = self.bind(f.get_expression_of_conditional_access_expression(node))
        if receiver is not None and receiver.is_nullable_value_type:
            receiver = receiver.type_arguments[0]
        when_not_null = f.get_when_not_null_of_conditional_access_expression(node)

        if f.is_member_binding_expression(when_not_null):
            type_ = self._member_of(receiver, when_not_null)
        elif f.is_element_binding_expression(when_not_null):
            self._bind_children(when_not_null)
            type_ = None
            if receiver is not None:
                type_ = self.compilation.get_indexer(receiver, ignore_case=self.ignore_case)
        else:
            type_ = self.bind(when_not_null)

        self._record(when_not_null, type_)
        return self.compilation.make_nullable(type_) if type_ is not None else None

    def _method_group(self, callee: SyntaxNode) -> tuple[list[MethodSymbol], bool]:
        """Candidate methods for *callee*, and whether the call is lifted by ``?.``."""
        f = self.facts
        comp = self.compilation
        ic = self.ignore_case

        if f.is_identifier_name(callee):
            found, _ = self._lookup_scoped(callee.token)
            if found or comp.get_local(callee.token, ignore_case=ic) is not None:
                return [], False
            methods = comp.get_functions(callee.token, ignore_case=ic)
            if not methods and self._this is not None:
                methods = comp.get_methods(self._this, callee.token, ignore_case=ic)
            if not methods and self._this is None:
                methods = comp.get_methods(comp.object_type, callee.token, ignore_case=ic)
            return methods, False

        if f.is_simple_member_access_expression(callee):
            receiver = self.bind(f.get_expression_of_member_access_expression(callee))
            if receiver is None:
                return [], False
            name = f.get_name_of_member_access_expression(callee)
            return comp.get_methods(receiver, name.token, ignore_case=ic), False

        if f.is_conditional_access_expression(callee):
            when_not_null = f.get_when_not_null_of_conditional_access_expression(callee)
            if f.is_member_binding_expression(when_not_null):
                receiver = self.bind(f.get_expression_of_conditional_access_expression(callee))
                if receiver is not None and receiver.is_nullable_value_type:
                    receiver = receiver.type_arguments[0]
                if receiver is None:
                    return [], True
                return comp.get_methods(receiver, when_not_null.token, ignore_case=ic), True

        return [], False

    def _bind_invocation(self, node: SyntaxNode) -> TypeSymbol | None:
        f = self.facts
        callee = f.get_expression_of_invocation_expression(node)
        arguments = f.get_arguments_of_invocation_expression(node)
        methods, lifted = self._method_group(callee)

        method = next((m for m in methods if m.parameter_count == len(arguments)), None)
        if method is None and methods:
            _logger.debug("No overload of %s takes %d argument(s)", methods[0].name, len(arguments))

        if method is not None:
            for i, argument in enumerate(arguments):
                value = f.get_expression_of_argument(argument)
                if value is not None:
                    self._record(argument, self.bind(value, method.parameter_types[i]))
            self.symbols[node] = method
            self.symbols[callee] = method
            return_type = method.return_type
            if lifted and return_type is not None and return_type.special is not SpecialType.VOID:
                return self.compilation.make_nullable(return_type)
            return return_type

        for argument in arguments:
            value = f.get_expression_of_argument(argument)
            if value is not None:
                self._record(argument, self.bind(value))
        if methods or lifted:
            return None

        # Not a method call: a delegate invocation or Basic-style indexing.
        callee_type = self.bind(callee)
        if callee_type is None:
            return None
        if callee_type.kind is TypeKind.DELEGATE:
            return _delegate_signature(callee_type)[1]
        return self.compilation.get_indexer(callee_type, ignore_case=self.ignore_case)


def _delegate_signature(delegate: TypeSymbol) -> tuple[tuple[TypeSymbol | None, ...], TypeSymbol | None]:
    """``Func<A, B, R>`` -> ``((A, B), R)``; ``Action<A>`` -> ``((A,), None)``."""
    if delegate.name == "Func" and delegate.type_arguments:
        return delegate.type_arguments[:-1], delegate.type_arguments[-1]
    return delegate.type_arguments, None
