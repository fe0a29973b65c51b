"""Null-propagation analyzer: detects null checks that ``?.`` / ``?[]`` can replace.

Two forms are recognized::

    x == null ? null : x.Name          ->  x?.Name
    if (x != null) x.Run();            ->  x?.Run();

The algorithm is written once against ``SyntaxFacts`` and a ``SemanticModel``;
each grammar only contributes its facts.  Per node the pipeline is
classify -> match -> veto -> report, and any failed step means "no finding".
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from nullprop.core.cancellation import CancellationToken, OperationCancelledError
from nullprop.core.config import AnalyzerConfig
from nullprop.languages import Language, detect_language, get_language
from nullprop.model import NodeForm, Outcome, Polarity, Severity
from nullprop.model.finding import (
    RULE_ID,
    Finding,
    Location,
    NodeResult,
    make_fingerprint,
)
from nullprop.semantics.binder import SemanticModel
from nullprop.semantics.compilation import Compilation
from nullprop.semantics.symbols import MethodSymbol, SpecialType, TypeSymbol
from nullprop.syntax.facts import SyntaxFacts
from nullprop.syntax.tree import SyntaxNode, SyntaxTree

_logger = logging.getLogger(__name__)

MESSAGE = "Null check can be simplified"
REFERENCE_EQUALS = "ReferenceEquals"


# ═══════════════════════════════════════════════════════════════════════
#  Condition classifier
# ═══════════════════════════════════════════════════════════════════════


def _null_operand_split(
    facts: SyntaxFacts, left: SyntaxNode, right: SyntaxNode
) -> SyntaxNode | None:
    """Return the non-null operand when exactly one side is the null literal."""
    left_null = facts.is_null_literal_expression(facts.walk_down_parentheses(left))
    right_null = facts.is_null_literal_expression(facts.walk_down_parentheses(right))
    if left_null == right_null:
        return None
    return right if left_null else left


def classify_condition(
    facts: SyntaxFacts,
    model: SemanticModel,
    reference_equals_method: MethodSymbol | None,
    condition: SyntaxNode,
) -> tuple[SyntaxNode, Polarity] | None:
    """Recognize ``e == null``, ``ReferenceEquals(e, null)`` or a null pattern.

    *condition* must already have its parentheses and leading negation
    removed.  Returns the checked expression and the polarity of the check.
    """
    if facts.is_binary_expression(condition):
        if facts.is_reference_equals_expression(condition):
            polarity = Polarity.EQUALS_NULL
        elif facts.is_reference_not_equals_expression(condition):
            polarity = Polarity.NOT_EQUALS_NULL
        else:
            return None
        left, right = facts.get_parts_of_binary_expression(condition)
        checked = _null_operand_split(facts, left, right)
        return (checked, polarity) if checked is not None else None

    if facts.is_invocation_expression(condition):
        if reference_equals_method is None:
            return None
        callee = facts.get_expression_of_invocation_expression(condition)
        if facts.is_simple_member_access_expression(callee):
            name = facts.get_name_of_member_access_expression(callee).token
        elif facts.is_identifier_name(callee):
            name = callee.token
        else:
            return None
        if name is None or not facts.names_equal(name, REFERENCE_EQUALS):
            return None

        arguments = facts.get_arguments_of_invocation_expression(condition)
        if len(arguments) != 2:
            return None
        left = facts.get_expression_of_argument(arguments[0])
        right = facts.get_expression_of_argument(arguments[1])
        if left is None or right is None:
            return None
        checked = _null_operand_split(facts, left, right)
        if checked is None:
            return None
        if model.get_symbol_info(condition) != reference_equals_method:
            return None
        return checked, Polarity.EQUALS_NULL

    pattern = facts.try_analyze_pattern_condition(condition)
    if pattern is None:
        return None
    checked, is_equals = pattern
    return checked, Polarity.EQUALS_NULL if is_equals else Polarity.NOT_EQUALS_NULL


def strip_condition(facts: SyntaxFacts, condition: SyntaxNode) -> tuple[SyntaxNode, bool]:
    """Walk down parentheses and strip one leading logical negation."""
    condition = facts.walk_down_parentheses(condition)
    if facts.is_logical_not_expression(condition):
        operand = facts.get_operand_of_prefix_unary_expression(condition)
        return facts.walk_down_parentheses(operand), True
    return condition, False


# ═══════════════════════════════════════════════════════════════════════
#  When-part matcher
# ═══════════════════════════════════════════════════════════════════════


def remove_object_cast_if_any(
    facts: SyntaxFacts, model: SemanticModel, node: SyntaxNode
) -> SyntaxNode:
    """``(object)x`` -> ``x``; any other node is returned unchanged."""
    if facts.is_cast_expression(node):
        type_node, operand = facts.get_parts_of_cast_expression(node)
        type_ = model.get_type_info(type_node)
        if type_ is not None and type_.special is SpecialType.OBJECT:
            return operand
    return node


def unwrap(facts: SyntaxFacts, node: SyntaxNode) -> SyntaxNode | None:
    """Apply one unwrap step: callee of a call, receiver of an access."""
    if facts.is_invocation_expression(node):
        return facts.get_expression_of_invocation_expression(node)
    if facts.is_simple_member_access_expression(node):
        return facts.get_expression_of_member_access_expression(node)
    if facts.is_conditional_access_expression(node):
        return facts.get_expression_of_conditional_access_expression(node)
    if facts.is_element_access_expression(node):
        return facts.get_expression_of_element_access_expression(node)
    return None


def get_when_part_match(
    facts: SyntaxFacts,
    model: SemanticModel,
    checked: SyntaxNode,
    candidate: SyntaxNode,
    cancellation: CancellationToken,
) -> SyntaxNode | None:
    """Find the sub-expression of *candidate* equivalent to *checked*.

    Only a node reached by unwrapping a member access or element access is
    accepted, so ``f(x)`` never matches ``x``.  The loop is bounded by the
    candidate's height.
    """
    checked = facts.walk_down_parentheses(
        remove_object_cast_if_any(facts, model, facts.walk_down_parentheses(checked))
    )
    current = candidate
    for _ in range(candidate.height):
        cancellation.throw_if_cancellation_requested()
        current = facts.walk_down_parentheses(current)
        unwrapped = unwrap(facts, current)
        if unwrapped is None:
            return None
        if facts.is_simple_member_access_expression(current) or facts.is_element_access_expression(current):
            unwrapped = facts.walk_down_parentheses(unwrapped)
            if facts.are_equivalent(unwrapped, checked):
                return unwrapped
        current = unwrapped
    return None


# ═══════════════════════════════════════════════════════════════════════
#  Analyzer
# ═══════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class AnalysisContext:
    """Per-tree state resolved once before any node is visited."""

    tree: SyntaxTree
    model: SemanticModel
    facts: SyntaxFacts
    reference_equals_method: MethodSymbol | None
    expression_type: TypeSymbol | None
    cancellation: CancellationToken
    severity: Severity = Severity.INFO


@dataclass(slots=True)
class TreeResult:
    """Outcome of analyzing one syntax tree."""

    path: str
    findings: list[Finding] = field(default_factory=list)
    outcomes: dict[Outcome, int] = field(default_factory=dict)
    cancelled: bool = False
    skipped: bool = False


def _location(ctx: AnalysisContext, node: SyntaxNode) -> Location:
    tree = ctx.tree
    end = max(node.span.start, node.span.end - 1)
    return Location(
        path=tree.path,
        line_start=tree.line_of(node.span.start),
        line_end=tree.line_of(end),
        start=node.span.start,
        end=node.span.end,
    )


def _report(
    ctx: AnalysisContext,
    form: NodeForm,
    node: SyntaxNode,
    checked: SyntaxNode,
    candidate: SyntaxNode,
    match: SyntaxNode,
) -> NodeResult:
    match_type = ctx.model.get_type_info(match)
    is_nullable = match_type is not None and match_type.is_nullable_value_type
    snippet = ctx.tree.text_of(node)
    location = _location(ctx, node)
    finding = Finding(
        finding_id="",  # assigned once all findings are collected
        rule_id=RULE_ID,
        form=form,
        severity=ctx.severity,
        message=MESSAGE,
        location=location,
        anchors=(location, _location(ctx, checked), _location(ctx, candidate)),
        when_part_is_nullable=is_nullable,
        fingerprint=make_fingerprint(RULE_ID, location.path, ctx.tree.text_of(checked), snippet),
        snippet=snippet,
        metadata={"language": ctx.facts.language},
    )
    return NodeResult(Outcome.REPORTED, finding)


def analyze_ternary(ctx: AnalysisContext, node: SyntaxNode) -> NodeResult:
    facts, model = ctx.facts, ctx.model
    condition, when_true, when_false = facts.get_parts_of_conditional_expression(node)

    condition, negated = strip_condition(facts, condition)
    classified = classify_condition(facts, model, ctx.reference_equals_method, condition)
    if classified is None:
        return NodeResult(Outcome.CLASSIFICATION_MISS, reason="condition is not a null check")
    checked, polarity = classified
    if negated:
        polarity = polarity.negate()

    if polarity is Polarity.EQUALS_NULL:
        null_part, candidate = when_true, when_false
    else:
        null_part, candidate = when_false, when_true
    if not facts.is_null_literal_expression(facts.walk_down_parentheses(null_part)):
        return NodeResult(Outcome.MATCH_MISS, reason="null branch is not the null literal")

    match = get_when_part_match(facts, model, checked, candidate, ctx.cancellation)
    if match is None:
        return NodeResult(Outcome.MATCH_MISS, reason="candidate does not access the checked expression")

    type_ = model.get_type_info(node)
    if type_ is not None and type_.is_value_type and not type_.is_nullable_value_type:
        return NodeResult(Outcome.SAFETY_VETO, reason=f"conditional has value type {type_.display()}")

    if model.is_in_expression_tree(node, ctx.expression_type, ctx.cancellation):
        return NodeResult(Outcome.SAFETY_VETO, reason="inside an expression tree")

    return _report(ctx, NodeForm.TERNARY, node, checked, candidate, match)


def analyze_if_statement(ctx: AnalysisContext, node: SyntaxNode) -> NodeResult:
    facts, model = ctx.facts, ctx.model
    condition, statement = facts.get_parts_of_if_statement(node)
    if statement is None or not facts.is_expression_statement(statement):
        return NodeResult(Outcome.NOT_APPLICABLE, reason="body is not a single expression statement")

    condition, negated = strip_condition(facts, condition)
    classified = classify_condition(facts, model, ctx.reference_equals_method, condition)
    if classified is None:
        return NodeResult(Outcome.CLASSIFICATION_MISS, reason="condition is not a null check")
    checked, polarity = classified
    if negated:
        polarity = polarity.negate()
    if polarity is not Polarity.NOT_EQUALS_NULL:
        return NodeResult(Outcome.CLASSIFICATION_MISS, reason="body runs when the value is null")

    expression = facts.get_expression_of_expression_statement(statement)
    if not facts.is_invocation_expression(facts.walk_down_parentheses(expression)):
        return NodeResult(Outcome.MATCH_MISS, reason="statement is not an invocation")

    match = get_when_part_match(facts, model, checked, expression, ctx.cancellation)
    if match is None:
        return NodeResult(Outcome.MATCH_MISS, reason="candidate does not access the checked expression")

    match_type = model.get_type_info(match)
    if match_type is not None and match_type.is_pointer:
        return NodeResult(Outcome.SAFETY_VETO, reason="checked expression is a pointer")

    return _report(ctx, NodeForm.IF_STATEMENT, node, checked, expression, match)


def analyze_node(ctx: AnalysisContext, node: SyntaxNode) -> NodeResult:
    """Analyze one node; never raises for cancellation."""
    try:
        ctx.cancellation.throw_if_cancellation_requested()
        if ctx.facts.is_ternary_conditional_expression(node):
            result = analyze_ternary(ctx, node)
        elif ctx.facts.is_if_statement(node):
            result = analyze_if_statement(ctx, node)
        else:
            return NodeResult(Outcome.NOT_APPLICABLE)
    except OperationCancelledError:
        return NodeResult(Outcome.CANCELLED, reason="cancellation requested")
    if result.outcome is not Outcome.REPORTED:
        _logger.debug(
            "%s:%d: %s (%s)",
            ctx.tree.path, ctx.tree.line_of(node.span.start), result.outcome.value, result.reason,
        )
    return result


def assign_finding_ids(findings: list[Finding]) -> list[Finding]:
    """Assign stable ``np_<fp>_<n>`` ids in list order."""
    for i, f in enumerate(findings):
        object.__setattr__(f, "finding_id", f"np_{f.fingerprint[7:15]}_{i:04d}")
    return findings


class NullPropagationAnalyzer:
    """Finds ternaries and if-statements that null propagation can replace."""

    id: str = "null_propagation"
    version: str = "1.0.0"

    def __init__(
        self,
        config: AnalyzerConfig | None = None,
        compilation: Compilation | None = None,
        cancellation: CancellationToken | None = None,
    ) -> None:
        self.config = config or AnalyzerConfig()
        self.compilation = compilation or Compilation()
        self.cancellation = cancellation or CancellationToken.none()
        # Resolved once per compilation.
        self._reference_equals = self.compilation.reference_equals_method()
        self._expression_type = self.compilation.expression_of_t_type()

    def run(self, root: Path, files: list[Path]) -> list[Finding]:
        findings: list[Finding] = []
        for path in files:
            result = self.analyze_file(root, path)
            findings.extend(result.findings)
            if result.cancelled:
                break
        return assign_finding_ids(findings)

    def analyze_file(
        self, root: Path, path: Path, cancellation: CancellationToken | None = None
    ) -> TreeResult:
        """Parse, bind and analyze one file.  Raises ``ParseError``.

        *cancellation* overrides the analyzer's token for this file only.
        """
        language = get_language(detect_language(str(path)))
        source = path.read_text(encoding="utf-8", errors="replace")
        try:
            rel = path.resolve().relative_to(root.resolve()).as_posix()
        except ValueError:
            rel = path.as_posix()
        tree = language.parse(source, rel)
        return self.analyze_tree(tree, language, cancellation)

    def analyze_tree(
        self,
        tree: SyntaxTree,
        language: Language,
        cancellation: CancellationToken | None = None,
    ) -> TreeResult:
        """Visit every ternary and if-statement of *tree*."""
        cancellation = cancellation or self.cancellation
        result = TreeResult(path=tree.path)
        if not self.config.prefer_null_propagation:
            _logger.debug("%s: null propagation disabled by configuration", tree.path)
            result.skipped = True
            return result
        if language.id not in self.config.languages:
            _logger.debug("%s: language %s not enabled", tree.path, language.id)
            result.skipped = True
            return result
        if not language.should_analyze(self.compilation):
            _logger.debug(
                "%s: language version %d is below %d",
                tree.path, self.compilation.language_version, language.minimum_version,
            )
            result.skipped = True
            return result

        try:
            model = SemanticModel(self.compilation, tree, language.facts, cancellation)
        except OperationCancelledError:
            _logger.debug("%s: cancelled while binding", tree.path)
            result.outcomes[Outcome.CANCELLED] = 1
            result.cancelled = True
            return result

        ctx = AnalysisContext(
            tree=tree,
            model=model,
            facts=language.facts,
            reference_equals_method=self._reference_equals,
            expression_type=self._expression_type,
            cancellation=cancellation,
            severity=self.config.severity,
        )
        for node in tree.walk():
            node_result = analyze_node(ctx, node)
            if node_result.outcome is Outcome.NOT_APPLICABLE and not node_result.reason:
                continue
            result.outcomes[node_result.outcome] = result.outcomes.get(node_result.outcome, 0) + 1
            if node_result.outcome is Outcome.CANCELLED:
                result.cancelled = True
                break
            if node_result.finding is not None:
                result.findings.append(node_result.finding)
        return result
