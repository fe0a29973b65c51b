"""Classifier, matcher and cancellation, exercised below the API layer."""

from __future__ import annotations

import threading

import pytest

from nullprop.analyzers.null_propagation import (
    NullPropagationAnalyzer,
    classify_condition,
    get_when_part_match,
    strip_condition,
)
from nullprop.api import analyze_source
from nullprop.core.cancellation import CancellationToken, OperationCancelledError
from nullprop.languages import get_language
from nullprop.model import Outcome, Polarity
from nullprop.semantics.binder import SemanticModel
from nullprop.semantics.compilation import Compilation

SYMBOLS = {
    "types": {
        "Customer": {"kind": "class", "members": {"Name": "string", "Next": "Customer"}},
    },
    "locals": {"x": "Customer", "y": "Customer"},
}


class _Harness:
    """Parse ``var v = <expr>;`` and expose its initializer with a bound model."""

    def __init__(self, expression: str, language: str = "csharp") -> None:
        self.language = get_language(language)
        self.facts = self.language.facts
        self.compilation = Compilation.from_mapping(SYMBOLS)
        if language == "csharp":
            source = f"var v = {expression};\n"
        else:
            source = f"Dim v = {expression}\n"
        self.tree = self.language.parse(source)
        self.model = SemanticModel(self.compilation, self.tree, self.facts)
        declaration = self.tree.root.children[0]
        declarator = declaration.children[1] if language == "csharp" else declaration.children[0]
        self.node = declarator.children[0]

    def text(self, node) -> str:
        return self.tree.text_of(node)

    def classify(self):
        condition, negated = strip_condition(self.facts, self.node)
        result = classify_condition(
            self.facts, self.model, self.compilation.reference_equals_method(), condition
        )
        return result, negated


# ── classifier ──────────────────────────────────────────────────────


class TestClassifier:
    @pytest.mark.parametrize(
        ("expression", "checked", "polarity"),
        [
            ("x == null", "x", Polarity.EQUALS_NULL),
            ("null == x.Next", "x.Next", Polarity.EQUALS_NULL),
            ("x != null", "x", Polarity.NOT_EQUALS_NULL),
            ("ReferenceEquals(x, null)", "x", Polarity.EQUALS_NULL),
            ("x is null", "x", Polarity.EQUALS_NULL),
            ("x is not null", "x", Polarity.NOT_EQUALS_NULL),
        ],
    )
    def test_recognized_shapes(self, expression: str, checked: str, polarity: Polarity) -> None:
        h = _Harness(expression)
        (node, found), negated = h.classify()
        assert h.text(node) == checked
        assert found is polarity
        assert negated is False

    def test_negation_is_reported_separately(self) -> None:
        h = _Harness("!((x == null))")
        (node, polarity), negated = h.classify()
        assert h.text(node) == "x"
        assert polarity is Polarity.EQUALS_NULL
        assert negated is True

    @pytest.mark.parametrize(
        "expression",
        [
            "null == null",
            "x == y",
            "x is Customer",
            "x is not 1",
            "Equals(x, null)",
            "ReferenceEquals(x)",
            "x.Name",
        ],
    )
    def test_rejected_shapes(self, expression: str) -> None:
        result, _ = _Harness(expression).classify()
        assert result is None

    def test_basic_is_and_isnot(self) -> None:
        h = _Harness("Nothing IsNot x", "basic")
        (node, polarity), _ = h.classify()
        assert h.text(node) == "x"
        assert polarity is Polarity.NOT_EQUALS_NULL

    def test_basic_value_comparison_rejected(self) -> None:
        result, _ = _Harness("x <> Nothing", "basic").classify()
        assert result is None


# ── matcher ─────────────────────────────────────────────────────────


class TestMatcher:
    @staticmethod
    def _match(checked_expr: str, candidate_expr: str):
        h = _Harness(f"{checked_expr} == null ? null : {candidate_expr}")
        condition, when_true, when_false = h.facts.get_parts_of_conditional_expression(h.node)
        checked = h.facts.get_parts_of_binary_expression(condition)[0]
        match = get_when_part_match(h.facts, h.model, checked, when_false, CancellationToken.none())
        return h, match

    @pytest.mark.parametrize(
        ("checked", "candidate", "matched"),
        [
            ("x", "x.Name", "x"),
            ("x", "x.Next.Next.Name", "x"),
            ("x.Next", "x.Next.Name", "x.Next"),
            ("x", "x.Next?.Name", "x"),
            ("x", "(x).Name", "x"),
            ("(object)x", "x.Name", "x"),
        ],
    )
    def test_matches(self, checked: str, candidate: str, matched: str) -> None:
        h, match = self._match(checked, candidate)
        assert match is not None
        assert h.text(match) == matched

    @pytest.mark.parametrize(
        ("checked", "candidate"),
        [
            ("x", "x"),
            ("x", "y.Name"),
            ("x", "x?.Name"),
            ("x.Next", "x.Name"),
            ("(string)x", "x.Name"),
        ],
    )
    def test_no_match(self, checked: str, candidate: str) -> None:
        _, match = self._match(checked, candidate)
        assert match is None

    def test_cancelled_matcher_raises(self) -> None:
        h = _Harness("x == null ? null : x.Name")
        _, _, when_false = h.facts.get_parts_of_conditional_expression(h.node)
        token = CancellationToken()
        token.cancel()
        with pytest.raises(OperationCancelledError):
            get_when_part_match(h.facts, h.model, h.node.children[0].children[0], when_false, token)


# ── cancellation ────────────────────────────────────────────────────


class TestCancellation:
    SRC = "var a = x == null ? null : x.Name;\nvar b = x == null ? null : x.Next;\n"

    def test_token_is_one_way(self) -> None:
        token = CancellationToken()
        assert token.is_cancellation_requested is False
        token.throw_if_cancellation_requested()
        token.cancel()
        token.cancel()
        assert token.is_cancellation_requested is True
        with pytest.raises(OperationCancelledError):
            token.throw_if_cancellation_requested()

    def test_linked_token_follows_its_parent(self) -> None:
        parent = CancellationToken()
        child = parent.linked()
        child.cancel()
        assert child.is_cancellation_requested is True
        assert parent.is_cancellation_requested is False
        sibling = parent.linked()
        parent.cancel()
        assert sibling.is_cancellation_requested is True

    def test_per_call_token_overrides_the_analyzer_token(self) -> None:
        analyzer = NullPropagationAnalyzer(compilation=Compilation.from_mapping(SYMBOLS))
        language = get_language("csharp")
        token = CancellationToken()
        token.cancel()
        stopped = analyzer.analyze_tree(language.parse(self.SRC), language, token)
        assert stopped.cancelled is True
        assert stopped.outcomes == {Outcome.CANCELLED: 1}
        assert analyzer.analyze_tree(language.parse(self.SRC), language).cancelled is False

    def test_cancelled_before_analysis(self) -> None:
        token = CancellationToken()
        token.cancel()
        result = analyze_source(self.SRC, symbols=SYMBOLS, cancellation=token)
        assert result.cancelled is True
        assert result.findings == []
        assert result.outcomes == {Outcome.CANCELLED: 1}

    def test_cancellation_is_not_a_miss(self) -> None:
        token = CancellationToken()
        token.cancel()
        cancelled = analyze_source("var a = x == null ? null : x;\n", symbols=SYMBOLS, cancellation=token)
        missed = analyze_source("var a = x == null ? null : x;\n", symbols=SYMBOLS)
        assert Outcome.MATCH_MISS not in cancelled.outcomes
        assert missed.outcomes == {Outcome.MATCH_MISS: 1}

    def test_uncancelled_token_reports_everything(self) -> None:
        result = analyze_source(self.SRC, symbols=SYMBOLS, cancellation=CancellationToken())
        assert result.cancelled is False
        assert len(result.findings) == 2

    def test_shared_token_across_threads(self) -> None:
        token = CancellationToken()
        analyzer = NullPropagationAnalyzer(compilation=Compilation.from_mapping(SYMBOLS), cancellation=token)
        language = get_language("csharp")
        results = []

        def work() -> None:
            results.append(analyzer.analyze_tree(language.parse(self.SRC), language))

        token.cancel()
        threads = [threading.Thread(target=work) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(results) == 4
        assert all(r.cancelled and not r.findings for r in results)
