"""Null-propagation detector over the C#-style grammar.

Covers the ternary and if-statement forms end-to-end: classification,
when-part matching, the safety vetoes and the reported anchors.
"""

from __future__ import annotations

import textwrap

import pytest

from nullprop.api import analyze_source
from nullprop.model import NodeForm, Outcome
from nullprop.syntax.lexer import ParseError

SYMBOLS = {
    "types": {
        "Customer": {
            "kind": "class",
            "members": {
                "Name": "string",
                "Age": "int",
                "Discount": "int?",
                "Items": "List<Item>",
                "Compute()": "string",
                "Run()": "void",
            },
        },
        "Item": {"kind": "class", "members": {"Label": "string"}},
    },
    "locals": {
        "x": "Customer",
        "n": "int?",
        "p": "Customer*",
        "r": "string",
    },
    "functions": {
        "Log(string)": "void",
        "F(Customer)": "string",
    },
}


def _analyze(code: str, *, symbols=SYMBOLS, **kwargs):
    return analyze_source(textwrap.dedent(code), language="csharp", symbols=symbols, **kwargs)


def _text(source: str, anchor) -> str:
    return textwrap.dedent(source)[anchor.start:anchor.end]


# ── ternary form: reported ──────────────────────────────────────────


class TestTernaryReported:
    def test_equals_null_member_access(self) -> None:
        src = "var v = x == null ? null : x.Name;\n"
        result = _analyze(src)
        assert len(result.findings) == 1
        f = result.findings[0]
        outer, checked, candidate = f.anchors
        assert _text(src, outer) == "x == null ? null : x.Name"
        assert _text(src, checked) == "x"
        assert _text(src, candidate) == "x.Name"
        assert f.when_part_is_nullable is False
        assert f.form is NodeForm.TERNARY
        assert f.rule_id == "NP-USE-001"
        assert f.properties == {}

    def test_not_equals_null_element_access(self) -> None:
        src = "var v = x != null ? x.Items[0] : null;\n"
        result = _analyze(src)
        assert len(result.findings) == 1
        _, checked, candidate = result.findings[0].anchors
        assert _text(src, checked) == "x"
        assert _text(src, candidate) == "x.Items[0]"
        assert result.findings[0].when_part_is_nullable is False

    def test_negated_condition_on_nullable_value(self) -> None:
        src = "var v = !(n == null) ? n.Value : null;\n"
        result = _analyze(src)
        assert len(result.findings) == 1
        f = result.findings[0]
        assert f.when_part_is_nullable is True
        assert f.properties == {"WhenPartIsNullable": ""}

    def test_reference_equals_with_method_call(self) -> None:
        result = _analyze("var v = ReferenceEquals(x, null) ? null : x.Compute();\n")
        assert len(result.findings) == 1

    def test_qualified_reference_equals(self) -> None:
        result = _analyze("var v = object.ReferenceEquals(null, x) ? null : x.Name;\n")
        assert len(result.findings) == 1

    def test_is_null_pattern(self) -> None:
        result = _analyze("var v = x is null ? null : x.Name;\n")
        assert len(result.findings) == 1

    def test_is_not_null_pattern(self) -> None:
        result = _analyze("var v = x is not null ? x.Name : null;\n")
        assert len(result.findings) == 1

    def test_null_on_left_of_comparison(self) -> None:
        result = _analyze("var v = null != x ? x.Name : null;\n")
        assert len(result.findings) == 1

    def test_object_cast_on_checked_expression(self) -> None:
        src = "var v = (object)x == null ? null : x.ToString();\n"
        result = _analyze(src)
        assert len(result.findings) == 1
        assert _text(src, result.findings[0].anchors[1]) == "(object)x"

    def test_parenthesized_forms_match_like_plain_forms(self) -> None:
        plain = _analyze("var v = x == null ? null : x.Name;\n")
        wrapped = _analyze("var v = ((x)) == null ? (null) : ((x)).Name;\n")
        assert len(plain.findings) == len(wrapped.findings) == 1

    def test_chained_access_matches_inner_receiver(self) -> None:
        result = _analyze("var v = x.Items == null ? null : x.Items[0].Label;\n")
        assert len(result.findings) == 1

    def test_conditional_access_inside_candidate(self) -> None:
        result = _analyze("var v = x == null ? null : x.Items?[0];\n")
        assert len(result.findings) == 1

    def test_value_member_is_lifted_to_nullable(self) -> None:
        # ``x == null ? null : x.Age`` has type int?, so no value-type veto.
        result = _analyze("int? v = x == null ? null : x.Age;\n")
        assert len(result.findings) == 1
        assert result.findings[0].when_part_is_nullable is False

    def test_finding_metadata_and_location(self) -> None:
        src = """\
        var a = 1;
        var v = x == null
            ? null
            : x.Name;
        """
        result = _analyze(src, path="src/Orders.cs")
        f = result.findings[0]
        assert f.location.path == "src/Orders.cs"
        assert f.location.line_start == 2
        assert f.location.line_end == 4
        assert f.metadata == {"language": "csharp"}
        assert f.fingerprint.startswith("sha256:")
        assert f.finding_id.startswith("np_")


# ── ternary form: not reported ──────────────────────────────────────


class TestTernaryNotReported:
    @pytest.mark.parametrize(
        "code",
        [
            "var v = null == null ? null : x.Name;\n",
            "var v = x == 1 ? null : x.Name;\n",
            "var v = x.Age > 0 ? null : x.Name;\n",
            "var v = F(x) ? null : x.Name;\n",
        ],
    )
    def test_condition_is_not_a_null_check(self, code: str) -> None:
        result = _analyze(code)
        assert result.findings == []
        assert result.outcomes.get(Outcome.CLASSIFICATION_MISS) == 1

    @pytest.mark.parametrize(
        "code",
        [
            "var v = x == null ? null : x;\n",
            "var v = x == null ? null : F(x);\n",
            "var v = x == null ? x.Name : null;\n",
            "var v = x != null ? null : x.Name;\n",
            "var v = x == null ? \"none\" : x.Name;\n",
            "var v = x == null ? null : r.Trim();\n",
        ],
    )
    def test_candidate_does_not_match(self, code: str) -> None:
        result = _analyze(code)
        assert result.findings == []
        assert result.outcomes.get(Outcome.MATCH_MISS) == 1

    def test_reference_equals_with_three_arguments(self) -> None:
        result = _analyze("var v = ReferenceEquals(x, null, null) ? null : x.Name;\n")
        assert result.findings == []

    def test_reference_equals_missing_from_compilation(self) -> None:
        symbols = {**SYMBOLS, "reference_equals": False}
        result = _analyze("var v = ReferenceEquals(x, null) ? null : x.Name;\n", symbols=symbols)
        assert result.findings == []
        assert result.outcomes.get(Outcome.CLASSIFICATION_MISS) == 1

    def test_user_defined_reference_equals_is_ignored(self) -> None:
        symbols = {
            **SYMBOLS,
            "functions": {"ReferenceEquals(Customer, Customer)": "bool"},
        }
        result = _analyze("var v = ReferenceEquals(x, null) ? null : x.Name;\n", symbols=symbols)
        assert result.findings == []

    def test_double_negation_is_not_understood(self) -> None:
        result = _analyze("var v = !!(x != null) ? x.Name : null;\n")
        assert result.findings == []


# ── safety vetoes ───────────────────────────────────────────────────


class TestSafetyVetoes:
    def test_expression_tree_lambda_is_vetoed(self) -> None:
        src = "Expression<Func<Customer, string>> e = c => c == null ? null : c.Name;\n"
        result = _analyze(src)
        assert result.findings == []
        assert result.outcomes.get(Outcome.SAFETY_VETO) == 1

    def test_delegate_lambda_is_reported(self) -> None:
        src = "Func<Customer, string> f = c => c == null ? null : c.Name;\n"
        result = _analyze(src)
        assert len(result.findings) == 1

    def test_no_expression_type_means_no_veto(self) -> None:
        symbols = {**SYMBOLS, "expression_trees": False}
        src = "Expression<Func<Customer, string>> e = c => c == null ? null : c.Name;\n"
        result = _analyze(src, symbols=symbols)
        assert len(result.findings) == 1

    def test_nested_lambda_inside_expression_tree(self) -> None:
        src = (
            "Expression<Func<Customer, Func<Customer, string>>> e = "
            "a => b => b == null ? null : b.Name;\n"
        )
        result = _analyze(src)
        assert result.findings == []
        assert result.outcomes.get(Outcome.SAFETY_VETO) == 1


# ── if-statement form ───────────────────────────────────────────────


class TestIfStatement:
    def test_single_statement_body(self) -> None:
        src = "if (x != null) x.Run();\n"
        result = _analyze(src)
        assert len(result.findings) == 1
        f = result.findings[0]
        assert f.form is NodeForm.IF_STATEMENT
        outer, checked, candidate = f.anchors
        assert _text(src, outer) == "if (x != null) x.Run();"
        assert _text(src, checked) == "x"
        assert _text(src, candidate) == "x.Run()"

    def test_block_with_one_statement(self) -> None:
        src = """\
        if (x != null)
        {
            x.Run();
        }
        """
        assert len(_analyze(src).findings) == 1

    @pytest.mark.parametrize(
        "code",
        [
            "if (!(x == null)) x.Run();\n",
            "if (x is not null) x.Run();\n",
            "if (null != x) x.Items.Add(null);\n",
        ],
    )
    def test_other_non_null_conditions(self, code: str) -> None:
        assert len(_analyze(code).findings) == 1

    @pytest.mark.parametrize(
        "code",
        [
            "if (x != null) { x.Run(); x.Run(); }\n",
            "if (x != null) x.Run(); else Log(\"missing\");\n",
            "if (x != null) { }\n",
            "if (x != null) return;\n",
        ],
    )
    def test_body_shape_not_applicable(self, code: str) -> None:
        result = _analyze(code)
        assert result.findings == []
        assert result.outcomes.get(Outcome.NOT_APPLICABLE) == 1

    def test_body_runs_when_null(self) -> None:
        result = _analyze("if (x == null) x.Run();\n")
        assert result.findings == []
        assert result.outcomes.get(Outcome.CLASSIFICATION_MISS) == 1

    @pytest.mark.parametrize(
        "code",
        [
            "if (x != null) r = x.Name;\n",
            "if (x != null) Log(x.Name);\n",
        ],
    )
    def test_statement_cannot_use_null_propagation(self, code: str) -> None:
        result = _analyze(code)
        assert result.findings == []
        assert result.outcomes.get(Outcome.MATCH_MISS) == 1

    def test_pointer_is_vetoed(self) -> None:
        result = _analyze("if (p != null) p.Run();\n")
        assert result.findings == []
        assert result.outcomes.get(Outcome.SAFETY_VETO) == 1

    def test_local_declared_in_source(self) -> None:
        src = """\
        Customer c = x;
        if (c != null) c.Run();
        """
        assert len(_analyze(src).findings) == 1


# ── gating ──────────────────────────────────────────────────────────


class TestGating:
    SRC = "var v = x == null ? null : x.Name;\n"

    def test_language_version_below_minimum_skips_tree(self) -> None:
        result = _analyze(self.SRC, symbols={**SYMBOLS, "language_version": 5})
        assert result.skipped is True
        assert result.findings == []

    def test_minimum_language_version_is_analyzed(self) -> None:
        result = _analyze(self.SRC, symbols={**SYMBOLS, "language_version": 6})
        assert len(result.findings) == 1

    def test_rule_disabled_in_config(self) -> None:
        result = _analyze(self.SRC, config={"prefer_null_propagation": False})
        assert result.skipped is True
        assert result.findings == []

    def test_language_not_enabled(self) -> None:
        result = _analyze(self.SRC, config={"languages": ["basic"]})
        assert result.skipped is True

    def test_severity_from_config(self) -> None:
        result = _analyze(self.SRC, config={"severity": "medium"})
        assert result.findings[0].severity.value == "medium"


class TestMultipleFindings:
    def test_each_node_reports_at_most_once(self) -> None:
        src = """\
        var a = x == null ? null : x.Name;
        var b = x != null ? x.Compute() : null;
        if (x != null) x.Run();
        """
        result = _analyze(src)
        assert len(result.findings) == 3
        assert result.outcomes[Outcome.REPORTED] == 3
        ids = [f.finding_id for f in result.findings]
        assert len(set(ids)) == 3
        assert [i[-4:] for i in ids] == ["0000", "0001", "0002"]

    def test_nested_ternaries_report_independently(self) -> None:
        src = "var v = x == null ? null : (x.Items == null ? null : x.Items[0]);\n"
        result = _analyze(src)
        # The outer candidate is a parenthesized ternary, which cannot be unwrapped.
        assert len(result.findings) == 1
        assert result.outcomes[Outcome.MATCH_MISS] == 1


class TestDeclarationsAroundStatements:
    def test_conditional_inside_a_method_body(self) -> None:
        src = """\
        using System;

        class Orders
        {
            string Describe()
            {
                return x == null ? null : x.Name;
            }
        }
        """
        result = _analyze(src)
        assert len(result.findings) == 1
        _, checked, candidate = result.findings[0].anchors
        assert _text(src, checked) == "x"
        assert _text(src, candidate) == "x.Name"

    def test_location_path_is_the_tree_path(self) -> None:
        result = _analyze("var v = x == null ? null : x.Name;\n", path="lib/Orders.cs")
        assert result.findings[0].location.path == "lib/Orders.cs"


class TestDeepNesting:
    def test_long_operator_chain(self) -> None:
        result = _analyze("var v = a" + " + a" * 1000 + ";\n")
        assert result.findings == []

    def test_deep_parentheses(self) -> None:
        result = _analyze("var v = " + "(" * 100 + "x" + ")" * 100 + ";\n")
        assert result.findings == []

    def test_long_member_chain_in_when_part(self) -> None:
        src = "var v = x == null ? null : x" + ".Other" * 600 + ".Name;\n"
        result = _analyze(src)
        assert len(result.findings) == 1
        _, checked, candidate = result.findings[0].anchors
        assert _text(src, checked) == "x"
        assert _text(src, candidate).endswith(".Other.Name")

    def test_binding_past_the_recursion_limit_raises_parse_error(self) -> None:
        with pytest.raises(ParseError, match="nested too deeply"):
            _analyze("var v = " + "!" * 5000 + "x;\n")
