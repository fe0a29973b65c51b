"""Symbol tables, type resolution and the binder."""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from nullprop.languages import get_language
from nullprop.semantics.binder import SemanticModel
from nullprop.semantics.compilation import (
    LATEST_LANGUAGE_VERSION,
    Compilation,
    SymbolTableError,
    parse_type_string,
)
from nullprop.semantics.symbols import LocalSymbol, MethodSymbol, PropertySymbol, SpecialType, TypeKind
from nullprop.syntax.facts import TypeRef

SYMBOLS_YAML = """\
language_version: 7
this: Customer
types:
  Customer:
    kind: class
    members:
      Name: string
      Discount: int?
      Orders: List<Order>
      "Compute()": string
      "Find(int)": Order
      "static Create()": Customer
  Order:
    kind: class
    members:
      Total: double
  Point:
    kind: struct
    members:
      X: int
  OrderBook:
    kind: class
    indexer: Order
locals:
  x: Customer
  book: OrderBook
functions:
  "Log(string)": void
"""


@pytest.fixture()
def compilation(tmp_path: Path) -> Compilation:
    path = tmp_path / "symbols.yaml"
    path.write_text(SYMBOLS_YAML, encoding="utf-8")
    return Compilation.load(path)


def _bind(compilation: Compilation, source: str, language: str = "csharp"):
    lang = get_language(language)
    tree = lang.parse(textwrap.dedent(source))
    return tree, SemanticModel(compilation, tree, lang.facts)


def _find(tree, text: str):
    """Outermost node whose source text is exactly *text*."""
    for node in tree.walk():
        if tree.text_of(node) == text:
            return node
    raise AssertionError(f"no node for {text!r}")


# ── type strings ────────────────────────────────────────────────────


class TestTypeStrings:
    def test_aliases_and_generics(self) -> None:
        ref = parse_type_string("Expression<Func<Customer, int?>>")
        assert ref.name == "Expression"
        func = ref.type_arguments[0]
        assert func.name == "Func"
        assert func.type_arguments[1] == TypeRef("Int32", nullable=True)

    def test_arrays_and_pointers(self) -> None:
        assert parse_type_string("string[]").array is True
        assert parse_type_string("Customer*").name == "Pointer"

    @pytest.mark.parametrize("text", ["List<int", "int>", "", "List<>", "a b"])
    def test_malformed(self, text: str) -> None:
        with pytest.raises(SymbolTableError):
            parse_type_string(text)


# ── compilation ─────────────────────────────────────────────────────


class TestCompilation:
    def test_load_from_yaml(self, compilation: Compilation) -> None:
        assert compilation.language_version == 7
        assert compilation.this_type().name == "Customer"
        assert compilation.get_local("x").name == "Customer"

    def test_discover_defaults_when_absent(self, tmp_path: Path) -> None:
        comp = Compilation.discover(tmp_path)
        assert comp.language_version == LATEST_LANGUAGE_VERSION
        assert comp.locals == {}

    def test_discover_finds_dotfile(self, tmp_path: Path) -> None:
        (tmp_path / ".nullprop-symbols.yaml").write_text("language_version: 9\n", encoding="utf-8")
        assert Compilation.discover(tmp_path).language_version == 9

    def test_latest_language_version(self) -> None:
        comp = Compilation.from_mapping({"language_version": "latest"})
        assert comp.language_version == LATEST_LANGUAGE_VERSION

    def test_reference_equals_method(self) -> None:
        method = Compilation().reference_equals_method()
        assert method is not None
        assert method.container == "Object"
        assert method.parameter_count == 2
        assert Compilation(has_reference_equals=False).reference_equals_method() is None

    def test_expression_type_toggle(self) -> None:
        assert Compilation().expression_of_t_type().name == "Expression"
        assert Compilation.from_mapping({"expression_trees": False}).expression_of_t_type() is None

    def test_nullable_lifting(self, compilation: Compilation) -> None:
        int32 = compilation.resolve(TypeRef("int"))
        lifted = compilation.make_nullable(int32)
        assert lifted.is_nullable_value_type
        assert lifted.type_arguments == (int32,)
        assert compilation.make_nullable(lifted) is lifted
        string = compilation.resolve(TypeRef("string"))
        assert compilation.make_nullable(string) is string

    def test_members_through_generics(self, compilation: Compilation) -> None:
        customer = compilation.get_local("x")
        orders = compilation.get_property(customer, "Orders").type
        assert orders.display() == "List<Order>"
        assert compilation.get_indexer(orders).name == "Order"
        assert compilation.get_methods(customer, "ToString")[0].container == "Object"
        assert compilation.get_methods(customer, "Create")[0].is_static is True
        assert compilation.get_property(customer, "name") is None
        assert compilation.get_property(customer, "name", ignore_case=True).name == "Name"

    def test_struct_is_value_type(self, compilation: Compilation) -> None:
        point = compilation.resolve(TypeRef("Point"))
        assert point.kind is TypeKind.STRUCT
        assert point.is_value_type

    @pytest.mark.parametrize(
        "data",
        [
            {"language_version": "seven"},
            {"types": {"Bad": {"kind": "enum"}}},
            {"types": {"Bad": ["not", "a", "mapping"]}},
            {"locals": {"x": "List<"}},
            {"types": {"Bad": {"members": {"Run(": "void"}}}},
        ],
    )
    def test_malformed_symbol_tables(self, data: dict) -> None:
        with pytest.raises(SymbolTableError):
            Compilation.from_mapping(data)

    def test_non_mapping_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "symbols.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(SymbolTableError):
            Compilation.load(path)


# ── binder ──────────────────────────────────────────────────────────


class TestBinder:
    def test_member_and_element_types(self, compilation: Compilation) -> None:
        tree, model = _bind(compilation, "var t = x.Orders[0].Total;\nvar o = book[1];\n")
        assert model.get_type_info(_find(tree, "x.Orders[0].Total")).special is SpecialType.DOUBLE
        assert model.get_type_info(_find(tree, "book[1]")).name == "Order"
        assert isinstance(model.get_symbol_info(_find(tree, "x.Orders")), PropertySymbol)

    def test_conditional_access_is_lifted(self, compilation: Compilation) -> None:
        tree, model = _bind(compilation, "var t = x.Orders[0]?.Total;\n")
        type_ = model.get_type_info(_find(tree, "x.Orders[0]?.Total"))
        assert type_.is_nullable_value_type
        assert type_.type_arguments[0].special is SpecialType.DOUBLE

    def test_csharp_conditional_lifts_null_branch(self, compilation: Compilation) -> None:
        tree, model = _bind(compilation, "var t = x == null ? null : x.Orders[0].Total;\n")
        assert model.get_type_info(_find(tree, "x == null ? null : x.Orders[0].Total")).is_nullable_value_type

    def test_basic_conditional_keeps_value_type(self, compilation: Compilation) -> None:
        tree, model = _bind(
            compilation, "Dim t = If(x Is Nothing, Nothing, x.Orders(0).Total)\n", "basic"
        )
        type_ = model.get_type_info(_find(tree, "If(x Is Nothing, Nothing, x.Orders(0).Total)"))
        assert type_.special is SpecialType.DOUBLE

    def test_invocation_resolves_overload(self, compilation: Compilation) -> None:
        tree, model = _bind(compilation, "var o = x.Find(3);\nvar n = Compute();\n")
        find = _find(tree, "x.Find(3)")
        assert isinstance(model.get_symbol_info(find), MethodSymbol)
        assert model.get_type_info(find).name == "Order"
        # ``this`` is Customer, so an unqualified call binds to its method.
        assert model.get_type_info(_find(tree, "Compute()")).special is SpecialType.STRING

    def test_this_property_and_locals(self, compilation: Compilation) -> None:
        src = """\
        Order first = Orders[0];
        var total = first.Total;
        var self = this.Name;
        """
        tree, model = _bind(compilation, src)
        assert model.get_type_info(_find(tree, "first.Total")).special is SpecialType.DOUBLE
        assert isinstance(model.get_symbol_info(_find(tree, "first")), LocalSymbol)
        assert model.get_type_info(_find(tree, "this.Name")).special is SpecialType.STRING

    def test_block_scopes_do_not_leak(self, compilation: Compilation) -> None:
        src = """\
        { Order inner = null; }
        var t = inner;
        """
        tree, model = _bind(compilation, src)
        last = tree.root.children[1].children[1].children[0]
        assert model.get_type_info(last) is None

    def test_lambda_parameters_take_delegate_types(self, compilation: Compilation) -> None:
        src = "Func<Order, double> f = o => o.Total;\n"
        tree, model = _bind(compilation, src)
        lambda_ = _find(tree, "o => o.Total")
        assert model.get_converted_type(lambda_).name == "Func"
        assert model.get_type_info(_find(tree, "o.Total")).special is SpecialType.DOUBLE

    def test_unknown_names_have_no_type(self, compilation: Compilation) -> None:
        tree, model = _bind(compilation, "var t = missing.Name;\n")
        assert model.get_type_info(_find(tree, "missing.Name")) is None

    def test_basic_names_are_case_insensitive(self, compilation: Compilation) -> None:
        tree, model = _bind(compilation, "Dim t = X.orders(0).TOTAL\n", "basic")
        assert model.get_type_info(_find(tree, "X.orders(0).TOTAL")).special is SpecialType.DOUBLE

    def test_model_is_read_only(self, compilation: Compilation) -> None:
        tree, model = _bind(compilation, "var t = x.Name;\n")
        with pytest.raises(TypeError):
            model._types[tree.root] = None  # type: ignore[index]
