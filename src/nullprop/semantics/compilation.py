"""Compilation: the built-in type universe plus a YAML-described symbol table.

The symbol table stands in for the declarations a real binder would read from
referenced assemblies.  Example::

    language_version: 7
    this: Customer
    types:
      Customer:
        kind: class
        members:
          Name: string
          "Compute()": string
      ItemList:
        kind: class
        indexer: Item
    locals:
      x: Customer
    functions:
      "Log(string)": void
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

from nullprop.semantics.symbols import (
    Accessibility,
    MethodSymbol,
    PropertySymbol,
    SpecialType,
    TypeKind,
    TypeSymbol,
)
from nullprop.syntax.facts import TypeRef

_logger = logging.getLogger(__name__)

LATEST_LANGUAGE_VERSION = 100

# Keyword spellings of both grammars, mapped to canonical type names.
TYPE_ALIASES: dict[str, str] = {
    "object": "Object",
    "string": "String",
    "bool": "Boolean",
    "int": "Int32",
    "long": "Int64",
    "double": "Double",
    "char": "Char",
    "void": "Void",
    "Integer": "Int32",
    "Long": "Int64",
}


class SymbolTableError(ValueError):
    """The YAML symbol table is malformed."""


@dataclass(frozen=True, slots=True)
class MethodDecl:
    parameters: tuple[TypeRef, ...]
    returns: TypeRef | None
    is_static: bool = False
    accessibility: Accessibility = Accessibility.PUBLIC


@dataclass(slots=True)
class TypeDefinition:
    symbol: TypeSymbol
    type_parameters: tuple[str, ...] = ()
    properties: dict[str, TypeRef] = field(default_factory=dict)
    methods: dict[str, list[MethodDecl]] = field(default_factory=dict)
    indexer: TypeRef | None = None
    base: str | None = "Object"


# ═══════════════════════════════════════════════════════════════════════
#  Type-string parsing (``Expression<Func<Customer, int?>>``)
# ═══════════════════════════════════════════════════════════════════════

_TYPE_TOKEN = re.compile(r"\s*([A-Za-z_][A-Za-z0-9_]*|<|>|,|\[\]|\?|\*)")


def parse_type_string(text: str) -> TypeRef:
    """Parse a C#-style type string from a symbol table."""
    tokens: list[str] = []
    pos = 0
    text = text.strip()
    while pos < len(text):
        m = _TYPE_TOKEN.match(text, pos)
        if not m:
            raise SymbolTableError(f"bad type string {text!r} at {pos}")
        tokens.append(m.group(1))
        pos = m.end()

    ref, used = _parse_type_tokens(tokens, 0, text)
    if used != len(tokens):
        raise SymbolTableError(f"trailing input in type string {text!r}")
    return ref


def _parse_type_tokens(tokens: list[str], i: int, text: str) -> tuple[TypeRef, int]:
    if i >= len(tokens) or not re.match(r"[A-Za-z_]", tokens[i]):
        raise SymbolTableError(f"expected type name in {text!r}")
    name = TYPE_ALIASES.get(tokens[i], tokens[i])
    i += 1
    args: list[TypeRef] = []
    if i < len(tokens) and tokens[i] == "<":
        i += 1
        while True:
            arg, i = _parse_type_tokens(tokens, i, text)
            args.append(arg)
            if i < len(tokens) and tokens[i] == ",":
                i += 1
                continue
            break
        if i >= len(tokens) or tokens[i] != ">":
            raise SymbolTableError(f"unclosed type argument list in {text!r}")
        i += 1
    ref = TypeRef(name, tuple(args))
    while i < len(tokens) and tokens[i] in ("[]", "?", "*"):
        if tokens[i] == "[]":
            ref = TypeRef("Array", (ref,), array=True)
        elif tokens[i] == "?":
            ref = TypeRef(ref.name, ref.type_arguments, nullable=True, array=ref.array)
        else:
            ref = TypeRef("Pointer", (ref,))
        i += 1
    return ref, i


_MEMBER_KEY = re.compile(r"^\s*(static\s+)?([A-Za-z_][A-Za-z0-9_]*)\s*(?:\((.*)\))?\s*$")


def _split_top_level(text: str) -> list[str]:
    parts: list[str] = []
    depth = 0
    current = ""
    for ch in text:
        if ch == "<":
            depth += 1
        elif ch == ">":
            depth -= 1
        if ch == "," and depth == 0:
            parts.append(current)
            current = ""
        else:
            current += ch
    if current.strip():
        parts.append(current)
    return [p.strip() for p in parts]


def _parse_member_key(key: str) -> tuple[str, tuple[TypeRef, ...] | None, bool]:
    """``"Where(Func<A, bool>)"`` -> ``("Where", (TypeRef...), False)``.

    A ``None`` parameter tuple means the key names a property.
    """
    m = _MEMBER_KEY.match(key)
    if not m:
        raise SymbolTableError(f"bad member key {key!r}")
    is_static, name, params = m.group(1), m.group(2), m.group(3)
    if params is None:
        return name, None, bool(is_static)
    return name, tuple(parse_type_string(p) for p in _split_top_level(params)), bool(is_static)


# ═══════════════════════════════════════════════════════════════════════
#  Built-in universe
# ═══════════════════════════════════════════════════════════════════════

def _builtin_definitions() -> dict[str, TypeDefinition]:
    T = TypeRef("T")
    defs: dict[str, TypeDefinition] = {}

    def add(defn: TypeDefinition) -> TypeDefinition:
        defs[_key(defn.symbol.name, defn.symbol.arity)] = defn
        return defn

    obj = add(TypeDefinition(TypeSymbol("Object", TypeKind.CLASS, SpecialType.OBJECT), base=None))
    obj_ref = TypeRef("Object")
    obj.methods["ReferenceEquals"] = [
        MethodDecl((obj_ref, obj_ref), TypeRef("Boolean"), is_static=True)
    ]
    obj.methods["Equals"] = [
        MethodDecl((obj_ref,), TypeRef("Boolean")),
        MethodDecl((obj_ref, obj_ref), TypeRef("Boolean"), is_static=True),
    ]
    obj.methods["ToString"] = [MethodDecl((), TypeRef("String"))]
    obj.methods["GetHashCode"] = [MethodDecl((), TypeRef("Int32"))]

    string = add(TypeDefinition(TypeSymbol("String", TypeKind.CLASS, SpecialType.STRING)))
    string.properties["Length"] = TypeRef("Int32")
    string.methods["Trim"] = [MethodDecl((), TypeRef("String"))]
    string.methods["ToUpper"] = [MethodDecl((), TypeRef("String"))]
    string.methods["Substring"] = [MethodDecl((TypeRef("Int32"),), TypeRef("String"))]
    string.indexer = TypeRef("Char")

    for name, special in (
        ("Boolean", SpecialType.BOOLEAN),
        ("Int32", SpecialType.INT32),
        ("Int64", SpecialType.INT64),
        ("Double", SpecialType.DOUBLE),
        ("Char", SpecialType.NONE),
        ("Void", SpecialType.VOID),
    ):
        add(TypeDefinition(TypeSymbol(name, TypeKind.STRUCT, special)))

    nullable = add(TypeDefinition(
        TypeSymbol("Nullable", TypeKind.STRUCT, SpecialType.NULLABLE_T, arity=1),
        type_parameters=("T",),
    ))
    nullable.properties["Value"] = T
    nullable.properties["HasValue"] = TypeRef("Boolean")
    nullable.methods["GetValueOrDefault"] = [MethodDecl((), T)]

    lst = add(TypeDefinition(TypeSymbol("List", TypeKind.CLASS, arity=1), type_parameters=("T",)))
    lst.properties["Count"] = TypeRef("Int32")
    lst.methods["Add"] = [MethodDecl((T,), TypeRef("Void"))]
    lst.indexer = T

    add(TypeDefinition(TypeSymbol("Expression", TypeKind.CLASS, arity=1), type_parameters=("TDelegate",)))
    add(TypeDefinition(TypeSymbol("Action", TypeKind.DELEGATE)))
    for arity in range(1, 5):
        params = tuple(f"T{i}" for i in range(1, arity)) + ("TResult",)
        add(TypeDefinition(
            TypeSymbol("Func", TypeKind.DELEGATE, arity=arity),
            type_parameters=params,
        ))
        params = tuple(f"T{i}" for i in range(1, arity + 1))
        add(TypeDefinition(
            TypeSymbol("Action", TypeKind.DELEGATE, arity=arity),
            type_parameters=params,
        ))
    return defs


def _key(name: str, arity: int) -> str:
    return f"{name}`{arity}" if arity else name


# ═══════════════════════════════════════════════════════════════════════
#  Compilation
# ═══════════════════════════════════════════════════════════════════════


class Compilation:
    """Immutable-after-construction type universe for one analysis run."""

    def __init__(
        self,
        *,
        language_version: int = LATEST_LANGUAGE_VERSION,
        this_type: TypeRef | None = None,
        locals: Mapping[str, TypeRef] | None = None,
        functions: Mapping[str, list[MethodDecl]] | None = None,
        definitions: Mapping[str, TypeDefinition] | None = None,
        has_reference_equals: bool = True,
        has_expression_trees: bool = True,
    ) -> None:
        self.language_version = language_version
        self.this_type_ref = this_type
        self.locals: dict[str, TypeRef] = dict(locals or {})
        self.functions: dict[str, list[MethodDecl]] = {
            k: list(v) for k, v in (functions or {}).items()
        }
        self._definitions = _builtin_definitions()
        if not has_reference_equals:
            del self._definitions["Object"].methods["ReferenceEquals"]
        if not has_expression_trees:
            del self._definitions[_key("Expression", 1)]
        for key, defn in (definitions or {}).items():
            self._definitions[key] = defn
        self._lower = {k.lower(): k for k in self._definitions}

    # ── construction from YAML ──────────────────────────────────────

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> Compilation:
        """Build a compilation from an already-loaded symbol-table mapping."""
        data = dict(data or {})
        version = data.get("language_version", LATEST_LANGUAGE_VERSION)
        if version == "latest":
            version = LATEST_LANGUAGE_VERSION
        if not isinstance(version, int):
            raise SymbolTableError(f"language_version must be an integer, got {version!r}")

        definitions: dict[str, TypeDefinition] = {}
        for name, entry in (data.get("types") or {}).items():
            defn = _definition_from_mapping(str(name), entry or {})
            definitions[_key(defn.symbol.name, defn.symbol.arity)] = defn

        locals_ = {str(k): parse_type_string(str(v)) for k, v in (data.get("locals") or {}).items()}

        functions: dict[str, list[MethodDecl]] = {}
        for key, returns in (data.get("functions") or {}).items():
            name, params, _ = _parse_member_key(str(key))
            functions.setdefault(name, []).append(
                MethodDecl(params or (), _returns(returns), is_static=True)
            )

        this = data.get("this")
        return cls(
            language_version=version,
            this_type=parse_type_string(str(this)) if this else None,
            locals=locals_,
            functions=functions,
            definitions=definitions,
            has_reference_equals=bool(data.get("reference_equals", True)),
            has_expression_trees=bool(data.get("expression_trees", True)),
        )

    @classmethod
    def load(cls, path: Path) -> Compilation:
        """Load a YAML symbol table from *path*."""
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise SymbolTableError(f"{path}: symbol table must be a mapping")
        _logger.debug("Loaded symbol table %s (%d types)", path, len(data.get("types") or {}))
        return cls.from_mapping(data)

    @classmethod
    def discover(cls, root: Path) -> Compilation:
        """Load ``.nullprop-symbols.yaml`` from *root* if present."""
        for candidate in (
            root / ".nullprop-symbols.yaml",
            root / ".nullprop-symbols.yml",
            root / "nullprop-symbols.yaml",
        ):
            if candidate.exists():
                return cls.load(candidate)
        return cls()

    # ── well-known symbols ──────────────────────────────────────────

    @property
    def object_type(self) -> TypeSymbol:
        return self._definitions["Object"].symbol

    def get_special_type(self, special: SpecialType) -> TypeSymbol | None:
        for defn in self._definitions.values():
            if defn.symbol.special is special:
                return defn.symbol
        return None

    def reference_equals_method(self) -> MethodSymbol | None:
        """``Object.ReferenceEquals``: public, exactly two parameters."""
        for method in self.get_methods(self.object_type, "ReferenceEquals"):
            if method.accessibility is Accessibility.PUBLIC and method.parameter_count == 2:
                return method
        return None

    def expression_of_t_type(self) -> TypeSymbol | None:
        defn = self._definitions.get(_key("Expression", 1))
        return defn.symbol if defn else None

    def this_type(self) -> TypeSymbol | None:
        return self.resolve(self.this_type_ref) if self.this_type_ref else None

    # ── type resolution ─────────────────────────────────────────────

    def lookup_definition(self, name: str, arity: int = 0, *, ignore_case: bool = False) -> TypeDefinition | None:
        key = _key(name, arity)
        defn = self._definitions.get(key)
        if defn is None and ignore_case:
            real = self._lower.get(key.lower())
            defn = self._definitions.get(real) if real else None
        return defn

    def resolve(
        self,
        ref: TypeRef,
        substitution: Mapping[str, TypeSymbol] | None = None,
        *,
        ignore_case: bool = False,
    ) -> TypeSymbol | None:
        """Resolve a ``TypeRef`` to a symbol, or ``None`` when unknown."""
        substitution = substitution or {}
        if ref.array:
            element = self.resolve(ref.type_arguments[0], substitution, ignore_case=ignore_case)
            return self.array_of(element) if element else None
        if ref.name == "Pointer" and len(ref.type_arguments) == 1:
            pointee = self.resolve(ref.type_arguments[0], substitution, ignore_case=ignore_case)
            return TypeSymbol("Pointer", TypeKind.POINTER, type_arguments=(pointee,), arity=1) if pointee else None

        if ref.name in substitution and not ref.type_arguments:
            symbol: TypeSymbol | None = substitution[ref.name]
        else:
            name = TYPE_ALIASES.get(ref.name, ref.name)
            defn = self.lookup_definition(name, len(ref.type_arguments), ignore_case=ignore_case)
            if defn is None:
                return None
            args = [self.resolve(a, substitution, ignore_case=ignore_case) for a in ref.type_arguments]
            if any(a is None for a in args):
                return None
            symbol = defn.symbol.construct(*args) if args else defn.symbol

        if ref.nullable and symbol is not None:
            return self.make_nullable(symbol)
        return symbol

    def make_nullable(self, symbol: TypeSymbol) -> TypeSymbol:
        """Lift a non-nullable value type to ``Nullable<T>``; others unchanged."""
        if not symbol.is_value_type or symbol.is_nullable_value_type:
            return symbol
        return self._definitions[_key("Nullable", 1)].symbol.construct(symbol)

    def array_of(self, element: TypeSymbol) -> TypeSymbol:
        return TypeSymbol("Array", TypeKind.ARRAY, type_arguments=(element,), arity=1)

    # ── members ─────────────────────────────────────────────────────

    def _hierarchy(self, type_: TypeSymbol, ignore_case: bool):
        """Yield ``(definition, substitution)`` from *type_* up its base chain."""
        seen: set[str] = set()
        defn = self.lookup_definition(type_.name, type_.arity, ignore_case=ignore_case)
        subst: dict[str, TypeSymbol] = {}
        if defn is not None:
            subst = dict(zip(defn.type_parameters, type_.type_arguments))
        while defn is not None and defn.symbol.name not in seen:
            seen.add(defn.symbol.name)
            yield defn, subst
            base = defn.base
            defn = self.lookup_definition(base, ignore_case=ignore_case) if base else None
            subst = {}

    def get_property(self, type_: TypeSymbol, name: str, *, ignore_case: bool = False) -> PropertySymbol | None:
        if type_.kind is TypeKind.ARRAY and _names_match("Length", name, ignore_case):
            return PropertySymbol("Array", "Length", self.resolve(TypeRef("Int32")))
        for defn, subst in self._hierarchy(type_, ignore_case):
            for prop_name, ref in defn.properties.items():
                if _names_match(prop_name, name, ignore_case):
                    return PropertySymbol(
                        defn.symbol.name, prop_name,
                        self.resolve(ref, subst, ignore_case=ignore_case),
                    )
        return None

    def get_methods(self, type_: TypeSymbol, name: str, *, ignore_case: bool = False) -> list[MethodSymbol]:
        found: list[MethodSymbol] = []
        for defn, subst in self._hierarchy(type_, ignore_case):
            for method_name, decls in defn.methods.items():
                if _names_match(method_name, name, ignore_case):
                    found.extend(
                        self._method_symbol(defn.symbol.name, method_name, d, subst, ignore_case)
                        for d in decls
                    )
            if found:
                break
        return found

    def get_functions(self, name: str, *, ignore_case: bool = False) -> list[MethodSymbol]:
        return [
            self._method_symbol("<global>", fn_name, d, {}, ignore_case)
            for fn_name, decls in self.functions.items()
            if _names_match(fn_name, name, ignore_case)
            for d in decls
        ]

    def get_indexer(self, type_: TypeSymbol, *, ignore_case: bool = False) -> TypeSymbol | None:
        if type_.kind is TypeKind.ARRAY:
            return type_.type_arguments[0]
        for defn, subst in self._hierarchy(type_, ignore_case):
            if defn.indexer is not None:
                return self.resolve(defn.indexer, subst, ignore_case=ignore_case)
        return None

    def get_local(self, name: str, *, ignore_case: bool = False) -> TypeSymbol | None:
        for local_name, ref in self.locals.items():
            if _names_match(local_name, name, ignore_case):
                return self.resolve(ref, ignore_case=ignore_case)
        return None

    def _method_symbol(
        self,
        container: str,
        name: str,
        decl: MethodDecl,
        subst: Mapping[str, TypeSymbol],
        ignore_case: bool,
    ) -> MethodSymbol:
        return MethodSymbol(
            container=container,
            name=name,
            parameter_types=tuple(self.resolve(p, subst, ignore_case=ignore_case) for p in decl.parameters),
            return_type=self.resolve(decl.returns, subst, ignore_case=ignore_case) if decl.returns else None,
            accessibility=decl.accessibility,
            is_static=decl.is_static,
        )


def _names_match(a: str, b: str, ignore_case: bool) -> bool:
    return a.lower() == b.lower() if ignore_case else a == b


def _returns(value: Any) -> TypeRef | None:
    if value is None or str(value) == "void":
        return TypeRef("Void")
    return parse_type_string(str(value))


def _definition_from_mapping(name: str, data: Mapping[str, Any]) -> TypeDefinition:
    if not isinstance(data, Mapping):
        raise SymbolTableError(f"type {name!r}: expected a mapping")
    kind_text = str(data.get("kind", "class"))
    try:
        kind = TypeKind(kind_text)
    except ValueError:
        raise SymbolTableError(f"type {name!r}: unknown kind {kind_text!r}") from None
    if kind not in (TypeKind.CLASS, TypeKind.STRUCT, TypeKind.INTERFACE):
        raise SymbolTableError(f"type {name!r}: kind must be class, struct or interface")

    defn = TypeDefinition(
        TypeSymbol(name, kind),
        base=data.get("base", "Object"),
    )
    for key, value in (data.get("members") or {}).items():
        member, params, is_static = _parse_member_key(str(key))
        if params is None:
            defn.properties[member] = parse_type_string(str(value))
        else:
            defn.methods.setdefault(member, []).append(
                MethodDecl(params, _returns(value), is_static=is_static)
            )
    if data.get("indexer"):
        defn.indexer = parse_type_string(str(data["indexer"]))
    return defn
