"""Symbols produced by the binder: types, methods and members."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class SpecialType(str, Enum):
    NONE = "none"
    OBJECT = "object"
    STRING = "string"
    BOOLEAN = "boolean"
    INT32 = "int32"
    INT64 = "int64"
    DOUBLE = "double"
    VOID = "void"
    NULLABLE_T = "nullable_t"


class TypeKind(str, Enum):
    CLASS = "class"
    STRUCT = "struct"
    INTERFACE = "interface"
    DELEGATE = "delegate"
    ARRAY = "array"
    POINTER = "pointer"
    ERROR = "error"


class Accessibility(str, Enum):
    PUBLIC = "public"
    INTERNAL = "internal"
    PRIVATE = "private"


@dataclass(frozen=True, slots=True)
class TypeSymbol:
    """A named type, possibly constructed from a generic definition.

    ``name`` is the definition's name; ``type_arguments`` are filled for
    constructed generics (``Nullable<Int32>`` has name ``Nullable``).
    """

    name: str
    kind: TypeKind = TypeKind.CLASS
    special: SpecialType = SpecialType.NONE
    type_arguments: tuple[TypeSymbol, ...] = ()
    arity: int = 0

    @property
    def is_value_type(self) -> bool:
        return self.kind is TypeKind.STRUCT

    @property
    def is_pointer(self) -> bool:
        return self.kind is TypeKind.POINTER

    @property
    def original_definition(self) -> TypeSymbol:
        if not self.type_arguments:
            return self
        return TypeSymbol(self.name, self.kind, self.special, (), self.arity)

    @property
    def is_nullable_value_type(self) -> bool:
        return self.original_definition.special is SpecialType.NULLABLE_T

    def construct(self, *arguments: TypeSymbol) -> TypeSymbol:
        if len(arguments) != self.arity:
            raise ValueError(
                f"{self.name} expects {self.arity} type argument(s), got {len(arguments)}"
            )
        return TypeSymbol(self.name, self.kind, self.special, tuple(arguments), self.arity)

    def display(self) -> str:
        if self.kind is TypeKind.ARRAY and self.type_arguments:
            return self.type_arguments[0].display() + "[]"
        if self.kind is TypeKind.POINTER and self.type_arguments:
            return self.type_arguments[0].display() + "*"
        if self.type_arguments:
            args = ", ".join(a.display() for a in self.type_arguments)
            return f"{self.name}<{args}>"
        return self.name


@dataclass(frozen=True, slots=True)
class MethodSymbol:
    container: str
    name: str
    parameter_types: tuple[TypeSymbol | None, ...] = ()
    return_type: TypeSymbol | None = None
    accessibility: Accessibility = Accessibility.PUBLIC
    is_static: bool = False

    @property
    def parameter_count(self) -> int:
        return len(self.parameter_types)


@dataclass(frozen=True, slots=True)
class PropertySymbol:
    """A field or property."""

    container: str
    name: str
    type: TypeSymbol | None


@dataclass(frozen=True, slots=True)
class LocalSymbol:
    name: str
    type: TypeSymbol | None


Symbol = TypeSymbol | MethodSymbol | PropertySymbol | LocalSymbol
