"""
Type descriptors for capnpgen.

This module defines the passive model handed to the schema compiler:
- TypeRef: Reference to a primitive, a list, or another named type
- FieldDef: A struct field (or a named field of an enum variant)
- PositionDef: One typed position of a tuple variant
- VariantDef: An enum case with a unit, tuple or named payload
- ExtraClause: Literal field text kept for backward compatibility
- StructDef / EnumDef: The two kinds of type descriptor

Invariants:
    - Descriptors are frozen once built
    - Declaration order is the order of the fields/variants tuples
    - Identifiers are optional here; presence and uniqueness are checked
      when a schema file is completed
    - Names are labels for readers; identifiers are the wire positions

How to change safely:
    - Add new fields with new ids
    - Retire a field by removing it and adding an ExtraClause with its old id
    - Never reuse an id inside the same struct or enum

Example:
    >>> from capnpgen.schema.types import StructDef, field
    >>> Person = StructDef(
    ...     name="Person",
    ...     fields=(
    ...         field("id", "UInt64", id=0),
    ...         field("name", "Text", id=1, name_override="fullName"),
    ...         field("email_addresses", "List(Text)", id=2),
    ...     ),
    ... )
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from enum import Enum
from typing import Optional, Union

from ..errors import UnsupportedTypeShapeError

MAX_ORDINAL = 65535

_ORDINAL_RE = re.compile(r"@(\d+)")


class Primitive(Enum):
    """Cap'n Proto primitive types.

    Values are the spellings used in schema text.
    """

    VOID = "Void"
    BOOL = "Bool"
    INT8 = "Int8"
    INT16 = "Int16"
    INT32 = "Int32"
    INT64 = "Int64"
    UINT8 = "UInt8"
    UINT16 = "UInt16"
    UINT32 = "UInt32"
    UINT64 = "UInt64"
    FLOAT32 = "Float32"
    FLOAT64 = "Float64"
    TEXT = "Text"
    DATA = "Data"

    @classmethod
    def from_str(cls, value: str) -> Primitive:
        """Convert a schema spelling or a common alias to a Primitive.

        Args:
            value: "UInt64", "u64", "uint64", "str", "bool", ...

        Returns:
            Corresponding Primitive

        Raises:
            UnsupportedTypeShapeError: If the name is a known but
                unrepresentable primitive (128-bit integers, char)
            ValueError: If the name is not a primitive at all
        """
        for prim in cls:
            if prim.value == value:
                return prim
        key = value.strip().lower()
        if key in _UNSUPPORTED_PRIMITIVES:
            raise UnsupportedTypeShapeError(
                f"{value} not supported in Cap'n Proto", shape=value
            )
        if key in _PRIMITIVE_ALIASES:
            return _PRIMITIVE_ALIASES[key]
        raise ValueError(f"Invalid primitive '{value}'")

    @classmethod
    def is_primitive_name(cls, value: str) -> bool:
        """Whether value names a primitive (supported or not)."""
        key = value.strip().lower()
        return (
            any(p.value == value for p in cls)
            or key in _PRIMITIVE_ALIASES
            or key in _UNSUPPORTED_PRIMITIVES
        )


_PRIMITIVE_ALIASES = {
    "void": Primitive.VOID,
    "()": Primitive.VOID,
    "bool": Primitive.BOOL,
    "boolean": Primitive.BOOL,
    "i8": Primitive.INT8,
    "int8": Primitive.INT8,
    "i16": Primitive.INT16,
    "int16": Primitive.INT16,
    "i32": Primitive.INT32,
    "int32": Primitive.INT32,
    "i64": Primitive.INT64,
    "int64": Primitive.INT64,
    "int": Primitive.INT64,
    "u8": Primitive.UINT8,
    "uint8": Primitive.UINT8,
    "u16": Primitive.UINT16,
    "uint16": Primitive.UINT16,
    "u32": Primitive.UINT32,
    "uint32": Primitive.UINT32,
    "u64": Primitive.UINT64,
    "uint64": Primitive.UINT64,
    "f32": Primitive.FLOAT32,
    "float32": Primitive.FLOAT32,
    "f64": Primitive.FLOAT64,
    "float64": Primitive.FLOAT64,
    "float": Primitive.FLOAT64,
    "str": Primitive.TEXT,
    "string": Primitive.TEXT,
    "text": Primitive.TEXT,
    "bytes": Primitive.DATA,
    "data": Primitive.DATA,
}

_UNSUPPORTED_PRIMITIVES = {"i128", "int128", "u128", "uint128", "char", "!", "never"}


class TypeRefKind(Enum):
    """Tag of a TypeRef."""

    PRIMITIVE = "primitive"
    LIST = "list"
    NAMED = "named"


@dataclass(frozen=True)
class TypeRef:
    """Reference to the type of a field.

    Exactly one of primitive/element/name is set, matching kind.

    Attributes:
        kind: Which variant of the reference this is
        primitive: The primitive, for PRIMITIVE refs
        element: The element type, for LIST refs
        name: The referenced type name, for NAMED refs
    """

    kind: TypeRefKind
    primitive: Optional[Primitive] = None
    element: Optional[TypeRef] = None
    name: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate that the payload matches the tag."""
        if self.kind == TypeRefKind.PRIMITIVE:
            ok = self.primitive is not None and self.element is None and self.name is None
        elif self.kind == TypeRefKind.LIST:
            ok = self.element is not None and self.primitive is None and self.name is None
        else:
            ok = bool(self.name) and self.primitive is None and self.element is None
        if not ok:
            raise UnsupportedTypeShapeError(
                f"Malformed {self.kind.value} type reference", shape=self.kind.value
            )

    @classmethod
    def of(cls, primitive: Primitive) -> TypeRef:
        """Reference a primitive."""
        return cls(kind=TypeRefKind.PRIMITIVE, primitive=primitive)

    @classmethod
    def list_of(cls, element: TypeRef | str) -> TypeRef:
        """Reference a list of element."""
        if isinstance(element, str):
            element = cls.parse(element)
        return cls(kind=TypeRefKind.LIST, element=element)

    @classmethod
    def named(cls, name: str) -> TypeRef:
        """Reference another struct or enum by name."""
        return cls(kind=TypeRefKind.NAMED, name=name)

    @classmethod
    def parse(cls, text: str) -> TypeRef:
        """Parse a type string.

        Accepts Cap'n Proto spellings ("List(Text)"), Python-ish spellings
        ("list[str]") and Rust-ish spellings ("Vec<u32>"). Anything that is
        not a primitive or a list is taken as a named reference.

        Raises:
            UnsupportedTypeShapeError: For unrepresentable primitives and
                unbalanced list syntax
        """
        text = text.strip()
        if not text:
            raise UnsupportedTypeShapeError("Empty type reference", shape=text)

        for prefix, close in (("List(", ")"), ("list[", "]"), ("List[", "]"), ("Vec<", ">")):
            if text.startswith(prefix):
                if not text.endswith(close):
                    raise UnsupportedTypeShapeError(
                        f"Unbalanced list type '{text}'", shape=text
                    )
                return cls.list_of(cls.parse(text[len(prefix):-1]))

        if Primitive.is_primitive_name(text):
            return cls.of(Primitive.from_str(text))

        if not re.fullmatch(r"[A-Za-z_][\w]*((\.|::)[A-Za-z_][\w]*)*", text):
            raise UnsupportedTypeShapeError(
                f"Unsupported type '{text}'", shape=text
            )
        return cls.named(text)

    def named_refs(self) -> list[str]:
        """Names of all types this reference depends on."""
        if self.kind == TypeRefKind.NAMED:
            return [self.name]  # type: ignore[list-item]
        if self.kind == TypeRefKind.LIST:
            return self.element.named_refs()  # type: ignore[union-attr]
        return []

    def __str__(self) -> str:
        if self.kind == TypeRefKind.PRIMITIVE:
            return self.primitive.value  # type: ignore[union-attr]
        if self.kind == TypeRefKind.LIST:
            return f"List({self.element})"
        return self.name  # type: ignore[return-value]


TypeSpec = Union[TypeRef, Primitive, str]


def as_type_ref(spec: TypeSpec) -> TypeRef:
    """Coerce a TypeRef, Primitive or type string to a TypeRef."""
    if isinstance(spec, TypeRef):
        return spec
    if isinstance(spec, Primitive):
        return TypeRef.of(spec)
    return TypeRef.parse(spec)


def _check_id(value: Optional[int], what: str) -> None:
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{what} id must be an integer, got {value!r}")
    if value < 0:
        raise ValueError(f"{what} id must be non-negative, got {value}")
    if value > MAX_ORDINAL:
        raise ValueError(f"{what} id must be <= {MAX_ORDINAL}, got {value}")


def _check_override(value: Optional[str], what: str) -> None:
    if value is not None and not value.strip():
        raise ValueError(f"name override for {what} cannot be empty")


@dataclass(frozen=True)
class FieldDef:
    """A field of a struct or of a named enum variant.

    Attributes:
        name: Declared name (converted to lowerCamelCase on emission)
        type: Field type
        id: Stable numeric identifier; required by completion time
        name_override: Exact output name, used verbatim

    Example:
        >>> FieldDef(name="full_name", type=TypeRef.of(Primitive.TEXT), id=1)
    """

    name: str
    type: TypeRef
    id: Optional[int] = None
    name_override: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate field definition."""
        if not self.name:
            raise ValueError("Field name cannot be empty")
        _check_id(self.id, f"Field '{self.name}'")
        _check_override(self.name_override, f"field '{self.name}'")


@dataclass(frozen=True)
class PositionDef:
    """A typed position of a tuple variant."""

    type: TypeRef
    id: Optional[int] = None

    def __post_init__(self) -> None:
        _check_id(self.id, "Tuple position")


class VariantShape(Enum):
    """Payload shape of an enum variant."""

    UNIT = "unit"
    TUPLE = "tuple"
    NAMED = "named"


@dataclass(frozen=True)
class VariantDef:
    """An enum case.

    A variant has no payload (unit), an ordered tuple of typed positions,
    or a named set of fields. The variant's own id keys unit members of the
    lowered union; positions and named fields carry their own ids.

    Attributes:
        name: Declared name (converted to lowerCamelCase on emission)
        id: Identifier of the variant; required for unit variants
        positions: Tuple payload, in positional order
        fields: Named payload, in declaration order
        name_override: Exact output name, used verbatim
    """

    name: str
    id: Optional[int] = None
    positions: Optional[tuple[PositionDef, ...]] = None
    fields: Optional[tuple[FieldDef, ...]] = None
    name_override: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate variant definition."""
        if not self.name:
            raise ValueError("Variant name cannot be empty")
        _check_id(self.id, f"Variant '{self.name}'")
        _check_override(self.name_override, f"variant '{self.name}'")
        if self.positions is not None and self.fields is not None:
            raise UnsupportedTypeShapeError(
                f"Variant '{self.name}' cannot have both tuple positions and named fields",
                shape="mixed",
            )

    @property
    def shape(self) -> VariantShape:
        """The payload shape of this variant."""
        if self.positions is not None:
            return VariantShape.TUPLE
        if self.fields is not None:
            return VariantShape.NAMED
        return VariantShape.UNIT

    @property
    def has_payload(self) -> bool:
        """Whether the variant carries at least one value."""
        return bool(self.positions) or bool(self.fields)


@dataclass(frozen=True)
class ExtraClause:
    """Literal field declaration kept for backward compatibility.

    The text is passed through to the schema unparsed, e.g.
    ``"oldUserId @1 :UInt64"``. The id is the ordinal the clause occupies
    and takes part in duplicate detection.
    """

    text: str
    id: int

    def __post_init__(self) -> None:
        if not self.text.strip():
            raise ValueError("Extra clause text cannot be empty")
        _check_id(self.id, "Extra clause")
        ordinal = _ORDINAL_RE.search(self.text)
        if ordinal and int(ordinal.group(1)) != self.id:
            raise ValueError(
                f"Extra clause '{self.text}' declares @{ordinal.group(1)} but id is {self.id}"
            )

    @classmethod
    def parse(cls, text: str) -> ExtraClause:
        """Build a clause from text carrying its own @N ordinal."""
        ordinal = _ORDINAL_RE.search(text)
        if ordinal is None:
            raise ValueError(f"Extra clause '{text}' has no @N identifier")
        return cls(text=text, id=int(ordinal.group(1)))

    @property
    def has_ordinal(self) -> bool:
        """Whether the text already spells out its ordinal."""
        return _ORDINAL_RE.search(self.text) is not None


@dataclass(frozen=True)
class StructDef:
    """Definition of a struct.

    Attributes:
        name: Type name as emitted
        fields: Fields in declaration order
        extras: Backward-compatibility clauses, appended after the fields
    """

    name: str
    fields: tuple[FieldDef, ...] = dataclass_field(default_factory=tuple)
    extras: tuple[ExtraClause, ...] = dataclass_field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Struct name cannot be empty")

    def named_refs(self) -> list[str]:
        """Names of all types referenced by fields."""
        return [n for f in self.fields for n in f.type.named_refs()]


@dataclass(frozen=True)
class EnumDef:
    """Definition of a tagged union.

    Emitted as a struct holding a single anonymous union.

    Attributes:
        name: Type name as emitted
        variants: Variants in declaration order
        extras: Backward-compatibility clauses, appended after the union
    """

    name: str
    variants: tuple[VariantDef, ...] = dataclass_field(default_factory=tuple)
    extras: tuple[ExtraClause, ...] = dataclass_field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Enum name cannot be empty")

    def named_refs(self) -> list[str]:
        """Names of all types referenced by variant payloads."""
        refs: list[str] = []
        for v in self.variants:
            for p in v.positions or ():
                refs.extend(p.type.named_refs())
            for f in v.fields or ():
                refs.extend(f.type.named_refs())
        return refs


TypeDef = Union[StructDef, EnumDef]


def field(
    name: str,
    type: TypeSpec,
    *,
    id: Optional[int] = None,
    name_override: Optional[str] = None,
) -> FieldDef:
    """Convenience function to create a FieldDef.

    Example:
        >>> email = field("email_addresses", "List(Text)", id=2)
        >>> full = field("name", "str", id=1, name_override="fullName")
    """
    return FieldDef(name=name, type=as_type_ref(type), id=id, name_override=name_override)


def position(type: TypeSpec, *, id: Optional[int] = None) -> PositionDef:
    """Convenience function to create a tuple PositionDef."""
    return PositionDef(type=as_type_ref(type), id=id)


def variant(
    name: str,
    *,
    id: Optional[int] = None,
    positions: Optional[tuple[PositionDef, ...] | list[PositionDef]] = None,
    fields: Optional[tuple[FieldDef, ...] | list[FieldDef]] = None,
    name_override: Optional[str] = None,
) -> VariantDef:
    """Convenience function to create a VariantDef.

    Example:
        >>> active = variant("Active", id=0)
        >>> text = variant("MyText", positions=[position("Text", id=1)])
    """
    return VariantDef(
        name=name,
        id=id,
        positions=tuple(positions) if positions is not None else None,
        fields=tuple(fields) if fields is not None else None,
        name_override=name_override,
    )


def extra(text: str, id: Optional[int] = None) -> ExtraClause:
    """Convenience function to create an ExtraClause.

    The id is read from the text when not given.
    """
    if id is None:
        return ExtraClause.parse(text)
    return ExtraClause(text=text, id=id)
