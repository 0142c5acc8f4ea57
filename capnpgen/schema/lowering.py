"""
Lowering of type descriptors into the emitter's struct model.

Enums become a struct holding exactly one anonymous union, one member per
variant in declaration order:

- unit variant        -> ``name @id :Void;``
- tuple of N values   -> ``name :group { field0 @a :T0; ... }``
- named fields        -> ``name :group { x @a :T; ... }``

Tuple positions and named fields keep their own ids; the variant's id is
only emitted for unit members. Variants with an empty payload are treated
as unit variants. Structs are lowered field by field with names resolved.

Lowering assumes the descriptor already passed validation.
"""

from __future__ import annotations

from ..errors import UnsupportedTypeShapeError
from .model import CapnpField, CapnpStruct, CapnpUnion, CapnpUnionMember
from .naming import resolve_name, resolve_type_name
from .types import (
    EnumDef,
    FieldDef,
    StructDef,
    TypeDef,
    TypeRef,
    TypeRefKind,
    VariantDef,
    VariantShape,
)


def resolve_ref(ref: TypeRef) -> TypeRef:
    """Resolve named references (recursively through lists) to schema names."""
    if ref.kind == TypeRefKind.NAMED:
        return TypeRef.named(resolve_type_name(ref.name))  # type: ignore[arg-type]
    if ref.kind == TypeRefKind.LIST:
        return TypeRef.list_of(resolve_ref(ref.element))  # type: ignore[arg-type]
    return ref


def _lower_field(f: FieldDef) -> CapnpField:
    if f.id is None:
        raise UnsupportedTypeShapeError(
            f"Field '{f.name}' reached lowering without an id", shape="field"
        )
    return CapnpField(
        name=resolve_name(f.name, f.name_override),
        id=f.id,
        type=resolve_ref(f.type),
    )


def lower_struct(struct: StructDef) -> CapnpStruct:
    """Lower a struct descriptor."""
    return CapnpStruct(
        name=struct.name,
        fields=tuple(_lower_field(f) for f in struct.fields),
        extras=struct.extras,
    )


def lower_variant(v: VariantDef) -> CapnpUnionMember:
    """Lower one enum variant to a union member."""
    name = resolve_name(v.name, v.name_override)

    if not v.has_payload:
        if v.id is None:
            raise UnsupportedTypeShapeError(
                f"Unit variant '{v.name}' reached lowering without an id", shape="unit"
            )
        return CapnpUnionMember.void(name, v.id)

    if v.shape == VariantShape.TUPLE:
        group = []
        for index, p in enumerate(v.positions or ()):
            if p.id is None:
                raise UnsupportedTypeShapeError(
                    f"Position {index} of variant '{v.name}' has no id", shape="tuple"
                )
            group.append(CapnpField(name=f"field{index}", id=p.id, type=resolve_ref(p.type)))
        return CapnpUnionMember(name=name, group=tuple(group))

    if v.shape == VariantShape.NAMED:
        return CapnpUnionMember(
            name=name, group=tuple(_lower_field(f) for f in v.fields or ())
        )

    raise UnsupportedTypeShapeError(
        f"Variant '{v.name}' has unsupported payload shape {v.shape}", shape=str(v.shape)
    )


def lower_enum(enum: EnumDef) -> CapnpStruct:
    """Lower an enum descriptor to a struct with a single union."""
    return CapnpStruct(
        name=enum.name,
        union=CapnpUnion(members=tuple(lower_variant(v) for v in enum.variants)),
        extras=enum.extras,
    )


def lower_type(typedef: TypeDef) -> CapnpStruct:
    """Lower any type descriptor."""
    if isinstance(typedef, StructDef):
        return lower_struct(typedef)
    if isinstance(typedef, EnumDef):
        return lower_enum(typedef)
    raise UnsupportedTypeShapeError(
        f"Cannot lower {type(typedef).__name__}; expected StructDef or EnumDef",
        shape=type(typedef).__name__,
    )
