"""
Identifier validation for struct and enum containers.

A container is one emitted struct: a struct's fields plus its extra
clauses, or an enum's variants, the fields of every variant payload and
its extra clauses. Cap'n Proto groups share the ordinal space of the
struct holding them, so payload ids collide with variant ids and with
each other. Every member must carry an id and no id may repeat inside
its container. Ids need not start at zero or be contiguous; gaps are
how retired fields stay retired.

Invariants:
    - Validation is read-only; descriptors are never modified
    - The first problem found is raised (fail-fast)
    - Errors name the file, the container and both colliding members
    - An enum needs at least two variants, since a union needs two members
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from ..errors import DuplicateIdentifierError, MissingIdentifierError, UnsupportedTypeShapeError
from .types import EnumDef, StructDef, TypeDef, VariantDef, VariantShape

logger = logging.getLogger(__name__)

MIN_UNION_MEMBERS = 2

# (member label, id or None, whether the id is required)
Slot = tuple[str, Optional[int], bool]


def check_container(
    container: str,
    slots: Iterable[Slot],
    file_name: Optional[str] = None,
) -> None:
    """Check one container's members for missing and repeated ids.

    Args:
        container: Container label used in error messages
        slots: Members in declaration order
        file_name: Schema file the container belongs to

    Raises:
        MissingIdentifierError: A required id is absent
        DuplicateIdentifierError: An id is used twice
    """
    seen: dict[int, str] = {}
    for label, ident, required in slots:
        if ident is None:
            if required:
                raise MissingIdentifierError(container, label, file_name=file_name)
            continue
        if ident in seen:
            raise DuplicateIdentifierError(
                container, label, ident, seen[ident], file_name=file_name
            )
        seen[ident] = label


def validate_struct(struct: StructDef, file_name: Optional[str] = None) -> None:
    """Validate a struct's fields and extra clauses."""
    slots: list[Slot] = [(f"field '{f.name}'", f.id, True) for f in struct.fields]
    slots.extend((f"extra clause '{x.text}'", x.id, True) for x in struct.extras)
    check_container(struct.name, slots, file_name=file_name)


def _variant_slots(v: VariantDef) -> list[Slot]:
    # Data variants lower to groups, which carry no ordinal of their own.
    slots: list[Slot] = [(f"variant '{v.name}'", v.id, not v.has_payload)]
    if not v.has_payload:
        return slots
    if v.shape == VariantShape.TUPLE:
        slots.extend(
            (f"position {i} of variant '{v.name}'", p.id, True)
            for i, p in enumerate(v.positions or ())
        )
    else:
        slots.extend(
            (f"field '{f.name}' of variant '{v.name}'", f.id, True) for f in v.fields or ()
        )
    return slots


def validate_enum(enum: EnumDef, file_name: Optional[str] = None) -> None:
    """Validate an enum's variants, their payloads and its extra clauses.

    Raises:
        UnsupportedTypeShapeError: If the enum has fewer than two variants
    """
    if len(enum.variants) < MIN_UNION_MEMBERS:
        raise UnsupportedTypeShapeError(
            f"Enum '{enum.name}' has {len(enum.variants)} variant(s); a Cap'n Proto "
            f"union needs at least {MIN_UNION_MEMBERS}",
            shape="union",
        )

    slots: list[Slot] = [s for v in enum.variants for s in _variant_slots(v)]
    slots.extend((f"extra clause '{x.text}'", x.id, True) for x in enum.extras)
    check_container(enum.name, slots, file_name=file_name)


def validate_type(typedef: TypeDef, file_name: Optional[str] = None) -> None:
    """Validate any type descriptor."""
    if isinstance(typedef, StructDef):
        validate_struct(typedef, file_name=file_name)
    elif isinstance(typedef, EnumDef):
        validate_enum(typedef, file_name=file_name)
    else:
        raise TypeError(f"Not a type descriptor: {typedef!r}")
    logger.debug(f"Validated identifiers of '{typedef.name}'")
