"""
Lowered schema model.

These are the shapes the emitter understands: every type descriptor is
turned into a CapnpStruct with resolved names, optionally holding one
anonymous union whose members are either typed (with an ordinal) or
groups of fields.
"""

from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field as dataclass_field
from typing import Optional

from ..errors import DuplicateIdentifierError
from .types import ExtraClause, Primitive, TypeRef


@dataclass(frozen=True)
class CapnpField:
    """A resolved `name @id :Type;` declaration."""

    name: str
    id: int
    type: TypeRef


@dataclass(frozen=True)
class CapnpUnionMember:
    """A union member.

    Typed members have an id and a type (Void for unit variants). Group
    members have a tuple of fields and no ordinal of their own.
    """

    name: str
    id: Optional[int] = None
    type: Optional[TypeRef] = None
    group: Optional[tuple[CapnpField, ...]] = None

    @property
    def is_group(self) -> bool:
        return self.group is not None

    @classmethod
    def void(cls, name: str, id: int) -> CapnpUnionMember:
        return cls(name=name, id=id, type=TypeRef.of(Primitive.VOID))


@dataclass(frozen=True)
class CapnpUnion:
    """An anonymous union, members in variant declaration order."""

    members: tuple[CapnpUnionMember, ...] = dataclass_field(default_factory=tuple)


@dataclass(frozen=True)
class CapnpStruct:
    """A struct ready for emission.

    Attributes:
        name: Type name
        fields: Primary fields in declaration order
        union: The lowered enum union, if any
        extras: Backward-compatibility clauses, emitted last
    """

    name: str
    fields: tuple[CapnpField, ...] = dataclass_field(default_factory=tuple)
    union: Optional[CapnpUnion] = None
    extras: tuple[ExtraClause, ...] = dataclass_field(default_factory=tuple)

    def ordinals(self) -> dict[int, tuple[str, str]]:
        """Map every emitted ordinal to (name, type spelling).

        Extra clauses contribute their first token as the name and the text
        after the first ':' as the type. Group fields share the ordinal
        space of the struct.

        Raises:
            DuplicateIdentifierError: If two members use the same ordinal
        """
        result: dict[int, tuple[str, str]] = {}

        def claim(ordinal: int, name: str, type_text: str) -> None:
            if ordinal in result:
                raise DuplicateIdentifierError(
                    self.name, f"'{name}'", ordinal, f"'{result[ordinal][0]}'"
                )
            result[ordinal] = (name, type_text)

        for f in self.fields:
            claim(f.id, f.name, str(f.type))
        if self.union is not None:
            for m in self.union.members:
                if m.group is not None:
                    for f in m.group:
                        claim(f.id, f"{m.name}.{f.name}", str(f.type))
                elif m.id is not None:
                    claim(m.id, m.name, str(m.type))
        for x in self.extras:
            name = x.text.split()[0]
            _, _, type_text = x.text.partition(":")
            claim(x.id, name, type_text.strip().rstrip(";").strip())
        return result
