"""
Schema compatibility checking for capnpgen.

Cap'n Proto addresses fields by ordinal, so evolution rules are about ids:
- An ordinal, once used, must stay in the schema (as a field or as an
  extra clause) with the same type
- Fields may be renamed freely
- New fields and new types may be added with new ordinals

Invariants:
    - Comparison runs on lowered structs, so enums and structs are
      checked the same way
    - Removing an ordinal outright is always breaking; moving it to an
      extra clause is not

Example:
    >>> changes = check_compatibility(old_types, new_types)
    >>> breaking = [c for c in changes if c.is_breaking]
    >>> if breaking:
    ...     raise CompatibilityError(breaking)
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Dict, List, Optional, Sequence

from ..errors import CapnpGenError
from .compiler import lower_all
from .model import CapnpStruct
from .types import TypeDef

logger = logging.getLogger(__name__)


class ChangeKind(Enum):
    """Types of schema changes."""
    # Non-breaking changes (allowed)
    TYPE_ADDED = auto()
    FIELD_ADDED = auto()
    FIELD_RETIRED = auto()
    NAME_CHANGED = auto()

    # Breaking changes (forbidden)
    TYPE_REMOVED = auto()
    FIELD_REMOVED = auto()
    FIELD_TYPE_CHANGED = auto()

    @property
    def is_breaking(self) -> bool:
        """Whether this change kind is a breaking change."""
        return self in {
            ChangeKind.TYPE_REMOVED,
            ChangeKind.FIELD_REMOVED,
            ChangeKind.FIELD_TYPE_CHANGED,
        }


@dataclass
class SchemaChange:
    """Represents a single schema change between versions.

    Attributes:
        kind: The type of change
        path: Path to the changed element (e.g., "Person@3")
        old_value: Previous value (if applicable)
        new_value: New value (if applicable)
        message: Human-readable description of the change
    """
    kind: ChangeKind
    path: str
    old_value: Optional[Any] = None
    new_value: Optional[Any] = None
    message: str = ""

    @property
    def is_breaking(self) -> bool:
        """Whether this is a breaking change."""
        return self.kind.is_breaking

    def __str__(self) -> str:
        status = "BREAKING" if self.is_breaking else "OK"
        return f"[{status}] {self.kind.name}: {self.path} - {self.message}"


class CompatibilityError(CapnpGenError):
    """Raised when breaking schema changes are detected.

    Attributes:
        changes: List of breaking changes detected
    """

    def __init__(self, changes: List[SchemaChange]):
        self.changes = changes
        messages = [str(c) for c in changes]
        super().__init__(
            f"Schema compatibility check failed with {len(changes)} breaking change(s):\n"
            + "\n".join(messages),
            code="BREAKING_CHANGE",
            details={"changes": messages},
        )


def check_compatibility(
    old_types: Sequence[TypeDef],
    new_types: Sequence[TypeDef],
) -> List[SchemaChange]:
    """Check compatibility between two versions of a schema file.

    Both sides are validated and lowered first, so identifier errors in
    either version surface as SchemaValidationError.

    Args:
        old_types: The baseline (currently deployed) descriptors
        new_types: The new descriptors

    Returns:
        List of SchemaChange objects describing all differences
    """
    old_structs: Dict[str, CapnpStruct] = {s.name: s for s in lower_all(old_types)}
    new_structs: Dict[str, CapnpStruct] = {s.name: s for s in lower_all(new_types)}
    changes: List[SchemaChange] = []

    for name in old_structs:
        if name not in new_structs:
            changes.append(SchemaChange(
                kind=ChangeKind.TYPE_REMOVED,
                path=name,
                message=f"Type '{name}' was removed",
            ))

    for name, new in new_structs.items():
        old = old_structs.get(name)
        if old is None:
            changes.append(SchemaChange(
                kind=ChangeKind.TYPE_ADDED,
                path=name,
                message=f"Type '{name}' added",
            ))
        else:
            changes.extend(_check_struct_diff(old, new))

    return changes


def _check_struct_diff(old: CapnpStruct, new: CapnpStruct) -> List[SchemaChange]:
    """Check differences between two versions of one struct."""
    changes: List[SchemaChange] = []
    old_ords = old.ordinals()
    new_ords = new.ordinals()
    new_extras = {x.id for x in new.extras}
    old_extras = {x.id for x in old.extras}

    for ordinal, (old_name, old_type) in sorted(old_ords.items()):
        path = f"{old.name}@{ordinal}"
        if ordinal not in new_ords:
            changes.append(SchemaChange(
                kind=ChangeKind.FIELD_REMOVED,
                path=path,
                old_value=old_name,
                message=(
                    f"'{old_name}' (@{ordinal}) was removed; keep it as an extra "
                    f"clause to retire it"
                ),
            ))
            continue

        new_name, new_type = new_ords[ordinal]
        if old_type != new_type:
            changes.append(SchemaChange(
                kind=ChangeKind.FIELD_TYPE_CHANGED,
                path=path,
                old_value=old_type,
                new_value=new_type,
                message=f"Type of @{ordinal} changed from {old_type} to {new_type}",
            ))
        if ordinal in new_extras and ordinal not in old_extras:
            changes.append(SchemaChange(
                kind=ChangeKind.FIELD_RETIRED,
                path=path,
                old_value=old_name,
                message=f"'{old_name}' (@{ordinal}) retired to an extra clause",
            ))
        elif old_name != new_name:
            changes.append(SchemaChange(
                kind=ChangeKind.NAME_CHANGED,
                path=path,
                old_value=old_name,
                new_value=new_name,
                message=f"@{ordinal} renamed from '{old_name}' to '{new_name}'",
            ))

    for ordinal, (new_name, _) in sorted(new_ords.items()):
        if ordinal not in old_ords:
            changes.append(SchemaChange(
                kind=ChangeKind.FIELD_ADDED,
                path=f"{new.name}@{ordinal}",
                new_value=new_name,
                message=f"'{new_name}' (@{ordinal}) added",
            ))

    return changes


def generate_fingerprint(text: str) -> str:
    """Fingerprint emitted schema text.

    Returns:
        Fingerprint string in format 'sha256:<hash>'
    """
    return f"sha256:{hashlib.sha256(text.encode('utf-8')).hexdigest()}"


def validate_breaking_changes(
    old_types: Sequence[TypeDef],
    new_types: Sequence[TypeDef],
) -> None:
    """Validate that there are no breaking changes.

    Raises:
        CompatibilityError: If breaking changes are detected
    """
    changes = check_compatibility(old_types, new_types)
    breaking = [c for c in changes if c.is_breaking]
    if breaking:
        raise CompatibilityError(breaking)
    logger.info(f"Schema compatibility check passed with {len(changes)} non-breaking changes")
