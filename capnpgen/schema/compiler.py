"""
Schema compilation pipeline.

Validation, lowering (with name resolution) and emission over an ordered
list of type descriptors. Nothing is emitted unless every descriptor
passes validation.

Example:
    >>> from capnpgen.schema import StructDef, field, build_schema_text
    >>> text = build_schema_text(
    ...     0xfbb45a811fbe71f5,
    ...     [StructDef("Person", fields=(field("id", "u64", id=0),))],
    ... )
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from .emitter import render_file
from .lowering import lower_type
from .model import CapnpStruct
from .types import TypeDef
from .validate import validate_type

logger = logging.getLogger(__name__)


def lower_all(
    types: Sequence[TypeDef],
    file_name: Optional[str] = None,
) -> list[CapnpStruct]:
    """Validate every descriptor, then lower them in order.

    Raises:
        SchemaValidationError: On the first missing or duplicate id
    """
    for typedef in types:
        validate_type(typedef, file_name=file_name)
    return [lower_type(typedef) for typedef in types]


def build_schema_text(
    file_id: int,
    types: Sequence[TypeDef],
    file_name: Optional[str] = None,
) -> str:
    """Produce schema text for the given descriptors.

    Args:
        file_id: 64-bit Cap'n Proto file id
        types: Descriptors in registration order
        file_name: Used for error context only

    Returns:
        Complete schema source text
    """
    structs = lower_all(types, file_name=file_name)
    text = render_file(file_id, structs)
    logger.debug(
        f"Emitted {len(structs)} struct(s) for {file_name or '<memory>'} ({len(text)} bytes)"
    )
    return text
