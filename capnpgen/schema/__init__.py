"""
Schema compiler core for capnpgen.

This package turns type descriptors into Cap'n Proto schema text:
- Type descriptors (StructDef, EnumDef, FieldDef, VariantDef, ...)
- Name resolution (lowerCamelCase, overrides)
- Identifier validation per container
- Enum lowering to struct-with-union
- Schema file registry with an open/register/complete lifecycle
- Deterministic text emission
- Compatibility checking between schema versions

Invariants:
    - Field/variant ids are unique within their container
    - Output order is declaration order, never id order
    - Extra clauses are emitted last, verbatim
    - The same completed file always yields byte-identical text

How to change safely:
    - Add new fields with new ids
    - Retire removed fields with extra clauses carrying their old ids
    - Run `capnpgen check` against the previous schema before shipping
"""

from .compat import (
    ChangeKind,
    CompatibilityError,
    SchemaChange,
    check_compatibility,
    generate_fingerprint,
    validate_breaking_changes,
)
from .compiler import build_schema_text, lower_all
from .emitter import render_file, render_struct
from .lowering import lower_enum, lower_struct, lower_type
from .model import CapnpField, CapnpStruct, CapnpUnion, CapnpUnionMember
from .naming import resolve_name, to_lower_camel_case
from .registry import (
    FileState,
    SchemaFile,
    SchemaFileRegistry,
    complete_schema,
    generate_file_id,
    get_registry,
    register_type,
    replace_type,
    reset_registry,
    schema_file,
)
from .types import (
    EnumDef,
    ExtraClause,
    FieldDef,
    PositionDef,
    Primitive,
    StructDef,
    TypeDef,
    TypeRef,
    TypeRefKind,
    VariantDef,
    VariantShape,
    extra,
    field,
    position,
    variant,
)
from .validate import validate_type

__all__ = [
    # Types
    "Primitive",
    "TypeRef",
    "TypeRefKind",
    "FieldDef",
    "PositionDef",
    "VariantDef",
    "VariantShape",
    "ExtraClause",
    "StructDef",
    "EnumDef",
    "TypeDef",
    "field",
    "position",
    "variant",
    "extra",
    # Naming
    "resolve_name",
    "to_lower_camel_case",
    # Validation, lowering, emission
    "validate_type",
    "lower_struct",
    "lower_enum",
    "lower_type",
    "lower_all",
    "render_struct",
    "render_file",
    "build_schema_text",
    # Lowered model
    "CapnpField",
    "CapnpStruct",
    "CapnpUnion",
    "CapnpUnionMember",
    # Registry
    "FileState",
    "SchemaFile",
    "SchemaFileRegistry",
    "get_registry",
    "reset_registry",
    "schema_file",
    "register_type",
    "replace_type",
    "complete_schema",
    "generate_file_id",
    # Compatibility
    "SchemaChange",
    "ChangeKind",
    "CompatibilityError",
    "check_compatibility",
    "validate_breaking_changes",
    "generate_fingerprint",
]
