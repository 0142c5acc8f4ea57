"""
capnpgen - code-first Cap'n Proto schema generation.

Describe structs and enums as type descriptors (in Python or in a YAML/JSON
schema document), register them into named schema files, and complete each
file to get deterministic Cap'n Proto schema text.

Example:
    >>> from capnpgen import SchemaFileRegistry, StructDef, field
    >>> registry = SchemaFileRegistry()
    >>> registry.open("demo.capnp", 0xfbb45a811fbe71f5)
    >>> registry.register("demo.capnp", StructDef("Person", fields=(field("id", "u64", id=0),)))
    >>> print(registry.complete("demo.capnp"))
    @0xfbb45a811fbe71f5;
    <BLANKLINE>
    struct Person {
      id @0 :UInt64;
    }
"""

from .errors import (
    AlreadyCompletedError,
    AlreadyOpenError,
    CapnpGenError,
    DuplicateFileIdError,
    DuplicateIdentifierError,
    DuplicateRegistrationError,
    FileNotOpenError,
    MissingIdentifierError,
    SchemaCompileError,
    SchemaFormatError,
    SchemaLifecycleError,
    SchemaValidationError,
    UnknownFileError,
    UnsupportedTypeShapeError,
)
from .schema import (
    EnumDef,
    ExtraClause,
    FieldDef,
    PositionDef,
    Primitive,
    SchemaFileRegistry,
    StructDef,
    TypeRef,
    VariantDef,
    build_schema_text,
    complete_schema,
    extra,
    field,
    generate_file_id,
    get_registry,
    position,
    register_type,
    replace_type,
    schema_file,
    variant,
)

__version__ = "0.1.0"

__all__ = [
    # Errors
    "CapnpGenError",
    "SchemaValidationError",
    "MissingIdentifierError",
    "DuplicateIdentifierError",
    "UnsupportedTypeShapeError",
    "SchemaLifecycleError",
    "UnknownFileError",
    "FileNotOpenError",
    "AlreadyOpenError",
    "AlreadyCompletedError",
    "DuplicateFileIdError",
    "DuplicateRegistrationError",
    "SchemaFormatError",
    "SchemaCompileError",
    # Descriptors
    "Primitive",
    "TypeRef",
    "FieldDef",
    "PositionDef",
    "VariantDef",
    "ExtraClause",
    "StructDef",
    "EnumDef",
    "field",
    "position",
    "variant",
    "extra",
    # Pipeline
    "SchemaFileRegistry",
    "get_registry",
    "schema_file",
    "register_type",
    "replace_type",
    "complete_schema",
    "generate_file_id",
    "build_schema_text",
]
