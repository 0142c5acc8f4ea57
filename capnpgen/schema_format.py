"""
YAML/JSON schema document format for capnpgen.

A schema document describes one Cap'n Proto file: its name, its file id
and its types in declaration order. It is the file-based front end for
callers that do not build descriptors in Python.

Example document:
    file: demo.capnp
    id: 0xfbb45a811fbe71f5
    types:
      - struct: UserProfileV2
        fields:
          - {name: username, id: 0, type: Text}
          - {name: email, id: 2, type: Text}
          - {name: active, id: 4, type: Bool}
        extras:
          - "oldUserId @1 :UInt64"
          - {text: "deprecatedTimestamp :UInt64", id: 3}

      - enum: Status
        variants:
          - {name: Active, id: 0}
          - name: MyText
            tuple:
              - {type: Text, id: 1}
          - name: Image
            fields:
              - {name: url, id: 2, type: Text}
              - {name: caption, id: 3, type: Text}
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .errors import SchemaFormatError, UnsupportedTypeShapeError
from .schema.registry import SchemaFileRegistry
from .schema.types import (
    EnumDef,
    ExtraClause,
    FieldDef,
    PositionDef,
    StructDef,
    TypeDef,
    VariantDef,
    as_type_ref,
    extra,
)

logger = logging.getLogger(__name__)


class FieldSchema(BaseModel):
    """A struct field or a named variant field."""

    model_config = ConfigDict(extra="forbid")

    name: str
    type: str
    id: Optional[int] = None
    rename: Optional[str] = None


class PositionSchema(BaseModel):
    """One position of a tuple variant."""

    model_config = ConfigDict(extra="forbid")

    type: str
    id: Optional[int] = None


class ExtraSchema(BaseModel):
    """An extra clause given as text plus id."""

    model_config = ConfigDict(extra="forbid")

    text: str
    id: Optional[int] = None


class VariantSchema(BaseModel):
    """An enum variant."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    name: str
    id: Optional[int] = None
    rename: Optional[str] = None
    positions: Optional[list[PositionSchema]] = Field(default=None, alias="tuple")
    fields: Optional[list[FieldSchema]] = None


class TypeSchema(BaseModel):
    """A struct or enum entry."""

    model_config = ConfigDict(extra="forbid")

    struct: Optional[str] = None
    enum: Optional[str] = None
    fields: list[FieldSchema] = Field(default_factory=list)
    variants: list[VariantSchema] = Field(default_factory=list)
    extras: list[Union[str, ExtraSchema]] = Field(default_factory=list)

    @model_validator(mode="after")
    def _one_kind(self) -> TypeSchema:
        if (self.struct is None) == (self.enum is None):
            raise ValueError("each type needs exactly one of 'struct' or 'enum'")
        if self.struct is not None and self.variants:
            raise ValueError(f"struct '{self.struct}' cannot have variants")
        if self.enum is not None and self.fields:
            raise ValueError(f"enum '{self.enum}' cannot have fields; use variants")
        return self


class DocumentSchema(BaseModel):
    """A whole schema file."""

    model_config = ConfigDict(extra="forbid")

    file: str
    id: int
    types: list[TypeSchema] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def _parse_file_id(cls, value: Any) -> Any:
        if isinstance(value, str):
            return int(value, 0)
        return value


@dataclass
class SchemaDocument:
    """A parsed schema document.

    Attributes:
        file: Schema file name
        file_id: 64-bit file id
        types: Descriptors in declaration order
    """

    file: str
    file_id: int
    types: list[TypeDef] = dataclass_field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "file": self.file,
            "id": f"0x{self.file_id:x}",
            "types": [_type_to_dict(t) for t in self.types],
        }

    def to_yaml(self) -> str:
        """Convert to YAML string."""
        return yaml.dump(self.to_dict(), default_flow_style=False, sort_keys=False)

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=2)


def _field_to_dict(f: FieldDef) -> dict[str, Any]:
    d: dict[str, Any] = {"name": f.name, "type": str(f.type)}
    if f.id is not None:
        d["id"] = f.id
    if f.name_override is not None:
        d["rename"] = f.name_override
    return d


def _extra_to_dict(x: ExtraClause) -> Union[str, dict[str, Any]]:
    if x.has_ordinal:
        return x.text
    return {"text": x.text, "id": x.id}


def _variant_to_dict(v: VariantDef) -> dict[str, Any]:
    d: dict[str, Any] = {"name": v.name}
    if v.id is not None:
        d["id"] = v.id
    if v.name_override is not None:
        d["rename"] = v.name_override
    if v.positions is not None:
        d["tuple"] = [
            {"type": str(p.type), **({"id": p.id} if p.id is not None else {})}
            for p in v.positions
        ]
    if v.fields is not None:
        d["fields"] = [_field_to_dict(f) for f in v.fields]
    return d


def _type_to_dict(t: TypeDef) -> dict[str, Any]:
    if isinstance(t, StructDef):
        d: dict[str, Any] = {"struct": t.name, "fields": [_field_to_dict(f) for f in t.fields]}
    else:
        d = {"enum": t.name, "variants": [_variant_to_dict(v) for v in t.variants]}
    if t.extras:
        d["extras"] = [_extra_to_dict(x) for x in t.extras]
    return d


def _parse_field(f: FieldSchema) -> FieldDef:
    return FieldDef(name=f.name, type=as_type_ref(f.type), id=f.id, name_override=f.rename)


def _parse_extra(x: Union[str, ExtraSchema]) -> ExtraClause:
    if isinstance(x, str):
        return extra(x)
    return extra(x.text, x.id)


def _parse_variant(v: VariantSchema) -> VariantDef:
    return VariantDef(
        name=v.name,
        id=v.id,
        name_override=v.rename,
        positions=(
            tuple(PositionDef(type=as_type_ref(p.type), id=p.id) for p in v.positions)
            if v.positions is not None
            else None
        ),
        fields=tuple(_parse_field(f) for f in v.fields) if v.fields is not None else None,
    )


def _parse_type(t: TypeSchema) -> TypeDef:
    extras = tuple(_parse_extra(x) for x in t.extras)
    if t.struct is not None:
        return StructDef(
            name=t.struct,
            fields=tuple(_parse_field(f) for f in t.fields),
            extras=extras,
        )
    return EnumDef(
        name=t.enum,  # type: ignore[arg-type]
        variants=tuple(_parse_variant(v) for v in t.variants),
        extras=extras,
    )


def parse_schema(data: dict[str, Any]) -> SchemaDocument:
    """Parse a complete schema document from dict.

    Raises:
        SchemaFormatError: Listing every structural problem found
    """
    try:
        doc = DocumentSchema.model_validate(data)
    except ValidationError as e:
        errors = [
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
            for err in e.errors()
        ]
        raise SchemaFormatError(
            f"Invalid schema document with {len(errors)} error(s):\n  " + "\n  ".join(errors),
            errors=errors,
        ) from e

    types: list[TypeDef] = []
    errors = []
    for index, t in enumerate(doc.types):
        try:
            types.append(_parse_type(t))
        except (ValueError, UnsupportedTypeShapeError) as e:
            errors.append(f"types.{index}: {e}")
    if errors:
        raise SchemaFormatError(
            f"Invalid schema document with {len(errors)} error(s):\n  " + "\n  ".join(errors),
            errors=errors,
        )

    logger.debug(f"Parsed schema document {doc.file} with {len(types)} type(s)")
    return SchemaDocument(file=doc.file, file_id=doc.id, types=types)


def parse_yaml(yaml_str: str) -> SchemaDocument:
    """Parse schema from YAML string."""
    try:
        data = yaml.safe_load(yaml_str)
    except yaml.YAMLError as e:
        raise SchemaFormatError(f"Invalid YAML: {e}") from e
    return parse_schema(data or {})


def parse_json(json_str: str) -> SchemaDocument:
    """Parse schema from JSON string."""
    try:
        data = json.loads(json_str)
    except json.JSONDecodeError as e:
        raise SchemaFormatError(f"Invalid JSON: {e}") from e
    return parse_schema(data or {})


def load_schema(path: str | Path) -> SchemaDocument:
    """Load a schema document from a .yaml/.yml or .json file."""
    path = Path(path)
    content = path.read_text(encoding="utf-8")
    if path.suffix == ".json":
        return parse_json(content)
    return parse_yaml(content)


def register_document(registry: SchemaFileRegistry, doc: SchemaDocument) -> None:
    """Open the document's file in registry and register its types in order."""
    registry.open(doc.file, doc.file_id)
    for t in doc.types:
        registry.register(doc.file, t)


def compile_document(
    doc: SchemaDocument,
    registry: Optional[SchemaFileRegistry] = None,
) -> str:
    """Register and complete a document, returning its schema text."""
    registry = registry if registry is not None else SchemaFileRegistry()
    register_document(registry, doc)
    return registry.complete(doc.file)
