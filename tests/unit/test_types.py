"""
Unit tests for type descriptors.

Tests cover:
- Primitive parsing and aliases
- TypeRef parsing of lists and named references
- Field, variant and extra clause construction checks
"""

import pytest

from capnpgen.errors import UnsupportedTypeShapeError
from capnpgen.schema.types import (
    EnumDef,
    ExtraClause,
    FieldDef,
    Primitive,
    StructDef,
    TypeRef,
    TypeRefKind,
    VariantShape,
    extra,
    field,
    position,
    variant,
)


class TestPrimitive:
    """Tests for Primitive."""

    def test_schema_spelling(self):
        """Schema spellings map to themselves."""
        assert Primitive.from_str("UInt64") == Primitive.UINT64
        assert Primitive.from_str("Text") == Primitive.TEXT

    def test_aliases(self):
        """Common aliases are accepted."""
        assert Primitive.from_str("u64") == Primitive.UINT64
        assert Primitive.from_str("i32") == Primitive.INT32
        assert Primitive.from_str("String") == Primitive.TEXT
        assert Primitive.from_str("bytes") == Primitive.DATA
        assert Primitive.from_str("f64") == Primitive.FLOAT64

    def test_128_bit_rejected(self):
        """128-bit integers cannot be represented."""
        with pytest.raises(UnsupportedTypeShapeError, match="i128 not supported"):
            Primitive.from_str("i128")

    def test_unknown_is_value_error(self):
        """Non-primitive names are not primitives."""
        with pytest.raises(ValueError, match="Invalid primitive"):
            Primitive.from_str("Person")


class TestTypeRef:
    """Tests for TypeRef."""

    def test_parse_primitive(self):
        """Primitive strings parse to primitive refs."""
        ref = TypeRef.parse("u32")
        assert ref.kind == TypeRefKind.PRIMITIVE
        assert ref.primitive == Primitive.UINT32

    def test_parse_list_spellings(self):
        """All list spellings parse to the same reference."""
        expected = TypeRef.list_of(TypeRef.of(Primitive.TEXT))
        assert TypeRef.parse("List(Text)") == expected
        assert TypeRef.parse("list[str]") == expected
        assert TypeRef.parse("Vec<String>") == expected

    def test_parse_nested_list(self):
        """Lists of lists keep nesting."""
        assert str(TypeRef.parse("List(List(UInt8))")) == "List(List(UInt8))"

    def test_parse_named(self):
        """Other identifiers are named references."""
        ref = TypeRef.parse("crate::models::Person")
        assert ref.kind == TypeRefKind.NAMED
        assert ref.named_refs() == ["crate::models::Person"]

    def test_parse_unbalanced_list(self):
        """Unbalanced list syntax is rejected."""
        with pytest.raises(UnsupportedTypeShapeError, match="Unbalanced"):
            TypeRef.parse("List(Text")

    def test_parse_garbage(self):
        """Arbitrary punctuation is rejected."""
        with pytest.raises(UnsupportedTypeShapeError, match="Unsupported type"):
            TypeRef.parse("Map<K, V>")

    def test_malformed_ref(self):
        """A ref whose payload does not match its kind is rejected."""
        with pytest.raises(UnsupportedTypeShapeError, match="Malformed list"):
            TypeRef(kind=TypeRefKind.LIST, name="Person")

    def test_list_named_refs(self):
        """Named refs are found inside lists."""
        assert TypeRef.parse("List(Person)").named_refs() == ["Person"]


class TestFieldDef:
    """Tests for FieldDef."""

    def test_field_helper(self):
        """field() parses the type string."""
        f = field("email_addresses", "List(Text)", id=2)
        assert f.type == TypeRef.list_of("Text")
        assert f.id == 2
        assert f.name_override is None

    def test_id_optional(self):
        """Ids can be left out until completion."""
        assert field("name", "Text").id is None

    def test_empty_name_raises(self):
        """Empty field names are rejected."""
        with pytest.raises(ValueError, match="Field name cannot be empty"):
            FieldDef(name="", type=TypeRef.of(Primitive.TEXT))

    def test_negative_id_raises(self):
        """Negative ids are rejected."""
        with pytest.raises(ValueError, match="non-negative"):
            field("name", "Text", id=-1)

    def test_id_too_large_raises(self):
        """Ids must fit in 16 bits."""
        with pytest.raises(ValueError, match="<= 65535"):
            field("name", "Text", id=65536)

    def test_blank_override_raises(self):
        """Blank name overrides are rejected."""
        with pytest.raises(ValueError, match="name override"):
            field("name", "Text", id=0, name_override="  ")

    def test_frozen(self):
        """Descriptors are immutable."""
        f = field("name", "Text", id=0)
        with pytest.raises(AttributeError):
            f.id = 5  # type: ignore[misc]


class TestVariantDef:
    """Tests for VariantDef."""

    def test_shapes(self):
        """Payload shape follows what was given."""
        assert variant("Active", id=0).shape == VariantShape.UNIT
        assert variant("MyText", positions=[position("Text", id=1)]).shape == VariantShape.TUPLE
        assert variant("Image", fields=[field("url", "Text", id=2)]).shape == VariantShape.NAMED

    def test_empty_payload_has_no_payload(self):
        """An empty tuple counts as no payload."""
        v = variant("Empty", id=3, positions=[])
        assert v.shape == VariantShape.TUPLE
        assert not v.has_payload

    def test_mixed_payload_raises(self):
        """A variant cannot be both tuple and named."""
        with pytest.raises(UnsupportedTypeShapeError, match="both tuple positions and named fields"):
            variant(
                "Broken",
                positions=[position("Text", id=1)],
                fields=[field("url", "Text", id=2)],
            )


class TestExtraClause:
    """Tests for ExtraClause."""

    def test_parse_reads_ordinal(self):
        """The id is read from the text."""
        x = extra("oldUserId @1 :UInt64")
        assert x.id == 1
        assert x.has_ordinal

    def test_text_without_ordinal_needs_id(self):
        """Text without @N requires an explicit id."""
        with pytest.raises(ValueError, match="has no @N identifier"):
            extra("deprecatedTimestamp :UInt64")
        assert extra("deprecatedTimestamp :UInt64", 3).id == 3

    def test_mismatched_ordinal_raises(self):
        """Text and id must agree."""
        with pytest.raises(ValueError, match="declares @1 but id is 2"):
            ExtraClause(text="oldUserId @1 :UInt64", id=2)


class TestTypeDefs:
    """Tests for StructDef and EnumDef."""

    def test_enum_named_refs(self):
        """Enum payload references are collected."""
        e = EnumDef(
            "Shape",
            variants=(
                variant("Circle", positions=[position("Point", id=0)]),
                variant("Poly", fields=[field("points", "List(Point)", id=1)]),
            ),
        )
        assert e.named_refs() == ["Point", "Point"]

    def test_struct_named_refs(self):
        """Struct field references are collected through lists."""
        s = StructDef("Team", fields=(field("lead", "Person", id=0), field("ids", "List(u64)", id=1)))
        assert s.named_refs() == ["Person"]

    def test_empty_struct_name_raises(self):
        """Struct names cannot be empty."""
        with pytest.raises(ValueError, match="Struct name cannot be empty"):
            StructDef("")
