"""
Unit tests for schema compatibility checking.

Tests cover:
- Non-breaking changes (add, rename, retire)
- Breaking changes (remove type, remove field, change type)
- Fingerprints of emitted text
"""

import pytest

from capnpgen.errors import CapnpGenError, DuplicateIdentifierError
from capnpgen.schema.compat import (
    ChangeKind,
    CompatibilityError,
    check_compatibility,
    generate_fingerprint,
    validate_breaking_changes,
)
from capnpgen.schema.types import EnumDef, StructDef, extra, field, position, variant

UserV1 = StructDef(
    "UserProfile",
    fields=(
        field("username", "Text", id=0),
        field("old_user_id", "UInt64", id=1),
        field("email", "Text", id=2),
    ),
)


def kinds(changes):
    return [c.kind for c in changes]


class TestNonBreaking:
    """Tests for allowed changes."""

    def test_no_changes(self):
        """Identical schemas produce no changes."""
        assert check_compatibility([UserV1], [UserV1]) == []

    def test_field_added(self):
        """Adding a field with a new id is allowed."""
        v2 = StructDef("UserProfile", fields=UserV1.fields + (field("active", "Bool", id=3),))

        changes = check_compatibility([UserV1], [v2])

        assert kinds(changes) == [ChangeKind.FIELD_ADDED]
        assert changes[0].path == "UserProfile@3"
        assert not changes[0].is_breaking

    def test_field_renamed(self):
        """Renaming keeps the ordinal and is allowed."""
        v2 = StructDef(
            "UserProfile",
            fields=(
                field("username", "Text", id=0),
                field("old_user_id", "UInt64", id=1),
                field("email_address", "Text", id=2),
            ),
        )

        changes = check_compatibility([UserV1], [v2])

        assert kinds(changes) == [ChangeKind.NAME_CHANGED]
        assert changes[0].old_value == "email"
        assert changes[0].new_value == "emailAddress"

    def test_field_retired_to_extra(self):
        """Moving a field to an extra clause retires it."""
        v2 = StructDef(
            "UserProfile",
            fields=(field("username", "Text", id=0), field("email", "Text", id=2)),
            extras=(extra("oldUserId @1 :UInt64"),),
        )

        changes = check_compatibility([UserV1], [v2])

        assert kinds(changes) == [ChangeKind.FIELD_RETIRED]
        validate_breaking_changes([UserV1], [v2])

    def test_type_added(self):
        """New types are allowed."""
        status = EnumDef("Status", variants=(variant("Active", id=0), variant("Inactive", id=1)))

        assert kinds(check_compatibility([UserV1], [UserV1, status])) == [ChangeKind.TYPE_ADDED]


class TestBreaking:
    """Tests for forbidden changes."""

    def test_field_removed(self):
        """Dropping an ordinal without an extra clause is breaking."""
        v2 = StructDef("UserProfile", fields=(field("username", "Text", id=0), field("email", "Text", id=2)))

        changes = check_compatibility([UserV1], [v2])

        assert kinds(changes) == [ChangeKind.FIELD_REMOVED]
        assert changes[0].is_breaking
        assert "keep it as an extra clause" in changes[0].message

    def test_field_type_changed(self):
        """Changing the type behind an ordinal is breaking."""
        v2 = StructDef(
            "UserProfile",
            fields=(
                field("username", "Text", id=0),
                field("old_user_id", "UInt32", id=1),
                field("email", "Text", id=2),
            ),
        )

        changes = check_compatibility([UserV1], [v2])

        assert kinds(changes) == [ChangeKind.FIELD_TYPE_CHANGED]
        assert changes[0].old_value == "UInt64"
        assert changes[0].new_value == "UInt32"

    def test_type_removed(self):
        """Removing a type is breaking."""
        assert kinds(check_compatibility([UserV1], [])) == [ChangeKind.TYPE_REMOVED]

    def test_variant_payload_type_changed(self):
        """Enum payload ordinals are checked like struct fields."""
        old = EnumDef(
            "Status",
            variants=(variant("Active", id=0), variant("MyText", positions=[position("Text", id=1)])),
        )
        new = EnumDef(
            "Status",
            variants=(variant("Active", id=0), variant("MyText", positions=[position("Data", id=1)])),
        )

        changes = check_compatibility([old], [new])

        assert kinds(changes) == [ChangeKind.FIELD_TYPE_CHANGED]
        assert changes[0].path == "Status@1"

    def test_validate_raises(self):
        """validate_breaking_changes raises on breaking changes."""
        with pytest.raises(CompatibilityError, match="1 breaking change") as exc_info:
            validate_breaking_changes([UserV1], [])

        err = exc_info.value
        assert err.changes[0].kind == ChangeKind.TYPE_REMOVED
        assert isinstance(err, CapnpGenError)
        assert err.code == "BREAKING_CHANGE"
        assert len(err.details["changes"]) == 1

    def test_invalid_schema_surfaces(self):
        """Identifier errors in either side are raised."""
        bad = StructDef("UserProfile", fields=(field("a", "Text", id=0), field("b", "Text", id=0)))

        with pytest.raises(DuplicateIdentifierError):
            check_compatibility([UserV1], [bad])


class TestFingerprint:
    """Tests for generate_fingerprint."""

    def test_format(self):
        """Fingerprints are sha256 hex digests."""
        fp = generate_fingerprint("@0x1;\n")
        assert fp.startswith("sha256:")
        assert len(fp) == len("sha256:") + 64

    def test_changes_with_text(self):
        """Different text gives a different fingerprint."""
        assert generate_fingerprint("a") != generate_fingerprint("b")
        assert generate_fingerprint("a") == generate_fingerprint("a")
