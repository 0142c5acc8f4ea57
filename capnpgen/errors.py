"""
Error types for capnpgen.

This module defines all exception types raised while building schemas:
- CapnpGenError: Base exception
- SchemaValidationError: Identifier problems found at completion time
- SchemaLifecycleError: Misuse of the open/register/complete lifecycle
- UnsupportedTypeShapeError: Type or payload shape outside the supported set
- SchemaFormatError: Malformed YAML/JSON schema documents
- SchemaCompileError: The external capnp compiler rejected a file

Invariants:
    - All errors inherit from CapnpGenError
    - Errors carry file, container, member and identifier context in details
    - Error messages are actionable without re-running with extra logging
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class CapnpGenError(Exception):
    """Base exception for all capnpgen errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "CAPNPGEN_ERROR"
        self.details = details or {}


def _where(file_name: Optional[str], container: str) -> str:
    if file_name:
        return f"'{container}' (file '{file_name}')"
    return f"'{container}'"


class SchemaValidationError(CapnpGenError):
    """Base for identifier errors detected while completing a file."""


class MissingIdentifierError(SchemaValidationError):
    """A field or variant has no numeric identifier.

    Raised when:
    - A struct field was declared without an id
    - A unit enum variant was declared without an id
    - A tuple position or named variant field was declared without an id
    """

    def __init__(
        self,
        container: str,
        member: str,
        file_name: Optional[str] = None,
    ) -> None:
        super().__init__(
            f"{member} in {_where(file_name, container)} is missing a required "
            f"identifier; give it an explicit id",
            code="MISSING_IDENTIFIER",
            details={"file": file_name, "container": container, "member": member},
        )
        self.container = container
        self.member = member
        self.file_name = file_name


class DuplicateIdentifierError(SchemaValidationError):
    """Two siblings in one container share an identifier.

    The message names both the offending member and the member that
    claimed the identifier first.
    """

    def __init__(
        self,
        container: str,
        member: str,
        identifier: int,
        previous: str,
        file_name: Optional[str] = None,
    ) -> None:
        super().__init__(
            f"Duplicate identifier @{identifier} in {_where(file_name, container)}: "
            f"{member} reuses the identifier already used by {previous}",
            code="DUPLICATE_IDENTIFIER",
            details={
                "file": file_name,
                "container": container,
                "member": member,
                "id": identifier,
                "previous": previous,
            },
        )
        self.container = container
        self.member = member
        self.identifier = identifier
        self.previous = previous
        self.file_name = file_name


class UnsupportedTypeShapeError(CapnpGenError):
    """A type reference or variant payload cannot be represented.

    Raised when:
    - A type string names an unsupported primitive (e.g. 128-bit integers)
    - A variant declares both tuple positions and named fields
    - A malformed lowered model reaches the emitter
    """

    def __init__(self, message: str, shape: Optional[str] = None) -> None:
        super().__init__(
            message,
            code="UNSUPPORTED_TYPE_SHAPE",
            details={"shape": shape},
        )
        self.shape = shape


class SchemaLifecycleError(CapnpGenError):
    """Base for open/register/complete misuse."""

    def __init__(self, message: str, file_name: str, code: str) -> None:
        super().__init__(message, code=code, details={"file": file_name})
        self.file_name = file_name


class UnknownFileError(SchemaLifecycleError):
    """The schema file was never opened."""

    def __init__(self, file_name: str) -> None:
        super().__init__(
            f"No schema file '{file_name}' found. Did you open it first?",
            file_name,
            code="UNKNOWN_FILE",
        )


class FileNotOpenError(SchemaLifecycleError):
    """The schema file exists but does not accept registrations."""

    def __init__(self, file_name: str, message: Optional[str] = None, code: str = "FILE_NOT_OPEN") -> None:
        super().__init__(
            message or f"Schema file '{file_name}' is not open",
            file_name,
            code=code,
        )


class AlreadyCompletedError(FileNotOpenError):
    """The schema file was already completed and is immutable."""

    def __init__(self, file_name: str) -> None:
        super().__init__(
            file_name,
            message=f"Schema file '{file_name}' is already completed",
            code="ALREADY_COMPLETED",
        )


class AlreadyOpenError(SchemaLifecycleError):
    """The schema file name was opened before."""

    def __init__(self, file_name: str) -> None:
        super().__init__(
            f"Schema file '{file_name}' was already opened",
            file_name,
            code="ALREADY_OPEN",
        )


class DuplicateFileIdError(SchemaLifecycleError):
    """Another schema file already uses this file id."""

    def __init__(self, file_name: str, file_id: int, existing: str) -> None:
        super().__init__(
            f"File id 0x{file_id:x} for '{file_name}' is already used by '{existing}'",
            file_name,
            code="DUPLICATE_FILE_ID",
        )
        self.file_id = file_id
        self.existing = existing


class DuplicateRegistrationError(SchemaLifecycleError):
    """A different type was already registered under the same name."""

    def __init__(self, file_name: str, type_name: str) -> None:
        super().__init__(
            f"Type '{type_name}' is already registered in schema file '{file_name}' "
            f"with a different definition; use replace() while the file is open",
            file_name,
            code="DUPLICATE_REGISTRATION",
        )
        self.type_name = type_name


class SchemaFormatError(CapnpGenError):
    """A YAML/JSON schema document is malformed."""

    def __init__(self, message: str, errors: Optional[List[str]] = None) -> None:
        super().__init__(
            message,
            code="SCHEMA_FORMAT_ERROR",
            details={"errors": errors or []},
        )
        self.errors = errors or []


class SchemaCompileError(CapnpGenError):
    """The external capnp compiler failed."""

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        stderr: str = "",
    ) -> None:
        super().__init__(
            message,
            code="SCHEMA_COMPILE_ERROR",
            details={"path": path, "stderr": stderr},
        )
        self.path = path
        self.stderr = stderr
