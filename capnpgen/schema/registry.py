"""
Schema file registry for capnpgen.

The registry accumulates type descriptors into named schema files and turns
each file into schema text exactly once. Every file follows:

    Unopened --open()--> Open --complete()--> Completed

Invariants:
    - A file is opened once, with its 64-bit file id, before any register()
    - Descriptors are kept in first-registration order (replace() keeps the position)
    - complete() is all-or-nothing: on failure the file stays Open and
      unchanged, so the caller can fix the descriptor and retry
    - A Completed file is immutable; complete() returns the cached text
    - Files are independent; no ordering is assumed across files

How to change safely:
    - Register every type of a file before completing it
    - Retire fields with extra clauses instead of reusing their ids
    - After a failed complete(), replace() the bad descriptor and retry

Example:
    >>> registry = SchemaFileRegistry()
    >>> registry.open("demo.capnp", 0xfbb45a811fbe71f5)
    >>> registry.register("demo.capnp", Person)
    >>> text = registry.complete("demo.capnp")
"""

from __future__ import annotations

import logging
import secrets
import threading
from dataclasses import dataclass
from dataclasses import field as dataclass_field
from enum import Enum
from typing import Dict, Iterator, List, Optional

from ..errors import (
    AlreadyCompletedError,
    AlreadyOpenError,
    DuplicateFileIdError,
    DuplicateRegistrationError,
    FileNotOpenError,
    UnknownFileError,
)
from .compiler import build_schema_text
from .naming import resolve_type_name
from .types import TypeDef

logger = logging.getLogger(__name__)

MAX_FILE_ID = 2**64 - 1

# Global registry instance
_global_registry: Optional[SchemaFileRegistry] = None
_registry_lock = threading.Lock()


class FileState(Enum):
    """Lifecycle state of an opened schema file."""

    OPEN = "open"
    COMPLETED = "completed"


@dataclass
class SchemaFile:
    """One schema file owned by a registry.

    Attributes:
        name: File name, e.g. "demo.capnp"
        file_id: 64-bit Cap'n Proto file id
        types: Registered descriptors in first-registration order
        state: Lifecycle state
        text: Emitted schema text once completed
    """

    name: str
    file_id: int
    types: List[TypeDef] = dataclass_field(default_factory=list)
    state: FileState = FileState.OPEN
    text: Optional[str] = None
    lock: threading.Lock = dataclass_field(default_factory=threading.Lock, repr=False, compare=False)

    @property
    def completed(self) -> bool:
        return self.state == FileState.COMPLETED

    def get_type(self, name: str) -> Optional[TypeDef]:
        """Get a registered descriptor by type name."""
        for t in self.types:
            if t.name == name:
                return t
        return None


def generate_file_id() -> int:
    """Generate a random file id with the high bit set, like `capnp id`."""
    return secrets.randbits(64) | (1 << 63)


class SchemaFileRegistry:
    """Owned store of schema files.

    Thread-safety:
        - The file mapping is guarded by a registry lock
        - Each file has its own lock serializing register/complete
        - Distinct files never contend on each other's locks

    Example:
        >>> registry = SchemaFileRegistry()
        >>> registry.open("demo.capnp", 0xfbb45a811fbe71f5)
        >>> registry.register("demo.capnp", Status)
        >>> registry.complete("demo.capnp")
        '@0xfbb45a811fbe71f5;\\n\\nstruct Status {...'
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._files: Dict[str, SchemaFile] = {}
        self._lock = threading.Lock()

    def open(self, name: str, file_id: int) -> None:
        """Open a new schema file.

        Args:
            name: File name
            file_id: 64-bit file id (see generate_file_id)

        Raises:
            AlreadyOpenError: If the name was opened before
            DuplicateFileIdError: If another file uses file_id
            ValueError: If file_id is not an unsigned 64-bit integer
        """
        if isinstance(file_id, bool) or not isinstance(file_id, int):
            raise ValueError(f"file_id must be an integer, got {file_id!r}")
        if file_id < 0 or file_id > MAX_FILE_ID:
            raise ValueError(f"file_id must fit in 64 bits, got {file_id}")
        if not name:
            raise ValueError("Schema file name cannot be empty")

        with self._lock:
            if name in self._files:
                raise AlreadyOpenError(name)
            for other in self._files.values():
                if other.file_id == file_id:
                    raise DuplicateFileIdError(name, file_id, other.name)
            self._files[name] = SchemaFile(name=name, file_id=file_id)
            logger.info(f"Opened schema file {name} (id=0x{file_id:x})")

    def _get(self, name: str) -> SchemaFile:
        with self._lock:
            schema_file = self._files.get(name)
        if schema_file is None:
            raise UnknownFileError(name)
        return schema_file

    def register(self, name: str, typedef: TypeDef) -> None:
        """Append a type descriptor to an open file.

        Registering a descriptor equal to one already present is a no-op.

        Raises:
            UnknownFileError: If the file was never opened
            AlreadyCompletedError: If the file was already completed
            DuplicateRegistrationError: If a different type with the same
                name is already registered
        """
        schema_file = self._get(name)
        with schema_file.lock:
            if schema_file.completed:
                raise AlreadyCompletedError(name)

            existing = schema_file.get_type(typedef.name)
            if existing is not None:
                if existing == typedef:
                    logger.debug(f"Type {typedef.name} already registered in {name}")
                    return
                raise DuplicateRegistrationError(name, typedef.name)

            schema_file.types.append(typedef)
            logger.debug(
                f"Registered {type(typedef).__name__} {typedef.name} in {name} "
                f"(position {len(schema_file.types) - 1})"
            )

    def replace(self, name: str, typedef: TypeDef) -> None:
        """Swap the descriptor registered under typedef.name in an open file.

        The replacement keeps the original registration position, so a
        descriptor that failed complete() can be corrected and the file
        completed again. A name not yet registered is appended.

        Raises:
            UnknownFileError: If the file was never opened
            AlreadyCompletedError: If the file was already completed
        """
        schema_file = self._get(name)
        with schema_file.lock:
            if schema_file.completed:
                raise AlreadyCompletedError(name)

            for index, existing in enumerate(schema_file.types):
                if existing.name == typedef.name:
                    schema_file.types[index] = typedef
                    logger.info(f"Replaced {typedef.name} in {name} (position {index})")
                    return

            schema_file.types.append(typedef)
            logger.debug(f"Registered {typedef.name} in {name} via replace")

    def complete(self, name: str) -> str:
        """Emit the file's schema text and freeze the file.

        Returns:
            The schema text; the cached text if already completed

        Raises:
            UnknownFileError: If the file was never opened
            SchemaValidationError: If a descriptor has a missing or
                duplicate id; the file remains Open
        """
        schema_file = self._get(name)
        with schema_file.lock:
            if schema_file.completed:
                logger.debug(f"Schema file {name} already completed; returning cached text")
                return schema_file.text  # type: ignore[return-value]

            self._warn_unresolved(schema_file)
            try:
                text = build_schema_text(
                    schema_file.file_id, schema_file.types, file_name=name
                )
            except Exception as e:
                logger.error(f"Failed to complete schema file {name}: {e}")
                raise

            schema_file.text = text
            schema_file.state = FileState.COMPLETED
            logger.info(
                f"Completed schema file {name} with {len(schema_file.types)} type(s)"
            )
            return text

    def _warn_unresolved(self, schema_file: SchemaFile) -> None:
        known = {t.name for t in schema_file.types}
        for t in schema_file.types:
            for ref in t.named_refs():
                if resolve_type_name(ref) not in known:
                    logger.warning(
                        f"Type '{t.name}' in {schema_file.name} references '{ref}', "
                        f"which is not registered in this file"
                    )

    def text(self, name: str) -> str:
        """Get the emitted text of a completed file.

        Raises:
            UnknownFileError: If the file was never opened
            FileNotOpenError: If the file is not completed yet
        """
        schema_file = self._get(name)
        if not schema_file.completed:
            raise FileNotOpenError(
                name, message=f"Schema file '{name}' has not been completed"
            )
        return schema_file.text  # type: ignore[return-value]

    def state(self, name: str) -> Optional[FileState]:
        """Lifecycle state of a file, or None if it was never opened."""
        with self._lock:
            schema_file = self._files.get(name)
        return schema_file.state if schema_file else None

    def get_file(self, name: str) -> Optional[SchemaFile]:
        """Get a schema file by name."""
        with self._lock:
            return self._files.get(name)

    def files(self) -> Iterator[SchemaFile]:
        """Iterate over files in the order they were opened."""
        with self._lock:
            snapshot = list(self._files.values())
        yield from snapshot


def get_registry() -> SchemaFileRegistry:
    """Get the process-wide schema file registry.

    Creates a new registry if none exists.
    """
    global _global_registry
    with _registry_lock:
        if _global_registry is None:
            _global_registry = SchemaFileRegistry()
        return _global_registry


def reset_registry() -> None:
    """Reset the process-wide registry (for testing only)."""
    global _global_registry
    with _registry_lock:
        _global_registry = None


def schema_file(name: str, file_id: int) -> None:
    """Open a file in the process-wide registry."""
    get_registry().open(name, file_id)


def register_type(name: str, typedef: TypeDef) -> None:
    """Register a descriptor in the process-wide registry."""
    get_registry().register(name, typedef)


def replace_type(name: str, typedef: TypeDef) -> None:
    """Replace a descriptor in the process-wide registry."""
    get_registry().replace(name, typedef)


def complete_schema(name: str) -> str:
    """Complete a file in the process-wide registry."""
    return get_registry().complete(name)
