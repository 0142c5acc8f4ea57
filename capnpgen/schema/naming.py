"""
Name resolution for schema output.

Cap'n Proto expects lowerCamelCase field and union member names. Declared
names are converted unless an explicit override is supplied, in which case
the override is used verbatim.

Example:
    >>> to_lower_camel_case("email_addresses")
    'emailAddresses'
    >>> resolve_name("name", "fullName")
    'fullName'
"""

from __future__ import annotations

import re
from typing import Optional

# Acronym followed by a capitalized word, capitalized/lowercase words, bare
# acronyms, then digit runs.
_WORD_RE = re.compile(r"[A-Z]+(?=[A-Z][a-z])|[A-Z]?[a-z0-9]+|[A-Z]+|[0-9]+")


def split_words(name: str) -> list[str]:
    """Split an identifier on separators and case boundaries.

    Example:
        >>> split_words("HTTPServer_port")
        ['HTTP', 'Server', 'port']
    """
    return _WORD_RE.findall(name)


def to_lower_camel_case(name: str) -> str:
    """Convert snake_case, kebab-case or CamelCase to lowerCamelCase."""
    words = split_words(name)
    if not words:
        return name
    head, *rest = words
    return head.lower() + "".join(w[:1].upper() + w[1:].lower() for w in rest)


def resolve_name(declared: str, override: Optional[str] = None) -> str:
    """Return the schema name for a field or variant.

    The override, if given, wins and is not re-transformed.
    """
    if override is not None:
        return override
    return to_lower_camel_case(declared)


def resolve_type_name(reference: str) -> str:
    """Strip module qualifiers from a named type reference.

    Example:
        >>> resolve_type_name("crate::models::Person")
        'Person'
    """
    return re.split(r"\.|::", reference)[-1]
