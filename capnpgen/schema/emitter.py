"""
Schema text emitter.

Renders lowered structs as Cap'n Proto source. Output is a pure function
of its input:

1. ``@0x<file id>;`` header, then a blank line
2. structs in the order given (registration order), blank line between
3. primary fields in declaration order, never sorted by id
4. the union block, members in variant order, group fields in declaration
   order
5. extra clauses last, verbatim, in declaration order

No validation happens here. A malformed model is a programming error and
raises UnsupportedTypeShapeError.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from ..errors import UnsupportedTypeShapeError
from .model import CapnpField, CapnpStruct, CapnpUnion, CapnpUnionMember
from .types import ExtraClause, TypeRef, TypeRefKind

INDENT = "  "


def render_type(ref: TypeRef) -> str:
    """Render a type reference, e.g. ``List(Text)``."""
    if ref.kind == TypeRefKind.PRIMITIVE and ref.primitive is not None:
        return ref.primitive.value
    if ref.kind == TypeRefKind.LIST and ref.element is not None:
        return f"List({render_type(ref.element)})"
    if ref.kind == TypeRefKind.NAMED and ref.name:
        return ref.name
    raise UnsupportedTypeShapeError(f"Cannot render type reference {ref!r}", shape=str(ref.kind))


def render_field(f: CapnpField) -> str:
    """Render ``name @id :Type;``."""
    return f"{f.name} @{f.id} :{render_type(f.type)};"


def render_extra(x: ExtraClause) -> str:
    """Render an extra clause as given, adding its ordinal if the text lacks one."""
    text = x.text.strip()
    if text.endswith(";"):
        text = text[:-1].rstrip()
    if not x.has_ordinal:
        head, _, rest = text.partition(" ")
        text = f"{head} @{x.id} {rest}".rstrip()
    return f"{text};"


def _render_member(m: CapnpUnionMember, depth: int) -> list[str]:
    pad = INDENT * depth
    if m.group is not None:
        if not m.group:
            return [f"{pad}{m.name} :group {{}}"]
        lines = [f"{pad}{m.name} :group {{"]
        lines.extend(f"{pad}{INDENT}{render_field(f)}" for f in m.group)
        lines.append(f"{pad}}}")
        return lines
    if m.id is None or m.type is None:
        raise UnsupportedTypeShapeError(
            f"Union member '{m.name}' needs an id and a type", shape="member"
        )
    return [f"{pad}{m.name} @{m.id} :{render_type(m.type)};"]


def _render_union(union: CapnpUnion, depth: int) -> list[str]:
    pad = INDENT * depth
    lines = [f"{pad}union {{"]
    for m in union.members:
        lines.extend(_render_member(m, depth + 1))
    lines.append(f"{pad}}}")
    return lines


def render_struct(struct: CapnpStruct) -> str:
    """Render one struct block, terminated by a newline."""
    lines = [f"struct {struct.name} {{"]
    lines.extend(f"{INDENT}{render_field(f)}" for f in struct.fields)
    if struct.union is not None:
        lines.extend(_render_union(struct.union, 1))
    lines.extend(f"{INDENT}{render_extra(x)}" for x in struct.extras)
    lines.append("}")
    return "\n".join(lines) + "\n"


def render_structs(structs: Iterable[CapnpStruct]) -> str:
    """Render structs separated by blank lines."""
    return "\n".join(render_struct(s) for s in structs)


def format_file_id(file_id: int) -> str:
    """Format a file id the way capnp spells it."""
    return f"@0x{file_id:x};"


def render_file(file_id: int, structs: Sequence[CapnpStruct]) -> str:
    """Render a complete schema file."""
    body = render_structs(structs)
    if not body:
        return format_file_id(file_id) + "\n"
    return f"{format_file_id(file_id)}\n\n{body}"
