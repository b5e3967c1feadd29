from __future__ import annotations

from typing import Optional, Tuple, Union

import msgspec


class TextNode(msgspec.Struct, frozen=True, tag="text"):
    """Raw text, already escaped for a double-quoted Python string literal."""

    content: str


class SlotNode(msgspec.Struct, frozen=True, tag="slot"):
    """Slot for rendering a layout's content."""


class IncludeNode(msgspec.Struct, frozen=True, tag="include"):
    """Render another template in place, optionally with different data."""

    name: str
    context: Optional[str] = None


class ExprNode(msgspec.Struct, frozen=True, tag="expr"):
    """Python expression evaluated and emitted as a string."""

    expr: str


class VarNode(msgspec.Struct, frozen=True, tag="var"):
    """Key looked up in the data given via the rendering context."""

    key: str


class CodeNode(msgspec.Struct, frozen=True, tag="code"):
    """Python code to be emitted into the render function."""

    code: str


Node = Union[TextNode, SlotNode, IncludeNode, ExprNode, VarNode, CodeNode]


class Template(msgspec.Struct, frozen=True):
    """A parsed template: its directives plus the ordered node sequence."""

    layout: Optional[str] = None
    head: Optional[str] = None
    attrs: Optional[str] = None
    has_slot: bool = False
    nodes: Tuple[Node, ...] = ()

    def to_json(self) -> bytes:
        return msgspec.json.encode(self)

    @classmethod
    def from_json(cls, data: bytes | str) -> "Template":
        return msgspec.json.decode(data, type=cls)
