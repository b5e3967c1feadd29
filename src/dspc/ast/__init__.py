"""dspc.ast - template node model and parser."""

from dspc.ast.nodes import (
    CodeNode,
    ExprNode,
    IncludeNode,
    Node,
    SlotNode,
    Template,
    TextNode,
    VarNode,
)
from dspc.ast.parser import Parser, parse_template, parse_template_file

__all__ = [
    "CodeNode",
    "ExprNode",
    "IncludeNode",
    "Node",
    "SlotNode",
    "Template",
    "TextNode",
    "VarNode",
    "Parser",
    "parse_template",
    "parse_template_file",
]
