"""Parser for dsp templates.

Reads a template in a single forward pass and produces a frozen `Template`.

Syntax:
    <%layout base%>            wrap this template in the `base` layout
    <%head import os %>        module-level code, emitted before the render function
    <%d for x in @["items"]: %> ... <%d end %>
                               Python code run inside the render function
    <%slot%>                   where a layout renders the wrapped template
    <%inc nav @["user"] %>     render another template, optionally with new data
    <%attrs @decorator %>      modifiers placed on the render function
    {% expr %}                 evaluate a Python expression and emit it
    [[ key ]]                  emit ctx.data["key"]

Whitespace control sigils go on the directive identifier:
    <%-d ... %>   trim spaces/tabs before the tag (back to the line start)
    <%d- ... %>   drop the rest of the line after the tag if it is blank
    <%!d ... %>   both (also written <%d! ... %>)
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Dict, List, Optional, TextIO

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
from dspc.ast.scanner import WHITESPACE, CharStream
from dspc.exceptions import (
    DuplicateDirectiveError,
    MalformedTagError,
    TemplateSyntaxError,
    UnknownDirectiveError,
    UnterminatedTagError,
)

log = logging.getLogger(__name__)

DIRECTIVE_OPEN = ("<", "%")
DIRECTIVE_CLOSE = ("%", ">")
EXPR_OPEN = ("{", "%")
EXPR_CLOSE = ("%", "}")
VAR_OPEN = ("[", "[")
VAR_CLOSE = ("]", "]")

_ESCAPES = {
    '"': '\\"',
    "\\": "\\\\",
    "\n": "\\n",
    "\r": "\\r",
}


def escape_char(ch: str) -> str:
    """Escape one character for a double-quoted Python string literal."""
    escaped = _ESCAPES.get(ch)
    if escaped is not None:
        return escaped
    if ch != "\t" and (ord(ch) < 0x20 or ord(ch) == 0x7F):
        return f"\\x{ord(ch):02x}"
    return ch


def escape_text(text: str) -> str:
    return "".join(escape_char(ch) for ch in text)


def split_sigils(ident: str) -> tuple[str, bool, bool]:
    """Strip whitespace-control sigils from a directive identifier.

    Returns:
        (name, trim_before, strip_after)
    """
    if ident.endswith("!"):
        return ident[:-1], True, True
    if ident.startswith("!"):
        return ident[1:], True, True
    if ident.startswith("-"):
        return ident[1:], True, False
    if ident.endswith("-"):
        return ident[:-1], False, True
    return ident, False, False


class _TemplateBuilder:
    """Mutable state for one parse; frozen into a `Template` at the end."""

    def __init__(self) -> None:
        self.layout: Optional[str] = None
        self.head: Optional[str] = None
        self.attrs: Optional[str] = None
        self.has_slot = False
        self.nodes: List[Node] = []
        self._text: Optional[List[str]] = None

    def append_text(self, ch: str) -> None:
        if self._text is None:
            self._text = []
        self._text.append(escape_char(ch))

    def flush_text(self) -> None:
        if self._text is not None:
            self.nodes.append(TextNode("".join(self._text)))
            self._text = None

    def add(self, node: Node) -> None:
        self.flush_text()
        self.nodes.append(node)

    def trim_trailing_blanks(self) -> None:
        """Remove the trailing run of spaces/tabs from the current text."""
        if not self._text:
            return
        trimmed = "".join(self._text).rstrip(" \t")
        self._text = [trimmed] if trimmed else None

    def build(self) -> Template:
        self.flush_text()
        return Template(
            layout=self.layout,
            head=self.head,
            attrs=self.attrs,
            has_slot=self.has_slot,
            nodes=tuple(self.nodes),
        )


class _TemplateReader:
    """Reads one template from a `CharStream`."""

    def __init__(self, stream: CharStream, source_name: str) -> None:
        self.stream = stream
        self.source_name = source_name
        self.templ = _TemplateBuilder()
        self._directives: Dict[str, Callable[[], None]] = {
            "": self._directive_noop,
            "layout": self._directive_layout,
            "head": self._directive_head,
            "d": self._directive_code,
            "slot": self._directive_slot,
            "inc": self._directive_include,
            "attrs": self._directive_attrs,
        }

    def read(self) -> Template:
        stream = self.stream
        while True:
            ch = stream.read()
            if not ch:
                break
            if ch == DIRECTIVE_OPEN[0] and self._opens(DIRECTIVE_OPEN):
                self._read_directive()
            elif ch == EXPR_OPEN[0] and self._opens(EXPR_OPEN):
                self._read_expression()
            elif ch == VAR_OPEN[0] and self._opens(VAR_OPEN):
                self._read_variable()
            else:
                self.templ.append_text(ch)
        return self.templ.build()

    # -------------------------------------------------------------------------
    # low level helpers
    # -------------------------------------------------------------------------

    def _opens(self, marker: tuple[str, str]) -> bool:
        """Check the character after a start character completes `marker`."""
        if self.stream.peek() != marker[1]:
            return False
        self.stream.read()
        return True

    def _error(self, cls, *args, **kwargs):
        return cls(*args, source=self.source_name, line=self.stream.line, **kwargs)

    def _unterminated(self, what: str) -> UnterminatedTagError:
        return self._error(UnterminatedTagError, f"Unexpected end of input in {what}")

    def _read_ident(self) -> str:
        """Read an identifier ending at whitespace or right before a '%'."""
        chars: List[str] = []
        while True:
            ch = self.stream.read()
            if not ch:
                raise self._unterminated("directive")
            if ch == DIRECTIVE_CLOSE[0]:
                self.stream.unread(ch)
                break
            if ch in WHITESPACE:
                break
            chars.append(ch)
        return "".join(chars)

    def _read_raw(self, close: tuple[str, str], what: str) -> str:
        """Read verbatim text up to (not including) the `close` marker."""
        stream = self.stream
        chars: List[str] = []
        while True:
            ch = stream.read()
            if not ch:
                raise self._unterminated(what)
            if ch == close[0]:
                nxt = stream.read()
                if nxt == close[1]:
                    stream.unread(nxt)
                    stream.unread(ch)
                    return "".join(chars)
                stream.unread(nxt)
            chars.append(ch)

    def _expect_close(self, close: tuple[str, str], what: str) -> None:
        stream = self.stream
        stream.skip_whitespace()
        first = stream.read()
        second = stream.read()
        if not first or not second:
            raise self._unterminated(what)
        if (first, second) != close:
            raise self._error(MalformedTagError, f"Expected closing '{''.join(close)}'")

    def _strip_rest_of_line(self) -> None:
        """Drop blanks through the next newline; stop at anything else."""
        stream = self.stream
        while True:
            ch = stream.read()
            if not ch or ch == "\n":
                return
            if ch in " \t\r":
                continue
            stream.unread(ch)
            return

    # -------------------------------------------------------------------------
    # tags
    # -------------------------------------------------------------------------

    def _read_directive(self) -> None:
        name, trim_before, strip_after = split_sigils(self._read_ident())

        handler = self._directives.get(name)
        if handler is None:
            raise self._error(UnknownDirectiveError, name)

        if trim_before:
            self.templ.trim_trailing_blanks()

        handler()

        if strip_after:
            self._strip_rest_of_line()

    def _read_expression(self) -> None:
        expr = self._read_raw(EXPR_CLOSE, "expression")
        self._expect_close(EXPR_CLOSE, "expression")
        self.templ.add(ExprNode(expr))

    def _read_variable(self) -> None:
        key = self._read_raw(VAR_CLOSE, "variable lookup").strip()
        self._expect_close(VAR_CLOSE, "variable lookup")
        self.templ.add(VarNode(key))

    # -------------------------------------------------------------------------
    # directives
    # -------------------------------------------------------------------------

    def _directive_noop(self) -> None:
        self._expect_close(DIRECTIVE_CLOSE, "directive")

    def _directive_layout(self) -> None:
        if self.templ.layout is not None:
            raise self._error(DuplicateDirectiveError, "layout")
        self.stream.skip_whitespace()
        layout = self._read_ident().strip()
        if not layout:
            raise self._error(MalformedTagError, "Expected a template name after 'layout'")
        self.templ.layout = layout
        self._expect_close(DIRECTIVE_CLOSE, "layout directive")

    def _directive_head(self) -> None:
        self.templ.flush_text()
        code = self._read_raw(DIRECTIVE_CLOSE, "head directive")
        self.templ.head = code if self.templ.head is None else self.templ.head + code
        self._expect_close(DIRECTIVE_CLOSE, "head directive")

    def _directive_code(self) -> None:
        code = self._read_raw(DIRECTIVE_CLOSE, "code directive")
        self.templ.add(CodeNode(code))
        self._expect_close(DIRECTIVE_CLOSE, "code directive")

    def _directive_slot(self) -> None:
        if self.templ.has_slot:
            raise self._error(DuplicateDirectiveError, "slot")
        self.templ.add(SlotNode())
        self.templ.has_slot = True
        self._expect_close(DIRECTIVE_CLOSE, "slot directive")

    def _directive_include(self) -> None:
        self.stream.skip_whitespace()
        name = self._read_ident()
        if not name:
            raise self._error(MalformedTagError, "Expected a template name after 'inc'")
        context = self._read_raw(DIRECTIVE_CLOSE, "inc directive").strip()
        self.templ.add(IncludeNode(name, context or None))
        self._expect_close(DIRECTIVE_CLOSE, "inc directive")

    def _directive_attrs(self) -> None:
        if self.templ.attrs is not None:
            raise self._error(DuplicateDirectiveError, "attrs")
        self.templ.attrs = self._read_raw(DIRECTIVE_CLOSE, "attrs directive").strip()
        self._expect_close(DIRECTIVE_CLOSE, "attrs directive")


class Parser:
    """Parses dsp templates into `Template` values.

    A Parser holds no per-template state, so one instance can parse any
    number of files.
    """

    def parse(self, source: str | TextIO, source_name: str = "<template>") -> Template:
        """Parse template text (a string or an open text stream)."""
        reader = _TemplateReader(CharStream(source), source_name)
        templ = reader.read()
        log.debug(
            "Parsed %s: %d nodes, layout=%s, slot=%s",
            source_name,
            len(templ.nodes),
            templ.layout,
            templ.has_slot,
        )
        return templ

    def parse_file(self, path: str | Path) -> Template:
        """Read and parse a template file.

        The file is closed before any error propagates.
        """
        p = Path(path)
        try:
            with open(p, "r", encoding="utf-8", newline="") as f:
                return self.parse(f, source_name=str(p))
        except UnicodeDecodeError as e:
            raise TemplateSyntaxError(
                f"Template is not valid UTF-8: {e.reason}", source=str(p)
            ) from e


def parse_template(source: str | TextIO, source_name: str = "<template>") -> Template:
    """Parse a template string or stream."""
    return Parser().parse(source, source_name)


def parse_template_file(path: str | Path) -> Template:
    """Parse a template file."""
    return Parser().parse_file(path)
