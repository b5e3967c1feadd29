"""Character stream with a small pushback buffer.

The parser never seeks: it reads one character at a time and returns at
most two characters to the stream when a marker turns out not to match.
"""

from __future__ import annotations

import io
from typing import TextIO

WHITESPACE = " \t\r\n"


class CharStream:
    """Forward-only reader over a text stream with 2 characters of unread."""

    MAX_PUSHBACK = 2

    def __init__(self, source: TextIO | str) -> None:
        if isinstance(source, str):
            source = io.StringIO(source)
        self._source = source
        self._pushback: list[str] = []
        self.line = 1

    def read(self) -> str:
        """Return the next character, or "" at end of input."""
        if self._pushback:
            ch = self._pushback.pop()
        else:
            ch = self._source.read(1)
        if ch == "\n":
            self.line += 1
        return ch

    def unread(self, ch: str) -> None:
        """Push `ch` back so the next `read()` returns it."""
        if not ch:
            return
        if len(self._pushback) >= self.MAX_PUSHBACK:
            raise RuntimeError("CharStream pushback capacity exceeded")
        if ch == "\n":
            self.line -= 1
        self._pushback.append(ch)

    def peek(self) -> str:
        ch = self.read()
        self.unread(ch)
        return ch

    def skip_whitespace(self) -> None:
        while True:
            ch = self.read()
            if ch and ch in WHITESPACE:
                continue
            self.unread(ch)
            return
