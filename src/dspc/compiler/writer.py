"""SourceWriter - builds indented Python source line by line.

Python has no braces, so raw code blocks from templates drive the
indentation of everything that follows them:

    <%d for item in @["items"]: %>   opens a suite
    <li>[[ title ]]</li>             written one level deeper
    <%d end %>                       closes it

`else`/`elif`/`except`/`finally` blocks close the current suite and open a
new one. A suite closed without statements gets a `pass`.
"""

from __future__ import annotations

import io
import re
import textwrap
import tokenize
from typing import List

from dspc.exceptions import DedentTooFarError, UnbalancedBlockError

INDENT = "    "

END_BLOCK = re.compile(r"^end(?:for|if|while|with|try|def|match)?$")
CONTINUATION = re.compile(r"^(?:else|elif|except|finally)\b")


def strip_comment(line: str) -> str:
    """Drop a trailing `# comment` from one line of Python code.

    A `#` inside a string literal is kept. Lines that do not tokenize on
    their own (an open bracket or string) are returned unchanged.
    """
    try:
        for tok in tokenize.generate_tokens(io.StringIO(line).readline):
            if tok.type == tokenize.COMMENT:
                return line[: tok.start[1]].rstrip()
    except (tokenize.TokenError, SyntaxError):
        return line
    return line


def opens_suite(line: str) -> bool:
    return strip_comment(line).rstrip().endswith(":")


def normalize_block(text: str) -> List[str]:
    """Split a raw code block into dedented lines.

    Leading and trailing blank lines are dropped. When the block starts on
    the same line as its tag (`<%d x = 1`), the first line is stripped and
    the remaining lines are dedented on their own; if the first line opens
    a suite and the rest sits at its margin, the rest is nested under it.
    """
    lines = text.splitlines()
    inline_first = bool(lines) and bool(lines[0].strip())

    while lines and not lines[0].strip():
        lines.pop(0)
    while lines and not lines[-1].strip():
        lines.pop()
    if not lines:
        return []

    if not inline_first:
        return textwrap.dedent("\n".join(lines)).split("\n")

    first = lines[0].strip()
    rest = textwrap.dedent("\n".join(lines[1:])).split("\n") if lines[1:] else []
    if opens_suite(first) and rest and rest[0] == rest[0].lstrip():
        rest = [INDENT + line if line.strip() else line for line in rest]
    return [first] + rest


class SourceWriter:
    """Collects Python source lines at a tracked indentation level."""

    def __init__(self, level: int = 0) -> None:
        self.level = level
        self._lines: List[str] = []
        # one entry per open suite: has a statement been written into it?
        self._suites: List[bool] = []
        self._wrote_statement = False

    def line(self, text: str = "") -> None:
        """Write one line at the current indentation."""
        if not text.strip():
            self._lines.append("")
            return
        self._lines.append(INDENT * self.level + text)
        self._wrote_statement = True
        if self._suites:
            self._suites[-1] = True

    def indent(self) -> None:
        self.level += 1
        self._suites.append(False)

    def dedent(self) -> None:
        if not self._suites:
            raise DedentTooFarError("'end' without an open block")
        if not self._suites.pop():
            self._lines.append(INDENT * self.level + "pass")
        self.level -= 1

    def block(self, text: str) -> None:
        """Write a raw code block, following its suite structure."""
        lines = normalize_block(text)
        if not lines:
            return

        if len(lines) == 1 and END_BLOCK.match(strip_comment(lines[0]).strip()):
            self.dedent()
            return

        if CONTINUATION.match(lines[0]):
            self.dedent()

        for line in lines:
            self.line(line)

        if opens_suite(lines[-1]):
            self.indent()

    def finish(self) -> str:
        """Return the collected source; every suite must be closed."""
        if self._suites:
            raise UnbalancedBlockError(
                f"{len(self._suites)} code block(s) opened with ':' were never closed with 'end'"
            )
        if not self._wrote_statement:
            self._lines.append(INDENT * self.level + "pass")
        return "\n".join(self._lines)
