"""Brace-aware lexer for Gradle build scripts (Groovy and Kotlin DSL).

The scanners and mutators never parse a whole build script. They only need to
know which characters are *code*: :func:`mask` returns a copy of the text of
the same length in which comment bodies and string contents are blanked out,
so brace counting and keyword searches can run on the copy while every offset
still points into the original text.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass

_BLANKED_NEWLINES = "\r\n"


@dataclass(frozen=True)
class MaskedText:
    """Original text plus its code-only view."""

    text: str
    code: str
    error_offset: int | None = None
    error_reason: str | None = None

    @property
    def is_complete(self) -> bool:
        return self.error_offset is None

    @property
    def limit(self) -> int:
        """Offset up to which the code view can be trusted."""
        return len(self.text) if self.error_offset is None else self.error_offset


@dataclass(frozen=True)
class Block:
    """A named ``name { ... }`` block."""

    name: str
    start: int
    open_brace: int
    close_brace: int  # -1 when the block is never closed
    depth: int

    @property
    def is_closed(self) -> bool:
        return self.close_brace >= 0

    @property
    def body_start(self) -> int:
        return self.open_brace + 1

    def body_end(self, masked: MaskedText) -> int:
        return self.close_brace if self.is_closed else masked.limit


def _blank(chars: list[str], start: int, end: int) -> None:
    for i in range(start, end):
        if chars[i] not in _BLANKED_NEWLINES:
            chars[i] = " "


def mask(text: str) -> MaskedText:
    """Blank out comments and string contents, keeping quotes and newlines.

    An unterminated string or comment stops the lexer; everything after the
    opening delimiter is treated as non-code and the failure is reported on
    the result instead of raised.
    """
    chars = list(text)
    n = len(text)
    i = 0
    while i < n:
        ch = text[i]
        if ch == "/" and text.startswith("//", i):
            j = i
            while j < n and text[j] not in _BLANKED_NEWLINES:
                j += 1
            _blank(chars, i, j)
            i = j
        elif ch == "/" and text.startswith("/*", i):
            j = text.find("*/", i + 2)
            if j < 0:
                _blank(chars, i, n)
                return MaskedText(text, "".join(chars), i, "unterminated block comment")
            _blank(chars, i, j + 2)
            i = j + 2
        elif ch in "\"'":
            if text.startswith(ch * 3, i):
                j = text.find(ch * 3, i + 3)
                if j < 0:
                    _blank(chars, i + 3, n)
                    return MaskedText(text, "".join(chars), i, "unterminated string literal")
                _blank(chars, i + 3, j)
                i = j + 3
                continue
            j = i + 1
            while j < n and text[j] != ch:
                if text[j] in _BLANKED_NEWLINES:
                    _blank(chars, i + 1, n)
                    return MaskedText(text, "".join(chars), i, "unterminated string literal")
                j += 2 if text[j] == "\\" else 1
            if j >= n:
                _blank(chars, i + 1, n)
                return MaskedText(text, "".join(chars), i, "unterminated string literal")
            _blank(chars, i + 1, j)
            i = j + 1
        else:
            i += 1
    return MaskedText(text, "".join(chars))


def match_brace(code: str, open_brace: int, limit: int | None = None) -> int:
    """Return the offset of the ``}`` closing *open_brace*, or -1."""
    end = len(code) if limit is None else limit
    depth = 0
    for i in range(open_brace, end):
        c = code[i]
        if c == "{":
            depth += 1
        elif c == "}":
            depth -= 1
            if depth == 0:
                return i
    return -1


def find_blocks(masked: MaskedText, name: str) -> list[Block]:
    """Find every ``name {`` opener, tagged with its brace depth.

    Nested blocks (``buildscript { dependencies { ... } }``) are returned too;
    callers that only care about top-level blocks filter on ``depth == 0``.
    """
    code = masked.code
    limit = masked.limit
    pattern = re.compile(rf"(?<![\w.$]){re.escape(name)}\s*\{{")
    blocks: list[Block] = []
    depth = 0
    pos = 0
    for m in pattern.finditer(code, 0, limit):
        for c in code[pos : m.start()]:
            if c == "{":
                depth += 1
            elif c == "}":
                depth = max(0, depth - 1)
        pos = m.start()
        open_brace = m.end() - 1
        blocks.append(
            Block(
                name=name,
                start=m.start(),
                open_brace=open_brace,
                close_brace=match_brace(code, open_brace, limit),
                depth=depth,
            )
        )
    return blocks


def top_level_blocks(masked: MaskedText, name: str) -> list[Block]:
    return [b for b in find_blocks(masked, name) if b.depth == 0]


def statement_starts(code: str, start: int, end: int) -> Iterator[int]:
    """Yield the offset of the first code character of every line at the
    nesting level of ``code[start:end]``.

    Lines that continue an open ``(`` or ``{`` of an earlier statement are
    skipped, as are blank and comment-only lines. Only the first statement of
    a physical line is reported.
    """
    depth = 0
    at_line_start = True
    for i in range(start, end):
        c = code[i]
        if c in _BLANKED_NEWLINES:
            at_line_start = True
            continue
        if c.isspace():
            continue
        if at_line_start and depth == 0:
            yield i
        at_line_start = False
        if c in "({":
            depth += 1
        elif c in ")}":
            depth = max(0, depth - 1)


def extend_statement(masked: MaskedText, head_end: int, limit: int) -> int:
    """Return the end of a statement whose syntax ends at *head_end*.

    A ``;`` directly after the statement and a trailing comment on the same
    line belong to it. Trailing whitespace and the line terminator do not.
    """
    text, code = masked.text, masked.code
    end = head_end
    j = end
    while j < limit and code[j] in " \t":
        j += 1
    if j < limit and code[j] == ";":
        end = j = j + 1
        while j < limit and code[j] in " \t":
            j += 1
    if j >= limit or code[j] in _BLANKED_NEWLINES:
        return end + len(text[end:j].rstrip())
    return end


def line_start(text: str, offset: int) -> int:
    """Offset of the first character of the line holding *offset*."""
    i = offset
    while i > 0 and text[i - 1] not in _BLANKED_NEWLINES:
        i -= 1
    return i


def indentation_at(text: str, offset: int) -> str:
    """Leading whitespace of the line holding *offset*."""
    start = line_start(text, offset)
    end = start
    while end < len(text) and text[end] in " \t":
        end += 1
    return text[start:end]


def only_whitespace_before(text: str, offset: int) -> bool:
    return text[line_start(text, offset) : offset].strip(" \t") == ""


def line_terminator_length(text: str, offset: int) -> int:
    """Length of the line terminator starting at *offset* (0, 1 or 2)."""
    if text.startswith("\r\n", offset):
        return 2
    if offset < len(text) and text[offset] in _BLANKED_NEWLINES:
        return 1
    return 0


def detect_newline(text: str) -> str:
    if "\r\n" in text:
        return "\r\n"
    if "\r" in text and "\n" not in text:
        return "\r"
    return "\n"
