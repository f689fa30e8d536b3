"""Text-splicing helpers shared by the script and XML mutators."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import structlog

from unidep.core.files import write_text_atomic
from unidep.engines.dependency_scanner.blocks import (
    line_start,
    line_terminator_length,
    only_whitespace_before,
)
from unidep.engines.dependency_scanner.models import SourceRange
from unidep.exceptions import EditRejected, StaleRangeError, UnsupportedEditError

log = structlog.get_logger("unidep.mutator")

DEFAULT_INDENT = "    "

_FORBIDDEN_TOKEN_CHARS = frozenset("'\"$<>&\\\r\n\t ")


def splice(text: str, start: int, end: int, replacement: str) -> str:
    return text[:start] + replacement + text[end:]


def ensure_range(source: SourceRange, text: str, target: str) -> None:
    """Reject ranges that are unknown or fall outside *text*."""
    if source.offset < 0:
        raise StaleRangeError(f"{target}: source range could not be determined when scanning")
    if not source.is_valid_for(text):
        raise StaleRangeError(
            f"{target}: range {source.offset}..{source.end} is outside the file "
            f"({len(text)} characters); rescan before editing"
        )


def check_token(value: str, what: str) -> str:
    """Validate a version or coordinate part before splicing it into a file."""
    if not value or _FORBIDDEN_TOKEN_CHARS.intersection(value):
        raise UnsupportedEditError(f"invalid {what}: {value!r}")
    return value


def removal_span(text: str, start: int, end: int) -> tuple[int, int]:
    """Span to delete for a declaration occupying ``text[start:end]``.

    When the declaration is alone on its line the leading indentation,
    trailing blanks and exactly one line terminator go with it.
    """
    stop = end
    while stop < len(text) and text[stop] in " \t":
        stop += 1
    terminator = line_terminator_length(text, stop)
    if terminator == 0 and stop < len(text):
        return start, end
    if only_whitespace_before(text, start):
        start = line_start(text, start)
    return start, stop + terminator


def insert_before_closer(
    text: str,
    closer: int,
    floor: int,
    payload: str,
    closer_indent: str,
    newline: str,
) -> str:
    """Insert *payload* (already indented) on its own line before *closer*.

    *closer* is the offset of a closing ``}`` or ``</tag>``; *floor* is the
    offset just past the matching opener, which trailing-blank trimming never
    crosses.
    """
    if only_whitespace_before(text, closer) and line_start(text, closer) > floor:
        at = line_start(text, closer)
        return text[:at] + payload + newline + text[at:]
    p = closer
    while p > floor and text[p - 1] in " \t\r\n":
        p -= 1
    return text[:p] + newline + payload + newline + closer_indent + text[closer:]


def guarded(intent: str, target: str, edit: Callable[[], str]) -> str | None:
    """Run *edit*; a refusal is logged and turned into ``None``."""
    try:
        return edit()
    except EditRejected as exc:
        log.warning("mutator.rejected", intent=intent, target=target, reason=str(exc))
        return None


def apply_changes(file_path: str | Path, new_text: str) -> None:
    """Persist a mutator result. The file is replaced atomically, never partially written.

    Every source range recorded for this file is stale afterwards.
    """
    write_text_atomic(file_path, new_text)
    log.info("mutator.applied", file=str(file_path), length=len(new_text))
