"""Directive grammar — classify a shader source line and extract its payload.

The grammar is a handful of small rules, each a pure function
``rule(text, pos) -> (value, new_pos)`` that raises :class:`GrammarError`
on failure.  Rules never backtrack into each other: a repeated unit either
matches completely or stops the repetition at the position it started.

Recognised forms:
  - ``#import "path/to/file.wgsl"`` — import directive
  - ``#if name`` / ``#else`` / ``#endif`` — conditional directives
  - ``#(name)`` — inline constant reference inside a content line

All returned strings are fresh ``str`` objects owned by the caller.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Pattern, Tuple


MAX_REPEAT = 16
EXTENSION = ".wgsl"

_ALNUM = re.compile(r"[A-Za-z0-9]+")
_ALNUM_OPT = re.compile(r"[A-Za-z0-9]*")
_UNDERSCORES = re.compile(r"_+")
_DOTS_SLASH = re.compile(r"\.+/")
_HSPACE = re.compile(r"[ \t]*")
_HSPACE_REQUIRED = re.compile(r"[ \t]+")
_TRAILING = re.compile(r"\s*\Z")
_CONDITIONAL_KEYWORD = re.compile(r"#(if|else|endif)(?![A-Za-z0-9_])")


class GrammarError(ValueError):
    """A grammar rule failed to match."""

    def __init__(self, expected: str, text: str, pos: int) -> None:
        super().__init__(f"expected {expected} at column {pos + 1}: {text!r}")
        self.expected = expected
        self.text = text
        self.pos = pos


class LineKind(str, Enum):
    IMPORT = "import"
    IF = "if"
    ELSE = "else"
    ENDIF = "endif"
    CONTENT = "content"


@dataclass(frozen=True)
class ConstantReference:
    """A ``#(name)`` token located within a line.

    ``start`` is the index of ``#`` and ``end`` the index just past ``)``.
    """

    name: str
    start: int
    end: int


# ═══════════════════════════════════════════════════════════════════
# Primitive rules
# ═══════════════════════════════════════════════════════════════════

def _expect(pattern: Pattern[str], text: str, pos: int, expected: str) -> Tuple[str, int]:
    m = pattern.match(text, pos)
    if not m:
        raise GrammarError(expected, text, pos)
    return m.group(0), m.end()


def _optional(pattern: Pattern[str], text: str, pos: int) -> Tuple[str, int]:
    m = pattern.match(text, pos)
    if not m:
        return "", pos
    return m.group(0), m.end()


def literal(expected: str, text: str, pos: int) -> Tuple[str, int]:
    if not text.startswith(expected, pos):
        raise GrammarError(repr(expected), text, pos)
    return expected, pos + len(expected)


def end_of_line(text: str, pos: int) -> Tuple[str, int]:
    """Accept only trailing whitespace (including a newline) up to the end."""
    return _expect(_TRAILING, text, pos, "end of line")


# ═══════════════════════════════════════════════════════════════════
# Composite rules
# ═══════════════════════════════════════════════════════════════════

def identifier(text: str, pos: int = 0) -> Tuple[str, int]:
    """``(_* alnum+){1,16}`` — e.g. ``workgroup_x`` or ``_private__value2``."""
    start = pos
    units = 0
    while units < MAX_REPEAT:
        _, p = _optional(_UNDERSCORES, text, pos)
        m = _ALNUM.match(text, p)
        if not m:
            break
        pos = m.end()
        units += 1
    if units == 0:
        raise GrammarError("identifier", text, start)
    return text[start:pos], pos


def path_segment(text: str, pos: int = 0) -> Tuple[str, int]:
    """One directory step: ``(\\.+/)? _* alnum+ /?``."""
    start = pos
    _, pos = _optional(_DOTS_SLASH, text, pos)
    _, pos = _optional(_UNDERSCORES, text, pos)
    _, pos = _expect(_ALNUM, text, pos, "path segment")
    if text.startswith("/", pos):
        pos += 1
    return text[start:pos], pos


def import_path(text: str, pos: int = 0) -> Tuple[str, int]:
    """Up to 16 segments, an optional file stem, and the ``.wgsl`` extension.

    A single leading ``/`` marks an absolute path.
    """
    start = pos
    if text.startswith("/", pos):
        pos += 1
    for _ in range(MAX_REPEAT):
        try:
            _, pos = path_segment(text, pos)
        except GrammarError:
            break
    _, pos = _optional(_ALNUM_OPT, text, pos)
    _, pos = literal(EXTENSION, text, pos)
    return text[start:pos], pos


# ═══════════════════════════════════════════════════════════════════
# Line-level parsers
# ═══════════════════════════════════════════════════════════════════

def classify_line(line: str) -> LineKind:
    """Decide how a raw source line is handled.

    Only the leading token (after horizontal whitespace) is inspected; the
    payload is validated later by the matching ``parse_*`` function.
    """
    stripped = line.lstrip(" \t")
    if stripped.startswith("#import"):
        return LineKind.IMPORT
    m = _CONDITIONAL_KEYWORD.match(stripped)
    if m:
        return LineKind(m.group(1))
    return LineKind.CONTENT


def parse_import(line: str) -> str:
    """Return the quoted path of an ``#import "..."`` line, verbatim."""
    pos = _HSPACE.match(line).end()
    _, pos = literal("#import", line, pos)
    _, pos = _optional(_HSPACE, line, pos)
    _, pos = literal('"', line, pos)
    path, pos = import_path(line, pos)
    _, pos = literal('"', line, pos)
    end_of_line(line, pos)
    return path


def parse_if(line: str) -> str:
    """Return the condition name of an ``#if name`` line."""
    pos = _HSPACE.match(line).end()
    _, pos = literal("#if", line, pos)
    _, pos = _expect(_HSPACE_REQUIRED, line, pos, "whitespace")
    name, pos = identifier(line, pos)
    end_of_line(line, pos)
    return name


def parse_bare(line: str, keyword: str) -> None:
    """Validate an ``#else`` / ``#endif`` line, which takes no payload."""
    pos = _HSPACE.match(line).end()
    _, pos = literal(keyword, line, pos)
    end_of_line(line, pos)


def find_constant(line: str) -> Optional[ConstantReference]:
    """Locate and parse the first ``#(name)`` token on *line*.

    Returns ``None`` when the line contains no ``#`` at all.  A ``#`` that
    does not start a well-formed reference raises :class:`GrammarError`.
    """
    start = line.find("#")
    if start == -1:
        return None
    _, pos = literal("#(", line, start)
    name, pos = identifier(line, pos)
    _, pos = literal(")", line, pos)
    return ConstantReference(name=name, start=start, end=pos)
