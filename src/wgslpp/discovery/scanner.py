"""Shader scanner — extract directive metadata from a .wgsl file.

A static pass over the source text (no filesystem access, no import
resolution) that discovers:
  - ``#import "..."`` paths
  - ``#if name`` conditions — the booleans a caller must supply
  - ``#(name)`` constants — the values a caller must supply
  - lines that start a directive but do not parse

Used by the CLI ``--scan`` mode and for pre-flight checks before a full
``process`` call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Tuple

from wgslpp.directives import (
    GrammarError,
    LineKind,
    classify_line,
    find_constant,
    parse_bare,
    parse_if,
    parse_import,
)


# ═══════════════════════════════════════════════════════════════════
# Data classes
# ═══════════════════════════════════════════════════════════════════

@dataclass
class ShaderMetadata:
    """Structured metadata extracted from a shader source."""

    imports: List[str] = field(default_factory=list)
    conditions: List[str] = field(default_factory=list)
    constants: List[str] = field(default_factory=list)
    invalid_lines: List[Tuple[int, str]] = field(default_factory=list)
    max_nesting: int = 0

    @property
    def is_valid(self) -> bool:
        return not self.invalid_lines


# ═══════════════════════════════════════════════════════════════════
# Scanner
# ═══════════════════════════════════════════════════════════════════

def scan_shader(source: str) -> ShaderMetadata:
    """Scan a shader and extract structured metadata.

    Every ``#if`` and ``#(name)`` is reported, including those inside
    blocks that a given set of conditions would hide, so the result lists
    every option the shader can ever ask for.  Names are only taken from
    lines that parse; a stray ``#else`` / ``#endif`` and an unclosed block
    (reported at the last line) count as invalid lines.
    """
    meta = ShaderMetadata()
    lines = source.split("\n")

    depth = 0
    for number, line in enumerate(lines, start=1):
        kind = classify_line(line)
        try:
            if kind is LineKind.IMPORT:
                _add_unique(meta.imports, parse_import(line))
            elif kind is LineKind.IF:
                _add_unique(meta.conditions, parse_if(line))
                depth += 1
                meta.max_nesting = max(meta.max_nesting, depth)
            elif kind is LineKind.ELSE:
                parse_bare(line, "#else")
                if depth == 0:
                    meta.invalid_lines.append((number, line))
            elif kind is LineKind.ENDIF:
                parse_bare(line, "#endif")
                if depth == 0:
                    meta.invalid_lines.append((number, line))
                else:
                    depth -= 1
            else:
                # Only the first token on a line is ever substituted
                ref = find_constant(line)
                if ref is not None:
                    _add_unique(meta.constants, ref.name)
        except GrammarError:
            meta.invalid_lines.append((number, line))

    if depth:
        meta.invalid_lines.append((len(lines), lines[-1]))
    return meta


def _add_unique(names: List[str], name: str) -> None:
    if name not in names:
        names.append(name)
