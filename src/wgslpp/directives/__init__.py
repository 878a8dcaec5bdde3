"""Directive handling: grammar, conditional blocks, and constant substitution."""

from .conditions import ConditionStack
from .constants import DEFAULT_MAX_LINE_LENGTH, Scalar, render_value, substitute_constant
from .grammar import (
    EXTENSION,
    MAX_REPEAT,
    ConstantReference,
    GrammarError,
    LineKind,
    classify_line,
    find_constant,
    identifier,
    import_path,
    parse_bare,
    parse_if,
    parse_import,
)

__all__ = [
    "ConditionStack",
    "ConstantReference",
    "DEFAULT_MAX_LINE_LENGTH",
    "EXTENSION",
    "GrammarError",
    "LineKind",
    "MAX_REPEAT",
    "Scalar",
    "classify_line",
    "find_constant",
    "identifier",
    "import_path",
    "parse_bare",
    "parse_if",
    "parse_import",
    "render_value",
    "substitute_constant",
]
