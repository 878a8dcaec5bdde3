"""Inline constant substitution for ``#(name)`` tokens."""

from __future__ import annotations

from typing import Mapping, Optional, Union

from wgslpp.directives.grammar import GrammarError, find_constant
from wgslpp.errors import InvalidConstantError, ShaderSyntaxError

Scalar = Union[int, float, bool, str]

# Upper bound for a rewritten line; ``None`` disables the check.
DEFAULT_MAX_LINE_LENGTH = 4096


def render_value(value: object) -> str:
    """Render a constant in its natural WGSL-friendly textual form.

    Booleans become ``true`` / ``false`` so they read as WGSL literals.
    """
    # bool first: it is a subclass of int
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float, str)):
        return str(value)
    raise InvalidConstantError(
        f"Cannot render constant of type {type(value).__name__}!"
    )


def substitute_constant(
    line: str,
    constants: Mapping[str, Scalar],
    max_length: Optional[int] = DEFAULT_MAX_LINE_LENGTH,
) -> str:
    """Replace the first ``#(name)`` token in *line* with its value.

    Only the first token is substituted; any later ``#`` is left untouched.
    Lines without ``#`` are returned unchanged.

    Raises:
        ShaderSyntaxError: The first ``#`` does not begin a valid reference,
            or the rewritten line exceeds *max_length* characters.
        InvalidConstantError: The name is unknown or its value unrenderable.
    """
    try:
        ref = find_constant(line)
    except GrammarError as exc:
        raise ShaderSyntaxError(f"Malformed constant reference ({exc})") from exc
    if ref is None:
        return line

    if ref.name not in constants:
        raise InvalidConstantError(f"Unknown constant '{ref.name}'!")
    rendered = render_value(constants[ref.name])

    result = line[: ref.start] + rendered + line[ref.end:]
    if max_length is not None and len(result) > max_length:
        raise ShaderSyntaxError(
            f"Line exceeds {max_length} characters after substituting '{ref.name}'!"
        )
    return result
