"""Conditional-compilation state machine for ``#if`` / ``#else`` / ``#endif``."""

from __future__ import annotations

from typing import List, Mapping

from wgslpp.errors import InvalidConditionError, MismatchedIfError


class ConditionStack:
    """Stack of the truth values of the currently open ``#if`` blocks.

    One stack is used per processed file: blocks never span an import
    boundary, and every block opened in a file must be closed in it.
    A line is visible only if *every* open block is true.
    """

    def __init__(self) -> None:
        self._stack: List[bool] = []

    def __len__(self) -> int:
        return len(self._stack)

    @property
    def visible(self) -> bool:
        return all(self._stack)

    def push_if(self, name: str, conditions: Mapping[str, bool]) -> None:
        if name not in conditions:
            raise InvalidConditionError(f"Unknown condition '{name}'!")
        self._stack.append(bool(conditions[name]))

    def flip_else(self) -> None:
        if not self._stack:
            raise MismatchedIfError("#else without a matching #if!")
        self._stack.append(not self._stack.pop())

    def end_if(self) -> None:
        if not self._stack:
            raise MismatchedIfError("#endif without a matching #if!")
        self._stack.pop()

    def close(self) -> None:
        """Check that the end of input leaves no block open."""
        if self._stack:
            raise MismatchedIfError(
                f"{len(self._stack)} #if block(s) not closed before end of file!"
            )
