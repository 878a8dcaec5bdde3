"""Error types raised by the shader preprocessor.

Every failure is a :class:`PreprocessError` subclass.  Errors are never
recovered internally: they abort the current ``process`` call and bubble to
the caller, collecting one :class:`~wgslpp.preprocessor.Diagnostic` per
recursion level they cross in :attr:`PreprocessError.trace`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from wgslpp.preprocessor import Diagnostic


class PreprocessError(Exception):
    """Base class for all preprocessing failures."""

    kind: str = "PreprocessError"
    description: str = "Error occurred during preprocessing!"

    def __init__(
        self,
        message: str = "",
        *,
        path: Optional[str] = None,
        line_number: Optional[int] = None,
        line_text: Optional[str] = None,
    ) -> None:
        super().__init__(message or self.description)
        self.message = message or self.description
        self.path = path
        self.line_number = line_number
        self.line_text = line_text
        self.trace: List["Diagnostic"] = []

    def locate(self, path: str, line_number: Optional[int], line_text: Optional[str]) -> None:
        """Record where the error originated, keeping the innermost location."""
        if self.path is None:
            self.path = path
            self.line_number = line_number
            self.line_text = line_text

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "message": self.message,
            "path": self.path,
            "line_number": self.line_number,
            "line_text": self.line_text,
            "trace": [d.to_dict() for d in self.trace],
        }


class InvalidPathError(PreprocessError):
    kind = "InvalidPath"
    description = "Invalid path!"


class InvalidFileError(PreprocessError):
    kind = "InvalidFile"
    description = "Could not read file!"


class InvalidImportError(PreprocessError):
    kind = "InvalidImport"
    description = "Invalid import!"


class CyclicImportError(PreprocessError):
    kind = "CyclicImport"
    description = "Cycle detected in imports!"


class InvalidConditionError(PreprocessError):
    kind = "InvalidCondition"
    description = "Unknown condition!"


class InvalidConstantError(PreprocessError):
    kind = "InvalidConstant"
    description = "Unknown or unrenderable constant!"


class ShaderSyntaxError(PreprocessError):
    kind = "SyntaxError"
    description = "Syntax error!"


class MismatchedIfError(PreprocessError):
    kind = "MismatchedIf"
    description = "Mismatched #if/#else/#endif!"


class CacheError(PreprocessError):
    kind = "CacheError"
    description = "Could not store processed shader in cache!"


class ResourceError(PreprocessError):
    kind = "ResourceError"
    description = "Resource limit exceeded!"


class ImportDepthError(ResourceError):
    kind = "ImportDepth"
    description = "Maximum import depth exceeded!"


__all__ = [
    "CacheError",
    "CyclicImportError",
    "ImportDepthError",
    "InvalidConditionError",
    "InvalidConstantError",
    "InvalidFileError",
    "InvalidImportError",
    "InvalidPathError",
    "MismatchedIfError",
    "PreprocessError",
    "ResourceError",
    "ShaderSyntaxError",
]
