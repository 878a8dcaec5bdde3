"""Shader preprocessor — flattens ``#import`` trees and evaluates directives."""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import asdict, dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

import yaml

from wgslpp.directives import (
    DEFAULT_MAX_LINE_LENGTH,
    ConditionStack,
    GrammarError,
    LineKind,
    Scalar,
    classify_line,
    parse_bare,
    parse_if,
    parse_import,
    substitute_constant,
)
from wgslpp.errors import (
    CacheError,
    CyclicImportError,
    ImportDepthError,
    InvalidFileError,
    InvalidImportError,
    InvalidPathError,
    PreprocessError,
    ResourceError,
    ShaderSyntaxError,
)
from wgslpp.files import (
    DEFAULT_MAX_FILE_BYTES,
    FileAccess,
    FileTooLargeError,
    LocalFileAccess,
    PathLike,
)

logger = logging.getLogger(__name__)


@dataclass
class Diagnostic:
    """One logged failure, with the position it crossed."""

    severity: str
    kind: str
    message: str
    path: str
    line_number: Optional[int] = None
    line_text: Optional[str] = None

    def format(self) -> str:
        where = self.path if self.line_number is None else f"{self.path} (line {self.line_number})"
        if self.line_text is None:
            return f"{self.message}\n{where}"
        return f"{self.message}\n{where}: {self.line_text}"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ProcessOptions:
    """Named booleans for ``#if`` and named scalars for ``#(name)``."""

    conditions: Dict[str, bool] = field(default_factory=dict)
    constants: Dict[str, Scalar] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> "ProcessOptions":
        if not isinstance(data, dict):
            return cls()
        conditions = data.get("conditions") or {}
        constants = data.get("constants") or {}
        if not isinstance(conditions, dict) or not isinstance(constants, dict):
            raise ValueError("'conditions' and 'constants' must be mappings")
        for name, value in conditions.items():
            if not isinstance(value, bool):
                raise ValueError(f"Condition '{name}' must be true or false, got {value!r}")
        for name, value in constants.items():
            if not isinstance(value, (bool, int, float, str)):
                raise ValueError(
                    f"Constant '{name}' must be a number, boolean or string, got {value!r}"
                )
        return cls(
            conditions={str(k): v for k, v in conditions.items()},
            constants={str(k): v for k, v in constants.items()},
        )

    @classmethod
    def from_yaml(cls, path: Path) -> "ProcessOptions":
        """Load options from a YAML file."""
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {path}: {exc}") from exc
        return cls.from_dict(data)

    @classmethod
    def from_json(cls, path: Path) -> "ProcessOptions":
        """Load options from a JSON file."""
        return cls.from_dict(json.loads(path.read_text(encoding="utf-8")))

    def merged(self, other: "ProcessOptions") -> "ProcessOptions":
        """Return a copy where values from *other* override this one."""
        return ProcessOptions(
            conditions={**self.conditions, **other.conditions},
            constants={**self.constants, **other.constants},
        )


@dataclass
class PreprocessorConfig:
    """Resource limits for the preprocessor."""

    max_import_depth: int = 64
    max_file_bytes: Optional[int] = DEFAULT_MAX_FILE_BYTES
    max_line_length: Optional[int] = DEFAULT_MAX_LINE_LENGTH


# Python frames consumed per import level, with headroom for the line parsers
_FRAMES_PER_IMPORT = 5


def _import_depth_limit(configured: int) -> int:
    """Clamp *configured* so the import recursion stays inside the interpreter stack."""
    return min(configured, sys.getrecursionlimit() // _FRAMES_PER_IMPORT)


def _has_rest(lines: List[str], index: int) -> bool:
    """True if any text follows line *index* in the original source."""
    last = len(lines) - 1
    if index >= last:
        return False
    return index < last - 1 or lines[last] != ""


class ShaderPreprocessor:
    """Resolves ``#import``, ``#if``/``#else``/``#endif`` and ``#(name)``.

    Processed files are cached by canonical path for the lifetime of the
    instance and reused verbatim for every later import of that path, even
    if a later call passes different options.  The import ancestry used for
    cycle detection is scoped to a single :meth:`process` call.

    Instances are not thread-safe; use one per thread or lock externally.
    """

    def __init__(
        self,
        config: Optional[PreprocessorConfig] = None,
        *,
        files: Optional[FileAccess] = None,
        on_diagnostic: Optional[Callable[[Diagnostic], None]] = None,
    ) -> None:
        self.config = config or PreprocessorConfig()
        self.files = files or LocalFileAccess(self.config.max_file_bytes)
        self.on_diagnostic = on_diagnostic
        self._cache: Dict[str, str] = {}

    @property
    def cache(self) -> Mapping[str, str]:
        """Read-only view of canonical path → processed text."""
        return MappingProxyType(self._cache)

    def process(self, path: PathLike, options: Optional[ProcessOptions] = None) -> str:
        """Process the shader at *path* and return the flattened source.

        Args:
            path: Shader file, absolute or relative to the working directory.
            options: Conditions and constants; defaults to empty mappings.

        Raises:
            PreprocessError: A subclass identifying the failure.  Nothing is
                cached for a failed call.
        """
        options = options or ProcessOptions()
        try:
            abs_path = self.files.canonicalize(path)
        except OSError as exc:
            err = InvalidPathError(f"Cannot resolve path '{path}': {exc}")
            self._report(err, str(path))
            raise err from exc

        cached = self._cache.get(str(abs_path))
        if cached is not None:
            logger.debug("Serving %s from cache", abs_path)
            return cached
        return self._process_file(abs_path, options, ())

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _process_file(
        self,
        abs_path: Path,
        options: ProcessOptions,
        ancestors: Tuple[str, ...],
    ) -> str:
        key = str(abs_path)
        text = self._read(abs_path)
        chain = ancestors + (key,)

        lines = text.split("\n")
        stack = ConditionStack()
        output: List[str] = []
        for i, line in enumerate(lines):
            try:
                emitted = self._process_line(abs_path, line, options, chain, stack)
            except PreprocessError as err:
                self._report(err, key, i + 1, line)
                raise
            if emitted is None:
                continue
            output.append(emitted)
            if _has_rest(lines, i):
                output.append("\n")

        try:
            stack.close()
        except PreprocessError as err:
            self._report(err, key, len(lines), lines[-1])
            raise

        content = "".join(output)
        self._store(key, content)
        return content

    def _read(self, abs_path: Path) -> str:
        key = str(abs_path)
        try:
            raw = self.files.read_file(abs_path)
        except FileTooLargeError as exc:
            err = ResourceError(str(exc))
            self._report(err, key)
            raise err from exc
        except OSError as exc:
            err = InvalidFileError(f"Cannot read file: {exc}")
            self._report(err, key)
            raise err from exc
        try:
            return raw.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            err = InvalidFileError(f"File is not valid UTF-8: {exc}")
            self._report(err, key)
            raise err from exc

    def _process_line(
        self,
        abs_path: Path,
        line: str,
        options: ProcessOptions,
        chain: Tuple[str, ...],
        stack: ConditionStack,
    ) -> Optional[str]:
        """Handle one line; returns the text to emit or ``None``."""
        kind = classify_line(line)

        # Conditionals are evaluated even inside hidden blocks
        try:
            if kind is LineKind.IF:
                stack.push_if(parse_if(line), options.conditions)
                return None
            if kind is LineKind.ELSE:
                parse_bare(line, "#else")
                stack.flip_else()
                return None
            if kind is LineKind.ENDIF:
                parse_bare(line, "#endif")
                stack.end_if()
                return None
        except GrammarError as exc:
            raise ShaderSyntaxError(f"Malformed #{kind.value} directive ({exc})") from exc

        if not stack.visible:
            return None
        if kind is LineKind.IMPORT:
            return self._resolve_import(abs_path, line, options, chain)
        return substitute_constant(line, options.constants, self.config.max_line_length)

    def _resolve_import(
        self,
        abs_path: Path,
        line: str,
        options: ProcessOptions,
        chain: Tuple[str, ...],
    ) -> str:
        try:
            raw_path = parse_import(line)
        except GrammarError as exc:
            raise InvalidImportError(f"Malformed import ({exc})") from exc

        # Relative imports resolve against the importing shader, not the cwd
        candidate = Path(raw_path)
        if not candidate.is_absolute():
            candidate = abs_path.parent / candidate
        try:
            target = self.files.canonicalize(candidate)
        except OSError as exc:
            raise InvalidImportError(f"Cannot resolve import '{raw_path}': {exc}") from exc

        key = str(target)
        if target == abs_path or key in chain:
            raise CyclicImportError(f"'{raw_path}' is already being processed!")

        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("Import %s served from cache", key)
            return cached

        limit = _import_depth_limit(self.config.max_import_depth)
        if len(chain) > limit:
            raise ImportDepthError(
                f"Import of '{raw_path}' exceeds the maximum depth of {limit}!"
            )
        return self._process_file(target, options, chain)

    def _store(self, key: str, content: str) -> None:
        existing = self._cache.get(key)
        if existing is not None and existing != content:
            err = CacheError(f"A different result is already cached for {key}!")
            self._report(err, key)
            raise err
        self._cache[key] = content

    def _report(
        self,
        err: PreprocessError,
        path: str,
        line_number: Optional[int] = None,
        line_text: Optional[str] = None,
    ) -> None:
        """Log *err* at the current level and record it in ``err.trace``."""
        err.locate(path, line_number, line_text)
        diagnostic = Diagnostic(
            severity="error",
            kind=err.kind,
            message=err.message,
            path=path,
            line_number=line_number,
            line_text=line_text,
        )
        err.trace.append(diagnostic)
        if line_number is None:
            logger.error("%s\n%s", err.message, path)
        else:
            logger.error("%s\n%s (line %d): %s", err.message, path, line_number, line_text)
        if self.on_diagnostic:
            self.on_diagnostic(diagnostic)
