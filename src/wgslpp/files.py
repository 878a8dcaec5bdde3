"""File-access collaborator used by the preprocessor.

The preprocessor never touches the filesystem directly: it reads bytes and
canonicalizes paths through an object implementing :class:`FileAccess`.
"""

from __future__ import annotations

import errno
import logging
from pathlib import Path
from typing import Optional, Protocol, Union, runtime_checkable

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

MEGABYTES = 1024 * 1024
DEFAULT_MAX_FILE_BYTES = 8 * MEGABYTES


class FileTooLargeError(OSError):
    """Raised when a file exceeds the configured read limit."""


@runtime_checkable
class FileAccess(Protocol):
    """Protocol for file access backends.

    Any object with these two methods works — no inheritance required.
    Both methods raise an :class:`OSError` subclass on failure.
    """

    def read_file(self, path: Path) -> bytes: ...

    def canonicalize(self, path: PathLike) -> Path: ...


class LocalFileAccess:
    """Reads shaders from the local filesystem."""

    def __init__(self, max_file_bytes: Optional[int] = DEFAULT_MAX_FILE_BYTES) -> None:
        self.max_file_bytes = max_file_bytes

    def canonicalize(self, path: PathLike) -> Path:
        """Absolute, symlink-free, normalized path; the file must exist."""
        try:
            return Path(path).expanduser().resolve(strict=True)
        except RuntimeError as exc:
            # Symlink loops raise RuntimeError before Python 3.13
            raise OSError(errno.ELOOP, str(exc), str(path)) from exc

    def read_file(self, path: Path) -> bytes:
        if self.max_file_bytes is not None:
            size = path.stat().st_size
            if size > self.max_file_bytes:
                raise FileTooLargeError(
                    f"{path} is {size:,} bytes (limit {self.max_file_bytes:,})"
                )
        logger.debug("Reading %s", path)
        return path.read_bytes()
