"""Shader catalog — finds .wgsl files and preprocesses them in one batch.

A batch shares a single :class:`~wgslpp.preprocessor.ShaderPreprocessor`,
so a library file imported by many shaders is read and processed once.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from wgslpp.errors import PreprocessError
from wgslpp.preprocessor import ProcessOptions, ShaderPreprocessor

logger = logging.getLogger(__name__)

SHADER_GLOB = "*.wgsl"


@dataclass
class ShaderEntry:
    """Output of one successfully processed shader."""

    path: Path
    output: str

    @property
    def content_hash(self) -> str:
        return _content_hash(self.output)


@dataclass
class BatchResult:
    """Outputs and failures of a batch run, keyed by input path."""

    entries: List[ShaderEntry] = field(default_factory=list)
    errors: Dict[Path, PreprocessError] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors


def _content_hash(text: str) -> str:
    """SHA-256 hex digest of processed output."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def find_shaders(dirs: Iterable[Path]) -> List[Path]:
    """Recursively list .wgsl files under *dirs*, deduplicated by resolved path."""
    found: List[Path] = []
    seen: set[Path] = set()

    for base_dir in dirs:
        if not base_dir.is_dir():
            logger.warning("Skipping %s: not a directory", base_dir)
            continue
        for path in sorted(base_dir.rglob(SHADER_GLOB)):
            resolved = path.resolve()
            if resolved in seen or not resolved.is_file():
                continue
            seen.add(resolved)
            found.append(resolved)

    return found


def process_all(
    paths: Iterable[Path],
    options: Optional[ProcessOptions] = None,
    preprocessor: Optional[ShaderPreprocessor] = None,
) -> BatchResult:
    """Process every shader in *paths*, collecting failures per file.

    A failing shader does not stop the batch; its error is recorded in
    :attr:`BatchResult.errors` and the remaining shaders are processed.
    """
    preprocessor = preprocessor or ShaderPreprocessor()
    result = BatchResult()
    for path in paths:
        try:
            output = preprocessor.process(path, options)
        except PreprocessError as err:
            result.errors[path] = err
            continue
        result.entries.append(ShaderEntry(path=path, output=output))
    logger.info(
        "Processed %d shader(s), %d failed", len(result.entries), len(result.errors)
    )
    return result
