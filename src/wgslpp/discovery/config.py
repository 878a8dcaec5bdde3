"""Two-tier configuration system for wgslpp.

Resolution order (later overrides earlier):
  1. Built-in defaults
  2. Global user config:  ~/.wgslpp/config.json
  3. Project config:      .wgslpp.config.json (searched cwd → parents)
  4. CLI flags (--cond, --const, --max-depth, etc.)
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from wgslpp.preprocessor import PreprocessorConfig, ProcessOptions

logger = logging.getLogger(__name__)


GLOBAL_DIR = Path.home() / ".wgslpp"
GLOBAL_CONFIG = GLOBAL_DIR / "config.json"
PROJECT_CONFIG_NAME = ".wgslpp.config.json"

_LIMIT_KEYS = ("max_import_depth", "max_file_bytes", "max_line_length")


@dataclass
class WgslppEnvConfig:
    """Resolved configuration for wgslpp."""

    preprocessor: PreprocessorConfig = field(default_factory=PreprocessorConfig)
    options: ProcessOptions = field(default_factory=ProcessOptions)

    # Provenance tracking (which files contributed)
    _global_path: Optional[Path] = field(default=None, repr=False)
    _project_path: Optional[Path] = field(default=None, repr=False)


def _find_project_config(start: Optional[Path] = None) -> Optional[Path]:
    """Walk from *start* up to the filesystem root looking for project config."""
    current = (start or Path.cwd()).resolve()
    for _ in range(50):  # safety limit
        candidate = current / PROJECT_CONFIG_NAME
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break
        current = parent
    return None


def _load_json(path: Path) -> Dict[str, Any]:
    """Load a JSON config file, returning {} (with a warning) if unreadable."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Ignoring config %s: %s", path, exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring config %s: not a JSON object", path)
        return {}
    return data


def _apply_dict(config: WgslppEnvConfig, data: Dict[str, Any]) -> None:
    """Merge a raw JSON dict into a config object."""
    for key in _LIMIT_KEYS:
        if key not in data:
            continue
        value = data[key]
        if value is None and key != "max_import_depth":
            setattr(config.preprocessor, key, None)
            continue
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValueError(f"'{key}' must be a non-negative integer, got {value!r}")
        setattr(config.preprocessor, key, value)
    if "conditions" in data or "constants" in data:
        config.options = config.options.merged(ProcessOptions.from_dict(data))


def load_config(project_dir: Optional[Path] = None) -> WgslppEnvConfig:
    """Load and merge the two-tier configuration.

    Parameters
    ----------
    project_dir : Path, optional
        Starting directory for project config search (defaults to cwd).
    """
    config = WgslppEnvConfig()

    # 1. Global
    if GLOBAL_CONFIG.is_file():
        _apply_dict(config, _load_json(GLOBAL_CONFIG))
        config._global_path = GLOBAL_CONFIG

    # 2. Project (overrides global)
    proj = _find_project_config(project_dir)
    if proj:
        _apply_dict(config, _load_json(proj))
        config._project_path = proj

    return config


def load_options(path: Path) -> ProcessOptions:
    """Load an options file, choosing the parser by suffix."""
    if path.suffix in (".yaml", ".yml"):
        return ProcessOptions.from_yaml(path)
    return ProcessOptions.from_json(path)


def print_env(config: WgslppEnvConfig) -> str:
    """Return a formatted string describing the resolved environment."""
    limits = config.preprocessor
    lines = []
    lines.append("wgslpp Environment")
    lines.append("=" * 50)
    lines.append("")
    lines.append(f"  Global config:    {config._global_path or '(not found)'}")
    lines.append(f"  Project config:   {config._project_path or '(not found)'}")
    lines.append(f"  Max import depth: {limits.max_import_depth}")
    lines.append(f"  Max file bytes:   {limits.max_file_bytes if limits.max_file_bytes is not None else '(unlimited)'}")
    lines.append(f"  Max line length:  {limits.max_line_length if limits.max_line_length is not None else '(unlimited)'}")
    lines.append("")
    lines.append("  Conditions:")
    for name, value in sorted(config.options.conditions.items()):
        lines.append(f"    {name} = {'true' if value else 'false'}")
    if not config.options.conditions:
        lines.append("    (none)")
    lines.append("  Constants:")
    for name, value in sorted(config.options.constants.items()):
        lines.append(f"    {name} = {value!r}")
    if not config.options.constants:
        lines.append("    (none)")
    lines.append("")
    return "\n".join(lines)
