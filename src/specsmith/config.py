"""Configuration resolution and atomic file writes.

Settings come from four layers, highest precedence first:

1. CLI flags (``--root``, ``--output``, ``--format``);
2. environment variables (``SPECSMITH_ROOT``, ``SPECSMITH_PREFIX``,
   ``SPECSMITH_DRAFT_ONLY``, ``SPECSMITH_OUTPUT_DIR``, ``SPECSMITH_FORMAT``);
3. the project file ``./specsmith.json`` (or an explicit ``--config`` path);
4. the defaults declared on :class:`~specsmith.models.Settings`.

All file writes go through :func:`atomic_write` (temp file + rename) so an
interrupted build never leaves a truncated document behind.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from specsmith.exceptions import ConfigError
from specsmith.models import Settings

_PROJECT_CONFIG_FILENAME = "specsmith.json"

_ENV_VARS = {
    "SPECSMITH_ROOT": "root",
    "SPECSMITH_PREFIX": "prefix",
    "SPECSMITH_DRAFT_ONLY": "draft_only",
    "SPECSMITH_OUTPUT_DIR": "output_dir",
    "SPECSMITH_FORMAT": "output_format",
}

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


# --- Atomic file writes ---


def atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. On any failure the
    temp file is removed.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close below
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Project-local config ---


def load_project_config(path: Optional[Path] = None) -> Optional[dict[str, Any]]:
    """Load project configuration from ``./specsmith.json`` or *path*.

    Returns:
        The parsed JSON object, or ``None`` when the default file does not
        exist.

    Raises:
        ConfigError: If the file is not valid JSON, is not an object, or an
            explicit *path* does not exist.
    """
    explicit = path is not None
    path = path if path is not None else Path.cwd() / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        if explicit:
            raise ConfigError(f"Config file not found: {path}")
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        raise ConfigError(f"Invalid project config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Project config at {path} must be a JSON object")
    return data


# --- Precedence resolution ---


def resolve_settings(
    cli_root: Optional[str] = None,
    cli_output_dir: Optional[str] = None,
    cli_format: Optional[str] = None,
    cli_draft_only: Optional[bool] = None,
    config_path: Optional[Path] = None,
) -> Settings:
    """Resolve the effective :class:`~specsmith.models.Settings`.

    Raises:
        ConfigError: If any layer holds an invalid value.
    """
    # 4 + 3. Defaults, overlaid with the project file
    values: dict[str, Any] = dict(load_project_config(config_path) or {})

    # 2. Environment variables
    for env_var, field in _ENV_VARS.items():
        raw = os.environ.get(env_var)
        if raw:
            values[field] = _parse_bool(env_var, raw) if field == "draft_only" else raw

    # 1. CLI flags (highest precedence)
    if cli_root is not None:
        values["root"] = cli_root
    if cli_output_dir is not None:
        values["output_dir"] = cli_output_dir
    if cli_format is not None:
        values["output_format"] = cli_format
    if cli_draft_only is not None:
        values["draft_only"] = cli_draft_only

    try:
        return Settings.model_validate(values)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be a boolean (got {raw!r})")
