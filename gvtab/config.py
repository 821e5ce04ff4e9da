"""Configuration handling for gvtab."""

from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from gvtab.editor import DEFAULT_EDITOR, DEFAULT_SERVER_NAME
from gvtab.resolver import ExpansionLimits
from gvtab.types import frozen_slots


@frozen_slots
class Config:
    """Runtime configuration for one gvtab invocation."""

    max_files: int = 30
    max_size: int = 1024 * 300
    max_depth: int = 8
    editor: str = DEFAULT_EDITOR
    server_name: str = DEFAULT_SERVER_NAME
    probe_timeout: float = 0.5
    send_timeout: float = 2.0

    @property
    def limits(self) -> ExpansionLimits:
        return ExpansionLimits(
            max_files=self.max_files,
            max_total_size=self.max_size,
            max_depth=self.max_depth,
        )


class ConfigFileError(Exception):
    """Raised when the config file or environment holds invalid settings."""


_TOML_KEY_TO_FIELD: dict[str, str] = {
    "max-files": "max_files",
    "max-size": "max_size",
    "max-depth": "max_depth",
    "editor": "editor",
    "server-name": "server_name",
    "probe-timeout": "probe_timeout",
    "send-timeout": "send_timeout",
}

_ENV_TO_FIELD: dict[str, str] = {
    "GVTAB_MAX_FILES": "max_files",
    "GVTAB_MAX_SIZE": "max_size",
    "GVTAB_MAX_DEPTH": "max_depth",
    "GVTAB_EDITOR": "editor",
    "GVTAB_SERVER_NAME": "server_name",
    "GVTAB_PROBE_TIMEOUT": "probe_timeout",
    "GVTAB_SEND_TIMEOUT": "send_timeout",
}

_INT_FIELDS = frozenset({"max_files", "max_size", "max_depth"})
_FLOAT_FIELDS = frozenset({"probe_timeout", "send_timeout"})
_STR_FIELDS = frozenset({"editor", "server_name"})


def _require_limit(key: str, value: object) -> int:
    """Raise ConfigFileError unless *value* is an int (not bool) >= 0."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigFileError(f"'{key}' must be an integer, got {type(value).__name__}")
    if value < 0:
        raise ConfigFileError(f"'{key}' must not be negative, got {value}")
    return value


def _require_timeout(key: str, value: object) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigFileError(f"'{key}' must be a number, got {type(value).__name__}")
    if value <= 0:
        raise ConfigFileError(f"'{key}' must be positive, got {value}")
    return float(value)


def _convert_value(key: str, field_name: str, value: object) -> object:
    """Validate and convert a single value to its Config-compatible type."""
    if field_name in _INT_FIELDS:
        return _require_limit(key, value)

    if field_name in _FLOAT_FIELDS:
        return _require_timeout(key, value)

    if field_name in _STR_FIELDS:
        if not isinstance(value, str) or not value.strip():
            raise ConfigFileError(f"'{key}' must be a non-empty string")
        return value

    raise ConfigFileError(f"unhandled field '{key}'")


def _parse_toml_section(section: dict[str, Any]) -> dict[str, object]:
    """Validate and convert a [gvtab] table into Config-compatible fields."""
    result: dict[str, object] = {}
    for toml_key, value in section.items():
        field_name = _TOML_KEY_TO_FIELD.get(toml_key)
        if field_name is None:
            raise ConfigFileError(f"[gvtab] unknown key '{toml_key}'")
        result[field_name] = _convert_value(f"[gvtab] {toml_key}", field_name, value)
    return result


def default_config_path(environ: Mapping[str, str] | None = None) -> Path:
    """Return $GVTAB_CONFIG, or gvtab/config.toml under the XDG config home."""
    if environ is None:
        environ = os.environ
    explicit = environ.get("GVTAB_CONFIG")
    if explicit:
        return Path(explicit)
    base = environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(base) / "gvtab" / "config.toml"


def load_file_config(path: Path | None = None) -> dict[str, object]:
    """Read the [gvtab] table from the config file.

    Returns an empty dict if the file doesn't exist or has no [gvtab] table.
    """
    if path is None:
        path = default_config_path()
    if not path.is_file():
        return {}
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigFileError(f"Invalid TOML in {path}: {exc}") from None
    section = data.get("gvtab")
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigFileError(f"[gvtab] in {path} must be a table")
    return _parse_toml_section(section)


def load_env_config(environ: Mapping[str, str] | None = None) -> dict[str, object]:
    """Read GVTAB_* overrides from the environment."""
    if environ is None:
        environ = os.environ
    result: dict[str, object] = {}
    for var, field_name in _ENV_TO_FIELD.items():
        raw = environ.get(var)
        if raw is None or raw == "":
            continue
        value: object = raw
        try:
            if field_name in _INT_FIELDS:
                value = int(raw)
            elif field_name in _FLOAT_FIELDS:
                value = float(raw)
        except ValueError:
            raise ConfigFileError(f"{var}={raw!r} is not a valid number") from None
        result[field_name] = _convert_value(var, field_name, value)
    return result


def build_config(
    cli_overrides: dict[str, object],
    file_config: dict[str, object],
    env_config: dict[str, object] | None = None,
) -> Config:
    """Merge file config, environment and CLI overrides into a Config.

    Later sources win: file < environment < command line.
    """
    merged: dict[str, object] = {}
    merged.update(file_config)
    if env_config:
        merged.update(env_config)
    merged.update(cli_overrides)
    return Config(**merged)
