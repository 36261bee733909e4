"""
Configuration loader for HttpRelay Forwarding.

Implements three-level config composition:
1. **File level** (YAML/JSON): base configuration
2. **Environment level**: HTTPRELAY_* prefixed variables override file
3. **Override level**: programmatic overrides win

Environment variables use double-underscore notation:
  HTTPRELAY_RETRY__MAX_ATTEMPTS=5  →  retry.max_attempts=5
  HTTPRELAY_HTTP__VERIFY_TLS=false  →  http.verify_tls=False

JSON values are automatically parsed; strings are type-coerced when possible.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Callable, Optional

import yaml

from .models import ForwardingConfig

_LOGGER = logging.getLogger(__name__)

DEFAULT_ENV_PREFIX = "HTTPRELAY_"


# suffix -> (format label, parser, parser error type)
_PARSERS: dict[str, tuple[str, Callable[[str], Any], type[Exception]]] = {
    ".yaml": ("YAML", yaml.safe_load, yaml.YAMLError),
    ".yml": ("YAML", yaml.safe_load, yaml.YAMLError),
    ".json": ("JSON", json.loads, json.JSONDecodeError),
}


def _read_file(path: str) -> dict[str, Any]:
    """Parse a YAML or JSON config file (chosen by suffix) into a mapping.

    Raises:
        ValueError: If the file is missing, unreadable, malformed, of an
            unsupported format, or not a mapping at the top level.
    """
    p = Path(path)
    parser = _PARSERS.get(p.suffix.lower())
    if parser is None:
        raise ValueError(f"Unsupported file format: {p.suffix}. Use .yaml or .json")
    if not p.exists():
        raise ValueError(f"Config file not found: {path}")

    label, parse, parse_error = parser
    try:
        data = parse(p.read_text(encoding="utf-8"))
    except OSError as e:
        raise ValueError(f"Cannot read config file {path}: {e}") from e
    except parse_error as e:
        raise ValueError(f"Invalid {label} in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{label} config in {path} must be a mapping, got {type(data).__name__}")
    return data


def _assign_nested(data: dict[str, Any], dotted_key: str, value: Any) -> None:
    keys = dotted_key.split(".")
    current = data

    for key in keys[:-1]:
        current = current.setdefault(key, {})

    current[keys[-1]] = value


def _coerce_env_value(value: str) -> Any:
    """Coerce an environment string: JSON first, then booleans, else the raw string."""
    try:
        return json.loads(value)
    except ValueError:
        pass

    if value.lower() in ("true", "false"):
        return value.lower() == "true"

    return value


def _merge_env_overrides(
    data: dict[str, Any],
    env_prefix: str = DEFAULT_ENV_PREFIX,
    environ: Optional[Mapping[str, str]] = None,
) -> dict[str, Any]:
    """Overlay ``<prefix>SECTION__FIELD`` environment variables onto ``data``."""
    environ = os.environ if environ is None else environ

    for env_key, env_value in environ.items():
        if not env_key.startswith(env_prefix):
            continue

        dotted_key = env_key[len(env_prefix) :].lower().replace("__", ".")
        coerced_value = _coerce_env_value(env_value)
        _assign_nested(data, dotted_key, coerced_value)
        _LOGGER.debug("Environment override: %s -> %s = %r", env_key, dotted_key, coerced_value)

    return data


def _merge_overrides(data: dict[str, Any], overrides: Mapping[str, Any] | None) -> dict[str, Any]:
    """Recursively merge programmatic overrides into ``data``; later values win."""
    if not overrides:
        return data

    for key, value in overrides.items():
        if isinstance(value, Mapping) and isinstance(data.get(key), dict):
            data[key] = _merge_overrides(data[key], value)
        else:
            data[key] = value

    return data


def load_config(
    path: str | None = None,
    env_prefix: str = DEFAULT_ENV_PREFIX,
    overrides: Mapping[str, Any] | None = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
) -> ForwardingConfig:
    """
    Load ForwardingConfig from file, environment, and overrides.

    **Precedence:** file < environment < overrides

    Args:
        path: Path to YAML/JSON config file (optional)
        env_prefix: Environment variable prefix (default: HTTPRELAY_)
        overrides: Nested dict of overrides (optional)
        environ: Environment mapping to read instead of ``os.environ``

    Returns:
        Validated ForwardingConfig instance

    Raises:
        ValueError: If the file cannot be read or parsed
        pydantic.ValidationError: If the merged configuration is invalid
    """
    data: dict[str, Any] = {}

    if path:
        data = _read_file(path)
        _LOGGER.debug("Loaded config from %s", path)

    data = _merge_env_overrides(data, env_prefix, environ)
    data = _merge_overrides(data, overrides)

    config = ForwardingConfig.model_validate(data)
    _LOGGER.debug("Configuration validated. Config hash: %s...", config.config_hash()[:8])
    return config
