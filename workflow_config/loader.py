"""
Settings Loader (``workflow_config.loader``).

Responsibility
--------------
Reads YAML settings files and ``WORKFLOW_*`` environment variables and
merges them into one ``WorkflowSettings``.  Callers use
``workflow_config.get_active_settings()``; this module is its internals.

Precedence (later wins)
-----------------------
1. ``defaults.yaml`` shipped with the package
2. the YAML file named by ``WORKFLOW_CONFIG_FILE`` (or passed explicitly)
3. ``WORKFLOW_<KEY>`` environment variables

Failure modes
-------------
* Missing override file -> ``FileNotFoundError`` propagates.
* Malformed YAML -> ``yaml.YAMLError`` propagates.
* Unknown keys, unparseable or out-of-range values -> ``ConfigurationError``.
"""

from __future__ import annotations

from dataclasses import fields
from pathlib import Path
from typing import Any, Mapping

import yaml

from workflow_config.schema import ConfigurationError, WorkflowSettings

DEFAULTS_FILE = Path(__file__).parent / "defaults.yaml"
ENV_PREFIX = "WORKFLOW_"
CONFIG_FILE_ENV = "WORKFLOW_CONFIG_FILE"

_FIELD_TYPES: dict[str, type] = {
    "database_url": str,
    "echo_sql": bool,
    "pool_size": int,
    "notify_timeout_seconds": float,
    "notify_max_workers": int,
    "audit_page_size": int,
    "log_level": str,
}

_TRUE = frozenset({"1", "true", "yes", "on"})
_FALSE = frozenset({"0", "false", "no", "off"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML mapping; an empty file yields an empty dict."""
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigurationError(str(path), "top level must be a mapping")
    return data


def coerce(key: str, value: Any) -> Any:
    """Convert a YAML or environment value to the declared field type."""
    target = _FIELD_TYPES.get(key)
    if target is None:
        raise ConfigurationError(key, "unknown setting")
    if target is bool:
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in _TRUE:
            return True
        if text in _FALSE:
            return False
        raise ConfigurationError(key, f"expected a boolean, got {value!r}")
    if isinstance(value, bool) and target is not str:
        raise ConfigurationError(key, f"expected {target.__name__}, got a boolean")
    try:
        return target(value)
    except (TypeError, ValueError):
        raise ConfigurationError(key, f"expected {target.__name__}, got {value!r}") from None


def env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    """``WORKFLOW_<KEY>`` variables for every known setting."""
    overrides: dict[str, Any] = {}
    for key in _FIELD_TYPES:
        name = ENV_PREFIX + key.upper()
        if name in environ:
            overrides[key] = environ[name]
    return overrides


def build_settings(*layers: Mapping[str, Any]) -> WorkflowSettings:
    merged: dict[str, Any] = {}
    for layer in layers:
        for key, value in layer.items():
            merged[key] = coerce(key, value)
    known = {f.name for f in fields(WorkflowSettings)}
    return WorkflowSettings(**{k: v for k, v in merged.items() if k in known})


def load_settings(
    config_file: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> WorkflowSettings:
    environ = environ if environ is not None else {}
    layers = [load_yaml_file(DEFAULTS_FILE)]
    if config_file is None and environ.get(CONFIG_FILE_ENV):
        config_file = Path(environ[CONFIG_FILE_ENV])
    if config_file is not None:
        layers.append(load_yaml_file(Path(config_file)))
    layers.append(env_overrides(environ))
    return build_settings(*layers)
