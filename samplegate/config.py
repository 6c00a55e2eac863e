"""YAML + environment variable configuration loading.

Config file: config/samplegate.yaml
Env var override prefix: SAMPLEGATE_
Nesting convention: double underscore (e.g. SAMPLEGATE_SAMPLING__POLL_INTERVAL_SECONDS)
"""

from __future__ import annotations

import copy
import os
from pathlib import Path
from typing import Any, Mapping

import yaml

_DEFAULT_CONFIG_PATH = Path("config/samplegate.yaml")

_DEFAULTS: dict[str, Any] = {
    "server": {
        "port": 8090,
    },
    "sampling": {
        # "data:<json>" or "file:<path>"; empty disables sampling entirely
        "source": "",
        "poll_interval_seconds": 1.0,
    },
    "logging": {
        "level": "INFO",
    },
}

ENV_PREFIX = "SAMPLEGATE_"


def _merge(base: dict, override: dict) -> dict:
    """Layer override onto base; nested sections merge key by key."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            value = _merge(current, value)
        merged[key] = value
    return merged


def _coerce_value(raw: str) -> int | float | bool | str:
    """Type an env var value the way YAML types a scalar; anything else stays a string.

    Descriptors such as "data: {...}" parse as YAML mappings, so only
    scalar results are taken.
    """
    try:
        value = yaml.safe_load(raw)
    except yaml.YAMLError:
        return raw
    if isinstance(value, (bool, int, float)):
        return value
    return raw


def _env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    """Collect SAMPLEGATE_ prefixed variables into a nested override dict.

    Double underscore separates nesting levels:
        SAMPLEGATE_SAMPLING__SOURCE=file:/etc/dbg.json
            -> {"sampling": {"source": "file:/etc/dbg.json"}}
    """
    overrides: dict[str, Any] = {}
    for key, raw in environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        *sections, leaf = key[len(ENV_PREFIX) :].lower().split("__")
        node = overrides
        for section in sections:
            node = node.setdefault(section, {})
        node[leaf] = _coerce_value(raw)
    return overrides


def _read_yaml(path: Path) -> dict[str, Any]:
    with open(path) as f:
        loaded = yaml.safe_load(f) or {}
    if not isinstance(loaded, dict):
        raise ValueError(f"Settings file must hold a mapping: {path}")
    return loaded


def _validate(config: dict[str, Any]) -> None:
    interval = config["sampling"]["poll_interval_seconds"]
    if isinstance(interval, bool) or not isinstance(interval, (int, float)) or interval <= 0:
        raise ValueError(f"sampling.poll_interval_seconds must be a positive number, got {interval!r}")
    if not isinstance(config["sampling"]["source"], str):
        raise ValueError("sampling.source must be a string descriptor")


def load_config(config_path: Path | None = None) -> dict[str, Any]:
    """Load configuration from YAML file with env var overrides.

    Precedence (highest wins): env vars > YAML file > defaults.
    Raises ValueError if the merged sampling settings are unusable.
    """
    path = config_path or _DEFAULT_CONFIG_PATH
    layers = [copy.deepcopy(_DEFAULTS)]
    if path.exists():
        layers.append(_read_yaml(path))
    layers.append(_env_overrides(os.environ))

    config: dict[str, Any] = {}
    for layer in layers:
        config = _merge(config, layer)
    _validate(config)
    return config
