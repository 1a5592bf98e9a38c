"""Settings stored as JSON in ``~/.verbavox/config.json``.

The file only holds values that differ from :class:`Config` defaults being
``None``; anything missing falls back to the dataclass default. Both loading
and updating go through :func:`validate_config`, so a file edited by hand is
held to the same rules as one written by ``verbavox config``.
"""

from __future__ import annotations

import json
from dataclasses import asdict, fields
from pathlib import Path
from typing import Any

from .models import Config

CONFIG_PATH = (Path.home() / ".verbavox" / "config.json").expanduser()
FALLBACK_DB_NAME = "fallback.db"

_POSITIVE_INTS = ("user_history_cap", "global_history_cap")


class ConfigError(RuntimeError):
    """Raised when configuration cannot be loaded or saved."""


def validate_config(config: Config) -> Config:
    """Reject values the result store cannot work with.

    History caps must be positive integers, the HTTP timeout a positive
    number and the namespace non-empty, since it prefixes every fallback key.
    """

    for name in _POSITIVE_INTS:
        value = getattr(config, name)
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise ConfigError(f"{name} must be a positive integer, got {value!r}")
    timeout = config.api_timeout
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        raise ConfigError(f"api_timeout must be a positive number, got {timeout!r}")
    if not isinstance(config.namespace, str) or not config.namespace.strip():
        raise ConfigError("namespace must not be empty")
    return config


def load_config() -> Config:
    if not CONFIG_PATH.exists():
        return Config()
    try:
        payload = json.loads(CONFIG_PATH.read_text())
    except OSError as exc:
        raise ConfigError(f"Failed to read configuration file: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Failed to parse configuration file: {exc}") from exc
    if not isinstance(payload, dict):
        raise ConfigError("Configuration file must contain a JSON object")

    known = {f.name for f in fields(Config)}
    unknown = sorted(set(payload) - known)
    if unknown:
        raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}")
    return validate_config(Config(**payload))


def save_config(config: Config) -> None:
    data = {k: v for k, v in asdict(config).items() if v is not None}
    try:
        CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
        CONFIG_PATH.write_text(json.dumps(data, indent=2))
    except OSError as exc:
        raise ConfigError(f"Failed to write configuration file: {exc}") from exc


def update_config(**kwargs: Any) -> Config:
    """Apply ``kwargs`` to the stored settings; nothing is written on error."""

    config = load_config()
    for key, value in kwargs.items():
        if not hasattr(config, key):
            raise ConfigError(f"Unknown configuration key: {key}")
        setattr(config, key, value)
    save_config(validate_config(config))
    return config


def fallback_db_path(config: Config) -> Path:
    if config.fallback_path:
        return Path(config.fallback_path).expanduser()
    return CONFIG_PATH.parent / FALLBACK_DB_NAME
