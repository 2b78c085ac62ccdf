"""Global configuration for screenbudget."""

from __future__ import annotations

import copy
import json
import logging
import os
from typing import Dict, Any


DEFAULT_CONFIG: Dict[str, Any] = {
    "pin_length": 6,
    "default_pin": "000000",
    "code_length": 6,
    "code_alphabet": "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789",
    "default_daily_limit_minutes": 60,
    "max_codes_per_batch": 100,
    "check_interval_seconds": 5.0,
    "min_eviction_interval_ms": 500,
    "db_path": "screenbudget.db",
}

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_config: Dict[str, Any] = copy.deepcopy(DEFAULT_CONFIG)


def _parse_json_env(var_name: str) -> Dict[str, Any] | None:
    value = os.getenv(var_name)
    if not value:
        return None
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError:
        return None
    if not isinstance(parsed, dict):
        return None
    return parsed


def get_config() -> Dict[str, Any]:
    """Return configuration, with optional env override."""
    parsed = _parse_json_env("SCREENBUDGET_CONFIG_JSON")
    if parsed:
        merged = copy.deepcopy(_config)
        merged.update({k: v for k, v in parsed.items() if k in DEFAULT_CONFIG})
        return merged
    return _config


def set_config(**overrides: Any) -> None:
    """Set configuration values at runtime."""
    global _config
    unknown = sorted(set(overrides) - set(DEFAULT_CONFIG))
    if unknown:
        raise ValueError(f"unknown config keys: {', '.join(unknown)}")
    default_pin = overrides.get("default_pin", _config["default_pin"])
    pin_length = overrides.get("pin_length", _config["pin_length"])
    if len(default_pin) != pin_length or not default_pin.isdigit():
        raise ValueError(f"default_pin must be {pin_length} digits")
    updated = copy.deepcopy(_config)
    updated.update(overrides)
    _config = updated


def reset_config() -> None:
    """Restore the built-in defaults."""
    global _config
    _config = copy.deepcopy(DEFAULT_CONFIG)


def configure_logging(level: int = logging.INFO) -> logging.Logger:
    """Attach a stream handler to the package logger once."""
    logger = logging.getLogger("screenbudget")
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    logger.setLevel(level)
    return logger
