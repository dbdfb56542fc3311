"""Configuration management for the battery monitor."""

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from battery_monitor.core.errors import ConfigError

log = logging.getLogger(__name__)


# Default configuration values
DEFAULTS = {
    "monitoring": {
        "polling_interval_seconds": 30,  # How often to scan for devices
    },

    "notifications": {
        "enabled": True,
        "low_battery_threshold": 20,  # Percent, inclusive
        "show_connect_disconnect": True,  # Notify on connect/disconnect
        "suppression_minutes": 5,  # Quiet period per device and alert kind
        "log_size": 1000,  # Notification audit log capacity
    },

    "scanning": {
        "bluetooth": True,
        "peripherals": True,
        "concurrent": True,  # Query sources in parallel
        "source_timeout_seconds": 10,
    },
}

# (section, key) -> inclusive (min, max)
_RANGES = {
    ("monitoring", "polling_interval_seconds"): (5, 300),
    ("notifications", "low_battery_threshold"): (1, 99),
    ("notifications", "suppression_minutes"): (1, 60),
    ("notifications", "log_size"): (1, 100000),
    ("scanning", "source_timeout_seconds"): (1, 120),
}

_RANGE_MESSAGES = {
    ("monitoring", "polling_interval_seconds"): "Polling interval must be between 5 and 300 seconds",
    ("notifications", "low_battery_threshold"): "Low battery threshold must be between 1 and 99 percent",
    ("notifications", "suppression_minutes"): "Notification suppression must be between 1 and 60 minutes",
}


def get_config_dir() -> Path:
    """Get the configuration directory (not created)."""
    xdg_config = os.environ.get("XDG_CONFIG_HOME", "")
    if xdg_config:
        return Path(xdg_config) / "battery-monitor"
    return Path.home() / ".config" / "battery-monitor"


def get_config_path() -> Path:
    """Get the path to the configuration file."""
    return get_config_dir() / "config.json"


def default_config() -> dict:
    return copy.deepcopy(DEFAULTS)


def _deep_merge(base: dict, override: dict) -> dict:
    """Deep merge override into base, returning new dict."""
    result = copy.deepcopy(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def validate_config(config: dict) -> None:
    """Raise ConfigError if any known value is missing its type or range."""
    for (section, key), (low, high) in _RANGES.items():
        value = config.get(section, {}).get(key)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigError(f"{section}.{key} must be a number, got {value!r}")
        if not low <= value <= high:
            raise ConfigError(
                _RANGE_MESSAGES.get((section, key),
                                    f"{section}.{key} must be between {low} and {high}")
            )

    for section, key in (("notifications", "enabled"),
                         ("notifications", "show_connect_disconnect"),
                         ("scanning", "bluetooth"),
                         ("scanning", "peripherals"),
                         ("scanning", "concurrent")):
        value = config.get(section, {}).get(key)
        if not isinstance(value, bool):
            raise ConfigError(f"{section}.{key} must be true or false, got {value!r}")


def load_config(path: Optional[Path] = None) -> dict:
    """Load configuration from file, merging with defaults.

    Unreadable or invalid files fall back to the defaults with a warning.
    A missing file is created with the defaults.
    """
    config_path = path or get_config_path()

    if config_path.exists():
        try:
            with open(config_path, "r") as f:
                user_config = json.load(f)
            if not isinstance(user_config, dict):
                raise ConfigError("top-level value must be an object")
            config = _deep_merge(DEFAULTS, user_config)
            validate_config(config)
            log.debug("Loaded config from %s", config_path)
            return config
        except (json.JSONDecodeError, OSError, ConfigError) as e:
            log.warning("Could not load config from %s: %s", config_path, e)
            return default_config()

    log.info("Config file not found, creating default config at %s", config_path)
    save_config(DEFAULTS, config_path)
    return default_config()


def save_config(config: dict, path: Optional[Path] = None) -> bool:
    """Validate and save configuration to file."""
    config_path = path or get_config_path()
    validate_config(config)

    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w") as f:
            json.dump(config, f, indent=2)
        log.info("Saved config to %s", config_path)
        return True
    except OSError as e:
        log.error("Could not save config to %s: %s", config_path, e)
        return False


def get(config: dict, key: str, default: Any = None) -> Any:
    """Get a config value using dot notation (e.g., 'notifications.enabled')."""
    value = config
    for k in key.split("."):
        if isinstance(value, dict) and k in value:
            value = value[k]
        else:
            return default
    return value


def set(config: dict, key: str, value: Any) -> dict:
    """Return a copy of ``config`` with a dot-notation key set and validated."""
    updated = copy.deepcopy(config)
    keys = key.split(".")

    target = updated
    for k in keys[:-1]:
        target = target.setdefault(k, {})
    target[keys[-1]] = value

    validate_config(updated)
    return updated


class Config:
    """Configuration accessor with attribute-style access."""

    def __init__(self, data: Optional[dict] = None, path: Optional[Path] = None):
        self._path = path
        self._config = data if data is not None else load_config(path)

    def reload(self):
        """Reload configuration from file."""
        self._config = load_config(self._path)

    def save(self) -> bool:
        """Save current configuration to file."""
        return save_config(self._config, self._path)

    def as_dict(self) -> dict:
        return copy.deepcopy(self._config)

    @property
    def monitoring(self) -> dict:
        return self._config.get("monitoring", DEFAULTS["monitoring"])

    @property
    def notifications(self) -> dict:
        return self._config.get("notifications", DEFAULTS["notifications"])

    @property
    def scanning(self) -> dict:
        return self._config.get("scanning", DEFAULTS["scanning"])

    @property
    def polling_interval(self) -> float:
        return float(self.monitoring["polling_interval_seconds"])

    @property
    def suppression_seconds(self) -> float:
        return float(self.notifications["suppression_minutes"]) * 60

    def __getitem__(self, key: str) -> Any:
        return get(self._config, key)

    def __setitem__(self, key: str, value: Any):
        self._config = set(self._config, key, value)
