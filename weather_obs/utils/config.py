"""
Weather Obs Utils - Configuration Management
============================================

Configuration loading, validation, and merging utilities.

Features:
---------
1. YAML Loading
   - Load configuration from YAML files
   - Environment variable substitution (${VAR} / ${VAR:default})
   - Files are merged over DEFAULT_CONFIG, so partial files are fine

2. Validation
   - Required section checking
   - Type and bounds validation for the telemetry sink

3. Merging
   - Deep merge of override configs
   - Dot-path get/set helpers

Configuration Structure:
-----------------------
telemetry:
  base_url: "http://localhost:3031"
  flush_interval_s: 0.3
  request_timeout_s: 5.0
  max_pending: 10000
  enabled: true

scheduler:
  world_seed: 0

logging:
  level: "INFO"
  log_dir: "logs"
  console_output: true
  file_output: false

Example:
--------
>>> from weather_obs.utils import load_config
>>>
>>> config = load_config("config/collector.yaml")
>>> validate_config(config)
>>>
>>> # Point at a different collector
>>> merged = merge_configs(config, {"telemetry": {"base_url": "http://localhost:3031"}})

Author: Weather Obs Team
Date: October 19, 2026
"""

import copy
import os
import re
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
import logging

from ..errors import WeatherObsError

logger = logging.getLogger(__name__)


DEFAULT_CONFIG: Dict[str, Any] = {
    "telemetry": {
        "base_url": "http://localhost:3031",
        "flush_interval_s": 0.3,
        "request_timeout_s": 5.0,
        "max_pending": 10000,
        "enabled": True,
    },
    "scheduler": {
        "world_seed": 0,
    },
    "logging": {
        "level": "INFO",
        "log_dir": "logs",
        "console_output": True,
        "file_output": False,
    },
}

_ENV_PATTERN = re.compile(r'\$\{(\w+)(?::([^}]*))?\}')
_INT_PATTERN = re.compile(r'[+-]?\d+')
_FLOAT_PATTERN = re.compile(r'[+-]?(\d+\.\d*|\.\d+|\d+)([eE][+-]?\d+)?')

_VALID_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class ConfigError(WeatherObsError):
    """Configuration error."""
    pass


def default_config() -> Dict[str, Any]:
    """Return a deep copy of DEFAULT_CONFIG."""
    return copy.deepcopy(DEFAULT_CONFIG)


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    The file contents are merged over DEFAULT_CONFIG. Without a path the
    defaults are returned.

    Args:
        config_path: Path to YAML config file, or None for defaults

    Returns:
        Configuration dictionary

    Raises:
        ConfigError: If file not found or invalid YAML
    """
    if config_path is None:
        return default_config()

    config_path = Path(config_path)

    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with open(config_path, 'r') as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}")
    except OSError as e:
        raise ConfigError(f"Error loading config: {e}")

    if config is None:
        raise ConfigError(f"Empty config file: {config_path}")
    if not isinstance(config, dict):
        raise ConfigError(f"Config root must be a mapping: {config_path}")

    config = _substitute_env_vars(config)

    logger.info(f"Loaded config from {config_path}")

    return merge_configs(default_config(), config)


def _substitute_env_vars(obj: Any) -> Any:
    """
    Recursively substitute environment variables in config.

    Supports format: ${VAR_NAME:default_value}

    Args:
        obj: Config object (dict, list, str, etc.)

    Returns:
        Config with substituted variables
    """
    if isinstance(obj, dict):
        return {k: _substitute_env_vars(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_substitute_env_vars(item) for item in obj]
    elif isinstance(obj, str):
        def replace_var(match):
            var_name = match.group(1)
            default = match.group(2) or ""
            return os.environ.get(var_name, default)

        substituted = _ENV_PATTERN.sub(replace_var, obj)
        if _ENV_PATTERN.fullmatch(obj):
            return _coerce_scalar(substituted)
        return substituted
    else:
        return obj


def _coerce_scalar(text: str) -> Any:
    """
    Type a value substituted for a whole ${VAR} reference.

    Only plain decimal numbers and lowercase true/false are converted;
    everything else (including YAML 1.1 forms such as "no" or "12:30")
    stays a string.
    """
    if text in ("true", "false"):
        return text == "true"
    if _INT_PATTERN.fullmatch(text):
        return int(text)
    if _FLOAT_PATTERN.fullmatch(text):
        return float(text)
    return text


def validate_config(config: Dict[str, Any]) -> bool:
    """
    Validate configuration structure and values.

    Args:
        config: Configuration dictionary

    Returns:
        True if valid

    Raises:
        ConfigError: If validation fails
    """
    required_keys = ["telemetry", "scheduler"]

    for key in required_keys:
        if key not in config:
            raise ConfigError(f"Missing required key: {key}")

    _validate_telemetry(config["telemetry"])
    _validate_scheduler(config["scheduler"])
    _validate_logging(config.get("logging", {}))

    logger.debug("Configuration validation passed")
    return True


def _validate_telemetry(telemetry: Dict[str, Any]) -> None:
    """Validate telemetry sink parameters."""
    if not isinstance(telemetry, dict):
        raise ConfigError("Telemetry config must be a dictionary")

    base_url = telemetry.get("base_url")
    if not isinstance(base_url, str) or not base_url:
        raise ConfigError("telemetry.base_url must be a non-empty string")

    for key in ("flush_interval_s", "request_timeout_s"):
        value = telemetry.get(key)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigError(f"telemetry.{key} must be numeric")
        if value <= 0:
            raise ConfigError(f"telemetry.{key} must be positive, got {value}")

    max_pending = telemetry.get("max_pending")
    if isinstance(max_pending, bool) or not isinstance(max_pending, int) or max_pending <= 0:
        raise ConfigError("telemetry.max_pending must be a positive integer")

    if not isinstance(telemetry.get("enabled", True), bool):
        raise ConfigError("telemetry.enabled must be a boolean")


def _validate_scheduler(scheduler: Dict[str, Any]) -> None:
    """Validate scheduler parameters."""
    if not isinstance(scheduler, dict):
        raise ConfigError("Scheduler config must be a dictionary")

    seed = scheduler.get("world_seed", 0)
    if isinstance(seed, bool) or not isinstance(seed, int):
        raise ConfigError("scheduler.world_seed must be an integer")


def _validate_logging(section: Dict[str, Any]) -> None:
    """Validate logging parameters."""
    if not section:
        return

    if not isinstance(section, dict):
        raise ConfigError("Logging config must be a dictionary")

    level = str(section.get("level", "INFO")).upper()
    if level not in _VALID_LEVELS:
        raise ConfigError(
            f"Invalid log level: {level}. "
            f"Must be one of {_VALID_LEVELS}"
        )


def merge_configs(base: Dict[str, Any],
                  override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Deep merge override config into base config.

    Args:
        base: Base configuration
        override: Configuration to merge in (overrides base)

    Returns:
        Merged configuration

    Example:
        >>> config1 = {"a": 1, "b": {"c": 2}}
        >>> config2 = {"b": {"d": 3}}
        >>> merge_configs(config1, config2)
        {'a': 1, 'b': {'c': 2, 'd': 3}}
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_configs(result[key], value)
        else:
            result[key] = value

    return result


def get_config_value(config: Dict[str, Any],
                     key_path: str,
                     default: Any = None) -> Any:
    """
    Get nested config value using dot notation.

    Args:
        config: Configuration dictionary
        key_path: Dot-separated path (e.g., "telemetry.base_url")
        default: Default value if not found

    Returns:
        Config value or default

    Example:
        >>> get_config_value(DEFAULT_CONFIG, "telemetry.flush_interval_s")
        0.3
    """
    keys = key_path.split(".")
    value = config

    for key in keys:
        if isinstance(value, dict) and key in value:
            value = value[key]
        else:
            return default

    return value


def set_config_value(config: Dict[str, Any],
                     key_path: str,
                     value: Any) -> Dict[str, Any]:
    """
    Set nested config value using dot notation.

    Args:
        config: Configuration dictionary
        key_path: Dot-separated path (e.g., "telemetry.max_pending")
        value: Value to set

    Returns:
        Modified config
    """
    keys = key_path.split(".")
    current = config

    for key in keys[:-1]:
        if key not in current:
            current[key] = {}
        current = current[key]

    current[keys[-1]] = value
    return config


def save_config(config: Dict[str, Any],
                output_path: str) -> None:
    """
    Save configuration to YAML file.

    Args:
        config: Configuration dictionary
        output_path: Output file path
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w') as f:
        yaml.safe_dump(config, f, default_flow_style=False)

    logger.info(f"Saved config to {output_path}")
