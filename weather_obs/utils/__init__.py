"""
Weather Obs Utils Module - Initialization
=========================================

Utility functions and helpers for the observation/telemetry subsystem.

Submodules:
-----------
1. config.py   - Configuration loading and validation
2. logging.py  - Logging setup and diagnostics

Usage:
------
from weather_obs.utils import load_config, setup_logging, get_logger

config = load_config("config/collector.yaml")
setup_logging("logs/", level="INFO")
logger = get_logger(__name__)
"""

from .config import (
    DEFAULT_CONFIG,
    default_config,
    load_config,
    validate_config,
    merge_configs,
    get_config_value,
    set_config_value,
    save_config,
    ConfigError,
)

from .logging import (
    StructuredFormatter,
    setup_logging,
    setup_logging_from_config,
    get_logger,
    log_observation,
    log_statistics,
)

__all__ = [
    # Config functions
    "DEFAULT_CONFIG",
    "default_config",
    "load_config",
    "validate_config",
    "merge_configs",
    "get_config_value",
    "set_config_value",
    "save_config",
    "ConfigError",
    # Logging functions
    "StructuredFormatter",
    "setup_logging",
    "setup_logging_from_config",
    "get_logger",
    "log_observation",
    "log_statistics",
]
