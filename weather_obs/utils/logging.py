"""
Weather Obs Utils - Logging & Diagnostics
=========================================

Logging setup and diagnostic helpers.

Features:
---------
1. Logging Setup
   - Configure console and rotating file handlers
   - Set log levels
   - Structured log format

2. Module Loggers
   - Get loggers for specific modules
   - Hierarchical logger organization (weather_obs.core, weather_obs.telemetry, ...)

3. Diagnostics
   - Log observation summaries
   - Log pipeline / sink statistics

Log Format:
-----------
[2026-10-19 12:30:45.123] [INFO    ] [weather_obs.telemetry.sink] Message here
[TIMESTAMP] [LEVEL] [MODULE] Message

Library modules only ever call ``logging.getLogger(__name__)``; handlers are
installed by the application through ``setup_logging``.

Example:
--------
>>> from weather_obs.utils import setup_logging, get_logger
>>>
>>> setup_logging("logs/", level="INFO", file_output=False)
>>> logger = get_logger(__name__)
>>> logger.info("Pipeline initialized")
>>> logger.warning("Telemetry sink disabled: session status 500")

Author: Weather Obs Team
Date: October 19, 2026
"""

import logging
import logging.handlers
from pathlib import Path
from typing import Dict, Any
from datetime import datetime


# Logger cache
_loggers = {}


class StructuredFormatter(logging.Formatter):
    """Structured logging formatter."""

    def format(self, record: logging.LogRecord) -> str:
        """
        Format log record with structure.

        Exception info, when attached, is appended on the following lines.

        Args:
            record: Log record

        Returns:
            Formatted string
        """
        timestamp = datetime.fromtimestamp(record.created).strftime(
            "%Y-%m-%d %H:%M:%S.%f"
        )[:-3]

        message = (
            f"[{timestamp}] [{record.levelname:8}] "
            f"[{record.name}] {record.getMessage()}"
        )
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return message


def setup_logging(log_dir: str = "logs",
                  level: str = "INFO",
                  console_output: bool = True,
                  file_output: bool = True) -> None:
    """
    Set up logging configuration.

    Args:
        log_dir: Directory for log files (only created when file_output is set)
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        console_output: Enable console output
        file_output: Enable rotating file output

    Example:
        >>> setup_logging("logs/", level="DEBUG", file_output=False)
        >>> get_logger(__name__).debug("Scheduler tick")
    """
    log_level = getattr(logging, level.upper())

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter = StructuredFormatter()

    if console_output:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    if file_output:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = log_path / f"weather_obs_{timestamp}.log"

        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=10*1024*1024,  # 10 MB
            backupCount=5,
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    root_logger.info(f"Logging configured: level={level}, dir={log_dir}")


def setup_logging_from_config(config: Dict[str, Any]) -> None:
    """
    Set up logging from the ``logging`` section of a loaded config.

    Args:
        config: Full configuration dictionary (see utils.config.DEFAULT_CONFIG)
    """
    section = config.get("logging", {}) or {}
    setup_logging(
        log_dir=section.get("log_dir", "logs"),
        level=section.get("level", "INFO"),
        console_output=section.get("console_output", True),
        file_output=section.get("file_output", False),
    )


def get_logger(name: str) -> logging.Logger:
    """
    Get logger for a module.

    Args:
        name: Module name (typically __name__)

    Returns:
        Logger instance
    """
    if name not in _loggers:
        _loggers[name] = logging.getLogger(name)

    return _loggers[name]


def log_observation(obs_set: Any) -> None:
    """
    Log a one-line summary of an ObservationSet at DEBUG level.

    Args:
        obs_set: ObservationSet produced by a sensor
    """
    logger = get_logger(__name__)

    products = ", ".join(
        f"{name}:{product.kind}" for name, product in obs_set.products.items()
    )
    logger.debug(
        f"Observation sensor={obs_set.sensor_id} "
        f"t={obs_set.t:.1f}s products=[{products}]"
    )


def log_statistics(stats: Dict[str, Any]) -> None:
    """
    Log statistics summary.

    Nested dictionaries (e.g. the sink block of pipeline statistics) are
    flattened with dotted keys.

    Args:
        stats: Statistics dictionary

    Example:
        >>> stats = pipeline.get_statistics()
        >>> log_statistics(stats)
    """
    logger = get_logger(__name__)

    logger.info("=== Statistics Summary ===")
    for key, value in _flatten(stats).items():
        if isinstance(value, float):
            logger.info(f"{key}: {value:.4f}")
        else:
            logger.info(f"{key}: {value}")


def _flatten(stats: Dict[str, Any], prefix: str = "") -> Dict[str, Any]:
    flat = {}
    for key, value in stats.items():
        name = f"{prefix}{key}"
        if isinstance(value, dict):
            flat.update(_flatten(value, prefix=f"{name}."))
        else:
            flat[name] = value
    return flat
