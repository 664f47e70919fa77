"""
Weather Obs Core - Sensor Fault Reporting
=========================================

Where the scheduler sends per-sensor errors.

A sensor that raises during is_due(), observe() or mark_observed(), or a
subscriber that raises while being notified, must not abort the tick for
the remaining sensors. The scheduler catches the error and hands it to a
FaultSink together with the sensor id and the phase it failed in.

Phases:
-------
"is_due", "observe", "mark_observed", "notify"

Sinks:
------
1. LoggingFaultSink    - logs a warning with traceback and counts faults (default)
2. CollectingFaultSink - keeps every SensorFault in a list
"""

from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import dataclass
from typing import List
import logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SensorFault:
    """One reported sensor failure."""
    sensor_id: str
    phase: str
    error: BaseException


class FaultSink(ABC):
    """Receiver for per-sensor error reports."""

    @abstractmethod
    def report(self, sensor_id: str, phase: str, error: BaseException) -> None:
        """Record a failure of sensor_id during phase."""


class LoggingFaultSink(FaultSink):
    """
    Log each fault as a warning and keep per-sensor counts.

    Attributes:
        counts: Counter of faults keyed by sensor id
    """

    def __init__(self):
        self.counts: Counter = Counter()

    @property
    def total(self) -> int:
        """Total number of faults reported."""
        return sum(self.counts.values())

    def report(self, sensor_id: str, phase: str, error: BaseException) -> None:
        self.counts[sensor_id] += 1
        logger.warning(
            f"Sensor {sensor_id!r} failed during {phase}: {error}",
            exc_info=(type(error), error, error.__traceback__),
        )


class CollectingFaultSink(FaultSink):
    """Keep every reported fault for later inspection."""

    def __init__(self):
        self.faults: List[SensorFault] = []

    @property
    def total(self) -> int:
        return len(self.faults)

    def report(self, sensor_id: str, phase: str, error: BaseException) -> None:
        self.faults.append(SensorFault(sensor_id, phase, error))
