"""
Weather Obs Core Module - Initialization
========================================

Observation scheduling and sensor fault isolation.

Components:
-----------
1. scheduler.py - ObservationScheduler (tick loop, latest-per-sensor table)
2. faults.py    - FaultSink implementations for per-sensor errors
"""

from .scheduler import ObservationScheduler

from .faults import (
    FaultSink,
    LoggingFaultSink,
    CollectingFaultSink,
    SensorFault,
)

__all__ = [
    "ObservationScheduler",
    "FaultSink",
    "LoggingFaultSink",
    "CollectingFaultSink",
    "SensorFault",
]
