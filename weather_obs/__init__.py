"""
Weather Observation Scheduling & Telemetry
==========================================

Decides each simulation tick which weather sensors fire, keeps the latest
observation per sensor, and streams diagnostic records to a remote log
collector without ever stalling or crashing the simulation loop.

Modules:
--------
- sensors:   Sensor contract, cadence base class, noise, surface stations
- core:      ObservationScheduler and sensor fault isolation
- telemetry: TelemetrySink, collector Session, record serializer
- pipeline:  ObservationPipeline wiring scheduler → serializer → sink
- utils:     Configuration & logging utilities

Quick Start:
-----------
from weather_obs import ObservationPipeline
from weather_obs.utils import load_config, setup_logging_from_config

config = load_config("config/collector.yaml")
setup_logging_from_config(config)

pipeline = ObservationPipeline.from_config(config)
pipeline.add_default_sensors()
await pipeline.start()

for t, truth in simulation:
    pipeline.step(t, truth_state=truth)

await pipeline.stop()

Version: 0.1.0
Author: Weather Obs Team
Date: October 19, 2026
License: MIT
"""

from .errors import WeatherObsError
from .sensors import Sensor, CadenceSensor, ObservationContext, ObservationSet, Product
from .core import ObservationScheduler
from .telemetry import TelemetrySink, Session
from .pipeline import ObservationPipeline

__version__ = "0.1.0"
__author__ = "Weather Obs Team"
__date__ = "2026-10-19"
__all__ = [
    "WeatherObsError",
    "Sensor",
    "CadenceSensor",
    "ObservationContext",
    "ObservationSet",
    "Product",
    "ObservationScheduler",
    "TelemetrySink",
    "Session",
    "ObservationPipeline",
]
