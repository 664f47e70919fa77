"""
Weather Obs - Observation Pipeline
==================================

Wires the scheduler, the record serializer and the telemetry sink into the
per-tick flow used by the simulation:

    step(t, truth)
        ↓
    ObservationScheduler.update()       (synchronous, per-sensor isolation)
        ↓  on_new_observation
    ObservationRecordSerializer          (JSON line, run id + seq)
        ↓
    TelemetrySink.enqueue()             (debounced, fail-open delivery)

The simulation only ever calls step(); all network I/O happens on the
event loop in the background and can never raise into the tick.

Example:
--------
>>> config = load_config("config/collector.yaml")
>>> pipeline = ObservationPipeline.from_config(config)
>>> pipeline.add_default_sensors()
>>> await pipeline.start()
>>> for t in range(0, 3600, 60):
...     pipeline.step(float(t), truth_state=truth, sensor_gating={"has_comms": True})
...     await asyncio.sleep(0)
>>> await pipeline.stop()

Author: Weather Obs Team
Date: October 19, 2026
"""

from typing import Any, Dict, Optional
import logging

import httpx

from .core.faults import FaultSink, LoggingFaultSink
from .core.scheduler import ObservationScheduler
from .sensors.base import ObservationContext, ObservationSet
from .sensors.radar import RadarSensor
from .sensors.surface import SurfaceStationSensor
from .telemetry.records import ObservationRecordSerializer
from .telemetry.session import Session
from .telemetry.sink import TelemetrySink
from .utils.config import default_config, validate_config
from .utils.logging import log_observation, log_statistics

logger = logging.getLogger(__name__)


class ObservationPipeline:
    """
    Scheduler → serializer → sink.

    Attributes:
        scheduler: ObservationScheduler owning the sensors
        sink: TelemetrySink delivering records
        serializer: ObservationRecordSerializer bound to the sink's session
        telemetry_enabled: When False, start() skips the handshake and the
                           sink stays inert
    """

    def __init__(self,
                 sink: Optional[TelemetrySink] = None,
                 fault_sink: Optional[FaultSink] = None,
                 telemetry_enabled: bool = True,
                 world_seed: int = 0):
        """
        Initialize pipeline.

        Args:
            sink: Telemetry sink (a default TelemetrySink when omitted)
            fault_sink: Receives per-sensor errors (LoggingFaultSink by default)
            telemetry_enabled: Whether start() negotiates a collector session
            world_seed: Seed handed to bundled sensors
        """
        self.sink = sink if sink is not None else TelemetrySink()
        self.serializer = ObservationRecordSerializer(self.sink.get_session)
        self.fault_sink = fault_sink if fault_sink is not None else LoggingFaultSink()
        self.scheduler = ObservationScheduler(
            on_new_observation=self._on_observation,
            fault_sink=self.fault_sink,
        )
        self.telemetry_enabled = telemetry_enabled
        self.world_seed = world_seed
        self._records_enqueued = 0

    @classmethod
    def from_config(cls,
                    config: Optional[Dict[str, Any]] = None,
                    client: Optional[httpx.AsyncClient] = None,
                    fault_sink: Optional[FaultSink] = None) -> "ObservationPipeline":
        """
        Build a pipeline from configuration.

        Args:
            config: Full configuration (defaults when None)
            client: Optional shared httpx.AsyncClient for the sink
            fault_sink: Optional fault sink

        Raises:
            ConfigError: If the configuration is invalid
        """
        config = config if config is not None else default_config()
        validate_config(config)

        return cls(
            sink=TelemetrySink.from_config(config, client=client),
            fault_sink=fault_sink,
            telemetry_enabled=config["telemetry"].get("enabled", True),
            world_seed=config["scheduler"].get("world_seed", 0),
        )

    def add_sensor(self, sensor: Any) -> None:
        self.scheduler.add_sensor(sensor)

    def add_default_sensors(self) -> None:
        """Register the bundled sensors (surface station network, HQ radar)."""
        self.add_sensor(SurfaceStationSensor(world_seed=self.world_seed))
        self.add_sensor(RadarSensor(world_seed=self.world_seed))

    async def start(self) -> Optional[Session]:
        """
        Negotiate the collector session.

        Returns:
            Session, or None when telemetry is disabled or the handshake failed
        """
        if not self.telemetry_enabled:
            logger.info("Telemetry disabled by configuration")
            return None
        return await self.sink.init()

    def step(self,
             sim_time_seconds: float,
             truth_state: Any = None,
             **extras: Any) -> int:
        """
        Run one simulation tick through the scheduler.

        Args:
            sim_time_seconds: Simulation time [s]
            truth_state: Truth model snapshot for observe()
            **extras: Supporting references placed in ObservationContext.extras

        Returns:
            Number of observations stored this tick
        """
        context = ObservationContext(
            truth_state=truth_state,
            sim_time_seconds=sim_time_seconds,
            extras=extras,
        )
        return self.scheduler.update(sim_time_seconds, context)

    async def stop(self) -> None:
        """Flush outstanding records and close the sink."""
        await self.sink.close()
        log_statistics(self.get_statistics())

    def _on_observation(self, obs_set: Any) -> None:
        # Foreign sensors may publish opaque payloads; only ObservationSets are recorded
        if not isinstance(obs_set, ObservationSet):
            logger.debug(f"Skipping telemetry for opaque payload {type(obs_set).__name__}")
            return
        log_observation(obs_set)
        if not self.sink.is_ready():
            return
        line = self.serializer.serialize(obs_set)
        if line is None:
            return
        self.sink.enqueue(line)
        self._records_enqueued += 1

    def get_statistics(self) -> Dict[str, Any]:
        """
        Pipeline statistics.

        Returns:
            Dictionary with scheduler, fault and sink counters
        """
        faults = getattr(self.fault_sink, "total", None)
        return {
            "ticks": self.scheduler.tick_count,
            "sensors": len(self.scheduler),
            "latest_observations": len(self.scheduler.get_all_latest()),
            "records_enqueued": self._records_enqueued,
            "sensor_faults": faults,
            "sink": self.sink.get_statistics(),
        }

    def __repr__(self) -> str:
        return f"ObservationPipeline(scheduler={self.scheduler!r}, sink={self.sink!r})"
