"""
Weather Obs Core - Observation Scheduler
========================================

Turns a monotonic simulation-time signal into per-sensor observation
events. There is no global sampling rate: every sensor decides its own
due-ness and the scheduler just asks.

Tick Loop:
----------
update(t, context):
    if t is not finite: return            (partially initialized tick)
    for sensor in registration order:
        is_due(t)?          no / malformed -> skip
        observe(context)    None           -> skip
        store latest[sensor_id]            (never regresses in time)
        sensor.mark_observed(t)
        on_new_observation(obs_set)        (synchronous)

Fault Isolation:
----------------
Any exception from is_due / observe / mark_observed / the subscriber is
caught, reported to the FaultSink and the loop moves on to the next
sensor. Nothing propagates to the simulation loop.

Ownership:
----------
The latest-observation table is private. get_latest() returns the stored
(immutable) ObservationSet; get_all_latest() returns a fresh list.

Example:
--------
>>> scheduler = ObservationScheduler(on_new_observation=print)
>>> scheduler.add_sensor(SurfaceStationSensor(world_seed=1))
>>> scheduler.update(0.0, ObservationContext(truth_state=truth, sim_time_seconds=0.0))
1
>>> scheduler.get_latest("surfaceStations").t
0.0

Author: Weather Obs Team
Date: October 19, 2026
"""

from typing import Any, Callable, Dict, List, Optional, Tuple
import logging

from ..sensors.base import ObservationContext, ObservationSet, is_finite_time
from .faults import FaultSink, LoggingFaultSink

logger = logging.getLogger(__name__)

ObservationCallback = Callable[[ObservationSet], Any]


class ObservationScheduler:
    """
    Owns the sensor set and the latest-observation-per-sensor table.

    Duplicate sensor ids are permitted; both sensors are ticked
    independently and share one table slot (last writer in the tick wins).
    """

    def __init__(self,
                 on_new_observation: Optional[ObservationCallback] = None,
                 fault_sink: Optional[FaultSink] = None):
        """
        Initialize scheduler.

        Args:
            on_new_observation: Called synchronously with each stored
                                ObservationSet. Non-callables are ignored.
            fault_sink: Receives per-sensor errors (LoggingFaultSink by default)
        """
        self._sensors: List[Any] = []
        self._latest: Dict[str, ObservationSet] = {}
        self._latest_time: Dict[str, float] = {}
        self.on_new_observation = on_new_observation if callable(on_new_observation) else None
        self.fault_sink = fault_sink if fault_sink is not None else LoggingFaultSink()
        self._tick_count = 0

    # ── Registration ──────────────────────────────────────────────────────────

    def add_sensor(self, sensor: Any) -> None:
        """
        Register a sensor for future ticks.

        Args:
            sensor: Sensor instance. None is ignored; no other validation.
        """
        if sensor is None:
            return
        self._sensors.append(sensor)
        logger.debug(f"Registered sensor {_sensor_id(sensor)!r}")

    # ── Tick ──────────────────────────────────────────────────────────────────

    def update(self, sim_time_seconds: float, context: Any = None) -> int:
        """
        Evaluate every registered sensor at one simulation time.

        Args:
            sim_time_seconds: Simulation time [s]; non-finite values make
                              this call a no-op
            context: Opaque per-tick context passed to observe(). When None,
                     an ObservationContext carrying only the time is used.

        Returns:
            Number of observations stored during this call
        """
        if not is_finite_time(sim_time_seconds):
            return 0

        if context is None:
            context = ObservationContext(sim_time_seconds=sim_time_seconds)

        self._tick_count += 1
        stored = 0

        for sensor in list(self._sensors):
            sensor_id = _sensor_id(sensor)

            is_due = getattr(sensor, "is_due", None)
            if not callable(is_due):
                continue
            try:
                due = is_due(sim_time_seconds)
            except Exception as e:
                self.fault_sink.report(sensor_id, "is_due", e)
                continue
            if not due:
                continue

            try:
                obs_set = sensor.observe(context)
            except Exception as e:
                self.fault_sink.report(sensor_id, "observe", e)
                continue
            if obs_set is None:
                continue

            last_time = self._latest_time.get(sensor_id)
            if last_time is not None and sim_time_seconds < last_time:
                logger.debug(
                    f"Ignoring stale observation from {sensor_id!r}: "
                    f"t={sim_time_seconds} < last={last_time}"
                )
                continue

            self._latest[sensor_id] = obs_set
            self._latest_time[sensor_id] = sim_time_seconds
            stored += 1

            try:
                _mark_observed(sensor, sim_time_seconds)
            except Exception as e:
                self.fault_sink.report(sensor_id, "mark_observed", e)

            if self.on_new_observation is not None:
                try:
                    self.on_new_observation(obs_set)
                except Exception as e:
                    self.fault_sink.report(sensor_id, "notify", e)

        return stored

    # ── Queries ───────────────────────────────────────────────────────────────

    def get_latest(self, sensor_id: str) -> Optional[ObservationSet]:
        """Latest ObservationSet stored for sensor_id, or None."""
        return self._latest.get(sensor_id)

    def get_all_latest(self) -> List[ObservationSet]:
        """Snapshot list of every stored ObservationSet (order not meaningful)."""
        return list(self._latest.values())

    def get_latest_time(self, sensor_id: str) -> Optional[float]:
        """Tick time at which sensor_id's latest observation was stored."""
        return self._latest_time.get(sensor_id)

    @property
    def sensors(self) -> Tuple[Any, ...]:
        """Registered sensors in registration order."""
        return tuple(self._sensors)

    @property
    def tick_count(self) -> int:
        """Number of update() calls that ran with a finite time."""
        return self._tick_count

    def __len__(self) -> int:
        return len(self._sensors)

    def __repr__(self) -> str:
        return (
            f"ObservationScheduler("
            f"sensors={len(self._sensors)}, "
            f"latest={len(self._latest)}, "
            f"ticks={self._tick_count})"
        )


# ── Utility ────────────────────────────────────────────────────────────────────

def _sensor_id(sensor: Any) -> str:
    return getattr(sensor, "sensor_id", None) or repr(sensor)


def _mark_observed(sensor: Any, sim_time_seconds: float) -> None:
    """Let the sensor record its observation time; stamp it directly otherwise."""
    mark = getattr(sensor, "mark_observed", None)
    if callable(mark):
        mark(sim_time_seconds)
    else:
        sensor._last_obs_time = sim_time_seconds
