"""
Weather Obs Sensors - Sensor Contract & Observation Types
=========================================================

Defines the capability contract every sensor implements and the value
types that flow from sensors to the scheduler.

Contract:
---------
    is_due(sim_time_seconds)  -> bool                     (required)
    observe(context)          -> ObservationSet | None    (required)
    mark_observed(sim_time)   -> None                     (optional, no-op default)

The scheduler only ever calls these three methods. Cadence and
last-observed bookkeeping is private to each sensor implementation.

Types:
------
1. ObservationContext - read-only bag handed to observe() each tick
2. Product            - one named data product inside an observation
3. ObservationSet     - immutable result of one sensor firing once
4. NoiseSpec          - additive/multiplicative observation noise description

Example:
--------
>>> class Thermometer(CadenceSensor):
...     def __init__(self):
...         super().__init__("thermo-1", cadence_seconds=60, observes=("t2m",))
...     def observe(self, context):
...         value = context.truth_state["t2m"]
...         return ObservationSet(
...             sensor_id=self.sensor_id,
...             t=context.sim_time_seconds,
...             products={"t2m": Product(kind="points", units="K",
...                                      data={"value": np.array([value])})},
...         )

Author: Weather Obs Team
Date: October 19, 2026
"""

import math
import numbers
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

import numpy as np


def is_finite_time(value: Any) -> bool:
    """
    Check that a simulation time is a finite real number.

    Booleans, None, strings, NaN, infinities and integers too large for a
    float are all rejected.
    """
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return False
    try:
        return math.isfinite(float(value))
    except OverflowError:
        return False


@dataclass(frozen=True)
class ObservationContext:
    """
    Per-tick context passed through to Sensor.observe().

    Attributes:
        truth_state: Opaque truth model snapshot (owned by the simulation)
        sim_time_seconds: Simulation time of this tick [s]
        extras: Supporting references (e.g. "sensor_gating")
    """
    truth_state: Any = None
    sim_time_seconds: float = 0.0
    extras: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Product:
    """
    One named data product of an observation.

    Attributes:
        kind: "points", "field" or "texture"
        units: Physical units of the values (e.g. "Pa", "dBZ")
        data: Named arrays (e.g. lat_deg, lon_deg, value) or an opaque payload
        mask: 1 where a value is valid, 0 otherwise (points products)
        sigma_obs: Per-value observation error standard deviation
        meta: Free-form metadata
    """
    kind: str
    units: str
    data: Mapping[str, Any] = field(default_factory=dict)
    mask: Optional[np.ndarray] = None
    sigma_obs: Optional[np.ndarray] = None
    meta: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ObservationSet:
    """
    Immutable result of one sensor firing once.

    The products mapping is wrapped read-only on construction. Arrays
    inside products are handed over by the producing sensor and must not
    be mutated afterwards.

    Attributes:
        sensor_id: Id of the producing sensor
        t: Simulation time the observation was produced at [s]
        products: Product name -> Product
    """
    sensor_id: str
    t: float
    products: Mapping[str, Product] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "products", MappingProxyType(dict(self.products)))


@dataclass(frozen=True)
class NoiseSpec:
    """Observation noise description (bias + sigma, additive or multiplicative)."""
    bias: float = 0.0
    sigma_obs: float = 0.0
    kind: str = "add"


class Sensor(ABC):
    """
    Abstract sensor capability.

    Subclasses must provide is_due() and observe(). mark_observed() is
    optional: the default does nothing, for sensors that track their own
    schedule some other way.
    """

    def __init__(self, sensor_id: str):
        self.sensor_id = sensor_id

    @abstractmethod
    def is_due(self, sim_time_seconds: float) -> bool:
        """Return True if the sensor should observe at this simulation time."""

    @abstractmethod
    def observe(self, context: ObservationContext) -> Optional[ObservationSet]:
        """Compute an observation from the context, or None if nothing was produced."""

    def mark_observed(self, sim_time_seconds: float) -> None:
        """Record that an observation was stored at sim_time_seconds."""
        return None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(sensor_id={self.sensor_id!r})"


class CadenceSensor(Sensor):
    """
    Sensor that fires at a fixed simulation-time cadence.

    Due-ness:
    ---------
    - never due for a non-finite time
    - always due before the first recorded observation
    - afterwards due once t - last_obs_time >= cadence_seconds

    A time that regresses below last_obs_time is therefore never due,
    which keeps stale duplicates out of the scheduler's latest table.
    """

    def __init__(self,
                 sensor_id: str,
                 cadence_seconds: float,
                 observes: Sequence[str] = ()):
        """
        Initialize cadence sensor.

        Args:
            sensor_id: Stable sensor id
            cadence_seconds: Minimum simulation time between observations [s]
            observes: Names of the quantities this sensor observes
        """
        super().__init__(sensor_id)
        self.cadence_seconds = cadence_seconds
        self.observes: Tuple[str, ...] = tuple(observes) if observes else ()
        self._last_obs_time: Optional[float] = None

    @property
    def last_obs_time(self) -> Optional[float]:
        """Simulation time of the last stored observation, or None."""
        return self._last_obs_time

    def is_due(self, sim_time_seconds: float) -> bool:
        if not is_finite_time(sim_time_seconds):
            return False
        if self._last_obs_time is None:
            return True
        return sim_time_seconds - self._last_obs_time >= self.cadence_seconds

    def mark_observed(self, sim_time_seconds: float) -> None:
        self._last_obs_time = sim_time_seconds

    def coverage_footprint(self) -> float:
        return 1.0

    def noise_model(self, product: Optional[str] = None) -> NoiseSpec:
        """
        Noise description for a product.

        Args:
            product: Product name; the base class uses one model for all

        Returns:
            NoiseSpec (zero noise by default)
        """
        return NoiseSpec()

    def describe(self) -> Dict[str, Any]:
        """Static description of the sensor (id, cadence, observed quantities)."""
        return {
            "sensor_id": self.sensor_id,
            "cadence_seconds": self.cadence_seconds,
            "observes": list(self.observes),
        }
