"""
Weather Obs Sensors Module - Initialization
===========================================

Sensor contract, observation value types, and bundled sensors.

Components:
-----------
1. base.py     - Sensor ABC, CadenceSensor, ObservationSet/Product/ObservationContext
2. noise.py    - Deterministic hash-based noise helpers
3. surface.py  - SurfaceStationSensor (surface pressure network)
4. radar.py    - RadarSensor (gridded precipitation rate from HQ radar sites)
"""

from .base import (
    Sensor,
    CadenceSensor,
    ObservationContext,
    ObservationSet,
    Product,
    NoiseSpec,
    is_finite_time,
)

from .noise import (
    hash01,
    hash_signed,
    gaussian01,
    hash_string_to_int,
    make_sample_seed,
)

from .surface import SurfaceStationSensor
from .radar import RadarSensor

__all__ = [
    # Contract and types
    "Sensor",
    "CadenceSensor",
    "ObservationContext",
    "ObservationSet",
    "Product",
    "NoiseSpec",
    "is_finite_time",
    # Noise
    "hash01",
    "hash_signed",
    "gaussian01",
    "hash_string_to_int",
    "make_sample_seed",
    # Sensors
    "SurfaceStationSensor",
    "RadarSensor",
]
