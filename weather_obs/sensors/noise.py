"""
Weather Obs Sensors - Deterministic Noise
=========================================

Hash-based pseudo-random helpers used to add reproducible observation
noise. The same (world seed, sensor id, quantized time, index) always
yields the same noise sample, so re-running a simulation reproduces the
observations bit for bit without carrying RNG state around.

Functions:
----------
hash01(n)              - uniform value in [0, 1) from a number
hash_signed(n)         - uniform value in [-1, 1)
gaussian01(n)          - standard normal sample (Box-Muller on two hashes)
hash_string_to_int(s)  - 32-bit string hash (h = h*31 + c, wrapping)
make_sample_seed(...)  - 32-bit mix of seed components

hash01 / hash_signed / gaussian01 accept scalars or numpy arrays.

Example:
--------
>>> seed = make_sample_seed(world_seed=7, sensor_id="surfaceStations", t_quant=12, index=3)
>>> noise = gaussian01(seed)
"""

import numpy as np
from typing import Any, Union

ArrayLike = Union[float, np.ndarray]

_TWO_PI = 2.0 * np.pi
_INT32_SPAN = 1 << 32
_INT32_HALF = 1 << 31


def _to_int32(value: int) -> int:
    """Wrap an integer to the signed 32-bit range."""
    return ((value + _INT32_HALF) % _INT32_SPAN) - _INT32_HALF


def hash01(n: ArrayLike) -> ArrayLike:
    x = np.sin(n) * 43758.5453123
    return x - np.floor(x)


def hash_signed(n: ArrayLike) -> ArrayLike:
    return hash01(n) * 2 - 1


def gaussian01(n: ArrayLike) -> ArrayLike:
    u1 = np.maximum(1e-12, hash01(np.add(n, 0.17)))
    u2 = hash01(np.add(n, 0.73))
    return np.sqrt(-2 * np.log(u1)) * np.cos(_TWO_PI * u2)


def hash_string_to_int(value: Any) -> int:
    """
    Hash a string to a signed 32-bit integer.

    None hashes like the empty string; other values are converted with str().
    """
    text = "" if value is None else str(value)
    h = 0
    for ch in text:
        h = _to_int32(h * 31 + ord(ch))
    return h


def _as_int(value: Any) -> int:
    """Floor finite numbers to int; anything else becomes 0."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if not np.isfinite(number):
        return 0
    return int(np.floor(number))


def make_sample_seed(world_seed: Any = 0,
                     sensor_id: str = "",
                     t_quant: Any = 0,
                     index: Any = 0,
                     extra: Any = 0) -> int:
    """
    Mix seed components into one signed 32-bit seed.

    Args:
        world_seed: Simulation world seed
        sensor_id: Sensor id (hashed)
        t_quant: Quantized time (e.g. floor(t / cadence))
        index: Sample index within the observation
        extra: Additional discriminator

    Returns:
        Signed 32-bit integer seed
    """
    seed = _to_int32(_as_int(world_seed))
    sid = hash_string_to_int(sensor_id)
    t = _as_int(t_quant)
    i = _as_int(index)
    e = _as_int(extra)

    mixed = (seed
             ^ _to_int32(sid * 374761393)
             ^ _to_int32(t * 668265263)
             ^ _to_int32(i * 982451653)
             ^ _to_int32(e * 1597334677))
    return _to_int32(mixed)
