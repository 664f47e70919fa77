"""
Weather Obs Telemetry - Observation Records
===========================================

Serializes ObservationSets into single-line JSON records for the sink.

Record Format:
--------------
{"event": "observation", "runId": "run-...", "seq": 12,
 "sensorId": "surfaceStations", "simTimeSeconds": 3600.0,
 "products": {"ps": {"kind": "points", "units": "Pa", "count": 400,
                     "validCount": 57, "mean": 101310.2,
                     "min": 99874.0, "max": 102650.5}}}

Array products are summarized (count / valid count / mean / min / max over
finite values where mask != 0); raw arrays never go on the wire. Opaque
products (textures, handles) only report kind and units.
"""

import json
import numpy as np
from typing import Any, Callable, Dict, Mapping, Optional
import logging

from ..sensors.base import ObservationSet, Product
from .session import Session

logger = logging.getLogger(__name__)

SessionProvider = Callable[[], Optional[Session]]


class ObservationRecordSerializer:
    """
    Turns ObservationSets into JSON lines stamped with run id and sequence.

    Example:
    --------
    >>> serializer = ObservationRecordSerializer(sink.get_session)
    >>> line = serializer.serialize(obs_set)
    >>> if line is not None:
    ...     sink.enqueue(line)
    """

    def __init__(self, session_provider: SessionProvider):
        """
        Args:
            session_provider: Returns the current collector Session (or None)
        """
        self.session_provider = session_provider
        self._seq: Optional[int] = None

    @property
    def next_seq(self) -> Optional[int]:
        return self._seq

    def serialize(self, obs_set: ObservationSet) -> Optional[str]:
        """
        Serialize one observation.

        Returns:
            JSON line, or None while no session is available
        """
        session = self.session_provider()
        if session is None:
            return None
        if self._seq is None:
            self._seq = session.seq_start

        record = {
            "event": "observation",
            "runId": session.run_id,
            "seq": self._seq,
            "sensorId": obs_set.sensor_id,
            "simTimeSeconds": float(obs_set.t),
            "products": {
                name: summarize_product(product)
                for name, product in obs_set.products.items()
            },
        }
        self._seq += 1
        return json.dumps(record, separators=(",", ":"), allow_nan=False)


def summarize_product(product: Product) -> Dict[str, Any]:
    """
    Numeric summary of a product's "value" array.

    Non-finite statistics are emitted as null so the line stays valid JSON.
    """
    summary: Dict[str, Any] = {"kind": product.kind, "units": product.units}

    if not isinstance(product.data, Mapping) or product.data.get("value") is None:
        return summary

    try:
        values = np.asarray(product.data["value"], dtype=np.float64).ravel()
    except (TypeError, ValueError):
        return summary
    summary["count"] = int(values.size)

    valid = np.isfinite(values)
    if product.mask is not None:
        mask = np.asarray(product.mask).ravel()
        if mask.size == values.size:
            valid &= mask != 0
    selected = values[valid]
    summary["validCount"] = int(selected.size)

    if selected.size:
        summary["mean"] = _finite_or_none(selected.mean())
        summary["min"] = _finite_or_none(selected.min())
        summary["max"] = _finite_or_none(selected.max())
    else:
        summary["mean"] = summary["min"] = summary["max"] = None
    return summary


def _finite_or_none(value: Any) -> Optional[float]:
    value = float(value)
    return value if np.isfinite(value) else None
