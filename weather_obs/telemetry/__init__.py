"""
Weather Obs Telemetry Module - Initialization
=============================================

Delivery of diagnostic records to the remote log collector.

Components:
-----------
1. sink.py     - TelemetrySink (session handshake, debounced batching, fail-open disable)
2. session.py  - Session model for the collector handshake
3. records.py  - ObservationRecordSerializer (ObservationSet -> JSON line)

Telemetry Pipeline:
-------------------
ObservationSet
    ↓
[ObservationRecordSerializer]
    ↓
TelemetrySink.enqueue(line)
    ↓
[debounce timer, 300 ms]
    ↓
POST {base_url}/log  (application/x-ndjson)

Usage:
------
from weather_obs.telemetry import TelemetrySink, ObservationRecordSerializer

sink = TelemetrySink("http://localhost:3031")
await sink.init()
serializer = ObservationRecordSerializer(sink.get_session)
sink.enqueue(serializer.serialize(obs_set))
"""

from .session import (
    Session,
    SessionError,
    SCHEMA_ID,
    SCHEMA_VERSION,
)

from .sink import (
    TelemetrySink,
    SinkState,
    DeliveryError,
    DEFAULT_BASE_URL,
    NDJSON_CONTENT_TYPE,
)

from .records import (
    ObservationRecordSerializer,
    summarize_product,
)

__all__ = [
    # Session
    "Session",
    "SessionError",
    "SCHEMA_ID",
    "SCHEMA_VERSION",
    # Sink
    "TelemetrySink",
    "SinkState",
    "DeliveryError",
    "DEFAULT_BASE_URL",
    "NDJSON_CONTENT_TYPE",
    # Records
    "ObservationRecordSerializer",
    "summarize_product",
]
