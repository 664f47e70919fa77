"""
Weather Obs Telemetry - Collector Session
=========================================

The session is the result of the one-time handshake with the log
collector (GET {base_url}/session). It identifies one telemetry-producing
run and carries whatever metadata the collector chose to issue.

Collector payload:
------------------
{
  "schema": "satellitewars.weatherlog",
  "schemaVersion": 1,
  "runId": "run-1760000000000-4242-123456",    <- required, non-empty string
  "filename": "logs/weather-2026-10-19T05-54-00Z-4242.jsonl",
  "startedAtUtc": "2026-10-19T05:54:00.000Z",
  "pid": 4242,
  "seqStart": 0,
  "build": {"appVersion": "0.1.0", "gitCommit": "abc1234", ...}
}
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ..errors import WeatherObsError

SCHEMA_ID = "satellitewars.weatherlog"
SCHEMA_VERSION = 1


class SessionError(WeatherObsError):
    """Collector returned an unusable session payload."""
    pass


@dataclass(frozen=True)
class Session:
    """Read-only collector session."""
    run_id: str
    schema: Optional[str] = None
    schema_version: Optional[int] = None
    filename: Optional[str] = None
    started_at_utc: Optional[str] = None
    pid: Optional[int] = None
    seq_start: int = 0
    build: Dict[str, Any] = field(default_factory=dict)
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Any) -> "Session":
        """
        Build a Session from the decoded /session JSON body.

        Args:
            payload: Decoded JSON

        Returns:
            Session

        Raises:
            SessionError: If payload is not an object or runId is missing/empty
        """
        if not isinstance(payload, dict):
            raise SessionError("invalid session: expected a JSON object")

        run_id = payload.get("runId")
        if not isinstance(run_id, str) or not run_id:
            raise SessionError("invalid session: missing runId")

        seq_start = payload.get("seqStart")
        if isinstance(seq_start, bool) or not isinstance(seq_start, int):
            seq_start = 0

        build = payload.get("build")

        return cls(
            run_id=run_id,
            schema=payload.get("schema"),
            schema_version=payload.get("schemaVersion"),
            filename=payload.get("filename"),
            started_at_utc=payload.get("startedAtUtc"),
            pid=payload.get("pid"),
            seq_start=seq_start,
            build=dict(build) if isinstance(build, dict) else {},
            raw=dict(payload),
        )

    @property
    def schema_matches(self) -> bool:
        """True when the collector speaks the schema this package writes."""
        return self.schema in (None, SCHEMA_ID) and self.schema_version in (None, SCHEMA_VERSION)
