"""
Weather Obs Telemetry - Collector Sink
======================================

Best-effort delivery of line-oriented diagnostic records to a remote log
collector. The producer (the simulation loop) must never stall or error
because the collector is slow, broken or gone.

State Machine:
--------------
    UNINITIALIZED ──init()──> INITIALIZING ──ok──> READY
                                   │                 │
                                   └──fail──> DISABLED <──flush fail / close()

DISABLED is terminal: no transition leaves it, nothing is delivered
afterwards, and the single warning is logged on entry.

Delivery:
---------
1. init() performs GET {base_url}/session exactly once (memoized task);
   concurrent callers await the same handshake.
2. enqueue(line) appends to the pending queue, only while READY.
   Lines produced before the session resolves are dropped.
3. The first enqueue arms one debounce timer (flush_interval_s). Further
   enqueues inside the window join the same flush.
4. flush() drains the whole queue and POSTs it to {base_url}/log as
   newline-delimited records with a trailing newline. Only one flush runs
   at a time; lines arriving meanwhile trigger a follow-up flush.
5. Any transport error, timeout or non-2xx status disables the sink and
   discards pending lines. There are no retries.

Hardening:
----------
- every request is bounded by request_timeout_s end to end (asyncio.wait_for
  on top of the per-phase httpx.Timeout)
- the pending queue holds at most max_pending lines (oldest dropped)

Threading:
----------
enqueue() is synchronous but must be called from the event loop thread
that ran init().

Example:
--------
>>> sink = TelemetrySink("http://localhost:3031")
>>> session = await sink.init()
>>> sink.enqueue('{"event": "observation", "seq": 0}')
>>> await sink.close()      # flushes what is pending

Author: Weather Obs Team
Date: October 19, 2026
"""

import asyncio
from collections import deque
from enum import Enum
from typing import Any, Awaitable, Deque, Dict, Optional
import logging

import httpx

from ..errors import WeatherObsError
from .session import Session, SessionError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:3031"
DEFAULT_FLUSH_INTERVAL_S = 0.3
DEFAULT_REQUEST_TIMEOUT_S = 5.0
DEFAULT_MAX_PENDING = 10000

NDJSON_CONTENT_TYPE = "application/x-ndjson"


class DeliveryError(WeatherObsError):
    """Collector rejected a batch."""
    pass


class SinkState(Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    DISABLED = "disabled"


class TelemetrySink:
    """
    Batching, fail-open client for the log collector.

    Attributes:
        base_url: Collector URL prefix (without trailing slash)
        flush_interval_s: Debounce delay between first enqueue and flush [s]
        request_timeout_s: Upper bound on each HTTP request [s]
        max_pending: Maximum number of queued lines
    """

    def __init__(self,
                 base_url: str = DEFAULT_BASE_URL,
                 flush_interval_s: float = DEFAULT_FLUSH_INTERVAL_S,
                 request_timeout_s: float = DEFAULT_REQUEST_TIMEOUT_S,
                 max_pending: int = DEFAULT_MAX_PENDING,
                 client: Optional[httpx.AsyncClient] = None):
        """
        Initialize sink. No I/O happens until init().

        Args:
            base_url: Collector URL prefix
            flush_interval_s: Debounce delay [s]
            request_timeout_s: Per-request timeout [s]
            max_pending: Pending queue bound
            client: Shared httpx.AsyncClient. When omitted the sink creates
                    one lazily and closes it in close().
        """
        self.base_url = base_url.rstrip("/")
        self.flush_interval_s = flush_interval_s
        self.request_timeout_s = request_timeout_s
        self.max_pending = max_pending

        self._client = client
        self._owns_client = client is None
        self._timeout = httpx.Timeout(request_timeout_s)

        self._state = SinkState.UNINITIALIZED
        self._session: Optional[Session] = None
        self._init_task: Optional[asyncio.Task] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

        self._queue: Deque[str] = deque()
        self._flush_handle: Optional[asyncio.TimerHandle] = None
        self._flush_task: Optional[asyncio.Task] = None
        self._flush_done: Optional[asyncio.Future] = None
        self._flushing = False

        self._delivered_lines = 0
        self._delivered_batches = 0
        self._dropped_lines = 0

    @classmethod
    def from_config(cls,
                    config: Dict[str, Any],
                    client: Optional[httpx.AsyncClient] = None) -> "TelemetrySink":
        """
        Build a sink from a loaded configuration.

        Args:
            config: Full config (uses the "telemetry" section)
            client: Optional shared httpx.AsyncClient
        """
        section = config.get("telemetry", {}) or {}
        return cls(
            base_url=section.get("base_url", DEFAULT_BASE_URL),
            flush_interval_s=section.get("flush_interval_s", DEFAULT_FLUSH_INTERVAL_S),
            request_timeout_s=section.get("request_timeout_s", DEFAULT_REQUEST_TIMEOUT_S),
            max_pending=section.get("max_pending", DEFAULT_MAX_PENDING),
            client=client,
        )

    # ── Session ───────────────────────────────────────────────────────────────

    async def init(self) -> Optional[Session]:
        """
        Negotiate the collector session (at most once).

        Returns:
            The Session, or None if the handshake failed or the sink is disabled
        """
        if self._init_task is None:
            self._loop = asyncio.get_running_loop()
            self._init_task = self._loop.create_task(self._fetch_session())
        return await asyncio.shield(self._init_task)

    async def _fetch_session(self) -> Optional[Session]:
        if not self._transition(SinkState.INITIALIZING):
            return None
        try:
            response = await self._bounded(self._http().get(
                f"{self.base_url}/session",
                headers={"Cache-Control": "no-store"},
                timeout=self._timeout,
            ))
            if not response.is_success:
                raise SessionError(f"session status {response.status_code}")
            session = Session.from_payload(response.json())
        except Exception as e:
            self._disable(f"Telemetry sink disabled: {e}")
            return None

        if not self._transition(SinkState.READY):
            return None
        self._session = session
        if not session.schema_matches:
            logger.warning(
                f"Collector schema {session.schema} v{session.schema_version} "
                f"differs from the expected schema"
            )
        logger.info(f"Telemetry session {session.run_id} ready ({self.base_url})")
        return session

    # ── Producer API ──────────────────────────────────────────────────────────

    def enqueue(self, line: str) -> None:
        """
        Queue one record for delivery.

        No-op unless the sink is READY; non-string and empty lines are ignored.
        """
        if self._state is not SinkState.READY:
            return
        if not isinstance(line, str) or not line:
            return

        if len(self._queue) >= self.max_pending:
            self._queue.popleft()
            self._dropped_lines += 1
            if self._dropped_lines == 1:
                logger.warning(
                    f"Telemetry queue full ({self.max_pending} lines); dropping oldest records"
                )
        self._queue.append(line)
        self._schedule_flush()

    def _schedule_flush(self) -> None:
        if self._flush_handle is not None or self._flushing:
            return
        if self._state is not SinkState.READY or self._loop is None:
            return
        self._flush_handle = self._loop.call_later(self.flush_interval_s, self._on_flush_timer)

    def _on_flush_timer(self) -> None:
        self._flush_handle = None
        self._flush_task = self._loop.create_task(self.flush())

    # ── Delivery ──────────────────────────────────────────────────────────────

    async def flush(self) -> bool:
        """
        Drain the pending queue into one POST.

        Returns:
            True if a batch was delivered, False if nothing was sent or the
            delivery failed (in which case the sink is now disabled)
        """
        if self._state is not SinkState.READY or self._flushing or not self._queue:
            return False

        self._flushing = True
        self._flush_done = asyncio.get_running_loop().create_future()
        batch = list(self._queue)
        self._queue.clear()
        body = "\n".join(batch) + "\n"

        delivered = False
        try:
            response = await self._bounded(self._http().post(
                f"{self.base_url}/log",
                content=body.encode("utf-8"),
                headers={"Content-Type": NDJSON_CONTENT_TYPE},
                timeout=self._timeout,
            ))
            if not response.is_success:
                raise DeliveryError(f"log status {response.status_code}")
        except Exception as e:
            self._disable(f"Telemetry sink disabled: {e}")
        else:
            delivered = True
            self._delivered_lines += len(batch)
            self._delivered_batches += 1
            logger.debug(f"Delivered {len(batch)} lines to {self.base_url}/log")
        finally:
            self._flushing = False
            if not self._flush_done.done():
                self._flush_done.set_result(delivered)

        if self._queue:
            self._schedule_flush()
        return delivered

    async def drain(self) -> None:
        """Wait until every queued line has been flushed (or the sink disabled)."""
        while self._state is SinkState.READY:
            task = self._flush_task
            if task is not None and not task.done():
                await asyncio.shield(task)
                continue
            if self._flushing and self._flush_done is not None:
                await asyncio.shield(self._flush_done)
                continue
            if not self._queue:
                return
            self._cancel_timer()
            await self.flush()

    async def close(self) -> None:
        """Flush what is pending, stop delivering, release the HTTP client."""
        if self._init_task is not None and not self._init_task.done():
            await asyncio.shield(self._init_task)
        await self.drain()
        self._disable("Telemetry sink closed", warn=False)
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "TelemetrySink":
        await self.init()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ── State ─────────────────────────────────────────────────────────────────

    def _transition(self, new_state: SinkState) -> bool:
        """Move to new_state unless already DISABLED."""
        if self._state is SinkState.DISABLED:
            return False
        self._state = new_state
        return True

    def _disable(self, message: str, warn: bool = True) -> None:
        if self._state is SinkState.DISABLED:
            return
        self._state = SinkState.DISABLED
        self._queue.clear()
        self._cancel_timer()
        if warn:
            logger.warning(message)
        else:
            logger.debug(message)

    def _cancel_timer(self) -> None:
        if self._flush_handle is not None:
            self._flush_handle.cancel()
            self._flush_handle = None

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def _bounded(self, request: Awaitable[httpx.Response]) -> httpx.Response:
        """
        Await a request under a total-duration limit.

        httpx.Timeout bounds each connect/read/write separately; a collector
        trickling its reply byte by byte would never trip it.
        """
        try:
            return await asyncio.wait_for(request, self.request_timeout_s)
        except asyncio.TimeoutError:
            raise httpx.TimeoutException(
                f"request exceeded {self.request_timeout_s}s"
            ) from None

    @property
    def state(self) -> SinkState:
        return self._state

    def is_ready(self) -> bool:
        return self._state is SinkState.READY

    def is_disabled(self) -> bool:
        return self._state is SinkState.DISABLED

    def get_session(self) -> Optional[Session]:
        return self._session

    @property
    def pending_count(self) -> int:
        return len(self._queue)

    @property
    def delivered_lines(self) -> int:
        return self._delivered_lines

    @property
    def delivered_batches(self) -> int:
        return self._delivered_batches

    @property
    def dropped_lines(self) -> int:
        return self._dropped_lines

    def get_statistics(self) -> Dict[str, Any]:
        """Counters and state for diagnostics."""
        return {
            "state": self._state.value,
            "run_id": self._session.run_id if self._session else None,
            "pending": len(self._queue),
            "delivered_lines": self._delivered_lines,
            "delivered_batches": self._delivered_batches,
            "dropped_lines": self._dropped_lines,
        }

    def __repr__(self) -> str:
        return (
            f"TelemetrySink("
            f"base_url={self.base_url!r}, "
            f"state={self._state.value}, "
            f"pending={len(self._queue)})"
        )
