"""
Shared test doubles: scripted sensors and an in-memory log collector.
"""

import asyncio
import json
from typing import Any, Callable, Dict, List, Optional

import httpx
import numpy as np

from weather_obs.sensors import CadenceSensor, ObservationSet, Product, Sensor


def make_obs(sensor_id: str, t: float, value: float = 1.0) -> ObservationSet:
    """Single-product observation with one point value."""
    return ObservationSet(
        sensor_id=sensor_id,
        t=t,
        products={
            "qr": Product(kind="points", units="kg/kg", data={"value": np.array([value])}),
        },
    )


class StubSensor(Sensor):
    """
    Sensor with scripted behaviour.

    due: bool or callable(t) -> bool
    result: "auto" (fresh observation), None, or a fixed payload
    raise_on: phase name ("is_due", "observe", "mark_observed") to raise in
    """

    def __init__(self,
                 sensor_id: str,
                 due: Any = True,
                 result: Any = "auto",
                 raise_on: Optional[str] = None):
        super().__init__(sensor_id)
        self.due = due
        self.result = result
        self.raise_on = raise_on
        self.due_calls: List[float] = []
        self.observe_calls: List[Any] = []
        self.marked: List[float] = []

    def is_due(self, sim_time_seconds):
        self.due_calls.append(sim_time_seconds)
        if self.raise_on == "is_due":
            raise RuntimeError(f"{self.sensor_id} is_due failed")
        return self.due(sim_time_seconds) if callable(self.due) else self.due

    def observe(self, context):
        self.observe_calls.append(context)
        if self.raise_on == "observe":
            raise ValueError(f"{self.sensor_id} observe failed")
        if self.result == "auto":
            return make_obs(self.sensor_id, context.sim_time_seconds)
        return self.result

    def mark_observed(self, sim_time_seconds):
        if self.raise_on == "mark_observed":
            raise RuntimeError(f"{self.sensor_id} mark_observed failed")
        self.marked.append(sim_time_seconds)


class RadarStub(CadenceSensor):
    """Cadence-based sensor returning a fresh observation each time it fires."""

    def __init__(self, sensor_id: str = "radar-1", cadence_seconds: float = 5.0):
        super().__init__(sensor_id, cadence_seconds=cadence_seconds, observes=("qr",))
        self.observe_count = 0

    def observe(self, context):
        self.observe_count += 1
        return make_obs(self.sensor_id, context.sim_time_seconds, value=0.25)


class CollectorStub:
    """
    In-memory stand-in for the log collector behind httpx.MockTransport.

    session_status / log_status: HTTP status codes to answer with
    session_payload: JSON body for /session (or raw bytes)
    session_error / log_error: exception instance raised instead of answering
    session_gate / log_gate: asyncio.Event the handler waits on before answering
    """

    def __init__(self,
                 session_payload: Any = None,
                 session_status: int = 200,
                 log_status: int = 200):
        self.session_payload = {"runId": "abc"} if session_payload is None else session_payload
        self.session_status = session_status
        self.log_status = log_status
        self.session_error: Optional[Exception] = None
        self.log_error: Optional[Exception] = None
        self.session_gate: Optional[asyncio.Event] = None
        self.log_gate: Optional[asyncio.Event] = None

        self.requests: List[httpx.Request] = []
        self.log_bodies: List[str] = []
        self._in_flight_logs = 0
        self.max_concurrent_logs = 0

    @property
    def session_requests(self) -> int:
        return sum(1 for r in self.requests if r.url.path.endswith("/session"))

    @property
    def log_requests(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith("/log")]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path.endswith("/session"):
            return await self._session(request)
        if request.url.path.endswith("/log"):
            return await self._log(request)
        return httpx.Response(404, json={"ok": False, "error": "not_found"})

    async def _session(self, request):
        if self.session_gate is not None:
            await self.session_gate.wait()
        if self.session_error is not None:
            raise self.session_error
        if isinstance(self.session_payload, bytes):
            return httpx.Response(self.session_status, content=self.session_payload)
        return httpx.Response(self.session_status, json=self.session_payload)

    async def _log(self, request):
        self._in_flight_logs += 1
        self.max_concurrent_logs = max(self.max_concurrent_logs, self._in_flight_logs)
        try:
            if self.log_gate is not None:
                await self.log_gate.wait()
            if self.log_error is not None:
                raise self.log_error
            body = request.content.decode("utf-8")
            self.log_bodies.append(body)
            lines = [line for line in body.split("\n") if line]
            return httpx.Response(self.log_status, json={"ok": self.log_status == 200, "lines": len(lines)})
        finally:
            self._in_flight_logs -= 1

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=httpx.MockTransport(self.handler),
            base_url="http://collector.test",
        )

    def delivered_records(self) -> List[Dict[str, Any]]:
        """Every delivered line decoded as JSON."""
        return [
            json.loads(line)
            for body in self.log_bodies
            for line in body.split("\n")
            if line
        ]


class TricklingCollector:
    """
    Real HTTP collector on 127.0.0.1 that can dribble its reply.

    Responses to paths listed in trickle_paths are written one byte every
    delay_s seconds, so no single socket read ever waits long.
    """

    def __init__(self, delay_s: float = 0.1, trickle_paths=("/session",)):
        self.delay_s = delay_s
        self.trickle_paths = tuple(trickle_paths)
        self.paths: List[str] = []
        self._server: Optional[asyncio.AbstractServer] = None
        self._handlers: set = set()

    async def start(self) -> str:
        self._server = await asyncio.start_server(self._handle, "127.0.0.1", 0)
        port = self._server.sockets[0].getsockname()[1]
        return f"http://127.0.0.1:{port}/__weatherlog"

    async def stop(self) -> None:
        for task in list(self._handlers):
            task.cancel()
        self._server.close()
        await self._server.wait_closed()

    async def _handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        task = asyncio.current_task()
        self._handlers.add(task)
        try:
            request_line = await reader.readline()
            path = request_line.split()[1].decode("ascii")
            self.paths.append(path)

            content_length = 0
            while True:
                line = await reader.readline()
                if line in (b"\r\n", b"\n", b""):
                    break
                name, _, value = line.decode("latin-1").partition(":")
                if name.strip().lower() == "content-length":
                    content_length = int(value.strip())
            if content_length:
                await reader.readexactly(content_length)

            body = b'{"runId":"abc"}' if path.endswith("/session") else b'{"ok":true}'
            writer.write(
                b"HTTP/1.1 200 OK\r\n"
                b"Content-Type: application/json\r\n"
                b"Connection: close\r\n"
                b"Content-Length: " + str(len(body)).encode("ascii") + b"\r\n\r\n"
            )
            await writer.drain()

            if any(path.endswith(p) for p in self.trickle_paths):
                for byte in body:
                    if writer.is_closing():
                        break
                    writer.write(bytes([byte]))
                    await writer.drain()
                    await asyncio.sleep(self.delay_s)
            else:
                writer.write(body)
                await writer.drain()
        except (ConnectionError, asyncio.IncompleteReadError):
            pass
        finally:
            self._handlers.discard(task)
            writer.close()


def counter() -> Callable[..., None]:
    """Callable that records its calls in .calls."""
    calls = []

    def record(*args):
        calls.append(args)

    record.calls = calls
    return record
