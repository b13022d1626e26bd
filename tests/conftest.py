"""Pytest configuration and shared fixtures."""

import asyncio
import threading
import time

import httpx
import pytest

from eventsource_academy.client.event_source import EventSource
from eventsource_academy.client.handler import EventHandler
from eventsource_academy.shared.config import Settings

SSE_HEADERS = {"Content-Type": "text/event-stream"}


class RecordingHandler(EventHandler):
    """Records every callback as a tuple and lets tests wait for them."""

    def __init__(self):
        self.calls: list[tuple] = []
        self.threads: set[str] = set()
        self._cond = threading.Condition()

    def _record(self, *call):
        with self._cond:
            self.calls.append(call)
            self.threads.add(threading.current_thread().name)
            self._cond.notify_all()

    def on_open(self):
        self._record("open")

    def on_message(self, event_type, event):
        self._record("message", event_type, event)

    def on_comment(self, comment):
        self._record("comment", comment)

    def on_error(self, error):
        self._record("error", error)

    def on_closed(self):
        self._record("closed")

    def kinds(self) -> list[str]:
        with self._cond:
            return [call[0] for call in self.calls]

    def count(self, kind: str) -> int:
        return self.kinds().count(kind)

    def of_kind(self, kind: str) -> list[tuple]:
        with self._cond:
            return [call for call in self.calls if call[0] == kind]

    def wait_for(self, predicate, timeout: float = 5.0) -> bool:
        with self._cond:
            return self._cond.wait_for(lambda: predicate(self), timeout)


def wait_until(predicate, timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def sse_response(body: str, status_code: int = 200):
    """Factory for a response whose whole body is `body`, after which the stream ends."""
    return lambda: httpx.Response(status_code, headers=SSE_HEADERS, content=body.encode("utf-8"))


def status_response(status_code: int):
    return lambda: httpx.Response(status_code, text="nope")


def hanging_stream():
    """A 200 stream that never sends anything until it is cancelled."""
    async def body():
        await asyncio.sleep(3600)
        yield b""

    return httpx.Response(200, headers=SSE_HEADERS, content=body())


def gated_stream(gate: threading.Event, body: str):
    """A 200 stream that sends `body` and ends once `gate` is set."""
    def factory():
        async def chunks():
            while not gate.is_set():
                await asyncio.sleep(0.01)
            yield body.encode("utf-8")

        return httpx.Response(200, headers=SSE_HEADERS, content=chunks())

    return factory


def broken_stream(body: str, error: Exception):
    """A 200 stream that sends `body` and then fails with `error`."""
    def factory():
        async def chunks():
            yield body.encode("utf-8")
            raise error

        return httpx.Response(200, headers=SSE_HEADERS, content=chunks())

    return factory


def endless_stream():
    """A 200 stream that sends numbered events as fast as it is read."""
    async def chunks():
        n = 0
        while True:
            n += 1
            yield f"data: {n}\n\n".encode("utf-8")
            await asyncio.sleep(0)

    return httpx.Response(200, headers=SSE_HEADERS, content=chunks())


class ScriptedServer:
    """Answers successive requests from a script of response factories, then from `fallback`."""

    def __init__(self, *responses, fallback=hanging_stream):
        self._script = list(responses)
        self._fallback = fallback
        self.requests: list[httpx.Request] = []
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        factory = self._script.pop(0) if self._script else self._fallback
        return factory()


@pytest.fixture
def handler():
    return RecordingHandler()


@pytest.fixture
def fast_settings():
    return Settings(RECONNECT_TIME_MS=5, CLOSE_TIMEOUT_S=2.0)


@pytest.fixture
def make_source(fast_settings):
    """Build EventSources against a test transport; all of them are closed on teardown."""
    created = []

    def factory(transport, handler, uri="http://example.test/stream", **kwargs):
        kwargs.setdefault("settings", fast_settings)
        source = EventSource(uri, handler, transport=transport, **kwargs)
        created.append(source)
        return source

    yield factory
    for source in created:
        source.close()
