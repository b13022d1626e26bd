"""
MODULE OVERVIEW:
The EventSource client: one long-lived GET, redelivered as callbacks, reconnected forever.

WHAT IS HAPPENING HERE:
`start()` spawns one worker thread. That thread owns a private asyncio loop and an
`httpx.AsyncClient` limited to a single connection, and runs the connection loop as one
task:

    wait (backoff) -> CONNECTING -> send GET -> OPEN -> read lines -> CLOSED -> repeat

Application code never runs on the worker. Parsed records go through the
EventDispatcher, which calls the handler on its own thread.

`close()` may be called from any thread. It flips the state to SHUTDOWN, then cancels the
worker's task through `call_soon_threadsafe`. Cancellation lands wherever the task is
blocked, whether that's the backoff sleep, the request or the body read, so shutdown is prompt.
The worker only ever moves the state with `transition()`, which cannot leave SHUTDOWN.

`_callback_lock` is held while the worker checks the state and queues a callback, and while
`close()` swaps in SHUTDOWN, queues `on_closed` and shuts the dispatcher down. Nothing the
worker queues can land after that final `on_closed`.
"""
import asyncio
import codecs
import random
import threading
from typing import Iterable, Mapping

import httpx
from loguru import logger

from eventsource_academy.client.dispatcher import EventDispatcher
from eventsource_academy.client.handler import EventHandler
from eventsource_academy.client.parser import EventParser, LineSplitter
from eventsource_academy.client.state import AtomicReadyState
from eventsource_academy.shared.client_utils import backoff_with_jitter, build_headers
from eventsource_academy.shared.config import Settings, settings as default_settings
from eventsource_academy.shared.errors import UnsuccessfulResponseError
from eventsource_academy.shared.models import ReadyState

LAST_EVENT_ID_HEADER = "Last-Event-ID"

class EventSource:
    def __init__(
        self,
        uri: str | httpx.URL,
        handler: EventHandler,
        *,
        headers: Mapping[str, str] | Iterable[tuple[str, str]] | httpx.Headers | None = None,
        reconnect_time_ms: int | None = None,
        proxy: str | httpx.URL | httpx.Proxy | None = None,
        proxy_auth: tuple[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        settings: Settings | None = None,
    ):
        self._settings = settings or default_settings
        self._uri = httpx.URL(uri)
        self._headers = build_headers(headers)
        if reconnect_time_ms is None:
            reconnect_time_ms = self._settings.RECONNECT_TIME_MS
        self._reconnect_time_ms = reconnect_time_ms
        self._last_event_id: str | None = None
        if proxy is not None and transport is not None:
            # httpx mounts the proxy over every URL, so the transport would never be used
            raise ValueError("Pass either proxy or transport, not both")
        self._proxy = _build_proxy(proxy, proxy_auth)
        self._transport = transport

        self._ready_state = AtomicReadyState()
        self._dispatcher = EventDispatcher(handler, self._settings.DISPATCH_THREAD_NAME)
        self._jitter = random.Random()

        self._thread: threading.Thread | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._task: asyncio.Task | None = None
        self._loop_lock = threading.Lock()
        self._callback_lock = threading.Lock()

    # ==========================
    # PUBLIC LIFECYCLE
    # ==========================
    def start(self) -> None:
        if not self._ready_state.compare_and_set(ReadyState.RAW, ReadyState.CONNECTING):
            logger.info("Start method called on this already-started EventSource object. Doing nothing")
            return
        logger.debug(f"readyState change: {ReadyState.RAW.value} -> {ReadyState.CONNECTING.value}")
        logger.info(f"Starting EventSource client using URI: {self._uri}")
        self._thread = threading.Thread(target=self._run, name=self._settings.WORKER_THREAD_NAME, daemon=True)
        self._thread.start()

    def close(self) -> None:
        with self._callback_lock:
            previous = self._ready_state.get_and_set(ReadyState.SHUTDOWN)
            if previous is ReadyState.SHUTDOWN:
                return
            if previous is ReadyState.OPEN:
                self._dispatcher.on_closed()
            self._dispatcher.shutdown(wait=False)
        logger.debug(f"readyState change: {previous.value} -> {ReadyState.SHUTDOWN.value}")

        with self._loop_lock:
            loop, task = self._loop, self._task
        if loop is not None and task is not None:
            try:
                loop.call_soon_threadsafe(task.cancel)
            except RuntimeError:
                logger.debug("Worker loop already closed")

        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(self._settings.CLOSE_TIMEOUT_S)
            if thread.is_alive():
                logger.warning(f"Worker thread did not stop within {self._settings.CLOSE_TIMEOUT_S}s")

    def __enter__(self) -> "EventSource":
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ==========================
    # STATE ACCESSORS
    # ==========================
    def get_state(self) -> ReadyState:
        return self._ready_state.get()

    @property
    def state(self) -> ReadyState:
        return self._ready_state.get()

    def get_uri(self) -> httpx.URL:
        return self._uri

    def set_uri(self, uri: str | httpx.URL) -> None:
        """Takes effect on the next connection attempt."""
        self._uri = httpx.URL(uri)

    @property
    def last_event_id(self) -> str | None:
        return self._last_event_id

    def set_last_event_id(self, last_event_id: str) -> None:
        self._last_event_id = last_event_id

    @property
    def reconnection_time_ms(self) -> int:
        return self._reconnect_time_ms

    def set_reconnection_time_ms(self, reconnection_time_ms: int) -> None:
        self._reconnect_time_ms = reconnection_time_ms

    # ==========================
    # WORKER
    # ==========================
    def _run(self) -> None:
        loop = asyncio.new_event_loop()
        try:
            with self._loop_lock:
                if self._ready_state.get() is ReadyState.SHUTDOWN:
                    return
                self._loop = loop
                self._task = loop.create_task(self._connect())
            loop.run_until_complete(self._task)
        except asyncio.CancelledError:
            logger.debug("Connection loop cancelled")
        except Exception:
            logger.exception("EventSource worker stopped on an unexpected error")
            raise
        finally:
            loop.run_until_complete(loop.shutdown_asyncgens())
            loop.close()
            logger.debug("EventSource worker stopped")

    async def _connect(self) -> None:
        attempts = 0
        async with self._create_http_client() as client:
            while self._ready_state.get() is not ReadyState.SHUTDOWN:
                await self._maybe_wait_with_backoff(attempts)
                opened = await self._connect_once(client)
                attempts = 1 if opened else attempts + 1

    async def _maybe_wait_with_backoff(self, attempts: int) -> None:
        reconnect_time_ms = self._reconnect_time_ms
        if reconnect_time_ms > 0 and attempts > 0:
            sleep_ms = backoff_with_jitter(
                attempts, reconnect_time_ms, self._settings.MAX_RECONNECT_TIME_MS, self._jitter
            )
            logger.info(f"Waiting {sleep_ms} milliseconds before reconnecting...")
            await asyncio.sleep(sleep_ms / 1000.0)

    async def _connect_once(self, client: httpx.AsyncClient) -> bool:
        """One request/stream cycle. Returns True if the stream reached OPEN."""
        previous = self._ready_state.transition(ReadyState.CONNECTING)
        if previous is ReadyState.SHUTDOWN:
            return False
        if previous is not ReadyState.CONNECTING:
            logger.debug(f"readyState change: {previous.value} -> {ReadyState.CONNECTING.value}")

        request = self._build_request()
        response: httpx.Response | None = None
        opened = False
        try:
            response = await client.send(request, stream=True)
            if not response.is_success:
                logger.debug(f"Unsuccessful Response: {response}")
                self._report(UnsuccessfulResponseError(response.status_code))
                return opened

            with self._callback_lock:
                previous = self._ready_state.transition(ReadyState.OPEN)
                if previous is ReadyState.SHUTDOWN:
                    return opened
                opened = True
                self._dispatcher.on_open()
            if previous is not ReadyState.CONNECTING:
                logger.warning(f"Unexpected readyState change: {previous.value} -> {ReadyState.OPEN.value}")
            else:
                logger.debug(f"readyState change: {previous.value} -> {ReadyState.OPEN.value}")
            logger.info("Connected to Event Source stream.")

            await self._read_stream(response, request)
            if self._ready_state.get() is not ReadyState.SHUTDOWN:
                logger.warning("Connection unexpectedly closed.")
        except (httpx.HTTPError, OSError) as e:
            logger.debug(f"Connection problem: {e!r}")
            self._report(e)
        except Exception as e:
            logger.exception(f"Unexpected error on the event stream: {e!r}")
            self._report(e)
        finally:
            with self._callback_lock:
                previous = self._ready_state.transition(ReadyState.CLOSED)
                if previous is ReadyState.OPEN:
                    self._dispatcher.on_closed()
            if previous is not ReadyState.SHUTDOWN:
                logger.debug(f"readyState change: {previous.value} -> {ReadyState.CLOSED.value}")
            if response is not None:
                await response.aclose()
        return opened

    def _report(self, error: Exception) -> None:
        with self._callback_lock:
            if self._ready_state.get() is not ReadyState.SHUTDOWN:
                self._dispatcher.on_error(error)

    async def _read_stream(self, response: httpx.Response, request: httpx.Request) -> None:
        parser = EventParser(
            str(request.url),
            self._dispatcher,
            self,
            last_event_id=request.headers.get(LAST_EVENT_ID_HEADER),
        )
        splitter = LineSplitter()
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        async for chunk in response.aiter_bytes():
            for line in splitter.feed(decoder.decode(chunk)):
                with self._callback_lock:
                    if self._ready_state.get() is ReadyState.SHUTDOWN:
                        return
                    parser.line(line)

    def _build_request(self) -> httpx.Request:
        headers = self._headers.multi_items()
        last_event_id = self._last_event_id
        if last_event_id:
            headers.append((LAST_EVENT_ID_HEADER, last_event_id))
        return httpx.Request("GET", self._uri, headers=headers)

    def _create_http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(None),
            limits=httpx.Limits(
                max_connections=1,
                max_keepalive_connections=1,
                keepalive_expiry=self._settings.POOL_KEEPALIVE_EXPIRY_S,
            ),
            proxy=self._proxy,
            transport=self._transport,
            # env proxies would be mounted in front of a custom transport
            trust_env=self._transport is None,
        )

def _build_proxy(
    proxy: str | httpx.URL | httpx.Proxy | None,
    proxy_auth: tuple[str, str] | None,
) -> httpx.Proxy | None:
    if proxy is None:
        return None
    if isinstance(proxy, httpx.Proxy):
        if proxy_auth is not None:
            raise ValueError("proxy_auth cannot be combined with an httpx.Proxy; set auth on the Proxy")
        return proxy
    return httpx.Proxy(proxy, auth=proxy_auth)
