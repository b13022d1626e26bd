"""
MODULE OVERVIEW:
Moves application callbacks off the network thread.

WHAT IS HAPPENING HERE:
The worker that reads the socket must never wait on application code. Every callback is
queued onto a single-thread executor, so handlers run one at a time, in the order the
parser produced them, while the reader keeps reading.
A callback that raises is reported through on_error. If on_error itself raises, we log
it and move on, otherwise one broken handler would recurse forever.
"""
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable

from loguru import logger

from eventsource_academy.client.handler import EventHandler
from eventsource_academy.shared.errors import DispatcherClosedError
from eventsource_academy.shared.models import MessageEvent

class EventDispatcher(EventHandler):
    def __init__(self, handler: EventHandler, thread_name_prefix: str = "eventsource-dispatch"):
        self._handler = handler
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=thread_name_prefix)

    def on_open(self) -> None:
        self._submit(self._handler.on_open)

    def on_message(self, event_type: str, event: MessageEvent) -> None:
        self._submit(self._handler.on_message, event_type, event)

    def on_comment(self, comment: str) -> None:
        self._submit(self._handler.on_comment, comment)

    def on_error(self, error: Exception) -> None:
        self._submit(self._report_error, error)

    def on_closed(self) -> None:
        self._submit(self._handler.on_closed)

    def shutdown(self, wait: bool = False) -> None:
        """Stops accepting callbacks. Already queued ones still run."""
        self._executor.shutdown(wait=wait)

    def _submit(self, callback: Callable[..., Any], *args: Any) -> None:
        try:
            self._executor.submit(self._invoke, callback, *args)
        except RuntimeError as e:
            raise DispatcherClosedError(str(e)) from e

    def _invoke(self, callback: Callable[..., Any], *args: Any) -> None:
        try:
            callback(*args)
        except Exception as e:
            logger.warning(f"Handler callback {getattr(callback, '__name__', callback)} raised: {e!r}")
            self._report_error(e)

    def _report_error(self, error: Exception) -> None:
        try:
            self._handler.on_error(error)
        except Exception as e:
            logger.error(f"Error in on_error handler, ignoring: {e!r}")
