"""
MODULE OVERVIEW:
The callback interface an application implements to receive stream activity.

WHAT IS HAPPENING HERE:
`EventHandler` has one method per kind of thing that can happen on a stream. Subclass it,
or hand plain functions to `CallbackHandler` when a class is overkill. Either way the
methods are called on the dispatcher thread, one at a time, never on the network thread.
"""
from abc import ABC, abstractmethod
from typing import Callable

from eventsource_academy.shared.models import MessageEvent

class EventHandler(ABC):
    @abstractmethod
    def on_open(self) -> None:
        pass

    @abstractmethod
    def on_message(self, event_type: str, event: MessageEvent) -> None:
        pass

    @abstractmethod
    def on_comment(self, comment: str) -> None:
        pass

    @abstractmethod
    def on_error(self, error: Exception) -> None:
        pass

    @abstractmethod
    def on_closed(self) -> None:
        pass


class CallbackHandler(EventHandler):
    """An EventHandler assembled from optional callables. Missing callbacks are no-ops."""

    def __init__(
        self,
        on_message: Callable[[str, MessageEvent], None] | None = None,
        on_open: Callable[[], None] | None = None,
        on_comment: Callable[[str], None] | None = None,
        on_error: Callable[[Exception], None] | None = None,
        on_closed: Callable[[], None] | None = None,
    ):
        self._on_message = on_message
        self._on_open = on_open
        self._on_comment = on_comment
        self._on_error = on_error
        self._on_closed = on_closed

    def on_open(self) -> None:
        if self._on_open:
            self._on_open()

    def on_message(self, event_type: str, event: MessageEvent) -> None:
        if self._on_message:
            self._on_message(event_type, event)

    def on_comment(self, comment: str) -> None:
        if self._on_comment:
            self._on_comment(comment)

    def on_error(self, error: Exception) -> None:
        if self._on_error:
            self._on_error(error)

    def on_closed(self) -> None:
        if self._on_closed:
            self._on_closed()
