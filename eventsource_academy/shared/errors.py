"""Errors surfaced to EventHandler.on_error or raised inside the client."""


class EventSourceError(Exception):
    """Base class for everything this package raises on its own."""


class UnsuccessfulResponseError(EventSourceError):
    """The stream endpoint answered with a non-2xx status."""

    def __init__(self, status_code: int):
        super().__init__(f"Unsuccessful response code received from stream: {status_code}")
        self.status_code = status_code


class DispatcherClosedError(EventSourceError):
    """A callback was submitted after the dispatcher was shut down."""
