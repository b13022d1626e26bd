"""
MODULE OVERVIEW:
The text/event-stream framing decoder.

WHAT IS HAPPENING HERE:
`LineSplitter` turns decoded body chunks into lines. SSE allows CRLF, CR and LF as line
endings, and a chunk may end between the CR and the LF, so a trailing CR is remembered
across chunks.

`EventParser` is fed one line at a time and accumulates fields the way a browser's
EventSource does:

    event: tick          -> type of the record in progress
    data: {"n": 1}       -> appended to the data buffer (joined with "\\n")
    id: 17               -> becomes the Last-Event-ID, here and on the EventSource
    retry: 5000          -> new reconnect base interval on the EventSource
    : keep-alive         -> a comment, passed to on_comment
    (blank line)         -> dispatch the record, then reset type and data

Unknown fields are ignored. A blank line with no data dispatches nothing.
"""
import re
from typing import Protocol

from loguru import logger

from eventsource_academy.client.handler import EventHandler
from eventsource_academy.shared.models import MessageEvent

DEFAULT_EVENT_TYPE = "message"

_LINE_BREAK = re.compile(r"\r\n|\r|\n")

class StreamSettings(Protocol):
    def set_last_event_id(self, last_event_id: str) -> None: ...

    def set_reconnection_time_ms(self, reconnection_time_ms: int) -> None: ...


class LineSplitter:
    def __init__(self):
        self._pending = ""
        self._skip_lf = False

    def feed(self, text: str) -> list[str]:
        if self._skip_lf:
            self._skip_lf = False
            if text.startswith("\n"):
                text = text[1:]
        data = self._pending + text
        if data.endswith("\r"):
            # The line is complete; a LF arriving in the next chunk belongs to it.
            self._skip_lf = True
        lines = _LINE_BREAK.split(data)
        self._pending = lines.pop()
        return lines


class EventParser:
    def __init__(
        self,
        origin: str,
        handler: EventHandler,
        source: StreamSettings,
        last_event_id: str | None = None,
    ):
        self._origin = str(origin)
        self._handler = handler
        self._source = source
        self._last_event_id = last_event_id
        self._event_type = ""
        self._data: list[str] = []

    def line(self, line: str) -> None:
        logger.trace(f"Parsing line: {line!r}")
        if not line:
            self._dispatch()
            return
        if line.startswith(":"):
            self._handler.on_comment(line[1:].strip())
            return

        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        self._process_field(field, value)

    def _process_field(self, field: str, value: str) -> None:
        if field == "data":
            self._data.append(value)
        elif field == "event":
            self._event_type = value
        elif field == "id":
            if "\x00" not in value:
                self._last_event_id = value
                self._source.set_last_event_id(value)
        elif field == "retry":
            if value.isascii() and value.isdigit():
                self._source.set_reconnection_time_ms(int(value))
            else:
                logger.debug(f"Ignoring invalid retry value: {value!r}")
        else:
            logger.debug(f"Ignoring unknown field: {field!r}")

    def _dispatch(self) -> None:
        if not self._data:
            self._event_type = ""
            return

        event = MessageEvent(
            data="\n".join(self._data),
            last_event_id=self._last_event_id,
            origin=self._origin,
        )
        event_type = self._event_type or DEFAULT_EVENT_TYPE
        self._event_type = ""
        self._data = []
        logger.debug(f"Dispatching {event_type} event, id={event.last_event_id}")
        self._handler.on_message(event_type, event)
