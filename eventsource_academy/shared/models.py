"""
MODULE OVERVIEW:
The typed data structures shared by the client and the demo server, powered by Pydantic v2.

WHAT IS HAPPENING HERE:
`ReadyState` is the lifecycle phase of one EventSource. `MessageEvent` is the unit handed
to application code for every dispatched SSE record. `TickPayload` is what the demo
server serializes into each `data:` field.
"""
from datetime import datetime
from enum import Enum
from pydantic import BaseModel

class ReadyState(str, Enum):
    RAW = "RAW"
    CONNECTING = "CONNECTING"
    OPEN = "OPEN"
    CLOSED = "CLOSED"
    SHUTDOWN = "SHUTDOWN"

# WHAT IS HAPPENING HERE:
# The event type travels next to this model (handler.on_message(event_type, event)),
# so the record itself only carries the payload, the id it was seen under and
# the URL of the stream that produced it.
class MessageEvent(BaseModel):
    data: str
    last_event_id: str | None = None
    origin: str

class TickPayload(BaseModel):
    sequence: int
    generated_at: datetime
    source: str = "demo"
