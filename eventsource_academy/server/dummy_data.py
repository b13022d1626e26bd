"""
MODULE OVERVIEW:
The tick generator behind the demo stream.

WHAT IS HAPPENING HERE:
Ticks are numbered, and the number doubles as the SSE event id. A client that reconnects
with `Last-Event-ID: 7` therefore resumes at tick 8, which makes resumption visible
when you kill and restart the server under a running `listen`.
"""

import asyncio
from datetime import datetime, timezone
from typing import AsyncIterator

from eventsource_academy.shared.models import TickPayload

def parse_resume_point(last_event_id: str | None) -> int:
    """Sequence number the client already has, or 0 for a fresh subscription."""
    if last_event_id and last_event_id.isascii() and last_event_id.isdigit():
        return int(last_event_id)
    return 0

async def tick_generator(
    start_after: int = 0,
    count: int | None = None,
    interval_s: float = 1.0,
    source: str = "demo",
) -> AsyncIterator[TickPayload]:
    """Emits ticks start_after+1, start_after+2, ... forever, or `count` of them."""
    sequence = start_after
    emitted = 0
    while count is None or emitted < count:
        sequence += 1
        emitted += 1
        yield TickPayload(
            sequence=sequence,
            generated_at=datetime.now(timezone.utc),
            source=source,
        )
        if interval_s > 0 and (count is None or emitted < count):
            await asyncio.sleep(interval_s)
