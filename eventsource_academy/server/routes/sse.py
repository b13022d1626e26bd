"""
MODULE OVERVIEW:
The demo text/event-stream endpoint.

WHAT IS HAPPENING HERE:
Every tick goes out as `event: tick` with its sequence number as `id`. The first frame
also carries a `retry` hint, so clients pick up the server's preferred reconnect delay.
When the request has a Last-Event-ID, a comment frame announces where the stream
resumes.
"""
from typing import AsyncIterator

from fastapi import APIRouter, Header, Query
from loguru import logger
from sse_starlette.sse import EventSourceResponse, ServerSentEvent

from eventsource_academy.server.dummy_data import parse_resume_point, tick_generator
from eventsource_academy.shared.config import settings

router = APIRouter()

async def tick_frames(start_after: int, count: int | None, interval_s: float) -> AsyncIterator[ServerSentEvent]:
    if start_after:
        yield ServerSentEvent(comment=f"resuming after {start_after}")
    first = True
    async for tick in tick_generator(start_after, count, interval_s):
        yield ServerSentEvent(
            data=tick.model_dump_json(),
            event="tick",
            id=str(tick.sequence),
            retry=settings.DEMO_RETRY_MS if first else None,
        )
        first = False

@router.get("/sse/stream")
async def sse_stream(
    count: int | None = Query(None, ge=0),
    interval: float | None = Query(None, ge=0),
    last_event_id: str | None = Header(None),
):
    start_after = parse_resume_point(last_event_id)
    interval_s = settings.DEMO_EVENT_INTERVAL_S if interval is None else interval
    logger.info(f"protocol=sse event=connect last_event_id={last_event_id} count={count}")
    return EventSourceResponse(tick_frames(start_after, count, interval_s))
