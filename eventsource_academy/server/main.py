"""
MODULE OVERVIEW:
The FastAPI application serving the demo event stream.

WHAT IS HAPPENING HERE:
A deliberately small server: one SSE route and a health check. It exists so the client
has something real to talk to, both from `runner.py server` and in-process from the tests
through httpx's ASGI transport.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from eventsource_academy.server.routes import sse

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Demo event stream server starting up...")
    yield
    logger.info("Shutdown complete.")


app = FastAPI(
    title="EventSource Academy demo stream",
    description="Numbered tick events for exercising a reconnecting SSE client",
    version="1.0.0",
    lifespan=lifespan
)

app.include_router(sse.router, tags=["Stream"])

@app.get("/healthz", tags=["Ops"])
async def health_check():
    return {"status": "ok"}
