"""
CLI entrypoint for EventSource Academy.
"""
import time

import typer

from eventsource_academy.client.event_source import EventSource
from eventsource_academy.client.visualizer import ConsolePrinter, Visualizer
from eventsource_academy.shared.client_utils import configure_logging
from eventsource_academy.shared.config import settings

app = typer.Typer(help="EventSource Academy CLI: a reconnecting SSE client and a demo stream")

def parse_header_options(raw_headers: list[str]) -> list[tuple[str, str]]:
    headers = []
    for raw in raw_headers:
        name, sep, value = raw.partition(":")
        if not sep or not name.strip():
            raise typer.BadParameter(f"Header must look like 'Name: value', got {raw!r}")
        headers.append((name.strip(), value.strip()))
    return headers

@app.command()
def server():
    """Start the demo SSE server using Uvicorn."""
    import uvicorn
    typer.echo(f"Starting server on port {settings.PORT}...")
    uvicorn.run("eventsource_academy.server.main:app", host="0.0.0.0", port=settings.PORT, log_level=settings.LOG_LEVEL.lower())

@app.command()
def listen(
    url: str = typer.Argument(..., help="Stream URL, e.g. http://127.0.0.1:8000/sse/stream"),
    header: list[str] = typer.Option([], "--header", "-H", help="Extra request header 'Name: value' (repeatable)"),
    reconnect_ms: int = typer.Option(settings.RECONNECT_TIME_MS, help="Reconnect base interval in milliseconds"),
    last_event_id: str = typer.Option("", help="Resume from this event id on the first connection"),
    proxy: str = typer.Option("", help="HTTP proxy URL"),
    duration: float = typer.Option(60.0, help="Seconds to listen before closing"),
    dashboard: bool = typer.Option(True, "--dashboard/--plain", help="Rich live dashboard or one line per callback"),
):
    """Connect to a stream and show its events until `duration` elapses or Ctrl-C."""
    configure_logging(settings.LOG_LEVEL)
    headers = parse_header_options(header)
    handler = Visualizer() if dashboard else ConsolePrinter()
    source = EventSource(url, handler, headers=headers, reconnect_time_ms=reconnect_ms, proxy=proxy or None)
    if last_event_id:
        source.set_last_event_id(last_event_id)

    try:
        if dashboard:
            handler.run(source, duration)
        else:
            with source:
                time.sleep(duration)
    except KeyboardInterrupt:
        source.close()

if __name__ == "__main__":
    app()
