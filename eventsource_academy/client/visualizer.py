"""
MODULE OVERVIEW:
The Rich terminal views used by `runner.py listen`.

WHAT IS HAPPENING HERE:
Both classes are EventHandlers, so they receive callbacks on the dispatcher thread.
`Visualizer` only records what happened into bounded deques; the main thread redraws a
Live layout from those deques four times per second. `ConsolePrinter` prints one line per
callback for terminals (or pipes) where a dashboard is unwanted.
"""
import time
from collections import deque
from datetime import datetime

from rich.console import Console
from rich.layout import Layout
from rich.live import Live
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from eventsource_academy.client.event_source import EventSource
from eventsource_academy.client.handler import EventHandler
from eventsource_academy.shared.models import MessageEvent, ReadyState

STATE_COLORS = {
    ReadyState.OPEN: "green",
    ReadyState.CONNECTING: "yellow",
    ReadyState.RAW: "yellow",
    ReadyState.CLOSED: "red",
    ReadyState.SHUTDOWN: "red",
}

class Visualizer(EventHandler):
    def __init__(self, max_events: int = 10):
        self.source: EventSource | None = None
        self.recent_events = deque(maxlen=max_events)
        self.timeline = deque(maxlen=5)
        self.events_received = 0
        self.opens = 0
        self.errors = 0
        self.last_comment = ""

    def _mark(self, text: str) -> None:
        ts = datetime.now().strftime("%H:%M:%S")
        self.timeline.appendleft(f"[{ts}] {text}")

    def on_open(self) -> None:
        self.opens += 1
        self._mark("Stream opened")

    def on_message(self, event_type: str, event: MessageEvent) -> None:
        self.events_received += 1
        ts = datetime.now().strftime("%H:%M:%S")
        data = event.data[:40] + "..." if len(event.data) > 40 else event.data
        self.recent_events.appendleft((ts, escape(event_type), escape(event.last_event_id or ""), escape(data)))

    def on_comment(self, comment: str) -> None:
        self.last_comment = escape(comment)

    def on_error(self, error: Exception) -> None:
        self.errors += 1
        self._mark(f"Error: {escape(str(error))}")

    def on_closed(self) -> None:
        self._mark("Stream closed")

    def generate_layout(self) -> Layout:
        layout = Layout()
        layout.split_column(
            Layout(name="header", size=3),
            Layout(name="main")
        )
        layout["main"].split_row(
            Layout(name="left", ratio=2),
            Layout(name="right", ratio=1)
        )
        layout["right"].split_column(
            Layout(name="stats"),
            Layout(name="timeline")
        )

        state = self.source.get_state() if self.source else ReadyState.RAW
        color = STATE_COLORS[state]
        uri = self.source.get_uri() if self.source else ""
        layout["header"].update(Panel(f"[{color} bold]{uri} | State: {state.value}[/]", style=color))

        table = Table(title="Live Event Feed", expand=True)
        table.add_column("Time", justify="left", style="cyan", no_wrap=True)
        table.add_column("Type", style="magenta")
        table.add_column("Id", style="blue")
        table.add_column("Data", style="green")
        for row in self.recent_events:
            table.add_row(*row)
        layout["left"].update(Panel(table, title="Feed"))

        last_id = self.source.last_event_id if self.source else None
        retry_ms = self.source.reconnection_time_ms if self.source else 0
        stats_text = (
            f"Events Received: {self.events_received}\n"
            f"Opens: {self.opens}\n"
            f"Errors: {self.errors}\n"
            f"Last-Event-ID: {last_id or '-'}\n"
            f"Reconnect base: {retry_ms} ms\n"
            f"Last comment: {self.last_comment or '-'}"
        )
        layout["stats"].update(Panel(stats_text, title="Connection Stats"))
        layout["timeline"].update(Panel("\n".join(self.timeline), title="Timeline"))
        return layout

    def run(self, source: EventSource, duration_s: float) -> None:
        self.source = source
        deadline = time.monotonic() + duration_s
        source.start()
        try:
            with Live(self.generate_layout(), refresh_per_second=4) as live:
                while time.monotonic() < deadline:
                    live.update(self.generate_layout())
                    time.sleep(0.25)
        finally:
            source.close()


class ConsolePrinter(EventHandler):
    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def on_open(self) -> None:
        self.console.print("[green]open[/]")

    def on_message(self, event_type: str, event: MessageEvent) -> None:
        self.console.print(f"[magenta]{escape(event_type)}[/] id={escape(event.last_event_id or '-')} {escape(event.data)}", highlight=False)

    def on_comment(self, comment: str) -> None:
        self.console.print(f"[dim]: {escape(comment)}[/]")

    def on_error(self, error: Exception) -> None:
        self.console.print(f"[red]error[/] {escape(repr(error))}")

    def on_closed(self) -> None:
        self.console.print("[yellow]closed[/]")
