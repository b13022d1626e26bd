"""
MODULE OVERVIEW:
A lock-guarded holder for one EventSource's ReadyState.

WHAT IS HAPPENING HERE:
Two threads write the state: the worker driving the connection loop and whichever
thread calls close(). Every write happens under one lock, so each transition is an
atomic swap or compare-and-swap. The worker uses `transition()`, which refuses to
leave SHUTDOWN; close() uses `get_and_set()`.
"""
import threading

from eventsource_academy.shared.models import ReadyState

class AtomicReadyState:
    def __init__(self, initial: ReadyState = ReadyState.RAW):
        self._value = initial
        self._lock = threading.Lock()

    def get(self) -> ReadyState:
        with self._lock:
            return self._value

    def get_and_set(self, new: ReadyState) -> ReadyState:
        with self._lock:
            previous, self._value = self._value, new
            return previous

    def compare_and_set(self, expected: ReadyState, new: ReadyState) -> bool:
        with self._lock:
            if self._value is not expected:
                return False
            self._value = new
            return True

    def transition(self, new: ReadyState) -> ReadyState:
        """Swap to `new` unless already SHUTDOWN. Returns the previous state either way."""
        with self._lock:
            previous = self._value
            if previous is not ReadyState.SHUTDOWN:
                self._value = new
            return previous
