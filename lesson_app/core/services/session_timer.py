"""Elapsed-time tracking for quiz sessions and the ticker that drives it."""

from __future__ import annotations

from threading import Event, Lock, Thread
from typing import Callable

from lesson_app.constants.quiz_constants import TICK_INTERVAL_SECONDS


class ElapsedTimeTracker:
    """Counts whole seconds spent in an unresolved session.

    The tracker never measures time itself; an external scheduler calls
    :meth:`tick` once per second and the tracker decides whether it counts.
    """

    def __init__(self) -> None:
        self._elapsed_seconds: int = 0
        self._running: bool = False
        self._stopped: bool = False

    @property
    def elapsed_seconds(self) -> int:
        return self._elapsed_seconds

    def is_running(self) -> bool:
        return self._running

    def is_stopped(self) -> bool:
        return self._stopped

    def start(self) -> None:
        if not self._stopped:
            self._running = True

    def pause(self) -> None:
        self._running = False

    def stop(self) -> None:
        """Stop counting for good; later ``start`` calls are ignored."""
        self._running = False
        self._stopped = True

    def reset(self) -> None:
        self._elapsed_seconds = 0

    def tick(self) -> bool:
        """Advance by one second if running. Returns True when counted."""
        if not self._running:
            return False
        self._elapsed_seconds += 1
        return True


class IntervalTicker:
    """Calls ``callback`` every ``interval_seconds`` on a daemon thread.

    ``start`` is idempotent: at most one thread is alive per ticker.
    """

    def __init__(
        self,
        callback: Callable[[], None],
        interval_seconds: float = TICK_INTERVAL_SECONDS,
        name: str = "QuizTicker",
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("Tick interval must be positive.")
        self._callback = callback
        self._interval_seconds = interval_seconds
        self._name = name
        self._lock = Lock()
        self._thread: Thread | None = None
        self._stop_event: Event | None = None

    def is_running(self) -> bool:
        with self._lock:
            return self._thread is not None

    def start(self) -> None:
        with self._lock:
            if self._thread is not None:
                return
            stop_event = Event()
            thread = Thread(target=self._run, args=(stop_event,), name=self._name, daemon=True)
            self._stop_event = stop_event
            self._thread = thread
            thread.start()

    def cancel(self) -> None:
        with self._lock:
            if self._stop_event is not None:
                self._stop_event.set()
            self._thread = None
            self._stop_event = None

    def _run(self, stop_event: Event) -> None:
        while not stop_event.wait(self._interval_seconds):
            self._callback()
