"""Background tickers that run a callback on a fixed cadence."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable

LOGGER = logging.getLogger(__name__)


class Ticker:
    """Run ``callback`` every ``interval_seconds`` on a daemon thread.

    Ticks are measured from ``start()``. A callback that overruns its slot
    delays the next tick instead of stacking up extra calls.
    """

    def __init__(self, interval_seconds: float, callback: Callable[[], None], name: str = "ticker") -> None:
        if interval_seconds <= 0:
            raise ValueError(f"Ticker interval must be positive, got {interval_seconds}")
        self._interval_seconds = interval_seconds
        self._callback = callback
        self._name = name
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stop_event.is_set()

    def start(self) -> None:
        """Start the background thread."""
        if self._thread and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run_loop, name=self._name, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Stop the thread; once this returns the callback will not fire again."""
        self._stop_event.set()
        thread = self._thread
        if thread is None or thread is threading.current_thread():
            return
        thread.join()

    def _run_loop(self) -> None:
        next_tick = time.monotonic() + self._interval_seconds
        while not self._stop_event.wait(timeout=max(0.0, next_tick - time.monotonic())):
            try:
                self._callback()
            except Exception:
                LOGGER.exception("Ticker %s callback failed", self._name)
            next_tick += self._interval_seconds
            now = time.monotonic()
            if next_tick < now:
                missed = int((now - next_tick) // self._interval_seconds) + 1
                next_tick += missed * self._interval_seconds


__all__ = ["Ticker"]
