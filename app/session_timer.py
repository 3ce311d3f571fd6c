"""
Fixed-interval ticker for a running training session.

Ticks only drive display; elapsed time itself is kept by the training
state machine. The ticker must be stopped when the session pauses or ends,
or when its owner goes away, so no periodic work is left behind.
"""

from __future__ import annotations

import threading
from typing import Callable, Optional


class SessionTicker:
    """Calls on_tick every `interval` seconds on a daemon thread until stopped."""

    def __init__(self, on_tick: Callable[[], None], interval: float = 1.0):
        self.on_tick = on_tick
        self.interval = interval
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="session-ticker", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=self.interval * 2)
        self._thread = None

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            self.on_tick()

    def __enter__(self) -> "SessionTicker":
        self.start()
        return self

    def __exit__(self, *exc) -> None:
        self.stop()
