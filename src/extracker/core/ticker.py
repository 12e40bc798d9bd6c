"""Periodic tick sources that drive the rest countdown display."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Protocol

logger = logging.getLogger(__name__)

TickCallback = Callable[[], None]


class Ticker(Protocol):
    """Calls a callback periodically until stopped.

    ``start`` replaces any running loop, so at most one is active.
    """

    def start(self, callback: TickCallback) -> None: ...

    def stop(self) -> None: ...


class IntervalTicker:
    """Runs the callback on a daemon thread every *period* seconds."""

    def __init__(self, period: float = 1.0) -> None:
        self._period = period
        self._stopped: threading.Event | None = None
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._stopped is not None

    def start(self, callback: TickCallback) -> None:
        stopped = threading.Event()
        with self._lock:
            if self._stopped is not None:
                self._stopped.set()
            self._stopped = stopped
        thread = threading.Thread(
            target=self._run, args=(callback, stopped), name="rest-ticker", daemon=True
        )
        thread.start()

    def stop(self) -> None:
        with self._lock:
            if self._stopped is not None:
                self._stopped.set()
                self._stopped = None

    def _run(self, callback: TickCallback, stopped: threading.Event) -> None:
        while not stopped.wait(self._period):
            try:
                callback()
            except Exception:
                logger.exception("Tick callback failed")


class ManualTicker:
    """Ticks only when :meth:`fire` is called.

    Used by short-lived processes that refresh the countdown once, and by
    tests that drive the clock by hand.
    """

    def __init__(self) -> None:
        self._callback: TickCallback | None = None

    @property
    def running(self) -> bool:
        return self._callback is not None

    def start(self, callback: TickCallback) -> None:
        self._callback = callback

    def stop(self) -> None:
        self._callback = None

    def fire(self, times: int = 1) -> None:
        """Deliver up to *times* ticks, stopping early if the loop stops."""
        for _ in range(times):
            if self._callback is None:
                return
            self._callback()
