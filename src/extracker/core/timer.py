"""Rest timer core -- a wall-clock anchored countdown between sets."""

from __future__ import annotations

import logging
import math
import threading
import time
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Any, Callable, Sequence

from extracker.core.backends import AlarmBackend, NotificationBackend
from extracker.core.models import CountdownRequest, RestTimerState
from extracker.core.signals import AlarmSignal, CompletionSignal, NotificationSignal
from extracker.core.ticker import IntervalTicker, Ticker

logger = logging.getLogger(__name__)

ALARM_TITLE = "Rest Complete"
TICK_PERIOD_SECONDS = 1.0

StateListener = Callable[[RestTimerState], None]


class RestTimer:
    """Single source of truth for an in-progress rest countdown.

    The remaining time is always derived from an absolute end timestamp
    (``time.time()``), never decremented, so the countdown stays correct when
    the process is suspended between ticks.

    Backend work (authorization, scheduling, pause/resume/cancel of the
    armed alert) runs on *executor* and never blocks the caller.  Each
    countdown gets a new generation number; arming work that finishes after
    its countdown was replaced or cancelled undoes itself.
    """

    def __init__(
        self,
        signals: Sequence[CompletionSignal] = (),
        *,
        ticker: Ticker | None = None,
        executor: Executor | None = None,
        on_complete: Callable[[], None] | None = None,
    ) -> None:
        self._signals: list[CompletionSignal] = list(signals)
        self._ticker: Ticker = ticker if ticker is not None else IntervalTicker(TICK_PERIOD_SECONDS)
        self._owns_executor = executor is None
        self._executor: Executor = (
            executor
            if executor is not None
            else ThreadPoolExecutor(max_workers=1, thread_name_prefix="rest-signal")
        )
        self._on_complete = on_complete
        self._listeners: list[StateListener] = []
        self._lock = threading.RLock()
        self._closed = False
        self._generation = 0
        self._armed: CompletionSignal | None = None
        self._request: CountdownRequest | None = None
        self._is_resting = False
        self._is_paused = False
        self._total_seconds = 0
        self._remaining_seconds = 0
        self._end_timestamp: float | None = None

    @classmethod
    def with_backends(
        cls, alarm: AlarmBackend, notifications: NotificationBackend, **kwargs: Any
    ) -> RestTimer:
        """Build a timer that prefers *alarm* and falls back to *notifications*."""
        return cls([AlarmSignal(alarm), NotificationSignal(notifications)], **kwargs)

    # -- observable state ----------------------------------------------------

    @property
    def state(self) -> RestTimerState:
        with self._lock:
            return RestTimerState(
                is_resting=self._is_resting,
                is_paused=self._is_paused,
                total_seconds=self._total_seconds,
                remaining_seconds=self._remaining_seconds,
                end_timestamp=self._end_timestamp,
            )

    @property
    def is_resting(self) -> bool:
        return self._is_resting

    @property
    def is_paused(self) -> bool:
        return self._is_paused

    @property
    def total_seconds(self) -> int:
        return self._total_seconds

    @property
    def remaining_seconds(self) -> int:
        return self._remaining_seconds

    @property
    def end_timestamp(self) -> float | None:
        return self._end_timestamp

    @property
    def is_alerting(self) -> bool:
        """Return ``True`` while any backend is ringing for a finished rest."""
        return any(signal.is_alerting for signal in self._signals)

    @property
    def active_signal(self) -> str | None:
        """Return the name of the armed signal, if arming has succeeded."""
        armed = self._armed
        return armed.name if armed is not None else None

    def add_listener(self, listener: StateListener) -> None:
        """Call *listener* with the new state after every change."""
        self._listeners.append(listener)

    def remove_listener(self, listener: StateListener) -> None:
        self._listeners.remove(listener)

    # -- public interface ----------------------------------------------------

    def start_rest(self, total_seconds: int) -> None:
        """Start a countdown of *total_seconds*, replacing any active one.

        Non-positive durations are ignored.
        """
        if total_seconds <= 0:
            logger.debug("Ignoring rest of %d seconds", total_seconds)
            return
        self.cancel()

        with self._lock:
            self._total_seconds = total_seconds
            self._remaining_seconds = total_seconds
            self._end_timestamp = time.time() + total_seconds
            self._is_resting = True
            self._is_paused = False
            self._request = CountdownRequest(total_seconds, ALARM_TITLE)
            generation = self._generation
            request = self._request
            self._ticker.start(self._tick)

        logger.info("Rest started: %d seconds", total_seconds)
        self._dispatch(self._arm_signals, generation, request)
        self._publish()

    def pause(self) -> None:
        """Freeze the countdown.  Ignored unless it is running."""
        with self._lock:
            if not self._is_resting or self._is_paused:
                return
            remaining = self._compute_remaining()
            if remaining <= 0:
                self._expire()
                expired = True
            else:
                self._remaining_seconds = remaining
                self._is_paused = True
                expired = False
            generation = self._generation

        if expired:
            self._complete()
        else:
            logger.info("Rest paused with %d seconds remaining", remaining)
            self._dispatch(self._pause_armed, generation)
        self._publish()

    def resume(self) -> None:
        """Continue a paused countdown with the time that was left."""
        with self._lock:
            if not self._is_resting or not self._is_paused:
                return
            self._is_paused = False
            self._end_timestamp = time.time() + self._remaining_seconds
            self._ticker.start(self._tick)
            generation = self._generation
            request = self._request
            end_timestamp = self._end_timestamp

        logger.info("Rest resumed with %d seconds remaining", self._remaining_seconds)
        self._dispatch(self._resume_armed, generation, request, end_timestamp)
        self._publish()

    def cancel(self) -> None:
        """Drop the countdown and every alert armed for it.  Idempotent."""
        with self._lock:
            self._ticker.stop()
            was_resting = self._is_resting
            self._generation += 1
            self._armed = None
            self._request = None
            self._is_resting = False
            self._is_paused = False
            self._total_seconds = 0
            self._remaining_seconds = 0
            self._end_timestamp = None

        if was_resting:
            logger.info("Rest cancelled")
        self._dispatch(self._disarm_signals)
        self._publish()

    def refresh(self) -> None:
        """Recompute the remaining time now instead of waiting for a tick."""
        self._tick()

    def restore(self, state: RestTimerState) -> None:
        """Adopt a countdown captured earlier, e.g. by another process.

        Alerts armed by whoever captured *state* are left alone.
        """
        self.cancel()
        if not state.is_resting or state.end_timestamp is None:
            return
        with self._lock:
            self._total_seconds = state.total_seconds
            self._remaining_seconds = state.remaining_seconds
            self._end_timestamp = state.end_timestamp
            self._is_resting = True
            self._is_paused = state.is_paused
            if state.total_seconds > 0:
                self._request = CountdownRequest(state.total_seconds, ALARM_TITLE)
            if not state.is_paused:
                self._ticker.start(self._tick)
        self.refresh()

    def close(self) -> None:
        """Stop ticking and release the executor if this timer created it."""
        self._ticker.stop()
        self._closed = True
        if self._owns_executor:
            self._executor.shutdown(wait=True)

    # -- tick loop -----------------------------------------------------------

    def _tick(self) -> None:
        with self._lock:
            if not self._is_resting or self._is_paused:
                return
            self._remaining_seconds = self._compute_remaining()
            expired = self._remaining_seconds <= 0
            if expired:
                self._expire()

        if expired:
            self._complete()
        self._publish()

    def _compute_remaining(self) -> int:
        if self._end_timestamp is None:
            return 0
        # Millisecond rounding keeps float noise from adding a whole second.
        return max(0, math.ceil(round(self._end_timestamp - time.time(), 3)))

    def _expire(self) -> None:
        """Enter IDLE after natural expiry.  Caller holds the lock."""
        self._ticker.stop()
        self._is_resting = False
        self._is_paused = False
        self._remaining_seconds = 0
        self._end_timestamp = None

    def _complete(self) -> None:
        logger.info("Rest complete")
        if self._on_complete is not None:
            self._on_complete()

    def _publish(self) -> None:
        state = self.state
        for listener in list(self._listeners):
            listener(state)

    # -- backend coordination ------------------------------------------------

    def _dispatch(self, fn: Callable[..., None], *args: Any) -> None:
        if self._closed or not self._signals:
            return
        self._executor.submit(fn, *args)

    def _is_current(self, generation: int) -> bool:
        with self._lock:
            return generation == self._generation

    def _arm_signals(self, generation: int, request: CountdownRequest) -> None:
        for signal in self._signals:
            with self._lock:
                if generation != self._generation or self._end_timestamp is None:
                    return
                end_timestamp = self._end_timestamp
            if not signal.arm(request, end_timestamp):
                continue
            with self._lock:
                if generation == self._generation and self._end_timestamp is not None:
                    self._armed = signal
                    logger.info("Rest alert armed via %s", signal.name)
                    return
            # The countdown was replaced, cancelled or expired while arming.
            logger.debug("Disarming %s armed for a stale countdown", signal.name)
            signal.disarm()
            return
        logger.warning("No backend accepted the rest alert; expiry will be silent")

    def _pause_armed(self, generation: int) -> None:
        armed = self._armed
        if armed is not None and self._is_current(generation):
            armed.pause()

    def _resume_armed(
        self, generation: int, request: CountdownRequest | None, end_timestamp: float
    ) -> None:
        armed = self._armed
        if armed is not None and request is not None and self._is_current(generation):
            armed.resume(request, end_timestamp)

    def _disarm_signals(self) -> None:
        for signal in self._signals:
            signal.disarm()
