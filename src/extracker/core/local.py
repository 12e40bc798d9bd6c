"""In-process backends that stand in for the platform alarm and notifications.

They keep the same contracts as the platform services: one active alarm and
one pending notification at a time, with the last schedule replacing the
previous one.  Alerts only fire while the process is alive.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable

from extracker.core.backends import AlarmBackend, AlarmSchedulingError, NotificationBackend
from extracker.core.models import AlarmHandle, AuthorizationStatus

logger = logging.getLogger(__name__)

NOTIFICATION_ID = "exercise.rest.complete"

TimerFactory = Callable[[float, Callable[..., None]], threading.Timer]


def _start_timer(factory: TimerFactory, delay: float, fn: Callable[..., None]) -> threading.Timer:
    timer = factory(max(0.0, delay), fn)
    timer.daemon = True
    timer.start()
    return timer


class _Countdown:
    """Book-keeping for the one alarm the local backend runs."""

    def __init__(self, handle: AlarmHandle, end_timestamp: float) -> None:
        self.handle = handle
        self.end_timestamp = end_timestamp
        self.remaining_at_pause: float | None = None
        self.timer: threading.Timer | None = None

    def stop_timer(self) -> None:
        if self.timer is not None:
            self.timer.cancel()
            self.timer = None


class LocalAlarmBackend(AlarmBackend):
    """Countdown alarm driven by a thread timer.

    *grant* decides how the first authorization request resolves.  When the
    alarm fires, ``is_alerting`` turns on and *on_alert* is called with the
    alarm title; :meth:`stop` silences it.
    """

    def __init__(
        self,
        grant: bool = True,
        on_alert: Callable[[str], None] | None = None,
        timer_factory: TimerFactory = threading.Timer,
    ) -> None:
        self._grant = grant
        self._on_alert = on_alert
        self._timer_factory = timer_factory
        self._status = AuthorizationStatus.NOT_DETERMINED
        self._active: _Countdown | None = None
        self._alerting = False
        self._lock = threading.Lock()

    @property
    def authorization_status(self) -> AuthorizationStatus:
        return self._status

    @property
    def is_alerting(self) -> bool:
        return self._alerting

    def request_authorization(self) -> AuthorizationStatus:
        if self._status == AuthorizationStatus.NOT_DETERMINED:
            self._status = (
                AuthorizationStatus.AUTHORIZED if self._grant else AuthorizationStatus.DENIED
            )
            logger.debug("Alarm authorization resolved to %s", self._status.value)
        return self._status

    def schedule(self, duration_seconds: int, title: str) -> AlarmHandle:
        if self._status != AuthorizationStatus.AUTHORIZED:
            raise AlarmSchedulingError(
                f"alarm not authorized ({self._status.value})"
            )
        if duration_seconds <= 0:
            raise AlarmSchedulingError(f"invalid alarm duration: {duration_seconds}")

        handle = AlarmHandle(title=title)
        with self._lock:
            self._drop_active()
            countdown = _Countdown(handle, time.time() + duration_seconds)
            countdown.timer = _start_timer(
                self._timer_factory, duration_seconds, lambda: self._fire(handle)
            )
            self._active = countdown
        return handle

    def pause(self, handle: AlarmHandle) -> None:
        with self._lock:
            countdown = self._find(handle)
            if countdown is None or countdown.remaining_at_pause is not None:
                return
            countdown.stop_timer()
            countdown.remaining_at_pause = max(0.0, countdown.end_timestamp - time.time())

    def resume(self, handle: AlarmHandle) -> None:
        with self._lock:
            countdown = self._find(handle)
            if countdown is None or countdown.remaining_at_pause is None:
                return
            remaining = countdown.remaining_at_pause
            countdown.remaining_at_pause = None
            countdown.end_timestamp = time.time() + remaining
            countdown.timer = _start_timer(
                self._timer_factory, remaining, lambda: self._fire(handle)
            )

    def cancel(self, handle: AlarmHandle) -> None:
        with self._lock:
            if self._find(handle) is not None:
                self._drop_active()

    def stop(self) -> None:
        """Silence a ringing alarm."""
        with self._lock:
            self._drop_active()

    # -- private helpers -----------------------------------------------------

    def _find(self, handle: AlarmHandle) -> _Countdown | None:
        if self._active is not None and self._active.handle.id == handle.id:
            return self._active
        return None

    def _drop_active(self) -> None:
        """Cancel the active countdown.  Caller holds the lock."""
        if self._active is not None:
            self._active.stop_timer()
            self._active = None
        self._alerting = False

    def _fire(self, handle: AlarmHandle) -> None:
        with self._lock:
            countdown = self._find(handle)
            if countdown is None or countdown.remaining_at_pause is not None:
                return
            countdown.timer = None
            self._alerting = True
        logger.info("Alarm %s ringing", handle.id)
        if self._on_alert is not None:
            self._on_alert(handle.title)


class LocalNotificationBackend(NotificationBackend):
    """One pending notification, delivered by a thread timer at its timestamp."""

    def __init__(
        self,
        deliver: Callable[[str, str], None] | None = None,
        timer_factory: TimerFactory = threading.Timer,
    ) -> None:
        self._deliver = deliver if deliver is not None else self._log_notification
        self._timer_factory = timer_factory
        self._pending: tuple[float, str, str] | None = None
        self._timer: threading.Timer | None = None
        self._lock = threading.Lock()

    @property
    def pending(self) -> tuple[float, str, str] | None:
        """Return ``(timestamp, title, body)`` of the pending notification."""
        return self._pending

    def schedule_at(self, timestamp: float, title: str, body: str) -> None:
        with self._lock:
            self._cancel_locked()
            entry = (timestamp, title, body)
            self._pending = entry
            self._timer = _start_timer(
                self._timer_factory, timestamp - time.time(), lambda: self._post(entry)
            )
        logger.debug("Notification %s scheduled at %.3f", NOTIFICATION_ID, timestamp)

    def cancel_pending(self) -> None:
        with self._lock:
            self._cancel_locked()

    def _cancel_locked(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._pending = None

    def _post(self, entry: tuple[float, str, str]) -> None:
        with self._lock:
            if self._pending is not entry:
                return
            self._pending = None
            self._timer = None
        _, title, body = entry
        self._deliver(title, body)

    @staticmethod
    def _log_notification(title: str, body: str) -> None:
        logger.info("Notification %s: %s -- %s", NOTIFICATION_ID, title, body)
