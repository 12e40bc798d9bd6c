"""Completion signals -- strategies for alerting the user when rest ends.

The rest timer holds an ordered list of signals and arms the first one that
accepts the countdown.  Every backend failure is absorbed here: a signal
that cannot arm returns ``False`` so the next one in the list is tried.
"""

from __future__ import annotations

import logging
import math
import time
from abc import ABC, abstractmethod

from extracker.core.backends import AlarmBackend, NotificationBackend
from extracker.core.models import AlarmHandle, AuthorizationStatus, CountdownRequest

logger = logging.getLogger(__name__)

NOTIFICATION_TITLE = "Rest complete"
NOTIFICATION_BODY = "Time to start your next set."


class CompletionSignal(ABC):
    """One way of telling the user that a countdown has ended."""

    name: str = "signal"

    @property
    def is_alerting(self) -> bool:
        return False

    @abstractmethod
    def arm(self, request: CountdownRequest, end_timestamp: float) -> bool:
        """Arm the signal for a countdown ending at *end_timestamp*.

        Returns ``False`` when the signal cannot be used, so the caller can
        fall back to the next one.
        """

    @abstractmethod
    def pause(self) -> None:
        """Freeze the armed alert."""

    @abstractmethod
    def resume(self, request: CountdownRequest, end_timestamp: float) -> None:
        """Continue the armed alert towards the new *end_timestamp*."""

    @abstractmethod
    def disarm(self) -> None:
        """Drop any alert this signal has armed.  Idempotent."""


class AlarmSignal(CompletionSignal):
    """Signals completion through a system countdown alarm."""

    name = "alarm"

    def __init__(self, backend: AlarmBackend) -> None:
        self._backend = backend
        self._handle: AlarmHandle | None = None

    @property
    def is_alerting(self) -> bool:
        return self._backend.is_alerting

    @property
    def handle(self) -> AlarmHandle | None:
        return self._handle

    def arm(self, request: CountdownRequest, end_timestamp: float) -> bool:
        try:
            status = self._backend.request_authorization()
        except Exception:
            logger.warning("Alarm authorization request failed", exc_info=True)
            status = AuthorizationStatus.DENIED
        if status == AuthorizationStatus.DENIED:
            logger.info("Alarm authorization denied")
            return False

        self.disarm()
        # The alarm must ring at end_timestamp however long authorization took.
        seconds = _seconds_until(end_timestamp)
        try:
            self._handle = self._backend.schedule(seconds, request.title)
        except Exception:
            logger.warning("Alarm scheduling failed", exc_info=True)
            return False
        logger.debug("Alarm %s scheduled for %d seconds", self._handle.id, seconds)
        return True

    def pause(self) -> None:
        if self._handle is None:
            return
        try:
            self._backend.pause(self._handle)
        except Exception:
            logger.warning("Alarm pause failed", exc_info=True)

    def resume(self, request: CountdownRequest, end_timestamp: float) -> None:
        if self._handle is None:
            return
        try:
            self._backend.resume(self._handle)
        except Exception:
            logger.warning("Alarm resume failed", exc_info=True)

    def disarm(self) -> None:
        handle, self._handle = self._handle, None
        if handle is None:
            return
        try:
            self._backend.cancel(handle)
        except Exception:
            logger.warning("Alarm cancel failed", exc_info=True)


class NotificationSignal(CompletionSignal):
    """Signals completion with a one-shot local notification.

    A notification cannot be paused: once scheduled it fires at its
    timestamp unless it is cancelled or rescheduled.
    """

    name = "notification"

    def __init__(
        self,
        backend: NotificationBackend,
        title: str = NOTIFICATION_TITLE,
        body: str = NOTIFICATION_BODY,
    ) -> None:
        self._backend = backend
        self._title = title
        self._body = body
        self._armed = False

    def arm(self, request: CountdownRequest, end_timestamp: float) -> bool:
        self._armed = self._schedule(end_timestamp)
        return self._armed

    def pause(self) -> None:
        pass

    def resume(self, request: CountdownRequest, end_timestamp: float) -> None:
        if self._armed:
            self._armed = self._schedule(end_timestamp)

    def disarm(self) -> None:
        self._armed = False
        try:
            self._backend.cancel_pending()
        except Exception:
            logger.warning("Cancelling pending notification failed", exc_info=True)

    def _schedule(self, end_timestamp: float) -> bool:
        try:
            self._backend.cancel_pending()
            self._backend.schedule_at(end_timestamp, self._title, self._body)
        except Exception:
            logger.warning("Notification scheduling failed", exc_info=True)
            return False
        logger.debug("Notification scheduled at %.3f", end_timestamp)
        return True


def _seconds_until(end_timestamp: float) -> int:
    """Whole seconds left until *end_timestamp*, at least one."""
    return max(1, math.ceil(round(end_timestamp - time.time(), 3)))
