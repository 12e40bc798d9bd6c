"""Interfaces for the platform services that alert the user when rest ends.

The rest timer never talks to a platform directly.  It drives two kinds of
backend:

* an :class:`AlarmBackend`, a system-level countdown alarm that fires even
  while the app is suspended and can itself be paused and resumed;
* a :class:`NotificationBackend`, a one-shot local notification at an
  absolute timestamp, used when the alarm is unavailable.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from extracker.core.models import AlarmHandle, AuthorizationStatus


class AlarmSchedulingError(Exception):
    """Raised when an alarm cannot be scheduled."""


class AlarmBackend(ABC):
    """Platform capability to fire a countdown alarm at a future time."""

    @property
    @abstractmethod
    def authorization_status(self) -> AuthorizationStatus:
        """Return the cached authorization status."""

    @property
    @abstractmethod
    def is_alerting(self) -> bool:
        """Return ``True`` while a scheduled alarm is ringing."""

    @abstractmethod
    def request_authorization(self) -> AuthorizationStatus:
        """Ask for permission to schedule alarms.

        Idempotent: once resolved, the cached status is returned.
        """

    @abstractmethod
    def schedule(self, duration_seconds: int, title: str) -> AlarmHandle:
        """Schedule a countdown alarm firing in *duration_seconds*.

        Raises :class:`AlarmSchedulingError` when not authorized or when the
        platform refuses the request.
        """

    @abstractmethod
    def pause(self, handle: AlarmHandle) -> None:
        """Pause the countdown behind *handle* (best effort)."""

    @abstractmethod
    def resume(self, handle: AlarmHandle) -> None:
        """Resume the countdown behind *handle* (best effort)."""

    @abstractmethod
    def cancel(self, handle: AlarmHandle) -> None:
        """Cancel the countdown behind *handle*, silencing it if ringing."""


class NotificationBackend(ABC):
    """Platform capability to post a local notification at a timestamp."""

    @abstractmethod
    def schedule_at(self, timestamp: float, title: str, body: str) -> None:
        """Schedule a notification, replacing any pending one."""

    @abstractmethod
    def cancel_pending(self) -> None:
        """Remove the pending notification, if any."""
