"""Tests for the in-process alarm and notification backends."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from extracker.core.backends import AlarmSchedulingError
from extracker.core.local import LocalAlarmBackend, LocalNotificationBackend
from extracker.core.models import AlarmHandle, AuthorizationStatus

# ---------------------------------------------------------------------------
# LocalAlarmBackend
# ---------------------------------------------------------------------------


class TestLocalAlarmAuthorization:
    """Authorization resolves once and is cached."""

    def test_starts_not_determined(self) -> None:
        backend = LocalAlarmBackend()
        assert backend.authorization_status == AuthorizationStatus.NOT_DETERMINED

    def test_grant_authorizes(self) -> None:
        backend = LocalAlarmBackend(grant=True)
        assert backend.request_authorization() == AuthorizationStatus.AUTHORIZED
        assert backend.authorization_status == AuthorizationStatus.AUTHORIZED

    def test_refusal_denies_and_is_cached(self) -> None:
        backend = LocalAlarmBackend(grant=False)
        assert backend.request_authorization() == AuthorizationStatus.DENIED
        assert backend.request_authorization() == AuthorizationStatus.DENIED

    def test_schedule_requires_authorization(self, timer_factory) -> None:
        backend = LocalAlarmBackend(timer_factory=timer_factory)
        with pytest.raises(AlarmSchedulingError):
            backend.schedule(60, "Rest Complete")
        assert timer_factory.timers == []

    def test_schedule_rejects_non_positive_duration(self, timer_factory) -> None:
        backend = LocalAlarmBackend(timer_factory=timer_factory)
        backend.request_authorization()
        with pytest.raises(AlarmSchedulingError):
            backend.schedule(0, "Rest Complete")


class TestLocalAlarmCountdown:
    """The alarm fires after its countdown, honouring pause and resume."""

    def _authorized(self, timer_factory, on_alert=None) -> LocalAlarmBackend:
        backend = LocalAlarmBackend(on_alert=on_alert, timer_factory=timer_factory)
        backend.request_authorization()
        return backend

    def test_schedule_arms_timer(self, timer_factory) -> None:
        backend = self._authorized(timer_factory)
        handle = backend.schedule(60, "Rest Complete")
        assert handle.title == "Rest Complete"
        assert timer_factory.last.interval == 60
        assert timer_factory.last.started
        assert timer_factory.last.daemon

    def test_firing_sets_alerting_and_calls_back(self, timer_factory) -> None:
        on_alert = MagicMock()
        backend = self._authorized(timer_factory, on_alert)
        backend.schedule(60, "Rest Complete")
        timer_factory.last.fire()
        assert backend.is_alerting
        on_alert.assert_called_once_with("Rest Complete")

    def test_stop_silences_alarm(self, timer_factory) -> None:
        backend = self._authorized(timer_factory)
        backend.schedule(60, "Rest Complete")
        timer_factory.last.fire()
        backend.stop()
        assert not backend.is_alerting

    def test_new_schedule_replaces_previous(self, timer_factory) -> None:
        on_alert = MagicMock()
        backend = self._authorized(timer_factory, on_alert)
        first = backend.schedule(60, "First")
        first_timer = timer_factory.last
        backend.schedule(30, "Second")
        assert first_timer.cancelled
        backend.pause(first)  # stale handle is ignored
        timer_factory.last.fire()
        on_alert.assert_called_once_with("Second")

    def test_pause_then_resume_keeps_remaining(self, timer_factory) -> None:
        backend = self._authorized(timer_factory)
        with patch("extracker.core.local.time") as mock_time:
            mock_time.time.return_value = 1000.0
            handle = backend.schedule(60, "Rest Complete")
            first_timer = timer_factory.last

            mock_time.time.return_value = 1020.0
            backend.pause(handle)
            assert first_timer.cancelled

            mock_time.time.return_value = 1500.0
            backend.resume(handle)
        assert timer_factory.last is not first_timer
        assert timer_factory.last.interval == pytest.approx(40.0)

    def test_paused_alarm_does_not_fire(self, timer_factory) -> None:
        on_alert = MagicMock()
        backend = self._authorized(timer_factory, on_alert)
        handle = backend.schedule(60, "Rest Complete")
        backend.pause(handle)
        timer_factory.last.function()  # a tick that raced the pause
        on_alert.assert_not_called()
        assert not backend.is_alerting

    def test_cancel_stops_ringing_alarm(self, timer_factory) -> None:
        backend = self._authorized(timer_factory)
        handle = backend.schedule(60, "Rest Complete")
        timer_factory.last.fire()
        backend.cancel(handle)
        assert not backend.is_alerting

    def test_cancel_unknown_handle_is_ignored(self, timer_factory) -> None:
        backend = self._authorized(timer_factory)
        backend.schedule(60, "Rest Complete")
        backend.cancel(AlarmHandle(title="other"))
        assert not timer_factory.last.cancelled


# ---------------------------------------------------------------------------
# LocalNotificationBackend
# ---------------------------------------------------------------------------


class TestLocalNotificationBackend:
    """One pending notification; the last schedule wins."""

    def test_schedule_at_waits_until_timestamp(self, timer_factory) -> None:
        backend = LocalNotificationBackend(timer_factory=timer_factory)
        with patch("extracker.core.local.time") as mock_time:
            mock_time.time.return_value = 1000.0
            backend.schedule_at(1060.0, "Rest complete", "Go")
        assert timer_factory.last.interval == pytest.approx(60.0)
        assert backend.pending == (1060.0, "Rest complete", "Go")

    def test_past_timestamp_fires_immediately(self, timer_factory) -> None:
        backend = LocalNotificationBackend(timer_factory=timer_factory)
        with patch("extracker.core.local.time") as mock_time:
            mock_time.time.return_value = 2000.0
            backend.schedule_at(1060.0, "Rest complete", "Go")
        assert timer_factory.last.interval == 0.0

    def test_delivery_calls_deliver_once(self, timer_factory) -> None:
        deliver = MagicMock()
        backend = LocalNotificationBackend(deliver=deliver, timer_factory=timer_factory)
        backend.schedule_at(1060.0, "Rest complete", "Go")
        timer_factory.last.function()
        timer_factory.last.function()
        deliver.assert_called_once_with("Rest complete", "Go")
        assert backend.pending is None

    def test_reschedule_replaces_pending(self, timer_factory) -> None:
        deliver = MagicMock()
        backend = LocalNotificationBackend(deliver=deliver, timer_factory=timer_factory)
        backend.schedule_at(1060.0, "First", "a")
        first_timer = timer_factory.last
        backend.schedule_at(1090.0, "Second", "b")

        assert first_timer.cancelled
        first_timer.function()  # a stale timer must not deliver the new one early
        deliver.assert_not_called()
        assert backend.pending == (1090.0, "Second", "b")

    def test_cancel_pending(self, timer_factory) -> None:
        deliver = MagicMock()
        backend = LocalNotificationBackend(deliver=deliver, timer_factory=timer_factory)
        backend.schedule_at(1060.0, "Rest complete", "Go")
        backend.cancel_pending()
        timer_factory.last.fire()
        assert backend.pending is None
        deliver.assert_not_called()

    def test_default_delivery_logs(self, timer_factory, caplog) -> None:
        backend = LocalNotificationBackend(timer_factory=timer_factory)
        backend.schedule_at(0.0, "Rest complete", "Go")
        with caplog.at_level("INFO", logger="extracker.core.local"):
            timer_factory.last.function()
        assert "Rest complete" in caplog.text
