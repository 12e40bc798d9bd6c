"""Shared fakes for the rest timer tests."""

from __future__ import annotations

from concurrent.futures import Executor, Future
from typing import Any, Callable

import pytest

from extracker.core.backends import AlarmBackend, AlarmSchedulingError, NotificationBackend
from extracker.core.models import AlarmHandle, AuthorizationStatus
from extracker.core.ticker import ManualTicker


class InlineExecutor(Executor):
    """Runs submitted work immediately on the calling thread."""

    def submit(self, fn: Callable[..., Any], /, *args: Any, **kwargs: Any) -> Future:
        future: Future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as exc:  # pragma: no cover - surfaced via the future
            future.set_exception(exc)
        return future


class DeferredExecutor(Executor):
    """Queues submitted work until :meth:`drain` is called."""

    def __init__(self) -> None:
        self.queue: list[tuple[Callable[..., Any], tuple, dict]] = []

    def submit(self, fn: Callable[..., Any], /, *args: Any, **kwargs: Any) -> Future:
        self.queue.append((fn, args, kwargs))
        return Future()

    def drain(self) -> None:
        while self.queue:
            fn, args, kwargs = self.queue.pop(0)
            fn(*args, **kwargs)


class FakeAlarmBackend(AlarmBackend):
    """Records every call; behaviour is tuned through attributes."""

    def __init__(self, status: AuthorizationStatus = AuthorizationStatus.AUTHORIZED) -> None:
        self.status = status
        self.fail_schedule = False
        self.alerting = False
        self.on_schedule: Callable[[], None] | None = None
        self.authorization_requests = 0
        self.scheduled: list[tuple[int, str, AlarmHandle]] = []
        self.paused: list[AlarmHandle] = []
        self.resumed: list[AlarmHandle] = []
        self.cancelled: list[AlarmHandle] = []

    @property
    def authorization_status(self) -> AuthorizationStatus:
        return self.status

    @property
    def is_alerting(self) -> bool:
        return self.alerting

    def request_authorization(self) -> AuthorizationStatus:
        self.authorization_requests += 1
        return self.status

    def schedule(self, duration_seconds: int, title: str) -> AlarmHandle:
        if self.on_schedule is not None:
            self.on_schedule()
        if self.fail_schedule:
            raise AlarmSchedulingError("platform refused the alarm")
        handle = AlarmHandle(title=title)
        self.scheduled.append((duration_seconds, title, handle))
        return handle

    def pause(self, handle: AlarmHandle) -> None:
        self.paused.append(handle)

    def resume(self, handle: AlarmHandle) -> None:
        self.resumed.append(handle)

    def cancel(self, handle: AlarmHandle) -> None:
        self.cancelled.append(handle)


class FakeNotificationBackend(NotificationBackend):
    """Keeps the pending notification and a log of every schedule."""

    def __init__(self) -> None:
        self.pending: tuple[float, str, str] | None = None
        self.scheduled: list[tuple[float, str, str]] = []
        self.cancel_count = 0

    def schedule_at(self, timestamp: float, title: str, body: str) -> None:
        self.pending = (timestamp, title, body)
        self.scheduled.append(self.pending)

    def cancel_pending(self) -> None:
        self.cancel_count += 1
        self.pending = None


class FakeTimer:
    """Stand-in for ``threading.Timer`` that fires only when told to."""

    def __init__(self, interval: float, function: Callable[[], None]) -> None:
        self.interval = interval
        self.function = function
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        if not self.cancelled:
            self.function()


class FakeTimerFactory:
    def __init__(self) -> None:
        self.timers: list[FakeTimer] = []

    def __call__(self, interval: float, function: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(interval, function)
        self.timers.append(timer)
        return timer

    @property
    def last(self) -> FakeTimer:
        return self.timers[-1]


class CountingTicker(ManualTicker):
    """A ManualTicker that counts how often its loop was (re)started."""

    def __init__(self) -> None:
        super().__init__()
        self.starts = 0

    def start(self, callback: Callable[[], None]) -> None:
        super().start(callback)
        self.starts += 1


@pytest.fixture()
def alarm() -> FakeAlarmBackend:
    return FakeAlarmBackend()


@pytest.fixture()
def notifications() -> FakeNotificationBackend:
    return FakeNotificationBackend()


@pytest.fixture()
def ticker() -> CountingTicker:
    return CountingTicker()


@pytest.fixture()
def timer_factory() -> FakeTimerFactory:
    return FakeTimerFactory()
