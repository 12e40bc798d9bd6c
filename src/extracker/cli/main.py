"""CLI entry point for extracker.

Uses Click to expose the ``extracker`` command group.  ``start``, ``status``,
``pause``, ``resume`` and ``cancel`` delegate to a persisted RestSession;
``rest`` runs a countdown in the foreground with in-process alerts.
"""

from __future__ import annotations

import logging
import sys
import threading
from pathlib import Path
from typing import Callable, TypeVar

import click

import extracker
from extracker.core.local import LocalAlarmBackend, LocalNotificationBackend
from extracker.core.models import RestTimerState, format_clock
from extracker.core.session import InvalidStateError, RestSession
from extracker.core.timer import RestTimer

T = TypeVar("T")

_DEFAULT_DURATION = "2:00"


class DurationParamType(click.ParamType):
    """A rest duration given as seconds (``90``) or ``M:SS`` (``1:30``)."""

    name = "duration"

    def convert(self, value, param, ctx) -> int:
        if isinstance(value, int):
            seconds = value
        else:
            text = str(value).strip()
            try:
                if ":" in text:
                    minutes, _, secs = text.partition(":")
                    if len(secs) != 2 or int(secs) > 59:
                        raise ValueError(text)
                    seconds = int(minutes) * 60 + int(secs)
                else:
                    seconds = int(text)
            except ValueError:
                self.fail(f"{value!r} is not a duration (use SECONDS or M:SS)", param, ctx)
        if seconds <= 0:
            self.fail(f"{value!r} must be a positive duration", param, ctx)
        return seconds


DURATION = DurationParamType()


def _run(action: Callable[[], T]) -> T:
    """Execute *action*, converting ``InvalidStateError`` to a CLI error.

    On ``InvalidStateError`` the message is printed to stderr and the
    process exits with code 1.
    """
    try:
        return action()
    except InvalidStateError as exc:
        click.echo(str(exc), err=True)
        sys.exit(1)


def _session(ctx: click.Context) -> RestSession:
    return RestSession(config_dir=ctx.obj["config_dir"])


@click.group()
@click.version_option(version=extracker.__version__, prog_name="extracker")
@click.option(
    "--config-dir",
    type=click.Path(file_okay=False, path_type=Path),
    envvar="EXTRACKER_CONFIG_DIR",
    default=None,
    help="Where the active rest is stored (default: ~/.config/extracker).",
)
@click.option("-v", "--verbose", is_flag=True, help="Log backend activity to stderr.")
@click.pass_context
def cli(ctx: click.Context, config_dir: Path | None, verbose: bool) -> None:
    """extracker: rest timer between workout sets."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["config_dir"] = config_dir


@cli.command()
@click.argument("duration", type=DURATION, default=_DEFAULT_DURATION)
@click.pass_context
def start(ctx: click.Context, duration: int) -> None:
    """Start a rest of DURATION (SECONDS or M:SS, default 2:00)."""
    session = _session(ctx)
    message = _run(lambda: session.start(duration))
    click.echo(message)


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show the current rest status."""
    session = _session(ctx)
    message, exit_code = session.status()
    click.echo(message)
    sys.exit(exit_code)


@cli.command()
@click.pass_context
def pause(ctx: click.Context) -> None:
    """Pause the current rest."""
    session = _session(ctx)
    message = _run(session.pause)
    click.echo(message)


@cli.command()
@click.pass_context
def resume(ctx: click.Context) -> None:
    """Resume a paused rest."""
    session = _session(ctx)
    message = _run(session.resume)
    click.echo(message)


@cli.command()
@click.pass_context
def cancel(ctx: click.Context) -> None:
    """Cancel the current rest."""
    session = _session(ctx)
    message = _run(session.cancel)
    click.echo(message)


@cli.command()
@click.argument("duration", type=DURATION, default=_DEFAULT_DURATION)
@click.option(
    "--no-alarm",
    is_flag=True,
    help="Deny the alarm so the notification fallback signals the end of rest.",
)
def rest(duration: int, no_alarm: bool) -> None:
    """Count down DURATION in the foreground and alert when rest is over."""
    finished = threading.Event()
    alarm = LocalAlarmBackend(grant=not no_alarm, on_alert=lambda title: click.echo(f"\a\n{title}"))
    notifications = LocalNotificationBackend(
        deliver=lambda title, body: click.echo(f"\a\n{title}: {body}")
    )
    timer = RestTimer.with_backends(alarm, notifications, on_complete=finished.set)
    timer.add_listener(_render)
    timer.start_rest(duration)
    try:
        while not finished.wait(0.25):
            pass
    except KeyboardInterrupt:
        click.echo("\nRest cancelled", err=True)
        sys.exit(1)
    finally:
        timer.cancel()
        alarm.stop()
        timer.close()
    click.echo("\a\nRest complete")


def _render(state: RestTimerState) -> None:
    if state.is_resting:
        suffix = " (paused)" if state.is_paused else ""
        click.echo(f"\r{format_clock(state.remaining_seconds)} remaining{suffix}", nl=False)
