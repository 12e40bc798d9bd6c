"""Rest Session -- a rest countdown persisted across process invocations."""

from __future__ import annotations

import fcntl
import json
import logging
from pathlib import Path

from extracker.core.models import RestPhase, RestTimerState, format_clock
from extracker.core.ticker import ManualTicker
from extracker.core.timer import RestTimer

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG_DIR = Path.home() / ".config" / "extracker"
_STATE_FILE = "rest.json"


class InvalidStateError(Exception):
    """Raised when a command does not apply to the current rest phase."""


class RestSession:
    """Keeps one rest countdown alive between command invocations.

    The countdown state is written to ``<config_dir>/rest.json`` after every
    mutation.  On load the end timestamp is checked against the wall clock,
    so time spent between invocations counts against the rest.
    """

    def __init__(self, config_dir: Path | None = None) -> None:
        self._config_dir: Path = config_dir if config_dir is not None else _DEFAULT_CONFIG_DIR
        self._completed = False
        self._timer = RestTimer(ticker=ManualTicker(), on_complete=self._mark_completed)
        self._load()

    @property
    def timer(self) -> RestTimer:
        return self._timer

    # -- public API ----------------------------------------------------------

    def start(self, total_seconds: int) -> str:
        """Start a rest of *total_seconds*, replacing any active one."""
        self._timer.start_rest(total_seconds)
        if not self._timer.is_resting:
            return f"Rest not started: {total_seconds} is not a positive duration"
        self._completed = False
        self._save()
        return f"Rest started: {format_clock(total_seconds)}"

    def status(self) -> tuple[str, int]:
        """Return ``(message, exit_code)``."""
        self._timer.refresh()
        state = self._timer.state
        if state.phase == RestPhase.RESTING:
            return f"{format_clock(state.remaining_seconds)} remaining", 0
        if state.phase == RestPhase.PAUSED:
            return f"{format_clock(state.remaining_seconds)} remaining (paused)", 0
        if self._completed:
            return "Rest complete", 1
        return "No active rest", 1

    def pause(self) -> str:
        """Pause the running rest."""
        self._require_phase("pause", RestPhase.RESTING)
        self._timer.pause()
        self._save()
        if not self._timer.is_resting:
            return "Rest complete"
        return f"Rest paused at {format_clock(self._timer.remaining_seconds)} remaining"

    def resume(self) -> str:
        """Resume a paused rest."""
        self._require_phase("resume", RestPhase.PAUSED)
        self._timer.resume()
        self._save()
        return f"Rest resumed: {format_clock(self._timer.remaining_seconds)} remaining"

    def cancel(self) -> str:
        """Drop the rest, whatever its phase."""
        was_resting = self._timer.is_resting
        self._timer.cancel()
        self._completed = False
        self._save()
        return "Rest cancelled" if was_resting else "No active rest"

    # -- private helpers -----------------------------------------------------

    def _require_phase(self, method: str, phase: RestPhase) -> None:
        current = self._timer.state.phase
        if current != phase:
            raise InvalidStateError(f"{method}() is not valid from {current.value} state")

    def _mark_completed(self) -> None:
        self._completed = True

    # -- persistence ---------------------------------------------------------

    def _save(self) -> None:
        """Write current state to the JSON file with file locking."""
        self._config_dir.mkdir(parents=True, exist_ok=True)
        with open(self._config_dir / _STATE_FILE, "w") as f:
            fcntl.flock(f, fcntl.LOCK_EX)
            json.dump(self._timer.state.to_dict(), f)

    def _load(self) -> None:
        """Load state from the JSON file if it exists."""
        path = self._config_dir / _STATE_FILE
        if not path.exists():
            return

        with open(path) as f:
            fcntl.flock(f, fcntl.LOCK_SH)
            data = json.load(f)

        self._timer.restore(RestTimerState.from_dict(data))
        if self._completed:
            logger.info("Persisted rest expired while no command was running")
            self._save()
