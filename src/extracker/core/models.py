"""Value types shared by the rest timer and its backends."""

from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any


class AuthorizationStatus(Enum):
    """Whether the alarm backend may fire alerts."""

    NOT_DETERMINED = "not_determined"
    AUTHORIZED = "authorized"
    DENIED = "denied"


class RestPhase(Enum):
    """Possible phases of a rest countdown."""

    IDLE = "idle"
    RESTING = "resting"
    PAUSED = "paused"


@dataclass(frozen=True)
class CountdownRequest:
    """What to show when a countdown ends."""

    duration_seconds: int
    title: str
    message: str = ""

    def __post_init__(self) -> None:
        if self.duration_seconds <= 0:
            raise ValueError(
                f"duration_seconds must be positive, got {self.duration_seconds}"
            )


@dataclass(frozen=True)
class AlarmHandle:
    """Opaque reference to an alarm scheduled on an ``AlarmBackend``."""

    title: str = ""
    id: uuid.UUID = field(default_factory=uuid.uuid4)


@dataclass(frozen=True)
class RestTimerState:
    """Snapshot of the rest countdown as seen by observers."""

    is_resting: bool = False
    is_paused: bool = False
    total_seconds: int = 0
    remaining_seconds: int = 0
    end_timestamp: float | None = None

    @property
    def phase(self) -> RestPhase:
        if not self.is_resting:
            return RestPhase.IDLE
        return RestPhase.PAUSED if self.is_paused else RestPhase.RESTING

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RestTimerState:
        """Build a state from its ``to_dict`` form, tolerating missing keys."""
        end = data.get("end_timestamp")
        return cls(
            is_resting=bool(data.get("is_resting", False)),
            is_paused=bool(data.get("is_paused", False)),
            total_seconds=int(data.get("total_seconds", 0)),
            remaining_seconds=int(data.get("remaining_seconds", 0)),
            end_timestamp=float(end) if end is not None else None,
        )


def format_clock(seconds: float) -> str:
    """Format *seconds* as ``M:SS``."""
    total = int(seconds)
    return f"{total // 60}:{total % 60:02d}"
