"""Timer and week-history entities: pure data, no persistence, no Qt."""

import uuid
from dataclasses import dataclass, field, asdict, replace
from datetime import datetime
from enum import Enum


class TimerType(str, Enum):
    GOAL = "goal"
    STOPWATCH = "stopwatch"


# The time-keeping fields. Editing any of them also moves what a remote reader reconciles from.
COUNTER_FIELDS = frozenset({"total_seconds", "remaining_seconds", "elapsed_seconds"})


# Fields a caller may change through TimerStore.update_timer(). id and type are fixed at creation, and the running
# fields only move through toggle/tick/deduct so the running <=> last_tick_at pairing can't be broken from outside.
EDITABLE_FIELDS = frozenset({
    "title",
    "color",
    "size",
    "total_seconds",
    "remaining_seconds",
    "elapsed_seconds",
})


@dataclass
class Timer:
    """One tracked unit of time.

    Goal timers count ``remaining_seconds`` down from ``total_seconds``;
    stopwatches count ``elapsed_seconds`` up with no ceiling.  ``last_tick_at``
    is a wall-clock millisecond stamp and is set exactly when the timer runs.
    """

    id: str
    type: TimerType
    title: str
    total_seconds: int = 0
    remaining_seconds: int = 0
    elapsed_seconds: int = 0
    is_running: bool = False
    last_tick_at: int | None = None
    color: str = "#007aff"
    size: str = "small"

    @classmethod
    def create(cls, type, title, total_seconds=0, color="#007aff", size="small"):
        type = TimerType(type)
        total = int(total_seconds) if type is TimerType.GOAL else 0
        return cls(
            id=str(uuid.uuid4()),
            type=type,
            title=title,
            total_seconds=total,
            remaining_seconds=total,
            elapsed_seconds=0,
            color=color,
            size=size,
        )

    @property
    def completed_seconds(self) -> int:
        if self.type is TimerType.STOPWATCH:
            return self.elapsed_seconds
        return self.total_seconds - self.remaining_seconds

    # Fraction of a goal that's done, clamped to [0, 1]. Stopwatches have no target, so always 0.
    @property
    def progress(self) -> float:
        if self.type is TimerType.STOPWATCH or self.total_seconds <= 0:
            return 0.0
        return min(1.0, max(0.0, self.completed_seconds / self.total_seconds))

    @property
    def is_finished(self) -> bool:
        return self.type is TimerType.GOAL and self.remaining_seconds <= 0 and not self.is_running

    # The value a display shows: what's left for a goal, what's accrued for a stopwatch.
    @property
    def display_seconds(self) -> int:
        if self.type is TimerType.STOPWATCH:
            return self.elapsed_seconds
        return self.remaining_seconds

    def started(self, now_ms: int) -> "Timer":
        return replace(self, is_running=True, last_tick_at=int(now_ms))

    def paused(self) -> "Timer":
        return replace(self, is_running=False, last_tick_at=None)

    # Back to a clean slate for a new week. Identity and presentation survive.
    def reset(self) -> "Timer":
        return replace(
            self,
            remaining_seconds=self.total_seconds,
            elapsed_seconds=0,
            is_running=False,
            last_tick_at=None,
        )

    def to_dict(self) -> dict:
        d = asdict(self)
        d["type"] = self.type.value
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "Timer":
        is_running = bool(d.get("is_running", False))
        last_tick_at = d.get("last_tick_at")
        return cls(
            id=str(d["id"]),
            type=TimerType(d.get("type") or TimerType.GOAL),
            title=str(d["title"]),
            total_seconds=int(d.get("total_seconds") or 0),
            remaining_seconds=int(d.get("remaining_seconds") or 0),
            elapsed_seconds=int(d.get("elapsed_seconds") or 0),
            is_running=is_running,
            last_tick_at=int(last_tick_at) if last_tick_at is not None else None,
            color=d.get("color") or "#007aff",
            size=d.get("size") or "small",
        )


@dataclass(frozen=True)
class SnapshotEntry:
    title: str
    type: TimerType
    total_seconds: int
    completed_seconds: int
    color: str

    @classmethod
    def of(cls, timer: Timer) -> "SnapshotEntry":
        return cls(
            title=timer.title,
            type=timer.type,
            total_seconds=timer.total_seconds,
            completed_seconds=timer.completed_seconds,
            color=timer.color,
        )

    def to_dict(self) -> dict:
        d = asdict(self)
        d["type"] = self.type.value
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "SnapshotEntry":
        return cls(
            title=str(d["title"]),
            type=TimerType(d.get("type") or TimerType.GOAL),
            total_seconds=int(d.get("total_seconds") or 0),
            completed_seconds=int(d.get("completed_seconds") or 0),
            color=d.get("color") or "#007aff",
        )


@dataclass(frozen=True)
class WeekHistory:
    """An archived week. Never mutated once built."""

    id: str
    week_start: datetime
    timers_snapshot: tuple[SnapshotEntry, ...] = field(default_factory=tuple)

    @classmethod
    def capture(cls, timers, week_start: datetime) -> "WeekHistory":
        return cls(
            id=str(uuid.uuid4()),
            week_start=week_start,
            timers_snapshot=tuple(SnapshotEntry.of(t) for t in timers),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "week_start": self.week_start.isoformat(),
            "timers_snapshot": [e.to_dict() for e in self.timers_snapshot],
        }

    @classmethod
    def from_dict(cls, d: dict) -> "WeekHistory":
        return cls(
            id=str(d["id"]),
            week_start=datetime.fromisoformat(d["week_start"]),
            timers_snapshot=tuple(SnapshotEntry.from_dict(e) for e in d.get("timers_snapshot") or []),
        )
