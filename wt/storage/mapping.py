"""Translation between in-memory entities and the remote store's flat rows.

This is the only place that knows the remote column names.  Everything on
the other side of it works with ``Timer`` / ``WeekHistory`` objects.
"""

import json
from datetime import datetime

from wt.core.timer import SnapshotEntry, Timer, TimerType, WeekHistory

TIMER_COLUMNS = (
    "id", "user_id", "title", "type", "total_seconds", "remaining_seconds", "elapsed_seconds",
    "is_running", "last_tick_at", "color", "size", "created_at",
)
HISTORY_COLUMNS = ("id", "user_id", "week_start", "snapshot_json", "created_at")

# In-memory field -> column. They happen to match today, but rows and entities are allowed to drift apart.
_TIMER_FIELD_TO_COLUMN = {
    "title": "title",
    "type": "type",
    "total_seconds": "total_seconds",
    "remaining_seconds": "remaining_seconds",
    "elapsed_seconds": "elapsed_seconds",
    "is_running": "is_running",
    "last_tick_at": "last_tick_at",
    "color": "color",
    "size": "size",
}

# Keys inside snapshot_json, kept identical to what the web client writes so both can read each other's history.
_SNAPSHOT_KEYS = {
    "title": "title",
    "type": "type",
    "total_seconds": "totalSeconds",
    "completed_seconds": "completedSeconds",
    "color": "color",
}


def _column_value(value):
    if isinstance(value, TimerType):
        return value.value
    return value


def _as_ms(value):
    # bigint columns can come back as strings; absence stays None (never 0)
    if value is None or value == "":
        return None
    return int(value)


def timer_to_row(timer: Timer, user_id: str) -> dict:
    row = {"id": timer.id, "user_id": user_id}
    for field_name, column in _TIMER_FIELD_TO_COLUMN.items():
        row[column] = _column_value(getattr(timer, field_name))
    return row


def timer_from_row(row: dict) -> Timer:
    last_tick_at = _as_ms(row.get("last_tick_at"))
    return Timer(
        id=str(row["id"]),
        type=TimerType(row.get("type") or TimerType.GOAL),
        title=row.get("title") or "",
        total_seconds=int(row.get("total_seconds") or 0),
        remaining_seconds=int(row.get("remaining_seconds") or 0),
        elapsed_seconds=int(row.get("elapsed_seconds") or 0),
        is_running=bool(row.get("is_running")),
        last_tick_at=last_tick_at,
        color=row.get("color") or "#007aff",
        size=row.get("size") or "small",
    )


def fields_to_row(fields: dict) -> dict:
    """Column-level patch for a partial timer update."""
    unknown = set(fields) - set(_TIMER_FIELD_TO_COLUMN)
    if unknown:
        raise ValueError(f"No remote column for timer field(s): {', '.join(sorted(unknown))}")
    return {_TIMER_FIELD_TO_COLUMN[k]: _column_value(v) for k, v in fields.items()}


def running_state_row(timer: Timer) -> dict:
    """The columns a reader on another device needs to reconcile a timer."""
    return fields_to_row({
        "is_running": timer.is_running,
        "last_tick_at": timer.last_tick_at,
        "remaining_seconds": timer.remaining_seconds,
        "elapsed_seconds": timer.elapsed_seconds,
    })


def snapshot_entry_to_wire(entry: SnapshotEntry) -> dict:
    return {wire: _column_value(getattr(entry, attr)) for attr, wire in _SNAPSHOT_KEYS.items()}


def snapshot_entry_from_wire(d: dict) -> SnapshotEntry:
    return SnapshotEntry(
        title=d.get("title") or "",
        type=TimerType(d.get("type") or TimerType.GOAL),
        total_seconds=int(d.get("totalSeconds") or 0),
        completed_seconds=int(d.get("completedSeconds") or 0),
        color=d.get("color") or "#007aff",
    )


def history_to_row(record: WeekHistory, user_id: str) -> dict:
    return {
        "id": record.id,
        "user_id": user_id,
        "week_start": record.week_start.isoformat(),
        "snapshot_json": [snapshot_entry_to_wire(e) for e in record.timers_snapshot],
    }


def history_from_row(row: dict) -> WeekHistory:
    snapshot = row.get("snapshot_json") or []
    if isinstance(snapshot, str):
        snapshot = json.loads(snapshot)
    week_start = row["week_start"]
    if not isinstance(week_start, datetime):
        week_start = datetime.fromisoformat(week_start)
    return WeekHistory(
        id=str(row["id"]),
        week_start=week_start,
        timers_snapshot=tuple(snapshot_entry_from_wire(e) for e in snapshot),
    )
