"""TimerStore: the in-memory owner of every timer and the week history.

All mutation goes through the methods here (user actions) or ``tick()`` (the
Ticker).  Each action commits to memory first, announces the change, and only
then hands the result to the persistence strategy, which may write it out in
the background.  Nothing a strategy does can undo a committed change.
"""

from dataclasses import replace
from datetime import datetime

from PySide6.QtCore import QObject, Signal

from wt.common.logger import log
from wt.core.reconcile import advance, tick_all
from wt.core.timer import COUNTER_FIELDS, EDITABLE_FIELDS, Timer, TimerType, WeekHistory
from wt.util.misc import now_ms


class NullPersistence:
    """Strategy stand-in that drops every hook. Keeps a bare store usable."""

    def timer_added(self, timer): pass
    def timer_updated(self, timer, fields): pass
    def timer_deleted(self, timer_id): pass
    def timers_toggled(self, timers): pass
    def time_logged(self, timer): pass
    def week_archived(self, record, timers): pass


# Counters are never negative, and a goal never has more time left than its target.
def _check_counters(timer):
    for name in sorted(COUNTER_FIELDS):
        value = getattr(timer, name)
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValueError(f"{name} must be a non-negative whole number of seconds, got {value!r}")
    if timer.type is TimerType.GOAL and timer.remaining_seconds > timer.total_seconds:
        raise ValueError(
            f"remaining_seconds ({timer.remaining_seconds}) can't exceed total_seconds ({timer.total_seconds})"
        )


class TimerStore(QObject):

    timers_changed = Signal()
    history_changed = Signal()
    # Emitted with the finished Timer whenever a goal runs out live (tick or manual log)
    goal_reached = Signal(object)

    def __init__(self, timers=(), history=(), persistence=None, clock=now_ms, parent=None):
        super().__init__(parent)
        self._timers = list(timers)
        self._history = list(history)
        self._persistence = persistence or NullPersistence()
        self._clock = clock

    # ------------------------------------------------------------------ #
    #  Projections                                                         #
    # ------------------------------------------------------------------ #

    @property
    def timers(self):
        return tuple(self._timers)

    @property
    def history(self):
        return tuple(self._history)

    def get(self, timer_id):
        return next((t for t in self._timers if t.id == timer_id), None)

    def running_timer(self):
        return next((t for t in self._timers if t.is_running), None)

    def set_persistence(self, persistence):
        self._persistence = persistence or NullPersistence()

    def _index(self, timer_id):
        return next((i for i, t in enumerate(self._timers) if t.id == timer_id), None)

    # ------------------------------------------------------------------ #
    #  Actions                                                             #
    # ------------------------------------------------------------------ #

    def add_timer(self, type, title, total_seconds=0, color="#007aff", size="small") -> Timer:
        timer = Timer.create(type, title, total_seconds, color, size)
        self._timers.append(timer)
        log.debug(f"Added {timer.type.value} timer '{title}' ({timer.id}) with total {timer.total_seconds}s")
        self.timers_changed.emit()
        self._persistence.timer_added(timer)
        return timer

    def update_timer(self, timer_id, **fields):
        bad = set(fields) - EDITABLE_FIELDS
        if bad:
            raise ValueError(f"Cannot update timer field(s): {', '.join(sorted(bad))}")
        idx = self._index(timer_id)
        if idx is None:
            log.debug(f"Ignoring update for unknown timer {timer_id}")
            return
        # total_seconds and remaining_seconds are taken as given; neither is recomputed from the other.
        updated = replace(self._timers[idx], **fields)
        if COUNTER_FIELDS & set(fields):
            _check_counters(updated)
        self._timers[idx] = updated
        log.debug(f"Updated timer '{updated.title}' ({timer_id}): {fields}")
        self.timers_changed.emit()
        self._persistence.timer_updated(updated, dict(fields))

    def delete_timer(self, timer_id):
        idx = self._index(timer_id)
        if idx is None:
            log.debug(f"Ignoring delete for unknown timer {timer_id}")
            return
        removed = self._timers.pop(idx)
        log.debug(f"Deleted timer '{removed.title}' ({timer_id})")
        self.timers_changed.emit()
        self._persistence.timer_deleted(timer_id)

    def toggle_timer(self, timer_id):
        idx = self._index(timer_id)
        if idx is None:
            log.debug(f"Ignoring toggle for unknown timer {timer_id}")
            return
        if self._timers[idx].is_finished:
            log.debug(f"Ignoring toggle for finished goal '{self._timers[idx].title}' ({timer_id})")
            return
        now = self._clock()
        touched = []
        settled_pairs = []
        # Only one timer runs at a time: everything else that's running is paused in the same step. Running time
        # is settled up to now first so a pause never drops whole seconds the ticker hadn't applied yet.
        for i, timer in enumerate(self._timers):
            if i == idx and not timer.is_running:
                updated = timer.started(now)
            elif timer.is_running:
                settled = advance(timer, now)
                settled_pairs.append((timer, settled))
                updated = settled.paused() if settled.is_running else settled
            else:
                continue
            self._timers[i] = updated
            touched.append(updated)

        target = self._timers[idx]
        log.debug(f"Toggled timer '{target.title}' ({timer_id}) -> running={target.is_running}, "
                  f"{len(touched) - 1} other timer(s) paused")
        self.timers_changed.emit()
        for old, settled in settled_pairs:
            self._note_goal_reached(old, settled)
        self._persistence.timers_toggled(touched)

    def deduct_time(self, timer_id, seconds):
        if isinstance(seconds, bool) or not isinstance(seconds, int) or seconds <= 0:
            raise ValueError(f"Logged time must be a positive whole number of seconds, got {seconds!r}")
        idx = self._index(timer_id)
        if idx is None:
            log.debug(f"Ignoring logged time for unknown timer {timer_id}")
            return
        timer = self._timers[idx]
        if timer.type is TimerType.STOPWATCH:
            updated = replace(timer, elapsed_seconds=timer.elapsed_seconds + seconds)
        else:
            remaining = max(0, timer.remaining_seconds - seconds)
            if remaining == 0:
                updated = replace(timer, remaining_seconds=0, is_running=False, last_tick_at=None)
            else:
                updated = replace(timer, remaining_seconds=remaining)
        self._timers[idx] = updated
        log.debug(f"Logged {seconds}s against '{timer.title}' ({timer_id})")
        self.timers_changed.emit()
        if updated.type is TimerType.GOAL and updated.remaining_seconds == 0 and timer.remaining_seconds > 0:
            self.goal_reached.emit(updated)
        self._persistence.time_logged(updated)

    def archive_week(self) -> WeekHistory:
        record = WeekHistory.capture(self._timers, datetime.now().astimezone())
        self._history.insert(0, record)
        self._timers = [t.reset() for t in self._timers]
        log.info(f"Archived week starting {record.week_start.isoformat()} with {len(record.timers_snapshot)} timer(s)")
        self.history_changed.emit()
        self.timers_changed.emit()
        self._persistence.week_archived(record, list(self._timers))
        return record

    # ------------------------------------------------------------------ #
    #  Tick                                                                #
    # ------------------------------------------------------------------ #

    # Called by the Ticker once a second. Never reaches the persistence hooks.
    def tick(self, now=None):
        if not any(t.is_running for t in self._timers):
            return False
        now = self._clock() if now is None else now
        before = self._timers
        after, changed = tick_all(before, now)
        if not changed:
            return False
        self._timers = after
        for old, new in zip(before, after):
            self._note_goal_reached(old, new)
        self.timers_changed.emit()
        return True

    def _note_goal_reached(self, old, new):
        if old.is_running and not new.is_running and new.type is TimerType.GOAL and new.remaining_seconds == 0:
            log.info(f"Goal '{new.title}' ({new.id}) reached")
            self.goal_reached.emit(new)
