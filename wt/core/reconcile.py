"""Elapsed-real-time math shared by the live tick and the load-time catch-up.

Both paths run the same per-timer step: work out how many whole seconds have
passed since ``last_tick_at``, apply them, and move ``last_tick_at`` forward by
exactly the consumed amount so the sub-second remainder carries over to the
next step instead of being rounded away.
"""

from dataclasses import replace

from wt.common.logger import log
from wt.core.timer import Timer, TimerType

# Live ticks leave anything under a second for the next tick.
TICK_THRESHOLD_MS = 1000


def elapse(timer: Timer, seconds: int) -> Timer:
    """Apply `seconds` of running time to a running timer.

    Goal timers that hit zero are stopped, which is the only automatic
    running -> not running transition.
    """
    consumed_ms = seconds * 1000
    if timer.type is TimerType.STOPWATCH:
        return replace(
            timer,
            elapsed_seconds=timer.elapsed_seconds + seconds,
            last_tick_at=timer.last_tick_at + consumed_ms,
        )

    new_remaining = timer.remaining_seconds - seconds
    if new_remaining <= 0:
        return replace(timer, remaining_seconds=0, is_running=False, last_tick_at=None)
    return replace(
        timer,
        remaining_seconds=new_remaining,
        last_tick_at=timer.last_tick_at + consumed_ms,
    )


def advance(timer: Timer, now_ms: int, threshold_ms: int = TICK_THRESHOLD_MS) -> Timer:
    """Bring one timer up to `now_ms`.

    Returns the same object when nothing is due, so callers can use identity
    to tell whether anything changed.
    """
    if not timer.is_running or timer.last_tick_at is None:
        return timer
    delta_ms = now_ms - timer.last_tick_at
    if delta_ms <= 0 or delta_ms < threshold_ms:
        return timer
    seconds = delta_ms // 1000
    if seconds == 0:
        return timer
    return elapse(timer, seconds)


def tick_all(timers, now_ms: int):
    """One tick over the whole list. Returns ``(timers, changed)``."""
    changed = False
    result = []
    for timer in timers:
        updated = advance(timer, now_ms)
        if updated is not timer:
            changed = True
        result.append(updated)
    return result, changed


def catch_up(timers, now_ms: int):
    """Fast-forward a freshly loaded list to `now_ms` in a single jump.

    Same step as a live tick, just without the one-second floor: a timer
    left running while the app was closed (or on another device) comes back
    showing the right numbers straight away.
    """
    result = []
    for timer in timers:
        # Running with no stamp can't be reconciled, so it's stopped where it stands.
        if timer.is_running and timer.last_tick_at is None:
            log.warning(f"Timer '{timer.title}' ({timer.id}) was saved running without last_tick_at, pausing it.")
            result.append(timer.paused())
            continue
        # The mirror case: a stamp on an idle timer is stale and would be written back out.
        if not timer.is_running and timer.last_tick_at is not None:
            log.warning(f"Timer '{timer.title}' ({timer.id}) was saved idle with a last_tick_at, clearing it.")
            result.append(timer.paused())
            continue
        updated = advance(timer, now_ms, threshold_ms=1)
        if updated is not timer:
            log.debug(f"Caught up timer '{timer.title}' by {(now_ms - timer.last_tick_at) // 1000}s "
                      f"(running={updated.is_running})")
        result.append(updated)
    return result
