import time
from datetime import datetime


# Simply returns the current local time as an ISO8601 string with timezone offset.
def now_iso():
    return datetime.now().astimezone().isoformat()

# Wall-clock milliseconds since the epoch. Running timers are stamped with this (not time.monotonic()), since the
# stamp has to mean the same thing after a restart or on another device.
def now_ms() -> int:
    return int(time.time() * 1000)


# HH:MM:SS, negative values clamp to zero.
def format_clock(seconds):
    seconds = max(0, int(seconds))
    h, rem = divmod(seconds, 3600)
    m, s = divmod(rem, 60)
    return f"{h:02d}:{m:02d}:{s:02d}"

# Compact display, "2h 5m" once there's at least an hour on it, otherwise "5m 12s".
def format_duration(seconds):
    seconds = max(0, int(seconds))
    h, rem = divmod(seconds, 3600)
    m, s = divmod(rem, 60)
    if h > 0:
        return f"{h}h {m}m"
    return f"{m}m {s}s"

# Whole hours and leftover whole minutes, as shown on history lines.
def hours_minutes(seconds):
    seconds = max(0, int(seconds))
    return seconds // 3600, (seconds % 3600) // 60

# Converts a (possibly fractional) number of hours to whole seconds, e.g. 1.5 -> 5400.
def hours_to_seconds(hours) -> int:
    return int(round(float(hours) * 3600))
