import json
from wt.common.logger import log
from wt.common.setup import PATHS
from wt.core.timer import Timer, WeekHistory
from wt.util.misc import now_iso


_SCHEMA_VERSION = 1

#region === Helpers and Paths ===

STATE_PATH = PATHS.current / "state.json"

# Helper to return a truly fresh, default state.
def build_default_state():
    return {
        "meta": {
            "schema_version": _SCHEMA_VERSION,
            "saved_at": now_iso(),
        },
        "timers": [],
        "history": [],
    }

#endregion === Helpers and Paths ===

#region === Saving and Loading State ===

# Loads the local state from PATHS.current / state.json. Each section is validated on its own; a section that can't
# be read is discarded (started over empty) rather than failing the whole load.
def load_state():
    if not STATE_PATH.exists():
        log.info("No existing state.json found in `current`, loading fresh state dict.")
        return build_default_state()

    try:
        with open(STATE_PATH, "r", encoding="utf-8") as f:
            state = json.load(f)
        if not isinstance(state, dict):
            raise TypeError(f"state.json must hold an object, got {type(state).__name__}")
    # Fall back to a fresh state dict in case of error, but warn in log
    except (json.JSONDecodeError, OSError, TypeError, UnicodeDecodeError):
        log.warning("Ran into an error while trying to load state.json, discarding it and loading a fresh state dict.", exc_info=True)
        return build_default_state()

    defaulted_values = set()

    # Validate the meta dict
    if "meta" not in state or not isinstance(state["meta"], dict):
        defaulted_values.add("meta")
        state["meta"] = {}
    if "schema_version" not in state["meta"] or not isinstance(state["meta"]["schema_version"], int):
        defaulted_values.add("meta.schema_version")
        state["meta"]["schema_version"] = _SCHEMA_VERSION

    # Validate the timers list, every entry has to parse or the whole list is dropped
    try:
        state["timers"] = [Timer.from_dict(t) for t in _as_list(state.get("timers"))]
    except (KeyError, TypeError, ValueError, AttributeError):
        log.warning("Discarding unreadable timers in state.json.", exc_info=True)
        defaulted_values.add("timers")
        state["timers"] = []

    # Same for history
    try:
        state["history"] = [WeekHistory.from_dict(h) for h in _as_list(state.get("history"))]
    except (KeyError, TypeError, ValueError, AttributeError):
        log.warning("Discarding unreadable history in state.json.", exc_info=True)
        defaulted_values.add("history")
        state["history"] = []

    if defaulted_values:
        log.warning(f"Loaded state from '{STATE_PATH}', but with values that were defaulted: {', '.join(sorted(defaulted_values))}")
    else:
        log.info(f"Successfully loaded state from '{STATE_PATH}' ({len(state['timers'])} timers, {len(state['history'])} weeks).")
    return state

def _as_list(value):
    if value is None:
        return []
    if not isinstance(value, list):
        raise TypeError(f"Expected a list, got {type(value).__name__}")
    return value

# Write the given timers and history to disk as one whole-collection state.json. The file is written to a sibling
# temp file first and swapped in, so a crash mid-write leaves the previous state intact.
def save_state(timers, history):
    state = build_default_state()
    state["timers"] = [t.to_dict() for t in timers]
    state["history"] = [h.to_dict() for h in history]
    tmp_path = STATE_PATH.with_suffix(".json.tmp")
    with open(tmp_path, "w", encoding="utf-8") as f:
        json.dump(state, f, indent=2)
    tmp_path.replace(STATE_PATH)
    log.debug(f"Saved state to '{STATE_PATH}'")
    return state

#endregion === Saving and Loading State ===
