import json
import os
from dataclasses import dataclass
from dotenv import load_dotenv
from wt.common.logger import log
from wt.common.setup import PATHS

#region === Helpers and Paths ===

SETTINGS_PATH = PATHS.current / "settings.json"
ENV_PATH = ".env"

# Default values for settings.json. Anything missing from the file falls back to these.
_SETTINGS_DEFAULTS = {
    "tick_interval_ms": 1000,
    "default_color": "#007aff",
    "default_size": "small",
    "console_log": False,
}

# Signed-in identity handed over by the external identity provider. Its presence is what switches the app from
# local-only storage to the remote store.
@dataclass(frozen=True)
class Identity:
    user_id: str
    access_token: str | None = None

# Connection details for the remote store.
@dataclass(frozen=True)
class RemoteSettings:
    url: str | None
    key: str | None

# bool is an int subclass, so True must not pass as a tick interval
def _matches_type(value, default):
    if isinstance(default, bool) or isinstance(value, bool):
        return isinstance(value, bool) and isinstance(default, bool)
    return isinstance(value, type(default))

#endregion === Helpers and Paths ===

#region === Settings ===

# Loads settings.json, filling in any missing or mistyped values from defaults. A missing or corrupt file is never
# fatal; defaults are used and the problem is logged.
def load_settings():
    settings = dict(_SETTINGS_DEFAULTS)
    if not SETTINGS_PATH.exists():
        log.info(f"No settings.json found at '{SETTINGS_PATH}', using defaults.")
        return settings
    try:
        with open(SETTINGS_PATH, "r", encoding="utf-8") as f:
            raw = json.load(f)
        if not isinstance(raw, dict):
            raise TypeError(f"settings.json must hold an object, got {type(raw).__name__}")
    except (json.JSONDecodeError, OSError, TypeError):
        log.warning("Ran into an error while trying to load settings.json, falling back to default settings.", exc_info=True)
        return settings

    defaulted_values = set()
    for key, default in _SETTINGS_DEFAULTS.items():
        if key not in raw or not _matches_type(raw[key], default):
            defaulted_values.add(key)
            continue
        settings[key] = raw[key]

    if settings["tick_interval_ms"] <= 0:
        defaulted_values.add("tick_interval_ms")
        settings["tick_interval_ms"] = _SETTINGS_DEFAULTS["tick_interval_ms"]

    if defaulted_values:
        log.warning(f"Loaded settings from '{SETTINGS_PATH}', but with missing values that were defaulted: "
                    f"{', '.join(sorted(defaulted_values))}")
    else:
        log.info(f"Successfully loaded settings from '{SETTINGS_PATH}'.")
    return settings

# Write the given settings to disk under PATHS.current / settings.json
def save_settings(settings):
    with open(SETTINGS_PATH, "w", encoding="utf-8") as f:
        json.dump(settings, f, indent=2)
    log.info(f"Successfully saved settings to '{SETTINGS_PATH}'")

#endregion === Settings ===

#region === Environment ===

# Identity and remote connection details come from the environment (optionally a .env file), never from
# settings.json, so tokens don't end up in the data folder.
def load_environment():
    load_dotenv(dotenv_path=ENV_PATH)

def load_identity():
    user_id = (os.getenv("WEEKTIME_USER_ID") or "").strip()
    if not user_id:
        return None
    token = (os.getenv("WEEKTIME_ACCESS_TOKEN") or "").strip() or None
    return Identity(user_id=user_id, access_token=token)

def load_remote_settings():
    return RemoteSettings(url=os.getenv("SUPABASE_URL"), key=os.getenv("SUPABASE_KEY"))

#endregion === Environment ===
