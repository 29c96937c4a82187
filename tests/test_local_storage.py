"""Tests for the local state.json file, settings.json and the LocalStrategy.

Covers: wt.storage.local, wt.core.config, wt.storage.strategy.LocalStrategy
"""

import json
import os
import shutil
import tempfile
import unittest
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import patch

from support import FakeClock, qt_app

from wt.core.timer import Timer, WeekHistory


def setUpModule():
    qt_app()


class LocalPathsTestCase(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self._tmppath = Path(self.tmpdir)

        # Monkey-patch file paths to use temp dir
        from wt.core import config
        from wt.storage import local
        self._orig_state_path = local.STATE_PATH
        self._orig_settings_path = config.SETTINGS_PATH
        local.STATE_PATH = self._tmppath / "state.json"
        config.SETTINGS_PATH = self._tmppath / "settings.json"

    def tearDown(self):
        from wt.core import config
        from wt.storage import local
        local.STATE_PATH = self._orig_state_path
        config.SETTINGS_PATH = self._orig_settings_path
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def write_state(self, payload):
        from wt.storage import local
        with open(local.STATE_PATH, "w", encoding="utf-8") as f:
            if isinstance(payload, str):
                f.write(payload)
            else:
                json.dump(payload, f)


# ──────────────────────────────────────────────────────────────────────────
# state.json
# ──────────────────────────────────────────────────────────────────────────

class TestStateFile(LocalPathsTestCase):

    def test_missing_file_gives_empty_state(self):
        from wt.storage.local import load_state
        state = load_state()
        self.assertEqual(state["timers"], [])
        self.assertEqual(state["history"], [])
        self.assertEqual(state["meta"]["schema_version"], 1)

    def test_save_and_load_roundtrip(self):
        from wt.storage.local import load_state, save_state
        running = Timer.create("goal", "Work", 3600, "#ff9500", "large").started(1_700_000_000_000)
        idle = Timer.create("stopwatch", "Reading")
        record = WeekHistory.capture([running, idle], datetime(2026, 10, 12, 9, 0, tzinfo=timezone.utc))

        save_state([running, idle], [record])
        state = load_state()

        self.assertEqual(state["timers"], [running, idle])
        self.assertEqual(state["history"], [record])
        self.assertEqual(state["timers"][0].last_tick_at, 1_700_000_000_000)

    def test_save_leaves_no_temp_file(self):
        from wt.storage import local
        local.save_state([Timer.create("goal", "Work", 60)], [])
        self.assertTrue(local.STATE_PATH.exists())
        self.assertEqual(sorted(p.name for p in self._tmppath.iterdir()), ["state.json"])

    def test_corrupt_json_starts_fresh(self):
        from wt.storage.local import load_state
        self.write_state("{not json")
        with self.assertLogs("weektime", level="WARNING"):
            state = load_state()
        self.assertEqual(state["timers"], [])
        self.assertEqual(state["history"], [])

    def test_non_object_top_level_starts_fresh(self):
        from wt.storage.local import load_state
        self.write_state([1, 2, 3])
        self.assertEqual(load_state()["timers"], [])

    def test_bad_timers_section_is_discarded_alone(self):
        from wt.storage.local import load_state
        record = WeekHistory.capture([], datetime(2026, 10, 12, tzinfo=timezone.utc))
        self.write_state({
            "meta": {"schema_version": 1},
            "timers": [{"id": "a", "title": "ok", "type": "goal"}, {"title": "no id"}],
            "history": [record.to_dict()],
        })
        state = load_state()
        self.assertEqual(state["timers"], [])
        self.assertEqual(state["history"], [record])

    def test_bad_history_section_is_discarded_alone(self):
        from wt.storage.local import load_state
        timer = Timer.create("goal", "Work", 60)
        self.write_state({"timers": [timer.to_dict()], "history": "nope"})
        state = load_state()
        self.assertEqual(state["timers"], [timer])
        self.assertEqual(state["history"], [])
        self.assertEqual(state["meta"]["schema_version"], 1)

    def test_unknown_timer_type_is_discarded(self):
        from wt.storage.local import load_state
        self.write_state({"timers": [{"id": "a", "title": "x", "type": "countdown"}], "history": []})
        self.assertEqual(load_state()["timers"], [])


# ──────────────────────────────────────────────────────────────────────────
# settings.json
# ──────────────────────────────────────────────────────────────────────────

class TestSettings(LocalPathsTestCase):

    def test_defaults_without_file(self):
        from wt.core.config import load_settings
        settings = load_settings()
        self.assertEqual(settings["tick_interval_ms"], 1000)
        self.assertEqual(settings["default_color"], "#007aff")
        self.assertEqual(settings["default_size"], "small")
        self.assertFalse(settings["console_log"])

    def test_save_and_load(self):
        from wt.core.config import load_settings, save_settings
        settings = load_settings()
        settings["default_color"] = "#34c759"
        settings["console_log"] = True
        save_settings(settings)
        self.assertEqual(load_settings(), settings)

    def test_mistyped_values_fall_back(self):
        from wt.core import config
        with open(config.SETTINGS_PATH, "w", encoding="utf-8") as f:
            json.dump({"tick_interval_ms": True, "default_size": 3, "default_color": "#000000"}, f)
        settings = config.load_settings()
        self.assertEqual(settings["tick_interval_ms"], 1000)
        self.assertEqual(settings["default_size"], "small")
        self.assertEqual(settings["default_color"], "#000000")

    def test_non_positive_interval_falls_back(self):
        from wt.core import config
        with open(config.SETTINGS_PATH, "w", encoding="utf-8") as f:
            json.dump({"tick_interval_ms": 0}, f)
        self.assertEqual(config.load_settings()["tick_interval_ms"], 1000)

    def test_corrupt_settings_fall_back(self):
        from wt.core import config
        with open(config.SETTINGS_PATH, "w", encoding="utf-8") as f:
            f.write("][")
        self.assertEqual(config.load_settings()["tick_interval_ms"], 1000)


class TestIdentity(unittest.TestCase):

    def test_no_user_means_no_identity(self):
        from wt.core.config import load_identity
        with patch.dict(os.environ, {"WEEKTIME_USER_ID": "  "}, clear=False):
            self.assertIsNone(load_identity())

    def test_identity_from_environment(self):
        from wt.core.config import Identity, load_identity
        env = {"WEEKTIME_USER_ID": "user-1", "WEEKTIME_ACCESS_TOKEN": "tok"}
        with patch.dict(os.environ, env, clear=False):
            self.assertEqual(load_identity(), Identity("user-1", "tok"))

    def test_token_is_optional(self):
        from wt.core.config import load_identity
        with patch.dict(os.environ, {"WEEKTIME_USER_ID": "user-1", "WEEKTIME_ACCESS_TOKEN": ""}, clear=False):
            self.assertIsNone(load_identity().access_token)

    def test_remote_settings_from_environment(self):
        from wt.core.config import load_remote_settings
        env = {"SUPABASE_URL": "https://example.supabase.co", "SUPABASE_KEY": "anon"}
        with patch.dict(os.environ, env, clear=False):
            remote = load_remote_settings()
        self.assertEqual(remote.url, "https://example.supabase.co")
        self.assertEqual(remote.key, "anon")


# ──────────────────────────────────────────────────────────────────────────
# LocalStrategy
# ──────────────────────────────────────────────────────────────────────────

class TestLocalStrategy(LocalPathsTestCase):

    def _attached_store(self):
        from wt.core.store import TimerStore
        from wt.storage.strategy import LocalStrategy
        strategy = LocalStrategy()
        timers, history = strategy.load()
        self.clock = FakeClock()
        store = TimerStore(timers, history, persistence=strategy, clock=self.clock)
        strategy.attach(store)
        return strategy, store

    def test_every_change_rewrites_the_file(self):
        from wt.storage.local import load_state
        _, store = self._attached_store()
        timer = store.add_timer("goal", "Work", 3600)
        self.assertEqual(load_state()["timers"], [timer])

        store.toggle_timer(timer.id)
        self.assertTrue(load_state()["timers"][0].is_running)

        self.clock.advance(seconds=30)
        store.tick()
        self.assertEqual(load_state()["timers"][0].remaining_seconds, 3570)

    def test_archive_writes_history_and_reset(self):
        from wt.storage.local import load_state
        _, store = self._attached_store()
        timer = store.add_timer("goal", "Work", 3600)
        store.deduct_time(timer.id, 600)
        record = store.archive_week()
        state = load_state()
        self.assertEqual(state["history"], [record])
        self.assertEqual(state["timers"][0].remaining_seconds, 3600)

    def test_reload_sees_saved_timers(self):
        strategy, store = self._attached_store()
        store.add_timer("stopwatch", "Reading")
        strategy.close()
        timers, history = type(strategy)().load()
        self.assertEqual([t.title for t in timers], ["Reading"])
        self.assertEqual(history, [])

    def test_write_error_is_logged_not_raised(self):
        from wt.storage import local
        _, store = self._attached_store()
        with patch.object(local, "save_state", side_effect=OSError("disk full")):
            with self.assertLogs("weektime", level="ERROR"):
                timer = store.add_timer("goal", "Work", 60)
        self.assertEqual(store.get(timer.id), timer)


if __name__ == "__main__":
    unittest.main()
