import json
import os

from focusledger.clock import ManualClock
from focusledger.focus_timer import FocusTimer, TimerSettings
from focusledger.session_store import LocalSessionStore
from focusledger.settings_store import SettingsStore, data_dir


def test_settings_round_trip(tmp_path):
    store = SettingsStore(str(tmp_path / "settings.json"))
    assert store.load() is None
    settings = TimerSettings(focus_duration_minutes=50, auto_start_break=True)
    store.save(settings)
    assert store.load() == settings
    assert not os.path.exists(store.path + ".tmp")
    with open(store.path, encoding="utf-8") as f:
        assert json.load(f)["focusDurationMinutes"] == 50


def test_settings_file_with_short_keys(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"focusDuration": 30, "breakDuration": 10, "autoStartBreak": False, "notifications": True}))
    loaded = SettingsStore(str(path)).load()
    assert loaded == TimerSettings(focus_duration_minutes=30, break_duration_minutes=10)


def test_unusable_settings_file_is_ignored(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text("{not json")
    assert SettingsStore(str(path)).load() is None
    path.write_text(json.dumps({"focusDurationMinutes": 0}))
    assert SettingsStore(str(path)).load() is None
    path.write_text(json.dumps([1, 2]))
    assert SettingsStore(str(path)).load() is None


def test_timer_persists_settings_through_store(tmp_path):
    store = SettingsStore(str(tmp_path / "nested" / "settings.json"))
    timer = FocusTimer(ManualClock(), settings_loader=store.load, settings_saver=store.save)
    timer.update_settings(break_duration_minutes=15)

    again = FocusTimer(ManualClock(), settings_loader=store.load)
    assert again.settings.break_duration_minutes == 15


def test_data_dir_honours_env(monkeypatch, tmp_path):
    monkeypatch.setenv("FOCUSLEDGER_HOME", str(tmp_path))
    assert data_dir() == str(tmp_path)
    assert SettingsStore().path.startswith(str(tmp_path))
    assert LocalSessionStore().path.startswith(str(tmp_path))


def test_session_store_collects_completed_sessions(tmp_path):
    store = LocalSessionStore(str(tmp_path / "sessions.json"))
    clock = ManualClock()
    timer = FocusTimer(clock, settings=TimerSettings(focus_duration_minutes=1))
    timer.on_session_complete(store)

    for _ in range(2):
        timer.start()
        clock.advance(seconds=60)
        timer.tick()
        timer.reset()  # skip the armed break
    sessions = store.load_all()
    assert len(sessions) == 2
    assert sessions[0]["duration"] == 1
    assert sessions[0]["focusScore"] == 80
    assert sessions[0]["sessionId"] != sessions[1]["sessionId"]


def test_session_store_recovers_from_corrupt_cache(tmp_path):
    path = tmp_path / "sessions.json"
    path.write_text("garbage")
    store = LocalSessionStore(str(path))
    assert store.load_all() == []
    path.write_text(json.dumps({"not": "a list"}))
    assert store.load_all() == []
    store.clear()
    assert not path.exists()
