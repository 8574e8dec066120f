import threading

from focusledger.clock import ManualClock
from focusledger.focus_timer import FocusTimer, TimerSettings
from focusledger.host import HostConfig, TimerHost
from focusledger.tracker import WatcherConfig, WindowWatcher


def make_host(**settings):
    clock = ManualClock()
    timer = FocusTimer(clock, settings=TimerSettings(**settings))
    return TimerHost(timer, HostConfig(tick_ms=50)), timer, clock


def test_tick_once_publishes_snapshot():
    host, timer, clock = make_host(focus_duration_minutes=1)
    seen = []
    host.on_tick(lambda snap, result: seen.append((snap, result)))
    host.call(timer.start)
    clock.advance(seconds=60)
    result = host.tick_once()
    assert result.completed
    snap, published = seen[-1]
    assert published is result
    assert snap.phase.value == "break"


def test_tick_listener_failure_is_contained():
    host, timer, clock = make_host()
    calls = []

    def broken(snap, result):
        raise ValueError("ui gone")

    host.on_tick(broken)
    host.on_tick(lambda snap, result: calls.append(snap.display_time))
    host.tick_once()
    assert calls == ["25:00"]


def test_call_returns_value_and_propagates_errors():
    host, timer, _ = make_host()
    host.call(timer.start)
    record = host.call(timer.log_distraction, "phone")
    assert record.description == "phone"
    try:
        host.call(timer.log_distraction, "")
    except ValueError:
        pass
    else:
        raise AssertionError("expected ValidationError")


def test_ticker_thread_starts_and_stops():
    host, timer, _ = make_host()
    ticked = threading.Event()
    host.on_tick(lambda snap, result: ticked.set())
    host.start()
    try:
        assert host.is_ticking
        assert ticked.wait(timeout=2.0)
    finally:
        host.stop()
    assert not host.is_ticking


def test_watcher_delivers_hidden_signal_through_host():
    host, timer, _ = make_host()
    titles = iter(["Terminal - focusledger", "YouTube - Browser", "Terminal - focusledger"])
    watcher = WindowWatcher(host.notify_hidden, WatcherConfig(), title_source=lambda: next(titles))
    host.call(timer.start)
    watcher.poll_once()
    watcher.poll_once()
    watcher.poll_once()
    descriptions = [d.description for d in host.snapshot().distractions]
    assert descriptions == ["Tab switched/App hidden"]
