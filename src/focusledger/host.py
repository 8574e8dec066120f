"""
Host-side scheduler for the FocusTimer engine.

The engine is single-threaded and owns no timer. ``TimerHost`` supplies the
missing pieces for a desktop process: a daemon ticker thread calling
``tick()`` at a fixed cadence, one lock serializing every engine call coming
from the UI, the window watcher and the ticker, and tick listeners that
receive a fresh snapshot after each tick.

Usage:

    host = TimerHost(timer)
    host.on_tick(lambda snap, result: print(snap.display_time))
    host.start()
    host.call(timer.start)
    ...
    host.stop()
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, TypeVar

from .focus_timer import FocusTimer, TickResult, TimerSnapshot
from .distractions import DistractionRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class HostConfig:
    tick_ms: int = 200  # refresh cadence; accuracy comes from clock deltas


class TimerHost:
    def __init__(self, timer: FocusTimer, cfg: Optional[HostConfig] = None) -> None:
        self.timer = timer
        self.cfg = cfg or HostConfig()
        self._lock = threading.RLock()
        self._stop_event = threading.Event()
        self._ticker: Optional[threading.Thread] = None
        self._tick_callbacks: List[Callable[[TimerSnapshot, TickResult], None]] = []

    # ---------- Public API ----------
    def on_tick(self, cb: Callable[[TimerSnapshot, TickResult], None]) -> None:
        """Register a tick callback receiving (snapshot, tick_result)."""
        self._tick_callbacks.append(cb)

    def call(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Run an engine operation under the host lock."""
        with self._lock:
            return fn(*args, **kwargs)

    def snapshot(self) -> TimerSnapshot:
        return self.call(self.timer.get_snapshot)

    def notify_hidden(self) -> Optional[DistractionRecord]:
        return self.call(self.timer.notify_hidden)

    def tick_once(self) -> TickResult:
        with self._lock:
            result = self.timer.tick()
            snap = self.timer.get_snapshot()
        for cb in list(self._tick_callbacks):
            try:
                cb(snap, result)
            except Exception:
                logger.warning("Tick listener failed", exc_info=True)
        return result

    def start(self) -> None:
        if self._ticker is not None and self._ticker.is_alive():
            return
        self._stop_event.clear()
        self._ticker = threading.Thread(target=self._run, name="FocusLedger-Ticker", daemon=True)
        self._ticker.start()

    def stop(self, timeout: float = 2.0) -> None:
        self._stop_event.set()
        if self._ticker is not None and self._ticker.is_alive():
            self._ticker.join(timeout=timeout)
        self._ticker = None

    @property
    def is_ticking(self) -> bool:
        return self._ticker is not None and self._ticker.is_alive()

    # ---------- Internals ----------
    def _run(self) -> None:
        tick_interval = max(0.05, self.cfg.tick_ms / 1000.0)
        while not self._stop_event.is_set():
            try:
                self.tick_once()
            except Exception:
                # The engine isolates handler errors; anything here is a bug, keep ticking.
                logger.exception("Timer tick failed")
            self._stop_event.wait(timeout=tick_interval)
