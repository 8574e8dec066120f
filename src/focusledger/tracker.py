from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

try:
    import pygetwindow as gw  # type: ignore[import-not-found]
except Exception:  # pragma: no cover - unsupported platform
    gw = None  # type: ignore[assignment]

logger = logging.getLogger(__name__)


@dataclass
class WatcherConfig:
    poll_interval: float = 1.0
    allowed_keywords: List[str] = field(default_factory=list)


@dataclass
class WatcherStatus:
    window_title: str = ""
    away: bool = False


class WindowWatcher:
    """
    Periodically polls the active window title and reports when the user
    leaves the timer for something else.

    With allowed keywords configured, any title containing one of them counts
    as "present". Without keywords, the first title seen (normally the window
    hosting the timer) is treated as home. ``on_hidden`` fires once per
    present -> away change; the timer decides whether that is a distraction.
    """

    def __init__(
        self,
        on_hidden: Callable[[], Any],
        cfg: Optional[WatcherConfig] = None,
        title_source: Optional[Callable[[], str]] = None,
    ) -> None:
        self.on_hidden = on_hidden
        self.cfg = cfg or WatcherConfig()
        self.allowed_keywords = [k.strip().lower() for k in self.cfg.allowed_keywords if k.strip()]
        self._title_source = title_source or self._get_active_title
        self._custom_source = title_source is not None
        self._home_title: Optional[str] = None
        self._status = WatcherStatus()
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    @property
    def status(self) -> WatcherStatus:
        return self._status

    @property
    def available(self) -> bool:
        return gw is not None or self._custom_source

    def set_allowed_keywords(self, keywords: List[str]) -> None:
        self.allowed_keywords = [k.strip().lower() for k in keywords if k.strip()]

    def is_away(self, title: str) -> bool:
        if not title:
            # No readable foreground window; do not guess
            return False
        title_l = title.lower()
        if self.allowed_keywords:
            return not any(k in title_l for k in self.allowed_keywords)
        if self._home_title is None:
            self._home_title = title_l
        return title_l != self._home_title

    def poll_once(self) -> WatcherStatus:
        title = self._title_source()
        away = self.is_away(title)
        if away and not self._status.away:
            try:
                self.on_hidden()
            except Exception:
                logger.warning("Hidden-window callback failed", exc_info=True)
        self._status = WatcherStatus(window_title=title, away=away)
        return self._status

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        if not self.available:
            logger.info("Active window detection unavailable on this platform; watcher disabled")
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="FocusLedger-WindowWatcher", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=2.0)

    def _get_active_title(self) -> str:
        if gw is None:
            return ""
        try:
            win = gw.getActiveWindow()  # type: ignore[call-arg]
            if win is None:
                return ""
            # Some windows may have None title
            title = getattr(win, "title", "") or ""
            return str(title)
        except Exception:
            logger.debug("Could not read active window", exc_info=True)
            return ""

    def _run(self) -> None:
        while not self._stop_event.is_set():
            self.poll_once()
            self._stop_event.wait(timeout=self.cfg.poll_interval)
