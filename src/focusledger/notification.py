"""
Phase notifications for FocusLedger.

``PhaseNotifier`` is a ``FocusTimer.on_phase_transition`` handler. It turns a
PhaseTransition into a desktop notification through ``notifier.notify`` unless
the user switched notifications off in the timer settings. Its ``started``
method does the same for ``FocusTimer.on_phase_start``; resumes stay silent.

Usage:

    from focusledger.notification import PhaseNotifier

    notifier = PhaseNotifier()
    timer.on_phase_transition(notifier)
    timer.on_phase_start(notifier.started)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from . import notifier as base_notifier
from .focus_timer import Phase, PhaseStart, PhaseTransition

logger = logging.getLogger(__name__)


@dataclass
class NotificationSettings:
    timeout_s: int = 6
    focus_done: Tuple[str, str] = ("Focus Session Complete", "Great job! Take a break.")
    break_done: Tuple[str, str] = ("Break Complete", "Time to get back to work!")
    focus_started: Tuple[str, str] = ("Focus Session Started", "Time to focus!")
    break_started: Tuple[str, str] = ("Break Started", "Break time!")
    break_auto_start_note: str = "Your break starts now."


class PhaseNotifier:
    def __init__(
        self,
        settings: Optional[NotificationSettings] = None,
        notify: Optional[Callable[[str, str], None]] = None,
    ) -> None:
        self.cfg = settings or NotificationSettings()
        self._notify = notify
        self.sent: int = 0

    def __call__(self, transition: PhaseTransition) -> None:
        if not transition.notifications_enabled:
            return
        title, message = self.message_for(transition)
        self._send(title, message)
        self.sent += 1

    def started(self, event: PhaseStart) -> None:
        if not event.notifications_enabled or event.resumed:
            return
        title, message = self.cfg.focus_started if event.phase is Phase.FOCUS else self.cfg.break_started
        self._send(title, message)
        self.sent += 1

    def message_for(self, transition: PhaseTransition) -> Tuple[str, str]:
        if transition.from_phase is Phase.FOCUS:
            title, message = self.cfg.focus_done
            if transition.auto_start:
                message = f"{message} {self.cfg.break_auto_start_note}"
            return title, message
        return self.cfg.break_done

    def _send(self, title: str, message: str) -> None:
        # Prefer injected notifier; otherwise use the desktop one
        if self._notify is not None:
            self._notify(title, message)
            return
        base_notifier.notify(title, message, timeout=self.cfg.timeout_s)
        logger.debug("Notified: %s", title)
