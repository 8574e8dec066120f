"""
Tests for phase-end notifications.

Usage:
    python -m pytest tests/test_notification.py -v
"""

import unittest
from unittest.mock import Mock, patch

from focusledger import notifier
from focusledger.clock import ManualClock
from focusledger.focus_timer import FocusTimer, Phase, PhaseStart, PhaseTransition, TimerSettings
from focusledger.notification import NotificationSettings, PhaseNotifier


class TestPhaseNotifier(unittest.TestCase):
    """PhaseNotifier maps transitions onto notify(title, message)"""

    def test_focus_end_message(self):
        send = Mock()
        PhaseNotifier(notify=send)(PhaseTransition(Phase.FOCUS, Phase.BREAK))
        send.assert_called_once_with("Focus Session Complete", "Great job! Take a break.")

    def test_break_end_message(self):
        send = Mock()
        PhaseNotifier(notify=send)(PhaseTransition(Phase.BREAK, Phase.FOCUS))
        send.assert_called_once_with("Break Complete", "Time to get back to work!")

    def test_auto_start_note(self):
        send = Mock()
        PhaseNotifier(notify=send)(PhaseTransition(Phase.FOCUS, Phase.BREAK, auto_start=True))
        title, message = send.call_args[0]
        self.assertEqual(title, "Focus Session Complete")
        self.assertTrue(message.endswith("Your break starts now."))

    def test_phase_start_messages(self):
        send = Mock()
        pn = PhaseNotifier(notify=send)
        pn.started(PhaseStart(Phase.FOCUS, "s1"))
        pn.started(PhaseStart(Phase.BREAK, "s1", auto_started=True))
        self.assertEqual(
            [c[0] for c in send.call_args_list],
            [("Focus Session Started", "Time to focus!"), ("Break Started", "Break time!")],
        )

    def test_resume_and_disabled_starts_are_silent(self):
        send = Mock()
        pn = PhaseNotifier(notify=send)
        pn.started(PhaseStart(Phase.FOCUS, "s1", resumed=True))
        pn.started(PhaseStart(Phase.FOCUS, "s1", notifications_enabled=False))
        send.assert_not_called()
        self.assertEqual(pn.sent, 0)

    def test_disabled_notifications_are_skipped(self):
        send = Mock()
        pn = PhaseNotifier(notify=send)
        pn(PhaseTransition(Phase.FOCUS, Phase.BREAK, notifications_enabled=False))
        send.assert_not_called()
        self.assertEqual(pn.sent, 0)

    def test_custom_messages(self):
        send = Mock()
        cfg = NotificationSettings(break_done=("Back", "Go"))
        PhaseNotifier(cfg, notify=send)(PhaseTransition(Phase.BREAK, Phase.FOCUS))
        send.assert_called_once_with("Back", "Go")

    @patch("focusledger.notification.base_notifier")
    def test_falls_back_to_desktop_notifier(self, mock_notifier):
        PhaseNotifier()(PhaseTransition(Phase.FOCUS, Phase.BREAK))
        mock_notifier.notify.assert_called_once_with(
            "Focus Session Complete", "Great job! Take a break.", timeout=6
        )

    def test_wired_to_timer(self):
        send = Mock()
        clock = ManualClock()
        timer = FocusTimer(clock, settings=TimerSettings(focus_duration_minutes=1))
        timer.on_phase_transition(PhaseNotifier(notify=send))
        timer.start()
        clock.advance(seconds=60)
        timer.tick()
        send.assert_called_once()

    def test_start_notification_wired_to_timer(self):
        send = Mock()
        timer = FocusTimer(ManualClock(), settings=TimerSettings(notifications_enabled=False))
        pn = PhaseNotifier(notify=send)
        timer.on_phase_start(pn.started)
        timer.start()
        send.assert_not_called()

        timer.reset()
        timer.update_settings(notifications_enabled=True)
        timer.start()
        send.assert_called_once_with("Focus Session Started", "Time to focus!")

    def test_failing_notifier_does_not_break_timer(self):
        clock = ManualClock()
        timer = FocusTimer(clock, settings=TimerSettings(focus_duration_minutes=1))
        timer.on_phase_transition(PhaseNotifier(notify=Mock(side_effect=RuntimeError("no display"))))
        timer.start()
        clock.advance(seconds=60)
        result = timer.tick()
        self.assertEqual(len(result.handler_errors), 1)
        self.assertIs(timer.phase, Phase.BREAK)


class TestDesktopNotifier(unittest.TestCase):
    """notifier.notify runs plyer in a background thread"""

    @patch("focusledger.notifier.plyer_notification")
    def test_notify_calls_plyer(self, mock_plyer):
        t = notifier.notify("Title", "Body", timeout=3)
        t.join(timeout=2.0)
        mock_plyer.notify.assert_called_once_with(title="Title", message="Body", timeout=3, app_name="FocusLedger")

    @patch("focusledger.notifier.plyer_notification")
    def test_notify_errors_are_contained(self, mock_plyer):
        mock_plyer.notify.side_effect = NotImplementedError("no backend")
        t = notifier.notify("Title", "Body")
        t.join(timeout=2.0)
        self.assertFalse(t.is_alive())


if __name__ == "__main__":
    unittest.main()
