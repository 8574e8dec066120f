from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Callable, Dict, List, Optional, Tuple

from .errors import StateError, ValidationError
from .focus_timer import FocusTimer, Phase, TickResult, TimerSettings, TimerSnapshot
from .host import HostConfig, TimerHost
from .notification import PhaseNotifier
from .session_store import SESSIONS_FILENAME, LocalSessionStore
from .settings_store import SETTINGS_FILENAME, SettingsStore
from .tracker import WatcherConfig, WindowWatcher

HELP = """Commands:
  start | pause | stop | reset | save | status | recent
  task TEXT            set the current task
  distraction TEXT     log a distraction
  settings KEY=VALUE   focus=25 break=5 auto=on|off notify=on|off
  help | quit"""

_SETTING_ALIASES: Dict[str, str] = {
    "focus": "focus_duration_minutes",
    "break": "break_duration_minutes",
    "auto": "auto_start_break",
    "notify": "notifications_enabled",
}
_TRUE = {"on", "true", "yes", "1"}
_FALSE = {"off", "false", "no", "0"}


def parse_setting(pair: str) -> Dict[str, object]:
    key, sep, raw = pair.partition("=")
    name = _SETTING_ALIASES.get(key.strip().lower(), key.strip())
    raw = raw.strip().lower()
    if not sep or not raw:
        raise ValidationError(f"Expected KEY=VALUE, got {pair!r}")
    if name in ("auto_start_break", "notifications_enabled"):
        if raw in _TRUE:
            return {name: True}
        if raw in _FALSE:
            return {name: False}
        raise ValidationError(f"{key} must be on or off")
    try:
        return {name: int(raw)}
    except ValueError:
        raise ValidationError(f"{key} must be a whole number of minutes") from None


def describe(snap: TimerSnapshot) -> str:
    task = snap.current_task_label or "No task logged for this session"
    line = f"{snap.phase.value.upper()} {snap.display_time} [{snap.status}] task: {task} | distractions: {len(snap.distractions)}"
    if snap.auto_start_pending:
        line += " | break starting..."
    return line


class ConsoleApp:
    """Line-oriented front end: maps typed commands onto engine calls."""

    def __init__(
        self,
        host: TimerHost,
        out: Callable[[str], None] = print,
        ask: Callable[[str], str] = input,
    ) -> None:
        self.host = host
        self.timer = host.timer
        self._out = out
        self._ask = ask
        self.host.on_tick(self._on_tick)

    def handle(self, line: str) -> bool:
        """Run one command. Returns False when the user asked to quit."""
        cmd, _, arg = line.strip().partition(" ")
        cmd = cmd.lower()
        if not cmd:
            return True
        if cmd in ("quit", "exit", "q"):
            return False
        try:
            self._dispatch(cmd, arg)
        except (ValidationError, StateError) as e:
            self._out(f"! {e}")
        return True

    def _dispatch(self, cmd: str, arg: str) -> None:
        timer, host = self.timer, self.host
        if cmd == "start":
            host.call(timer.start)
            self._out(describe(host.snapshot()))
        elif cmd == "pause":
            host.call(timer.pause)
            self._out(describe(host.snapshot()))
        elif cmd == "stop":
            record = host.call(timer.stop)
            if record is not None:
                self._out(f"Session recorded: {record.duration_minutes} min, focus score {record.focus_score}")
            self._out(describe(host.snapshot()))
        elif cmd == "reset":
            answer = self._ask("Reset the timer? This will clear the current session. [y/N] ")
            if answer.strip().lower() in ("y", "yes"):
                host.call(timer.reset)
                self._out(describe(host.snapshot()))
        elif cmd == "save":
            record = host.call(timer.save_session)
            self._out(f"Session saved: {record.duration_minutes} min, focus score {record.focus_score}")
        elif cmd == "task":
            label = host.call(timer.log_task, arg)
            self._out(f"Task logged: {label}")
        elif cmd == "distraction":
            rec = host.call(timer.log_distraction, arg)
            self._out(f"Distraction logged at {rec.session_time_minutes}m: {rec.description}")
        elif cmd == "settings":
            changes: Dict[str, object] = {}
            for pair in arg.split():
                changes.update(parse_setting(pair))
            if changes:
                host.call(timer.update_settings, changes)
            s = host.snapshot().settings
            self._out(
                f"focus={s.focus_duration_minutes} break={s.break_duration_minutes} "
                f"auto={'on' if s.auto_start_break else 'off'} notify={'on' if s.notifications_enabled else 'off'}"
            )
        elif cmd == "status":
            self._out(describe(host.snapshot()))
        elif cmd == "recent":
            recent = host.call(timer.recent_distractions)
            if not recent:
                self._out("No distractions logged yet")
            for rec in recent:
                self._out(f"  {rec.session_time_minutes:>3}m  {rec.description}")
        elif cmd == "help":
            self._out(HELP)
        else:
            self._out(f"Unknown command: {cmd} (type 'help')")

    def _on_tick(self, snap: TimerSnapshot, result: TickResult) -> None:
        if result.auto_started:
            self._out("Break started.")
        if result.transition is None:
            return
        if result.session is not None:
            self._out(
                f"Focus session complete: {result.session.duration_minutes} min, "
                f"focus score {result.session.focus_score}"
            )
        if result.transition.to_phase is Phase.BREAK and not result.transition.auto_start:
            self._out("Break is ready. Type 'start' to begin it.")
        elif result.transition.to_phase is Phase.FOCUS:
            self._out("Break over. Type 'start' for the next focus session.")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="focusledger", description="Focus/break timer with distraction logging")
    p.add_argument("--focus", type=int, help="focus phase length in minutes")
    p.add_argument("--break", dest="break_minutes", type=int, help="break phase length in minutes")
    p.add_argument("--auto-break", action="store_true", default=None, help="start breaks automatically")
    p.add_argument("--no-notify", action="store_true", help="disable desktop notifications")
    p.add_argument("--allow", nargs="*", default=[], metavar="KEYWORD", help="window title keywords that count as on-task")
    p.add_argument("--data-dir", help="where settings and cached sessions live")
    p.add_argument("--log-level", default=os.environ.get("FOCUSLEDGER_LOG_LEVEL", "WARNING"))
    return p


def cli_overrides(args: argparse.Namespace) -> Dict[str, object]:
    changes: Dict[str, object] = {}
    if args.focus is not None:
        changes["focus_duration_minutes"] = args.focus
    if args.break_minutes is not None:
        changes["break_duration_minutes"] = args.break_minutes
    if args.auto_break:
        changes["auto_start_break"] = True
    if args.no_notify:
        changes["notifications_enabled"] = False
    return changes


def build_stores(data_dir: Optional[str] = None) -> Tuple[SettingsStore, LocalSessionStore]:
    if not data_dir:
        return SettingsStore(), LocalSessionStore()
    return (
        SettingsStore(os.path.join(data_dir, SETTINGS_FILENAME)),
        LocalSessionStore(os.path.join(data_dir, SESSIONS_FILENAME)),
    )


def build_timer(settings_store: SettingsStore, overrides: Dict[str, object]) -> FocusTimer:
    """Timer on saved settings with command-line overrides applied for this run only.

    Overrides are not written back; a later ``settings`` command saves the
    settings in effect at that time.
    """
    settings = (settings_store.load() or TimerSettings()).merged(overrides)
    return FocusTimer(settings=settings, settings_saver=settings_store.save)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    settings_store, session_store = build_stores(args.data_dir)
    try:
        timer = build_timer(settings_store, cli_overrides(args))
    except ValidationError as e:
        print(f"focusledger: {e}", file=sys.stderr)
        return 2

    timer.on_session_complete(session_store)
    notifier = PhaseNotifier()
    timer.on_phase_transition(notifier)
    timer.on_phase_start(notifier.started)

    host = TimerHost(timer, HostConfig())
    app = ConsoleApp(host)
    watcher = WindowWatcher(host.notify_hidden, WatcherConfig(allowed_keywords=list(args.allow)))

    host.start()
    watcher.start()
    print(HELP)
    try:
        while True:
            try:
                line = input("> ")
            except EOFError:
                break
            if not app.handle(line):
                break
    except KeyboardInterrupt:
        pass
    finally:
        watcher.stop()
        host.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
