"""
Focus Timer (Pomodoro-style) engine for FocusLedger

Features:
- State machine: IDLE -> RUNNING(focus) <-> PAUSED(focus) -> RUNNING(break) -> IDLE ...
- Elapsed time accumulated from wall-clock deltas, never from tick counts
- Exactly one SessionRecord per finished focus phase, scored 0-100
- Distraction log with auto-logged pause, task-change and hidden-window entries
- Optional automatic break start after a focus phase

Integration contract:
- The host drives ``tick()`` at any cadence; the engine owns no thread or timer.
- Register callbacks:
  - on_session_complete(handler): handler(SessionRecord) when a focus phase ends
  - on_phase_transition(handler): handler(PhaseTransition) for sounds/notifications
  - on_phase_start(handler): handler(PhaseStart) whenever a phase starts or resumes
- Settings come from an optional loader at construction and are handed to an
  optional saver on every successful ``update_settings()``.
- ``get_snapshot()`` is the only way to read state; it returns frozen copies.

Accuracy:
- Each tick folds ``now - last_resume_ms`` into ``elapsed_ms`` and moves the
  anchor to ``now``, so an interval is never counted twice and skipped ticks
  only delay completion detection. A phase that completes on a late tick is
  closed at the moment its target was reached.
"""

from __future__ import annotations

import logging
import uuid
from collections import deque
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Deque, Dict, List, Mapping, Optional, Tuple

from .clock import Clock, SystemClock, to_iso
from .distractions import DistractionLog, DistractionRecord, clean_text
from .errors import HandlerError, StateError, ValidationError
from .scoring import calculate_focus_score

logger = logging.getLogger(__name__)

MS_PER_MINUTE = 60_000
PAUSE_DISTRACTION_THRESHOLD_MS = 60_000
AUTO_START_DELAY_MS = 1_000
MAX_HANDLER_ERRORS = 20

PAUSED_DESCRIPTION = "Session paused"
HIDDEN_DESCRIPTION = "Tab switched/App hidden"
TASK_CHANGED_DESCRIPTION = "Task changed"


class Phase(str, Enum):
    FOCUS = "focus"
    BREAK = "break"


def round_minutes(ms: int) -> int:
    """Milliseconds to whole minutes, rounding halves up."""
    return (max(0, int(ms)) + MS_PER_MINUTE // 2) // MS_PER_MINUTE


def format_time(ms: int) -> str:
    """Format milliseconds as an 'MM:SS' countdown string."""
    seconds = max(0, int(ms)) // 1000
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


# ---------------------------- Configuration ----------------------------


_SETTING_KEYS: Dict[str, str] = {
    "focus_duration_minutes": "focus_duration_minutes",
    "focusDurationMinutes": "focus_duration_minutes",
    "focusDuration": "focus_duration_minutes",
    "break_duration_minutes": "break_duration_minutes",
    "breakDurationMinutes": "break_duration_minutes",
    "breakDuration": "break_duration_minutes",
    "auto_start_break": "auto_start_break",
    "autoStartBreak": "auto_start_break",
    "notifications_enabled": "notifications_enabled",
    "notificationsEnabled": "notifications_enabled",
    "notifications": "notifications_enabled",
}


def _normalize_settings(changes: Mapping[str, Any], strict: bool) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for key, value in changes.items():
        name = _SETTING_KEYS.get(key)
        if name is None:
            if strict:
                raise ValidationError(f"Unknown timer setting: {key}")
            continue
        out[name] = value
    return out


@dataclass(frozen=True)
class TimerSettings:
    focus_duration_minutes: int = 25
    break_duration_minutes: int = 5
    auto_start_break: bool = False
    notifications_enabled: bool = True

    def __post_init__(self) -> None:
        for name in ("focus_duration_minutes", "break_duration_minutes"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValidationError(f"{name} must be a whole number of minutes")
            if value <= 0:
                raise ValidationError(f"{name} must be positive")
        for name in ("auto_start_break", "notifications_enabled"):
            if not isinstance(getattr(self, name), bool):
                raise ValidationError(f"{name} must be true or false")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TimerSettings":
        """Build settings from persisted data; unrecognized keys are ignored."""
        return replace(cls(), **_normalize_settings(data, strict=False))

    def merged(self, changes: Mapping[str, Any]) -> "TimerSettings":
        """Return a copy with ``changes`` applied; unknown keys are rejected."""
        return replace(self, **_normalize_settings(changes, strict=True))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "focusDurationMinutes": self.focus_duration_minutes,
            "breakDurationMinutes": self.break_duration_minutes,
            "autoStartBreak": self.auto_start_break,
            "notificationsEnabled": self.notifications_enabled,
        }

    def target_ms(self, phase: Phase) -> int:
        minutes = self.focus_duration_minutes if phase is Phase.FOCUS else self.break_duration_minutes
        return minutes * MS_PER_MINUTE


# ---------------------------- Records & Events ----------------------------


@dataclass(frozen=True)
class SessionRecord:
    duration_minutes: int
    task_label: Optional[str]
    distractions: Tuple[DistractionRecord, ...]
    focus_score: int
    completed_at: str
    session_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "duration": self.duration_minutes,
            "task": self.task_label,
            "distractions": [d.to_dict() for d in self.distractions],
            "focusScore": self.focus_score,
            "timestamp": self.completed_at,
        }


@dataclass(frozen=True)
class PhaseTransition:
    from_phase: Phase
    to_phase: Phase
    notifications_enabled: bool = True
    auto_start: bool = False  # next phase will start on its own


@dataclass(frozen=True)
class PhaseStart:
    phase: Phase
    session_id: Optional[str]
    resumed: bool = False
    auto_started: bool = False
    notifications_enabled: bool = True


@dataclass
class TickResult:
    effective_elapsed_ms: int = 0
    remaining_ms: int = 0
    transition: Optional[PhaseTransition] = None
    session: Optional[SessionRecord] = None
    auto_started: bool = False
    handler_errors: List[HandlerError] = field(default_factory=list)

    @property
    def completed(self) -> bool:
        return self.transition is not None


@dataclass(frozen=True)
class TimerSnapshot:
    phase: Phase
    running: bool
    paused: bool
    elapsed_ms: int
    effective_elapsed_ms: int
    last_resume_ms: Optional[int]
    session_id: Optional[str]
    current_task_label: Optional[str]
    distractions: Tuple[DistractionRecord, ...]
    settings: TimerSettings
    auto_start_at_ms: Optional[int]
    target_ms: int
    remaining_ms: int

    @property
    def status(self) -> str:
        if self.running:
            return "running"
        if self.paused:
            return "paused"
        return "idle"

    @property
    def is_active(self) -> bool:
        return self.running or self.paused

    @property
    def auto_start_pending(self) -> bool:
        return self.auto_start_at_ms is not None

    @property
    def display_time(self) -> str:
        return format_time(self.remaining_ms)


@dataclass
class _TimerState:
    phase: Phase = Phase.FOCUS
    running: bool = False
    paused: bool = False
    elapsed_ms: int = 0
    last_resume_ms: Optional[int] = None
    session_id: Optional[str] = None
    current_task_label: Optional[str] = None
    distractions: DistractionLog = field(default_factory=DistractionLog)
    auto_start_at_ms: Optional[int] = None


SettingsLoader = Callable[[], Any]
SettingsSaver = Callable[[TimerSettings], None]
SessionHandler = Callable[[SessionRecord], None]
TransitionHandler = Callable[[PhaseTransition], None]
StartHandler = Callable[[PhaseStart], None]


def _new_session_id(now_ms: int) -> str:
    return f"session_{now_ms}_{uuid.uuid4().hex[:9]}"


# ---------------------------- Core State Machine ----------------------------


class FocusTimer:
    """Focus/break timer with wall-clock accounting and session emission.

    States:
        IDLE(focus) -> RUNNING(focus) <-> PAUSED(focus)
        RUNNING(focus) -> IDLE(break, armed) -> RUNNING(break) -> IDLE(focus, armed)
        Any state -> IDLE(focus) via reset(); stop() ends the current phase.
    """

    def __init__(
        self,
        clock: Optional[Clock] = None,
        *,
        settings: Optional[TimerSettings] = None,
        settings_loader: Optional[SettingsLoader] = None,
        settings_saver: Optional[SettingsSaver] = None,
        auto_start_delay_ms: int = AUTO_START_DELAY_MS,
        session_id_factory: Optional[Callable[[int], str]] = None,
    ) -> None:
        self._clock: Clock = clock or SystemClock()
        self._settings = settings or self._load_settings(settings_loader)
        self._saver = settings_saver
        self._auto_start_delay_ms = max(0, int(auto_start_delay_ms))
        self._session_id_factory = session_id_factory or _new_session_id
        self._state = _TimerState()
        self._session_handlers: List[SessionHandler] = []
        self._transition_handlers: List[TransitionHandler] = []
        self._start_handlers: List[StartHandler] = []

        # Public stats
        self.completed_sessions: int = 0
        self.handler_errors: Deque[HandlerError] = deque(maxlen=MAX_HANDLER_ERRORS)

    @staticmethod
    def _load_settings(loader: Optional[SettingsLoader]) -> TimerSettings:
        if loader is None:
            return TimerSettings()
        try:
            loaded = loader()
            if loaded is None:
                return TimerSettings()
            if isinstance(loaded, TimerSettings):
                return loaded
            return TimerSettings.from_dict(loaded)
        except Exception:
            logger.warning("Could not load timer settings, using defaults", exc_info=True)
            return TimerSettings()

    # ---------- Read-only properties ----------
    @property
    def settings(self) -> TimerSettings:
        return self._settings

    @property
    def phase(self) -> Phase:
        return self._state.phase

    @property
    def is_running(self) -> bool:
        return self._state.running

    @property
    def is_paused(self) -> bool:
        return self._state.paused

    @property
    def is_idle(self) -> bool:
        return not (self._state.running or self._state.paused)

    # ---------- Event registration ----------
    def on_session_complete(self, handler: SessionHandler) -> SessionHandler:
        self._session_handlers.append(handler)
        return handler

    def on_phase_transition(self, handler: TransitionHandler) -> TransitionHandler:
        self._transition_handlers.append(handler)
        return handler

    def on_phase_start(self, handler: StartHandler) -> StartHandler:
        self._start_handlers.append(handler)
        return handler

    def remove_handler(self, handler: Callable[..., Any]) -> None:
        if handler in self._session_handlers:
            self._session_handlers.remove(handler)
        if handler in self._transition_handlers:
            self._transition_handlers.remove(handler)
        if handler in self._start_handlers:
            self._start_handlers.remove(handler)

    # ---------- Transitions ----------
    def start(self) -> None:
        st = self._state
        if st.running:
            return
        now = self._clock.now_ms()
        resumed = st.paused
        if st.paused:
            st.paused = False
            logger.debug("Resumed %s phase at %d ms elapsed", st.phase.value, st.elapsed_ms)
        elif st.phase is Phase.BREAK:
            st.auto_start_at_ms = None
            st.elapsed_ms = 0
            logger.debug("Break started for session %s", st.session_id)
        else:
            st.session_id = self._session_id_factory(now)
            st.elapsed_ms = 0
            st.distractions.clear()
            logger.debug("Focus session %s started", st.session_id)
        st.running = True
        st.last_resume_ms = now
        self._emit_start(resumed=resumed, auto_started=False)

    def pause(self) -> None:
        st = self._state
        if not st.running:
            return
        now = self._clock.now_ms()
        self._fold(now)
        st.running = False
        st.paused = True
        st.last_resume_ms = None
        logger.debug("Paused %s phase at %d ms elapsed", st.phase.value, st.elapsed_ms)
        if st.elapsed_ms > PAUSE_DISTRACTION_THRESHOLD_MS:
            self._append_distraction(PAUSED_DESCRIPTION, now)

    def stop(self) -> Optional[SessionRecord]:
        """End the current phase early. A focus phase with time on it is emitted."""
        st = self._state
        if not (st.running or st.paused):
            # Idle: only a pending automatic break start can be cancelled.
            st.auto_start_at_ms = None
            return None
        now = self._clock.now_ms()
        self._fold(now)
        stopped_phase = st.phase
        elapsed = min(st.elapsed_ms, self._settings.target_ms(stopped_phase))

        record = None
        if stopped_phase is Phase.FOCUS and elapsed > 0:
            record = self._build_record(elapsed, now)
        st.running = False
        st.paused = False
        st.last_resume_ms = None
        st.elapsed_ms = 0
        st.phase = Phase.FOCUS
        st.distractions.clear()
        logger.debug("Stopped %s phase after %d ms", stopped_phase.value, elapsed)

        if record is not None:
            self._emit("session_complete", self._session_handlers, record, None)
        return record

    def reset(self) -> None:
        """Drop everything about the current session. Confirmation is the caller's job."""
        self._state = _TimerState()
        logger.debug("Timer reset")

    def save_session(self) -> SessionRecord:
        """Finish the active focus phase now and return its record."""
        st = self._state
        now = self._clock.now_ms()
        if st.phase is not Phase.FOCUS or not (st.running or st.paused) or self._effective_elapsed(now) <= 0:
            raise StateError("No active focus session to save")
        record = self.stop()
        assert record is not None
        return record

    def tick(self) -> TickResult:
        """Advance accounting. Safe to call redundantly at any cadence."""
        st = self._state
        now = self._clock.now_ms()
        result = TickResult()

        if not st.running and not st.paused and st.auto_start_at_ms is not None and now >= st.auto_start_at_ms:
            # Anchor at the deadline so a late tick does not shorten the break.
            st.running = True
            st.elapsed_ms = 0
            st.last_resume_ms = st.auto_start_at_ms
            st.auto_start_at_ms = None
            result.auto_started = True
            logger.debug("Break auto-started for session %s", st.session_id)
            self._emit_start(resumed=False, auto_started=True, errors=result.handler_errors)

        if st.running:
            anchor, before = st.last_resume_ms, st.elapsed_ms
            self._fold(now)
            target = self._settings.target_ms(st.phase)
            if st.elapsed_ms >= target:
                # The phase ended when the target was reached, not when the tick arrived.
                reached = now
                if anchor is not None:
                    reached = min(now, anchor + max(0, target - before))
                self._complete_phase(reached, result)

        result.effective_elapsed_ms = self._effective_elapsed(now)
        result.remaining_ms = max(0, self._settings.target_ms(st.phase) - result.effective_elapsed_ms)
        return result

    # ---------- Logging ----------
    def log_task(self, label: Optional[str]) -> str:
        text = clean_text(label, "task description")
        st = self._state
        st.current_task_label = text
        if st.running:
            self._append_distraction(TASK_CHANGED_DESCRIPTION, self._clock.now_ms())
        return text

    def log_distraction(self, description: Optional[str] = None) -> DistractionRecord:
        text = clean_text(description, "distraction description")
        if self._state.session_id is None:
            raise StateError("Start a session before logging distractions")
        return self._append_distraction(text, self._clock.now_ms())

    def notify_hidden(self) -> Optional[DistractionRecord]:
        """Host hook: the view went to the background."""
        st = self._state
        if st.running and st.phase is Phase.FOCUS:
            return self._append_distraction(HIDDEN_DESCRIPTION, self._clock.now_ms())
        return None

    # ---------- Settings ----------
    def update_settings(self, partial: Optional[Mapping[str, Any]] = None, **changes: Any) -> TimerSettings:
        st = self._state
        if st.running or st.paused:
            raise StateError("Timer settings can only be changed while the timer is idle")
        merged: Dict[str, Any] = dict(partial or {})
        merged.update(changes)
        new_settings = self._settings.merged(merged)
        self._settings = new_settings
        if not new_settings.auto_start_break:
            st.auto_start_at_ms = None
        if self._saver is not None:
            try:
                self._saver(new_settings)
            except Exception:
                logger.warning("Could not save timer settings", exc_info=True)
        return new_settings

    # ---------- Snapshot ----------
    def get_snapshot(self) -> TimerSnapshot:
        st = self._state
        now = self._clock.now_ms()
        effective = self._effective_elapsed(now)
        target = self._settings.target_ms(st.phase)
        return TimerSnapshot(
            phase=st.phase,
            running=st.running,
            paused=st.paused,
            elapsed_ms=st.elapsed_ms,
            effective_elapsed_ms=effective,
            last_resume_ms=st.last_resume_ms,
            session_id=st.session_id,
            current_task_label=st.current_task_label,
            distractions=st.distractions.snapshot(),
            settings=self._settings,
            auto_start_at_ms=st.auto_start_at_ms,
            target_ms=target,
            remaining_ms=max(0, target - effective),
        )

    def recent_distractions(self, limit: int = 5) -> List[DistractionRecord]:
        return self._state.distractions.recent(limit)

    # ---------- Internals ----------
    def _fold(self, now: int) -> None:
        st = self._state
        if st.running and st.last_resume_ms is not None:
            st.elapsed_ms += max(0, now - st.last_resume_ms)
            st.last_resume_ms = now

    def _effective_elapsed(self, now: int) -> int:
        st = self._state
        if st.running and st.last_resume_ms is not None:
            return st.elapsed_ms + max(0, now - st.last_resume_ms)
        return st.elapsed_ms

    def _append_distraction(self, description: str, now: int) -> DistractionRecord:
        minutes = round_minutes(self._effective_elapsed(now))
        record = self._state.distractions.append(description, minutes, now)
        logger.info("Distraction logged at %d min: %s", minutes, record.description)
        return record

    def _build_record(self, elapsed_ms: int, now: int) -> SessionRecord:
        st = self._state
        distractions = st.distractions.snapshot()
        record = SessionRecord(
            duration_minutes=round_minutes(elapsed_ms),
            task_label=st.current_task_label,
            distractions=distractions,
            focus_score=calculate_focus_score(elapsed_ms / MS_PER_MINUTE, len(distractions)),
            completed_at=to_iso(now),
            session_id=st.session_id,
        )
        self.completed_sessions += 1
        logger.info(
            "Focus session %s complete: %d min, %d distractions, score %d",
            record.session_id,
            record.duration_minutes,
            len(distractions),
            record.focus_score,
        )
        return record

    def _complete_phase(self, now: int, result: TickResult) -> None:
        """End the running phase as of ``now``, the moment its target was reached."""
        st = self._state
        completed = st.phase
        elapsed = min(st.elapsed_ms, self._settings.target_ms(completed))
        st.running = False
        st.paused = False
        st.elapsed_ms = 0
        st.last_resume_ms = None

        record = None
        if completed is Phase.FOCUS:
            record = self._build_record(elapsed, now)
            st.distractions.clear()
            st.phase = Phase.BREAK
            if self._settings.auto_start_break:
                st.auto_start_at_ms = now + self._auto_start_delay_ms
        else:
            st.phase = Phase.FOCUS

        transition = PhaseTransition(
            from_phase=completed,
            to_phase=st.phase,
            notifications_enabled=self._settings.notifications_enabled,
            auto_start=st.auto_start_at_ms is not None,
        )
        result.session = record
        result.transition = transition
        if record is not None:
            self._emit("session_complete", self._session_handlers, record, result.handler_errors)
        self._emit("phase_transition", self._transition_handlers, transition, result.handler_errors)

    def _emit_start(self, resumed: bool, auto_started: bool, errors: Optional[List[HandlerError]] = None) -> None:
        st = self._state
        event = PhaseStart(
            phase=st.phase,
            session_id=st.session_id,
            resumed=resumed,
            auto_started=auto_started,
            notifications_enabled=self._settings.notifications_enabled,
        )
        self._emit("phase_start", self._start_handlers, event, errors)

    def _emit(
        self,
        event: str,
        handlers: List[Callable[[Any], None]],
        payload: Any,
        errors: Optional[List[HandlerError]],
    ) -> None:
        for handler in list(handlers):
            try:
                handler(payload)
            except Exception as exc:
                err = HandlerError(event, handler, exc)
                logger.exception("%s", err)
                self.handler_errors.append(err)
                if errors is not None:
                    errors.append(err)


__all__ = [
    "AUTO_START_DELAY_MS",
    "FocusTimer",
    "Phase",
    "PhaseStart",
    "PhaseTransition",
    "SessionRecord",
    "TickResult",
    "TimerSettings",
    "TimerSnapshot",
    "format_time",
    "round_minutes",
]
