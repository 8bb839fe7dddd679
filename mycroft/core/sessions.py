#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Mycroft Engine - Session State Machine
Idle -> Active -> (Active <-> OnBreak) -> Ended, with countdown and idle timers
"""

import copy
import threading
from collections import defaultdict
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional
import logging

from mycroft.config import ConflictPolicy, TimeTrackingConfig
from mycroft.core.exceptions import (
    NoActiveSessionError, SessionAlreadyActiveError, ValidationError
)
from mycroft.core.models import BreakType, EventType, SessionType, TimeSession
from mycroft.services.analytics import busiest_hour
from mycroft.services.timer_service import TimerHandle, TimerService
from mycroft.utils.datetime_utils import Clock, whole_minutes_between
from mycroft.utils.validators import validate_enum_value

logger = logging.getLogger(__name__)

EmitCallback = Callable[[EventType, Dict[str, Any]], None]

LONG_BREAK_AFTER = 3


def _countdown_reference(session: TimeSession, now: datetime) -> datetime:
    """The countdown is frozen while a break is open"""
    pause = session.open_break
    return pause.start_time if pause is not None else now


def remaining_minutes(session: TimeSession, now: datetime) -> int:
    """planned - elapsed + closed break minutes, floored at 0.

    Break time is credited back onto the countdown, so a 60 minute session
    that has been open for 50 minutes with a closed 10 minute break still
    has 20 minutes to go.
    """
    if not session.is_active:
        return 0
    elapsed = whole_minutes_between(session.start_time, _countdown_reference(session, now))
    return max(0, session.planned_duration_minutes - elapsed + session.closed_break_minutes)


def remaining_seconds(session: TimeSession, now: datetime) -> float:
    if not session.is_active:
        return 0.0
    elapsed = (_countdown_reference(session, now) - session.start_time).total_seconds()
    planned = session.planned_duration_minutes * 60
    return max(0.0, planned - elapsed + session.closed_break_minutes * 60)


class SessionTracker:
    """Owns the current session, its timers and the session history"""

    def __init__(self, clock: Clock, timers: TimerService, config: Optional[TimeTrackingConfig] = None,
                 emit: Optional[EmitCallback] = None, on_change: Optional[Callable[[], None]] = None,
                 max_history: int = 1000, lock: Optional[threading.RLock] = None):
        self.clock = clock
        self.timers = timers
        self.config = config or TimeTrackingConfig()
        self.max_history = max_history
        self._emit = emit or (lambda event_type, payload: None)
        self._on_change = on_change or (lambda: None)
        self._lock = lock or threading.RLock()

        self.current: Optional[TimeSession] = None
        self.history: List[TimeSession] = []
        self._last_signal: Optional[datetime] = None
        self._completion_handle: Optional[TimerHandle] = None
        self._idle_handle: Optional[TimerHandle] = None
        self.finished_count = 0

    # ===== TIMERS =====

    def _schedule_completion(self, session: TimeSession) -> None:
        self._cancel_completion()
        seconds = remaining_seconds(session, self.clock.now())
        session_id = session.id
        self._completion_handle = self.timers.call_later(
            seconds, lambda: self._on_completion(session_id), name=f"session-complete-{session_id}"
        )

    def _schedule_idle_check(self, session: TimeSession) -> None:
        if self._idle_handle is not None:
            self._idle_handle.cancel()
        session_id = session.id
        self._idle_handle = self.timers.call_every(
            self.config.idle_threshold, lambda: self._on_idle_check(session_id),
            name=f"idle-check-{session_id}"
        )

    def _cancel_completion(self) -> None:
        if self._completion_handle is not None:
            self._completion_handle.cancel()
            self._completion_handle = None

    def _cancel_timers(self) -> None:
        self._cancel_completion()
        if self._idle_handle is not None:
            self._idle_handle.cancel()
            self._idle_handle = None

    def _is_current(self, session_id: str) -> bool:
        return self.current is not None and self.current.id == session_id and self.current.is_active

    def _on_completion(self, session_id: str) -> None:
        with self._lock:
            if not self._is_current(session_id):
                logger.debug(f"Ignoring stale completion timer for {session_id}")
                return
            if self.current.is_on_break:
                return
            self._completion_handle = None
            self._handle_completion(self.current)

    def _handle_completion(self, session: TimeSession) -> None:
        if session.completed:
            return
        session.completed = True

        if session.type == SessionType.POMODORO.value:
            suggested = BreakType.LONG.value if len(session.breaks) >= LONG_BREAK_AFTER else BreakType.SHORT.value
            logger.info(f"🍅 Pomodoro {session.id} completed, suggesting a {suggested} break")
            self._emit(EventType.SESSION_COMPLETED, {
                'session_id': session.id,
                'type': session.type,
                'suggested_break': suggested
            })
            self._on_change()
            return

        logger.info(f"⏰ Session {session.id} reached its planned duration")
        self._emit(EventType.SESSION_COMPLETED, {'session_id': session.id, 'type': session.type})
        self.end_session()

    def _on_idle_check(self, session_id: str) -> None:
        with self._lock:
            if not self._is_current(session_id):
                logger.debug(f"Ignoring stale idle check for {session_id}")
                return
            session = self.current
            if session.is_on_break:
                return

            now = self.clock.now()
            idle_seconds = (now - self._last_signal).total_seconds()
            if idle_seconds < self.config.idle_threshold:
                return

            focus = session.apply_idle_penalty()
            self._last_signal = now
            logger.info(f"💤 Idle detected in {session.id}, focus score now {focus}")
            self._emit(EventType.IDLE_DETECTED, {
                'session_id': session.id,
                'focus_score': focus,
                'interruption_count': session.interruption_count
            })
            self._on_change()

    # ===== STATE TRANSITIONS =====

    def start_session(self, session_type: str, planned_duration: Optional[int] = None,
                      project_id: Optional[str] = None) -> TimeSession:
        with self._lock:
            session_type = validate_enum_value(session_type, SessionType, "session type")

            if planned_duration is None:
                planned_duration = self.config.default_length(session_type)
                if planned_duration is None:
                    raise ValidationError("Custom sessions need an explicit planned duration")
            elif isinstance(planned_duration, bool) or not isinstance(planned_duration, int) \
                    or planned_duration <= 0:
                raise ValidationError(f"Planned duration must be a positive integer, got {planned_duration!r}")

            if self.current is not None:
                if self.config.conflict_policy == ConflictPolicy.REJECT:
                    raise SessionAlreadyActiveError(self.current.id)
                logger.info(f"Auto-ending session {self.current.id} before starting a new one")
                self.end_session()

            now = self.clock.now()
            session = TimeSession(
                type=session_type,
                start_time=now,
                planned_duration_minutes=planned_duration,
                project_id=project_id
            )
            self.current = session
            self._last_signal = now
            self._schedule_completion(session)
            self._schedule_idle_check(session)

            logger.info(f"▶️ Started {session_type} session {session.id} ({planned_duration} min)")
            self._emit(EventType.SESSION_STARTED, {
                'session_id': session.id,
                'type': session_type,
                'planned_duration_minutes': planned_duration
            })
            self._on_change()
            return self.snapshot(session)

    def start_break(self, break_type: str = BreakType.SHORT.value) -> TimeSession:
        with self._lock:
            if self.current is None:
                raise NoActiveSessionError("No active session to pause")
            pause = self.current.start_break(self.clock.now(), break_type)
            self._cancel_completion()

            logger.info(f"⏸️ {pause.type} break started in {self.current.id}")
            self._emit(EventType.BREAK_STARTED, {'session_id': self.current.id, 'break_type': pause.type})
            self._on_change()
            return self.snapshot(self.current)

    def end_break(self) -> Optional[TimeSession]:
        """Close the open break and resume the countdown; no-op without one"""
        with self._lock:
            session = self.current
            if session is None or not session.is_on_break:
                return self.snapshot(session) if session is not None else None

            now = self.clock.now()
            pause = session.end_break(now)
            self._last_signal = now

            logger.info(f"▶️ Break ended in {session.id} after {pause.duration_minutes} min")
            self._emit(EventType.BREAK_ENDED, {
                'session_id': session.id,
                'break_type': pause.type,
                'duration_minutes': pause.duration_minutes
            })

            if remaining_seconds(session, now) <= 0:
                self._handle_completion(session)
            else:
                self._schedule_completion(session)

            self._on_change()
            return self.snapshot(session)

    def end_session(self) -> TimeSession:
        with self._lock:
            session = self.current
            if session is None:
                raise NoActiveSessionError()

            self._cancel_timers()
            session.finish(self.clock.now())
            self.current = None
            self._last_signal = None
            self.history.append(session)
            self.finished_count += 1
            if len(self.history) > self.max_history:
                self.history = self.history[-self.max_history:]

            logger.info(f"⏹️ Ended session {session.id} after {session.duration_minutes} min")
            self._emit(EventType.SESSION_ENDED, {
                'session_id': session.id,
                'type': session.type,
                'duration_minutes': session.duration_minutes,
                'focus_score': session.focus_score
            })
            self._on_change()
            return self.snapshot(session)

    def record_activity_signal(self) -> None:
        with self._lock:
            if self.current is not None:
                self._last_signal = self.clock.now()

    # ===== QUERIES =====

    @staticmethod
    def snapshot(session: Optional[TimeSession]) -> Optional[TimeSession]:
        return copy.deepcopy(session) if session is not None else None

    def current_session(self) -> Optional[TimeSession]:
        with self._lock:
            return self.snapshot(self.current)

    def remaining_minutes(self) -> int:
        with self._lock:
            if self.current is None:
                return 0
            return remaining_minutes(self.current, self.clock.now())

    def all_sessions(self) -> List[TimeSession]:
        """History plus the running session, oldest first"""
        with self._lock:
            sessions = list(self.history)
            if self.current is not None:
                sessions.append(self.current)
            return copy.deepcopy(sessions)

    def today_total_minutes(self) -> int:
        """Minutes tracked today, counting the running session so far"""
        with self._lock:
            now = self.clock.now()
            total = sum(s.duration_minutes for s in self.history if s.start_time.date() == now.date())
            if self.current is not None and self.current.start_time.date() == now.date():
                total += whole_minutes_between(self.current.start_time, now)
            return total

    def productivity_stats(self) -> Dict[str, Any]:
        with self._lock:
            sessions = list(self.history)

        total_time = sum(s.duration_minutes for s in sessions)
        minutes_by_hour: Dict[int, int] = defaultdict(int)
        for s in sessions:
            minutes_by_hour[s.start_time.hour] += s.duration_minutes

        return {
            'total_sessions': len(sessions),
            'total_time': total_time,
            'average_session_length': round(total_time / len(sessions), 1) if sessions else 0.0,
            'average_focus_score': round(sum(s.focus_score for s in sessions) / len(sessions), 1) if sessions else 0.0,
            'total_breaks': sum(len(s.breaks) for s in sessions),
            'most_productive_hour': busiest_hour(minutes_by_hour)
        }

    # ===== PERSISTENCE =====

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            return {
                'current': self.current.to_dict() if self.current is not None else None,
                'history': [s.to_dict() for s in self.history]
            }

    def load_state(self, data: Optional[Dict[str, Any]]) -> None:
        """Restore state and re-arm timers for a restored running session"""
        with self._lock:
            self._cancel_timers()
            data = data or {}
            self.history = [TimeSession.from_dict(s) for s in data.get('history', [])][-self.max_history:]
            current = data.get('current')
            self.current = TimeSession.from_dict(current) if current else None

            if self.current is not None:
                self._last_signal = self.clock.now()
                if not self.current.is_on_break and not self.current.completed:
                    self._schedule_completion(self.current)
                self._schedule_idle_check(self.current)

    def shutdown(self) -> None:
        with self._lock:
            self._cancel_timers()


__all__ = [
    'SessionTracker',
    'remaining_minutes',
    'remaining_seconds'
]
