#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Mycroft Engine - Productivity Engine
Context object tying activities, streaks, XP, achievements and sessions together
"""

import copy
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence
import logging

from mycroft.config import EngineConfig
from mycroft.core.achievements import AchievementEvaluator
from mycroft.core.exceptions import SessionStateError
from mycroft.core.leveling import award_xp, compute_activity_xp
from mycroft.core.models import (
    Activity, AchievementRecord, ActivityCategory, BreakType, EngineEvent,
    EventType, StreakState, TimeSession, UserProfile
)
from mycroft.core.sessions import SessionTracker
from mycroft.core.streaks import compute_streak
from mycroft.database.manager import MemoryStore, Store
from mycroft.services.analytics import AnalyticsReport, AnalyticsService
from mycroft.services.project_service import ProjectService
from mycroft.services.timer_service import BackgroundTimerService, TimerService
from mycroft.utils.datetime_utils import Clock, SystemClock

logger = logging.getLogger(__name__)

ACTIVITIES_KEY = "activities"
PROFILE_KEY = "profile"
SESSIONS_KEY = "sessions"


@dataclass
class LogActivityResult:
    xp_awarded: int
    achievement_xp: int = 0
    new_achievements: List[AchievementRecord] = field(default_factory=list)
    level_up: bool = False
    new_level: int = 1
    streak: StreakState = field(default_factory=StreakState)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'xp_awarded': self.xp_awarded,
            'achievement_xp': self.achievement_xp,
            'new_achievements': [a.to_dict() for a in self.new_achievements],
            'level_up': self.level_up,
            'new_level': self.new_level,
            'streak': self.streak.to_dict()
        }


class ProductivityEngine:
    """All mutations run under one re-entrant lock, timer callbacks included"""

    def __init__(self, store: Optional[Store] = None, clock: Optional[Clock] = None,
                 timers: Optional[TimerService] = None, notifier=None,
                 config: Optional[EngineConfig] = None,
                 evaluator: Optional[AchievementEvaluator] = None):
        self.config = config or EngineConfig()
        self.store = store if store is not None else MemoryStore()
        self.clock = clock or SystemClock(self.config.timezone)
        self.timers = timers or BackgroundTimerService(self.config.timezone)
        self.notifier = notifier
        self.evaluator = evaluator or AchievementEvaluator()
        self._lock = threading.RLock()

        self.analytics = AnalyticsService(self.clock)
        self.projects = ProjectService(self.store, self.clock, notifier=notifier)
        self.tracker = SessionTracker(
            self.clock,
            self.timers,
            self.config.time_tracking,
            emit=self._emit,
            on_change=self._on_sessions_changed,
            max_history=self.config.storage.max_sessions,
            lock=self._lock
        )

        self._activities: List[Activity] = []
        self._profile: Optional[UserProfile] = None
        self._finished_count = 0
        self.reload()

        logger.info(f"🚀 Engine ready with {len(self._activities)} activities")

    def reload(self) -> None:
        """Re-read all state from the store, e.g. after restoring a backup"""
        with self._lock:
            self._activities = [Activity.from_dict(a) for a in self.store.load(ACTIVITIES_KEY) or []]
            stored_profile = self.store.load(PROFILE_KEY)
            self._profile = UserProfile.from_dict(stored_profile) if stored_profile else None
            self.tracker.load_state(self.store.load(SESSIONS_KEY))
            self._finished_count = self.tracker.finished_count

    # ===== INTERNALS =====

    @property
    def profile(self) -> UserProfile:
        """Lazily created on first access"""
        if self._profile is None:
            self._profile = UserProfile(joined_at=self.clock.now())
        return self._profile

    def _emit(self, event_type: EventType, payload: Dict[str, Any]) -> None:
        if self.notifier is None:
            return
        event = EngineEvent(type=event_type, payload=payload, created_at=self.clock.now())
        try:
            self.notifier.notify(event)
        except Exception as e:
            logger.error(f"❌ Notification sink failed for {event_type.value}: {e}")

    def _refresh_streak(self) -> StreakState:
        """Bring the profile streak up to today; it drops to 0 after an inactive day"""
        streak = compute_streak(self._activities, self.clock.now().date())
        self.profile.current_streak = streak.current_streak
        self.profile.longest_streak = max(self.profile.longest_streak, streak.longest_streak)
        return streak

    def _save_profile(self) -> None:
        self.store.save(PROFILE_KEY, self.profile.to_dict())

    def _save_activities(self) -> None:
        self.store.save(ACTIVITIES_KEY, [a.to_dict() for a in self._activities])

    def _check_achievements(self) -> List[AchievementRecord]:
        """Unlock and award in one step; caller holds the lock"""
        if not self.config.gamification.enabled:
            return []

        profile = self.profile
        self._refresh_streak()
        old_level = profile.level
        result = self.evaluator.check_achievements(
            self._activities, self.tracker.all_sessions(), profile, self.clock.now()
        )
        for record in result.unlocked:
            self._emit(EventType.ACHIEVEMENT_UNLOCKED, {
                'achievement_id': record.achievement_id,
                'name': record.name,
                'description': record.description,
                'rarity': record.rarity,
                'xp_reward': record.xp_reward
            })
        if result.level_up and profile.level > old_level:
            self._emit(EventType.LEVEL_UP, {'new_level': profile.level, 'xp': profile.xp})
        return result.unlocked

    def _on_sessions_changed(self) -> None:
        with self._lock:
            self.store.save(SESSIONS_KEY, self.tracker.to_dict())
            finished = self.tracker.finished_count
            if finished != self._finished_count:
                self._finished_count = finished
                if self._check_achievements():
                    self._save_profile()

    # ===== ACTIVITIES =====

    def log_activity(self, activity: Activity) -> LogActivityResult:
        """Append, recompute the streak, award XP, then re-evaluate achievements"""
        with self._lock:
            profile = self.profile
            previous_streak = self._refresh_streak().current_streak
            old_level = profile.level

            self._activities.append(activity)
            streak = self._refresh_streak()
            profile.total_activities += 1
            profile.total_time_minutes += activity.duration_minutes or 0

            xp = 0
            if self.config.gamification.enabled:
                xp = compute_activity_xp(activity, streak.current_streak)
                level_result = award_xp(profile, xp)
                if level_result.level_up:
                    self._emit(EventType.LEVEL_UP, {'new_level': profile.level, 'xp': profile.xp})

            new_achievements = self._check_achievements()

            self._save_activities()
            self._save_profile()

            if streak.current_streak > previous_streak \
                    and streak.current_streak in self.config.gamification.streak_milestones:
                logger.info(f"🔥 Streak milestone: {streak.current_streak} days")
                self._emit(EventType.STREAK_MILESTONE, {'streak': streak.current_streak})

            logger.info(f"📝 Logged {activity.category} activity (+{xp} XP)")

            return LogActivityResult(
                xp_awarded=xp,
                achievement_xp=sum(a.xp_reward for a in new_achievements),
                new_achievements=new_achievements,
                level_up=profile.level > old_level,
                new_level=profile.level,
                streak=streak
            )

    def list_activities(self) -> List[Activity]:
        with self._lock:
            return list(self._activities)

    # ===== SESSIONS =====

    def start_session(self, session_type: str, planned_duration: Optional[int] = None,
                      project_id: Optional[str] = None) -> TimeSession:
        return self.tracker.start_session(session_type, planned_duration, project_id)

    def start_break(self, break_type: str = BreakType.SHORT.value) -> TimeSession:
        return self.tracker.start_break(break_type)

    def end_break(self) -> Optional[TimeSession]:
        return self.tracker.end_break()

    def end_session(self) -> TimeSession:
        return self.tracker.end_session()

    def record_activity_signal(self) -> None:
        self.tracker.record_activity_signal()

    def current_session(self) -> Optional[TimeSession]:
        return self.tracker.current_session()

    def remaining_minutes(self) -> int:
        return self.tracker.remaining_minutes()

    def list_sessions(self) -> List[TimeSession]:
        return self.tracker.all_sessions()

    def activity_from_session(self, session: TimeSession, description: str,
                              category: str = ActivityCategory.CODING.value) -> Activity:
        """Build an Activity from a finished session; the caller logs it"""
        if session.is_active:
            raise SessionStateError("Only finished sessions can become activities")
        return Activity(
            date=session.start_time.date().isoformat(),
            time=session.start_time.strftime("%H:%M:%S"),
            category=category,
            description=description,
            duration_minutes=session.duration_minutes,
            focus_score=session.focus_score,
            tags=(session.type,),
            project_id=session.project_id
        )

    # ===== READS =====

    def get_streak(self) -> StreakState:
        with self._lock:
            return compute_streak(self._activities, self.clock.now().date())

    def get_profile(self) -> UserProfile:
        with self._lock:
            self._refresh_streak()
            return copy.deepcopy(self.profile)

    def get_achievement_progress(self) -> List[AchievementRecord]:
        with self._lock:
            self._refresh_streak()
            return self.evaluator.achievement_progress(
                self._activities, self.tracker.all_sessions(), self.profile
            )

    def get_achievements_summary(self) -> Dict[str, Any]:
        with self._lock:
            return self.evaluator.achievements_summary(self.profile)

    def get_analytics_report(self, activities: Optional[Sequence[Activity]] = None,
                             sessions: Optional[Sequence[TimeSession]] = None) -> AnalyticsReport:
        with self._lock:
            activities = list(self._activities) if activities is None else list(activities)
            sessions = self.tracker.all_sessions() if sessions is None else list(sessions)
        return self.analytics.generate_report(activities, sessions, self.projects.get_projects())

    def today_summary(self) -> Dict[str, Any]:
        with self._lock:
            today = self.clock.now().date()
            streak = self._refresh_streak()
            count = sum(1 for a in self._activities if a.activity_date == today)
            goal = self.config.gamification.daily_goal
            return {
                'date': today.isoformat(),
                'activities_today': count,
                'daily_goal': goal,
                'goal_reached': count >= goal,
                'remaining': max(0, goal - count),
                'minutes_tracked_today': self.tracker.today_total_minutes(),
                'current_streak': streak.current_streak
            }

    def shutdown(self) -> None:
        self.tracker.shutdown()
        self.timers.shutdown()
        logger.info("⏹️ Engine stopped")


__all__ = ['ProductivityEngine', 'LogActivityResult']
