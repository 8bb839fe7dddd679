"""
Notification sink: turns engine events into stored notifications
"""

import logging
import threading
from datetime import timedelta
from typing import Any, Callable, Dict, List, Optional

from apscheduler.triggers.cron import CronTrigger

from mycroft.core.models import EngineEvent, EventType, Notification, NotificationType
from mycroft.database.manager import Store
from mycroft.utils.datetime_utils import Clock

logger = logging.getLogger(__name__)

NOTIFICATIONS_KEY = "notifications"

RARITY_EMOJIS = {
    'common': '🥉',
    'rare': '🥈',
    'epic': '🥇',
    'legendary': '👑'
}

STREAK_EMOJIS = {
    7: '🔥',
    14: '🔥🔥',
    30: '🔥🔥🔥',
    50: '🔥🔥🔥🔥',
    100: '🔥🔥🔥🔥🔥'
}


class NotificationService:
    """Stores notifications newest first, capped at max_notifications"""

    def __init__(self, store: Store, clock: Clock, max_notifications: int = 100):
        self.store = store
        self.clock = clock
        self.max_notifications = max_notifications
        self._lock = threading.RLock()
        self.notifications: List[Notification] = [
            Notification.from_dict(n) for n in self.store.load(NOTIFICATIONS_KEY) or []
        ]

    def _save(self) -> None:
        self.store.save(NOTIFICATIONS_KEY, [n.to_dict() for n in self.notifications])

    def _add(self, notification: Notification) -> Notification:
        with self._lock:
            self.notifications.insert(0, notification)
            del self.notifications[self.max_notifications:]
            self._save()
        return notification

    def _build(self, type_: NotificationType, title: str, message: str,
               data: Dict[str, Any], expires_in: Optional[timedelta] = None) -> Notification:
        now = self.clock.now()
        return Notification(
            type=type_,
            title=title,
            message=message,
            data=data,
            created_at=now,
            expires_at=now + expires_in if expires_in else None
        )

    # ===== SINK =====

    def notify(self, event: EngineEvent) -> Optional[Notification]:
        """Store a notification for events the user should see"""
        payload = event.payload
        notification = None

        if event.type == EventType.ACHIEVEMENT_UNLOCKED:
            emoji = RARITY_EMOJIS.get(payload.get('rarity'), '🏅')
            notification = self._build(
                NotificationType.ACHIEVEMENT,
                f"{emoji} Achievement Unlocked!",
                f"{payload.get('name')}: {payload.get('description')}",
                {'achievement_id': payload.get('achievement_id'), 'xp_reward': payload.get('xp_reward')}
            )
        elif event.type == EventType.LEVEL_UP:
            notification = self._build(
                NotificationType.ACHIEVEMENT,
                "🎉 Level Up!",
                f"Congratulations! You've reached level {payload.get('new_level')}!",
                {'new_level': payload.get('new_level'), 'total_xp': payload.get('xp')}
            )
        elif event.type == EventType.STREAK_MILESTONE:
            streak = payload.get('streak', 0)
            notification = self._build(
                NotificationType.ACHIEVEMENT,
                f"{STREAK_EMOJIS.get(streak, '🔥')} Streak Milestone!",
                f"{streak} days of consistent coding!",
                {'streak_count': streak}
            )
        elif event.type == EventType.GOAL_COMPLETED:
            project = payload.get('project_name')
            notification = self._build(
                NotificationType.GOAL,
                "🎯 Goal Completed!",
                f"{payload.get('goal_title')}" + (f" in {project}" if project else ""),
                dict(payload)
            )
        elif event.type == EventType.MILESTONE_COMPLETED:
            notification = self._build(
                NotificationType.MILESTONE,
                "🏁 Milestone Reached!",
                f"{payload.get('milestone_title')} in {payload.get('project_name')}",
                dict(payload)
            )
        elif event.type == EventType.SESSION_COMPLETED and payload.get('type') == 'pomodoro':
            notification = self._build(
                NotificationType.REMINDER,
                "🍅 Pomodoro Complete!",
                f"Great focus! Time for a {payload.get('suggested_break', 'short')} break.",
                dict(payload)
            )
        elif event.type == EventType.DAILY_GOAL_REMINDER:
            return self.daily_goal_reminder(payload.get('current_count', 0), payload.get('goal_count', 0))
        else:
            logger.debug(f"No notification for {event.type.value}")
            return None

        return self._add(notification)

    def daily_goal_reminder(self, current_count: int, goal_count: int) -> Optional[Notification]:
        if current_count >= goal_count:
            return None
        remaining = goal_count - current_count
        return self._add(self._build(
            NotificationType.REMINDER,
            "📅 Daily Goal Reminder",
            f"{remaining} more activities to reach your daily goal!",
            {'current_count': current_count, 'goal_count': goal_count, 'remaining': remaining},
            expires_in=timedelta(hours=24)
        ))

    def schedule_daily_reminder(self, scheduler, count_provider: Callable[[], int], goal_count: int,
                                hour: int = 17, minute: int = 0) -> None:
        """Register a cron job on an APScheduler scheduler"""
        scheduler.add_job(
            lambda: self.daily_goal_reminder(count_provider(), goal_count),
            CronTrigger(hour=hour, minute=minute),
            id='daily_goal_reminder',
            replace_existing=True
        )
        logger.info(f"📅 Daily goal reminder scheduled at {hour:02d}:{minute:02d}")

    # ===== QUERIES =====

    def get_notifications(self, limit: int = 50) -> List[Notification]:
        """Unexpired notifications, newest first; expired ones are dropped"""
        now = self.clock.now()
        with self._lock:
            valid = [n for n in self.notifications if not n.is_expired(now)]
            if len(valid) != len(self.notifications):
                self.notifications = valid
                self._save()
            ordered = sorted(valid, key=lambda n: n.created_at, reverse=True)
        return ordered[:limit]

    def mark_as_read(self, notification_id: str) -> bool:
        with self._lock:
            for notification in self.notifications:
                if notification.id == notification_id:
                    notification.is_read = True
                    self._save()
                    return True
        return False

    def mark_all_as_read(self) -> None:
        with self._lock:
            for notification in self.notifications:
                notification.is_read = True
            self._save()

    def clear_old_notifications(self, days_old: int = 30) -> int:
        cutoff = self.clock.now() - timedelta(days=days_old)
        with self._lock:
            before = len(self.notifications)
            self.notifications = [n for n in self.notifications if n.created_at > cutoff]
            self._save()
            return before - len(self.notifications)

    def get_unread_count(self) -> int:
        with self._lock:
            return sum(1 for n in self.notifications if not n.is_read)
