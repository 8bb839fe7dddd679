"""Tests for the notification service."""

import pytest
from apscheduler.triggers.cron import CronTrigger

from mycroft.core.engine import ProductivityEngine
from mycroft.core.models import EngineEvent, EventType
from mycroft.services.notifications import NOTIFICATIONS_KEY, NotificationService


@pytest.fixture
def notifications(store, clock):
    return NotificationService(store, clock, max_notifications=5)


def _event(clock, event_type, **payload):
    return EngineEvent(type=event_type, payload=payload, created_at=clock.now())


class RecordingScheduler:
    def __init__(self):
        self.jobs = []

    def add_job(self, func, trigger, **kwargs):
        self.jobs.append((func, trigger, kwargs))


def test_achievement_event(notifications, clock):
    notification = notifications.notify(_event(
        clock, EventType.ACHIEVEMENT_UNLOCKED, achievement_id='streak_7', name='Week Warrior',
        description='7 days in a row', rarity='rare', xp_reward=50
    ))
    assert notification.type == 'achievement'
    assert notification.title.startswith('🥈')
    assert notification.data == {'achievement_id': 'streak_7', 'xp_reward': 50}


def test_level_up_and_streak_events(notifications, clock):
    level = notifications.notify(_event(clock, EventType.LEVEL_UP, new_level=3, xp=260))
    streak = notifications.notify(_event(clock, EventType.STREAK_MILESTONE, streak=14))
    assert "level 3" in level.message
    assert streak.title.startswith('🔥🔥 ')
    assert streak.data == {'streak_count': 14}


def test_goal_and_milestone_events(notifications, clock):
    goal = notifications.notify(_event(clock, EventType.GOAL_COMPLETED, goal_title='Ship', project_name='Parser'))
    milestone = notifications.notify(_event(
        clock, EventType.MILESTONE_COMPLETED, milestone_title='Beta', project_name='Parser'
    ))
    assert goal.type == 'goal'
    assert goal.message == 'Ship in Parser'
    assert milestone.type == 'milestone'


def test_pomodoro_completion_only(notifications, clock):
    pomodoro = notifications.notify(_event(
        clock, EventType.SESSION_COMPLETED, type='pomodoro', suggested_break='long'
    ))
    deep = notifications.notify(_event(clock, EventType.SESSION_COMPLETED, type='deep-work'))
    assert 'long break' in pomodoro.message
    assert deep is None


def test_ignored_events(notifications, clock):
    assert notifications.notify(_event(clock, EventType.IDLE_DETECTED, focus_score=9)) is None
    assert notifications.get_notifications() == []


def test_daily_goal_reminder_expires(notifications, clock):
    assert notifications.daily_goal_reminder(3, 3) is None

    reminder = notifications.daily_goal_reminder(1, 3)
    assert reminder.data['remaining'] == 2
    assert notifications.get_notifications() == [reminder]

    clock.advance(hours=24)
    assert notifications.get_notifications() == []


def test_reminder_event(notifications, clock):
    notification = notifications.notify(_event(clock, EventType.DAILY_GOAL_REMINDER, current_count=0, goal_count=3))
    assert notification.message.startswith('3 more activities')


def test_newest_first_and_capped(notifications, clock, store):
    for level in range(2, 9):
        notifications.notify(_event(clock, EventType.LEVEL_UP, new_level=level, xp=0))
        clock.advance(minutes=1)

    listed = notifications.get_notifications()
    assert len(listed) == 5
    assert listed[0].data['new_level'] == 8
    assert len(store.load(NOTIFICATIONS_KEY)) == 5
    assert len(notifications.get_notifications(limit=2)) == 2


def test_read_state(notifications, clock):
    first = notifications.notify(_event(clock, EventType.LEVEL_UP, new_level=2, xp=100))
    notifications.notify(_event(clock, EventType.LEVEL_UP, new_level=3, xp=250))
    assert notifications.get_unread_count() == 2

    assert notifications.mark_as_read(first.id) is True
    assert notifications.mark_as_read('missing') is False
    assert notifications.get_unread_count() == 1

    notifications.mark_all_as_read()
    assert notifications.get_unread_count() == 0


def test_clear_old_notifications(notifications, clock):
    notifications.notify(_event(clock, EventType.LEVEL_UP, new_level=2, xp=100))
    clock.advance(days=31)
    notifications.notify(_event(clock, EventType.LEVEL_UP, new_level=3, xp=250))

    assert notifications.clear_old_notifications(days_old=30) == 1
    assert len(notifications.get_notifications()) == 1


def test_notifications_reload_from_store(notifications, store, clock):
    notifications.notify(_event(clock, EventType.LEVEL_UP, new_level=2, xp=100))
    reloaded = NotificationService(store, clock)
    assert [n.title for n in reloaded.get_notifications()] == ["🎉 Level Up!"]


def test_schedule_daily_reminder(notifications):
    scheduler = RecordingScheduler()
    notifications.schedule_daily_reminder(scheduler, lambda: 1, goal_count=3, hour=18)

    func, trigger, kwargs = scheduler.jobs[0]
    assert isinstance(trigger, CronTrigger)
    assert kwargs['id'] == 'daily_goal_reminder'

    func()
    assert notifications.get_notifications()[0].data['remaining'] == 2


def test_engine_events_reach_the_sink(store, clock, timers, make_activity):
    sink = NotificationService(store, clock)
    engine = ProductivityEngine(store=store, clock=clock, timers=timers, notifier=sink)
    engine.log_activity(make_activity())
    assert sink.get_notifications()[0].data['achievement_id'] == 'first_activity'
