"""Tests for the productivity engine."""

import logging
from datetime import date, timedelta

import pytest

from conftest import FailingNotifier

from mycroft.config import EngineConfig, GamificationConfig, StorageConfig
from mycroft.core.engine import ProductivityEngine
from mycroft.core.exceptions import SessionStateError, ValidationError
from mycroft.core.models import EventType


def test_first_activity(engine, notifier, make_activity):
    result = engine.log_activity(make_activity())

    assert result.xp_awarded == 7  # base 5 + 2 for a 1-day streak
    assert result.achievement_xp == 10
    assert [a.achievement_id for a in result.new_achievements] == ['first_activity']
    assert result.streak.current_streak == 1
    assert result.level_up is False
    assert result.new_level == 1

    profile = engine.get_profile()
    assert profile.xp == 17
    assert profile.total_activities == 1
    assert len(notifier.of_type(EventType.ACHIEVEMENT_UNLOCKED)) == 1


def test_log_activity_tracks_minutes(engine, make_activity):
    engine.log_activity(make_activity(duration_minutes=30))
    engine.log_activity(make_activity(duration_minutes=15))
    profile = engine.get_profile()
    assert profile.total_time_minutes == 45
    assert profile.total_activities == 2


def test_invalid_activity_changes_nothing(engine, make_activity):
    with pytest.raises(ValidationError):
        engine.log_activity(make_activity(focus_score=11))
    assert engine.list_activities() == []
    assert engine.get_profile().xp == 0


def test_level_up_event(engine, notifier, make_activity):
    result = engine.log_activity(make_activity(duration_minutes=200))

    assert result.xp_awarded == 107
    assert result.level_up is True
    assert result.new_level == 2
    assert notifier.of_type(EventType.LEVEL_UP)[0].payload['new_level'] == 2


def test_streak_milestone_is_emitted_once(engine, notifier, make_activity):
    first = date(2023, 12, 30)
    for offset in range(7):
        engine.log_activity(make_activity(date=(first + timedelta(days=offset)).isoformat()))

    milestones = notifier.of_type(EventType.STREAK_MILESTONE)
    assert [e.payload['streak'] for e in milestones] == [7]
    assert engine.get_streak().current_streak == 7
    assert engine.get_profile().has_achievement('streak_7')

    engine.log_activity(make_activity())
    assert len(notifier.of_type(EventType.STREAK_MILESTONE)) == 1


def test_backdated_activities_keep_streak_at_zero(engine, make_activity):
    result = engine.log_activity(make_activity(date="2024-01-03"))
    assert result.streak.current_streak == 0
    assert result.streak.longest_streak == 1


def test_failing_sink_is_logged(store, clock, timers, make_activity, caplog):
    engine = ProductivityEngine(store=store, clock=clock, timers=timers, notifier=FailingNotifier())
    with caplog.at_level(logging.ERROR, logger="mycroft"):
        result = engine.log_activity(make_activity())

    assert [a.achievement_id for a in result.new_achievements] == ['first_activity']
    assert engine.get_profile().xp == 17
    assert "Notification sink failed" in caplog.text


def test_gamification_disabled(store, clock, timers, make_activity):
    config = EngineConfig(gamification=GamificationConfig(enabled=False))
    engine = ProductivityEngine(store=store, clock=clock, timers=timers, config=config)
    result = engine.log_activity(make_activity(duration_minutes=60))

    assert result.xp_awarded == 0
    assert result.new_achievements == []
    assert engine.get_profile().xp == 0
    assert engine.get_streak().current_streak == 1


def test_profile_snapshot_is_detached(engine, make_activity):
    engine.log_activity(make_activity())
    snapshot = engine.get_profile()
    snapshot.xp = 99999
    snapshot.achievements.clear()

    profile = engine.get_profile()
    assert profile.xp == 17
    assert profile.has_achievement('first_activity')


def test_finished_session_unlocks_achievement(engine, clock, notifier):
    engine.start_session('deep-work', 120)
    clock.advance(minutes=120)
    engine.end_session()

    profile = engine.get_profile()
    assert profile.has_achievement('deep_focus')
    assert profile.xp == 75
    unlocked = notifier.of_type(EventType.ACHIEVEMENT_UNLOCKED)
    assert unlocked[0].payload['achievement_id'] == 'deep_focus'


def test_sessions_unlock_achievements_when_history_is_full(store, clock, timers):
    config = EngineConfig(storage=StorageConfig(max_sessions=1))
    engine = ProductivityEngine(store=store, clock=clock, timers=timers, config=config)

    engine.start_session('pomodoro', 5)
    clock.advance(minutes=5)
    engine.end_session()
    engine.start_session('deep-work', 120)
    clock.advance(minutes=120)
    engine.end_session()

    assert len(engine.list_sessions()) == 1
    assert engine.get_profile().has_achievement('deep_focus')


def test_streak_drops_after_an_inactive_day(engine, clock, make_activity):
    for day in range(1, 6):
        engine.log_activity(make_activity(date=f"2024-01-0{day}"))
    assert engine.today_summary()['current_streak'] == 5

    clock.advance(days=1)
    assert engine.get_streak().current_streak == 0
    assert engine.today_summary()['current_streak'] == 0
    profile = engine.get_profile()
    assert profile.current_streak == 0
    assert profile.longest_streak == 5


def test_activity_from_session(engine, clock):
    running = engine.start_session('pomodoro')
    with pytest.raises(SessionStateError):
        engine.activity_from_session(running, "Half way")

    clock.advance(minutes=25)
    finished = engine.end_session()
    activity = engine.activity_from_session(finished, "Fixed the parser", category="Bug Fix")

    assert activity.date == "2024-01-05"
    assert activity.duration_minutes == 25
    assert activity.focus_score == 10
    assert activity.tags == ('pomodoro',)
    assert activity.category == "Bug Fix"


def test_session_delegates(engine, clock):
    engine.start_session('pomodoro')
    clock.advance(minutes=5)
    engine.start_break('short')
    assert engine.current_session().is_on_break
    engine.record_activity_signal()
    engine.end_break()
    assert engine.remaining_minutes() == 20
    engine.end_session()
    assert engine.current_session() is None
    assert len(engine.list_sessions()) == 1


def test_today_summary(engine, clock, make_activity):
    engine.log_activity(make_activity())
    engine.log_activity(make_activity(time="11:00"))
    engine.log_activity(make_activity(date="2024-01-04"))
    engine.start_session('pomodoro')
    clock.advance(minutes=10)

    summary = engine.today_summary()
    assert summary['date'] == "2024-01-05"
    assert summary['activities_today'] == 2
    assert summary['daily_goal'] == 3
    assert summary['goal_reached'] is False
    assert summary['remaining'] == 1
    assert summary['minutes_tracked_today'] == 10
    assert summary['current_streak'] == 2


def test_state_survives_a_new_engine(store, clock, timers, make_activity):
    engine = ProductivityEngine(store=store, clock=clock, timers=timers)
    engine.log_activity(make_activity(duration_minutes=30))
    engine.start_session('deep-work')

    reopened = ProductivityEngine(store=store, clock=clock, timers=timers)
    assert len(reopened.list_activities()) == 1
    assert reopened.get_profile().xp == engine.get_profile().xp
    assert reopened.current_session().type == 'deep-work'


def test_analytics_report_includes_projects(engine, make_activity):
    project = engine.projects.create_project("Parser")
    engine.log_activity(make_activity(duration_minutes=30, focus_score=8, project_id=project.id))
    report = engine.get_analytics_report()

    assert report.summary['total_activities'] == 1
    assert report.summary['projects'][project.id]['total_time'] == 30


def test_achievement_progress_and_summary(engine, make_activity):
    engine.log_activity(make_activity())
    progress = engine.get_achievement_progress()
    assert progress[0].achievement_id == 'first_activity'
    assert engine.get_achievements_summary()['earned_achievements'] == 1
