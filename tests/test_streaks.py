"""Tests for streak computation."""

import random
from datetime import date, timedelta

from mycroft.core.streaks import analyze_streak_patterns, compute_streak


def _activities(make_activity, days):
    return [make_activity(date=d.isoformat()) for d in days]


def test_empty_log_has_no_streak():
    state = compute_streak([], "2024-01-05")
    assert (state.current_streak, state.longest_streak, state.total_active_days) == (0, 0, 0)


def test_five_consecutive_days(make_activity):
    days = [date(2024, 1, 1) + timedelta(days=i) for i in range(5)]
    state = compute_streak(_activities(make_activity, days), "2024-01-05")
    assert state.current_streak == 5
    assert state.longest_streak == 5
    assert state.total_active_days == 5


def test_seven_days_ending_today(make_activity):
    today = date(2024, 3, 10)
    days = [today - timedelta(days=i) for i in range(7)]
    assert compute_streak(_activities(make_activity, days), today).current_streak == 7


def test_streak_is_zero_when_today_is_inactive(make_activity):
    days = [date(2024, 1, 1), date(2024, 1, 2), date(2024, 1, 3)]
    state = compute_streak(_activities(make_activity, days), "2024-01-04")
    assert state.current_streak == 0
    assert state.longest_streak == 3


def test_multiple_activities_per_day_count_once(make_activity):
    activities = [make_activity(date="2024-01-05", time=f"{h}:00") for h in range(9, 12)]
    state = compute_streak(activities, "2024-01-05")
    assert state.current_streak == 1
    assert state.total_active_days == 1


def test_longest_run_across_history(make_activity):
    days = [date(2024, 1, d) for d in (1, 2, 3, 4, 10, 11)]
    state = compute_streak(_activities(make_activity, days), "2024-01-11")
    assert state.current_streak == 2
    assert state.longest_streak == 4


def test_longest_never_below_current(make_activity):
    rng = random.Random(42)
    base = date(2024, 1, 1)
    for _ in range(50):
        days = {base + timedelta(days=rng.randint(0, 30)) for _ in range(rng.randint(1, 20))}
        state = compute_streak(_activities(make_activity, days), base + timedelta(days=rng.randint(0, 31)))
        assert state.longest_streak >= state.current_streak


def test_streak_pattern_distribution(make_activity):
    days = [date(2024, 1, d) for d in (1, 2, 5, 6, 7, 8, 9, 20)]
    patterns = analyze_streak_patterns(_activities(make_activity, days), "2024-01-20")

    assert patterns['current_streak'] == 1
    assert patterns['longest_streak'] == 5
    assert patterns['average_streak'] == round(8 / 3, 1)
    assert patterns['streak_distribution']['1-3 days'] == 2
    assert patterns['streak_distribution']['4-7 days'] == 1
    assert patterns['streak_distribution']['30+ days'] == 0
