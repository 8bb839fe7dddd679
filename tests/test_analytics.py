"""Tests for the analytics service."""

import pytest

from mycroft.core.models import TimeSession
from mycroft.services.analytics import (
    DECLINING, IMPROVING, STABLE, AnalyticsService, activity_productivity, classify_trend,
    busiest_hour, daily_patterns, focus_analysis, most_productive_day, most_productive_hour,
    weekly_trends
)


@pytest.fixture
def analytics(clock):
    return AnalyticsService(clock)


def test_productivity_normalizes_to_an_hour(make_activity):
    assert activity_productivity(make_activity(duration_minutes=30, focus_score=8)) == 4.0
    assert activity_productivity(make_activity(duration_minutes=240, focus_score=8)) == 8.0
    assert activity_productivity(make_activity(duration_minutes=30)) == 0.0


class TestClassifyTrend:
    def test_needs_both_windows(self):
        assert classify_trend([9] * 10) == STABLE
        assert classify_trend([]) == STABLE

    def test_improving_and_declining(self):
        assert classify_trend([5] * 5 + [8] * 10) == IMPROVING
        assert classify_trend([8] * 5 + [5] * 10) == DECLINING

    def test_threshold_is_exclusive(self):
        assert classify_trend([5] * 5 + [5.5] * 10) == STABLE


def test_most_productive_hour_and_day(make_activity):
    activities = [
        make_activity(date="2024-01-02", time="14:00"),  # Tuesday
        make_activity(date="2024-01-02", time="14:30"),
        make_activity(date="2024-01-03", time="09:00"),
    ]
    assert most_productive_hour(activities) == 14
    assert most_productive_day(activities) == "Tuesday"


def test_ties_resolve_to_earliest(make_activity):
    activities = [make_activity(date="2024-01-03", time="16:00"), make_activity(date="2024-01-01", time="08:00")]
    assert most_productive_hour(activities) == 8
    assert most_productive_day(activities) == "Monday"


def test_defaults_without_data():
    assert most_productive_hour([]) == 9
    assert most_productive_day([]) == "Monday"


def test_busiest_hour_weights():
    assert busiest_hour({14: 30, 8: 30, 20: 10}) == 8
    assert busiest_hour({22: 5}) == 22
    assert busiest_hour({}) == 9


def test_daily_patterns_cover_every_hour(make_activity):
    patterns = daily_patterns([make_activity(time="13:15", focus_score=6), make_activity(time="13:45")])
    assert len(patterns) == 24
    assert patterns[13]['activity_count'] == 2
    assert patterns[13]['average_focus'] == 6.0
    assert patterns[13]['productivity'] == pytest.approx(1.2)


def test_weekly_trends_group_by_sunday(make_activity):
    activities = [
        make_activity(date="2023-12-31", duration_minutes=30),
        make_activity(date="2024-01-06", duration_minutes=30),
        make_activity(date="2024-01-07", duration_minutes=15),
    ]
    trends = weekly_trends(activities)
    assert [t['week_start'] for t in trends] == ["2024-01-07", "2023-12-31"]
    assert trends[1]['activity_count'] == 2
    assert trends[1]['total_time'] == 60


def test_focus_analysis(make_activity):
    result = focus_analysis([make_activity(focus_score=s) for s in (6, 8, 8)])
    assert result['average'] == 7.3
    assert result['distribution'] == {6: 1, 8: 2}
    assert focus_analysis([])['average'] == 0.0


def test_productivity_trends(analytics, make_activity):
    recent = [make_activity(date=f"2024-01-0{d}") for d in range(1, 6)]
    older = [make_activity(date="2023-11-20"), make_activity(date="2023-11-25")]
    trends = analytics.productivity_trends(recent + older)

    assert trends['daily_average'] == round(5 / 30, 2)
    assert trends['weekly_average'] == 5
    assert trends['monthly_growth'] == 150.0


def test_summary(analytics, make_activity):
    activities = [make_activity(duration_minutes=30, focus_score=8, category="Testing"),
                  make_activity(duration_minutes=60, focus_score=6)]
    summary = analytics.productivity_summary(activities, [])

    assert summary['total_time'] == 90
    assert summary['average_focus'] == 7.0
    assert summary['category_breakdown'] == {'Testing': 1, 'Coding': 1}
    assert summary['average_session_length'] == 0.0


def test_insights_and_recommendations(analytics, clock, make_activity):
    activities = [make_activity(focus_score=5)]
    insights = analytics.insights(activities)
    types = [i['type'] for i in insights]
    assert types == ['time_optimization', 'focus_improvement', 'variety']

    short = TimeSession(type='custom', start_time=clock.now(), planned_duration_minutes=10)
    short.finish(clock.now())
    recommendations = analytics.recommendations(insights, [short])
    assert len(recommendations) == 4
    assert recommendations[-1].startswith('Consider longer focused work sessions')


def test_no_insights_without_activities(analytics):
    assert analytics.insights([]) == []


def test_generate_report(analytics, make_activity):
    report = analytics.generate_report([make_activity(duration_minutes=30, focus_score=9)], [])
    data = report.to_dict()

    assert data['summary']['total_activities'] == 1
    assert 'projects' not in data['summary']
    assert data['streaks']['current_streak'] == 1
    assert len(data['daily_patterns']) == 24
