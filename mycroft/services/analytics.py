"""
Productivity analytics: hourly patterns, weekly trends, insights and reports
"""

import logging
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence

from mycroft.core.models import Activity, Project, TimeSession
from mycroft.core.streaks import analyze_streak_patterns
from mycroft.utils.datetime_utils import DAY_NAMES, Clock, parse_time, week_start

logger = logging.getLogger(__name__)

DEFAULT_PRODUCTIVE_HOUR = 9
DEFAULT_PRODUCTIVE_DAY = "Monday"
TREND_WINDOW = 10
TREND_THRESHOLD = 0.5

IMPROVING = "improving"
DECLINING = "declining"
STABLE = "stable"


def chronological(activities: Iterable[Activity]) -> List[Activity]:
    return sorted(activities, key=lambda a: (a.date, parse_time(a.time)))


def average_focus(activities: Iterable[Activity]) -> float:
    scores = [a.focus_score for a in activities if a.focus_score is not None]
    return sum(scores) / len(scores) if scores else 0.0


def total_time(activities: Iterable[Activity]) -> int:
    return sum(a.duration_minutes or 0 for a in activities)


def category_breakdown(activities: Iterable[Activity]) -> Dict[str, int]:
    return dict(Counter(a.category for a in activities))


def activity_productivity(activity: Activity) -> float:
    """Per-activity score on a 0-10 scale: focus weighted by up to an hour of work"""
    if activity.focus_score is None:
        return 0.0
    return activity.focus_score * min(activity.duration_minutes or 0, 60) / 60


def classify_trend(values: Sequence[float], window: int = TREND_WINDOW,
                   threshold: float = TREND_THRESHOLD) -> str:
    """Compare the mean of the last `window` values with the mean of everything before"""
    values = list(values)
    recent = values[-window:]
    older = values[:-window]
    if not recent or not older:
        return STABLE

    recent_avg = sum(recent) / len(recent)
    older_avg = sum(older) / len(older)
    if recent_avg > older_avg + threshold:
        return IMPROVING
    if recent_avg < older_avg - threshold:
        return DECLINING
    return STABLE


def weekly_productivity(activities: Sequence[Activity], minutes: int) -> float:
    return len(activities) * average_focus(activities) * minutes / 1000

# ===== AGGREGATIONS =====

def daily_patterns(activities: Iterable[Activity]) -> List[Dict[str, Any]]:
    counts: Dict[int, int] = defaultdict(int)
    focus: Dict[int, List[int]] = defaultdict(list)

    for activity in activities:
        counts[activity.hour] += 1
        if activity.focus_score is not None:
            focus[activity.hour].append(activity.focus_score)

    patterns = []
    for hour in range(24):
        scores = focus[hour]
        avg = sum(scores) / len(scores) if scores else 0.0
        patterns.append({
            'hour': hour,
            'activity_count': counts[hour],
            'average_focus': round(avg, 1),
            'productivity': counts[hour] * avg / 10
        })
    return patterns


def weekly_trends(activities: Iterable[Activity], weeks: int = 12) -> List[Dict[str, Any]]:
    buckets: Dict[str, List[Activity]] = defaultdict(list)
    for activity in activities:
        buckets[week_start(activity.date).isoformat()].append(activity)

    trends = []
    for key in sorted(buckets, reverse=True)[:weeks]:
        week = buckets[key]
        minutes = total_time(week)
        trends.append({
            'week_start': key,
            'activity_count': len(week),
            'total_time': minutes,
            'average_focus': round(average_focus(week), 1),
            'category_breakdown': category_breakdown(week),
            'productivity': weekly_productivity(week, minutes)
        })
    return trends


def busiest_hour(weights: Dict[int, int]) -> int:
    """Earliest hour with the largest weight, 9 when nothing was recorded"""
    best_hour, best = DEFAULT_PRODUCTIVE_HOUR, 0
    for hour in range(24):
        if weights.get(hour, 0) > best:
            best_hour, best = hour, weights[hour]
    return best_hour


def most_productive_hour(activities: Iterable[Activity]) -> int:
    return busiest_hour(Counter(a.hour for a in activities))


def most_productive_day(activities: Iterable[Activity]) -> str:
    counts = Counter(DAY_NAMES[a.activity_date.weekday()] for a in activities)
    best_day, best = DEFAULT_PRODUCTIVE_DAY, 0
    for day in DAY_NAMES:
        if counts[day] > best:
            best_day, best = day, counts[day]
    return best_day


def focus_analysis(activities: Iterable[Activity]) -> Dict[str, Any]:
    scores = [a.focus_score for a in chronological(activities) if a.focus_score is not None]
    if not scores:
        return {'average': 0.0, 'trend': STABLE, 'distribution': {}}
    return {
        'average': round(sum(scores) / len(scores), 1),
        'trend': classify_trend(scores),
        'distribution': dict(sorted(Counter(scores).items()))
    }

# ===== REPORT =====

@dataclass
class AnalyticsReport:
    summary: Dict[str, Any]
    trends: Dict[str, Any]
    daily_patterns: List[Dict[str, Any]]
    weekly_trends: List[Dict[str, Any]]
    streaks: Dict[str, Any]
    focus: Dict[str, Any]
    insights: List[Dict[str, Any]] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'summary': self.summary,
            'trends': self.trends,
            'daily_patterns': self.daily_patterns,
            'weekly_trends': self.weekly_trends,
            'streaks': self.streaks,
            'focus': self.focus,
            'insights': self.insights,
            'recommendations': self.recommendations
        }


class AnalyticsService:
    """Read-only analytics over activities and sessions"""

    def __init__(self, clock: Clock):
        self.clock = clock

    def productivity_summary(self, activities: Sequence[Activity],
                             sessions: Sequence[TimeSession]) -> Dict[str, Any]:
        minutes = total_time(activities)
        return {
            'total_activities': len(activities),
            'total_time': minutes,
            'total_sessions': len(sessions),
            'average_session_length': round(minutes / len(sessions), 1) if sessions else 0.0,
            'average_focus': round(average_focus(activities), 1),
            'category_breakdown': category_breakdown(activities),
            'most_productive_day': most_productive_day(activities),
            'most_productive_hour': most_productive_hour(activities)
        }

    def _count_between(self, activities: Sequence[Activity], newest_days_ago: int, oldest_days_ago: int) -> int:
        """Activities dated in (today - oldest_days_ago, today - newest_days_ago]"""
        today = self.clock.now().date()
        upper = today - timedelta(days=newest_days_ago)
        lower = today - timedelta(days=oldest_days_ago)
        return sum(1 for a in activities if lower < a.activity_date <= upper)

    def productivity_trends(self, activities: Sequence[Activity]) -> Dict[str, Any]:
        last_30 = self._count_between(activities, 0, 30)
        previous_30 = self._count_between(activities, 30, 60)
        growth = round((last_30 - previous_30) / previous_30 * 100, 1) if previous_30 else 0.0

        ordered = chronological(activities)
        focus_scores = [a.focus_score for a in ordered if a.focus_score is not None]
        productivity_scores = [activity_productivity(a) for a in ordered]

        return {
            'daily_average': round(last_30 / 30, 2),
            'weekly_average': self._count_between(activities, 0, 7),
            'monthly_growth': growth,
            'focus_trend': classify_trend(focus_scores),
            'productivity_trend': classify_trend(productivity_scores)
        }

    def project_performance(self, project_id: str, activities: Sequence[Activity],
                            sessions: Sequence[TimeSession]) -> Dict[str, Any]:
        project_activities = [a for a in activities if a.project_id == project_id]
        project_sessions = [s for s in sessions if s.project_id == project_id]
        minutes = total_time(project_activities)

        daily: Dict[str, int] = dict(Counter(a.date for a in project_activities))

        return {
            'project_id': project_id,
            'total_activities': len(project_activities),
            'total_time': minutes,
            'total_sessions': len(project_sessions),
            'average_session_length': round(minutes / len(project_sessions), 1) if project_sessions else 0.0,
            'category_breakdown': category_breakdown(project_activities),
            'daily_activity': daily,
            'focus_analysis': focus_analysis(project_activities),
            'productivity': weekly_productivity(project_activities, minutes)
        }

    def insights(self, activities: Sequence[Activity]) -> List[Dict[str, Any]]:
        if not activities:
            return []

        insights = []
        peak = max(daily_patterns(activities), key=lambda p: p['productivity'])
        insights.append({
            'type': 'time_optimization',
            'title': 'Peak Productivity Time',
            'description': (f"You're most productive at {peak['hour']}:00 with {peak['activity_count']} "
                            f"activities and {peak['average_focus']}/10 focus."),
            'impact': 'high',
            'actionable': True
        })

        avg = average_focus(activities)
        if avg < 7:
            insights.append({
                'type': 'focus_improvement',
                'title': 'Focus Enhancement Opportunity',
                'description': (f"Your average focus score is {avg:.1f}/10. "
                                "Consider using the Pomodoro technique or eliminating distractions."),
                'impact': 'medium',
                'actionable': True
            })

        if len(category_breakdown(activities)) < 3:
            insights.append({
                'type': 'variety',
                'title': 'Work Variety',
                'description': 'Consider spreading your work across more categories for balanced skill development.',
                'impact': 'low',
                'actionable': True
            })

        return insights

    def recommendations(self, insights: List[Dict[str, Any]], sessions: Sequence[TimeSession]) -> List[str]:
        messages = {
            'time_optimization': 'Schedule your most important tasks during your peak productivity hours.',
            'focus_improvement': 'Try the Pomodoro technique to improve focus and reduce distractions.',
            'variety': 'Explore different types of coding activities to develop diverse skills.'
        }
        recommendations = [messages[i['type']] for i in insights if i.get('actionable') and i['type'] in messages]

        completed = [s for s in sessions if not s.is_active]
        if completed:
            average_length = sum(s.duration_minutes for s in completed) / len(completed)
            if average_length < 25:
                recommendations.append('Consider longer focused work sessions for better deep work.')
            elif average_length > 90:
                recommendations.append('Take more frequent breaks to maintain high focus levels.')

        return recommendations

    def generate_report(self, activities: Sequence[Activity], sessions: Sequence[TimeSession],
                        projects: Optional[Sequence[Project]] = None) -> AnalyticsReport:
        activities = list(activities)
        sessions = list(sessions)
        insights = self.insights(activities)

        report = AnalyticsReport(
            summary=self.productivity_summary(activities, sessions),
            trends=self.productivity_trends(activities),
            daily_patterns=daily_patterns(activities),
            weekly_trends=weekly_trends(activities),
            streaks=analyze_streak_patterns(activities, self.clock.now().date()),
            focus=focus_analysis(activities),
            insights=insights,
            recommendations=self.recommendations(insights, sessions)
        )
        if projects:
            report.summary['projects'] = {
                p.id: self.project_performance(p.id, activities, sessions) for p in projects
            }
        logger.debug(f"Generated analytics report for {len(activities)} activities")
        return report
