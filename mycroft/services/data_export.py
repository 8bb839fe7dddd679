# services/data_export.py

import csv
import io
import json
import logging
from typing import Any, Dict, List, Optional, Sequence

from mycroft import __version__
from mycroft.core.models import AchievementRecord, Activity, Project, TimeSession, UserProfile
from mycroft.services.analytics import AnalyticsReport, AnalyticsService
from mycroft.utils.datetime_utils import Clock, to_iso

logger = logging.getLogger(__name__)

ACTIVITY_COLUMNS = [
    'Date', 'Time', 'Activity', 'Category', 'Mood', 'Tags',
    'Project', 'Duration', 'Focus Score', 'Energy'
]

SESSION_COLUMNS = [
    'Start Time', 'End Time', 'Duration', 'Type', 'Project',
    'Focus Score', 'Interruptions', 'Breaks'
]


def _dumps(data: Any) -> str:
    return json.dumps(data, ensure_ascii=False, indent=2, default=str)


def _to_csv(rows: List[Dict[str, Any]], columns: List[str]) -> str:
    buffer = io.StringIO()
    dict_writer = csv.DictWriter(buffer, columns, lineterminator="\n")
    dict_writer.writeheader()
    dict_writer.writerows(rows)
    return buffer.getvalue()


def _hours_minutes(minutes: int) -> str:
    return f"{minutes // 60}h {minutes % 60}m"


class DataExportService:
    """Renders engine data as JSON, CSV or Markdown strings"""

    def __init__(self, clock: Clock, analytics: Optional[AnalyticsService] = None):
        self.clock = clock
        self.analytics = analytics or AnalyticsService(clock)

    def _project_names(self, projects: Sequence[Project]) -> Dict[str, str]:
        return {p.id: p.name for p in projects}

    # ===== JSON =====

    def export_complete_data(self, activities: Sequence[Activity], sessions: Sequence[TimeSession],
                             projects: Sequence[Project], profile: UserProfile) -> str:
        report = self.analytics.generate_report(activities, sessions, projects)
        data = {
            'metadata': {
                'exported_at': to_iso(self.clock.now()),
                'version': __version__,
                'total_activities': len(activities),
                'total_sessions': len(sessions),
                'total_projects': len(projects)
            },
            'user_profile': profile.to_dict(),
            'activities': [a.to_dict() for a in activities],
            'sessions': [s.to_dict() for s in sessions],
            'projects': [p.to_dict() for p in projects],
            'analytics': report.to_dict()
        }
        logger.info(f"📤 Complete export: {len(activities)} activities, {len(sessions)} sessions")
        return _dumps(data)

    def export_project_report(self, project: Project, activities: Sequence[Activity],
                              sessions: Sequence[TimeSession]) -> str:
        return _dumps({
            'project': project.to_dict(),
            'analytics': self.analytics.project_performance(project.id, activities, sessions),
            'activities': [a.to_dict() for a in activities if a.project_id == project.id],
            'sessions': [s.to_dict() for s in sessions if s.project_id == project.id],
            'generated_at': to_iso(self.clock.now())
        })

    def export_achievements(self, achievements: Sequence[AchievementRecord], profile: UserProfile) -> str:
        unlocked = [a for a in achievements if a.is_unlocked]
        in_progress = [a for a in achievements if not a.is_unlocked and a.progress > 0]
        total = len(achievements)
        return _dumps({
            'user_profile': {
                'username': profile.username,
                'level': profile.level,
                'xp': profile.xp,
                'total_activities': profile.total_activities,
                'current_streak': profile.current_streak,
                'longest_streak': profile.longest_streak
            },
            'summary': {
                'total_achievements': total,
                'unlocked_count': len(unlocked),
                'in_progress_count': len(in_progress),
                'completion_percentage': round(len(unlocked) / total * 100) if total else 0
            },
            'unlocked_achievements': [a.to_dict() for a in unlocked],
            'in_progress_achievements': [a.to_dict() for a in in_progress],
            'exported_at': to_iso(self.clock.now())
        })

    # ===== CSV =====

    def export_activities_csv(self, activities: Sequence[Activity],
                              projects: Sequence[Project] = ()) -> str:
        names = self._project_names(projects)
        rows = [{
            'Date': a.date,
            'Time': a.time,
            'Activity': a.description,
            'Category': a.category,
            'Mood': a.mood or '',
            'Tags': ';'.join(a.tags),
            'Project': names.get(a.project_id, '') if a.project_id else '',
            'Duration': a.duration_minutes if a.duration_minutes is not None else '',
            'Focus Score': a.focus_score if a.focus_score is not None else '',
            'Energy': a.energy or ''
        } for a in activities]
        return _to_csv(rows, ACTIVITY_COLUMNS)

    def export_sessions_csv(self, sessions: Sequence[TimeSession],
                            projects: Sequence[Project] = ()) -> str:
        names = self._project_names(projects)
        rows = [{
            'Start Time': to_iso(s.start_time),
            'End Time': to_iso(s.end_time) or '',
            'Duration': s.duration_minutes,
            'Type': s.type,
            'Project': names.get(s.project_id, '') if s.project_id else '',
            'Focus Score': s.focus_score,
            'Interruptions': s.interruption_count,
            'Breaks': len(s.breaks)
        } for s in sessions]
        return _to_csv(rows, SESSION_COLUMNS)

    # ===== MARKDOWN =====

    def productivity_report_markdown(self, activities: Sequence[Activity], sessions: Sequence[TimeSession],
                                     projects: Sequence[Project], profile: UserProfile,
                                     report: Optional[AnalyticsReport] = None) -> str:
        report = report or self.analytics.generate_report(activities, sessions, projects)
        summary = report.summary
        trends = report.trends
        streaks = report.streaks
        peak = max(report.daily_patterns, key=lambda p: p['productivity'])

        lines: List[str] = [
            "# Mycroft Productivity Report",
            f"*Generated on {self.clock.now().strftime('%B %d, %Y')}*",
            "",
            "## 👤 User Profile",
            f"- **Username:** {profile.username}",
            f"- **Level:** {profile.level}",
            f"- **Total XP:** {profile.xp:,}",
            f"- **Total Activities:** {profile.total_activities:,}",
            f"- **Current Streak:** {profile.current_streak} days",
            f"- **Longest Streak:** {profile.longest_streak} days",
            "",
            "## 📊 Summary Statistics",
            f"- **Total Activities:** {summary['total_activities']:,}",
            f"- **Total Time Tracked:** {_hours_minutes(summary['total_time'])}",
            f"- **Total Sessions:** {summary['total_sessions']}",
            f"- **Average Session Length:** {round(summary['average_session_length'])} minutes",
            f"- **Average Focus Score:** {summary['average_focus']:.1f}/10",
            f"- **Most Productive Day:** {summary['most_productive_day']}",
            f"- **Most Productive Hour:** {summary['most_productive_hour']}:00",
            "",
            "## 🔥 Streak Analytics",
            f"- **Current Streak:** {streaks['current_streak']} days",
            f"- **Longest Streak:** {streaks['longest_streak']} days",
            f"- **Average Streak:** {streaks['average_streak']} days",
            f"- **Total Active Days:** {streaks['total_active_days']}",
            "",
            "## 📈 Productivity Trends",
            f"- **Daily Average:** {trends['daily_average']:.1f} activities",
            f"- **Weekly Average:** {trends['weekly_average']} activities",
            f"- **Monthly Growth:** {trends['monthly_growth']:.1f}%",
            f"- **Focus Trend:** {trends['focus_trend']}",
            f"- **Productivity Trend:** {trends['productivity_trend']}",
            "",
            "## 🎯 Category Breakdown",
        ]

        breakdown = sorted(summary['category_breakdown'].items(), key=lambda item: item[1], reverse=True)
        lines.extend(f"- **{category}:** {count} activities" for category, count in breakdown)

        lines += [
            "",
            "## ⏰ Daily Productivity Patterns",
            f"**Peak Productivity Time:** {peak['hour']}:00 "
            f"({peak['activity_count']} activities, {peak['average_focus']:.1f} focus)",
            "",
            "### Hourly Breakdown",
        ]
        busy_hours = sorted((p for p in report.daily_patterns if p['activity_count'] > 0),
                            key=lambda p: p['productivity'], reverse=True)[:10]
        lines.extend(
            f"- **{p['hour']}:00:** {p['activity_count']} activities, {p['average_focus']:.1f} focus"
            for p in busy_hours
        )

        lines += ["", "## 📁 Project Overview"]
        if projects:
            for project in projects:
                project_activities = [a for a in activities if a.project_id == project.id]
                minutes = sum(a.duration_minutes or 0 for a in project_activities)
                lines += [
                    f"### {project.name}",
                    f"- **Status:** {project.status}",
                    f"- **Activities:** {len(project_activities)}",
                    f"- **Time Spent:** {_hours_minutes(minutes)}",
                    f"- **Goals:** {sum(1 for g in project.goals if g.is_completed)}/{len(project.goals)} completed",
                    f"- **Milestones:** {sum(1 for m in project.milestones if m.completed_at)}"
                    f"/{len(project.milestones)} completed",
                    ""
                ]
        else:
            lines += ["*No projects created yet*", ""]

        lines.append("## 💡 Key Insights")
        for insight in report.insights:
            lines += [f"### {insight['title']}", insight['description'], ""]

        lines.append("## 🎯 Recommendations")
        lines.extend(f"- {rec}" for rec in report.recommendations)
        lines += ["", "---", "*Report generated by Mycroft Engine*", ""]

        return "\n".join(lines)
