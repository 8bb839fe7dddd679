# services/__init__.py

"""
Engine services: timers, analytics, projects, notifications, export and backups
"""

from .timer_service import AsyncioTimerService, BackgroundTimerService, TimerHandle, TimerService
from .analytics import AnalyticsReport, AnalyticsService
from .project_service import ProjectService
from .notifications import NotificationService

__all__ = [
    'AsyncioTimerService',
    'BackgroundTimerService',
    'TimerHandle',
    'TimerService',
    'AnalyticsReport',
    'AnalyticsService',
    'ProjectService',
    'NotificationService'
]
