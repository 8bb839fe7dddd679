#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Mycroft Engine - Streak Tracker
Consecutive-day streaks derived from the activity log
"""

from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Set
import logging

from mycroft.core.models import Activity, StreakState
from mycroft.utils.datetime_utils import DateLike, parse_date

logger = logging.getLogger(__name__)

STREAK_BUCKETS = ['1-3 days', '4-7 days', '8-14 days', '15-30 days', '30+ days']


def active_days(activities: Iterable[Activity]) -> Set[date]:
    return {activity.activity_date for activity in activities}


def streak_runs(days: Iterable[date]) -> List[int]:
    """Lengths of maximal runs of consecutive days, in chronological order"""
    runs: List[int] = []
    previous = None
    for day in sorted(set(days)):
        if previous is not None and (day - previous).days == 1:
            runs[-1] += 1
        else:
            runs.append(1)
        previous = day
    return runs


def current_streak_from(days: Set[date], today: date) -> int:
    """Consecutive active days ending at today; 0 if today is inactive"""
    streak = 0
    check_date = today
    while check_date in days:
        streak += 1
        check_date -= timedelta(days=1)
    return streak


def compute_streak(activities: Iterable[Activity], today: DateLike) -> StreakState:
    days = active_days(activities)
    if not days:
        return StreakState()

    runs = streak_runs(days)
    current = current_streak_from(days, parse_date(today))
    return StreakState(
        current_streak=current,
        longest_streak=max(max(runs), current),
        total_active_days=len(days)
    )


def _bucket_for(length: int) -> str:
    if length <= 3:
        return '1-3 days'
    if length <= 7:
        return '4-7 days'
    if length <= 14:
        return '8-14 days'
    if length <= 30:
        return '15-30 days'
    return '30+ days'


def analyze_streak_patterns(activities: Iterable[Activity], today: DateLike) -> Dict[str, Any]:
    """Streak statistics with a distribution of run lengths"""
    activities = list(activities)
    state = compute_streak(activities, today)
    runs = streak_runs(active_days(activities))

    distribution = {bucket: 0 for bucket in STREAK_BUCKETS}
    for length in runs:
        distribution[_bucket_for(length)] += 1

    average = round(sum(runs) / len(runs), 1) if runs else 0.0

    return {
        'current_streak': state.current_streak,
        'longest_streak': state.longest_streak,
        'average_streak': average,
        'total_active_days': state.total_active_days,
        'streak_distribution': distribution
    }


__all__ = [
    'STREAK_BUCKETS',
    'active_days',
    'streak_runs',
    'current_streak_from',
    'compute_streak',
    'analyze_streak_patterns'
]
