#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Mycroft Engine - XP & Leveling
XP per activity, level thresholds and XP awards
"""

from dataclasses import dataclass
from typing import Dict, Optional
import logging

from mycroft.core.exceptions import InvalidXPAmountError
from mycroft.core.models import Activity, UserProfile
from mycroft.utils.datetime_utils import round_half_up

logger = logging.getLogger(__name__)

# ===== CONSTANTS =====

BASE_ACTIVITY_XP = 5
XP_PER_MINUTE = 0.5
XP_PER_STREAK_DAY = 2
HIGH_FOCUS_SCORE = 8
HIGH_FOCUS_BONUS = 5

CATEGORY_BONUSES: Dict[str, int] = {
    'Code Review': 3,
    'Documentation': 2,
    'Testing': 2,
    'Learning': 1
}

LEVEL_THRESHOLDS = [
    0, 100, 250, 450, 700, 1000, 1400, 1900,
    2500, 3200, 4000, 5000, 6200, 7600, 9200, 11000
]

MAX_LEVEL = len(LEVEL_THRESHOLDS)

LEVEL_TITLES = {
    1: "🌱 Newcomer",
    2: "🌿 Beginner",
    3: "🌳 Apprentice",
    4: "⚡ Contributor",
    5: "💪 Enthusiast",
    6: "🎯 Focused",
    7: "🔥 Driven",
    8: "⭐ Advanced",
    9: "💎 Expert",
    10: "🏆 Master",
    11: "👑 Guru",
    12: "🌟 Legend",
    13: "⚡ Superhero",
    14: "🚀 Champion",
    15: "💫 Mythic",
    16: "🌌 Universe"
}

# ===== RESULTS =====

@dataclass(frozen=True)
class LevelUpResult:
    level_up: bool
    new_level: int

# ===== XP =====

def compute_activity_xp(activity: Activity, current_streak: int) -> int:
    xp = BASE_ACTIVITY_XP
    xp += (activity.duration_minutes or 0) * XP_PER_MINUTE
    xp += max(0, current_streak) * XP_PER_STREAK_DAY

    if activity.focus_score is not None and activity.focus_score >= HIGH_FOCUS_SCORE:
        xp += HIGH_FOCUS_BONUS

    xp += CATEGORY_BONUSES.get(activity.category, 0)
    return max(0, round_half_up(xp))


def level_from_xp(xp: int) -> int:
    """Highest level whose threshold xp has reached"""
    level = 1
    for index, threshold in enumerate(LEVEL_THRESHOLDS):
        if xp >= threshold:
            level = index + 1
    return level


def xp_for_level(level: int) -> Optional[int]:
    """XP needed to reach level; None past the last level"""
    if level <= 1:
        return 0
    if level > MAX_LEVEL:
        return None
    return LEVEL_THRESHOLDS[level - 1]


def level_progress(xp: int) -> float:
    """Progress toward the next level (0-100%)"""
    level = level_from_xp(xp)
    next_level_xp = xp_for_level(level + 1)
    if next_level_xp is None:
        return 100.0

    current_level_xp = xp_for_level(level)
    level_xp_range = next_level_xp - current_level_xp
    return round((xp - current_level_xp) / level_xp_range * 100, 1)


def xp_to_next_level(xp: int) -> int:
    next_level_xp = xp_for_level(level_from_xp(xp) + 1)
    if next_level_xp is None:
        return 0
    return max(0, next_level_xp - xp)


def level_title(level: int) -> str:
    return LEVEL_TITLES.get(min(max(level, 1), MAX_LEVEL), f"🌌 Level {level}")


def award_xp(profile: UserProfile, amount: int) -> LevelUpResult:
    """Add XP to the profile and recompute its level"""
    if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
        raise InvalidXPAmountError(amount)

    old_level = profile.level
    profile.xp += amount
    profile.level = max(profile.level, level_from_xp(profile.xp))

    if profile.level > old_level:
        logger.info(f"🎉 Level up: {old_level} -> {profile.level} ({profile.xp} XP)")
        return LevelUpResult(level_up=True, new_level=profile.level)
    return LevelUpResult(level_up=False, new_level=profile.level)


__all__ = [
    'CATEGORY_BONUSES',
    'LEVEL_THRESHOLDS',
    'MAX_LEVEL',
    'LevelUpResult',
    'compute_activity_xp',
    'level_from_xp',
    'xp_for_level',
    'level_progress',
    'xp_to_next_level',
    'level_title',
    'award_xp'
]
