#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Mycroft Engine - Achievement Evaluator
Static achievement catalog, per-requirement progress rules and unlocks
"""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple
from dataclasses import dataclass, field
from enum import Enum
from abc import ABC, abstractmethod
import logging

from mycroft.core.exceptions import AchievementCatalogMismatchError
from mycroft.core.leveling import LevelUpResult, award_xp
from mycroft.core.models import (
    Activity, AchievementCategory, AchievementRarity, AchievementRecord,
    SessionType, TimeSession, UserProfile
)
from mycroft.utils.datetime_utils import round_half_up

logger = logging.getLogger(__name__)

# ===== REQUIREMENTS =====

class RequirementKind(Enum):
    FIRST_ACTIVITY = "first-activity"
    STREAK_THRESHOLD = "streak-threshold"
    SESSION_COUNT_OF_TYPE = "session-count-of-type"
    CATEGORY_COUNT = "category-count"
    TIME_OF_DAY_COUNT = "time-of-day-count"
    SINGLE_SESSION_DURATION_THRESHOLD = "single-session-duration-threshold"

@dataclass(frozen=True)
class FirstActivity:
    kind = RequirementKind.FIRST_ACTIVITY

@dataclass(frozen=True)
class StreakThreshold:
    target: int
    kind = RequirementKind.STREAK_THRESHOLD

@dataclass(frozen=True)
class SessionCountOfType:
    session_type: str
    target: int
    kind = RequirementKind.SESSION_COUNT_OF_TYPE

@dataclass(frozen=True)
class CategoryCount:
    category: str
    target: int
    kind = RequirementKind.CATEGORY_COUNT

@dataclass(frozen=True)
class TimeOfDayCount:
    """Activities logged with start_hour <= hour < end_hour"""
    start_hour: int
    end_hour: int
    target: int
    kind = RequirementKind.TIME_OF_DAY_COUNT

@dataclass(frozen=True)
class SingleSessionDurationThreshold:
    session_type: str
    minimum_minutes: int
    kind = RequirementKind.SINGLE_SESSION_DURATION_THRESHOLD

# ===== DATA CLASSES =====

@dataclass(frozen=True)
class AchievementDefinition:
    """Catalog entry"""
    achievement_id: str
    name: str
    description: str
    icon: str
    category: AchievementCategory
    rarity: AchievementRarity
    requirement: Any
    xp_reward: int

    @property
    def requirement_kind(self) -> Optional[RequirementKind]:
        return getattr(self.requirement, 'kind', None)

    @property
    def rarity_emoji(self) -> str:
        rarity_emojis = {
            AchievementRarity.COMMON: "⚪",
            AchievementRarity.RARE: "🔵",
            AchievementRarity.EPIC: "🟣",
            AchievementRarity.LEGENDARY: "🟡"
        }
        return rarity_emojis.get(self.rarity, "⚪")

    def new_record(self, progress: int = 0, unlocked_at: Optional[datetime] = None) -> AchievementRecord:
        kind = self.requirement_kind
        return AchievementRecord(
            achievement_id=self.achievement_id,
            name=self.name,
            description=self.description,
            icon=self.icon,
            category=self.category.value,
            rarity=self.rarity.value,
            requirement_kind=kind.value if kind else str(kind),
            xp_reward=self.xp_reward,
            progress=progress,
            unlocked_at=unlocked_at
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'achievement_id': self.achievement_id,
            'name': self.name,
            'description': self.description,
            'icon': self.icon,
            'category': self.category.value,
            'rarity': self.rarity.value,
            'requirement_kind': self.requirement_kind.value if self.requirement_kind else None,
            'xp_reward': self.xp_reward
        }

@dataclass(frozen=True)
class AchievementProgress:
    achievement_id: str
    progress: int
    unlocked: bool
    record: Optional[AchievementRecord] = None

@dataclass
class EvaluationContext:
    """Everything a progress rule may look at"""
    activities: Sequence[Activity]
    sessions: Sequence[TimeSession]
    profile: UserProfile

@dataclass
class UnlockResult:
    unlocked: List[AchievementRecord] = field(default_factory=list)
    xp_awarded: int = 0
    level_up: bool = False
    new_level: int = 1

# ===== CATALOG =====

DEFAULT_CATALOG: Tuple[AchievementDefinition, ...] = (
    AchievementDefinition(
        achievement_id="first_activity",
        name="Getting Started",
        description="Log your first activity",
        icon="🎯",
        category=AchievementCategory.MILESTONE,
        rarity=AchievementRarity.COMMON,
        requirement=FirstActivity(),
        xp_reward=10
    ),
    AchievementDefinition(
        achievement_id="streak_7",
        name="Week Warrior",
        description="Keep a 7-day streak",
        icon="🔥",
        category=AchievementCategory.CONSISTENCY,
        rarity=AchievementRarity.RARE,
        requirement=StreakThreshold(target=7),
        xp_reward=50
    ),
    AchievementDefinition(
        achievement_id="streak_30",
        name="Monthly Master",
        description="Keep a 30-day streak",
        icon="🏆",
        category=AchievementCategory.CONSISTENCY,
        rarity=AchievementRarity.EPIC,
        requirement=StreakThreshold(target=30),
        xp_reward=200
    ),
    AchievementDefinition(
        achievement_id="pomodoro_master",
        name="Pomodoro Master",
        description="Complete 100 pomodoro sessions",
        icon="🍅",
        category=AchievementCategory.PRODUCTIVITY,
        rarity=AchievementRarity.EPIC,
        requirement=SessionCountOfType(session_type=SessionType.POMODORO.value, target=100),
        xp_reward=150
    ),
    AchievementDefinition(
        achievement_id="code_reviewer",
        name="Code Reviewer",
        description="Log 50 code review activities",
        icon="👀",
        category=AchievementCategory.PRODUCTIVITY,
        rarity=AchievementRarity.RARE,
        requirement=CategoryCount(category="Code Review", target=50),
        xp_reward=100
    ),
    AchievementDefinition(
        achievement_id="night_owl",
        name="Night Owl",
        description="Log 10 activities between midnight and 6 AM",
        icon="🦉",
        category=AchievementCategory.PRODUCTIVITY,
        rarity=AchievementRarity.RARE,
        requirement=TimeOfDayCount(start_hour=0, end_hour=6, target=10),
        xp_reward=50
    ),
    AchievementDefinition(
        achievement_id="early_bird",
        name="Early Bird",
        description="Log 10 activities between 5 AM and 8 AM",
        icon="🐦",
        category=AchievementCategory.PRODUCTIVITY,
        rarity=AchievementRarity.RARE,
        requirement=TimeOfDayCount(start_hour=5, end_hour=8, target=10),
        xp_reward=50
    ),
    AchievementDefinition(
        achievement_id="deep_focus",
        name="Deep Focus",
        description="Complete a deep work session of at least 2 hours",
        icon="🧠",
        category=AchievementCategory.LEARNING,
        rarity=AchievementRarity.RARE,
        requirement=SingleSessionDurationThreshold(
            session_type=SessionType.DEEP_WORK.value, minimum_minutes=120
        ),
        xp_reward=75
    ),
)

# ===== PROGRESS RULES =====

class AchievementChecker(ABC):
    """Progress rule for one requirement kind"""

    @abstractmethod
    def get_progress(self, requirement: Any, context: EvaluationContext) -> Tuple[int, int]:
        """Return (current, target)"""
        pass

    def percentage(self, requirement: Any, context: EvaluationContext) -> int:
        current, target = self.get_progress(requirement, context)
        if target <= 0:
            return 100
        return min(100, round_half_up(100 * current / target))

class FirstActivityChecker(AchievementChecker):

    def get_progress(self, requirement: FirstActivity, context: EvaluationContext) -> Tuple[int, int]:
        return (1 if context.activities else 0), 1

class StreakChecker(AchievementChecker):

    def get_progress(self, requirement: StreakThreshold, context: EvaluationContext) -> Tuple[int, int]:
        return context.profile.current_streak, requirement.target

class SessionCountChecker(AchievementChecker):

    def get_progress(self, requirement: SessionCountOfType, context: EvaluationContext) -> Tuple[int, int]:
        completed = sum(
            1 for s in context.sessions
            if s.type == requirement.session_type and not s.is_active
        )
        return completed, requirement.target

class CategoryCountChecker(AchievementChecker):

    def get_progress(self, requirement: CategoryCount, context: EvaluationContext) -> Tuple[int, int]:
        count = sum(1 for a in context.activities if a.category == requirement.category)
        return count, requirement.target

class TimeOfDayChecker(AchievementChecker):

    def get_progress(self, requirement: TimeOfDayCount, context: EvaluationContext) -> Tuple[int, int]:
        count = sum(
            1 for a in context.activities
            if requirement.start_hour <= a.hour < requirement.end_hour
        )
        return count, requirement.target

class SessionDurationChecker(AchievementChecker):
    """Binary: one qualifying completed session is enough, no partial credit"""

    def get_progress(self, requirement: SingleSessionDurationThreshold,
                     context: EvaluationContext) -> Tuple[int, int]:
        qualifies = any(
            s.type == requirement.session_type
            and not s.is_active
            and s.duration_minutes >= requirement.minimum_minutes
            for s in context.sessions
        )
        return (1 if qualifies else 0), 1


DEFAULT_CHECKERS: Dict[RequirementKind, AchievementChecker] = {
    RequirementKind.FIRST_ACTIVITY: FirstActivityChecker(),
    RequirementKind.STREAK_THRESHOLD: StreakChecker(),
    RequirementKind.SESSION_COUNT_OF_TYPE: SessionCountChecker(),
    RequirementKind.CATEGORY_COUNT: CategoryCountChecker(),
    RequirementKind.TIME_OF_DAY_COUNT: TimeOfDayChecker(),
    RequirementKind.SINGLE_SESSION_DURATION_THRESHOLD: SessionDurationChecker(),
}

# ===== EVALUATOR =====

class AchievementEvaluator:
    """Evaluates the catalog against a profile and applies unlocks"""

    def __init__(self, catalog: Optional[Iterable[AchievementDefinition]] = None,
                 checkers: Optional[Dict[RequirementKind, AchievementChecker]] = None):
        self.catalog: List[AchievementDefinition] = list(DEFAULT_CATALOG if catalog is None else catalog)
        self.checkers = dict(DEFAULT_CHECKERS if checkers is None else checkers)
        self.validate_catalog()

    def validate_catalog(self) -> None:
        for definition in self.catalog:
            self._checker_for(definition)

    def _checker_for(self, definition: AchievementDefinition) -> AchievementChecker:
        kind = definition.requirement_kind
        checker = self.checkers.get(kind) if isinstance(kind, RequirementKind) else None
        if checker is None:
            raise AchievementCatalogMismatchError(definition.achievement_id, kind)
        return checker

    def get_definition(self, achievement_id: str) -> Optional[AchievementDefinition]:
        return next((d for d in self.catalog if d.achievement_id == achievement_id), None)

    def evaluate(self, definition: AchievementDefinition, activities: Sequence[Activity],
                 sessions: Sequence[TimeSession], profile: UserProfile) -> AchievementProgress:
        stored = profile.get_achievement(definition.achievement_id)
        if stored is not None:
            return AchievementProgress(
                achievement_id=definition.achievement_id,
                progress=stored.progress,
                unlocked=True,
                record=stored
            )

        checker = self._checker_for(definition)
        context = EvaluationContext(activities=activities, sessions=sessions, profile=profile)
        progress = checker.percentage(definition.requirement, context)
        return AchievementProgress(
            achievement_id=definition.achievement_id,
            progress=progress,
            unlocked=progress >= 100
        )

    def check_achievements(self, activities: Sequence[Activity], sessions: Sequence[TimeSession],
                           profile: UserProfile, now: datetime) -> UnlockResult:
        """Unlock every catalog entry that newly reached 100 and award its XP.

        The caller holds the profile lock, so the unlock and the XP award
        are observed together.
        """
        result = UnlockResult(new_level=profile.level)

        for definition in self.catalog:
            if profile.has_achievement(definition.achievement_id):
                continue

            progress = self.evaluate(definition, activities, sessions, profile)
            if not progress.unlocked:
                continue

            record = definition.new_record(progress=100, unlocked_at=now)
            profile.add_achievement(record)
            level_result: LevelUpResult = award_xp(profile, definition.xp_reward)

            result.unlocked.append(record)
            result.xp_awarded += definition.xp_reward
            result.level_up = result.level_up or level_result.level_up
            result.new_level = level_result.new_level

            logger.info(f"🏆 Achievement unlocked: {definition.achievement_id} (+{definition.xp_reward} XP)")

        return result

    def achievement_progress(self, activities: Sequence[Activity], sessions: Sequence[TimeSession],
                             profile: UserProfile) -> List[AchievementRecord]:
        """Every catalog entry with its progress, highest progress first"""
        records = []
        for definition in self.catalog:
            progress = self.evaluate(definition, activities, sessions, profile)
            if progress.record is not None:
                records.append(progress.record)
            else:
                records.append(definition.new_record(progress=progress.progress))
        return sorted(records, key=lambda r: r.progress, reverse=True)

    def achievements_summary(self, profile: UserProfile) -> Dict[str, Any]:
        total = len(self.catalog)
        earned = [d for d in self.catalog if profile.has_achievement(d.achievement_id)]

        by_category: Dict[str, Dict[str, int]] = {}
        for category in AchievementCategory:
            in_category = [d for d in self.catalog if d.category == category]
            if in_category:
                by_category[category.value] = {
                    'total': len(in_category),
                    'earned': sum(1 for d in in_category if d in earned)
                }

        by_rarity: Dict[str, Dict[str, int]] = {}
        for rarity in AchievementRarity:
            in_rarity = [d for d in self.catalog if d.rarity == rarity]
            if in_rarity:
                by_rarity[rarity.value] = {
                    'total': len(in_rarity),
                    'earned': sum(1 for d in in_rarity if d in earned)
                }

        return {
            'total_achievements': total,
            'earned_achievements': len(earned),
            'completion_percentage': round(len(earned) / total * 100, 1) if total else 0.0,
            'total_xp_from_achievements': sum(d.xp_reward for d in earned),
            'by_category': by_category,
            'by_rarity': by_rarity
        }


__all__ = [
    'RequirementKind',
    'FirstActivity',
    'StreakThreshold',
    'SessionCountOfType',
    'CategoryCount',
    'TimeOfDayCount',
    'SingleSessionDurationThreshold',
    'AchievementDefinition',
    'AchievementProgress',
    'EvaluationContext',
    'UnlockResult',
    'AchievementChecker',
    'DEFAULT_CATALOG',
    'DEFAULT_CHECKERS',
    'AchievementEvaluator'
]
