#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Mycroft Engine - Core Data Models
Activities, time sessions, profile, projects and events
"""

import uuid
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple
from dataclasses import dataclass, field, asdict, fields
from enum import Enum
import logging

from mycroft.core.exceptions import SessionStateError, ValidationError
from mycroft.utils.datetime_utils import (
    Clock, from_iso, hour_of, parse_date, parse_time, to_iso, whole_minutes_between
)
from mycroft.utils.validators import (
    normalize_tags, validate_enum_value, validate_optional_int, validate_text
)

logger = logging.getLogger(__name__)

# ===== ENUMS =====

class ActivityCategory(Enum):
    """Categories an activity can be logged under"""
    CODING = "Coding"
    DOCUMENTATION = "Documentation"
    BUG_FIX = "Bug Fix"
    FEATURE = "Feature"
    CODE_REVIEW = "Code Review"
    TESTING = "Testing"
    REFACTORING = "Refactoring"
    PLANNING = "Planning"
    LEARNING = "Learning"
    MEETING = "Meeting"
    DEPLOYMENT = "Deployment"
    RESEARCH = "Research"
    OTHER = "Other"

class SessionType(Enum):
    """Focus timer presets"""
    POMODORO = "pomodoro"
    SHORT_FOCUS = "short-focus"
    DEEP_WORK = "deep-work"
    EXTENDED_FOCUS = "extended-focus"
    CUSTOM = "custom"
    BREAK = "break"

class BreakType(Enum):
    SHORT = "short"
    LONG = "long"
    LUNCH = "lunch"
    MEETING = "meeting"

class ProjectStatus(Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    PAUSED = "paused"
    ARCHIVED = "archived"

class MilestonePriority(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

class AchievementCategory(Enum):
    PRODUCTIVITY = "productivity"
    CONSISTENCY = "consistency"
    LEARNING = "learning"
    MILESTONE = "milestone"

class AchievementRarity(Enum):
    COMMON = "common"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"

class EventType(Enum):
    """Events pushed to the notification sink"""
    LEVEL_UP = "level_up"
    ACHIEVEMENT_UNLOCKED = "achievement_unlocked"
    STREAK_MILESTONE = "streak_milestone"
    SESSION_STARTED = "session_started"
    SESSION_COMPLETED = "session_completed"
    SESSION_ENDED = "session_ended"
    BREAK_STARTED = "break_started"
    BREAK_ENDED = "break_ended"
    IDLE_DETECTED = "idle_detected"
    GOAL_COMPLETED = "goal_completed"
    MILESTONE_COMPLETED = "milestone_completed"
    DAILY_GOAL_REMINDER = "daily_goal_reminder"

class NotificationType(Enum):
    ACHIEVEMENT = "achievement"
    REMINDER = "reminder"
    GOAL = "goal"
    MILESTONE = "milestone"


def _known_fields(cls, data: Dict[str, Any]) -> Dict[str, Any]:
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in names}


def new_id() -> str:
    return str(uuid.uuid4())

# ===== ACTIVITY =====

@dataclass(frozen=True)
class Activity:
    """One logged unit of work. Append-only: never mutated after creation."""
    date: str  # YYYY-MM-DD
    time: str  # wall-clock time of day
    category: str = ActivityCategory.CODING.value
    description: str = ""
    duration_minutes: Optional[int] = None
    focus_score: Optional[int] = None  # 1-10
    tags: Tuple[str, ...] = ()
    project_id: Optional[str] = None
    mood: Optional[str] = None
    energy: Optional[str] = None
    id: str = field(default_factory=new_id)

    def __post_init__(self):
        object.__setattr__(self, 'date', parse_date(self.date).isoformat())

        try:
            parse_time(self.time)
        except ValueError as e:
            raise ValidationError(str(e))

        object.__setattr__(self, 'category', validate_enum_value(self.category, ActivityCategory, "category"))
        object.__setattr__(self, 'description',
                           validate_text(self.description or "", max_length=500, field_name="description"))
        validate_optional_int(self.duration_minutes, "duration_minutes", minimum=0)
        validate_optional_int(self.focus_score, "focus_score", minimum=1, maximum=10)
        object.__setattr__(self, 'tags', normalize_tags(self.tags))

    @property
    def activity_date(self) -> date:
        return parse_date(self.date)

    @property
    def hour(self) -> int:
        return hour_of(self.time)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['tags'] = list(self.tags)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Activity":
        data = _known_fields(cls, data)
        data['tags'] = tuple(data.get('tags') or ())
        return cls(**data)

    @classmethod
    def create(cls, clock: Clock, description: str = "", category: str = ActivityCategory.CODING.value,
               **kwargs) -> "Activity":
        """Activity stamped with the clock's current date and time"""
        now = clock.now()
        return cls(
            date=now.date().isoformat(),
            time=now.strftime("%H:%M:%S"),
            description=description,
            category=category,
            **kwargs
        )

# ===== TIME SESSIONS =====

@dataclass
class Break:
    """A pause inside a time session"""
    start_time: datetime
    end_time: Optional[datetime] = None
    duration_minutes: int = 0
    type: str = BreakType.SHORT.value

    def __post_init__(self):
        self.type = validate_enum_value(self.type, BreakType, "break type")

    @property
    def is_open(self) -> bool:
        return self.end_time is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'start_time': to_iso(self.start_time),
            'end_time': to_iso(self.end_time),
            'duration_minutes': self.duration_minutes,
            'type': self.type
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Break":
        return cls(
            start_time=from_iso(data['start_time']),
            end_time=from_iso(data.get('end_time')),
            duration_minutes=data.get('duration_minutes', 0),
            type=data.get('type', BreakType.SHORT.value)
        )

@dataclass
class TimeSession:
    """One focus-timer run"""
    type: str
    start_time: datetime
    planned_duration_minutes: int
    id: str = field(default_factory=new_id)
    end_time: Optional[datetime] = None
    duration_minutes: int = 0
    project_id: Optional[str] = None
    breaks: List[Break] = field(default_factory=list)
    focus_score: int = 10
    interruption_count: int = 0
    activity_id: Optional[str] = None
    completed: bool = False

    MIN_FOCUS = 1
    MAX_FOCUS = 10

    def __post_init__(self):
        self.type = validate_enum_value(self.type, SessionType, "session type")
        validate_optional_int(self.planned_duration_minutes, "planned_duration_minutes", minimum=0)
        self.focus_score = max(self.MIN_FOCUS, min(self.MAX_FOCUS, self.focus_score))
        self.interruption_count = max(0, self.interruption_count)

    # ===== PROPERTIES =====

    @property
    def is_active(self) -> bool:
        return self.end_time is None

    @property
    def open_break(self) -> Optional[Break]:
        if self.breaks and self.breaks[-1].is_open:
            return self.breaks[-1]
        return None

    @property
    def is_on_break(self) -> bool:
        return self.open_break is not None

    @property
    def closed_break_minutes(self) -> int:
        return sum(b.duration_minutes for b in self.breaks if not b.is_open)

    # ===== MUTATIONS (active sessions only) =====

    def _ensure_active(self):
        if not self.is_active:
            raise SessionStateError(f"Session {self.id} has ended and is immutable")

    def start_break(self, moment: datetime, break_type: str = BreakType.SHORT.value) -> Break:
        self._ensure_active()
        if self.is_on_break:
            raise SessionStateError("Close the current break before starting another")
        pause = Break(start_time=moment, type=break_type)
        self.breaks.append(pause)
        return pause

    def end_break(self, moment: datetime) -> Optional[Break]:
        self._ensure_active()
        pause = self.open_break
        if pause is None:
            return None
        pause.end_time = moment
        pause.duration_minutes = whole_minutes_between(pause.start_time, moment)
        return pause

    def apply_idle_penalty(self) -> int:
        self._ensure_active()
        self.focus_score = max(self.MIN_FOCUS, self.focus_score - 1)
        self.interruption_count += 1
        return self.focus_score

    def finish(self, moment: datetime) -> "TimeSession":
        """Close the session. Duration is wall-clock time, breaks included."""
        self._ensure_active()
        if self.is_on_break:
            self.end_break(moment)
        self.end_time = moment
        self.duration_minutes = whole_minutes_between(self.start_time, moment)
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'type': self.type,
            'start_time': to_iso(self.start_time),
            'end_time': to_iso(self.end_time),
            'planned_duration_minutes': self.planned_duration_minutes,
            'duration_minutes': self.duration_minutes,
            'project_id': self.project_id,
            'breaks': [b.to_dict() for b in self.breaks],
            'focus_score': self.focus_score,
            'interruption_count': self.interruption_count,
            'activity_id': self.activity_id,
            'completed': self.completed,
            'is_active': self.is_active
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TimeSession":
        data = _known_fields(cls, data)
        data['start_time'] = from_iso(data['start_time'])
        data['end_time'] = from_iso(data.get('end_time'))
        data['breaks'] = [Break.from_dict(b) for b in data.get('breaks', [])]
        return cls(**data)

# ===== STREAKS =====

@dataclass(frozen=True)
class StreakState:
    current_streak: int = 0
    longest_streak: int = 0
    total_active_days: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

# ===== ACHIEVEMENTS & PROFILE =====

@dataclass
class AchievementRecord:
    """Per-user view of a catalog achievement"""
    achievement_id: str
    name: str
    description: str
    icon: str
    category: str
    rarity: str
    requirement_kind: str
    xp_reward: int
    progress: int = 0  # 0-100
    unlocked_at: Optional[datetime] = None

    @property
    def is_unlocked(self) -> bool:
        return self.unlocked_at is not None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['unlocked_at'] = to_iso(self.unlocked_at)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AchievementRecord":
        data = _known_fields(cls, data)
        data['unlocked_at'] = from_iso(data.get('unlocked_at'))
        return cls(**data)

@dataclass
class UserProfile:
    """Singleton per user"""
    id: str = field(default_factory=new_id)
    username: str = "Developer"
    level: int = 1
    xp: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    total_activities: int = 0
    total_time_minutes: int = 0
    achievements: List[AchievementRecord] = field(default_factory=list)
    joined_at: Optional[datetime] = None

    def __post_init__(self):
        self.level = max(1, self.level)
        self.xp = max(0, self.xp)
        self.current_streak = max(0, self.current_streak)
        self.longest_streak = max(self.current_streak, self.longest_streak)

    def has_achievement(self, achievement_id: str) -> bool:
        return any(a.achievement_id == achievement_id for a in self.achievements)

    def get_achievement(self, achievement_id: str) -> Optional[AchievementRecord]:
        for record in self.achievements:
            if record.achievement_id == achievement_id:
                return record
        return None

    def add_achievement(self, record: AchievementRecord) -> bool:
        if self.has_achievement(record.achievement_id):
            return False
        self.achievements.append(record)
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'username': self.username,
            'level': self.level,
            'xp': self.xp,
            'current_streak': self.current_streak,
            'longest_streak': self.longest_streak,
            'total_activities': self.total_activities,
            'total_time_minutes': self.total_time_minutes,
            'achievements': [a.to_dict() for a in self.achievements],
            'joined_at': to_iso(self.joined_at)
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserProfile":
        data = _known_fields(cls, data)
        data['achievements'] = [AchievementRecord.from_dict(a) for a in data.get('achievements', [])]
        data['joined_at'] = from_iso(data.get('joined_at'))
        return cls(**data)

# ===== PROJECTS =====

@dataclass
class ProjectGoal:
    title: str
    target_value: float
    unit: str = "activities"
    description: str = ""
    current_value: float = 0
    deadline: Optional[str] = None
    is_completed: bool = False
    id: str = field(default_factory=new_id)
    created_at: Optional[datetime] = None

    def __post_init__(self):
        if self.target_value <= 0:
            raise ValidationError("target_value must be positive")
        if self.deadline is not None:
            self.deadline = parse_date(self.deadline).isoformat()

    def update_progress(self, current_value: float) -> bool:
        """Returns True when this update completed the goal"""
        was_completed = self.is_completed
        self.current_value = current_value
        self.is_completed = current_value >= self.target_value
        return self.is_completed and not was_completed

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['created_at'] = to_iso(self.created_at)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProjectGoal":
        data = _known_fields(cls, data)
        data['created_at'] = from_iso(data.get('created_at'))
        return cls(**data)

@dataclass
class MilestoneTask:
    title: str
    is_completed: bool = False
    completed_at: Optional[datetime] = None
    id: str = field(default_factory=new_id)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['completed_at'] = to_iso(self.completed_at)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MilestoneTask":
        data = _known_fields(cls, data)
        data['completed_at'] = from_iso(data.get('completed_at'))
        return cls(**data)

@dataclass
class Milestone:
    title: str
    description: str = ""
    due_date: Optional[str] = None
    completed_at: Optional[datetime] = None
    progress: float = 0.0  # 0-100
    tasks: List[MilestoneTask] = field(default_factory=list)
    priority: str = MilestonePriority.MEDIUM.value
    id: str = field(default_factory=new_id)

    def __post_init__(self):
        self.priority = validate_enum_value(self.priority, MilestonePriority, "priority")
        if self.due_date is not None:
            self.due_date = parse_date(self.due_date).isoformat()

    @property
    def completed_tasks(self) -> int:
        return sum(1 for t in self.tasks if t.is_completed)

    def recompute_progress(self, moment: datetime) -> bool:
        """Returns True the first time progress reaches 100"""
        if not self.tasks:
            self.progress = 0.0
            return False
        self.progress = 100 * self.completed_tasks / len(self.tasks)
        if self.progress >= 100 and self.completed_at is None:
            self.completed_at = moment
            return True
        return False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'due_date': self.due_date,
            'completed_at': to_iso(self.completed_at),
            'progress': self.progress,
            'tasks': [t.to_dict() for t in self.tasks],
            'priority': self.priority
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Milestone":
        data = _known_fields(cls, data)
        data['completed_at'] = from_iso(data.get('completed_at'))
        data['tasks'] = [MilestoneTask.from_dict(t) for t in data.get('tasks', [])]
        return cls(**data)

@dataclass
class Project:
    name: str
    description: str = ""
    color: str = "#007ACC"
    status: str = ProjectStatus.ACTIVE.value
    goals: List[ProjectGoal] = field(default_factory=list)
    milestones: List[Milestone] = field(default_factory=list)
    repositories: List[str] = field(default_factory=list)
    id: str = field(default_factory=new_id)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        self.name = validate_text(self.name, min_length=1, max_length=200, field_name="name")
        self.status = validate_enum_value(self.status, ProjectStatus, "status")

    def get_goal(self, goal_id: str) -> Optional[ProjectGoal]:
        return next((g for g in self.goals if g.id == goal_id), None)

    def get_milestone(self, milestone_id: str) -> Optional[Milestone]:
        return next((m for m in self.milestones if m.id == milestone_id), None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'color': self.color,
            'status': self.status,
            'goals': [g.to_dict() for g in self.goals],
            'milestones': [m.to_dict() for m in self.milestones],
            'repositories': list(self.repositories),
            'created_at': to_iso(self.created_at),
            'updated_at': to_iso(self.updated_at)
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Project":
        data = _known_fields(cls, data)
        data['goals'] = [ProjectGoal.from_dict(g) for g in data.get('goals', [])]
        data['milestones'] = [Milestone.from_dict(m) for m in data.get('milestones', [])]
        data['created_at'] = from_iso(data.get('created_at'))
        data['updated_at'] = from_iso(data.get('updated_at'))
        return cls(**data)

# ===== EVENTS & NOTIFICATIONS =====

@dataclass(frozen=True)
class EngineEvent:
    type: EventType
    payload: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.type.value,
            'payload': dict(self.payload),
            'created_at': to_iso(self.created_at)
        }

@dataclass
class Notification:
    type: str
    title: str
    message: str
    data: Dict[str, Any] = field(default_factory=dict)
    is_read: bool = False
    created_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    id: str = field(default_factory=new_id)

    def __post_init__(self):
        self.type = validate_enum_value(self.type, NotificationType, "notification type")

    def is_expired(self, moment: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= moment

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['created_at'] = to_iso(self.created_at)
        data['expires_at'] = to_iso(self.expires_at)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Notification":
        data = _known_fields(cls, data)
        data['created_at'] = from_iso(data.get('created_at'))
        data['expires_at'] = from_iso(data.get('expires_at'))
        return cls(**data)


__all__ = [
    # Enums
    'ActivityCategory',
    'SessionType',
    'BreakType',
    'ProjectStatus',
    'MilestonePriority',
    'AchievementCategory',
    'AchievementRarity',
    'EventType',
    'NotificationType',

    # Models
    'Activity',
    'Break',
    'TimeSession',
    'StreakState',
    'AchievementRecord',
    'UserProfile',
    'ProjectGoal',
    'MilestoneTask',
    'Milestone',
    'Project',
    'EngineEvent',
    'Notification',
    'new_id'
]
