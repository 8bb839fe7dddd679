#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Mycroft Engine - Configuration
Environment-driven configuration with validation
"""

import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional
from dataclasses import dataclass, field
from enum import Enum

import pytz


class LogLevel(Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class ConflictPolicy(Enum):
    """What start_session does when a session is already running"""
    AUTO_END = "auto_end"
    REJECT = "reject"


def _env_bool(key: str, default: str) -> bool:
    return os.getenv(key, default).lower() == 'true'


@dataclass
class TimeTrackingConfig:
    """Session lengths in minutes, idle threshold in seconds"""
    pomodoro_length: int = 25
    short_focus_length: int = 45
    deep_work_length: int = 90
    extended_focus_length: int = 240
    break_length: int = 5
    idle_threshold: int = 300
    auto_time_tracking: bool = True
    conflict_policy: ConflictPolicy = ConflictPolicy.AUTO_END

    def default_length(self, session_type: str) -> Optional[int]:
        """Default planned minutes for a session type; None for custom"""
        return {
            'pomodoro': self.pomodoro_length,
            'short-focus': self.short_focus_length,
            'deep-work': self.deep_work_length,
            'extended-focus': self.extended_focus_length,
            'break': self.break_length,
        }.get(session_type)


@dataclass
class GamificationConfig:
    enabled: bool = True
    daily_goal: int = 3
    streak_milestones: tuple = (7, 14, 30, 50, 100)


@dataclass
class StorageConfig:
    data_dir: Path = Path("data")
    max_sessions: int = 1000
    max_backups: int = 5
    max_notifications: int = 100


@dataclass
class EngineConfig:
    """Main configuration object handed to the engine"""
    time_tracking: TimeTrackingConfig = field(default_factory=TimeTrackingConfig)
    gamification: GamificationConfig = field(default_factory=GamificationConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    timezone: str = "UTC"
    log_level: LogLevel = LogLevel.INFO
    log_file: Optional[Path] = None
    log_format: str = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'

    def __post_init__(self):
        self._validate_config()

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Load configuration from environment variables"""
        time_tracking = TimeTrackingConfig(
            pomodoro_length=int(os.getenv('POMODORO_LENGTH', 25)),
            short_focus_length=int(os.getenv('SHORT_FOCUS_LENGTH', 45)),
            deep_work_length=int(os.getenv('DEEP_WORK_LENGTH', 90)),
            extended_focus_length=int(os.getenv('EXTENDED_FOCUS_LENGTH', 240)),
            break_length=int(os.getenv('BREAK_LENGTH', 5)),
            idle_threshold=int(os.getenv('IDLE_THRESHOLD', 300)),
            auto_time_tracking=_env_bool('AUTO_TIME_TRACKING', 'true'),
            conflict_policy=ConflictPolicy(os.getenv('SESSION_CONFLICT_POLICY', 'auto_end'))
        )

        gamification = GamificationConfig(
            enabled=_env_bool('GAMIFICATION_ENABLED', 'true'),
            daily_goal=int(os.getenv('DAILY_GOAL', 3))
        )

        storage = StorageConfig(
            data_dir=Path(os.getenv('DATA_DIR', 'data')),
            max_sessions=int(os.getenv('MAX_SESSIONS', 1000)),
            max_backups=int(os.getenv('MAX_BACKUPS', 5)),
            max_notifications=int(os.getenv('MAX_NOTIFICATIONS', 100))
        )

        log_file = os.getenv('LOG_FILE')

        return cls(
            time_tracking=time_tracking,
            gamification=gamification,
            storage=storage,
            timezone=os.getenv('TIMEZONE', 'UTC'),
            log_level=LogLevel(os.getenv('LOG_LEVEL', 'INFO')),
            log_file=Path(log_file) if log_file else None,
            log_format=os.getenv('LOG_FORMAT', '%(asctime)s [%(levelname)s] %(name)s: %(message)s')
        )

    def _validate_config(self):
        errors = []

        lengths = {
            'POMODORO_LENGTH': self.time_tracking.pomodoro_length,
            'SHORT_FOCUS_LENGTH': self.time_tracking.short_focus_length,
            'DEEP_WORK_LENGTH': self.time_tracking.deep_work_length,
            'EXTENDED_FOCUS_LENGTH': self.time_tracking.extended_focus_length,
            'BREAK_LENGTH': self.time_tracking.break_length,
        }
        for name, value in lengths.items():
            if value <= 0:
                errors.append(f"{name} must be positive, got {value}")

        if self.time_tracking.idle_threshold <= 0:
            errors.append("IDLE_THRESHOLD must be positive")

        if self.gamification.daily_goal < 1:
            errors.append("DAILY_GOAL must be at least 1")

        for name in ('max_sessions', 'max_backups', 'max_notifications'):
            if getattr(self.storage, name) < 1:
                errors.append(f"{name.upper()} must be at least 1")

        if self.timezone not in pytz.all_timezones_set:
            errors.append(f"Unknown timezone {self.timezone}")

        if errors:
            raise ValueError("Configuration errors:\n" + "\n".join(f"• {error}" for error in errors))

    def get_logging_config(self) -> Dict[str, Any]:
        """dictConfig mapping for logging.config.dictConfig"""
        handlers = ['console']
        handler_config: Dict[str, Any] = {
            'console': {
                'class': 'logging.StreamHandler',
                'level': self.log_level.value,
                'formatter': 'default',
                'stream': sys.stdout
            }
        }

        if self.log_file is not None:
            handlers.append('file')
            handler_config['file'] = {
                'class': 'logging.handlers.RotatingFileHandler',
                'level': self.log_level.value,
                'formatter': 'default',
                'filename': str(self.log_file),
                'maxBytes': 10485760,  # 10MB
                'backupCount': 5,
                'encoding': 'utf-8'
            }

        return {
            'version': 1,
            'disable_existing_loggers': False,
            'formatters': {
                'default': {
                    'format': self.log_format,
                    'datefmt': '%Y-%m-%d %H:%M:%S'
                }
            },
            'handlers': handler_config,
            'loggers': {
                'mycroft': {
                    'level': self.log_level.value,
                    'handlers': handlers,
                    'propagate': False
                },
                'apscheduler': {
                    'level': 'WARNING',
                    'handlers': handlers,
                    'propagate': False
                }
            }
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            'time_tracking': {
                'pomodoro_length': self.time_tracking.pomodoro_length,
                'short_focus_length': self.time_tracking.short_focus_length,
                'deep_work_length': self.time_tracking.deep_work_length,
                'extended_focus_length': self.time_tracking.extended_focus_length,
                'break_length': self.time_tracking.break_length,
                'idle_threshold': self.time_tracking.idle_threshold,
                'auto_time_tracking': self.time_tracking.auto_time_tracking,
                'conflict_policy': self.time_tracking.conflict_policy.value
            },
            'gamification': {
                'enabled': self.gamification.enabled,
                'daily_goal': self.gamification.daily_goal
            },
            'storage': {
                'data_dir': str(self.storage.data_dir),
                'max_sessions': self.storage.max_sessions,
                'max_backups': self.storage.max_backups,
                'max_notifications': self.storage.max_notifications
            },
            'timezone': self.timezone,
            'log_level': self.log_level.value
        }
