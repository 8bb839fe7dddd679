#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Mycroft Engine - Exceptions
Error hierarchy for the bookkeeping engine
"""

from typing import Any, Dict, Optional


class MycroftError(Exception):
    """Base error for everything raised by the engine"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            'error': self.__class__.__name__,
            'message': self.message,
            'details': self.details
        }


class ValidationError(MycroftError):
    """Invalid input data"""
    pass


class InvalidDateError(ValidationError):
    """A date string is not a valid YYYY-MM-DD calendar date"""

    def __init__(self, value: Any):
        super().__init__(f"Invalid date: {value!r}", {'value': value})
        self.value = value


class InvalidXPAmountError(ValidationError):
    """XP awards must be non-negative"""

    def __init__(self, amount: Any):
        super().__init__(f"XP amount must be >= 0, got {amount!r}", {'amount': amount})
        self.amount = amount


class SessionStateError(MycroftError):
    """An operation is not allowed in the current session state"""
    pass


class SessionAlreadyActiveError(SessionStateError):
    """Raised by the reject conflict policy when a session is running"""

    def __init__(self, session_id: str):
        super().__init__(
            f"Session {session_id} is already active. End it first.",
            {'session_id': session_id}
        )
        self.session_id = session_id


class NoActiveSessionError(SessionStateError):
    """No session is running"""

    def __init__(self, message: str = "No active session"):
        super().__init__(message)


class AchievementCatalogMismatchError(MycroftError):
    """A catalog entry references a requirement kind without a progress rule"""

    def __init__(self, achievement_id: str, kind: Any):
        super().__init__(
            f"Achievement {achievement_id!r} uses unknown requirement kind {kind!r}",
            {'achievement_id': achievement_id, 'kind': str(kind)}
        )
        self.achievement_id = achievement_id
        self.kind = kind


class ProjectNotFoundError(MycroftError):
    """Project id is unknown"""

    def __init__(self, project_id: str):
        super().__init__(f"Project not found: {project_id}", {'project_id': project_id})
        self.project_id = project_id


class BackupError(MycroftError):
    """A backup payload is missing or malformed"""
    pass


__all__ = [
    'MycroftError',
    'ValidationError',
    'InvalidDateError',
    'InvalidXPAmountError',
    'SessionStateError',
    'SessionAlreadyActiveError',
    'NoActiveSessionError',
    'AchievementCatalogMismatchError',
    'ProjectNotFoundError',
    'BackupError'
]
