"""
Backups stored as keys in the persistence adapter
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator

from mycroft.core.engine import ACTIVITIES_KEY, PROFILE_KEY, SESSIONS_KEY
from mycroft.core.exceptions import BackupError
from mycroft.database.manager import Store
from mycroft.services.notifications import NOTIFICATIONS_KEY
from mycroft.services.project_service import PROJECTS_KEY
from mycroft.utils.datetime_utils import Clock

logger = logging.getLogger(__name__)

BACKUP_PREFIX = "backup_"
BACKUP_VERSION = "2.0.0"


class BackupData(BaseModel):
    activities: List[Dict[str, Any]] = Field(default_factory=list)
    sessions: Dict[str, Any] = Field(default_factory=dict)
    projects: List[Dict[str, Any]] = Field(default_factory=list)
    profile: Optional[Dict[str, Any]] = None
    notifications: List[Dict[str, Any]] = Field(default_factory=list)


class BackupEnvelope(BaseModel):
    version: str = BACKUP_VERSION
    timestamp: datetime
    data: BackupData

    @field_validator('version')
    @classmethod
    def validate_version(cls, v):
        if not v or v.split('.')[0] != BACKUP_VERSION.split('.')[0]:
            raise ValueError(f'Unsupported backup version: {v}')
        return v


class BackupService:
    """Create, list, restore and rotate backups of the engine's data"""

    def __init__(self, store: Store, clock: Clock, max_backups: int = 5):
        self.store = store
        self.clock = clock
        self.max_backups = max_backups

    def _snapshot(self) -> BackupEnvelope:
        return BackupEnvelope(
            timestamp=self.clock.now(),
            data=BackupData(
                activities=self.store.load(ACTIVITIES_KEY) or [],
                sessions=self.store.load(SESSIONS_KEY) or {},
                projects=self.store.load(PROJECTS_KEY) or [],
                profile=self.store.load(PROFILE_KEY),
                notifications=self.store.load(NOTIFICATIONS_KEY) or []
            )
        )

    def _write_data(self, data: BackupData) -> None:
        self.store.save(ACTIVITIES_KEY, data.activities)
        self.store.save(SESSIONS_KEY, data.sessions)
        self.store.save(PROJECTS_KEY, data.projects)
        self.store.save(NOTIFICATIONS_KEY, data.notifications)
        if data.profile is not None:
            self.store.save(PROFILE_KEY, data.profile)
        else:
            self.store.delete(PROFILE_KEY)

    def _backup_keys(self) -> List[str]:
        return [key for key in self.store.keys() if key.startswith(BACKUP_PREFIX)]

    def create_backup(self) -> str:
        envelope = self._snapshot()
        stamp = int(envelope.timestamp.timestamp() * 1000)
        existing = set(self._backup_keys())
        while f"{BACKUP_PREFIX}{stamp}" in existing:
            stamp += 1
        key = f"{BACKUP_PREFIX}{stamp}"

        self.store.save(key, envelope.model_dump(mode='json'))
        logger.info(f"💾 Backup created: {key}")
        self.cleanup_old_backups()
        return key

    def list_backups(self) -> List[Dict[str, Any]]:
        """Newest first"""
        backups = []
        for key in self._backup_keys():
            raw = self.store.load(key)
            if not isinstance(raw, dict):
                continue
            backups.append({
                'key': key,
                'timestamp': raw.get('timestamp'),
                'size': len(json.dumps(raw, default=str))
            })
        return sorted(backups, key=lambda b: (str(b['timestamp']), b['key']), reverse=True)

    def cleanup_old_backups(self) -> int:
        stale = self.list_backups()[self.max_backups:]
        for backup in stale:
            self.store.delete(backup['key'])
        if stale:
            logger.info(f"🧹 Removed {len(stale)} old backups")
        return len(stale)

    def _validate(self, raw: Any) -> BackupEnvelope:
        try:
            return BackupEnvelope.model_validate(raw)
        except PydanticValidationError as e:
            raise BackupError("Invalid backup format", {'errors': e.errors(include_url=False)}) from e

    def restore_from_backup(self, key: str) -> BackupEnvelope:
        raw = self.store.load(key)
        if raw is None:
            raise BackupError(f"Backup not found: {key}", {'key': key})
        envelope = self._validate(raw)
        self._write_data(envelope.data)
        logger.info(f"♻️ Restored backup {key}")
        return envelope

    def export_backup(self) -> str:
        return self._snapshot().model_dump_json(indent=2)

    def import_backup(self, text: str) -> BackupEnvelope:
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as e:
            raise BackupError(f"Backup is not valid JSON: {e}") from e
        envelope = self._validate(raw)
        self._write_data(envelope.data)
        logger.info("♻️ Imported backup")
        return envelope
