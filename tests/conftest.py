"""Pytest fixtures for Mycroft engine tests."""

from datetime import datetime
from typing import Callable, List, Optional

import pytest
import pytz

from mycroft.config import EngineConfig
from mycroft.core.engine import ProductivityEngine
from mycroft.core.models import Activity, EngineEvent, EventType
from mycroft.database.manager import MemoryStore
from mycroft.services.timer_service import TimerHandle, TimerService
from mycroft.utils.datetime_utils import ManualClock


class ManualTimer:
    def __init__(self, seconds: float, callback: Callable[[], None], name: str, repeating: bool):
        self.seconds = seconds
        self.callback = callback
        self.name = name
        self.repeating = repeating
        self.cancelled = False
        self.fired = 0


class ManualTimerService(TimerService):
    """Timers that only fire when a test says so"""

    def __init__(self):
        self.timers: List[ManualTimer] = []

    def _add(self, seconds, callback, name, repeating) -> TimerHandle:
        timer = ManualTimer(seconds, callback, name, repeating)
        self.timers.append(timer)

        def cancel():
            timer.cancelled = True

        return TimerHandle(name, cancel)

    def call_later(self, seconds, callback, name="timer") -> TimerHandle:
        return self._add(seconds, callback, name, repeating=False)

    def call_every(self, seconds, callback, name="timer") -> TimerHandle:
        return self._add(seconds, callback, name, repeating=True)

    def pending(self, prefix: str = "") -> List[ManualTimer]:
        return [
            t for t in self.timers
            if t.name.startswith(prefix) and not t.cancelled and (t.repeating or t.fired == 0)
        ]

    def fire(self, prefix: str) -> int:
        """Fire every pending timer whose name starts with prefix"""
        fired = 0
        for timer in self.pending(prefix):
            timer.fired += 1
            timer.callback()
            fired += 1
        return fired

    def fire_stale(self, prefix: str) -> int:
        """Fire timers even if they were cancelled"""
        matching = [t for t in self.timers if t.name.startswith(prefix)]
        for timer in matching:
            timer.callback()
        return len(matching)


class RecordingNotifier:
    def __init__(self):
        self.events: List[EngineEvent] = []

    def notify(self, event: EngineEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: EventType) -> List[EngineEvent]:
        return [e for e in self.events if e.type == event_type]


class FailingNotifier:
    def notify(self, event: EngineEvent) -> None:
        raise RuntimeError("sink is down")


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(datetime(2024, 1, 5, 10, 0, tzinfo=pytz.utc))


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def timers() -> ManualTimerService:
    return ManualTimerService()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def config() -> EngineConfig:
    return EngineConfig()


@pytest.fixture
def engine(store, clock, timers, notifier, config) -> ProductivityEngine:
    return ProductivityEngine(store=store, clock=clock, timers=timers, notifier=notifier, config=config)


@pytest.fixture
def make_activity() -> Callable[..., Activity]:
    def factory(date: str = "2024-01-05", time: str = "10:00", category: str = "Coding",
                duration_minutes: Optional[int] = None, focus_score: Optional[int] = None,
                **kwargs) -> Activity:
        return Activity(
            date=date,
            time=time,
            category=category,
            description=kwargs.pop('description', 'Worked on something'),
            duration_minutes=duration_minutes,
            focus_score=focus_score,
            **kwargs
        )
    return factory
