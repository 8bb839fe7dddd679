# utils/datetime_utils.py

import math
from datetime import date, datetime, time, timedelta
from typing import Optional, Union

import pytz

from mycroft.core.exceptions import InvalidDateError

DEFAULT_TIMEZONE = "UTC"

DAY_NAMES = [
    "Monday", "Tuesday", "Wednesday", "Thursday",
    "Friday", "Saturday", "Sunday"
]

_TIME_FORMATS = ("%H:%M:%S", "%H:%M", "%I:%M:%S %p", "%I:%M %p")

DateLike = Union[date, str]


class Clock:
    """Source of the current time"""

    def now(self) -> datetime:
        raise NotImplementedError


class SystemClock(Clock):
    """Wall clock in a fixed timezone"""

    def __init__(self, timezone_name: str = DEFAULT_TIMEZONE):
        self.timezone = pytz.timezone(timezone_name)

    def now(self) -> datetime:
        return datetime.now(self.timezone)


class ManualClock(Clock):
    """Clock that only moves when told to"""

    def __init__(self, start: Optional[datetime] = None):
        self._now = start or datetime(2024, 1, 1, 9, 0, tzinfo=pytz.utc)

    def now(self) -> datetime:
        return self._now

    def set(self, moment: datetime) -> None:
        self._now = moment

    def advance(self, **kwargs) -> datetime:
        """advance(minutes=5), advance(days=1) ..."""
        self._now = self._now + timedelta(**kwargs)
        return self._now


def parse_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value), "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise InvalidDateError(value)


def parse_time(value: str) -> time:
    """Parse a wall-clock string such as '14:05', '14:05:10' or '2:05 PM'"""
    text = str(value).strip().upper()
    for fmt in _TIME_FORMATS:
        try:
            return datetime.strptime(text, fmt).time()
        except ValueError:
            continue
    raise ValueError(f"Invalid time of day: {value!r}")


def hour_of(value: str) -> int:
    return parse_time(value).hour


def today(clock: Clock) -> date:
    return clock.now().date()


def yesterday(clock: Clock) -> date:
    return today(clock) - timedelta(days=1)


def day_of_week(value: DateLike) -> str:
    return DAY_NAMES[parse_date(value).weekday()]


def days_between(start: DateLike, end: DateLike) -> int:
    """Signed number of calendar days from start to end"""
    return (parse_date(end) - parse_date(start)).days


def add_days(value: DateLike, days: int) -> date:
    return parse_date(value) + timedelta(days=days)


def format_date(value: DateLike, fmt: str = "%Y-%m-%d") -> str:
    return parse_date(value).strftime(fmt)


def week_start(value: DateLike) -> date:
    """Sunday that starts the week containing value"""
    day = parse_date(value)
    return day - timedelta(days=(day.weekday() + 1) % 7)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def minutes_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 60


def whole_minutes_between(start: datetime, end: datetime) -> int:
    return round_half_up(minutes_between(start, end))


def to_iso(moment: Optional[datetime]) -> Optional[str]:
    return moment.isoformat() if moment is not None else None


def from_iso(value: Optional[str]) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)
