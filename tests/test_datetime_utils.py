"""Tests for calendar helpers and clocks."""

from datetime import date, datetime

import pytest
import pytz

from mycroft.core.exceptions import InvalidDateError, ValidationError
from mycroft.utils.datetime_utils import (
    ManualClock, SystemClock, day_of_week, days_between, parse_date, parse_time,
    round_half_up, today, week_start, whole_minutes_between, yesterday
)
from mycroft.utils.validators import is_valid_date, normalize_tags, validate_optional_int


class TestParseDate:
    def test_parses_iso_string(self):
        assert parse_date("2024-02-29") == date(2024, 2, 29)

    @pytest.mark.parametrize("value", ["2023-02-29", "2024-13-01", "yesterday", "", None])
    def test_rejects_invalid_dates(self, value):
        with pytest.raises(InvalidDateError):
            parse_date(value)

    def test_invalid_date_is_a_validation_error(self):
        with pytest.raises(ValidationError):
            parse_date("2024-00-10")

    def test_accepts_date_and_datetime(self):
        assert parse_date(date(2024, 1, 2)) == date(2024, 1, 2)
        assert parse_date(datetime(2024, 1, 2, 23, 59)) == date(2024, 1, 2)


def test_parse_time_formats():
    assert parse_time("14:05").hour == 14
    assert parse_time("14:05:30").second == 30
    assert parse_time("2:05 pm").hour == 14
    with pytest.raises(ValueError):
        parse_time("25:00")


def test_today_and_yesterday_follow_the_clock():
    clock = ManualClock(datetime(2024, 3, 1, 0, 30, tzinfo=pytz.utc))
    assert today(clock) == date(2024, 3, 1)
    assert yesterday(clock) == date(2024, 2, 29)


def test_manual_clock_advances():
    clock = ManualClock(datetime(2024, 1, 1, 9, 0, tzinfo=pytz.utc))
    clock.advance(minutes=90)
    assert clock.now() == datetime(2024, 1, 1, 10, 30, tzinfo=pytz.utc)


def test_system_clock_is_timezone_aware():
    now = SystemClock("Europe/Berlin").now()
    assert now.tzinfo is not None


def test_day_of_week_and_days_between():
    assert day_of_week("2024-01-01") == "Monday"
    assert days_between("2024-01-01", "2024-01-05") == 4
    assert days_between("2024-01-05", "2024-01-01") == -4


def test_week_start_is_sunday():
    assert week_start("2024-01-03") == date(2023, 12, 31)
    assert week_start("2023-12-31") == date(2023, 12, 31)


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(3.5) == 4
    assert round_half_up(2.49) == 2


def test_whole_minutes_between_rounds():
    start = datetime(2024, 1, 1, 9, 0, tzinfo=pytz.utc)
    assert whole_minutes_between(start, datetime(2024, 1, 1, 9, 10, 31, tzinfo=pytz.utc)) == 11
    assert whole_minutes_between(start, start) == 0


class TestValidators:
    def test_is_valid_date(self):
        assert is_valid_date("2024-01-01")
        assert not is_valid_date("01/01/2024")

    def test_normalize_tags(self):
        assert normalize_tags([" api ", "api", "", "x" * 31, "db"]) == ("api", "db")

    def test_validate_optional_int_rejects_bool(self):
        with pytest.raises(ValidationError):
            validate_optional_int(True, "focus_score", minimum=1, maximum=10)
