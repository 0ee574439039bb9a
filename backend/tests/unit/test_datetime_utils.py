"""
Unit tests for datetime utilities.

Tests engine timezone handling, HH:MM parsing and wall-clock helpers.
"""

import pytest
from datetime import datetime, timezone, timedelta

from utils.datetime_utils import (
    ENGINE_TZ, engine_now, ensure_engine_tz, format_display_date, format_display_time,
    format_hhmm, hhmm_to_minutes, minutes_between, parse_hhmm, start_of_day,
    sunday_based_weekday, to_engine_tz, to_utc, truncate_to_minute,
)


class TestEngineTimezone:
    """Test engine timezone helpers."""

    def test_engine_now_returns_timezone_aware_datetime(self):
        """Test that engine_now returns a datetime in the engine timezone."""
        now = engine_now()
        assert now.tzinfo is not None
        assert now.tzinfo == ENGINE_TZ

    def test_ensure_engine_tz_with_none(self):
        """Test that None passes through."""
        assert ensure_engine_tz(None) is None

    def test_ensure_engine_tz_with_naive_datetime(self):
        """Test that naive datetimes are interpreted as engine wall-clock time."""
        result = ensure_engine_tz(datetime(2026, 3, 10, 9, 0))
        assert result.tzinfo == ENGINE_TZ
        assert (result.hour, result.minute) == (9, 0)

    def test_to_engine_tz_converts_aware_datetime(self):
        """Test that aware datetimes keep their instant and are never None."""
        plus_two = timezone(timedelta(hours=2))
        result = to_engine_tz(datetime(2026, 3, 10, 11, 0, tzinfo=plus_two))
        assert result.tzinfo == ENGINE_TZ
        assert result == datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc)

    def test_to_utc_preserves_instant(self):
        """Test that converting to UTC keeps the same instant."""
        plus_two = timezone(timedelta(hours=2))
        original = datetime(2026, 3, 10, 11, 0, tzinfo=plus_two)
        assert to_utc(original) == datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc)


class TestParseHHMM:
    """Test HH:MM parsing."""

    def test_valid_times(self):
        """Test that valid times are parsed."""
        assert parse_hhmm("09:00") == (9, 0)
        assert parse_hhmm("23:59") == (23, 59)
        assert hhmm_to_minutes("22:00") == 1320

    @pytest.mark.parametrize("value", ["24:00", "12:60", "9", "ab:cd", "", "1:2:3"])
    def test_invalid_times_raise(self, value):
        """Test that invalid times raise ValueError."""
        with pytest.raises(ValueError):
            parse_hhmm(value)


class TestWallClockHelpers:
    """Test wall-clock helpers used by schedules and quiet hours."""

    def test_format_hhmm_pads(self):
        """Test zero-padded HH:MM formatting."""
        assert format_hhmm(datetime(2026, 3, 10, 9, 5, 33, tzinfo=timezone.utc)) == "09:05"

    def test_truncate_to_minute(self):
        """Test that seconds and microseconds are dropped."""
        value = datetime(2026, 3, 10, 9, 5, 33, 123, tzinfo=timezone.utc)
        assert truncate_to_minute(value) == datetime(2026, 3, 10, 9, 5, tzinfo=timezone.utc)

    def test_sunday_based_weekday(self):
        """Test that Sunday is 0 and Saturday is 6."""
        assert sunday_based_weekday(datetime(2026, 3, 8, 12, 0, tzinfo=timezone.utc)) == 0  # Sunday
        assert sunday_based_weekday(datetime(2026, 3, 9, 12, 0, tzinfo=timezone.utc)) == 1  # Monday
        assert sunday_based_weekday(datetime(2026, 3, 14, 12, 0, tzinfo=timezone.utc)) == 6  # Saturday

    def test_start_of_day(self):
        """Test midnight of the containing day."""
        assert start_of_day(datetime(2026, 3, 10, 15, 30, tzinfo=timezone.utc)) == datetime(
            2026, 3, 10, tzinfo=timezone.utc
        )

    def test_minutes_between(self):
        """Test elapsed minutes, including negative spans."""
        start = datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc)
        assert minutes_between(start, start + timedelta(minutes=15)) == 15
        assert minutes_between(start + timedelta(minutes=15), start) == -15

    def test_display_formats(self):
        """Test the user-facing date and 12-hour time formats."""
        assert format_display_date(datetime(2026, 3, 4, tzinfo=timezone.utc)) == "3/4/2026"
        assert format_display_time(datetime(2026, 3, 4, 0, 7, 9, tzinfo=timezone.utc)) == "12:07:09 AM"
        assert format_display_time(datetime(2026, 3, 4, 12, 0, 0, tzinfo=timezone.utc)) == "12:00:00 PM"
        assert format_display_time(datetime(2026, 3, 4, 17, 30, 0, tzinfo=timezone.utc)) == "5:30:00 PM"
