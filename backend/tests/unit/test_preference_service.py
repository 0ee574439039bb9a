"""
Unit tests for notification preferences and the quiet-hours check.
"""

import pytest
from datetime import datetime, timezone

from models.notification_preferences import QuietHours
from services.preference_service import (
    CANCEL_REASON_CHANNEL_DISABLED, CANCEL_REASON_QUIET_HOURS, CANCEL_REASON_URGENT_ONLY,
    PreferenceService, is_in_quiet_hours,
)
from utils.datetime_utils import hhmm_to_minutes


def _at(hour: int, minute: int = 0) -> datetime:
    return datetime(2026, 3, 10, hour, minute, tzinfo=timezone.utc)


class TestQuietHoursWindow:
    """Test the minute-of-day window check."""

    @pytest.mark.parametrize("current,expected", [
        ("23:00", True),
        ("02:30", True),
        ("22:00", True),
        ("08:00", True),
        ("08:01", False),
        ("09:00", False),
        ("21:59", False),
    ])
    def test_overnight_window(self, current, expected):
        """Test a 22:00-08:00 window that spans midnight."""
        assert is_in_quiet_hours(
            hhmm_to_minutes(current), hhmm_to_minutes("22:00"), hhmm_to_minutes("08:00")
        ) is expected

    @pytest.mark.parametrize("current,expected", [
        ("12:00", True),
        ("09:00", True),
        ("17:00", True),
        ("20:00", False),
        ("08:59", False),
    ])
    def test_same_day_window(self, current, expected):
        """Test a 09:00-17:00 window within one day."""
        assert is_in_quiet_hours(
            hhmm_to_minutes(current), hhmm_to_minutes("09:00"), hhmm_to_minutes("17:00")
        ) is expected


class TestPreferences:
    """Test reading and writing preferences."""

    def test_defaults_for_unknown_user(self, db_session):
        """Test that users without a row get unsaved defaults."""
        preferences = PreferenceService.get_preferences(db_session, "p1", "patient")

        assert preferences.id is None
        assert preferences.channel_enabled("push") is True
        assert preferences.channel_enabled("email") is True
        assert preferences.channel_enabled("browser") is True
        assert preferences.channel_enabled("sms") is False
        assert preferences.urgent_only is False
        assert preferences.daily_digest is False
        assert preferences.get_validated_quiet_hours().enabled is False

    def test_admin_defaults_enable_daily_digest(self, db_session):
        """Test that admins receive the daily digest by default."""
        assert PreferenceService.get_preferences(db_session, "a1", "admin").daily_digest is True

    def test_upsert_creates_then_updates(self, db_session):
        """Test that upsert keeps fields that are not passed."""
        created = PreferenceService.upsert_preferences(db_session, "p1", "patient", sms_notifications=True)
        assert created.id is not None
        assert created.sms_notifications is True

        updated = PreferenceService.upsert_preferences(
            db_session, "p1", "patient",
            urgent_only=True,
            quiet_hours=QuietHours(enabled=True, start_time="21:00", end_time="07:00"),
        )
        assert updated.id == created.id
        assert updated.sms_notifications is True
        assert updated.urgent_only is True
        assert updated.get_validated_quiet_hours().start_time == "21:00"

        assert PreferenceService.get_preferences(db_session, "p1", "patient").id == created.id

    def test_preferences_are_per_user_type(self, db_session):
        """Test that the same id as admin and patient has separate preferences."""
        PreferenceService.upsert_preferences(db_session, "u1", "admin", email_notifications=False)
        assert PreferenceService.get_preferences(db_session, "u1", "patient").email_notifications is True

    def test_quiet_hours_rejects_bad_time(self):
        """Test that quiet hours validate HH:MM."""
        with pytest.raises(ValueError):
            QuietHours(enabled=True, start_time="25:00", end_time="07:00")


class TestCancelReason:
    """Test the preference checks applied before delivery."""

    def test_channel_disabled(self, make_queue_item):
        """Test that a disabled channel cancels even urgent items."""
        item = make_queue_item(channel="sms", priority="urgent")
        preferences = PreferenceService.default_preferences("patient-1", "patient")
        assert PreferenceService.get_cancel_reason(item, preferences, _at(12)) == CANCEL_REASON_CHANNEL_DISABLED

    def test_urgent_only(self, make_queue_item):
        """Test that urgent-only mode cancels non-urgent items and lets urgent ones through."""
        preferences = PreferenceService.default_preferences("patient-1", "patient")
        preferences.urgent_only = True

        high = make_queue_item(priority="high")
        urgent = make_queue_item(priority="urgent")
        assert PreferenceService.get_cancel_reason(high, preferences, _at(12)) == CANCEL_REASON_URGENT_ONLY
        assert PreferenceService.get_cancel_reason(urgent, preferences, _at(12)) is None

    def test_quiet_hours(self, make_queue_item):
        """Test that quiet hours cancel non-urgent items inside the window only."""
        preferences = PreferenceService.default_preferences("patient-1", "patient")
        preferences.set_validated_quiet_hours(QuietHours(enabled=True, start_time="22:00", end_time="08:00"))

        normal = make_queue_item(priority="normal")
        urgent = make_queue_item(priority="urgent")
        assert PreferenceService.get_cancel_reason(normal, preferences, _at(23)) == CANCEL_REASON_QUIET_HOURS
        assert PreferenceService.get_cancel_reason(normal, preferences, _at(9)) is None
        assert PreferenceService.get_cancel_reason(urgent, preferences, _at(23)) is None

    def test_disabled_quiet_hours_are_ignored(self, make_queue_item):
        """Test that a window with enabled=False never cancels."""
        preferences = PreferenceService.default_preferences("patient-1", "patient")
        item = make_queue_item()
        assert PreferenceService.get_cancel_reason(item, preferences, _at(23)) is None
