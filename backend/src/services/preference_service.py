"""
Notification preference service.

Reads and writes per-user preferences and decides whether a queued item must
be cancelled because of them (channel opt-out, urgent-only mode, quiet hours).
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from core.constants import PRIORITY_URGENT, RECIPIENT_ADMIN
from models import NotificationPreferences, NotificationQueueItem
from models.notification_preferences import QuietHours
from utils.datetime_utils import hhmm_to_minutes, minute_of_day

logger = logging.getLogger(__name__)

CANCEL_REASON_CHANNEL_DISABLED = "Channel disabled by user preferences"
CANCEL_REASON_URGENT_ONLY = "Urgent-only mode"
CANCEL_REASON_QUIET_HOURS = "Quiet hours"


def is_in_quiet_hours(current_minutes: int, start_minutes: int, end_minutes: int) -> bool:
    """
    Check whether a minute-of-day falls inside a quiet-hours window.

    Both ends are inclusive. A window whose start is after its end spans
    midnight (e.g. 22:00-08:00).

    Args:
        current_minutes: Current minute-of-day (0-1439)
        start_minutes: Window start minute-of-day
        end_minutes: Window end minute-of-day

    Returns:
        True if the current minute is inside the window
    """
    if start_minutes <= end_minutes:
        return start_minutes <= current_minutes <= end_minutes
    return current_minutes >= start_minutes or current_minutes <= end_minutes


class PreferenceService:
    """Service for notification preferences."""

    @staticmethod
    def default_preferences(user_id: str, user_type: str) -> NotificationPreferences:
        """
        Build the defaults for a user without stored preferences.

        The object is not added to the session.
        """
        return NotificationPreferences(
            user_id=user_id,
            user_type=user_type,
            browser_notifications=True,
            email_notifications=True,
            sms_notifications=False,
            push_notifications=True,
            daily_digest=user_type == RECIPIENT_ADMIN,
            urgent_only=False,
            quiet_hours=QuietHours().model_dump(),
        )

    @staticmethod
    def get_preferences(db: Session, user_id: str, user_type: str) -> NotificationPreferences:
        """
        Get a user's preferences, falling back to defaults.

        Args:
            db: Database session
            user_id: Admin or patient id
            user_type: 'admin' or 'patient'

        Returns:
            Stored preferences, or unsaved defaults when the user has none
        """
        preferences = db.query(NotificationPreferences).filter(
            NotificationPreferences.user_id == user_id,
            NotificationPreferences.user_type == user_type
        ).first()
        if preferences:
            return preferences
        return PreferenceService.default_preferences(user_id, user_type)

    @staticmethod
    def upsert_preferences(
        db: Session,
        user_id: str,
        user_type: str,
        *,
        browser_notifications: Optional[bool] = None,
        email_notifications: Optional[bool] = None,
        sms_notifications: Optional[bool] = None,
        push_notifications: Optional[bool] = None,
        daily_digest: Optional[bool] = None,
        urgent_only: Optional[bool] = None,
        quiet_hours: Optional[QuietHours] = None
    ) -> NotificationPreferences:
        """
        Create or update a user's preferences. Omitted fields keep their current value.
        """
        preferences = db.query(NotificationPreferences).filter(
            NotificationPreferences.user_id == user_id,
            NotificationPreferences.user_type == user_type
        ).first()
        if not preferences:
            preferences = PreferenceService.default_preferences(user_id, user_type)
            db.add(preferences)

        flags = {
            'browser_notifications': browser_notifications,
            'email_notifications': email_notifications,
            'sms_notifications': sms_notifications,
            'push_notifications': push_notifications,
            'daily_digest': daily_digest,
            'urgent_only': urgent_only,
        }
        for field, value in flags.items():
            if value is not None:
                setattr(preferences, field, value)
        if quiet_hours is not None:
            preferences.set_validated_quiet_hours(quiet_hours)

        db.flush()
        logger.info(f"Updated notification preferences for {user_type} {user_id}")
        return preferences

    @staticmethod
    def get_cancel_reason(
        item: NotificationQueueItem,
        preferences: NotificationPreferences,
        now: datetime
    ) -> Optional[str]:
        """
        Decide whether preferences block a queued item.

        Checks run in order: channel opt-out, urgent-only mode, quiet hours.
        Urgent items bypass urgent-only mode and quiet hours but not a
        disabled channel.

        Returns:
            Cancellation reason, or None when the item may be delivered
        """
        if not preferences.channel_enabled(item.channel):
            return CANCEL_REASON_CHANNEL_DISABLED

        is_urgent = item.priority == PRIORITY_URGENT
        if preferences.urgent_only and not is_urgent:
            return CANCEL_REASON_URGENT_ONLY

        quiet_hours = preferences.get_validated_quiet_hours()
        if quiet_hours.enabled and not is_urgent:
            if is_in_quiet_hours(
                minute_of_day(now),
                hhmm_to_minutes(quiet_hours.start_time),
                hhmm_to_minutes(quiet_hours.end_time),
            ):
                return CANCEL_REASON_QUIET_HOURS

        return None
