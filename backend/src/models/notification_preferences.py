"""
Per-user notification preferences.

Stores channel opt-ins, urgent-only mode and quiet hours for one
(user_id, user_type) pair. Users without a row get synthesized defaults.
"""

from datetime import datetime
from typing import Any, Dict

from pydantic import BaseModel, Field, field_validator
from sqlalchemy import JSON, Boolean, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from core.constants import (
    CHANNEL_BROWSER, CHANNEL_EMAIL, CHANNEL_PUSH, CHANNEL_SMS,
    DEFAULT_QUIET_HOURS_END, DEFAULT_QUIET_HOURS_START, MAX_ID_LENGTH,
)
from models.base import Base, TZDateTime
from utils.datetime_utils import parse_hhmm


class QuietHours(BaseModel):
    """Schema for the quiet hours window (may span midnight)."""
    enabled: bool = Field(
        default=False,
        description="Whether non-urgent deliveries are suppressed inside the window"
    )
    start_time: str = Field(
        default=DEFAULT_QUIET_HOURS_START,
        description="Window start (HH:MM format, 24-hour)"
    )
    end_time: str = Field(
        default=DEFAULT_QUIET_HOURS_END,
        description="Window end (HH:MM format, 24-hour); earlier than start_time for overnight windows"
    )

    @field_validator('start_time', 'end_time')
    @classmethod
    def validate_time_format(cls, v: str) -> str:
        """Validate that time is in HH:MM format."""
        parse_hhmm(v)
        return v


class NotificationPreferences(Base):
    """
    Notification preferences entity, unique per (user_id, user_type).
    """

    __tablename__ = "notification_preferences"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String(MAX_ID_LENGTH), nullable=False)
    user_type: Mapped[str] = mapped_column(String(20), nullable=False)
    browser_notifications: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    email_notifications: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    sms_notifications: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    push_notifications: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    daily_digest: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    urgent_only: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    quiet_hours: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=lambda: QuietHours().model_dump())
    """
    JSON column containing the quiet hours window with validated schema.

    Structure (matches QuietHours Pydantic model):
    {
        "enabled": false,
        "start_time": "22:00",
        "end_time": "08:00"
    }
    """

    created_at: Mapped[datetime] = mapped_column(TZDateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(TZDateTime, nullable=False)

    __table_args__ = (
        UniqueConstraint('user_id', 'user_type', name='uq_notification_preferences_user'),
    )

    def channel_enabled(self, channel: str) -> bool:
        """Whether the user accepts deliveries on a channel. Unknown channels are not enabled."""
        flags = {
            CHANNEL_BROWSER: self.browser_notifications,
            CHANNEL_EMAIL: self.email_notifications,
            CHANNEL_SMS: self.sms_notifications,
            CHANNEL_PUSH: self.push_notifications,
        }
        return bool(flags.get(channel, False))

    def get_validated_quiet_hours(self) -> QuietHours:
        """Get quiet hours with schema validation."""
        return QuietHours.model_validate(self.quiet_hours or {})

    def set_validated_quiet_hours(self, quiet_hours: QuietHours):
        """Set quiet hours with schema validation."""
        self.quiet_hours = quiet_hours.model_dump()

    def __repr__(self) -> str:
        return f"<NotificationPreferences(user_id={self.user_id}, user_type={self.user_type})>"
