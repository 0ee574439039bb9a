"""
Notification queue model for scheduled, channel-specific deliveries.

Each row is one delivery attempt to one recipient on one channel. Rows are
created by the rule executor, the escalation engine and the daily digest, and
are moved out of 'pending' exactly once by the delivery dispatcher.
"""

from datetime import datetime
from typing import Any, Dict, Optional
from sqlalchemy import JSON, CheckConstraint, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from core.constants import MAX_ID_LENGTH, MAX_STRING_LENGTH, STATUS_PENDING, TERMINAL_STATUSES
from models.base import Base, TZDateTime


class NotificationQueueItem(Base):
    """
    Notification queue entity.

    Status machine: 'pending' -> 'sent' | 'failed' | 'cancelled'. The three
    non-pending states are terminal.
    """

    __tablename__ = "notification_queue"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the queue item."""

    recipient_id: Mapped[str] = mapped_column(String(MAX_ID_LENGTH), nullable=False)
    """Id of the admin or patient receiving the notification."""

    recipient_type: Mapped[str] = mapped_column(String(20), nullable=False)
    """Recipient type: 'admin' or 'patient'."""

    channel: Mapped[str] = mapped_column(String(20), nullable=False)
    """Delivery channel: 'browser', 'email', 'sms' or 'push'."""

    priority: Mapped[str] = mapped_column(String(20), nullable=False, default='normal')
    """Priority: 'low', 'normal', 'high' or 'urgent'."""

    title: Mapped[str] = mapped_column(String(MAX_STRING_LENGTH), nullable=False)
    """Notification title (email subject, push title, ...)."""

    message: Mapped[str] = mapped_column(Text, nullable=False)
    """Rendered notification body."""

    data: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    """Metadata handed to the channel sender (message id, deep link, ...)."""

    scheduled_for: Mapped[datetime] = mapped_column(TZDateTime, nullable=False)
    """Due no earlier than this instant."""

    status: Mapped[str] = mapped_column(String(20), nullable=False, default=STATUS_PENDING)
    """Status: 'pending', 'sent', 'failed' or 'cancelled'."""

    created_at: Mapped[datetime] = mapped_column(TZDateTime, nullable=False)
    """Timestamp when the item was queued."""

    sent_at: Mapped[Optional[datetime]] = mapped_column(TZDateTime, nullable=True)
    """When the item was delivered."""

    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    """Failure or cancellation reason."""

    # Table constraints
    __table_args__ = (
        CheckConstraint("status IN ('pending', 'sent', 'failed', 'cancelled')", name='check_notification_status'),
        CheckConstraint("channel IN ('browser', 'email', 'sms', 'push')", name='check_notification_channel'),
        CheckConstraint("priority IN ('low', 'normal', 'high', 'urgent')", name='check_notification_priority'),
        CheckConstraint("recipient_type IN ('admin', 'patient')", name='check_notification_recipient_type'),
        Index('idx_notification_queue_status_scheduled', 'status', 'scheduled_for'),
        Index('idx_notification_queue_recipient', 'recipient_id', 'recipient_type'),
    )

    @property
    def is_terminal(self) -> bool:
        """True once the item has left 'pending'."""
        return self.status in TERMINAL_STATUSES

    def __repr__(self) -> str:
        return (
            f"<NotificationQueueItem(id={self.id}, recipient={self.recipient_type}:{self.recipient_id}, "
            f"channel={self.channel}, priority={self.priority}, status={self.status})>"
        )
