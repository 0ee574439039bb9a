"""
Notification queue service.

Owns the notification_queue table: inserting pending deliveries, listing the
ones that are due in dispatch order, and moving items to a terminal status.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import case
from sqlalchemy.orm import Session

from core.constants import (
    CHANNELS, PRIORITIES, PRIORITY_NORMAL, PRIORITY_RANK, QUEUE_STATUSES,
    QUEUE_SWEEP_BATCH_SIZE, RECIPIENT_TYPES, STATUS_FAILED, STATUS_PENDING, STATUS_SENT,
)
from models import NotificationQueueItem
from utils.datetime_utils import engine_now

logger = logging.getLogger(__name__)

# Dispatch order: urgent > high > normal > low
_PRIORITY_ORDER = case(PRIORITY_RANK, value=NotificationQueueItem.priority, else_=len(PRIORITY_RANK))


class NotificationQueueService:
    """Service for managing queued notifications."""

    @staticmethod
    def enqueue(
        db: Session,
        recipient_id: str,
        recipient_type: str,
        channel: str,
        title: str,
        message: str,
        scheduled_for: datetime,
        priority: str = PRIORITY_NORMAL,
        data: Optional[Dict[str, Any]] = None
    ) -> NotificationQueueItem:
        """
        Insert a pending notification.

        Args:
            db: Database session
            recipient_id: Admin or patient id
            recipient_type: 'admin' or 'patient'
            channel: 'browser', 'email', 'sms' or 'push'
            title: Notification title
            message: Rendered body
            scheduled_for: Earliest delivery instant (timezone-aware)
            priority: 'low', 'normal', 'high' or 'urgent'
            data: Optional metadata passed to the channel sender

        Returns:
            The created queue item

        Raises:
            ValueError: If channel, priority or recipient type is not recognized
        """
        if channel not in CHANNELS:
            raise ValueError(f"Invalid channel: {channel}")
        if priority not in PRIORITIES:
            raise ValueError(f"Invalid priority: {priority}")
        if recipient_type not in RECIPIENT_TYPES:
            raise ValueError(f"Invalid recipient type: {recipient_type}")

        item = NotificationQueueItem(
            recipient_id=recipient_id,
            recipient_type=recipient_type,
            channel=channel,
            priority=priority,
            title=title,
            message=message,
            data=data,
            scheduled_for=scheduled_for,
            status=STATUS_PENDING,
        )
        db.add(item)
        db.flush()

        logger.debug(
            f"Queued {priority} {channel} notification {item.id} for "
            f"{recipient_type} {recipient_id} at {scheduled_for.isoformat()}"
        )
        return item

    @staticmethod
    def list_due(
        db: Session,
        now: datetime,
        limit: Optional[int] = None
    ) -> List[NotificationQueueItem]:
        """
        List pending items due at `now`, in dispatch order.

        Ordered by priority (urgent first), then created_at, then id.
        """
        query = db.query(NotificationQueueItem).filter(
            NotificationQueueItem.status == STATUS_PENDING,
            NotificationQueueItem.scheduled_for <= now
        ).order_by(
            _PRIORITY_ORDER,
            NotificationQueueItem.created_at,
            NotificationQueueItem.id
        )
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    @staticmethod
    def lock_pending(db: Session, item_id: int) -> Optional[NotificationQueueItem]:
        """
        Reload an item under a row lock if it is still pending.

        Uses SELECT FOR UPDATE SKIP LOCKED so a concurrent dispatcher holding
        the row makes this return None instead of blocking.
        """
        return db.query(NotificationQueueItem).filter(
            NotificationQueueItem.id == item_id,
            NotificationQueueItem.status == STATUS_PENDING
        ).with_for_update(skip_locked=True).populate_existing().first()

    @staticmethod
    def update_status(
        db: Session,
        item: NotificationQueueItem,
        status: str,
        error: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> bool:
        """
        Move an item to a new status.

        Terminal items are never changed. Moving to 'sent' stamps sent_at.

        Args:
            db: Database session
            item: Queue item to update
            status: Target status
            error: Failure or cancellation reason
            now: Time used for sent_at (defaults to engine now)

        Returns:
            True if the status was written, False if the item was already terminal

        Raises:
            ValueError: If the status is not recognized
        """
        if status not in QUEUE_STATUSES:
            raise ValueError(f"Invalid status: {status}")

        if item.is_terminal:
            logger.warning(
                f"Refusing to move notification {item.id} from terminal status "
                f"{item.status} to {status}"
            )
            return False

        item.status = status
        item.error = error
        if status == STATUS_SENT:
            item.sent_at = now or engine_now()
        db.flush()
        return True

    @staticmethod
    def list_failed(db: Session, limit: int = QUEUE_SWEEP_BATCH_SIZE) -> List[NotificationQueueItem]:
        """List failed items, most recent first, for manual review."""
        return db.query(NotificationQueueItem).filter(
            NotificationQueueItem.status == STATUS_FAILED
        ).order_by(
            NotificationQueueItem.created_at.desc(),
            NotificationQueueItem.id.desc()
        ).limit(limit).all()
