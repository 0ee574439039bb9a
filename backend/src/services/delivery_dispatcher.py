"""
Delivery dispatcher for queued notifications.

Takes due queue items, applies the recipient's preferences and hands the
surviving items to the channel sender. Every item leaves 'pending' at most
once: it is reloaded under a row lock and skipped if another dispatcher
already handled it.
"""

import logging
from datetime import datetime
from typing import Dict, Mapping, Optional

from sqlalchemy.orm import Session

from core.constants import CHANNELS, STATUS_CANCELLED, STATUS_FAILED, STATUS_SENT
from models import NotificationQueueItem
from services.channel_senders import ChannelSender, SendResult, build_default_senders
from services.notification_queue_service import NotificationQueueService
from services.preference_service import PreferenceService

logger = logging.getLogger(__name__)


class DeliveryDispatcher:
    """
    Dispatcher applying preferences and invoking channel senders.
    """

    def __init__(self, senders: Optional[Mapping[str, ChannelSender]] = None):
        """
        Args:
            senders: Sender per channel name (defaults to build_default_senders())
        """
        self.senders: Dict[str, ChannelSender] = dict(senders) if senders is not None else build_default_senders()

    def dispatch(self, db: Session, item: NotificationQueueItem, now: datetime) -> Optional[str]:
        """
        Dispatch one queue item.

        Args:
            db: Database session
            item: Queue item to deliver
            now: Current time (used for quiet hours and sent_at)

        Returns:
            The status the item was moved to, or None if it was no longer pending
        """
        locked = NotificationQueueService.lock_pending(db, item.id)
        if locked is None:
            logger.debug(f"Notification {item.id} is no longer pending, skipping")
            return None

        if locked.channel not in CHANNELS:
            return self._finish(db, locked, STATUS_FAILED, f"Unknown channel: {locked.channel}", now)

        preferences = PreferenceService.get_preferences(db, locked.recipient_id, locked.recipient_type)
        cancel_reason = PreferenceService.get_cancel_reason(locked, preferences, now)
        if cancel_reason:
            return self._finish(db, locked, STATUS_CANCELLED, cancel_reason, now)

        sender = self.senders.get(locked.channel)
        if sender is None:
            return self._finish(db, locked, STATUS_FAILED, f"No sender configured for channel {locked.channel}", now)

        try:
            result: SendResult = sender.send(locked.recipient_id, locked.title, locked.message, locked.data)
        except Exception as e:
            logger.exception(f"Sender for channel {locked.channel} raised on notification {locked.id}: {e}")
            return self._finish(db, locked, STATUS_FAILED, str(e), now)

        if result.success:
            return self._finish(db, locked, STATUS_SENT, None, now)
        return self._finish(db, locked, STATUS_FAILED, result.error or "Delivery failed", now)

    def dispatch_due(self, db: Session, now: datetime) -> Dict[str, int]:
        """
        Dispatch every due pending item in priority order.

        Each item is committed on its own; a failure on one item is logged
        and does not stop the sweep.

        Returns:
            Count of items per resulting status (plus 'skipped' and 'errors')
        """
        due = NotificationQueueService.list_due(db, now)
        if not due:
            return {}

        logger.info(f"Dispatching {len(due)} due notifications")
        counts: Dict[str, int] = {}
        item_ids = [item.id for item in due]
        for item_id in item_ids:
            try:
                item = db.get(NotificationQueueItem, item_id)
                if item is None:
                    continue
                status = self.dispatch(db, item, now)
                db.commit()
                key = status or 'skipped'
            except Exception as e:
                db.rollback()
                logger.exception(f"Failed to dispatch notification {item_id}: {e}")
                key = 'errors'
            counts[key] = counts.get(key, 0) + 1

        logger.info(f"Dispatch finished: {counts}")
        return counts

    @staticmethod
    def _finish(
        db: Session,
        item: NotificationQueueItem,
        status: str,
        error: Optional[str],
        now: datetime
    ) -> str:
        NotificationQueueService.update_status(db, item, status, error=error, now=now)
        if status == STATUS_SENT:
            logger.info(f"Sent {item.channel} notification {item.id} to {item.recipient_type} {item.recipient_id}")
        elif status == STATUS_CANCELLED:
            logger.info(f"Cancelled notification {item.id}: {error}")
        else:
            logger.warning(f"Notification {item.id} failed: {error}")
        return status
