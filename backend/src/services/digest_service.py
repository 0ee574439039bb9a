"""
Daily digest service.

Once a day, at DAILY_DIGEST_TIME, every active admin who opted in to the
daily digest gets one email notification summarizing yesterday's patient
messages (as recorded on the escalation watch list).
"""

import logging
from datetime import datetime, timedelta
from typing import Dict, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from core.config import DAILY_DIGEST_TIME
from core.constants import CHANNEL_EMAIL, DAILY_DIGEST_TITLE, PRIORITY_NORMAL, PRIORITY_URGENT, RECIPIENT_ADMIN
from models import EscalationEvent, NotificationQueueItem
from services.notification_queue_service import NotificationQueueService
from services.preference_service import PreferenceService
from services.rule_store import RuleStore
from utils.datetime_utils import hhmm_to_minutes, minute_of_day, start_of_day

logger = logging.getLogger(__name__)


class DigestService:
    """Service for the admins' daily digest notification."""

    @staticmethod
    def is_digest_due(now: datetime, digest_time: Optional[str] = None) -> bool:
        """Whether `now` falls in the digest minute (DAILY_DIGEST_TIME unless given)."""
        return minute_of_day(now) == hhmm_to_minutes(digest_time or DAILY_DIGEST_TIME)

    @staticmethod
    def get_daily_stats(db: Session, now: datetime) -> Dict[str, int]:
        """
        Count yesterday's watched messages.

        Returns:
            Dict with 'total_messages' and 'urgent_messages'
        """
        today_start = start_of_day(now)
        yesterday_start = today_start - timedelta(days=1)

        in_window = (
            EscalationEvent.occurred_at >= yesterday_start,
            EscalationEvent.occurred_at < today_start,
        )
        total = db.query(func.count(EscalationEvent.id)).filter(*in_window).scalar() or 0
        urgent = db.query(func.count(EscalationEvent.id)).filter(
            *in_window,
            EscalationEvent.priority == PRIORITY_URGENT
        ).scalar() or 0
        return {'total_messages': total, 'urgent_messages': urgent}

    @staticmethod
    def send_daily_digests(db: Session, now: datetime) -> int:
        """
        Queue today's digest for every opted-in active admin.

        Admins that already have a digest queued for today are skipped, so
        repeated calls on the same day do not duplicate digests.

        Returns:
            Number of digests queued
        """
        stats = DigestService.get_daily_stats(db, now)
        today_start = start_of_day(now)
        digest_date = (today_start - timedelta(days=1)).date().isoformat()
        summary = (
            f"Yesterday you handled {stats['total_messages']} messages "
            f"with {stats['urgent_messages']} urgent cases."
        )

        queued = 0
        for admin in RuleStore.get_active_admins(db):
            preferences = PreferenceService.get_preferences(db, admin.id, RECIPIENT_ADMIN)
            if not preferences.daily_digest:
                continue

            existing = db.query(NotificationQueueItem).filter(
                NotificationQueueItem.recipient_id == admin.id,
                NotificationQueueItem.recipient_type == RECIPIENT_ADMIN,
                NotificationQueueItem.title == DAILY_DIGEST_TITLE,
                NotificationQueueItem.scheduled_for >= today_start,
                NotificationQueueItem.scheduled_for < today_start + timedelta(days=1)
            ).first()
            if existing:
                logger.debug(f"Daily digest already queued for admin {admin.id}")
                continue

            NotificationQueueService.enqueue(
                db,
                recipient_id=admin.id,
                recipient_type=RECIPIENT_ADMIN,
                channel=CHANNEL_EMAIL,
                title=DAILY_DIGEST_TITLE,
                message=summary,
                scheduled_for=now,
                priority=PRIORITY_NORMAL,
                data={
                    'date': digest_date,
                    'totalMessages': stats['total_messages'],
                    'urgentMessages': stats['urgent_messages'],
                },
            )
            queued += 1

        if queued:
            logger.info(f"Queued {queued} daily digests for {digest_date}")
        return queued
