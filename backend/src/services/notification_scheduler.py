"""
Notification scheduler driving the engine's periodic work.

This scheduler runs every minute. Each tick performs, in order:
1. the rule sweep (time-based automation rules due in this minute),
2. the escalation re-check of watched message events,
3. the daily digest (only in the configured digest minute),
4. the queue sweep (dispatching due notifications by priority).
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler  # type: ignore
from apscheduler.triggers.cron import CronTrigger  # type: ignore
from pydantic import ValidationError
from sqlalchemy.orm import Session

from core.constants import NOTIFICATION_SCHEDULER_MAX_INSTANCES
from core.database import get_db_context
from models.automation_rule import Schedule
from services.delivery_dispatcher import DeliveryDispatcher
from services.digest_service import DigestService
from services.escalation_engine import EscalationEngine
from services.rule_executor import RuleExecutor
from services.rule_store import RuleStore
from utils.datetime_utils import (
    ENGINE_TZ, engine_now, format_hhmm, sunday_based_weekday, to_engine_tz, truncate_to_minute,
)

logger = logging.getLogger(__name__)


def is_schedule_due(schedule: Schedule, now: datetime, last_executed: Optional[datetime]) -> bool:
    """
    Check whether a rule schedule fires in the current minute.

    Args:
        schedule: The rule's schedule
        now: Current time
        last_executed: When the rule last fired (None if never)

    Returns:
        True if the schedule matches this minute and the rule has not
        already fired in it
    """
    if not schedule.time or format_hhmm(now) != schedule.time:
        return False

    # Already fired in this minute slot (or later)
    if last_executed is not None and truncate_to_minute(last_executed) >= truncate_to_minute(now):
        return False

    local_now = to_engine_tz(now)

    if schedule.frequency == 'daily':
        return True
    if schedule.frequency == 'weekly':
        return sunday_based_weekday(local_now) in schedule.days_of_week
    if schedule.frequency == 'monthly':
        return local_now.day == 1
    if schedule.frequency == 'once':
        return last_executed is None
    return False


class NotificationScheduler:
    """
    Scheduler for the notification engine's minute tick.

    Only one tick may run at a time (max_instances=1).
    """

    def __init__(self, dispatcher: Optional[DeliveryDispatcher] = None):
        """
        Initialize the notification scheduler.

        Note: Database sessions are created fresh for each tick
        to avoid stale session issues. Do not pass a session here.

        Args:
            dispatcher: Delivery dispatcher (defaults to one with the configured senders)
        """
        # Wall-clock decisions are made in the engine timezone
        self.scheduler = AsyncIOScheduler(timezone=ENGINE_TZ)
        self.dispatcher = dispatcher or DeliveryDispatcher()
        self._is_started = False

    async def start_scheduler(self) -> None:
        """
        Start the background scheduler.

        This should be called during application startup.
        """
        if self._is_started:
            logger.warning("Notification scheduler is already started")
            return

        self.scheduler.add_job(  # type: ignore
            self._run_tick,
            CronTrigger(minute="*"),  # Run every minute
            id="notification_engine_tick",
            name="Notification engine tick",
            max_instances=NOTIFICATION_SCHEDULER_MAX_INSTANCES,  # Prevent overlapping ticks
            replace_existing=True
        )

        self.scheduler.start()
        self._is_started = True
        logger.info("Notification scheduler started")

        # Run immediately on startup to dispatch anything that came due while stopped
        await self._run_tick()

    async def stop_scheduler(self) -> None:
        """
        Stop the background scheduler.

        This should be called during application shutdown.
        """
        if self._is_started:
            self.scheduler.shutdown(wait=True)
            self._is_started = False
            logger.info("Notification scheduler stopped")

    async def _run_tick(self) -> None:
        """
        Run one tick with a fresh database session.
        """
        with get_db_context() as db:
            try:
                NotificationScheduler.run_tick(db, engine_now(), self.dispatcher)
            except Exception as e:
                logger.exception(f"Error running notification engine tick: {e}")

    @staticmethod
    def run_tick(db: Session, now: datetime, dispatcher: DeliveryDispatcher) -> Dict[str, Any]:
        """
        Run all passes of one tick.

        A failing pass is logged and the remaining passes still run.

        Returns:
            Summary of the tick (rules fired, escalations fired, digests queued, dispatch counts)
        """
        summary: Dict[str, Any] = {}
        passes = (
            ('rules_fired', lambda: NotificationScheduler.run_rule_sweep(db, now)),
            ('escalations_fired', lambda: EscalationEngine.recheck_watched_events(db, now)),
            ('digests_queued', lambda: DigestService.send_daily_digests(db, now) if DigestService.is_digest_due(now) else 0),
            ('dispatched', lambda: dispatcher.dispatch_due(db, now)),
        )
        for name, run_pass in passes:
            try:
                summary[name] = run_pass()
                db.commit()
            except Exception as e:
                db.rollback()
                logger.exception(f"Tick pass {name} failed: {e}")
                summary[name] = None
        return summary

    @staticmethod
    def run_rule_sweep(db: Session, now: datetime) -> int:
        """
        Fire every active time-based rule that is due in this minute.

        The rule's last_executed is advanced to `now` and committed before
        the action runs, so the slot is claimed even if execution fails.

        Returns:
            Number of rules executed successfully
        """
        fired = 0
        for rule in RuleStore.get_active_rules(db):
            rule_id = rule.id
            try:
                trigger = rule.get_validated_trigger()
                if trigger.schedule is None:
                    continue
                if not is_schedule_due(trigger.schedule, now, rule.last_executed):
                    continue

                if not RuleStore.update_last_executed(db, rule, now):
                    continue
                db.commit()

                context = RuleExecutor.build_context_for_rule(db, trigger, now)
                result = RuleExecutor.execute(db, rule, context, now)
                db.commit()
                if result.success:
                    fired += 1
            except ValidationError as e:
                db.rollback()
                logger.warning(f"Skipping rule {rule_id}: invalid trigger payload ({e.error_count()} errors)")
            except Exception as e:
                db.rollback()
                logger.exception(f"Error executing scheduled rule {rule_id}: {e}")

        if fired:
            logger.info(f"Rule sweep fired {fired} rule(s) at {format_hhmm(now)}")
        return fired


# Global scheduler instance
_notification_scheduler: Optional[NotificationScheduler] = None


def get_notification_scheduler() -> NotificationScheduler:
    """
    Get the global notification scheduler instance.

    Returns:
        The global notification scheduler instance
    """
    global _notification_scheduler
    if _notification_scheduler is None:
        _notification_scheduler = NotificationScheduler()
    return _notification_scheduler


async def start_notification_scheduler() -> None:
    """
    Start the global notification scheduler.

    This should be called during application startup.
    """
    scheduler = get_notification_scheduler()
    await scheduler.start_scheduler()


async def stop_notification_scheduler() -> None:
    """
    Stop the global notification scheduler.

    This should be called during application shutdown.
    """
    global _notification_scheduler
    if _notification_scheduler:
        await _notification_scheduler.stop_scheduler()
