"""
Escalation engine for message events.

Every message event is recorded on a watch list and checked against the
active escalation rules. A satisfied rule schedules its whole step chain at
once: each step becomes urgent queue items (or an alert record) due at
`occurred_at + delay`. Rules with a response-time threshold can only be
satisfied once enough time has passed, so watched events are re-checked on
every scheduler tick until they are resolved or leave the watch window.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, Field, ValidationError
from sqlalchemy.orm import Session

from core.config import ESCALATION_DEDUPE_ENABLED, ESCALATION_WATCH_WINDOW_HOURS
from core.constants import CHANNEL_BROWSER, CHANNEL_EMAIL, ESCALATION_PRIORITY, RECIPIENT_ADMIN
from models import Alert, EscalationEvent, EscalationFiring, EscalationRule
from models.automation_rule import PAYLOAD_CONFIG
from models.escalation_rule import EscalationStep, EscalationTrigger
from services.notification_queue_service import NotificationQueueService
from services.rule_store import RuleStore
from utils.datetime_utils import minutes_between

logger = logging.getLogger(__name__)


class EscalationEventData(BaseModel):
    """A message event as seen by the escalation engine."""
    model_config = PAYLOAD_CONFIG

    message_id: str
    conversation_id: Optional[str] = None
    patient_id: Optional[str] = None
    message_type: Optional[str] = None
    priority: Optional[str] = None
    content: str = ""
    occurred_at: datetime = Field(description="When the message was sent/received (timezone-aware)")

    @classmethod
    def from_context(cls, context: Mapping[str, Any], now: datetime) -> "EscalationEventData":
        """
        Build event data from an event-source context (camelCase keys).

        occurredAt defaults to `now` when the source does not provide it.

        Raises:
            ValidationError: If the context lacks a message id or has malformed fields
        """
        payload = dict(context)
        payload.setdefault('occurredAt', now)
        return cls.model_validate(payload)

    @classmethod
    def from_record(cls, record: EscalationEvent) -> "EscalationEventData":
        return cls(
            message_id=record.id,
            conversation_id=record.conversation_id,
            patient_id=record.patient_id,
            message_type=record.message_type,
            priority=record.priority,
            content=record.content or "",
            occurred_at=record.occurred_at,
        )


def should_escalate(trigger: EscalationTrigger, event: EscalationEventData, now: datetime) -> bool:
    """
    Check whether a message event satisfies an escalation trigger.

    Empty lists match anything. Keywords match case-insensitively as
    substrings of the content. A response-time threshold requires that at
    least that many minutes have passed since the event.
    """
    if trigger.message_type and event.message_type not in trigger.message_type:
        return False

    if trigger.priority and event.priority not in trigger.priority:
        return False

    if trigger.keywords:
        content = (event.content or "").lower()
        if not any(keyword.lower() in content for keyword in trigger.keywords):
            return False

    if trigger.response_time_threshold:
        if minutes_between(event.occurred_at, now) < trigger.response_time_threshold:
            return False

    return True


class EscalationEngine:
    """Service for matching message events and scheduling escalation chains."""

    @staticmethod
    def check_event(db: Session, event: EscalationEventData, now: datetime) -> int:
        """
        Record a message event and fire every active escalation rule it satisfies.

        Args:
            db: Database session
            event: The message event
            now: Current time

        Returns:
            Number of rules that scheduled their steps
        """
        record = EscalationEngine._record_event(db, event)
        db.commit()

        fired = 0
        for rule in RuleStore.get_active_escalation_rules(db):
            fired += EscalationEngine._evaluate_rule(db, rule, record, now)
        return fired

    @staticmethod
    def recheck_watched_events(db: Session, now: datetime) -> int:
        """
        Re-evaluate threshold rules against unresolved events in the watch window.

        Rules without a response-time threshold already had their only
        chance when the event was checked.

        Returns:
            Number of (event, rule) pairs that scheduled their steps
        """
        threshold_rules = []
        for rule in RuleStore.get_active_escalation_rules(db):
            try:
                if rule.get_validated_trigger().response_time_threshold:
                    threshold_rules.append(rule)
            except ValidationError as e:
                logger.warning(f"Skipping escalation rule {rule.id}: invalid trigger ({e.error_count()} errors)")
        if not threshold_rules:
            return 0

        window_start = now - timedelta(hours=ESCALATION_WATCH_WINDOW_HOURS)
        watched = db.query(EscalationEvent).filter(
            EscalationEvent.resolved_at.is_(None),
            EscalationEvent.occurred_at >= window_start,
            EscalationEvent.occurred_at <= now
        ).order_by(EscalationEvent.occurred_at, EscalationEvent.id).all()

        fired = 0
        for record in watched:
            for rule in threshold_rules:
                fired += EscalationEngine._evaluate_rule(db, rule, record, now)
        if fired:
            logger.info(f"Escalation re-check fired {fired} rule(s) on {len(watched)} watched event(s)")
        return fired

    @staticmethod
    def resolve_event(db: Session, event_id: str, now: datetime) -> bool:
        """
        Mark a watched event as resolved so it is no longer re-checked.

        Steps that were already scheduled stay in the queue.

        Returns:
            True if an unresolved event was found and resolved
        """
        record = db.get(EscalationEvent, event_id)
        if record is None or record.resolved_at is not None:
            return False
        record.resolved_at = now
        db.flush()
        logger.info(f"Resolved escalation watch for message {event_id}")
        return True

    @staticmethod
    def _record_event(db: Session, event: EscalationEventData) -> EscalationEvent:
        record = db.get(EscalationEvent, event.message_id)
        if record is not None:
            return record
        record = EscalationEvent(
            id=event.message_id,
            conversation_id=event.conversation_id,
            patient_id=event.patient_id,
            message_type=event.message_type,
            priority=event.priority,
            content=event.content or "",
            occurred_at=event.occurred_at,
        )
        db.add(record)
        db.flush()
        return record

    @staticmethod
    def _evaluate_rule(db: Session, rule: EscalationRule, record: EscalationEvent, now: datetime) -> int:
        """Check one rule against one recorded event; commits on its own."""
        rule_id = rule.id
        event_id = record.id
        try:
            trigger = rule.get_validated_trigger()
            if not should_escalate(trigger, EscalationEventData.from_record(record), now):
                return 0
            fired = EscalationEngine._fire(db, rule, record, now)
            db.commit()
            return 1 if fired else 0
        except ValidationError as e:
            db.rollback()
            logger.warning(f"Skipping escalation rule {rule_id}: invalid payload ({e.error_count()} errors)")
            return 0
        except Exception as e:
            db.rollback()
            logger.exception(f"Error firing escalation rule {rule_id} for message {event_id}: {e}")
            return 0

    @staticmethod
    def _fire(db: Session, rule: EscalationRule, record: EscalationEvent, now: datetime) -> bool:
        """Schedule every step of a rule for an event. Returns False when deduplicated."""
        steps = rule.get_validated_steps()

        if ESCALATION_DEDUPE_ENABLED:
            already_fired = db.query(EscalationFiring).filter(
                EscalationFiring.event_id == record.id,
                EscalationFiring.rule_id == rule.id
            ).first()
            if already_fired:
                logger.debug(f"Escalation rule {rule.id} already fired for message {record.id}")
                return False
            db.add(EscalationFiring(event_id=record.id, rule_id=rule.id, fired_at=now))

        for step in steps:
            EscalationEngine._schedule_step(db, rule, record, step)

        logger.info(
            f"Escalation rule {rule.id} ({rule.name}) scheduled {len(steps)} step(s) for message {record.id}"
        )
        return True

    @staticmethod
    def _schedule_step(db: Session, rule: EscalationRule, record: EscalationEvent, step: EscalationStep) -> None:
        scheduled_for = record.occurred_at + timedelta(minutes=step.delay)
        data: Dict[str, Any] = {
            'messageId': record.id,
            'conversationId': record.conversation_id,
            'url': f'/admin/chat/{record.conversation_id}',
            'stepNumber': step.step_number,
        }

        if step.action == 'create-alert':
            db.add(Alert(
                kind='alert',
                source='escalation',
                title=f'Escalation: {rule.name}',
                message=step.message,
                priority=ESCALATION_PRIORITY,
                patient_id=record.patient_id,
                rule_id=rule.id,
                data={**data, 'dueAt': scheduled_for.isoformat()},
            ))
            db.flush()
            return

        if not step.recipients:
            logger.warning(f"Escalation rule {rule.id} step {step.step_number} has no recipients")
            return

        channels: List[tuple] = []
        if step.action in ('notify-admin', 'notify-supervisor'):
            channels.append((CHANNEL_BROWSER, f'Escalation: {rule.name}'))
        channels.append((CHANNEL_EMAIL, f'Urgent: {rule.name}'))

        for recipient_id in step.recipients:
            for channel, title in channels:
                NotificationQueueService.enqueue(
                    db,
                    recipient_id=recipient_id,
                    recipient_type=RECIPIENT_ADMIN,
                    channel=channel,
                    title=title,
                    message=step.message,
                    scheduled_for=scheduled_for,
                    priority=ESCALATION_PRIORITY,
                    data=data,
                )
