"""
Entry point for inbound events from event sources.

Event sources (onboarding flow, milestone tracker, chat service, ...) call
handle_event() and move on: the handler routes the event to the rule
executor or the escalation engine and never raises back into the caller.
"""

import logging
from datetime import datetime
from typing import Any, Mapping, Optional

from sqlalchemy.orm import Session

from core.constants import MESSAGE_EVENT_TYPES, MESSAGE_RESOLVED_EVENT_TYPE
from models.automation_rule import TRIGGER_TYPES
from services.escalation_engine import EscalationEngine, EscalationEventData
from services.rule_executor import RuleExecutor
from utils.datetime_utils import engine_now

logger = logging.getLogger(__name__)


def handle_event(
    db: Session,
    event_type: str,
    context: Mapping[str, Any],
    now: Optional[datetime] = None
) -> None:
    """
    Route an inbound event.

    - automation trigger types ('onboarding-event', 'milestone-event', ...)
      run the matching automation rules
    - 'message-received' / 'message-sent' are checked for escalation
    - 'message-resolved' stops escalation re-checks for a message

    Args:
        db: Database session
        event_type: Event type
        context: Event payload (camelCase keys, e.g. patientId, messageId)
        now: Event time (defaults to engine now)
    """
    current_time = now or engine_now()
    try:
        if event_type in TRIGGER_TYPES:
            results = RuleExecutor.execute_for_trigger(db, event_type, context, current_time)
            logger.info(f"Event {event_type} fired {sum(1 for r in results if r.success)} rule(s)")
        elif event_type in MESSAGE_EVENT_TYPES:
            event = EscalationEventData.from_context(context, current_time)
            EscalationEngine.check_event(db, event, current_time)
        elif event_type == MESSAGE_RESOLVED_EVENT_TYPE:
            message_id = context.get('messageId')
            if not message_id:
                logger.warning(f"Ignoring {event_type} event without messageId")
                return
            EscalationEngine.resolve_event(db, str(message_id), current_time)
            db.commit()
        else:
            logger.warning(f"Ignoring unknown event type: {event_type}")
    except Exception as e:
        db.rollback()
        logger.exception(f"Error handling {event_type} event: {e}")
