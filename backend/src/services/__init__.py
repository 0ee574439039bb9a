"""
Services package for the notification engine.

This package contains the service classes that implement rule evaluation,
template rendering, queueing, delivery and escalation.
"""

from .delivery_dispatcher import DeliveryDispatcher
from .digest_service import DigestService
from .escalation_engine import EscalationEngine
from .message_template_service import MessageTemplateService
from .notification_queue_service import NotificationQueueService
from .preference_service import PreferenceService
from .rule_executor import RuleExecutor
from .rule_store import RuleStore

__all__ = [
    "DeliveryDispatcher",
    "DigestService",
    "EscalationEngine",
    "MessageTemplateService",
    "NotificationQueueService",
    "PreferenceService",
    "RuleExecutor",
    "RuleStore",
]
