# Package initialization
# Import all models to ensure they're registered with Base.metadata
from .admin_user import AdminUser
from .alert import Alert
from .automation_rule import AutomationRule
from .escalation_rule import EscalationEvent, EscalationFiring, EscalationRule
from .message_template import MessageTemplate
from .notification_preferences import NotificationPreferences
from .notification_queue_item import NotificationQueueItem
from .patient import Patient

__all__ = [
    "AdminUser",
    "Alert",
    "AutomationRule",
    "EscalationEvent",
    "EscalationFiring",
    "EscalationRule",
    "MessageTemplate",
    "NotificationPreferences",
    "NotificationQueueItem",
    "Patient",
]
