"""
Rule store service for reading automation rules, templates and subjects.

The engine treats rules, templates and escalation rules as authored
elsewhere: it reads them, advances `last_executed` and, through the
initialize_* helpers, seeds the default set shipped with the product.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from core.config import ESCALATION_SUPERVISOR_IDS
from core.message_template_constants import DEFAULT_MESSAGE_TEMPLATES
from models import AdminUser, AutomationRule, EscalationRule, MessageTemplate, Patient
from models.automation_rule import ACTION_ADAPTER, TRIGGER_ADAPTER
from models.escalation_rule import EscalationStep, EscalationTrigger
from utils.datetime_utils import to_utc

logger = logging.getLogger(__name__)

ACTIVE_STATUS = 'active'

DEFAULT_AUTOMATION_RULES: List[Dict[str, Any]] = [
    {
        "id": "default-welcome-new-patients",
        "name": "Welcome New Patients",
        "trigger": {"type": "onboarding-event", "conditions": {}},
        "action": {
            "type": "send-message",
            "template_id": "welcome-message",
            "priority": "normal",
            "recipients": {"type": "single-subject"},
        },
    },
    {
        "id": "default-daily-dosing-reminder",
        "name": "Daily Dosing Reminder",
        "trigger": {
            "type": "reminder-schedule",
            "conditions": {"reminderType": "daily"},
            "schedule": {"frequency": "daily", "time": "09:00"},
        },
        "action": {
            "type": "send-message",
            "template_id": "daily-dosing-reminder",
            "priority": "normal",
            "recipients": {"type": "single-subject"},
        },
    },
    {
        "id": "default-weekly-checkin",
        "name": "Weekly Check-in",
        "trigger": {
            "type": "periodic-checkin",
            "conditions": {},
            "schedule": {"frequency": "weekly", "time": "10:00", "days_of_week": [1]},  # Monday
        },
        "action": {
            "type": "send-message",
            "template_id": "weekly-checkin",
            "priority": "normal",
            "recipients": {"type": "single-subject"},
        },
    },
    {
        "id": "default-weight-loss-milestone",
        "name": "Weight Loss Milestone",
        "trigger": {
            "type": "milestone-event",
            "conditions": {"milestoneType": "weight_loss", "threshold": 5},
        },
        "action": {
            "type": "send-message",
            "template_id": "milestone-congratulations",
            "priority": "normal",
            "recipients": {"type": "single-subject"},
        },
    },
    {
        "id": "default-inactive-patient-followup",
        "name": "Inactive Patient Follow-up",
        "trigger": {
            "type": "inactivity-event",
            "conditions": {"inactiveDays": 3},
            "schedule": {"frequency": "daily", "time": "14:00"},
        },
        "action": {
            "type": "send-message",
            "template_id": "inactive-followup",
            "priority": "high",
            "recipients": {"type": "single-subject"},
        },
    },
]


def _default_escalation_rules() -> List[Dict[str, Any]]:
    """Default escalation rules; recipients come from ESCALATION_SUPERVISOR_IDS."""
    return [
        {
            "id": "default-safety-alert-escalation",
            "name": "Safety Alert Escalation",
            "trigger": {
                "message_type": ["safety_alert"],
                "keywords": ["emergency", "severe", "hospital", "allergic reaction"],
                "priority": ["urgent", "high"],
                "response_time_threshold": 15,
            },
            "escalation_steps": [
                {
                    "step_number": 1,
                    "delay": 0,
                    "action": "notify-admin",
                    "recipients": list(ESCALATION_SUPERVISOR_IDS),
                    "message": "URGENT: Safety alert requires immediate attention",
                },
                {
                    "step_number": 2,
                    "delay": 30,
                    "action": "send-email",
                    "recipients": list(ESCALATION_SUPERVISOR_IDS),
                    "message": "Safety alert has not been addressed for 30 minutes",
                },
            ],
        },
    ]


class RuleStore:
    """Service for reading rules, templates and rule subjects."""

    @staticmethod
    def get_active_rules(db: Session) -> List[AutomationRule]:
        """
        Get all active automation rules.

        Args:
            db: Database session

        Returns:
            Active rules, oldest first
        """
        return db.query(AutomationRule).filter(
            AutomationRule.is_active == True  # noqa: E712
        ).order_by(AutomationRule.created_at, AutomationRule.id).all()

    @staticmethod
    def get_active_rules_for_trigger(db: Session, trigger_type: str) -> List[AutomationRule]:
        """
        Get active automation rules of one trigger type.

        The trigger is a JSON column, so the type is filtered in Python to
        stay portable across backends.
        """
        return [
            rule for rule in RuleStore.get_active_rules(db)
            if rule.trigger_type == trigger_type
        ]

    @staticmethod
    def get_active_escalation_rules(db: Session) -> List[EscalationRule]:
        """Get all active escalation rules, oldest first."""
        return db.query(EscalationRule).filter(
            EscalationRule.is_active == True  # noqa: E712
        ).order_by(EscalationRule.created_at, EscalationRule.id).all()

    @staticmethod
    def update_last_executed(db: Session, rule: AutomationRule, executed_at: datetime) -> bool:
        """
        Advance a rule's last_executed timestamp.

        Updates that would move the timestamp backwards are ignored.

        Args:
            db: Database session
            rule: Rule to update
            executed_at: Instant the rule fired (timezone-aware)

        Returns:
            True if the timestamp was advanced, False if the update was ignored
        """
        if rule.last_executed is not None and to_utc(executed_at) <= to_utc(rule.last_executed):
            logger.debug(
                f"Ignoring last_executed update for rule {rule.id}: "
                f"{executed_at.isoformat()} is not after {rule.last_executed.isoformat()}"
            )
            return False

        rule.last_executed = executed_at
        db.flush()
        return True

    @staticmethod
    def get_template(db: Session, template_id: str) -> Optional[MessageTemplate]:
        """
        Get an active message template by id.

        Returns:
            The template, or None when it does not exist or is inactive
        """
        template = db.query(MessageTemplate).filter(
            MessageTemplate.id == template_id
        ).first()
        if not template or not template.is_active:
            return None
        return template

    @staticmethod
    def get_active_patients(db: Session) -> List[Patient]:
        """Get all patients whose program status is active."""
        return db.query(Patient).filter(
            Patient.status == ACTIVE_STATUS
        ).order_by(Patient.id).all()

    @staticmethod
    def get_inactive_patients(db: Session, cutoff: datetime) -> List[Patient]:
        """
        Get active patients with no activity since `cutoff`.

        Patients that never recorded any activity are not included.
        """
        return db.query(Patient).filter(
            Patient.status == ACTIVE_STATUS,
            Patient.last_activity_at.isnot(None),
            Patient.last_activity_at < cutoff
        ).order_by(Patient.id).all()

    @staticmethod
    def get_active_admins(db: Session) -> List[AdminUser]:
        """Get all active admin users."""
        return db.query(AdminUser).filter(
            AdminUser.status == ACTIVE_STATUS
        ).order_by(AdminUser.id).all()

    @staticmethod
    def initialize_default_templates(db: Session) -> int:
        """
        Insert the default message templates that do not exist yet.

        Returns:
            Number of templates created
        """
        created = 0
        for template_data in DEFAULT_MESSAGE_TEMPLATES:
            if db.get(MessageTemplate, template_data["id"]) is not None:
                continue
            db.add(MessageTemplate(
                id=template_data["id"],
                name=template_data["name"],
                category=template_data["category"],
                content=template_data["content"],
                variables=list(template_data["variables"]),
                is_active=True,
            ))
            created += 1
        db.flush()
        logger.info(f"Created {created} default message templates")
        return created

    @staticmethod
    def initialize_default_rules(db: Session) -> int:
        """
        Insert the default automation rules that do not exist yet.

        Payloads are validated before they are stored.

        Returns:
            Number of rules created
        """
        created = 0
        for rule_data in DEFAULT_AUTOMATION_RULES:
            if db.get(AutomationRule, rule_data["id"]) is not None:
                continue
            rule = AutomationRule(id=rule_data["id"], name=rule_data["name"], is_active=True)
            rule.set_validated_trigger(TRIGGER_ADAPTER.validate_python(rule_data["trigger"]))
            rule.set_validated_action(ACTION_ADAPTER.validate_python(rule_data["action"]))
            db.add(rule)
            created += 1
        db.flush()
        logger.info(f"Created {created} default automation rules")
        return created

    @staticmethod
    def initialize_default_escalation_rules(db: Session) -> int:
        """
        Insert the default escalation rules that do not exist yet.

        Returns:
            Number of escalation rules created
        """
        created = 0
        for rule_data in _default_escalation_rules():
            if db.get(EscalationRule, rule_data["id"]) is not None:
                continue
            rule = EscalationRule(id=rule_data["id"], name=rule_data["name"], is_active=True)
            rule.set_validated(
                EscalationTrigger.model_validate(rule_data["trigger"]),
                [EscalationStep.model_validate(step) for step in rule_data["escalation_steps"]],
            )
            db.add(rule)
            created += 1
        db.flush()
        logger.info(f"Created {created} default escalation rules")
        return created
