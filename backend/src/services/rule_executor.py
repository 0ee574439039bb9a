"""
Rule executor for automation rules.

Turns one firing of an automation rule into its side effects: pending
notification queue items for message actions, or alert/task records. The
executor never delivers anything itself and never touches a rule's
last_executed timestamp; callers decide when a firing counts.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pydantic import ValidationError
from sqlalchemy.orm import Session

from core.constants import (
    CHANNEL_EMAIL, DEFAULT_MESSAGE_CHANNEL_BY_RECIPIENT, RECIPIENT_ADMIN, RECIPIENT_PATIENT,
)
from models import Alert, AutomationRule, MessageTemplate
from models.automation_rule import (
    Action, AllAdminsRecipients, AssignTaskAction, CreateAlertAction, ExplicitListRecipients,
    InactivityTrigger, PeriodicCheckinTrigger, ReminderScheduleTrigger, SendEmailAction,
    SendMessageAction, Trigger,
)
from services import condition_evaluator
from services.message_template_service import MessageTemplateService
from services.notification_queue_service import NotificationQueueService
from services.rule_store import RuleStore

logger = logging.getLogger(__name__)


@dataclass
class ExecutionResult:
    """Outcome of executing one rule once."""
    rule_id: str
    success: bool
    queued: int = 0
    alerts: int = 0
    skipped_reason: Optional[str] = None

    @property
    def skipped(self) -> bool:
        return self.skipped_reason is not None


@dataclass
class Recipient:
    """A resolved recipient; `patient` carries the subject's fields for rendering."""
    id: str
    type: str
    patient: Optional[Dict[str, Any]] = None


class RuleExecutor:
    """Service for executing automation rules."""

    @staticmethod
    def execute(
        db: Session,
        rule: AutomationRule,
        context: Mapping[str, Any],
        now: datetime
    ) -> ExecutionResult:
        """
        Execute a rule's action against a context.

        Args:
            db: Database session
            rule: The rule that fired
            context: Firing context (event payload or scheduler-built subjects)
            now: Firing time; queued items are scheduled for this instant

        Returns:
            ExecutionResult describing what was produced or why the rule was skipped
        """
        try:
            action = rule.get_validated_action()
        except ValidationError as e:
            return RuleExecutor._skip(rule, f"Invalid action payload: {e.error_count()} validation error(s)")

        if isinstance(action, CreateAlertAction):
            alert = Alert(
                kind='alert',
                source='automation',
                title=rule.name,
                message=action.custom_message or f'Automation rule "{rule.name}" triggered',
                priority=action.priority,
                patient_id=context.get('patientId'),
                rule_id=rule.id,
                data={'triggerType': rule.trigger_type},
            )
            db.add(alert)
            db.flush()
            logger.info(f"Rule {rule.id} ({rule.name}) created alert {alert.id}")
            return ExecutionResult(rule_id=rule.id, success=True, alerts=1)

        template: Optional[MessageTemplate] = None
        if action.template_id:
            template = RuleStore.get_template(db, action.template_id)
            if template is None:
                logger.warning(f"Template {action.template_id} not found or inactive for rule {rule.id}")

        if template is None and not action.custom_message:
            return RuleExecutor._skip(rule, "No message content available")

        recipients = RuleExecutor.resolve_recipients(db, action, context)
        if not recipients:
            return RuleExecutor._skip(rule, "No recipients resolved")

        if isinstance(action, AssignTaskAction):
            for recipient in recipients:
                body = RuleExecutor._render_body(template, action, context, recipient, now)
                db.add(Alert(
                    kind='task',
                    source='automation',
                    title=rule.name,
                    message=body,
                    priority=action.priority,
                    patient_id=context.get('patientId') or (recipient.patient or {}).get('patient_id'),
                    assignee_id=recipient.id,
                    rule_id=rule.id,
                ))
            db.flush()
            logger.info(f"Rule {rule.id} ({rule.name}) assigned {len(recipients)} tasks")
            return ExecutionResult(rule_id=rule.id, success=True, alerts=len(recipients))

        queued = 0
        for recipient in recipients:
            channel, title = RuleExecutor._channel_and_title(rule, action, template, recipient)
            body = RuleExecutor._render_body(template, action, context, recipient, now)
            NotificationQueueService.enqueue(
                db,
                recipient_id=recipient.id,
                recipient_type=recipient.type,
                channel=channel,
                title=title,
                message=body,
                scheduled_for=now,
                priority=action.priority,
                data={'ruleId': rule.id, 'templateId': action.template_id},
            )
            queued += 1

        logger.info(f"Rule {rule.id} ({rule.name}) queued {queued} notifications")
        return ExecutionResult(rule_id=rule.id, success=True, queued=queued)

    @staticmethod
    def execute_for_trigger(
        db: Session,
        trigger_type: str,
        context: Mapping[str, Any],
        now: datetime
    ) -> List[ExecutionResult]:
        """
        Run every active rule of a trigger type whose conditions match the context.

        A successful firing advances the rule's last_executed. Each rule is
        committed on its own; a failure in one rule is rolled back and logged
        and does not stop the others.
        """
        results: List[ExecutionResult] = []
        for rule in RuleStore.get_active_rules_for_trigger(db, trigger_type):
            try:
                trigger = rule.get_validated_trigger()
            except ValidationError as e:
                logger.warning(f"Skipping rule {rule.id}: invalid trigger payload ({e.error_count()} errors)")
                continue

            if not condition_evaluator.matches(trigger.conditions, context):
                continue

            rule_id = rule.id
            try:
                result = RuleExecutor.execute(db, rule, context, now)
                if result.success:
                    RuleStore.update_last_executed(db, rule, now)
                db.commit()
                results.append(result)
            except Exception as e:
                db.rollback()
                logger.exception(f"Error executing rule {rule_id} for trigger {trigger_type}: {e}")
        return results

    @staticmethod
    def build_context_for_rule(db: Session, trigger: Trigger, now: datetime) -> Dict[str, Any]:
        """
        Build the firing context of a scheduled rule.

        Reminder and check-in rules address every active patient; inactivity
        rules address active patients without activity for `inactive_days`.
        Other trigger types get an empty context.
        """
        if isinstance(trigger, (ReminderScheduleTrigger, PeriodicCheckinTrigger)):
            patients = RuleStore.get_active_patients(db)
        elif isinstance(trigger, InactivityTrigger):
            cutoff = now - timedelta(days=trigger.inactive_days)
            patients = RuleStore.get_inactive_patients(db, cutoff)
        else:
            return {}
        return {'patients': [patient.to_context() for patient in patients]}

    @staticmethod
    def resolve_recipients(db: Session, action: Action, context: Mapping[str, Any]) -> List[Recipient]:
        """
        Resolve an action's recipients against the context.

        Returns:
            Recipients in a stable order; may be empty
        """
        recipients = action.recipients

        if isinstance(recipients, AllAdminsRecipients):
            return [Recipient(id=admin.id, type=RECIPIENT_ADMIN) for admin in RuleStore.get_active_admins(db)]

        if isinstance(recipients, ExplicitListRecipients):
            return [Recipient(id=user_id, type=recipients.recipient_type) for user_id in recipients.user_ids]

        # single-subject
        patient_id = context.get('patientId')
        if patient_id:
            patient = context.get('patient')
            return [Recipient(
                id=str(patient_id),
                type=RECIPIENT_PATIENT,
                patient=dict(patient) if isinstance(patient, Mapping) else None,
            )]

        result: List[Recipient] = []
        for entry in context.get('patients') or []:
            if not isinstance(entry, Mapping):
                continue
            entry_id = entry.get('patient_id') or entry.get('id')
            if not entry_id:
                logger.warning("Skipping subject without an id in context patients")
                continue
            result.append(Recipient(id=str(entry_id), type=RECIPIENT_PATIENT, patient=dict(entry)))
        return result

    @staticmethod
    def _render_body(
        template: Optional[MessageTemplate],
        action: Action,
        context: Mapping[str, Any],
        recipient: Recipient,
        now: datetime
    ) -> str:
        recipient_context: Mapping[str, Any] = context
        if recipient.patient is not None:
            recipient_context = {**context, 'patient': recipient.patient}
        content = template.content if template is not None else (action.custom_message or '')
        return MessageTemplateService.render(content, recipient_context, now)

    @staticmethod
    def _channel_and_title(
        rule: AutomationRule,
        action: Action,
        template: Optional[MessageTemplate],
        recipient: Recipient
    ) -> Tuple[str, str]:
        if isinstance(action, SendEmailAction):
            return CHANNEL_EMAIL, (template.subject if template and template.subject else rule.name)
        if not isinstance(action, SendMessageAction):
            raise TypeError(f"Action {action.type} is not delivered through a channel")
        channel = action.channel or DEFAULT_MESSAGE_CHANNEL_BY_RECIPIENT[recipient.type]
        return channel, rule.name

    @staticmethod
    def _skip(rule: AutomationRule, reason: str) -> ExecutionResult:
        logger.warning(f"Skipping rule {rule.id} ({rule.name}): {reason}")
        return ExecutionResult(rule_id=rule.id, success=False, skipped_reason=reason)
