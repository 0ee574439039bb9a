"""
Automation rule model binding a trigger to an action.

Rules are authored elsewhere and read by the scheduler and the rule executor.
The trigger and action payloads are stored as JSON and validated through the
pydantic tagged variants defined here (one concrete shape per trigger type and
per action type).
"""

import uuid
from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic.alias_generators import to_camel
from sqlalchemy import JSON, Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from core.constants import DEFAULT_INACTIVE_DAYS, MAX_ID_LENGTH, MAX_STRING_LENGTH
from models.base import Base, TZDateTime
from utils.datetime_utils import parse_hhmm

# Authoring surfaces send camelCase keys; stored payloads use field names
PAYLOAD_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

Priority = Literal["low", "normal", "high", "urgent"]
Channel = Literal["browser", "email", "sms", "push"]
RecipientType = Literal["admin", "patient"]


class Schedule(BaseModel):
    """Wall-clock schedule of a time-based trigger."""
    model_config = PAYLOAD_CONFIG

    frequency: Literal["once", "daily", "weekly", "monthly"]
    time: Optional[str] = Field(
        default=None,
        description="Wall-clock time to fire (HH:MM format, 24-hour, engine timezone)"
    )
    days_of_week: List[int] = Field(
        default_factory=list,
        description="Weekday indices for weekly schedules, Sunday = 0"
    )

    @field_validator('time')
    @classmethod
    def validate_time_format(cls, v: Optional[str]) -> Optional[str]:
        """Validate that time is in HH:MM format."""
        if v is not None:
            parse_hhmm(v)
        return v

    @field_validator('days_of_week')
    @classmethod
    def validate_days_of_week(cls, v: List[int]) -> List[int]:
        """Validate weekday indices."""
        for day in v:
            if day < 0 or day > 6:
                raise ValueError(f"Invalid weekday index {day}: must be between 0 (Sunday) and 6 (Saturday)")
        return v


class _TriggerBase(BaseModel):
    model_config = PAYLOAD_CONFIG

    conditions: Dict[str, Any] = Field(default_factory=dict)
    schedule: Optional[Schedule] = None


class OnboardingTrigger(_TriggerBase):
    type: Literal["onboarding-event"] = "onboarding-event"


class ReminderScheduleTrigger(_TriggerBase):
    type: Literal["reminder-schedule"] = "reminder-schedule"
    schedule: Schedule


class PeriodicCheckinTrigger(_TriggerBase):
    type: Literal["periodic-checkin"] = "periodic-checkin"
    schedule: Schedule


class MilestoneTrigger(_TriggerBase):
    type: Literal["milestone-event"] = "milestone-event"


class SafetyTrigger(_TriggerBase):
    type: Literal["safety-event"] = "safety-event"


class InactivityTrigger(_TriggerBase):
    type: Literal["inactivity-event"] = "inactivity-event"

    @property
    def inactive_days(self) -> int:
        """Days without activity before a subject counts as inactive."""
        value = self.conditions.get("inactiveDays", DEFAULT_INACTIVE_DAYS)
        if isinstance(value, bool):
            return DEFAULT_INACTIVE_DAYS
        try:
            return int(value)
        except (TypeError, ValueError):
            return DEFAULT_INACTIVE_DAYS


Trigger = Annotated[
    Union[
        OnboardingTrigger,
        ReminderScheduleTrigger,
        PeriodicCheckinTrigger,
        MilestoneTrigger,
        SafetyTrigger,
        InactivityTrigger,
    ],
    Field(discriminator="type"),
]
TRIGGER_ADAPTER: TypeAdapter[Trigger] = TypeAdapter(Trigger)

TRIGGER_TYPES = frozenset({
    "onboarding-event",
    "reminder-schedule",
    "periodic-checkin",
    "milestone-event",
    "safety-event",
    "inactivity-event",
})


class SingleSubjectRecipients(BaseModel):
    """The subject named by the firing context (or each subject of a context list)."""
    model_config = PAYLOAD_CONFIG

    type: Literal["single-subject"] = "single-subject"


class AllAdminsRecipients(BaseModel):
    """Every active admin."""
    model_config = PAYLOAD_CONFIG

    type: Literal["all-admins"] = "all-admins"


class ExplicitListRecipients(BaseModel):
    """A fixed list of user ids."""
    model_config = PAYLOAD_CONFIG

    type: Literal["explicit-list"] = "explicit-list"
    user_ids: List[str] = Field(default_factory=list)
    recipient_type: RecipientType = "patient"


Recipients = Annotated[
    Union[SingleSubjectRecipients, AllAdminsRecipients, ExplicitListRecipients],
    Field(discriminator="type"),
]


class _ActionBase(BaseModel):
    model_config = PAYLOAD_CONFIG

    template_id: Optional[str] = None
    custom_message: Optional[str] = None
    priority: Priority = "normal"
    recipients: Recipients = Field(default_factory=SingleSubjectRecipients)


class SendMessageAction(_ActionBase):
    type: Literal["send-message"] = "send-message"
    channel: Optional[Channel] = Field(
        default=None,
        description="Delivery channel; chosen from the recipient type when omitted"
    )


class SendEmailAction(_ActionBase):
    type: Literal["send-email"] = "send-email"


class CreateAlertAction(_ActionBase):
    type: Literal["create-alert"] = "create-alert"


class AssignTaskAction(_ActionBase):
    type: Literal["assign-task"] = "assign-task"


Action = Annotated[
    Union[SendMessageAction, SendEmailAction, CreateAlertAction, AssignTaskAction],
    Field(discriminator="type"),
]
ACTION_ADAPTER: TypeAdapter[Action] = TypeAdapter(Action)


class AutomationRule(Base):
    """
    Automation rule entity.

    A named policy binding a trigger to an action. The engine never deletes
    rules; deactivation is a flag flip. `last_executed` only moves forward and
    is used to keep a scheduled rule from firing twice in the same slot.
    """

    __tablename__ = "automation_rules"

    id: Mapped[str] = mapped_column(String(MAX_ID_LENGTH), primary_key=True, default=lambda: str(uuid.uuid4()))
    """Opaque unique identifier."""

    name: Mapped[str] = mapped_column(String(MAX_STRING_LENGTH), nullable=False)
    """Display name."""

    trigger: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False)
    """Trigger payload (matches the Trigger pydantic variants)."""

    action: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False)
    """Action payload (matches the Action pydantic variants)."""

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    """Whether the rule is evaluated at all."""

    last_executed: Mapped[Optional[datetime]] = mapped_column(TZDateTime, nullable=True)
    """Last wall-clock instant this rule fired."""

    created_at: Mapped[datetime] = mapped_column(TZDateTime, nullable=False)
    """Timestamp when the rule was created."""

    updated_at: Mapped[datetime] = mapped_column(TZDateTime, nullable=False)
    """Timestamp when the rule was last updated."""

    @property
    def trigger_type(self) -> Optional[str]:
        """Raw trigger type, readable even when the payload fails validation."""
        if isinstance(self.trigger, dict):
            return self.trigger.get("type")
        return None

    def get_validated_trigger(self) -> Trigger:
        """Get trigger with schema validation."""
        return TRIGGER_ADAPTER.validate_python(self.trigger)

    def set_validated_trigger(self, trigger: Trigger):
        """Set trigger with schema validation."""
        self.trigger = trigger.model_dump(mode="json")

    def get_validated_action(self) -> Action:
        """Get action with schema validation."""
        return ACTION_ADAPTER.validate_python(self.action)

    def set_validated_action(self, action: Action):
        """Set action with schema validation."""
        self.action = action.model_dump(mode="json")

    def __repr__(self) -> str:
        return f"<AutomationRule(id={self.id}, name={self.name!r}, is_active={self.is_active})>"
