"""
Escalation rule model and its watch-list bookkeeping.

An escalation rule matches message events (type, priority, keywords and an
optional response-time threshold) and schedules an ordered chain of delayed
notification steps. The engine only reads escalation rules; it records the
events it has seen (EscalationEvent) and, when dedupe is enabled, which rule
already fired for which event (EscalationFiring).
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator
from sqlalchemy import JSON, Boolean, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from core.constants import MAX_ID_LENGTH, MAX_STRING_LENGTH
from models.automation_rule import PAYLOAD_CONFIG
from models.base import Base, TZDateTime


class EscalationTrigger(BaseModel):
    """Schema for the conditions a message event must meet. Empty lists match anything."""
    model_config = PAYLOAD_CONFIG

    message_type: List[str] = Field(default_factory=list)
    keywords: List[str] = Field(default_factory=list)
    priority: List[str] = Field(default_factory=list)
    response_time_threshold: Optional[int] = Field(
        default=None,
        ge=1,
        description="Minutes that must already have elapsed since the event"
    )

    @field_validator('response_time_threshold', mode='before')
    @classmethod
    def zero_threshold_means_none(cls, v: Any) -> Any:
        """A threshold of 0 means no threshold."""
        if v == 0:
            return None
        return v


class EscalationStep(BaseModel):
    """Schema for one delayed follow-up in an escalation chain."""
    model_config = PAYLOAD_CONFIG

    step_number: int
    delay: int = Field(default=0, ge=0, description="Minutes after the triggering event")
    action: Literal["notify-admin", "notify-supervisor", "send-email", "create-alert"] = "notify-admin"
    recipients: List[str] = Field(default_factory=list)
    message: str

    @field_validator('action', mode='before')
    @classmethod
    def normalize_action(cls, v: Any) -> Any:
        """Accept snake_case action names ('notify_admin') as well."""
        if isinstance(v, str):
            return v.replace('_', '-')
        return v


class EscalationRule(Base):
    """
    Escalation rule entity. Steps are immutable once authored.
    """

    __tablename__ = "escalation_rules"

    id: Mapped[str] = mapped_column(String(MAX_ID_LENGTH), primary_key=True, default=lambda: str(uuid.uuid4()))
    name: Mapped[str] = mapped_column(String(MAX_STRING_LENGTH), nullable=False)

    trigger: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False)
    """Trigger payload (matches EscalationTrigger)."""

    escalation_steps: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    """Ordered step payloads (each matches EscalationStep)."""

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(TZDateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(TZDateTime, nullable=False)

    def get_validated_trigger(self) -> EscalationTrigger:
        """Get trigger with schema validation."""
        return EscalationTrigger.model_validate(self.trigger)

    def get_validated_steps(self) -> List[EscalationStep]:
        """Get steps with schema validation, sorted by step_number."""
        steps = [EscalationStep.model_validate(step) for step in (self.escalation_steps or [])]
        return sorted(steps, key=lambda step: step.step_number)

    def set_validated(self, trigger: EscalationTrigger, steps: List[EscalationStep]):
        """Set trigger and steps with schema validation."""
        self.trigger = trigger.model_dump()
        self.escalation_steps = [step.model_dump() for step in steps]

    def __repr__(self) -> str:
        return f"<EscalationRule(id={self.id}, name={self.name!r}, is_active={self.is_active})>"


class EscalationEvent(Base):
    """
    A message event seen by the escalation engine.

    Kept so that threshold-based rules can be re-checked on later ticks, and
    used as the message statistics source of the daily digest.
    """

    __tablename__ = "escalation_events"

    id: Mapped[str] = mapped_column(String(MAX_ID_LENGTH), primary_key=True)
    """The message id."""

    conversation_id: Mapped[Optional[str]] = mapped_column(String(MAX_ID_LENGTH), nullable=True)
    patient_id: Mapped[Optional[str]] = mapped_column(String(MAX_ID_LENGTH), nullable=True)
    message_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    priority: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")

    occurred_at: Mapped[datetime] = mapped_column(TZDateTime, nullable=False)
    """When the message was sent/received."""

    resolved_at: Mapped[Optional[datetime]] = mapped_column(TZDateTime, nullable=True)
    """Set once the conversation was answered; stops further re-checks."""

    created_at: Mapped[datetime] = mapped_column(TZDateTime, nullable=False)

    __table_args__ = (
        Index('idx_escalation_events_occurred', 'occurred_at'),
    )


class EscalationFiring(Base):
    """Dedupe record: escalation rule `rule_id` already scheduled its steps for `event_id`."""

    __tablename__ = "escalation_firings"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    event_id: Mapped[str] = mapped_column(ForeignKey("escalation_events.id", ondelete="CASCADE"), nullable=False)
    rule_id: Mapped[str] = mapped_column(ForeignKey("escalation_rules.id", ondelete="CASCADE"), nullable=False)
    fired_at: Mapped[datetime] = mapped_column(TZDateTime, nullable=False)

    __table_args__ = (
        UniqueConstraint('event_id', 'rule_id', name='uq_escalation_firing_event_rule'),
    )
