"""
Alert model for standalone alert and task records.

Written by 'create-alert' and 'assign-task' rule actions and by 'create-alert'
escalation steps. Alerts are shown by the admin console; they are never
delivered through a notification channel.
"""

from datetime import datetime
from typing import Any, Dict, Optional
from sqlalchemy import JSON, CheckConstraint, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from core.constants import MAX_ID_LENGTH, MAX_STRING_LENGTH
from models.base import Base, TZDateTime


class Alert(Base):
    """Alert or task entity."""

    __tablename__ = "alerts"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    kind: Mapped[str] = mapped_column(String(20), nullable=False, default='alert')
    """Kind: 'alert' or 'task'."""

    source: Mapped[str] = mapped_column(String(20), nullable=False, default='automation')
    """Source: 'automation' or 'escalation'."""

    title: Mapped[str] = mapped_column(String(MAX_STRING_LENGTH), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    priority: Mapped[str] = mapped_column(String(20), nullable=False, default='normal')

    patient_id: Mapped[Optional[str]] = mapped_column(String(MAX_ID_LENGTH), nullable=True)
    """Patient the alert is about, when known."""

    assignee_id: Mapped[Optional[str]] = mapped_column(String(MAX_ID_LENGTH), nullable=True)
    """User a task is assigned to."""

    rule_id: Mapped[Optional[str]] = mapped_column(String(MAX_ID_LENGTH), nullable=True)
    """Automation or escalation rule that produced the record."""

    data: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(TZDateTime, nullable=False)

    __table_args__ = (
        CheckConstraint("kind IN ('alert', 'task')", name='check_alert_kind'),
        CheckConstraint("source IN ('automation', 'escalation')", name='check_alert_source'),
    )

    def __repr__(self) -> str:
        return f"<Alert(id={self.id}, kind={self.kind}, source={self.source}, title={self.title!r})>"
