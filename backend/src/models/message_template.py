"""
Message template model for automated notification content.

Templates carry `{{variable}}` placeholders that the template renderer fills
in when a rule fires. Rules reference templates by id; a rule pointing at a
missing or inactive template is skipped rather than failing the tick.
"""

from datetime import datetime
from typing import List, Optional
from sqlalchemy import JSON, Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from core.constants import MAX_ID_LENGTH, MAX_STRING_LENGTH
from models.base import Base, TZDateTime


class MessageTemplate(Base):
    """
    Message template entity.

    Created by the authoring surface and referenced by zero or more
    automation rules.
    """

    __tablename__ = "message_templates"

    id: Mapped[str] = mapped_column(String(MAX_ID_LENGTH), primary_key=True)
    """Template identifier referenced by rule actions (e.g. 'daily-dosing-reminder')."""

    name: Mapped[str] = mapped_column(String(MAX_STRING_LENGTH), nullable=False)
    """Display name."""

    category: Mapped[str] = mapped_column(String(50), nullable=False)
    """Category: 'onboarding', 'dosing', 'engagement', 'motivation', ..."""

    subject: Mapped[Optional[str]] = mapped_column(String(MAX_STRING_LENGTH), nullable=True)
    """Optional subject line, used as the title of email deliveries."""

    content: Mapped[str] = mapped_column(Text, nullable=False)
    """Template text with {{variable}} placeholders."""

    variables: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    """Declared placeholder names."""

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    """Inactive templates are treated as missing."""

    created_at: Mapped[datetime] = mapped_column(TZDateTime, nullable=False)
    """Timestamp when the template was created."""

    updated_at: Mapped[datetime] = mapped_column(TZDateTime, nullable=False)
    """Timestamp when the template was last updated."""

    def __repr__(self) -> str:
        return f"<MessageTemplate(id={self.id}, category={self.category}, is_active={self.is_active})>"
