"""
Admin user model representing support staff who receive escalations and digests.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from core.constants import MAX_ID_LENGTH, MAX_STRING_LENGTH
from models.base import Base, TZDateTime


class AdminUser(Base):
    """
    Admin user entity.

    Read by the engine to resolve 'all-admins' recipients and daily digest
    recipients. Only admins with status 'active' are addressed.
    """

    __tablename__ = "admin_users"

    id: Mapped[str] = mapped_column(String(MAX_ID_LENGTH), primary_key=True)
    """Unique identifier for the admin."""

    name: Mapped[str] = mapped_column(String(MAX_STRING_LENGTH))
    """Display name of the admin."""

    email: Mapped[Optional[str]] = mapped_column(String(MAX_STRING_LENGTH), nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default='active')
    """Account status: 'active' or 'disabled'."""

    created_at: Mapped[datetime] = mapped_column(TZDateTime, nullable=False)

    def __repr__(self) -> str:
        return f"<AdminUser(id={self.id}, name={self.name!r}, status={self.status})>"
