"""
Patient model representing program participants who receive automated messages.

Patients are owned by the admin console; the engine only reads them to build
scheduled-rule contexts (all active patients, inactive patients) and to fill
template placeholders.
"""

from sqlalchemy import String, Index
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime
from typing import Any, Dict, Optional

from core.constants import MAX_ID_LENGTH, MAX_STRING_LENGTH
from models.base import Base, TZDateTime


class Patient(Base):
    """
    Patient entity representing a program participant.
    """

    __tablename__ = "patients"

    id: Mapped[str] = mapped_column(String(MAX_ID_LENGTH), primary_key=True)
    """Unique identifier for the patient."""

    first_name: Mapped[str] = mapped_column(String(MAX_STRING_LENGTH))
    """First name, used by the {{patientName}} placeholder."""

    last_name: Mapped[Optional[str]] = mapped_column(String(MAX_STRING_LENGTH), nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default='active')
    """Program status: 'active', 'paused' or 'completed'. Only active patients receive scheduled messages."""

    current_week: Mapped[Optional[int]] = mapped_column(nullable=True)
    """Current program week."""

    peptide_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    """Prescribed peptide (e.g. 'Tirzepatide')."""

    current_weight: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    start_weight: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    last_activity_at: Mapped[Optional[datetime]] = mapped_column(TZDateTime, nullable=True)
    """Last time the patient logged a dose, result or message."""

    created_at: Mapped[datetime] = mapped_column(TZDateTime, nullable=False)
    """Timestamp when the patient was first created."""

    __table_args__ = (
        Index('idx_patients_status_activity', 'status', 'last_activity_at'),
    )

    def to_context(self) -> Dict[str, Any]:
        """Patient fields exposed to template rendering under the 'patient' context key."""
        return {
            "patient_id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "current_week": self.current_week,
            "peptide_type": self.peptide_type,
            "current_weight": self.current_weight,
            "start_weight": self.start_weight,
        }

    def __repr__(self) -> str:
        return f"<Patient(id={self.id}, first_name={self.first_name!r}, status={self.status})>"
