"""notification_engine_baseline

Revision ID: 3b1f0c9d2a47
Revises:
Create Date: 2026-03-02 10:15:00.000000

Baseline migration for the notification engine. Creates every table from the
current model definitions: automation rules, message templates, the
notification queue, notification preferences, escalation rules with their
watch list and firing records, alerts, and the read-only patient/admin tables.
"""
from typing import Sequence, Union

from alembic import op

# Import all models to ensure they're registered with Base.metadata
from core.database import Base
import models  # noqa: F401


# revision identifiers, used by Alembic.
revision: str = '3b1f0c9d2a47'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """
    Create all database tables from SQLAlchemy models.

    Includes the check constraints on queue status/channel/priority/recipient
    type and alert kind/source, the unique constraints on notification
    preferences and escalation firings, and the queue dispatch indexes.
    """
    Base.metadata.create_all(bind=op.get_bind())


def downgrade() -> None:
    """
    Drop all database tables.
    """
    Base.metadata.drop_all(bind=op.get_bind())
