"""
Test configuration and shared fixtures for the notification engine test suite.

Uses an in-memory SQLite database per test: the schema is created from the
models before each test and dropped afterwards, so every test starts from a
clean database and application code may commit freely.
"""

import pytest
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Generator, List, Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from core.database import Base
# Import all models to ensure they're registered with Base.metadata
from models import (
    AdminUser, AutomationRule, EscalationRule, MessageTemplate, NotificationQueueItem, Patient,
)
from models.automation_rule import ACTION_ADAPTER, TRIGGER_ADAPTER
from models.escalation_rule import EscalationStep, EscalationTrigger
from services.notification_queue_service import NotificationQueueService


@pytest.fixture(scope="function")
def db_engine():
    """
    Create an in-memory SQLite engine with the full schema.

    StaticPool keeps the single in-memory connection alive for the whole test.
    """
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        echo=False,
    )
    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """
    Provide a database session configured like SessionLocal.
    """
    TestSession = sessionmaker(bind=db_engine, autocommit=False, autoflush=False, expire_on_commit=False)
    session = TestSession()

    yield session

    session.rollback()
    session.close()


@pytest.fixture
def db_context(db_session):
    """
    Replacement for core.database.get_db_context that yields the test session.

    Usage:
        with patch('services.notification_scheduler.get_db_context', db_context):
            ...
    """
    @contextmanager
    def _context():
        yield db_session
        db_session.commit()
    return _context


def _utc(year: int, month: int, day: int, hour: int = 0, minute: int = 0, second: int = 0) -> datetime:
    """Build an aware UTC datetime (the engine timezone under test)."""
    return datetime(year, month, day, hour, minute, second, tzinfo=timezone.utc)


@pytest.fixture
def make_template(db_session):
    """Factory fixture creating a message template."""
    def _make(
        template_id: str,
        content: str,
        subject: Optional[str] = None,
        is_active: bool = True,
        category: str = "general"
    ) -> MessageTemplate:
        template = MessageTemplate(
            id=template_id,
            name=template_id.replace("-", " ").title(),
            category=category,
            subject=subject,
            content=content,
            variables=[],
            is_active=is_active,
        )
        db_session.add(template)
        db_session.flush()
        return template
    return _make


@pytest.fixture
def make_rule(db_session):
    """Factory fixture creating an automation rule from trigger/action payloads."""
    def _make(
        name: str,
        trigger: Dict[str, Any],
        action: Dict[str, Any],
        is_active: bool = True,
        last_executed: Optional[datetime] = None,
        rule_id: Optional[str] = None
    ) -> AutomationRule:
        rule = AutomationRule(name=name, is_active=is_active, last_executed=last_executed)
        if rule_id:
            rule.id = rule_id
        rule.set_validated_trigger(TRIGGER_ADAPTER.validate_python(trigger))
        rule.set_validated_action(ACTION_ADAPTER.validate_python(action))
        db_session.add(rule)
        db_session.flush()
        return rule
    return _make


@pytest.fixture
def make_patient(db_session):
    """Factory fixture creating a patient."""
    def _make(
        patient_id: str,
        first_name: str,
        status: str = "active",
        last_activity_at: Optional[datetime] = None,
        **fields: Any
    ) -> Patient:
        patient = Patient(
            id=patient_id,
            first_name=first_name,
            status=status,
            last_activity_at=last_activity_at,
            **fields,
        )
        db_session.add(patient)
        db_session.flush()
        return patient
    return _make


@pytest.fixture
def make_admin(db_session):
    """Factory fixture creating an admin user."""
    def _make(admin_id: str, name: str = "Admin", status: str = "active") -> AdminUser:
        admin = AdminUser(id=admin_id, name=name, email=f"{admin_id}@example.com", status=status)
        db_session.add(admin)
        db_session.flush()
        return admin
    return _make


@pytest.fixture
def make_escalation_rule(db_session):
    """Factory fixture creating an escalation rule."""
    def _make(
        name: str,
        trigger: Dict[str, Any],
        steps: List[Dict[str, Any]],
        is_active: bool = True
    ) -> EscalationRule:
        rule = EscalationRule(name=name, is_active=is_active)
        rule.set_validated(
            EscalationTrigger.model_validate(trigger),
            [EscalationStep.model_validate(step) for step in steps],
        )
        db_session.add(rule)
        db_session.flush()
        return rule
    return _make


@pytest.fixture
def make_queue_item(db_session):
    """Factory fixture queueing a notification with sensible defaults."""
    def _make(
        recipient_id: str = "patient-1",
        recipient_type: str = "patient",
        channel: str = "push",
        priority: str = "normal",
        title: str = "Title",
        message: str = "Message",
        scheduled_for: Optional[datetime] = None,
        data: Optional[Dict[str, Any]] = None
    ) -> NotificationQueueItem:
        return NotificationQueueService.enqueue(
            db_session,
            recipient_id=recipient_id,
            recipient_type=recipient_type,
            channel=channel,
            title=title,
            message=message,
            scheduled_for=scheduled_for or _utc(2026, 3, 10, 9, 0),
            priority=priority,
            data=data,
        )
    return _make
