"""
Unit tests for inbound event routing.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

from models import EscalationEvent, NotificationQueueItem
from services.escalation_engine import EscalationEngine
from services.event_handler import handle_event

NOW = datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc)

NOTIFY = [{"step_number": 1, "delay": 0, "action": "notify-admin", "recipients": ["sup-1"], "message": "Check this"}]


class TestHandleEvent:
    """Test routing of each event kind."""

    def test_trigger_event_runs_matching_rules(self, db_session, make_rule):
        """Test that an automation trigger type runs the rule executor."""
        make_rule(
            "Welcome",
            {"type": "onboarding-event"},
            {"type": "send-message", "custom_message": "Welcome {{patientName}}!"},
        )

        handle_event(db_session, "onboarding-event", {"patientId": "p1", "patientName": "Ana"}, NOW)

        item = db_session.query(NotificationQueueItem).one()
        assert item.message == "Welcome Ana!"
        assert item.recipient_id == "p1"

    def test_message_event_is_checked_for_escalation(self, db_session, make_escalation_rule):
        """Test that message events are recorded and escalated."""
        make_escalation_rule("Any message", {"keywords": ["emergency"]}, NOTIFY)

        handle_event(
            db_session,
            "message-received",
            {"messageId": "m1", "conversationId": "c1", "content": "This is an emergency", "priority": "urgent"},
            NOW,
        )

        record = db_session.get(EscalationEvent, "m1")
        assert record is not None
        assert record.occurred_at == NOW
        assert db_session.query(NotificationQueueItem).count() == 2  # browser + email

    def test_message_resolved_stops_rechecks(self, db_session, make_escalation_rule):
        """Test that a resolved message is no longer re-checked."""
        make_escalation_rule("Slow reply", {"response_time_threshold": 15}, NOTIFY)
        handle_event(db_session, "message-received", {"messageId": "m1", "content": "hello"}, NOW)

        handle_event(db_session, "message-resolved", {"messageId": "m1"}, NOW + timedelta(minutes=5))

        assert db_session.get(EscalationEvent, "m1").resolved_at == NOW + timedelta(minutes=5)
        assert EscalationEngine.recheck_watched_events(db_session, NOW + timedelta(minutes=20)) == 0

    def test_message_resolved_without_id_is_ignored(self, db_session):
        """Test that a resolution without messageId does nothing."""
        with patch.object(EscalationEngine, "resolve_event") as resolve_event:
            handle_event(db_session, "message-resolved", {}, NOW)
        resolve_event.assert_not_called()

    def test_unknown_event_type_is_ignored(self, db_session):
        """Test that unknown event types neither raise nor write anything."""
        handle_event(db_session, "appointment-booked", {"patientId": "p1"}, NOW)
        assert db_session.query(NotificationQueueItem).count() == 0

    def test_malformed_message_event_does_not_raise(self, db_session):
        """Test that a message event without messageId is logged and dropped."""
        handle_event(db_session, "message-received", {"content": "no id"}, NOW)
        assert db_session.query(EscalationEvent).count() == 0

    def test_errors_are_contained(self, db_session):
        """Test that exceptions never reach the event source."""
        with patch.object(EscalationEngine, "check_event", side_effect=RuntimeError("db down")):
            handle_event(db_session, "message-sent", {"messageId": "m2"}, NOW)
