"""
Unit tests for the rule store: active-rule queries, last_executed updates,
template lookups, subject queries and default seeding.
"""

from datetime import datetime, timedelta, timezone

from models import AutomationRule, EscalationRule, MessageTemplate
from services.rule_store import RuleStore

NOW = datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc)

SEND_MESSAGE = {"type": "send-message", "custom_message": "Hello", "recipients": {"type": "single-subject"}}


class TestActiveRules:
    """Test active rule queries."""

    def test_get_active_rules_excludes_inactive(self, db_session, make_rule):
        """Test that deactivated rules are not returned."""
        active = make_rule("Active", {"type": "onboarding-event"}, SEND_MESSAGE)
        make_rule("Inactive", {"type": "onboarding-event"}, SEND_MESSAGE, is_active=False)

        rules = RuleStore.get_active_rules(db_session)
        assert [rule.id for rule in rules] == [active.id]

    def test_get_active_rules_for_trigger(self, db_session, make_rule):
        """Test filtering active rules by trigger type."""
        onboarding = make_rule("Welcome", {"type": "onboarding-event"}, SEND_MESSAGE)
        make_rule("Milestone", {"type": "milestone-event"}, SEND_MESSAGE)

        rules = RuleStore.get_active_rules_for_trigger(db_session, "onboarding-event")
        assert [rule.id for rule in rules] == [onboarding.id]

    def test_get_active_escalation_rules(self, db_session, make_escalation_rule):
        """Test that only active escalation rules are returned."""
        step = {"step_number": 1, "delay": 0, "action": "notify-admin", "recipients": ["a1"], "message": "m"}
        active = make_escalation_rule("Active", {}, [step])
        make_escalation_rule("Inactive", {}, [step], is_active=False)

        assert [rule.id for rule in RuleStore.get_active_escalation_rules(db_session)] == [active.id]


class TestUpdateLastExecuted:
    """Test that last_executed only moves forward."""

    def test_first_update_sets_timestamp(self, db_session, make_rule):
        """Test setting last_executed on a rule that never ran."""
        rule = make_rule("Rule", {"type": "onboarding-event"}, SEND_MESSAGE)

        assert RuleStore.update_last_executed(db_session, rule, NOW) is True
        assert rule.last_executed == NOW

    def test_backward_update_is_ignored(self, db_session, make_rule):
        """Test that an older timestamp does not overwrite a newer one."""
        rule = make_rule("Rule", {"type": "onboarding-event"}, SEND_MESSAGE, last_executed=NOW)

        assert RuleStore.update_last_executed(db_session, rule, NOW - timedelta(minutes=5)) is False
        assert rule.last_executed == NOW

    def test_forward_update_survives_reload(self, db_session, make_rule):
        """Test that the stored timestamp round-trips as an aware datetime."""
        rule = make_rule("Rule", {"type": "onboarding-event"}, SEND_MESSAGE, last_executed=NOW)
        later = NOW + timedelta(days=1)

        assert RuleStore.update_last_executed(db_session, rule, later) is True
        db_session.commit()
        db_session.expire_all()

        reloaded = db_session.get(AutomationRule, rule.id)
        assert reloaded.last_executed == later
        assert reloaded.last_executed.tzinfo is not None


class TestTemplatesAndSubjects:
    """Test template lookups and subject queries."""

    def test_get_template_returns_active_template(self, db_session, make_template):
        """Test that an active template is returned."""
        make_template("daily-dosing-reminder", "Hi {{patientName}}")
        template = RuleStore.get_template(db_session, "daily-dosing-reminder")
        assert template is not None and template.content == "Hi {{patientName}}"

    def test_get_template_missing_or_inactive(self, db_session, make_template):
        """Test that missing and inactive templates both return None."""
        make_template("retired", "Old text", is_active=False)
        assert RuleStore.get_template(db_session, "retired") is None
        assert RuleStore.get_template(db_session, "does-not-exist") is None

    def test_get_active_patients(self, db_session, make_patient):
        """Test that only active patients are returned."""
        make_patient("p1", "John")
        make_patient("p2", "Paused", status="paused")
        assert [p.id for p in RuleStore.get_active_patients(db_session)] == ["p1"]

    def test_get_inactive_patients(self, db_session, make_patient):
        """Test that only active patients idle since before the cutoff are returned."""
        cutoff = NOW - timedelta(days=3)
        make_patient("idle", "Idle", last_activity_at=NOW - timedelta(days=5))
        make_patient("recent", "Recent", last_activity_at=NOW - timedelta(days=1))
        make_patient("never", "Never")
        make_patient("idle-paused", "Paused", status="paused", last_activity_at=NOW - timedelta(days=10))

        assert [p.id for p in RuleStore.get_inactive_patients(db_session, cutoff)] == ["idle"]

    def test_get_active_admins(self, db_session, make_admin):
        """Test that disabled admins are excluded."""
        make_admin("a1")
        make_admin("a2", status="disabled")
        assert [a.id for a in RuleStore.get_active_admins(db_session)] == ["a1"]


class TestDefaultSeeding:
    """Test the default templates and rules."""

    def test_initialize_defaults_is_idempotent(self, db_session):
        """Test that seeding twice creates records only once."""
        assert RuleStore.initialize_default_templates(db_session) == 5
        assert RuleStore.initialize_default_rules(db_session) == 5
        assert RuleStore.initialize_default_escalation_rules(db_session) == 1

        assert RuleStore.initialize_default_templates(db_session) == 0
        assert RuleStore.initialize_default_rules(db_session) == 0
        assert RuleStore.initialize_default_escalation_rules(db_session) == 0

        assert db_session.query(MessageTemplate).count() == 5
        assert db_session.query(AutomationRule).count() == 5
        assert db_session.query(EscalationRule).count() == 1

    def test_default_rules_reference_default_templates(self, db_session):
        """Test that every default rule points at a seeded template and validates."""
        RuleStore.initialize_default_templates(db_session)
        RuleStore.initialize_default_rules(db_session)

        for rule in RuleStore.get_active_rules(db_session):
            rule.get_validated_trigger()
            action = rule.get_validated_action()
            assert RuleStore.get_template(db_session, action.template_id) is not None

    def test_default_weekly_checkin_runs_monday(self, db_session):
        """Test the weekly check-in schedule (Monday = 1 with Sunday = 0)."""
        RuleStore.initialize_default_rules(db_session)
        rule = db_session.get(AutomationRule, "default-weekly-checkin")
        schedule = rule.get_validated_trigger().schedule
        assert schedule.frequency == "weekly"
        assert schedule.time == "10:00"
        assert schedule.days_of_week == [1]

    def test_default_escalation_rule_steps(self, db_session):
        """Test the safety escalation chain: immediate notify, email after 30 minutes."""
        RuleStore.initialize_default_escalation_rules(db_session)
        rule = db_session.get(EscalationRule, "default-safety-alert-escalation")
        steps = rule.get_validated_steps()

        assert [(s.step_number, s.delay, s.action) for s in steps] == [
            (1, 0, "notify-admin"),
            (2, 30, "send-email"),
        ]
        assert rule.get_validated_trigger().response_time_threshold == 15
