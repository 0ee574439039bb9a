"""
Unit tests for the automation rule condition evaluator.
"""

import pytest

from services.condition_evaluator import matches


class TestConditionMatching:
    """Test matches() over well-formed conditions."""

    def test_empty_conditions_always_match(self):
        """Test that empty or missing conditions match any context."""
        assert matches({}, {"anything": 1}) is True
        assert matches(None, {}) is True

    def test_all_keys_must_match(self):
        """Test that every condition key must be present and equal."""
        conditions = {"milestoneType": "weight_loss", "threshold": 5}
        assert matches(conditions, {"milestoneType": "weight_loss", "threshold": 5, "extra": True}) is True
        assert matches(conditions, {"milestoneType": "weight_loss", "threshold": 10}) is False
        assert matches(conditions, {"milestoneType": "weight_loss"}) is False

    def test_missing_key_does_not_equal_none(self):
        """Test that an absent key does not satisfy an expected None."""
        assert matches({"note": None}, {}) is False
        assert matches({"note": None}, {"note": None}) is True

    def test_string_and_number_are_not_equal(self):
        """Test that strict equality does not coerce types."""
        assert matches({"threshold": 5}, {"threshold": "5"}) is False
        assert matches({"threshold": "5"}, {"threshold": 5}) is False

    def test_int_and_float_compare_by_value(self):
        """Test that numbers compare numerically across int and float."""
        assert matches({"threshold": 5}, {"threshold": 5.0}) is True

    def test_booleans_only_equal_booleans(self):
        """Test that True does not equal 1 and False does not equal 0."""
        assert matches({"enabled": True}, {"enabled": 1}) is False
        assert matches({"enabled": 0}, {"enabled": False}) is False
        assert matches({"enabled": True}, {"enabled": True}) is True

    def test_containers_compare_by_identity(self):
        """Test that lists and dicts never match structurally."""
        tags = ["a", "b"]
        assert matches({"tags": ["a", "b"]}, {"tags": ["a", "b"]}) is False
        assert matches({"tags": tags}, {"tags": tags}) is True


class TestConditionMatchingMalformedInput:
    """Test that malformed input never raises."""

    @pytest.mark.parametrize("context", [None, "text", 42, ["patientId"]])
    def test_non_mapping_context(self, context):
        """Test that a non-mapping context is a non-match."""
        assert matches({"patientId": "p1"}, context) is False

    def test_non_mapping_conditions(self):
        """Test that non-mapping conditions are a non-match."""
        assert matches(["patientId"], {"patientId": "p1"}) is False

    def test_raising_comparison_is_non_match(self):
        """Test that an exception during evaluation yields False."""
        class Exploding(dict):
            def __contains__(self, key):
                raise RuntimeError("boom")

        assert matches({"patientId": "p1"}, Exploding(patientId="p1")) is False
