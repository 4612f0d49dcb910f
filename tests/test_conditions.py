"""
Tests for conditions.
"""

from types import SimpleNamespace

import pytest

from flowpipe.conditions import CallableCondition, Condition, as_condition, build_condition, data_get
from flowpipe.core import FlowValidationError


@pytest.mark.unit
class TestNamedPredicates:
    """Tests for named predicates."""

    @pytest.mark.parametrize("name,payload,expected", [
        ("always_true", None, True),
        ("always_false", "x", False),
        ("is_string", "abc", True),
        ("is_string", 123, False),
        ("is_numeric", 12.5, True),
        ("is_numeric", "42", True),
        ("is_numeric", "forty", False),
        ("is_numeric", True, False),
        ("is_array", [1], True),
        ("is_array", {"a": 1}, True),
        ("is_array", "ab", False),
        ("is_empty", [], True),
        ("is_empty", "x", False),
        ("is_not_empty", "x", True),
    ])
    def test_named(self, name, payload, expected):
        """Test each named predicate."""
        assert build_condition(name).evaluate(payload) is expected

    def test_field_truthiness(self):
        """Test unknown names are dotted field paths."""
        condition = build_condition("user.is_active")

        assert condition.evaluate({"user": {"is_active": True}}) is True
        assert condition.evaluate({"user": {"is_active": False}}) is False
        assert condition.evaluate({}) is False

    def test_empty_name(self):
        """Test empty names are rejected."""
        with pytest.raises(FlowValidationError):
            build_condition("   ")


@pytest.mark.unit
class TestComparisons:
    """Tests for field comparisons."""

    @pytest.mark.parametrize("operator,value,expected", [
        ("equals", "gold", True),
        ("not_equals", "gold", False),
        ("contains", "ol", True),
        ("starts_with", "go", True),
        ("ends_with", "ld", True),
        ("ends_with", "xx", False),
    ])
    def test_string_operators(self, operator, value, expected):
        """Test operators over a string field."""
        condition = build_condition({"field": "tier", "operator": operator, "value": value})

        assert condition.evaluate({"tier": "gold"}) is expected

    def test_ordering_operators(self):
        """Test greater_than and less_than."""
        over = build_condition({"field": "order.total", "operator": "greater_than", "value": 100})
        under = build_condition({"field": "order.total", "operator": "less_than", "value": 100})

        assert over.evaluate({"order": {"total": 150}}) is True
        assert under.evaluate({"order": {"total": 150}}) is False

    def test_incomparable_values_are_false(self):
        """Test type mismatches evaluate to False instead of raising."""
        condition = build_condition({"field": "total", "operator": "greater_than", "value": 1})

        assert condition.evaluate({"total": "abc"}) is False
        assert condition.evaluate({}) is False

    def test_contains_on_list(self):
        """Test contains over sequences."""
        condition = build_condition({"field": "roles", "operator": "contains", "value": "admin"})

        assert condition.evaluate({"roles": ["user", "admin"]}) is True
        assert condition.evaluate({"roles": None}) is False

    def test_unknown_operator(self):
        """Test unknown operators are rejected."""
        with pytest.raises(FlowValidationError):
            build_condition({"field": "a", "operator": "matches", "value": 1})

    def test_incomplete_mapping(self):
        """Test field and operator are required."""
        with pytest.raises(FlowValidationError):
            build_condition({"field": "a"})


@pytest.mark.unit
class TestConditionCoercion:
    """Tests for as_condition and data_get."""

    def test_callable(self):
        """Test callables are wrapped."""
        condition = as_condition(lambda payload: payload > 1)

        assert isinstance(condition, CallableCondition)
        assert condition.evaluate(2) is True
        assert condition.evaluate(0) is False

    def test_condition_passthrough(self):
        """Test conditions are returned unchanged."""
        class Always(Condition):
            def evaluate(self, payload):
                return True

        condition = Always()

        assert as_condition(condition) is condition

    def test_unsupported(self):
        """Test unsupported values."""
        with pytest.raises(FlowValidationError):
            as_condition(42)

    def test_data_get(self):
        """Test nested lookups through mappings, sequences and attributes."""
        payload = {"items": [{"name": "a"}, {"name": "b"}], "user": SimpleNamespace(email="x@y.z")}

        assert data_get(payload, "items.1.name") == "b"
        assert data_get(payload, "user.email") == "x@y.z"
        assert data_get(payload, "items.9.name", "none") == "none"
        assert data_get(payload, "missing.path") is None
