"""
Unit tests for constraint validation.
"""

from dataclasses import dataclass

import pytest

from routekit.binding import ConstraintKind, Violation, email, gte, lte, required, validate
from routekit.binding.validator import check
from routekit.demo import USER2_BINDING, User2


def violations_for(**fields):
    return validate(User2(**fields), USER2_BINDING.constraints)


class TestValidate:
    """Tests for validate()."""

    def test_valid_record(self):
        assert violations_for(name="A", email="a@b.com", age=30) == []

    def test_declaration_order(self):
        violations = violations_for(name="", email="x", age=5)
        assert [v.field for v in violations] == ["name", "email"]
        assert violations[0] == Violation("name", ConstraintKind.REQUIRED)

    def test_one_violation_per_field(self):
        violations = violations_for(name="A", email="", age=0)
        assert violations == [Violation("email", ConstraintKind.REQUIRED)]

    def test_bounds_are_inclusive(self):
        assert violations_for(name="A", email="a@b.com", age=0) == []
        assert violations_for(name="A", email="a@b.com", age=80) == []

    def test_upper_bound(self):
        assert violations_for(name="A", email="a@b.com", age=90) == [
            Violation("age", ConstraintKind.LTE, 80)
        ]

    def test_lower_bound(self):
        assert violations_for(name="A", email="a@b.com", age=-1) == [
            Violation("age", ConstraintKind.GTE, 0)
        ]

    def test_violation_to_dict(self):
        assert Violation("age", ConstraintKind.LTE, 80).to_dict() == {
            "field": "age", "constraint": "lte", "param": 80,
        }


class TestCheck:
    """Tests for single constraint checks."""

    @pytest.mark.parametrize("value", ["a@b.com", "first.last+tag@sub.example.org"])
    def test_valid_emails(self, value):
        assert check(email("email"), value)

    @pytest.mark.parametrize("value", ["x", "a@", "@b.com", "a b@c.com", "a@-b.com"])
    def test_invalid_emails(self, value):
        assert not check(email("email"), value)

    @pytest.mark.parametrize("value", ["", 0, 0.0, False, None])
    def test_required_rejects_zero_values(self, value):
        assert not check(required("x"), value)

    def test_numeric_bound_on_string_is_a_declaration_bug(self):
        with pytest.raises(TypeError):
            check(gte("name", 1), "abc")

    def test_lte(self):
        assert check(lte("age", 80), 80)
        assert not check(lte("age", 80), 81)
