"""
=============================================================================
RECORD VALIDATION
=============================================================================

Constraints are declared once per record type, next to its field binding
table, and evaluated against each freshly bound record:

    USER_CONSTRAINTS = [
        required("name"),
        required("email"), email("email"),
        gte("age", 0), lte("age", 80),
    ]

    validate(User(name="", email="x", age=5), USER_CONSTRAINTS)
    # [Violation("name", REQUIRED, None), Violation("email", EMAIL, None)]

=============================================================================
EVALUATION ORDER
=============================================================================

Constraints run in declaration order and the result keeps that order.
Within one field, evaluation stops at its first failing constraint: an
empty email is reported as "required", not also as "not valid email".
Other fields are still evaluated, so the caller gets the complete list.
Whether to surface one violation or all of them is the caller's choice.

=============================================================================
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, List, Optional
import re


class ConstraintKind(Enum):
    REQUIRED = "required"
    EMAIL = "email"
    GTE = "gte"
    LTE = "lte"


@dataclass(frozen=True)
class Constraint:
    """A single declared rule: ``field`` must satisfy ``kind(param)``."""

    field: str
    kind: ConstraintKind
    param: Optional[Any] = None


@dataclass(frozen=True)
class Violation:
    """A constraint that a bound record failed."""

    field: str
    kind: ConstraintKind
    param: Optional[Any] = None

    def to_dict(self) -> dict:
        return {"field": self.field, "constraint": self.kind.value, "param": self.param}


# local@domain, where domain is one or more dot-separated DNS labels
EMAIL_PATTERN = re.compile(
    r"^[A-Za-z0-9.!#$%&'*+/=?^_`{|}~-]+"
    r"@[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?"
    r"(?:\.[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?)*$"
)


# =============================================================================
# DECLARATION HELPERS
# =============================================================================

def required(field: str) -> Constraint:
    return Constraint(field, ConstraintKind.REQUIRED)


def email(field: str) -> Constraint:
    return Constraint(field, ConstraintKind.EMAIL)


def gte(field: str, bound: int | float) -> Constraint:
    return Constraint(field, ConstraintKind.GTE, bound)


def lte(field: str, bound: int | float) -> Constraint:
    return Constraint(field, ConstraintKind.LTE, bound)


# =============================================================================
# EVALUATION
# =============================================================================

def is_zero(value: Any) -> bool:
    """True for the zero value of a bindable type: "", 0, 0.0, False, None."""
    return value is None or value == "" or value is False or (
        isinstance(value, (int, float)) and value == 0
    )


def check(constraint: Constraint, value: Any) -> bool:
    """
    Whether ``value`` satisfies ``constraint``.

    Raises:
        TypeError: If a numeric bound is declared on a non-numeric field.
            That is a declaration bug, not a client error.
    """
    kind = constraint.kind

    if kind is ConstraintKind.REQUIRED:
        return not is_zero(value)

    if kind is ConstraintKind.EMAIL:
        return isinstance(value, str) and EMAIL_PATTERN.match(value) is not None

    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(
            f"{kind.value} constraint on {constraint.field!r} needs a number, "
            f"got {type(value).__name__}"
        )
    if kind is ConstraintKind.GTE:
        return value >= constraint.param
    return value <= constraint.param


def validate(record: Any, constraints: Iterable[Constraint]) -> List[Violation]:
    """
    Evaluate ``constraints`` against ``record`` and collect violations.

    Args:
        record: A bound record; constraint fields are read as attributes.
        constraints: Declared constraints, in declaration order.

    Returns:
        Every violation, in declaration order. Empty means valid.
    """
    violations: List[Violation] = []
    failed_fields = set()

    for constraint in constraints:
        if constraint.field in failed_fields:
            continue
        value = getattr(record, constraint.field)
        if not check(constraint, value):
            violations.append(Violation(constraint.field, constraint.kind, constraint.param))
            failed_fields.add(constraint.field)

    return violations
