"""
Request binding: extraction, typed binding and validation.

    HTTPRequest ──extract──► RawFieldMap ──bind──► record ──validate──► [Violation]

Each step is usable on its own; the dispatcher runs all three for routes
that declare a RecordBinding.
"""

from .extractor import (
    RawFieldMap,
    Source,
    body_source,
    extract,
    extract_for_binding,
)
from .binder import (
    FieldBinding,
    RecordBinding,
    bind,
    bind_map,
    coerce,
)
from .validator import (
    Constraint,
    ConstraintKind,
    Violation,
    email,
    gte,
    lte,
    required,
    validate,
)

__all__ = [
    # Extraction
    "RawFieldMap",
    "Source",
    "body_source",
    "extract",
    "extract_for_binding",

    # Binding
    "FieldBinding",
    "RecordBinding",
    "bind",
    "bind_map",
    "coerce",

    # Validation
    "Constraint",
    "ConstraintKind",
    "Violation",
    "email",
    "gte",
    "lte",
    "required",
    "validate",
]
