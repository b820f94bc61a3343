"""
=============================================================================
FAILURE TAXONOMY
=============================================================================

Every stage of the dispatch pipeline reports failure by raising one of the
exceptions below. None of them is caught locally: they travel up to the
dispatcher, which hands them to the error normalizer (normalizer.py).

    stage        raises               status
    ───────────  ───────────────────  ──────────────────────────────────
    routing      NotFound             404
    extraction   MalformedBody        400 (415 for unknown media types)
    binding      BindError            400
    validation   ValidationFailed     400
    handler      HandlerError         whatever the handler chose
    anywhere     InternalError        500

Any exception that is not a RoutekitError is treated like InternalError
by the normalizer, with the exception's own message.

=============================================================================
"""

from typing import TYPE_CHECKING, Any, List, Optional

from .http.status_codes import HTTPStatus

if TYPE_CHECKING:
    from .binding.validator import Violation


class RoutekitError(Exception):
    """
    Base class for pipeline failures.

    Attributes:
        status: HTTP status the failure maps to.
        message: Client-facing message.
    """

    status: int = HTTPStatus.INTERNAL_SERVER_ERROR
    default_message: str = "Internal Server Error"

    def __init__(self, message: Optional[str] = None, status: Optional[int] = None):
        self.message = message or self.default_message
        if status is not None:
            self.status = status
        super().__init__(self.message)


class NotFound(RoutekitError):
    """No route matches the request's method and path."""

    status = HTTPStatus.NOT_FOUND
    default_message = "Not Found"


class MalformedBody(RoutekitError):
    """The body cannot be parsed as its declared content type."""

    status = HTTPStatus.BAD_REQUEST
    default_message = "Malformed request body"


class BindError(RoutekitError):
    """
    A raw value could not be coerced to its field's declared type.

    Only the first offending field is reported.
    """

    status = HTTPStatus.BAD_REQUEST

    def __init__(self, field: str, value: Any, expected: str):
        self.field = field
        self.value = value
        self.expected = expected
        super().__init__(
            f"{field}: cannot bind {type(value).__name__} value {value!r} as {expected}"
        )


class ValidationFailed(RoutekitError):
    """A bound record violates one or more of its declared constraints."""

    status = HTTPStatus.BAD_REQUEST

    def __init__(self, violations: List["Violation"]):
        if not violations:
            raise ValueError("ValidationFailed needs at least one violation")
        self.violations = list(violations)
        super().__init__(f"{len(self.violations)} constraint violation(s)")


class HandlerError(RoutekitError):
    """
    A failure reported on purpose by a handler.

        raise HandlerError(HTTPStatus.CONFLICT, "user already exists")
    """

    def __init__(self, status: int, message: str):
        super().__init__(message, status=status)


class InternalError(RoutekitError):
    """An unexpected failure; answered with 500."""
