"""
=============================================================================
ERROR NORMALIZER
=============================================================================

The single exit path for failed requests. Whatever went wrong, and in
whichever stage, the client receives the same shape:

    HTTP/1.1 400 Bad Request
    Content-Type: application/json; charset=utf-8

    {"message": "name is required",
     "detail": [{"field": "name", "constraint": "required", "param": null},
                {"field": "email", "constraint": "email", "param": null}]}

=============================================================================
MAPPING
=============================================================================

    failure              status               message
    ───────────────────  ───────────────────  ─────────────────────────────
    NotFound             404                  "Not Found"
    BindError            400                  names the offending field
    ValidationFailed     400                  first violation, see below
    MalformedBody        400 / 415            parser's message
    HandlerError         handler's status     handler's message
    HTTPParseError       parser's status      parser's message
    anything else        500                  str(exception)

Validation messages, one per constraint kind:

    required   "<field> is required"
    email      "<field> is not valid email"
    gte        "<field> value must be greater than <param>"
    lte        "<field> value must be lower than <param>"

Only the first violation, in declaration order, becomes the message. The
full list travels in "detail".

Every report is logged exactly once, on the "routekit.errors" logger,
before it is serialized.

=============================================================================
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional
import logging

from .binding.validator import ConstraintKind, Violation
from .errors import RoutekitError, ValidationFailed
from .http.request import HTTPParseError
from .http.response import HTTPResponse, ResponseBuilder
from .http.status_codes import HTTPStatus, reason_phrase


logger = logging.getLogger("routekit.errors")


VIOLATION_MESSAGES = {
    ConstraintKind.REQUIRED: "{field} is required",
    ConstraintKind.EMAIL: "{field} is not valid email",
    ConstraintKind.GTE: "{field} value must be greater than {param}",
    ConstraintKind.LTE: "{field} value must be lower than {param}",
}


@dataclass(frozen=True)
class ErrorReport:
    """Normalized failure: status, message and optional structured detail."""

    status: int
    message: str
    detail: Optional[Any] = None

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"message": self.message}
        if self.detail is not None:
            body["detail"] = self.detail
        return body

    def __str__(self) -> str:
        return f"code={int(self.status)}, message={self.message}"


def violation_message(violation: Violation) -> str:
    return VIOLATION_MESSAGES[violation.kind].format(
        field=violation.field, param=violation.param
    )


def normalize(exc: BaseException) -> ErrorReport:
    """Convert any failure into an ErrorReport."""
    if isinstance(exc, ValidationFailed):
        return ErrorReport(
            status=exc.status,
            message=violation_message(exc.violations[0]),
            detail=[v.to_dict() for v in exc.violations],
        )

    if isinstance(exc, RoutekitError):
        return ErrorReport(status=exc.status, message=exc.message)

    if isinstance(exc, HTTPParseError):
        return ErrorReport(status=exc.status_code, message=exc.message)

    status = getattr(exc, "status", None)
    if not isinstance(status, int) or not 400 <= status < 600:
        status = HTTPStatus.INTERNAL_SERVER_ERROR
    return ErrorReport(status=status, message=str(exc) or reason_phrase(status))


class ErrorNormalizer:
    """
    Turns failures into logged, serialized error responses.

        normalizer = ErrorNormalizer()
        try:
            ...
        except Exception as e:
            return normalizer.respond(e)
    """

    def __init__(self, error_logger: Optional[logging.Logger] = None):
        self.logger = error_logger or logger

    def respond(self, exc: BaseException) -> HTTPResponse:
        report = normalize(exc)
        self.log(report, exc)
        return self.render(report)

    def log(self, report: ErrorReport, exc: BaseException) -> None:
        # Expected failures are logged without a traceback
        expected = isinstance(exc, (RoutekitError, HTTPParseError))
        self.logger.error(str(report), exc_info=None if expected else exc)

    @staticmethod
    def render(report: ErrorReport) -> HTTPResponse:
        return (ResponseBuilder()
            .status(report.status)
            .json(report.to_dict())
            .build())
