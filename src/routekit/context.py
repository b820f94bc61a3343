"""
Request context: the one thing every handler receives.

A handler is any callable ``handler(ctx)`` returning either an
HTTPResponse (usually built with the helpers below) or a plain payload,
which the dispatcher serializes according to the route's ResponseKind.
Failures are reported by raising, never by returning.

    @router.get("/page2/:name")
    def page2(ctx: Context) -> HTTPResponse:
        return ctx.string(HTTPStatus.OK, f"Hello {ctx.param('name')}")
"""

from typing import Any, Callable, Dict, Optional, Sequence

from .binding import Constraint, RecordBinding, bind, extract_for_binding, validate
from .errors import ValidationFailed
from .http.request import HTTPRequest
from .http.response import HTTPResponse, ResponseBuilder
from .http.status_codes import HTTPStatus


class Context:
    """
    Per-request view handed to handlers.

    Attributes:
        request: The parsed request.
        params: Path parameters captured by the router.
        record: Bound and validated record, for routes that declare a
            binding; None otherwise.
    """

    def __init__(self, request: HTTPRequest, params: Optional[Dict[str, str]] = None):
        self.request = request
        self.params: Dict[str, str] = params if params is not None else request.path_params
        self.record: Any = None

    # =========================================================================
    # PARAMETERS
    # =========================================================================

    def param(self, name: str, default: str = "") -> str:
        """Path parameter; the bare wildcard is ``ctx.param("*")``."""
        return self.params.get(name, default)

    def query_param(self, name: str, default: str = "") -> str:
        return self.request.get_query(name, default)

    def form_value(self, name: str, default: str = "") -> str:
        """Form field, falling back to the query string."""
        return self.request.get_form(name, default)

    # =========================================================================
    # BINDING
    # =========================================================================

    def bind(self, binding: RecordBinding) -> Any:
        """
        Bind a record from path, query and body.

        Raises:
            MalformedBody: If the body cannot be parsed.
            BindError: If a value cannot be coerced.
        """
        return bind(binding, extract_for_binding(self.request, binding))

    def validate(self, record: Any, constraints: Sequence[Constraint]) -> None:
        """
        Raises:
            ValidationFailed: Carrying every violation, in declaration order.
        """
        violations = validate(record, constraints)
        if violations:
            raise ValidationFailed(violations)

    # =========================================================================
    # RESPONSES
    # =========================================================================

    def string(self, status: int, text: str) -> HTTPResponse:
        return ResponseBuilder().status(status).text(text).build()

    def html(self, status: int, html: str) -> HTTPResponse:
        return ResponseBuilder().status(status).html(html).build()

    def json(self, status: int, data: Any) -> HTTPResponse:
        return ResponseBuilder().status(status).json(data).build()

    def redirect(self, status: int, location: str) -> HTTPResponse:
        return ResponseBuilder().redirect(location, status).build()

    def no_content(self) -> HTTPResponse:
        return ResponseBuilder().status(HTTPStatus.NO_CONTENT).build()


def wrap_handler(func: Callable[[HTTPRequest], HTTPResponse]) -> Callable[[Context], HTTPResponse]:
    """
    Adapt a plain ``func(request) -> HTTPResponse`` to the handler shape.

        def action_index(request):
            return text("from action index")

        router.get("/index2")(wrap_handler(action_index))
    """
    def handler(ctx: Context) -> HTTPResponse:
        return func(ctx.request)

    handler.__name__ = getattr(func, "__name__", "wrapped_handler")
    handler.__wrapped__ = func
    return handler
