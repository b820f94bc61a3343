"""
=============================================================================
REQUEST DISPATCHER
=============================================================================

Runs one request through the pipeline:

    Received ─► Routed ─► Extracted ─► Bound ─► Validated ─► Handled ─► Responded
       │          │           │          │          │            │
       └──────────┴───────────┴──────────┴──────────┴────────────┴──► Failed

Routes without a RecordBinding skip straight from Routed to Handled. Any
exception, raised in any stage, ends in Failed: the ErrorNormalizer turns
it into the response. Nothing past the failing stage runs, so a handler is
never invoked with a record that did not validate.

=============================================================================
"""

from enum import Enum
from typing import Any
import logging

from .binding import bind, extract_for_binding, validate
from .context import Context
from .errors import ValidationFailed
from .http.request import HTTPRequest
from .http.response import HTTPResponse, ResponseBuilder
from .http.router import ResponseKind, Route, Router
from .normalizer import ErrorNormalizer


logger = logging.getLogger(__name__)


class Stage(Enum):
    RECEIVED = "received"
    ROUTED = "routed"
    EXTRACTED = "extracted"
    BOUND = "bound"
    VALIDATED = "validated"
    HANDLED = "handled"
    RESPONDED = "responded"


class Dispatcher:
    """
    Drives the pipeline for a router.

        dispatcher = Dispatcher(router)
        response = dispatcher.dispatch(request)

    dispatch() never raises for request-level failures.
    """

    def __init__(self, router: Router, normalizer: ErrorNormalizer = None):
        self.router = router
        self.normalizer = normalizer or ErrorNormalizer()

    def dispatch(self, request: HTTPRequest) -> HTTPResponse:
        stage = Stage.RECEIVED
        try:
            match = self.router.resolve(request.method, request.path)
            request.path_params = dict(match.params)
            stage = self._advance(request, Stage.ROUTED)

            ctx = Context(request, request.path_params)
            binding = match.route.binding
            if binding is not None:
                layers = extract_for_binding(request, binding)
                stage = self._advance(request, Stage.EXTRACTED)

                record = bind(binding, layers)
                stage = self._advance(request, Stage.BOUND)

                violations = validate(record, binding.constraints)
                if violations:
                    raise ValidationFailed(violations)
                ctx.record = record
                stage = self._advance(request, Stage.VALIDATED)

            result = match.handler(ctx)
            stage = self._advance(request, Stage.HANDLED)

            response = self.render(match.route, result)
            self._advance(request, Stage.RESPONDED)
            return response

        except Exception as e:
            logger.debug(f"{request.method} {request.path}: failed after {stage.value}")
            return self.normalizer.respond(e)

    @staticmethod
    def render(route: Route, result: Any) -> HTTPResponse:
        """
        Serialize a handler's return value.

        HTTPResponse objects pass through untouched. Anything else is
        rendered with status 200 per the route's ResponseKind; None gives
        an empty body.
        """
        if isinstance(result, HTTPResponse):
            return result

        builder = ResponseBuilder()
        if result is None:
            return builder.build()

        if route.response is ResponseKind.TEXT:
            return builder.text(str(result)).build()
        if route.response is ResponseKind.HTML:
            return builder.html(str(result)).build()

        try:
            return builder.json(result).build()
        except (TypeError, ValueError) as e:
            raise TypeError(f"Handler result is not JSON serializable: {e}") from e

    @staticmethod
    def _advance(request: HTTPRequest, stage: Stage) -> Stage:
        logger.debug(f"{request.method} {request.path}: {stage.value}")
        return stage
