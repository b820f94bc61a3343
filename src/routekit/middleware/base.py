"""
Middleware: code that runs around the dispatcher for every request.

A middleware is called with the request and the rest of the chain:

    class Timing(Middleware):
        def __call__(self, request, next):
            response = next(request)
            response.set_header("X-Handled", "yes")
            return response

Middleware added first is outermost. It sees the request first and the
response last:

    pipeline.use(LoggingMiddleware(), Timing())
    handle = pipeline.wrap(dispatcher.dispatch)

    Logging ─► Timing ─► dispatch ─► Timing ─► Logging

The dispatcher already converts failures into error responses, so
middleware normally only ever sees responses.
"""

from abc import ABC, abstractmethod
from typing import Callable, Iterator, List, Optional
import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)

NextHandler = Callable[[HTTPRequest], HTTPResponse]


class Middleware(ABC):
    """Base class for middleware."""

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        """
        Handle ``request``, normally by calling ``next(request)``.

        Returning without calling ``next`` short-circuits the chain.
        """

    @property
    def name(self) -> str:
        return self.__class__.__name__


class FunctionMiddleware(Middleware):
    """Adapts a plain ``func(request, next)`` to the Middleware interface."""

    def __init__(
        self,
        func: Callable[[HTTPRequest, NextHandler], HTTPResponse],
        name: Optional[str] = None
    ):
        self._func = func
        self._name = name or func.__name__

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        return self._func(request, next)

    @property
    def name(self) -> str:
        return self._name


class MiddlewarePipeline:
    """Ordered middleware list that wraps a final handler."""

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware) -> "MiddlewarePipeline":
        """
        Append middleware. Plain functions are wrapped in FunctionMiddleware.

        Returns:
            Self, for chaining.
        """
        if not isinstance(middleware, Middleware):
            middleware = FunctionMiddleware(middleware)
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware.name}")
        return self

    def use(self, *middleware) -> "MiddlewarePipeline":
        for mw in middleware:
            self.add(mw)
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """Build the chain, first-added outermost."""
        current = handler
        for middleware in reversed(self._middleware):
            current = self._bind(middleware, current)
        return current

    @staticmethod
    def _bind(middleware: Middleware, next_handler: NextHandler) -> NextHandler:
        def wrapped(request: HTTPRequest) -> HTTPResponse:
            return middleware(request, next_handler)
        return wrapped

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self) -> Iterator[Middleware]:
        return iter(self._middleware)
