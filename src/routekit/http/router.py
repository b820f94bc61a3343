"""
=============================================================================
URL ROUTER
=============================================================================

Maps (method, path) to exactly one registered route.

    Pattern segments
    ─────────────────────────────────────────────────────────────────────
    literal     /page2          must equal the path segment exactly
    parameter   /:name          captures one segment (no "/")
    wildcard    /*  or /*rest   captures the whole remaining suffix,
                                separators included; last segment only;
                                empty when the path stops before it

    router.get("/page3/:name/*", handler)
    router.resolve("GET", "/page3/Bob/hello/world")
    # ResolvedMatch(route=..., params={"name": "Bob", "*": "hello/world"})
    router.resolve("GET", "/page3/Bob")
    # ResolvedMatch(route=..., params={"name": "Bob", "*": ""})

Matching runs on the raw, percent-encoded path; captured values are
decoded afterwards, so "/page2/a%2Fb" gives name="a/b".

=============================================================================
PRECEDENCE
=============================================================================

Every pattern is compiled to an anchored regex. When several routes match
a path, the most specific one wins, compared segment by segment from the
left:

    literal  >  parameter  >  wildcard

    /users/new      beats   /users/:id      for  /users/new
    /users/:id      beats   /users/*        for  /users/42
    /files/*        matches                     /files/a/b/c
    /files          beats   /files/*        for  /files

With identical segment shapes, a route registered for a specific method
beats one registered for ANY method. Registration order never decides,
because registering the same (method, pattern) twice replaces the first
route: last registration wins.

Matching is case-sensitive and trailing slashes are significant:
"/index/" does not match "/index".

=============================================================================
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Tuple
from urllib.parse import unquote
import logging
import re

from ..errors import NotFound

if TYPE_CHECKING:
    from ..binding.binder import RecordBinding


logger = logging.getLogger(__name__)

# Handler capability: takes a request context, returns an HTTPResponse or a
# payload to be rendered per the route's ResponseKind.
Handler = Callable[..., Any]

WILDCARD_KEY = "*"

ANY_METHOD = "ANY"


class ResponseKind(Enum):
    """How a handler's plain return value is serialized."""

    TEXT = "text"
    HTML = "html"
    JSON = "json"


class SegmentKind(IntEnum):
    """Segment kinds, valued by how specific they are."""

    WILDCARD = 0
    PARAM = 1
    STATIC = 2


# Outranks every segment kind: "/files" beats "/files/*" for the path "/files"
END_OF_PATTERN = SegmentKind.STATIC + 1


@dataclass
class Route:
    """
    A registered route.

    ``method`` is None for routes registered for any method.
    """

    path: str
    method: Optional[str]
    handler: Handler
    name: Optional[str] = None
    binding: Optional["RecordBinding"] = None
    response: ResponseKind = ResponseKind.JSON
    meta: Dict[str, Any] = field(default_factory=dict)

    _pattern: Optional[re.Pattern] = field(default=None, repr=False)
    _param_names: List[str] = field(default_factory=list, repr=False)
    _rank: Tuple[int, ...] = field(default=(), repr=False)

    @property
    def key(self) -> Tuple[str, str]:
        return (self.method or ANY_METHOD, self.path)


@dataclass(frozen=True)
class ResolvedMatch:
    """
    The outcome of resolving one request.

    Two resolutions of the same path against the same route table compare
    equal.
    """

    route: Route
    params: Dict[str, str]

    @property
    def handler(self) -> Handler:
        return self.route.handler


def compile_pattern(path: str) -> Tuple[re.Pattern, List[str], Tuple[int, ...]]:
    """
    Compile a route pattern.

        "/page3/:name/*"
            regex  ^/page3/([^/]+)(?:/(.*))?$
            names  ["name", "*"]
            rank   (STATIC, PARAM, WILDCARD)

    Groups are positional so that "*" can be a parameter name.

    Raises:
        ValueError: For a pattern without a leading "/", a wildcard that is
            not the final segment, or a repeated parameter name.
    """
    if not path.startswith("/"):
        raise ValueError(f"Route pattern must start with '/': {path!r}")

    segments = path.split("/")[1:]
    if segments == [""]:
        return re.compile(r"^/$"), [], ()

    param_names: List[str] = []
    rank: List[int] = []
    regex_parts = ["^"]

    for i, segment in enumerate(segments):
        if segment.startswith("*"):
            if i != len(segments) - 1:
                raise ValueError(f"Wildcard must be the last segment: {path!r}")
            param_names.append(segment[1:] or WILDCARD_KEY)
            # The separator is optional: "/files/*" also matches "/files"
            regex_parts.append("(?:/(.*))?")
            rank.append(SegmentKind.WILDCARD)

        elif segment.startswith(":") and len(segment) > 1:
            param_names.append(segment[1:])
            regex_parts.append("/([^/]+)")
            rank.append(SegmentKind.PARAM)

        else:
            regex_parts.append("/" + re.escape(segment))
            rank.append(SegmentKind.STATIC)

    if len(set(param_names)) != len(param_names):
        raise ValueError(f"Duplicate parameter name in {path!r}")

    regex_parts.append("$")
    return re.compile("".join(regex_parts)), param_names, tuple(rank)


class Router:
    """
    Route table plus resolution.

        router = Router()

        @router.get("/page2/:name", response=ResponseKind.TEXT)
        def page2(ctx):
            return f"Hello {ctx.param('name')}"

        match = router.resolve("GET", "/page2/Alice")
        match.params    # {"name": "Alice"}

    The table is filled at startup and only read afterwards, so it is
    shared across worker threads without locking.
    """

    def __init__(self):
        self._routes: Dict[Tuple[str, str], Route] = {}
        self._named_routes: Dict[str, Route] = {}

    # =========================================================================
    # REGISTRATION
    # =========================================================================

    def register(
        self,
        method: Optional[str],
        path: str,
        handler: Handler,
        name: Optional[str] = None,
        binding: Optional["RecordBinding"] = None,
        response: ResponseKind = ResponseKind.JSON,
        **meta: Any
    ) -> Route:
        """
        Register (or replace) a route.

        Args:
            method: HTTP method, or None / "ANY" for every method.
            path: Route pattern.
            handler: Callable taking a request context.
            name: Optional name for url_for().
            binding: Record binding the dispatcher runs before the handler.
            response: How plain return values are serialized.
            **meta: Free-form metadata kept on the route.

        Returns:
            The registered Route.
        """
        method = method.upper() if method else None
        if method == ANY_METHOD:
            method = None

        pattern, param_names, rank = compile_pattern(path)
        route = Route(
            path=path,
            method=method,
            handler=handler,
            name=name,
            binding=binding,
            response=response,
            meta=meta,
            _pattern=pattern,
            _param_names=param_names,
            _rank=rank,
        )

        previous = self._routes.get(route.key)
        if previous is not None:
            logger.debug(f"Replacing route {route.key[0]} {path}")
            if previous.name and self._named_routes.get(previous.name) is previous:
                del self._named_routes[previous.name]

        self._routes[route.key] = route
        if name:
            self._named_routes[name] = route
        return route

    def add_route(
        self,
        path: str,
        handler: Handler,
        method: Optional[str] = None,
        **kwargs: Any
    ) -> Route:
        """Path-first spelling of register()."""
        return self.register(method, path, handler, **kwargs)

    # =========================================================================
    # RESOLUTION
    # =========================================================================

    def resolve(self, method: str, path: str) -> ResolvedMatch:
        """
        Find the most specific route for ``method`` and ``path``.

        Raises:
            NotFound: If no route matches. A path that exists only under
                other methods is also NotFound.
        """
        method = method.upper()
        best: Optional[Tuple[Tuple[Tuple[int, ...], int], Route, re.Match]] = None

        for route in self._routes.values():
            if route.method is not None and route.method != method:
                continue
            match = route._pattern.match(path)
            if match is None:
                continue

            score = (route._rank + (END_OF_PATTERN,), 1 if route.method else 0)
            if best is None or score > best[0]:
                best = (score, route, match)

        if best is None:
            raise NotFound()

        _, route, match = best
        values = [unquote(value or "") for value in match.groups()]
        return ResolvedMatch(route=route, params=dict(zip(route._param_names, values)))

    # =========================================================================
    # DECORATORS
    # =========================================================================

    def route(
        self,
        path: str,
        method: Optional[str] = None,
        **kwargs: Any
    ) -> Callable[[Handler], Handler]:
        """Decorator form of register(); returns the handler unchanged."""
        def decorator(handler: Handler) -> Handler:
            self.register(method, path, handler, **kwargs)
            return handler
        return decorator

    def get(self, path: str, **kwargs: Any) -> Callable[[Handler], Handler]:
        return self.route(path, "GET", **kwargs)

    def post(self, path: str, **kwargs: Any) -> Callable[[Handler], Handler]:
        return self.route(path, "POST", **kwargs)

    def put(self, path: str, **kwargs: Any) -> Callable[[Handler], Handler]:
        return self.route(path, "PUT", **kwargs)

    def delete(self, path: str, **kwargs: Any) -> Callable[[Handler], Handler]:
        return self.route(path, "DELETE", **kwargs)

    def patch(self, path: str, **kwargs: Any) -> Callable[[Handler], Handler]:
        return self.route(path, "PATCH", **kwargs)

    def any(self, path: str, **kwargs: Any) -> Callable[[Handler], Handler]:
        """Register for every method."""
        return self.route(path, None, **kwargs)

    # =========================================================================
    # UTILITY METHODS
    # =========================================================================

    def url_for(self, name: str, **params: str) -> Optional[str]:
        """
        Build a path for a named route.

            router.url_for("page2", name="Alice")   # "/page2/Alice"

        Returns None for an unknown name.
        """
        route = self._named_routes.get(name)
        if route is None:
            return None

        segments = []
        for segment in route.path.split("/"):
            if segment.startswith(":") and segment[1:] in params:
                segment = params[segment[1:]]
            elif segment.startswith("*") and (segment[1:] or WILDCARD_KEY) in params:
                segment = params[segment[1:] or WILDCARD_KEY]
            segments.append(segment)
        return "/".join(segments)

    def routes(self) -> List[Route]:
        """Registered routes in registration order."""
        return list(self._routes.values())

    def print_routes(self) -> None:
        """Print the route table (shown in the startup banner)."""
        print("\nRegistered Routes:")
        print("-" * 60)
        for route in self.routes():
            method = route.method or ANY_METHOD
            print(f"  {method:8} {route.path}")
        print("-" * 60)

    def __len__(self) -> int:
        return len(self._routes)
