"""
Unit tests for URL router.
"""

import pytest

from routekit.errors import NotFound
from routekit.http.router import (
    ResponseKind,
    Router,
    SegmentKind,
    compile_pattern,
)


def handler_a(ctx):
    return "a"


def handler_b(ctx):
    return "b"


class TestCompilePattern:
    """Tests for pattern compilation."""

    def test_static_pattern(self):
        pattern, names, rank = compile_pattern("/index")
        assert pattern.match("/index")
        assert not pattern.match("/index/")
        assert names == []
        assert rank == (SegmentKind.STATIC,)

    def test_param_and_wildcard(self):
        pattern, names, rank = compile_pattern("/page3/:name/*")
        assert names == ["name", "*"]
        assert rank == (SegmentKind.STATIC, SegmentKind.PARAM, SegmentKind.WILDCARD)
        assert pattern.match("/page3/Bob/hello/world").groups() == ("Bob", "hello/world")
        assert pattern.match("/page3/Bob").groups() == ("Bob", None)

    def test_root(self):
        pattern, names, rank = compile_pattern("/")
        assert pattern.match("/")
        assert not pattern.match("/index")

    @pytest.mark.parametrize("bad", ["index", "/a/*/b", "/a/:x/:x"])
    def test_invalid_patterns(self, bad):
        with pytest.raises(ValueError):
            compile_pattern(bad)


class TestRouter:
    """Tests for Router class."""

    def test_resolve_param(self):
        """Path parameters are captured by name."""
        router = Router()
        router.add_route("/page2/:name", handler_a, method="GET")

        match = router.resolve("GET", "/page2/Alice")
        assert match.handler is handler_a
        assert match.params == {"name": "Alice"}

    def test_wildcard_is_greedy(self):
        router = Router()
        router.add_route("/page3/:name/*", handler_a, method="GET")

        match = router.resolve("GET", "/page3/Bob/hello/world")
        assert match.params == {"name": "Bob", "*": "hello/world"}

    def test_wildcard_may_be_empty(self):
        router = Router()
        router.add_route("/static/*", handler_a, method="GET")

        assert router.resolve("GET", "/static/").params == {"*": ""}
        assert router.resolve("GET", "/static").params == {"*": ""}
        with pytest.raises(NotFound):
            router.resolve("GET", "/staticfile")

    def test_wildcard_after_param_may_be_empty(self):
        router = Router()
        router.add_route("/page3/:name/*", handler_a, method="GET")

        assert router.resolve("GET", "/page3/Bob").params == {"name": "Bob", "*": ""}

    def test_exact_literal_beats_empty_wildcard(self):
        router = Router()
        router.add_route("/files/*", handler_a, method="GET")
        router.add_route("/files", handler_b, method="GET")

        assert router.resolve("GET", "/files").handler is handler_b
        assert router.resolve("GET", "/files/x").handler is handler_a

    def test_encoded_slash_stays_inside_param(self):
        router = Router()
        router.add_route("/page2/:name", handler_a, method="GET")

        assert router.resolve("GET", "/page2/a%2Fb").params == {"name": "a/b"}
        assert router.resolve("GET", "/page2/J%C3%BCrgen").params == {"name": "Jürgen"}

    def test_named_wildcard(self):
        router = Router()
        router.add_route("/files/*path", handler_a, method="GET")

        assert router.resolve("GET", "/files/a/b.txt").params == {"path": "a/b.txt"}

    def test_static_beats_param_beats_wildcard(self):
        router = Router()
        router.add_route("/users/*", handler_a, method="GET")
        router.add_route("/users/:id", handler_b, method="GET")
        router.add_route("/users/new", handler_a, method="GET", name="new")

        assert router.resolve("GET", "/users/new").route.name == "new"
        assert router.resolve("GET", "/users/42").handler is handler_b
        assert router.resolve("GET", "/users/42/posts").handler is handler_a

    def test_precedence_ignores_registration_order(self):
        first, second = Router(), Router()
        first.add_route("/users/:id", handler_b, method="GET")
        first.add_route("/users/new", handler_a, method="GET")
        second.add_route("/users/new", handler_a, method="GET")
        second.add_route("/users/:id", handler_b, method="GET")

        for router in (first, second):
            assert router.resolve("GET", "/users/new").handler is handler_a

    def test_method_specific_beats_any(self):
        router = Router()
        router.add_route("/user", handler_a)
        router.add_route("/user", handler_b, method="POST")

        assert router.resolve("POST", "/user").handler is handler_b
        assert router.resolve("GET", "/user").handler is handler_a
        assert router.resolve("DELETE", "/user").handler is handler_a

    def test_method_mismatch_is_not_found(self):
        router = Router()
        router.add_route("/users", handler_a, method="POST")

        with pytest.raises(NotFound):
            router.resolve("GET", "/users")

    def test_last_registration_wins(self):
        router = Router()
        router.add_route("/index", handler_a, method="GET")
        router.add_route("/index", handler_b, method="GET")

        assert len(router) == 1
        assert router.resolve("GET", "/index").handler is handler_b

    def test_resolve_is_idempotent(self):
        router = Router()
        router.add_route("/page3/:name/*", handler_a, method="GET")

        first = router.resolve("GET", "/page3/Bob/x/y")
        second = router.resolve("GET", "/page3/Bob/x/y")
        assert first == second

    def test_case_and_trailing_slash_are_significant(self):
        router = Router()
        router.add_route("/index", handler_a, method="GET")

        for path in ("/Index", "/index/", "/INDEX"):
            with pytest.raises(NotFound):
                router.resolve("GET", path)

    def test_unmatched_path(self):
        router = Router()
        with pytest.raises(NotFound) as exc_info:
            router.resolve("GET", "/nowhere")
        assert exc_info.value.status == 404

    def test_method_is_case_insensitive(self):
        router = Router()
        router.add_route("/index", handler_a, method="get")
        assert router.resolve("GET", "/index").handler is handler_a


class TestRouterDecorators:
    """Tests for decorator registration and metadata."""

    def test_decorators_register_and_return_handler(self):
        router = Router()

        @router.get("/a", response=ResponseKind.TEXT)
        def a(ctx):
            return "a"

        @router.any("/b")
        def b(ctx):
            return "b"

        assert a(None) == "a"
        assert router.resolve("GET", "/a").route.response is ResponseKind.TEXT
        assert router.resolve("PATCH", "/b").route.method is None

    def test_url_for(self):
        router = Router()
        router.get("/page2/:name", name="page2")(handler_a)
        router.get("/page3/:name/*", name="page3")(handler_a)

        assert router.url_for("page2", name="Alice") == "/page2/Alice"
        assert router.url_for("page3", name="Bob", **{"*": "x/y"}) == "/page3/Bob/x/y"
        assert router.url_for("missing") is None

    def test_replacing_route_drops_stale_name(self):
        router = Router()
        router.get("/index", name="old")(handler_a)
        router.get("/index")(handler_b)

        assert router.url_for("old") is None
