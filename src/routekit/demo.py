"""
Demo application: every routing, binding and validation feature on one
server.

    python -m routekit            # serves it on 127.0.0.1:9000

    curl localhost:9000/page3/Bob/hello/world
    Hello Bob, I have a message for you: hello/world

    curl -X POST localhost:9000/users -H 'Content-Type: application/json' \\
         -d '{"name": "", "email": "x", "age": 5}'
    {"message": "name is required", "detail": [...]}
"""

from dataclasses import dataclass
from typing import Optional

from .binding import FieldBinding, RecordBinding, email, gte, lte, required
from .config import ServerConfig
from .context import Context, wrap_handler
from .http.request import HTTPRequest
from .http.response import HTTPResponse, text
from .http.router import ResponseKind
from .http.status_codes import HTTPStatus
from .server import HTTPServer


@dataclass
class User:
    name: str = ""
    email: str = ""


@dataclass
class User2:
    name: str = ""
    email: str = ""
    age: int = 0


USER_BINDING = RecordBinding(User, [
    FieldBinding("name", str, json="name", form="name", query="name"),
    FieldBinding("email", str, json="email", form="email", query="email"),
])

USER2_BINDING = RecordBinding(
    User2,
    [
        FieldBinding("name", str, json="name"),
        FieldBinding("email", str, json="email"),
        FieldBinding("age", int, json="age"),
    ],
    constraints=[
        required("name"),
        required("email"), email("email"),
        gte("age", 0), lte("age", 80),
    ],
)


# Plain request handlers, mounted through wrap_handler()

def action_index(request: HTTPRequest) -> HTTPResponse:
    return text("from action index")


def action_home(request: HTTPRequest) -> HTTPResponse:
    return text("from action home")


def action_about(request: HTTPRequest) -> HTTPResponse:
    return text("from action about")


def register_routes(app: HTTPServer) -> None:
    @app.get("/index")
    def index(ctx: Context) -> HTTPResponse:
        return ctx.string(HTTPStatus.OK, "Hello from /index")

    @app.get("/html")
    def html(ctx: Context) -> HTTPResponse:
        return ctx.html(HTTPStatus.OK, "Hello from /html")

    @app.get("/redirect")
    def redirect(ctx: Context) -> HTTPResponse:
        return ctx.redirect(HTTPStatus.TEMPORARY_REDIRECT, "/index")

    @app.get("/json")
    def json_data(ctx: Context) -> HTTPResponse:
        return ctx.json(HTTPStatus.OK, {"Message": "Hello", "Counter": 2})

    @app.get("/page1", response=ResponseKind.TEXT)
    def page1(ctx: Context) -> str:
        return f"hello {ctx.query_param('name')}"

    @app.get("/page2/:name", name="page2", response=ResponseKind.TEXT)
    def page2(ctx: Context) -> str:
        return f"Hello {ctx.param('name')}"

    @app.get("/page3/:name/*", name="page3", response=ResponseKind.TEXT)
    def page3(ctx: Context) -> str:
        return f"Hello {ctx.param('name')}, I have a message for you: {ctx.param('*')}"

    @app.post("/page4", response=ResponseKind.TEXT)
    def page4(ctx: Context) -> str:
        name = ctx.form_value("name")
        message = ctx.form_value("message").replace("/", "", 1)
        return f"Hello {name}, I have a message for you: {message}"

    app.get("/index2")(wrap_handler(action_index))
    app.get("/home")(wrap_handler(action_home))
    app.get("/about")(wrap_handler(action_about))

    @app.any("/user", binding=USER_BINDING)
    def user(ctx: Context) -> HTTPResponse:
        return ctx.json(HTTPStatus.OK, USER_BINDING.to_dict(ctx.record))

    @app.post("/users", binding=USER2_BINDING)
    def users(ctx: Context) -> bool:
        return True


def build_app(config: Optional[ServerConfig] = None) -> HTTPServer:
    """Server with the demo routes registered; static files per config."""
    app = HTTPServer(config)
    register_routes(app)
    return app
