"""
routekit: request routing, binding and validation over a small threaded
HTTP/1.1 server.

    from routekit import HTTPServer, ServerConfig

    app = HTTPServer(ServerConfig(port=9000))

    @app.get("/page2/:name")
    def page2(ctx):
        return ctx.string(200, f"Hello {ctx.param('name')}")

    app.run()
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .context import Context, wrap_handler
from .errors import (
    BindError,
    HandlerError,
    InternalError,
    MalformedBody,
    NotFound,
    RoutekitError,
    ValidationFailed,
)
from .server import HTTPServer, create_app

__all__ = [
    "HTTPServer",
    "ServerConfig",
    "Context",
    "create_app",
    "wrap_handler",
    "RoutekitError",
    "NotFound",
    "MalformedBody",
    "BindError",
    "ValidationFailed",
    "HandlerError",
    "InternalError",
    "__version__",
]
