"""
=============================================================================
HTTP SERVER
=============================================================================

Ties the pieces together:

    SocketServer ─► ThreadPool ─► Connection ─► RequestParser
                                                     │
                        Middleware ─► Dispatcher ◄───┘
                                          │
                     Router ─► binding ─► handler ─► HTTPResponse

Every failure a client can cause, whether an unparseable request, a read
timeout, a saturated worker pool or anything raised inside the pipeline,
is answered through the same ErrorNormalizer, so error bodies always have
the same JSON shape.

    server = HTTPServer(ServerConfig(port=9000))

    @server.get("/page2/:name")
    def page2(ctx):
        return ctx.string(200, f"Hello {ctx.param('name')}")

    server.use(LoggingMiddleware())
    server.run()

handle() runs a parsed request through middleware and dispatcher without
any sockets, which is what the tests use.

=============================================================================
"""

from typing import Callable, Optional, Tuple
import logging

from .config import ServerConfig
from .core import Connection, SocketServer, ThreadPool
from .dispatcher import Dispatcher
from .handlers.static import StaticFileHandler
from .http.request import HTTPParseError, HTTPRequest, RequestParser
from .http.response import HTTPResponse
from .http.router import Route, Router
from .http.status_codes import HTTPStatus
from .middleware import Middleware, MiddlewarePipeline
from .normalizer import ErrorNormalizer


logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class HTTPServer:
    def __init__(self, config: Optional[ServerConfig] = None):
        self.config = config or ServerConfig()
        self.config.validate()

        self.router = Router()
        self.normalizer = ErrorNormalizer()
        self.dispatcher = Dispatcher(self.router, self.normalizer)

        self._middleware = MiddlewarePipeline()
        self._chain: Optional[Callable[[HTTPRequest], HTTPResponse]] = None
        self._parser = RequestParser(max_request_size=self.config.max_request_size)
        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
        )
        self._running = False

        if self.config.static_dir:
            self.static(self.config.static_url_prefix, self.config.static_dir)

    # =========================================================================
    # APPLICATION SETUP
    # =========================================================================

    def use(self, middleware: Middleware) -> "HTTPServer":
        """Add middleware; first added runs outermost."""
        self._middleware.add(middleware)
        self._chain = None
        return self

    def route(self, path: str, method: Optional[str] = None, **kwargs):
        return self.router.route(path, method, **kwargs)

    def get(self, path: str, **kwargs):
        return self.router.get(path, **kwargs)

    def post(self, path: str, **kwargs):
        return self.router.post(path, **kwargs)

    def put(self, path: str, **kwargs):
        return self.router.put(path, **kwargs)

    def delete(self, path: str, **kwargs):
        return self.router.delete(path, **kwargs)

    def any(self, path: str, **kwargs):
        return self.router.any(path, **kwargs)

    def static(self, prefix: str, root_dir: str) -> Route:
        """
        Serve ``root_dir`` under ``prefix``.

        Registers "/static/*", which also matches the bare "/static" and
        serves the index file there.
        """
        handler = StaticFileHandler(root_dir, cache_max_age=3600)
        return self.router.register("GET", prefix.rstrip("/") + "/*", handler.handle, name="static")

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """Run one parsed request through middleware and the dispatcher."""
        if self._chain is None:
            self._chain = self._middleware.wrap(self.dispatcher.dispatch)
        return self._chain(request)

    @property
    def address(self) -> Tuple[str, int]:
        return self._socket_server.address

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def run(self, host: Optional[str] = None, port: Optional[int] = None) -> None:
        """Serve until SIGINT/SIGTERM or stop()."""
        if host:
            self.config.host = host
        if port is not None:
            self.config.port = port

        self._setup_logging()
        self._running = True
        self._thread_pool.start()
        logger.info(f"Starting {self.config.server_name} on {self.config.host}:{self.config.port}")
        logger.info(f"{len(self.router)} routes registered")

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_until_ready(timeout)

    def stop(self) -> None:
        self._socket_server.shutdown()

    def _setup_logging(self) -> None:
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)
        logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
        logging.getLogger("routekit").setLevel(level)

    def _shutdown(self) -> None:
        logger.info("Shutting down server...")
        self._running = False
        self._thread_pool.shutdown(wait=True)
        logger.info("Server stopped")

    # =========================================================================
    # CONNECTIONS (worker threads)
    # =========================================================================

    def _handle_connection(self, conn: Connection) -> None:
        submitted = self._thread_pool.submit(
            self._process_connection,
            args=(conn,),
            timeout=self.config.timeout,
            block=False,
            on_reject=lambda: self._reject_connection(conn),
        )
        if not submitted:
            logger.warning(f"[{conn.id}] Thread pool full, rejecting connection")
            self._reject_connection(conn)

    def _reject_connection(self, conn: Connection) -> None:
        """Answer 503 and close; used when no worker takes the connection."""
        with conn:
            self._send_error(conn, HTTPParseError("Server overloaded", HTTPStatus.SERVICE_UNAVAILABLE))

    def _process_connection(self, conn: Connection) -> None:
        with conn:
            while self._running:
                try:
                    raw = conn.read_request()
                    if raw is None:
                        break
                    request = self._parser.parse(raw, conn.address)
                except HTTPParseError as e:
                    self._send_error(conn, e)
                    break

                response = self.handle(request)
                keep_alive = self.config.keep_alive and request.is_keep_alive
                if keep_alive:
                    response.headers.setdefault("Connection", "keep-alive")
                    response.headers.setdefault(
                        "Keep-Alive", f"timeout={int(self.config.keep_alive_timeout)}"
                    )
                else:
                    response.set_header("Connection", "close")

                if not conn.send(response.to_bytes(self.config.server_name)) or not keep_alive:
                    break

    def _send_error(self, conn: Connection, error: Exception) -> None:
        response = self.normalizer.respond(error)
        response.set_header("Connection", "close")
        conn.send(response.to_bytes(self.config.server_name))


def create_app(config: Optional[ServerConfig] = None) -> HTTPServer:
    return HTTPServer(config)
