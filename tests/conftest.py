"""
pytest configuration and fixtures.
"""

import json
import socket
import sys
import threading
from pathlib import Path
from typing import Generator, Optional
from urllib.parse import urlencode

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from routekit import HTTPServer, ServerConfig
from routekit.demo import build_app
from routekit.http.request import HTTPRequest, parse_request


ASSETS_DIR = Path(__file__).parent.parent / "assets"


def make_request(
    method: str,
    target: str,
    body: bytes = b"",
    content_type: Optional[str] = None,
    headers: Optional[dict] = None,
) -> HTTPRequest:
    """Build an HTTPRequest by parsing real request bytes."""
    lines = [f"{method} {target} HTTP/1.1", "Host: localhost:9000"]
    if content_type:
        lines.append(f"Content-Type: {content_type}")
    if body:
        lines.append(f"Content-Length: {len(body)}")
    for name, value in (headers or {}).items():
        lines.append(f"{name}: {value}")
    raw = ("\r\n".join(lines) + "\r\n\r\n").encode() + body
    return parse_request(raw, ("127.0.0.1", 54321))


def json_request(method: str, target: str, payload) -> HTTPRequest:
    return make_request(method, target, json.dumps(payload).encode(), "application/json")


def form_request(method: str, target: str, fields: dict) -> HTTPRequest:
    return make_request(
        method, target, urlencode(fields).encode(), "application/x-www-form-urlencoded"
    )


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /page1?name=Ann&name=Bob&empty= HTTP/1.1\r\n"
        b"Host: localhost:9000\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: application/json\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with JSON body."""
    body = b'{"name": "A", "email": "a@b.com", "age": 30}'
    return (
        b"POST /users HTTP/1.1\r\n"
        b"Host: localhost:9000\r\n"
        b"Content-Type: application/json\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"Connection: close\r\n"
        b"\r\n"
    ) + body


@pytest.fixture
def config() -> ServerConfig:
    """Test configuration: ephemeral port, repo asset root."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,
        min_workers=2,
        max_workers=4,
        timeout=5.0,
        static_dir=str(ASSETS_DIR),
        log_level="WARNING",
    )


@pytest.fixture
def app(config: ServerConfig) -> HTTPServer:
    """The demo application, used in-process through app.handle()."""
    return build_app(config)


class LiveServer:
    """Runs an HTTPServer on a background thread."""

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self) -> None:
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()
        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self) -> None:
        self.server.stop()
        if self._thread is not None:
            self._thread.join(timeout=5.0)

    def request(self, raw: bytes) -> bytes:
        """Send raw bytes on a fresh connection and read until close."""
        with socket.create_connection(("127.0.0.1", self.port), timeout=5.0) as sock:
            sock.sendall(raw)
            chunks = []
            while True:
                chunk = sock.recv(65536)
                if not chunk:
                    break
                chunks.append(chunk)
        return b"".join(chunks)


@pytest.fixture
def live_server(app: HTTPServer) -> Generator[LiveServer, None, None]:
    server = LiveServer(app)
    server.start()
    yield server
    server.stop()
