"""
Integration tests over real sockets.
"""

import json
import socket
import threading
import time

from conftest import LiveServer
from routekit import HTTPServer, ServerConfig
from routekit.core import Connection


def split_response(raw: bytes):
    head, _, body = raw.partition(b"\r\n\r\n")
    status_line, *header_lines = head.decode().split("\r\n")
    headers = dict(line.split(": ", 1) for line in header_lines)
    return int(status_line.split()[1]), headers, body


class TestLiveServer:
    """End-to-end requests against a running server."""

    def test_get(self, live_server: LiveServer):
        raw = live_server.request(
            b"GET /page2/Alice HTTP/1.1\r\nHost: localhost\r\nConnection: close\r\n\r\n"
        )
        status, headers, body = split_response(raw)

        assert status == 200
        assert body == b"Hello Alice"
        assert headers["Server"] == "routekit/1.0"
        assert headers["Connection"] == "close"

    def test_post_json(self, live_server: LiveServer):
        payload = b'{"name": "A", "email": "a@b.com", "age": 90}'
        raw = live_server.request(
            b"POST /users HTTP/1.1\r\nHost: localhost\r\nConnection: close\r\n"
            b"Content-Type: application/json\r\n"
            + f"Content-Length: {len(payload)}\r\n\r\n".encode()
            + payload
        )
        status, _, body = split_response(raw)

        assert status == 400
        assert json.loads(body)["message"] == "age value must be lower than 80"

    def test_malformed_request_gets_json_error(self, live_server: LiveServer):
        status, headers, body = split_response(live_server.request(b"NONSENSE\r\n\r\n"))

        assert status == 400
        assert headers["Content-Type"] == "application/json; charset=utf-8"
        assert "message" in json.loads(body)

    def test_keep_alive_serves_pipelined_requests(self, live_server: LiveServer):
        raw = live_server.request(
            b"GET /index HTTP/1.1\r\nHost: localhost\r\n\r\n"
            b"GET /json HTTP/1.1\r\nHost: localhost\r\nConnection: close\r\n\r\n"
        )

        assert raw.count(b"HTTP/1.1 200 OK") == 2
        assert b"Hello from /index" in raw
        assert b'"Counter": 2' in raw


class TestOverload:
    """Connections no worker can take still get an answer."""

    def test_connection_that_waits_too_long_gets_503(self):
        app = HTTPServer(ServerConfig(
            port=0, timeout=0.05, min_workers=1, max_workers=1,
            static_dir=None, log_level="WARNING",
        ))
        pool = app._thread_pool
        pool.start()
        release = threading.Event()
        started = threading.Event()

        def block():
            started.set()
            release.wait(timeout=5.0)

        server_side, client_side = socket.socketpair()
        client_side.settimeout(5.0)
        try:
            pool.submit(block)
            assert started.wait(timeout=5.0)
            app._handle_connection(Connection(server_side, ("127.0.0.1", 0), timeout=5.0))
            time.sleep(0.2)
            release.set()

            raw = b""
            while True:
                chunk = client_side.recv(4096)
                if not chunk:
                    break
                raw += chunk
        finally:
            release.set()
            client_side.close()
            pool.shutdown()

        status, headers, body = split_response(raw)
        assert status == 503
        assert headers["Connection"] == "close"
        assert json.loads(body) == {"message": "Server overloaded"}
