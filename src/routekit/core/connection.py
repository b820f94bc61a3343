"""
One accepted client connection.

Reads whole HTTP requests off the socket (headers up to the blank line,
then exactly Content-Length body bytes) and writes responses back. Bytes
past the end of one request stay buffered for the next, so pipelined
keep-alive requests are handled in order.

The first request waits up to ``timeout``; later ones on a kept-alive
connection wait ``keep_alive_timeout`` and then the connection just ends.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple
import logging
import socket
import time
import uuid

from ..http.request import HTTPParseError
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)

HEADER_END = b"\r\n\r\n"


class ConnectionState(Enum):
    NEW = "new"
    READING = "reading"
    WRITING = "writing"
    KEEP_ALIVE = "keep_alive"
    CLOSED = "closed"


@dataclass
class Connection:
    socket: socket.socket
    address: Tuple[str, int]
    buffer_size: int = 8192
    timeout: Optional[float] = 30.0
    keep_alive_timeout: float = 5.0
    max_request_size: int = 10 * 1024 * 1024

    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    state: ConnectionState = ConnectionState.NEW
    requests_handled: int = 0
    created_at: float = field(default_factory=time.monotonic)
    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        self.socket.setblocking(True)
        self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    def read_request(self) -> Optional[bytes]:
        """
        Read one complete request.

        Returns:
            The raw request, or None once the peer is gone (or a kept-alive
            connection went idle).

        Raises:
            HTTPParseError: 413 when the request outgrows max_request_size,
                408 when the first request does not arrive in time.
        """
        self.state = ConnectionState.READING
        if self.requests_handled:
            self.socket.settimeout(self.keep_alive_timeout)

        try:
            while HEADER_END not in self._buffer:
                if not self._fill():
                    return None

            body_start = self._buffer.index(HEADER_END) + len(HEADER_END)
            request_end = body_start + self._content_length(self._buffer[:body_start])
            while len(self._buffer) < request_end:
                if not self._fill():
                    break
        except socket.timeout:
            if self.requests_handled:
                logger.debug(f"[{self.id}] Keep-alive timeout")
                return None
            raise HTTPParseError("Request Timeout", HTTPStatus.REQUEST_TIMEOUT)
        finally:
            self.socket.settimeout(self.timeout)

        data, self._buffer = self._buffer[:request_end], self._buffer[request_end:]
        self.requests_handled += 1
        return data

    def _fill(self) -> bool:
        try:
            chunk = self.socket.recv(self.buffer_size)
        except (ConnectionResetError, BrokenPipeError):
            chunk = b""
        if not chunk:
            return False

        self._buffer += chunk
        if len(self._buffer) > self.max_request_size:
            self._buffer = b""
            raise HTTPParseError("Payload Too Large", HTTPStatus.PAYLOAD_TOO_LARGE)
        return True

    @staticmethod
    def _content_length(head: bytes) -> int:
        # Malformed values are left for the request parser to reject
        for line in head.decode("latin-1").lower().split("\r\n"):
            if line.startswith("content-length:"):
                try:
                    return max(int(line.split(":", 1)[1].strip()), 0)
                except ValueError:
                    return 0
        return 0

    def send(self, data: bytes) -> bool:
        """Write a full response; False if the peer has gone away."""
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False
        self.state = ConnectionState.KEEP_ALIVE
        return True

    def close(self) -> None:
        if self.state is ConnectionState.CLOSED:
            return
        try:
            self.socket.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        self.socket.close()
        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Closed after {self.requests_handled} requests")

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False
