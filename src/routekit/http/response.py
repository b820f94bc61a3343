"""
=============================================================================
HTTP RESPONSE MODEL AND BUILDER
=============================================================================

Everything a handler or the error normalizer sends back is an HTTPResponse.
Handlers rarely build one by hand: the request context exposes
``ctx.string()``, ``ctx.html()``, ``ctx.json()`` and ``ctx.redirect()``,
which all go through ResponseBuilder below.

=============================================================================
RESPONSE KINDS
=============================================================================

    kind       Content-Type                         body
    ─────────  ───────────────────────────────────  ──────────────────────
    text       text/plain; charset=utf-8            str encoded as UTF-8
    html       text/html; charset=utf-8             str encoded as UTF-8
    json       application/json; charset=utf-8     json.dumps(payload)
    redirect   (none)                               empty, Location header
    file       from the file extension              raw bytes

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Dict, Any, Union
import json

from .status_codes import HTTPStatus, reason_phrase
from .mime_types import get_content_type


TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"
HTML_CONTENT_TYPE = "text/html; charset=utf-8"
JSON_CONTENT_TYPE = "application/json; charset=utf-8"


@dataclass
class HTTPResponse:
    """
    An HTTP response ready to be serialized onto a socket.

    ``status`` is an int so that handlers may use codes HTTPStatus does not
    enumerate; the reason phrase then reads "Unknown".
    """

    status: int = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """``HTTP/1.1 307 Temporary Redirect``"""
        return f"{self.version} {int(self.status)} {reason_phrase(self.status)}"

    @property
    def content_type(self) -> str:
        return self.headers.get("Content-Type", "")

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """Set a header; returns self for chaining."""
        self.headers[name] = value
        return self

    def set_body(self, body: Union[str, bytes]) -> "HTTPResponse":
        self.body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def text(self) -> str:
        """The body decoded as UTF-8 (convenient in tests)."""
        return self.body.decode("utf-8")

    def json(self) -> Any:
        """The body decoded as JSON (convenient in tests)."""
        return json.loads(self.body.decode("utf-8"))

    def to_bytes(self, server_name: str = "routekit/1.0") -> bytes:
        """
        Serialize status line, headers and body.

        Content-Length, Date and Server are filled in when the handler did
        not set them. The original headers dict is left untouched.
        """
        response_headers = dict(self.headers)
        response_headers.setdefault("Content-Length", str(len(self.body)))
        response_headers.setdefault("Date", format_http_date(datetime.now(timezone.utc)))
        response_headers.setdefault("Server", server_name)

        lines = [self.status_line]
        lines.extend(f"{name}: {value}" for name, value in response_headers.items())
        lines.append("")

        head = "\r\n".join(lines).encode("utf-8") + b"\r\n"
        return head + self.body


class ResponseBuilder:
    """
    Fluent builder for HTTPResponse.

        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .json({"Message": "Hello", "Counter": 2})
            .header("X-Request-ID", request_id)
            .build())

    Every method except build() returns the builder itself.
    """

    def __init__(self):
        self._status: int = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""

    def status(self, status: int) -> "ResponseBuilder":
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-Type", content_type)

    # =========================================================================
    # BODY METHODS
    # =========================================================================

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """Raw body; strings are encoded as UTF-8."""
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def text(self, text: str, content_type: str = TEXT_CONTENT_TYPE) -> "ResponseBuilder":
        self._body = text.encode("utf-8")
        self._headers["Content-Type"] = content_type
        return self

    def html(self, html: str) -> "ResponseBuilder":
        self._body = html.encode("utf-8")
        self._headers["Content-Type"] = HTML_CONTENT_TYPE
        return self

    def json(self, data: Any, pretty: bool = False) -> "ResponseBuilder":
        """
        JSON body. ``ensure_ascii=False`` keeps non-ASCII names readable;
        the bytes are still valid UTF-8 JSON.
        """
        indent = 2 if pretty else None
        self._body = json.dumps(data, indent=indent, ensure_ascii=False).encode("utf-8")
        self._headers["Content-Type"] = JSON_CONTENT_TYPE
        return self

    def file(self, content: bytes, filename: str) -> "ResponseBuilder":
        """File body with Content-Type guessed from the extension."""
        self._body = content
        self._headers["Content-Type"] = get_content_type(filename)
        return self

    # =========================================================================
    # REDIRECTS AND CACHING
    # =========================================================================

    def redirect(
        self,
        location: str,
        status: int = HTTPStatus.FOUND,
    ) -> "ResponseBuilder":
        """
        Redirect to ``location``.

        301/302 let clients switch POST to GET; 307/308 keep the method.
        """
        if not 300 <= int(status) < 400:
            raise ValueError(f"Redirect status must be 3xx, got {status}")
        self._status = status
        self._headers["Location"] = location
        return self

    def cache(self, max_age: int = 3600) -> "ResponseBuilder":
        self._headers["Cache-Control"] = f"public, max-age={max_age}"
        return self

    def close_connection(self) -> "ResponseBuilder":
        self._headers["Connection"] = "close"
        return self

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=self._headers,
            body=self._body,
        )


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

_DAYS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
_MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


def format_http_date(dt: datetime) -> str:
    """
    Format a UTC datetime as an RFC 7231 HTTP-date.

        >>> format_http_date(datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc))
        'Thu, 01 Jan 2026 12:00:00 GMT'
    """
    return (
        f"{_DAYS[dt.weekday()]}, "
        f"{dt.day:02d} {_MONTHS[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def text(body: str, status: int = HTTPStatus.OK) -> HTTPResponse:
    """Plain text response."""
    return ResponseBuilder().status(status).text(body).build()


def html(body: str, status: int = HTTPStatus.OK) -> HTTPResponse:
    """HTML response."""
    return ResponseBuilder().status(status).html(body).build()


def json_response(data: Any, status: int = HTTPStatus.OK) -> HTTPResponse:
    """JSON response for any json.dumps-able payload, including ``True``."""
    return ResponseBuilder().status(status).json(data).build()


def redirect(location: str, status: int = HTTPStatus.FOUND) -> HTTPResponse:
    """Redirect response with an empty body."""
    return ResponseBuilder().redirect(location, status).build()
