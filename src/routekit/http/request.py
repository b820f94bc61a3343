"""
=============================================================================
HTTP REQUEST MODEL AND PARSER
=============================================================================

Turns the raw bytes of one HTTP/1.x request into an HTTPRequest, and gives
handlers and the field extractor lazy access to the parts they bind from.

=============================================================================
WHERE EACH BINDING SOURCE LIVES
=============================================================================

    POST /page3/Bob/hi?lang=en HTTP/1.1          ┐
    Content-Type: application/x-www-form-urlencoded│ request line + headers
    Content-Length: 23                           ┘

    name=Eve&message=a%2Fb                       ← body

        path        "/page3/Bob/hi"       → router captures path_params
        query       "lang=en"             → query_params {"lang": ["en"]}
        form body   "name=Eve&message=…"  → request.form
        JSON body   '{"name": "Eve"}'     → request.json

Query and form values are always lists of strings, because a key may
repeat (``?tag=a&tag=b``). JSON is decoded as-is.

Decoding errors surface as HTTPParseError. The field extractor converts
them into MalformedBody so that the error normalizer sees a single kind.

=============================================================================
"""

from dataclasses import dataclass, field
from email import policy
from email.parser import BytesParser
from typing import Optional, Dict, Any
from urllib.parse import parse_qs, urlparse, unquote
import re
import json


JSON_CONTENT_TYPE = "application/json"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
MULTIPART_CONTENT_TYPE = "multipart/form-data"


class HTTPParseError(Exception):
    """
    Raised when request bytes (or a request body) cannot be decoded.

    Attributes:
        message: Human-readable description.
        status_code: HTTP status the failure should be answered with.
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

    Header names are stored lowercase. ``path`` is kept percent-encoded as
    sent, so "%2F" inside a segment never splits it, and never includes
    the query string. ``path_params`` is filled in by the dispatcher once
    the router has resolved the request; they are decoded.
    """

    method: str
    path: str
    version: str = "HTTP/1.1"

    headers: Dict[str, str] = field(default_factory=dict)
    query_params: Dict[str, list[str]] = field(default_factory=dict)
    body: bytes = b""

    path_params: Dict[str, str] = field(default_factory=dict)

    client_address: tuple[str, int] = ("", 0)

    # Lazily decoded bodies
    _body_json: Optional[Any] = field(default=None, repr=False)
    _body_form: Optional[Dict[str, list[str]]] = field(default=None, repr=False)

    # =========================================================================
    # HEADER-DERIVED PROPERTIES
    # =========================================================================

    @property
    def content_type(self) -> Optional[str]:
        """
        Media type of the body without parameters, lowercased.

        ``multipart/form-data; boundary=xyz`` → ``multipart/form-data``
        """
        ct = self.headers.get("content-type", "")
        return ct.split(";")[0].strip().lower() or None

    @property
    def content_length(self) -> int:
        """Content-Length as an int; 0 when missing or garbage."""
        try:
            return int(self.headers.get("content-length", 0))
        except ValueError:
            return 0

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    @property
    def is_json(self) -> bool:
        return self.content_type == JSON_CONTENT_TYPE

    @property
    def is_form(self) -> bool:
        return self.content_type in (FORM_CONTENT_TYPE, MULTIPART_CONTENT_TYPE)

    @property
    def is_keep_alive(self) -> bool:
        """
        Whether the connection stays open after this request.

        HTTP/1.1 defaults to keep-alive unless ``Connection: close``;
        HTTP/1.0 defaults to close unless ``Connection: keep-alive``.
        """
        connection = self.headers.get("connection", "").lower()
        if self.version == "HTTP/1.1":
            return connection != "close"
        return connection == "keep-alive"

    # =========================================================================
    # BODY DECODING
    # =========================================================================

    @property
    def json(self) -> Any:
        """
        The body decoded as JSON, or None for an empty body.

        Raises:
            HTTPParseError: If the body is not valid UTF-8 JSON.
        """
        if self._body_json is None and self.body:
            try:
                self._body_json = json.loads(self.body.decode("utf-8"))
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                raise HTTPParseError(f"Invalid JSON body: {e}")
        return self._body_json

    @property
    def form(self) -> Dict[str, list[str]]:
        """
        The body decoded as form fields.

        Handles both ``application/x-www-form-urlencoded`` and
        ``multipart/form-data``. File parts of a multipart body are
        skipped; only plain fields are returned. A request whose body is
        not a form yields an empty mapping.

        Raises:
            HTTPParseError: If the body claims to be a form but is broken.
        """
        if self._body_form is None:
            if not self.body or not self.is_form:
                self._body_form = {}
            elif self.content_type == MULTIPART_CONTENT_TYPE:
                self._body_form = self._parse_multipart()
            else:
                try:
                    text = self.body.decode("utf-8")
                except UnicodeDecodeError as e:
                    raise HTTPParseError(f"Invalid form body: {e}")
                self._body_form = parse_qs(text, keep_blank_values=True)
        return self._body_form

    def _parse_multipart(self) -> Dict[str, list[str]]:
        """
        Split a multipart/form-data body into its named fields.

        The stdlib email parser already understands MIME multipart, so the
        body is fed to it behind a synthetic Content-Type header carrying
        the boundary.
        """
        raw_type = self.headers.get("content-type", "")
        if "boundary=" not in raw_type:
            raise HTTPParseError("Invalid multipart body: missing boundary")

        envelope = b"Content-Type: " + raw_type.encode("latin-1") + b"\r\n\r\n"
        message = BytesParser(policy=policy.HTTP).parsebytes(envelope + self.body)
        if not message.is_multipart() or message.defects:
            raise HTTPParseError("Invalid multipart body")

        fields: Dict[str, list[str]] = {}
        for part in message.iter_parts():
            name = part.get_param("name", header="content-disposition")
            if not name or part.get_filename():
                continue
            payload = part.get_payload(decode=True) or b""
            charset = part.get_content_charset() or "utf-8"
            fields.setdefault(name, []).append(payload.decode(charset, errors="replace"))
        return fields

    # =========================================================================
    # ACCESSORS
    # =========================================================================

    def get_header(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower(), default)

    def get_query(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """
        First value of a query parameter.

            # /page1?name=Ann&name=Bob
            request.get_query("name")   # "Ann"
        """
        values = self.query_params.get(name, [])
        return values[0] if values else default

    def get_query_list(self, name: str) -> list[str]:
        """Every value of a query parameter, in order."""
        return self.query_params.get(name, [])

    def get_form(self, name: str, default: str = "") -> str:
        """
        First value of a form field, falling back to the query string.

        Body fields win over query parameters of the same name.
        """
        values = self.form.get(name) or self.query_params.get(name)
        return values[0] if values else default


class RequestParser:
    """
    Parses raw request bytes into HTTPRequest objects.

    Steps, each of which may raise HTTPParseError:

        1. size check                    → 413
        2. split head / body at CRLFCRLF → 400 when incomplete
        3. request line                  → 400 / 505
        4. headers                       (lenient: junk lines skipped)
        5. body sized by Content-Length  → 400 when short
    """

    VALID_METHODS = {
        "GET", "POST", "PUT", "DELETE", "PATCH",
        "HEAD", "OPTIONS", "TRACE", "CONNECT",
    }

    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")

    def __init__(self, max_request_size: int = 10 * 1024 * 1024):
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: tuple[str, int] = ("", 0)
    ) -> HTTPRequest:
        """
        Parse one complete request.

        Args:
            data: Request bytes as read by Connection.read_request().
            client_address: Peer (ip, port), kept for access logs.

        Raises:
            HTTPParseError: If the request is malformed or too large.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(f"Request too large: {len(data)} bytes", status_code=413)

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        head = data[:header_end].decode("utf-8", errors="replace")
        body = data[header_end + 4:]

        lines = head.split("\r\n")
        method, path, query_params, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        try:
            content_length = int(headers.get("content-length", 0))
        except ValueError:
            raise HTTPParseError("Invalid Content-Length header")
        if len(body) < content_length:
            raise HTTPParseError(
                f"Incomplete body: expected {content_length} bytes, got {len(body)}"
            )

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            query_params=query_params,
            body=body[:content_length],
            client_address=client_address,
        )

    def _parse_request_line(
        self,
        line: str
    ) -> tuple[str, str, Dict[str, list[str]], str]:
        """
        Split ``METHOD SP REQUEST-URI SP HTTP-VERSION``.

        The path is left exactly as sent: the router matches on the raw
        path and decodes what it captures. Routing is case-sensitive and
        trailing slashes are significant, so nothing here may normalize
        them.
        """
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line}")

        method, uri, version = match.groups()

        if method not in self.VALID_METHODS:
            raise HTTPParseError(f"Invalid method: {method}")
        if version not in ("HTTP/1.0", "HTTP/1.1"):
            raise HTTPParseError(f"Unsupported HTTP version: {version}", status_code=505)

        parsed = urlparse(uri)
        path = parsed.path or "/"
        query_params = parse_qs(parsed.query, keep_blank_values=True)

        # A ".." segment could walk out of the static asset root
        if ".." in unquote(path).split("/"):
            raise HTTPParseError("Invalid path: contains '..' segment")

        return method, path, query_params, version

    def _parse_headers(self, lines: list[str]) -> Dict[str, str]:
        """
        Parse ``Name: value`` lines into a lowercase-keyed dict.

        Repeated headers are joined with ", " (RFC 7230 §3.2.2). Obsolete
        line folding (continuation lines starting with whitespace) is
        appended to the previous header.
        """
        headers: Dict[str, str] = {}
        current_name: Optional[str] = None

        for line in lines:
            if not line:
                continue

            if line[0] in (" ", "\t"):
                if current_name is not None:
                    headers[current_name] += " " + line.strip()
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                continue

            name, value = match.groups()
            name = name.strip().lower()
            value = value.strip()
            current_name = name

            if name in headers:
                headers[name] += ", " + value
            else:
                headers[name] = value

        return headers


def parse_request(
    data: bytes,
    client_address: tuple[str, int] = ("", 0),
    max_size: int = 10 * 1024 * 1024
) -> HTTPRequest:
    """One-shot helper around RequestParser.parse()."""
    return RequestParser(max_request_size=max_size).parse(data, client_address)
