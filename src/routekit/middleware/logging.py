"""
Access logging.

One line per request on the "routekit.access" logger, either in a
combined-log style text format:

    127.0.0.1 - - [16/Oct/2026:10:01:02 +0000] "GET /page2/Alice" 200 11 0.41ms

or as a JSON object for log shippers. Each response carries an
X-Request-ID header; an incoming X-Request-ID is reused so that a caller's
ID shows up in our logs too.
"""

from dataclasses import asdict, dataclass
from typing import Iterable, Optional
import json
import logging
import time
import uuid

from .base import Middleware, NextHandler
from ..config import LOG_FORMATS
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger("routekit.access")

REQUEST_ID_HEADER = "X-Request-ID"


@dataclass
class RequestLog:
    request_id: str
    method: str
    path: str
    query: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        entry = asdict(self)
        entry["duration_ms"] = round(self.duration_ms, 2)
        return entry

    def to_text(self) -> str:
        target = f"{self.path}?{self.query}" if self.query else self.path
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {target}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


class LoggingMiddleware(Middleware):
    """
    Logs every request after its response is produced.

    Add it first so that its timing covers the rest of the chain:

        server.use(LoggingMiddleware(log_format="json", skip_paths=["/health"]))
    """

    def __init__(
        self,
        log_format: str = "text",
        include_request_id: bool = True,
        log_level: int = logging.INFO,
        skip_paths: Optional[Iterable[str]] = None,
    ):
        if log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {LOG_FORMATS}, got {log_format!r}")
        self.log_format = log_format
        self.include_request_id = include_request_id
        self.log_level = log_level
        self.skip_paths = set(skip_paths or ())

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        request_id = request.get_header(REQUEST_ID_HEADER) or uuid.uuid4().hex[:8]
        start = time.perf_counter()

        try:
            response = next(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.error(
                f"Request failed: {request.method} {request.path} "
                f"- {type(e).__name__}: {e} ({duration_ms:.2f}ms)"
            )
            raise

        duration_ms = (time.perf_counter() - start) * 1000

        if request.path not in self.skip_paths:
            entry = self.build_entry(request, response, request_id, duration_ms)
            if self.log_format == "json":
                logger.log(self.log_level, json.dumps(entry.to_dict()))
            else:
                logger.log(self.log_level, entry.to_text())

        if self.include_request_id:
            response.set_header(REQUEST_ID_HEADER, request_id)
        return response

    @staticmethod
    def build_entry(
        request: HTTPRequest,
        response: HTTPResponse,
        request_id: str,
        duration_ms: float,
    ) -> RequestLog:
        query = "&".join(
            f"{name}={value}"
            for name, values in request.query_params.items()
            for value in values
        )
        client_ip = (request.client_address[0] if request.client_address else "") or "-"
        return RequestLog(
            request_id=request_id,
            method=request.method,
            path=request.path,
            query=query,
            client_ip=client_ip,
            user_agent=request.user_agent or "-",
            status_code=int(response.status),
            content_length=len(response.body),
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )
