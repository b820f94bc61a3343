"""
HTTP/1.1 messages: request parsing, response building, status codes and
MIME types. The router lives in ``routekit.http.router``.
"""

from .request import HTTPRequest, HTTPParseError, RequestParser, parse_request
from .response import (
    HTTPResponse,
    ResponseBuilder,
    html,
    json_response,
    redirect,
    text,
)
from .status_codes import HTTPStatus, reason_phrase
from .mime_types import get_content_type, get_mime_type

__all__ = [
    "HTTPRequest",
    "HTTPParseError",
    "RequestParser",
    "parse_request",
    "HTTPResponse",
    "ResponseBuilder",
    "html",
    "json_response",
    "redirect",
    "text",
    "HTTPStatus",
    "reason_phrase",
    "get_content_type",
    "get_mime_type",
]
