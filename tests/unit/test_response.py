"""
Unit tests for HTTP response building.
"""

from datetime import datetime, timezone
import json

import pytest

from routekit.http.mime_types import get_content_type, get_mime_type
from routekit.http.response import (
    HTTPResponse,
    ResponseBuilder,
    format_http_date,
    html,
    json_response,
    redirect,
    text,
)
from routekit.http.status_codes import HTTPStatus, reason_phrase


class TestHTTPResponse:
    """Tests for HTTPResponse class."""

    def test_status_line(self):
        assert HTTPResponse(status=HTTPStatus.OK).status_line == "HTTP/1.1 200 OK"
        assert HTTPResponse(status=307).status_line == "HTTP/1.1 307 Temporary Redirect"

    def test_unknown_status_phrase(self):
        assert HTTPResponse(status=599).status_line == "HTTP/1.1 599 Unknown"

    def test_to_bytes_includes_headers(self):
        response = HTTPResponse(
            status=HTTPStatus.OK,
            headers={"X-Custom": "value"},
            body=b"test",
        )

        result = response.to_bytes()

        assert result.startswith(b"HTTP/1.1 200 OK\r\n")
        assert b"X-Custom: value\r\n" in result
        assert b"Content-Length: 4\r\n" in result
        assert b"Server: routekit/1.0\r\n" in result
        assert result.endswith(b"\r\n\r\ntest")

    def test_to_bytes_leaves_headers_untouched(self):
        response = HTTPResponse(body=b"hello")
        response.to_bytes()
        assert "Content-Length" not in response.headers

    def test_set_header_chaining(self):
        response = (HTTPResponse()
            .set_header("X-One", "1")
            .set_header("X-Two", "2"))

        assert response.headers == {"X-One": "1", "X-Two": "2"}


class TestResponseBuilder:
    """Tests for ResponseBuilder class."""

    def test_defaults_to_200(self):
        assert ResponseBuilder().build().status == HTTPStatus.OK

    def test_json_body(self):
        data = {"Message": "Hello", "Counter": 2}
        response = ResponseBuilder().json(data).build()

        assert response.content_type == "application/json; charset=utf-8"
        assert json.loads(response.body) == data

    def test_json_scalar(self):
        response = ResponseBuilder().json(True).build()
        assert response.body == b"true"

    def test_text_body(self):
        response = ResponseBuilder().text("Hello from /index").build()

        assert response.content_type == "text/plain; charset=utf-8"
        assert response.text() == "Hello from /index"

    def test_html_body(self):
        response = ResponseBuilder().html("Hello from /html").build()

        assert response.content_type == "text/html; charset=utf-8"
        assert response.body == b"Hello from /html"

    def test_redirect(self):
        response = ResponseBuilder().redirect("/index", HTTPStatus.TEMPORARY_REDIRECT).build()

        assert response.status == 307
        assert response.headers["Location"] == "/index"

    def test_redirect_rejects_non_3xx(self):
        with pytest.raises(ValueError):
            ResponseBuilder().redirect("/index", HTTPStatus.OK)

    def test_file_guesses_content_type(self):
        response = ResponseBuilder().file(b"body{}", "site.css").build()
        assert response.content_type == "text/css; charset=utf-8"

    def test_cache_and_close(self):
        response = ResponseBuilder().cache(60).close_connection().build()

        assert response.headers["Cache-Control"] == "public, max-age=60"
        assert response.headers["Connection"] == "close"


class TestConvenienceFunctions:
    """Tests for the module-level response helpers."""

    def test_text(self):
        response = text("from action index")
        assert response.status == 200
        assert response.text() == "from action index"

    def test_html(self):
        assert html("<p>x</p>", status=201).status == 201

    def test_json_response(self):
        assert json_response([1, 2]).json() == [1, 2]

    def test_redirect(self):
        response = redirect("/index")
        assert response.status == HTTPStatus.FOUND
        assert response.headers["Location"] == "/index"


class TestStatusAndMime:
    """Tests for status codes and MIME type lookup."""

    def test_reason_phrase(self):
        assert reason_phrase(404) == "Not Found"
        assert reason_phrase(415) == "Unsupported Media Type"
        assert reason_phrase(299) == "Unknown"

    def test_mime_types(self):
        assert get_mime_type("assets/logo.PNG") == "image/png"
        assert get_mime_type("data.bin") == "application/octet-stream"
        assert get_content_type("index.html") == "text/html; charset=utf-8"


class TestHTTPDate:
    def test_format(self):
        dt = datetime(2026, 1, 1, 12, 0, 5, tzinfo=timezone.utc)
        assert format_http_date(dt) == "Thu, 01 Jan 2026 12:00:05 GMT"
