"""
Unit tests for field extraction.
"""

import pytest

from conftest import form_request, json_request, make_request
from routekit.binding import FieldBinding, RecordBinding, Source, extract, extract_for_binding
from routekit.demo import USER_BINDING
from routekit.errors import MalformedBody


class TestExtract:
    """Tests for single-source extraction."""

    def test_path_source(self):
        request = make_request("GET", "/page2/Alice")
        request.path_params = {"name": "Alice"}

        assert extract(request, Source.PATH) == {"name": ["Alice"]}

    def test_query_source_keeps_all_values(self):
        request = make_request("GET", "/user?name=a&name=b")
        assert extract(request, Source.QUERY) == {"name": ["a", "b"]}

    def test_form_source(self):
        request = form_request("POST", "/page4", {"name": "Eve", "message": "a/b/c"})
        assert extract(request, Source.FORM) == {"name": ["Eve"], "message": ["a/b/c"]}

    def test_json_values_are_kept_as_decoded(self):
        request = json_request("POST", "/users", {"name": "A", "age": 30, "extra": None})
        assert extract(request, Source.JSON) == {"name": ["A"], "age": [30], "extra": [None]}

    def test_body_picks_source_from_content_type(self):
        request = json_request("POST", "/user", {"name": "A"})
        assert extract(request, Source.BODY) == {"name": ["A"]}

    def test_empty_body(self):
        assert extract(make_request("POST", "/user"), Source.BODY) == {}

    def test_missing_fields_are_just_absent(self):
        request = json_request("POST", "/users", {})
        assert extract(request, Source.JSON) == {}

    def test_malformed_json(self):
        request = make_request("POST", "/users", b"{oops", "application/json")
        with pytest.raises(MalformedBody) as exc_info:
            extract(request, Source.JSON)
        assert exc_info.value.status == 400

    def test_json_must_be_an_object(self):
        request = json_request("POST", "/users", [1, 2])
        with pytest.raises(MalformedBody):
            extract(request, Source.JSON)

    def test_unsupported_media_type(self):
        request = make_request("POST", "/user", b"<user/>", "application/xml")
        with pytest.raises(MalformedBody) as exc_info:
            extract(request, Source.BODY)
        assert exc_info.value.status == 415


class TestExtractForBinding:
    """Tests for layered extraction."""

    def test_get_uses_query(self):
        request = make_request("GET", "/user?name=q")
        layers = extract_for_binding(request, USER_BINDING)
        assert layers == [(Source.QUERY, {"name": ["q"]})]

    def test_post_ignores_query(self):
        request = json_request("POST", "/user?name=q", {"name": "j"})
        layers = extract_for_binding(request, USER_BINDING)
        assert layers == [(Source.JSON, {"name": ["j"]})]

    def test_path_layer_comes_first(self):
        from dataclasses import dataclass

        @dataclass
        class Item:
            id: int = 0
            note: str = ""

        binding = RecordBinding(Item, [
            FieldBinding("id", int, path="id", query="id"),
            FieldBinding("note", str, json="note"),
        ])
        request = make_request("DELETE", "/items/7?id=8")
        request.path_params = {"id": "7"}

        sources = [source for source, _ in extract_for_binding(request, binding)]
        assert sources == [Source.PATH, Source.QUERY]

    def test_no_sources(self):
        assert extract_for_binding(make_request("POST", "/user"), USER_BINDING) == []
