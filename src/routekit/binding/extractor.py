"""
Field extraction: pull raw values out of one part of a request.

    source   where from               values
    ───────  ───────────────────────  ─────────────────────────────
    PATH     router-captured params   one string each
    QUERY    query string             every occurrence, as strings
    FORM     url-encoded / multipart  every occurrence, as strings
    JSON     top-level object keys    the decoded JSON value
    BODY     FORM or JSON, chosen by the request's Content-Type

Every RawFieldMap maps a field name to a list of values, so the binder
treats all sources alike. Missing fields are just absent. Only a body that
cannot be parsed at all is an error.
"""

from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Tuple
import logging

from ..errors import MalformedBody
from ..http.request import HTTPRequest, HTTPParseError
from ..http.status_codes import HTTPStatus

if TYPE_CHECKING:
    from .binder import RecordBinding


logger = logging.getLogger(__name__)

RawFieldMap = Dict[str, List[Any]]

# Methods whose query string is bound into records
QUERY_BINDING_METHODS = {"GET", "DELETE", "HEAD"}


class Source(Enum):
    PATH = "path"
    QUERY = "query"
    FORM = "form"
    JSON = "json"
    BODY = "body"


def body_source(request: HTTPRequest) -> Source:
    """
    Concrete source of the request body.

    Raises:
        MalformedBody: 415 when there is a body of an unsupported type.
    """
    if request.is_json:
        return Source.JSON
    if request.is_form:
        return Source.FORM
    raise MalformedBody(
        f"Unsupported Media Type: {request.content_type or 'none'}",
        status=HTTPStatus.UNSUPPORTED_MEDIA_TYPE,
    )


def extract(request: HTTPRequest, source: Source) -> RawFieldMap:
    """
    Build a raw field map from one request source.

    Raises:
        MalformedBody: If a FORM or JSON body cannot be parsed.
    """
    if source is Source.PATH:
        return {name: [value] for name, value in request.path_params.items()}

    if source is Source.QUERY:
        return {name: list(values) for name, values in request.query_params.items()}

    if source is Source.BODY:
        if not request.body:
            return {}
        source = body_source(request)

    try:
        if source is Source.FORM:
            return {name: list(values) for name, values in request.form.items()}

        payload = request.json
    except HTTPParseError as e:
        raise MalformedBody(e.message) from e

    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise MalformedBody(f"JSON body must be an object, got {type(payload).__name__}")
    return {name: [value] for name, value in payload.items()}


def extract_for_binding(
    request: HTTPRequest,
    binding: "RecordBinding",
) -> List[Tuple[Source, RawFieldMap]]:
    """
    Collect every source a record is bound from, in binding order.

    Path parameters first, then the query string (for GET, DELETE and
    HEAD only), then the body when there is one. Sources the record has no
    keys for are skipped, so an unrelated query string never matters.
    """
    layers: List[Tuple[Source, RawFieldMap]] = []

    def wants(source: Source) -> bool:
        return any(fb.key_for(source) for fb in binding.fields)

    if request.path_params and wants(Source.PATH):
        layers.append((Source.PATH, extract(request, Source.PATH)))

    if request.method in QUERY_BINDING_METHODS and wants(Source.QUERY):
        layers.append((Source.QUERY, extract(request, Source.QUERY)))

    if request.body:
        source = body_source(request)
        layers.append((source, extract(request, source)))

    logger.debug(
        f"{binding.name}: binding from {[source.value for source, _ in layers]}"
    )
    return layers
