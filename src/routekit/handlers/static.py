"""
=============================================================================
STATIC FILE HANDLER
=============================================================================

Serves files below one root directory for a wildcard route:

    static = StaticFileHandler("assets")
    router.get("/static/*", static.handle)

    GET /static/css/site.css   ->  assets/css/site.css

The wildcard suffix is resolved against the root and must stay inside it;
anything that escapes (through "..", or a symlink) is 403. Directories
serve their index file when present. Responses carry an ETag built from
mtime and size, and a matching If-None-Match gets 304 with no body.

Failures are raised, not returned, so they reach the client as the usual
JSON error report.

=============================================================================
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING
import logging

from ..errors import HandlerError, NotFound
from ..http.mime_types import get_content_type
from ..http.response import HTTPResponse, ResponseBuilder, format_http_date
from ..http.router import WILDCARD_KEY
from ..http.status_codes import HTTPStatus

if TYPE_CHECKING:
    from ..context import Context


logger = logging.getLogger(__name__)


class StaticFileHandler:
    """
    Handler for a directory of static files.

    A root that does not exist is not an error at startup; every request
    under it is simply 404 until the directory appears.
    """

    def __init__(
        self,
        root_dir: str,
        index_file: str = "index.html",
        cache_max_age: int = 3600,
    ):
        self.root_dir = Path(root_dir).resolve()
        self.index_file = index_file
        self.cache_max_age = cache_max_age

        if not self.root_dir.is_dir():
            logger.warning(f"Static root directory does not exist: {self.root_dir}")

    def handle(self, ctx: "Context") -> HTTPResponse:
        relative = self._requested_path(ctx)
        full_path = (self.root_dir / relative).resolve()

        try:
            full_path.relative_to(self.root_dir)
        except ValueError:
            logger.warning(f"Path traversal attempt: {relative}")
            raise HandlerError(HTTPStatus.FORBIDDEN, "Access denied")

        if full_path.is_dir():
            full_path = full_path / self.index_file

        if not full_path.is_file():
            raise NotFound(f"File not found: {relative}")

        return self._serve_file(full_path, ctx.request.get_header("if-none-match"))

    @staticmethod
    def _requested_path(ctx: "Context") -> str:
        # Named wildcards ("/static/*path") land under their own key
        if WILDCARD_KEY in ctx.params:
            suffix = ctx.params[WILDCARD_KEY]
        else:
            suffix = next(reversed(ctx.params.values()), "")
        return suffix.lstrip("/")

    def _serve_file(self, path: Path, if_none_match: str) -> HTTPResponse:
        try:
            stat = path.stat()
            etag = f'"{int(stat.st_mtime)}-{stat.st_size}"'

            if if_none_match == etag:
                return (ResponseBuilder()
                    .status(HTTPStatus.NOT_MODIFIED)
                    .header("ETag", etag)
                    .build())

            content = path.read_bytes()
        except PermissionError:
            raise HandlerError(HTTPStatus.FORBIDDEN, "Permission denied")

        modified = datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)
        return (ResponseBuilder()
            .file(content, path.name)
            .header("ETag", etag)
            .header("Last-Modified", format_http_date(modified))
            .cache(self.cache_max_age)
            .build())
