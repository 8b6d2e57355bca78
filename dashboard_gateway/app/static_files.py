"""
Static file serving for the bundled single-page application.
"""

from __future__ import annotations

import posixpath
import re
from pathlib import Path
from typing import Union

from starlette.responses import FileResponse, PlainTextResponse, Response

from shared.logging import get_logger


MIME_TYPES = {
    ".html": "text/html",
    ".css": "text/css",
    ".js": "application/javascript",
    ".mjs": "application/javascript",
    ".json": "application/json",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
}
DEFAULT_MIME_TYPE = "application/octet-stream"
INDEX_DOCUMENT = "index.html"

_LEADING_PARENT_SEGMENTS = re.compile(r"^(\.\.[/\\])+")


def sanitize_path(request_path: str) -> str:
    """
    Map a request path onto a path relative to the static root.

    ``/`` becomes ``index.html``; ``..`` segments are collapsed and any that
    would climb above the root are dropped.
    """
    pathname = request_path.split("?", 1)[0] or "/"
    normalized = posixpath.normpath(pathname)
    normalized = _LEADING_PARENT_SEGMENTS.sub("", normalized)
    if normalized in ("/", "."):
        return INDEX_DOCUMENT
    return normalized.lstrip("/")


def content_type_for(path: Union[str, Path]) -> str:
    return MIME_TYPES.get(Path(path).suffix.lower(), DEFAULT_MIME_TYPE)


def not_found() -> PlainTextResponse:
    return PlainTextResponse("404 Not Found", status_code=404)


class StaticSite:
    """Serves files under ``root`` with an ``index.html`` fallback for client-side routes."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root).resolve()
        self.logger = get_logger("gateway.static")

    def _within_root(self, path: Path) -> bool:
        try:
            path.resolve().relative_to(self.root)
        except ValueError:
            return False
        return True

    def _serve_file(self, path: Path) -> Response:
        if not path.is_file() or not self._within_root(path):
            return not_found()
        return FileResponse(path, media_type=content_type_for(path))

    def response_for(self, method: str, request_path: str) -> Response:
        """Build the response for a non-API request."""
        if method.upper() not in ("GET", "HEAD"):
            return not_found()

        safe_path = sanitize_path(request_path)
        target = self.root / safe_path

        if not target.exists():
            if safe_path == INDEX_DOCUMENT or request_path == "/":
                self.logger.warning("Static root document missing", root=str(self.root))
                return not_found()
            return self._serve_file(self.root / INDEX_DOCUMENT)

        if target.is_dir():
            return self._serve_file(target / INDEX_DOCUMENT)

        return self._serve_file(target)
