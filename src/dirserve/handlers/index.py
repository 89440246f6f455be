"""
=============================================================================
DIRECTORY INDEX HANDLER
=============================================================================

The single catch-all handler: every request path is mapped onto the
served root and answered with a directory index, a file, or a 403.

=============================================================================
DISPATCH
=============================================================================

    GET /docs/notes.txt
          │
          ▼
    strip leading "/"          "docs/notes.txt"
          │
          ├── in ignored_paths? ──────────▶ 200, empty body (no disk access)
          │
          ▼
    clean, resolve + lstat()   /srv/files/docs/notes.txt
          │
          ├── failed? ────────────────────▶ 403 could not stat requested path
          │
          ▼
    ┌───────────┬────────────────────────────────────────────────────────┐
    │ DIRECTORY │ list + render index page → 200 text/html               │
    │ REGULAR   │ "../" in path? → 403, else FileServer                  │
    │ other     │ 403 Not a directory or regular file ...                │
    └───────────┴────────────────────────────────────────────────────────┘

lstat() is used, so a request naming a symlink is refused even when the
link points at a regular file. Symlinks still show up in listings.

=============================================================================
"""

import io
import logging
import os
from typing import Iterable, Optional

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ResponseBuilder, ok, forbidden
from ..listing import (
    EntryType, classify, clean_path, resolve, is_clean,
    list_directory, IndexRenderer, RenderContext,
)
from .files import FileServer


logger = logging.getLogger(__name__)


DEFAULT_IGNORED_PATHS = ("favicon.ico",)


class DirectoryIndexHandler:
    """
    Maps request paths onto a directory tree.

    Args:
        root: Absolute path of the served directory.
        ignored_paths: Request paths (without the leading "/") answered
                       with an empty 200 and never looked up on disk.
        renderer: Index page renderer; one is created if omitted.
        file_server: File-serving primitive; one is created if omitted.

    Usage:
        handler = DirectoryIndexHandler("/srv/files")
        server = HTTPServer(config, handler=handler.handle)
    """

    def __init__(
        self,
        root: str,
        ignored_paths: Iterable[str] = DEFAULT_IGNORED_PATHS,
        renderer: Optional[IndexRenderer] = None,
        file_server: Optional[FileServer] = None,
    ):
        self.root = os.path.abspath(root)
        self.ignored_paths = frozenset(ignored_paths)
        self.renderer = renderer or IndexRenderer()
        self.file_server = file_server or FileServer()

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """Answer one request."""
        path = request.path[1:] if request.path.startswith("/") else request.path
        logger.info(f'request "{path}"')

        if path in self.ignored_paths:
            return ok()

        relative = clean_path(path)
        try:
            abs_path = resolve(relative, self.root)
            st = os.lstat(abs_path)
        except (ValueError, OSError) as e:
            # PathResolutionError is a ValueError, as is os.lstat's NUL check
            logger.warning(f'Could not stat requested path "{path}": {e}')
            return forbidden("could not stat requested path")

        entry_type = classify(st)

        if entry_type == EntryType.DIRECTORY:
            base = "/" + relative + "/" if relative else "/"
            return self._serve_index(abs_path, base)

        if entry_type == EntryType.REGULAR:
            if not is_clean(abs_path):
                return forbidden("Requested path is not allowed")
            return self.file_server.serve(request, abs_path)

        return forbidden(
            f'Not a directory or regular file, so not accepting requested path "{path}"'
        )

    def _serve_index(self, abs_path: str, base: str) -> HTTPResponse:
        listing = list_directory(abs_path)
        context = RenderContext.create(base, listing)

        page = io.StringIO()
        try:
            self.renderer.render_to(page, context)
        except Exception:
            # The client gets whatever rendered before the failure
            logger.exception(f"Error rendering index of {base}")

        return ResponseBuilder().html(page.getvalue()).build()
