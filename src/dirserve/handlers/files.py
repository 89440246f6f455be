"""
=============================================================================
FILE SERVER
=============================================================================

Sends one regular file to the client with the headers browsers and
download tools expect. The directory handler decides WHETHER a path may
be served; this module only decides HOW.

=============================================================================
RESPONSE SELECTION
=============================================================================

    ┌──────────────────────────────────────────────────┬──────────────────┐
    │ Condition (checked in this order)                │ Response         │
    ├──────────────────────────────────────────────────┼──────────────────┤
    │ stat() says the file is gone                     │ 404              │
    │ stat() / open() says permission denied           │ 403              │
    │ If-None-Match matches the ETag (or is "*")       │ 304, no body     │
    │ If-Modified-Since >= file mtime (no INM sent)    │ 304, no body     │
    │ Range: bytes=... outside the file                │ 416              │
    │ Range: bytes=... satisfiable, single range       │ 206 + slice      │
    │ Anything else                                    │ 200 + whole file │
    └──────────────────────────────────────────────────┴──────────────────┘

Multi-range requests ("bytes=0-1,5-6") and malformed Range headers are
ignored and the whole file is sent, which RFC 7233 permits. An If-Range
that does not match the current ETag also falls back to the whole file.

=============================================================================
CONDITIONAL REQUESTS
=============================================================================

    First request:
        GET /notes.txt                 → 200, ETag: "1760700000-1234"

    Revalidation:
        GET /notes.txt
        If-None-Match: "1760700000-1234"
                                       → 304 Not Modified (no body)

The ETag is "<mtime seconds>-<size>": cheap to compute from a single
stat() call and it changes whenever the file is rewritten.

=============================================================================
"""

import logging
import os
import stat
from datetime import datetime, timezone
from typing import Optional

from ..http.request import HTTPRequest
from ..http.response import (
    HTTPResponse, ResponseBuilder, HTTPStatus,
    format_http_date, parse_http_date,
    forbidden, not_found, internal_error,
)
from ..http.mime_types import SNIFF_LENGTH, get_content_type, get_mime_type


logger = logging.getLogger(__name__)


class RangeNotSatisfiable(Exception):
    """The requested byte range lies outside the file."""


def parse_range(header: str, size: int) -> Optional[tuple[int, int]]:
    """
    Parse a single-range "Range: bytes=..." header.

    Args:
        header: The raw Range header value.
        size: Current file size in bytes.

    Returns:
        Inclusive (start, end) offsets, or None if the header should be
        ignored (wrong unit, multiple ranges, malformed).

    Raises:
        RangeNotSatisfiable: If the range is well-formed but no byte of
                             it exists in the file.

    Examples:
        >>> parse_range("bytes=0-99", 1000)
        (0, 99)
        >>> parse_range("bytes=900-", 1000)
        (900, 999)
        >>> parse_range("bytes=-100", 1000)
        (900, 999)
    """
    unit, _, ranges = header.partition("=")
    if unit.strip().lower() != "bytes" or "," in ranges:
        return None

    first, dash, last = ranges.strip().partition("-")
    if not dash:
        return None
    first, last = first.strip(), last.strip()

    try:
        if not first:
            # Suffix range: the last N bytes
            if not last:
                return None
            length = int(last)
            if length <= 0 or size == 0:
                raise RangeNotSatisfiable(header)
            return max(0, size - length), size - 1

        start = int(first)
        end = int(last) if last else size - 1
    except ValueError:
        return None

    if start < 0 or (last and end < start):
        return None
    if start >= size:
        raise RangeNotSatisfiable(header)
    return start, min(end, size - 1)


class FileServer:
    """
    Serves regular files by absolute path.

    Stateless; one instance is shared by all worker threads.

    Usage:
        files = FileServer()
        response = files.serve(request, "/srv/files/report.pdf")
    """

    def serve(self, request: HTTPRequest, path: str) -> HTTPResponse:
        """
        Build the response for a file request.

        Args:
            request: The HTTP request (for conditional and Range headers).
            path: Absolute path of the file on disk.

        Returns:
            200, 206, 304, 403, 404, 416 or 500 response.
        """
        try:
            st = os.stat(path)
        except FileNotFoundError:
            return not_found("404 page not found")
        except PermissionError:
            return forbidden("403 Forbidden")
        except OSError as e:
            logger.error(f"Error reading file {path}: {e}")
            return internal_error()

        if not stat.S_ISREG(st.st_mode):
            return not_found("404 page not found")

        size = st.st_size
        mtime = datetime.fromtimestamp(int(st.st_mtime), tz=timezone.utc)
        etag = f'"{int(st.st_mtime)}-{size}"'
        validators = {
            "Last-Modified": format_http_date(mtime),
            "ETag": etag,
        }

        if self._not_modified(request, etag, mtime):
            return (ResponseBuilder()
                .status(HTTPStatus.NOT_MODIFIED)
                .headers(validators)
                .build())

        byte_range = None
        range_header = request.get_header("range")
        if range_header and self._if_range_matches(request, etag, validators["Last-Modified"]):
            try:
                byte_range = parse_range(range_header, size)
            except RangeNotSatisfiable:
                return (ResponseBuilder()
                    .status(HTTPStatus.RANGE_NOT_SATISFIABLE)
                    .header("Content-Range", f"bytes */{size}")
                    .text("invalid range: failed to overlap\n")
                    .build())

        try:
            content_type, content = self._read(path, byte_range)
        except FileNotFoundError:
            return not_found("404 page not found")
        except PermissionError:
            return forbidden("403 Forbidden")
        except OSError as e:
            logger.error(f"Error reading file {path}: {e}")
            return internal_error()

        builder = (ResponseBuilder()
            .content_type(content_type)
            .header("Accept-Ranges", "bytes")
            .headers(validators)
            .body(content))

        if byte_range is None:
            return builder.status(HTTPStatus.OK).build()

        start, end = byte_range
        return (builder
            .status(HTTPStatus.PARTIAL_CONTENT)
            .header("Content-Range", f"bytes {start}-{end}/{size}")
            .build())

    def _read(self, path: str, byte_range: Optional[tuple[int, int]]) -> tuple[str, bytes]:
        """Read the requested bytes and work out the Content-Type."""
        with open(path, "rb") as f:
            head = None
            if get_mime_type(path) is None:
                head = f.read(SNIFF_LENGTH)
                f.seek(0)

            if byte_range is None:
                content = f.read()
            else:
                start, end = byte_range
                f.seek(start)
                content = f.read(end - start + 1)

        return get_content_type(path, head=head), content

    def _not_modified(self, request: HTTPRequest, etag: str, mtime: datetime) -> bool:
        """
        Evaluate If-None-Match, then If-Modified-Since.

        If-Modified-Since is ignored when If-None-Match is present
        (RFC 7232 section 6).
        """
        if request.method not in ("GET", "HEAD"):
            return False

        if_none_match = request.get_header("if-none-match")
        if if_none_match:
            tags = [tag.strip() for tag in if_none_match.split(",")]
            return "*" in tags or etag in tags or f"W/{etag}" in tags

        if_modified_since = request.get_header("if-modified-since")
        if if_modified_since:
            since = parse_http_date(if_modified_since)
            return since is not None and mtime <= since

        return False

    def _if_range_matches(self, request: HTTPRequest, etag: str, last_modified: str) -> bool:
        """An If-Range that names a different version disables the Range."""
        if_range = request.get_header("if-range")
        if not if_range:
            return True
        return if_range == etag or if_range == last_modified
