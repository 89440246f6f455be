"""
=============================================================================
HTTP PROTOCOL MODULE
=============================================================================

The HTTP/1.1 message layer: bytes in, HTTPRequest out; HTTPResponse in,
bytes out. No routing lives here; dirserve has a single catch-all
handler (see dirserve.handlers.index).

    request.py       - RequestParser, HTTPRequest, HTTPParseError
    response.py      - HTTPResponse, ResponseBuilder, HTTP dates, helpers
    status_codes.py  - HTTPStatus enum with reason phrases
    mime_types.py    - Content-Type by extension, with byte sniffing

=============================================================================
"""

from .request import HTTPRequest, RequestParser, HTTPParseError
from .response import (
    HTTPResponse,
    ResponseBuilder,
    format_http_date,
    parse_http_date,
    ok,
    error_response,
    forbidden,
    not_found,
    internal_error,
)
from .status_codes import HTTPStatus
from .mime_types import get_mime_type, get_content_type, sniff_mime_type

__all__ = [
    # Request parsing
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",

    # Response building
    "HTTPResponse",
    "ResponseBuilder",
    "format_http_date",
    "parse_http_date",
    "ok",
    "error_response",
    "forbidden",
    "not_found",
    "internal_error",

    # Status codes
    "HTTPStatus",

    # MIME types
    "get_mime_type",
    "get_content_type",
    "sniff_mime_type",
]
