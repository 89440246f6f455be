"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes this server can produce, as an IntEnum so they compare
equal to plain integers:

    >>> HTTPStatus.FORBIDDEN == 403
    True
    >>> HTTPStatus.FORBIDDEN.phrase
    'Forbidden'

    ┌───────┬──────────────────────────────────────────────────────────┐
    │ Code  │ When dirserve sends it                                   │
    ├───────┼──────────────────────────────────────────────────────────┤
    │ 200   │ Directory index, whole file, ignored path (empty body)   │
    │ 206   │ Satisfiable single byte range                            │
    │ 304   │ If-None-Match / If-Modified-Since matched                │
    │ 400   │ Malformed request                                        │
    │ 403   │ Stat failure, symlink, unknown type, "../" in path       │
    │ 404   │ File disappeared before it could be opened               │
    │ 405   │ Unknown method                                           │
    │ 408   │ Client never finished sending the request                │
    │ 413   │ Request larger than max_request_size                     │
    │ 416   │ Range outside the file                                   │
    │ 500   │ Read error or handler exception                          │
    │ 503   │ Worker queue full                                        │
    │ 505   │ HTTP version other than 1.0 / 1.1                        │
    └───────┴──────────────────────────────────────────────────────────┘

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """HTTP status codes with reason phrases."""

    # 2xx SUCCESS
    OK = 200
    PARTIAL_CONTENT = 206

    # 3xx REDIRECTION
    NOT_MODIFIED = 304

    # 4xx CLIENT ERRORS
    BAD_REQUEST = 400
    FORBIDDEN = 403
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    REQUEST_TIMEOUT = 408
    PAYLOAD_TOO_LARGE = 413
    RANGE_NOT_SATISFIABLE = 416

    # 5xx SERVER ERRORS
    INTERNAL_SERVER_ERROR = 500
    SERVICE_UNAVAILABLE = 503
    HTTP_VERSION_NOT_SUPPORTED = 505

    @property
    def phrase(self) -> str:
        """Reason phrase for the status line, e.g. "Not Found"."""
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def is_server_error(self) -> bool:
        return 500 <= self < 600


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.PARTIAL_CONTENT: "Partial Content",

    HTTPStatus.NOT_MODIFIED: "Not Modified",

    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.REQUEST_TIMEOUT: "Request Timeout",
    HTTPStatus.PAYLOAD_TOO_LARGE: "Payload Too Large",
    HTTPStatus.RANGE_NOT_SATISFIABLE: "Range Not Satisfiable",

    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.SERVICE_UNAVAILABLE: "Service Unavailable",
    HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
}
