"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Builds HTTP/1.1 responses per RFC 7230.

=============================================================================
HTTP RESPONSE ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  HTTP/1.1 200 OK\\r\\n                         ← status line          │
    │  Content-Type: text/html; charset=utf-8\\r\\n  ← headers              │
    │  Content-Length: 412\\r\\n                     ← added by to_bytes()  │
    │  Date: Sat, 17 Oct 2026 12:00:00 GMT\\r\\n     ← added by to_bytes()  │
    │  Server: dirserve/1.0\\r\\n                    ← added by to_bytes()  │
    │  \\r\\n                                        ← separator            │
    │  <html>...                                   ← body                 │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
BUILDER PATTERN
=============================================================================

    response = (ResponseBuilder()
        .status(HTTPStatus.PARTIAL_CONTENT)
        .header("Content-Range", "bytes 0-99/1000")
        .body(chunk)
        .build())

Each method returns the builder so calls chain; build() produces the
HTTPResponse the server serialises.

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Optional, Dict, Union

from .status_codes import HTTPStatus


@dataclass
class HTTPResponse:
    """
    An HTTP response ready to be serialised.

    Use ResponseBuilder (or the helpers at the bottom of this module)
    rather than constructing one by hand.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """E.g. "HTTP/1.1 403 Forbidden"."""
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """Set a header; returns self for chaining."""
        self.headers[name] = value
        return self

    def to_bytes(self, server_name: str = "dirserve/1.0", include_body: bool = True) -> bytes:
        """
        Serialise for socket.sendall().

        Content-Length, Date and Server are filled in when missing.
        With include_body=False (HEAD requests) the headers still
        describe the body that a GET would have returned.

        Args:
            server_name: Value for the Server header.
            include_body: Whether to append the body bytes.
        """
        response_headers = dict(self.headers)

        if "Content-Length" not in response_headers:
            response_headers["Content-Length"] = str(len(self.body))
        if "Date" not in response_headers:
            response_headers["Date"] = format_http_date(datetime.now(timezone.utc))
        if "Server" not in response_headers:
            response_headers["Server"] = server_name

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("utf-8") + b"\r\n"
        if not include_body:
            return header_bytes
        return header_bytes + self.body


class ResponseBuilder:
    """Fluent builder for HTTPResponse."""

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""

    # =========================================================================
    # STATUS AND HEADERS
    # =========================================================================

    def status(self, status: Union[HTTPStatus, int]) -> "ResponseBuilder":
        self._status = HTTPStatus(status)
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def headers(self, headers: Dict[str, str]) -> "ResponseBuilder":
        self._headers.update(headers)
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-Type", content_type)

    # =========================================================================
    # BODY
    # =========================================================================

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """Raw body; strings are encoded as UTF-8."""
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def text(self, text: str) -> "ResponseBuilder":
        """Plain text body with a UTF-8 Content-Type."""
        self._body = text.encode("utf-8")
        self._headers["Content-Type"] = "text/plain; charset=utf-8"
        return self

    def html(self, html: Union[str, bytes]) -> "ResponseBuilder":
        """HTML body with a UTF-8 Content-Type."""
        self._body = html.encode("utf-8") if isinstance(html, str) else html
        self._headers["Content-Type"] = "text/html; charset=utf-8"
        return self

    # =========================================================================
    # CONNECTION
    # =========================================================================

    def keep_alive(self, timeout: int = 5) -> "ResponseBuilder":
        self._headers["Connection"] = "keep-alive"
        self._headers["Keep-Alive"] = f"timeout={timeout}"
        return self

    def close_connection(self) -> "ResponseBuilder":
        self._headers["Connection"] = "close"
        return self

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=self._headers,
            body=self._body,
        )


# =============================================================================
# HTTP DATES
# =============================================================================
#
# HTTP-date (RFC 7231): "Sat, 17 Oct 2026 12:00:00 GMT", always in GMT.
# Used for Date, Last-Modified and If-Modified-Since.
#
# =============================================================================

_DAYS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
_MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


def format_http_date(dt: datetime) -> str:
    """Format an aware UTC datetime as an HTTP-date."""
    return (
        f"{_DAYS[dt.weekday()]}, "
        f"{dt.day:02d} {_MONTHS[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


def parse_http_date(value: str) -> Optional[datetime]:
    """
    Parse an HTTP-date header value.

    Returns None for anything unparsable; a bad If-Modified-Since is
    ignored rather than rejected (RFC 7232 section 3.3).
    """
    try:
        dt = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def ok(body: Union[str, bytes] = b"", content_type: Optional[str] = None) -> HTTPResponse:
    """200 OK. An empty call gives the bare default response."""
    builder = ResponseBuilder().status(HTTPStatus.OK).body(body)
    if content_type:
        builder.content_type(content_type)
    return builder.build()


def error_response(status: Union[HTTPStatus, int], message: str) -> HTTPResponse:
    """An error status with a plain-text diagnostic body."""
    return ResponseBuilder().status(status).text(message + "\n").build()


def forbidden(message: str = "Forbidden") -> HTTPResponse:
    """403 Forbidden with a plain-text body."""
    return error_response(HTTPStatus.FORBIDDEN, message)


def not_found(message: str = "Not Found") -> HTTPResponse:
    """404 Not Found with a plain-text body."""
    return error_response(HTTPStatus.NOT_FOUND, message)


def internal_error(message: str = "Internal Server Error") -> HTTPResponse:
    """500 with a generic plain-text body; details belong in the log."""
    return error_response(HTTPStatus.INTERNAL_SERVER_ERROR, message)
