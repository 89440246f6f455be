"""
=============================================================================
ACCESS LOG MIDDLEWARE
=============================================================================

One line per request on the "dirserve.access" logger, separate from the
application loggers so it can be routed or silenced on its own:

    logging.getLogger("dirserve.access").addHandler(file_handler)

=============================================================================
FORMATS
=============================================================================

text (Apache-style):

    127.0.0.1 - - [17/Oct/2026:12:00:00 +0000] "GET /docs/" 200 412 0.84ms

json:

    {"request_id": "3f9a1c2e", "method": "GET", "path": "/docs/",
     "status_code": 200, "content_length": 412, "duration_ms": 0.84, ...}

Every response also carries the id as X-Request-ID, so a line in the log
can be matched to what a client saw.

=============================================================================
"""

import time
import json
import uuid
import logging
from dataclasses import dataclass, asdict

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse
from ..http.status_codes import HTTPStatus


logger = logging.getLogger("dirserve.access")


@dataclass
class RequestLog:
    """One access log record."""

    request_id: str
    method: str
    path: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        data = asdict(self)
        data["duration_ms"] = round(self.duration_ms, 2)
        return data

    def to_text(self) -> str:
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.path}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


class LoggingMiddleware(Middleware):
    """
    Access logging with request timing and ids.

    Args:
        log_format: "text" or "json".
        include_request_id: Add the X-Request-ID response header.
        log_level: Level the access lines are emitted at. Responses with
                   a 5xx status are always logged at ERROR.
    """

    def __init__(
        self,
        log_format: str = "text",
        include_request_id: bool = True,
        log_level: int = logging.INFO,
    ):
        self.log_format = log_format
        self.include_request_id = include_request_id
        self.log_level = log_level

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        request_id = uuid.uuid4().hex[:8]
        start_time = time.time()

        try:
            response = next(request)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                f"Request failed: {request.method} {request.path} "
                f"- {type(e).__name__}: {e} ({duration_ms:.2f}ms)"
            )
            raise

        duration_ms = (time.time() - start_time) * 1000

        entry = RequestLog(
            request_id=request_id,
            method=request.method,
            path=request.path,
            client_ip=request.client_address[0],
            user_agent=request.user_agent or "-",
            status_code=int(response.status),
            content_length=len(response.body),
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

        level = logging.ERROR if HTTPStatus(response.status).is_server_error else self.log_level

        if self.log_format == "json":
            logger.log(level, json.dumps(entry.to_dict()))
        else:
            logger.log(level, entry.to_text())

        if self.include_request_id:
            response.headers["X-Request-ID"] = request_id

        return response
