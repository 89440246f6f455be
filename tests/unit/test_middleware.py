"""
Unit tests for the middleware pipeline and access logging.
"""

import json
import logging

import pytest

from dirserve.http import HTTPResponse, forbidden, internal_error, ok
from dirserve.middleware import LoggingMiddleware, Middleware, MiddlewarePipeline


class Recorder(Middleware):
    def __init__(self, label, calls):
        self.label = label
        self.calls = calls

    def __call__(self, request, next):
        self.calls.append(f"{self.label}:before")
        response = next(request)
        self.calls.append(f"{self.label}:after")
        return response


class TestMiddlewarePipeline:
    """Tests for MiddlewarePipeline."""

    def test_first_added_is_outermost(self, make_request):
        calls = []
        pipeline = MiddlewarePipeline().add(Recorder("a", calls)).add(Recorder("b", calls))

        def endpoint(request):
            calls.append("handler")
            return ok()

        pipeline.wrap(endpoint)(make_request("/"))

        assert calls == ["a:before", "b:before", "handler", "b:after", "a:after"]
        assert len(pipeline) == 2

    def test_empty_pipeline_is_identity(self, make_request):
        response = ok(b"x")
        assert MiddlewarePipeline().wrap(lambda request: response)(make_request("/")) is response


class TestLoggingMiddleware:
    """Tests for LoggingMiddleware."""

    def test_text_access_line(self, make_request, caplog):
        caplog.set_level(logging.INFO, logger="dirserve.access")

        response = LoggingMiddleware()(make_request("/docs/"), lambda request: ok(b"hello"))

        (record,) = [r for r in caplog.records if r.name == "dirserve.access"]
        assert '"GET /docs/" 200 5' in record.getMessage()
        assert record.getMessage().startswith("127.0.0.1 - - [")
        assert len(response.headers["X-Request-ID"]) == 8

    def test_json_access_line(self, make_request, caplog):
        caplog.set_level(logging.INFO, logger="dirserve.access")

        LoggingMiddleware(log_format="json")(make_request("/x"), lambda request: ok())

        (record,) = [r for r in caplog.records if r.name == "dirserve.access"]
        data = json.loads(record.getMessage())
        assert data["path"] == "/x"
        assert data["status_code"] == 200
        assert data["client_ip"] == "127.0.0.1"

    def test_request_id_optional(self, make_request):
        response = LoggingMiddleware(include_request_id=False)(make_request("/"), lambda request: ok())
        assert "X-Request-ID" not in response.headers

    def test_server_error_logged_at_error(self, make_request, caplog):
        caplog.set_level(logging.INFO, logger="dirserve.access")

        LoggingMiddleware()(make_request("/x"), lambda request: internal_error())

        (record,) = [r for r in caplog.records if r.name == "dirserve.access"]
        assert record.levelno == logging.ERROR
        assert '"GET /x" 500' in record.getMessage()

    def test_client_error_uses_configured_level(self, make_request, caplog):
        caplog.set_level(logging.DEBUG, logger="dirserve.access")

        LoggingMiddleware(log_level=logging.DEBUG)(make_request("/x"), lambda request: forbidden())

        (record,) = [r for r in caplog.records if r.name == "dirserve.access"]
        assert record.levelno == logging.DEBUG

    def test_failure_logged_and_reraised(self, make_request, caplog):
        def explode(request) -> HTTPResponse:
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            LoggingMiddleware()(make_request("/x"), explode)

        assert "Request failed: GET /x - RuntimeError: boom" in caplog.text
