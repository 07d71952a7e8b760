"""
Tests for middleware components.

This module tests:
- RequestIDMiddleware (correlation ID tracking)
- LoggingMiddleware (request/response logging)

Tests follow AAA (Arrange, Act, Assert) pattern.
"""

import uuid
from unittest.mock import patch

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from insightflow.core.logging_config import get_request_id
from insightflow.middleware.logging import LoggingMiddleware
from insightflow.middleware.request_id import REQUEST_ID_HEADER, RequestIDMiddleware, resolve_request_id


def _make_app(with_logging: bool = False) -> FastAPI:
    app = FastAPI()
    if with_logging:
        app.add_middleware(LoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.get("/echo")
    async def echo(request: Request):
        return {"request_id": request.state.request_id}

    @app.get("/boom")
    async def boom():
        raise ValueError("Test exception")

    return app


def _completion_extra(mock_logger):
    calls = [c for c in mock_logger.info.call_args_list if "Request completed" in str(c)]
    assert calls
    return calls[0].kwargs.get("extra", {})


class TestRequestIDMiddleware:
    """Tests for request ID correlation middleware."""

    def test_request_id_generated_when_missing(self):
        """
        Arrange: App with RequestIDMiddleware
        Act: Request without X-Request-ID header
        Assert: Response carries a UUID that matches request.state
        """
        client = TestClient(_make_app())

        response = client.get("/echo")

        request_id = response.headers[REQUEST_ID_HEADER]
        uuid.UUID(request_id)
        assert response.json()["request_id"] == request_id

    def test_request_id_preserved_from_header(self):
        client = TestClient(_make_app())

        response = client.get("/echo", headers={REQUEST_ID_HEADER: "analysis-run-42"})

        assert response.headers[REQUEST_ID_HEADER] == "analysis-run-42"
        assert response.json()["request_id"] == "analysis-run-42"

    def test_request_id_different_per_request(self):
        client = TestClient(_make_app())

        ids = {client.get("/echo").headers[REQUEST_ID_HEADER] for _ in range(3)}

        assert len(ids) == 3


class TestLoggingMiddleware:
    """Tests for request/response logging middleware."""

    def test_logs_start_and_completion(self):
        client = TestClient(_make_app(with_logging=True))

        with patch("insightflow.middleware.logging.logger") as mock_logger:
            response = client.get("/echo?company=Tesla")

        assert response.status_code == 200
        messages = [c.args[0] for c in mock_logger.info.call_args_list]
        assert messages == ["Request started", "Request completed"]
        started = mock_logger.info.call_args_list[0].kwargs["extra"]
        assert started["query_params"] == "company=Tesla"

    def test_completion_has_status_latency_and_request_id(self):
        """
        Arrange: Both middleware, explicit request id
        Act: GET /echo
        Assert: Completion record carries status, latency and the id
        """
        client = TestClient(_make_app(with_logging=True))

        with patch("insightflow.middleware.logging.logger") as mock_logger:
            client.get("/echo", headers={REQUEST_ID_HEADER: "req-456"})

        extra = _completion_extra(mock_logger)
        assert extra["status_code"] == 200
        assert extra["latency_ms"] >= 0
        assert extra["request_id"] == "req-456"
        assert extra["path"] == "/echo"
        assert extra["method"] == "GET"

    def test_logs_exceptions(self):
        client = TestClient(_make_app(with_logging=True), raise_server_exceptions=False)

        with patch("insightflow.middleware.logging.logger") as mock_logger:
            response = client.get("/boom")

        assert response.status_code == 500
        error_call = mock_logger.error.call_args
        assert "Request failed" in error_call.args[0]
        assert error_call.kwargs["extra"]["exception_type"] == "ValueError"
        assert error_call.kwargs["exc_info"] is True

    def test_reraises_exceptions(self):
        client = TestClient(_make_app(with_logging=True))

        with patch("insightflow.middleware.logging.logger"):
            with pytest.raises(ValueError):
                client.get("/boom")


class TestRequestIdResolution:
    """Tests for resolve_request_id and the logging context."""

    @pytest.mark.parametrize("value", [None, "", "has spaces", "x" * 200, "line\nbreak"])
    def test_unusable_header_replaced(self, value):
        uuid.UUID(resolve_request_id(value))

    def test_usable_header_kept(self):
        assert resolve_request_id("run-2025.03.01:7") == "run-2025.03.01:7"

    def test_request_id_visible_to_log_records(self):
        """
        Arrange: Route that reads the logging context
        Act: Request with an explicit id
        Assert: The id is set during the request and cleared afterwards
        """
        app = _make_app()

        @app.get("/context")
        async def context():
            return {"request_id": get_request_id()}

        response = TestClient(app).get("/context", headers={REQUEST_ID_HEADER: "ctx-1"})

        assert response.json() == {"request_id": "ctx-1"}
        assert get_request_id() is None
