"""Tests for global exception handlers.

Validates that all exception types are handled consistently with
proper HTTP status codes, error format, and no information leakage.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from edge_api.core.errors import (
    AppError,
    ConfigurationAppError,
    RateLimitAppError,
    UpstreamTimeoutError,
    ValidationAppError,
    VerificationAppError,
)
from edge_api.core.exception_handlers import general_exception_handler, setup_exception_handlers


@pytest.fixture
def app_with_handlers() -> FastAPI:
    """Create FastAPI app with exception handlers registered."""
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    """Create test client with handlers enabled."""
    return TestClient(app_with_handlers, raise_server_exceptions=False)


class TestAppErrorHandler:
    """Test handler for AppError and subclasses."""

    @pytest.mark.parametrize(
        ("error", "status"),
        [
            (ValidationAppError(code="invalid_field", message="Name is required."), 400),
            (VerificationAppError(code="verification_failed", message="Missing Turnstile token."), 403),
            (UpstreamTimeoutError(code="upstream_timeout", message="Upstream request timed out."), 504),
            (ConfigurationAppError(code="geoapify_not_configured", message="Missing key."), 500),
        ],
    )
    def test_status_follows_error_kind(
        self, client: TestClient, app_with_handlers: FastAPI, error: AppError, status: int
    ):
        @app_with_handlers.get("/raise")
        async def endpoint():
            raise error

        response = client.get("/raise")

        assert response.status_code == status
        data = response.json()
        assert data["error"] == error.message
        assert data["code"] == error.code
        assert "request_id" in data
        assert response.headers["Cache-Control"] == "no-store"

    def test_rate_limit_error_advertises_retry(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/limited")
        async def endpoint():
            raise RateLimitAppError(
                code="rate_limited",
                message="Rate limit exceeded.",
                retry_after_seconds=17,
                limit=5,
            )

        response = client.get("/limited")

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "17"
        assert response.json()["retryAfterSeconds"] == 17

    def test_details_are_not_exposed(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/details")
        async def endpoint():
            raise ValidationAppError(code="invalid_field", message="Bad", details={"field": "email"})

        data = client.get("/details").json()

        assert set(data) == {"error", "code", "request_id"}


class TestRoutingErrors:
    def test_unknown_route_uses_error_shape(self, client: TestClient):
        response = client.get("/nope")

        assert response.status_code == 404
        assert response.json()["code"] == "http_404"

    def test_wrong_method_message(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.post("/only-post")
        async def endpoint():
            return {"ok": True}

        response = client.get("/only-post")

        assert response.status_code == 405
        assert response.json()["error"] == "Method not allowed."
        assert "POST" in response.headers["Allow"]


class TestGeneralExceptionHandler:
    """Test fallback handler for unexpected exceptions."""

    def test_unexpected_exception_handler_registered(self, app_with_handlers: FastAPI):
        assert Exception in app_with_handlers.exception_handlers

    def test_general_exception_handler_logic(self):
        request = AsyncMock()
        request.url.path = "/test"
        request.method = "GET"

        exc = RuntimeError("Unexpected error: supabase connection string leaked")
        response = asyncio.run(general_exception_handler(request, exc))

        data = json.loads(bytes(response.body).decode())
        assert response.status_code == 500
        assert data["code"] == "internal_server_error"
        assert data["error"] == "Server error."
        assert "supabase" not in json.dumps(data)

    def test_general_exception_handler_never_leaks_stack_trace(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/boom")
        async def endpoint():
            raise ValueError("Test error with details")

        response = client.get("/boom")

        assert response.status_code == 500
        assert "Traceback" not in response.text
        assert "ValueError" not in response.text


class TestErrorHandlerIntegration:
    def test_multiple_handler_setups_does_not_fail(self):
        app = FastAPI()

        setup_exception_handlers(app)
        setup_exception_handlers(app)

        assert AppError in app.exception_handlers
