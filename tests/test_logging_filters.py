"""Tests for sensitive data filtering in logs."""

from __future__ import annotations

import json
import logging
from io import StringIO

import pytest

from edge_api.core.logging import (
    JsonFormatter,
    RequestIdFilter,
    SensitiveDataFilter,
    clear_request_id,
    redact_text,
    set_request_id,
)


@pytest.fixture
def capture():
    """Logger wired like configure_logging, writing into a buffer."""

    def _capture(name: str) -> tuple[logging.Logger, StringIO]:
        logger = logging.getLogger(name)
        logger.setLevel(logging.INFO)
        logger.handlers.clear()
        logger.propagate = False

        stream = StringIO()
        handler = logging.StreamHandler(stream)
        handler.addFilter(RequestIdFilter())
        handler.addFilter(SensitiveDataFilter())
        handler.setFormatter(JsonFormatter())
        logger.addHandler(handler)
        return logger, stream

    return _capture


def test_sensitive_filter_redacts_secrets(capture):
    logger, stream = capture("test_redaction")

    logger.info(
        "test_event",
        extra={
            "api_key": "geo-secret-123",
            "turnstileToken": "0.tok-abc",
            "service_role_key": "supabase-secret",
            "safe_field": "visible",
        },
    )

    output = stream.getvalue()

    assert "geo-secret-123" not in output
    assert "0.tok-abc" not in output
    assert "supabase-secret" not in output
    assert "[REDACTED]" in output
    assert "visible" in output


def test_sensitive_filter_redacts_form_personal_data(capture):
    logger, stream = capture("test_pii")

    logger.info(
        "form_event",
        extra={
            "email": "asha@example.com",
            "whatsapp_number": "+91 98765 43210",
            "table": "itinerary_queries",
        },
    )

    output = stream.getvalue()

    assert "asha@example.com" not in output
    assert "98765" not in output
    assert "itinerary_queries" in output


def test_credentials_inside_urls_are_masked(capture):
    logger, stream = capture("test_url")

    logger.info(
        "HTTP Request: GET https://api.geoapify.com/v1/geocode/search?text=Leh&apiKey=%s",
        "live-key-999",
        extra={"url": "https://api.geoapify.com/v2/places?apiKey=live-key-999&limit=5"},
    )

    record = json.loads(stream.getvalue())
    assert "live-key-999" not in stream.getvalue()
    assert record["message"].endswith("apiKey=[REDACTED]")
    assert record["url"] == "https://api.geoapify.com/v2/places?apiKey=[REDACTED]&limit=5"


def test_sensitive_filter_allows_safe_fields(capture):
    logger, stream = capture("test_safe_fields")

    logger.info(
        "safe_event",
        extra={
            "route": "/api/geoapify/places",
            "status_code": 200,
            "duration_ms": 150.5,
        },
    )

    output = stream.getvalue()

    assert "/api/geoapify/places" in output
    assert "200" in output
    assert "[REDACTED]" not in output


def test_sensitive_filter_redacts_nested_dicts(capture):
    logger, stream = capture("test_nested")

    logger.info(
        "nested_event",
        extra={
            "headers": {
                "authorization": "Bearer secret-key",
                "user-agent": "pytest",
            },
        },
    )

    output = stream.getvalue()

    assert "secret-key" not in output
    assert "pytest" in output


def test_request_id_is_attached_from_context(capture):
    logger, stream = capture("test_request_id")

    set_request_id("req-abc")
    try:
        logger.info("with_context")
    finally:
        clear_request_id()

    assert json.loads(stream.getvalue())["request_id"] == "req-abc"


def test_redact_text_leaves_plain_text_alone():
    assert redact_text("No geocode result found.") == "No geocode result found."
