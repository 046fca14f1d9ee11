from __future__ import annotations

import logging

from fastapi.testclient import TestClient

from edge_api.main import app


client = TestClient(app)


def test_preserves_incoming_request_id_header():
    incoming_id = "test-request-id-123"
    resp = client.get("/health", headers={"X-Request-ID": incoming_id})

    assert resp.status_code == 200
    assert resp.headers.get("X-Request-ID") == incoming_id


def test_generates_request_id_when_missing():
    resp = client.get("/health")

    assert resp.status_code == 200
    generated = resp.headers.get("X-Request-ID")
    assert generated
    assert isinstance(generated, str)
    assert len(generated) > 0

    duration = resp.headers.get("X-Request-Duration-ms")
    assert duration is not None


def test_oversized_request_id_is_truncated():
    resp = client.get("/health", headers={"X-Request-ID": "x" * 500})

    assert resp.headers["X-Request-ID"] == "x" * 128


def test_error_body_carries_request_id():
    resp = client.get("/api/geoapify/geocode", headers={"X-Request-ID": "req-err-1"})

    assert resp.status_code == 400
    assert resp.json()["request_id"] == "req-err-1"


def test_access_log_hashes_client_address(caplog):
    with caplog.at_level(logging.INFO, logger="edge_api.access"):
        client.get("/health", headers={"X-Forwarded-For": "203.0.113.7"})

    records = [r for r in caplog.records if r.getMessage() == "request.completed"]
    assert records
    record = records[-1]
    assert record.status_code == 200
    assert record.path == "/health"
    assert "203.0.113.7" not in str(record.__dict__)
