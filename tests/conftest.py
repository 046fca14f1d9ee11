"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It pins APP_ENV to "testing" before settings are imported so no developer
.env file leaks into the test run, and provides fake upstreams, clocks and
a fully wired app for route tests.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"

# Set default env vars that all tests might need
os.environ.setdefault("GEOAPIFY_API_KEY", "test-geoapify-key")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from typing import Any, Callable

import httpx
import pytest
from fastapi.testclient import TestClient

from edge_api.adapters.store.in_memory import InMemoryRecordStore
from edge_api.adapters.verification.base import AbstractVerifier, VerificationResult
from edge_api.core.app_factory import create_app
from edge_api.core.config import (
    GeoapifySettings,
    HealthSettings,
    RateLimitSettings,
    Settings,
    TurnstileSettings,
)
from edge_api.core.runtime import Runtime
from edge_api.services.forms_service import NEWSLETTER_TABLE


class FakeClock:
    """Deterministic monotonic clock; advance it explicitly."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


class RecordingSleep:
    """Async sleep replacement that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class FakeVerifier(AbstractVerifier):
    """Verifier that accepts any non-empty token unless told otherwise."""

    def __init__(self, *, reject_with: list[str] | None = None) -> None:
        self.reject_with = reject_with
        self.calls: list[tuple[str | None, str | None, str]] = []

    async def verify(
        self,
        token: str | None,
        expected_action: str | None,
        client_ip: str,
    ) -> VerificationResult:
        self.calls.append((token, expected_action, client_ip))
        if not token:
            return VerificationResult.reject("missing-input-response")
        if self.reject_with:
            return VerificationResult.reject(*self.reject_with)
        return VerificationResult.accept()


class GeoapifyStub:
    """MockTransport handler answering Geoapify geocode and places paths."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.geocode_features: list[dict[str, Any]] = [
            {
                "geometry": {"coordinates": [77.5771, 34.1526]},
                "properties": {"formatted": "Leh, Ladakh, India"},
            }
        ]
        self.places_features: list[dict[str, Any]] = [
            {
                "geometry": {"coordinates": [77.58, 34.16]},
                "properties": {
                    "place_id": "p-1",
                    "name": "Shanti Stupa",
                    "formatted": "Shanti Stupa, Leh",
                    "categories": ["tourism.sights"],
                },
            },
            {
                "geometry": {"coordinates": [77.6, 34.2]},
                "properties": {"categories": ["tourism.sights"]},
            },
        ]
        self.status_code = 200

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"message": "error"})
        if request.url.path == "/v1/geocode/search":
            return httpx.Response(200, json={"type": "FeatureCollection", "features": self.geocode_features})
        if request.url.path == "/v2/places":
            return httpx.Response(200, json={"type": "FeatureCollection", "features": self.places_features})
        return httpx.Response(404, json={"message": "unknown path"})

    def calls_to(self, path: str) -> int:
        return sum(1 for r in self.requests if r.url.path == path)


def make_settings(**overrides: Any) -> Settings:
    """Settings with test secrets and no retry backoff."""

    values: dict[str, Any] = {
        "app_env": "testing",
        "geoapify": GeoapifySettings(api_key="test-geoapify-key", backoff_base_seconds=0.0),
        "turnstile": TurnstileSettings(secret_key=None),
        "rate_limit": RateLimitSettings(),
        "health": HealthSettings(check_secret="health-secret"),
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def geoapify() -> GeoapifyStub:
    return GeoapifyStub()


@pytest.fixture
def verifier() -> FakeVerifier:
    return FakeVerifier()


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore(unique_columns={NEWSLETTER_TABLE: "email"})


@pytest.fixture
def build_client(
    clock: FakeClock,
    sleep: RecordingSleep,
    geoapify: GeoapifyStub,
    verifier: FakeVerifier,
    store: InMemoryRecordStore,
) -> Callable[..., TestClient]:
    """Factory for a TestClient over a fully wired app with fake collaborators."""

    def _build(
        settings: Settings | None = None,
        handler: Callable[[httpx.Request], httpx.Response] | None = None,
    ) -> TestClient:
        resolved = settings or make_settings()
        runtime = Runtime(
            resolved,
            transport=httpx.MockTransport(handler or geoapify),
            clock=clock,
            sleep=sleep,
            store=store,
            verifier=verifier,
        )
        return TestClient(create_app(resolved, runtime))

    return _build


@pytest.fixture
def client(build_client: Callable[..., TestClient]) -> TestClient:
    return build_client()


@pytest.fixture
def settings_factory() -> Callable[..., Settings]:
    return make_settings
