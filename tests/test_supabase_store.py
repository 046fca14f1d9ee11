"""Tests for the Supabase (PostgREST) record store."""

import json

import httpx
import pytest

from edge_api.adapters.http.fetcher import TimeoutFetcher
from edge_api.adapters.store.factory import create_record_store
from edge_api.adapters.store.supabase import SupabaseRecordStore
from edge_api.core.config import Settings, SupabaseSettings
from edge_api.core.errors import ConfigurationAppError


async def _no_sleep(seconds: float) -> None:
    return None


def _store(handler) -> SupabaseRecordStore:
    fetcher = TimeoutFetcher(httpx.AsyncClient(transport=httpx.MockTransport(handler)), sleep=_no_sleep)
    return SupabaseRecordStore(fetcher, url="https://proj.supabase.example/", service_role_key="service-key")


@pytest.mark.asyncio
async def test_insert_posts_to_rest_endpoint_with_service_role() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201)

    result = await _store(handler).insert("contact_messages", {"name": "Asha"})

    assert result.ok is True
    (request,) = seen
    assert str(request.url) == "https://proj.supabase.example/rest/v1/contact_messages"
    assert request.headers["apikey"] == "service-key"
    assert request.headers["Authorization"] == "Bearer service-key"
    assert request.headers["Prefer"] == "return=minimal"
    assert json.loads(request.content) == {"name": "Asha"}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(409, json={"code": "23505", "message": "duplicate key value violates unique constraint"}),
        httpx.Response(400, json={"code": "23505", "message": "conflict"}),
        httpx.Response(400, json={"message": "Unique violation on email"}),
    ],
)
async def test_unique_violations_are_flagged_duplicate(response: httpx.Response) -> None:
    result = await _store(lambda request: response).insert("newsletter_subscribers", {"email": "a@b.co"})

    assert result.ok is False
    assert result.duplicate is True


@pytest.mark.asyncio
async def test_other_rejections_carry_the_store_message() -> None:
    response = httpx.Response(401, json={"code": "PGRST301", "message": "JWT expired"})

    result = await _store(lambda request: response).insert("contact_messages", {})

    assert result.ok is False
    assert result.duplicate is False
    assert result.error == "JWT expired"


@pytest.mark.asyncio
async def test_transport_failure_is_attempted_once_and_reported() -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        raise httpx.ConnectError("unreachable", request=request)

    result = await _store(handler).insert("contact_messages", {})

    assert result.ok is False
    assert result.duplicate is False
    assert calls == 1


def test_factory_requires_url_and_key() -> None:
    settings = Settings(supabase=SupabaseSettings(url="https://proj.supabase.example", service_role_key=None))
    fetcher = TimeoutFetcher(httpx.AsyncClient())

    with pytest.raises(ConfigurationAppError) as exc_info:
        create_record_store(settings, fetcher)

    assert exc_info.value.code == "store_not_configured"
