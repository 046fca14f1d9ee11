from __future__ import annotations

import pytest
from starlette.datastructures import Headers

from edge_api.core.client_identity import UNKNOWN_CLIENT, get_client_ip, hash_client_key


@pytest.mark.parametrize(
    ("headers", "expected"),
    [
        ({"X-Forwarded-For": "203.0.113.7, 10.0.0.1"}, "203.0.113.7"),
        ({"x-forwarded-for": " 198.51.100.2 "}, "198.51.100.2"),
        ({"X-Forwarded-For": "203.0.113.7", "X-Real-IP": "10.0.0.9"}, "203.0.113.7"),
        ({"X-Real-IP": "10.0.0.9"}, "10.0.0.9"),
        ({"X-Forwarded-For": " , 10.0.0.1", "X-Real-IP": "10.0.0.9"}, "10.0.0.9"),
        ({}, UNKNOWN_CLIENT),
    ],
)
def test_get_client_ip(headers: dict, expected: str) -> None:
    assert get_client_ip(Headers(headers=headers)) == expected


def test_hash_client_key_is_stable_and_hides_address() -> None:
    digest = hash_client_key("forms:contact:203.0.113.7")

    assert digest == hash_client_key("forms:contact:203.0.113.7")
    assert len(digest) == 16
    assert digest != hash_client_key("forms:contact:203.0.113.8")
