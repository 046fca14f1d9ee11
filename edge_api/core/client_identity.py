"""Client identity derivation for rate limiting and verification.

Requests that carry neither X-Forwarded-For nor X-Real-IP all map to the
same "unknown" identity and therefore share one rate-limit bucket. A proxy
path that strips those headers can throttle unrelated clients.
"""

from __future__ import annotations

import hashlib
from typing import Mapping

UNKNOWN_CLIENT = "unknown"


def get_client_ip(headers: Mapping[str, str]) -> str:
    """Return the first forwarded-for address, else X-Real-IP, else "unknown".

    Args:
        headers: Request headers (case-insensitive mapping, e.g. Starlette's).
    """
    forwarded_for = headers.get("x-forwarded-for")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first

    real_ip = headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()

    return UNKNOWN_CLIENT


def hash_client_key(key: str) -> str:
    """Hash a client key for logging without exposing the address."""
    return hashlib.sha256(key.encode()).hexdigest()[:16]
