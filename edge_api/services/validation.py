"""Field validation for inbound requests.

Every validator is a pure function of the parsed params: it returns a
cleaned record or raises ValidationAppError for the first rule that fails.
Rules are checked in a fixed order so clients always see the same message
for the same input.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Mapping

from edge_api.core.errors import ValidationAppError

EMAIL_PATTERN = re.compile(r"\S+@\S+\.\S+")
# Whitespace and zero-width characters that sneak in from copy/paste
_INVISIBLE_CHARS = re.compile(r"[\s\u200B-\u200D\uFEFF]")
_NON_DIGITS = re.compile(r"\D")

MAX_PLACES_LIMIT = 500

BASELINE_CATEGORIES = (
    "tourism.attraction",
    "tourism.sights",
    "natural.mountain",
    "natural.water",
)

# Geoapify rejects unknown categories with a 400, so tags only ever map onto
# the conservative set above.
INTEREST_TAG_CATEGORIES: dict[str, tuple[str, ...]] = {
    "mountain": ("natural.mountain",),
    "valley": ("natural.mountain",),
    "river": ("natural.water",),
    "lakes": ("natural.water",),
    "monasteries": ("tourism.attraction",),
    "culture": ("tourism.attraction", "tourism.sights"),
    "adventure": ("tourism.sights",),
    "photography": ("tourism.sights",),
}


@dataclass(frozen=True)
class PlacesQuery:
    lat: float
    lon: float
    radius_meters: int
    limit: int
    categories: tuple[str, ...]


@dataclass(frozen=True)
class ContactSubmission:
    name: str
    email: str
    message: str


@dataclass(frozen=True)
class LeadSubmission:
    trip_id: str
    trip_title: str
    name: str
    whatsapp_number: str
    email: str
    planning_time: str


@dataclass(frozen=True)
class NewsletterSubscription:
    email: str


def _fail(field: str, message: str) -> ValidationAppError:
    return ValidationAppError(code="invalid_field", message=message, details={"field": field})


def _text(params: Mapping[str, Any], name: str) -> str:
    value = params.get(name)
    if value is None:
        return ""
    return str(value).strip()


def _number(value: Any) -> float | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def _is_email(value: str) -> bool:
    return bool(EMAIL_PATTERN.search(value))


def validate_geocode_query(params: Mapping[str, Any]) -> str:
    text = _text(params, "text")
    if not text:
        raise _fail("text", 'Missing "text" parameter.')
    return text


def map_interest_tags(tags: Any) -> list[str]:
    """Translate interest tags into Geoapify categories (baseline always included)."""

    categories = set(BASELINE_CATEGORIES)
    if isinstance(tags, (list, tuple)):
        for tag in tags:
            categories.update(INTEREST_TAG_CATEGORIES.get(str(tag).strip().lower(), ()))
    return sorted(categories)


def _explicit_categories(value: Any) -> list[str]:
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, (list, tuple)):
        return []
    return [str(item).strip() for item in value if str(item).strip()]


def validate_places_query(
    params: Mapping[str, Any],
    *,
    default_radius_meters: int,
    default_limit: int,
) -> PlacesQuery:
    lat = _number(params.get("lat"))
    lon = _number(params.get("lon"))
    if lat is None or lon is None or not -90 <= lat <= 90 or not -180 <= lon <= 180:
        raise _fail("lat", 'Missing or invalid "lat"/"lon".')

    radius = params.get("radiusMeters")
    radius_meters = _number(radius) if radius not in (None, "") else float(default_radius_meters)
    # Fractions are truncated to whole meters, so anything under 1 m is empty.
    if radius_meters is None or radius_meters < 1:
        raise _fail("radiusMeters", 'Invalid "radiusMeters".')

    raw_limit = params.get("limit")
    limit = _number(raw_limit) if raw_limit not in (None, "") else float(default_limit)
    if limit is None or limit != int(limit) or not 1 <= limit <= MAX_PLACES_LIMIT:
        raise _fail("limit", f'"limit" must be an integer between 1 and {MAX_PLACES_LIMIT}.')

    categories = _explicit_categories(params.get("categories"))
    if not categories:
        categories = map_interest_tags(params.get("interestTags") or params.get("interests"))

    return PlacesQuery(
        lat=lat,
        lon=lon,
        radius_meters=int(radius_meters),
        limit=int(limit),
        categories=tuple(sorted(set(categories))),
    )


def validate_contact(params: Mapping[str, Any]) -> ContactSubmission:
    name = _text(params, "name")
    email = _text(params, "email").lower()
    message = _text(params, "message")

    if not name:
        raise _fail("name", "Name is required.")
    if not email or not _is_email(email):
        raise _fail("email", "Valid email is required.")
    if len(message) < 10:
        raise _fail("message", "Message must be at least 10 characters.")

    return ContactSubmission(name=name, email=email, message=message)


def validate_lead(params: Mapping[str, Any]) -> LeadSubmission:
    trip_id = _text(params, "tripId")
    trip_title = _text(params, "tripTitle")
    name = _text(params, "name")
    whatsapp_number = _text(params, "whatsappNumber")
    email = _text(params, "email")
    planning_time = _text(params, "planningTime")

    if not trip_id or not trip_title:
        raise _fail("tripId", "Missing trip details.")
    if not name:
        raise _fail("name", "Name is required.")
    if not whatsapp_number and not email:
        raise _fail("whatsappNumber", "Provide a WhatsApp number or an email.")
    if len(name) > 120:
        raise _fail("name", "Name is too long.")
    if len(trip_title) > 200:
        raise _fail("tripTitle", "Trip title is too long.")
    if len(planning_time) > 200:
        raise _fail("planningTime", "Planning time is too long.")
    if len(whatsapp_number) > 40:
        raise _fail("whatsappNumber", "WhatsApp number is too long.")
    if len(email) > 254:
        raise _fail("email", "Email is too long.")
    if email and not _is_email(email):
        raise _fail("email", "Valid email is required.")
    if whatsapp_number:
        # Formatting is kept for follow-up; only the digit count is checked.
        digits = _NON_DIGITS.sub("", whatsapp_number)
        if not 8 <= len(digits) <= 15:
            raise _fail("whatsappNumber", "WhatsApp number looks invalid.")

    return LeadSubmission(
        trip_id=trip_id,
        trip_title=trip_title,
        name=name,
        whatsapp_number=whatsapp_number,
        email=email,
        planning_time=planning_time,
    )


def validate_newsletter(params: Mapping[str, Any]) -> NewsletterSubscription:
    raw = params.get("email")
    email = _INVISIBLE_CHARS.sub("", str(raw) if raw is not None else "").lower()
    if not email or not _is_email(email):
        raise _fail("email", "Enter a valid email.")
    return NewsletterSubscription(email=email)
