"""Pydantic schemas for normalized Geoapify results."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class GeocodeResult(BaseModel):
    """Best match for a free-text geocode query."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    lat: float = Field(..., description="Latitude in decimal degrees.")
    lon: float = Field(..., description="Longitude in decimal degrees.")
    formatted_address: str = Field(
        "",
        alias="formattedAddress",
        description="Human-readable address reported by the upstream.",
    )


class Place(BaseModel):
    """A point of interest near the queried coordinate."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(..., description="Upstream place id, or a lat,lon,name fallback.")
    name: str
    formatted_address: str = Field("", alias="formattedAddress")
    categories: list[str] = Field(default_factory=list)
    lat: float
    lon: float


class PlacesResult(BaseModel):
    """Places near a coordinate, in upstream order."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    places: list[Place] = Field(default_factory=list)
    used_categories: list[str] = Field(
        default_factory=list,
        alias="usedCategories",
        description="Geoapify categories the search was run with.",
    )
