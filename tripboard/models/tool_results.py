"""Normalized results returned by external provider adapters."""

from datetime import date

from pydantic import BaseModel, ConfigDict, Field


class GeocodeResult(BaseModel):
    """Coordinates resolved for a free-text address."""

    lat: float
    lon: float
    provider: str


class DailyForecast(BaseModel):
    """Per-day weather summary bucketed from a 3-hour forecast."""

    date: date
    temp_min: int
    temp_max: int
    description: str
    icon: str
    precipitation_probability: int = Field(..., ge=0, le=100)


class NearbyPlace(BaseModel):
    """Place returned by a nearby search."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    address: str
    lat: float
    lon: float
    rating: float = 0
    review_count: int = Field(0, alias="reviewCount")
    types: list[str] = Field(default_factory=list)
    photo_url: str | None = Field(None, alias="photoUrl")
    distance_m: float | None = Field(None, alias="distanceM")
