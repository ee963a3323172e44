"""Nearby places adapter using the Google Places Nearby Search API."""

import math
import time
from typing import Any

import httpx

from tripboard.errors import ExternalProviderError
from tripboard.models.common import Geo
from tripboard.models.tool_results import NearbyPlace
from tripboard.utils.metrics import metrics

GOOGLE_NEARBY_URL = "https://maps.googleapis.com/maps/api/place/nearbysearch/json"
GOOGLE_PHOTO_URL = "https://maps.googleapis.com/maps/api/place/photo"

EARTH_RADIUS_M = 6371e3


def calculate_distance(a: Geo, b: Geo) -> float:
    """Great-circle distance in metres (haversine)."""
    phi1 = math.radians(a.lat)
    phi2 = math.radians(b.lat)
    d_phi = math.radians(b.lat - a.lat)
    d_lambda = math.radians(b.lon - a.lon)

    h = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def _to_place(raw: dict[str, Any], origin: Geo, api_key: str) -> NearbyPlace:
    location = (raw.get("geometry") or {}).get("location") or {}
    lat = float(location.get("lat", origin.lat))
    lon = float(location.get("lng", origin.lon))

    photo_url = None
    photos = raw.get("photos") or []
    if photos and photos[0].get("photo_reference"):
        photo_url = (
            f"{GOOGLE_PHOTO_URL}?maxwidth=400"
            f"&photo_reference={photos[0]['photo_reference']}&key={api_key}"
        )

    return NearbyPlace(
        id=raw.get("place_id") or f"{lat:.6f},{lon:.6f}",
        name=raw.get("name") or "Sans nom",
        address=raw.get("vicinity") or "Adresse non disponible",
        lat=lat,
        lon=lon,
        rating=float(raw.get("rating") or 0),
        review_count=int(raw.get("user_ratings_total") or 0),
        types=list(raw.get("types") or []),
        photo_url=photo_url,
        distance_m=round(calculate_distance(origin, Geo(lat=lat, lon=lon)), 1),
    )


async def search_nearby(
    lat: float,
    lon: float,
    api_key: str,
    category: str = "restaurant",
    radius: int = 1500,
    base_url: str = GOOGLE_NEARBY_URL,
    client: httpx.AsyncClient | None = None,
) -> list[NearbyPlace]:
    """Search places of a category around a point, best rated first.

    Args:
        lat: Latitude of the search center
        lon: Longitude of the search center
        api_key: Google Maps API key
        category: Google place type (restaurant, bar, cafe, museum, ...)
        radius: Search radius in metres
        base_url: Nearby search endpoint
        client: Optional httpx client (for testing with mocks)

    Returns:
        Places sorted by rating descending; empty on ZERO_RESULTS

    Raises:
        ExternalProviderError: On network error, non-OK status or malformed response
    """
    provider = "places.google"
    if not api_key:
        raise ExternalProviderError(provider, "API key not configured")

    params: dict[str, str | int] = {
        "location": f"{lat},{lon}",
        "radius": radius,
        "type": category,
        "key": api_key,
    }

    close_client = False
    if client is None:
        client = httpx.AsyncClient(timeout=4.0)
        close_client = True

    start = time.perf_counter()
    outcome = "error"
    try:
        response = await client.get(base_url, params=params)
        response.raise_for_status()
        data = response.json()

        status = data.get("status")
        if status == "ZERO_RESULTS":
            outcome = "success"
            return []
        if status != "OK":
            raise ExternalProviderError(provider, data.get("error_message") or f"status {status}")

        origin = Geo(lat=lat, lon=lon)
        places = [_to_place(raw, origin, api_key) for raw in data.get("results") or []]
        places.sort(key=lambda place: place.rating, reverse=True)
        outcome = "success"
        return places
    except httpx.HTTPError as e:
        raise ExternalProviderError(provider, f"request failed: {e}") from e
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise ExternalProviderError(provider, f"malformed response: {e}") from e
    finally:
        metrics.record_provider_latency(provider, outcome, (time.perf_counter() - start) * 1000)
        if close_client:
            await client.aclose()
