"""Tests for the nearby places adapter."""

import httpx
import pytest

from tripboard.adapters.places import calculate_distance, search_nearby
from tripboard.errors import ExternalProviderError
from tripboard.models.common import Geo


def test_calculate_distance() -> None:
    """Test haversine distance between Bonifacio and Porto-Vecchio (about 24 km)."""
    distance = calculate_distance(Geo(lat=41.3874, lon=9.1597), Geo(lat=41.5912, lon=9.2795))
    assert 24_000 < distance < 26_000
    assert calculate_distance(Geo(lat=42.0, lon=9.0), Geo(lat=42.0, lon=9.0)) == 0


@pytest.mark.asyncio
async def test_search_nearby_sorts_by_rating() -> None:
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.update(request.url.params)
        return httpx.Response(
            200,
            json={
                "status": "OK",
                "results": [
                    {
                        "place_id": "p1",
                        "name": "U Castille",
                        "vicinity": "Rue Simon Varsi",
                        "geometry": {"location": {"lat": 41.388, "lng": 9.160}},
                        "rating": 4.1,
                        "user_ratings_total": 120,
                        "types": ["restaurant"],
                    },
                    {
                        "place_id": "p2",
                        "name": "Le Voilier",
                        "geometry": {"location": {"lat": 41.389, "lng": 9.158}},
                        "rating": 4.7,
                        "photos": [{"photo_reference": "ref-1"}],
                    },
                ],
            },
        )

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    places = await search_nearby(41.3874, 9.1597, "maps-key", category="restaurant", radius=800, client=client)

    assert [p.id for p in places] == ["p2", "p1"]
    assert places[1].address == "Rue Simon Varsi"
    assert places[1].review_count == 120
    assert places[0].address == "Adresse non disponible"
    assert places[0].photo_url is not None and "ref-1" in places[0].photo_url
    assert places[0].distance_m is not None and places[0].distance_m > 0
    assert seen["radius"] == "800"
    assert seen["type"] == "restaurant"


@pytest.mark.asyncio
async def test_search_nearby_zero_results_is_empty() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"status": "ZERO_RESULTS", "results": []})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    assert await search_nearby(41.0, 9.0, "key", client=client) == []


@pytest.mark.asyncio
async def test_search_nearby_error_status_raises() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"status": "REQUEST_DENIED", "error_message": "API key invalid"})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))

    with pytest.raises(ExternalProviderError, match="API key invalid"):
        await search_nearby(41.0, 9.0, "key", client=client)
