"""Geocoding adapters: Google Geocoding API (primary) and Nominatim (fallback).

Both return a normalized GeocodeResult and raise ExternalProviderError on any
failure, including zero results, so callers can chain them.
"""

import time

import httpx

from tripboard.errors import ExternalProviderError
from tripboard.models.tool_results import GeocodeResult
from tripboard.utils.metrics import metrics

GOOGLE_GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"
NOMINATIM_SEARCH_URL = "https://nominatim.openstreetmap.org/search"


async def geocode_google(
    address: str,
    api_key: str,
    base_url: str = GOOGLE_GEOCODE_URL,
    client: httpx.AsyncClient | None = None,
) -> GeocodeResult:
    """Resolve an address with the Google Geocoding API.

    Args:
        address: Free-text address
        api_key: Google Maps API key
        base_url: Geocoding endpoint
        client: Optional httpx client (for testing with mocks)

    Returns:
        Coordinates of the first candidate

    Raises:
        ExternalProviderError: On missing key, network error, non-OK status,
            zero results or malformed response
    """
    provider = "geocode.google"
    if not api_key:
        raise ExternalProviderError(provider, "API key not configured")

    close_client = False
    if client is None:
        client = httpx.AsyncClient(timeout=4.0)
        close_client = True

    start = time.perf_counter()
    outcome = "error"
    try:
        response = await client.get(base_url, params={"address": address, "key": api_key})
        response.raise_for_status()
        data = response.json()

        # Response structure: {status: "OK", results: [{geometry: {location: {lat, lng}}}]}
        status = data.get("status")
        results = data.get("results") or []
        if status != "OK" or not results:
            message = data.get("error_message") or f"status {status}"
            raise ExternalProviderError(provider, message)

        location = results[0]["geometry"]["location"]
        result = GeocodeResult(lat=float(location["lat"]), lon=float(location["lng"]), provider=provider)
        outcome = "success"
        return result
    except httpx.HTTPError as e:
        raise ExternalProviderError(provider, f"request failed: {e}") from e
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        raise ExternalProviderError(provider, f"malformed response: {e}") from e
    finally:
        metrics.record_provider_latency(provider, outcome, (time.perf_counter() - start) * 1000)
        if close_client:
            await client.aclose()


async def geocode_nominatim(
    address: str,
    user_agent: str,
    base_url: str = NOMINATIM_SEARCH_URL,
    client: httpx.AsyncClient | None = None,
) -> GeocodeResult:
    """Resolve an address with OpenStreetMap Nominatim.

    Nominatim returns coordinates as strings; they are parsed to floats.

    Raises:
        ExternalProviderError: On network error, zero results or malformed response
    """
    provider = "geocode.nominatim"

    close_client = False
    if client is None:
        client = httpx.AsyncClient(timeout=4.0)
        close_client = True

    start = time.perf_counter()
    outcome = "error"
    try:
        response = await client.get(
            base_url,
            params={"q": address, "format": "json", "limit": 1},
            headers={"User-Agent": user_agent},
        )
        response.raise_for_status()
        data = response.json()

        if not isinstance(data, list) or not data:
            raise ExternalProviderError(provider, "no results")

        first = data[0]
        result = GeocodeResult(lat=float(first["lat"]), lon=float(first["lon"]), provider=provider)
        outcome = "success"
        return result
    except httpx.HTTPError as e:
        raise ExternalProviderError(provider, f"request failed: {e}") from e
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        raise ExternalProviderError(provider, f"malformed response: {e}") from e
    finally:
        metrics.record_provider_latency(provider, outcome, (time.perf_counter() - start) * 1000)
        if close_client:
            await client.aclose()
