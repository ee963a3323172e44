"""Weather adapter using the OpenWeatherMap 5-day / 3-hour forecast API."""

import time
from collections import defaultdict
from datetime import UTC, date, datetime
from typing import Any

import httpx

from tripboard.errors import ExternalProviderError
from tripboard.models.tool_results import DailyForecast
from tripboard.utils.metrics import metrics

OPENWEATHER_FORECAST_URL = "https://api.openweathermap.org/data/2.5/forecast"
MAX_FORECAST_DAYS = 5


def summarize_forecast(
    entries: list[dict[str, Any]], today: date, max_days: int = MAX_FORECAST_DAYS
) -> list[DailyForecast]:
    """Bucket 3-hour forecast points by calendar date.

    Per day: rounded min/max of the point temperatures, description and icon
    of the middle point of the bucket, mean precipitation probability in
    percent. Dates before ``today`` are dropped and at most ``max_days``
    days are returned, in chronological order.
    """
    buckets: dict[date, list[dict[str, Any]]] = defaultdict(list)
    for entry in entries:
        # dt_txt is "YYYY-MM-DD HH:MM:SS"
        day = date.fromisoformat(entry["dt_txt"].split(" ")[0])
        buckets[day].append(entry)

    forecasts = []
    for day in sorted(buckets):
        if day < today:
            continue
        points = buckets[day]
        temps = [point["main"]["temp"] for point in points]
        midday = points[len(points) // 2]
        conditions = (midday.get("weather") or points[0].get("weather") or [{}])[0]
        pops = [point.get("pop", 0) or 0 for point in points]

        forecasts.append(
            DailyForecast(
                date=day,
                temp_min=round(min(temps)),
                temp_max=round(max(temps)),
                description=conditions.get("description", ""),
                icon=conditions.get("icon", ""),
                precipitation_probability=round(sum(pops) / len(pops) * 100),
            )
        )
        if len(forecasts) == max_days:
            break

    return forecasts


async def fetch_forecast(
    lat: float,
    lon: float,
    api_key: str,
    units: str = "metric",
    lang: str = "fr",
    base_url: str = OPENWEATHER_FORECAST_URL,
    client: httpx.AsyncClient | None = None,
    today: date | None = None,
) -> list[DailyForecast]:
    """Fetch and summarize the forecast for a location.

    Args:
        lat: Latitude
        lon: Longitude
        api_key: OpenWeatherMap API key
        units: Unit system passed to the API
        lang: Language of the descriptions
        base_url: Forecast endpoint
        client: Optional httpx client (for testing with mocks)
        today: Reference date for dropping past buckets (defaults to today, UTC)

    Returns:
        Up to five DailyForecast entries

    Raises:
        ExternalProviderError: On network error, non-OK status or malformed response
    """
    provider = "weather.openweathermap"
    if not api_key:
        raise ExternalProviderError(provider, "API key not configured")

    params: dict[str, str | float] = {
        "lat": lat,
        "lon": lon,
        "appid": api_key,
        "units": units,
        "lang": lang,
    }

    close_client = False
    if client is None:
        client = httpx.AsyncClient(timeout=4.0)
        close_client = True

    start = time.perf_counter()
    outcome = "error"
    try:
        response = await client.get(base_url, params=params)
        data = response.json()

        # cod is a string on success ("200") and may be an int on errors
        if response.is_error or str(data.get("cod")) != "200":
            message = data.get("message")
            if not isinstance(message, str) or not message:
                message = f"API error ({data.get('cod', response.status_code)})"
            raise ExternalProviderError(provider, message)

        forecasts = summarize_forecast(data["list"], today or datetime.now(UTC).date())
        outcome = "success"
        return forecasts
    except httpx.HTTPError as e:
        raise ExternalProviderError(provider, f"request failed: {e}") from e
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise ExternalProviderError(provider, f"malformed response: {e}") from e
    finally:
        metrics.record_provider_latency(provider, outcome, (time.perf_counter() - start) * 1000)
        if close_client:
            await client.aclose()
