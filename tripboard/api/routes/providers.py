"""Weather and nearby-places endpoints backed by external providers."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from tripboard.adapters.places import search_nearby
from tripboard.adapters.weather import fetch_forecast
from tripboard.api.auth import get_current_user
from tripboard.api.deps import AppContextDep
from tripboard.models.tool_results import DailyForecast, NearbyPlace

router = APIRouter(tags=["providers"], dependencies=[Depends(get_current_user)])

Latitude = Annotated[float, Query(ge=-90, le=90)]
Longitude = Annotated[float, Query(ge=-180, le=180)]


@router.get("/weather", response_model=list[DailyForecast])
async def get_weather(lat: Latitude, lon: Longitude, ctx: AppContextDep) -> list[DailyForecast]:
    """Five-day forecast around a point."""
    settings = ctx.settings
    return await fetch_forecast(
        lat,
        lon,
        settings.openweather_api_key,
        units=settings.weather_units,
        lang=settings.weather_lang,
        client=ctx.http,
    )


@router.get("/places/nearby", response_model=list[NearbyPlace])
async def get_nearby_places(
    lat: Latitude,
    lon: Longitude,
    ctx: AppContextDep,
    category: Annotated[str, Query(min_length=1)] = "restaurant",
    radius: Annotated[int, Query(gt=0, le=50000)] = 1500,
) -> list[NearbyPlace]:
    """Places of a category around a point, best rated first."""
    return await search_nearby(
        lat,
        lon,
        ctx.settings.google_maps_api_key,
        category=category,
        radius=radius,
        client=ctx.http,
    )
