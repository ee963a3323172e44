"""Trip endpoints - snapshot, seed, filtered days, SSE stream and geocoding."""

import asyncio
import logging
from collections.abc import AsyncGenerator

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from tripboard.api.auth import get_current_user
from tripboard.api.deps import AppContextDep
from tripboard.context import AppContext
from tripboard.errors import NotFoundError, TripboardError
from tripboard.models.common import BookingFilter
from tripboard.models.trip import DayView, TripData
from tripboard.services.filters import filter_days

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/trip", tags=["trip"], dependencies=[Depends(get_current_user)])


class GeocodeResponse(BaseModel):
    """Response for POST /trip/geocode."""

    candidates: int
    updated: int
    errors: int


def schedule_enrichment(ctx: AppContext) -> None:
    """Start a background geocoding pass; errors are logged, never raised."""

    async def run() -> None:
        try:
            await ctx.trip.migrate_legacy_days()
            await ctx.enricher.run()
        except TripboardError as e:
            logger.warning("Background geocoding failed", extra={"structured": {"reason": e.message}})
        except Exception:
            logger.exception("Background geocoding crashed")

    task = asyncio.create_task(run())
    ctx.background_tasks.add(task)
    task.add_done_callback(ctx.background_tasks.discard)


@router.get("", response_model=TripData)
async def get_trip(ctx: AppContextDep) -> TripData:
    """Current trip; schedules coordinate enrichment when enabled.

    Raises:
        NotFoundError: If the trip has not been initialized
    """
    trip = await ctx.trip.load()
    if trip is None:
        raise NotFoundError("Trip not initialized")

    if ctx.settings.geocode_on_load:
        schedule_enrichment(ctx)
    return trip


@router.post("/init", response_model=TripData, status_code=status.HTTP_201_CREATED)
async def init_trip(ctx: AppContextDep) -> TripData:
    """Seed the itinerary if absent; returns the current trip either way."""
    return await ctx.trip.create_initial_data()


@router.get("/days", response_model=list[DayView])
async def list_days(
    ctx: AppContextDep,
    filter: BookingFilter = Query(BookingFilter.all),
) -> list[DayView]:
    """Days with their activities under a booking filter."""
    trip = await ctx.trip.load()
    if trip is None:
        raise NotFoundError("Trip not initialized")
    return filter_days(trip.days, filter)


@router.get("/stream")
async def stream_trip(ctx: AppContextDep) -> StreamingResponse:
    """Stream formatted trip snapshots via SSE, one event per change."""

    async def event_generator() -> AsyncGenerator[str, None]:
        async for trip in ctx.trip.watch():
            data = trip.model_dump_json(by_alias=True) if trip is not None else "null"
            yield "event: trip\n"
            yield f"data: {data}\n\n"

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@router.post("/geocode", response_model=GeocodeResponse)
async def geocode_trip(ctx: AppContextDep) -> GeocodeResponse:
    """Run a geocoding pass now and report its counts."""
    await ctx.trip.migrate_legacy_days()
    report = await ctx.enricher.run()
    return GeocodeResponse(candidates=report.candidates, updated=report.updated, errors=report.errors)
