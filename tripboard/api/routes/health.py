"""Health check endpoints."""

from typing import Any

from fastapi import APIRouter, Response
from fastapi.responses import JSONResponse

from tripboard.api.deps import AppContextDep
from tripboard.context import AppContext

router = APIRouter()


async def check_store(ctx: AppContext) -> tuple[bool, str]:
    """Check tree store connectivity.

    Returns:
        (is_ok, status_message)
    """
    if await ctx.store.ping():
        return (True, "ok")
    return (False, "error: unreachable")


def check_providers(ctx: AppContext) -> dict[str, str]:
    """Report which external providers have credentials configured."""
    settings = ctx.settings
    return {
        "geocode": "ok" if settings.google_maps_api_key else "fallback_only",
        "weather": "ok" if settings.openweather_api_key else "not_configured",
        "places": "ok" if settings.google_maps_api_key else "not_configured",
    }


@router.get("/health")
async def health() -> dict[str, str]:
    """Simple liveness check.

    Returns:
        200 OK always (application is running)
    """
    return {"status": "ok"}


@router.get("/healthz", response_model=None)
async def healthz(ctx: AppContextDep) -> dict[str, Any] | Response:
    """Readiness check.

    Returns:
        200 with component status if the store answers
        503 otherwise
    """
    store_ok, store_status = await check_store(ctx)

    response_body = {
        "status": "ok" if store_ok else "degraded",
        "components": {
            "store": store_status,
            **check_providers(ctx),
        },
    }

    if not store_ok:
        return JSONResponse(content=response_body, status_code=503)

    return response_body
