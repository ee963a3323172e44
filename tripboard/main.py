"""FastAPI application."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from tripboard.api.routes.activities import router as activities_router
from tripboard.api.routes.auth import router as auth_router
from tripboard.api.routes.budget import router as budget_router
from tripboard.api.routes.checklist import router as checklist_router
from tripboard.api.routes.files import router as files_router
from tripboard.api.routes.health import router as health_router
from tripboard.api.routes.metrics import router as metrics_router
from tripboard.api.routes.providers import router as providers_router
from tripboard.api.routes.trip import router as trip_router
from tripboard.config import get_settings
from tripboard.context import AppContext
from tripboard.errors import TripboardError
from tripboard.utils.logging import configure_logging


async def tripboard_error_handler(request: Request, exc: TripboardError) -> JSONResponse:
    """Render application errors with their HTTP status."""
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def create_app(context: AppContext | None = None) -> FastAPI:
    """Build the app.

    Args:
        context: Pre-built context (tests); built from settings on startup otherwise
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if context is None:
            settings = get_settings()
            configure_logging(settings.log_level)
            ctx = await AppContext.from_settings(settings)
        else:
            ctx = context
        app.state.context = ctx
        try:
            yield
        finally:
            await ctx.aclose()

    app = FastAPI(title="Tripboard API", version="0.1.0", lifespan=lifespan)
    app.add_exception_handler(TripboardError, tripboard_error_handler)  # type: ignore[arg-type]

    # Register routes
    app.include_router(health_router, tags=["health"])
    app.include_router(metrics_router, tags=["metrics"])
    app.include_router(auth_router)
    app.include_router(trip_router)
    app.include_router(activities_router)
    app.include_router(budget_router)
    app.include_router(checklist_router)
    app.include_router(providers_router)
    app.include_router(files_router)

    @app.get("/")
    async def root() -> dict[str, str]:
        """Root endpoint."""
        return {"message": "Tripboard API", "version": "0.1.0"}

    return app


app = create_app()
