"""Application context wiring stores, storage, HTTP client and services."""

import asyncio
import logging
from dataclasses import dataclass, field

import httpx
from sqlalchemy.ext.asyncio import AsyncEngine

from tripboard.config import Settings
from tripboard.db.engine import create_async_engine_from_settings
from tripboard.db.inmemory import InMemoryFileStorage, InMemoryTreeStore
from tripboard.db.sql_store import SqlTreeStore
from tripboard.db.storage import FileStorage, LocalFileStorage
from tripboard.db.tree import TreeStore
from tripboard.services.auth import AuthService
from tripboard.services.budget import BudgetService
from tripboard.services.checklist_service import ChecklistService
from tripboard.services.geocoding import GeocodingEnricher
from tripboard.services.trip_service import TripService

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Everything a request handler needs, passed explicitly."""

    settings: Settings
    store: TreeStore
    storage: FileStorage
    http: httpx.AsyncClient
    trip: TripService
    budget: BudgetService
    checklist: ChecklistService
    enricher: GeocodingEnricher
    auth: AuthService
    engine: AsyncEngine | None = None
    background_tasks: set[asyncio.Task[None]] = field(default_factory=set)

    @classmethod
    def create(
        cls,
        settings: Settings,
        store: TreeStore,
        storage: FileStorage,
        http: httpx.AsyncClient | None = None,
        engine: AsyncEngine | None = None,
    ) -> "AppContext":
        """Wire services over an already constructed store and storage."""
        if http is None:
            http = httpx.AsyncClient(timeout=settings.http_timeout_s)

        budget = BudgetService(store, default_total=settings.default_budget_total)
        return cls(
            settings=settings,
            store=store,
            storage=storage,
            http=http,
            trip=TripService(store, storage, budget, default_total=settings.default_budget_total),
            budget=budget,
            checklist=ChecklistService(store),
            enricher=GeocodingEnricher.from_client(
                store,
                http,
                google_api_key=settings.google_maps_api_key,
                nominatim_user_agent=settings.nominatim_user_agent,
                batch_size=settings.geocode_batch_size,
                batch_delay_s=settings.geocode_batch_delay_s,
            ),
            auth=AuthService(
                settings.auth_users,
                settings.auth_secret,
                token_ttl_minutes=settings.auth_token_ttl_minutes,
                lockout_threshold=settings.lockout_threshold,
                lockout_window_seconds=settings.lockout_window_seconds,
            ),
            engine=engine,
        )

    @classmethod
    async def from_settings(cls, settings: Settings) -> "AppContext":
        """Build the context selected by settings.

        ``database_url`` selects the SQL store (schema created on start),
        otherwise an in-memory store is used. ``storage_dir`` selects local
        file storage, otherwise in-memory storage.
        """
        engine = None
        store: TreeStore
        if settings.database_url:
            engine = create_async_engine_from_settings(settings)
            sql_store = SqlTreeStore(engine)
            await sql_store.create_schema()
            store = sql_store
        else:
            logger.warning("DATABASE_URL not set, using in-memory store")
            store = InMemoryTreeStore()

        storage: FileStorage
        if settings.storage_dir:
            storage = LocalFileStorage(settings.storage_dir, settings.public_base_url)
        else:
            storage = InMemoryFileStorage(settings.public_base_url)

        return cls.create(settings, store, storage, engine=engine)

    async def aclose(self) -> None:
        for task in list(self.background_tasks):
            task.cancel()
        await self.http.aclose()
        if self.engine is not None:
            await self.engine.dispose()
