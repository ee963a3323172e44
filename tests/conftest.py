"""Shared pytest fixtures for all test suites."""

import os
from collections.abc import AsyncGenerator, Callable, Iterator
from pathlib import Path

import httpx
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

from tripboard.config import Settings
from tripboard.context import AppContext
from tripboard.db.inmemory import InMemoryFileStorage, InMemoryTreeStore
from tripboard.db.models import Base
from tripboard.main import create_app
from tripboard.services.auth import hash_password
from tripboard.services.budget import BudgetService
from tripboard.services.checklist_service import ChecklistService
from tripboard.services.trip_service import TripService

TEST_EMAIL = "voyageur@example.com"
TEST_PASSWORD = "corse-2025"
BASE_URL = "http://testserver"

ProviderHandler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture(scope="session")
def password_hash() -> str:
    """Argon2 hash of the test password, computed once per session."""
    return hash_password(TEST_PASSWORD)


@pytest.fixture
def settings(password_hash: str) -> Settings:
    return Settings(
        _env_file=None,
        public_base_url=BASE_URL,
        google_maps_api_key="test-google-key",
        openweather_api_key="test-weather-key",
        geocode_on_load=False,
        geocode_batch_delay_s=0,
        auth_secret="integration-test-secret-0123456789",
        auth_users={TEST_EMAIL: password_hash},
    )


@pytest.fixture
def store() -> InMemoryTreeStore:
    return InMemoryTreeStore()


@pytest.fixture
def storage() -> InMemoryFileStorage:
    return InMemoryFileStorage(BASE_URL)


@pytest.fixture
def budget_service(store: InMemoryTreeStore) -> BudgetService:
    return BudgetService(store, default_total=2000.0)


@pytest.fixture
def trip_service(
    store: InMemoryTreeStore, storage: InMemoryFileStorage, budget_service: BudgetService
) -> TripService:
    return TripService(store, storage, budget_service, default_total=2000.0)


@pytest.fixture
def checklist_service(store: InMemoryTreeStore) -> ChecklistService:
    return ChecklistService(store)


@pytest_asyncio.fixture
async def seeded_trip(trip_service: TripService) -> TripService:
    """Trip service over a freshly seeded ten-day itinerary."""
    await trip_service.create_initial_data()
    return trip_service


@pytest.fixture
def provider_handler() -> ProviderHandler:
    """Default handler for outbound provider calls; override per test."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, json={"status": "UNAVAILABLE", "message": "no provider in tests"})

    return handler


@pytest.fixture
def app_context(
    settings: Settings,
    store: InMemoryTreeStore,
    storage: InMemoryFileStorage,
    provider_handler: ProviderHandler,
) -> AppContext:
    http = httpx.AsyncClient(transport=httpx.MockTransport(provider_handler))
    return AppContext.create(settings, store, storage, http=http)


@pytest.fixture
def client(app_context: AppContext) -> Iterator[TestClient]:
    """Test client with the lifespan running over the test context."""
    with TestClient(create_app(app_context)) as test_client:
        yield test_client


@pytest.fixture
def credentials() -> dict[str, str]:
    return {"email": TEST_EMAIL, "password": TEST_PASSWORD}


@pytest.fixture
def auth_headers(client: TestClient, credentials: dict[str, str]) -> dict[str, str]:
    response = client.post("/auth/login", json=credentials)
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest_asyncio.fixture
async def sqlite_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """File-backed SQLite engine with the tree schema created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'tree.db'}", poolclass=NullPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def postgres_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create async engine for PostgreSQL integration tests.

    Requires DATABASE_URL to be set to a real PostgreSQL connection string.
    Tests using this fixture should be marked with @pytest.mark.postgres.
    """
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        pytest.skip("DATABASE_URL not set - skipping postgres test")

    if not database_url.startswith(("postgresql://", "postgresql+asyncpg://")):
        pytest.skip(f"DATABASE_URL is not PostgreSQL: {database_url}")

    if database_url.startswith("postgresql://"):
        database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)

    engine = create_async_engine(database_url, poolclass=NullPool, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()
