"""Tests for application context wiring."""

from pathlib import Path

import pytest

from tripboard.config import Settings
from tripboard.context import AppContext
from tripboard.db.inmemory import InMemoryFileStorage, InMemoryTreeStore
from tripboard.db.sql_store import SqlTreeStore
from tripboard.db.storage import LocalFileStorage


@pytest.mark.asyncio
async def test_defaults_to_in_memory_backends() -> None:
    ctx = await AppContext.from_settings(Settings(_env_file=None, database_url=None, storage_dir=None))
    try:
        assert isinstance(ctx.store, InMemoryTreeStore)
        assert isinstance(ctx.storage, InMemoryFileStorage)
        assert ctx.engine is None
    finally:
        await ctx.aclose()


@pytest.mark.asyncio
async def test_database_url_selects_sql_store(tmp_path: Path) -> None:
    settings = Settings(
        _env_file=None,
        database_url=f"sqlite:///{tmp_path / 'tree.db'}",
        storage_dir=str(tmp_path / "files"),
    )
    ctx = await AppContext.from_settings(settings)
    try:
        assert isinstance(ctx.store, SqlTreeStore)
        assert isinstance(ctx.storage, LocalFileStorage)
        assert await ctx.store.ping()

        await ctx.trip.create_initial_data()
        trip = await ctx.trip.load()
        assert trip is not None and len(trip.days) == 10
    finally:
        await ctx.aclose()
