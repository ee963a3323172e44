"""Tests for local and in-memory file storage."""

from pathlib import Path

import pytest

from tripboard.db.inmemory import InMemoryFileStorage
from tripboard.db.storage import LocalFileStorage, file_url
from tripboard.errors import RemoteOperationError, StorageObjectNotFoundError


def test_file_url_quotes_path() -> None:
    url = file_url("http://localhost:8000/", "activity_files/jour1/a1/17_billet bateau.pdf")
    assert url == "http://localhost:8000/files/activity_files/jour1/a1/17_billet%20bateau.pdf"


@pytest.mark.asyncio
async def test_local_storage_round_trip(tmp_path: Path) -> None:
    storage = LocalFileStorage(tmp_path, "http://testserver")

    url = await storage.upload("activity_files/jour1/a1/1_plan.pdf", b"pdf")

    assert url == "http://testserver/files/activity_files/jour1/a1/1_plan.pdf"
    assert (tmp_path / "activity_files/jour1/a1/1_plan.pdf").read_bytes() == b"pdf"
    assert await storage.download("activity_files/jour1/a1/1_plan.pdf") == b"pdf"

    await storage.delete("activity_files/jour1/a1/1_plan.pdf")
    with pytest.raises(StorageObjectNotFoundError):
        await storage.download("activity_files/jour1/a1/1_plan.pdf")


@pytest.mark.asyncio
async def test_local_storage_rejects_traversal(tmp_path: Path) -> None:
    storage = LocalFileStorage(tmp_path / "files", "http://testserver")
    with pytest.raises(RemoteOperationError, match="Invalid storage path"):
        await storage.upload("../outside.txt", b"x")


@pytest.mark.asyncio
async def test_missing_object_delete_raises() -> None:
    with pytest.raises(StorageObjectNotFoundError):
        await InMemoryFileStorage().delete("activity_files/none.pdf")
