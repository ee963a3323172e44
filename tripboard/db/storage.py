"""File storage protocol and the on-disk implementation."""

import asyncio
import logging
from pathlib import Path
from typing import Protocol
from urllib.parse import quote

from tripboard.errors import RemoteOperationError, StorageObjectNotFoundError

logger = logging.getLogger(__name__)


class FileStorage(Protocol):
    """Blob storage addressed by slash-separated paths."""

    async def upload(self, path: str, data: bytes, content_type: str | None = None) -> str:
        """Store ``data`` at ``path`` and return its retrieval URL."""
        ...

    async def download(self, path: str) -> bytes:
        """Return the bytes stored at ``path``.

        Raises:
            StorageObjectNotFoundError: If nothing is stored at ``path``
        """
        ...

    async def delete(self, path: str) -> None:
        """Delete the object at ``path``.

        Raises:
            StorageObjectNotFoundError: If nothing is stored at ``path``
        """
        ...


def file_url(base_url: str, path: str) -> str:
    """Public retrieval URL served by the ``/files`` route."""
    return f"{base_url.rstrip('/')}/files/{quote(path)}"


class LocalFileStorage:
    """Stores files under a directory on the local filesystem."""

    def __init__(self, root: str | Path, base_url: str) -> None:
        self._root = Path(root).resolve()
        self._base_url = base_url

    def _resolve(self, path: str) -> Path:
        target = (self._root / path).resolve()
        if self._root not in target.parents:
            raise RemoteOperationError(f"Invalid storage path: {path}")
        return target

    async def upload(self, path: str, data: bytes, content_type: str | None = None) -> str:
        target = self._resolve(path)
        try:
            await asyncio.to_thread(target.parent.mkdir, parents=True, exist_ok=True)
            await asyncio.to_thread(target.write_bytes, data)
        except OSError as e:
            raise RemoteOperationError(f"Upload failed for {path}: {e}") from e
        logger.info("Stored file", extra={"structured": {"path": path, "bytes": len(data)}})
        return file_url(self._base_url, path)

    async def download(self, path: str) -> bytes:
        target = self._resolve(path)
        if not target.is_file():
            raise StorageObjectNotFoundError(f"No object at {path}")
        try:
            return await asyncio.to_thread(target.read_bytes)
        except OSError as e:
            raise RemoteOperationError(f"Download failed for {path}: {e}") from e

    async def delete(self, path: str) -> None:
        target = self._resolve(path)
        if not target.is_file():
            raise StorageObjectNotFoundError(f"No object at {path}")
        try:
            await asyncio.to_thread(target.unlink)
        except OSError as e:
            raise RemoteOperationError(f"Delete failed for {path}: {e}") from e
