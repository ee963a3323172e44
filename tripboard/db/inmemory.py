"""In-memory implementations of the tree store and file storage."""

from collections.abc import AsyncIterator, Mapping
from typing import Any

from tripboard.db.storage import file_url
from tripboard.db.subscriptions import Subscription, SubscriptionHub
from tripboard.db.tree import (
    PushIdGenerator,
    SnapshotCallback,
    apply_update,
    get_at,
    normalize,
    set_at,
    split_path,
)
from tripboard.errors import StorageObjectNotFoundError


class InMemoryTreeStore:
    """In-memory implementation of TreeStore."""

    def __init__(self, initial: Mapping[str, Any] | None = None) -> None:
        self._tree: dict[str, Any] = normalize(initial or {})
        self._keys = PushIdGenerator()
        self._hub = SubscriptionHub(self.get)

    async def get(self, path: str) -> Any:
        """Read subtree."""
        return get_at(self._tree, split_path(path))

    async def set(self, path: str, value: Any) -> None:
        """Replace subtree."""
        set_at(self._tree, split_path(path), value)
        await self._hub.notify([path])

    async def update(self, path: str, values: Mapping[str, Any]) -> None:
        """Apply a multi-path patch."""
        if not values:
            return
        changed = apply_update(self._tree, split_path(path), values)
        await self._hub.notify(changed)

    async def remove(self, path: str) -> None:
        """Delete subtree."""
        await self.set(path, None)

    async def push_key(self, path: str) -> str:
        """Generate a unique child key."""
        return self._keys.next_id()

    async def subscribe(self, path: str, callback: SnapshotCallback) -> Subscription:
        """Subscribe to snapshots at path."""
        return await self._hub.subscribe(path, callback)

    def watch(self, path: str) -> AsyncIterator[Any]:
        """Stream snapshots at path."""
        return self._hub.watch(path)

    async def ping(self) -> bool:
        """Always reachable."""
        return True


class InMemoryFileStorage:
    """In-memory implementation of FileStorage."""

    def __init__(self, base_url: str = "http://localhost:8000") -> None:
        self._base_url = base_url
        self._objects: dict[str, tuple[bytes, str | None]] = {}

    def __contains__(self, path: str) -> bool:
        return path in self._objects

    async def upload(self, path: str, data: bytes, content_type: str | None = None) -> str:
        """Store bytes and return URL."""
        self._objects[path] = (data, content_type)
        return file_url(self._base_url, path)

    async def download(self, path: str) -> bytes:
        """Return stored bytes."""
        if path not in self._objects:
            raise StorageObjectNotFoundError(f"No object at {path}")
        return self._objects[path][0]

    async def delete(self, path: str) -> None:
        """Delete stored bytes."""
        if path not in self._objects:
            raise StorageObjectNotFoundError(f"No object at {path}")
        del self._objects[path]
