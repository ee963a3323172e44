"""SQL-backed tree store.

Each top-level key of the tree is one ``tree_document`` row. Every write
loads the rows it touches, applies the change with the shared tree helpers
and saves them inside a single transaction, so a multi-path ``update`` is
atomic.
"""

import copy
import time
from collections.abc import AsyncIterator, Callable, Collection, Mapping
from typing import Any

from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from tripboard.db.models import Base, TreeDocument
from tripboard.db.subscriptions import Subscription, SubscriptionHub
from tripboard.db.tree import (
    PushIdGenerator,
    SnapshotCallback,
    apply_update,
    get_at,
    set_at,
    split_path,
)
from tripboard.errors import RemoteOperationError
from tripboard.utils.logging import StructuredOperationLogger
from tripboard.utils.metrics import metrics


class SqlTreeStore:
    """TreeStore persisted through SQLAlchemy async sessions."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine
        self._sessions = async_sessionmaker(engine, expire_on_commit=False)
        self._keys = PushIdGenerator()
        self._hub = SubscriptionHub(self.get)
        self._log = StructuredOperationLogger()

    async def create_schema(self) -> None:
        """Create the backing table if it does not exist."""
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def get(self, path: str) -> Any:
        """Read subtree."""
        segments = split_path(path)
        try:
            async with self._sessions() as session:
                if not segments:
                    result = await session.execute(select(TreeDocument))
                    return {doc.root_key: copy.deepcopy(doc.data) for doc in result.scalars()}

                doc = await session.get(TreeDocument, segments[0])
                if doc is None:
                    return None
                return get_at({doc.root_key: doc.data}, segments)
        except SQLAlchemyError as e:
            metrics.record_store_op("get", "error")
            raise RemoteOperationError(f"Read failed at '{path}': {e}") from e

    async def set(self, path: str, value: Any) -> None:
        """Replace subtree."""
        segments = split_path(path)
        roots = {segments[0]} if segments else None

        def mutate(tree: dict[str, Any]) -> list[str]:
            set_at(tree, segments, value)
            return [path]

        await self._write("set", path, roots, mutate)

    async def update(self, path: str, values: Mapping[str, Any]) -> None:
        """Apply a multi-path patch in one transaction."""
        if not values:
            return
        base = split_path(path)
        if base:
            roots = {base[0]}
        else:
            roots = {split_path(key)[0] for key in values if split_path(key)}

        def mutate(tree: dict[str, Any]) -> list[str]:
            return apply_update(tree, base, values)

        await self._write("update", path, roots, mutate)

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
        """Run a trivial query."""
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError:
            return False

    async def _write(
        self,
        op: str,
        path: str,
        roots: Collection[str] | None,
        mutate: Callable[[dict[str, Any]], list[str]],
    ) -> None:
        """Load the touched rows, mutate them and save them in one transaction.

        ``roots`` of None means the whole tree is replaced.
        """
        start = time.perf_counter()
        try:
            async with self._sessions() as session, session.begin():
                query = select(TreeDocument)
                if roots is not None:
                    query = query.where(TreeDocument.root_key.in_(roots))
                result = await session.execute(query)
                rows = {doc.root_key: doc for doc in result.scalars()}

                tree = {key: copy.deepcopy(doc.data) for key, doc in rows.items()}
                changed = mutate(tree)

                touched = set(rows) | set(tree) if roots is None else roots
                for key in touched:
                    value = tree.get(key)
                    row = rows.get(key)
                    if value is None:
                        if row is not None:
                            await session.delete(row)
                    elif row is None:
                        session.add(TreeDocument(root_key=key, data=value))
                    else:
                        row.data = value
        except SQLAlchemyError as e:
            latency_ms = (time.perf_counter() - start) * 1000
            metrics.record_store_op(op, "error")
            self._log.log_operation(
                op, "error", latency_ms, path=path, error_reason=type(e).__name__
            )
            raise RemoteOperationError(f"Write failed at '{path}': {e}") from e

        latency_ms = (time.perf_counter() - start) * 1000
        metrics.record_store_op(op, "success")
        self._log.log_operation(op, "success", latency_ms, path=path)
        await self._hub.notify(changed)
