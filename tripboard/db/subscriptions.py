"""Push-based change subscriptions shared by the tree store implementations."""

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from tripboard.db.tree import SnapshotCallback, paths_overlap

logger = logging.getLogger(__name__)

WATCH_QUEUE_SIZE = 32


@dataclass(eq=False)
class Subscription:
    """Handle returned by ``subscribe``.

    Late deliveries are discarded once ``active`` is cleared; in-flight reads
    are not aborted.
    """

    path: str
    callback: SnapshotCallback
    _on_close: Callable[["Subscription"], None] = field(repr=False)
    active: bool = True

    def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            self._on_close(self)

    def deliver(self, snapshot: Any) -> None:
        if self.active:
            self.callback(snapshot)


class SubscriptionHub:
    """Registry of subscriptions; re-reads and delivers snapshots on change."""

    def __init__(self, reader: Callable[[str], Awaitable[Any]]) -> None:
        self._reader = reader
        self._subscriptions: list[Subscription] = []

    def __len__(self) -> int:
        return len(self._subscriptions)

    async def subscribe(self, path: str, callback: SnapshotCallback) -> Subscription:
        subscription = Subscription(path=path, callback=callback, _on_close=self._discard)
        self._subscriptions.append(subscription)
        subscription.deliver(await self._reader(path))
        return subscription

    def _discard(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    async def notify(self, changed_paths: Iterable[str]) -> None:
        """Deliver fresh snapshots to every subscription overlapping a change."""
        changed = list(changed_paths)
        for subscription in list(self._subscriptions):
            if not any(paths_overlap(subscription.path, path) for path in changed):
                continue
            snapshot = await self._reader(subscription.path)
            try:
                subscription.deliver(snapshot)
            except Exception:
                # A failing listener must not fail the write that triggered it
                logger.exception(
                    "Subscription callback failed",
                    extra={"structured": {"path": subscription.path}},
                )

    async def watch(self, path: str, max_pending: int = WATCH_QUEUE_SIZE) -> AsyncIterator[Any]:
        """Yield the current snapshot, then one snapshot per change.

        At most ``max_pending`` snapshots wait for a slow consumer; older ones
        are dropped first, so the consumer always ends on the latest state.
        """
        queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=max_pending)

        def enqueue(snapshot: Any) -> None:
            if queue.full():
                queue.get_nowait()
            queue.put_nowait(snapshot)

        subscription = await self.subscribe(path, enqueue)
        try:
            while True:
                yield await queue.get()
        finally:
            subscription.unsubscribe()
