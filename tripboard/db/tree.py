"""Hierarchical key-value tree: path helpers, push keys and the store protocol.

Paths are slash-separated (``trip/days/jour1/activityOrder``). Only mappings
are traversed; lists and scalars are leaves. Writing ``None`` anywhere
deletes the node, and ``None`` values nested inside written mappings are
dropped, so a stored tree never contains nulls.
"""

import copy
import random
import time
from collections.abc import AsyncIterator, Callable, Mapping
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from tripboard.db.subscriptions import Subscription

PUSH_CHARS = "-0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ_abcdefghijklmnopqrstuvwxyz"


def split_path(path: str) -> list[str]:
    """Split a slash-separated path into its non-empty segments."""
    return [segment for segment in path.strip("/").split("/") if segment]


def join_path(*parts: str) -> str:
    """Join path fragments, ignoring empty ones."""
    segments: list[str] = []
    for part in parts:
        segments.extend(split_path(part))
    return "/".join(segments)


def paths_overlap(a: str, b: str) -> bool:
    """True when one path is an ancestor of (or equal to) the other."""
    left, right = split_path(a), split_path(b)
    shortest = min(len(left), len(right))
    return left[:shortest] == right[:shortest]


def normalize(value: Any) -> Any:
    """Deep-copy a value, dropping ``None`` entries from every mapping."""
    if isinstance(value, Mapping):
        return {str(k): normalize(v) for k, v in value.items() if v is not None}
    if isinstance(value, (list, tuple)):
        return [normalize(v) for v in value]
    return copy.deepcopy(value)


def get_at(tree: Mapping[str, Any], segments: list[str]) -> Any:
    """Return a deep copy of the subtree at ``segments``, or None."""
    node: Any = tree
    for segment in segments:
        if not isinstance(node, Mapping) or segment not in node:
            return None
        node = node[segment]
    return copy.deepcopy(node)


def delete_at(tree: dict[str, Any], segments: list[str]) -> None:
    """Remove the node at ``segments`` if it exists."""
    if not segments:
        tree.clear()
        return
    node: Any = tree
    for segment in segments[:-1]:
        if not isinstance(node, dict) or segment not in node:
            return
        node = node[segment]
    if isinstance(node, dict):
        node.pop(segments[-1], None)


def set_at(tree: dict[str, Any], segments: list[str], value: Any) -> None:
    """Replace the node at ``segments``; intermediate nodes become mappings."""
    if value is None:
        delete_at(tree, segments)
        return
    if not segments:
        if not isinstance(value, Mapping):
            raise ValueError("root of the tree must be a mapping")
        tree.clear()
        tree.update(normalize(value))
        return
    node = tree
    for segment in segments[:-1]:
        child = node.get(segment)
        if not isinstance(child, dict):
            child = {}
            node[segment] = child
        node = child
    node[segments[-1]] = normalize(value)


def apply_update(tree: dict[str, Any], base: list[str], values: Mapping[str, Any]) -> list[str]:
    """Apply a multi-path patch relative to ``base``.

    Returns the absolute paths that changed, for change notification.
    """
    changed: list[str] = []
    for relative, value in values.items():
        segments = base + split_path(relative)
        if not segments:
            raise ValueError("update keys must not address the root")
        set_at(tree, segments, value)
        changed.append("/".join(segments))
    return changed


class PushIdGenerator:
    """Generates chronologically sortable unique keys.

    Eight characters of millisecond timestamp followed by twelve random
    characters; keys minted within the same millisecond increment the random
    part so they still sort in creation order.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._last_ms = -1
        self._last_random: list[int] = []

    def next_id(self) -> str:
        now_ms = int(self._clock() * 1000)
        duplicate = now_ms == self._last_ms
        self._last_ms = now_ms

        stamp = []
        remaining = now_ms
        for _ in range(8):
            stamp.append(PUSH_CHARS[remaining % 64])
            remaining //= 64
        stamp.reverse()

        if not duplicate:
            self._last_random = [random.randrange(64) for _ in range(12)]
        else:
            i = 11
            while i >= 0 and self._last_random[i] == 63:
                self._last_random[i] = 0
                i -= 1
            if i >= 0:
                self._last_random[i] += 1

        return "".join(stamp) + "".join(PUSH_CHARS[i] for i in self._last_random)


SnapshotCallback = Callable[[Any], None]


class TreeStore(Protocol):
    """Remote hierarchical document store with change subscriptions."""

    async def get(self, path: str) -> Any:
        """Read the whole subtree at ``path``; None when absent."""
        ...

    async def set(self, path: str, value: Any) -> None:
        """Replace the subtree at ``path``; None deletes it."""
        ...

    async def update(self, path: str, values: Mapping[str, Any]) -> None:
        """Patch several children of ``path`` in one atomic write.

        Keys may be slash-separated relative paths; None values delete.
        """
        ...

    async def remove(self, path: str) -> None:
        """Delete the subtree at ``path``."""
        ...

    async def push_key(self, path: str) -> str:
        """Generate a new unique child key under ``path`` (nothing is written)."""
        ...

    async def subscribe(self, path: str, callback: SnapshotCallback) -> "Subscription":
        """Deliver the current snapshot at ``path`` now and after every change."""
        ...

    def watch(self, path: str) -> AsyncIterator[Any]:
        """Async stream of snapshots at ``path``."""
        ...

    async def ping(self) -> bool:
        """Connectivity check."""
        ...
