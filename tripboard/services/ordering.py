"""Order arrays kept in step with keyed entity maps.

An order array is a list of IDs giving display order over an otherwise
unordered mapping (``activityOrder`` over ``activitiesById``, ``itemOrder``
over ``items``). These helpers never mutate their arguments.
"""

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from tripboard.errors import ValidationFailedError


def dedupe(order: Iterable[str]) -> list[str]:
    """Drop repeated IDs, keeping the first occurrence."""
    seen: set[str] = set()
    result: list[str] = []
    for item_id in order:
        if item_id not in seen:
            seen.add(item_id)
            result.append(item_id)
    return result


def ordered_ids(order: Sequence[str] | None, keys: Iterable[str]) -> list[str]:
    """Resolve the display order of a keyed map.

    IDs in ``order`` that no longer exist in the map are dropped, duplicates
    are removed, and map keys missing from ``order`` are appended in the
    map's own key order. With no order array at all the map's key order is
    used as is.
    """
    existing = list(keys)
    if not order:
        return existing

    present = set(existing)
    result = [item_id for item_id in dedupe(order) if item_id in present]
    listed = set(result)
    result.extend(key for key in existing if key not in listed)
    return result


def displayed_order(order: Any, entries: Any) -> list[str]:
    """Display order from raw stored values.

    A missing or non-list ``order`` and non-mapping entries are tolerated,
    so callers can pass snapshot values straight from the store.
    """
    keys: list[str] = []
    if isinstance(entries, Mapping):
        keys = [key for key, value in entries.items() if isinstance(value, Mapping)]
    return ordered_ids(order if isinstance(order, list) else None, keys)


def append_id(order: Sequence[str] | None, new_id: str) -> list[str]:
    """Order after adding ``new_id`` at the end."""
    return [item_id for item_id in (order or []) if item_id != new_id] + [new_id]


def remove_id(order: Sequence[str] | None, item_id: str) -> list[str]:
    """Order after removing every occurrence of ``item_id``."""
    return [existing for existing in (order or []) if existing != item_id]


def move_id(order: Sequence[str] | None, item_id: str, destination: int) -> list[str]:
    """Move ``item_id`` to ``destination``.

    An ID that is not in the order is simply inserted. The destination is
    clamped to the bounds of the resulting list.
    """
    result = remove_id(order, item_id)
    index = max(0, min(destination, len(result)))
    result.insert(index, item_id)
    return result


def move_index(order: Sequence[str] | None, source: int, destination: int) -> list[str]:
    """Move the ID at ``source`` to ``destination`` (drag-and-drop indices).

    Raises:
        ValidationFailedError: If ``source`` is out of range
    """
    current = list(order or [])
    if not 0 <= source < len(current):
        raise ValidationFailedError(f"Source index {source} out of range")
    item_id = current.pop(source)
    index = max(0, min(destination, len(current)))
    current.insert(index, item_id)
    return current
