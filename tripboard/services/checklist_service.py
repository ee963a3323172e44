"""Pre-trip checklist operations over the tree store."""

import logging
from collections.abc import AsyncIterator, Callable, Mapping
from typing import Any

from pydantic import ValidationError

from tripboard.db.subscriptions import Subscription
from tripboard.db.tree import TreeStore
from tripboard.errors import NotFoundError, ValidationFailedError
from tripboard.models.checklist import Checklist, ChecklistItem, ChecklistItemInput, ChecklistItemPatch
from tripboard.services.ordering import append_id, dedupe, displayed_order, move_id, ordered_ids, remove_id

logger = logging.getLogger(__name__)

CHECKLIST_PATH = "checklist"


def format_checklist(data: Any) -> Checklist | None:
    """Format the raw ``checklist`` snapshot; None when absent."""
    if not isinstance(data, Mapping):
        return None

    items: dict[str, ChecklistItem] = {}
    raw_items = data.get("items")
    if isinstance(raw_items, Mapping):
        for item_id, payload in raw_items.items():
            if not isinstance(payload, Mapping):
                continue
            try:
                items[item_id] = ChecklistItem.model_validate({**payload, "id": item_id})
            except ValidationError as e:
                logger.warning(
                    "Skipping malformed checklist item",
                    extra={"structured": {"item": item_id, "errors": e.errors()}},
                )

    raw_order = data.get("itemOrder")
    order = ordered_ids(raw_order if isinstance(raw_order, list) else None, items.keys())
    return Checklist(items=items, item_order=order)


class ChecklistService:
    def __init__(self, store: TreeStore) -> None:
        self._store = store

    async def load(self) -> Checklist | None:
        return format_checklist(await self._store.get(CHECKLIST_PATH))

    async def subscribe(self, callback: Callable[[Checklist | None], None]) -> Subscription:
        return await self._store.subscribe(CHECKLIST_PATH, lambda snapshot: callback(format_checklist(snapshot)))

    async def watch(self) -> AsyncIterator[Checklist | None]:
        async for snapshot in self._store.watch(CHECKLIST_PATH):
            yield format_checklist(snapshot)

    async def create_initial_data(self) -> Checklist:
        """Create an empty checklist unless one exists."""
        existing = await self.load()
        if existing is not None:
            return existing

        await self._store.set(CHECKLIST_PATH, {"items": {}, "itemOrder": []})
        return Checklist()

    async def _require_item(self, item_id: str) -> None:
        if not isinstance(await self._store.get(f"{CHECKLIST_PATH}/items/{item_id}"), Mapping):
            raise NotFoundError(f"Checklist item {item_id} not found")

    async def add_item(self, item: ChecklistItemInput | Mapping[str, Any]) -> str:
        """Append a new item; returns its ID."""
        if not isinstance(item, ChecklistItemInput):
            try:
                item = ChecklistItemInput.model_validate(item)
            except ValidationError as e:
                raise ValidationFailedError(str(e)) from e

        item_id = await self._store.push_key(f"{CHECKLIST_PATH}/items")
        order = await self._store.get(f"{CHECKLIST_PATH}/itemOrder")
        await self._store.update(
            CHECKLIST_PATH,
            {
                f"items/{item_id}": item.to_payload(),
                "itemOrder": append_id(order if isinstance(order, list) else None, item_id),
            },
        )
        logger.info("Checklist item added", extra={"structured": {"item_id": item_id}})
        return item_id

    async def update_item(self, item_id: str, patch: ChecklistItemPatch | Mapping[str, Any]) -> ChecklistItem:
        if not isinstance(patch, ChecklistItemPatch):
            try:
                patch = ChecklistItemPatch.model_validate(patch)
            except ValidationError as e:
                raise ValidationFailedError(str(e)) from e

        payload = patch.to_payload()
        if "text" in payload and not (payload["text"] or "").strip():
            raise ValidationFailedError("Checklist item text must not be empty")

        await self._require_item(item_id)
        if payload:
            await self._store.update(f"{CHECKLIST_PATH}/items/{item_id}", payload)

        stored = await self._store.get(f"{CHECKLIST_PATH}/items/{item_id}")
        return ChecklistItem.model_validate({**stored, "id": item_id})

    async def delete_item(self, item_id: str) -> None:
        await self._require_item(item_id)
        order = await self._store.get(f"{CHECKLIST_PATH}/itemOrder")
        await self._store.update(
            CHECKLIST_PATH,
            {
                f"items/{item_id}": None,
                "itemOrder": remove_id(order if isinstance(order, list) else None, item_id),
            },
        )
        logger.info("Checklist item deleted", extra={"structured": {"item_id": item_id}})

    async def update_item_order(self, item_order: list[str]) -> list[str]:
        order = dedupe(item_order)
        await self._store.set(f"{CHECKLIST_PATH}/itemOrder", order)
        return order

    async def move_item(self, item_id: str, destination_index: int) -> list[str]:
        await self._require_item(item_id)
        checklist = await self._store.get(CHECKLIST_PATH) or {}
        current = displayed_order(checklist.get("itemOrder"), checklist.get("items"))
        new_order = move_id(current, item_id, destination_index)
        await self._store.set(f"{CHECKLIST_PATH}/itemOrder", new_order)
        return new_order
