"""Trip itinerary operations over the tree store.

Every activity mutation resolves the logical day ID to its storage key,
writes the activity map entry and the order array together in one
multi-path update, then awaits a full budget recalculation.
"""

import logging
import math
import os
import time
from collections.abc import AsyncIterator, Callable, Mapping
from typing import Any

from pydantic import ValidationError

from tripboard.db.storage import FileStorage
from tripboard.db.subscriptions import Subscription
from tripboard.db.tree import TreeStore
from tripboard.errors import (
    NotFoundError,
    RemoteOperationError,
    StorageObjectNotFoundError,
    ValidationFailedError,
)
from tripboard.models.trip import (
    Activity,
    ActivityDeletion,
    ActivityInput,
    ActivityPatch,
    Attachment,
    Budget,
    Day,
    TripData,
)
from tripboard.services.budget import CATEGORY_NAMES, BudgetService, activity_price
from tripboard.services.ordering import (
    append_id,
    dedupe,
    displayed_order,
    move_id,
    move_index,
    ordered_ids,
    remove_id,
)

logger = logging.getLogger(__name__)

TRIP_PATH = "trip"
DAYS_PATH = "trip/days"

# (logical id, date, title) of the seeded itinerary
INITIAL_DAYS = [
    ("jour1", "10/06", "Arrivée à Porto-Vecchio"),
    ("jour2", "11/06", "Aiguilles de Bavella & Piscines du Cavu"),
    ("jour3", "12/06", "Bonifacio"),
    ("jour4", "13/06", "Plages de Palombaggia"),
    ("jour5", "14/06", "Réserve naturelle de Scandola"),
    ("jour6", "15/06", "Corte & Vallée de la Restonica"),
    ("jour7", "16/06", "Calvi"),
    ("jour8", "17/06", "Cap Corse"),
    ("jour9", "18/06", "Ajaccio"),
    ("jour10", "19/06", "Départ"),
]


def _coordinate(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value.strip() if isinstance(value, str) else value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _optional_text(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def clean_activity(activity_id: str, payload: Mapping[str, Any]) -> dict[str, Any]:
    """Coerce a stored activity payload into something ``Activity`` accepts.

    Unparseable coordinates and unknown categories become None, and the
    price is read the way the budget reads it.
    """
    category = payload.get("category")
    if not isinstance(category, str) or category not in CATEGORY_NAMES:
        category = None

    name = payload.get("name")
    if isinstance(name, (int, float)) and not isinstance(name, bool):
        name = str(name)

    raw_attachments = payload.get("attachments")
    attachments = []
    for entry in raw_attachments if isinstance(raw_attachments, list) else []:
        try:
            attachments.append(Attachment.model_validate(entry))
        except ValidationError:
            logger.warning(
                "Dropping malformed attachment reference",
                extra={"structured": {"activity": activity_id}},
            )

    tags = payload.get("tags")
    return {
        "id": activity_id,
        "name": name if isinstance(name, str) else "",
        "time": _optional_text(payload.get("time")),
        "price": activity_price(payload) or 0.0,
        "link": _optional_text(payload.get("link")),
        "notes": _optional_text(payload.get("notes")),
        "address": _optional_text(payload.get("address")),
        "lat": _coordinate(payload.get("lat")),
        "lon": _coordinate(payload.get("lon")),
        "booked": bool(payload.get("booked")),
        "tags": [tag for tag in tags if isinstance(tag, str)] if isinstance(tags, list) else [],
        "category": category,
        "attachments": attachments,
    }


def format_day(key: str, data: Mapping[str, Any]) -> Day:
    """Build a Day from its stored payload.

    Every mapping under ``activitiesById`` becomes an activity, with bad
    field values cleaned up; the order array is filtered against them.
    """
    activities: dict[str, Activity] = {}
    raw_activities = data.get("activitiesById")
    if isinstance(raw_activities, Mapping):
        for activity_id, payload in raw_activities.items():
            if isinstance(payload, Mapping):
                activities[activity_id] = Activity.model_validate(clean_activity(activity_id, payload))

    raw_order = data.get("activityOrder")
    order = ordered_ids(raw_order if isinstance(raw_order, list) else None, activities.keys())

    return Day(
        key=key,
        id=str(data.get("id") or key),
        date=str(data.get("date") or ""),
        title=str(data.get("title") or ""),
        activity_order=order,
        activities_by_id=activities,
    )


def format_trip(data: Any, default_total: float) -> TripData | None:
    """Format the raw ``trip`` snapshot; None when no trip exists."""
    if not isinstance(data, Mapping) or not data:
        return None

    raw_days = data.get("days") or {}
    if isinstance(raw_days, list):
        # Oldest layout stored days as an array
        entries = [(str(index), day) for index, day in enumerate(raw_days)]
    elif isinstance(raw_days, Mapping):
        entries = list(raw_days.items())
    else:
        entries = []

    days = [format_day(key, day) for key, day in entries if isinstance(day, Mapping)]

    budget_data = dict(data.get("budget") or {})
    budget_data.setdefault("total", default_total)
    return TripData(days=days, budget=Budget.model_validate(budget_data))


def initial_trip_payload(default_total: float) -> dict[str, Any]:
    """Seed trip keyed by logical day ID."""
    days = {
        day_id: {
            "id": day_id,
            "date": date,
            "title": title,
            "activityOrder": [],
            "activitiesById": {},
        }
        for day_id, date, title in INITIAL_DAYS
    }
    return {"days": days, "budget": {"total": default_total, "spent": 0}}


def _validate(model: type, payload: Any) -> Any:
    if isinstance(payload, model):
        return payload
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise ValidationFailedError(str(e)) from e


class TripService:
    """Itinerary reads and mutations."""

    def __init__(
        self,
        store: TreeStore,
        storage: FileStorage,
        budget: BudgetService,
        default_total: float = 2000.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._storage = storage
        self._budget = budget
        self._default_total = default_total
        self._clock = clock

    # Reads

    async def load(self) -> TripData | None:
        """Current formatted trip, or None before seeding."""
        return format_trip(await self._store.get(TRIP_PATH), self._default_total)

    async def subscribe(self, callback: Callable[[TripData | None], None]) -> Subscription:
        """Deliver a formatted trip now and after every change."""
        return await self._store.subscribe(
            TRIP_PATH, lambda snapshot: callback(format_trip(snapshot, self._default_total))
        )

    async def watch(self) -> AsyncIterator[TripData | None]:
        """Stream of formatted trip snapshots."""
        async for snapshot in self._store.watch(TRIP_PATH):
            yield format_trip(snapshot, self._default_total)

    async def create_initial_data(self) -> TripData:
        """Seed the ten-day itinerary unless a trip already exists."""
        existing = await self.load()
        if existing is not None:
            return existing

        logger.info("Creating initial trip data")
        await self._store.set(TRIP_PATH, initial_trip_payload(self._default_total))
        trip = await self.load()
        assert trip is not None
        return trip

    async def migrate_legacy_days(self) -> bool:
        """Rewrite array-shaped ``trip/days`` as a map keyed by list index.

        The keys match the ones ``format_trip`` already exposes for that
        layout; days without an ``id`` get their index as logical ID.

        Returns:
            True when a migration was written
        """
        days = await self._store.get(DAYS_PATH)
        if not isinstance(days, list):
            return False

        migrated = {}
        for index, day in enumerate(days):
            if isinstance(day, Mapping):
                migrated[str(index)] = {**day, "id": day.get("id") or str(index)}
        await self._store.set(DAYS_PATH, migrated)
        logger.info("Migrated array-shaped days", extra={"structured": {"days": len(migrated)}})
        return True

    async def resolve_day_key(self, day_id: str) -> str:
        """Storage key of the day whose logical ``id`` is ``day_id``.

        Scans every day on each call.

        Raises:
            NotFoundError: If no day carries that ID
        """
        days = await self._store.get(DAYS_PATH)
        if isinstance(days, list):
            await self.migrate_legacy_days()
            days = await self._store.get(DAYS_PATH)
        if isinstance(days, Mapping):
            for key, day in days.items():
                if isinstance(day, Mapping) and day.get("id") == day_id:
                    return str(key)

        raise NotFoundError(f"Day with ID {day_id} not found")

    async def get_day(self, day_id: str) -> Day:
        key = await self.resolve_day_key(day_id)
        data = await self._store.get(f"{DAYS_PATH}/{key}")
        if not isinstance(data, Mapping):
            raise NotFoundError(f"Day with ID {day_id} not found")
        return format_day(key, data)

    async def _activity_payload(self, day_key: str, activity_id: str) -> dict[str, Any]:
        payload = await self._store.get(f"{DAYS_PATH}/{day_key}/activitiesById/{activity_id}")
        if not isinstance(payload, Mapping):
            raise NotFoundError(f"Activity {activity_id} not found")
        return dict(payload)

    # Activity mutations

    async def add_activity(self, day_id: str, activity: ActivityInput | Mapping[str, Any]) -> str:
        """Create an activity at the end of the day; returns its new ID."""
        activity = _validate(ActivityInput, activity)
        day_key = await self.resolve_day_key(day_id)
        day_path = f"{DAYS_PATH}/{day_key}"

        activity_id = await self._store.push_key(f"{day_path}/activitiesById")
        order = await self._store.get(f"{day_path}/activityOrder")

        await self._store.update(
            day_path,
            {
                f"activitiesById/{activity_id}": activity.to_payload(),
                "activityOrder": append_id(order if isinstance(order, list) else None, activity_id),
            },
        )
        logger.info(
            "Activity added",
            extra={"structured": {"day_id": day_id, "activity_id": activity_id}},
        )

        await self._budget.recalculate()
        return activity_id

    async def update_activity(
        self, day_id: str, activity_id: str, patch: ActivityPatch | Mapping[str, Any]
    ) -> Activity:
        """Patch the fields explicitly set in ``patch``."""
        patch = _validate(ActivityPatch, patch)
        payload = patch.to_payload()
        if "name" in payload and not (payload["name"] or "").strip():
            raise ValidationFailedError("Activity name must not be empty")

        day_key = await self.resolve_day_key(day_id)
        await self._activity_payload(day_key, activity_id)

        activity_path = f"{DAYS_PATH}/{day_key}/activitiesById/{activity_id}"
        if payload:
            await self._store.update(activity_path, payload)
            logger.info(
                "Activity updated",
                extra={"structured": {"day_id": day_id, "activity_id": activity_id, "fields": list(payload)}},
            )

        await self._budget.recalculate()
        stored = await self._activity_payload(day_key, activity_id)
        return Activity.model_validate(clean_activity(activity_id, stored))

    async def delete_activity(self, day_id: str, activity_id: str) -> ActivityDeletion:
        """Delete an activity, its attachment files and its order entry.

        Attachment files are deleted first; a file that fails to delete is
        reported in the result and does not stop the activity deletion.
        """
        day_key = await self.resolve_day_key(day_id)
        day_path = f"{DAYS_PATH}/{day_key}"
        activity = await self._activity_payload(day_key, activity_id)

        deletion = ActivityDeletion(activity_id=activity_id)
        for attachment in activity.get("attachments") or []:
            path = attachment.get("path") if isinstance(attachment, Mapping) else None
            if not path:
                continue
            try:
                await self._storage.delete(path)
                deletion.deleted_attachments.append(path)
            except StorageObjectNotFoundError:
                logger.warning("Attachment already missing from storage", extra={"structured": {"path": path}})
                deletion.deleted_attachments.append(path)
            except RemoteOperationError as e:
                logger.warning(
                    "Attachment deletion failed",
                    extra={"structured": {"path": path, "reason": e.message}},
                )
                deletion.failed_attachments.append(path)

        order = await self._store.get(f"{day_path}/activityOrder")
        await self._store.update(
            day_path,
            {
                f"activitiesById/{activity_id}": None,
                "activityOrder": remove_id(order if isinstance(order, list) else None, activity_id),
            },
        )
        logger.info(
            "Activity deleted",
            extra={
                "structured": {
                    "day_id": day_id,
                    "activity_id": activity_id,
                    "failed_attachments": deletion.failed_attachments,
                }
            },
        )

        await self._budget.recalculate()
        return deletion

    # Ordering

    async def update_activity_order(self, day_id: str, activity_order: list[str]) -> list[str]:
        """Overwrite the day's order array (duplicates dropped)."""
        day_key = await self.resolve_day_key(day_id)
        order = dedupe(activity_order)
        await self._store.set(f"{DAYS_PATH}/{day_key}/activityOrder", order)
        return order

    async def move_activity(self, day_id: str, activity_id: str, destination_index: int) -> list[str]:
        """Move one activity to ``destination_index`` in the displayed order."""
        day_key = await self.resolve_day_key(day_id)
        await self._activity_payload(day_key, activity_id)

        day = await self._store.get(f"{DAYS_PATH}/{day_key}") or {}
        current = displayed_order(day.get("activityOrder"), day.get("activitiesById"))
        new_order = move_id(current, activity_id, destination_index)
        await self._store.set(f"{DAYS_PATH}/{day_key}/activityOrder", new_order)
        return new_order

    async def move_activity_index(self, day_id: str, source_index: int, destination_index: int) -> list[str]:
        """Drag-and-drop move using indices of the displayed order."""
        day = await self.get_day(day_id)
        new_order = move_index(day.activity_order, source_index, destination_index)
        await self._store.set(f"{DAYS_PATH}/{day.key}/activityOrder", new_order)
        return new_order

    # Attachments

    async def upload_attachment(
        self,
        day_id: str,
        activity_id: str,
        filename: str,
        data: bytes,
        content_type: str | None = None,
    ) -> Attachment:
        """Upload a file and append its reference to the activity."""
        name = os.path.basename(filename or "").strip()
        if not name:
            raise ValidationFailedError("Attachment filename must not be empty")

        day_key = await self.resolve_day_key(day_id)
        activity = await self._activity_payload(day_key, activity_id)

        path = f"activity_files/{day_id}/{activity_id}/{int(self._clock() * 1000)}_{name}"
        url = await self._storage.upload(path, data, content_type)
        attachment = Attachment(name=name, url=url, path=path)

        attachments = list(activity.get("attachments") or []) + [attachment.model_dump()]
        await self._store.update(
            f"{DAYS_PATH}/{day_key}/activitiesById/{activity_id}", {"attachments": attachments}
        )
        logger.info("Attachment uploaded", extra={"structured": {"path": path, "bytes": len(data)}})
        return attachment

    async def delete_attachment(self, day_id: str, activity_id: str, path: str) -> None:
        """Delete an attachment file and its reference.

        A file already missing from storage still has its reference removed.
        """
        day_key = await self.resolve_day_key(day_id)
        activity = await self._activity_payload(day_key, activity_id)
        attachments = [a for a in activity.get("attachments") or [] if isinstance(a, Mapping)]
        if not any(a.get("path") == path for a in attachments):
            raise NotFoundError(f"Attachment {path} not found on activity {activity_id}")

        try:
            await self._storage.delete(path)
        except StorageObjectNotFoundError:
            logger.warning(
                "File not found in storage, removing reference anyway",
                extra={"structured": {"path": path}},
            )

        remaining = [a for a in attachments if a.get("path") != path]
        await self._store.update(
            f"{DAYS_PATH}/{day_key}/activitiesById/{activity_id}", {"attachments": remaining}
        )
