"""Trip aggregate models: days, activities, attachments, budget.

Store payloads keep the camelCase field names of the remote tree
(``activityOrder``, ``activitiesById``, ``categoryLimits``); the models expose
snake_case attributes and serialize back through aliases.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tripboard.models.common import ActivityCategory


class Attachment(BaseModel):
    """File reference owned by an activity."""

    name: str
    url: str
    path: str  # storage path, required for deletion


class ActivityFields(BaseModel):
    """Fields shared by stored activities and creation payloads."""

    time: str | None = None
    price: float = 0
    link: str | None = None
    notes: str | None = None
    address: str | None = None
    lat: float | None = None
    lon: float | None = None
    booked: bool = False
    tags: list[str] = Field(default_factory=list)
    category: ActivityCategory | None = None
    attachments: list[Attachment] = Field(default_factory=list)


class Activity(ActivityFields):
    """Stored activity, keyed by its store-generated ID."""

    id: str
    name: str = ""


class ActivityInput(ActivityFields):
    """Payload for creating an activity."""

    name: str = Field(..., min_length=1)
    price: float = Field(0, ge=0)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("name must not be blank")
        return value.strip()

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class ActivityPatch(BaseModel):
    """Partial update of an activity; only fields explicitly set are written."""

    name: str | None = Field(None, min_length=1)
    time: str | None = None
    price: float | None = Field(None, ge=0)
    link: str | None = None
    notes: str | None = None
    address: str | None = None
    lat: float | None = None
    lon: float | None = None
    booked: bool | None = None
    tags: list[str] | None = None
    category: ActivityCategory | None = None

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_unset=True)


class Day(BaseModel):
    """One calendar day of the itinerary."""

    model_config = ConfigDict(populate_by_name=True)

    key: str  # storage key under trip/days
    id: str  # logical ID
    date: str = ""
    title: str = ""
    activity_order: list[str] = Field(default_factory=list, alias="activityOrder")
    activities_by_id: dict[str, Activity] = Field(default_factory=dict, alias="activitiesById")

    def ordered_activities(self) -> list[Activity]:
        return [self.activities_by_id[activity_id] for activity_id in self.activity_order]


class Budget(BaseModel):
    """Trip budget; ``spent`` is derived and never user-authored."""

    model_config = ConfigDict(populate_by_name=True)

    total: float = 0
    spent: float = 0
    category_limits: dict[str, float] = Field(default_factory=dict, alias="categoryLimits")
    tag_limits: dict[str, float] = Field(default_factory=dict, alias="tagLimits")


class TripData(BaseModel):
    """Formatted trip snapshot handed to readers."""

    days: list[Day]
    budget: Budget


class ActivityDeletion(BaseModel):
    """Outcome of deleting an activity.

    ``failed_attachments`` lists storage paths whose file deletion failed;
    the activity itself is removed regardless.
    """

    activity_id: str
    deleted_attachments: list[str] = Field(default_factory=list)
    failed_attachments: list[str] = Field(default_factory=list)

    @property
    def partial(self) -> bool:
        return bool(self.failed_attachments)


class DayView(BaseModel):
    """Day as rendered under a booking filter.

    ``display`` is False when no activity matches; the day is still
    returned so clients can keep their layout.
    """

    day: Day
    activities: list[Activity]
    display: bool
