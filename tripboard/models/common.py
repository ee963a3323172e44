"""Common types and enums shared across all models."""

from enum import Enum

from pydantic import BaseModel, Field


class Geo(BaseModel):
    """Geographic coordinates (WGS84)."""

    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)


class ActivityCategory(str, Enum):
    """Expense category of an activity."""

    lodging = "Logement"
    transport = "Transport"
    activity = "Activité"
    food = "Alimentation"
    other = "Autre"


class Priority(str, Enum):
    """Checklist item priority."""

    low = "low"
    medium = "medium"
    high = "high"


class BookingFilter(str, Enum):
    """Dashboard filter on activity booking state."""

    all = "all"
    booked = "booked"
    not_booked = "not-booked"


class ChecklistStatusFilter(str, Enum):
    """Checklist filter on completion state."""

    all = "all"
    pending = "pending"
    completed = "completed"


DEFAULT_CATEGORY = ActivityCategory.other.value
DEFAULT_TAG = "Sans tag"
