"""Models package - re-exports for convenience."""

from tripboard.models.auth import AuthSession, Credentials, User
from tripboard.models.checklist import (
    Checklist,
    ChecklistItem,
    ChecklistItemInput,
    ChecklistItemPatch,
    ChecklistProgress,
)
from tripboard.models.common import (
    DEFAULT_CATEGORY,
    DEFAULT_TAG,
    ActivityCategory,
    BookingFilter,
    ChecklistStatusFilter,
    Geo,
    Priority,
)
from tripboard.models.expenses import BudgetReport, ExpenseSummary, LimitUsage
from tripboard.models.tool_results import DailyForecast, GeocodeResult, NearbyPlace
from tripboard.models.trip import (
    Activity,
    ActivityDeletion,
    ActivityInput,
    ActivityPatch,
    Attachment,
    Budget,
    Day,
    DayView,
    TripData,
)

__all__ = [
    "DEFAULT_CATEGORY",
    "DEFAULT_TAG",
    "Activity",
    "ActivityCategory",
    "ActivityDeletion",
    "ActivityInput",
    "ActivityPatch",
    "Attachment",
    "AuthSession",
    "BookingFilter",
    "Budget",
    "BudgetReport",
    "Checklist",
    "ChecklistItem",
    "ChecklistItemInput",
    "ChecklistItemPatch",
    "ChecklistProgress",
    "ChecklistStatusFilter",
    "Credentials",
    "DailyForecast",
    "Day",
    "DayView",
    "ExpenseSummary",
    "Geo",
    "GeocodeResult",
    "LimitUsage",
    "NearbyPlace",
    "Priority",
    "TripData",
    "User",
]
