"""Read-side filters for the dashboard and the checklist."""

from tripboard.models.checklist import Checklist, ChecklistItem, ChecklistProgress
from tripboard.models.common import BookingFilter, ChecklistStatusFilter
from tripboard.models.trip import Activity, Day, DayView


def activity_matches(activity: Activity, booking: BookingFilter) -> bool:
    if booking is BookingFilter.booked:
        return activity.booked
    if booking is BookingFilter.not_booked:
        return not activity.booked
    return True


def filter_days(days: list[Day], booking: BookingFilter = BookingFilter.all) -> list[DayView]:
    """Apply the booking filter to every day, in display order.

    Days without a matching activity are kept with ``display`` False, except
    under the ``all`` filter where every day is displayed.
    """
    views = []
    for day in days:
        activities = [a for a in day.ordered_activities() if activity_matches(a, booking)]
        display = booking is BookingFilter.all or bool(activities)
        views.append(DayView(day=day, activities=activities, display=display))
    return views


def filter_checklist(
    checklist: Checklist,
    status: ChecklistStatusFilter = ChecklistStatusFilter.all,
    category: str | None = None,
) -> list[ChecklistItem]:
    """Items in display order matching the status and, if given, the category."""
    items = []
    for item in checklist.ordered_items():
        if status is ChecklistStatusFilter.pending and item.completed:
            continue
        if status is ChecklistStatusFilter.completed and not item.completed:
            continue
        if category and item.category != category:
            continue
        items.append(item)
    return items


def checklist_categories(checklist: Checklist) -> list[str]:
    """Distinct item categories, sorted."""
    return sorted({item.category for item in checklist.items.values() if item.category})


def checklist_progress(checklist: Checklist) -> ChecklistProgress:
    total = len(checklist.items)
    completed = sum(1 for item in checklist.items.values() if item.completed)
    percent = round(completed / total * 100) if total else 0
    return ChecklistProgress(completed=completed, total=total, percent=percent)
