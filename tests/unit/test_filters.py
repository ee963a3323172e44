"""Tests for the dashboard booking filter."""

from tripboard.models.common import BookingFilter
from tripboard.models.trip import Activity, Day
from tripboard.services.filters import filter_days


def _day(day_id: str, *activities: Activity) -> Day:
    return Day(
        key=day_id,
        id=day_id,
        activity_order=[a.id for a in activities],
        activities_by_id={a.id: a for a in activities},
    )


DAYS = [
    _day("jour1", Activity(id="a", name="Hôtel", booked=True), Activity(id="b", name="Plage")),
    _day("jour2", Activity(id="c", name="Marché")),
    _day("jour3"),
]


def test_all_displays_every_day() -> None:
    views = filter_days(DAYS, BookingFilter.all)
    assert [v.display for v in views] == [True, True, True]
    assert [a.id for a in views[0].activities] == ["a", "b"]


def test_booked_filter() -> None:
    views = filter_days(DAYS, BookingFilter.booked)
    assert [v.display for v in views] == [True, False, False]
    assert [a.id for a in views[0].activities] == ["a"]


def test_not_booked_filter() -> None:
    views = filter_days(DAYS, BookingFilter.not_booked)
    assert [v.display for v in views] == [True, True, False]
    assert [a.id for a in views[0].activities] == ["b"]
