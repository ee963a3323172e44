"""Budget aggregates recomputed from every activity of every day."""

import logging
import math
from collections.abc import Iterator, Mapping
from typing import Any

from tripboard.db.tree import TreeStore
from tripboard.models.common import DEFAULT_CATEGORY, DEFAULT_TAG, ActivityCategory
from tripboard.models.expenses import BudgetReport, ExpenseSummary, LimitUsage
from tripboard.models.trip import Budget
from tripboard.utils.metrics import metrics

logger = logging.getLogger(__name__)

DAYS_PATH = "trip/days"
BUDGET_PATH = "trip/budget"

CATEGORY_NAMES = frozenset(member.value for member in ActivityCategory)


def iter_activities(days: Any) -> Iterator[Mapping[str, Any]]:
    """Yield every stored activity payload across all days.

    ``days`` is the raw ``trip/days`` snapshot: a mapping keyed by storage
    key, or a list of days in the oldest layout.
    """
    if not days:
        return
    day_values = days.values() if isinstance(days, Mapping) else days
    for day in day_values:
        if not isinstance(day, Mapping):
            continue
        activities = day.get("activitiesById")
        if isinstance(activities, Mapping):
            for activity in activities.values():
                if isinstance(activity, Mapping):
                    yield activity


def activity_price(activity: Mapping[str, Any]) -> float | None:
    """Numeric price of an activity, or None when missing or unusable.

    Numeric strings written by older clients are accepted.
    """
    price = activity.get("price")
    if price is None or isinstance(price, bool):
        return None
    if isinstance(price, (int, float)):
        value = float(price)
    elif isinstance(price, str):
        try:
            value = float(price.strip())
        except ValueError:
            return None
    else:
        return None
    return value if math.isfinite(value) else None


def compute_expenses(days: Any) -> ExpenseSummary:
    """Full-scan expense aggregation over the raw days snapshot."""
    summary = ExpenseSummary()

    for activity in iter_activities(days):
        price = activity_price(activity)
        if price is None:
            continue

        summary.spent += price
        if activity.get("booked"):
            summary.booked += price
        else:
            summary.unbooked += price

        category = activity.get("category")
        if not isinstance(category, str) or category not in CATEGORY_NAMES:
            category = DEFAULT_CATEGORY
        summary.by_category[category] = summary.by_category.get(category, 0) + price

        raw_tags = activity.get("tags")
        tags = [tag for tag in raw_tags if isinstance(tag, str) and tag] if isinstance(raw_tags, list) else []
        # Full price to every tag, not split
        for tag in tags or [DEFAULT_TAG]:
            summary.by_tag[tag] = summary.by_tag.get(tag, 0) + price

    return summary


def compare_limits(spent: Mapping[str, float], limits: Mapping[str, float]) -> list[LimitUsage]:
    """Pair each spend bucket (and each capped name) with its limit."""
    names = list(spent) + [name for name in limits if name not in spent]
    usages = []
    for name in names:
        amount = spent.get(name, 0)
        limit = limits.get(name)
        usages.append(
            LimitUsage(
                name=name,
                spent=amount,
                limit=limit,
                over_limit=limit is not None and amount > limit,
            )
        )
    return usages


class BudgetService:
    """Aggregate recalculator and budget limit accessors."""

    def __init__(self, store: TreeStore, default_total: float = 2000.0) -> None:
        self._store = store
        self._default_total = default_total

    async def expenses(self) -> ExpenseSummary:
        return compute_expenses(await self._store.get(DAYS_PATH))

    async def recalculate(self, new_total: float | None = None) -> ExpenseSummary:
        """Recompute ``spent`` from scratch and write it back.

        When ``new_total`` is given it is written in the same patch.
        """
        summary = await self.expenses()
        patch: dict[str, Any] = {"spent": summary.spent}
        if new_total is not None:
            patch["total"] = new_total

        await self._store.update(BUDGET_PATH, patch)
        metrics.inc_budget_recalculation()
        logger.info("Budget recalculated", extra={"structured": patch})
        return summary

    async def get_budget(self) -> Budget:
        data = await self._store.get(BUDGET_PATH) or {}
        data.setdefault("total", self._default_total)
        return Budget.model_validate(data)

    async def report(self) -> BudgetReport:
        budget = await self.get_budget()
        summary = await self.expenses()
        return BudgetReport(
            budget=budget,
            expenses=summary,
            remaining=budget.total - summary.spent,
            categories=compare_limits(summary.by_category, budget.category_limits),
            tags=compare_limits(summary.by_tag, budget.tag_limits),
        )

    async def get_category_limits(self) -> dict[str, float]:
        return await self._store.get(f"{BUDGET_PATH}/categoryLimits") or {}

    async def set_category_limits(self, limits: Mapping[str, float]) -> None:
        await self._store.set(f"{BUDGET_PATH}/categoryLimits", dict(limits))

    async def get_tag_limits(self) -> dict[str, float]:
        return await self._store.get(f"{BUDGET_PATH}/tagLimits") or {}

    async def set_tag_limits(self, limits: Mapping[str, float]) -> None:
        await self._store.set(f"{BUDGET_PATH}/tagLimits", dict(limits))
