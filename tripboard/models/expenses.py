"""Derived budget aggregates."""

from pydantic import BaseModel, Field

from tripboard.models.trip import Budget


class ExpenseSummary(BaseModel):
    """Expense sums recomputed from every activity of every day.

    ``by_tag`` counts an activity's full price once per tag, so its values
    can add up to more than ``spent``.
    """

    spent: float = 0
    booked: float = 0
    unbooked: float = 0
    by_category: dict[str, float] = Field(default_factory=dict)
    by_tag: dict[str, float] = Field(default_factory=dict)


class LimitUsage(BaseModel):
    """Spend against a user-set cap (display only, never enforced)."""

    name: str
    spent: float
    limit: float | None = None
    over_limit: bool = False


class BudgetReport(BaseModel):
    """Budget view: stored budget, derived sums and limit comparisons."""

    budget: Budget
    expenses: ExpenseSummary
    remaining: float
    categories: list[LimitUsage] = Field(default_factory=list)
    tags: list[LimitUsage] = Field(default_factory=list)
