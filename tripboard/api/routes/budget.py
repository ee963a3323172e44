"""Budget endpoints - report, total and display-only spending limits."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, field_validator

from tripboard.api.auth import get_current_user
from tripboard.api.deps import AppContextDep
from tripboard.models.expenses import BudgetReport
from tripboard.models.trip import Budget

router = APIRouter(prefix="/budget", tags=["budget"], dependencies=[Depends(get_current_user)])


class TotalRequest(BaseModel):
    total: float = Field(..., ge=0)


class LimitsRequest(BaseModel):
    """Limit per category or tag name."""

    limits: dict[str, float]

    @field_validator("limits")
    @classmethod
    def non_negative(cls, value: dict[str, float]) -> dict[str, float]:
        for name, limit in value.items():
            if limit < 0:
                raise ValueError(f"limit for {name!r} must not be negative")
        return value


@router.get("", response_model=BudgetReport)
async def get_budget(ctx: AppContextDep) -> BudgetReport:
    return await ctx.budget.report()


@router.put("/total", response_model=Budget)
async def put_total(request: TotalRequest, ctx: AppContextDep) -> Budget:
    """Set the total and recompute ``spent`` in the same write."""
    await ctx.budget.recalculate(new_total=request.total)
    return await ctx.budget.get_budget()


@router.get("/category-limits")
async def get_category_limits(ctx: AppContextDep) -> dict[str, float]:
    return await ctx.budget.get_category_limits()


@router.put("/category-limits")
async def put_category_limits(request: LimitsRequest, ctx: AppContextDep) -> dict[str, float]:
    await ctx.budget.set_category_limits(request.limits)
    return await ctx.budget.get_category_limits()


@router.get("/tag-limits")
async def get_tag_limits(ctx: AppContextDep) -> dict[str, float]:
    return await ctx.budget.get_tag_limits()


@router.put("/tag-limits")
async def put_tag_limits(request: LimitsRequest, ctx: AppContextDep) -> dict[str, float]:
    await ctx.budget.set_tag_limits(request.limits)
    return await ctx.budget.get_tag_limits()
