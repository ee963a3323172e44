"""Checklist endpoints."""

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, Field

from tripboard.api.auth import get_current_user
from tripboard.api.deps import AppContextDep
from tripboard.errors import NotFoundError
from tripboard.models.checklist import ChecklistItem, ChecklistItemInput, ChecklistItemPatch, ChecklistProgress
from tripboard.models.common import ChecklistStatusFilter
from tripboard.services.filters import checklist_categories, checklist_progress, filter_checklist

router = APIRouter(prefix="/checklist", tags=["checklist"], dependencies=[Depends(get_current_user)])


class ChecklistResponse(BaseModel):
    """Filtered items in display order plus header data."""

    items: list[ChecklistItem]
    categories: list[str]
    progress: ChecklistProgress


class CreatedResponse(BaseModel):
    id: str


class OrderRequest(BaseModel):
    order: list[str]


class OrderResponse(BaseModel):
    order: list[str]


class MoveRequest(BaseModel):
    destination_index: int = Field(..., ge=0)


@router.get("", response_model=ChecklistResponse)
async def get_checklist(
    ctx: AppContextDep,
    status_filter: ChecklistStatusFilter = Query(ChecklistStatusFilter.all, alias="status"),
    category: str | None = Query(None),
) -> ChecklistResponse:
    checklist = await ctx.checklist.load()
    if checklist is None:
        raise NotFoundError("Checklist not initialized")

    return ChecklistResponse(
        items=filter_checklist(checklist, status_filter, category),
        categories=checklist_categories(checklist),
        progress=checklist_progress(checklist),
    )


@router.post("/init", status_code=status.HTTP_201_CREATED)
async def init_checklist(ctx: AppContextDep) -> dict[str, int]:
    checklist = await ctx.checklist.create_initial_data()
    return {"items": len(checklist.items)}


@router.post("/items", response_model=CreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_item(item: ChecklistItemInput, ctx: AppContextDep) -> CreatedResponse:
    return CreatedResponse(id=await ctx.checklist.add_item(item))


@router.patch("/items/{item_id}", response_model=ChecklistItem)
async def patch_item(item_id: str, patch: ChecklistItemPatch, ctx: AppContextDep) -> ChecklistItem:
    return await ctx.checklist.update_item(item_id, patch)


@router.delete("/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_item(item_id: str, ctx: AppContextDep) -> Response:
    await ctx.checklist.delete_item(item_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/item-order", response_model=OrderResponse)
async def put_item_order(request: OrderRequest, ctx: AppContextDep) -> OrderResponse:
    return OrderResponse(order=await ctx.checklist.update_item_order(request.order))


@router.post("/items/{item_id}/move", response_model=OrderResponse)
async def move_item(item_id: str, request: MoveRequest, ctx: AppContextDep) -> OrderResponse:
    return OrderResponse(order=await ctx.checklist.move_item(item_id, request.destination_index))
