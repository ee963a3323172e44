"""Activity endpoints - CRUD, ordering and attachments within a day."""

from typing import Annotated

from fastapi import APIRouter, Depends, File, Query, Response, UploadFile, status
from pydantic import BaseModel, Field

from tripboard.api.auth import get_current_user
from tripboard.api.deps import AppContextDep
from tripboard.models.trip import Activity, ActivityDeletion, ActivityInput, ActivityPatch, Attachment

router = APIRouter(
    prefix="/trip/days/{day_id}",
    tags=["activities"],
    dependencies=[Depends(get_current_user)],
)


class CreatedResponse(BaseModel):
    id: str


class OrderRequest(BaseModel):
    """Whole order array, first displayed first."""

    order: list[str]


class OrderResponse(BaseModel):
    order: list[str]


class MoveRequest(BaseModel):
    destination_index: int = Field(..., ge=0)


class IndexMoveRequest(BaseModel):
    """Drag-and-drop move expressed in displayed indices."""

    source_index: int = Field(..., ge=0)
    destination_index: int = Field(..., ge=0)


@router.post("/activities", response_model=CreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_activity(day_id: str, activity: ActivityInput, ctx: AppContextDep) -> CreatedResponse:
    activity_id = await ctx.trip.add_activity(day_id, activity)
    return CreatedResponse(id=activity_id)


@router.patch("/activities/{activity_id}", response_model=Activity)
async def patch_activity(day_id: str, activity_id: str, patch: ActivityPatch, ctx: AppContextDep) -> Activity:
    return await ctx.trip.update_activity(day_id, activity_id, patch)


@router.delete("/activities/{activity_id}", response_model=ActivityDeletion)
async def delete_activity(day_id: str, activity_id: str, ctx: AppContextDep) -> ActivityDeletion:
    """Delete an activity; attachment files that could not be deleted are listed."""
    return await ctx.trip.delete_activity(day_id, activity_id)


@router.put("/activity-order", response_model=OrderResponse)
async def put_activity_order(day_id: str, request: OrderRequest, ctx: AppContextDep) -> OrderResponse:
    order = await ctx.trip.update_activity_order(day_id, request.order)
    return OrderResponse(order=order)


@router.post("/activity-order/move", response_model=OrderResponse)
async def move_by_index(day_id: str, request: IndexMoveRequest, ctx: AppContextDep) -> OrderResponse:
    order = await ctx.trip.move_activity_index(day_id, request.source_index, request.destination_index)
    return OrderResponse(order=order)


@router.post("/activities/{activity_id}/move", response_model=OrderResponse)
async def move_activity(day_id: str, activity_id: str, request: MoveRequest, ctx: AppContextDep) -> OrderResponse:
    order = await ctx.trip.move_activity(day_id, activity_id, request.destination_index)
    return OrderResponse(order=order)


@router.post(
    "/activities/{activity_id}/attachments",
    response_model=Attachment,
    status_code=status.HTTP_201_CREATED,
)
async def upload_attachment(
    day_id: str,
    activity_id: str,
    file: Annotated[UploadFile, File()],
    ctx: AppContextDep,
) -> Attachment:
    data = await file.read()
    return await ctx.trip.upload_attachment(day_id, activity_id, file.filename or "", data, file.content_type)


@router.delete("/activities/{activity_id}/attachments", status_code=status.HTTP_204_NO_CONTENT)
async def delete_attachment(
    day_id: str,
    activity_id: str,
    ctx: AppContextDep,
    path: Annotated[str, Query(min_length=1)],
) -> Response:
    await ctx.trip.delete_attachment(day_id, activity_id, path)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
