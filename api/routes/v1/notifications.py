"""
Notification inbox endpoints. Every route is scoped to the caller's own rows.
"""

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_clock, get_current_user, get_pagination_params
from api.schemas.common import ApiResponse, PaginatedResponse, PaginationParams
from api.schemas.notifications import NotificationOut
from api.services import notifications as notification_service
from core.utils.datetime import Clock
from database.engine import get_db
from database.models.users import User

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", summary="List Notifications")
async def list_notifications(
    unread_only: bool = Query(False, alias="unreadOnly", description="Only unread rows"),
    pagination: PaginationParams = Depends(get_pagination_params),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    items, total = await notification_service.list_notifications(
        db, current_user, pagination, unread_only
    )
    page = PaginatedResponse[NotificationOut].create(
        [NotificationOut.model_validate(n) for n in items], total, pagination
    )
    return ApiResponse.ok(page)


@router.get("/unread-count", summary="Unread Count")
async def unread_count(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    count = await notification_service.unread_count(db, current_user)
    return ApiResponse.ok({"unreadCount": count})


@router.put("/read-all", summary="Mark All Read")
async def mark_all_read(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    updated = await notification_service.mark_all_read(db, current_user, clock)
    return ApiResponse.ok({"updated": updated}, "All notifications marked as read")


@router.put("/{notification_id}/read", summary="Mark Read")
async def mark_read(
    notification_id: int = Path(..., description="Notification ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    notification = await notification_service.mark_read(
        db, current_user, notification_id, clock
    )
    return ApiResponse.ok(
        {"notification": NotificationOut.model_validate(notification)},
        "Notification marked as read",
    )
