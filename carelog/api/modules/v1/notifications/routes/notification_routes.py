import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from carelog.api.core.dependencies.auth import get_current_user
from carelog.api.db.database import get_db
from carelog.api.modules.v1.notifications.schemas.notification_schema import (
    NotificationMarkRead,
    NotificationResponse,
)
from carelog.api.modules.v1.notifications.service.notification_service import NotificationService
from carelog.api.modules.v1.users.models.users_model import Profile
from carelog.api.utils.pagination import calculate_pagination, page_window
from carelog.api.utils.response_payloads import success_response

router = APIRouter(prefix="/notifications", tags=["Notifications"])
logger = logging.getLogger("app")


@router.get("", status_code=status.HTTP_200_OK, summary="Get user notifications")
async def get_notifications(
    unread_only: bool = Query(False, description="Only unread notifications"),
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(50, ge=1, le=100, description="Items per page"),
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    """Return the caller's notifications, newest first, plus the unread count."""
    skip, limit = page_window(page, limit)
    notifications = await NotificationService.get_user_notifications(
        db, current_user.id, unread_only=unread_only, limit=limit, skip=skip
    )
    total = await NotificationService.count_user_notifications(
        db, current_user.id, unread_only=unread_only
    )
    unread = await NotificationService.unread_count(db, current_user.id)

    return success_response(
        status.HTTP_200_OK,
        "Notifications retrieved successfully",
        {
            "notifications": [
                NotificationResponse.model_validate(n).model_dump() for n in notifications
            ],
            "unread_count": unread,
            "pagination": calculate_pagination(total, page, limit),
        },
    )


@router.put("", status_code=status.HTTP_200_OK, summary="Mark notifications as read")
async def mark_notifications_read(
    payload: NotificationMarkRead,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    updated = await NotificationService.mark_as_read(
        db, current_user.id, payload.notification_ids
    )
    logger.info(f"Marked {updated} notifications read for user {current_user.id}")
    return success_response(
        status.HTTP_200_OK, "Notifications marked as read", {"updated_count": updated}
    )


@router.get("/count", status_code=status.HTTP_200_OK, summary="Unread notification count")
async def get_unread_count(
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    unread = await NotificationService.unread_count(db, current_user.id)
    return success_response(status.HTTP_200_OK, "Unread count retrieved", {"count": unread})
