"""
API endpoints for the current user's in-app notifications.

Routes:
  GET   /api/v1/notifications                          list, with pagination and filters
  PATCH /api/v1/notifications/{notification_id}/read   mark one as read
  PATCH /api/v1/notifications/read-all                 mark all as read
"""

from typing import Optional
import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, get_notification_service
from app.core.database import get_db
from app.models.user import User
from app.schemas.notification import (
    MarkReadResponse,
    NotificationListResponse,
    NotificationResponse,
)
from app.services.notification_service import NotificationService

router = APIRouter()


@router.get("", response_model=NotificationListResponse)
async def get_notifications(
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(50, ge=1, le=100, description="Items per page"),
    is_read: Optional[bool] = Query(None, description="Filter by read status"),
    type: Optional[str] = Query(None, description="Filter by notification type"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    service: NotificationService = Depends(get_notification_service),
):
    """
    Get paginated notifications for the current user, newest first.

    Returns the page together with the user's total unread count.
    """
    result = await service.get_user_notifications(
        db,
        current_user.id,
        page=page,
        limit=limit,
        is_read=is_read,
        notification_type=type,
    )

    return NotificationListResponse(
        items=[NotificationResponse.model_validate(n) for n in result["items"]],
        total=result["total"],
        page=result["page"],
        pages=result["pages"],
        unread_count=result["unread_count"],
    )


@router.patch("/read-all", response_model=MarkReadResponse)
async def mark_all_notifications_read(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    service: NotificationService = Depends(get_notification_service),
):
    """Mark all of the current user's notifications as read"""
    result = await service.mark_all_read_for_user(db, current_user.id)
    await db.commit()
    return MarkReadResponse(updated_count=result["updated_count"])


@router.patch("/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read(
    notification_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    service: NotificationService = Depends(get_notification_service),
):
    """Mark one of the current user's notifications as read"""
    notification = await service.mark_notification_read(db, notification_id, current_user.id)
    await db.commit()
    return NotificationResponse.model_validate(notification)
