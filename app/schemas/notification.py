from pydantic import BaseModel
from typing import Any, Dict, Optional, List
from datetime import datetime
import uuid

from app.models.notification import NotificationType


class NotificationResponse(BaseModel):
    """Response schema for a single notification"""
    id: uuid.UUID
    user_id: uuid.UUID
    title: str
    message: str
    type: NotificationType
    data: Optional[Dict[str, Any]] = None
    is_read: bool
    created_at: Optional[datetime] = None
    read_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class NotificationListResponse(BaseModel):
    """Paginated list of notifications"""
    items: List[NotificationResponse]
    total: int
    page: int
    pages: int
    unread_count: int


class MarkReadResponse(BaseModel):
    """Response when marking notifications as read"""
    updated_count: int
    success: bool = True
