"""
Notification repository for in-app notifications created by the worker.
"""

from __future__ import annotations
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID
from sqlalchemy import select, desc, func, and_, update as sql_update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
import logging

from app.models.notification import Notification, NotificationType
from .base import BaseRepository

logger = logging.getLogger(__name__)


class NotificationRepository(BaseRepository[Notification]):
    """
    Repository for Notification model.

    Notifications are created through the base ``create``; this adds the
    per-user listing, unread count and read marking.
    """

    def __init__(self):
        """Initialize with Notification model."""
        super().__init__(Notification)

    async def get_user_notifications(
        self,
        db: AsyncSession,
        user_id: UUID,
        skip: int = 0,
        limit: int = 50,
        is_read: Optional[bool] = None,
        notification_type: Optional[NotificationType] = None
    ) -> tuple[list[Notification], int]:
        """
        Get a page of a user's notifications, newest first.

        Args:
            db: Active database session
            user_id: UUID of the user
            skip: Number of records to skip (offset)
            limit: Maximum number of records to return
            is_read: Optional filter by read status
            notification_type: Optional filter by notification type

        Returns:
            Tuple of (notifications on the page, total matching the filters)

        Example:
            unread, total = await repo.get_user_notifications(db, user_id, is_read=False)
        """
        try:
            filters = [Notification.user_id == user_id]
            if is_read is not None:
                filters.append(Notification.is_read == is_read)
            if notification_type is not None:
                filters.append(Notification.type == notification_type)

            count_stmt = select(func.count()).select_from(Notification).where(and_(*filters))
            total = (await db.execute(count_stmt)).scalar_one()

            stmt = (
                select(Notification)
                .where(and_(*filters))
                .order_by(desc(Notification.created_at))
                .offset(skip)
                .limit(limit)
            )
            result = await db.execute(stmt)
            return list(result.scalars().all()), total

        except SQLAlchemyError as e:
            logger.error(f"Error fetching notifications for user {user_id}: {e}")
            raise

    async def get_unread_count_for_user(
        self,
        db: AsyncSession,
        user_id: UUID
    ) -> int:
        try:
            stmt = (
                select(func.count())
                .select_from(Notification)
                .where(
                    and_(
                        Notification.user_id == user_id,
                        Notification.is_read == False
                    )
                )
            )
            result = await db.execute(stmt)
            return result.scalar_one()

        except SQLAlchemyError as e:
            logger.error(f"Error getting unread count for user {user_id}: {e}")
            raise

    async def mark_as_read(
        self,
        db: AsyncSession,
        notification: Notification
    ) -> Notification:
        """
        Mark one notification as read; an already read one keeps its ``read_at``.

        Example:
            notification = await repo.mark_as_read(db, notification)
            await db.commit()
        """
        try:
            if not notification.is_read:
                notification.is_read = True
                notification.read_at = datetime.now(timezone.utc)
                await db.flush()
            return notification

        except SQLAlchemyError as e:
            logger.error(f"Error marking notification {notification.id} as read: {e}")
            raise

    async def mark_all_as_read_for_user(
        self,
        db: AsyncSession,
        user_id: UUID
    ) -> int:
        """
        Mark all unread notifications for a user as read.

        Returns:
            Number of notifications updated

        Example:
            count = await repo.mark_all_as_read_for_user(db, user_id)
            await db.commit()
        """
        try:
            stmt = (
                sql_update(Notification)
                .where(
                    and_(
                        Notification.user_id == user_id,
                        Notification.is_read == False
                    )
                )
                .values(is_read=True, read_at=datetime.now(timezone.utc))
            )
            result = await db.execute(stmt)
            await db.flush()
            return result.rowcount

        except SQLAlchemyError as e:
            logger.error(f"Error marking all notifications as read for user {user_id}: {e}")
            raise
