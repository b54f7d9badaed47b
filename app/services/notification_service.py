"""
Notification service: turns lifecycle events into in-app notifications.

Notifications are stored by the arq worker. The request path only enqueues
the event kind, the target user and a few ids; names are resolved here so the
API never waits on them. The API reads them back and marks them read.
"""

from __future__ import annotations
import math
from typing import Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from app.models.notification import Notification, NotificationType
from app.repositories.notification_repository import NotificationRepository
from app.repositories.profile_repository import ProfileRepository
from app.services.exceptions import Forbidden, InvalidAction, NotFound

logger = logging.getLogger(__name__)

# (title, message) per event; {name} is the acting user's first name
NOTIFICATION_TEMPLATES: dict[NotificationType, tuple[str, str]] = {
    NotificationType.NEW_INTEREST: (
        "New Interest Received!",
        "{name} is interested in your profile.",
    ),
    NotificationType.INTEREST_ACCEPTED: (
        "Interest Accepted!",
        "{name} accepted your interest. You can now see their contact details.",
    ),
    NotificationType.INTEREST_REJECTED: (
        "Interest Update",
        "{name} has declined your interest.",
    ),
    NotificationType.INTEREST_WITHDRAWN: (
        "Interest Withdrawn",
        "{name} has withdrawn their interest.",
    ),
    NotificationType.CONNECTION_WITHDRAWN: (
        "Connection Withdrawn",
        "{name} has withdrawn from your connection.",
    ),
    NotificationType.MUTUAL_MATCH: (
        "It's a Match!",
        "You and {name} are both interested. Contact details are now shared.",
    ),
}


class NotificationService:
    """
    Service for creating in-app notifications.

    This service coordinates notification operations including:
    - Resolving the acting user's display name
    - Rendering the title and message for an event
    - Storing the notification row
    - Listing a user's notifications and marking them read
    """

    def __init__(
        self,
        notification_repo: Optional[NotificationRepository] = None,
        profile_repo: Optional[ProfileRepository] = None
    ):
        self.notification_repo = notification_repo or NotificationRepository()
        self.profile_repo = profile_repo or ProfileRepository()

    async def get_display_name(self, db: AsyncSession, user_id: Optional[UUID]) -> str:
        """First name from the profile, else the first word of the account name."""
        if user_id is None:
            return "Someone"

        profile = await self.profile_repo.get_by_user_id(db, user_id)
        if profile is None:
            return "Someone"
        if profile.first_name:
            return profile.first_name
        if profile.user and profile.user.name:
            return profile.user.name.split(" ")[0]
        return "Someone"

    def render(self, kind: NotificationType, name: str) -> tuple[str, str]:
        title, message = NOTIFICATION_TEMPLATES[kind]
        return title, message.format(name=name)

    async def store_notification(
        self,
        db: AsyncSession,
        kind: NotificationType,
        user_id: UUID,
        data: Optional[dict] = None
    ) -> Notification:
        """
        Store an in-app notification for ``user_id``.

        Args:
            db: Active database session
            kind: Event type
            user_id: Recipient
            data: Event payload; ``actor_user_id`` names who triggered it

        Returns:
            Created notification (flushed, not committed)

        Example:
            await service.store_notification(
                db, NotificationType.NEW_INTEREST, receiver_id,
                {"actor_user_id": str(sender_id), "interest_id": str(interest_id)},
            )
            await db.commit()
        """
        data = data or {}
        actor = data.get("actor_user_id")
        name = await self.get_display_name(db, UUID(actor) if actor else None)
        title, message = self.render(kind, name)

        notification = await self.notification_repo.create(db, {
            "user_id": user_id,
            "type": kind,
            "title": title,
            "message": message,
            "data": data,
        })
        logger.info(f"Stored {kind.value} notification {notification.id} for user {user_id}")
        return notification

    async def get_user_notifications(
        self,
        db: AsyncSession,
        user_id: UUID,
        page: int = 1,
        limit: int = 50,
        is_read: Optional[bool] = None,
        notification_type: Optional[str] = None
    ) -> dict:
        """
        Get a page of a user's notifications.

        Returns:
            Dictionary with items, total, page, pages, unread_count

        Raises:
            InvalidAction: If ``notification_type`` is not a known type

        Example:
            result = await service.get_user_notifications(db, user_id, page=1, limit=20, is_read=False)
        """
        type_filter = None
        if notification_type:
            try:
                type_filter = NotificationType(notification_type)
            except ValueError:
                raise InvalidAction(f"Invalid notification type: {notification_type}")

        notifications, total = await self.notification_repo.get_user_notifications(
            db, user_id, skip=(page - 1) * limit, limit=limit,
            is_read=is_read, notification_type=type_filter
        )
        unread_count = await self.notification_repo.get_unread_count_for_user(db, user_id)

        return {
            "items": notifications,
            "total": total,
            "page": page,
            "pages": math.ceil(total / limit) if limit > 0 else 0,
            "unread_count": unread_count,
        }

    async def mark_notification_read(
        self,
        db: AsyncSession,
        notification_id: UUID,
        user_id: UUID
    ) -> Notification:
        """
        Mark one of the user's notifications as read (flushed, not committed).

        Raises:
            NotFound: If the notification does not exist
            Forbidden: If it belongs to another user
        """
        notification = await self.notification_repo.get(db, notification_id)
        if not notification:
            raise NotFound(f"Notification {notification_id} not found")

        if notification.user_id != user_id:
            raise Forbidden("You can only mark your own notifications as read")

        return await self.notification_repo.mark_as_read(db, notification)

    async def mark_all_read_for_user(self, db: AsyncSession, user_id: UUID) -> dict:
        count = await self.notification_repo.mark_all_as_read_for_user(db, user_id)
        logger.info(f"Marked {count} notification(s) read for user {user_id}")
        return {"updated_count": count}
