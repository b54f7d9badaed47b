import logging
from uuid import UUID

from app.core.database import AsyncSessionLocal
from app.models.notification import NotificationType
from app.repositories.profile_repository import ProfileRepository
from app.services.email_service import EmailService, EmailServiceError
from app.services.notification_service import NotificationService
from app.tasks.interest_tasks import retry_or_give_up

logger = logging.getLogger(__name__)


async def store_notification(ctx: dict, kind: str, user_id: str, data: dict) -> None:
    """
    ARQ task: store an in-app notification for a lifecycle event.

    kind: a NotificationType value ("new_interest", "mutual_match", ...)
    """
    service = NotificationService()
    async with AsyncSessionLocal() as db:
        try:
            await service.store_notification(db, NotificationType(kind), UUID(user_id), data)
            await db.commit()
        except Exception as e:
            await db.rollback()
            retry_or_give_up(ctx, f"Storing {kind} notification for user {user_id}", e)


async def send_transactional_email(ctx: dict, kind: str, user_id: str, data: dict) -> None:
    """
    ARQ task: email the target user about a lifecycle event.

    Events without an email template are ignored. Uses the worker's shared
    httpx client when present.
    """
    event = NotificationType(kind)
    email_service = EmailService()
    if event not in email_service.EMAIL_EVENTS:
        logger.debug(f"No email for {kind}; skipping")
        return

    notification_service = NotificationService()
    profile_repo = ProfileRepository()

    async with AsyncSessionLocal() as db:
        recipient = await profile_repo.get_by_user_id(db, UUID(user_id))
        if recipient is None or recipient.user is None or not recipient.user.email:
            logger.warning(f"No email address for user {user_id}; {kind} email not sent")
            return

        recipient_name = recipient.first_name or (recipient.user.name or "there").split(" ")[0]
        actor = data.get("actor_user_id")
        actor_name = await notification_service.get_display_name(db, UUID(actor) if actor else None)

    message = email_service.build(event, recipient.user.email, recipient_name, actor_name, data)
    try:
        await email_service.send(message, http_client=ctx.get("http_client"))
    except EmailServiceError as e:
        retry_or_give_up(ctx, f"{kind} email to user {user_id}", e)
