"""
Email service for transactional interest emails.

Sends through a Resend-compatible HTTP API with httpx. When no API key is
configured (local development, tests) the email is logged and skipped.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Optional
import logging
import httpx

from app.core.config import settings
from app.models.notification import NotificationType

logger = logging.getLogger(__name__)


class EmailServiceError(Exception):
    """Raised when the email API rejects a message or cannot be reached."""
    pass


@dataclass
class EmailMessage:
    to: str
    subject: str
    html: str


class EmailService:
    """Renders and sends the emails that accompany interest events."""

    # Only these events send an email; the rest are in-app only
    EMAIL_EVENTS = {
        NotificationType.NEW_INTEREST,
        NotificationType.INTEREST_ACCEPTED,
        NotificationType.MUTUAL_MATCH,
    }

    def __init__(
        self,
        api_url: Optional[str] = None,
        api_key: Optional[str] = None,
        sender: Optional[str] = None
    ):
        self.api_url = api_url or settings.email_api_url
        self.api_key = settings.email_api_key if api_key is None else api_key
        self.sender = sender or settings.email_from

    def build(
        self,
        kind: NotificationType,
        to: str,
        recipient_name: str,
        actor_name: str,
        data: Optional[Dict[str, Any]] = None
    ) -> EmailMessage:
        data = data or {}
        if kind == NotificationType.NEW_INTEREST:
            link = f"{settings.app_base_url}/profile/{data.get('actor_profile_id', '')}"
            return EmailMessage(
                to=to,
                subject=f"{actor_name} is interested in your profile",
                html=(
                    f"<p>Hi {recipient_name},</p>"
                    f"<p>{actor_name} has expressed interest in your profile.</p>"
                    f'<p><a href="{link}">View their profile</a></p>'
                ),
            )

        if kind in (NotificationType.INTEREST_ACCEPTED, NotificationType.MUTUAL_MATCH):
            return EmailMessage(
                to=to,
                subject=f"It's a match with {actor_name}!",
                html=(
                    f"<p>Hi {recipient_name},</p>"
                    f"<p>You and {actor_name} are both interested. "
                    f"Their contact details are now available in your connections.</p>"
                    f'<p><a href="{settings.app_base_url}/connections">Open connections</a></p>'
                ),
            )

        raise EmailServiceError(f"No email template for {kind.value}")

    async def send(
        self,
        message: EmailMessage,
        http_client: Optional[httpx.AsyncClient] = None
    ) -> bool:
        """
        Send one email.

        Returns:
            True if sent, False if skipped because no API key is configured

        Raises:
            EmailServiceError: If the API call fails
        """
        if not self.api_key:
            logger.info(f"Email API key not configured; skipping '{message.subject}' to {message.to}")
            return False

        payload = {
            "from": self.sender,
            "to": [message.to],
            "subject": message.subject,
            "html": message.html,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}

        client = http_client or httpx.AsyncClient(timeout=10.0)
        try:
            response = await client.post(self.api_url, json=payload, headers=headers)
            response.raise_for_status()
            logger.info(f"Sent email '{message.subject}' to {message.to}")
            return True
        except httpx.HTTPError as e:
            raise EmailServiceError(f"Email delivery to {message.to} failed: {e}") from e
        finally:
            if http_client is None:
                await client.aclose()
