"""
gateway/services/channels/email.py

Email channel backed by the Resend REST API (called via httpx).
"""

import httpx

from config import settings
from gateway.schemas import AlertEvent, ChannelOutcome
from gateway.services.channels.base import NotificationChannel
from gateway.services.channels.messages import format_email

RESEND_EMAILS_URL = "https://api.resend.com/emails"


class EmailChannel(NotificationChannel):
    name = "email"

    @property
    def configured(self) -> bool:
        return bool(settings.resend_api_key)

    async def _deliver(self, event: AlertEvent) -> ChannelOutcome:
        to = event.recipients.email or settings.alert_email
        if not to:
            raise ValueError("no alert email address configured")

        subject, html = format_email(event)
        async with httpx.AsyncClient(timeout=settings.channel_timeout_sec) as client:
            response = await client.post(
                RESEND_EMAILS_URL,
                headers={"Authorization": f"Bearer {settings.resend_api_key}"},
                json={
                    "from": settings.email_from,
                    "to": [to],
                    "subject": subject,
                    "html": html,
                },
            )
            response.raise_for_status()
            return self.delivered(response.json().get("id"))
