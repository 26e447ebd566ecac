"""
gateway/services/channels/base.py

Notification channel contract.

send() never raises: missing credentials short-circuit to a simulated outcome,
and every transport failure is turned into a structured ChannelOutcome so the
dispatcher can log it and carry on with sibling channels.
"""

from abc import ABC, abstractmethod

import httpx
import structlog

from gateway.schemas import AlertEvent, ChannelOutcome

logger = structlog.get_logger(__name__)


class NotificationChannel(ABC):
    """An external transport (SMS, voice call, email, push) behind one send contract."""

    name: str = ""

    @property
    @abstractmethod
    def configured(self) -> bool:
        """True when the credentials this transport needs are present."""

    @abstractmethod
    async def _deliver(self, event: AlertEvent) -> ChannelOutcome:
        """Perform the vendor call; may raise."""

    async def send(self, event: AlertEvent) -> ChannelOutcome:
        if not self.configured:
            logger.info(
                "channel_simulated",
                channel=self.name,
                alert_id=event.alert_id,
                severity=event.severity.value,
            )
            return ChannelOutcome(channel=self.name, success=True, simulated=True)

        try:
            outcome = await self._deliver(event)
        except httpx.TimeoutException:
            logger.warning(
                "channel_timeout",
                channel=self.name,
                alert_id=event.alert_id,
            )
            return self.failure("timeout")
        except httpx.HTTPStatusError as exc:
            logger.error(
                "channel_http_error",
                channel=self.name,
                status=exc.response.status_code,
                alert_id=event.alert_id,
            )
            return self.failure(f"HTTP {exc.response.status_code}")
        except Exception as exc:
            logger.error(
                "channel_send_failed",
                channel=self.name,
                error=str(exc),
                alert_id=event.alert_id,
            )
            return self.failure(str(exc))

        logger.info(
            "channel_sent",
            channel=self.name,
            alert_id=event.alert_id,
            provider_id=outcome.provider_id,
        )
        return outcome

    def failure(self, error: str) -> ChannelOutcome:
        return ChannelOutcome(channel=self.name, success=False, error=error)

    def delivered(
        self,
        provider_id: str | None,
        recipients: int | None = None,
    ) -> ChannelOutcome:
        return ChannelOutcome(
            channel=self.name,
            success=True,
            provider_id=provider_id,
            recipients=recipients,
        )
