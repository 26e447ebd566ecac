"""
gateway/services/channels/push.py

Browser push channel using Web Push with VAPID keys (pywebpush).

Subscriptions are registered by clients through the notifications router and
kept in process memory; every alert is sent to each stored subscription.
"""

import asyncio
import json

import structlog
from pywebpush import WebPushException, webpush

from config import settings
from gateway.schemas import AlertEvent, ChannelOutcome, PushSubscription
from gateway.services.channels.base import NotificationChannel
from gateway.services.channels.messages import format_push

logger = structlog.get_logger(__name__)

PUSH_ICON = "/icons/radar-alert.png"
PUSH_BADGE = "/icons/badge.png"

# Push services answer these for subscriptions that no longer exist
_GONE_STATUSES: frozenset[int] = frozenset({404, 410})


class PushSubscriptionStore:
    """In-process registry of browser subscriptions keyed by endpoint."""

    def __init__(self) -> None:
        self._subscriptions: dict[str, PushSubscription] = {}

    def __len__(self) -> int:
        return len(self._subscriptions)

    def add(self, subscription: PushSubscription) -> bool:
        """Register a subscription; False if the endpoint was already known."""
        is_new = subscription.endpoint not in self._subscriptions
        self._subscriptions[subscription.endpoint] = subscription
        return is_new

    def remove(self, endpoint: str) -> bool:
        return self._subscriptions.pop(endpoint, None) is not None

    def all(self) -> list[PushSubscription]:
        return list(self._subscriptions.values())


def build_payload(event: AlertEvent) -> str:
    """JSON payload read by the service worker's push handler."""
    title, body = format_push(event)
    return json.dumps(
        {
            "title": title,
            "body": body,
            "icon": PUSH_ICON,
            "badge": PUSH_BADGE,
            "data": {
                "alert_id": event.alert_id,
                "severity": event.severity.value,
                "simulated": event.simulated,
            },
            "timestamp": int(event.timestamp.timestamp() * 1000),
        }
    )


class PushChannel(NotificationChannel):
    name = "push"

    def __init__(self, subscriptions: PushSubscriptionStore | None = None) -> None:
        if subscriptions is None:
            subscriptions = PushSubscriptionStore()
        self.subscriptions = subscriptions

    @property
    def configured(self) -> bool:
        return bool(settings.vapid_public_key and settings.vapid_private_key)

    def _send_to(self, subscription: PushSubscription, payload: str) -> None:
        webpush(
            subscription_info=subscription.model_dump(include={"endpoint", "keys"}),
            data=payload,
            vapid_private_key=settings.vapid_private_key,
            # pywebpush adds aud/exp to the claims dict it is given
            vapid_claims={"sub": settings.vapid_subject},
            timeout=settings.channel_timeout_sec,
        )

    async def _deliver(self, event: AlertEvent) -> ChannelOutcome:
        targets = self.subscriptions.all()
        if not targets:
            logger.info("push_no_subscriptions", alert_id=event.alert_id)
            return self.delivered(None, recipients=0)

        payload = build_payload(event)
        results = await asyncio.gather(
            *(asyncio.to_thread(self._send_to, s, payload) for s in targets),
            return_exceptions=True,
        )

        sent = 0
        errors = []
        for subscription, result in zip(targets, results):
            if not isinstance(result, Exception):
                sent += 1
                continue
            status = getattr(getattr(result, "response", None), "status_code", None)
            if isinstance(result, WebPushException) and status in _GONE_STATUSES:
                self.subscriptions.remove(subscription.endpoint)
                logger.info(
                    "push_subscription_expired",
                    endpoint=subscription.endpoint,
                    status=status,
                )
            else:
                logger.warning(
                    "push_subscription_failed",
                    endpoint=subscription.endpoint,
                    error=str(result),
                )
            errors.append(str(result))

        if sent == 0:
            raise RuntimeError(
                f"push failed for all {len(targets)} subscriptions: {errors[0]}"
            )
        return self.delivered(None, recipients=sent)
