"""
gateway/services/dispatcher.py

Fans an AlertEvent out to the notification channels selected by the severity policy.

Channels run concurrently, each bounded by its own timeout; one failing channel
never prevents its siblings from being attempted. dispatch_in_background() lets
the streaming loop hand an event over without waiting for vendor latency.
"""

import asyncio
import uuid
from datetime import datetime
from typing import Awaitable, Callable, Mapping, Sequence

import structlog

from config import settings
from gateway.constants import ALERT_TYPE_VITAL_SIGN, DEFAULT_CHANNEL_POLICY
from gateway.schemas import (
    AlertEvent,
    AlertRecipients,
    AlertVitals,
    ChannelOutcome,
    DispatchReport,
    FusionResult,
    SeverityBand,
    VitalSample,
)
from gateway.services.channels.base import NotificationChannel
from gateway.services.channels.email import EmailChannel
from gateway.services.channels.push import PushChannel, PushSubscriptionStore
from gateway.services.channels.twilio import SmsChannel, VoiceChannel

logger = structlog.get_logger(__name__)

DispatchHook = Callable[[AlertEvent, DispatchReport], Awaitable[None]]


def build_default_channels(
    push_subscriptions: PushSubscriptionStore | None = None,
) -> dict[str, NotificationChannel]:
    channels: list[NotificationChannel] = [
        SmsChannel(),
        VoiceChannel(),
        EmailChannel(),
        PushChannel(push_subscriptions),
    ]
    return {c.name: c for c in channels}


def resolve_policy(
    override: Mapping[str, Sequence[str]] | None = None,
) -> dict[SeverityBand, tuple[str, ...]]:
    """Severity -> channel names; an override replaces the built-in table wholesale."""
    table = override or DEFAULT_CHANNEL_POLICY
    return {SeverityBand(name): tuple(channels) for name, channels in table.items()}


def build_alert_event(
    sample: VitalSample,
    fusion: FusionResult,
    timestamp: datetime,
    alert_type: str = ALERT_TYPE_VITAL_SIGN,
    severity: SeverityBand | None = None,
    summary: str | None = None,
    simulated: bool = False,
    recipients: AlertRecipients | None = None,
) -> AlertEvent:
    """Snapshot the triggering sample and fusion result into an immutable AlertEvent."""
    return AlertEvent(
        alert_id=str(uuid.uuid4()),
        severity=severity or fusion.band,
        summary=summary or fusion.summary,
        vitals=AlertVitals(
            patient_id=settings.patient_id,
            patient_name=settings.patient_name,
            heart_rate=sample.heart_rate.value,
            respiratory_rate=sample.respiratory_rate.value,
            spo2=sample.spo2.value,
            perfusion_index=sample.perfusion_index.value,
            fusion_score=fusion.score,
        ),
        timestamp=timestamp,
        alert_type=alert_type,
        simulated=simulated,
        recipients=recipients or AlertRecipients(),
    )


class AlertDispatcher:
    """Channel-agnostic fan-out of one AlertEvent."""

    def __init__(
        self,
        channels: Mapping[str, NotificationChannel],
        policy: Mapping[SeverityBand, Sequence[str]] | None = None,
        timeout_sec: float | None = None,
        on_dispatched: DispatchHook | None = None,
    ) -> None:
        self._channels = dict(channels)
        self._policy = dict(policy or resolve_policy())
        self._timeout_sec = timeout_sec or settings.channel_timeout_sec
        self._on_dispatched = on_dispatched
        self._in_flight: set[asyncio.Task] = set()

    @property
    def channels(self) -> dict[str, NotificationChannel]:
        return dict(self._channels)

    @property
    def policy(self) -> dict[SeverityBand, tuple[str, ...]]:
        return {band: tuple(names) for band, names in self._policy.items()}

    def channels_for(self, severity: SeverityBand) -> list[NotificationChannel]:
        selected = []
        for name in self._policy.get(severity, ()):
            channel = self._channels.get(name)
            if channel is None:
                logger.warning(
                    "policy_channel_unknown",
                    channel=name,
                    severity=severity.value,
                )
                continue
            selected.append(channel)
        return selected

    async def _send_one(
        self,
        channel: NotificationChannel,
        event: AlertEvent,
    ) -> ChannelOutcome:
        try:
            return await asyncio.wait_for(channel.send(event), timeout=self._timeout_sec)
        except asyncio.TimeoutError:
            logger.warning(
                "channel_timeout",
                channel=channel.name,
                alert_id=event.alert_id,
                timeout_sec=self._timeout_sec,
            )
            return ChannelOutcome(channel=channel.name, success=False, error="timeout")
        except Exception as exc:
            # A channel broke its own never-raise contract
            logger.error(
                "channel_contract_violation",
                channel=channel.name,
                alert_id=event.alert_id,
                error=str(exc),
            )
            return ChannelOutcome(channel=channel.name, success=False, error=str(exc))

    async def dispatch(self, event: AlertEvent) -> DispatchReport:
        """Invoke every selected channel concurrently and collect their outcomes."""
        selected = self.channels_for(event.severity)
        outcomes = await asyncio.gather(*(self._send_one(c, event) for c in selected))
        report = DispatchReport(
            alert_id=event.alert_id,
            severity=event.severity,
            simulated=event.simulated,
            outcomes=list(outcomes),
        )

        logger.info(
            "alert_dispatched",
            alert_id=event.alert_id,
            severity=event.severity.value,
            simulated=event.simulated,
            channels=[o.channel for o in outcomes],
            failed=[o.channel for o in outcomes if not o.success],
        )

        if self._on_dispatched is not None:
            try:
                await self._on_dispatched(event, report)
            except Exception as exc:
                logger.error(
                    "dispatch_hook_failed",
                    alert_id=event.alert_id,
                    error=str(exc),
                )
        return report

    def dispatch_in_background(self, event: AlertEvent) -> asyncio.Task:
        """Fire-and-forget dispatch; the task is kept referenced until it completes."""
        task = asyncio.create_task(self.dispatch(event))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
        return task

    @property
    def in_flight(self) -> int:
        """Number of background dispatches not yet finished."""
        return len(self._in_flight)

    async def drain(self) -> None:
        """Wait for in-flight dispatches, e.g. on shutdown."""
        if self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)
