"""
gateway/services/monitor.py

RiskMonitor: the single authoritative path from a fused sample to an alert.

Every publisher task feeds its refreshed FusionResult here. The monitor asks the
TransitionDetector for a decision and, on FIRE, hands an AlertEvent to the
dispatcher without waiting for the channels. Manual test alerts reuse the same
dispatcher but bypass the detector.
"""

from datetime import datetime, timezone
from typing import Callable

import structlog

from gateway.constants import ALERT_TYPE_MANUAL_TEST
from gateway.schemas import (
    AlertRecipients,
    DispatchReport,
    FusionResult,
    ManualAlertRequest,
    VitalSample,
)
from gateway.services.detector import TransitionDecision, TransitionDetector, TransitionKind
from gateway.services.dispatcher import AlertDispatcher, build_alert_event
from gateway.services.fusion import fuse_sample
from gateway.services.simulator import KeyframeSimulator

logger = structlog.get_logger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RiskMonitor:
    """Process-wide owner of the detector and dispatcher."""

    def __init__(
        self,
        detector: TransitionDetector,
        dispatcher: AlertDispatcher,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.detector = detector
        self.dispatcher = dispatcher
        self._clock = clock
        self._latest: tuple[VitalSample, FusionResult] | None = None

    @property
    def latest(self) -> tuple[VitalSample, FusionResult] | None:
        return self._latest

    def now(self) -> datetime:
        return self._clock()

    async def observe(self, sample: VitalSample, fusion: FusionResult) -> TransitionDecision:
        """Feed one refreshed fusion result; may start a background dispatch."""
        self._latest = (sample, fusion)
        now = self._clock()
        # Must exist before evaluate() can record a cooldown
        event = build_alert_event(sample, fusion, timestamp=now)
        decision = await self.detector.evaluate(fusion.band, now)

        if decision.kind is TransitionKind.FIRE:
            logger.info(
                "alert_triggered",
                alert_id=event.alert_id,
                previous=decision.previous.value,
                current=decision.current.value,
                score=fusion.score,
            )
            self.dispatcher.dispatch_in_background(event)
        elif decision.kind is TransitionKind.SUPPRESSED:
            logger.info(
                "alert_suppressed_cooldown",
                previous=decision.previous.value,
                current=decision.current.value,
                remaining_sec=decision.cooldown_remaining.total_seconds(),
            )
        elif decision.kind is TransitionKind.CLEARED:
            logger.info("risk_returned_normal", previous=decision.previous.value)
        else:
            logger.debug("risk_steady", band=decision.current.value)

        return decision

    async def send_manual_alert(self, request: ManualAlertRequest) -> DispatchReport:
        """
        Dispatch a synthetic alert through the normal channel path.

        Uses the latest authoritative sample rather than generating a separate one;
        only before any stream has produced data does it fall back to the baseline.
        The detector's state and cooldowns are neither consulted nor updated.
        """
        if self._latest is not None:
            sample, fusion = self._latest
        else:
            sample = KeyframeSimulator(origin=self._clock()).sample(0)
            fusion = fuse_sample(sample)

        event = build_alert_event(
            sample,
            fusion,
            timestamp=self._clock(),
            alert_type=ALERT_TYPE_MANUAL_TEST,
            severity=request.severity,
            summary=request.message or f"Test {request.severity.value} alert",
            simulated=True,
            recipients=AlertRecipients(phone=request.phone, email=request.email),
        )
        logger.info(
            "manual_alert_requested",
            alert_id=event.alert_id,
            severity=event.severity.value,
        )
        return await self.dispatcher.dispatch(event)
