"""
tests/fixtures.py

Shared test data and helper functions for constructing samples, fusion results,
alert events and fake notification channels.
All tests must use these fixtures instead of hardcoding test values.
"""

import asyncio
from datetime import datetime, timezone

from gateway.schemas import (
    AlertEvent,
    ChannelOutcome,
    FusionResult,
    ParameterReading,
    SeverityBand,
    VitalParameter,
    VitalSample,
)
from gateway.services.channels.base import NotificationChannel
from gateway.services.classifier import classify
from gateway.services.dispatcher import build_alert_event
from gateway.services.fusion import FUSION_INPUTS, fuse
from gateway.services.simulator import KeyframeSimulator, build_keyframes

# Fixed reference instant for all time-dependent tests
T0: datetime = datetime(2024, 6, 15, 13, 30, 0, tzinfo=timezone.utc)

# A 14-second scenario: clinical hour N lands at N * 1000 ms
TEST_SCENARIO_MS: int = 14_000


def build_simulator(duration_ms: int = TEST_SCENARIO_MS) -> KeyframeSimulator:
    return KeyframeSimulator(build_keyframes(duration_ms), origin=T0)


def build_sample(
    elapsed_ms: int = 0,
    urea: float = 35,
    fluid: float = 0.38,
    heart_rate: float = 72,
    spo2: float = 98,
    respiratory_rate: float = 16,
    perfusion_index: float = 2.5,
) -> VitalSample:
    """Build a classified VitalSample with baseline defaults."""
    values = {
        VitalParameter.UREA: urea,
        VitalParameter.FLUID: fluid,
        VitalParameter.HEART_RATE: heart_rate,
        VitalParameter.SPO2: spo2,
        VitalParameter.RESPIRATORY_RATE: respiratory_rate,
        VitalParameter.PERFUSION_INDEX: perfusion_index,
    }
    return VitalSample(
        elapsed_ms=elapsed_ms,
        timestamp=T0,
        **{
            p.value: ParameterReading(value=v, unit="", severity=classify(p, v))
            for p, v in values.items()
        },
    )


def build_severities(
    heart_rate: SeverityBand = SeverityBand.NORMAL,
    spo2: SeverityBand = SeverityBand.NORMAL,
    respiratory_rate: SeverityBand = SeverityBand.NORMAL,
    perfusion_index: SeverityBand = SeverityBand.NORMAL,
) -> dict[VitalParameter, SeverityBand]:
    return {
        VitalParameter.HEART_RATE: heart_rate,
        VitalParameter.SPO2: spo2,
        VitalParameter.RESPIRATORY_RATE: respiratory_rate,
        VitalParameter.PERFUSION_INDEX: perfusion_index,
    }


def build_fusion_for_band(band: SeverityBand) -> FusionResult:
    """A FusionResult carrying the given overall band (inputs are illustrative)."""
    base = fuse(build_severities())
    return FusionResult(
        score=float(band.code),
        band=band,
        summary=f"{band.value} summary",
        urgent_actions=base.urgent_actions,
        long_term_advice=base.long_term_advice,
        inputs={p: band for p in FUSION_INPUTS},
    )


def build_event(
    severity: SeverityBand = SeverityBand.URGENT,
    simulated: bool = False,
) -> AlertEvent:
    return build_alert_event(
        build_sample(heart_rate=120, spo2=93, respiratory_rate=22, perfusion_index=0.8),
        build_fusion_for_band(severity),
        timestamp=T0,
        simulated=simulated,
    )


class FakeChannel(NotificationChannel):
    """Configurable in-memory channel that records the events it receives."""

    def __init__(
        self,
        name: str,
        configured: bool = True,
        error: Exception | None = None,
        delay_sec: float = 0.0,
    ) -> None:
        self.name = name
        self._configured = configured
        self._error = error
        self._delay_sec = delay_sec
        self.received: list[AlertEvent] = []

    @property
    def configured(self) -> bool:
        return self._configured

    async def _deliver(self, event: AlertEvent) -> ChannelOutcome:
        self.received.append(event)
        if self._delay_sec:
            await asyncio.sleep(self._delay_sec)
        if self._error is not None:
            raise self._error
        return self.delivered(f"{self.name}-{event.alert_id[:8]}")


class BrokenChannel(FakeChannel):
    """Violates the never-raise contract by raising straight out of send()."""

    async def send(self, event: AlertEvent) -> ChannelOutcome:
        self.received.append(event)
        raise RuntimeError(f"{self.name} exploded")
