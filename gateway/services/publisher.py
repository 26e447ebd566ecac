"""
gateway/services/publisher.py

Per-client streaming publisher.

On open, one snapshot for elapsed 0 is pushed immediately. Every tick afterwards
the simulator is sampled, fast vitals and slow markers refresh on their own
cadences, fusion is recomputed (and fed to the RiskMonitor) only when a fusion
input refreshed, and the full current snapshot is pushed regardless.
"""

import asyncio
import time
from typing import AsyncIterator, Awaitable, Callable

import structlog

from config import settings
from gateway.schemas import (
    FusionResult,
    ParameterReading,
    StreamSnapshot,
    VitalParameter,
    VitalSample,
)
from gateway.services.detector import TransitionDecision
from gateway.services.fusion import FUSION_INPUTS, fuse
from gateway.services.monitor import RiskMonitor
from gateway.services.simulator import KeyframeSimulator

logger = structlog.get_logger(__name__)

FAST_PARAMETERS: tuple[VitalParameter, ...] = (
    VitalParameter.HEART_RATE,
    VitalParameter.SPO2,
    VitalParameter.RESPIRATORY_RATE,
    VitalParameter.PERFUSION_INDEX,
)
SLOW_PARAMETERS: tuple[VitalParameter, ...] = (
    VitalParameter.UREA,
    VitalParameter.FLUID,
)


class PublisherSession:
    """Displayed state of one client connection."""

    def __init__(
        self,
        simulator: KeyframeSimulator,
        fast_refresh_ms: int,
        slow_refresh_ms: int,
    ) -> None:
        self._simulator = simulator
        self._fast_refresh_ms = fast_refresh_ms
        self._slow_refresh_ms = slow_refresh_ms

        initial = simulator.sample(0)
        self._elapsed_ms = 0
        self._timestamp = initial.timestamp
        self._readings: dict[VitalParameter, ParameterReading] = {
            p: initial.reading(p) for p in VitalParameter
        }
        self._fusion = fuse(initial.severities())
        self._last_fast_ms = 0
        self._last_slow_ms = 0

    @property
    def fusion(self) -> FusionResult:
        return self._fusion

    def sample(self) -> VitalSample:
        return VitalSample(
            elapsed_ms=self._elapsed_ms,
            timestamp=self._timestamp,
            **{p.value: r for p, r in self._readings.items()},
        )

    def snapshot(self) -> StreamSnapshot:
        return StreamSnapshot(
            elapsed_ms=self._elapsed_ms,
            timestamp=self._timestamp,
            fusion=self._fusion,
            **{p.value: r for p, r in self._readings.items()},
        )

    def refresh(self, elapsed_ms: int) -> set[VitalParameter]:
        """Apply due cadences; return the parameters that were refreshed."""
        simulated = self._simulator.sample(elapsed_ms)
        self._elapsed_ms = elapsed_ms
        self._timestamp = simulated.timestamp

        refreshed: set[VitalParameter] = set()
        if elapsed_ms - self._last_fast_ms >= self._fast_refresh_ms:
            refreshed.update(FAST_PARAMETERS)
            self._last_fast_ms = elapsed_ms
        if elapsed_ms - self._last_slow_ms >= self._slow_refresh_ms:
            refreshed.update(SLOW_PARAMETERS)
            self._last_slow_ms = elapsed_ms

        for parameter in refreshed:
            self._readings[parameter] = simulated.reading(parameter)

        if refreshed.intersection(FUSION_INPUTS):
            self._fusion = fuse(
                {p: r.severity for p, r in self._readings.items()}
            )
        return refreshed


def encode_event(snapshot: StreamSnapshot) -> str:
    """One server-sent-events message."""
    return f"data: {snapshot.model_dump_json()}\n\n"


class StreamPublisher:
    """Builds one tick loop per connected client."""

    def __init__(
        self,
        monitor: RiskMonitor,
        tick_sec: float | None = None,
        fast_refresh_ms: int | None = None,
        slow_refresh_ms: int | None = None,
        simulator_factory: Callable[[], KeyframeSimulator] = KeyframeSimulator,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._monitor = monitor
        self._tick_sec = tick_sec or settings.stream_tick_sec
        self._fast_refresh_ms = fast_refresh_ms or settings.fast_refresh_ms
        self._slow_refresh_ms = slow_refresh_ms or settings.slow_refresh_ms
        self._simulator_factory = simulator_factory
        self._clock = clock

    def open_session(self) -> PublisherSession:
        return PublisherSession(
            self._simulator_factory(),
            fast_refresh_ms=self._fast_refresh_ms,
            slow_refresh_ms=self._slow_refresh_ms,
        )

    async def tick(
        self,
        session: PublisherSession,
        elapsed_ms: int,
    ) -> TransitionDecision | None:
        """Refresh the session and feed the monitor if fusion was recomputed."""
        refreshed = session.refresh(elapsed_ms)
        if not refreshed.intersection(FUSION_INPUTS):
            return None
        return await self._monitor.observe(session.sample(), session.fusion)

    async def stream(
        self,
        is_disconnected: Callable[[], Awaitable[bool]],
    ) -> AsyncIterator[str]:
        """Yield SSE messages until the client goes away."""
        started = self._clock()
        session = self.open_session()
        ticks = 0
        logger.info("stream_opened")

        try:
            yield encode_event(session.snapshot())
            while True:
                await asyncio.sleep(self._tick_sec)
                if await is_disconnected():
                    break

                elapsed_ms = int((self._clock() - started) * 1000)
                try:
                    await self.tick(session, elapsed_ms)
                except Exception as exc:
                    logger.error(
                        "stream_tick_failed",
                        elapsed_ms=elapsed_ms,
                        error=str(exc),
                    )
                ticks += 1
                yield encode_event(session.snapshot())
        finally:
            logger.info("stream_closed", ticks=ticks)
