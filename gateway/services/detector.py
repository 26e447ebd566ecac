"""
gateway/services/detector.py

Transition detector: decides when a change in the fused risk band must raise an alert.

Owns PreviousRiskState and CooldownState. Both are only touched inside
TransitionDetector.evaluate(), which reads, decides and updates under a single
asyncio.Lock so two near-simultaneous ticks cannot both fire on one transition.

State is process-local: a multi-instance deployment needs an external shared
store for these two values to avoid duplicate or missed alerts.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Mapping

import structlog

from gateway.constants import COOLDOWN_MINUTES
from gateway.schemas import SeverityBand

logger = structlog.get_logger(__name__)


class TransitionKind(str, Enum):
    STEADY = "STEADY"  # band unchanged
    CLEARED = "CLEARED"  # changed back to NORMAL
    FIRE = "FIRE"  # changed into a non-NORMAL band outside its cooldown
    SUPPRESSED = "SUPPRESSED"  # changed into a non-NORMAL band inside its cooldown


@dataclass(frozen=True)
class TransitionDecision:
    kind: TransitionKind
    previous: SeverityBand
    current: SeverityBand
    cooldown_remaining: timedelta = timedelta(0)

    @property
    def fire(self) -> bool:
        return self.kind is TransitionKind.FIRE


def default_cooldowns() -> dict[SeverityBand, timedelta]:
    return {
        SeverityBand(name): timedelta(minutes=minutes)
        for name, minutes in COOLDOWN_MINUTES.items()
    }


class TransitionDetector:
    """State machine over the last observed band with per-band cooldowns."""

    def __init__(
        self,
        cooldowns: Mapping[SeverityBand, timedelta] | None = None,
    ) -> None:
        self._cooldowns = dict(cooldowns or default_cooldowns())
        self._previous = SeverityBand.NORMAL
        self._last_dispatch: dict[SeverityBand, datetime] = {}
        self._lock = asyncio.Lock()

    @property
    def previous(self) -> SeverityBand:
        return self._previous

    def last_dispatch(self, band: SeverityBand) -> datetime | None:
        return self._last_dispatch.get(band)

    def restore(self, last_dispatch: Mapping[SeverityBand, datetime]) -> None:
        """Seed CooldownState, e.g. from the alert log after a restart."""
        for band, dispatched_at in last_dispatch.items():
            if band == SeverityBand.NORMAL:
                continue
            current = self._last_dispatch.get(band)
            if current is None or dispatched_at > current:
                self._last_dispatch[band] = dispatched_at
        logger.info(
            "cooldown_state_restored",
            bands=sorted(b.value for b in self._last_dispatch),
        )

    def cooldown_remaining(self, band: SeverityBand, now: datetime) -> timedelta:
        last = self._last_dispatch.get(band)
        if last is None or band not in self._cooldowns:
            return timedelta(0)
        return max(timedelta(0), self._cooldowns[band] - (now - last))

    async def evaluate(self, band: SeverityBand, now: datetime) -> TransitionDecision:
        """
        Compare band with PreviousRiskState and decide atomically.

        A FIRE decision records CooldownState[band] = now before returning: the
        dispatch attempt counts as soon as the event is handed to the channels,
        whatever the individual channel outcomes turn out to be.
        """
        async with self._lock:
            previous = self._previous
            self._previous = band

            if band == previous:
                return TransitionDecision(TransitionKind.STEADY, previous, band)

            if band == SeverityBand.NORMAL:
                return TransitionDecision(TransitionKind.CLEARED, previous, band)

            remaining = self.cooldown_remaining(band, now)
            if remaining > timedelta(0):
                return TransitionDecision(
                    TransitionKind.SUPPRESSED, previous, band, remaining
                )

            self._last_dispatch[band] = now
            return TransitionDecision(TransitionKind.FIRE, previous, band)

    def state(self, now: datetime) -> dict:
        """Read-only view for operational endpoints."""
        return {
            "previous_band": self._previous.value,
            "cooldowns": {
                band.value: {
                    "cooldown_sec": duration.total_seconds(),
                    "last_dispatch": (
                        self._last_dispatch[band].isoformat()
                        if band in self._last_dispatch
                        else None
                    ),
                    "remaining_sec": self.cooldown_remaining(band, now).total_seconds(),
                }
                for band, duration in self._cooldowns.items()
            },
        }
