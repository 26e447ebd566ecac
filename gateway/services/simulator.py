"""
gateway/services/simulator.py

Deterministic telemetry simulator.
Linearly interpolates the scripted clinical keyframes in gateway/constants.py
to produce one VitalSample for a given elapsed-time offset.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal

import numpy as np

from config import settings
from gateway.constants import (
    CLINICAL_ARC_HOURS,
    KEYFRAME_SCRIPT,
    PARAMETER_PRECISION,
    PARAMETER_UNITS,
)
from gateway.schemas import ParameterReading, VitalParameter, VitalSample
from gateway.services.classifier import classify

# Column order of Keyframe.values
_PARAMETERS: list[VitalParameter] = list(VitalParameter)


@dataclass(frozen=True)
class Keyframe:
    """A scripted anchor point; values are ordered as VitalParameter."""

    time_offset_ms: float
    values: np.ndarray


def build_keyframes(
    duration_ms: float,
    script: list[tuple[float, dict[str, float]]] = KEYFRAME_SCRIPT,
    arc_hours: float = CLINICAL_ARC_HOURS,
) -> list[Keyframe]:
    """Compress a script expressed in clinical hours onto duration_ms."""
    if not script:
        raise ValueError("keyframe script is empty")
    if duration_ms <= 0 or arc_hours <= 0:
        raise ValueError("scenario duration and clinical arc must be positive")

    keyframes = [
        Keyframe(
            time_offset_ms=(hour / arc_hours) * duration_ms,
            values=np.array([float(values[p.value]) for p in _PARAMETERS]),
        )
        for hour, values in script
    ]
    offsets = [k.time_offset_ms for k in keyframes]
    if offsets != sorted(offsets):
        raise ValueError("keyframes must be ordered by time offset")
    return keyframes


def round_half_up(value: float, decimals: int) -> float:
    """Round half away from zero so output does not depend on float ties."""
    if not math.isfinite(value):
        return value
    quantum = Decimal(1).scaleb(-decimals)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


class KeyframeSimulator:
    """
    Pure function of elapsed time over a fixed keyframe table.

    Past the final keyframe the values clamp to it (terminal, not cyclic);
    negative offsets clamp to the first keyframe.
    """

    def __init__(
        self,
        keyframes: list[Keyframe] | None = None,
        origin: datetime | None = None,
    ) -> None:
        self._keyframes = keyframes or build_keyframes(settings.scenario_duration_ms)
        self._origin = origin or datetime.now(timezone.utc)

    @property
    def duration_ms(self) -> float:
        return self._keyframes[-1].time_offset_ms

    def interpolate(self, elapsed_ms: float) -> dict[VitalParameter, float]:
        """Return unrounded parameter values at elapsed_ms."""
        if not math.isfinite(elapsed_ms):
            raise ValueError(f"elapsed_ms must be finite, got {elapsed_ms}")

        frames = self._keyframes
        start = end = frames[-1]
        if elapsed_ms <= frames[0].time_offset_ms:
            start = end = frames[0]
        elif elapsed_ms < frames[-1].time_offset_ms:
            for left, right in zip(frames, frames[1:]):
                if left.time_offset_ms <= elapsed_ms <= right.time_offset_ms:
                    start, end = left, right
                    break

        span = end.time_offset_ms - start.time_offset_ms
        progress = 1.0 if span == 0 else (elapsed_ms - start.time_offset_ms) / span
        values = start.values + (end.values - start.values) * progress
        return {p: float(v) for p, v in zip(_PARAMETERS, values)}

    def sample(self, elapsed_ms: int) -> VitalSample:
        """Produce one rounded and classified VitalSample."""
        raw = self.interpolate(elapsed_ms)
        readings = {}
        for parameter, value in raw.items():
            rounded = round_half_up(value, PARAMETER_PRECISION[parameter.value])
            readings[parameter.value] = ParameterReading(
                value=rounded,
                unit=PARAMETER_UNITS[parameter.value],
                severity=classify(parameter, rounded),
            )

        return VitalSample(
            elapsed_ms=elapsed_ms,
            timestamp=self._origin + timedelta(milliseconds=elapsed_ms),
            **readings,
        )
