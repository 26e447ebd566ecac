"""
gateway/services/classifier.py

Per-parameter threshold classification into SeverityBand.

Each rule set partitions the real line: values that fall between two integer or
decimal table boundaries resolve to the more severe neighbour. NaN resolves to
CRITICAL. Uses constants from gateway/constants.py; no magic numbers allowed.
"""

import math
from typing import Callable

import structlog

from gateway.constants import (
    FLUID_CAUTION_MAX,
    FLUID_CAUTION_MIN,
    FLUID_CRITICAL_MIN,
    HR_CAUTION_HIGH_MAX,
    HR_CAUTION_LOW_MIN,
    HR_NORMAL_MAX,
    HR_NORMAL_MIN,
    HR_URGENT_MAX,
    PPI_CAUTION_MIN,
    PPI_NORMAL_ABOVE,
    PPI_URGENT_MIN,
    RR_CAUTION_MIN,
    RR_NORMAL_MAX,
    RR_NORMAL_MIN,
    RR_URGENT_MAX,
    SPO2_CAUTION_MIN,
    SPO2_NORMAL_MIN,
    SPO2_URGENT_MIN,
    UREA_CAUTION_MAX,
    UREA_NORMAL_MAX,
    UREA_URGENT_MAX,
)
from gateway.schemas import SeverityBand, VitalParameter

logger = structlog.get_logger(__name__)


def classify_urea(value: float) -> SeverityBand:
    # Low urea is not clinically alarming here
    if value <= UREA_NORMAL_MAX:
        return SeverityBand.NORMAL
    if value <= UREA_CAUTION_MAX:
        return SeverityBand.CAUTION
    if value <= UREA_URGENT_MAX:
        return SeverityBand.URGENT
    return SeverityBand.CRITICAL


def classify_fluid(value: float) -> SeverityBand:
    if value >= FLUID_CRITICAL_MIN:
        return SeverityBand.CRITICAL
    if value > FLUID_CAUTION_MAX:
        return SeverityBand.URGENT
    if value >= FLUID_CAUTION_MIN:
        return SeverityBand.CAUTION
    return SeverityBand.NORMAL


def classify_heart_rate(value: float) -> SeverityBand:
    # Two CAUTION ranges: one below and one above NORMAL
    if value < HR_CAUTION_LOW_MIN:
        return SeverityBand.CRITICAL
    if value < HR_NORMAL_MIN:
        return SeverityBand.CAUTION
    if value <= HR_NORMAL_MAX:
        return SeverityBand.NORMAL
    if value <= HR_CAUTION_HIGH_MAX:
        return SeverityBand.CAUTION
    if value <= HR_URGENT_MAX:
        return SeverityBand.URGENT
    return SeverityBand.CRITICAL


def classify_spo2(value: float) -> SeverityBand:
    if value >= SPO2_NORMAL_MIN:
        return SeverityBand.NORMAL
    if value >= SPO2_CAUTION_MIN:
        return SeverityBand.CAUTION
    if value >= SPO2_URGENT_MIN:
        return SeverityBand.URGENT
    return SeverityBand.CRITICAL


def classify_respiratory_rate(value: float) -> SeverityBand:
    if value < RR_CAUTION_MIN:
        return SeverityBand.CRITICAL
    if value < RR_NORMAL_MIN:
        return SeverityBand.CAUTION
    if value <= RR_NORMAL_MAX:
        return SeverityBand.NORMAL
    if value <= RR_URGENT_MAX:
        return SeverityBand.URGENT
    return SeverityBand.CRITICAL


def classify_perfusion_index(value: float) -> SeverityBand:
    if value > PPI_NORMAL_ABOVE:
        return SeverityBand.NORMAL
    if value >= PPI_CAUTION_MIN:
        return SeverityBand.CAUTION
    if value >= PPI_URGENT_MIN:
        return SeverityBand.URGENT
    return SeverityBand.CRITICAL


_RULES: dict[VitalParameter, Callable[[float], SeverityBand]] = {
    VitalParameter.UREA: classify_urea,
    VitalParameter.FLUID: classify_fluid,
    VitalParameter.HEART_RATE: classify_heart_rate,
    VitalParameter.SPO2: classify_spo2,
    VitalParameter.RESPIRATORY_RATE: classify_respiratory_rate,
    VitalParameter.PERFUSION_INDEX: classify_perfusion_index,
}


def classify(parameter: VitalParameter, value: float) -> SeverityBand:
    """
    Map a raw parameter value to exactly one SeverityBand.

    Never raises for numeric input: NaN is treated as the most conservative band.
    """
    if math.isnan(value):
        logger.warning(
            "classifier_nan_value",
            parameter=parameter.value,
            fallback=SeverityBand.CRITICAL.value,
        )
        return SeverityBand.CRITICAL
    return _RULES[parameter](value)
