"""
gateway/services/fusion.py

Weighted fusion of the cardiorespiratory severities into one overall risk band.
Stateless: the result depends only on the input bands and the fixed weights.
"""

from typing import Mapping

from gateway.constants import (
    FUSION_CAUTION_MIN,
    FUSION_CRITICAL_MIN,
    FUSION_SCORE_DECIMALS,
    FUSION_URGENT_MIN,
    FUSION_WEIGHTS,
)
from gateway.schemas import FusionResult, SeverityBand, VitalParameter, VitalSample

FUSION_INPUTS: tuple[VitalParameter, ...] = tuple(
    VitalParameter(name) for name in FUSION_WEIGHTS
)

# (summary, urgent actions, long-term advice) keyed by overall band
_FUSION_TEXT: dict[SeverityBand, tuple[str, str, str]] = {
    SeverityBand.NORMAL: (
        "Your Status: Stable",
        "Analysis based on multi-parameter vital signs fusion. Continue monitoring.",
        "Maintain healthy lifestyle and regular checkups.",
    ),
    SeverityBand.CAUTION: (
        "CAUTION: Moderate risk indicators present.",
        "Schedule follow-up. Review vital signs and medication.",
        "Maintain healthy lifestyle and regular checkups.",
    ),
    SeverityBand.URGENT: (
        "WARNING: Elevated risk detected in vital signs.",
        "Consult physician. Monitor vital signs closely.",
        "Maintain healthy lifestyle and regular checkups.",
    ),
    SeverityBand.CRITICAL: (
        "CRITICAL: Immediate attention required due to high risk vital signs.",
        "Alert medical staff immediately. Check all vital signs urgently.",
        "Maintain healthy lifestyle and regular checkups.",
    ),
}


def fusion_score(severities: Mapping[VitalParameter, SeverityBand]) -> float:
    """Weighted sum of ordinal codes over the fusion inputs."""
    missing = [p.value for p in FUSION_INPUTS if p not in severities]
    if missing:
        raise ValueError(f"missing fusion inputs: {', '.join(missing)}")

    score = sum(
        FUSION_WEIGHTS[p.value] * severities[p].code for p in FUSION_INPUTS
    )
    return round(score, FUSION_SCORE_DECIMALS)


def band_for_score(score: float) -> SeverityBand:
    """Map a continuous score to a band; ties resolve to the higher band."""
    if score >= FUSION_CRITICAL_MIN:
        return SeverityBand.CRITICAL
    if score >= FUSION_URGENT_MIN:
        return SeverityBand.URGENT
    if score >= FUSION_CAUTION_MIN:
        return SeverityBand.CAUTION
    return SeverityBand.NORMAL


def fuse(severities: Mapping[VitalParameter, SeverityBand]) -> FusionResult:
    """
    Combine the fusion-input severities into a FusionResult.

    Extra parameters in the mapping (urea, fluid) are ignored.
    A single CRITICAL input with the others NORMAL scores 0.75 and stays NORMAL
    overall; CRITICAL overall requires several parameters in high bands.
    """
    score = fusion_score(severities)
    band = band_for_score(score)
    summary, urgent_actions, long_term_advice = _FUSION_TEXT[band]
    return FusionResult(
        score=score,
        band=band,
        summary=summary,
        urgent_actions=urgent_actions,
        long_term_advice=long_term_advice,
        inputs={p: severities[p] for p in FUSION_INPUTS},
    )


def fuse_sample(sample: VitalSample) -> FusionResult:
    return fuse(sample.severities())
