"""
tests/test_classifier.py

Unit tests for gateway/services/classifier.py.
Verifies table boundaries, inter-boundary gaps and the NaN fallback.
"""

import numpy as np
import pytest

from gateway.schemas import SeverityBand, VitalParameter
from gateway.services.classifier import classify

N, CA, U, CR = (
    SeverityBand.NORMAL,
    SeverityBand.CAUTION,
    SeverityBand.URGENT,
    SeverityBand.CRITICAL,
)


@pytest.mark.parametrize(
    "value,expected",
    [(10, N), (20, N), (60, N), (61, CA), (100, CA), (101, U), (150, U), (151, CR), (160, CR)],
)
def test_urea_boundaries(value: float, expected: SeverityBand) -> None:
    assert classify(VitalParameter.UREA, value) == expected


@pytest.mark.parametrize(
    "value,expected",
    [(0.38, N), (0.42, N), (0.43, CA), (0.45, CA), (0.46, U), (0.48, U), (0.49, CR), (0.50, CR)],
)
def test_fluid_boundaries(value: float, expected: SeverityBand) -> None:
    assert classify(VitalParameter.FLUID, value) == expected


@pytest.mark.parametrize(
    "value,expected",
    [
        (0, CR), (40, CR), (41, CA), (50, CA), (51, N), (72, N), (100, N),
        (101, CA), (110, CA), (111, U), (129, U), (130, CR), (145, CR),
    ],
)
def test_heart_rate_boundaries(value: float, expected: SeverityBand) -> None:
    assert classify(VitalParameter.HEART_RATE, value) == expected


@pytest.mark.parametrize(
    "value,expected",
    [(100, N), (96, N), (95, CA), (94, CA), (93, U), (92, U), (91, CR), (84, CR)],
)
def test_spo2_boundaries(value: float, expected: SeverityBand) -> None:
    assert classify(VitalParameter.SPO2, value) == expected


@pytest.mark.parametrize(
    "value,expected",
    [(8, CR), (9, CA), (11, CA), (12, N), (20, N), (21, U), (24, U), (25, CR)],
)
def test_respiratory_rate_boundaries(value: float, expected: SeverityBand) -> None:
    assert classify(VitalParameter.RESPIRATORY_RATE, value) == expected


@pytest.mark.parametrize(
    "value,expected",
    [(2.5, N), (2.1, N), (2.0, CA), (1.1, CA), (1.0, U), (0.6, U), (0.5, CR), (0.0, CR)],
)
def test_perfusion_index_boundaries(value: float, expected: SeverityBand) -> None:
    assert classify(VitalParameter.PERFUSION_INDEX, value) == expected


@pytest.mark.parametrize(
    "parameter,value,expected",
    [
        (VitalParameter.HEART_RATE, 100.5, CA),
        (VitalParameter.HEART_RATE, 50.5, CA),
        (VitalParameter.SPO2, 95.5, CA),
        (VitalParameter.RESPIRATORY_RATE, 20.5, U),
        (VitalParameter.RESPIRATORY_RATE, 11.5, CA),
        (VitalParameter.UREA, 60.5, CA),
        (VitalParameter.FLUID, 0.455, U),
        (VitalParameter.PERFUSION_INDEX, 1.05, U),
    ],
)
def test_gap_values_resolve_to_more_severe_neighbour(
    parameter: VitalParameter, value: float, expected: SeverityBand
) -> None:
    assert classify(parameter, value) == expected


@pytest.mark.parametrize("parameter", list(VitalParameter))
def test_nan_is_critical(parameter: VitalParameter) -> None:
    assert classify(parameter, float("nan")) == SeverityBand.CRITICAL


def test_negative_heart_rate_is_critical() -> None:
    assert classify(VitalParameter.HEART_RATE, -5) == SeverityBand.CRITICAL


@pytest.mark.parametrize("parameter", list(VitalParameter))
def test_every_value_maps_to_exactly_one_band(parameter: VitalParameter) -> None:
    """Sweep a wide range; classification is total and never raises."""
    for value in np.linspace(-10.0, 250.0, 2_601):
        assert classify(parameter, float(value)) in SeverityBand
