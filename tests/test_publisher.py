"""
tests/test_publisher.py

Unit tests for gateway/services/publisher.py.
The monitor is mocked; time is driven by a fake monotonic clock.
"""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from gateway.schemas import SeverityBand, VitalParameter
from gateway.services.publisher import (
    FAST_PARAMETERS,
    SLOW_PARAMETERS,
    PublisherSession,
    StreamPublisher,
    encode_event,
)
from tests.fixtures import build_simulator


def _session() -> PublisherSession:
    return PublisherSession(build_simulator(), fast_refresh_ms=3_000, slow_refresh_ms=15_000)


def _publisher(monitor, clock_values: list[float]) -> StreamPublisher:
    clock = iter(clock_values)
    return StreamPublisher(
        monitor,
        tick_sec=0.001,
        fast_refresh_ms=3_000,
        slow_refresh_ms=15_000,
        simulator_factory=build_simulator,
        clock=lambda: next(clock),
    )


def _decode(frame: str) -> dict:
    assert frame.startswith("data: ") and frame.endswith("\n\n")
    return json.loads(frame[len("data: "):])


# ---------------------------------------------------------------------------
# PublisherSession cadence
# ---------------------------------------------------------------------------

def test_session_starts_from_baseline() -> None:
    session = _session()
    snapshot = session.snapshot()

    assert snapshot.elapsed_ms == 0
    assert snapshot.heart_rate.value == 72
    assert snapshot.fusion.band == SeverityBand.NORMAL


def test_nothing_refreshes_before_fast_cadence() -> None:
    session = _session()
    fusion_before = session.fusion

    refreshed = session.refresh(1_000)

    assert refreshed == set()
    assert session.snapshot().heart_rate.value == 72
    assert session.snapshot().elapsed_ms == 1_000
    assert session.fusion is fusion_before


def test_fast_parameters_refresh_on_their_cadence() -> None:
    session = _session()

    refreshed = session.refresh(3_000)
    snapshot = session.snapshot()

    assert refreshed == set(FAST_PARAMETERS)
    assert snapshot.heart_rate.value == 91
    # Slow markers keep their last displayed value
    assert snapshot.urea.value == 35
    assert snapshot.fusion.inputs[VitalParameter.PERFUSION_INDEX] == SeverityBand.CAUTION


def test_slow_parameters_refresh_on_their_cadence() -> None:
    session = _session()
    session.refresh(3_000)

    refreshed = session.refresh(15_000)
    snapshot = session.snapshot()

    assert refreshed == set(FAST_PARAMETERS) | set(SLOW_PARAMETERS)
    assert snapshot.urea.value == 160
    assert snapshot.urea.severity == SeverityBand.CRITICAL
    assert snapshot.fusion.band == SeverityBand.CRITICAL


def test_encode_event_is_one_sse_message() -> None:
    payload = _decode(encode_event(_session().snapshot()))

    assert payload["elapsed_ms"] == 0
    assert payload["fusion"]["band"] == "NORMAL"
    assert payload["spo2"]["unit"]


# ---------------------------------------------------------------------------
# StreamPublisher
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_tick_feeds_monitor_only_when_fusion_inputs_refresh() -> None:
    monitor = MagicMock()
    monitor.observe = AsyncMock()
    publisher = _publisher(monitor, [])
    session = publisher.open_session()

    assert await publisher.tick(session, 1_000) is None
    monitor.observe.assert_not_awaited()

    await publisher.tick(session, 3_000)
    monitor.observe.assert_awaited_once()
    sample, fusion = monitor.observe.call_args.args
    assert sample.heart_rate.value == 91
    assert fusion == session.fusion


@pytest.mark.asyncio
async def test_stream_pushes_initial_frame_then_one_per_tick() -> None:
    monitor = MagicMock()
    monitor.observe = AsyncMock()
    publisher = _publisher(monitor, [0.0, 3.0])
    is_disconnected = AsyncMock(side_effect=[False, True])

    frames = [frame async for frame in publisher.stream(is_disconnected)]

    assert len(frames) == 2
    assert _decode(frames[0])["elapsed_ms"] == 0
    second = _decode(frames[1])
    assert second["elapsed_ms"] == 3_000
    assert second["heart_rate"]["value"] == 91
    # The initial snapshot is displayed but never fed to the detector
    monitor.observe.assert_awaited_once()


@pytest.mark.asyncio
async def test_stream_survives_monitor_failure() -> None:
    monitor = MagicMock()
    monitor.observe = AsyncMock(side_effect=RuntimeError("detector broke"))
    publisher = _publisher(monitor, [0.0, 3.0, 6.0])
    is_disconnected = AsyncMock(side_effect=[False, False, True])

    frames = [frame async for frame in publisher.stream(is_disconnected)]

    assert len(frames) == 3
    assert _decode(frames[2])["elapsed_ms"] == 6_000


@pytest.mark.asyncio
async def test_immediate_disconnect_yields_only_initial_frame() -> None:
    monitor = MagicMock()
    monitor.observe = AsyncMock()
    publisher = _publisher(monitor, [0.0])

    frames = [f async for f in publisher.stream(AsyncMock(return_value=True))]

    assert len(frames) == 1
    monitor.observe.assert_not_awaited()
