"""
tests/test_persistence.py

Unit tests for gateway/services/persistence.py.
The async DB session is mocked; no database is required.
"""

import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from gateway.schemas import ChannelOutcome, DispatchReport, SeverityBand
from gateway.services.persistence import (
    load_cooldown_state,
    persist_dispatch,
    record_acknowledgement,
)
from tests.fixtures import T0, build_event


def _mock_session(result: MagicMock | None = None) -> AsyncMock:
    mock_session = AsyncMock()
    mock_session.add = MagicMock()
    mock_session.execute = AsyncMock(return_value=result or MagicMock())
    mock_session.__aenter__ = AsyncMock(return_value=mock_session)
    mock_session.__aexit__ = AsyncMock(return_value=False)
    return mock_session


@pytest.mark.asyncio
async def test_persist_dispatch_writes_alert_log_row() -> None:
    event = build_event(SeverityBand.CRITICAL)
    report = DispatchReport(
        alert_id=event.alert_id,
        severity=event.severity,
        simulated=False,
        outcomes=[
            ChannelOutcome(channel="sms", success=True, provider_id="SM1"),
            ChannelOutcome(channel="voice", success=True, provider_id="CA1"),
        ],
    )
    mock_session = _mock_session()

    with patch(
        "gateway.services.persistence.AsyncSessionLocal", return_value=mock_session
    ):
        await persist_dispatch(event, report)

    record = mock_session.add.call_args.args[0]
    assert record.alert_id == event.alert_id
    assert record.severity == "CRITICAL"
    assert record.call_sid == "CA1"
    assert record.dispatched_at == datetime(2024, 6, 15, 13, 30, 0)
    assert json.loads(record.outcomes)[0]["channel"] == "sms"
    mock_session.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_persist_dispatch_swallows_db_errors() -> None:
    event = build_event()
    report = DispatchReport(
        alert_id=event.alert_id, severity=event.severity, simulated=False, outcomes=[]
    )
    mock_session = _mock_session()
    mock_session.commit = AsyncMock(side_effect=RuntimeError("connection lost"))

    with patch(
        "gateway.services.persistence.AsyncSessionLocal", return_value=mock_session
    ):
        await persist_dispatch(event, report)


@pytest.mark.asyncio
async def test_load_cooldown_state_returns_aware_times_per_band() -> None:
    result = MagicMock()
    result.all.return_value = [
        ("CRITICAL", datetime(2024, 6, 15, 13, 30, 0)),
        ("URGENT", None),
        ("BOGUS", datetime(2024, 6, 15, 13, 0, 0)),
    ]

    with patch(
        "gateway.services.persistence.AsyncSessionLocal",
        return_value=_mock_session(result),
    ):
        state = await load_cooldown_state()

    assert state == {SeverityBand.CRITICAL: T0}
    assert state[SeverityBand.CRITICAL].tzinfo == timezone.utc


@pytest.mark.asyncio
async def test_load_cooldown_state_empty_on_db_error() -> None:
    mock_session = _mock_session()
    mock_session.execute = AsyncMock(side_effect=RuntimeError("no such table"))

    with patch(
        "gateway.services.persistence.AsyncSessionLocal", return_value=mock_session
    ):
        assert await load_cooldown_state() == {}


@pytest.mark.asyncio
async def test_record_acknowledgement_reports_match() -> None:
    result = MagicMock()
    result.rowcount = 1

    with patch(
        "gateway.services.persistence.AsyncSessionLocal",
        return_value=_mock_session(result),
    ):
        assert await record_acknowledgement("CA1", T0) is True


@pytest.mark.asyncio
async def test_record_acknowledgement_unknown_call() -> None:
    result = MagicMock()
    result.rowcount = 0

    with patch(
        "gateway.services.persistence.AsyncSessionLocal",
        return_value=_mock_session(result),
    ):
        assert await record_acknowledgement("CA-missing", T0) is False
