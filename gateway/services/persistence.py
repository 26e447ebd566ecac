"""
gateway/services/persistence.py

Persists dispatched alerts to the alert_log table and restores cooldown state from it.
Uses SQLAlchemy 2.0 async sessions. Failures are logged and never block alerting.
"""

import json
from datetime import datetime, timezone

import structlog
from sqlalchemy import func, select, update

from db.models import AlertLog, AsyncSessionLocal
from gateway.schemas import AlertEvent, DispatchReport, SeverityBand

logger = structlog.get_logger(__name__)


def _to_db_time(value: datetime) -> datetime:
    """Naive UTC for the DATETIME column."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _from_db_time(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc)


def _call_sid(report: DispatchReport) -> str | None:
    for outcome in report.outcomes:
        if outcome.channel == "voice" and outcome.success and outcome.provider_id:
            return outcome.provider_id
    return None


async def persist_dispatch(event: AlertEvent, report: DispatchReport) -> None:
    """Insert one alert_log row for a completed dispatch."""
    try:
        async with AsyncSessionLocal() as session:
            record = AlertLog(
                alert_id=event.alert_id,
                severity=event.severity.value,
                alert_type=event.alert_type,
                summary=event.summary,
                fusion_score=event.vitals.fusion_score,
                vitals=event.vitals.model_dump_json(),
                outcomes=json.dumps([o.model_dump() for o in report.outcomes]),
                simulated=event.simulated,
                call_sid=_call_sid(report),
                dispatched_at=_to_db_time(event.timestamp),
            )
            session.add(record)
            await session.commit()
            logger.info(
                "alert_persisted",
                alert_id=event.alert_id,
                severity=event.severity.value,
            )
    except Exception as exc:
        logger.error(
            "alert_persist_failed",
            alert_id=event.alert_id,
            error=str(exc),
        )


async def load_cooldown_state() -> dict[SeverityBand, datetime]:
    """Latest organic (non-simulated) dispatch time per severity band."""
    try:
        async with AsyncSessionLocal() as session:
            result = await session.execute(
                select(AlertLog.severity, func.max(AlertLog.dispatched_at))
                .where(AlertLog.simulated.is_(False))
                .group_by(AlertLog.severity)
            )
            rows = result.all()
    except Exception as exc:
        logger.error("cooldown_state_load_failed", error=str(exc))
        return {}

    state: dict[SeverityBand, datetime] = {}
    for severity, dispatched_at in rows:
        try:
            band = SeverityBand(severity)
        except ValueError:
            logger.warning("alert_log_unknown_severity", severity=severity)
            continue
        if dispatched_at is not None:
            state[band] = _from_db_time(dispatched_at)
    return state


async def record_acknowledgement(call_sid: str, acknowledged_at: datetime) -> bool:
    """Mark the alert whose voice call has this SID as acknowledged."""
    try:
        async with AsyncSessionLocal() as session:
            result = await session.execute(
                update(AlertLog)
                .where(AlertLog.call_sid == call_sid)
                .values(
                    acknowledged=True,
                    acknowledged_at=_to_db_time(acknowledged_at),
                )
            )
            await session.commit()
            updated = (result.rowcount or 0) > 0
            logger.info(
                "alert_acknowledged",
                call_sid=call_sid,
                matched=updated,
            )
            return updated
    except Exception as exc:
        logger.error(
            "alert_acknowledge_failed",
            call_sid=call_sid,
            error=str(exc),
        )
        return False
