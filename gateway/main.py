"""
gateway/main.py

FastAPI application entry point for the RADAR monitoring gateway.
Wires the detector, dispatcher, monitor and publisher on startup and registers routers.

Run:
    uvicorn gateway.main:app --host 0.0.0.0 --port 8000
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI

from config import settings
from db.models import init_models
from gateway.routers.notifications import router as notifications_router
from gateway.routers.stream import router as stream_router
from gateway.services.channels.push import PushSubscriptionStore
from gateway.services.detector import TransitionDetector
from gateway.services.dispatcher import (
    AlertDispatcher,
    build_default_channels,
    resolve_policy,
)
from gateway.services.monitor import RiskMonitor
from gateway.services.persistence import load_cooldown_state, persist_dispatch
from gateway.services.publisher import StreamPublisher

logger = structlog.get_logger(__name__)


async def build_monitor(push_subscriptions: PushSubscriptionStore) -> RiskMonitor:
    """Construct the process-wide alerting pipeline."""
    detector = TransitionDetector()
    dispatcher = AlertDispatcher(
        channels=build_default_channels(push_subscriptions),
        policy=resolve_policy(settings.channel_policy),
        on_dispatched=persist_dispatch if settings.alert_log_enabled else None,
    )

    if settings.alert_log_enabled:
        try:
            await init_models()
        except Exception as exc:
            logger.error("alert_log_init_failed", error=str(exc))
        detector.restore(await load_cooldown_state())

    return RiskMonitor(detector, dispatcher)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application lifecycle: startup and shutdown."""
    push_subscriptions = PushSubscriptionStore()
    monitor = await build_monitor(push_subscriptions)
    app.state.monitor = monitor
    app.state.push_subscriptions = push_subscriptions
    app.state.publisher = StreamPublisher(monitor)
    logger.info(
        "gateway_starting",
        patient_id=settings.patient_id,
        channels={
            name: channel.configured
            for name, channel in monitor.dispatcher.channels.items()
        },
        alert_log_enabled=settings.alert_log_enabled,
    )
    yield
    logger.info("gateway_shutting_down")
    await monitor.dispatcher.drain()


app = FastAPI(
    title="RADAR Monitoring Gateway",
    description="Vitals simulation, risk fusion and multi-channel alerting service",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(stream_router)
app.include_router(notifications_router)


@app.get("/", tags=["Health"])
async def health() -> dict:
    return {
        "status": "ok",
        "patient_id": settings.patient_id,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
