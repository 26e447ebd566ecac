"""
gateway/routers/notifications.py

Operational notification endpoints:
- POST /notifications/test: manual alert through the real channel path (simulated: true)
- GET  /notifications/status: which channels are configured, and the severity policy
- GET  /notifications/state: detector state and remaining cooldowns
- POST /notifications/call/callback: keypad responses during alert calls
- PUT/DELETE /notifications/push/subscriptions: browser Web Push registration
"""

import structlog
from fastapi import APIRouter, Form, Request, Response

from config import settings
from gateway.schemas import (
    DispatchReport,
    ManualAlertRequest,
    PushSubscription,
    PushUnsubscribeRequest,
)
from gateway.services.channels.push import PushSubscriptionStore
from gateway.services.channels.twilio import build_callback_twiml, callback_url
from gateway.services.monitor import RiskMonitor
from gateway.services.persistence import record_acknowledgement

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/notifications", tags=["Notifications"])


def _monitor(request: Request) -> RiskMonitor:
    return request.app.state.monitor


def _push_subscriptions(request: Request) -> PushSubscriptionStore:
    return request.app.state.push_subscriptions


@router.post("/test")
async def send_test_alert(payload: ManualAlertRequest, request: Request) -> DispatchReport:
    """Dispatch a synthetic alert, bypassing transition detection and cooldowns."""
    return await _monitor(request).send_manual_alert(payload)


@router.get("/status")
async def channel_status(request: Request) -> dict:
    dispatcher = _monitor(request).dispatcher
    return {
        "channels": {
            name: {"configured": channel.configured}
            for name, channel in dispatcher.channels.items()
        },
        "policy": {
            band.value: list(names) for band, names in dispatcher.policy.items()
        },
        "push": {
            "vapid_public_key": settings.vapid_public_key or None,
            "subscriptions": len(_push_subscriptions(request)),
        },
        "alert_log_enabled": settings.alert_log_enabled,
    }


@router.get("/state")
async def detector_state(request: Request) -> dict:
    monitor = _monitor(request)
    return monitor.detector.state(monitor.now())


@router.post("/call/callback")
async def call_callback(
    request: Request,
    Digits: str = Form(""),
    CallSid: str = Form(""),
    CallStatus: str = Form(""),
) -> Response:
    """Answer a keypad press: 1 acknowledge, 2 escalate, 3 repeat."""
    logger.info(
        "call_callback_received",
        call_sid=CallSid,
        call_status=CallStatus,
        digits=Digits,
    )

    if not Digits:
        # Status callbacks carry no keypad input
        return Response(
            content='<?xml version="1.0" encoding="UTF-8"?><Response></Response>',
            media_type="text/xml",
        )

    if Digits == "1" and CallSid and settings.alert_log_enabled:
        await record_acknowledgement(CallSid, _monitor(request).now())
    elif Digits == "2":
        logger.warning("call_escalation_requested", call_sid=CallSid)

    return Response(
        content=build_callback_twiml(Digits, CallSid, callback_url()),
        media_type="text/xml",
    )


@router.put("/push/subscriptions")
async def register_push_subscription(payload: PushSubscription, request: Request) -> dict:
    store = _push_subscriptions(request)
    created = store.add(payload)
    logger.info(
        "push_subscription_registered",
        endpoint=payload.endpoint,
        created=created,
        total=len(store),
    )
    return {"registered": True, "created": created, "total": len(store)}


@router.delete("/push/subscriptions")
async def remove_push_subscription(payload: PushUnsubscribeRequest, request: Request) -> dict:
    store = _push_subscriptions(request)
    removed = store.remove(payload.endpoint)
    logger.info(
        "push_subscription_removed",
        endpoint=payload.endpoint,
        removed=removed,
        total=len(store),
    )
    return {"removed": removed, "total": len(store)}
