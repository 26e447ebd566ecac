"""
gateway/services/channels/twilio.py

SMS and voice call channels backed by the Twilio REST API (called via httpx).
Also builds the TwiML documents served by the keypad callback endpoint.
"""

from collections import OrderedDict
from xml.sax.saxutils import escape

import httpx

from config import settings
from gateway.schemas import AlertEvent, ChannelOutcome, SeverityBand
from gateway.services.channels.base import NotificationChannel
from gateway.services.channels.messages import (
    KEYPAD_PROMPT,
    format_call_script,
    format_sms_text,
)

TWILIO_API_BASE = "https://api.twilio.com/2010-04-01"
CALLBACK_PATH = "/notifications/call/callback"
_VOICE = "Polly.Joanna"

# Recent (script, high_alert) pairs keyed by call SID, replayed on keypad "3"
_MAX_REMEMBERED_CALLS: int = 50
_call_scripts: "OrderedDict[str, tuple[str, bool]]" = OrderedDict()


def remember_call_script(call_sid: str, script: str, high_alert: bool) -> None:
    _call_scripts[call_sid] = (script, high_alert)
    _call_scripts.move_to_end(call_sid)
    while len(_call_scripts) > _MAX_REMEMBERED_CALLS:
        _call_scripts.popitem(last=False)


def recall_call_script(call_sid: str) -> tuple[str, bool] | None:
    return _call_scripts.get(call_sid)


def _say(text: str, rate: str = "medium", volume: str = "medium") -> str:
    return (
        f'<Say voice="{_VOICE}" language="en-US">'
        f'<prosody rate="{rate}" volume="{volume}">{escape(text)}</prosody>'
        f"</Say>"
    )


def _document(body: str) -> str:
    return f'<?xml version="1.0" encoding="UTF-8"?><Response>{body}</Response>'


def build_call_twiml(script: str, high_alert: bool, callback_url: str) -> str:
    """Spoken alert followed by a one-digit keypad menu."""
    rate, volume = ("medium", "loud") if high_alert else ("slow", "medium")
    fallback = (
        "Please call back immediately or contact emergency services."
        if high_alert
        else "Goodbye."
    )
    gather = (
        f'<Gather numDigits="1" action="{escape(callback_url)}" method="POST" timeout="10">'
        f"{_say(KEYPAD_PROMPT)}"
        f"</Gather>"
    )
    return _document(
        _say(script, rate=rate, volume=volume)
        + gather
        + _say(f"We did not receive your input. {fallback}")
    )


def build_callback_twiml(digits: str, call_sid: str, callback_url: str) -> str:
    """TwiML answering a keypad press during an alert call."""
    if digits == "1":
        return _document(
            _say(
                "Alert acknowledged. Thank you for responding. Please check on the "
                "patient immediately and take necessary action. Goodbye."
            )
        )
    if digits == "2":
        return _document(
            _say(
                "Emergency escalation confirmed. Please call emergency services "
                "immediately. Notifying medical team now. Goodbye.",
                volume="loud",
            )
        )
    if digits == "3":
        remembered = recall_call_script(call_sid)
        if remembered is not None:
            script, high_alert = remembered
            return build_call_twiml(script, high_alert, callback_url)
    return _document(
        _say(
            "Invalid input. Please contact the hospital or call emergency services "
            "immediately if this is a critical emergency. Goodbye."
        )
    )


def callback_url() -> str:
    return settings.public_base_url.rstrip("/") + CALLBACK_PATH


class _TwilioChannel(NotificationChannel):
    """Shared credentials and request plumbing for Twilio resources."""

    @property
    def configured(self) -> bool:
        return bool(
            settings.twilio_account_sid
            and settings.twilio_auth_token
            and settings.twilio_phone_number
        )

    @staticmethod
    def _recipient(event: AlertEvent) -> str:
        to = event.recipients.phone or settings.alert_phone_number
        if not to:
            raise ValueError("no alert phone number configured")
        return to

    async def _create(self, resource: str, data: dict[str, str]) -> dict:
        url = f"{TWILIO_API_BASE}/Accounts/{settings.twilio_account_sid}/{resource}.json"
        async with httpx.AsyncClient(timeout=settings.channel_timeout_sec) as client:
            response = await client.post(
                url,
                data=data,
                auth=(settings.twilio_account_sid, settings.twilio_auth_token),
            )
            response.raise_for_status()
            return response.json()


class SmsChannel(_TwilioChannel):
    name = "sms"

    async def _deliver(self, event: AlertEvent) -> ChannelOutcome:
        body = await self._create(
            "Messages",
            {
                "To": self._recipient(event),
                "From": settings.twilio_phone_number,
                "Body": format_sms_text(event),
            },
        )
        return self.delivered(body.get("sid"))


class VoiceChannel(_TwilioChannel):
    name = "voice"

    async def _deliver(self, event: AlertEvent) -> ChannelOutcome:
        script = format_call_script(event)
        high_alert = event.severity >= SeverityBand.URGENT
        body = await self._create(
            "Calls",
            {
                "To": self._recipient(event),
                "From": settings.twilio_phone_number,
                "Twiml": build_call_twiml(script, high_alert, callback_url()),
                "StatusCallback": callback_url(),
            },
        )
        call_sid = body.get("sid")
        if call_sid:
            remember_call_script(call_sid, script, high_alert)
        return self.delivered(call_sid)
