"""
gateway/services/channels/messages.py

Plain-text renderings of an AlertEvent for each transport.
"""

from xml.sax.saxutils import escape

from gateway.schemas import AlertEvent, SeverityBand

# Opening line and urgency statement of the spoken call script
_CALL_INTRO: dict[SeverityBand, tuple[str, str]] = {
    SeverityBand.CRITICAL: (
        "URGENT! CRITICAL ALERT! This is RADAR emergency medical system.",
        "Patient is in CRITICAL condition. IMMEDIATE medical intervention required.",
    ),
    SeverityBand.URGENT: (
        "EMERGENCY ALERT! This is RADAR medical monitoring system.",
        "Patient requires IMMEDIATE medical attention. Please respond immediately.",
    ),
    SeverityBand.CAUTION: (
        "URGENT ALERT! This is RADAR medical monitoring system.",
        "Patient needs urgent care. Please schedule dialysis today.",
    ),
}

KEYPAD_PROMPT = (
    "Press 1 to acknowledge this alert. Press 2 to escalate to emergency services. "
    "Press 3 to repeat this message."
)


def _label(event: AlertEvent) -> str:
    prefix = "TEST " if event.simulated else ""
    return f"{prefix}RADAR {event.severity.value} ALERT"


def format_sms_text(event: AlertEvent) -> str:
    v = event.vitals
    return (
        f"{_label(event)}\n\n"
        f"Patient: {v.patient_name}\n"
        f"{event.summary}\n\n"
        f"Vitals:\n"
        f"HR: {v.heart_rate:g} bpm\n"
        f"RR: {v.respiratory_rate:g} brpm\n"
        f"SpO2: {v.spo2:g}%\n"
        f"PI: {v.perfusion_index:g}\n\n"
        f"Risk Score: {v.fusion_score:.2f}/3.00"
    )


def format_call_script(event: AlertEvent) -> str:
    """Text-to-speech script, without the keypad prompt."""
    v = event.vitals
    intro, urgency = _CALL_INTRO.get(
        event.severity, ("This is RADAR medical monitoring system.", "")
    )
    parts = [
        intro,
        urgency,
        f"{event.severity.value} severity alert for patient {v.patient_name}.",
        f"{event.summary}",
        f"Current vitals: Heart rate {v.heart_rate:g} beats per minute. "
        f"Blood oxygen {v.spo2:g} percent. "
        f"Respiratory rate {v.respiratory_rate:g} breaths per minute. "
        f"Risk score {v.fusion_score:.1f} out of 3.",
    ]
    if event.simulated:
        parts.insert(0, "This is a test alert.")
    return " ".join(p for p in parts if p)


def format_email(event: AlertEvent) -> tuple[str, str]:
    """Return (subject, html body)."""
    v = event.vitals
    subject = f"{_label(event)}: {v.patient_name}"
    rows = "".join(
        f"<tr><td>{escape(label)}</td><td>{escape(value)}</td></tr>"
        for label, value in (
            ("Heart rate", f"{v.heart_rate:g} bpm"),
            ("Respiratory rate", f"{v.respiratory_rate:g} brpm"),
            ("SpO2", f"{v.spo2:g} %"),
            ("Perfusion index", f"{v.perfusion_index:g}"),
            ("Risk score", f"{v.fusion_score:.2f} / 3.00"),
        )
    )
    html = (
        f"<h2>{escape(_label(event))}</h2>"
        f"<p>Patient: {escape(v.patient_name)} ({escape(v.patient_id)})</p>"
        f"<p>{escape(event.summary)}</p>"
        f"<table>{rows}</table>"
        f"<p>Raised at {escape(event.timestamp.isoformat())}</p>"
    )
    return subject, html


def format_push(event: AlertEvent) -> tuple[str, str]:
    """Return (title, body)."""
    return _label(event), event.summary
