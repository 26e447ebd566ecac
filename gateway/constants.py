"""
gateway/constants.py

Clinical threshold constants used by the simulator, classifier, fusion engine and
transition detector. All clinical numeric values must be referenced from this module.
Magic numbers in business logic are prohibited.
"""

# ── Parameter units and display precision ────────────────────
# Decimal places kept after interpolation (rounded half away from zero)
PARAMETER_UNITS: dict[str, str] = {
    "urea": "mg/dL",
    "fluid": "ECW/TBW",
    "heart_rate": "bpm",
    "spo2": "%",
    "respiratory_rate": "brpm",
    "perfusion_index": "",
}
PARAMETER_PRECISION: dict[str, int] = {
    "urea": 0,
    "fluid": 2,
    "heart_rate": 0,
    "spo2": 0,
    "respiratory_rate": 0,
    "perfusion_index": 1,
}

# ── Scripted clinical arc ────────────────────────────────────
# (clinical hour, values); hours are compressed onto the scenario duration
CLINICAL_ARC_HOURS: float = 14.0
KEYFRAME_SCRIPT: list[tuple[float, dict[str, float]]] = [
    # Baseline
    (0.0, {"urea": 35, "fluid": 0.38, "heart_rate": 72, "spo2": 98,
           "respiratory_rate": 16, "perfusion_index": 2.5}),
    # Early shift
    (6.0, {"urea": 85, "fluid": 0.44, "heart_rate": 110, "spo2": 96,
           "respiratory_rate": 22, "perfusion_index": 1.5}),
    # Escalation
    (10.0, {"urea": 120, "fluid": 0.47, "heart_rate": 130, "spo2": 91,
            "respiratory_rate": 26, "perfusion_index": 0.8}),
    # Crisis
    (14.0, {"urea": 160, "fluid": 0.50, "heart_rate": 145, "spo2": 84,
            "respiratory_rate": 30, "perfusion_index": 0.4}),
]

# ── Urea (mg/dL) ─────────────────────────────────────────────
UREA_NORMAL_MAX: float = 60
UREA_CAUTION_MAX: float = 100
UREA_URGENT_MAX: float = 150

# ── Fluid overload (ECW/TBW ratio) ───────────────────────────
FLUID_CAUTION_MIN: float = 0.43
FLUID_CAUTION_MAX: float = 0.45
FLUID_CRITICAL_MIN: float = 0.49

# ── Heart rate (bpm) ─────────────────────────────────────────
HR_CAUTION_LOW_MIN: float = 41
HR_NORMAL_MIN: float = 51
HR_NORMAL_MAX: float = 100
HR_CAUTION_HIGH_MAX: float = 110
HR_URGENT_MAX: float = 129

# ── Blood oxygen saturation (%) ──────────────────────────────
SPO2_NORMAL_MIN: float = 96
SPO2_CAUTION_MIN: float = 94
SPO2_URGENT_MIN: float = 92

# ── Respiratory rate (breaths/min) ───────────────────────────
RR_CAUTION_MIN: float = 9
RR_NORMAL_MIN: float = 12
RR_NORMAL_MAX: float = 20
RR_URGENT_MAX: float = 24

# ── Perfusion index ──────────────────────────────────────────
PPI_NORMAL_ABOVE: float = 2.0
PPI_CAUTION_MIN: float = 1.1
PPI_URGENT_MIN: float = 0.6

# ── Fusion ───────────────────────────────────────────────────
# Urea and fluid are displayed but deliberately excluded from the composite score
FUSION_WEIGHTS: dict[str, float] = {
    "heart_rate": 0.25,
    "spo2": 0.25,
    "respiratory_rate": 0.25,
    "perfusion_index": 0.25,
}
FUSION_CRITICAL_MIN: float = 3.00
FUSION_URGENT_MIN: float = 2.25
FUSION_CAUTION_MIN: float = 1.50
FUSION_SCORE_DECIMALS: int = 2

# ── Alert cooldowns (minutes) ────────────────────────────────
COOLDOWN_MINUTES: dict[str, int] = {
    "CAUTION": 30,
    "URGENT": 15,
    "CRITICAL": 5,
}

# ── Channel selection per severity ───────────────────────────
DEFAULT_CHANNEL_POLICY: dict[str, tuple[str, ...]] = {
    "CAUTION": ("push",),
    "URGENT": ("sms", "voice", "email", "push"),
    "CRITICAL": ("sms", "voice", "email", "push"),
}

ALERT_TYPE_VITAL_SIGN: str = "vital_sign_critical"
ALERT_TYPE_MANUAL_TEST: str = "manual_test"
