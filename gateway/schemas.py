"""
gateway/schemas.py

Pydantic data models for the gateway layer.
- SeverityBand / VitalParameter: ordinal severity scale and monitored parameters
- VitalSample / FusionResult: one simulated reading and its fused risk view
- AlertEvent / ChannelOutcome / DispatchReport: alert fan-out contract
- StreamSnapshot: the flat record pushed to streaming clients
- PushSubscription: a browser Web Push registration
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, field_validator


class SeverityBand(str, Enum):
    """Ordered severity scale shared by per-parameter and fused risk."""

    NORMAL = "NORMAL"
    CAUTION = "CAUTION"
    URGENT = "URGENT"
    CRITICAL = "CRITICAL"

    @property
    def code(self) -> int:
        """Ordinal code: NORMAL=0, CAUTION=1, URGENT=2, CRITICAL=3."""
        return list(SeverityBand).index(self)

    def __lt__(self, other):
        if not isinstance(other, SeverityBand):
            return NotImplemented
        return self.code < other.code

    def __le__(self, other):
        if not isinstance(other, SeverityBand):
            return NotImplemented
        return self.code <= other.code

    def __gt__(self, other):
        if not isinstance(other, SeverityBand):
            return NotImplemented
        return self.code > other.code

    def __ge__(self, other):
        if not isinstance(other, SeverityBand):
            return NotImplemented
        return self.code >= other.code


class VitalParameter(str, Enum):
    """The six monitored parameters; values match VitalSample field names."""

    UREA = "urea"
    FLUID = "fluid"
    HEART_RATE = "heart_rate"
    SPO2 = "spo2"
    RESPIRATORY_RATE = "respiratory_rate"
    PERFUSION_INDEX = "perfusion_index"


class ParameterReading(BaseModel):
    """One classified parameter value."""

    model_config = ConfigDict(frozen=True)

    value: float
    unit: str
    severity: SeverityBand


class VitalSample(BaseModel):
    """One instant-in-time reading produced by the simulator."""

    model_config = ConfigDict(frozen=True)

    elapsed_ms: int
    timestamp: datetime
    urea: ParameterReading
    fluid: ParameterReading
    heart_rate: ParameterReading
    spo2: ParameterReading
    respiratory_rate: ParameterReading
    perfusion_index: ParameterReading

    def reading(self, parameter: VitalParameter) -> ParameterReading:
        return getattr(self, parameter.value)

    def severities(self) -> dict[VitalParameter, SeverityBand]:
        return {p: self.reading(p).severity for p in VitalParameter}


class FusionResult(BaseModel):
    """Composite risk derived from the fusion-input severities."""

    model_config = ConfigDict(frozen=True)

    score: float
    band: SeverityBand
    summary: str
    urgent_actions: str
    long_term_advice: str
    inputs: dict[VitalParameter, SeverityBand]


class StreamSnapshot(BaseModel):
    """Full current state pushed to a streaming client on every tick."""

    elapsed_ms: int
    timestamp: datetime
    urea: ParameterReading
    fluid: ParameterReading
    heart_rate: ParameterReading
    spo2: ParameterReading
    respiratory_rate: ParameterReading
    perfusion_index: ParameterReading
    fusion: FusionResult


class AlertVitals(BaseModel):
    """Snapshot of the triggering sample's key fields."""

    model_config = ConfigDict(frozen=True)

    patient_id: str
    patient_name: str
    heart_rate: float
    respiratory_rate: float
    spo2: float
    perfusion_index: float
    fusion_score: float


class AlertRecipients(BaseModel):
    """Optional per-event recipient overrides (manual test alerts)."""

    model_config = ConfigDict(frozen=True)

    phone: str | None = None
    email: str | None = None


class AlertEvent(BaseModel):
    """A dispatch-worthy occurrence handed to every selected channel."""

    model_config = ConfigDict(frozen=True)

    alert_id: str
    severity: SeverityBand
    summary: str
    vitals: AlertVitals
    timestamp: datetime
    alert_type: str
    simulated: bool = False
    recipients: AlertRecipients = AlertRecipients()


class ChannelOutcome(BaseModel):
    """Structured result of one channel send; channels never raise."""

    channel: str
    success: bool
    simulated: bool = False
    provider_id: str | None = None
    error: str | None = None
    # Push only: number of subscriptions reached
    recipients: int | None = None


class DispatchReport(BaseModel):
    """Aggregated outcomes of fanning one AlertEvent out to its channels."""

    alert_id: str
    severity: SeverityBand
    simulated: bool
    outcomes: list[ChannelOutcome]


class ManualAlertRequest(BaseModel):
    """Body for the manual test alert endpoint."""

    severity: SeverityBand
    phone: str | None = None
    email: str | None = None
    message: str | None = None

    @field_validator("severity")
    @classmethod
    def _reject_normal(cls, value: SeverityBand) -> SeverityBand:
        if value == SeverityBand.NORMAL:
            raise ValueError("test alerts require a non-NORMAL severity")
        return value


class PushSubscriptionKeys(BaseModel):
    p256dh: str
    auth: str


class PushSubscription(BaseModel):
    """Browser PushSubscription as produced by PushManager.subscribe()."""

    endpoint: str
    keys: PushSubscriptionKeys
    expirationTime: int | None = None

    @field_validator("endpoint")
    @classmethod
    def _require_endpoint(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("push subscription endpoint is empty")
        return value


class PushUnsubscribeRequest(BaseModel):
    endpoint: str
