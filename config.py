"""
config.py

Centralized configuration management using pydantic-settings.
All modules must import settings from this file.
Direct os.getenv() calls are prohibited elsewhere.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application-wide settings loaded from .env file."""

    # Monitored patient
    patient_id: str = "RAD-2025-X99"
    patient_name: str = "Patient X99"

    # Simulation and streaming cadence
    scenario_duration_ms: int = 30_000
    stream_tick_sec: float = 1.0
    fast_refresh_ms: int = 3_000
    slow_refresh_ms: int = 15_000

    # Alert recipients
    alert_phone_number: str = ""
    alert_email: str = ""

    # SMS and voice (Twilio)
    twilio_account_sid: str = ""
    twilio_auth_token: str = ""
    twilio_phone_number: str = ""

    # Email (Resend)
    resend_api_key: str = ""
    email_from: str = "RADAR Alerts <alerts@radar-system.com>"

    # Web Push (VAPID)
    vapid_public_key: str = ""
    vapid_private_key: str = ""
    vapid_subject: str = "mailto:admin@radar-system.com"

    # Externally reachable base URL, used for the voice callback
    public_base_url: str = "http://localhost:8000"

    # Dispatch
    channel_timeout_sec: float = 10.0
    # Severity name -> channel names; empty uses the built-in policy
    channel_policy: dict[str, list[str]] = {}

    # Alert log database
    alert_log_enabled: bool = False
    mysql_host: str = "127.0.0.1"
    mysql_port: int = 3306
    mysql_user: str = "radar"
    mysql_password: str = ""
    mysql_db: str = "radar"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }


settings = Settings()
