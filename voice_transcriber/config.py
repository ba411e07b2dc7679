"""Service configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

DEFAULT_REPLICATE_BASE_URL = "https://api.replicate.com/v1"

# openai/whisper on Replicate: large-v3 revision first, older revision as fallback.
DEFAULT_MODEL_VERSIONS = (
    "8099696689d249cf8b122d833c36ac3f75505c666a395ca40ef26f68e7d3d16e",
    "4d50797290df275329f202e48c76360b3f22b08d28c196cbc54600319435f8d2",
)

DEFAULT_LOW_CREDIT_THRESHOLD = 10.0
DEFAULT_ALERT_COOLDOWN_SECONDS = 3600.0


def parse_csv(raw: str | None) -> list[str]:
    """Split a comma-separated value, trimming entries and dropping empties."""
    if not raw:
        return []
    return [item.strip() for item in raw.split(",") if item.strip()]


def _getenv_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return float(value)


def _getenv_opt_float(name: str) -> float | None:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return None
    return float(value)


def _getenv_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return int(value)


@dataclass
class Settings:
    """Runtime settings for the transcription service.

    Every field has an environment variable counterpart; see from_env().
    Missing provider credentials are not an error at load time: the request
    handler reports them as a configuration failure per request.
    """

    replicate_api_token: str = ""
    replicate_base_url: str = DEFAULT_REPLICATE_BASE_URL
    model_versions: list[str] = field(
        default_factory=lambda: list(DEFAULT_MODEL_VERSIONS)
    )
    whisper_model: str = "large-v3"
    sync_wait_seconds: int = 5
    provider: str = "replicate"
    auth_service_url: str = ""
    profile_service_url: str = ""
    profile_service_secret: str = ""
    alert_emails: list[str] = field(default_factory=list)
    alert_from_email: str = "Voice Transcriber <alerts@voice-transcriber.app>"
    resend_api_key: str = ""
    low_credit_gauge: float | None = None
    low_credit_threshold: float = DEFAULT_LOW_CREDIT_THRESHOLD
    alert_cooldown_seconds: float = DEFAULT_ALERT_COOLDOWN_SECONDS
    cors_allow_origins: list[str] = field(default_factory=lambda: ["*"])
    port: int = 8080

    @classmethod
    def from_env(cls) -> Settings:
        """Build Settings from the process environment."""
        versions = parse_csv(os.getenv("REPLICATE_MODEL_VERSIONS"))
        origins = parse_csv(os.getenv("CORS_ALLOW_ORIGINS"))
        return cls(
            replicate_api_token=os.getenv("REPLICATE_API_TOKEN", "").strip(),
            replicate_base_url=os.getenv(
                "REPLICATE_BASE_URL", DEFAULT_REPLICATE_BASE_URL
            ).rstrip("/"),
            model_versions=versions or list(DEFAULT_MODEL_VERSIONS),
            whisper_model=os.getenv("WHISPER_MODEL", "large-v3"),
            sync_wait_seconds=_getenv_int("REPLICATE_SYNC_WAIT_SECONDS", 5),
            provider=os.getenv("TRANSCRIPTION_PROVIDER", "replicate"),
            auth_service_url=os.getenv("AUTH_SERVICE_URL", "").rstrip("/"),
            profile_service_url=os.getenv("PROFILE_SERVICE_URL", "").rstrip("/"),
            profile_service_secret=os.getenv("PROFILE_SERVICE_SECRET", ""),
            alert_emails=parse_csv(os.getenv("ALERT_EMAILS")),
            alert_from_email=os.getenv(
                "ALERT_FROM_EMAIL",
                "Voice Transcriber <alerts@voice-transcriber.app>",
            ),
            resend_api_key=os.getenv("RESEND_API_KEY", "").strip(),
            low_credit_gauge=_getenv_opt_float("LOW_CREDIT_GAUGE"),
            low_credit_threshold=_getenv_float(
                "LOW_CREDIT_THRESHOLD", DEFAULT_LOW_CREDIT_THRESHOLD
            ),
            alert_cooldown_seconds=_getenv_float(
                "ALERT_COOLDOWN_SECONDS", DEFAULT_ALERT_COOLDOWN_SECONDS
            ),
            cors_allow_origins=origins or ["*"],
            port=_getenv_int("PORT", 8080),
        )
