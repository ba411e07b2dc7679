"""Transcription request handler.

Sequences one request end to end:
auth -> config check -> usage profile -> quota -> body validation ->
low-credit alert -> orchestrator -> text cap -> usage write.
Every step before the orchestrator short-circuits without touching the
provider or the usage ledger. The usage write happens only after a
successful transcription and never fails the request.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from voice_transcriber.alerts.throttle import AlertThrottle
from voice_transcriber.asr.orchestrator import TranscriptionOrchestrator
from voice_transcriber.auth.client import AuthClient, extract_bearer_token
from voice_transcriber.observability.metrics import (
    StageTimer,
    TranscriptionMetrics,
    log_transcription_metrics,
)
from voice_transcriber.quota.gate import check_quota, enforce_quota
from voice_transcriber.storage.models import UsageProfile
from voice_transcriber.storage.profile_client import ProfileClient
from voice_transcriber.utils.errors import (
    MANUAL_ENTRY_HINT,
    ConfigError,
    InsufficientCreditsError,
    ProfileUnavailableError,
    RequestValidationError,
    StorageError,
    TranscriptionServiceError,
)

logger = logging.getLogger(__name__)

GLOBAL_TEXT_CAP = 10_000
DEFAULT_LANGUAGE = "en"

LOW_CREDIT_ALERT_KEY = "low-credit"
CREDITS_DEPLETED_ALERT_KEY = "credits-depleted"
LOW_CREDIT_ALERT_CODE = "LOW_PROVIDER_CREDIT"


@dataclass
class TranscriptionRequest:
    """Validated request body."""

    audio_url: str
    language: str = DEFAULT_LANGUAGE

    @classmethod
    def from_body(cls, body: Any) -> TranscriptionRequest:
        """Validate a decoded JSON body.

        Raises:
            RequestValidationError: If the body is not an object, audioUrl is
                missing or blank, or language is not a non-empty string.
        """
        if not isinstance(body, dict):
            raise RequestValidationError("Request body must be a JSON object")

        audio_url = body.get("audioUrl")
        if not isinstance(audio_url, str) or not audio_url.strip():
            raise RequestValidationError("audioUrl is required")

        language = body.get("language")
        if language is None:
            language = DEFAULT_LANGUAGE
        elif not isinstance(language, str) or not language.strip():
            raise RequestValidationError("language must be a non-empty string")

        return cls(audio_url=audio_url.strip(), language=language.strip())


@dataclass
class TranscriptionResponse:
    text: str
    provider: str
    alerts: list[str] = field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"text": self.text, "provider": self.provider}
        if self.alerts:
            payload["alerts"] = list(self.alerts)
        return payload


def cap_text(text: str, cap: int = GLOBAL_TEXT_CAP) -> tuple[str, bool]:
    """Trim whitespace and truncate to ``cap`` characters.

    Returns:
        The capped text and whether anything was cut off.
    """
    trimmed = text.strip()
    if len(trimmed) > cap:
        return trimmed[:cap], True
    return trimmed, False


class TranscriptionHandler:
    """Composition root for the transcription endpoint.

    Any of auth, profiles or orchestrator may be None when its settings are
    missing; every request then fails with CONFIG_ERROR.

    Args:
        auth: Resolves bearer tokens to user ids.
        profiles: Usage profile store.
        orchestrator: Provider orchestrator.
        throttle: Operator alert throttle.
        low_credit_gauge: Operator-maintained provider balance, if known.
        low_credit_threshold: Balance below which operators are alerted.
        now: Returns the current UTC time; replaceable in tests.
    """

    def __init__(
        self,
        auth: AuthClient | None,
        profiles: ProfileClient | None,
        orchestrator: TranscriptionOrchestrator | None,
        throttle: AlertThrottle,
        low_credit_gauge: float | None = None,
        low_credit_threshold: float = 10.0,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._auth = auth
        self._profiles = profiles
        self._orchestrator = orchestrator
        self._throttle = throttle
        self._low_credit_gauge = low_credit_gauge
        self._low_credit_threshold = low_credit_threshold
        self._now = now or (lambda: datetime.now(UTC))

    async def handle(
        self, authorization: str | None, body: Any
    ) -> TranscriptionResponse:
        """Run one transcription request.

        Args:
            authorization: Raw Authorization header value.
            body: Decoded JSON request body.

        Returns:
            TranscriptionResponse with the capped text.

        Raises:
            TranscriptionServiceError: Any classified failure; the API layer
                renders it as a JSON error response.
        """
        token = extract_bearer_token(authorization)
        if self._auth is None:
            logger.error("Auth service is not configured")
            raise ConfigError("Server configuration error", hint=MANUAL_ENTRY_HINT)
        user_id = await self._auth.verify_token(token)
        logger.info("Authenticated transcription request", extra={"user_id": user_id})

        metrics = TranscriptionMetrics(user_id=user_id, status="failed")
        started = time.monotonic()
        try:
            response = await self._transcribe_for(user_id, body, metrics)
        except TranscriptionServiceError as exc:
            metrics.error_code = exc.code
            metrics.error_message = str(exc)
            raise
        else:
            metrics.status = "completed"
            return response
        finally:
            metrics.total_duration_seconds = time.monotonic() - started
            log_transcription_metrics(metrics)

    async def _transcribe_for(
        self, user_id: str, body: Any, metrics: TranscriptionMetrics
    ) -> TranscriptionResponse:
        orchestrator = self._orchestrator
        if orchestrator is None or self._profiles is None:
            logger.error("Provider API token or profile service is not configured")
            raise ConfigError("Server configuration error", hint=MANUAL_ENTRY_HINT)
        metrics.provider = orchestrator.provider_name

        now = self._now()
        profile = await self._load_profile(user_id)
        metrics.tier = profile.tier.value

        decision = check_quota(
            profile.tier, profile.monthly_usage(now), profile.used_lifetime
        )
        if not decision.allowed:
            logger.info(
                "Transcription denied by quota (%s, limit %d)",
                decision.outcome.value,
                decision.limit,
                extra={"user_id": user_id},
            )
        enforce_quota(decision)

        request = TranscriptionRequest.from_body(body)
        alerts = await self._check_low_credit()

        timer = StageTimer("provider")
        try:
            with timer:
                result = await orchestrator.transcribe(request.audio_url, request.language)
        except InsufficientCreditsError:
            await self._throttle.notify(
                CREDITS_DEPLETED_ALERT_KEY,
                "Transcription provider credits depleted",
                "The speech-to-text provider rejected a job for insufficient "
                "credit. Transcription is unavailable until the account is "
                "topped up.",
            )
            raise
        finally:
            metrics.provider_duration_seconds = timer.duration_seconds

        text, truncated = cap_text(result.text)
        metrics.model_version = result.model_version
        metrics.job_id = result.job_id
        metrics.model_attempts = result.model_attempts
        metrics.text_length = len(text)
        metrics.truncated = truncated
        if truncated:
            logger.info(
                "Transcription truncated to %d characters",
                GLOBAL_TEXT_CAP,
                extra={"user_id": user_id, "job_id": result.job_id},
            )

        await self._record_usage(profile, now)

        return TranscriptionResponse(
            text=text, provider=orchestrator.provider_name, alerts=alerts
        )

    async def _load_profile(self, user_id: str) -> UsageProfile:
        try:
            profile = await self._profiles.get_profile(user_id)
        except StorageError as exc:
            logger.error(
                "Could not load usage profile: %s",
                exc,
                extra={"user_id": user_id, "error": str(exc)},
            )
            raise ProfileUnavailableError(
                "Could not verify transcription usage", hint=MANUAL_ENTRY_HINT
            ) from exc
        return profile or UsageProfile.default(user_id)

    async def _check_low_credit(self) -> list[str]:
        gauge = self._low_credit_gauge
        if gauge is None or gauge >= self._low_credit_threshold:
            return []
        await self._throttle.notify(
            LOW_CREDIT_ALERT_KEY,
            "Transcription provider credit is running low",
            f"Remaining provider credit is {gauge:g}, below the alert "
            f"threshold of {self._low_credit_threshold:g}.",
        )
        return [LOW_CREDIT_ALERT_CODE]

    async def _record_usage(self, profile: UsageProfile, now: datetime) -> None:
        updated = profile.incremented(now)
        try:
            await self._profiles.save_usage(updated)
        except Exception as exc:
            logger.error(
                "Failed to record transcription usage: %s",
                exc,
                extra={"user_id": profile.user_id, "error": str(exc)},
            )

    async def close(self) -> None:
        """Close every collaborator's network resources."""
        for collaborator in (self._auth, self._profiles, self._orchestrator):
            if collaborator is not None:
                await collaborator.close()
