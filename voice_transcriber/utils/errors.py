"""Custom exception hierarchy for the transcription service.

All request-facing exceptions inherit from TranscriptionServiceError, which
carries the HTTP status, machine-readable code, and an optional user hint
so the API layer can render any failure without inspecting its type.
"""

from __future__ import annotations

from typing import Any

MANUAL_ENTRY_HINT = "Please try typing your entry instead."


class TranscriptionServiceError(Exception):
    """Base exception for all errors surfaced to the caller."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        hint: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        self.hint = hint
        self.extra = extra or {}
        super().__init__(message)

    def to_payload(self) -> dict[str, Any]:
        """Render the error as the JSON body returned to the caller."""
        payload: dict[str, Any] = {"error": str(self), "code": self.code}
        if self.hint:
            payload["hint"] = self.hint
        payload.update(self.extra)
        return payload


class AuthError(TranscriptionServiceError):
    """Raised when the caller's identity cannot be resolved."""

    status_code = 401
    code = "AUTH_FAILED"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        hint: str | None = None,
    ) -> None:
        if code:
            self.code = code
        super().__init__(message, hint=hint)


class ConfigError(TranscriptionServiceError):
    """Raised when required server configuration is missing."""

    status_code = 500
    code = "CONFIG_ERROR"


class RequestValidationError(TranscriptionServiceError):
    """Raised when the request body is malformed."""

    status_code = 400
    code = "INVALID_INPUT"


class ProfileUnavailableError(TranscriptionServiceError):
    """Raised when the caller's usage cannot be read, so quota is unknown."""

    status_code = 500
    code = "PROFILE_UNAVAILABLE"


class QuotaExceededError(TranscriptionServiceError):
    """Raised when the caller has used up their tier's allowance."""

    status_code = 402
    code = "TRANSCRIPTION_LIMIT_REACHED"

    def __init__(
        self,
        message: str,
        limit_type: str,
        limit: int,
        used: int,
        tier: str,
    ) -> None:
        self.limit_type = limit_type
        self.limit = limit
        self.used = used
        self.tier = tier
        super().__init__(
            message,
            hint=MANUAL_ENTRY_HINT,
            extra={
                "limitType": limit_type,
                "limit": limit,
                "used": used,
                "tier": tier,
            },
        )


class ProviderError(TranscriptionServiceError):
    """Base for failures classified from the speech-to-text provider."""

    def __init__(
        self,
        message: str,
        model_version: str | None = None,
        job_id: str | None = None,
    ) -> None:
        self.model_version = model_version
        self.job_id = job_id
        super().__init__(message, hint=MANUAL_ENTRY_HINT)


class InsufficientCreditsError(ProviderError):
    """Provider account has no credit left (HTTP 402)."""

    status_code = 402
    code = "INSUFFICIENT_CREDITS"


class RateLimitedError(ProviderError):
    """Provider is throttling this account (HTTP 429)."""

    status_code = 429
    code = "RATE_LIMITED"


class TranscriptionTimeoutError(ProviderError):
    """Job was still unresolved after the last poll attempt."""

    status_code = 504
    code = "TRANSCRIPTION_TIMEOUT"


class ProviderFailureError(ProviderError):
    """Generic provider failure with no more specific classification."""

    status_code = 500
    code = "TRANSCRIPTION_FAILED"


class SubmissionFailedError(ProviderFailureError):
    """Job creation was rejected or could not be sent."""

    def __init__(
        self,
        message: str,
        model_version: str | None = None,
        http_status: int | None = None,
    ) -> None:
        self.http_status = http_status
        super().__init__(message, model_version=model_version)


class JobFailedError(ProviderFailureError):
    """Provider reported the job as failed."""

    def __init__(
        self,
        message: str,
        model_version: str | None = None,
        job_id: str | None = None,
        provider_message: str | None = None,
    ) -> None:
        self.provider_message = provider_message
        super().__init__(message, model_version=model_version, job_id=job_id)


class JobCanceledError(ProviderFailureError):
    """Job was canceled on the provider side."""


class JobStatusUnavailableError(ProviderFailureError):
    """A status check could not be completed; the job itself may be fine."""

    def __init__(
        self,
        message: str,
        model_version: str | None = None,
        job_id: str | None = None,
        http_status: int | None = None,
    ) -> None:
        self.http_status = http_status
        super().__init__(message, model_version=model_version, job_id=job_id)


class StorageError(Exception):
    """Raised when profile store operations fail."""

    def __init__(
        self,
        message: str,
        user_id: str | None = None,
        operation: str | None = None,
    ) -> None:
        self.user_id = user_id
        self.operation = operation
        super().__init__(message)

    def __str__(self) -> str:
        if self.user_id:
            return f"[user={self.user_id}] {super().__str__()}"
        return super().__str__()
