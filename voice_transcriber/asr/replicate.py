"""Replicate predictions API client.

Creates Whisper predictions from a public audio URL and fetches their
status. HTTP status codes are classified here, before any body parsing, so
that credit exhaustion and rate limiting are never mistaken for a generic
failure.
"""

import logging
from typing import Any

import httpx

from voice_transcriber.asr.interface import JobStatus, PredictionJob, TranscriptionClient
from voice_transcriber.utils.errors import (
    InsufficientCreditsError,
    JobStatusUnavailableError,
    RateLimitedError,
    SubmissionFailedError,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.replicate.com/v1"
MAX_SYNC_WAIT_SECONDS = 60


def _body_excerpt(response: httpx.Response, limit: int = 300) -> str:
    return response.text[:limit]


def _raise_for_account_status(
    response: httpx.Response, model_version: str, job_id: str | None = None
) -> None:
    """Raise for the statuses that mean the account itself cannot proceed."""
    if response.status_code == 402:
        raise InsufficientCreditsError(
            "Replicate account has insufficient credit",
            model_version=model_version,
            job_id=job_id,
        )
    if response.status_code == 429:
        raise RateLimitedError(
            "Replicate rate limit reached",
            model_version=model_version,
            job_id=job_id,
        )


class ReplicateClient(TranscriptionClient):
    """Replicate-hosted Whisper transcription client.

    Args:
        api_token: Replicate API token.
        whisper_model: Value for the ``model`` input (e.g. "large-v3").
        base_url: API base URL (default production endpoint).
        client: Optional pre-built AsyncClient, mainly for tests.
        timeout: Per-request timeout in seconds when building a client.
    """

    provider_name = "replicate"

    def __init__(
        self,
        api_token: str,
        whisper_model: str = "large-v3",
        base_url: str = DEFAULT_BASE_URL,
        client: httpx.AsyncClient | None = None,
        timeout: float = 75.0,
    ) -> None:
        if not api_token:
            raise ValueError("api_token is required")
        self._api_token = api_token
        self._whisper_model = whisper_model
        self._base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout)

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_token}",
            "Content-Type": "application/json",
        }

    async def close(self) -> None:
        await self._client.aclose()

    def _build_input(self, audio_url: str, language: str) -> dict[str, Any]:
        return {
            "audio": audio_url,
            "language": language,
            "model": self._whisper_model,
            "transcription": "plain text",
            "translate": False,
        }

    async def create_prediction(
        self,
        model_version: str,
        audio_url: str,
        language: str,
        sync_wait_seconds: int | None = None,
    ) -> PredictionJob:
        """Create a prediction for one model version.

        When ``sync_wait_seconds`` is set, Replicate holds the response open
        for up to that long, so short clips often come back already
        succeeded.

        Returns:
            The job as reported in the creation response.

        Raises:
            InsufficientCreditsError: HTTP 402.
            RateLimitedError: HTTP 429.
            SubmissionFailedError: Other non-2xx status, transport error,
                or a response without a job id.
        """
        headers = self._headers()
        if sync_wait_seconds:
            wait = max(1, min(MAX_SYNC_WAIT_SECONDS, int(sync_wait_seconds)))
            headers["Prefer"] = f"wait={wait}"

        payload = {
            "version": model_version,
            "input": self._build_input(audio_url, language),
        }

        try:
            response = await self._client.post(
                f"{self._base_url}/predictions", headers=headers, json=payload
            )
        except httpx.HTTPError as exc:
            raise SubmissionFailedError(
                f"Failed to submit prediction: {exc}", model_version=model_version
            ) from exc

        _raise_for_account_status(response, model_version)
        if not response.is_success:
            raise SubmissionFailedError(
                f"Prediction submission failed with status "
                f"{response.status_code}: {_body_excerpt(response)}",
                model_version=model_version,
                http_status=response.status_code,
            )

        job = self._parse_job(response, model_version)
        if not job.job_id:
            raise SubmissionFailedError(
                "No prediction id in submission response",
                model_version=model_version,
                http_status=response.status_code,
            )
        logger.info(
            "Submitted Replicate prediction %s (%s)",
            job.job_id,
            job.status.value,
            extra={"model_version": model_version, "job_id": job.job_id},
        )
        return job

    async def get_prediction(self, job_id: str, model_version: str) -> PredictionJob:
        """Fetch the current state of a prediction.

        Raises:
            InsufficientCreditsError: HTTP 402.
            RateLimitedError: HTTP 429.
            JobStatusUnavailableError: Other non-2xx status or transport error.
        """
        try:
            response = await self._client.get(
                f"{self._base_url}/predictions/{job_id}", headers=self._headers()
            )
        except httpx.HTTPError as exc:
            raise JobStatusUnavailableError(
                f"Failed to poll prediction status: {exc}",
                model_version=model_version,
                job_id=job_id,
            ) from exc

        _raise_for_account_status(response, model_version, job_id)
        if not response.is_success:
            raise JobStatusUnavailableError(
                f"Poll failed with status {response.status_code}: "
                f"{_body_excerpt(response)}",
                model_version=model_version,
                job_id=job_id,
                http_status=response.status_code,
            )

        job = self._parse_job(response, model_version)
        if not job.job_id:
            job.job_id = job_id
        return job

    def _parse_job(self, response: httpx.Response, model_version: str) -> PredictionJob:
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        error = body.get("error")
        return PredictionJob(
            model_version=model_version,
            job_id=str(body.get("id") or ""),
            status=JobStatus.parse(body.get("status")),
            output=body.get("output"),
            error=str(error) if error else None,
        )
