"""Transcription orchestrator: one job, several model versions.

Model versions are tried in order. Each attempt submits a prediction and,
if it is not already resolved, polls it with a growing interval. Moving to
the next version only happens when an attempt produced no usable result
(submission failure, job failed, polls exhausted). Conditions tied to the
account rather than the model (no credit, rate limited, canceled) end the
whole chain at once.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterator
from dataclasses import dataclass

from voice_transcriber.asr.interface import JobStatus, PredictionJob, TranscriptionClient
from voice_transcriber.asr.output import decode_output
from voice_transcriber.utils.errors import (
    ConfigError,
    JobCanceledError,
    JobFailedError,
    JobStatusUnavailableError,
    ProviderError,
    SubmissionFailedError,
    TranscriptionTimeoutError,
)

logger = logging.getLogger(__name__)

MAX_POLL_ATTEMPTS = 15
INITIAL_POLL_INTERVAL_SECONDS = 1.5
MAX_POLL_INTERVAL_SECONDS = 5.0
POLL_BACKOFF_FACTOR = 1.25

# Rejections that describe the request or the credentials rather than the
# model; another model version would be refused the same way.
TERMINAL_SUBMISSION_STATUSES = frozenset({400, 401, 403})

Sleep = Callable[[float], Awaitable[None]]


@dataclass
class TranscriptionResult:
    text: str
    model_version: str
    job_id: str
    model_attempts: int


def poll_intervals(
    attempts: int = MAX_POLL_ATTEMPTS,
    initial: float = INITIAL_POLL_INTERVAL_SECONDS,
    ceiling: float = MAX_POLL_INTERVAL_SECONDS,
    factor: float = POLL_BACKOFF_FACTOR,
) -> Iterator[float]:
    """Yield the sleep before each poll: initial, then x factor, capped."""
    interval = initial
    for _ in range(attempts):
        yield interval
        interval = min(ceiling, interval * factor)


class _AdvanceToNextVersion(Exception):
    """Internal signal: this version produced nothing usable."""

    def __init__(self, failure: ProviderError) -> None:
        self.failure = failure
        super().__init__(str(failure))


class TranscriptionOrchestrator:
    """Runs a transcription across an ordered fallback chain of versions.

    Args:
        client: Provider client used for every attempt.
        model_versions: Version ids, primary first.
        sync_wait_seconds: Synchronous wait requested on submission, if any.
        max_poll_attempts: Status checks per version before giving up on it.
        initial_poll_interval: First sleep between checks, in seconds.
        max_poll_interval: Ceiling on the sleep between checks.
        sleep: Awaitable sleep, replaceable in tests.
    """

    def __init__(
        self,
        client: TranscriptionClient,
        model_versions: list[str],
        sync_wait_seconds: int | None = None,
        max_poll_attempts: int = MAX_POLL_ATTEMPTS,
        initial_poll_interval: float = INITIAL_POLL_INTERVAL_SECONDS,
        max_poll_interval: float = MAX_POLL_INTERVAL_SECONDS,
        sleep: Sleep | None = None,
    ) -> None:
        versions = [v for v in model_versions if v]
        if not versions:
            raise ConfigError("At least one model version must be configured")
        self._client = client
        self._model_versions = versions
        self._sync_wait_seconds = sync_wait_seconds
        self._max_poll_attempts = max_poll_attempts
        self._initial_poll_interval = initial_poll_interval
        self._max_poll_interval = max_poll_interval
        self._sleep = sleep or asyncio.sleep

    @property
    def provider_name(self) -> str:
        return self._client.provider_name

    async def close(self) -> None:
        await self._client.close()

    async def transcribe(self, audio_url: str, language: str = "en") -> TranscriptionResult:
        """Transcribe ``audio_url``, falling back across model versions.

        Returns:
            TranscriptionResult from the first version that succeeded.

        Raises:
            InsufficientCreditsError, RateLimitedError, JobCanceledError:
                Raised as soon as they occur, on any version.
            SubmissionFailedError, JobFailedError, TranscriptionTimeoutError:
                The last failure, once every version has been tried.
        """
        last_failure: ProviderError | None = None
        total = len(self._model_versions)

        for index, version in enumerate(self._model_versions, start=1):
            has_fallback = index < total
            try:
                job = await self._attempt(version, audio_url, language, has_fallback)
            except _AdvanceToNextVersion as advance:
                last_failure = advance.failure
                logger.warning(
                    "Model version %d/%d produced no result, trying next: %s",
                    index,
                    total,
                    advance.failure,
                    extra={"model_version": version, "error": str(advance.failure)},
                )
                continue

            decoded = decode_output(job.output)
            logger.info(
                "Transcription succeeded on model version %d/%d (%s output)",
                index,
                total,
                decoded.shape.value,
                extra={"model_version": version, "job_id": job.job_id},
            )
            return TranscriptionResult(
                text=decoded.text,
                model_version=version,
                job_id=job.job_id,
                model_attempts=index,
            )

        # Only reachable when every version advanced.
        assert last_failure is not None
        raise last_failure

    async def _attempt(
        self, version: str, audio_url: str, language: str, has_fallback: bool
    ) -> PredictionJob:
        try:
            job = await self._client.create_prediction(
                version, audio_url, language, self._sync_wait_seconds
            )
        except SubmissionFailedError as exc:
            if exc.http_status in TERMINAL_SUBMISSION_STATUSES or not has_fallback:
                raise
            raise _AdvanceToNextVersion(exc) from exc

        resolved = self._resolve(job, has_fallback)
        if resolved is not None:
            return resolved
        return await self._poll(job, has_fallback)

    def _resolve(self, job: PredictionJob, has_fallback: bool) -> PredictionJob | None:
        """Return the job if it succeeded, None if still in flight, else raise."""
        if job.status is JobStatus.SUCCEEDED:
            return job
        if job.status is JobStatus.CANCELED:
            raise JobCanceledError(
                f"Prediction {job.job_id} was canceled",
                model_version=job.model_version,
                job_id=job.job_id,
            )
        if job.status is JobStatus.FAILED:
            failure = JobFailedError(
                f"Prediction {job.job_id} failed: {job.error or 'unknown error'}",
                model_version=job.model_version,
                job_id=job.job_id,
                provider_message=job.error,
            )
            if has_fallback:
                raise _AdvanceToNextVersion(failure)
            raise failure
        return None

    async def _poll(self, job: PredictionJob, has_fallback: bool) -> PredictionJob:
        intervals = poll_intervals(
            attempts=self._max_poll_attempts,
            initial=self._initial_poll_interval,
            ceiling=self._max_poll_interval,
        )
        for attempt, interval in enumerate(intervals, start=1):
            await self._sleep(interval)
            try:
                current = await self._client.get_prediction(job.job_id, job.model_version)
            except JobStatusUnavailableError as exc:
                logger.warning(
                    "Poll %d/%d for %s failed, will retry: %s",
                    attempt,
                    self._max_poll_attempts,
                    job.job_id,
                    exc,
                    extra={"model_version": job.model_version, "job_id": job.job_id},
                )
                continue

            resolved = self._resolve(current, has_fallback)
            if resolved is not None:
                return resolved

        timeout = TranscriptionTimeoutError(
            f"Prediction {job.job_id} unresolved after "
            f"{self._max_poll_attempts} status checks",
            model_version=job.model_version,
            job_id=job.job_id,
        )
        if has_fallback:
            raise _AdvanceToNextVersion(timeout)
        raise timeout
