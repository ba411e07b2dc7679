"""Provider-neutral prediction job model and client interface.

A prediction is one provider-side unit of transcription work. Clients
classify HTTP-level failures into the error taxonomy themselves; the
orchestrator only ever sees PredictionJob values or typed exceptions.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any


class JobStatus(str, Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"

    @classmethod
    def parse(cls, raw: object) -> JobStatus:
        """Map a provider status string onto JobStatus.

        ``starting`` is treated as queued; anything unrecognized is treated
        as still processing so it keeps being polled.
        """
        if not isinstance(raw, str):
            return cls.PROCESSING
        value = raw.strip().lower()
        if value == "starting":
            return cls.QUEUED
        if value == "cancelled":
            return cls.CANCELED
        try:
            return cls(value)
        except ValueError:
            return cls.PROCESSING


@dataclass
class PredictionJob:
    """Snapshot of a provider job as of the last create/get call."""

    model_version: str
    job_id: str
    status: JobStatus
    output: Any = None
    error: str | None = None


class TranscriptionClient(ABC):
    """Abstract base class for speech-to-text provider clients."""

    provider_name: str = ""

    @abstractmethod
    async def create_prediction(
        self,
        model_version: str,
        audio_url: str,
        language: str,
        sync_wait_seconds: int | None = None,
    ) -> PredictionJob:
        """Submit a transcription job.

        Raises:
            InsufficientCreditsError: Provider answered 402.
            RateLimitedError: Provider answered 429.
            SubmissionFailedError: Any other non-2xx answer or transport error.
        """

    @abstractmethod
    async def get_prediction(self, job_id: str, model_version: str) -> PredictionJob:
        """Fetch the current state of a job.

        Raises:
            InsufficientCreditsError: Provider answered 402.
            RateLimitedError: Provider answered 429.
            JobStatusUnavailableError: Any other non-2xx answer or transport error.
        """

    async def close(self) -> None:
        """Release any held network resources."""
