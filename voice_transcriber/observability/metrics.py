"""Per-request transcription metrics.

TranscriptionMetrics captures one request's outcome; StageTimer measures the
wall time of a stage; log_transcription_metrics() emits the record as a
single structured JSON line on stdout for log-based dashboards.
"""

from __future__ import annotations

import json
import time
from dataclasses import asdict, dataclass
from datetime import UTC, datetime


@dataclass
class TranscriptionMetrics:
    """All metrics collected for a single transcription request."""

    user_id: str
    status: str
    tier: str = "free"
    provider: str = "replicate"
    model_version: str | None = None
    job_id: str | None = None
    model_attempts: int = 0
    text_length: int = 0
    truncated: bool = False
    provider_duration_seconds: float = 0.0
    total_duration_seconds: float = 0.0
    error_code: str | None = None
    error_message: str | None = None


class StageTimer:
    """Context manager that records wall-clock duration of a stage.

    Usage:
        timer = StageTimer("provider")
        with timer:
            await do_work()
        print(timer.duration_seconds)
    """

    def __init__(self, stage_name: str) -> None:
        self.stage_name = stage_name
        self.start_time: datetime | None = None
        self.end_time: datetime | None = None
        self.duration_seconds: float = 0.0
        self._mono_start: float = 0.0

    def __enter__(self) -> StageTimer:
        self.start_time = datetime.now(UTC)
        self._mono_start = time.monotonic()
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        self.duration_seconds = time.monotonic() - self._mono_start
        self.end_time = datetime.now(UTC)


def log_transcription_metrics(metrics: TranscriptionMetrics) -> None:
    """Emit request metrics as one structured JSON line to stdout.

    Args:
        metrics: Populated TranscriptionMetrics dataclass.
    """
    entry = {
        "timestamp": datetime.now(UTC).isoformat(),
        "severity": "INFO",
        "metric_type": "transcription_request",
        **asdict(metrics),
    }
    print(json.dumps(entry))
