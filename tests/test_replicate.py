"""Tests for the Replicate predictions client."""

import json

import httpx
import pytest

from voice_transcriber.asr.interface import JobStatus, TranscriptionClient
from voice_transcriber.asr.registry import get_transcription_client
from voice_transcriber.asr.replicate import ReplicateClient
from voice_transcriber.utils.errors import (
    ConfigError,
    InsufficientCreditsError,
    JobStatusUnavailableError,
    RateLimitedError,
    SubmissionFailedError,
)

BASE_URL = "https://replicate.test/v1"
VERSION = "version-primary"


@pytest.fixture
def client() -> ReplicateClient:
    return ReplicateClient(api_token="r8_test", base_url=BASE_URL)


class TestConstruction:
    def test_requires_api_token(self) -> None:
        with pytest.raises(ValueError, match="api_token is required"):
            ReplicateClient(api_token="")

    def test_is_transcription_client(self, client: ReplicateClient) -> None:
        assert isinstance(client, TranscriptionClient)
        assert client.provider_name == "replicate"

    def test_registry_builds_replicate(self) -> None:
        built = get_transcription_client("replicate", api_token="r8_test")
        assert isinstance(built, ReplicateClient)

    def test_registry_rejects_unknown_provider(self) -> None:
        with pytest.raises(ConfigError, match="Available: replicate"):
            get_transcription_client("deepgram", api_token="x")


class TestCreatePrediction:
    async def test_sends_expected_payload(self, client, httpx_mock) -> None:
        httpx_mock.add_response(
            url=f"{BASE_URL}/predictions",
            method="POST",
            status_code=201,
            json={"id": "pred-1", "status": "starting", "output": None},
        )

        job = await client.create_prediction(
            VERSION, "https://cdn.test/a.m4a", "en", sync_wait_seconds=5
        )

        request = httpx_mock.get_request()
        assert request.headers["Authorization"] == "Bearer r8_test"
        assert request.headers["Prefer"] == "wait=5"
        body = json.loads(request.content)
        assert body == {
            "version": VERSION,
            "input": {
                "audio": "https://cdn.test/a.m4a",
                "language": "en",
                "model": "large-v3",
                "transcription": "plain text",
                "translate": False,
            },
        }
        assert job.job_id == "pred-1"
        assert job.status is JobStatus.QUEUED
        assert job.model_version == VERSION

    async def test_omits_prefer_header_without_sync_wait(self, client, httpx_mock) -> None:
        httpx_mock.add_response(
            url=f"{BASE_URL}/predictions",
            method="POST",
            status_code=201,
            json={"id": "pred-1", "status": "processing"},
        )

        await client.create_prediction(VERSION, "https://cdn.test/a.m4a", "en")

        assert "Prefer" not in httpx_mock.get_request().headers

    async def test_sync_wait_is_bounded(self, client, httpx_mock) -> None:
        httpx_mock.add_response(
            url=f"{BASE_URL}/predictions",
            method="POST",
            status_code=201,
            json={"id": "pred-1", "status": "processing"},
        )

        await client.create_prediction(VERSION, "u", "en", sync_wait_seconds=600)

        assert httpx_mock.get_request().headers["Prefer"] == "wait=60"

    async def test_succeeded_immediately(self, client, httpx_mock) -> None:
        httpx_mock.add_response(
            url=f"{BASE_URL}/predictions",
            method="POST",
            status_code=201,
            json={"id": "pred-1", "status": "succeeded", "output": {"transcription": "hi"}},
        )

        job = await client.create_prediction(VERSION, "u", "en")

        assert job.status is JobStatus.SUCCEEDED
        assert job.output == {"transcription": "hi"}

    async def test_402_is_insufficient_credits(self, client, httpx_mock) -> None:
        httpx_mock.add_response(
            url=f"{BASE_URL}/predictions",
            method="POST",
            status_code=402,
            json={"detail": "You have insufficient credit"},
        )

        with pytest.raises(InsufficientCreditsError) as excinfo:
            await client.create_prediction(VERSION, "u", "en")
        assert excinfo.value.model_version == VERSION

    async def test_429_is_rate_limited(self, client, httpx_mock) -> None:
        httpx_mock.add_response(
            url=f"{BASE_URL}/predictions", method="POST", status_code=429
        )

        with pytest.raises(RateLimitedError):
            await client.create_prediction(VERSION, "u", "en")

    async def test_other_status_is_submission_failure(self, client, httpx_mock) -> None:
        httpx_mock.add_response(
            url=f"{BASE_URL}/predictions",
            method="POST",
            status_code=500,
            text="upstream exploded",
        )

        with pytest.raises(SubmissionFailedError, match="status 500") as excinfo:
            await client.create_prediction(VERSION, "u", "en")
        assert excinfo.value.http_status == 500

    async def test_missing_id_is_submission_failure(self, client, httpx_mock) -> None:
        httpx_mock.add_response(
            url=f"{BASE_URL}/predictions",
            method="POST",
            status_code=201,
            json={"status": "starting"},
        )

        with pytest.raises(SubmissionFailedError, match="No prediction id"):
            await client.create_prediction(VERSION, "u", "en")

    async def test_transport_error_is_submission_failure(self, client, httpx_mock) -> None:
        httpx_mock.add_exception(httpx.ConnectError("connection refused"))

        with pytest.raises(SubmissionFailedError) as excinfo:
            await client.create_prediction(VERSION, "u", "en")
        assert excinfo.value.http_status is None


class TestGetPrediction:
    async def test_parses_status_and_error(self, client, httpx_mock) -> None:
        httpx_mock.add_response(
            url=f"{BASE_URL}/predictions/pred-1",
            method="GET",
            json={"id": "pred-1", "status": "failed", "error": "CUDA out of memory"},
        )

        job = await client.get_prediction("pred-1", VERSION)

        assert job.status is JobStatus.FAILED
        assert job.error == "CUDA out of memory"

    async def test_unknown_status_counts_as_processing(self, client, httpx_mock) -> None:
        httpx_mock.add_response(
            url=f"{BASE_URL}/predictions/pred-1",
            method="GET",
            json={"id": "pred-1", "status": "warming_up"},
        )

        job = await client.get_prediction("pred-1", VERSION)

        assert job.status is JobStatus.PROCESSING

    @pytest.mark.parametrize(
        ("status", "exc_type"),
        [(402, InsufficientCreditsError), (429, RateLimitedError)],
    )
    async def test_account_statuses_raise(self, client, httpx_mock, status, exc_type) -> None:
        httpx_mock.add_response(
            url=f"{BASE_URL}/predictions/pred-1", method="GET", status_code=status
        )

        with pytest.raises(exc_type) as excinfo:
            await client.get_prediction("pred-1", VERSION)
        assert excinfo.value.job_id == "pred-1"

    async def test_other_status_is_unavailable(self, client, httpx_mock) -> None:
        httpx_mock.add_response(
            url=f"{BASE_URL}/predictions/pred-1", method="GET", status_code=503
        )

        with pytest.raises(JobStatusUnavailableError) as excinfo:
            await client.get_prediction("pred-1", VERSION)
        assert excinfo.value.http_status == 503


class TestJobStatusParse:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("starting", JobStatus.QUEUED),
            ("queued", JobStatus.QUEUED),
            ("processing", JobStatus.PROCESSING),
            ("succeeded", JobStatus.SUCCEEDED),
            ("failed", JobStatus.FAILED),
            ("canceled", JobStatus.CANCELED),
            ("cancelled", JobStatus.CANCELED),
            ("SUCCEEDED", JobStatus.SUCCEEDED),
            (None, JobStatus.PROCESSING),
        ],
    )
    def test_parse(self, raw: object, expected: JobStatus) -> None:
        assert JobStatus.parse(raw) is expected
