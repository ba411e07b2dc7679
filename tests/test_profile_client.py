"""Tests for voice_transcriber.storage.profile_client module."""

import json
from datetime import UTC, datetime
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from voice_transcriber.quota.tiers import SubscriptionTier
from voice_transcriber.storage.models import UsageProfile
from voice_transcriber.storage.profile_client import ProfileClient
from voice_transcriber.utils.errors import StorageError

BASE_URL = "https://profiles.example.com"


@pytest.fixture
def client():
    return ProfileClient(base_url=BASE_URL, internal_secret="test-secret")


class TestProfileClientInit:
    """Tests for ProfileClient initialization."""

    def test_strips_trailing_slash(self):
        """ProfileClient strips trailing slash from base_url."""
        client = ProfileClient(base_url=f"{BASE_URL}/", internal_secret="s")
        assert client.base_url == BASE_URL

    def test_missing_url_raises_storage_error(self):
        with pytest.raises(StorageError, match="PROFILE_SERVICE_URL"):
            ProfileClient(base_url="", internal_secret="s")

    def test_missing_secret_raises_storage_error(self):
        with pytest.raises(StorageError, match="PROFILE_SERVICE_SECRET"):
            ProfileClient(base_url=BASE_URL, internal_secret="")


class TestGetProfile:
    """Tests for ProfileClient.get_profile()."""

    async def test_parses_record(self, client, httpx_mock):
        """get_profile maps the store's field names onto UsageProfile."""
        httpx_mock.add_response(
            url=f"{BASE_URL}/profiles/user-1",
            method="GET",
            json={
                "subscription_tier": "pro",
                "transcriptions_this_month": 4,
                "transcriptions_lifetime": 31,
                "transcription_last_reset_date": "2026-10-01T00:00:00Z",
            },
        )

        profile = await client.get_profile("user-1")

        assert profile is not None
        assert profile.tier is SubscriptionTier.PRO
        assert profile.used_this_month == 4
        assert profile.used_lifetime == 31
        assert profile.last_reset_at == datetime(2026, 10, 1, tzinfo=UTC)
        assert profile.exists is True
        assert httpx_mock.get_request().headers["X-Internal-Secret"] == "test-secret"

    async def test_missing_profile_returns_none(self, client, httpx_mock):
        """A 404 means the store has no record, not an error."""
        httpx_mock.add_response(
            url=f"{BASE_URL}/profiles/user-1", method="GET", status_code=404
        )

        assert await client.get_profile("user-1") is None

    async def test_server_error_raises(self, client, httpx_mock):
        httpx_mock.add_response(
            url=f"{BASE_URL}/profiles/user-1", method="GET", status_code=500
        )

        with pytest.raises(StorageError, match="HTTP 500") as excinfo:
            await client.get_profile("user-1")
        assert excinfo.value.operation == "get_profile"
        assert excinfo.value.user_id == "user-1"

    async def test_non_object_body_raises(self, client, httpx_mock):
        httpx_mock.add_response(
            url=f"{BASE_URL}/profiles/user-1", method="GET", json=["not", "a", "dict"]
        )

        with pytest.raises(StorageError, match="non-object"):
            await client.get_profile("user-1")

    async def test_transport_errors_are_retried_then_raised(self):
        """get_profile retries transport failures before giving up."""
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            raise httpx.ConnectError("connection refused", request=request)

        client = ProfileClient(
            base_url=BASE_URL,
            internal_secret="s",
            client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )

        with patch("voice_transcriber.utils.retry.asyncio.sleep", new=AsyncMock()):
            with pytest.raises(StorageError, match="Profile fetch failed"):
                await client.get_profile("user-1")

        assert calls == 3

    async def test_transient_transport_error_recovers(self):
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            if calls == 1:
                raise httpx.ReadTimeout("timed out", request=request)
            return httpx.Response(200, json={"subscription_tier": "vip"})

        client = ProfileClient(
            base_url=BASE_URL,
            internal_secret="s",
            client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )

        with patch("voice_transcriber.utils.retry.asyncio.sleep", new=AsyncMock()):
            profile = await client.get_profile("user-1")

        assert profile.tier is SubscriptionTier.VIP
        assert calls == 2


class TestSaveUsage:
    """Tests for ProfileClient.save_usage()."""

    async def test_existing_profile_is_patched(self, client, httpx_mock):
        httpx_mock.add_response(
            url=f"{BASE_URL}/profiles/user-1", method="PATCH", status_code=200
        )
        profile = UsageProfile(
            user_id="user-1",
            tier=SubscriptionTier.PREMIUM,
            used_this_month=3,
            used_lifetime=12,
            last_reset_at=datetime(2026, 10, 1, tzinfo=UTC),
        )

        await client.save_usage(profile)

        body = json.loads(httpx_mock.get_request().content)
        assert body == {
            "transcriptions_this_month": 3,
            "transcriptions_lifetime": 12,
            "transcription_last_reset_date": "2026-10-01T00:00:00+00:00",
        }

    async def test_usage_write_leaves_stored_tier_alone(self, client, httpx_mock):
        """A tier the store knows but this service does not survives the write."""
        httpx_mock.add_response(
            url=f"{BASE_URL}/profiles/user-1",
            method="GET",
            json={
                "subscription_tier": "enterprise",
                "transcriptions_this_month": 0,
                "transcriptions_lifetime": 0,
            },
        )
        httpx_mock.add_response(
            url=f"{BASE_URL}/profiles/user-1", method="PATCH", status_code=200
        )

        profile = await client.get_profile("user-1")
        await client.save_usage(profile.incremented(datetime(2026, 10, 17, tzinfo=UTC)))

        patch_request = httpx_mock.get_request(method="PATCH")
        body = json.loads(patch_request.content)
        assert "subscription_tier" not in body
        assert body["transcriptions_this_month"] == 1
        assert body["transcriptions_lifetime"] == 1

    async def test_unknown_caller_gets_new_profile(self, client, httpx_mock):
        """Profiles that did not exist are created with POST /profiles."""
        httpx_mock.add_response(
            url=f"{BASE_URL}/profiles", method="POST", status_code=201
        )
        profile = UsageProfile.default("user-2").incremented(
            datetime(2026, 10, 17, tzinfo=UTC)
        )

        await client.save_usage(profile)

        body = json.loads(httpx_mock.get_request().content)
        assert body["user_id"] == "user-2"
        assert body["subscription_tier"] == "free"
        assert body["transcriptions_this_month"] == 1
        assert body["transcriptions_lifetime"] == 1

    async def test_write_failure_raises(self, client, httpx_mock):
        httpx_mock.add_response(
            url=f"{BASE_URL}/profiles/user-1", method="PATCH", status_code=503
        )

        with pytest.raises(StorageError, match="update_usage failed: HTTP 503") as excinfo:
            await client.save_usage(UsageProfile(user_id="user-1"))
        assert excinfo.value.operation == "update_usage"
