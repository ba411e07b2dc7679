"""Profile store client.

Reads and writes usage profiles through the internal profile service. The
service owns the datastore; this process only talks to its HTTP API.
"""

from __future__ import annotations

import logging

import httpx

from voice_transcriber.storage.models import UsageProfile
from voice_transcriber.utils.errors import StorageError
from voice_transcriber.utils.retry import retry_with_backoff

logger = logging.getLogger(__name__)


class ProfileClient:
    """Client for usage profiles via the profile service internal API.

    Args:
        base_url: Profile service base URL.
        internal_secret: Shared secret sent as X-Internal-Secret.
        client: Optional pre-built AsyncClient, mainly for tests.
    """

    def __init__(
        self,
        base_url: str,
        internal_secret: str,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = (base_url or "").rstrip("/")
        self.internal_secret = internal_secret or ""

        if not self.base_url:
            raise StorageError("PROFILE_SERVICE_URL is required", operation="init")
        if not self.internal_secret:
            raise StorageError("PROFILE_SERVICE_SECRET is required", operation="init")

        self._client = client or httpx.AsyncClient(timeout=10.0)

    def _headers(self) -> dict[str, str]:
        return {
            "X-Internal-Secret": self.internal_secret,
            "Content-Type": "application/json",
        }

    def _profile_url(self, user_id: str) -> str:
        return f"{self.base_url}/profiles/{user_id}"

    async def close(self) -> None:
        await self._client.aclose()

    @retry_with_backoff(max_retries=2, retryable_exceptions=(httpx.RequestError,))
    async def _fetch(self, user_id: str) -> httpx.Response:
        return await self._client.get(self._profile_url(user_id), headers=self._headers())

    async def get_profile(self, user_id: str) -> UsageProfile | None:
        """Load a caller's usage profile.

        Returns:
            The profile, or None if the store has no record for the user.

        Raises:
            StorageError: On any other HTTP error or transport failure.
        """
        try:
            response = await self._fetch(user_id)
        except httpx.RequestError as exc:
            raise StorageError(
                f"Profile fetch failed: {exc}", user_id=user_id, operation="get_profile"
            ) from exc

        if response.status_code == 404:
            return None
        if not response.is_success:
            raise StorageError(
                f"Profile fetch failed: HTTP {response.status_code}",
                user_id=user_id,
                operation="get_profile",
            )

        try:
            record = response.json()
        except ValueError as exc:
            raise StorageError(
                "Profile fetch returned invalid JSON",
                user_id=user_id,
                operation="get_profile",
            ) from exc
        if not isinstance(record, dict):
            raise StorageError(
                "Profile fetch returned a non-object body",
                user_id=user_id,
                operation="get_profile",
            )
        return UsageProfile.from_record(user_id, record)

    async def save_usage(self, profile: UsageProfile) -> None:
        """Write a profile's counters back to the store.

        Existing profiles are patched; unknown callers get a new record.

        Raises:
            StorageError: If the write fails.
        """
        if profile.exists:
            method, url, operation = "PATCH", self._profile_url(profile.user_id), "update_usage"
            payload = profile.usage_record()
        else:
            method, url, operation = "POST", f"{self.base_url}/profiles", "create_profile"
            payload = {"user_id": profile.user_id, **profile.to_record()}

        try:
            response = await self._client.request(
                method, url, headers=self._headers(), json=payload
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise StorageError(
                f"Profile {operation} failed: HTTP {exc.response.status_code}",
                user_id=profile.user_id,
                operation=operation,
            ) from exc
        except httpx.RequestError as exc:
            raise StorageError(
                f"Profile {operation} failed: {exc}",
                user_id=profile.user_id,
                operation=operation,
            ) from exc
