"""Bearer-token verification through the external auth service."""

from __future__ import annotations

import logging
import re

import httpx

from voice_transcriber.utils.errors import AuthError, ConfigError

logger = logging.getLogger(__name__)

_BEARER_PREFIX = re.compile(r"^Bearer\s+", re.IGNORECASE)


def extract_bearer_token(authorization: str | None) -> str:
    """Pull the token out of an Authorization header value.

    Raises:
        AuthError: AUTH_HEADER_MISSING when the header is absent or empty.
    """
    if not authorization or not authorization.strip():
        raise AuthError("Missing Authorization header", code="AUTH_HEADER_MISSING")
    token = _BEARER_PREFIX.sub("", authorization.strip()).strip()
    if not token:
        raise AuthError("Missing Authorization header", code="AUTH_HEADER_MISSING")
    return token


class AuthClient:
    """Resolves a bearer token to a user id.

    The auth service answers ``POST {base_url}/verify`` with
    ``{"valid": bool, "userId": str}``.
    """

    def __init__(self, base_url: str, client: httpx.AsyncClient | None = None) -> None:
        self.base_url = (base_url or "").rstrip("/")
        if not self.base_url:
            raise ConfigError("AUTH_SERVICE_URL is required")
        self._client = client or httpx.AsyncClient(timeout=10.0)

    async def close(self) -> None:
        await self._client.aclose()

    async def verify_token(self, token: str) -> str:
        """Return the user id for ``token``.

        Raises:
            AuthError: The token was rejected or could not be checked.
        """
        try:
            response = await self._client.post(
                f"{self.base_url}/verify",
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as exc:
            logger.error("Auth verification error: %s", exc, extra={"error": str(exc)})
            raise AuthError("Authentication failed") from exc

        body: dict = {}
        if response.is_success:
            try:
                parsed = response.json()
            except ValueError:
                parsed = None
            if isinstance(parsed, dict):
                body = parsed

        user_id = body.get("userId")
        if not body.get("valid") or not isinstance(user_id, str) or not user_id:
            logger.warning(
                "Token verification failed (HTTP %d): %s",
                response.status_code,
                body.get("error"),
            )
            raise AuthError("Invalid or expired token", hint="Please sign in again")
        return user_id
