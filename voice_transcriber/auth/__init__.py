"""Caller identity resolution."""

from voice_transcriber.auth.client import AuthClient, extract_bearer_token

__all__ = ["AuthClient", "extract_bearer_token"]
