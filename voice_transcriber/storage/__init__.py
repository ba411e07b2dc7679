"""Usage profile storage."""

from voice_transcriber.storage.models import UsageProfile
from voice_transcriber.storage.profile_client import ProfileClient

__all__ = ["ProfileClient", "UsageProfile"]
