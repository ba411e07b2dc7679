"""Transcription provider registry.

Maps provider name strings to client classes. Use get_transcription_client()
to instantiate a client by name with client-specific configuration.
"""

from voice_transcriber.asr.interface import TranscriptionClient
from voice_transcriber.asr.replicate import ReplicateClient
from voice_transcriber.utils.errors import ConfigError

TRANSCRIPTION_CLIENTS: dict[str, type[TranscriptionClient]] = {
    "replicate": ReplicateClient,
}


def get_transcription_client(provider: str, **kwargs: object) -> TranscriptionClient:
    """Create a provider client by name.

    Args:
        provider: Provider name (e.g., "replicate").
        **kwargs: Client-specific configuration passed to the constructor.

    Returns:
        An initialized TranscriptionClient.

    Raises:
        ConfigError: If the provider name is not registered.
    """
    client_cls = TRANSCRIPTION_CLIENTS.get(provider)
    if not client_cls:
        available = ", ".join(sorted(TRANSCRIPTION_CLIENTS.keys()))
        raise ConfigError(
            f"Unknown transcription provider: '{provider}'. Available: {available}"
        )
    return client_cls(**kwargs)
