"""Speech-to-text provider clients and the fallback orchestrator."""

from voice_transcriber.asr.orchestrator import TranscriptionOrchestrator, TranscriptionResult
from voice_transcriber.asr.registry import get_transcription_client

__all__ = [
    "TranscriptionOrchestrator",
    "TranscriptionResult",
    "get_transcription_client",
]
