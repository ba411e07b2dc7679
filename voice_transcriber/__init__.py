"""Voice-to-text transcription service with tiered quotas."""

__version__ = "0.1.0"
