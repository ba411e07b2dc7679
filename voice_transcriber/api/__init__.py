"""FastAPI application."""

from voice_transcriber.api.app import build_handler, create_app

__all__ = ["build_handler", "create_app"]
