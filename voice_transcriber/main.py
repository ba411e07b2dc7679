"""Service entry point.

Configures structured logging and serves the FastAPI app with uvicorn on
$PORT (Cloud Run and similar platforms inject it).
"""

import logging

import uvicorn

from voice_transcriber.api.app import create_app
from voice_transcriber.config import Settings
from voice_transcriber.observability.logger import setup_logging

logger = logging.getLogger(__name__)


def main() -> None:
    """Start the transcription HTTP service."""
    setup_logging()
    settings = Settings.from_env()
    logger.info("Voice transcriber starting on port %d", settings.port)
    uvicorn.run(
        create_app(settings),
        host="0.0.0.0",
        port=settings.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
