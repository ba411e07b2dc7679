"""HTTP surface for the transcription service.

``POST /transcribe`` accepts ``{audioUrl, language?}`` with a bearer token
and answers ``{text, provider, alerts?}``, or ``{error, code, hint?, ...}``
with the status code of the classified failure.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from voice_transcriber.alerts.mailer import EmailSender, NullEmailSender, ResendEmailSender
from voice_transcriber.alerts.throttle import AlertThrottle
from voice_transcriber.asr.orchestrator import TranscriptionOrchestrator
from voice_transcriber.asr.registry import get_transcription_client
from voice_transcriber.auth.client import AuthClient
from voice_transcriber.config import Settings
from voice_transcriber.handler import TranscriptionHandler
from voice_transcriber.storage.profile_client import ProfileClient
from voice_transcriber.utils.errors import (
    MANUAL_ENTRY_HINT,
    ConfigError,
    StorageError,
    TranscriptionServiceError,
)

logger = logging.getLogger(__name__)

_HTTP_ERROR_CODES = {404: "NOT_FOUND", 405: "METHOD_NOT_ALLOWED"}


class TranscriptionResponseBody(BaseModel):
    text: str
    provider: str
    alerts: list[str] | None = None


class ErrorResponseBody(BaseModel):
    error: str
    code: str
    hint: str | None = None


def build_handler(settings: Settings) -> TranscriptionHandler:
    """Wire a TranscriptionHandler from settings.

    A missing provider token, auth service URL or profile service setting
    leaves that collaborator unset, so requests fail with CONFIG_ERROR
    instead of the process refusing to start.
    """
    orchestrator: TranscriptionOrchestrator | None = None
    if settings.replicate_api_token:
        client = get_transcription_client(
            settings.provider,
            api_token=settings.replicate_api_token,
            whisper_model=settings.whisper_model,
            base_url=settings.replicate_base_url,
        )
        orchestrator = TranscriptionOrchestrator(
            client,
            settings.model_versions,
            sync_wait_seconds=settings.sync_wait_seconds or None,
        )
    else:
        logger.warning("REPLICATE_API_TOKEN is not set; transcription is disabled")

    auth: AuthClient | None = None
    try:
        auth = AuthClient(settings.auth_service_url)
    except ConfigError as exc:
        logger.warning("%s; transcription is disabled", exc)

    profiles: ProfileClient | None = None
    try:
        profiles = ProfileClient(
            settings.profile_service_url, settings.profile_service_secret
        )
    except StorageError as exc:
        logger.warning("%s; transcription is disabled", exc)

    sender: EmailSender
    if settings.resend_api_key:
        sender = ResendEmailSender(settings.resend_api_key, settings.alert_from_email)
    else:
        sender = NullEmailSender()

    throttle = AlertThrottle(
        sender,
        settings.alert_emails,
        cooldown_seconds=settings.alert_cooldown_seconds,
    )

    return TranscriptionHandler(
        auth=auth,
        profiles=profiles,
        orchestrator=orchestrator,
        throttle=throttle,
        low_credit_gauge=settings.low_credit_gauge,
        low_credit_threshold=settings.low_credit_threshold,
    )


def _error_response(exc: TranscriptionServiceError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


def create_app(
    settings: Settings | None = None,
    handler: TranscriptionHandler | None = None,
) -> FastAPI:
    """Create the FastAPI application.

    Args:
        settings: Service settings; loaded from the environment if omitted.
        handler: Pre-built handler. When omitted, one is built from settings
            at startup and closed at shutdown.
    """
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        owned = app.state.handler is None
        if owned:
            app.state.handler = build_handler(settings)
        try:
            yield
        finally:
            if owned:
                await app.state.handler.close()

    app = FastAPI(title="Voice Transcriber", lifespan=lifespan)
    app.state.handler = handler
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_methods=["POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
    )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        """Render routing errors (404, 405) in the same shape as service errors."""
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": str(exc.detail),
                "code": _HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR"),
            },
            headers=exc.headers,
        )

    @app.get("/healthz")
    async def healthz() -> dict[str, str]:
        return {"status": "ok"}

    @app.post(
        "/transcribe",
        response_model=TranscriptionResponseBody,
        response_model_exclude_none=True,
        responses={
            400: {"model": ErrorResponseBody},
            401: {"model": ErrorResponseBody},
            402: {"model": ErrorResponseBody},
            429: {"model": ErrorResponseBody},
            500: {"model": ErrorResponseBody},
            504: {"model": ErrorResponseBody},
        },
    )
    async def transcribe(request: Request) -> Any:
        body: Any
        try:
            body = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            body = None

        try:
            result = await app.state.handler.handle(
                request.headers.get("Authorization"), body
            )
        except TranscriptionServiceError as exc:
            logger.warning(
                "Transcription request failed: %s (%s)",
                exc,
                exc.code,
                extra={"error": str(exc)},
            )
            return _error_response(exc)
        except Exception:
            logger.exception("Unhandled transcription error")
            return JSONResponse(
                status_code=500,
                content={
                    "error": "Transcription failed",
                    "code": "TRANSCRIPTION_FAILED",
                    "hint": MANUAL_ENTRY_HINT,
                },
            )
        return result.to_payload()

    return app
