"""
FastAPI app factory.

Responsibilities:
- Create and configure FastAPI app
- Set up middleware
- Own the process-wide SpeechRecognizer (built once, closed on shutdown)
- Register routes
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import AppConfig
from observability import logger
from recognizer.base import SpeechRecognizer
from recognizer.factory import build_speech_recognizer

from server.routes import register_routes


def create_app(
    config: AppConfig | None = None,
    recognizer: SpeechRecognizer | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    This is the app factory pattern that allows:
    - Testing with different configurations (or an injected recognizer)
    - Environment-specific setup
    - ASGI server compatibility
    """
    config = config or AppConfig.load_from_env()
    logger.configure(enable_json_logs=config.enable_json_logs)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # One recognizer per process: the live variant owns the microphone
        app.state.recognizer = recognizer or build_speech_recognizer(config)
        logger.log_event({
            "event_type": "RECOGNIZER_READY",
            "variant": config.recognizer_variant.value,
            "locale": config.recognizer_locale,
            "env": config.env,
        })
        try:
            yield
        finally:
            await app.state.recognizer.aclose()

    app = FastAPI(title="Speech Session Coordinator", lifespan=lifespan)

    app.state.config = config

    # Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # tighten later
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routes
    register_routes(app)

    return app
