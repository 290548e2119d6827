"""Brain Dump API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map BrainDumpError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Store and external clients built once in the lifespan, stored on app.state,
      and closed on shutdown

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Missing API keys do not block startup; the affected endpoint answers 503
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from brain_dump.api.error_handlers import register_error_handlers
from brain_dump.api.routes import (
    assistant, data, health, questions, sessions, voice,
)
from brain_dump.config import Settings, get_settings
from brain_dump.infrastructure.anthropic_client import ResilientAnthropicClient
from brain_dump.infrastructure.narration_client import ElevenLabsNarrator
from brain_dump.infrastructure.observability import setup_logging
from brain_dump.infrastructure.store_factory import build_store
from brain_dump.infrastructure.transcription_client import WhisperTranscriber
from brain_dump.services.narration import NarrationDispatcher
from brain_dump.services.reflection_assistant import ClaudeReflectionAssistant

logger = logging.getLogger(__name__)


async def init_providers(app: FastAPI, settings: Settings) -> None:
    """Build store and clients onto app.state."""
    anthropic_client = ResilientAnthropicClient(
        settings.anthropic_api_key,
        max_retries=settings.anthropic_max_retries,
        base_delay_ms=settings.anthropic_base_delay_ms,
        max_delay_ms=settings.anthropic_max_delay_ms,
        timeout_seconds=settings.anthropic_timeout_seconds,
    )
    narrator = ElevenLabsNarrator(
        settings.elevenlabs_api_key,
        voice_id=settings.elevenlabs_voice_id,
        model_id=settings.elevenlabs_model_id,
        base_url=settings.elevenlabs_base_url,
        timeout_seconds=settings.narration_timeout_seconds,
    )
    app.state.store = await build_store(settings)
    app.state.anthropic_client = anthropic_client
    app.state.assistant = ClaudeReflectionAssistant(
        anthropic_client,
        model=settings.assistant_model,
        temperature=settings.assistant_temperature,
        insight_max_tokens=settings.insight_max_tokens,
        categorize_max_tokens=settings.categorize_max_tokens,
    )
    app.state.narrator = narrator
    app.state.narration = NarrationDispatcher(
        narrator, enabled=settings.narration_enabled and narrator.configured,
    )
    app.state.transcriber = WhisperTranscriber(
        settings.openai_api_key,
        model=settings.transcription_model,
        timeout_seconds=settings.transcription_timeout_seconds,
    )
    for name, configured in (
        ("Anthropic", anthropic_client.configured),
        ("ElevenLabs", narrator.configured),
        ("OpenAI", app.state.transcriber.configured),
    ):
        if not configured:
            logger.warning(
                f"{name} API key not set; related endpoints will answer 503",
                extra={"service": name},
            )


async def close_providers(app: FastAPI) -> None:
    app.state.narration.cancel_all()
    await app.state.narrator.close()
    await app.state.transcriber.close()
    await app.state.anthropic_client.close()
    await app.state.store.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    await init_providers(app, settings)
    logger.info(f"Brain Dump API started ({settings.storage_backend} store)")
    yield
    logger.info("Brain Dump API shutting down")
    await close_providers(app)


app = FastAPI(
    title="Brain Dump API", version="1.0.0", lifespan=lifespan,
)

# CORS: origins come from settings
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routes: explicit registration
app.include_router(health.router)
app.include_router(questions.router)
app.include_router(sessions.router)
app.include_router(voice.router)
app.include_router(assistant.router)
app.include_router(data.router)

register_error_handlers(app)
