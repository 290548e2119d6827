"""Whisper Transcriber — speech-to-text through the OpenAI audio API."""

import logging

import openai
from openai import AsyncOpenAI

from brain_dump.core.errors import ConfigurationError, ExternalServiceError

logger = logging.getLogger(__name__)

SERVICE = "OpenAI Whisper"


class WhisperTranscriber:
    """Turns an uploaded recording into text. Failures are user-visible."""

    def __init__(
        self,
        api_key: str | None,
        model: str = "whisper-1",
        timeout_seconds: float = 60,
    ):
        self.client = (
            AsyncOpenAI(api_key=api_key, timeout=timeout_seconds)
            if api_key else None
        )
        self.model = model

    @property
    def configured(self) -> bool:
        return self.client is not None

    async def transcribe(
        self, audio: bytes, filename: str, content_type: str | None = None,
    ) -> str:
        if self.client is None:
            raise ConfigurationError("OPENAI_API_KEY", SERVICE)
        if not audio:
            raise ExternalServiceError(SERVICE, "empty audio payload", "client_error")

        file = (filename, audio, content_type) if content_type else (filename, audio)
        try:
            response = await self.client.audio.transcriptions.create(
                model=self.model, file=file,
            )
        except openai.APITimeoutError:
            raise ExternalServiceError(SERVICE, "request timed out", "timeout")
        except openai.APIError as e:
            logger.error(f"Transcription failed: {e}")
            raise ExternalServiceError(SERVICE, str(e), "client_error")

        text = (response.text or "").strip()
        logger.info(f"Transcription complete ({len(text)} chars)")
        return text

    async def close(self) -> None:
        if self.client is not None:
            await self.client.close()
