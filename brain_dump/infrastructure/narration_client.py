"""ElevenLabs Narrator — text-to-speech over the ElevenLabs REST API.

Invariants:
    - Returns raw audio/mpeg bytes, never a partial body
    - No API key → ConfigurationError at call time
    - Non-2xx, timeout and transport errors → ExternalServiceError

Design Decisions:
    - One shared httpx.AsyncClient per process, closed in the app lifespan
    - No retry: a missed narration is skipped, the flow never waits on it
"""

import logging

import httpx

from brain_dump.core.errors import ConfigurationError, ExternalServiceError

logger = logging.getLogger(__name__)

SERVICE = "ElevenLabs"

VOICE_SETTINGS = {"stability": 0.5, "similarity_boost": 0.75}


class ElevenLabsNarrator:
    """Synthesizes speech for question prompts."""

    def __init__(
        self,
        api_key: str | None,
        voice_id: str,
        model_id: str,
        base_url: str = "https://api.elevenlabs.io/v1",
        timeout_seconds: float = 20.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.voice_id = voice_id
        self.model_id = model_id
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def synthesize(self, text: str) -> bytes:
        if not self.api_key:
            raise ConfigurationError("ELEVENLABS_API_KEY", SERVICE)

        try:
            response = await self._client.post(
                f"{self.base_url}/text-to-speech/{self.voice_id}",
                headers={
                    "Accept": "audio/mpeg",
                    "xi-api-key": self.api_key,
                },
                json={
                    "text": text,
                    "model_id": self.model_id,
                    "voice_settings": VOICE_SETTINGS,
                },
            )
        except httpx.TimeoutException:
            raise ExternalServiceError(SERVICE, "request timed out", "timeout")
        except httpx.HTTPError as e:
            raise ExternalServiceError(SERVICE, str(e), "connection_error")

        if response.status_code != 200:
            logger.warning(
                f"ElevenLabs returned {response.status_code}",
                extra={"error_code": response.status_code},
            )
            raise ExternalServiceError(
                SERVICE, f"HTTP {response.status_code}", "client_error",
            )
        return response.content

    async def close(self) -> None:
        await self._client.aclose()
