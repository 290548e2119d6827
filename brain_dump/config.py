"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded)
    - get_settings() is cached (lru_cache) — single instance per process
    - Missing external credentials are not a startup error; the client that
      needs them raises ConfigurationError at call time

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - storage_backend picks one store per deployment; the two never sync
"""

from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Storage
    storage_backend: Literal["memory", "sql"] = "memory"

    # Database (storage_backend == "sql")
    database_url: str = (
        "postgresql+asyncpg://braindump:braindump@db:5432/braindump"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosted Postgres provides postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 5
    database_max_overflow: int = 10

    # Reflection assistant (Anthropic)
    anthropic_api_key: str | None = None
    anthropic_max_retries: int = 3
    anthropic_timeout_seconds: int = 60
    anthropic_base_delay_ms: int = 1000
    anthropic_max_delay_ms: int = 30_000
    assistant_model: str = "claude-sonnet-4-5"
    assistant_temperature: float = 0.7
    insight_max_tokens: int = 300
    categorize_max_tokens: int = 1500

    # Transcription (OpenAI Whisper)
    openai_api_key: str | None = None
    transcription_model: str = "whisper-1"
    transcription_timeout_seconds: int = 60

    # Narration (ElevenLabs)
    elevenlabs_api_key: str | None = None
    elevenlabs_voice_id: str = "pNInz6obpgDQGcFmaJgB"
    elevenlabs_model_id: str = "eleven_monolingual_v1"
    elevenlabs_base_url: str = "https://api.elevenlabs.io/v1"
    narration_timeout_seconds: float = 20.0
    narration_enabled: bool = True

    # API
    cors_origins: list[str] = ["http://localhost:3000"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
