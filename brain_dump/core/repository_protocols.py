"""Boundary Protocols — contracts between core and shell.

Invariants:
    - Core NEVER imports from shell — dependency arrows point inward only
    - All IO operations accessed through Protocol types
    - Implementations provided by shell via dependency injection
    - Store lookups return None for unknown ids; writes to unknown ids are
      no-ops returning None

Design Decisions:
    - Protocol over ABC: structural subtyping, no inheritance hierarchy
    - Async in Protocol: boundary methods are async because implementations do IO
    - Both store backends (in-memory, SQL) satisfy ReflectionStore with
      identical semantics; the choice is a deployment setting
"""

from typing import Protocol

from brain_dump.core.categorization import CategorizationPayload
from brain_dump.core.records import SessionRecord, ThoughtRecord


class ReflectionStore(Protocol):
    """Contract for Session/Thought persistence — implemented by shell."""
    async def create_session(
        self, mind_weather: str, started_at: str,
    ) -> SessionRecord: ...
    async def get_session(self, session_id: str) -> SessionRecord | None: ...
    async def list_sessions(
        self, limit: int = 10, offset: int = 0,
    ) -> list[SessionRecord]: ...
    async def update_session(
        self, session_id: str, **fields: object,
    ) -> SessionRecord | None: ...
    async def create_thoughts(
        self, session_id: str, texts: list[str],
    ) -> list[ThoughtRecord]: ...
    async def get_thoughts_by_session(
        self, session_id: str,
    ) -> list[ThoughtRecord]: ...
    async def update_thought(
        self, thought_id: str, **fields: object,
    ) -> ThoughtRecord | None: ...
    async def clear_all(self) -> None: ...
    async def health_check(self) -> bool: ...


class ReflectionAssistant(Protocol):
    """Contract for the chat-completion assistant — implemented by shell."""
    async def insight(
        self, thought_text: str, feeling: str | None, reflection: str | None,
    ) -> str: ...
    async def categorize(self, thought_texts: list[str]) -> CategorizationPayload: ...


class Narrator(Protocol):
    """Contract for text-to-speech — returns browser-playable audio bytes."""
    async def synthesize(self, text: str) -> bytes: ...


class Transcriber(Protocol):
    """Contract for speech-to-text."""
    async def transcribe(
        self, audio: bytes, filename: str, content_type: str | None = None,
    ) -> str: ...
