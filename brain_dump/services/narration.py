"""Narration Dispatcher — fire-and-forget question narration per session.

Invariants:
    - schedule() never blocks the caller and never raises
    - At most one pending narration task per session; a newer one cancels the older
    - Audio is published only if its generation is still the flow's generation
    - Failures (missing key, HTTP error, timeout) are logged and skipped

Design Decisions:
    - Plain asyncio tasks kept in a dict: single-process uvicorn, nothing to persist
    - The caller passes the generation it observed; stale audio is dropped on read
      as well as on write, so a late task can never replay an old prompt
"""

import asyncio
import logging
from dataclasses import dataclass

from brain_dump.core.errors import BrainDumpError
from brain_dump.core.repository_protocols import Narrator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NarrationClip:
    generation: int
    audio: bytes


class NarrationDispatcher:
    """Runs narrator calls in the background and keeps the latest clip per session."""

    def __init__(self, narrator: Narrator, enabled: bool = True):
        self.narrator = narrator
        self.enabled = enabled
        self._tasks: dict[str, asyncio.Task] = {}
        self._clips: dict[str, NarrationClip] = {}
        self._generations: dict[str, int] = {}

    def schedule(self, session_id: str, generation: int, text: str) -> None:
        """Start narrating `text` for the flow position identified by generation."""
        self._generations[session_id] = generation
        self._clips.pop(session_id, None)
        self._cancel_task(session_id)
        if not self.enabled:
            return
        self._tasks[session_id] = asyncio.create_task(
            self._narrate(session_id, generation, text),
        )

    def latest(self, session_id: str, generation: int) -> bytes | None:
        """Audio for this exact generation, if it finished in time."""
        clip = self._clips.get(session_id)
        if clip is None or clip.generation != generation:
            return None
        return clip.audio

    def cancel(self, session_id: str) -> None:
        """Drop pending work and stored audio for a session (exit, clear)."""
        self._cancel_task(session_id)
        self._clips.pop(session_id, None)
        self._generations.pop(session_id, None)

    async def drain(self) -> None:
        """Wait for pending narrations (shutdown, tests)."""
        pending = [t for t in self._tasks.values() if not t.done()]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    def cancel_all(self) -> None:
        for session_id in list(self._tasks):
            self._cancel_task(session_id)
        self._clips.clear()
        self._generations.clear()

    async def _narrate(self, session_id: str, generation: int, text: str) -> None:
        try:
            audio = await self.narrator.synthesize(text)
        except BrainDumpError as e:
            logger.info(
                f"Narration skipped: {e.message}",
                extra={"session_id": session_id, "error_code": e.code},
            )
            return
        finally:
            if self._tasks.get(session_id) is asyncio.current_task():
                self._tasks.pop(session_id, None)

        if self._generations.get(session_id) != generation:
            logger.debug(
                "Discarding stale narration", extra={"session_id": session_id},
            )
            return
        self._clips[session_id] = NarrationClip(generation, audio)

    def _cancel_task(self, session_id: str) -> None:
        task = self._tasks.pop(session_id, None)
        if task is not None and not task.done():
            task.cancel()
