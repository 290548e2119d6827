"""In-Memory Store — process-local ReflectionStore backed by two ordered dicts.

Invariants:
    - Same semantics as SqlReflectionStore (shared contract tests)
    - Records are frozen dataclasses; updates replace the stored value
    - Insertion order of the thoughts dict is creation order
    - Thoughts are only created for an existing session

Design Decisions:
    - Plays the role browser storage played for the web client: one process,
      no durability, state lost on restart
    - No lock: every method runs to completion without awaiting, so the
      event loop never interleaves two writes
"""

import logging
import uuid
from datetime import datetime, timezone

from brain_dump.core.records import (
    SessionRecord, ThoughtRecord, merge_session, merge_thought,
)

logger = logging.getLogger(__name__)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class InMemoryReflectionStore:
    """ReflectionStore held in process memory."""

    def __init__(self) -> None:
        self._sessions: dict[str, SessionRecord] = {}
        self._thoughts: dict[str, ThoughtRecord] = {}

    async def create_session(
        self, mind_weather: str, started_at: str,
    ) -> SessionRecord:
        record = SessionRecord(
            id=str(uuid.uuid4()),
            mind_weather=mind_weather,
            started_at=started_at,
        )
        self._sessions[record.id] = record
        return record

    async def get_session(self, session_id: str) -> SessionRecord | None:
        return self._sessions.get(session_id)

    async def list_sessions(
        self, limit: int = 10, offset: int = 0,
    ) -> list[SessionRecord]:
        newest_first = sorted(
            self._sessions.values(), key=lambda s: s.started_at, reverse=True,
        )
        return newest_first[offset:offset + limit]

    async def update_session(
        self, session_id: str, **fields: object,
    ) -> SessionRecord | None:
        record = self._sessions.get(session_id)
        if record is None:
            return None
        updated = merge_session(record, fields)
        self._sessions[session_id] = updated
        return updated

    async def create_thoughts(
        self, session_id: str, texts: list[str],
    ) -> list[ThoughtRecord]:
        if session_id not in self._sessions:
            logger.warning(
                "Refusing thoughts for unknown session",
                extra={"session_id": session_id},
            )
            return []
        created_at = _utc_now_iso()
        created = []
        for text in texts:
            if not text or not text.strip():
                continue
            record = ThoughtRecord(
                id=str(uuid.uuid4()),
                session_id=session_id,
                thought_text=text.strip(),
                created_at=created_at,
            )
            self._thoughts[record.id] = record
            created.append(record)
        return created

    async def get_thoughts_by_session(
        self, session_id: str,
    ) -> list[ThoughtRecord]:
        return [
            t for t in self._thoughts.values() if t.session_id == session_id
        ]

    async def update_thought(
        self, thought_id: str, **fields: object,
    ) -> ThoughtRecord | None:
        record = self._thoughts.get(thought_id)
        if record is None:
            return None
        updated = merge_thought(record, fields)
        self._thoughts[thought_id] = updated
        return updated

    async def clear_all(self) -> None:
        self._sessions.clear()
        self._thoughts.clear()

    async def health_check(self) -> bool:
        return True

    async def close(self) -> None:
        return None
