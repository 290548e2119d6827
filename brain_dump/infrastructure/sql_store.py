"""SQL Store — ReflectionStore backed by SQLAlchemy async sessions.

Invariants:
    - Same semantics as InMemoryReflectionStore (shared contract tests)
    - Unknown or malformed ids → None / [] (never an exception)
    - One DB session per operation; commit before returning
    - Timestamps leave as ISO-8601 text in UTC

Design Decisions:
    - ORM rows converted to frozen records at the boundary, so no lazy
      loading can happen after the session closes
    - Bulk thought insert shares one created_at and orders by position
    - Infrastructure failures surface as DatabaseError via DatabaseSessionManager
"""

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import delete, select

from brain_dump.core.records import (
    IMMUTABLE_SESSION_FIELDS, IMMUTABLE_THOUGHT_FIELDS,
    SessionRecord, ThoughtRecord, mutable_fields,
)
from brain_dump.infrastructure.database import DatabaseSessionManager
from brain_dump.models.session import Session as SessionModel
from brain_dump.models.thought import Thought as ThoughtModel

logger = logging.getLogger(__name__)

_SESSION_TIMESTAMPS = ("completed_at", "categorized_at")

# Set explicitly so freshly inserted rows never need a lazy refresh
_EMPTY_ANSWERS = {
    "category": None, "theme": None, "can_change": None,
    "helps_or_hurts": None, "primary_feeling": None,
    "reflection": None, "intensity": None,
}


def _parse_uuid(value: str) -> uuid.UUID | None:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def _to_datetime(value: object) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _to_iso(value: datetime | None) -> str | None:
    if value is None:
        return None
    # SQLite drops tzinfo on the way back
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def _session_record(row: SessionModel) -> SessionRecord:
    return SessionRecord(
        id=str(row.id),
        mind_weather=row.mind_weather,
        started_at=_to_iso(row.started_at),
        thoughts_explored=row.thoughts_explored,
        completed_at=_to_iso(row.completed_at),
        overall_reflection=row.overall_reflection,
        categorized_at=_to_iso(row.categorized_at),
    )


def _thought_record(row: ThoughtModel) -> ThoughtRecord:
    return ThoughtRecord(
        id=str(row.id),
        session_id=str(row.session_id),
        thought_text=row.thought_text,
        created_at=_to_iso(row.created_at),
        category=row.category,
        theme=row.theme,
        can_change=row.can_change,
        helps_or_hurts=row.helps_or_hurts,
        primary_feeling=row.primary_feeling,
        reflection=row.reflection,
        intensity=row.intensity,
    )


class SqlReflectionStore:
    """ReflectionStore over a relational database."""

    def __init__(self, db: DatabaseSessionManager) -> None:
        self._db = db

    async def create_session(
        self, mind_weather: str, started_at: str,
    ) -> SessionRecord:
        async with self._db.session() as db:
            row = SessionModel(
                mind_weather=mind_weather,
                started_at=_to_datetime(started_at),
                thoughts_explored=0,
            )
            db.add(row)
            await db.commit()
            await db.refresh(row)
            return _session_record(row)

    async def get_session(self, session_id: str) -> SessionRecord | None:
        sid = _parse_uuid(session_id)
        if sid is None:
            return None
        async with self._db.session() as db:
            row = await db.get(SessionModel, sid)
            return _session_record(row) if row else None

    async def list_sessions(
        self, limit: int = 10, offset: int = 0,
    ) -> list[SessionRecord]:
        async with self._db.session() as db:
            result = await db.execute(
                select(SessionModel)
                .order_by(SessionModel.started_at.desc())
                .limit(limit).offset(offset),
            )
            return [_session_record(r) for r in result.scalars().all()]

    async def update_session(
        self, session_id: str, **fields: object,
    ) -> SessionRecord | None:
        sid = _parse_uuid(session_id)
        if sid is None:
            return None
        updates = mutable_fields(SessionRecord, fields, IMMUTABLE_SESSION_FIELDS)
        async with self._db.session() as db:
            row = await db.get(SessionModel, sid)
            if row is None:
                return None
            for key, value in updates.items():
                if key in _SESSION_TIMESTAMPS:
                    value = _to_datetime(value)
                setattr(row, key, value)
            await db.commit()
            await db.refresh(row)
            return _session_record(row)

    async def create_thoughts(
        self, session_id: str, texts: list[str],
    ) -> list[ThoughtRecord]:
        sid = _parse_uuid(session_id)
        if sid is None:
            return []
        async with self._db.session() as db:
            if await db.get(SessionModel, sid) is None:
                logger.warning(
                    "Refusing thoughts for unknown session",
                    extra={"session_id": session_id},
                )
                return []
            created_at = datetime.now(timezone.utc)
            rows = [
                ThoughtModel(
                    id=uuid.uuid4(),
                    session_id=sid,
                    thought_text=text.strip(),
                    position=position,
                    created_at=created_at,
                    **_EMPTY_ANSWERS,
                )
                for position, text in enumerate(
                    t for t in texts if t and t.strip()
                )
            ]
            db.add_all(rows)
            await db.commit()
            return [_thought_record(r) for r in rows]

    async def get_thoughts_by_session(
        self, session_id: str,
    ) -> list[ThoughtRecord]:
        sid = _parse_uuid(session_id)
        if sid is None:
            return []
        async with self._db.session() as db:
            result = await db.execute(
                select(ThoughtModel)
                .where(ThoughtModel.session_id == sid)
                .order_by(ThoughtModel.created_at, ThoughtModel.position),
            )
            return [_thought_record(r) for r in result.scalars().all()]

    async def update_thought(
        self, thought_id: str, **fields: object,
    ) -> ThoughtRecord | None:
        tid = _parse_uuid(thought_id)
        if tid is None:
            return None
        updates = mutable_fields(ThoughtRecord, fields, IMMUTABLE_THOUGHT_FIELDS)
        async with self._db.session() as db:
            row = await db.get(ThoughtModel, tid)
            if row is None:
                return None
            for key, value in updates.items():
                setattr(row, key, value)
            await db.commit()
            await db.refresh(row)
            return _thought_record(row)

    async def clear_all(self) -> None:
        async with self._db.session() as db:
            await db.execute(delete(ThoughtModel))
            await db.execute(delete(SessionModel))
            await db.commit()
        logger.info("Cleared all sessions and thoughts")

    async def health_check(self) -> bool:
        return await self._db.health_check()

    async def close(self) -> None:
        await self._db.dispose()
