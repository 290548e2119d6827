"""Thought ORM — one piece of text a user processes during a session.

Invariants:
    - Always belongs to a Session (session_id FK, ON DELETE CASCADE)
    - thought_text is non-empty
    - category and theme are written together
    - position is the index inside its capture batch

Design Decisions:
    - Answer columns (can_change … intensity) kept on the row: one thought,
      one pass through the question flow
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Text, Integer, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from brain_dump.core.domain_types import THEME_MAX_LENGTH
from brain_dump.db.base import Base


class Thought(Base):
    __tablename__ = "thoughts"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    session_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("sessions.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    thought_text: Mapped[str] = mapped_column(Text, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    category: Mapped[str | None] = mapped_column(String(20), nullable=True)
    theme: Mapped[str | None] = mapped_column(
        String(THEME_MAX_LENGTH), nullable=True,
    )
    can_change: Mapped[str | None] = mapped_column(String(20), nullable=True)
    helps_or_hurts: Mapped[str | None] = mapped_column(String(20), nullable=True)
    primary_feeling: Mapped[str | None] = mapped_column(Text, nullable=True)
    reflection: Mapped[str | None] = mapped_column(Text, nullable=True)
    intensity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    session: Mapped["Session"] = relationship(
        "Session", back_populates="thoughts",
    )
