"""Session ORM — persists the aggregate root of one reflection pass.

Invariants:
    - id is UUID primary key
    - mind_weather and started_at are written once at creation
    - completed_at / overall_reflection stay NULL until the flow completes
    - categorized_at is set once, when the single categorization attempt starts

Design Decisions:
    - cascade delete for thoughts: a thought never outlives its session
    - thoughts are queried explicitly by the store, never lazy-loaded
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Text, Integer, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from brain_dump.db.base import Base


class Session(Base):
    """Session aggregate root — owns its thoughts."""
    __tablename__ = "sessions"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    mind_weather: Mapped[str] = mapped_column(String(20), nullable=False)
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False, index=True,
        default=lambda: datetime.now(timezone.utc),
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    thoughts_explored: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
    )
    overall_reflection: Mapped[str | None] = mapped_column(Text, nullable=True)
    categorized_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    thoughts: Mapped[list["Thought"]] = relationship(
        "Thought", back_populates="session",
        cascade="all, delete-orphan", passive_deletes=True,
    )
