"""Records — backend-neutral Session and Thought values returned by every store.

Invariants:
    - Records are frozen; stores hand out copies, callers never mutate stored state
    - Timestamps are ISO-8601 text
    - category and theme travel together (both None or both set)

Design Decisions:
    - Dataclasses, not ORM rows: the in-memory and SQL stores return the same
      shape so the flow never knows which backend it talks to
    - IMMUTABLE_* tuples drive the merge semantics of update_session/update_thought
"""

from dataclasses import dataclass, asdict, fields, replace


@dataclass(frozen=True)
class SessionRecord:
    id: str
    mind_weather: str
    started_at: str
    thoughts_explored: int = 0
    completed_at: str | None = None
    overall_reflection: str | None = None
    categorized_at: str | None = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class ThoughtRecord:
    id: str
    session_id: str
    thought_text: str
    created_at: str
    category: str | None = None
    theme: str | None = None
    can_change: str | None = None
    helps_or_hurts: str | None = None
    primary_feeling: str | None = None
    reflection: str | None = None
    intensity: int | None = None

    def to_dict(self) -> dict:
        return asdict(self)


IMMUTABLE_SESSION_FIELDS = ("id", "mind_weather", "started_at")
IMMUTABLE_THOUGHT_FIELDS = ("id", "session_id", "created_at")


def mutable_fields(record_type: type, updates: dict, immutable: tuple[str, ...]) -> dict:
    """Keep only known, mutable fields of an update. Pure."""
    known = {f.name for f in fields(record_type)}
    return {
        k: v for k, v in updates.items()
        if k in known and k not in immutable
    }


def merge_session(record: SessionRecord, updates: dict) -> SessionRecord:
    return replace(
        record, **mutable_fields(SessionRecord, updates, IMMUTABLE_SESSION_FIELDS),
    )


def merge_thought(record: ThoughtRecord, updates: dict) -> ThoughtRecord:
    return replace(
        record, **mutable_fields(ThoughtRecord, updates, IMMUTABLE_THOUGHT_FIELDS),
    )
