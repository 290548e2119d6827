"""ORM Models — SQLAlchemy declarative models for the relational store.

Invariants:
    - All models inherit from Base (db/base.py)
    - Session is the aggregate root; thoughts are scoped by session_id

Design Decisions:
    - One file per entity for locality
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references before any query runs
"""

from brain_dump.models.session import Session  # noqa: F401
from brain_dump.models.thought import Thought  # noqa: F401
