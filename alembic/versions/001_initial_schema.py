"""Initial schema — sessions and thoughts.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "sessions",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("mind_weather", sa.String(20), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("thoughts_explored", sa.Integer, nullable=False, server_default="0"),
        sa.Column("overall_reflection", sa.Text, nullable=True),
        sa.Column("categorized_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_sessions_started_at", "sessions", ["started_at"])

    op.create_table(
        "thoughts",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "session_id", UUID(as_uuid=True),
            sa.ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("thought_text", sa.Text, nullable=False),
        sa.Column("position", sa.Integer, nullable=False, server_default="0"),
        sa.Column("category", sa.String(20), nullable=True),
        sa.Column("theme", sa.String(100), nullable=True),
        sa.Column("can_change", sa.String(20), nullable=True),
        sa.Column("helps_or_hurts", sa.String(20), nullable=True),
        sa.Column("primary_feeling", sa.Text, nullable=True),
        sa.Column("reflection", sa.Text, nullable=True),
        sa.Column("intensity", sa.Integer, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_thoughts_session_id", "thoughts", ["session_id"])


def downgrade() -> None:
    op.drop_index("ix_thoughts_session_id", table_name="thoughts")
    op.drop_table("thoughts")
    op.drop_index("ix_sessions_started_at", table_name="sessions")
    op.drop_table("sessions")
