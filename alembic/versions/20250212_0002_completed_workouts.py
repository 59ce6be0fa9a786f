"""completed workouts log

Revision ID: 20250212_0002
Revises: 20250105_0001
Create Date: 2025-02-12 00:00:00.000000
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "20250212_0002"
down_revision = "20250105_0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "completed_workouts",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("workout_id", sa.String(length=36)),
        sa.Column(
            "user_id",
            sa.Text(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("date_completed", sa.DateTime(timezone=True), nullable=False),
        sa.Column("duration_hours", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("duration_minutes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("duration_seconds", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint("duration_hours >= 0", name="ck_completed_hours_nonnegative"),
        sa.CheckConstraint("duration_minutes >= 0", name="ck_completed_minutes_nonnegative"),
        sa.CheckConstraint("duration_seconds >= 0", name="ck_completed_seconds_nonnegative"),
    )
    op.create_index(
        "ix_completed_workouts_user_date",
        "completed_workouts",
        ["user_id", "date_completed"],
    )
    op.create_index("ix_completed_workouts_workout", "completed_workouts", ["workout_id"])


def downgrade() -> None:
    op.drop_index("ix_completed_workouts_workout", table_name="completed_workouts")
    op.drop_index("ix_completed_workouts_user_date", table_name="completed_workouts")
    op.drop_table("completed_workouts")
