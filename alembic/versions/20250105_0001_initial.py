"""initial schema

Revision ID: 20250105_0001
Revises:
Create Date: 2025-01-05 00:00:00.000000
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "20250105_0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
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
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Text(), primary_key=True),
        *_timestamps(),
    )

    op.create_table(
        "workouts",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column(
            "user_id",
            sa.Text(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        *_timestamps(),
        sa.CheckConstraint(
            "length(name) >= 1 AND length(name) <= 500", name="ck_workouts_name_length"
        ),
    )
    op.create_index("ix_workouts_user_created_at", "workouts", ["user_id", "created_at"])

    op.create_table(
        "intervals",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "workout_id",
            sa.String(length=36),
            sa.ForeignKey("workouts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.Text()),
        sa.Column("repetitions", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("order", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("workout_id", "order", name="uq_intervals_workout_order"),
        sa.CheckConstraint("repetitions >= 1", name="ck_intervals_repetitions_positive"),
        sa.CheckConstraint('"order" >= 0', name="ck_intervals_order_nonnegative"),
    )
    op.create_index("ix_intervals_workout_order", "intervals", ["workout_id", "order"])

    op.create_table(
        "timers",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "interval_id",
            sa.String(length=36),
            sa.ForeignKey("intervals.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("minutes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("seconds", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("order", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("interval_id", "order", name="uq_timers_interval_order"),
        sa.CheckConstraint("minutes >= 0 AND minutes <= 59", name="ck_timers_minutes_range"),
        sa.CheckConstraint("seconds >= 0 AND seconds <= 59", name="ck_timers_seconds_range"),
        sa.CheckConstraint('"order" >= 0', name="ck_timers_order_nonnegative"),
    )
    op.create_index("ix_timers_interval_order", "timers", ["interval_id", "order"])


def downgrade() -> None:
    op.drop_index("ix_timers_interval_order", table_name="timers")
    op.drop_table("timers")
    op.drop_index("ix_intervals_workout_order", table_name="intervals")
    op.drop_table("intervals")
    op.drop_index("ix_workouts_user_created_at", table_name="workouts")
    op.drop_table("workouts")
    op.drop_table("users")
