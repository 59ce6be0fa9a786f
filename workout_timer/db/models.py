from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def new_id() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    pass


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )


class User(TimestampMixin, Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(Text, primary_key=True)

    workouts: Mapped[list["Workout"]] = relationship("Workout", back_populates="user")


class Workout(TimestampMixin, Base):
    __tablename__ = "workouts"
    __table_args__ = (
        CheckConstraint(
            "length(name) >= 1 AND length(name) <= 500", name="ck_workouts_name_length"
        ),
        Index("ix_workouts_user_created_at", "user_id", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    user_id: Mapped[str] = mapped_column(
        Text, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )

    user: Mapped[User] = relationship("User", back_populates="workouts")
    intervals: Mapped[list["Interval"]] = relationship(
        "Interval",
        back_populates="workout",
        cascade="all, delete-orphan",
        order_by="Interval.order",
    )


class Interval(TimestampMixin, Base):
    __tablename__ = "intervals"
    __table_args__ = (
        UniqueConstraint("workout_id", "order", name="uq_intervals_workout_order"),
        CheckConstraint("repetitions >= 1", name="ck_intervals_repetitions_positive"),
        CheckConstraint('"order" >= 0', name="ck_intervals_order_nonnegative"),
        Index("ix_intervals_workout_order", "workout_id", "order"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    workout_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("workouts.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str | None] = mapped_column(Text)
    repetitions: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    order: Mapped[int] = mapped_column(Integer, nullable=False)

    workout: Mapped[Workout] = relationship("Workout", back_populates="intervals")
    timers: Mapped[list["Timer"]] = relationship(
        "Timer",
        back_populates="interval",
        cascade="all, delete-orphan",
        order_by="Timer.order",
    )


class Timer(TimestampMixin, Base):
    __tablename__ = "timers"
    __table_args__ = (
        UniqueConstraint("interval_id", "order", name="uq_timers_interval_order"),
        CheckConstraint("minutes >= 0 AND minutes <= 59", name="ck_timers_minutes_range"),
        CheckConstraint("seconds >= 0 AND seconds <= 59", name="ck_timers_seconds_range"),
        CheckConstraint('"order" >= 0', name="ck_timers_order_nonnegative"),
        Index("ix_timers_interval_order", "interval_id", "order"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    interval_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("intervals.id", ondelete="CASCADE"), nullable=False
    )
    minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    seconds: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    order: Mapped[int] = mapped_column(Integer, nullable=False)

    interval: Mapped[Interval] = relationship("Interval", back_populates="timers")


class CompletedWorkout(TimestampMixin, Base):
    __tablename__ = "completed_workouts"
    __table_args__ = (
        CheckConstraint("duration_hours >= 0", name="ck_completed_hours_nonnegative"),
        CheckConstraint("duration_minutes >= 0", name="ck_completed_minutes_nonnegative"),
        CheckConstraint("duration_seconds >= 0", name="ck_completed_seconds_nonnegative"),
        Index("ix_completed_workouts_user_date", "user_id", "date_completed"),
        Index("ix_completed_workouts_workout", "workout_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    # Not a foreign key: a completion record keeps the id of a deleted workout.
    workout_id: Mapped[str | None] = mapped_column(String(36))
    user_id: Mapped[str] = mapped_column(
        Text, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    date_completed: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    duration_hours: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    duration_seconds: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
