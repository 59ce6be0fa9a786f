from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from workout_timer.db.models import Interval, Timer, Workout
from workout_timer.domain.errors import Conflict, InternalError, NotFound
from workout_timer.domain.payloads import (
    IntervalPatch,
    TimerInput,
    WorkoutCreate,
    WorkoutPatch,
    validate_model,
)
from workout_timer.service.users import ensure_user, require_owner

logger = logging.getLogger(__name__)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def serialize_timer(timer: Timer) -> Dict:
    return {
        "id": timer.id,
        "intervalId": timer.interval_id,
        "minutes": timer.minutes,
        "seconds": timer.seconds,
        "order": timer.order,
        "createdAt": _iso(timer.created_at),
        "updatedAt": _iso(timer.updated_at),
    }


def serialize_interval(interval: Interval) -> Dict:
    return {
        "id": interval.id,
        "workoutId": interval.workout_id,
        "name": interval.name,
        "repetitions": interval.repetitions,
        "order": interval.order,
        "createdAt": _iso(interval.created_at),
        "updatedAt": _iso(interval.updated_at),
        "timers": [
            serialize_timer(timer) for timer in sorted(interval.timers, key=lambda t: t.order)
        ],
    }


def serialize_workout(workout: Workout) -> Dict:
    return {
        "id": workout.id,
        "name": workout.name,
        "userId": workout.user_id,
        "createdAt": _iso(workout.created_at),
        "updatedAt": _iso(workout.updated_at),
        "intervals": [
            serialize_interval(interval)
            for interval in sorted(workout.intervals, key=lambda i: i.order)
        ],
    }


def _aggregate_query():
    return (
        select(Workout)
        .options(selectinload(Workout.intervals).selectinload(Interval.timers))
        .execution_options(populate_existing=True)
    )


def _load_owned_workout(session: Session, owner_id: str, workout_id: str) -> Workout:
    # Another user's workout is reported as missing so its existence does not leak.
    workout = (
        session.execute(
            _aggregate_query().where(Workout.id == workout_id, Workout.user_id == owner_id)
        )
        .scalars()
        .first()
    )
    if workout is None:
        raise NotFound("Workout not found")
    return workout


def _reload_aggregate(session: Session, workout_id: str) -> Dict:
    session.flush()
    workout = session.execute(_aggregate_query().where(Workout.id == workout_id)).scalars().first()
    if workout is None:
        logger.error("Workout %s vanished inside its own write transaction", workout_id)
        raise InternalError("Failed to load workout after write")
    return serialize_workout(workout)


def _insert_timers(session: Session, interval_id: str, timers: Iterable[TimerInput]) -> int:
    rows = [
        Timer(
            interval_id=interval_id,
            minutes=timer.minutes,
            seconds=timer.seconds,
            order=timer.order,
        )
        for timer in timers
    ]
    session.add_all(rows)
    session.flush()
    return len(rows)


def _apply_interval_patch(session: Session, interval: Interval, patch: IntervalPatch) -> None:
    for field, value in patch.updates().items():
        setattr(interval, field, value)
    interval.updated_at = func.now()
    session.flush()

    if patch.timers is None:
        return

    # Full replace: every existing timer goes, whatever its id.
    session.execute(delete(Timer).where(Timer.interval_id == interval.id))
    _insert_timers(session, interval.id, patch.timers)


def _park_reordered_intervals(
    session: Session, intervals: List[Interval], patched: List[tuple[Interval, IntervalPatch]]
) -> None:
    """Move intervals that change order onto free slots above every order in play.

    The unique (workout_id, order) constraint is checked row by row, so a swap
    only succeeds if no intermediate state holds two intervals on one order.
    """
    moving = [
        interval
        for interval, patch in patched
        if patch.order is not None and patch.order != interval.order
    ]
    if not moving:
        return

    in_play = [interval.order for interval in intervals]
    in_play += [patch.order for _, patch in patched if patch.order is not None]
    base = max(in_play) + 1
    for offset, interval in enumerate(moving):
        interval.order = base + offset
    session.flush()


def create_workout(session: Session, owner_id: str | None, payload: Dict | WorkoutCreate) -> Dict:
    owner_id = require_owner(owner_id)
    data = validate_model(WorkoutCreate, payload)

    written_timers = 0
    try:
        with session.begin():
            ensure_user(session, owner_id)

            workout = Workout(name=data.name, user_id=owner_id)
            session.add(workout)
            session.flush()

            for interval_data in data.intervals:
                interval = Interval(
                    workout_id=workout.id,
                    name=interval_data.name,
                    repetitions=interval_data.repetitions,
                    order=interval_data.order,
                )
                session.add(interval)
                session.flush()
                written_timers += _insert_timers(session, interval.id, interval_data.timers)

            result = _reload_aggregate(session, workout.id)
    except IntegrityError as exc:
        logger.warning("Rolled back workout create for %s: %s", owner_id, exc.orig)
        raise Conflict("Workout could not be stored") from exc

    logger.info(
        "Created workout %s for %s with %d intervals and %d timers",
        result["id"],
        owner_id,
        len(data.intervals),
        written_timers,
    )
    return result


def update_workout(
    session: Session, owner_id: str | None, workout_id: str, patch: Dict | WorkoutPatch
) -> Dict:
    owner_id = require_owner(owner_id)
    data = validate_model(WorkoutPatch, patch)

    try:
        with session.begin():
            workout = _load_owned_workout(session, owner_id, workout_id)
            if data.name is not None:
                workout.name = data.name
            workout.updated_at = func.now()

            intervals_by_id = {interval.id: interval for interval in workout.intervals}
            patched = []
            for interval_patch in data.intervals or []:
                interval = intervals_by_id.get(interval_patch.id)
                if interval is None:
                    raise NotFound(f"Interval {interval_patch.id} not found in workout")
                patched.append((interval, interval_patch))

            _park_reordered_intervals(session, workout.intervals, patched)
            for interval, interval_patch in patched:
                _apply_interval_patch(session, interval, interval_patch)

            result = _reload_aggregate(session, workout.id)
    except IntegrityError as exc:
        logger.warning("Rolled back patch of workout %s: %s", workout_id, exc.orig)
        raise Conflict("Workout update conflicts with stored data") from exc

    logger.info("Updated workout %s", workout_id)
    return result


def replace_interval_timers(
    session: Session,
    owner_id: str | None,
    interval_id: str,
    interval_updates: Optional[Dict] = None,
    new_timers: Optional[List[Dict | TimerInput]] = None,
) -> Dict:
    """Update an interval and swap its whole timer set in one transaction.

    ``new_timers=None`` leaves the timers alone; an empty list removes them all.
    Returns the owning workout's aggregate.
    """
    owner_id = require_owner(owner_id)
    raw: Dict = {**(interval_updates or {}), "id": interval_id}
    if new_timers is not None:
        raw["timers"] = new_timers
    patch = validate_model(IntervalPatch, raw)

    try:
        with session.begin():
            interval = (
                session.execute(
                    select(Interval)
                    .join(Workout, Interval.workout_id == Workout.id)
                    .where(Interval.id == interval_id, Workout.user_id == owner_id)
                )
                .scalars()
                .first()
            )
            if interval is None:
                raise NotFound("Interval not found")

            _apply_interval_patch(session, interval, patch)
            result = _reload_aggregate(session, interval.workout_id)
    except IntegrityError as exc:
        logger.warning("Rolled back timer replacement for interval %s: %s", interval_id, exc.orig)
        raise Conflict("Interval update conflicts with stored data") from exc

    logger.info("Replaced timers of interval %s", interval_id)
    return result


def delete_workout(session: Session, owner_id: str | None, workout_id: str) -> None:
    owner_id = require_owner(owner_id)

    try:
        with session.begin():
            workout = _load_owned_workout(session, owner_id, workout_id)
            interval_ids = [interval.id for interval in workout.intervals]

            # Children first so the delete never depends on native ON DELETE CASCADE.
            for interval_id in interval_ids:
                session.execute(delete(Timer).where(Timer.interval_id == interval_id))
                session.execute(delete(Interval).where(Interval.id == interval_id))
            session.execute(delete(Workout).where(Workout.id == workout_id))
    except IntegrityError as exc:
        logger.warning("Rolled back delete of workout %s: %s", workout_id, exc.orig)
        raise Conflict("Workout could not be deleted") from exc

    logger.info("Deleted workout %s with %d intervals", workout_id, len(interval_ids))


def list_workouts(session: Session, owner_id: str | None) -> List[Dict]:
    owner_id = require_owner(owner_id)

    with session.begin():
        workouts = (
            session.execute(
                _aggregate_query()
                .where(Workout.user_id == owner_id)
                .order_by(Workout.created_at, Workout.id)
            )
            .scalars()
            .all()
        )
        return [serialize_workout(workout) for workout in workouts]


def get_workout(session: Session, owner_id: str | None, workout_id: str) -> Dict:
    owner_id = require_owner(owner_id)

    with session.begin():
        return serialize_workout(_load_owned_workout(session, owner_id, workout_id))
