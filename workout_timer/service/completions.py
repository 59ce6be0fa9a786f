from __future__ import annotations

import logging
from typing import Dict, List

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from workout_timer.db.models import CompletedWorkout
from workout_timer.domain.errors import Conflict
from workout_timer.domain.normalize import day_bounds, ensure_utc
from workout_timer.domain.payloads import CompletedRange, CompletionCreate, validate_model
from workout_timer.service.users import ensure_user, require_owner

logger = logging.getLogger(__name__)


def serialize_completion(record: CompletedWorkout) -> Dict:
    return {
        "id": record.id,
        "workoutId": record.workout_id,
        "userId": record.user_id,
        "dateCompleted": ensure_utc(record.date_completed).isoformat(),
        "duration_hours": record.duration_hours,
        "duration_minutes": record.duration_minutes,
        "duration_seconds": record.duration_seconds,
        "createdAt": record.created_at.isoformat() if record.created_at else None,
        "updatedAt": record.updated_at.isoformat() if record.updated_at else None,
    }


def record_completion(
    session: Session, owner_id: str | None, payload: Dict | CompletionCreate
) -> Dict:
    owner_id = require_owner(owner_id)
    data = validate_model(CompletionCreate, payload)

    try:
        with session.begin():
            ensure_user(session, owner_id)
            record = CompletedWorkout(
                workout_id=data.workout_id,
                user_id=owner_id,
                date_completed=data.date_completed,
                duration_hours=data.duration_hours,
                duration_minutes=data.duration_minutes,
                duration_seconds=data.duration_seconds,
            )
            session.add(record)
            session.flush()
            session.refresh(record)
            result = serialize_completion(record)
    except IntegrityError as exc:
        logger.warning("Rolled back completion record for %s: %s", owner_id, exc.orig)
        raise Conflict("Completion record could not be stored") from exc

    logger.info("Recorded completion %s for %s", result["id"], owner_id)
    return result


def list_completions(
    session: Session, owner_id: str | None, start_date: str, end_date: str
) -> List[Dict]:
    """Completion records of ``owner_id`` on or between the two dates, oldest first."""
    owner_id = require_owner(owner_id)
    bounds = validate_model(CompletedRange, {"startDate": start_date, "endDate": end_date})
    lower, upper = day_bounds(bounds.start_date, bounds.end_date)

    with session.begin():
        records = (
            session.execute(
                select(CompletedWorkout)
                .where(
                    CompletedWorkout.user_id == owner_id,
                    CompletedWorkout.date_completed >= lower,
                    CompletedWorkout.date_completed < upper,
                )
                .order_by(CompletedWorkout.date_completed, CompletedWorkout.id)
            )
            .scalars()
            .all()
        )
        return [serialize_completion(record) for record in records]
