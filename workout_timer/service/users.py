from __future__ import annotations

import logging
from typing import Dict

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from workout_timer.db.models import User
from workout_timer.domain.errors import Conflict, Unauthorized
from workout_timer.domain.payloads import UserCreate, validate_model

logger = logging.getLogger(__name__)


def require_owner(owner_id: str | None) -> str:
    if not owner_id:
        raise Unauthorized()
    return owner_id


def ensure_user(session: Session, user_id: str) -> User:
    """Get or insert the user inside the caller's transaction."""
    user = session.get(User, user_id)
    if user:
        return user
    user = User(id=user_id)
    session.add(user)
    session.flush()
    logger.info("Registered user %s", user_id)
    return user


def serialize_user(user: User) -> Dict:
    return {
        "id": user.id,
        "createdAt": user.created_at.isoformat() if user.created_at else None,
        "updatedAt": user.updated_at.isoformat() if user.updated_at else None,
    }


def create_user(session: Session, payload: Dict | UserCreate) -> Dict:
    data = validate_model(UserCreate, payload)

    try:
        with session.begin():
            user = ensure_user(session, data.id)
            session.refresh(user)
            return serialize_user(user)
    except IntegrityError as exc:
        logger.warning("Concurrent registration for user %s: %s", data.id, exc.orig)
        raise Conflict(f"User {data.id} could not be created") from exc
