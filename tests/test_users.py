import pytest
from sqlalchemy import func, select

from workout_timer.db.models import User
from workout_timer.domain.errors import Unauthorized, ValidationFailed
from workout_timer.service.users import create_user, require_owner


def test_create_user_is_idempotent(session_factory):
    with session_factory() as session:
        first = create_user(session, {"id": "user_abc"})
    with session_factory() as session:
        second = create_user(session, {"id": "user_abc"})

    assert first["id"] == second["id"] == "user_abc"
    assert first["createdAt"] == second["createdAt"]

    with session_factory() as session:
        assert session.execute(select(func.count()).select_from(User)).scalar_one() == 1


def test_create_user_requires_id(session_factory):
    with session_factory() as session:
        with pytest.raises(ValidationFailed):
            create_user(session, {"id": ""})


@pytest.mark.parametrize("owner", [None, ""])
def test_require_owner(owner):
    with pytest.raises(Unauthorized):
        require_owner(owner)
