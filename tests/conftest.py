import os
import pathlib

import pytest
from alembic import command
from alembic.config import Config
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from workout_timer.auth import TokenVerifier, get_current_user
from workout_timer.db.models import Base
from workout_timer.db.session import build_engine, build_session_factory
from workout_timer.http_server import create_app

OWNER_ID = "user_owner"
OTHER_ID = "user_other"
API_KEY = "test-key"
JWT_SECRET = "test-jwt-secret-with-enough-length-for-hs256"
SIGNING_SECRET = "whsec_MfKQ9r8GKYqrTwjUPD8ILPZIo2LaLaSw"


@pytest.fixture
def engine():
    url = os.getenv("TEST_DATABASE_URL")
    if url:
        engine = build_engine(url)
        alembic_cfg = Config(str(pathlib.Path(__file__).resolve().parent.parent / "alembic.ini"))
        alembic_cfg.set_main_option("sqlalchemy.url", url)
        alembic_cfg.attributes["url_overridden"] = True
        command.upgrade(alembic_cfg, "head")

        yield engine

        with engine.begin() as connection:
            for table in reversed(Base.metadata.sorted_tables):
                connection.execute(table.delete())
        engine.dispose()
        return

    engine = build_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def app(session_factory):
    return create_app(
        session_factory=session_factory,
        token_verifier=TokenVerifier({API_KEY}, secret=JWT_SECRET),
        signing_secret=None,
    )


@pytest.fixture
def anonymous_client(app):
    with TestClient(app) as client:
        yield client


@pytest.fixture
def client(app):
    app.dependency_overrides[get_current_user] = lambda: OWNER_ID
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def login(app):
    """Switch the authenticated user of the test app."""

    def _login(user_id: str) -> None:
        app.dependency_overrides[get_current_user] = lambda: user_id

    return _login


def build_payload(name: str = "Leg Day") -> dict:
    return {
        "name": name,
        "intervals": [
            {
                "name": "Squats",
                "order": 0,
                "repetitions": 3,
                "timers": [
                    {"order": 0, "minutes": 0, "seconds": 30},
                    {"order": 1, "minutes": 0, "seconds": 10},
                ],
            }
        ],
    }
