from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from typing import Iterator, List

import anyio
from fastapi import APIRouter, Depends, FastAPI, Query, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from workout_timer.auth import TokenVerifier, build_token_verifier, get_current_user
from workout_timer.db.session import build_engine, build_session_factory, session_scope
from workout_timer.domain.errors import BadRequest, ValidationFailed, WorkoutTimerError
from workout_timer.domain.payloads import (
    CompletionCreate,
    UserCreate,
    WebhookEvent,
    WorkoutCreate,
    WorkoutPatch,
    validate_model,
)
from workout_timer.domain.responses import (
    CompletedWorkoutOut,
    MessageOut,
    UserOut,
    WorkoutOut,
)
from workout_timer.service import completions, users, workouts
from workout_timer.webhooks import SIGNING_SECRET, has_signature_headers, verify_webhook

logger = logging.getLogger(__name__)

NOT_FOUND = {404: {"model": MessageOut, "description": "Workout not found"}}
UNAUTHORIZED = {401: {"model": MessageOut, "description": "Missing or invalid credentials"}}
CONFLICT = {409: {"model": MessageOut, "description": "Write conflicts with stored data"}}

router = APIRouter()


def get_session(request: Request) -> Iterator[Session]:
    yield from session_scope(request.app.state.session_factory)


@router.get("/health", tags=["Health"])
def health() -> dict:
    return {"status": "ok"}


@router.get(
    "/workouts",
    response_model=List[WorkoutOut],
    tags=["Workouts"],
    responses=UNAUTHORIZED,
)
def list_workouts(
    owner_id: str = Depends(get_current_user), session: Session = Depends(get_session)
):
    """The caller's workouts with ordered intervals and timers."""
    return workouts.list_workouts(session, owner_id)


@router.post(
    "/workouts",
    response_model=WorkoutOut,
    tags=["Workouts"],
    responses={**UNAUTHORIZED, **CONFLICT},
)
def create_workout(
    payload: WorkoutCreate,
    owner_id: str = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Create a workout together with its intervals and timers."""
    return workouts.create_workout(session, owner_id, payload)


@router.get(
    "/workouts/completed",
    response_model=List[CompletedWorkoutOut],
    tags=["Workouts"],
    responses=UNAUTHORIZED,
)
def list_completed_workouts(
    start_date: str = Query(..., alias="startDate", description="Locale date, e.g. 9/1/2024"),
    end_date: str = Query(..., alias="endDate", description="Locale date, e.g. 9/30/2024"),
    owner_id: str = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Completed workouts within an inclusive date range."""
    return completions.list_completions(session, owner_id, start_date, end_date)


@router.post(
    "/workouts/complete",
    response_model=CompletedWorkoutOut,
    tags=["Workouts"],
    responses=UNAUTHORIZED,
)
def complete_workout(
    payload: CompletionCreate,
    owner_id: str = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Log a completed workout."""
    return completions.record_completion(session, owner_id, payload)


@router.get(
    "/workouts/{workout_id}",
    response_model=WorkoutOut,
    tags=["Workouts"],
    responses={**UNAUTHORIZED, **NOT_FOUND},
)
def get_workout(
    workout_id: str,
    owner_id: str = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return workouts.get_workout(session, owner_id, workout_id)


@router.patch(
    "/workouts/{workout_id}",
    response_model=WorkoutOut,
    tags=["Workouts"],
    responses={**UNAUTHORIZED, **NOT_FOUND, **CONFLICT},
)
def patch_workout(
    workout_id: str,
    payload: WorkoutPatch,
    owner_id: str = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Update workout fields; intervals listed with ``timers`` get them fully replaced."""
    return workouts.update_workout(session, owner_id, workout_id, payload)


@router.delete(
    "/workouts/{workout_id}",
    status_code=204,
    response_class=Response,
    tags=["Workouts"],
    responses={**UNAUTHORIZED, **NOT_FOUND},
)
def delete_workout(
    workout_id: str,
    owner_id: str = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    workouts.delete_workout(session, owner_id, workout_id)
    return Response(status_code=204)


@router.post(
    "/user",
    response_model=UserOut,
    tags=["Users"],
    responses={400: {"model": MessageOut, "description": "Webhook verification failed"}},
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": UserCreate.model_json_schema()}},
        }
    },
)
async def create_user(request: Request, session: Session = Depends(get_session)):
    """Register a user from a signed identity-provider event or a raw ``{"id": ...}`` body."""
    body = await request.body()
    secret = request.app.state.signing_secret

    if secret or has_signature_headers(request.headers):
        event = verify_webhook(secret, request.headers, body)
        try:
            user_id = validate_model(WebhookEvent, event).data.id
        except ValidationFailed as exc:
            raise BadRequest("Error: Webhook event carries no user id") from exc
    else:
        try:
            raw = json.loads(body or b"null")
        except ValueError as exc:
            raise BadRequest("Request body must be JSON") from exc
        try:
            user_id = validate_model(UserCreate, raw).id
        except ValidationFailed as exc:
            raise BadRequest("Request body must carry a user id") from exc

    return await anyio.to_thread.run_sync(users.create_user, session, {"id": user_id})


async def handle_service_error(request: Request, exc: WorkoutTimerError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_dict()))


async def handle_database_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": "Database error"})


def create_app(
    session_factory: sessionmaker[Session] | None = None,
    token_verifier: TokenVerifier | None = None,
    signing_secret: str | None = SIGNING_SECRET,
) -> FastAPI:
    owned_engine: Engine | None = None
    if session_factory is None:
        owned_engine = build_engine()
        session_factory = build_session_factory(owned_engine)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if owned_engine is not None:
            owned_engine.dispose()

    app = FastAPI(
        title="workout-timer-api",
        description="Workouts with ordered intervals and timers, plus a completion log.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.session_factory = session_factory
    app.state.token_verifier = token_verifier or build_token_verifier()
    app.state.signing_secret = signing_secret

    app.add_exception_handler(WorkoutTimerError, handle_service_error)
    app.add_exception_handler(SQLAlchemyError, handle_database_error)
    app.include_router(router)
    return app
