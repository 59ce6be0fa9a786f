from __future__ import annotations

from typing import Any


class WorkoutTimerError(Exception):
    """Base failure raised by the service layer.

    The HTTP layer maps ``status_code`` and ``message`` onto the response;
    services never build transport responses themselves.
    """

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message}


class Unauthorized(WorkoutTimerError):
    status_code = 401
    default_message = "Unauthorized"


class BadRequest(WorkoutTimerError):
    status_code = 400
    default_message = "Bad request"


class ValidationFailed(WorkoutTimerError):
    status_code = 422
    default_message = "Validation failed"

    def __init__(self, message: str | None = None, errors: list[dict[str, Any]] | None = None):
        super().__init__(message)
        self.errors = errors or []

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message, "detail": self.errors}


class NotFound(WorkoutTimerError):
    status_code = 404
    default_message = "Not found"


class Conflict(WorkoutTimerError):
    status_code = 409
    default_message = "Conflicting write"


class InternalError(WorkoutTimerError):
    status_code = 500
    default_message = "Internal server error"
