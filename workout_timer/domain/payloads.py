from __future__ import annotations

from datetime import date, datetime
from typing import Annotated, Any, List, Optional, Type, TypeVar

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .errors import ValidationFailed
from .normalize import ensure_utc, parse_completed_at, parse_locale_date

MAX_NAME_LENGTH = 500

Order = Annotated[int, Field(ge=0)]
ClockPart = Annotated[int, Field(ge=0, le=59)]

ModelT = TypeVar("ModelT", bound=BaseModel)


def _ensure_unique_orders(items: list, label: str) -> None:
    orders = [item.order for item in items if item.order is not None]
    if len(orders) != len(set(orders)):
        raise ValueError(f"{label} order values must be unique")


class TimerInput(BaseModel):
    minutes: ClockPart = 0
    seconds: ClockPart = 0
    order: Order

    model_config = {"extra": "forbid"}


class IntervalInput(BaseModel):
    name: Optional[str] = None
    repetitions: Annotated[int, Field(ge=1)] = 1
    order: Order
    timers: List[TimerInput] = Field(default_factory=list)

    model_config = {"extra": "forbid"}

    @field_validator("timers")
    @classmethod
    def timer_orders_unique(cls, v: List[TimerInput]) -> List[TimerInput]:
        _ensure_unique_orders(v, "timer")
        return v


class WorkoutCreate(BaseModel):
    name: str
    # Accepted for client compatibility; the authenticated owner always wins.
    user_id: Optional[str] = None
    intervals: List[IntervalInput] = Field(default_factory=list)

    model_config = {"extra": "forbid", "populate_by_name": True, "alias_generator": to_camel}

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _validate_workout_name(v)

    @field_validator("intervals")
    @classmethod
    def interval_orders_unique(cls, v: List[IntervalInput]) -> List[IntervalInput]:
        _ensure_unique_orders(v, "interval")
        return v


class IntervalPatch(BaseModel):
    id: str
    name: Optional[str] = None
    repetitions: Optional[Annotated[int, Field(ge=1)]] = None
    order: Optional[Order] = None
    timers: Optional[List[TimerInput]] = None

    model_config = {"extra": "forbid"}

    @field_validator("timers")
    @classmethod
    def timer_orders_unique(cls, v: Optional[List[TimerInput]]) -> Optional[List[TimerInput]]:
        if v is not None:
            _ensure_unique_orders(v, "timer")
        return v

    def updates(self) -> dict[str, Any]:
        """Mutable interval columns the client actually sent."""
        sent = self.model_dump(exclude_unset=True, exclude={"id", "timers"})
        return {key: value for key, value in sent.items() if key == "name" or value is not None}


class WorkoutPatch(BaseModel):
    name: Optional[str] = None
    intervals: Optional[List[IntervalPatch]] = None

    model_config = {"extra": "forbid"}

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return _validate_workout_name(v)

    @field_validator("intervals")
    @classmethod
    def interval_ids_unique(cls, v: Optional[List[IntervalPatch]]) -> Optional[List[IntervalPatch]]:
        if v is None:
            return v
        ids = [interval.id for interval in v]
        if len(ids) != len(set(ids)):
            raise ValueError("each interval may appear only once in a patch")
        _ensure_unique_orders(v, "interval")
        return v


class CompletionCreate(BaseModel):
    workout_id: Optional[str] = None
    # Accepted for client compatibility; the authenticated owner always wins.
    user_id: Optional[str] = None
    date_completed: datetime
    duration_hours: Annotated[int, Field(ge=0, alias="duration_hours")]
    duration_minutes: Annotated[int, Field(ge=0, alias="duration_minutes")]
    duration_seconds: Annotated[int, Field(ge=0, alias="duration_seconds")]

    model_config = {"extra": "forbid", "populate_by_name": True, "alias_generator": to_camel}

    @field_validator("date_completed", mode="before")
    @classmethod
    def parse_date_completed(cls, v: Any) -> Any:
        if isinstance(v, str):
            return parse_completed_at(v)
        return v

    @field_validator("date_completed")
    @classmethod
    def date_completed_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class CompletedRange(BaseModel):
    start_date: date
    end_date: date

    model_config = {"extra": "forbid", "populate_by_name": True, "alias_generator": to_camel}

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def parse_bound(cls, v: Any) -> Any:
        if isinstance(v, str):
            return parse_locale_date(v)
        return v

    @model_validator(mode="after")
    def validate_range(self) -> "CompletedRange":
        if self.start_date > self.end_date:
            raise ValueError("startDate must be on or before endDate")
        return self


class UserCreate(BaseModel):
    id: Annotated[str, Field(min_length=1)]

    model_config = {"extra": "forbid"}


class WebhookUserData(BaseModel):
    id: Annotated[str, Field(min_length=1)]

    model_config = {"extra": "ignore"}


class WebhookEvent(BaseModel):
    type: Optional[str] = None
    data: WebhookUserData

    model_config = {"extra": "ignore"}


def _validate_workout_name(value: str) -> str:
    # Stored exactly as sent; blank names are rejected but never rewritten.
    if not value.strip():
        raise ValueError("name must not be empty")
    if len(value) > MAX_NAME_LENGTH:
        raise ValueError(f"name must be at most {MAX_NAME_LENGTH} characters")
    return value


def validate_model(model: Type[ModelT], payload: Any) -> ModelT:
    if isinstance(payload, model):
        return payload
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise ValidationFailed(
            f"Invalid {model.__name__} payload",
            errors=exc.errors(include_url=False, include_context=False),
        ) from exc
