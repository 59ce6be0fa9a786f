from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

CAMEL = {"populate_by_name": True, "alias_generator": to_camel}


class TimerOut(BaseModel):
    id: str
    interval_id: str
    minutes: int
    seconds: int
    order: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = CAMEL


class IntervalOut(BaseModel):
    id: str
    workout_id: str
    name: Optional[str] = None
    repetitions: int
    order: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    timers: List[TimerOut]

    model_config = CAMEL


class WorkoutOut(BaseModel):
    id: str
    name: str
    user_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    intervals: List[IntervalOut]

    model_config = CAMEL


class CompletedWorkoutOut(BaseModel):
    id: str
    workout_id: Optional[str] = None
    user_id: str
    date_completed: datetime
    duration_hours: int = Field(alias="duration_hours")
    duration_minutes: int = Field(alias="duration_minutes")
    duration_seconds: int = Field(alias="duration_seconds")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = CAMEL


class UserOut(BaseModel):
    id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = CAMEL


class MessageOut(BaseModel):
    message: str
