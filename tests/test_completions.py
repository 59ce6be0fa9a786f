import pytest

from conftest import OTHER_ID, OWNER_ID, build_payload
from workout_timer.domain.errors import Unauthorized, ValidationFailed
from workout_timer.service.completions import list_completions, record_completion
from workout_timer.service.workouts import create_workout, delete_workout


def run(session_factory, operation, *args):
    with session_factory() as session:
        return operation(session, *args)


def completion(date_completed: str, workout_id: str | None = None) -> dict:
    return {
        "workoutId": workout_id,
        "dateCompleted": date_completed,
        "duration_hours": 0,
        "duration_minutes": 32,
        "duration_seconds": 5,
    }


def test_record_completion_uses_authenticated_owner(session_factory):
    payload = completion("2024-09-03T18:30:00Z")
    payload["userId"] = OTHER_ID

    stored = run(session_factory, record_completion, OWNER_ID, payload)

    assert stored["userId"] == OWNER_ID
    assert stored["duration_minutes"] == 32
    assert stored["dateCompleted"].startswith("2024-09-03T18:30:00")
    assert stored["workoutId"] is None


def test_record_completion_requires_owner(session_factory):
    with pytest.raises(Unauthorized):
        run(session_factory, record_completion, None, completion("9/3/2024"))


def test_completion_outlives_its_workout(session_factory):
    workout = run(session_factory, create_workout, OWNER_ID, build_payload())
    run(session_factory, record_completion, OWNER_ID, completion("9/3/2024", workout["id"]))

    run(session_factory, delete_workout, OWNER_ID, workout["id"])

    records = run(session_factory, list_completions, OWNER_ID, "9/3/2024", "9/3/2024")
    assert [r["workoutId"] for r in records] == [workout["id"]]


def test_range_bounds_are_inclusive(session_factory):
    for stamp in (
        "2024-08-31T23:59:59Z",  # one second before the start day
        "2024-09-01T00:00:00Z",  # start day
        "2024-09-15T12:00:00Z",
        "2024-09-30T23:59:59Z",  # end day
        "2024-10-01T00:00:00Z",  # day after the end
    ):
        run(session_factory, record_completion, OWNER_ID, completion(stamp))

    records = run(session_factory, list_completions, OWNER_ID, "9/1/2024", "9/30/2024")

    assert [r["dateCompleted"][:10] for r in records] == [
        "2024-09-01",
        "2024-09-15",
        "2024-09-30",
    ]


def test_range_excludes_days_outside(session_factory):
    run(session_factory, record_completion, OWNER_ID, completion("8/31/2024"))
    run(session_factory, record_completion, OWNER_ID, completion("10/2/2024"))

    assert run(session_factory, list_completions, OWNER_ID, "9/1/2024", "10/1/2024") == []


def test_range_results_are_oldest_first(session_factory):
    for day in ("9/20/2024", "9/2/2024", "9/11/2024"):
        run(session_factory, record_completion, OWNER_ID, completion(day))

    records = run(session_factory, list_completions, OWNER_ID, "9/1/2024", "9/30/2024")

    assert [r["dateCompleted"][:10] for r in records] == [
        "2024-09-02",
        "2024-09-11",
        "2024-09-20",
    ]


def test_range_only_returns_own_records(session_factory):
    run(session_factory, record_completion, OWNER_ID, completion("9/5/2024"))
    run(session_factory, record_completion, OTHER_ID, completion("9/5/2024"))

    records = run(session_factory, list_completions, OTHER_ID, "9/1/2024", "9/30/2024")

    assert len(records) == 1
    assert records[0]["userId"] == OTHER_ID


@pytest.mark.parametrize("start,end", [("yesterday", "9/30/2024"), ("9/1/2024", "")])
def test_range_requires_valid_dates(session_factory, start, end):
    with pytest.raises(ValidationFailed):
        run(session_factory, list_completions, OWNER_ID, start, end)
