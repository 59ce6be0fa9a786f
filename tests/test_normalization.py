from datetime import date, datetime, timezone

import pytest

from workout_timer.domain.normalize import (
    day_bounds,
    parse_completed_at,
    parse_locale_date,
)


def test_locale_date_without_padding():
    assert parse_locale_date("9/3/2024") == date(2024, 9, 3)
    assert parse_locale_date("12/31/2024") == date(2024, 12, 31)


def test_iso_date_accepted():
    assert parse_locale_date("2024-09-03") == date(2024, 9, 3)


@pytest.mark.parametrize("value", ["", "2024/09/03", "3.9.2024", "2/30/2024"])
def test_invalid_locale_dates(value):
    with pytest.raises(ValueError):
        parse_locale_date(value)


def test_completed_at_converts_offset_to_utc():
    parsed = parse_completed_at("2024-09-03T10:00:00+02:00")
    assert parsed == datetime(2024, 9, 3, 8, 0, tzinfo=timezone.utc)


def test_completed_at_naive_is_utc():
    parsed = parse_completed_at("2024-09-03T10:00:00")
    assert parsed.tzinfo == timezone.utc


def test_completed_at_rejects_garbage():
    with pytest.raises(ValueError):
        parse_completed_at("yesterday")


def test_day_bounds_cover_whole_end_day():
    lower, upper = day_bounds(date(2024, 9, 1), date(2024, 9, 1))
    assert lower == datetime(2024, 9, 1, tzinfo=timezone.utc)
    assert upper == datetime(2024, 9, 2, tzinfo=timezone.utc)
