from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta, timezone

LOCALE_DATE_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_locale_date(value: str) -> date:
    """Parse ``M/D/YYYY`` (en-US locale date) or ``YYYY-MM-DD``."""
    value = value.strip()
    match = LOCALE_DATE_RE.match(value)
    if match:
        month, day, year = (int(part) for part in match.groups())
        return date(year, month, day)
    if ISO_DATE_RE.match(value):
        return date.fromisoformat(value)
    raise ValueError("Invalid date format, expected locale date string")


def ensure_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_completed_at(value: str) -> datetime:
    value = value.strip()
    try:
        day = parse_locale_date(value)
    except ValueError:
        pass
    else:
        return datetime.combine(day, time.min, tzinfo=timezone.utc)

    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as exc:
        raise ValueError(f"Invalid dateCompleted value: {value!r}") from exc
    return ensure_utc(parsed)


def day_bounds(start: date, end: date) -> tuple[datetime, datetime]:
    """Return a half-open UTC range covering both days in full."""
    lower = datetime.combine(start, time.min, tzinfo=timezone.utc)
    upper = datetime.combine(end + timedelta(days=1), time.min, tzinfo=timezone.utc)
    return lower, upper
