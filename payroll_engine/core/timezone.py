"""Asia/Manila civil-time helpers.

Punch timestamps are stored as aware instants; every lateness or undertime
comparison happens on the Manila wall clock.
"""
from __future__ import annotations

from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

MANILA_TZ_ID = "Asia/Manila"
MANILA = ZoneInfo(MANILA_TZ_ID)


def to_manila(value: datetime) -> datetime:
    if value.tzinfo is None:
        raise ValueError("naive datetimes are ambiguous; attach a timezone first")
    return value.astimezone(MANILA)


def manila_date(value: datetime) -> date:
    return to_manila(value).date()


def manila_minutes(value: datetime) -> int:
    """Minutes since Manila midnight for the given instant."""

    local = to_manila(value)
    return local.hour * 60 + local.minute


def manila_datetime(day: date, hours: int = 0, minutes: int = 0) -> datetime:
    return datetime.combine(day, time(hours, minutes), tzinfo=MANILA)


def manila_day_bounds(day: date) -> tuple[datetime, datetime]:
    start = manila_datetime(day)
    return start, start + timedelta(days=1)


def manila_today(now: datetime | None = None) -> date:
    return (now or datetime.now(MANILA)).astimezone(MANILA).date()
