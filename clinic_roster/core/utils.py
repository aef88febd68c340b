from datetime import date, datetime, timedelta, timezone
from typing import Iterator

from clinic_roster.db.models import DayOfWeek

# date.weekday() order: Monday=0..Sunday=6
_WEEKDAY_NAMES = [
    DayOfWeek.MONDAY,
    DayOfWeek.TUESDAY,
    DayOfWeek.WEDNESDAY,
    DayOfWeek.THURSDAY,
    DayOfWeek.FRIDAY,
    DayOfWeek.SATURDAY,
    DayOfWeek.SUNDAY,
]

def utc_now() -> datetime:
    return datetime.now(timezone.utc)

def utc_today() -> date:
    return datetime.now(timezone.utc).date()

def to_utc_date(value: date | datetime) -> date:
    """Truncate a date or datetime to its UTC calendar day."""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    return value

def get_day_of_week(day: date) -> DayOfWeek:
    return _WEEKDAY_NAMES[day.weekday()]

def iter_days(start: date, end: date) -> Iterator[date]:
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)
