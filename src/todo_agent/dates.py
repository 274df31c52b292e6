"""Calendar arithmetic shared by the parser, the recurrence engine and the API.

Weekday numbers follow the 0 = Sunday convention used throughout the task
model, not Python's ``date.weekday()`` (0 = Monday).
"""
from __future__ import annotations

import calendar
from datetime import date, datetime, time, timedelta
from typing import List, Optional


WEEKDAY_NAMES = [
    "sunday",
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
]

_WEEKDAY_ALIASES = {
    "sun": 0,
    "mon": 1,
    "tue": 2,
    "tues": 2,
    "wed": 3,
    "thu": 4,
    "thur": 4,
    "thurs": 4,
    "fri": 5,
    "sat": 6,
}


def weekday_number(name: str) -> Optional[int]:
    n = name.strip().lower()
    if n in WEEKDAY_NAMES:
        return WEEKDAY_NAMES.index(n)
    return _WEEKDAY_ALIASES.get(n)


def sunday_weekday(d: date) -> int:
    return (d.weekday() + 1) % 7


def end_of_day(d: date) -> datetime:
    return datetime.combine(d, time(23, 59, 59))


def next_weekday(today: date, target: int, *, force_next_week: bool = True) -> date:
    """Next date whose weekday is ``target`` (0 = Sunday).

    With ``force_next_week`` the same weekday as today resolves a full week out.
    """
    delta = (target - sunday_weekday(today)) % 7
    if force_next_week and delta == 0:
        delta = 7
    return today + timedelta(days=delta)


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def add_months(base: datetime, months: int) -> datetime:
    """Add calendar months, clamping the day to the target month's length."""
    total = base.year * 12 + (base.month - 1) + months
    year, month = divmod(total, 12)
    month += 1
    day = min(base.day, days_in_month(year, month))
    return base.replace(year=year, month=month, day=day)


def format_relative(ts: datetime, now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    seconds = int((now - ts).total_seconds())
    minutes = seconds // 60
    hours = minutes // 60
    days = hours // 24

    if days > 0:
        return f"{days} day{'s' if days > 1 else ''} ago"
    if hours > 0:
        return f"{hours} hour{'s' if hours > 1 else ''} ago"
    if minutes > 0:
        return f"{minutes} minute{'s' if minutes > 1 else ''} ago"
    return "just now"


def calendar_grid(year: int, month: int) -> List[List[Optional[date]]]:
    """Sunday-first month grid; cells outside the month are None.

    Rows stop once the month is exhausted, so the grid has at most six weeks.
    """
    first = date(year, month, 1)
    total = days_in_month(year, month)
    offset = sunday_weekday(first)

    weeks: List[List[Optional[date]]] = []
    day = 1
    for week in range(6):
        if day > total:
            break
        row: List[Optional[date]] = []
        for col in range(7):
            if (week == 0 and col < offset) or day > total:
                row.append(None)
            else:
                row.append(date(year, month, day))
                day += 1
        weeks.append(row)
    return weeks
