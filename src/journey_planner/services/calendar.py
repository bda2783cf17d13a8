"""Service day-type resolution for South African public holidays."""

import logging
from datetime import date, datetime, timedelta
from functools import lru_cache

from journey_planner.models.network import DayType

logger = logging.getLogger(__name__)

# Fixed-date public holidays as (month, day)
FIXED_HOLIDAYS = (
    (1, 1),  # New Year's Day
    (3, 21),  # Human Rights Day
    (4, 27),  # Freedom Day
    (5, 1),  # Workers' Day
    (6, 16),  # Youth Day
    (8, 9),  # National Women's Day
    (9, 24),  # Heritage Day
    (12, 16),  # Day of Reconciliation
    (12, 25),  # Christmas Day
    (12, 26),  # Day of Goodwill
)


def easter_sunday(year: int) -> date:
    """Compute Easter Sunday with the anonymous Gregorian algorithm."""
    a = year % 19
    b = year // 100
    c = year % 100
    d = b // 4
    e = b % 4
    f = (b + 8) // 25
    g = (b - f + 1) // 3
    h = (19 * a + b - d - g + 15) % 30
    i = c // 4
    k = c % 4
    l = (32 + 2 * e + 2 * i - h - k) % 7  # noqa: E741
    m = (a + 11 * h + 22 * l) // 451
    month = (h + l - 7 * m + 114) // 31
    day = ((h + l - 7 * m + 114) % 31) + 1
    return date(year, month, day)


@lru_cache(maxsize=64)
def public_holidays(year: int) -> frozenset[date]:
    """All public holidays observed in a year.

    A fixed holiday falling on a Sunday is also observed on the following
    Monday. Good Friday and Family Day follow Easter.
    """
    holidays: set[date] = set()
    for month, day in FIXED_HOLIDAYS:
        holiday = date(year, month, day)
        holidays.add(holiday)
        if holiday.weekday() == 6:
            holidays.add(holiday + timedelta(days=1))

    easter = easter_sunday(year)
    holidays.add(easter - timedelta(days=2))  # Good Friday
    holidays.add(easter + timedelta(days=1))  # Family Day
    return frozenset(holidays)


def is_public_holiday(day: date) -> bool:
    return day in public_holidays(day.year)


def day_type_for_date(day: date) -> DayType:
    """Map a calendar date to the day type whose timetable applies."""
    if is_public_holiday(day):
        return DayType.PUBLIC_HOLIDAY
    weekday = day.weekday()
    if weekday == 5:
        return DayType.SATURDAY
    if weekday == 6:
        return DayType.SUNDAY
    return DayType.WEEKDAY


def _parse_date(date_str: str) -> date | None:
    try:
        return date.fromisoformat(date_str)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(date_str).date()
    except ValueError:
        return None


def resolve_day_type(date_str: str | None) -> DayType:
    """Resolve a date string to a service day type.

    ISO-8601 dates are looked up in the holiday calendar. Anything else is
    sniffed for "HOLIDAY", "SAT" or "SUN", defaulting to WEEKDAY.

    Args:
        date_str: ISO date (e.g. "2025-04-18") or free text (e.g. "saturday").

    Returns:
        The matching DayType.
    """
    if date_str is None or not date_str.strip():
        return DayType.WEEKDAY

    text = date_str.strip()
    parsed = _parse_date(text)
    if parsed is not None:
        return day_type_for_date(parsed)

    upper = text.upper()
    if "HOLIDAY" in upper:
        return DayType.PUBLIC_HOLIDAY
    if "SAT" in upper:
        return DayType.SATURDAY
    if "SUN" in upper:
        return DayType.SUNDAY

    logger.debug(f"Unrecognized date {date_str!r}, assuming weekday service")
    return DayType.WEEKDAY
