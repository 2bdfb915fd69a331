# TimeAudit - Week Clock
# Calendar-date arithmetic for Monday-start weeks

from datetime import date, datetime, timedelta
from typing import Optional, Union
from zoneinfo import ZoneInfo

from timeaudit.schemas import DAYS_PER_WEEK


DayLike = Union[date, str]


def parse_day(value: DayLike) -> date:
    """
    Accept a date or a "YYYY-MM-DD" string.

    datetimes are reduced to their calendar date so no time-of-day or
    timezone component ever leaks into week arithmetic.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value.strip())


def add_days(day: DayLike, days: int) -> date:
    """Add (or subtract) whole calendar days."""
    return parse_day(day) + timedelta(days=days)


def normalize_to_week_start(day: DayLike) -> date:
    """
    Return the Monday on or before the given date.

    Weekday is counted with Sunday = 0. A Sunday belongs to the week that
    started six days earlier; any other day is weekday - 1 days after
    its Monday.
    """
    day = parse_day(day)
    weekday = (day.weekday() + 1) % 7
    back = 6 if weekday == 0 else weekday - 1
    return add_days(day, -back)


def week_dates(week_start: DayLike) -> list[date]:
    """Monday through Sunday of the week starting at week_start."""
    start = parse_day(week_start)
    return [add_days(start, i) for i in range(DAYS_PER_WEEK)]


def week_bounds(day: DayLike) -> tuple[date, date]:
    """Get Monday and Sunday of the week containing day."""
    monday = normalize_to_week_start(day)
    return monday, add_days(monday, DAYS_PER_WEEK - 1)


def shift_week(week_start: DayLike, direction: str, picked: Optional[DayLike] = None) -> date:
    """
    Navigate between weeks.

    Args:
        week_start: The week currently shown
        direction: "prev", "next", or "current"
        picked: For "current", any date inside the week to jump to

    Raises:
        ValueError: If the direction is unknown or "current" has no date
    """
    if direction == "prev":
        return add_days(week_start, -DAYS_PER_WEEK)
    if direction == "next":
        return add_days(week_start, DAYS_PER_WEEK)
    if direction == "current":
        if picked is None:
            raise ValueError("A date is required to jump to a week")
        return normalize_to_week_start(picked)
    raise ValueError(f"Unknown week direction: {direction}")


def today_in(timezone: str = "UTC") -> date:
    """Today's calendar date in the given IANA timezone."""
    return datetime.now(ZoneInfo(timezone)).date()


def current_week_start(timezone: str = "UTC") -> date:
    """Monday of the current week in the given timezone."""
    return normalize_to_week_start(today_in(timezone))
