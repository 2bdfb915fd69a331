# TimeAudit - Leave Calendar Layout
# Slot assignment so overlapping leave bars never collide

import calendar
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional, Sequence

from timeaudit.schemas import TimeOffRequest


@dataclass(frozen=True)
class CalendarDay:
    """One day cell of the month grid with its slot rows."""

    day: date
    rows: tuple[Optional[TimeOffRequest], ...]


def overlaps(a: TimeOffRequest, b: TimeOffRequest) -> bool:
    """Two requests overlap if they share at least one calendar day."""
    return a.start_date <= b.end_date and a.end_date >= b.start_date


def requests_for_user(requests: Iterable[TimeOffRequest], user_id: str) -> list[TimeOffRequest]:
    """Only the user's own requests ever reach the layout."""
    return [r for r in requests if r.user_id == user_id]


def layout_order(requests: Iterable[TimeOffRequest]) -> list[TimeOffRequest]:
    """Start ascending, longer spans first, then id for a stable order."""
    return sorted(requests, key=lambda r: (r.start_date, -r.span_days, r.id))


def assign_slots(requests: Iterable[TimeOffRequest]) -> dict[str, int]:
    """
    Assign every request a display slot.

    Greedy first-fit over requests in layout order: each takes the
    smallest slot not used by an already placed request that overlaps
    it. For interval graphs this uses exactly as many slots as the
    largest number of requests sharing a single day, and a given set of
    requests always gets the same assignment.

    Returns:
        Mapping of request id to slot number (0-based)
    """
    placed: list[tuple[TimeOffRequest, int]] = []
    for request in layout_order(requests):
        taken = {slot for other, slot in placed if overlaps(request, other)}
        slot = next(n for n in range(len(taken) + 1) if n not in taken)
        placed.append((request, slot))
    return {request.id: slot for request, slot in placed}


def layout_for_user(requests: Iterable[TimeOffRequest], user_id: str) -> dict[str, int]:
    """Slot assignment for one user's requests."""
    return assign_slots(requests_for_user(requests, user_id))


def requests_on_day(requests: Iterable[TimeOffRequest], user_id: str, day: date) -> list[TimeOffRequest]:
    """The user's requests covering the given day."""
    return [r for r in requests_for_user(requests, user_id) if r.covers(day)]


def day_rows(
    requests: Iterable[TimeOffRequest],
    slots: dict[str, int],
    day: date,
) -> list[Optional[TimeOffRequest]]:
    """
    Rows to draw for one day, indexed by slot.

    Slots below the day's highest occupied slot that nothing covers are
    None placeholders, so a bar stays on the same row across days.
    """
    covering = [r for r in requests if r.id in slots and r.covers(day)]
    if not covering:
        return []

    rows: list[Optional[TimeOffRequest]] = [None] * (max(slots[r.id] for r in covering) + 1)
    for request in covering:
        rows[slots[request.id]] = request
    return rows


def slot_count(slots: dict[str, int]) -> int:
    """Number of distinct slots in use."""
    return len(set(slots.values()))


def max_simultaneous(requests: Sequence[TimeOffRequest]) -> int:
    """Largest number of requests covering any single day."""
    best = 0
    for request in requests:
        # The busiest day always coincides with some request's start date
        best = max(best, sum(1 for other in requests if other.covers(request.start_date)))
    return best


def month_cells(year: int, month: int) -> list[Optional[date]]:
    """
    Sunday-first month grid.

    Leading None cells pad the first week up to the weekday of the 1st.
    """
    first_weekday = (date(year, month, 1).weekday() + 1) % 7
    days_in_month = calendar.monthrange(year, month)[1]
    return [None] * first_weekday + [date(year, month, d) for d in range(1, days_in_month + 1)]


def month_layout(
    requests: Iterable[TimeOffRequest],
    user_id: str,
    year: int,
    month: int,
) -> list[Optional[CalendarDay]]:
    """
    Calendar cells for a month with each day's slot rows.

    Slots are computed over all of the user's requests, not just the
    visible month, so a bar crossing a month boundary keeps its row.
    """
    own = requests_for_user(requests, user_id)
    slots = assign_slots(own)
    return [
        CalendarDay(day=cell, rows=tuple(day_rows(own, slots, cell))) if cell else None
        for cell in month_cells(year, month)
    ]
