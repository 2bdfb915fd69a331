# TimeAudit - Copy Forward
# Duplicate a previous week's entries into the active week

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional

from timeaudit.schemas import DAYS_PER_WEEK, Timesheet
from timeaudit.services.time_entry import copy_entry, week_total
from timeaudit.services.week_clock import add_days


@dataclass(frozen=True)
class CopyForwardResult:
    """
    Outcome of a copy-forward attempt.

    timesheet is the active sheet after the copy, or the untouched input
    when there was nothing to copy. copied is the number of appended
    entries; zero means the operation was a no-op.
    """

    timesheet: Timesheet
    source: Optional[Timesheet]
    copied: int
    message: str

    @property
    def changed(self) -> bool:
        return self.copied > 0


def find_source_week(
    timesheets: Iterable[Timesheet],
    user_id: str,
    week_start: date,
) -> Optional[Timesheet]:
    """
    Pick the week to copy from.

    The sheet exactly one week back wins. Otherwise the most recent of
    the user's sheets before the active week is used.
    """
    earlier = [t for t in timesheets if t.user_id == user_id and t.week_start_date < week_start]

    previous_week = add_days(week_start, -DAYS_PER_WEEK)
    exact = next((t for t in earlier if t.week_start_date == previous_week), None)
    if exact is not None:
        return exact

    earlier.sort(key=lambda t: t.week_start_date, reverse=True)
    return earlier[0] if earlier else None


def copy_forward(timesheets: Iterable[Timesheet], current: Timesheet) -> CopyForwardResult:
    """
    Append copies of the source week's entries to the current sheet.

    Existing entries are kept. Each copy gets a fresh id so the two
    weeks can be edited independently.
    """
    source = find_source_week(timesheets, current.user_id, current.week_start_date)

    if source is None:
        return CopyForwardResult(
            timesheet=current,
            source=None,
            copied=0,
            message="No previous timesheets found to copy from.",
        )

    if not source.entries:
        return CopyForwardResult(
            timesheet=current,
            source=source,
            copied=0,
            message="Previous timesheet found but it is empty.",
        )

    copies = tuple(copy_entry(entry) for entry in source.entries)
    updated = current.model_copy(
        update={
            "entries": current.entries + copies,
            "total_hours": round(week_total(current.entries) + week_total(source.entries), 2),
        }
    )

    return CopyForwardResult(
        timesheet=updated,
        source=source,
        copied=len(copies),
        message=f"Copied entries from week of {source.week_start_date.isoformat()}.",
    )
