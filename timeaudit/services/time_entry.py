# TimeAudit - Time Entry Engine
# Hour derivation, totals and entry-list transformations for the weekly grid

from enum import Enum
from typing import Iterable, Optional, Sequence
from uuid import uuid4

from timeaudit.schemas import (
    BLANK_DAY,
    DAYS_PER_WEEK,
    WEEK_DAYS,
    BillingStatus,
    DayTime,
    Project,
    Task,
    TimeEntry,
)


MINUTES_PER_DAY = 24 * 60

WORK_BLOCK = DayTime(start="09:00", end="17:00")
BREAK_BLOCK = DayTime(start="12:00", end="13:00")
BREAK_KEYWORDS = ("meal", "break")


class EntryKind(str, Enum):
    WORK = "work"
    BREAK = "break"


def new_entry_id() -> str:
    return uuid4().hex[:12]


def _to_minutes(value: str) -> Optional[int]:
    """Parse "HH:MM" into minutes after midnight, None if malformed."""
    try:
        hours, minutes = value.strip().split(":")
        hours, minutes = int(hours), int(minutes)
    except (AttributeError, ValueError):
        return None
    if not (0 <= hours < 24 and 0 <= minutes < 60):
        return None
    return hours * 60 + minutes


def derive_hours(start: str, end: str) -> float:
    """
    Decimal hours between two "HH:MM" times, rounded to 2 places.

    An end earlier than the start is an overnight shift and wraps past
    midnight. Blank or malformed times yield 0.
    """
    if not start or not end:
        return 0.0

    start_minutes = _to_minutes(start)
    end_minutes = _to_minutes(end)
    if start_minutes is None or end_minutes is None:
        return 0.0

    duration = end_minutes - start_minutes
    if duration < 0:
        duration += MINUTES_PER_DAY

    return round(duration / 60, 2)


def day_total(entries: Iterable[TimeEntry], day_index: int) -> float:
    """Sum of hours on one day across all entries."""
    return round(sum(entry.hours[day_index] for entry in entries), 2)


def week_total(entries: Iterable[TimeEntry]) -> float:
    """Sum of every hour of every entry."""
    return round(sum(sum(entry.hours) for entry in entries), 2)


def entries_for_day(entries: Iterable[TimeEntry], day_index: int) -> list[TimeEntry]:
    """Entries occupying the given day."""
    return [entry for entry in entries if entry.occupies_day(day_index)]


def prune_empty(entries: Iterable[TimeEntry]) -> list[TimeEntry]:
    """Drop entries that no longer occupy any day."""
    return [entry for entry in entries if not entry.is_empty]


def is_task_accessible(task: Optional[Task], user_id: str) -> bool:
    """Open tasks are available to everyone; assigned tasks only to their users."""
    if task is None:
        return False
    if not task.assigned_user_ids:
        return True
    return user_id in task.assigned_user_ids


def set_day(entry: TimeEntry, day_index: int, day_time: DayTime) -> TimeEntry:
    """Write one day's time range and the hours derived from it."""
    daily_times = list(entry.daily_times)
    hours = list(entry.hours)
    daily_times[day_index] = day_time
    hours[day_index] = derive_hours(day_time.start, day_time.end)
    return entry.model_copy(update={"daily_times": tuple(daily_times), "hours": tuple(hours)})


def add_entry_for_day(
    entries: Sequence[TimeEntry],
    day_index: int,
    kind: EntryKind,
    projects: Sequence[Project],
    tasks: Sequence[Task],
    user_id: str,
) -> list[TimeEntry]:
    """
    Append a new entry pre-filled for a single day.

    Work entries take the first project and its first task the user may
    use, with a 09:00-17:00 block. Break entries look for a task whose
    name mentions a meal or break (and take that task's project), with a
    12:00-13:00 block. Every other day starts empty.
    """
    kind = EntryKind(kind)
    default_project = projects[0].id if projects else ""

    if kind is EntryKind.BREAK:
        task = next(
            (
                t for t in tasks
                if any(word in t.name.lower() for word in BREAK_KEYWORDS)
                and is_task_accessible(t, user_id)
            ),
            None,
        )
        project_id = task.project_id if task else default_project
        entry = TimeEntry(
            id=new_entry_id(),
            project_id=project_id,
            task_id=task.id if task else "",
            notes="Break",
            billing_status=BillingStatus.NON_BILLABLE,
        )
        block = BREAK_BLOCK
    else:
        task = next(
            (t for t in tasks if t.project_id == default_project and is_task_accessible(t, user_id)),
            None,
        )
        entry = TimeEntry(
            id=new_entry_id(),
            project_id=default_project,
            task_id=task.id if task else "",
            billing_status=BillingStatus.BILLABLE,
        )
        block = WORK_BLOCK

    return [*entries, set_day(entry, day_index, block)]


def clear_day(entries: Sequence[TimeEntry], entry_id: str, day_index: int) -> list[TimeEntry]:
    """
    Blank one day of one entry.

    The entry disappears entirely if that was its only occupied day.
    """
    updated = [
        set_day(entry, day_index, BLANK_DAY) if entry.id == entry_id else entry
        for entry in entries
    ]
    return prune_empty(updated)


def delete_entry(entries: Sequence[TimeEntry], entry_id: str) -> list[TimeEntry]:
    """Remove a whole row."""
    return [entry for entry in entries if entry.id != entry_id]


def update_time(
    entries: Sequence[TimeEntry],
    entry_id: str,
    day_index: int,
    field: str,
    value: str,
) -> list[TimeEntry]:
    """Change the start or end of one day and re-derive its hours."""
    if field not in ("start", "end"):
        raise ValueError(f"Unknown time field: {field}")

    updated = []
    for entry in entries:
        if entry.id == entry_id:
            day_time = entry.daily_times[day_index].model_copy(update={field: value.strip()})
            entry = set_day(entry, day_index, day_time)
        updated.append(entry)
    return updated


def retarget_project(
    entry: TimeEntry,
    project_id: str,
    tasks: Sequence[Task],
    user_id: str,
) -> TimeEntry:
    """
    Move an entry to another project.

    The task resets to the first task of the new project the user may
    use, or to none, so a task never points at the wrong project.
    """
    task = next(
        (t for t in tasks if t.project_id == project_id and is_task_accessible(t, user_id)),
        None,
    )
    return entry.model_copy(update={"project_id": project_id, "task_id": task.id if task else ""})


def update_details(entry: TimeEntry, **changes) -> TimeEntry:
    """
    Change notes, billing status, task or star flag.

    Hours and time ranges are never touched here.
    """
    allowed = {"notes", "billing_status", "task_id", "starred"}
    unknown = set(changes) - allowed
    if unknown:
        raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")

    if "billing_status" in changes:
        changes["billing_status"] = BillingStatus(changes["billing_status"])
    return entry.model_copy(update=changes)


def copy_entry(entry: TimeEntry) -> TimeEntry:
    """Independent copy of an entry under a fresh id."""
    return entry.model_copy(update={"id": new_entry_id()}, deep=True)


# Submission checks

def _task_name(tasks: Sequence[Task], task_id: str) -> str:
    return next((t.name for t in tasks if t.id == task_id), "Unknown Task")


def find_time_conflict(entries: Sequence[TimeEntry], tasks: Sequence[Task]) -> Optional[str]:
    """
    Look for two timed entries overlapping on the same day.

    Returns a message naming the day and both tasks, or None.
    """
    for day_index in range(DAYS_PER_WEEK):
        intervals = []
        for entry in entries:
            day_time = entry.daily_times[day_index]
            start = _to_minutes(day_time.start)
            end = _to_minutes(day_time.end)
            if start is None or end is None or entry.hours[day_index] <= 0:
                continue
            if end < start:
                end += MINUTES_PER_DAY
            intervals.append((start, end, _task_name(tasks, entry.task_id)))

        intervals.sort(key=lambda interval: interval[0])

        for current, following in zip(intervals, intervals[1:]):
            if following[0] < current[1]:
                return (
                    f'Time Conflict on {WEEK_DAYS[day_index]}: '
                    f'"{current[2]}" overlaps with "{following[2]}".'
                )
    return None


def find_missing_notes(entries: Sequence[TimeEntry], tasks: Sequence[Task]) -> Optional[str]:
    """Every entry with logged hours needs a comment."""
    for entry in entries:
        if any(h > 0 for h in entry.hours) and not entry.notes.strip():
            return f'Comments are required for task "{_task_name(tasks, entry.task_id)}".'
    return None
