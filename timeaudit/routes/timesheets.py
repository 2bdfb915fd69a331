# TimeAudit - Timesheet Routes
# Weekly timesheet views, entry editing and submission

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from pydantic import BaseModel

from timeaudit.dependencies import get_current_user, get_workspace
from timeaudit.schemas import BillingStatus, Timesheet, TimeEntry, User
from timeaudit.services import time_entry as engine
from timeaudit.services.time_entry import EntryKind, day_total
from timeaudit.services.week_clock import current_week_start, parse_day, shift_week, week_dates
from timeaudit.services.workspace import NotFoundError, Workspace


router = APIRouter(prefix="/timesheets", tags=["timesheets"])


# Request bodies

class NewEntry(BaseModel):
    day_index: int
    kind: EntryKind = EntryKind.WORK


class TimeChange(BaseModel):
    field: str
    value: str = ""


class EntryChange(BaseModel):
    project_id: Optional[str] = None
    task_id: Optional[str] = None
    notes: Optional[str] = None
    billing_status: Optional[BillingStatus] = None
    starred: Optional[bool] = None


# Helper functions

def parse_week(value: Optional[str], workspace: Workspace) -> date:
    """Week start for a YYYY-MM-DD query value, or the current week."""
    if not value:
        return current_week_start(workspace.timezone)
    try:
        return parse_day(value)
    except ValueError:
        raise HTTPException(status_code=400, detail="Dates must be in YYYY-MM-DD format")


def sheet_view(sheet: Timesheet) -> dict:
    """Timesheet record plus the per-day figures the week grid shows."""
    view = sheet.to_local()
    view["weekDates"] = [d.isoformat() for d in week_dates(sheet.week_start_date)]
    view["dayTotals"] = [day_total(sheet.entries, i) for i in range(7)]
    view["locked"] = sheet.is_locked
    return view


def get_own_sheet(workspace: Workspace, timesheet_id: str, user: User) -> Timesheet:
    try:
        sheet = workspace.get_timesheet(timesheet_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    if sheet.user_id != user.id and not user.is_admin:
        raise HTTPException(status_code=403, detail="Access denied")
    return sheet


def find_entry(sheet: Timesheet, entry_id: str) -> TimeEntry:
    entry = next((e for e in sheet.entries if e.id == entry_id), None)
    if entry is None:
        raise HTTPException(status_code=404, detail="Entry not found")
    return entry


def apply(workspace: Workspace, sheet: Timesheet, change) -> dict:
    """Run an entry-list change and map workspace errors to HTTP errors."""
    try:
        updated = workspace.update_entries(sheet.id, change)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return sheet_view(updated)


# Routes

@router.get("")
async def list_timesheets(
    user: User = Depends(get_current_user),
    workspace: Workspace = Depends(get_workspace),
):
    """The user's timesheets, newest week first."""
    return [sheet_view(t) for t in workspace.timesheets_for_user(user.id)]


@router.get("/current")
async def current_timesheet(
    user: User = Depends(get_current_user),
    workspace: Workspace = Depends(get_workspace),
    week_of: Optional[str] = Query(None, description="Any date in the week, YYYY-MM-DD"),
):
    """
    The user's sheet for a week, created as a draft on first access.

    Defaults to the current week in the configured timezone.
    """
    sheet = workspace.ensure_timesheet(user.id, parse_week(week_of, workspace))
    return sheet_view(sheet)


@router.get("/navigate")
async def navigate(
    week_start: str = Query(..., description="Week currently shown, YYYY-MM-DD"),
    direction: str = Query(..., description="prev, next or current"),
    picked: Optional[str] = Query(None, description="Date picked from a calendar"),
    user: User = Depends(get_current_user),
    workspace: Workspace = Depends(get_workspace),
):
    """Move to the previous, next or a picked week."""
    try:
        if direction == "current" and not picked:
            target = current_week_start(workspace.timezone)
        else:
            target = shift_week(parse_day(week_start), direction, parse_day(picked) if picked else None)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    sheet = workspace.ensure_timesheet(user.id, target)
    return sheet_view(sheet)


@router.post("/copy-previous")
async def copy_previous(
    user: User = Depends(get_current_user),
    workspace: Workspace = Depends(get_workspace),
    week_of: Optional[str] = Query(None),
):
    """Append the entries of the most recent earlier week."""
    try:
        result = workspace.copy_previous(user.id, parse_week(week_of, workspace))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {
        "timesheet": sheet_view(result.timesheet),
        "copied": result.copied,
        "message": result.message,
    }


@router.get("/{timesheet_id}")
async def get_timesheet(
    timesheet_id: str,
    user: User = Depends(get_current_user),
    workspace: Workspace = Depends(get_workspace),
):
    return sheet_view(get_own_sheet(workspace, timesheet_id, user))


@router.post("/{timesheet_id}/entries", status_code=201)
async def add_entry(
    timesheet_id: str,
    body: NewEntry,
    user: User = Depends(get_current_user),
    workspace: Workspace = Depends(get_workspace),
):
    """Add a work or break entry pre-filled for one day."""
    if not 0 <= body.day_index < 7:
        raise HTTPException(status_code=400, detail="day_index must be between 0 and 6")

    sheet = get_own_sheet(workspace, timesheet_id, user)
    state = workspace.state
    return apply(
        workspace,
        sheet,
        lambda entries: engine.add_entry_for_day(
            entries, body.day_index, body.kind, state.projects, state.tasks, sheet.user_id
        ),
    )


@router.patch("/{timesheet_id}/entries/{entry_id}")
async def update_entry(
    timesheet_id: str,
    entry_id: str,
    body: EntryChange,
    user: User = Depends(get_current_user),
    workspace: Workspace = Depends(get_workspace),
):
    """
    Change an entry's project, task, notes, billing status or star.

    A project change resets the task to the new project's first task.
    An explicit task must belong to the entry's (new) project and be
    open to the sheet's owner.
    """
    sheet = get_own_sheet(workspace, timesheet_id, user)
    entry = find_entry(sheet, entry_id)
    changes = body.model_dump(exclude_unset=True, exclude_none=True)

    project_id = changes.pop("project_id", None)
    if project_id is not None and project_id != entry.project_id:
        try:
            workspace.get_project(project_id)
        except NotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        entry = engine.retarget_project(entry, project_id, workspace.state.tasks, sheet.user_id)

    task_id = changes.get("task_id")
    if task_id is not None:
        try:
            task = workspace.get_task(task_id)
        except NotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        if task.project_id != entry.project_id:
            raise HTTPException(status_code=400, detail=f'Task "{task.name}" does not belong to this project')
        if not engine.is_task_accessible(task, sheet.user_id):
            raise HTTPException(status_code=400, detail=f'Task "{task.name}" is not assigned to this user')

    if changes:
        entry = engine.update_details(entry, **changes)

    return apply(workspace, sheet, lambda entries: [entry if e.id == entry_id else e for e in entries])


@router.put("/{timesheet_id}/entries/{entry_id}/days/{day_index}")
async def update_time(
    timesheet_id: str,
    entry_id: str,
    body: TimeChange,
    day_index: int = Path(..., ge=0, le=6, description="0 = Monday, 6 = Sunday"),
    user: User = Depends(get_current_user),
    workspace: Workspace = Depends(get_workspace),
):
    """Set the start or end time of one day; hours are re-derived."""
    sheet = get_own_sheet(workspace, timesheet_id, user)
    find_entry(sheet, entry_id)
    return apply(
        workspace,
        sheet,
        lambda entries: engine.update_time(entries, entry_id, day_index, body.field, body.value),
    )


@router.delete("/{timesheet_id}/entries/{entry_id}/days/{day_index}")
async def clear_day(
    timesheet_id: str,
    entry_id: str,
    day_index: int = Path(..., ge=0, le=6, description="0 = Monday, 6 = Sunday"),
    user: User = Depends(get_current_user),
    workspace: Workspace = Depends(get_workspace),
):
    """Blank one day of an entry; an entry left empty is removed."""
    sheet = get_own_sheet(workspace, timesheet_id, user)
    find_entry(sheet, entry_id)
    return apply(workspace, sheet, lambda entries: engine.clear_day(entries, entry_id, day_index))


@router.delete("/{timesheet_id}/entries/{entry_id}")
async def delete_entry(
    timesheet_id: str,
    entry_id: str,
    user: User = Depends(get_current_user),
    workspace: Workspace = Depends(get_workspace),
):
    sheet = get_own_sheet(workspace, timesheet_id, user)
    find_entry(sheet, entry_id)
    return apply(workspace, sheet, lambda entries: engine.delete_entry(entries, entry_id))


@router.post("/{timesheet_id}/entries/{entry_id}/copy", status_code=201)
async def duplicate_entry(
    timesheet_id: str,
    entry_id: str,
    user: User = Depends(get_current_user),
    workspace: Workspace = Depends(get_workspace),
):
    """Duplicate an entry under a new id."""
    sheet = get_own_sheet(workspace, timesheet_id, user)
    entry = find_entry(sheet, entry_id)
    return apply(workspace, sheet, lambda entries: [*entries, engine.copy_entry(entry)])


@router.post("/{timesheet_id}/save")
async def save_timesheet(
    timesheet_id: str,
    user: User = Depends(get_current_user),
    workspace: Workspace = Depends(get_workspace),
):
    """Explicit save: prunes empty entries and recomputes the total."""
    sheet = get_own_sheet(workspace, timesheet_id, user)
    return apply(workspace, sheet, list)


@router.post("/{timesheet_id}/submit")
async def submit_timesheet(
    timesheet_id: str,
    user: User = Depends(get_current_user),
    workspace: Workspace = Depends(get_workspace),
):
    """
    Submit a sheet for approval.

    Overlapping time ranges and missing comments are rejected with 400.
    """
    sheet = get_own_sheet(workspace, timesheet_id, user)
    try:
        submitted = workspace.submit_timesheet(sheet.id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return sheet_view(submitted)
