# TimeAudit - Workspace
# Application state and every user-initiated mutation of it

import base64
import dataclasses
import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable, Iterable, Optional, Union
from uuid import uuid4

from timeaudit.schemas import (
    PROJECT_COLORS,
    Project,
    Task,
    TimeEntry,
    TimeOffRequest,
    TimeOffStatus,
    TimeOffType,
    Timesheet,
    TimesheetStatus,
    User,
)
from timeaudit.services.copy_forward import CopyForwardResult, copy_forward
from timeaudit.services.overlap_layout import CalendarDay, month_layout, requests_for_user
from timeaudit.services.persistence import EntityKind, PersistenceGateway
from timeaudit.services.time_entry import (
    find_missing_notes,
    find_time_conflict,
    prune_empty,
    week_total,
)
from timeaudit.services.week_clock import current_week_start, normalize_to_week_start, parse_day


logger = logging.getLogger(__name__)


class ValidationError(ValueError):
    """Raised when user input is rejected before any entity is built."""
    pass


class NotFoundError(LookupError):
    """Raised when an id does not match any record."""
    pass


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid4().hex[:12]}"


@dataclass(frozen=True)
class AppState:
    """
    Every collection the application holds in memory.

    Never edited in place: each mutation builds a new AppState with
    dataclasses.replace, so a reader always sees a complete collection.
    """

    projects: tuple[Project, ...] = ()
    tasks: tuple[Task, ...] = ()
    timesheets: tuple[Timesheet, ...] = ()
    users: tuple[User, ...] = ()
    time_off_requests: tuple[TimeOffRequest, ...] = ()


# Task actions

@dataclass(frozen=True)
class AddTask:
    name: str
    project_id: str


@dataclass(frozen=True)
class DeleteTask:
    id: str


@dataclass(frozen=True)
class UpdateTask:
    task: Task


TaskAction = Union[AddTask, DeleteTask, UpdateTask]


def on_project_deleted(state: AppState, project_id: str) -> list[DeleteTask]:
    """Task deletions that must follow the deletion of a project."""
    return [DeleteTask(id=t.id) for t in state.tasks if t.project_id == project_id]


def _replace_by_id(items: Iterable, updated) -> tuple:
    return tuple(updated if item.id == updated.id else item for item in items)


def _without_id(items: Iterable, item_id: str) -> tuple:
    return tuple(item for item in items if item.id != item_id)


class Workspace:
    """
    Controller owning the application state.

    Every method follows the same order: validate, build the new value,
    replace the in-memory state, then hand the change to the
    persistence gateway. The gateway's remote mirror is not awaited, so
    the new state is visible before it is durable remotely.

    Usage:
        workspace = Workspace(gateway, timezone="Europe/Madrid")
        await workspace.load()

        sheet = workspace.ensure_timesheet("u1")
        sheet = workspace.update_entries(
            sheet.id,
            lambda entries: add_entry_for_day(entries, 0, EntryKind.WORK, ...),
        )
        workspace.submit_timesheet(sheet.id)
    """

    def __init__(self, gateway: PersistenceGateway, timezone: str = "UTC"):
        self.gateway = gateway
        self.timezone = timezone
        self.state = AppState()
        self.loaded_from: Optional[str] = None

    async def load(self) -> AppState:
        """Replace the state with everything the gateway can load."""
        snapshot = await self.gateway.load_all()
        self.state = AppState(
            projects=snapshot.projects,
            tasks=snapshot.tasks,
            timesheets=snapshot.timesheets,
            users=snapshot.users,
            time_off_requests=snapshot.time_off_requests,
        )
        self.loaded_from = snapshot.source
        logger.info(
            "Workspace loaded from %s: %d projects, %d tasks, %d timesheets, %d users, %d time off requests",
            snapshot.source,
            len(snapshot.projects),
            len(snapshot.tasks),
            len(snapshot.timesheets),
            len(snapshot.users),
            len(snapshot.time_off_requests),
        )
        return self.state

    def _replace(self, **collections) -> None:
        self.state = dataclasses.replace(self.state, **collections)

    # Lookups

    def _find(self, items: Iterable, item_id: str, label: str):
        found = next((item for item in items if item.id == item_id), None)
        if found is None:
            raise NotFoundError(f"{label} {item_id} not found")
        return found

    def get_user(self, user_id: str) -> Optional[User]:
        return next((u for u in self.state.users if u.id == user_id), None)

    def get_timesheet(self, timesheet_id: str) -> Timesheet:
        return self._find(self.state.timesheets, timesheet_id, "Timesheet")

    def get_project(self, project_id: str) -> Project:
        return self._find(self.state.projects, project_id, "Project")

    def get_task(self, task_id: str) -> Task:
        return self._find(self.state.tasks, task_id, "Task")

    def get_time_off(self, request_id: str) -> TimeOffRequest:
        return self._find(self.state.time_off_requests, request_id, "Time off request")

    # Timesheets

    def active_timesheet(self, user_id: str, week_start: date) -> Optional[Timesheet]:
        """The user's sheet for the week containing week_start, if any."""
        week_start = normalize_to_week_start(week_start)
        return next(
            (t for t in self.state.timesheets if t.user_id == user_id and t.week_start_date == week_start),
            None,
        )

    def ensure_timesheet(self, user_id: str, week_start: Optional[date] = None) -> Timesheet:
        """
        The user's sheet for a week, created on first access.

        A missing sheet is created as an empty draft and persisted at
        once, so there is always exactly one sheet per user and week.
        """
        week_start = normalize_to_week_start(week_start or current_week_start(self.timezone))
        existing = self.active_timesheet(user_id, week_start)
        if existing is not None:
            return existing

        sheet = Timesheet(
            id=new_id("ts"),
            user_id=user_id,
            week_start_date=week_start,
            status=TimesheetStatus.DRAFT,
        )
        self._replace(timesheets=self.state.timesheets + (sheet,))
        self.gateway.save(EntityKind.TIMESHEETS, sheet)
        logger.info("Created draft timesheet %s for %s, week of %s", sheet.id, user_id, week_start)
        return sheet

    def save_timesheet(self, timesheet: Timesheet) -> Timesheet:
        """Store a sheet with empty entries pruned and its total recomputed."""
        entries = tuple(prune_empty(timesheet.entries))
        timesheet = timesheet.model_copy(update={"entries": entries, "total_hours": week_total(entries)})

        self.get_timesheet(timesheet.id)
        self._replace(timesheets=_replace_by_id(self.state.timesheets, timesheet))
        self.gateway.save(EntityKind.TIMESHEETS, timesheet)
        return timesheet

    def _editable(self, timesheet_id: str) -> Timesheet:
        sheet = self.get_timesheet(timesheet_id)
        if sheet.is_locked:
            raise ValidationError(f"Timesheet is {sheet.status.value.lower()} and can no longer be edited")
        return sheet

    def update_entries(
        self,
        timesheet_id: str,
        change: Callable[[list[TimeEntry]], list[TimeEntry]],
    ) -> Timesheet:
        """Apply an entry-list transformation to a draft or rejected sheet."""
        sheet = self._editable(timesheet_id)
        entries = change(list(sheet.entries))
        return self.save_timesheet(sheet.model_copy(update={"entries": tuple(entries)}))

    def submit_timesheet(self, timesheet_id: str) -> Timesheet:
        """
        Send a sheet for approval.

        Raises:
            ValidationError: If two timed entries overlap on a day, or an
                entry with hours has no comment
        """
        sheet = self._editable(timesheet_id)

        error = find_time_conflict(sheet.entries, self.state.tasks) or find_missing_notes(
            sheet.entries, self.state.tasks
        )
        if error:
            raise ValidationError(error)

        return self._set_status(sheet, TimesheetStatus.SUBMITTED)

    def approve_timesheet(self, timesheet_id: str) -> Timesheet:
        return self._decide(timesheet_id, TimesheetStatus.APPROVED)

    def reject_timesheet(self, timesheet_id: str) -> Timesheet:
        return self._decide(timesheet_id, TimesheetStatus.REJECTED)

    def _decide(self, timesheet_id: str, status: TimesheetStatus) -> Timesheet:
        sheet = self.get_timesheet(timesheet_id)
        if sheet.status != TimesheetStatus.SUBMITTED:
            raise ValidationError("Only submitted timesheets can be approved or rejected")
        return self._set_status(sheet, status)

    def _set_status(self, sheet: Timesheet, status: TimesheetStatus) -> Timesheet:
        updated = sheet.model_copy(update={"status": status})
        self._replace(timesheets=_replace_by_id(self.state.timesheets, updated))
        self.gateway.save(EntityKind.TIMESHEETS, updated)
        logger.info("Timesheet %s is now %s", sheet.id, status.value)
        return updated

    def copy_previous(self, user_id: str, week_start: date) -> CopyForwardResult:
        """Append the most recent earlier week's entries to this week."""
        current = self.ensure_timesheet(user_id, week_start)
        self._editable(current.id)

        result = copy_forward(self.state.timesheets, current)
        if result.changed:
            self._replace(timesheets=_replace_by_id(self.state.timesheets, result.timesheet))
            self.gateway.save(EntityKind.TIMESHEETS, result.timesheet)
        return result

    def timesheets_for_user(self, user_id: str) -> list[Timesheet]:
        sheets = [t for t in self.state.timesheets if t.user_id == user_id]
        return sorted(sheets, key=lambda t: t.week_start_date, reverse=True)

    # Projects and tasks

    def add_project(self, name: str, client_name: str, color: Optional[str] = None) -> Project:
        name, client_name = (name or "").strip(), (client_name or "").strip()
        if not name or not client_name:
            raise ValidationError("Project name and client name are required")

        project = Project(
            id=new_id("p"),
            name=name,
            client_name=client_name,
            color=color or PROJECT_COLORS[len(self.state.projects) % len(PROJECT_COLORS)],
        )
        self._replace(projects=self.state.projects + (project,))
        self.gateway.save(EntityKind.PROJECTS, project)
        return project

    def update_project(self, project_id: str, name: str, client_name: str, color: Optional[str] = None) -> Project:
        current = self.get_project(project_id)
        name, client_name = (name or "").strip(), (client_name or "").strip()
        if not name or not client_name:
            raise ValidationError("Project name and client name are required")

        project = current.model_copy(
            update={"name": name, "client_name": client_name, "color": color or current.color}
        )
        self._replace(projects=_replace_by_id(self.state.projects, project))
        self.gateway.save(EntityKind.PROJECTS, project)
        return project

    def delete_project(self, project_id: str) -> list[DeleteTask]:
        """
        Delete a project and its tasks.

        Time entries that pointed at the removed tasks are left as they
        are.
        """
        self.get_project(project_id)
        cascade = on_project_deleted(self.state, project_id)
        doomed = {action.id for action in cascade}

        self._replace(
            projects=_without_id(self.state.projects, project_id),
            tasks=tuple(t for t in self.state.tasks if t.id not in doomed),
        )
        self.gateway.delete(EntityKind.PROJECTS, project_id)
        for action in cascade:
            self.gateway.delete(EntityKind.TASKS, action.id)

        logger.info("Deleted project %s and %d tasks", project_id, len(cascade))
        return cascade

    def apply_task_action(self, action: TaskAction) -> Optional[Task]:
        """Add, delete or update a task. Returns the task for add/update."""
        if isinstance(action, AddTask):
            name = (action.name or "").strip()
            if not name:
                raise ValidationError("Task name is required")
            self.get_project(action.project_id)

            task = Task(id=new_id("t"), name=name, project_id=action.project_id)
            self._replace(tasks=self.state.tasks + (task,))
            self.gateway.save(EntityKind.TASKS, task)
            return task

        if isinstance(action, DeleteTask):
            self.get_task(action.id)
            self._replace(tasks=_without_id(self.state.tasks, action.id))
            self.gateway.delete(EntityKind.TASKS, action.id)
            return None

        if isinstance(action, UpdateTask):
            self.get_task(action.task.id)
            self.get_project(action.task.project_id)
            self._replace(tasks=_replace_by_id(self.state.tasks, action.task))
            self.gateway.save(EntityKind.TASKS, action.task)
            return action.task

        raise TypeError(f"Unsupported task action: {action!r}")

    # Users

    def update_user(self, user: User) -> User:
        if self.get_user(user.id) is None:
            raise NotFoundError(f"User {user.id} not found")
        self._replace(users=_replace_by_id(self.state.users, user))
        self.gateway.save(EntityKind.USERS, user)
        return user

    # Time off

    def create_time_off(
        self,
        user_id: str,
        start_date,
        end_date,
        start_time: str = "09:00",
        end_time: str = "17:00",
        type: str = TimeOffType.ANNUAL_LEAVE.value,
        reason: str = "",
        attachment: Optional[bytes] = None,
        attachment_name: Optional[str] = None,
    ) -> TimeOffRequest:
        """
        Book leave for a user.

        Raises:
            ValidationError: If a date is missing or malformed, the range
                is reversed, or the leave type is unknown
        """
        if not start_date or not end_date:
            raise ValidationError("Start and end dates are required")
        try:
            start, end = parse_day(start_date), parse_day(end_date)
        except ValueError:
            raise ValidationError("Dates must be in YYYY-MM-DD format")
        if start > end:
            raise ValidationError("End date cannot be before start date")
        try:
            leave_type = TimeOffType(type)
        except ValueError:
            raise ValidationError(f"Unknown leave type: {type}")

        request = TimeOffRequest(
            id=new_id("tr"),
            user_id=user_id,
            start_date=start,
            end_date=end,
            start_time=start_time or "",
            end_time=end_time or "",
            type=leave_type,
            reason=(reason or "").strip(),
            status=TimeOffStatus.PENDING,
            attachment=base64.b64encode(attachment).decode("ascii") if attachment else None,
            attachment_name=attachment_name if attachment else None,
        )
        self._replace(time_off_requests=self.state.time_off_requests + (request,))
        self.gateway.save(EntityKind.TIME_OFF_REQUESTS, request)
        return request

    def set_time_off_status(self, request_id: str, status: TimeOffStatus) -> TimeOffRequest:
        """Approver decision; status is the only field that ever changes."""
        request = self.get_time_off(request_id)
        updated = request.model_copy(update={"status": TimeOffStatus(status)})
        self._replace(time_off_requests=_replace_by_id(self.state.time_off_requests, updated))
        self.gateway.save(EntityKind.TIME_OFF_REQUESTS, updated)
        return updated

    def time_off_for_user(self, user_id: str) -> list[TimeOffRequest]:
        return sorted(requests_for_user(self.state.time_off_requests, user_id), key=lambda r: r.start_date)

    def time_off_calendar(self, user_id: str, year: int, month: int) -> list[Optional[CalendarDay]]:
        return month_layout(self.state.time_off_requests, user_id, year, month)

    # Derived views

    def pending_timesheets(self) -> list[Timesheet]:
        return [t for t in self.state.timesheets if t.status == TimesheetStatus.SUBMITTED]

    def pending_time_off(self) -> list[TimeOffRequest]:
        return [r for r in self.state.time_off_requests if r.status == TimeOffStatus.PENDING]

    def hours_by_project(self) -> dict[str, float]:
        """Logged hours per project name, projects without hours left out."""
        totals = {}
        for project in self.state.projects:
            hours = sum(
                sum(entry.hours)
                for sheet in self.state.timesheets
                for entry in sheet.entries
                if entry.project_id == project.id
            )
            if hours > 0:
                totals[project.name] = round(hours, 2)
        return totals

    def status_counts(self) -> dict[str, int]:
        """Number of timesheets in each status, zero counts left out."""
        counts = {}
        for status in TimesheetStatus:
            count = sum(1 for t in self.state.timesheets if t.status == status)
            if count:
                counts[status.value] = count
        return counts
