# TimeAudit - Entity Schemas
# Immutable pydantic models for every persisted record

from datetime import date
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel


DAYS_PER_WEEK = 7

WEEK_DAYS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]

PROJECT_COLORS = [
    "bg-blue-500", "bg-green-500", "bg-purple-500", "bg-yellow-500",
    "bg-red-500", "bg-pink-500", "bg-indigo-500", "bg-gray-500",
    "bg-orange-500", "bg-teal-500", "bg-cyan-500", "bg-rose-500",
]


class Role(str, Enum):
    ADMIN = "ADMIN"
    EMPLOYEE = "EMPLOYEE"


class TimesheetStatus(str, Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class TimeOffStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class TimeOffType(str, Enum):
    ANNUAL_LEAVE = "Annual Leave"
    SICK_LEAVE = "Sick Leave"
    OTHER = "Other"


class BillingStatus(str, Enum):
    BILLABLE = "Billable"
    NON_BILLABLE = "Non Billable"


class Record(BaseModel):
    """
    Base for all persisted entities.

    Records are frozen: every change goes through model_copy(update=...)
    and produces a new value. Python code uses snake_case names; the
    local cache stores camelCase aliases and the remote store uses
    snake_case columns. Both spellings are accepted when loading.
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: str

    def to_local(self) -> dict[str, Any]:
        """camelCase record for the local cache."""
        return self.model_dump(mode="json", by_alias=True)

    def to_remote(self) -> dict[str, Any]:
        """snake_case row for the remote store."""
        return self.model_dump(mode="json")


class Project(Record):
    name: str
    client_name: str = ""
    color: str = PROJECT_COLORS[0]


class Task(Record):
    name: str
    project_id: str
    # Empty means the task is open to every user
    assigned_user_ids: tuple[str, ...] = ()

    @field_validator("assigned_user_ids", mode="before")
    @classmethod
    def _none_is_open(cls, value):
        return () if value is None else value


class DayTime(BaseModel):
    """Start and end of one day's work, "HH:MM" or blank."""

    model_config = ConfigDict(frozen=True)

    start: str = ""
    end: str = ""

    @property
    def is_blank(self) -> bool:
        return not self.start and not self.end


BLANK_DAY = DayTime()


def _fit_week(values, filler):
    """Pad or trim a per-day sequence to exactly seven slots."""
    values = list(values or [])[:DAYS_PER_WEEK]
    return values + [filler] * (DAYS_PER_WEEK - len(values))


class TimeEntry(Record):
    """
    One project/task row of a timesheet.

    hours[i] is always the duration derived from daily_times[i]; the
    engine in services.time_entry is the only code that writes either.
    """

    project_id: str = ""
    task_id: str = ""
    hours: tuple[float, ...] = (0.0,) * DAYS_PER_WEEK
    daily_times: tuple[DayTime, ...] = (BLANK_DAY,) * DAYS_PER_WEEK
    notes: str = ""
    billing_status: BillingStatus = BillingStatus.BILLABLE
    starred: bool = False

    @field_validator("hours", mode="before")
    @classmethod
    def _seven_hours(cls, value):
        return tuple(float(h or 0) for h in _fit_week(value, 0.0))

    @field_validator("daily_times", mode="before")
    @classmethod
    def _seven_days(cls, value):
        return tuple(_fit_week(value, BLANK_DAY))

    def occupies_day(self, day_index: int) -> bool:
        """True if this entry has hours or a time range on the given day."""
        return self.hours[day_index] > 0 or not self.daily_times[day_index].is_blank

    @property
    def is_empty(self) -> bool:
        return not any(self.occupies_day(i) for i in range(DAYS_PER_WEEK))

    @property
    def total_hours(self) -> float:
        return sum(self.hours)


class Timesheet(Record):
    user_id: str
    week_start_date: date
    status: TimesheetStatus = TimesheetStatus.DRAFT
    entries: tuple[TimeEntry, ...] = ()
    total_hours: float = 0.0

    @field_validator("entries", mode="before")
    @classmethod
    def _none_is_empty(cls, value):
        return () if value is None else value

    @field_validator("total_hours", mode="before")
    @classmethod
    def _none_is_zero(cls, value):
        return 0.0 if value is None else value

    @property
    def is_locked(self) -> bool:
        """Submitted and approved sheets are read-only."""
        return self.status in (TimesheetStatus.SUBMITTED, TimesheetStatus.APPROVED)


class TimeOffRequest(Record):
    user_id: str
    start_date: date
    end_date: date
    start_time: str = ""
    end_time: str = ""
    type: TimeOffType = TimeOffType.ANNUAL_LEAVE
    reason: str = ""
    status: TimeOffStatus = TimeOffStatus.PENDING
    # Opaque base64 payload; never decoded by the engine
    attachment: Optional[str] = None
    attachment_name: Optional[str] = None

    @property
    def span_days(self) -> int:
        return (self.end_date - self.start_date).days + 1

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


class User(Record):
    name: str
    email: str = ""
    role: Role = Role.EMPLOYEE
    avatar: str = ""
    manager_id: Optional[str] = None
    department: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


# Default users seeded when a store has none
DEFAULT_USERS = [
    User(
        id="u1",
        name="Alice Johnson",
        email="alice@company.com",
        role=Role.EMPLOYEE,
        department="Engineering",
    ),
    User(
        id="u2",
        name="Bob Smith",
        email="bob@company.com",
        role=Role.ADMIN,
        department="Management",
    ),
    User(
        id="u3",
        name="Charlie Davis",
        email="charlie@company.com",
        role=Role.EMPLOYEE,
        department="Design",
    ),
]
