"""
Pytest configuration and fixtures for TimeAudit tests.

This module provides fixtures for:
- Engine tests (pure functions over schemas)
- Local cache and gateway tests (in-memory SQLite)
- Remote store tests (httpx.MockTransport, no network)
- API tests (FastAPI TestClient)
"""

from datetime import date

import httpx
import pytest

from timeaudit.database import create_cache_engine, create_session_factory, drop_db, init_db
from timeaudit.schemas import DEFAULT_USERS, DayTime, Project, Task, TimeEntry, TimeOffRequest
from timeaudit.services.persistence import LocalCache, PersistenceGateway
from timeaudit.services.remote_store import RemoteStore
from timeaudit.services.time_entry import set_day
from timeaudit.services.workspace import AppState, Workspace


REMOTE_URL = "https://remote.test"


# ============ Builders ============

def make_entry(entry_id="e1", day_times=None, notes="", project_id="p1", task_id="t1"):
    """Entry with the given {day_index: (start, end)} ranges filled in."""
    entry = TimeEntry(id=entry_id, project_id=project_id, task_id=task_id, notes=notes)
    for day_index, (start, end) in (day_times or {}).items():
        entry = set_day(entry, day_index, DayTime(start=start, end=end))
    return entry


def make_request(request_id, start, end, user_id="u1"):
    return TimeOffRequest(
        id=request_id,
        user_id=user_id,
        start_date=date.fromisoformat(start),
        end_date=date.fromisoformat(end),
    )


def make_remote(handler) -> RemoteStore:
    return RemoteStore(REMOTE_URL, "test-key", transport=httpx.MockTransport(handler))


# ============ Domain Fixtures ============

@pytest.fixture
def projects():
    return (
        Project(id="p1", name="Intranet", client_name="Acme"),
        Project(id="p2", name="Internal", client_name="Ourselves"),
    )


@pytest.fixture
def tasks():
    return (
        Task(id="t1", name="Development", project_id="p1"),
        Task(id="t2", name="Code review", project_id="p1", assigned_user_ids=("u3",)),
        Task(id="t3", name="Lunch Break", project_id="p2"),
        Task(id="t4", name="Meetings", project_id="p2"),
    )


# ============ Storage Fixtures ============

@pytest.fixture
def cache_engine():
    """Fresh in-memory SQLite database per test."""
    engine = create_cache_engine("sqlite://")
    init_db(engine)
    yield engine
    drop_db(engine)
    engine.dispose()


@pytest.fixture
def local_cache(cache_engine):
    return LocalCache(create_session_factory(cache_engine))


@pytest.fixture
def gateway(local_cache):
    """Local-only gateway."""
    return PersistenceGateway(local_cache)


@pytest.fixture
def workspace(gateway, projects, tasks):
    """Workspace seeded with default users, two projects and four tasks."""
    ws = Workspace(gateway)
    ws.state = AppState(projects=projects, tasks=tasks, users=tuple(DEFAULT_USERS))
    return ws
