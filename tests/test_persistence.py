"""
Tests for the local cache and the persistence gateway.

Remote behaviour is driven through httpx.MockTransport, so nothing
leaves the process.
"""

import base64
import json
from datetime import date, timedelta

import httpx
import pytest

from timeaudit.database import get_db_context
from timeaudit.models import CacheBucket
from timeaudit.schemas import (
    DEFAULT_USERS,
    Project,
    TimeOffRequest,
    TimeOffType,
    Timesheet,
    TimesheetStatus,
)
from timeaudit.services.persistence import EntityKind, PersistenceGateway

from conftest import make_entry, make_remote


class TestLocalCache:

    def test_missing_bucket_reads_as_defaults(self, local_cache):
        assert local_cache.load(EntityKind.PROJECTS) == []
        assert local_cache.load(EntityKind.USERS) == DEFAULT_USERS

    def test_upsert_appends_then_replaces(self, local_cache):
        local_cache.upsert(EntityKind.PROJECTS, Project(id="p1", name="Intranet", client_name="Acme"))
        local_cache.upsert(EntityKind.PROJECTS, Project(id="p2", name="Billing", client_name="Acme"))
        local_cache.upsert(EntityKind.PROJECTS, Project(id="p1", name="Intranet v2", client_name="Acme"))

        projects = local_cache.load(EntityKind.PROJECTS)
        assert [p.id for p in projects] == ["p1", "p2"]
        assert projects[0].name == "Intranet v2"

    def test_remove(self, local_cache):
        local_cache.upsert(EntityKind.PROJECTS, Project(id="p1", name="Intranet"))
        local_cache.remove(EntityKind.PROJECTS, "p1")
        local_cache.remove(EntityKind.PROJECTS, "missing")
        assert local_cache.load(EntityKind.PROJECTS) == []

    def test_records_are_stored_camel_case(self, local_cache, cache_engine):
        local_cache.upsert(EntityKind.PROJECTS, Project(id="p1", name="Intranet", client_name="Acme"))

        with get_db_context(local_cache.session_factory) as db:
            payload = db.get(CacheBucket, "timeaudit_projects").payload
        assert json.loads(payload) == [
            {"id": "p1", "name": "Intranet", "clientName": "Acme", "color": "bg-blue-500"}
        ]

    def test_malformed_records_are_skipped(self, local_cache):
        with get_db_context(local_cache.session_factory) as db:
            db.add(CacheBucket(bucket_key="timeaudit_projects", payload=json.dumps([{"id": "p1"}, {"id": "p2", "name": "Ok"}])))
            db.commit()

        assert [p.id for p in local_cache.load(EntityKind.PROJECTS)] == ["p2"]

    def test_bucket_sizes(self, local_cache):
        local_cache.upsert(EntityKind.PROJECTS, Project(id="p1", name="Intranet"))
        sizes = local_cache.bucket_sizes()
        assert sizes["projects"] == 1
        assert sizes["users"] == len(DEFAULT_USERS)


class TestGatewayWrites:

    def test_local_only_save(self, gateway):
        assert gateway.mode == "local"
        assert gateway.save(EntityKind.PROJECTS, Project(id="p1", name="Intranet")) is None
        assert [p.id for p in gateway.local.load(EntityKind.PROJECTS)] == ["p1"]
        assert not gateway.warnings

    @pytest.mark.asyncio
    async def test_mirror_sends_snake_case_upsert(self, local_cache):
        sent = []

        def handler(request: httpx.Request) -> httpx.Response:
            sent.append(request)
            return httpx.Response(201)

        gateway = PersistenceGateway(local_cache, make_remote(handler))
        gateway.save(EntityKind.PROJECTS, Project(id="p1", name="Intranet", client_name="Acme"))
        await gateway.drain()

        assert len(sent) == 1
        request = sent[0]
        assert request.method == "POST"
        assert request.url.path == "/rest/v1/projects"
        assert request.headers["apikey"] == "test-key"
        assert "merge-duplicates" in request.headers["Prefer"]
        assert json.loads(request.content)["client_name"] == "Acme"
        assert not gateway.warnings
        assert not gateway.unsynced

    @pytest.mark.asyncio
    async def test_mirror_delete_filters_by_id(self, local_cache):
        sent = []

        def handler(request: httpx.Request) -> httpx.Response:
            sent.append(request)
            return httpx.Response(204)

        gateway = PersistenceGateway(local_cache, make_remote(handler))
        gateway.delete(EntityKind.TASKS, "t-9")
        await gateway.drain()

        assert sent[0].method == "DELETE"
        assert sent[0].url.params["id"] == "eq.t-9"

    @pytest.mark.asyncio
    async def test_remote_failure_keeps_local_write(self, local_cache):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, json={"message": "down"})

        gateway = PersistenceGateway(local_cache, make_remote(handler))
        gateway.save(EntityKind.PROJECTS, Project(id="p1", name="Intranet"))
        await gateway.drain()

        assert [p.id for p in local_cache.load(EntityKind.PROJECTS)] == ["p1"]
        assert len(gateway.warnings) == 1
        warning = gateway.warnings[0]
        assert warning.operation == "save"
        assert warning.entity_id == "p1"
        assert "HTTP 500" in warning.message
        assert gateway.unsynced == {("projects", "p1")}

    @pytest.mark.asyncio
    async def test_later_success_clears_unsynced(self, local_cache):
        responses = [httpx.Response(503), httpx.Response(201)]

        def handler(request: httpx.Request) -> httpx.Response:
            return responses.pop(0)

        gateway = PersistenceGateway(local_cache, make_remote(handler))
        gateway.save(EntityKind.PROJECTS, Project(id="p1", name="Intranet"))
        await gateway.drain()
        assert ("projects", "p1") in gateway.unsynced

        gateway.save(EntityKind.PROJECTS, Project(id="p1", name="Intranet"))
        await gateway.drain()
        assert not gateway.unsynced

    @pytest.mark.asyncio
    async def test_network_error_becomes_warning(self, local_cache):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        gateway = PersistenceGateway(local_cache, make_remote(handler))
        gateway.delete(EntityKind.PROJECTS, "p1")
        await gateway.drain()

        assert gateway.warnings[0].operation == "delete"
        assert ("projects", "p1") in gateway.unsynced

    def test_no_event_loop_marks_unsynced(self, local_cache):
        gateway = PersistenceGateway(local_cache, make_remote(lambda request: httpx.Response(201)))
        assert gateway.save(EntityKind.PROJECTS, Project(id="p1", name="Intranet")) is None
        assert [p.id for p in local_cache.load(EntityKind.PROJECTS)] == ["p1"]
        assert gateway.unsynced == {("projects", "p1")}

    def test_warning_history_is_bounded(self, local_cache):
        gateway = PersistenceGateway(local_cache, max_warnings=2)
        for n in range(5):
            gateway.warn("save", f"problem {n}")
        assert [w.message for w in gateway.warnings] == ["problem 3", "problem 4"]

    def test_warning_time_is_utc(self, local_cache):
        warning = PersistenceGateway(local_cache).warn("save", "problem")
        assert warning.occurred_at.utcoffset() == timedelta(0)


class TestGatewayLoad:

    @pytest.mark.asyncio
    async def test_local_load(self, gateway):
        gateway.save(EntityKind.PROJECTS, Project(id="p1", name="Intranet"))
        snapshot = await gateway.load_all()
        assert snapshot.source == "local"
        assert [p.id for p in snapshot.projects] == ["p1"]
        assert snapshot.users == tuple(DEFAULT_USERS)

    @pytest.mark.asyncio
    async def test_local_round_trip_and_delete(self, gateway):
        entry = make_entry("e1", {0: ("09:00", "17:00"), 6: ("22:00", "01:30")}, notes="Release", task_id="t4")
        sheet = Timesheet(
            id="ts1",
            user_id="u1",
            week_start_date=date(2024, 3, 11),
            status=TimesheetStatus.SUBMITTED,
            entries=(entry,),
            total_hours=11.5,
        )
        request = TimeOffRequest(
            id="r1",
            user_id="u1",
            start_date=date(2024, 5, 1),
            end_date=date(2024, 5, 3),
            type=TimeOffType.SICK_LEAVE,
            reason="Flu",
            attachment=base64.b64encode(b"%PDF-1.4 note").decode("ascii"),
            attachment_name="note.pdf",
        )
        gateway.save(EntityKind.TIMESHEETS, sheet)
        gateway.save(EntityKind.TIME_OFF_REQUESTS, request)

        snapshot = await gateway.load_all()
        assert snapshot.timesheets == (sheet,)
        assert snapshot.time_off_requests == (request,)

        gateway.delete(EntityKind.TIMESHEETS, "ts1")
        gateway.delete(EntityKind.TIME_OFF_REQUESTS, "r1")
        snapshot = await gateway.load_all()
        assert snapshot.timesheets == ()
        assert snapshot.time_off_requests == ()

    @pytest.mark.asyncio
    async def test_remote_load_uses_snake_case_rows(self, local_cache):
        rows = {
            "projects": [{"id": "p1", "name": "Intranet", "client_name": "Acme", "color": "bg-red-500"}],
            "time_off_requests": [
                {"id": "r1", "user_id": "u1", "start_date": "2024-05-01", "end_date": "2024-05-02", "attachment_name": None}
            ],
        }

        def handler(request: httpx.Request) -> httpx.Response:
            table = request.url.path.rsplit("/", 1)[-1]
            return httpx.Response(200, json=rows.get(table, []))

        gateway = PersistenceGateway(local_cache, make_remote(handler))
        snapshot = await gateway.load_all()

        assert snapshot.source == "remote"
        assert snapshot.projects[0].client_name == "Acme"
        assert isinstance(snapshot.time_off_requests[0], TimeOffRequest)
        # An empty users table falls back to the built-in users
        assert snapshot.users == tuple(DEFAULT_USERS)
        assert not gateway.warnings

    @pytest.mark.asyncio
    async def test_remote_failure_falls_back_to_local(self, local_cache):
        local_cache.upsert(EntityKind.PROJECTS, Project(id="cached", name="Cached"))

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500)

        gateway = PersistenceGateway(local_cache, make_remote(handler))
        snapshot = await gateway.load_all()

        assert snapshot.source == "local"
        assert [p.id for p in snapshot.projects] == ["cached"]
        assert gateway.warnings[0].operation == "load"
        assert "Falling back to local storage" in gateway.warnings[0].message

    @pytest.mark.asyncio
    async def test_missing_time_off_table_is_tolerated(self, local_cache):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/time_off_requests"):
                return httpx.Response(404)
            return httpx.Response(200, json=[])

        gateway = PersistenceGateway(local_cache, make_remote(handler))
        snapshot = await gateway.load_all()

        assert snapshot.source == "remote"
        assert snapshot.time_off_requests == ()
        assert gateway.warnings[0].kind == "time_off_requests"

    @pytest.mark.asyncio
    async def test_non_json_body_falls_back_to_local(self, local_cache):
        local_cache.upsert(EntityKind.PROJECTS, Project(id="cached", name="Cached"))

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>maintenance</html>")

        gateway = PersistenceGateway(local_cache, make_remote(handler))
        snapshot = await gateway.load_all()

        assert snapshot.source == "local"
        assert [p.id for p in snapshot.projects] == ["cached"]
