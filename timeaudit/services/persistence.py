# TimeAudit - Persistence Gateway
# Local-first cache with a fire-and-forget remote mirror

import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from functools import partial
from typing import Awaitable, Callable, Optional

from pydantic import ValidationError as RecordError
from sqlalchemy.orm import sessionmaker

from timeaudit.database import get_db_context
from timeaudit.models.cache_bucket import CacheBucket
from timeaudit.schemas import (
    DEFAULT_USERS,
    Project,
    Record,
    Task,
    TimeOffRequest,
    Timesheet,
    User,
)
from timeaudit.services.remote_store import RemoteStore, RemoteStoreError


logger = logging.getLogger(__name__)


class EntityKind(str, Enum):
    """Every persisted collection. The value is also the remote table name."""

    PROJECTS = "projects"
    TASKS = "tasks"
    TIMESHEETS = "timesheets"
    USERS = "users"
    TIME_OFF_REQUESTS = "time_off_requests"

    @property
    def bucket_key(self) -> str:
        return f"timeaudit_{self.value}"

    @property
    def table(self) -> str:
        return self.value

    @property
    def model(self) -> type[Record]:
        return _MODELS[self]

    @property
    def defaults(self) -> list[Record]:
        """Built-in records used when a collection is empty."""
        return list(DEFAULT_USERS) if self is EntityKind.USERS else []


_MODELS = {
    EntityKind.PROJECTS: Project,
    EntityKind.TASKS: Task,
    EntityKind.TIMESHEETS: Timesheet,
    EntityKind.USERS: User,
    EntityKind.TIME_OFF_REQUESTS: TimeOffRequest,
}

# A failed read of these tables does not abort a remote load
OPTIONAL_REMOTE_KINDS = {EntityKind.TIME_OFF_REQUESTS}


@dataclass(frozen=True)
class Snapshot:
    """Every collection as loaded at startup, plus where it came from."""

    projects: tuple[Project, ...] = ()
    tasks: tuple[Task, ...] = ()
    timesheets: tuple[Timesheet, ...] = ()
    users: tuple[User, ...] = ()
    time_off_requests: tuple[TimeOffRequest, ...] = ()
    source: str = "local"


@dataclass(frozen=True)
class SyncWarning:
    """A user-visible, non-fatal persistence problem."""

    operation: str
    message: str
    kind: Optional[str] = None
    entity_id: Optional[str] = None
    occurred_at: datetime = field(default_factory=partial(datetime.now, timezone.utc))


def parse_records(kind: EntityKind, rows: list[dict]) -> list[Record]:
    """Validate raw rows into records, skipping rows that do not parse."""
    records = []
    for row in rows:
        try:
            records.append(kind.model.model_validate(row))
        except RecordError as e:
            logger.warning("Skipping malformed %s record %r: %s", kind.value, row.get("id"), e)
    return records


class LocalCache:
    """
    Local cache of named buckets, one per entity kind.

    Every read returns the full collection and every write rewrites it.
    A bucket that was never written reads as the kind's defaults.

    Usage:
        cache = LocalCache(SessionLocal)
        cache.upsert(EntityKind.PROJECTS, project)
        projects = cache.load(EntityKind.PROJECTS)
    """

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def load(self, kind: EntityKind) -> list[Record]:
        """Read a whole bucket."""
        with get_db_context(self.session_factory) as db:
            bucket = db.get(CacheBucket, kind.bucket_key)
            if bucket is None:
                return kind.defaults
            return parse_records(kind, bucket.records)

    def store(self, kind: EntityKind, records: list[Record]) -> None:
        """Replace a whole bucket."""
        with get_db_context(self.session_factory) as db:
            bucket = db.get(CacheBucket, kind.bucket_key)
            if bucket is None:
                bucket = CacheBucket(bucket_key=kind.bucket_key)
                db.add(bucket)
            bucket.records = [record.to_local() for record in records]
            db.commit()

    def upsert(self, kind: EntityKind, entity: Record) -> None:
        """Replace the record with the same id, or append it."""
        records = self.load(kind)
        if any(r.id == entity.id for r in records):
            records = [entity if r.id == entity.id else r for r in records]
        else:
            records.append(entity)
        self.store(kind, records)

    def remove(self, kind: EntityKind, entity_id: str) -> None:
        """Drop the record with the given id, if present."""
        self.store(kind, [r for r in self.load(kind) if r.id != entity_id])

    def bucket_sizes(self) -> dict[str, int]:
        """Record count per kind, for status displays."""
        return {kind.value: len(self.load(kind)) for kind in EntityKind}


class PersistenceGateway:
    """
    Save, delete and load every entity kind.

    Writes go to the local cache first and always succeed there. When a
    remote store is configured the same write is then mirrored as a
    detached asyncio task; nothing waits for it. A failed mirror never
    rolls back the local write: it becomes a SyncWarning and the entity
    is remembered as unsynced until a later mirror of it succeeds.

    Loading prefers the remote store and falls back to the local cache
    when the remote read fails.

    Usage:
        gateway = PersistenceGateway(LocalCache(SessionLocal), remote)
        snapshot = await gateway.load_all()
        gateway.save(EntityKind.TIMESHEETS, sheet)
        gateway.delete(EntityKind.TASKS, "t-1")
        await gateway.drain()  # on shutdown
    """

    def __init__(
        self,
        local: LocalCache,
        remote: Optional[RemoteStore] = None,
        max_warnings: int = 50,
    ):
        self.local = local
        self.remote = remote
        self.warnings: deque[SyncWarning] = deque(maxlen=max_warnings)
        self._pending: set[asyncio.Task] = set()
        self._unsynced: set[tuple[str, str]] = set()

    @property
    def is_cloud_enabled(self) -> bool:
        return self.remote is not None

    @property
    def mode(self) -> str:
        return "cloud" if self.is_cloud_enabled else "local"

    @property
    def unsynced(self) -> frozenset[tuple[str, str]]:
        """(kind, id) pairs whose latest remote mirror failed."""
        return frozenset(self._unsynced)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    # Writes

    def save(self, kind: EntityKind, entity: Record) -> Optional[asyncio.Task]:
        """
        Upsert an entity.

        Returns the detached mirror task, or None in local-only mode.
        """
        kind = EntityKind(kind)
        self.local.upsert(kind, entity)

        if self.remote is None:
            return None
        row = entity.to_remote()
        return self._mirror(kind, entity.id, "save", lambda: self.remote.upsert(kind.table, row))

    def delete(self, kind: EntityKind, entity_id: str) -> Optional[asyncio.Task]:
        """
        Delete an entity by id.

        Related records are not touched; cascades are the caller's job.
        """
        kind = EntityKind(kind)
        self.local.remove(kind, entity_id)

        if self.remote is None:
            return None
        return self._mirror(kind, entity_id, "delete", lambda: self.remote.delete(kind.table, entity_id))

    def _mirror(
        self,
        kind: EntityKind,
        entity_id: str,
        operation: str,
        call: Callable[[], Awaitable[None]],
    ) -> Optional[asyncio.Task]:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Called outside the event loop (CLI, plain scripts)
            self._unsynced.add((kind.value, entity_id))
            logger.warning("No event loop running; %s of %s/%s not mirrored", operation, kind.value, entity_id)
            return None

        task = loop.create_task(call())
        self._pending.add(task)
        task.add_done_callback(partial(self._mirror_done, kind, entity_id, operation))
        return task

    def _mirror_done(self, kind: EntityKind, entity_id: str, operation: str, task: asyncio.Task) -> None:
        self._pending.discard(task)
        key = (kind.value, entity_id)

        if task.cancelled():
            self._unsynced.add(key)
            return

        error = task.exception()
        if error is None:
            self._unsynced.discard(key)
            return

        self._unsynced.add(key)
        self.warn(
            operation,
            f"Saved locally, but the cloud copy of {kind.value} {entity_id} could not be updated: {error}",
            kind=kind.value,
            entity_id=entity_id,
        )

    async def drain(self) -> None:
        """Wait for every in-flight mirror task to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def warn(self, operation: str, message: str, kind: Optional[str] = None, entity_id: Optional[str] = None) -> SyncWarning:
        """Record and log a non-fatal persistence warning."""
        warning = SyncWarning(operation=operation, message=message, kind=kind, entity_id=entity_id)
        self.warnings.append(warning)
        logger.warning(message)
        return warning

    # Reads

    async def load_all(self) -> Snapshot:
        """
        Load every collection.

        With a remote store configured its data is authoritative for the
        session, and a collection that comes back empty is replaced by
        the built-in defaults. If the remote read fails, a warning is
        recorded and everything is read from the local cache instead.
        """
        if self.remote is not None:
            try:
                return await self._load_remote()
            except (RemoteStoreError, ValueError) as e:
                self.warn(
                    "load",
                    f"Failed to load from the cloud store ({e}). Falling back to local storage.",
                )
        return self._load_local()

    async def _load_remote(self) -> Snapshot:
        logger.info("Loading all collections from the remote store")
        kinds = list(EntityKind)
        results = await asyncio.gather(
            *(self.remote.select_all(kind.table) for kind in kinds),
            return_exceptions=True,
        )

        collections = {}
        for kind, result in zip(kinds, results):
            if isinstance(result, BaseException):
                if kind not in OPTIONAL_REMOTE_KINDS:
                    raise result
                self.warn("load", f"Could not load {kind.value} from the cloud store: {result}", kind=kind.value)
                result = []

            records = [kind.model.model_validate(row) for row in result]
            collections[kind.value] = tuple(records or kind.defaults)

        return Snapshot(source="remote", **collections)

    def _load_local(self) -> Snapshot:
        logger.info("Loading all collections from the local cache")
        collections = {kind.value: tuple(self.local.load(kind)) for kind in EntityKind}
        return Snapshot(source="local", **collections)
