# TimeAudit - Services
# Business logic layer

from .identity import IdentityResolver
from .persistence import EntityKind, LocalCache, PersistenceGateway, Snapshot, SyncWarning
from .remote_store import RemoteStore, RemoteStoreError
from .workspace import NotFoundError, ValidationError, Workspace

__all__ = [
    "EntityKind",
    "IdentityResolver",
    "LocalCache",
    "NotFoundError",
    "PersistenceGateway",
    "RemoteStore",
    "RemoteStoreError",
    "Snapshot",
    "SyncWarning",
    "ValidationError",
    "Workspace",
]
