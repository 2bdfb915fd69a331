# TimeAudit - Sync Status Routes
# Storage mode, sync warnings and records not yet mirrored remotely

from fastapi import APIRouter, Depends

from timeaudit.dependencies import get_current_user, get_workspace
from timeaudit.schemas import User
from timeaudit.services.workspace import Workspace


router = APIRouter(prefix="/sync", tags=["sync"])


@router.get("")
async def sync_status(
    user: User = Depends(get_current_user),
    workspace: Workspace = Depends(get_workspace),
):
    """
    Where data is kept and what has not reached the cloud copy.

    mode is "cloud" when a remote store is configured, "local" otherwise.
    """
    gateway = workspace.gateway
    return {
        "mode": gateway.mode,
        "cloudEnabled": gateway.is_cloud_enabled,
        "loadedFrom": workspace.loaded_from,
        "pendingWrites": gateway.pending_count,
        "unsynced": [
            {"kind": kind, "id": entity_id}
            for kind, entity_id in sorted(gateway.unsynced)
        ],
        "warnings": [
            {
                "operation": w.operation,
                "message": w.message,
                "kind": w.kind,
                "entityId": w.entity_id,
                "occurredAt": w.occurred_at.isoformat(),
            }
            for w in gateway.warnings
        ],
    }


@router.delete("/warnings")
async def clear_warnings(
    user: User = Depends(get_current_user),
    workspace: Workspace = Depends(get_workspace),
):
    """Dismiss the warning banner."""
    workspace.gateway.warnings.clear()
    return {"cleared": True}
