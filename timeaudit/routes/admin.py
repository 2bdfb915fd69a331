# TimeAudit - Admin Routes
# Approvals, leave decisions, dashboard figures and user management

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ValidationError

from timeaudit.dependencies import get_workspace, require_admin
from timeaudit.schemas import Role, TimeOffStatus, User
from timeaudit.services.workspace import NotFoundError, Workspace


router = APIRouter(prefix="/admin", tags=["admin"])


class Decision(BaseModel):
    status: TimeOffStatus


class UserForm(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[Role] = None
    avatar: Optional[str] = None
    manager_id: Optional[str] = None
    department: Optional[str] = None


def _user_name(workspace: Workspace, user_id: str) -> str:
    found = workspace.get_user(user_id)
    return found.name if found else user_id


# Timesheet approvals

@router.get("/timesheets/pending")
async def pending_timesheets(
    user: User = Depends(require_admin),
    workspace: Workspace = Depends(get_workspace),
):
    """Submitted timesheets waiting for a decision."""
    return [
        {**t.to_local(), "userName": _user_name(workspace, t.user_id)}
        for t in workspace.pending_timesheets()
    ]


@router.post("/timesheets/{timesheet_id}/approve")
async def approve_timesheet(
    timesheet_id: str,
    user: User = Depends(require_admin),
    workspace: Workspace = Depends(get_workspace),
):
    try:
        sheet = workspace.approve_timesheet(timesheet_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return sheet.to_local()


@router.post("/timesheets/{timesheet_id}/reject")
async def reject_timesheet(
    timesheet_id: str,
    user: User = Depends(require_admin),
    workspace: Workspace = Depends(get_workspace),
):
    try:
        sheet = workspace.reject_timesheet(timesheet_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return sheet.to_local()


# Time off decisions

@router.get("/time-off/pending")
async def pending_time_off(
    user: User = Depends(require_admin),
    workspace: Workspace = Depends(get_workspace),
):
    return [
        {**r.to_local(), "userName": _user_name(workspace, r.user_id)}
        for r in workspace.pending_time_off()
    ]


@router.post("/time-off/{request_id}/status")
async def decide_time_off(
    request_id: str,
    decision: Decision,
    user: User = Depends(require_admin),
    workspace: Workspace = Depends(get_workspace),
):
    """Approve or reject a leave request."""
    try:
        request = workspace.set_time_off_status(request_id, decision.status)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return request.to_local()


# Dashboard

@router.get("/stats")
async def dashboard_stats(
    user: User = Depends(require_admin),
    workspace: Workspace = Depends(get_workspace),
):
    """Hours per project and timesheet counts per status."""
    return {
        "hoursByProject": workspace.hours_by_project(),
        "statusCounts": workspace.status_counts(),
        "pendingTimesheets": len(workspace.pending_timesheets()),
        "pendingTimeOff": len(workspace.pending_time_off()),
    }


# Users

@router.get("/users")
async def list_users(
    user: User = Depends(require_admin),
    workspace: Workspace = Depends(get_workspace),
):
    return [u.to_local() for u in workspace.state.users]


@router.put("/users/{user_id}")
async def update_user(
    user_id: str,
    form: UserForm,
    user: User = Depends(require_admin),
    workspace: Workspace = Depends(get_workspace),
):
    """Change any profile field of a user, including role and manager."""
    target = workspace.get_user(user_id)
    if target is None:
        raise HTTPException(status_code=404, detail="User not found")

    changes = form.model_dump(exclude_unset=True)
    try:
        updated = User.model_validate({**target.model_dump(), **changes})
    except ValidationError as e:
        fields = ", ".join(str(err["loc"][0]) for err in e.errors())
        raise HTTPException(status_code=400, detail=f"Invalid value for: {fields}")
    return workspace.update_user(updated).to_local()
