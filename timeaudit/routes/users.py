# TimeAudit - Profile Routes
# The calling user's own profile

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from timeaudit.dependencies import get_current_user, get_workspace
from timeaudit.schemas import User
from timeaudit.services.workspace import Workspace


router = APIRouter(prefix="/users", tags=["users"])


class ProfileForm(BaseModel):
    name: Optional[str] = None
    avatar: Optional[str] = None
    department: Optional[str] = None


@router.get("/me")
async def my_profile(user: User = Depends(get_current_user)):
    return user.to_local()


@router.put("/me")
async def update_profile(
    form: ProfileForm,
    user: User = Depends(get_current_user),
    workspace: Workspace = Depends(get_workspace),
):
    """Edit your own name, avatar or department. Role is admin-only."""
    changes = {k: v for k, v in form.model_dump(exclude_unset=True).items() if v is not None}
    return workspace.update_user(user.model_copy(update=changes)).to_local()
