# TimeAudit - Request Dependencies
# FastAPI dependencies for reaching the workspace and protecting routes

from typing import Optional

from fastapi import Depends, HTTPException, Request, status

from timeaudit.schemas import User
from timeaudit.services.identity import IdentityResolver
from timeaudit.services.workspace import Workspace


def get_workspace(request: Request) -> Workspace:
    """The workspace built by the application lifespan."""
    return request.app.state.workspace


def get_identity(request: Request) -> IdentityResolver:
    return request.app.state.identity


def get_bearer_token(request: Request) -> Optional[str]:
    """
    Extract the bearer token from the Authorization header.

    Returns None if the header is missing or not a bearer token.
    """
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def get_current_user_optional(
    request: Request,
    workspace: Workspace = Depends(get_workspace),
    identity: IdentityResolver = Depends(get_identity),
) -> Optional[User]:
    """
    Get the calling user if the token resolves, None otherwise.

    Usage:
        @router.get("/")
        async def home(user: Optional[User] = Depends(get_current_user_optional)):
            if user:
                return {"welcome": user.name}
            return {"welcome": None}
    """
    user_id = await identity.bootstrap(get_bearer_token(request))
    if not user_id:
        return None
    return workspace.get_user(user_id)


async def get_current_user(
    user: Optional[User] = Depends(get_current_user_optional),
) -> User:
    """
    Get the calling user or raise 401.

    Usage:
        @router.get("/timesheets/current")
        def current(user: User = Depends(get_current_user)):
            # user is guaranteed to be known
            ...
    """
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def require_admin(
    user: User = Depends(get_current_user),
) -> User:
    """
    Require the calling user to be an admin.

    Usage:
        @router.get("/admin/approvals")
        def approvals(user: User = Depends(require_admin)):
            # user is guaranteed to be an admin
            ...
    """
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user
