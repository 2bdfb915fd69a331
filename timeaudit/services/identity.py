# TimeAudit - Identity Bootstrap
# Resolve who is calling, within a hard deadline

import asyncio
import logging
from typing import Optional

from timeaudit.services.remote_store import RemoteStore, RemoteStoreError


logger = logging.getLogger(__name__)


class IdentityResolver:
    """
    Turn a bearer token into a user id.

    With a remote store configured the token is checked against its auth
    endpoint. In local-only mode the token is taken to be the user id
    itself, which is enough for a single-office deployment behind a
    trusted proxy.

    Usage:
        identity = IdentityResolver(remote, timeout=4.0)
        user_id = await identity.bootstrap(token)
        if user_id is None:
            ...  # proceed unauthenticated
    """

    def __init__(self, remote: Optional[RemoteStore] = None, timeout: float = 4.0):
        self.remote = remote
        self.timeout = timeout

    async def resolve(self, token: str) -> Optional[str]:
        """Identity check without a deadline."""
        if self.remote is None:
            return token or None
        return await self.remote.current_user_id(token)

    async def bootstrap(self, token: Optional[str]) -> Optional[str]:
        """
        Identity check raced against the timeout.

        A check that does not finish in time, or fails, leaves the
        caller unauthenticated rather than hanging.
        """
        if not token:
            return None

        try:
            return await asyncio.wait_for(self.resolve(token), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("Identity check timed out after %.1fs; continuing unauthenticated", self.timeout)
        except RemoteStoreError as e:
            logger.warning("Identity check failed (%s); continuing unauthenticated", e)
        return None
