# TimeAudit - Remote Store Client
# PostgREST-style REST client used as the best-effort remote mirror

import logging
from typing import Any, Optional

import httpx


logger = logging.getLogger(__name__)


class RemoteStoreError(Exception):
    """Raised when the remote store cannot be reached or rejects a call."""
    pass


def decode_json(response: httpx.Response, what: str) -> Any:
    """Response body as JSON; a body that does not parse is a store error."""
    try:
        return response.json()
    except ValueError as e:
        raise RemoteStoreError(f"Malformed JSON for {what}") from e


class RemoteStore:
    """
    Async client for a Supabase/PostgREST table API.

    Each entity kind is one table and each entity one row keyed by id.

    Usage:
        remote = RemoteStore("https://xyz.supabase.co", "anon-key")
        rows = await remote.select_all("projects")
        await remote.upsert("projects", {"id": "p-1", "name": "Intranet"})
        await remote.delete("projects", "p-1")

    A transport can be injected (httpx.MockTransport in tests).
    """

    REST_PATH = "/rest/v1"

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    @property
    def headers(self) -> dict[str, str]:
        return {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=self.headers,
            timeout=self.timeout,
            transport=self.transport,
        )

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            async with self._client() as client:
                response = await client.request(method, path, **kwargs)
                response.raise_for_status()
                return response
        except httpx.HTTPStatusError as e:
            raise RemoteStoreError(
                f"{method} {path} failed with HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise RemoteStoreError(f"{method} {path} failed: {e}") from e

    async def select_all(self, table: str) -> list[dict[str, Any]]:
        """Fetch every row of a table."""
        response = await self._request(
            "GET", f"{self.REST_PATH}/{table}", params={"select": "*"}
        )
        rows = decode_json(response, f"table {table}")
        if not isinstance(rows, list):
            raise RemoteStoreError(f"Unexpected payload for table {table}")
        return rows

    async def upsert(self, table: str, row: dict[str, Any]) -> None:
        """Insert the row, or update it if its id already exists."""
        await self._request(
            "POST",
            f"{self.REST_PATH}/{table}",
            json=row,
            headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
        )
        logger.debug("Upserted %s/%s", table, row.get("id"))

    async def delete(self, table: str, entity_id: str) -> None:
        """Delete the row with the given id."""
        await self._request(
            "DELETE", f"{self.REST_PATH}/{table}", params={"id": f"eq.{entity_id}"}
        )
        logger.debug("Deleted %s/%s", table, entity_id)

    async def current_user_id(self, token: str) -> Optional[str]:
        """Resolve an access token to the signed-in user's id."""
        try:
            async with self._client() as client:
                response = await client.get(
                    "/auth/v1/user",
                    headers={"Authorization": f"Bearer {token}"},
                )
        except httpx.HTTPError as e:
            raise RemoteStoreError(f"Identity check failed: {e}") from e

        if response.status_code != 200:
            return None
        user = decode_json(response, "identity check")
        if not isinstance(user, dict):
            raise RemoteStoreError("Unexpected payload for identity check")
        return user.get("id")
