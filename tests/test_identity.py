"""
Tests for the identity bootstrap and its deadline.
"""

import asyncio

import httpx
import pytest

from timeaudit.services.identity import IdentityResolver
from timeaudit.services.remote_store import RemoteStoreError

from conftest import make_remote


class SlowRemote:
    """Remote whose identity check never answers in time."""

    async def current_user_id(self, token):
        await asyncio.sleep(5)
        return "u1"


class BrokenRemote:
    async def current_user_id(self, token):
        raise RemoteStoreError("Identity check failed: connection refused")


class TestIdentityResolver:

    @pytest.mark.asyncio
    async def test_local_mode_token_is_user_id(self):
        identity = IdentityResolver()
        assert await identity.bootstrap("u2") == "u2"

    @pytest.mark.asyncio
    async def test_no_token(self):
        assert await IdentityResolver().bootstrap(None) is None
        assert await IdentityResolver().bootstrap("") is None

    @pytest.mark.asyncio
    async def test_remote_token_lookup(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/auth/v1/user"
            if request.headers["Authorization"] == "Bearer good-token":
                return httpx.Response(200, json={"id": "u3", "email": "charlie@company.com"})
            return httpx.Response(401, json={"message": "invalid token"})

        identity = IdentityResolver(make_remote(handler))
        assert await identity.bootstrap("good-token") == "u3"
        assert await identity.bootstrap("bad-token") is None

    @pytest.mark.asyncio
    async def test_times_out_unauthenticated(self):
        identity = IdentityResolver(SlowRemote(), timeout=0.05)
        assert await identity.bootstrap("token") is None

    @pytest.mark.asyncio
    async def test_remote_error_is_unauthenticated(self):
        identity = IdentityResolver(BrokenRemote(), timeout=1.0)
        assert await identity.bootstrap("token") is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(200, text="<html>login</html>"),
            httpx.Response(200, json=["u1"]),
        ],
    )
    async def test_unreadable_auth_body_is_unauthenticated(self, response):
        identity = IdentityResolver(make_remote(lambda request: response))
        assert await identity.bootstrap("token") is None

    @pytest.mark.asyncio
    async def test_unreadable_auth_body_raises_store_error(self):
        remote = make_remote(lambda request: httpx.Response(200, text="not json"))
        with pytest.raises(RemoteStoreError):
            await remote.current_user_id("token")
