"""Tests for role-based access checks."""

import pytest

from crudgen.runtime import (
    ApiRequest,
    AuthenticationError,
    Identity,
    PermissionDeniedError,
    check_access,
    require_roles,
)
from crudgen.runtime.access_control import bearer_token


def _request(token: str | None = None) -> ApiRequest:
    headers = {"authorization": f"Bearer {token}"} if token else {}
    return ApiRequest(method="GET", path="/api/widgets", headers=headers)


class TestDefaultPolicy:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("roles", [None, []])
    async def test_undeclared_roles_denied_by_default(self, auth, roles):
        with pytest.raises(PermissionDeniedError):
            await check_access(roles, _request("admin-token"), auth)

    @pytest.mark.asyncio
    async def test_open_default_skips_check(self):
        request = _request()
        assert await check_access(None, request, None, "open") is None


class TestPublic:
    @pytest.mark.asyncio
    async def test_public_needs_no_auth(self):
        assert await check_access(["*"], _request(), None) is None

    @pytest.mark.asyncio
    async def test_public_mixed_with_roles(self, auth):
        assert await check_access(["ADMIN", "*"], _request(), auth) is None


class TestRoles:
    @pytest.mark.asyncio
    async def test_matching_role(self, auth):
        request = _request("admin-token")
        identity = await check_access(["ADMIN"], request, auth)
        assert identity.user_id == "admin-1"
        assert request.identity is identity
        assert request.user_id == "admin-1"

    @pytest.mark.asyncio
    async def test_missing_role(self, auth):
        with pytest.raises(PermissionDeniedError, match="Required roles: ADMIN"):
            await check_access(["ADMIN"], _request("user-token"), auth)

    @pytest.mark.asyncio
    async def test_no_token(self, auth):
        with pytest.raises(AuthenticationError, match="No authorization header"):
            await check_access(["USER"], _request(), auth)

    @pytest.mark.asyncio
    async def test_bad_token(self, auth):
        with pytest.raises(AuthenticationError, match="Invalid or expired token"):
            await check_access(["USER"], _request("forged"), auth)

    @pytest.mark.asyncio
    async def test_roles_without_backend(self):
        with pytest.raises(AuthenticationError):
            await check_access(["USER"], _request("user-token"), None)


class TestHelpers:
    def test_require_roles(self):
        identity = Identity(user_id="u", roles=frozenset({"EDITOR"}))
        require_roles(identity, ["ADMIN", "EDITOR"])
        with pytest.raises(PermissionDeniedError):
            require_roles(identity, ["ADMIN"])
        with pytest.raises(AuthenticationError):
            require_roles(None, ["ADMIN"])

    def test_bearer_token(self):
        assert bearer_token({"Authorization": "Bearer abc"}) == "abc"
        assert bearer_token({"authorization": "Bearer "}) is None
        assert bearer_token({}) is None
