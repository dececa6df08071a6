"""
Role-based access checks for route handlers.

Authentication itself is an external collaborator (``AuthBackend``); this
module decides *whether* to invoke it and applies the role list.

Policy for a declared role list:
- ``["*"]`` (``PUBLIC``): open to any caller, no authentication
- non-empty list: authenticate, then require one of the roles
- absent or empty: governed by ``EngineSettings.default_access``
  ("deny" refuses the request, "open" skips the check)
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from crudgen.runtime.config import AccessDefault
from crudgen.runtime.errors import AuthenticationError, PermissionDeniedError
from crudgen.runtime.logging import get_logger
from crudgen.specs.model import PUBLIC

if TYPE_CHECKING:
    from crudgen.runtime.api_request import ApiRequest

logger = get_logger("access")


@dataclass(frozen=True)
class Identity:
    """Authenticated caller."""

    user_id: str
    roles: frozenset[str] = field(default_factory=frozenset)

    def has_any_role(self, roles: list[str]) -> bool:
        return bool(self.roles & set(roles))


class AuthBackend(Protocol):
    """Authorization collaborator."""

    async def authenticate(self, request: ApiRequest) -> Identity:
        """Return the caller's identity or raise AuthenticationError."""
        ...

    def authorize(self, identity: Identity, roles: list[str]) -> None:
        """Raise PermissionDeniedError unless the identity holds one of ``roles``."""
        ...


def require_roles(identity: Identity | None, roles: list[str]) -> None:
    """Default role check used by ``RoleAuthBackend.authorize``."""
    if identity is None:
        raise AuthenticationError("Not authenticated")
    if not identity.has_any_role(roles):
        raise PermissionDeniedError(f"Insufficient permissions. Required roles: {', '.join(roles)}")


def bearer_token(headers: Mapping[str, str]) -> str | None:
    """Extract a bearer token from an Authorization header."""
    for key, value in headers.items():
        if key.lower() == "authorization":
            token = value.removeprefix("Bearer ").strip()
            return token or None
    return None


class RoleAuthBackend:
    """Base backend: subclasses implement ``authenticate``; roles are checked here."""

    async def authenticate(self, request: ApiRequest) -> Identity:
        raise NotImplementedError

    def authorize(self, identity: Identity, roles: list[str]) -> None:
        require_roles(identity, roles)


class StaticTokenAuth(RoleAuthBackend):
    """
    Resolves bearer tokens from a fixed table.

    For development and tests; production deployments plug in a backend
    that verifies real tokens.
    """

    def __init__(self, tokens: Mapping[str, Identity]):
        self._tokens = dict(tokens)

    async def authenticate(self, request: ApiRequest) -> Identity:
        token = bearer_token(request.headers)
        if token is None:
            raise AuthenticationError("No authorization header provided")
        identity = self._tokens.get(token)
        if identity is None:
            raise AuthenticationError("Invalid or expired token")
        return identity


async def check_access(
    roles: list[str] | None,
    request: ApiRequest,
    auth: AuthBackend | None,
    default_access: AccessDefault = "deny",
) -> Identity | None:
    """
    Apply a declared role list to a request.

    On success the authenticated identity (if any) is stored on the request
    and returned.

    Raises:
        AuthenticationError: Authentication required but failed or unavailable
        PermissionDeniedError: Role missing, or access denied by default policy
    """
    if not roles:
        if default_access == "open":
            return request.identity
        logger.debug("Denied %s %s: no roles declared", request.method, request.path)
        raise PermissionDeniedError("Access denied: operation declares no permitted roles")

    if PUBLIC in roles:
        return request.identity

    if auth is None:
        raise AuthenticationError("Authentication required but no auth backend is configured")

    identity = await auth.authenticate(request)
    request.identity = identity
    auth.authorize(identity, roles)
    return identity
