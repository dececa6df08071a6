"""
Transport-neutral request passed to route handlers.

The FastAPI layer builds one from a Starlette request; tests build them
directly. ``raw`` keeps the original transport object for custom handlers
that need it (streaming bodies, uploads).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from crudgen.runtime.access_control import Identity
    from crudgen.runtime.request_context import RequestContext


@dataclass
class ApiRequest:
    """An inbound API request."""

    method: str
    path: str
    query: dict[str, Any] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    body: Any = None
    client_ip: str | None = None
    identity: Identity | None = None
    context: RequestContext | None = None
    raw: Any = None

    def __post_init__(self) -> None:
        self.method = self.method.upper()

    @property
    def user_id(self) -> str | None:
        return self.identity.user_id if self.identity else None
