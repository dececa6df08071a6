"""
Per-request correlation and activity logging.

A RequestContext lives for one inbound request. Hooks receive it and call
``log_activity`` to record audit entries that share the request id, so
nested side effects of one request can be correlated afterwards.

Writing an entry is fire-and-forget from the caller's point of view: sink
failures are logged and swallowed, never propagated.
"""

from __future__ import annotations

import time
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from typing import Any, Literal, Protocol
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from crudgen.runtime.logging import get_logger

logger = get_logger("audit")

REQUEST_ID_HEADER = "x-request-id"

ActivityAction = Literal["CREATED", "UPDATED", "DELETED", "VIEWED"]


class ActivityEntry(BaseModel):
    """One audit log entry."""

    model_config = ConfigDict(frozen=True)

    user_id: str | None = None
    action: ActivityAction
    entity: str
    entity_id: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)
    ip_address: str | None = None
    user_agent: str | None = None
    request_id: str | None = None
    processing_time: float | None = Field(default=None, description="Milliseconds")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


class ActivitySink(Protocol):
    """Audit collaborator: persists activity entries."""

    async def record(self, entry: ActivityEntry) -> None: ...


class InMemoryActivityLog:
    """Activity sink that keeps entries in a list."""

    def __init__(self) -> None:
        self.entries: list[ActivityEntry] = []

    async def record(self, entry: ActivityEntry) -> None:
        self.entries.append(entry)

    def for_request(self, request_id: str) -> list[ActivityEntry]:
        return [e for e in self.entries if e.request_id == request_id]


def generate_request_id() -> str:
    return str(uuid4())


def safe_entity_details(
    entity: Any,
    sensitive_fields: Iterable[str] = ("password",),
) -> dict[str, Any]:
    """
    Reduce an entity to loggable details.

    Drops sensitive fields and nested objects (relations); keeps scalars
    and lists.
    """
    if not isinstance(entity, Mapping):
        return {}
    sensitive = set(sensitive_fields)
    return {
        key: value
        for key, value in entity.items()
        if key not in sensitive and not isinstance(value, Mapping)
    }


class RequestContext:
    """Correlation id and start time for one request."""

    def __init__(
        self,
        request_id: str | None = None,
        sink: ActivitySink | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ):
        self.request_id = request_id or generate_request_id()
        self.start_time = time.monotonic()
        self.ip_address = ip_address
        self.user_agent = user_agent
        self._sink = sink

    @classmethod
    def from_headers(
        cls,
        headers: Mapping[str, str],
        sink: ActivitySink | None = None,
        ip_address: str | None = None,
    ) -> RequestContext:
        """Build a context, reusing the inbound ``x-request-id`` header when present."""
        lowered = {k.lower(): v for k, v in headers.items()}
        return cls(
            request_id=lowered.get(REQUEST_ID_HEADER) or None,
            sink=sink,
            ip_address=ip_address,
            user_agent=lowered.get("user-agent"),
        )

    @property
    def processing_time(self) -> float:
        """Milliseconds since the request started."""
        return (time.monotonic() - self.start_time) * 1000

    async def log_activity(
        self,
        *,
        action: ActivityAction,
        entity: str,
        user_id: str | None = None,
        entity_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Record an activity entry stamped with this request's id and timing."""
        entry = ActivityEntry(
            user_id=user_id,
            action=action,
            entity=entity,
            entity_id=entity_id,
            details=details or {},
            ip_address=self.ip_address,
            user_agent=self.user_agent,
            request_id=self.request_id,
            processing_time=self.processing_time,
        )
        if self._sink is None:
            logger.debug("No activity sink configured; dropping %s %s", action, entity)
            return
        try:
            await self._sink.record(entry)
        except Exception:
            logger.error(
                "Failed to log activity %s %s (request %s)",
                action,
                entity,
                self.request_id,
                exc_info=True,
            )
