"""
Dispatcher - resolves (method, path) to a route handler.

Resolution order:
1. Exact lookup of ``METHOD:/path`` among static templates.
2. Linear scan of the route table in order; the first template whose
   method matches and whose compiled pattern matches the path wins, and
   its named groups become the path parameters.

No match anywhere yields None; the caller decides what that means (404).
The dispatcher holds no per-request state and is safe to share.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from crudgen.runtime.access_control import AuthBackend
from crudgen.runtime.api_request import ApiRequest
from crudgen.runtime.config import EngineSettings
from crudgen.runtime.crud_executor import CrudExecutor
from crudgen.runtime.logging import get_logger
from crudgen.runtime.persistence import Persistence
from crudgen.runtime.registry import ModelRegistry
from crudgen.runtime.request_context import ActivitySink
from crudgen.runtime.route_table import RouteDependencies, RouteEntry, RouteTable

logger = get_logger("dispatch")


@dataclass(frozen=True)
class RouteMatch:
    """A resolved route and its extracted path parameters."""

    route: RouteEntry
    params: dict[str, str]


@dataclass(frozen=True)
class DispatchResult:
    """Handler output together with the route that produced it."""

    match: RouteMatch
    value: Any


class Dispatcher:
    """Routes requests through a RouteTable."""

    def __init__(self, table: RouteTable):
        self.table = table

    def resolve(self, method: str, path: str) -> RouteMatch | None:
        method = method.upper()

        entry = self.table.lookup_exact(method, path)
        if entry is not None:
            logger.debug("Exact match %s %s -> %s", method, path, entry.key)
            return RouteMatch(route=entry, params={})

        for entry in self.table:
            if entry.is_static:
                continue
            params = entry.match(method, path)
            if params is not None:
                logger.debug("Pattern match %s %s -> %s %s", method, path, entry.key, params)
                return RouteMatch(route=entry, params=params)

        logger.debug("No handler for %s %s", method, path)
        return None

    async def dispatch(self, request: ApiRequest) -> DispatchResult | None:
        """
        Resolve and invoke the handler for a request.

        Handler errors propagate unchanged.
        """
        match = self.resolve(request.method, request.path)
        if match is None:
            return None
        value = await match.route.handler(request, match.params)
        return DispatchResult(match=match, value=value)

    def routes(self) -> list[str]:
        """Route keys in dispatch order."""
        return self.table.keys()


def build_dispatcher(
    registry: ModelRegistry,
    persistence: Persistence,
    *,
    auth: AuthBackend | None = None,
    settings: EngineSettings | None = None,
    activity_sink: ActivitySink | None = None,
) -> Dispatcher:
    """
    Wire registry, executor and route table into a ready dispatcher.

    Example:
        registry = ModelRegistry([ModelConfig(name="widget")])
        dispatcher = build_dispatcher(registry, InMemoryPersistence())
        dispatcher.routes()[0]  # 'GET:/api/widgets'
    """
    settings = settings or EngineSettings()
    executor = CrudExecutor(registry, persistence, settings)
    deps = RouteDependencies(
        executor=executor,
        auth=auth,
        settings=settings,
        activity_sink=activity_sink,
    )
    return Dispatcher(RouteTable.from_registry(registry, deps))
