"""
Route table - synthesizes routes from the model registry.

For every registered model, in registration order, the table holds the
model's custom routes followed by the five generated CRUD routes::

    GET    /api/<plural>         list
    GET    /api/<plural>/:id     get
    POST   /api/<plural>         create
    PUT    /api/<plural>/:id     update
    DELETE /api/<plural>/:id     delete

Templates are compiled once, when the entry is added. Static templates
(no ``:param`` segment) are also indexed by ``METHOD:/path`` for O(1)
lookup. The first entry registered for a key wins; later duplicates are
dropped with a warning.
"""

from __future__ import annotations

import inspect
import re
from collections.abc import Awaitable, Callable, Iterator, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from crudgen.core.strings import collection_path
from crudgen.runtime.access_control import AuthBackend, check_access
from crudgen.runtime.api_request import ApiRequest
from crudgen.runtime.config import EngineSettings
from crudgen.runtime.crud_executor import CrudExecutor
from crudgen.runtime.errors import ValidationError
from crudgen.runtime.logging import get_logger
from crudgen.runtime.registry import ModelRegistry
from crudgen.runtime.request_context import ActivitySink, RequestContext
from crudgen.runtime.validation import run_schema
from crudgen.specs.model import CustomRouteSpec, ModelConfig, Operation

logger = get_logger("routes")

Handler = Callable[[ApiRequest, dict[str, str]], Awaitable[Any]]

_PARAM_RE = re.compile(r":(\w+)")


class RouteKind(StrEnum):
    """What a route does; the transport layer maps this to a success status."""

    LIST = "list"
    GET = "get"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    CUSTOM = "custom"


def compile_template(template: str) -> re.Pattern[str] | None:
    """
    Compile a route template into an anchored pattern.

    Each ``:name`` becomes a named group matching one path segment.
    Returns None for static templates.

    Example:
        >>> compile_template("/api/widgets/:id").match("/api/widgets/42")["id"]
        '42'
    """
    if not _PARAM_RE.search(template):
        return None
    parts: list[str] = []
    last = 0
    for match in _PARAM_RE.finditer(template):
        parts.append(re.escape(template[last : match.start()]))
        parts.append(f"(?P<{match.group(1)}>[^/]+)")
        last = match.end()
    parts.append(re.escape(template[last:]))
    return re.compile("^" + "".join(parts) + "$")


@dataclass
class RouteEntry:
    """One route: method + template bound to a handler."""

    method: str
    template: str
    handler: Handler
    kind: RouteKind
    model: str | None = None
    pattern: re.Pattern[str] | None = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        self.method = self.method.upper()
        self.pattern = compile_template(self.template)

    @property
    def key(self) -> str:
        return f"{self.method}:{self.template}"

    @property
    def is_static(self) -> bool:
        return self.pattern is None

    def match(self, method: str, path: str) -> dict[str, str] | None:
        """Path parameters if this entry matches, else None."""
        if method != self.method:
            return None
        if self.pattern is None:
            return {} if path == self.template else None
        found = self.pattern.match(path)
        return found.groupdict() if found else None


# =============================================================================
# Handler factories
# =============================================================================


@dataclass
class RouteDependencies:
    """Collaborators shared by all generated handlers."""

    executor: CrudExecutor
    auth: AuthBackend | None = None
    settings: EngineSettings = field(default_factory=EngineSettings)
    activity_sink: ActivitySink | None = None


def _request_context(request: ApiRequest, deps: RouteDependencies) -> RequestContext:
    if request.context is None:
        request.context = RequestContext.from_headers(
            request.headers, sink=deps.activity_sink, ip_address=request.client_ip
        )
    return request.context


def _body(request: ApiRequest) -> Mapping[str, Any]:
    if request.body is None:
        return {}
    if not isinstance(request.body, Mapping):
        raise ValidationError([{"path": [], "message": "Request body must be a JSON object"}])
    return request.body


def _make_list_handler(config: ModelConfig, deps: RouteDependencies) -> Handler:
    roles = config.permissions.roles_for(Operation.READ)

    async def handler(request: ApiRequest, params: dict[str, str]) -> Any:
        await check_access(roles, request, deps.auth, deps.settings.default_access)
        if config.validation.query is not None:
            run_schema(config.validation.query, dict(request.query))
        return await deps.executor.find_many(config.key, request.query)

    return handler


def _make_get_handler(config: ModelConfig, deps: RouteDependencies) -> Handler:
    roles = config.permissions.roles_for(Operation.READ)

    async def handler(request: ApiRequest, params: dict[str, str]) -> Any:
        await check_access(roles, request, deps.auth, deps.settings.default_access)
        return await deps.executor.find_one(config.key, params["id"])

    return handler


def _make_create_handler(config: ModelConfig, deps: RouteDependencies) -> Handler:
    roles = config.permissions.roles_for(Operation.CREATE)

    async def handler(request: ApiRequest, params: dict[str, str]) -> Any:
        ctx = _request_context(request, deps)
        await check_access(roles, request, deps.auth, deps.settings.default_access)
        return await deps.executor.create(config.key, _body(request), request.user_id, ctx)

    return handler


def _make_update_handler(config: ModelConfig, deps: RouteDependencies) -> Handler:
    roles = config.permissions.roles_for(Operation.UPDATE)

    async def handler(request: ApiRequest, params: dict[str, str]) -> Any:
        ctx = _request_context(request, deps)
        await check_access(roles, request, deps.auth, deps.settings.default_access)
        return await deps.executor.update(
            config.key, params["id"], _body(request), request.user_id, ctx
        )

    return handler


def _make_delete_handler(config: ModelConfig, deps: RouteDependencies) -> Handler:
    roles = config.permissions.roles_for(Operation.DELETE)

    async def handler(request: ApiRequest, params: dict[str, str]) -> Any:
        ctx = _request_context(request, deps)
        await check_access(roles, request, deps.auth, deps.settings.default_access)
        return await deps.executor.delete(config.key, params["id"], request.user_id, ctx)

    return handler


def _make_custom_handler(route: CustomRouteSpec, deps: RouteDependencies) -> Handler:
    async def handler(request: ApiRequest, params: dict[str, str]) -> Any:
        _request_context(request, deps)
        await check_access(route.permissions, request, deps.auth, deps.settings.default_access)
        result = route.handler(request, params)
        if inspect.isawaitable(result):
            result = await result
        return result

    return handler


# =============================================================================
# Route table
# =============================================================================


class RouteTable:
    """Ordered collection of routes with an exact-match index."""

    def __init__(self) -> None:
        self._entries: list[RouteEntry] = []
        self._keys: set[str] = set()
        self._exact: dict[str, RouteEntry] = {}

    def add(self, entry: RouteEntry) -> bool:
        """Append an entry. Returns False if its key was already taken."""
        if entry.key in self._keys:
            logger.warning("Route %s is shadowed by an earlier registration; skipped", entry.key)
            return False
        self._keys.add(entry.key)
        self._entries.append(entry)
        if entry.is_static:
            self._exact[entry.key] = entry
        return True

    def lookup_exact(self, method: str, path: str) -> RouteEntry | None:
        return self._exact.get(f"{method.upper()}:{path}")

    def keys(self) -> list[str]:
        """Route keys in table order."""
        return [entry.key for entry in self._entries]

    def __iter__(self) -> Iterator[RouteEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    @classmethod
    def from_registry(cls, registry: ModelRegistry, deps: RouteDependencies) -> RouteTable:
        """
        Synthesize routes for every registered model.

        Seals the registry: the table is derived once and only rebuilt
        together with a new registry.
        """
        registry.seal()
        table = cls()
        prefix = deps.settings.api_prefix
        for config in registry:
            base = collection_path(prefix, config.key, config.plural)
            item = f"{base}/:id"

            for custom in config.custom_routes:
                table.add(
                    RouteEntry(
                        method=custom.method.value,
                        template=f"{base}{custom.path}",
                        handler=_make_custom_handler(custom, deps),
                        kind=RouteKind.CUSTOM,
                        model=config.key,
                    )
                )

            generated = [
                ("GET", base, _make_list_handler, RouteKind.LIST),
                ("GET", item, _make_get_handler, RouteKind.GET),
                ("POST", base, _make_create_handler, RouteKind.CREATE),
                ("PUT", item, _make_update_handler, RouteKind.UPDATE),
                ("DELETE", item, _make_delete_handler, RouteKind.DELETE),
            ]
            for method, template, factory, kind in generated:
                table.add(RouteEntry(method, template, factory(config, deps), kind, config.key))
            logger.info("Generated routes for %s at %s", config.key, base)
        return table
