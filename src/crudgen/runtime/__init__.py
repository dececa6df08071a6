"""
crudgen runtime

This module provides:
- Model registry and query building
- CRUD pipeline execution with lifecycle hooks
- Route synthesis and dispatch
- FastAPI integration (``crudgen.runtime.app_factory.create_app``)

Example usage:
    >>> from crudgen.specs import ModelConfig, PermissionsSpec
    >>> from crudgen.runtime import ModelRegistry, InMemoryPersistence, build_dispatcher
    >>>
    >>> registry = ModelRegistry([ModelConfig(name="widget")])
    >>> dispatcher = build_dispatcher(registry, InMemoryPersistence())
    >>> dispatcher.routes()[:2]
    ['GET:/api/widgets', 'GET:/api/widgets/:id']
"""

from crudgen.runtime.access_control import (
    AuthBackend,
    Identity,
    RoleAuthBackend,
    StaticTokenAuth,
    check_access,
    require_roles,
)
from crudgen.runtime.api_request import ApiRequest
from crudgen.runtime.config import EngineSettings
from crudgen.runtime.crud_executor import CrudExecutor
from crudgen.runtime.dispatcher import DispatchResult, Dispatcher, RouteMatch, build_dispatcher
from crudgen.runtime.errors import (
    AuthenticationError,
    ConflictError,
    CrudError,
    DuplicateModelError,
    DuplicateRecordError,
    ModelNotConfiguredError,
    PermissionDeniedError,
    RecordNotFoundError,
    RegistryError,
    ValidationError,
)
from crudgen.runtime.persistence import InMemoryPersistence, ModelDelegate, Persistence
from crudgen.runtime.query_builder import QueryDescriptor, build_query
from crudgen.runtime.registry import ModelRegistry
from crudgen.runtime.request_context import (
    ActivityEntry,
    ActivitySink,
    InMemoryActivityLog,
    RequestContext,
    safe_entity_details,
)
from crudgen.runtime.route_table import RouteEntry, RouteKind, RouteTable

__all__ = [
    # Access control
    "AuthBackend",
    "Identity",
    "RoleAuthBackend",
    "StaticTokenAuth",
    "check_access",
    "require_roles",
    # Requests
    "ApiRequest",
    "RequestContext",
    "ActivityEntry",
    "ActivitySink",
    "InMemoryActivityLog",
    "safe_entity_details",
    # Engine
    "EngineSettings",
    "ModelRegistry",
    "CrudExecutor",
    "QueryDescriptor",
    "build_query",
    "InMemoryPersistence",
    "ModelDelegate",
    "Persistence",
    # Routing
    "RouteEntry",
    "RouteKind",
    "RouteTable",
    "Dispatcher",
    "DispatchResult",
    "RouteMatch",
    "build_dispatcher",
    # Errors
    "CrudError",
    "ValidationError",
    "ConflictError",
    "ModelNotConfiguredError",
    "RegistryError",
    "DuplicateModelError",
    "RecordNotFoundError",
    "DuplicateRecordError",
    "AuthenticationError",
    "PermissionDeniedError",
]
