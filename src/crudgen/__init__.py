"""
crudgen - schema-driven CRUD engine.

Turns declarative per-model configurations into working HTTP endpoints:

- ModelConfig: declarative model description (validation, hooks, filters, roles)
- ModelRegistry: explicit, write-once registry of configs
- CrudExecutor: validate -> transform -> hook -> persist -> hook -> transform
- Dispatcher: (method, path) -> handler + path params
- create_app: FastAPI application serving every registered model
"""

from crudgen._version import get_version as _get_version

__version__ = _get_version()

from crudgen.runtime import (
    CrudExecutor,
    Dispatcher,
    InMemoryPersistence,
    ModelRegistry,
    build_dispatcher,
)
from crudgen.specs import ModelConfig

__all__ = [
    "CrudExecutor",
    "Dispatcher",
    "InMemoryPersistence",
    "ModelConfig",
    "ModelRegistry",
    "build_dispatcher",
]
