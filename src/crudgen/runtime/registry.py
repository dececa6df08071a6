"""
Model registry.

Holds the mapping from model name to ModelConfig. A registry is an explicit
value: build one at startup, register every model, then seal it and hand it
to the executor and route table. Names are unique after lower-casing and
configs are write-once; there is no update API.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from crudgen.runtime.errors import DuplicateModelError, ModelNotConfiguredError, RegistryError
from crudgen.runtime.logging import get_logger
from crudgen.specs.model import ModelConfig

logger = get_logger("registry")


class ModelRegistry:
    """
    Case-insensitive, write-once registry of model configurations.

    Iteration yields configs in registration order, which is also the order
    generated routes appear in the route table.

    Example:
        registry = ModelRegistry([ModelConfig(name="widget")])
        registry.register_model(ModelConfig(name="category"))
        registry.seal()
    """

    def __init__(self, configs: Iterable[ModelConfig] = ()) -> None:
        self._configs: dict[str, ModelConfig] = {}
        self._sealed = False
        for config in configs:
            self.register_model(config)

    def register_model(self, config: ModelConfig) -> None:
        """Register a model configuration.

        Raises:
            RegistryError: If the registry has been sealed
            DuplicateModelError: If the name (case-insensitive) is taken
        """
        if self._sealed:
            raise RegistryError(f"Registry is sealed; cannot register '{config.name}'")
        key = config.key
        if key in self._configs:
            raise DuplicateModelError(f"Model '{config.name}' is already registered")
        self._configs[key] = config
        logger.info("Registered model %s", key)

    def seal(self) -> ModelRegistry:
        """Close the registry to further registration. Idempotent."""
        self._sealed = True
        return self

    @property
    def sealed(self) -> bool:
        return self._sealed

    def get(self, name: str) -> ModelConfig | None:
        return self._configs.get(name.lower())

    def require(self, name: str) -> ModelConfig:
        """Look up a config, raising ModelNotConfiguredError on a miss."""
        config = self.get(name)
        if config is None:
            raise ModelNotConfiguredError(name)
        return config

    def names(self) -> list[str]:
        """Registered model keys in registration order."""
        return list(self._configs)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._configs

    def __iter__(self) -> Iterator[ModelConfig]:
        return iter(list(self._configs.values()))

    def __len__(self) -> int:
        return len(self._configs)
