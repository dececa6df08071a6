"""Shared pytest fixtures for crudgen unit tests."""

from __future__ import annotations

from typing import Any

import pytest
from pydantic import BaseModel, Field

from crudgen.runtime import (
    ConflictError,
    CrudExecutor,
    EngineSettings,
    Identity,
    InMemoryActivityLog,
    InMemoryPersistence,
    ModelRegistry,
    StaticTokenAuth,
)
from crudgen.specs import (
    PUBLIC,
    FilterSpec,
    FilterType,
    HooksSpec,
    ModelConfig,
    PaginationSpec,
    PermissionsSpec,
    SearchSpec,
    SortingSpec,
    ValidationSpec,
)

# =============================================================================
# Schemas
# =============================================================================


class CreateWidget(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    sku: str
    price: float = Field(ge=0)
    in_stock: bool = True
    notes: str | None = None


class UpdateWidget(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    price: float | None = Field(default=None, ge=0)
    in_stock: bool | None = None


OPEN = PermissionsSpec(create=[PUBLIC], read=[PUBLIC], update=[PUBLIC], delete=[PUBLIC])


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def settings() -> EngineSettings:
    return EngineSettings()


@pytest.fixture
def persistence() -> InMemoryPersistence:
    return InMemoryPersistence(unique={"widget": ["sku"]})


@pytest.fixture
def activity_log() -> InMemoryActivityLog:
    return InMemoryActivityLog()


@pytest.fixture
def widget_config(persistence: InMemoryPersistence) -> ModelConfig:
    """Widget with validation, search, filters, sorting and a duplicate-sku hook."""

    async def before_create(data: dict[str, Any], user_id: str | None) -> dict[str, Any]:
        existing = await persistence.model("widget").find_unique(where={"sku": data["sku"]})
        if existing is not None:
            raise ConflictError(f"Widget with sku '{data['sku']}' already exists")
        return data

    async def after_create(created: dict[str, Any], user_id: str | None, ctx: Any) -> None:
        if ctx is not None:
            await ctx.log_activity(
                action="CREATED", entity="widget", entity_id=created["id"], user_id=user_id
            )

    return ModelConfig(
        name="Widget",
        validation=ValidationSpec(create=CreateWidget, update=UpdateWidget),
        permissions=OPEN,
        hooks=HooksSpec(before_create=before_create, after_create=after_create),
        search=SearchSpec(fields=["name", "sku"], fuzzy=True),
        pagination=PaginationSpec(default_limit=10, max_limit=50),
        sorting=SortingSpec(
            default_field="created_at",
            default_order="desc",
            allowed_fields=["name", "price", "created_at"],
        ),
        filters={
            "minPrice": FilterSpec(type=FilterType.GTE, field="price"),
            "maxPrice": FilterSpec(type=FilterType.LTE, field="price"),
            "inStock": FilterSpec(type=FilterType.BOOLEAN, field="in_stock"),
            "sku": FilterSpec(type=FilterType.EXACT),
        },
    )


@pytest.fixture
def registry(widget_config: ModelConfig) -> ModelRegistry:
    return ModelRegistry([widget_config])


@pytest.fixture
def executor(
    registry: ModelRegistry, persistence: InMemoryPersistence, settings: EngineSettings
) -> CrudExecutor:
    return CrudExecutor(registry, persistence, settings)


@pytest.fixture
def auth() -> StaticTokenAuth:
    return StaticTokenAuth(
        {
            "admin-token": Identity(user_id="admin-1", roles=frozenset({"ADMIN"})),
            "user-token": Identity(user_id="user-1", roles=frozenset({"USER"})),
        }
    )
