"""
Model configuration types.

A ModelConfig is the declarative description of one entity's API surface:
validation schemas, input/output transforms, role lists, lifecycle hooks,
relation pass-through, search, pagination, sorting, filters and custom routes.

Configs are closed, frozen records. Behaviour lives in the runtime, which
interprets them; the only callables a config carries are the user-supplied
transforms, hooks and custom route handlers.
"""

from collections.abc import Callable
from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

# =============================================================================
# Enumerations
# =============================================================================


class Operation(StrEnum):
    """CRUD operations that carry a permission list."""

    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"


class HttpMethod(StrEnum):
    """HTTP methods accepted for routes."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


class FilterType(StrEnum):
    """How a query-string filter value becomes a persistence predicate."""

    EXACT = "exact"
    CONTAINS = "contains"
    STARTS_WITH = "startsWith"
    ENDS_WITH = "endsWith"
    GTE = "gte"
    LTE = "lte"
    IN = "in"
    BETWEEN = "between"
    BOOLEAN = "boolean"
    DATE = "date"


# Wildcard role: explicit opt-in to unauthenticated access for an operation.
PUBLIC = "*"


# =============================================================================
# Config parts
# =============================================================================


class ValidationSpec(BaseModel):
    """
    Structural validators for create/update/query payloads.

    Each entry is either a pydantic model class or any object exposing
    ``parse(data) -> data``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    create: Any | None = Field(default=None, description="Create payload schema")
    update: Any | None = Field(default=None, description="Update payload schema (all optional)")
    query: Any | None = Field(default=None, description="List query-string schema")


class TransformSpec(BaseModel):
    """Optional input/output mapping functions."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    input: Callable[[dict[str, Any]], dict[str, Any]] | None = None
    output: Callable[[dict[str, Any]], dict[str, Any]] | None = None


class PermissionsSpec(BaseModel):
    """
    Allowed roles per operation.

    ``None`` means the operation declares nothing and the engine-wide
    access default applies. ``["*"]`` opens the operation to any caller.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    create: list[str] | None = None
    read: list[str] | None = None
    update: list[str] | None = None
    delete: list[str] | None = None

    def roles_for(self, operation: Operation) -> list[str] | None:
        return getattr(self, operation.value)


class HooksSpec(BaseModel):
    """
    Lifecycle callbacks. Each may be a plain function or a coroutine function.

    Signatures:
        before_create(data, user_id) -> data | None
        after_create(created, user_id, ctx)
        before_update(id, data, user_id) -> data | None
        after_update(updated, user_id, ctx)
        before_delete(id, user_id, ctx)
        after_delete(id, user_id)
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    before_create: Callable[..., Any] | None = None
    after_create: Callable[..., Any] | None = None
    before_update: Callable[..., Any] | None = None
    after_update: Callable[..., Any] | None = None
    before_delete: Callable[..., Any] | None = None
    after_delete: Callable[..., Any] | None = None


class RelationsSpec(BaseModel):
    """Include/select specification passed through to persistence."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    include: dict[str, Any] | None = None
    select: dict[str, bool] | None = None


class SearchSpec(BaseModel):
    """Fields searched by the ``search`` query parameter."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    fields: list[str] = Field(default_factory=list)
    fuzzy: bool = Field(default=False, description="Case-insensitive matching")


class PaginationSpec(BaseModel):
    """Page size defaults. ``None`` falls back to engine settings."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    default_limit: int | None = Field(default=None, ge=1)
    max_limit: int | None = Field(default=None, ge=1)


class SortingSpec(BaseModel):
    """Default ordering and the optional allow-list of sortable fields."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    default_field: str | None = None
    default_order: Literal["asc", "desc"] | None = None
    allowed_fields: list[str] | None = None


class FilterSpec(BaseModel):
    """
    Typed filter descriptor.

    Example:
        FilterSpec(type=FilterType.GTE, field="price")  # ?minPrice=10 -> price >= 10
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: FilterType
    field: str | None = Field(default=None, description="Target field (defaults to the key)")


class CustomRouteSpec(BaseModel):
    """
    Extra route mounted under the model's collection path.

    ``path`` is relative to the collection, e.g. ``/:id/cover-image``.
    The handler is called as ``handler(request, params)``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    method: HttpMethod
    path: str
    handler: Callable[..., Any]
    permissions: list[str] | None = None

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError(f"Custom route path '{v}' must start with '/'")
        return v


# =============================================================================
# ModelConfig
# =============================================================================


class ModelConfig(BaseModel):
    """
    Declarative configuration for one entity type.

    Example:
        ModelConfig(
            name="product",
            search=SearchSpec(fields=["name", "sku"], fuzzy=True),
            filters={"minPrice": FilterSpec(type=FilterType.GTE, field="price")},
            permissions=PermissionsSpec(read=["*"], create=["ADMIN"]),
        )
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(description="Unique model name (case-insensitive)")
    plural: str | None = Field(default=None, description="Collection path segment override")
    validation: ValidationSpec = Field(default_factory=ValidationSpec)
    transform: TransformSpec = Field(default_factory=TransformSpec)
    permissions: PermissionsSpec = Field(default_factory=PermissionsSpec)
    hooks: HooksSpec = Field(default_factory=HooksSpec)
    relations: RelationsSpec = Field(default_factory=RelationsSpec)
    search: SearchSpec = Field(default_factory=SearchSpec)
    pagination: PaginationSpec = Field(default_factory=PaginationSpec)
    sorting: SortingSpec = Field(default_factory=SortingSpec)
    filters: dict[str, FilterSpec] = Field(default_factory=dict)
    custom_routes: list[CustomRouteSpec] = Field(default_factory=list)
    owner_field: str | None = Field(
        default="created_by_id",
        description="Field receiving the caller's user id on create (None disables)",
    )

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Model name cannot be empty")
        if "/" in v or ":" in v:
            raise ValueError(f"Model name '{v}' cannot contain '/' or ':'")
        return v

    @property
    def key(self) -> str:
        """Registry key (lower-cased name)."""
        return self.name.lower()
