"""
Model configuration type definitions.

This module exports all configuration types consumed by the runtime.
"""

from crudgen.specs.model import (
    PUBLIC,
    CustomRouteSpec,
    FilterSpec,
    FilterType,
    HooksSpec,
    HttpMethod,
    ModelConfig,
    Operation,
    PaginationSpec,
    PermissionsSpec,
    RelationsSpec,
    SearchSpec,
    SortingSpec,
    TransformSpec,
    ValidationSpec,
)

__all__ = [
    "PUBLIC",
    "CustomRouteSpec",
    "FilterSpec",
    "FilterType",
    "HooksSpec",
    "HttpMethod",
    "ModelConfig",
    "Operation",
    "PaginationSpec",
    "PermissionsSpec",
    "RelationsSpec",
    "SearchSpec",
    "SortingSpec",
    "TransformSpec",
    "ValidationSpec",
]
