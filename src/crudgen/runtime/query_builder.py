"""
Query builder for list requests.

Turns a model config plus raw query-string parameters into a persistence
query descriptor (where/skip/take/order_by/include/select). Pure: no I/O,
no mutation of its inputs.

Reserved parameters: ``page``, ``limit``, ``sort``, ``order``, ``search``.
Every other key is looked up in the model's declared filters; undeclared
keys are ignored.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from typing import Any

from crudgen.runtime.config import EngineSettings
from crudgen.runtime.errors import ValidationError
from crudgen.specs.model import FilterSpec, FilterType, ModelConfig

RESERVED_PARAMS = frozenset({"page", "limit", "sort", "order", "search"})

_SORT_ORDERS = ("asc", "desc")


@dataclass
class QueryDescriptor:
    """
    Persistence query for a list request.

    ``page`` and ``limit`` are carried for the pagination envelope and are
    not part of the persistence arguments.
    """

    where: dict[str, Any] = field(default_factory=dict)
    skip: int = 0
    take: int = 20
    order_by: dict[str, str] = field(default_factory=dict)
    include: dict[str, Any] | None = None
    select: dict[str, bool] | None = None
    page: int = 1
    limit: int = 20

    def find_args(self) -> dict[str, Any]:
        """Arguments for a persistence ``find_many`` call."""
        return {
            "where": self.where,
            "skip": self.skip,
            "take": self.take,
            "order_by": self.order_by,
            "include": self.include,
            "select": self.select,
        }


# =============================================================================
# Helpers
# =============================================================================


def _first(value: Any) -> Any:
    """Collapse a repeated query parameter to its first value."""
    if isinstance(value, (list, tuple)):
        return value[0] if value else None
    return value


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or (isinstance(value, (list, tuple)) and not value)


def _parse_int(name: str, value: Any, default: int) -> int:
    value = _first(value)
    if _is_empty(value):
        return default
    if isinstance(value, bool):
        raise ValidationError.single(name, f"'{name}' must be an integer")
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        raise ValidationError.single(name, f"'{name}' must be an integer") from None


def parse_date(value: Any, key: str = "date") -> datetime:
    """
    Parse a filter value into a datetime.

    Accepts datetime/date instances, ISO 8601 strings (a trailing ``Z`` is
    read as UTC, compact forms like ``20240115`` included) and epoch
    milliseconds as a number or a digit string of more than 8 digits.

    Raises:
        ValidationError: If the value cannot be parsed
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value / 1000, UTC)
    if isinstance(value, str):
        text = value.strip()
        if text.lstrip("-").isdigit() and len(text.lstrip("-")) > 8:
            return datetime.fromtimestamp(int(text) / 1000, UTC)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            pass
    raise ValidationError.single(key, f"Invalid date value: {value!r}")


def build_search(config: ModelConfig, term: Any) -> list[dict[str, Any]] | None:
    """OR of per-field contains predicates, or None when search doesn't apply."""
    term = _first(term)
    if _is_empty(term) or not config.search.fields:
        return None
    mode = "insensitive" if config.search.fuzzy else "default"
    return [{name: {"contains": str(term), "mode": mode}} for name in config.search.fields]


def build_filter_predicate(spec: FilterSpec, key: str, value: Any) -> Any | None:
    """
    Translate one filter value into a predicate for ``spec.field``.

    Returns None when the filter is silently ignored (``between`` with
    anything other than exactly two values).
    """
    match spec.type:
        case FilterType.EXACT:
            return _first(value)
        case FilterType.CONTAINS:
            return {"contains": _first(value), "mode": "insensitive"}
        case FilterType.STARTS_WITH:
            return {"startsWith": _first(value), "mode": "insensitive"}
        case FilterType.ENDS_WITH:
            return {"endsWith": _first(value), "mode": "insensitive"}
        case FilterType.GTE:
            return {"gte": _first(value)}
        case FilterType.LTE:
            return {"lte": _first(value)}
        case FilterType.IN:
            return {"in": list(value) if isinstance(value, (list, tuple)) else [value]}
        case FilterType.BETWEEN:
            if isinstance(value, (list, tuple)) and len(value) == 2:
                return {"gte": value[0], "lte": value[1]}
            return None
        case FilterType.BOOLEAN:
            value = _first(value)
            return value == "true" or value is True
        case FilterType.DATE:
            return parse_date(_first(value), key)
    return None


def _add_predicate(where: dict[str, Any], field_name: str, predicate: Any) -> None:
    """Add a predicate, combining it with one already set on the same field."""
    existing = where.get(field_name)
    if field_name not in where:
        where[field_name] = predicate
    elif isinstance(existing, Mapping) and isinstance(predicate, Mapping):
        where[field_name] = {**existing, **predicate}
    else:
        where.setdefault("AND", []).append({field_name: predicate})


def build_order_by(
    config: ModelConfig,
    sort: Any,
    order: Any,
    settings: EngineSettings,
) -> dict[str, str]:
    """
    Resolve the requested ordering.

    A field outside the allow-list (when one is configured) or an unknown
    order falls back to the defaults. Never raises.
    """
    default_field = config.sorting.default_field or settings.default_sort_field
    default_order = config.sorting.default_order or settings.default_sort_order

    sort = _first(sort)
    order = _first(order)
    field_name = str(sort) if not _is_empty(sort) else default_field
    direction = str(order).lower() if not _is_empty(order) else default_order
    if direction not in _SORT_ORDERS:
        direction = default_order

    allowed = config.sorting.allowed_fields
    if allowed is None or field_name in allowed:
        return {field_name: direction}
    return {default_field: default_order}


# =============================================================================
# Entry point
# =============================================================================


def build_query(
    config: ModelConfig,
    params: Mapping[str, Any],
    settings: EngineSettings | None = None,
) -> QueryDescriptor:
    """
    Build the persistence query for a list request.

    Pagination: ``page`` defaults to 1, ``limit`` to the model default;
    ``take = min(limit, max_limit)`` and ``skip = (page - 1) * limit``.
    Page values below 1 are passed through unguarded.

    Raises:
        ValidationError: For non-integer page/limit or an unparsable date filter
    """
    settings = settings or EngineSettings()

    default_limit = config.pagination.default_limit or settings.default_page_size
    max_limit = config.pagination.max_limit or settings.max_page_size

    page = _parse_int("page", params.get("page"), 1)
    limit = _parse_int("limit", params.get("limit"), default_limit)

    where: dict[str, Any] = {}

    search = build_search(config, params.get("search"))
    if search is not None:
        where["OR"] = search

    for key, value in params.items():
        if key in RESERVED_PARAMS:
            continue
        spec = config.filters.get(key)
        if spec is None or _is_empty(value):
            continue
        predicate = build_filter_predicate(spec, key, value)
        if predicate is not None:
            _add_predicate(where, spec.field or key, predicate)

    take = min(limit, max_limit)
    return QueryDescriptor(
        where=where,
        skip=(page - 1) * limit,
        take=take,
        order_by=build_order_by(config, params.get("sort"), params.get("order"), settings),
        include=config.relations.include,
        select=config.relations.select,
        page=page,
        limit=take,
    )


def total_pages(total: int, limit: int) -> int:
    """``ceil(total / limit)``; 0 when limit is not positive."""
    if limit <= 0:
        return 0
    return math.ceil(total / limit)
