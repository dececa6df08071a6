"""
Persistence collaborator.

The engine talks to storage through a per-model delegate exposing
find_many / count / find_unique / create / update / delete, each taking
``where``/``skip``/``take``/``order_by``/``include``/``select`` shaped
arguments. Any store offering those primitives can be plugged in.

``InMemoryPersistence`` is the reference implementation: it evaluates the
predicate descriptors produced by the query builder against dict records.
It is used by the test suite and for local development.

Predicate shapes understood by the in-memory store::

    {"title": "x"}                                   # equality
    {"title": {"contains": "x", "mode": "insensitive"}}
    {"price": {"gte": 10, "lte": 20}}
    {"status": {"in": ["a", "b"]}}
    {"OR": [{...}, {...}], "AND": [{...}], "NOT": {...}}
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any, Protocol
from uuid import uuid4

from crudgen.runtime.errors import DuplicateRecordError, RecordNotFoundError

# =============================================================================
# Protocols
# =============================================================================


class ModelDelegate(Protocol):
    """Storage operations for one model."""

    async def find_many(
        self,
        *,
        where: dict[str, Any] | None = None,
        skip: int = 0,
        take: int | None = None,
        order_by: dict[str, str] | None = None,
        include: dict[str, Any] | None = None,
        select: dict[str, bool] | None = None,
    ) -> list[dict[str, Any]]: ...

    async def count(self, *, where: dict[str, Any] | None = None) -> int: ...

    async def find_unique(
        self,
        *,
        where: dict[str, Any],
        include: dict[str, Any] | None = None,
        select: dict[str, bool] | None = None,
    ) -> dict[str, Any] | None: ...

    async def create(
        self,
        *,
        data: dict[str, Any],
        include: dict[str, Any] | None = None,
        select: dict[str, bool] | None = None,
    ) -> dict[str, Any]: ...

    async def update(
        self,
        *,
        where: dict[str, Any],
        data: dict[str, Any],
        include: dict[str, Any] | None = None,
        select: dict[str, bool] | None = None,
    ) -> dict[str, Any]: ...

    async def delete(self, *, where: dict[str, Any]) -> dict[str, Any]: ...


class Persistence(Protocol):
    """Gives access to per-model delegates."""

    def model(self, name: str) -> ModelDelegate: ...


# =============================================================================
# Predicate evaluation
# =============================================================================


def _coerce(operand: Any, like: Any) -> Any:
    """Coerce a query-string operand to the type of the stored value."""
    if not isinstance(operand, str) or isinstance(like, str) or like is None:
        return operand
    if isinstance(like, bool):
        return operand.lower() == "true"
    if isinstance(like, int):
        try:
            return int(operand)
        except ValueError:
            return float(operand)
    if isinstance(like, float):
        return float(operand)
    if isinstance(like, datetime):
        parsed = datetime.fromisoformat(operand.replace("Z", "+00:00"))
        if like.tzinfo is not None and parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=UTC)
        return parsed
    return operand


def _text(value: Any, insensitive: bool) -> str:
    text = "" if value is None else str(value)
    return text.lower() if insensitive else text


def _match_operators(value: Any, ops: Mapping[str, Any]) -> bool:
    insensitive = ops.get("mode") == "insensitive"
    for op, operand in ops.items():
        if op == "mode":
            continue
        if op == "equals":
            if value != _coerce(operand, value):
                return False
        elif op == "not":
            if value == _coerce(operand, value):
                return False
        elif op == "contains":
            if _text(operand, insensitive) not in _text(value, insensitive):
                return False
        elif op == "startsWith":
            if not _text(value, insensitive).startswith(_text(operand, insensitive)):
                return False
        elif op == "endsWith":
            if not _text(value, insensitive).endswith(_text(operand, insensitive)):
                return False
        elif op in ("gte", "lte", "gt", "lt"):
            if value is None:
                return False
            bound = _coerce(operand, value)
            if op == "gte" and not value >= bound:
                return False
            if op == "lte" and not value <= bound:
                return False
            if op == "gt" and not value > bound:
                return False
            if op == "lt" and not value < bound:
                return False
        elif op == "in":
            if value not in [_coerce(o, value) for o in operand]:
                return False
        else:
            raise ValueError(f"Unsupported predicate operator: {op}")
    return True


def matches(record: Mapping[str, Any], where: Mapping[str, Any] | None) -> bool:
    """Evaluate a where descriptor against a record."""
    if not where:
        return True
    for key, condition in where.items():
        if key == "OR":
            if not any(matches(record, sub) for sub in condition):
                return False
        elif key == "AND":
            if not all(matches(record, sub) for sub in condition):
                return False
        elif key == "NOT":
            if matches(record, condition):
                return False
        elif isinstance(condition, Mapping):
            if not _match_operators(record.get(key), condition):
                return False
        else:
            value = record.get(key)
            if value != _coerce(condition, value):
                return False
    return True


def _sort_key(value: Any) -> tuple[int, Any]:
    # None sorts first ascending
    return (0, "") if value is None else (1, value)


def _project(record: dict[str, Any], select: dict[str, bool] | None) -> dict[str, Any]:
    if not select:
        return copy.deepcopy(record)
    return {k: copy.deepcopy(v) for k, v in record.items() if select.get(k)}


# =============================================================================
# In-memory store
# =============================================================================


class InMemoryModelDelegate:
    """Dict-backed storage for one model."""

    def __init__(self, name: str, unique_fields: list[str] | None = None):
        self.name = name
        self.unique_fields = list(unique_fields or [])
        self._records: dict[str, dict[str, Any]] = {}

    def _check_unique(self, data: Mapping[str, Any], exclude_id: str | None = None) -> None:
        for field_name in ["id", *self.unique_fields]:
            if field_name not in data or data[field_name] is None:
                continue
            for record_id, record in self._records.items():
                if record_id == exclude_id:
                    continue
                if record.get(field_name) == data[field_name]:
                    raise DuplicateRecordError(
                        f"A record with this {field_name} already exists",
                        fields=[field_name],
                    )

    def _find_id(self, where: Mapping[str, Any]) -> str | None:
        if "id" in where and not isinstance(where["id"], Mapping):
            record_id = str(where["id"])
            return record_id if record_id in self._records else None
        for record_id, record in self._records.items():
            if matches(record, where):
                return record_id
        return None

    async def find_many(
        self,
        *,
        where: dict[str, Any] | None = None,
        skip: int = 0,
        take: int | None = None,
        order_by: dict[str, str] | None = None,
        include: dict[str, Any] | None = None,
        select: dict[str, bool] | None = None,
    ) -> list[dict[str, Any]]:
        rows = [r for r in self._records.values() if matches(r, where)]
        for field_name, direction in reversed(list((order_by or {}).items())):
            rows.sort(key=lambda r: _sort_key(r.get(field_name)), reverse=direction == "desc")
        start = max(skip, 0)
        end = None if take is None else start + max(take, 0)
        return [_project(r, select) for r in rows[start:end]]

    async def count(self, *, where: dict[str, Any] | None = None) -> int:
        return sum(1 for r in self._records.values() if matches(r, where))

    async def find_unique(
        self,
        *,
        where: dict[str, Any],
        include: dict[str, Any] | None = None,
        select: dict[str, bool] | None = None,
    ) -> dict[str, Any] | None:
        record_id = self._find_id(where)
        if record_id is None:
            return None
        return _project(self._records[record_id], select)

    async def create(
        self,
        *,
        data: dict[str, Any],
        include: dict[str, Any] | None = None,
        select: dict[str, bool] | None = None,
    ) -> dict[str, Any]:
        self._check_unique(data)
        now = datetime.now(UTC)
        record = {"id": str(uuid4()), "created_at": now, "updated_at": now, **copy.deepcopy(data)}
        record["id"] = str(record["id"])
        self._records[record["id"]] = record
        return _project(record, select)

    async def update(
        self,
        *,
        where: dict[str, Any],
        data: dict[str, Any],
        include: dict[str, Any] | None = None,
        select: dict[str, bool] | None = None,
    ) -> dict[str, Any]:
        record_id = self._find_id(where)
        if record_id is None:
            raise RecordNotFoundError(self.name, where.get("id"))
        self._check_unique(data, exclude_id=record_id)
        record = self._records[record_id]
        record.update(copy.deepcopy({k: v for k, v in data.items() if k != "id"}))
        record["updated_at"] = datetime.now(UTC)
        return _project(record, select)

    async def delete(self, *, where: dict[str, Any]) -> dict[str, Any]:
        record_id = self._find_id(where)
        if record_id is None:
            raise RecordNotFoundError(self.name, where.get("id"))
        return self._records.pop(record_id)


class InMemoryPersistence:
    """
    In-memory persistence for all models.

    Example:
        store = InMemoryPersistence(unique={"category": ["slug"]})
        await store.model("category").create(data={"name": "Books", "slug": "books"})
    """

    def __init__(self, unique: Mapping[str, list[str]] | None = None):
        self._unique = {k.lower(): list(v) for k, v in (unique or {}).items()}
        self._delegates: dict[str, InMemoryModelDelegate] = {}

    def model(self, name: str) -> InMemoryModelDelegate:
        key = name.lower()
        if key not in self._delegates:
            self._delegates[key] = InMemoryModelDelegate(key, self._unique.get(key))
        return self._delegates[key]
