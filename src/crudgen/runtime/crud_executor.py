"""
CRUD executor - runs the persistence pipeline for registered models.

Every write goes through the same ordered stages::

    validate -> transform input -> before hook -> persist -> after hook -> transform output

Each stage may raise, which aborts every later stage and propagates to the
caller unchanged. Hooks run exactly once, in this order, sequentially.
Nothing is wrapped in a transaction: an after-hook failure surfaces to the
caller while the record it follows stays persisted.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable, Mapping
from typing import Any

from crudgen.runtime.config import EngineSettings
from crudgen.runtime.logging import get_logger, log_with_context
from crudgen.runtime.persistence import ModelDelegate, Persistence
from crudgen.runtime.query_builder import build_query, total_pages
from crudgen.runtime.registry import ModelRegistry
from crudgen.runtime.request_context import RequestContext
from crudgen.runtime.validation import run_schema
from crudgen.specs.model import ModelConfig

logger = get_logger("executor")


async def call_hook(hook: Callable[..., Any] | None, *args: Any) -> Any:
    """Call a sync or async hook, awaiting the result when needed."""
    if hook is None:
        return None
    result = hook(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


class CrudExecutor:
    """
    Generic CRUD operations driven by ModelConfig.

    Example:
        executor = CrudExecutor(registry, InMemoryPersistence())
        created = await executor.create("widget", {"name": "Sprocket"}, user_id="u1")
        page = await executor.find_many("widget", {"page": "1", "limit": "10"})
    """

    def __init__(
        self,
        registry: ModelRegistry,
        persistence: Persistence,
        settings: EngineSettings | None = None,
    ):
        self.registry = registry
        self.persistence = persistence
        self.settings = settings or EngineSettings()

    def _resolve(self, model_name: str) -> tuple[ModelConfig, ModelDelegate]:
        config = self.registry.require(model_name)
        return config, self.persistence.model(config.key)

    @staticmethod
    def _output(config: ModelConfig, record: dict[str, Any]) -> dict[str, Any]:
        if config.transform.output is None:
            return record
        return config.transform.output(record)

    @staticmethod
    def _input(config: ModelConfig, data: dict[str, Any]) -> dict[str, Any]:
        if config.transform.input is None:
            return data
        return config.transform.input(data)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def find_many(self, model_name: str, params: Mapping[str, Any]) -> dict[str, Any]:
        """
        List records with pagination, search, filters and sorting.

        Returns:
            ``{"data": [...], "pagination": {"page", "limit", "total", "totalPages"}}``
        """
        config, delegate = self._resolve(model_name)
        query = build_query(config, params, self.settings)

        rows, total = await asyncio.gather(
            delegate.find_many(**query.find_args()),
            delegate.count(where=query.where),
        )
        logger.debug("find_many %s returned %d of %d", config.key, len(rows), total)

        return {
            "data": [self._output(config, row) for row in rows],
            "pagination": {
                "page": query.page,
                "limit": query.take,
                "total": total,
                "totalPages": total_pages(total, query.take),
            },
        }

    async def find_one(self, model_name: str, record_id: str) -> dict[str, Any] | None:
        """Fetch one record by id; None when it doesn't exist."""
        config, delegate = self._resolve(model_name)
        record = await delegate.find_unique(
            where={"id": record_id},
            include=config.relations.include,
            select=config.relations.select,
        )
        if record is None:
            return None
        return self._output(config, record)

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def create(
        self,
        model_name: str,
        data: Mapping[str, Any],
        user_id: str | None = None,
        ctx: RequestContext | None = None,
    ) -> dict[str, Any]:
        """
        Create a record.

        Raises:
            ValidationError: If the payload fails the create schema
            Exception: Anything raised by before_create/after_create or persistence
        """
        config, delegate = self._resolve(model_name)

        payload = run_schema(config.validation.create, dict(data))
        payload = self._input(config, payload)

        if user_id and config.owner_field and config.owner_field not in payload:
            payload[config.owner_field] = user_id

        replaced = await call_hook(config.hooks.before_create, payload, user_id)
        if replaced is not None:
            payload = replaced

        created = await delegate.create(
            data=payload,
            include=config.relations.include,
            select=config.relations.select,
        )
        log_with_context(
            logger, logging.DEBUG, "Created record", model=config.key, id=created.get("id")
        )

        await call_hook(config.hooks.after_create, created, user_id, ctx)

        return self._output(config, created)

    async def update(
        self,
        model_name: str,
        record_id: str,
        data: Mapping[str, Any],
        user_id: str | None = None,
        ctx: RequestContext | None = None,
    ) -> dict[str, Any]:
        """
        Update a record. The update schema treats every field as optional.

        Raises:
            ValidationError: If the payload fails the update schema
            RecordNotFoundError: If persistence finds no record with this id
        """
        config, delegate = self._resolve(model_name)

        payload = run_schema(config.validation.update, dict(data), partial=True)
        payload = self._input(config, payload)

        replaced = await call_hook(config.hooks.before_update, record_id, payload, user_id)
        if replaced is not None:
            payload = replaced

        updated = await delegate.update(
            where={"id": record_id},
            data=payload,
            include=config.relations.include,
            select=config.relations.select,
        )
        log_with_context(logger, logging.DEBUG, "Updated record", model=config.key, id=record_id)

        await call_hook(config.hooks.after_update, updated, user_id, ctx)

        return self._output(config, updated)

    async def delete(
        self,
        model_name: str,
        record_id: str,
        user_id: str | None = None,
        ctx: RequestContext | None = None,
    ) -> dict[str, Any]:
        """
        Delete a record.

        Returns:
            ``{"success": True, "id": record_id}``
        """
        config, delegate = self._resolve(model_name)

        await call_hook(config.hooks.before_delete, record_id, user_id, ctx)

        await delegate.delete(where={"id": record_id})
        log_with_context(logger, logging.DEBUG, "Deleted record", model=config.key, id=record_id)

        await call_hook(config.hooks.after_delete, record_id, user_id)

        return {"success": True, "id": record_id}
