"""
Structural validation adapter.

A schema is either a pydantic model class or any object exposing
``parse(data) -> data``. Whatever the schema raises for a structural
violation is translated into the engine's ValidationError carrying
``{"path": [...], "message": ...}`` issues.
"""

from __future__ import annotations

from typing import Any

import pydantic

from crudgen.runtime.errors import ValidationError


def issues_from_pydantic(exc: pydantic.ValidationError) -> list[dict[str, Any]]:
    """Convert pydantic error entries to path/message issues."""
    return [{"path": list(err.get("loc", ())), "message": err.get("msg", "")} for err in exc.errors()]


def _is_model_class(schema: Any) -> bool:
    return isinstance(schema, type) and issubclass(schema, pydantic.BaseModel)


def run_schema(schema: Any, data: Any, *, partial: bool = False) -> Any:
    """
    Validate ``data`` against ``schema`` and return the parsed payload.

    For pydantic models the result is a dict. With ``partial`` (updates)
    only fields the caller sent are returned. Otherwise defaults are
    applied but unset optional fields left at None are dropped, so absent
    keys stay absent.

    Raises:
        ValidationError: On any structural violation. For ``parse()`` schemas
            that covers pydantic errors, ValueError/TypeError and any error
            carrying an ``issues`` list
    """
    if schema is None:
        return data

    if _is_model_class(schema):
        if not isinstance(data, dict):
            raise ValidationError([{"path": [], "message": "Expected an object"}])
        try:
            instance = schema.model_validate(data)
        except pydantic.ValidationError as exc:
            raise ValidationError(issues_from_pydantic(exc)) from exc
        if partial:
            return instance.model_dump(exclude_unset=True)
        dumped = instance.model_dump()
        fields_set = instance.model_fields_set
        return {k: v for k, v in dumped.items() if k in fields_set or v is not None}

    parse = getattr(schema, "parse", None)
    if parse is None or not callable(parse):
        raise TypeError(f"Schema {schema!r} is neither a pydantic model nor exposes parse()")
    try:
        return parse(data)
    except ValidationError:
        raise
    except pydantic.ValidationError as exc:
        raise ValidationError(issues_from_pydantic(exc)) from exc
    except Exception as exc:
        issues = getattr(exc, "issues", None)
        if isinstance(issues, list):
            raise ValidationError(
                [i if isinstance(i, dict) else {"path": [], "message": str(i)} for i in issues]
            ) from exc
        if isinstance(exc, (ValueError, TypeError)):
            raise ValidationError([{"path": [], "message": str(exc)}]) from exc
        raise
