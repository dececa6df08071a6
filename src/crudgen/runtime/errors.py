"""
Error taxonomy for the CRUD engine.

The engine raises these and never maps them to transport status codes;
that is done by the calling layer (see ``exception_handlers``).
"""

from __future__ import annotations

from typing import Any


class CrudError(Exception):
    """Base class for all engine errors."""


class ValidationError(CrudError):
    """Raised when input fails structural validation.

    ``issues`` is a list of ``{"path": [...], "message": str}`` entries.
    """

    def __init__(self, issues: list[dict[str, Any]], message: str = "Invalid input data"):
        self.issues = issues
        super().__init__(message)

    @classmethod
    def single(cls, field: str, message: str) -> ValidationError:
        return cls([{"path": [field], "message": message}])

    def details(self) -> list[dict[str, str]]:
        """Flatten issues into ``{"field": "a.b", "message": ...}`` entries."""
        return [
            {
                "field": ".".join(str(p) for p in issue.get("path", [])) or "unknown",
                "message": issue.get("message", ""),
            }
            for issue in self.issues
        ]


class ConflictError(CrudError):
    """Business-rule violation raised from a hook.

    Duplicate keys, illegal state transitions, referential refusals.
    """


class ModelNotConfiguredError(CrudError):
    """Raised when an operation names a model the registry doesn't know."""

    def __init__(self, model_name: str):
        self.model_name = model_name
        super().__init__(f"Model {model_name} not configured")


class RegistryError(CrudError):
    """Raised on misuse of the model registry."""


class DuplicateModelError(RegistryError):
    """Raised when a model name is registered twice (case-insensitive)."""


class RecordNotFoundError(CrudError):
    """Raised by persistence when update/delete targets a missing record."""

    def __init__(self, model_name: str, record_id: Any):
        self.model_name = model_name
        self.record_id = record_id
        super().__init__(f"{model_name} '{record_id}' not found")


class DuplicateRecordError(CrudError):
    """Raised by persistence when a unique constraint is violated."""

    def __init__(self, message: str, fields: list[str] | None = None):
        self.fields = fields or []
        super().__init__(message)


class AuthenticationError(CrudError):
    """Caller could not be authenticated."""


class PermissionDeniedError(CrudError):
    """Authenticated caller lacks a required role, or access is denied by policy."""
