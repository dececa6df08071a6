"""
Engine configuration.

Settings are a plain dataclass; ``EngineSettings.from_env()`` reads
``CRUDGEN_*`` environment variables for deployments.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

ENV_PREFIX = "CRUDGEN_"

AccessDefault = Literal["deny", "open"]


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class EngineSettings:
    """
    Engine-wide defaults.

    Per-model pagination and sorting settings override the page size and
    sort defaults here.
    """

    api_prefix: str = "/api"
    default_page_size: int = 20
    max_page_size: int = 100
    default_sort_field: str = "created_at"
    default_sort_order: Literal["asc", "desc"] = "desc"

    # Applies to operations whose role list is absent.
    # "deny" refuses them; "open" skips the check entirely.
    default_access: AccessDefault = "deny"

    # Logging
    log_level: str = "INFO"
    log_format: Literal["console", "jsonl"] = "console"
    log_dir: Path | None = None
    debug: bool = False

    def __post_init__(self) -> None:
        if self.default_page_size < 1 or self.max_page_size < 1:
            raise ValueError("Page sizes must be positive")
        if self.default_sort_order not in ("asc", "desc"):
            raise ValueError(f"Invalid sort order: {self.default_sort_order}")
        if self.default_access not in ("deny", "open"):
            raise ValueError(f"Invalid default access: {self.default_access}")
        if self.log_format not in ("console", "jsonl"):
            raise ValueError(f"Invalid log format: {self.log_format}")
        if not self.api_prefix.startswith("/"):
            raise ValueError(f"API prefix must start with '/': {self.api_prefix}")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> EngineSettings:
        """Build settings from ``CRUDGEN_*`` variables, falling back to defaults."""
        env = os.environ if environ is None else environ

        def get(name: str) -> str | None:
            return env.get(ENV_PREFIX + name)

        kwargs: dict[str, object] = {}
        if (v := get("API_PREFIX")) is not None:
            kwargs["api_prefix"] = v
        if (v := get("DEFAULT_PAGE_SIZE")) is not None:
            kwargs["default_page_size"] = int(v)
        if (v := get("MAX_PAGE_SIZE")) is not None:
            kwargs["max_page_size"] = int(v)
        if (v := get("DEFAULT_SORT_FIELD")) is not None:
            kwargs["default_sort_field"] = v
        if (v := get("DEFAULT_SORT_ORDER")) is not None:
            kwargs["default_sort_order"] = v.lower()
        if (v := get("DEFAULT_ACCESS")) is not None:
            kwargs["default_access"] = v.lower()
        if (v := get("LOG_LEVEL")) is not None:
            kwargs["log_level"] = v.upper()
        if (v := get("LOG_FORMAT")) is not None:
            kwargs["log_format"] = v.lower()
        if v := get("LOG_DIR"):
            kwargs["log_dir"] = Path(v)
        if (v := get("DEBUG")) is not None:
            kwargs["debug"] = _env_bool(v)
        return cls(**kwargs)  # type: ignore[arg-type]
