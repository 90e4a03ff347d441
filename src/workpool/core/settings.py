"""Pool settings loaded from the environment.

``PoolSettings`` holds the defaults a :class:`~workpool.execution.pool.WorkPool`
is built with when the application does not pass them explicitly.  All
fields can be set via ``WORKPOOL_*`` environment variables (for example
``WORKPOOL_CAPACITY=8``) or through a ``.env`` file.

Examples:
    >>> from workpool.core.settings import get_settings
    >>> from workpool.execution.pool import WorkPool
    >>> pool = WorkPool.from_settings(get_settings())

Tags:
    settings, configuration, pydantic, environment, workpool

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

Backend = Literal["thread", "process", "inline"]


class PoolSettings(BaseSettings):
    """Workpool configuration.

    Fields
    ──────
    capacity         : Concurrent execution slots (unset or 0 = unbounded)
    default_timeout  : Seconds before an attempt counts as timed out (0 disables)
    default_retries  : Re-attempts allowed after a failure
    auto_shutdown    : Release the pool's own backend once it drains after shutdown
    backend          : Worker backend (thread, process, inline)
    log_level        : Structlog log level
    log_json         : Force JSON (true) or console (false) logs; unset = auto
    """

    model_config = SettingsConfigDict(
        env_prefix="WORKPOOL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Pool ─────────────────────────────────────────────────────
    capacity: int | None = Field(default=None, ge=0)
    default_timeout: float | None = Field(default=5.0, ge=0)
    default_retries: int = Field(default=0, ge=0)
    auto_shutdown: bool = Field(default=False)
    backend: Backend = Field(default="thread")

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_json: bool | None = Field(default=None)

    @field_validator("log_level")
    @classmethod
    def _normalise_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {value}")
        return level


_settings_cache: dict[str, PoolSettings] = {}


def get_settings(*, _force_reload: bool = False) -> PoolSettings:
    """Load, validate, and cache a :class:`PoolSettings` instance."""
    if not _force_reload and "default" in _settings_cache:
        return _settings_cache["default"]
    settings = PoolSettings()
    _settings_cache["default"] = settings
    return settings


def clear_settings_cache() -> None:
    """Drop the cached settings (for tests)."""
    _settings_cache.clear()


__all__ = ["Backend", "PoolSettings", "get_settings", "clear_settings_cache"]
