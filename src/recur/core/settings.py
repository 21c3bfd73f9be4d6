"""Runtime settings for recur.

Configuration is explicit, validated and environment-driven.
``RecurSettings`` reads ``RECUR_*`` environment variables (and a ``.env``
file) so a deployment can size the tick worker pool or switch to JSON logs
without code changes.

Examples:
    >>> from recur.core.settings import RecurSettings
    >>> settings = RecurSettings(max_workers=4)
    >>> settings.max_workers
    4

Environment:
    RECUR_LOG_LEVEL                 Log level for configure_logging()
    RECUR_JSON_LOGS                 true/false, unset for TTY auto-detect
    RECUR_SERVICE_NAME              service.name field on every log line
    RECUR_MAX_WORKERS               Thread pool size for tick execution
    RECUR_SHUTDOWN_TIMEOUT_SECONDS  How long shutdown() waits for ticks
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RecurSettings(BaseSettings):
    """Settings shared by the manager and the timer backends.

    Fields
    ──────
    log_level                : Structlog log level
    json_logs                : Force JSON (True) or console (False) rendering
    service_name             : Service name stamped on log records
    max_workers              : Threads available to run ticks concurrently
    shutdown_timeout_seconds : Upper bound on waiting for in-flight ticks
    """

    model_config = SettingsConfigDict(
        env_prefix="RECUR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    json_logs: bool | None = None
    service_name: str = "recur"

    # ── Execution ────────────────────────────────────────────────
    max_workers: int = Field(default=8, ge=1)
    shutdown_timeout_seconds: float = Field(default=5.0, ge=0)

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {value!r}")
        return level


@lru_cache(maxsize=1)
def get_settings() -> RecurSettings:
    """Return the cached process settings."""
    return RecurSettings()
