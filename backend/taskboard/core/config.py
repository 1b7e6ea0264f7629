"""Application settings and environment configuration loading."""

from __future__ import annotations

from pathlib import Path
from typing import Self

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

BACKEND_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_ENV_FILE = BACKEND_ROOT / ".env"
LOG_FORMATS = frozenset({"text", "json"})
MIN_SEARCH_DEBOUNCE_MS = 300


class Settings(BaseSettings):
    """Typed runtime configuration sourced from environment variables."""

    model_config = SettingsConfigDict(
        # Load `backend/.env` regardless of current working directory.
        env_file=[DEFAULT_ENV_FILE, ".env"],
        env_file_encoding="utf-8",
        extra="ignore",
    )

    environment: str = "dev"
    database_url: str = "sqlite+aiosqlite:///./taskboard.db"
    db_connect_timeout_seconds: float = Field(default=5.0, gt=0)

    cors_origins: str = ""

    # Database lifecycle
    db_auto_migrate: bool = False

    # Standalone (client-local) board
    local_store_path: Path = Path(".local/taskboard/tasks.json")
    local_store_key: str = "tasks"
    search_debounce_ms: int = MIN_SEARCH_DEBOUNCE_MS

    # Logging
    log_level: str = "INFO"
    log_format: str = "text"
    log_use_utc: bool = False
    request_log_slow_ms: int = Field(default=1000, ge=0)
    request_log_include_health: bool = False

    @model_validator(mode="after")
    def _defaults(self) -> Self:
        self.log_format = self.log_format.strip().lower()
        if self.log_format not in LOG_FORMATS:
            raise ValueError(
                f"LOG_FORMAT must be one of: {', '.join(sorted(LOG_FORMATS))}.",
            )
        if self.search_debounce_ms < MIN_SEARCH_DEBOUNCE_MS:
            raise ValueError(
                f"SEARCH_DEBOUNCE_MS must be at least {MIN_SEARCH_DEBOUNCE_MS}.",
            )
        # In dev, default to applying Alembic migrations at startup to avoid
        # schema drift (e.g. missing newly-added columns).
        if "db_auto_migrate" not in self.model_fields_set and self.environment == "dev":
            self.db_auto_migrate = True
        return self


settings = Settings()
