"""Application settings.

`Settings` is a plain Pydantic model; `Settings.from_env()` reads the
``NFL_PICKEM_*`` environment variables and lets Pydantic validate them.
Nothing here is cached at module level -- the CLI builds one `Settings`
and passes it down.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

from nfl_pickem.ingest.connectors.espn import DEFAULT_BASE_URL

_ENV_PREFIX = "NFL_PICKEM_"

# Field name -> environment variable suffix.
_ENV_FIELDS: dict[str, str] = {
    "db_backend": "DB_BACKEND",
    "database_url": "DATABASE_URL",
    "data_dir": "DATA_DIR",
    "espn_base_url": "ESPN_BASE_URL",
    "request_timeout": "REQUEST_TIMEOUT",
    "max_retries": "MAX_RETRIES",
    "retry_base_delay": "RETRY_BASE_DELAY",
    "week_delay": "WEEK_DELAY",
    "stale_minutes": "STALE_MINUTES",
    "staleness_policy": "STALENESS_POLICY",
    "log_level": "LOG_LEVEL",
}


class Settings(BaseModel):
    """Runtime configuration for the sync/scoring services."""

    db_backend: Literal["sqlite", "parquet"] = "sqlite"
    database_url: str = ""
    data_dir: Path = Path("data/")
    espn_base_url: str = DEFAULT_BASE_URL
    request_timeout: float = Field(default=10.0, gt=0)
    max_retries: int = Field(default=3, ge=1)
    retry_base_delay: float = Field(default=1.0, ge=0)
    week_delay: float = Field(default=0.15, ge=0)
    stale_minutes: float = Field(default=10.0, gt=0)
    staleness_policy: Literal["per_game", "elapsed"] = "per_game"
    log_level: str | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Build settings from ``NFL_PICKEM_*`` variables (``os.environ`` by default).

        Raises:
            pydantic.ValidationError: A variable holds an invalid value.
        """
        env = os.environ if environ is None else environ
        values: dict[str, str] = {}
        for field, suffix in _ENV_FIELDS.items():
            name = f"{_ENV_PREFIX}{suffix}"
            if name in env:
                values[field] = env[name]
        return cls.model_validate(values)

    @property
    def resolved_database_url(self) -> str:
        """The configured SQLAlchemy URL, or a SQLite file under ``data_dir``."""
        if self.database_url:
            return self.database_url
        self.data_dir.mkdir(parents=True, exist_ok=True)
        return f"sqlite:///{self.data_dir / 'pickem.sqlite3'}"
