"""Mini README: Centralised configuration for the PayLog service.

Structure:
    * PayLogSettings - pydantic settings model describing runtime configuration.
    * get_settings - cached accessor for environment-aware settings.

Usage:
    Values come from ``PAYLOG_*`` environment variables or a ``.env`` file.
    When ``database_url`` is not supplied the ledger lives in a SQLite file
    inside ``data_directory``. Tests build ``PayLogSettings`` directly and pass
    it to the application factory instead of going through the cache.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, validator
from pydantic_settings import BaseSettings

DEFAULT_DATABASE_FILENAME = "paylog.db"


class PayLogSettings(BaseSettings):
    """Runtime configuration for the PayLog service."""

    environment: str = Field(
        "development",
        description="Environment label controlling debug toggles and logging levels.",
    )
    log_level: str = Field(
        "INFO",
        description="Root logging level name (DEBUG, INFO, WARNING...).",
    )
    data_directory: Path = Field(
        Path("data"),
        description="Directory holding the default SQLite database.",
    )
    database_url: Optional[str] = Field(
        None,
        description=(
            "SQLAlchemy database URL. Leave unset to use a SQLite file inside"
            " the data directory; PostgreSQL URLs are supported as well."
        ),
    )
    interface_host: str = Field(
        "0.0.0.0",
        description="Network interface for the web service to bind to.",
    )
    interface_port: int = Field(
        3000,
        description="Port the web service exposes.",
        ge=1,
        le=65535,
    )
    session_max_age_hours: float = Field(
        8.0,
        description="Idle period after which an admin session expires.",
        gt=0,
    )
    bcrypt_rounds: int = Field(
        12,
        description="bcrypt cost factor used when hashing the admin password.",
        ge=4,
        le=31,
    )

    class Config:
        env_prefix = "PAYLOG_"
        env_file = ".env"
        case_sensitive = False

    @validator("data_directory", pre=True)
    def _expand_path(cls, value: Optional[str | Path]) -> Path:
        """Ensure configured paths expand user directories and exist."""

        path = Path(value).expanduser().resolve()
        path.mkdir(parents=True, exist_ok=True)
        return path

    @property
    def session_max_age_seconds(self) -> int:
        return int(self.session_max_age_hours * 60 * 60)

    def resolved_database_url(self) -> str:
        """Return the configured URL or the SQLite default in the data directory."""

        if self.database_url:
            return self.database_url
        return f"sqlite+pysqlite:///{self.data_directory / DEFAULT_DATABASE_FILENAME}"


@lru_cache()
def get_settings() -> PayLogSettings:
    """Return cached settings, ensuring consistent configuration across modules."""

    return PayLogSettings()
