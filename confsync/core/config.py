# confsync/core/config.py
"""Process environment settings consumed while resolving the configuration."""

from functools import lru_cache
import logging
import os
from pathlib import Path
from typing import Optional
import uuid

from dotenv import load_dotenv
from pydantic import AliasChoices, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

PACKAGE_ROOT = Path(__file__).resolve().parents[1]
DATA_DIR = PACKAGE_ROOT / "data"
DEFAULTS_FILE = DATA_DIR / "defaults.yml"
PATTERNS_FILE = DATA_DIR / "patterns.yml"


def _default_node_id() -> str:
    return uuid.uuid4().hex[:12]


class Settings(BaseSettings):
    """
    Environment-provided values.

    Everything here is read as plain strings from the environment; the
    configuration documents themselves live on disk and in the settings store.
    """

    root_path: Path = Field(
        default_factory=Path.cwd,
        validation_alias=AliasChoices("CONFSYNC_ROOT", "root_path"),
        description="Installation root; config.yml is resolved against it",
    )
    config_file: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("CONFIG_FILE", "config_file"),
        description="Explicit base config path (relative to root_path)",
    )
    dockerdev: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("dockerdev", "DOCKERDEV"),
        description="Development-container flag; any non-empty value enables it",
    )
    database_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("DATABASE_URL", "database_url"),
    )
    db_pass_file: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("DB_PASS_FILE", "db_pass_file"),
    )
    port: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("PORT", "port"),
        description="Port used when the configured one is invalid or on Heroku",
    )
    heroku: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("HEROKU", "heroku"),
    )
    broadcast_url: str = Field(
        default="memory://",
        validation_alias=AliasChoices("BROADCAST_URL", "REDIS_URL", "broadcast_url"),
        description="Broadcaster backend URL for cluster notifications",
    )
    events_channel: str = Field(
        default="confsync:events",
        validation_alias=AliasChoices("CONFIG_EVENTS_CHANNEL", "events_channel"),
    )
    reconcile_interval_s: float = Field(
        default=0.0,
        ge=0,
        validation_alias=AliasChoices("CONFIG_RECONCILE_INTERVAL_S", "reconcile_interval_s"),
        description="Periodic reload interval; 0 disables reconciliation",
    )
    node_id: str = Field(
        default_factory=_default_node_id,
        validation_alias=AliasChoices("NODE_ID", "node_id"),
    )
    admin_token: Optional[SecretStr] = Field(
        default=None,
        validation_alias=AliasChoices("CONFSYNC_ADMIN_TOKEN", "admin_token"),
        description="Token required by the admin config API; unset disables it",
    )

    model_config = SettingsConfigDict(
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("config_file", "dockerdev", "database_url", "db_pass_file", "port", "heroku")
    @classmethod
    def _blank_is_unset(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        stripped = value.strip()
        return stripped or None

    @property
    def is_docker_dev(self) -> bool:
        return self.dockerdev is not None

    @property
    def is_heroku(self) -> bool:
        return self.heroku is not None


@lru_cache
def get_settings() -> Settings:
    """Load ``.env`` (outside CI) and build the process settings once."""
    if not os.getenv("CI"):
        env_path = Path.cwd() / ".env"
        logger.info(f"[CONFIG] Looking for .env at: {env_path}")
        load_dotenv(env_path, override=False)
    return Settings()
