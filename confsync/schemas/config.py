"""Pydantic schemas for the resolved configuration snapshot."""

from __future__ import annotations

from dataclasses import dataclass, field
import re
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

DatabaseType = Literal["postgres", "mysql", "mariadb", "mssql", "sqlite"]
LogLevel = Literal["error", "warn", "info", "verbose", "debug", "silly"]


class DatabaseConfig(BaseModel):
    """Connection parameters for the database hosting the settings store."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    type: DatabaseType = Field("postgres", description="Database engine")
    host: Optional[str] = Field(None, description="Server hostname")
    port: Optional[int] = Field(None, gt=0, description="Server port")
    user: Optional[str] = None
    pass_: Optional[str] = Field(None, alias="pass", description="Password")
    db: Optional[str] = Field(None, description="Database name")
    storage: Optional[str] = Field(None, description="SQLite file path")
    ssl: bool = False
    sslOptions: Dict[str, Any] = Field(default_factory=dict)


class FeatureFlags(BaseModel):
    """Named switches; unknown switches are kept as extras."""

    model_config = ConfigDict(extra="allow")

    sqllog: bool = Field(False, description="Echo SQL statements to the log")
    ldapdebug: bool = False


class ConfigSnapshot(BaseModel):
    """
    The merged configuration in effect for the process.

    Only fields other subsystems rely on are typed; every other key from the
    defaults document, the base file or the store is carried as an extra so
    that forward-compatible keys survive a round trip.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    port: int = Field(..., gt=0, description="HTTP listening port")
    bindIP: str = "0.0.0.0"
    db: DatabaseConfig = Field(default_factory=DatabaseConfig)
    flags: FeatureFlags = Field(default_factory=FeatureFlags)
    logLevel: LogLevel = "info"
    setup: bool = Field(False, description="True when the store holds no usable configuration")

    def to_document(self) -> Dict[str, Any]:
        """Return the snapshot as a plain nested dict keyed like the YAML sources."""
        return self.model_dump(by_alias=True, mode="json")


@dataclass(frozen=True)
class StaticData:
    """Immutable data shipped with the package, loaded once at startup."""

    document: Dict[str, Any]
    defaults: Dict[str, Any]
    regex: Dict[str, re.Pattern[str]] = field(default_factory=dict)
