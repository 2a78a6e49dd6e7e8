"""
Database engine, session factory, and metadata for the settings store.

The engine is built from the resolved ``db`` section of the configuration
snapshot, so it can only be created after the file sources are merged.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Engine
from sqlalchemy.orm import DeclarativeMeta, declarative_base, sessionmaker

from ..schemas.config import DatabaseConfig

logger = logging.getLogger(__name__)

Base: DeclarativeMeta = declarative_base()

_DRIVERS: dict[str, str] = {
    "postgres": "postgresql+psycopg2",
    "mysql": "mysql+pymysql",
    "mariadb": "mariadb+pymysql",
    "mssql": "mssql+pymssql",
}

_DEFAULT_POOL_KWARGS: dict[str, Any] = {
    "pool_pre_ping": True,
    "pool_recycle": 300,
}


def build_database_url(db: DatabaseConfig) -> URL:
    """Translate the ``db`` config section into a SQLAlchemy URL."""
    if db.type == "sqlite":
        return URL.create("sqlite+pysqlite", database=db.storage or ":memory:")
    return URL.create(
        _DRIVERS[db.type],
        username=db.user,
        password=db.pass_,
        host=db.host,
        port=db.port,
        database=db.db,
    )


def _build_connect_args(db: DatabaseConfig) -> dict[str, Any]:
    if db.type == "sqlite":
        # Store calls run in worker threads via asyncio.to_thread.
        return {"check_same_thread": False}
    if not db.ssl:
        return {}
    options = {k: v for k, v in db.sslOptions.items() if k != "auto"}
    if db.type == "postgres":
        return {"sslmode": options.pop("sslmode", "require"), **options}
    if db.type in ("mysql", "mariadb"):
        return {"ssl": options or {"check_hostname": False}}
    logger.debug("[DB] SSL for %s is configured through the driver, ignoring sslOptions", db.type)
    return {}


def build_engine(db: DatabaseConfig, *, echo: bool = False) -> Engine:
    """Create the engine for the settings store."""
    url = build_database_url(db)
    kwargs: dict[str, Any] = {"echo": echo, "connect_args": _build_connect_args(db)}
    if db.type != "sqlite":
        kwargs.update(_DEFAULT_POOL_KWARGS)
    engine = create_engine(url, **kwargs)
    logger.info("[DB] Engine created for %s", url.render_as_string(hide_password=True))
    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False, future=True)


def init_db(engine: Engine) -> None:
    """Create the settings table if it does not exist yet."""
    from .. import models  # noqa: F401

    Base.metadata.create_all(engine, checkfirst=True)


__all__ = [
    "Base",
    "build_database_url",
    "build_engine",
    "create_session_factory",
    "init_db",
]
