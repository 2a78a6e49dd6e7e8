from __future__ import annotations

import asyncio
import logging
from pathlib import Path
import textwrap
from typing import Awaitable, Callable

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from confsync.config_handle import ConfigHandle
from confsync.core.config import Settings
from confsync.database import Base, create_session_factory

# Import models so Base.metadata is populated for create_all.
import confsync.models  # noqa: F401
from confsync.services.config_service import init_config
from confsync.services.runtime_applier import PACKAGE_LOGGER

_ENV_VARS = (
    "CONFIG_FILE",
    "dockerdev",
    "DOCKERDEV",
    "DATABASE_URL",
    "DB_PASS_FILE",
    "PORT",
    "HEROKU",
    "CONFSYNC_ROOT",
    "BROADCAST_URL",
    "REDIS_URL",
    "CONFIG_EVENTS_CHANNEL",
    "CONFIG_RECONCILE_INTERVAL_S",
    "NODE_ID",
    "CONFSYNC_ADMIN_TOKEN",
)

BASE_CONFIG = """
port: 3000
bindIP: 127.0.0.1
db:
  type: sqlite
  storage: ./node.sqlite
logLevel: info
"""


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    """Keep the runner's environment from leaking into Settings()."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def _restore_package_logger_level():
    """RuntimeApplier changes the package logger level; undo it after each test."""
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    level = package_logger.level
    yield
    package_logger.setLevel(level)


@pytest.fixture
def write_config(tmp_path: Path) -> Callable[..., Path]:
    def _write(body: str = BASE_CONFIG, relative: str = "config.yml") -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(body), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(root_path=tmp_path)


@pytest.fixture
def config(write_config, settings: Settings) -> ConfigHandle:
    write_config()
    return init_config(settings)


@pytest.fixture
def store_engine():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(store_engine):
    return create_session_factory(store_engine)


@pytest.fixture
def unit_db(session_factory) -> Session:
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll ``predicate`` on the running loop until it holds or ``timeout`` expires."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.01)


@pytest.fixture
def eventually() -> Callable[..., Awaitable[None]]:
    return wait_until
