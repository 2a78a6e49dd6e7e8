"""Service helpers for resolving, persisting and reloading the configuration."""

from __future__ import annotations

import asyncio
from importlib.metadata import PackageNotFoundError, version as package_version
import logging
from typing import TYPE_CHECKING, Any, Dict, Optional, Sequence, Tuple

from sqlalchemy.orm import Session, sessionmaker

from ..config_handle import ConfigHandle
from ..core.config import Settings
from ..core.exceptions import StoreReadEmpty, StoreWriteFailure
from ..repositories.setting_repository import SettingRepository, wrap_value
from ..schemas.config import ConfigSnapshot, StaticData
from ..utils.dotted import get_path
from .config_merge import apply_port_fixups, merge, to_snapshot
from .config_sources import (
    apply_connection_url,
    apply_secret_file,
    load_file_sources,
    resolve_config_paths,
)

if TYPE_CHECKING:
    from ..events.config_events import ConfigEventPublisher

logger = logging.getLogger(__name__)

RELOAD_CONFIG_EVENT = "reloadConfig"


def _installed_version() -> str:
    try:
        return package_version("confsync")
    except PackageNotFoundError:
        return "0.0.0"


def init_config(settings: Settings) -> ConfigHandle:
    """
    Resolve the startup configuration from disk and the environment.

    Blocking: nothing may be served before this returns.

    Raises:
        StartupConfigError: Any unreadable source, malformed ``DATABASE_URL``
            or unreadable secret file.
    """
    paths = resolve_config_paths(settings)
    logger.info(f"[CONFIG] Loading configuration from {paths.config}...")
    base, data, patterns = load_file_sources(paths)
    logger.info("[CONFIG] Configuration files loaded")

    document = merge(base, data["defaults"]["config"])
    apply_port_fixups(document, settings)

    if settings.database_url:
        logger.info("[CONFIG] DATABASE_URL is defined. Parsing connection string...")
        if apply_connection_url(document, settings.database_url):
            logger.info("[CONFIG]   Database connection parsed successfully")

    if settings.db_pass_file:
        logger.info("[CONFIG] DB_PASS_FILE is defined. Will use secret from file.")
        apply_secret_file(document, settings.db_pass_file)

    snapshot = to_snapshot(document, source=str(paths.config))
    static = StaticData(document=data, defaults=data["defaults"]["config"], regex=patterns)
    return ConfigHandle(snapshot, static, version=_installed_version())


class ConfigService:
    """Reads the persisted override set and writes key changes back to the store."""

    def __init__(
        self,
        config: ConfigHandle,
        session_factory: sessionmaker,
        events: Optional["ConfigEventPublisher"] = None,
    ) -> None:
        self.config = config
        self.session_factory = session_factory
        self.events = events

    def _read_store(self) -> Optional[Dict[str, Any]]:
        db: Session = self.session_factory()
        try:
            return SettingRepository(db).get_config()
        finally:
            db.close()

    async def load_from_db(self) -> Optional[ConfigSnapshot]:
        """
        Overlay the persisted settings onto the current snapshot.

        Store values win over file values; keys missing from the store are
        kept. An empty store leaves the snapshot as-is and turns on setup
        mode. Store errors propagate to the caller with the snapshot intact.
        """
        stored = await asyncio.to_thread(self._read_store)
        if not stored:
            logger.warning(f"[CONFIG-DB] {StoreReadEmpty().message}")
            self.config.mark_setup(True)
            return None

        document = merge(stored, self.config.as_dict())
        snapshot = to_snapshot(document, source="settings store")
        self.config.replace(snapshot)
        logger.debug("[CONFIG-DB] Loaded configuration from DB")
        return snapshot

    def _write_store(self, records: Sequence[Tuple[str, Dict[str, Any]]]) -> None:
        db: Session = self.session_factory()
        key: Optional[str] = None
        try:
            repo = SettingRepository(db)
            for key, value in records:
                if repo.patch(key, value) == 0:
                    repo.insert(key, value)
            db.commit()
        except Exception as exc:
            db.rollback()
            raise StoreWriteFailure(key, str(exc)) from exc
        finally:
            db.close()

    async def save_to_db(self, keys: Sequence[str], propagate: bool = True) -> bool:
        """
        Persist the current values of ``keys`` (dotted paths) to the store.

        Values are read from the snapshot before the store call yields, so a
        reload landing mid-write cannot change what gets saved. All keys are
        written in one transaction. Returns False if any key failed, in which
        case nothing is committed and no notification is sent.
        """
        current = self.config.as_dict()
        records = [(key, wrap_value(get_path(current, key, None))) for key in keys]
        try:
            await asyncio.to_thread(self._write_store, records)
        except StoreWriteFailure as exc:
            logger.error(f"[CONFIG-DB] {exc.message}")
            return False

        if propagate and self.events is not None:
            try:
                await self.events.publish(RELOAD_CONFIG_EVENT)
            except Exception as exc:
                logger.error(f"[CONFIG-DB] Saved {len(keys)} key(s) but failed to notify peers: {exc}")
        return True
