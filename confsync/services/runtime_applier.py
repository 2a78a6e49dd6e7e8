"""Push side-effecting configuration values into already-built subsystems."""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.engine import Engine

from ..config_handle import ConfigHandle

logger = logging.getLogger(__name__)

PACKAGE_LOGGER = "confsync"

LOG_LEVELS = {
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "info": logging.INFO,
    "verbose": logging.DEBUG,
    "debug": logging.DEBUG,
    "silly": logging.DEBUG,
}


class RuntimeApplier:
    """
    Copies flag values onto handles that only read them at construction time.

    Safe to call any number of times; each call just re-assigns the current
    values.
    """

    def __init__(self, config: ConfigHandle, engine: Optional[Engine] = None) -> None:
        self.config = config
        self.engine = engine

    def apply_flags(self) -> None:
        snapshot = self.config.snapshot
        if self.engine is not None:
            self.engine.echo = bool(snapshot.flags.sqllog)
        logging.getLogger(PACKAGE_LOGGER).setLevel(LOG_LEVELS[snapshot.logLevel])
        logger.debug(
            "[CONFIG] Applied runtime flags (sqllog=%s, logLevel=%s)",
            snapshot.flags.sqllog,
            snapshot.logLevel,
        )
