"""Repository for persisted configuration settings."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.setting import Setting
from ..utils.dotted import unflatten

logger = logging.getLogger(__name__)

SCALAR_KEY = "v"


def wrap_value(value: Any) -> Dict[str, Any]:
    """Store mappings as-is and scalars (including None and lists) as ``{"v": value}``."""
    if isinstance(value, Mapping):
        return dict(value)
    return {SCALAR_KEY: value}


def unwrap_value(value: Any) -> Any:
    if isinstance(value, Mapping) and SCALAR_KEY in value:
        return value[SCALAR_KEY]
    return value


class SettingRepository:
    """Data access helper for the ``settings`` key/value table."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def get_all(self) -> List[Setting]:
        try:
            return list(self.db.query(Setting).order_by(Setting.key).all())
        except SQLAlchemyError as e:
            logger.error(f"Error getting settings: {str(e)}")
            raise RepositoryException(f"Failed to retrieve settings: {str(e)}")

    def get_config(self) -> Optional[Dict[str, Any]]:
        """
        Rebuild the persisted configuration document from dotted keys.

        Returns None when the table is empty. Keys are applied in sorted order,
        so ``db.host`` lands on top of a stored ``db`` record.
        """
        rows = self.get_all()
        if not rows:
            return None
        return unflatten((row.key, unwrap_value(row.value)) for row in rows)

    def patch(self, key: str, value: Mapping[str, Any]) -> int:
        """Update the record for ``key``; returns the number of affected rows."""
        affected = (
            self.db.query(Setting)
            .filter(Setting.key == key)
            .update({Setting.value: dict(value)}, synchronize_session=False)
        )
        return int(affected or 0)

    def insert(self, key: str, value: Mapping[str, Any]) -> Setting:
        record = Setting(key=key, value=dict(value))
        self.db.add(record)
        self.db.flush()
        return record


__all__ = ["SettingRepository", "wrap_value", "unwrap_value"]
