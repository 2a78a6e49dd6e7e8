"""Injectable handle owning the process configuration snapshot."""

from __future__ import annotations

from copy import deepcopy
import logging
import re
from typing import Any, Dict, Iterable, Optional

from pydantic import ValidationError

from .core.exceptions import ValidationException
from .schemas.config import ConfigSnapshot, StaticData
from .utils.dotted import get_path, has_path, pop_path, set_path

logger = logging.getLogger(__name__)


class ConfigHandle:
    """
    Shared, read-mostly access to the current configuration.

    The snapshot is never mutated in place: every change builds a new
    ``ConfigSnapshot`` and replaces the reference in a single assignment, so
    readers always see either the old or the new value.
    """

    def __init__(
        self,
        snapshot: ConfigSnapshot,
        data: StaticData,
        *,
        version: str = "0.0.0",
    ) -> None:
        self._snapshot = snapshot
        self.data = data
        self.version = version

    @property
    def snapshot(self) -> ConfigSnapshot:
        return self._snapshot

    @property
    def regex(self) -> Dict[str, re.Pattern[str]]:
        return self.data.regex

    def as_dict(self) -> Dict[str, Any]:
        return self._snapshot.to_document()

    def get(self, path: str, default: Any = None) -> Any:
        """Read a value by dotted path (``"db.host"``)."""
        return get_path(self.as_dict(), path, default)

    def set(self, path: str, value: Any) -> ConfigSnapshot:
        """
        Replace the value at ``path`` and swap in the revalidated snapshot.

        Raises:
            ValidationException: If the new value does not fit the schema; the
                current snapshot is left untouched.
        """
        document = self.as_dict()
        set_path(document, path, deepcopy(value))
        try:
            snapshot = ConfigSnapshot.model_validate(document)
        except ValidationError as exc:
            raise ValidationException(
                f"Invalid value for '{path}'",
                code="INVALID_CONFIG_VALUE",
                details={"path": path, "errors": [err["msg"] for err in exc.errors()]},
            ) from exc
        self._snapshot = snapshot
        return snapshot

    def replace(self, snapshot: ConfigSnapshot) -> None:
        self._snapshot = snapshot

    def revert(self, previous: ConfigSnapshot, paths: Iterable[str]) -> ConfigSnapshot:
        """
        Put ``paths`` back to their values in ``previous``, keeping every other current value.

        Paths absent from ``previous`` are removed. If the combined document no
        longer validates, ``previous`` is restored whole.
        """
        paths = list(paths)
        document = self.as_dict()
        before = previous.to_document()
        for path in paths:
            if has_path(before, path):
                set_path(document, path, get_path(before, path))
            else:
                pop_path(document, path)
        try:
            snapshot = ConfigSnapshot.model_validate(document)
        except ValidationError:
            logger.warning(f"[CONFIG] Partial revert of {paths} is invalid, restoring previous snapshot")
            snapshot = previous
        self._snapshot = snapshot
        return snapshot

    def mark_setup(self, setup: bool = True) -> None:
        self._snapshot = self._snapshot.model_copy(update={"setup": setup})

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<ConfigHandle port={self._snapshot.port} setup={self._snapshot.setup}>"


def redact(document: Dict[str, Any], *, mask: str = "********") -> Dict[str, Any]:
    """Copy of ``document`` with the database password masked."""
    redacted = deepcopy(document)
    db: Optional[Dict[str, Any]] = redacted.get("db")
    if isinstance(db, dict) and db.get("pass"):
        db["pass"] = mask
    return redacted
