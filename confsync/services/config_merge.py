"""
Merging of raw configuration documents.

This is the only place where configuration is handled as untyped nested
dicts; callers validate the result into ``ConfigSnapshot`` right after.
"""

from __future__ import annotations

from copy import deepcopy
import logging
from typing import Any, Dict, Mapping

from pydantic import ValidationError

from ..core.config import Settings
from ..core.exceptions import SourceUnreadable
from ..schemas.config import ConfigSnapshot

logger = logging.getLogger(__name__)

FALLBACK_PORT = 80


def merge(base: Mapping[str, Any], defaults: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Deep-merge ``base`` over ``defaults`` into a new document.

    For a key present in both, two mappings are merged recursively; otherwise
    the ``base`` value wins unless it is None. Lists are replaced, not merged.
    Neither input is mutated.
    """
    result: Dict[str, Any] = deepcopy(dict(defaults))
    for key, value in base.items():
        fallback = result.get(key)
        if isinstance(value, Mapping) and isinstance(fallback, Mapping):
            result[key] = merge(value, fallback)
        elif value is not None:
            result[key] = deepcopy(value)
        elif key not in result:
            result[key] = None
    return result


def _coerce_port(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def apply_port_fixups(document: Dict[str, Any], settings: Settings) -> Dict[str, Any]:
    """Replace a non-positive port, or any port on Heroku, with ``$PORT`` or 80."""
    port = _coerce_port(document.get("port"))
    if port >= 1 and not settings.is_heroku:
        document["port"] = port
        return document

    replacement = FALLBACK_PORT
    if settings.port is not None:
        env_port = _coerce_port(settings.port)
        if env_port >= 1:
            replacement = env_port
        else:
            logger.warning(f"[CONFIG] Ignoring invalid PORT value {settings.port!r}")
    document["port"] = replacement
    return document


def to_snapshot(document: Mapping[str, Any], *, source: str) -> ConfigSnapshot:
    """Validate a merged document; ``source`` names where it came from for diagnostics."""
    try:
        return ConfigSnapshot.model_validate(document)
    except ValidationError as exc:
        raise SourceUnreadable(source, f"invalid configuration: {exc}") from exc
