"""Helpers for addressing nested configuration documents with dotted key paths."""

from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping, MutableMapping, Tuple

_MISSING = object()


def get_path(data: Mapping[str, Any], path: str, default: Any = None) -> Any:
    """Return the value at ``path`` (``"db.host"``), or ``default`` if any segment is missing."""
    current: Any = data
    for segment in path.split("."):
        if not isinstance(current, Mapping):
            return default
        current = current.get(segment, _MISSING)
        if current is _MISSING:
            return default
    return current


def has_path(data: Mapping[str, Any], path: str) -> bool:
    return get_path(data, path, _MISSING) is not _MISSING


def set_path(data: MutableMapping[str, Any], path: str, value: Any) -> None:
    """Set ``value`` at ``path``, creating (or replacing non-mapping) intermediate nodes."""
    segments = path.split(".")
    current = data
    for segment in segments[:-1]:
        child = current.get(segment)
        if not isinstance(child, MutableMapping):
            child = {}
            current[segment] = child
        current = child
    current[segments[-1]] = value


def unflatten(items: Iterable[Tuple[str, Any]]) -> Dict[str, Any]:
    """Build a nested document from ``(dotted_key, value)`` pairs, applied in order."""
    document: Dict[str, Any] = {}
    for key, value in items:
        set_path(document, key, value)
    return document


def pop_path(data: MutableMapping[str, Any], path: str) -> None:
    """Remove the value at ``path`` if present; missing segments are ignored."""
    *parents, leaf = path.split(".")
    current: Any = data
    for segment in parents:
        current = current.get(segment) if isinstance(current, MutableMapping) else None
        if current is None:
            return
    if isinstance(current, MutableMapping):
        current.pop(leaf, None)
