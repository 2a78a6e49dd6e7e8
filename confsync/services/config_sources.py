"""
Configuration source reading.

Loads the base config file, the packaged defaults document and the pattern
table from disk, and applies the environment overrides (``DATABASE_URL``,
``DB_PASS_FILE``) to a raw configuration document.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from pathlib import Path
import re
from typing import Any, Dict, Mapping, MutableMapping, Optional, Tuple
from urllib.parse import parse_qs, unquote, urlsplit

import yaml

from ..core.config import DEFAULTS_FILE, PATTERNS_FILE, Settings
from ..core.exceptions import EnvParseError, SecretUnreadable, SourceUnreadable, UnsupportedScheme

logger = logging.getLogger(__name__)

SCHEME_TO_DB_TYPE: Dict[str, str] = {
    "postgres": "postgres",
    "postgresql": "postgres",
    "mysql": "mysql",
    "mariadb": "mariadb",
    "mssql": "mssql",
    "sqlserver": "mssql",
    "sqlite": "sqlite",
}

# $(NAME) or $(NAME:default)
_PLACEHOLDER_RE = re.compile(r"\$\(([A-Z0-9_]+)(?::([^)]*))?\)")


@dataclass(frozen=True)
class ConfigPaths:
    config: Path
    data: Path
    patterns: Path


def resolve_config_paths(settings: Settings) -> ConfigPaths:
    """Pick the base config path: CONFIG_FILE, then the dev container file, then ``config.yml``."""
    root = Path(settings.root_path)
    if settings.config_file:
        config = (root / settings.config_file).resolve()
    elif settings.is_docker_dev:
        config = root / "dev" / "containers" / "config.yml"
    else:
        config = root / "config.yml"
    return ConfigPaths(config=config, data=DEFAULTS_FILE, patterns=PATTERNS_FILE)


def parse_config_value(text: str, env: Optional[Mapping[str, str]] = None) -> str:
    """Substitute ``$(NAME)`` / ``$(NAME:default)`` placeholders with environment values."""
    env_map = os.environ if env is None else env

    def _replace(match: re.Match[str]) -> str:
        value = env_map.get(match.group(1))
        if value:
            return value
        return match.group(2) or ""

    return _PLACEHOLDER_RE.sub(_replace, text)


def _read_yaml_document(path: Path, *, substitute: bool = False) -> Dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
        if substitute:
            text = parse_config_value(text)
        document = yaml.safe_load(text)
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as exc:
        raise SourceUnreadable(str(path), str(exc)) from exc
    if not isinstance(document, dict):
        raise SourceUnreadable(str(path), "document root must be a mapping")
    return document


def load_pattern_table(path: Path) -> Dict[str, re.Pattern[str]]:
    """Compile the named regular expressions; a missing table is treated as empty."""
    if not path.exists():
        logger.warning(f"[CONFIG] Pattern table not found at {path}, continuing without it")
        return {}
    raw = _read_yaml_document(path)
    table: Dict[str, re.Pattern[str]] = {}
    for name, source in raw.items():
        try:
            table[str(name)] = re.compile(str(source))
        except re.error as exc:
            raise SourceUnreadable(str(path), f"invalid pattern '{name}': {exc}") from exc
    return table


def load_file_sources(
    paths: ConfigPaths,
) -> Tuple[Dict[str, Any], Dict[str, Any], Dict[str, re.Pattern[str]]]:
    """
    Read the base config, the defaults document and the pattern table.

    Returns:
        ``(base, data, patterns)`` where ``data`` is the whole packaged
        document (``data["defaults"]["config"]`` holds the default values).

    Raises:
        SourceUnreadable: If the base or defaults file cannot be read or parsed.
    """
    base = _read_yaml_document(paths.config, substitute=True)
    data = _read_yaml_document(paths.data)
    section = data.get("defaults")
    defaults = section.get("config") if isinstance(section, dict) else None
    if not isinstance(defaults, dict):
        raise SourceUnreadable(str(paths.data), "missing 'defaults.config' mapping")
    patterns = load_pattern_table(paths.patterns)
    return base, data, patterns


def apply_connection_url(document: MutableMapping[str, Any], url: str) -> bool:
    """
    Apply a ``DATABASE_URL`` style connection string to ``document["db"]``.

    Only components present in the URL overwrite existing values. Returns
    False (leaving the document untouched) for an unrecognised scheme.

    Raises:
        EnvParseError: If the URL is malformed.
    """
    try:
        parts = urlsplit(url.strip())
        hostname = parts.hostname
        port = parts.port
    except ValueError as exc:
        raise EnvParseError(str(exc)) from exc
    if not parts.scheme:
        raise EnvParseError("missing scheme")

    db_type = SCHEME_TO_DB_TYPE.get(parts.scheme.lower())
    if db_type is None:
        logger.warning(f"[CONFIG] {UnsupportedScheme(parts.scheme).message}")
        return False

    db = document.get("db")
    if not isinstance(db, dict):
        db = {}
    else:
        db = dict(db)
    db["type"] = db_type

    if db_type == "sqlite":
        storage = unquote(parts.netloc + parts.path) if parts.netloc else unquote(parts.path)
        if storage:
            db["storage"] = storage
        document["db"] = db
        return True

    if hostname:
        db["host"] = hostname
    if port:
        db["port"] = port
    if parts.username:
        db["user"] = unquote(parts.username)
    if parts.password:
        db["pass"] = unquote(parts.password)
    if parts.path and len(parts.path) > 1:
        db["db"] = unquote(parts.path[1:])

    query = parse_qs(parts.query, keep_blank_values=True)
    if "sslmode" in query:
        ssl_mode = query["sslmode"][-1]
        db["ssl"] = ssl_mode != "disable"
        logger.info(f"[CONFIG]   SSL mode: {ssl_mode} (ssl: {db['ssl']})")

    document["db"] = db
    return True


def apply_secret_file(document: MutableMapping[str, Any], path: str) -> None:
    """Replace the database password with the trimmed contents of ``path``."""
    try:
        secret = Path(path).read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as exc:
        raise SecretUnreadable(path, str(exc)) from exc
    db = dict(document.get("db") or {})
    db["pass"] = secret
    document["db"] = db
