"""Key/value stores holding administrator-set configuration properties."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Protocol

from .db import DEFAULT_TIMEOUT_SECONDS, connect, create_schema
from .models import ConfigProperty

logger = logging.getLogger(__name__)

BEHAVIOR_CATEGORIES = "BEHAVIOR_CATEGORIES"
IMPACT_TYPES = "IMPACT_TYPES"
DEFAULT_USER = "DEFAULT_USER"

KNOWN_KEYS = (BEHAVIOR_CATEGORIES, IMPACT_TYPES, DEFAULT_USER)


def _iso_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


class ConfigStore(Protocol):
    """Read side of the property store as seen by the entry pipeline."""

    def get(self, key: str) -> Optional[str]:
        ...


class MemoryConfigStore:
    """Dict-backed store, for tests and embedding."""

    def __init__(self, values: Optional[dict[str, str]] = None):
        self._values: dict[str, str] = dict(values or {})

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def unset(self, key: str) -> bool:
        return self._values.pop(key, None) is not None


class SqliteConfigStore:
    """Properties table in the application database.

    The entry pipeline only calls get(); set/unset/items back the admin CLI.
    """

    def __init__(self, db_path: Path, *, timeout: float = DEFAULT_TIMEOUT_SECONDS):
        self.db_path = db_path
        self.timeout = timeout
        conn = connect(self.db_path, timeout=self.timeout)
        try:
            create_schema(conn)
        finally:
            conn.close()

    def get(self, key: str) -> Optional[str]:
        conn = connect(self.db_path, timeout=self.timeout)
        try:
            row = conn.execute("SELECT value FROM properties WHERE key = ?", (key,)).fetchone()
            return str(row["value"]) if row is not None else None
        finally:
            conn.close()

    def set(self, key: str, value: str) -> ConfigProperty:
        conn = connect(self.db_path, timeout=self.timeout)
        try:
            with conn:
                conn.execute(
                    "INSERT INTO properties(key, value, updated_at) VALUES(?, ?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at",
                    (key, value, _iso_now()),
                )
        finally:
            conn.close()
        logger.info(f"Config property {key} set")
        return ConfigProperty(key=key, value=value)

    def unset(self, key: str) -> bool:
        conn = connect(self.db_path, timeout=self.timeout)
        try:
            with conn:
                cursor = conn.execute("DELETE FROM properties WHERE key = ?", (key,))
                removed = cursor.rowcount > 0
        finally:
            conn.close()
        if removed:
            logger.info(f"Config property {key} removed")
        return removed

    def items(self) -> list[ConfigProperty]:
        """All stored properties, ordered by key."""
        conn = connect(self.db_path, timeout=self.timeout)
        try:
            rows = conn.execute("SELECT key, value FROM properties ORDER BY key ASC").fetchall()
            return [ConfigProperty(key=str(r["key"]), value=str(r["value"])) for r in rows]
        finally:
            conn.close()
