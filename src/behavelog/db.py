from __future__ import annotations

import sqlite3
from pathlib import Path

DEFAULT_TIMEOUT_SECONDS = 5.0


def connect(db_path: Path, *, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> sqlite3.Connection:
    """Open a connection in autocommit mode; callers issue BEGIN explicitly.

    ``timeout`` bounds how long a statement waits on another writer's lock.
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path), timeout=timeout, isolation_level=None)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def create_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS meta(
          key TEXT PRIMARY KEY,
          value TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS properties(
          key TEXT PRIMARY KEY,
          value TEXT NOT NULL,
          updated_at TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS entries(
          id INTEGER PRIMARY KEY,
          recorded_at TEXT NOT NULL,
          timestamp TEXT NOT NULL,
          behavior TEXT NOT NULL,
          category TEXT NOT NULL,
          impact_type TEXT NOT NULL,
          user TEXT NOT NULL
        );
        """
    )
