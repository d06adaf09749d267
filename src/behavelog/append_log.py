"""Append-only, ordered persistence of accepted entries."""

from __future__ import annotations

import errno
import logging
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional, Protocol, Sequence

from pydantic import ValidationError

from .db import DEFAULT_TIMEOUT_SECONDS, connect, create_schema
from .models import LogEntry, PersistError, PersistErrorKind, ValidatedEntry

logger = logging.getLogger(__name__)

# Column order of the tabular store, after the id column.
COLUMNS = ("recorded_at", "timestamp", "behavior", "category", "impact_type", "user")

HIGH_WATER_KEY = "entries_high_water"

_TRANSIENT_MARKERS = ("locked", "busy", "disk i/o", "full", "interrupted", "timeout")
_PERMANENT_OS_ERRNOS = {errno.EACCES, errno.EPERM, errno.EROFS}


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


RowBuilder = Callable[[], Sequence[str]]


def _check_width(values: Sequence[str]) -> Sequence[str]:
    if len(values) != len(COLUMNS):
        raise ValueError(f"Expected {len(COLUMNS)} column values, got {len(values)}")
    return values


class TabularStore(Protocol):
    """Row store boundary: all-or-nothing row appends with assigned ids.

    append_row calls ``build`` only once it holds the write lock, so values
    stamped inside it (recorded_at) follow id order.
    """

    def append_row(self, build: RowBuilder) -> int:
        ...

    def rows(self, limit: Optional[int] = None) -> list[tuple[int, tuple[str, ...]]]:
        ...


class SqliteTable:
    """Entries table in the application database.

    Id assignment and the insert share one BEGIN IMMEDIATE transaction, so the
    database write lock serializes concurrent appenders across threads and
    processes. The next id is one past the larger of the stored high-water
    mark and MAX(id), so ids are never reused even if rows are removed by hand.
    """

    def __init__(self, db_path: Path, *, timeout: float = DEFAULT_TIMEOUT_SECONDS):
        self.db_path = db_path
        self.timeout = timeout
        conn = connect(self.db_path, timeout=self.timeout)
        try:
            create_schema(conn)
        finally:
            conn.close()

    def _next_id(self, conn: sqlite3.Connection) -> int:
        row = conn.execute("SELECT value FROM meta WHERE key = ?", (HIGH_WATER_KEY,)).fetchone()
        high_water = int(row["value"]) if row is not None else 0
        max_row = conn.execute("SELECT COALESCE(MAX(id), 0) AS n FROM entries").fetchone()
        return max(high_water, int(max_row["n"])) + 1

    def _insert(self, conn: sqlite3.Connection, row_id: int, values: Sequence[str]) -> None:
        conn.execute(
            f"INSERT INTO entries(id, {', '.join(COLUMNS)}) VALUES(?, ?, ?, ?, ?, ?, ?)",
            (row_id, *values),
        )
        conn.execute(
            "INSERT INTO meta(key, value) VALUES(?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value=excluded.value",
            (HIGH_WATER_KEY, str(row_id)),
        )

    def append_row(self, build: RowBuilder) -> int:
        conn = connect(self.db_path, timeout=self.timeout)
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                row_id = self._next_id(conn)
                self._insert(conn, row_id, _check_width(build()))
                conn.execute("COMMIT")
            except BaseException:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise
        finally:
            conn.close()
        return row_id

    def rows(self, limit: Optional[int] = None) -> list[tuple[int, tuple[str, ...]]]:
        """Rows in id order; with ``limit``, only the newest ``limit`` of them."""
        conn = connect(self.db_path, timeout=self.timeout)
        try:
            select = f"SELECT id, {', '.join(COLUMNS)} FROM entries"
            if limit is None:
                result = conn.execute(f"{select} ORDER BY id ASC").fetchall()
            else:
                result = conn.execute(f"{select} ORDER BY id DESC LIMIT ?", (limit,)).fetchall()
                result.reverse()
            return [(int(r["id"]), tuple(str(r[c]) for c in COLUMNS)) for r in result]
        finally:
            conn.close()


class MemoryTable:
    """In-process table guarded by a lock, for tests and embedding."""

    def __init__(self, *, timeout: float = DEFAULT_TIMEOUT_SECONDS):
        self.timeout = timeout
        self._lock = threading.Lock()
        self._rows: list[tuple[int, tuple[str, ...]]] = []
        self._high_water = 0

    def append_row(self, build: RowBuilder) -> int:
        if not self._lock.acquire(timeout=self.timeout):
            raise TimeoutError("Timed out waiting for the table lock")
        try:
            values = tuple(_check_width(build()))
            row_id = self._high_water + 1
            self._rows.append((row_id, values))
            self._high_water = row_id
            return row_id
        finally:
            self._lock.release()

    def rows(self, limit: Optional[int] = None) -> list[tuple[int, tuple[str, ...]]]:
        with self._lock:
            if limit is None:
                return list(self._rows)
            return self._rows[-limit:] if limit > 0 else []


def classify_storage_error(exc: BaseException) -> PersistError:
    """Map a storage exception to a transient or permanent PersistError."""
    message = f"{type(exc).__name__}: {exc}"

    if isinstance(exc, TimeoutError):
        return PersistError(kind=PersistErrorKind.TRANSIENT, message=message)

    if isinstance(exc, sqlite3.OperationalError):
        lowered = str(exc).lower()
        if "readonly" in lowered or "read-only" in lowered:
            return PersistError(kind=PersistErrorKind.PERMANENT, message=message)
        if any(marker in lowered for marker in _TRANSIENT_MARKERS):
            return PersistError(kind=PersistErrorKind.TRANSIENT, message=message)
        # no such table, unable to open, schema mismatch
        return PersistError(kind=PersistErrorKind.PERMANENT, message=message)

    if isinstance(exc, sqlite3.Error):
        # integrity violations, malformed database file, misuse
        return PersistError(kind=PersistErrorKind.PERMANENT, message=message)

    if isinstance(exc, OSError):
        if isinstance(exc, PermissionError) or exc.errno in _PERMANENT_OS_ERRNOS:
            return PersistError(kind=PersistErrorKind.PERMANENT, message=message)
        return PersistError(kind=PersistErrorKind.TRANSIENT, message=message)

    return PersistError(kind=PersistErrorKind.PERMANENT, message=message)


class AppendLog:
    """Assigns identity to validated entries and appends them to a TabularStore.

    Failures come back as PersistError values; the store is never left with a
    partial row.
    """

    def __init__(self, store: TabularStore, *, clock: Callable[[], datetime] = _utc_now):
        self.store = store
        self.clock = clock

    def append(self, validated: ValidatedEntry) -> LogEntry | PersistError:
        stamped: list[datetime] = []

        def build() -> tuple[str, ...]:
            # Runs under the store's write lock, so recorded_at follows id order.
            recorded_at = self.clock()
            stamped.append(recorded_at)
            return (
                recorded_at.isoformat(),
                validated.timestamp.isoformat(),
                validated.behavior,
                validated.category,
                validated.impact_type,
                validated.user,
            )

        try:
            row_id = self.store.append_row(build)
        except (sqlite3.Error, OSError) as e:
            error = classify_storage_error(e)
            logger.warning(f"Append failed ({error.kind.value}): {error.message}")
            return error

        logger.debug(f"Appended entry {row_id}")
        return LogEntry(
            id=row_id,
            recorded_at=stamped[-1],
            behavior=validated.behavior,
            category=validated.category,
            impact_type=validated.impact_type,
            user=validated.user,
            timestamp=validated.timestamp,
        )

    def entries(self, limit: Optional[int] = None) -> list[LogEntry]:
        """Read entries back in append order, the last ``limit`` when given.

        Rows edited by hand into an unreadable shape are skipped with a warning.
        """
        if limit is not None and limit <= 0:
            return []
        rows = self.store.rows(limit=limit)

        entries: list[LogEntry] = []
        malformed_count = 0
        for row_id, values in rows:
            try:
                entries.append(LogEntry(id=row_id, **dict(zip(COLUMNS, values))))
            except ValidationError as e:
                malformed_count += 1
                logger.warning(f"Skipping malformed entry row {row_id}: {e.error_count()} error(s)")

        if malformed_count > 0:
            logger.warning(f"Skipped {malformed_count} malformed row(s)")
        return entries
