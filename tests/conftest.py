"""Pytest fixtures for behavior log tests."""

from datetime import datetime, timezone

import pytest

from behavelog.append_log import AppendLog, SqliteTable
from behavelog.config import BehaveLogConfig
from behavelog.config_store import MemoryConfigStore, SqliteConfigStore
from behavelog.ledger import LedgerWriter
from behavelog.resolver import ConfigResolver
from behavelog.service import EntryService
from behavelog.validator import EntryValidator

FIXED_NOW = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


def fixed_clock() -> datetime:
    return FIXED_NOW


@pytest.fixture
def db_path(tmp_path):
    """Path to a fresh SQLite database inside pytest's temporary directory."""
    return tmp_path / "data" / "behavelog.sqlite"


@pytest.fixture
def app_config(db_path):
    """BehaveLogConfig pointing at the temporary database."""
    return BehaveLogConfig(db_path=db_path, storage_timeout_seconds=2.0)


@pytest.fixture
def memory_store():
    """Empty in-memory ConfigStore."""
    return MemoryConfigStore()


@pytest.fixture
def sqlite_store(db_path):
    return SqliteConfigStore(db_path)


@pytest.fixture
def sqlite_table(db_path):
    return SqliteTable(db_path, timeout=2.0)


@pytest.fixture
def append_log(sqlite_table):
    return AppendLog(sqlite_table, clock=fixed_clock)


@pytest.fixture
def ledger(tmp_path):
    return LedgerWriter(tmp_path / "data" / "ledger.jsonl")


@pytest.fixture
def service(sqlite_store, append_log, ledger):
    """EntryService over SQLite storage with a fixed clock.

    Returns:
        EntryService wired like production, with deterministic time
    """
    return EntryService(
        resolver=ConfigResolver(sqlite_store),
        validator=EntryValidator(clock=fixed_clock),
        append_log=append_log,
        ledger=ledger,
        clock=fixed_clock,
    )
