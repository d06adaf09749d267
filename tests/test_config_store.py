"""Tests for configuration property stores."""

from behavelog.config_store import (
    BEHAVIOR_CATEGORIES,
    DEFAULT_USER,
    IMPACT_TYPES,
    MemoryConfigStore,
    SqliteConfigStore,
)
from behavelog.models import ConfigProperty


def test_sqlite_store_absent_key_is_none(sqlite_store):
    assert sqlite_store.get(BEHAVIOR_CATEGORIES) is None


def test_sqlite_store_returns_latest_value(sqlite_store):
    sqlite_store.set(IMPACT_TYPES, "Positive,Negative")
    sqlite_store.set(IMPACT_TYPES, "Energizing, Draining")

    assert sqlite_store.get(IMPACT_TYPES) == "Energizing, Draining"


def test_sqlite_store_persists_across_instances(db_path):
    SqliteConfigStore(db_path).set(DEFAULT_USER, "sam")

    assert SqliteConfigStore(db_path).get(DEFAULT_USER) == "sam"


def test_sqlite_store_unset(sqlite_store):
    sqlite_store.set(DEFAULT_USER, "sam")

    assert sqlite_store.unset(DEFAULT_USER) is True
    assert sqlite_store.unset(DEFAULT_USER) is False
    assert sqlite_store.get(DEFAULT_USER) is None


def test_sqlite_store_items_sorted(sqlite_store):
    sqlite_store.set(IMPACT_TYPES, "Mood")
    sqlite_store.set(BEHAVIOR_CATEGORIES, "Work")

    assert sqlite_store.items() == [
        ConfigProperty(key=BEHAVIOR_CATEGORIES, value="Work"),
        ConfigProperty(key=IMPACT_TYPES, value="Mood"),
    ]


def test_memory_store():
    store = MemoryConfigStore({DEFAULT_USER: "sam"})

    assert store.get(DEFAULT_USER) == "sam"
    assert store.get(BEHAVIOR_CATEGORIES) is None
    store.set(BEHAVIOR_CATEGORIES, "Work")
    assert store.get(BEHAVIOR_CATEGORIES) == "Work"
    assert store.unset(BEHAVIOR_CATEGORIES) is True
    assert store.get(BEHAVIOR_CATEGORIES) is None
