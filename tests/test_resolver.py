"""Tests for configuration resolution."""

import sqlite3

import pytest

from behavelog.config_store import BEHAVIOR_CATEGORIES, DEFAULT_USER, IMPACT_TYPES, MemoryConfigStore
from behavelog.resolver import (
    DEFAULT_CATEGORIES,
    DEFAULT_IMPACT_TYPES,
    ConfigResolver,
    parse_choice_list,
)


def test_parse_choice_list_trims_dedupes_and_keeps_order():
    assert parse_choice_list(" Work, Sleep ,,Work,  ,Exercise,Sleep") == ("Work", "Sleep", "Exercise")


def test_parse_choice_list_empty_inputs():
    assert parse_choice_list(None) == ()
    assert parse_choice_list("") == ()
    assert parse_choice_list(" , ,, ") == ()


def test_resolve_empty_store_uses_defaults(memory_store):
    """An unconfigured deployment still yields populatable choices."""
    resolved = ConfigResolver(memory_store).resolve()

    assert resolved.categories == ("Work", "Exercise", "Social")
    assert resolved.impact_types == DEFAULT_IMPACT_TYPES
    assert "Health" in resolved.impact_types
    assert resolved.default_user == ""


@pytest.mark.parametrize("raw", ["", "   ", ",,,", " , "])
def test_resolve_blank_lists_fall_back_to_defaults(raw):
    store = MemoryConfigStore({BEHAVIOR_CATEGORIES: raw, IMPACT_TYPES: raw})
    resolved = ConfigResolver(store).resolve()

    assert resolved.categories == DEFAULT_CATEGORIES
    assert resolved.impact_types == DEFAULT_IMPACT_TYPES


def test_resolve_reads_configured_values():
    store = MemoryConfigStore(
        {
            BEHAVIOR_CATEGORIES: "Reading, Cooking, Reading",
            IMPACT_TYPES: "Positive,Negative",
            DEFAULT_USER: "  sam  ",
        }
    )
    resolved = ConfigResolver(store).resolve()

    assert resolved.categories == ("Reading", "Cooking")
    assert resolved.impact_types == ("Positive", "Negative")
    assert resolved.default_user == "sam"


def test_resolve_is_idempotent_without_store_changes(sqlite_store):
    sqlite_store.set(BEHAVIOR_CATEGORIES, "A,B")
    resolver = ConfigResolver(sqlite_store)

    assert resolver.resolve() == resolver.resolve()


def test_resolve_sees_store_changes_between_calls(memory_store):
    resolver = ConfigResolver(memory_store)
    before = resolver.resolve()

    memory_store.set(BEHAVIOR_CATEGORIES, "Gardening")
    after = resolver.resolve()

    assert before.categories == DEFAULT_CATEGORIES
    assert after.categories == ("Gardening",)


def test_resolve_survives_unreadable_store():
    class BrokenStore:
        def get(self, key):
            raise sqlite3.OperationalError("unable to open database file")

    resolved = ConfigResolver(BrokenStore()).resolve()

    assert resolved.categories == DEFAULT_CATEGORIES
    assert resolved.impact_types == DEFAULT_IMPACT_TYPES


def test_resolver_rejects_empty_builtin_defaults(memory_store):
    with pytest.raises(ValueError):
        ConfigResolver(memory_store, default_categories=())
