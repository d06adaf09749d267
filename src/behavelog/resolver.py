"""Turn raw ConfigStore properties into a typed ResolvedConfig."""

from __future__ import annotations

import logging
import sqlite3
from typing import Optional

from .config_store import BEHAVIOR_CATEGORIES, DEFAULT_USER, IMPACT_TYPES, ConfigStore
from .models import ResolvedConfig

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = ("Work", "Exercise", "Social")
DEFAULT_IMPACT_TYPES = ("Health", "Productivity", "Mood")

LIST_DELIMITER = ","


def parse_choice_list(raw: Optional[str]) -> tuple[str, ...]:
    """Split a comma-separated value into trimmed, de-duplicated pieces.

    Order follows first occurrence; empty pieces are dropped.
    """
    if not raw:
        return ()
    seen: dict[str, None] = {}
    for piece in raw.split(LIST_DELIMITER):
        item = piece.strip()
        if item and item not in seen:
            seen[item] = None
    return tuple(seen)


class ConfigResolver:
    """Resolves the configuration in effect right now.

    resolve() never fails and never caches: each call reads the store again so
    an administrator's change is visible on the next submission.
    """

    def __init__(
        self,
        store: ConfigStore,
        *,
        default_categories: tuple[str, ...] = DEFAULT_CATEGORIES,
        default_impact_types: tuple[str, ...] = DEFAULT_IMPACT_TYPES,
    ):
        if not default_categories or not default_impact_types:
            raise ValueError("Built-in default choice lists must not be empty")
        self.store = store
        self.default_categories = default_categories
        self.default_impact_types = default_impact_types

    def _read(self, key: str) -> Optional[str]:
        # An unreadable store is treated as an unconfigured one.
        try:
            return self.store.get(key)
        except (sqlite3.Error, OSError) as e:
            logger.warning(f"Could not read config property {key}, using default: {e}")
            return None

    def resolve(self) -> ResolvedConfig:
        categories = parse_choice_list(self._read(BEHAVIOR_CATEGORIES)) or self.default_categories
        impact_types = parse_choice_list(self._read(IMPACT_TYPES)) or self.default_impact_types
        default_user = (self._read(DEFAULT_USER) or "").strip()

        logger.debug(
            f"Resolved config: {len(categories)} categories, {len(impact_types)} impact types"
        )
        return ResolvedConfig(
            categories=categories,
            impact_types=impact_types,
            default_user=default_user,
        )
