"""Check candidate entries against the resolved configuration."""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from .models import (
    CandidateEntry,
    Rejection,
    RejectionReason,
    ResolvedConfig,
    ValidatedEntry,
)

DEFAULT_FUTURE_SKEW_SECONDS = 300
DEFAULT_USER_MAX_LENGTH = 64

# Letters, digits, underscore, space, and . @ ' -
USER_PATTERN = re.compile(r"[\w .@'-]+")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: datetime | str | None) -> Optional[datetime]:
    """Parse an ISO 8601 value into an aware UTC datetime.

    Naive values are taken as UTC. Returns None when the value is not an instant.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = value.strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except (ValueError, OverflowError):
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    # Offsets at the edges of the datetime range have no UTC equivalent.
    try:
        return parsed.astimezone(timezone.utc)
    except OverflowError:
        return None


class EntryValidator:
    """Applies the acceptance rules in a fixed order, stopping at the first failure.

    Rules:
        1. behavior is non-empty after trimming
        2. category is one of config.categories
        3. impact type is one of config.impact_types
        4. timestamp is an instant no later than now + future_skew
        5. effective user (entry user, else config.default_user) is sane if set
    """

    def __init__(
        self,
        *,
        future_skew_seconds: int = DEFAULT_FUTURE_SKEW_SECONDS,
        user_max_length: int = DEFAULT_USER_MAX_LENGTH,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.future_skew = timedelta(seconds=future_skew_seconds)
        self.user_max_length = user_max_length
        self.clock = clock

    def validate(
        self,
        entry: CandidateEntry,
        config: ResolvedConfig,
        now: Optional[datetime] = None,
    ) -> ValidatedEntry | Rejection:
        behavior = entry.behavior.strip()
        if not behavior:
            return Rejection(
                reason=RejectionReason.EMPTY_BEHAVIOR,
                field="behavior",
                message="Behavior must not be empty",
            )

        category = entry.category.strip()
        if category not in config.categories:
            return Rejection(
                reason=RejectionReason.INVALID_CATEGORY,
                field="category",
                message=f"Unknown category '{category}'; expected one of: {', '.join(config.categories)}",
            )

        impact_type = entry.impact_type.strip()
        if impact_type not in config.impact_types:
            return Rejection(
                reason=RejectionReason.INVALID_IMPACT_TYPE,
                field="impact_type",
                message=(
                    f"Unknown impact type '{impact_type}'; "
                    f"expected one of: {', '.join(config.impact_types)}"
                ),
            )

        timestamp = parse_timestamp(entry.timestamp)
        if timestamp is None:
            return Rejection(
                reason=RejectionReason.INVALID_TIMESTAMP,
                field="timestamp",
                message=f"Timestamp is not a valid ISO 8601 instant: {entry.timestamp!r}",
            )
        reference = now or self.clock()
        if timestamp > reference + self.future_skew:
            return Rejection(
                reason=RejectionReason.INVALID_TIMESTAMP,
                field="timestamp",
                message=f"Timestamp {timestamp.isoformat()} is in the future",
            )

        user = entry.user.strip() or config.default_user
        if user and (len(user) > self.user_max_length or not USER_PATTERN.fullmatch(user)):
            return Rejection(
                reason=RejectionReason.INVALID_USER,
                field="user",
                message=(
                    f"User must be at most {self.user_max_length} characters of "
                    "letters, digits, spaces or . _ - @ '"
                ),
            )

        return ValidatedEntry(
            behavior=behavior,
            category=category,
            impact_type=impact_type,
            user=user,
            timestamp=timestamp,
        )
