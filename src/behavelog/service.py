"""Entry submission pipeline: resolve config, validate, append."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from .append_log import AppendLog, SqliteTable
from .config import BehaveLogConfig
from .config_store import SqliteConfigStore
from .ledger import LedgerWriter
from .models import (
    CandidateEntry,
    LogEntry,
    PersistError,
    Rejection,
    ResolvedConfig,
    SubmissionError,
    SubmissionResult,
)
from .resolver import ConfigResolver
from .validator import EntryValidator

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _has_timestamp(entry: CandidateEntry) -> bool:
    if entry.timestamp is None:
        return False
    if isinstance(entry.timestamp, str):
        return bool(entry.timestamp.strip())
    return True


class EntryService:
    """Orchestrates one submission: resolver -> validator -> append log.

    Form options and submissions go through the same resolver, so the choices
    offered to a user are the ones validation enforces.
    """

    def __init__(
        self,
        resolver: ConfigResolver,
        validator: EntryValidator,
        append_log: AppendLog,
        *,
        ledger: Optional[LedgerWriter] = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.resolver = resolver
        self.validator = validator
        self.append_log = append_log
        self.ledger = ledger
        self.clock = clock

    @classmethod
    def from_config(cls, config: BehaveLogConfig, *, with_ledger: bool = True) -> "EntryService":
        """Wire the SQLite-backed pipeline described by settings."""
        store = SqliteConfigStore(config.db_path, timeout=config.storage_timeout_seconds)
        table = SqliteTable(config.db_path, timeout=config.storage_timeout_seconds)
        return cls(
            resolver=ConfigResolver(store),
            validator=EntryValidator(
                future_skew_seconds=config.future_skew_seconds,
                user_max_length=config.user_max_length,
            ),
            append_log=AppendLog(table),
            ledger=LedgerWriter(config.effective_ledger_path) if with_ledger else None,
        )

    def get_form_options(self) -> ResolvedConfig:
        return self.resolver.resolve()

    def submit(self, entry: CandidateEntry) -> SubmissionResult:
        now = self.clock()
        if not _has_timestamp(entry):
            entry = entry.model_copy(update={"timestamp": now})

        config = self.resolver.resolve()
        checked = self.validator.validate(entry, config, now=now)
        if isinstance(checked, Rejection):
            logger.info(f"Submission rejected: {checked.reason.value} ({checked.field})")
            self._record(
                "ENTRY_REJECTED",
                {"reason": checked.reason.value, "field": checked.field, "message": checked.message},
            )
            return SubmissionResult(error=SubmissionError.rejected(checked))

        appended = self.append_log.append(checked)
        if isinstance(appended, PersistError):
            logger.error(f"Submission not persisted ({appended.kind.value}): {appended.message}")
            self._record(
                "APPEND_FAILED",
                {"kind": appended.kind.value, "retryable": appended.retryable, "message": appended.message},
            )
            return SubmissionResult(error=SubmissionError.persist_failed(appended))

        logger.info(f"Entry {appended.id} appended ({appended.category}/{appended.impact_type})")
        self._record(
            "ENTRY_APPENDED",
            {"category": appended.category, "impact_type": appended.impact_type},
            entry_id=appended.id,
        )
        return SubmissionResult(entry=appended)

    def recent_entries(self, limit: Optional[int] = None) -> list[LogEntry]:
        return self.append_log.entries(limit=limit)

    def _record(self, event_type, payload: dict, entry_id: Optional[int] = None) -> None:
        if self.ledger is None:
            return
        # The entry store is authoritative; an audit write failure does not undo a submission.
        try:
            self.ledger.append_event(event_type, payload, entry_id=entry_id)
        except OSError as e:
            logger.error(f"Could not write ledger event {event_type}: {e}")
