"""Pydantic models for the behavior log."""

from .config import ConfigProperty, ResolvedConfig
from .entry import CandidateEntry, LogEntry, ValidatedEntry
from .errors import (
    PersistError,
    PersistErrorKind,
    Rejection,
    RejectionReason,
    SubmissionError,
    SubmissionErrorKind,
    SubmissionResult,
)
from .ledger import LedgerEvent, LedgerEventType

__all__ = [
    # Config
    "ConfigProperty",
    "ResolvedConfig",
    # Entries
    "CandidateEntry",
    "ValidatedEntry",
    "LogEntry",
    # Failures
    "Rejection",
    "RejectionReason",
    "PersistError",
    "PersistErrorKind",
    "SubmissionError",
    "SubmissionErrorKind",
    "SubmissionResult",
    # Ledger
    "LedgerEvent",
    "LedgerEventType",
]
