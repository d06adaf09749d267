"""Typed failure values returned across component boundaries."""

from enum import Enum

from pydantic import BaseModel, Field, model_validator

from .entry import LogEntry


class RejectionReason(str, Enum):
    EMPTY_BEHAVIOR = "EMPTY_BEHAVIOR"
    INVALID_CATEGORY = "INVALID_CATEGORY"
    INVALID_IMPACT_TYPE = "INVALID_IMPACT_TYPE"
    INVALID_TIMESTAMP = "INVALID_TIMESTAMP"
    INVALID_USER = "INVALID_USER"


class Rejection(BaseModel):
    """Why a candidate entry was refused.

    Carries the offending field and rule so callers can render a precise message.
    """

    reason: RejectionReason
    field: str = Field(description="Name of the offending candidate field")
    message: str = Field(description="Human-readable explanation")

    model_config = {"frozen": True}


class PersistErrorKind(str, Enum):
    TRANSIENT = "TRANSIENT"
    PERMANENT = "PERMANENT"


class PersistError(BaseModel):
    """Storage failure raised while appending. The store is left unchanged."""

    kind: PersistErrorKind
    message: str

    model_config = {"frozen": True}

    @property
    def retryable(self) -> bool:
        return self.kind is PersistErrorKind.TRANSIENT


class SubmissionErrorKind(str, Enum):
    REJECTED = "REJECTED"
    PERSIST_FAILED = "PERSIST_FAILED"


class SubmissionError(BaseModel):
    kind: SubmissionErrorKind
    rejection: Rejection | None = None
    persist_error: PersistError | None = None

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _cause_matches_kind(self) -> "SubmissionError":
        if self.kind is SubmissionErrorKind.REJECTED and self.rejection is None:
            raise ValueError("REJECTED submission error requires a rejection")
        if self.kind is SubmissionErrorKind.PERSIST_FAILED and self.persist_error is None:
            raise ValueError("PERSIST_FAILED submission error requires a persist_error")
        return self

    @classmethod
    def rejected(cls, rejection: Rejection) -> "SubmissionError":
        return cls(kind=SubmissionErrorKind.REJECTED, rejection=rejection)

    @classmethod
    def persist_failed(cls, error: PersistError) -> "SubmissionError":
        return cls(kind=SubmissionErrorKind.PERSIST_FAILED, persist_error=error)


class SubmissionResult(BaseModel):
    """Outcome of EntryService.submit: exactly one of entry or error is set."""

    entry: LogEntry | None = None
    error: SubmissionError | None = None

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _exactly_one(self) -> "SubmissionResult":
        if (self.entry is None) == (self.error is None):
            raise ValueError("SubmissionResult needs exactly one of entry or error")
        return self

    @property
    def ok(self) -> bool:
        return self.entry is not None
