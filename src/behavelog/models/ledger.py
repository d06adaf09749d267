"""Pydantic models for submission ledger events."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

LedgerEventType = Literal[
    "ENTRY_APPENDED",
    "ENTRY_REJECTED",
    "APPEND_FAILED",
    "CONFIG_PROPERTY_SET",
    "CONFIG_PROPERTY_UNSET",
]


class LedgerEvent(BaseModel):
    """Append-only ledger event record.

    Written as JSONL next to the entry database.
    Never mutate or delete; only append.
    """

    event_id: str = Field(description="Unique event identifier (uuid4)")
    run_id: str = Field(description="Process/run identifier (uuid4)")
    ts: datetime = Field(description="Event timestamp (ISO8601 UTC)")
    event_type: LedgerEventType = Field(description="Event type")
    entry_id: int | None = Field(default=None, description="Related log entry id if applicable")
    payload: dict = Field(default_factory=dict, description="Event-specific data")

    model_config = {"frozen": True}
