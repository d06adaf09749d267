"""Append-only submission ledger."""

import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from .models.ledger import LedgerEvent, LedgerEventType

logger = logging.getLogger(__name__)


class LedgerWriter:
    """Append-only JSONL audit trail of submission outcomes.

    Never truncates or rewrites; only appends.
    """

    def __init__(self, ledger_path: Path, run_id: str | None = None):
        """Initialize ledger writer.

        Args:
            ledger_path: Path to ledger.jsonl file
            run_id: Optional run ID; if None, generates a new uuid4
        """
        self.ledger_path = ledger_path
        self.run_id = run_id or str(uuid.uuid4())

    def append_event(
        self,
        event_type: LedgerEventType,
        payload: dict,
        entry_id: int | None = None,
    ) -> LedgerEvent:
        """Append an event to the ledger.

        Args:
            event_type: Type of event
            payload: Event-specific data
            entry_id: Optional log entry id reference

        Returns:
            The created LedgerEvent
        """
        self.ledger_path.parent.mkdir(parents=True, exist_ok=True)

        event = LedgerEvent(
            event_id=str(uuid.uuid4()),
            run_id=self.run_id,
            ts=datetime.now(timezone.utc),
            event_type=event_type,
            entry_id=entry_id,
            payload=payload,
        )

        # One JSON object per line; a single write keeps concurrent appends line-atomic
        line = json.dumps(event.model_dump(mode="json")) + "\n"
        with open(self.ledger_path, "a", encoding="utf-8") as f:
            f.write(line)

        return event


def read_ledger_tail(ledger_path: Path, n: int = 20) -> list[LedgerEvent]:
    """Read the last N events from the ledger.

    Robust parsing: skips malformed lines with a warning.

    Args:
        ledger_path: Path to ledger.jsonl file
        n: Number of events to read from the end

    Returns:
        List of LedgerEvent objects (last N events)
    """
    if not ledger_path.exists():
        return []

    events: list[LedgerEvent] = []
    malformed_count = 0

    with open(ledger_path, "r", encoding="utf-8") as f:
        lines = f.readlines()

    for line in lines[-n:] if len(lines) > n else lines:
        line = line.strip()
        if not line:
            continue

        try:
            data = json.loads(line)
            events.append(LedgerEvent(**data))
        except (json.JSONDecodeError, ValidationError, TypeError) as e:
            malformed_count += 1
            logger.warning(f"Skipping malformed ledger line: {e}")

    if malformed_count > 0:
        logger.warning(f"Skipped {malformed_count} malformed ledger line(s)")

    return events
