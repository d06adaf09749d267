"""Pydantic models for behavior entries at each stage of the pipeline."""

from datetime import datetime

from pydantic import AliasChoices, BaseModel, Field, field_validator


class CandidateEntry(BaseModel):
    """Raw submission from a caller. No identity yet.

    Accepts both ``impact_type`` and the wire name ``impactType``.
    """

    behavior: str = Field(default="", description="Free-text description of the behavior")
    category: str = Field(default="", description="Category chosen from the form options")
    impact_type: str = Field(
        default="",
        validation_alias=AliasChoices("impact_type", "impactType"),
        description="Impact type chosen from the form options",
    )
    user: str = Field(default="", description="Optional user name")
    timestamp: datetime | str | None = Field(
        default=None,
        description="When the behavior happened; server clock is used when absent",
    )

    model_config = {"frozen": True, "populate_by_name": True}

    @field_validator("behavior", "category", "impact_type", "user", mode="before")
    @classmethod
    def _null_is_empty(cls, value):
        # JSON null for an optional text field means "not given"
        return "" if value is None else value


class ValidatedEntry(BaseModel):
    """A CandidateEntry that passed validation, normalized for storage."""

    behavior: str
    category: str
    impact_type: str = Field(serialization_alias="impactType")
    user: str = ""
    timestamp: datetime = Field(description="Timezone-aware UTC instant")

    model_config = {"frozen": True}


class LogEntry(ValidatedEntry):
    """A validated entry durably appended to the log.

    Never updated or deleted once written.
    """

    id: int = Field(description="Row identifier assigned by the append log, never reused")
    recorded_at: datetime = Field(
        serialization_alias="recordedAt",
        description="Server instant of persistence (UTC)",
    )

    def to_row(self) -> dict:
        """Wire representation used by the API and exports."""
        return self.model_dump(mode="json", by_alias=True)
