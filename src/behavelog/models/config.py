"""Pydantic models for configuration properties and resolved config."""

from pydantic import BaseModel, Field, field_validator


class ConfigProperty(BaseModel):
    """A named raw value held in the ConfigStore.

    Set by an administrator outside the entry pipeline; the pipeline only reads it.
    """

    key: str = Field(description="Property name, e.g. BEHAVIOR_CATEGORIES")
    value: str | None = Field(default=None, description="Raw string value, None when unset")

    model_config = {"frozen": True}


class ResolvedConfig(BaseModel):
    """Typed configuration in effect for one resolution cycle.

    Built fresh on every resolve() call and never mutated afterwards.
    """

    categories: tuple[str, ...] = Field(description="Allowed categories, declaration order")
    impact_types: tuple[str, ...] = Field(
        serialization_alias="impactTypes",
        description="Allowed impact types, declaration order",
    )
    default_user: str = Field(
        default="",
        serialization_alias="defaultUser",
        description="User recorded when a submission leaves user empty",
    )

    model_config = {"frozen": True}

    @field_validator("categories", "impact_types")
    @classmethod
    def _non_empty_choices(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if not value:
            raise ValueError("choice list must not be empty")
        if any(not item for item in value):
            raise ValueError("choice list must not contain empty values")
        return value
