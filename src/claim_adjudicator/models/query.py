"""Pydantic model for the structured facts extracted from a claim query."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

QUERY_FIELDS = ("age", "gender", "procedure", "location", "policyDurationMonths")


class StructuredQuery(BaseModel):
    """Typed fact record extracted from a free-text claim question."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    age: Optional[int] = Field(default=None, description="Claimant age in years")
    gender: Optional[str] = Field(default=None, description="Claimant gender")
    procedure: Optional[str] = Field(
        default=None, description="Medical procedure or treatment claimed"
    )
    location: Optional[str] = Field(default=None, description="City or region of treatment")
    policy_duration_months: Optional[float] = Field(
        default=None,
        alias="policyDurationMonths",
        description="How long the policy has been in force, in months",
    )

    def search_text(self) -> str:
        """Return the retrieval search string built from procedure and location."""
        parts = [
            value.strip()
            for value in (self.procedure, self.location)
            if value and value.strip()
        ]
        return " ".join(parts)

    def to_payload(self) -> dict:
        """Serialize using the external (camelCase) field names."""
        return self.model_dump(by_alias=True)
