"""Pydantic models for the adjudication decision."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

DECISION_FIELDS = ("decision", "amount", "justification", "clauses")


class DecisionOutcome(str, Enum):
    """Outcome of adjudicating a claim against the grounding set."""

    APPROVED = "approved"
    DENIED = "denied"
    PARTIALLY_APPROVED = "partially_approved"
    INSUFFICIENT_INFORMATION = "insufficient_information"


class Decision(BaseModel):
    """Structured decision grounded in retrieved policy clauses."""

    model_config = ConfigDict(extra="forbid", use_enum_values=False)

    decision: DecisionOutcome = Field(..., description="Adjudication outcome")
    amount: Optional[float] = Field(
        default=None, description="Payable amount, if the clauses determine one"
    )
    justification: str = Field(..., description="Reasoning that cites the clauses")
    clauses: list[str] = Field(
        default_factory=list, description="Verbatim clause text supporting the decision"
    )

    @classmethod
    def insufficient_information(cls, justification: str) -> "Decision":
        return cls(
            decision=DecisionOutcome.INSUFFICIENT_INFORMATION,
            amount=None,
            justification=justification,
            clauses=[],
        )

    def to_payload(self) -> dict:
        return self.model_dump(mode="json")
