"""Pydantic models for queries, documents and decisions."""

from claim_adjudicator.models.decision import Decision, DecisionOutcome
from claim_adjudicator.models.document import Chunk, ParsedDocument, RetrievedClause
from claim_adjudicator.models.query import StructuredQuery

__all__ = [
    "Chunk",
    "Decision",
    "DecisionOutcome",
    "ParsedDocument",
    "RetrievedClause",
    "StructuredQuery",
]
