"""Retrieval-augmented claim adjudication over uploaded policy documents."""

from claim_adjudicator.exceptions import PipelineError
from claim_adjudicator.models import Decision, DecisionOutcome, StructuredQuery
from claim_adjudicator.pipeline import DecisionPipeline, run_pipeline

__all__ = [
    "Decision",
    "DecisionOutcome",
    "DecisionPipeline",
    "PipelineError",
    "StructuredQuery",
    "run_pipeline",
]

__version__ = "0.1.0"
