"""Decision pipeline stages and orchestration."""

from claim_adjudicator.pipeline.runner import (
    DecisionPipeline,
    PipelineRun,
    PipelineStage,
    run_pipeline,
)
from claim_adjudicator.pipeline.structurer import QueryStructurer
from claim_adjudicator.pipeline.synthesizer import DecisionSynthesizer, ground_citations

__all__ = [
    "DecisionPipeline",
    "DecisionSynthesizer",
    "PipelineRun",
    "PipelineStage",
    "QueryStructurer",
    "ground_citations",
    "run_pipeline",
]
