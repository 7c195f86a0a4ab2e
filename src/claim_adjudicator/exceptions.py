"""Typed failures surfaced by the decision pipeline.

Every error carries the pipeline stage it failed in so that callers can
report a structured failure instead of a partial decision.
"""

from typing import Any


class PipelineError(Exception):
    """Base class for failures that abort a pipeline run."""

    default_reason = "pipeline_error"

    def __init__(
        self,
        message: str,
        *,
        stage: str | None = None,
        raw_output: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.stage = stage
        self.raw_output = raw_output

    @property
    def reason(self) -> str:
        return self.default_reason

    def to_dict(self) -> dict[str, Any]:
        """Structured failure payload for the caller."""
        data: dict[str, Any] = {
            "error": self.reason,
            "stage": self.stage,
            "message": self.message,
        }
        if self.raw_output is not None:
            data["raw_output"] = self.raw_output
        return data


class InvalidQueryError(PipelineError):
    """The free-text query was empty after sanitization."""

    default_reason = "invalid_query"


class MalformedExtractionError(PipelineError):
    """Query extraction output was not the required JSON object."""

    default_reason = "malformed_extraction"


class MalformedDecisionError(PipelineError):
    """Decision output was not the required JSON object."""

    default_reason = "malformed_decision"


class RetrievalUnavailableError(PipelineError):
    """The embedding capability failed or returned unusable vectors."""

    default_reason = "retrieval_unavailable"


class LanguageModelUnavailableError(PipelineError):
    """The language-model capability raised a non-timeout error."""

    default_reason = "language_model_unavailable"


class CapabilityTimeoutError(PipelineError):
    """A language-model or embedding call timed out."""

    default_reason = "capability_timeout"
