"""Query structurer: free-text claim query to a StructuredQuery."""

import logging
from typing import Optional

from pydantic import ValidationError

from claim_adjudicator.config.llm import LanguageModel
from claim_adjudicator.exceptions import (
    CapabilityTimeoutError,
    InvalidQueryError,
    LanguageModelUnavailableError,
    MalformedExtractionError,
)
from claim_adjudicator.models.query import QUERY_FIELDS, StructuredQuery
from claim_adjudicator.observability.metrics import RequestMetrics, track_capability_call
from claim_adjudicator.pipeline.json_output import JSONObjectError, parse_json_object
from claim_adjudicator.pipeline.prompts import build_extraction_prompt
from claim_adjudicator.utils.sanitization import sanitize_query_text

logger = logging.getLogger(__name__)

STAGE = "structuring"


def complete_or_raise(
    llm: LanguageModel,
    prompt: str,
    stage: str,
    metrics: Optional[RequestMetrics] = None,
) -> str:
    """Call the language model once, mapping client failures to pipeline errors."""
    try:
        with track_capability_call(metrics, "llm"):
            return llm.complete(prompt)
    except TimeoutError as e:
        raise CapabilityTimeoutError(f"Language model timed out: {e}", stage=stage) from e
    except Exception as e:
        raise LanguageModelUnavailableError(
            f"Language model call failed: {e}", stage=stage
        ) from e


class QueryStructurer:
    """Extracts the five claim facts from a free-text query with one LLM call."""

    def __init__(self, llm: LanguageModel):
        self.llm = llm

    def extract(
        self, raw_text: str, metrics: Optional[RequestMetrics] = None
    ) -> StructuredQuery:
        """Extract a StructuredQuery from ``raw_text``.

        Raises:
            InvalidQueryError: The query is empty after sanitization.
            MalformedExtractionError: The model response is not a JSON object
                with exactly the expected keys and valid values.
        """
        query_text = sanitize_query_text(raw_text)
        if not query_text:
            raise InvalidQueryError("Query text is empty", stage=STAGE)

        raw = complete_or_raise(self.llm, build_extraction_prompt(query_text), STAGE, metrics)
        query = self.parse_response(raw)
        logger.info("Structured query: %s", query.to_payload())
        return query

    @staticmethod
    def parse_response(raw: str) -> StructuredQuery:
        """Validate a raw extraction response."""
        try:
            data = parse_json_object(raw)
        except JSONObjectError as e:
            raise MalformedExtractionError(str(e), stage=STAGE, raw_output=raw) from e

        keys = set(data)
        expected = set(QUERY_FIELDS)
        if keys != expected:
            problems = []
            if expected - keys:
                problems.append(f"missing {sorted(expected - keys)}")
            if keys - expected:
                problems.append(f"unexpected {sorted(keys - expected)}")
            raise MalformedExtractionError(
                f"Extraction keys do not match: {'; '.join(problems)}",
                stage=STAGE,
                raw_output=raw,
            )

        try:
            return StructuredQuery.model_validate(data)
        except ValidationError as e:
            raise MalformedExtractionError(
                f"Invalid extraction values: {e.error_count()} error(s)",
                stage=STAGE,
                raw_output=raw,
            ) from e
