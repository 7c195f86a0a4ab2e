"""Decision synthesizer: structured facts plus retrieved clauses to a Decision."""

import logging
import re
from typing import Any, Optional, Sequence

from pydantic import ValidationError

from claim_adjudicator.config.llm import LanguageModel
from claim_adjudicator.exceptions import MalformedDecisionError
from claim_adjudicator.models.decision import DECISION_FIELDS, Decision
from claim_adjudicator.models.document import RetrievedClause
from claim_adjudicator.models.query import StructuredQuery
from claim_adjudicator.observability.metrics import RequestMetrics
from claim_adjudicator.pipeline.json_output import JSONObjectError, parse_json_object
from claim_adjudicator.pipeline.prompts import build_decision_prompt
from claim_adjudicator.pipeline.structurer import complete_or_raise

logger = logging.getLogger(__name__)

STAGE = "synthesizing"

NO_CLAUSES_JUSTIFICATION = (
    "No policy clauses relevant to the claim were found in the submitted documents."
)

_CLAUSE_LABEL = re.compile(r"^\s*clause\s*#?\s*(\d+)\s*(?:\([^)]*\))?\s*[.:\-]?\s*", re.I)


def _find_span(quote: str, texts: Sequence[str]) -> Optional[str]:
    """Return the first span of ``texts`` matching ``quote`` up to case and whitespace."""
    words = quote.split()
    if not words:
        return None
    pattern = re.compile(r"\s+".join(re.escape(word) for word in words), re.I)
    for text in texts:
        match = pattern.search(text)
        if match:
            return match.group(0)
    return None


def _resolve_label(item: str, clauses: Sequence[RetrievedClause]) -> Optional[str]:
    label = _CLAUSE_LABEL.match(item)
    if not label:
        return None
    index = int(label.group(1))
    if not 1 <= index <= len(clauses):
        return None
    labelled = clauses[index - 1].text
    quote = item[label.end():]
    if not quote.strip():
        return labelled
    others = [clause.text for i, clause in enumerate(clauses) if i != index - 1]
    return _find_span(quote, [labelled, *others])


def ground_citations(cited: Sequence[Any], clauses: Sequence[RetrievedClause]) -> list[str]:
    """Keep only citations drawn from the grounding set.

    A bare clause label such as ``Clause 2`` resolves to that clause's
    verbatim text. A label followed by a quotation (``Clause 1: ...`` or
    ``Clause 1 (source: policy.pdf): ...``) is matched against the labelled
    clause first. A quotation is kept when it occurs in a supplied clause
    ignoring case and whitespace, and is replaced by the clause's own wording.
    Everything else is dropped.
    """
    texts = [clause.text for clause in clauses]
    grounded: list[str] = []
    for item in cited:
        if not isinstance(item, str) or not item.strip():
            logger.warning("Dropping non-text citation: %r", item)
            continue

        text = _resolve_label(item, clauses) or _find_span(item, texts)
        if text is None:
            logger.warning("Dropping citation not found in retrieved clauses: %r", item[:120])
            continue

        if text not in grounded:
            grounded.append(text)
    return grounded


class DecisionSynthesizer:
    """Produces a Decision grounded only in the supplied clauses."""

    def __init__(self, llm: LanguageModel):
        self.llm = llm

    def synthesize(
        self,
        query: StructuredQuery,
        clauses: Sequence[RetrievedClause],
        metrics: Optional[RequestMetrics] = None,
    ) -> Decision:
        """Decide the claim.

        An empty grounding set short-circuits to ``insufficient_information``
        without calling the model.

        Raises:
            MalformedDecisionError: The model response is not a valid decision.
        """
        if not clauses:
            logger.info("Empty grounding set; returning insufficient_information")
            return Decision.insufficient_information(NO_CLAUSES_JUSTIFICATION)

        prompt = build_decision_prompt(query, clauses)
        raw = complete_or_raise(self.llm, prompt, STAGE, metrics)
        decision = self.parse_response(raw, clauses)
        logger.info(
            "Decision: %s (amount=%s, %d clause(s) cited)",
            decision.decision.value,
            decision.amount,
            len(decision.clauses),
        )
        return decision

    @staticmethod
    def parse_response(raw: str, clauses: Sequence[RetrievedClause]) -> Decision:
        """Validate a raw decision response against the grounding set."""
        try:
            data = parse_json_object(raw)
        except JSONObjectError as e:
            raise MalformedDecisionError(str(e), stage=STAGE, raw_output=raw) from e

        missing = [key for key in DECISION_FIELDS if key not in data]
        if missing:
            raise MalformedDecisionError(
                f"Decision is missing required field(s): {missing}",
                stage=STAGE,
                raw_output=raw,
            )
        unexpected = sorted(set(data) - set(DECISION_FIELDS))
        if unexpected:
            raise MalformedDecisionError(
                f"Decision has unexpected field(s): {unexpected}",
                stage=STAGE,
                raw_output=raw,
            )

        outcome = data["decision"]
        if isinstance(outcome, str):
            outcome = outcome.strip().lower().replace(" ", "_")
        cited = data["clauses"]
        if not isinstance(cited, list):
            raise MalformedDecisionError(
                "Decision field 'clauses' must be a list", stage=STAGE, raw_output=raw
            )

        try:
            return Decision.model_validate(
                {
                    "decision": outcome,
                    "amount": data["amount"],
                    "justification": data["justification"],
                    "clauses": ground_citations(cited, clauses),
                }
            )
        except ValidationError as e:
            raise MalformedDecisionError(
                f"Invalid decision values: {e.error_count()} error(s)",
                stage=STAGE,
                raw_output=raw,
            ) from e
