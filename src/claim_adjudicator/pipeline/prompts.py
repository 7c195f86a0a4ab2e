"""Prompt templates for query extraction and decision synthesis."""

from typing import Sequence

from claim_adjudicator.models.decision import DecisionOutcome
from claim_adjudicator.models.document import RetrievedClause
from claim_adjudicator.models.query import StructuredQuery

EXTRACTION_PROMPT = """You extract structured facts from insurance claim queries.

Read the claim query below and respond with a single JSON object containing
exactly these keys and no others:
- "age": the claimant's age in years as a number, or null
- "gender": the claimant's gender as a lowercase string, or null
- "procedure": the medical procedure or treatment as a lowercase string, or null
- "location": the city or region where treatment happens, or null
- "policyDurationMonths": how long the policy has been active, in months, as a number, or null

Use null for anything the query does not state. Do not guess.

Claim query:
\"\"\"{query}\"\"\"
"""

DECISION_PROMPT = """You are a policy decision engine. Decide the claim using ONLY the policy clauses below.

Policy clauses:
{clauses}

Claim facts:
- Age: {age}
- Gender: {gender}
- Procedure: {procedure}
- Location: {location}
- Policy duration (months): {policy_duration_months}

Respond with a single JSON object containing exactly these keys:
- "decision": one of {outcomes}
- "amount": the payable amount as a number, or null if the clauses do not determine one
- "justification": a short explanation that refers to the clauses by label
- "clauses": a list of the supporting clause texts, each quoted verbatim from the clauses above

If the clauses do not settle the claim, use "insufficient_information".
"""


def _fact(value) -> str:
    return "unknown" if value is None else str(value)


def format_clauses(clauses: Sequence[RetrievedClause]) -> str:
    """Label every clause with a stable 1-based index and its source."""
    return "\n\n".join(
        f"Clause {i} (source: {clause.source_name}):\n{clause.text}"
        for i, clause in enumerate(clauses, start=1)
    )


def build_extraction_prompt(query_text: str) -> str:
    return EXTRACTION_PROMPT.format(query=query_text)


def build_decision_prompt(query: StructuredQuery, clauses: Sequence[RetrievedClause]) -> str:
    return DECISION_PROMPT.format(
        clauses=format_clauses(clauses),
        age=_fact(query.age),
        gender=_fact(query.gender),
        procedure=_fact(query.procedure),
        location=_fact(query.location),
        policy_duration_months=_fact(query.policy_duration_months),
        outcomes=", ".join(f'"{o.value}"' for o in DecisionOutcome),
    )
