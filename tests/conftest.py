"""Shared pytest fixtures: stub capabilities and in-memory sample documents."""

import io
import json
import re
import zlib
from email.message import EmailMessage
from typing import Callable, Optional, Sequence

import docx
import fitz  # PyMuPDF
import numpy as np
import pytest

from claim_adjudicator.config.llm import LanguageModel
from claim_adjudicator.rag.embeddings import EmbeddingProvider

KNEE_CLAUSE = "Knee surgery is covered after 90 days of policy inception."


class ScriptedLanguageModel(LanguageModel):
    """LanguageModel stub returning queued responses (or raising queued errors)."""

    def __init__(
        self,
        responses: Optional[Sequence] = None,
        handler: Optional[Callable[[str], str]] = None,
    ):
        self.responses = list(responses or [])
        self.handler = handler
        self.prompts: list[str] = []

    def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.handler is not None:
            return self.handler(prompt)
        if not self.responses:
            raise AssertionError("Unexpected language model call")
        response = self.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response


class KeywordEmbedding(EmbeddingProvider):
    """Deterministic bag-of-words embedding using crc32 token buckets."""

    DIM = 4096

    def __init__(self):
        self.calls: list[list[str]] = []

    @property
    def dimension(self) -> int:
        return self.DIM

    def embed(self, texts: Sequence[str]) -> np.ndarray:
        self.calls.append(list(texts))
        vectors = np.zeros((len(texts), self.DIM))
        for row, text in enumerate(texts):
            for token in re.findall(r"[a-z0-9]+", text.lower()):
                vectors[row, zlib.crc32(token.encode()) % self.DIM] += 1.0
        return vectors


class ConstantEmbedding(EmbeddingProvider):
    """Embeds every text to the same vector, so every chunk ties."""

    def __init__(self):
        self.calls: list[list[str]] = []

    @property
    def dimension(self) -> int:
        return 3

    def embed(self, texts: Sequence[str]) -> np.ndarray:
        self.calls.append(list(texts))
        return np.ones((len(texts), 3))


def fake_policy_engine(prompt: str) -> str:
    """Answer extraction and decision prompts the way a well-behaved model would.

    Extraction reads facts from the query text. Decisions apply any
    "covered after N days" clause against the policy duration (30 days/month).
    """
    if "extract structured facts" in prompt:
        query = prompt.split('"""')[1]
        age = re.search(r"(\d+)-year-old", query)
        months = re.search(r"(\d+(?:\.\d+)?)-month", query)
        gender = re.search(r"\b(male|female)\b", query, re.I)
        return json.dumps(
            {
                "age": int(age.group(1)) if age else None,
                "gender": gender.group(1).lower() if gender else None,
                "procedure": "knee surgery" if "knee surgery" in query.lower() else None,
                "location": "Pune" if "Pune" in query else None,
                "policyDurationMonths": float(months.group(1)) if months else None,
            }
        )

    rule = re.search(r"[^\n]*covered after (\d+) days[^\n]*", prompt)
    duration = re.search(r"Policy duration \(months\): ([\d.]+)", prompt)
    if not rule or not duration:
        return json.dumps(
            {
                "decision": "insufficient_information",
                "amount": None,
                "justification": "No waiting-period clause applies.",
                "clauses": [],
            }
        )
    required_days = int(rule.group(1))
    covered = float(duration.group(1)) * 30 >= required_days
    return json.dumps(
        {
            "decision": "approved" if covered else "denied",
            "amount": None,
            "justification": (
                f"Clause 1 requires {required_days} days; the policy has been active "
                f"{duration.group(1)} months."
            ),
            "clauses": [rule.group(0).strip()],
        }
    )


def make_pdf(lines: Sequence[str]) -> bytes:
    """Build a one-page PDF with one text line per entry."""
    doc = fitz.open()
    page = doc.new_page()
    y = 72
    for line in lines:
        page.insert_text((72, y), line, fontsize=11)
        y += 16
    data = doc.tobytes()
    doc.close()
    return data


def make_docx(paragraphs: Sequence[str], table_rows: Optional[Sequence[Sequence[str]]] = None) -> bytes:
    """Build a Word document with paragraphs and an optional table."""
    document = docx.Document()
    for paragraph in paragraphs:
        document.add_paragraph(paragraph)
    if table_rows:
        table = document.add_table(rows=len(table_rows), cols=len(table_rows[0]))
        for r, row in enumerate(table_rows):
            for c, value in enumerate(row):
                table.cell(r, c).text = value
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


def make_eml(plain: Optional[str] = None, html: Optional[str] = None) -> bytes:
    """Build an email with a plain-text body, an HTML body, or both."""
    message = EmailMessage()
    message["From"] = "claims@insurer.example"
    message["To"] = "adjudication@insurer.example"
    message["Subject"] = "Policy endorsement"
    if plain is not None:
        message.set_content(plain)
        if html is not None:
            message.add_alternative(html, subtype="html")
    elif html is not None:
        message.set_content(html, subtype="html")
    return message.as_bytes()


@pytest.fixture
def keyword_embedding():
    return KeywordEmbedding()


@pytest.fixture
def constant_embedding():
    return ConstantEmbedding()


@pytest.fixture
def policy_engine_llm():
    return ScriptedLanguageModel(handler=fake_policy_engine)


@pytest.fixture
def knee_policy_pdf():
    return make_pdf(
        [
            "Section 4: Waiting periods",
            KNEE_CLAUSE,
            "Cataract treatment is covered after 24 months of continuous cover.",
        ]
    )


@pytest.fixture
def dental_policy_docx():
    return make_docx(
        [
            "Dental treatment is excluded unless caused by an accident.",
            "Room rent is capped at 1% of the sum insured per day.",
        ],
        table_rows=[["Benefit", "Limit"], ["Ambulance", "2000 INR"]],
    )


@pytest.fixture
def endorsement_eml():
    return make_eml(
        plain="Maternity expenses are covered after 9 months of policy inception.",
        html="<p>Maternity expenses are covered after 9 months.</p>",
    )
