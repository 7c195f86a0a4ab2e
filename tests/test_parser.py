"""Tests for multi-format document parsing."""

import asyncio

import pytest

from conftest import KNEE_CLAUSE, make_eml

from claim_adjudicator.ingestion import DocumentParser, normalize_text


class TestSingleFormats:
    """Each supported suffix invokes its own extractor."""

    def test_pdf(self, knee_policy_pdf):
        documents = DocumentParser().parse([("policy.pdf", knee_policy_pdf)])

        assert len(documents) == 1
        assert documents[0].name == "policy.pdf"
        assert KNEE_CLAUSE in documents[0].text

    def test_docx_includes_tables(self, dental_policy_docx):
        documents = DocumentParser().parse([("terms.docx", dental_policy_docx)])

        assert len(documents) == 1
        text = documents[0].text
        assert "Dental treatment is excluded" in text
        assert "Ambulance | 2000 INR" in text

    def test_eml_prefers_plain_text_body(self, endorsement_eml):
        documents = DocumentParser().parse([("endorsement.eml", endorsement_eml)])

        assert len(documents) == 1
        assert documents[0].text == (
            "Maternity expenses are covered after 9 months of policy inception."
        )
        assert "<p>" not in documents[0].text

    def test_eml_without_plain_text_part_is_empty(self):
        data = make_eml(html="<p>Only HTML here.</p>")
        documents = DocumentParser().parse([("html-only.eml", data)])

        assert len(documents) == 1
        assert documents[0].text == ""

    def test_suffix_match_is_case_insensitive(self, knee_policy_pdf):
        documents = DocumentParser().parse([("POLICY.PDF", knee_policy_pdf)])
        assert len(documents) == 1
        assert KNEE_CLAUSE in documents[0].text


class TestBatchPolicy:
    """Mixed batches: skipping, failures and ordering."""

    def test_unsupported_suffix_is_skipped(self, knee_policy_pdf, endorsement_eml):
        documents = DocumentParser().parse(
            [
                ("policy.pdf", knee_policy_pdf),
                ("notes.txt", b"plain text is not a supported format"),
                ("endorsement.eml", endorsement_eml),
            ]
        )
        assert [d.name for d in documents] == ["policy.pdf", "endorsement.eml"]

    def test_corrupt_file_yields_empty_document(self, endorsement_eml):
        documents = DocumentParser().parse(
            [
                ("broken.pdf", b"%PDF-1.4 this is not really a pdf"),
                ("broken.docx", b"not a zip archive"),
                ("endorsement.eml", endorsement_eml),
            ]
        )
        assert [d.name for d in documents] == ["broken.pdf", "broken.docx", "endorsement.eml"]
        assert documents[0].text == ""
        assert documents[1].text == ""
        assert documents[2].text

    def test_parse_async_preserves_submission_order(
        self, knee_policy_pdf, dental_policy_docx, endorsement_eml
    ):
        files = [
            ("c.eml", endorsement_eml),
            ("skip.png", b"\x89PNG"),
            ("a.pdf", knee_policy_pdf),
            ("b.docx", dental_policy_docx),
        ]
        documents = asyncio.run(DocumentParser().parse_async(files))

        assert [d.name for d in documents] == ["c.eml", "a.pdf", "b.docx"]
        assert documents == DocumentParser().parse(files)

    def test_empty_batch(self):
        assert DocumentParser().parse([]) == []
        assert asyncio.run(DocumentParser().parse_async([])) == []

    def test_custom_extractors(self):
        parser = DocumentParser(extractors={".txt": lambda data: data.decode("utf-8")})
        documents = parser.parse([("a.txt", b"hello"), ("b.pdf", b"ignored")])

        assert parser.supported_suffixes() == [".txt"]
        assert [d.text for d in documents] == ["hello"]

    def test_default_supported_suffixes(self):
        assert DocumentParser().supported_suffixes() == [".docx", ".eml", ".pdf"]


class TestNormalizeText:
    """Tests for text normalization."""

    def test_line_endings_and_trailing_spaces(self):
        assert normalize_text("a  \r\nb\rc\t\n") == "a\nb\nc"

    def test_collapses_blank_line_runs(self):
        assert normalize_text("para one\n\n\n\n\npara two") == "para one\n\npara two"

    def test_unicode_nfc(self):
        decomposed = "cafe\u0301"
        assert normalize_text(decomposed) == "caf\u00e9"

    @pytest.mark.parametrize("text", ["", "   ", "\n\n"])
    def test_blank_input(self, text):
        assert normalize_text(text) == ""
