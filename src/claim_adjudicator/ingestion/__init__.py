"""Document ingestion: uploaded bytes to normalized text."""

from claim_adjudicator.ingestion.parser import (
    DocumentParser,
    extract_docx_text,
    extract_eml_text,
    extract_pdf_text,
    normalize_text,
)

__all__ = [
    "DocumentParser",
    "extract_docx_text",
    "extract_eml_text",
    "extract_pdf_text",
    "normalize_text",
]
