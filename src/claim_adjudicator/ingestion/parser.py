"""Multi-format document parsing into normalized text.

Supported formats are chosen by file-name suffix. Files with any other suffix
are skipped; a file that fails to parse still yields a document, with empty
text, so one bad upload never blocks the rest of the request.
"""

import asyncio
import email
import io
import logging
import re
import unicodedata
from email import policy
from pathlib import PurePath
from typing import Callable, Optional, Sequence

import docx
import fitz  # PyMuPDF

from claim_adjudicator.models.document import ParsedDocument

logger = logging.getLogger(__name__)

UploadedFile = tuple[str, bytes]
Extractor = Callable[[bytes], str]


def extract_pdf_text(data: bytes) -> str:
    """Extract text from every page of a PDF, pages separated by a blank line."""
    with fitz.open(stream=data, filetype="pdf") as doc:
        return "\n\n".join(page.get_text("text") for page in doc)


def extract_docx_text(data: bytes) -> str:
    """Extract paragraph text, then table cell text, from a Word document."""
    document = docx.Document(io.BytesIO(data))
    lines = [paragraph.text for paragraph in document.paragraphs]
    for table in document.tables:
        for row in table.rows:
            cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
            if cells:
                lines.append(" | ".join(cells))
    return "\n".join(lines)


def extract_eml_text(data: bytes) -> str:
    """Extract the plain-text body of an email message ("" if it has none)."""
    message = email.message_from_bytes(data, policy=policy.default)
    body = message.get_body(preferencelist=("plain",))
    if body is None:
        return ""
    return body.get_content()


DEFAULT_EXTRACTORS: dict[str, Extractor] = {
    ".pdf": extract_pdf_text,
    ".docx": extract_docx_text,
    ".eml": extract_eml_text,
}


def normalize_text(text: str) -> str:
    """Normalize extracted text while keeping paragraph layout.

    Line endings become ``\\n``, Unicode is NFC-composed, trailing spaces are
    removed from each line and runs of blank lines collapse to one.
    """
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = unicodedata.normalize("NFC", text)
    text = re.sub(r"[ \t\f\v]+\n", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


class DocumentParser:
    """Converts uploaded ``(name, bytes)`` pairs into ``ParsedDocument`` records."""

    def __init__(self, extractors: Optional[dict[str, Extractor]] = None):
        self.extractors = dict(extractors or DEFAULT_EXTRACTORS)

    def supported_suffixes(self) -> list[str]:
        return sorted(self.extractors)

    def _extractor_for(self, name: str) -> Optional[Extractor]:
        return self.extractors.get(PurePath(name).suffix.lower())

    def parse_file(self, name: str, data: bytes) -> Optional[ParsedDocument]:
        """Parse a single file.

        Returns:
            The parsed document, or None when the suffix is unsupported
        """
        extractor = self._extractor_for(name)
        if extractor is None:
            logger.debug("Skipping unsupported file format: %s", name)
            return None

        try:
            text = normalize_text(extractor(data))
        except Exception:
            logger.exception("Failed to extract text from %s", name)
            return ParsedDocument(name=name, text="")

        if not text:
            logger.warning("No text extracted from %s", name)
        else:
            logger.info("Extracted %d characters from %s", len(text), name)
        return ParsedDocument(name=name, text=text)

    def parse(self, files: Sequence[UploadedFile]) -> list[ParsedDocument]:
        """Parse files sequentially, preserving submission order."""
        results = (self.parse_file(name, data) for name, data in files)
        return [doc for doc in results if doc is not None]

    async def parse_async(self, files: Sequence[UploadedFile]) -> list[ParsedDocument]:
        """Parse files concurrently in worker threads, preserving submission order."""
        if not files:
            return []
        tasks = [asyncio.to_thread(self.parse_file, name, data) for name, data in files]
        results = await asyncio.gather(*tasks)
        documents = [doc for doc in results if doc is not None]
        logger.info("Parsed %d of %d uploaded file(s)", len(documents), len(files))
        return documents
