"""Document chunking for parsed policy text.

Splits normalized document text into bounded chunks suitable for embedding
and retrieval. Splitting is lossless: concatenating a document's chunks in
order reproduces its text exactly.
"""

from typing import Sequence

from claim_adjudicator.config.settings import CHUNK_SIZE
from claim_adjudicator.models.document import Chunk, ParsedDocument

# Boundaries tried in order: paragraph, line, sentence, word. Hard character
# cuts are the last resort.
DEFAULT_SEPARATORS = ("\n\n", "\n", ". ", " ")


class TextSplitter:
    """Recursive boundary-aware text splitter.

    Each separator stays attached to the piece it terminates, so no characters
    are lost or duplicated. Pieces are packed greedily up to ``chunk_size``;
    a piece that is itself too long is split again with the next separator.
    """

    def __init__(
        self,
        chunk_size: int = CHUNK_SIZE,
        separators: Sequence[str] = DEFAULT_SEPARATORS,
    ):
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self.chunk_size = chunk_size
        self.separators = tuple(separators)

    def split_text(self, text: str) -> list[str]:
        """Split text into chunks of at most ``chunk_size`` characters."""
        if not text:
            return []
        return self._split(text, self.separators)

    def _split(self, text: str, separators: tuple[str, ...]) -> list[str]:
        if len(text) <= self.chunk_size:
            return [text]

        for i, separator in enumerate(separators):
            if separator in text:
                remaining = separators[i + 1 :]
                break
        else:
            return self._hard_split(text)

        chunks: list[str] = []
        current = ""
        for piece in self._split_keeping_separator(text, separator):
            if len(piece) > self.chunk_size:
                if current:
                    chunks.append(current)
                    current = ""
                chunks.extend(self._split(piece, remaining))
            elif len(current) + len(piece) <= self.chunk_size:
                current += piece
            else:
                chunks.append(current)
                current = piece
        if current:
            chunks.append(current)
        return chunks

    def _hard_split(self, text: str) -> list[str]:
        return [text[i : i + self.chunk_size] for i in range(0, len(text), self.chunk_size)]

    @staticmethod
    def _split_keeping_separator(text: str, separator: str) -> list[str]:
        parts = text.split(separator)
        pieces = [part + separator for part in parts[:-1]]
        if parts[-1]:
            pieces.append(parts[-1])
        return pieces


class DocumentChunker:
    """Chunks parsed documents into ``Chunk`` records."""

    def __init__(self, chunk_size: int = CHUNK_SIZE):
        self.splitter = TextSplitter(chunk_size=chunk_size)

    @property
    def chunk_size(self) -> int:
        return self.splitter.chunk_size

    def chunk_document(self, document: ParsedDocument) -> list[Chunk]:
        """Split one document; empty documents produce no chunks.

        Args:
            document: Parsed document to split

        Returns:
            Chunks in document order with sequential ``chunk_index``
        """
        if document.is_empty:
            return []
        return [
            Chunk(text=text, source_name=document.name, chunk_index=index)
            for index, text in enumerate(self.splitter.split_text(document.text))
        ]

    def chunk_documents(
        self, documents: Sequence[ParsedDocument]
    ) -> list[tuple[int, Chunk]]:
        """Chunk every document, pairing each chunk with its document's position.

        Returns:
            ``(document_index, chunk)`` pairs ordered by document, then chunk index
        """
        pairs: list[tuple[int, Chunk]] = []
        for document_index, document in enumerate(documents):
            pairs.extend((document_index, chunk) for chunk in self.chunk_document(document))
        return pairs
