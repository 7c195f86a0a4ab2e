"""Pydantic models for parsed documents, chunks and retrieved clauses."""

from pydantic import BaseModel, ConfigDict, Field


class ParsedDocument(BaseModel):
    """Normalized text extracted from one uploaded file."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Original file name")
    text: str = Field(default="", description="Normalized text; empty if extraction failed")

    @property
    def is_empty(self) -> bool:
        return not self.text.strip()


class Chunk(BaseModel):
    """A bounded contiguous slice of a document's text."""

    model_config = ConfigDict(frozen=True)

    text: str
    source_name: str = Field(..., description="Name of the originating document")
    chunk_index: int = Field(..., ge=0, description="Position within the document")


class RetrievedClause(BaseModel):
    """A chunk selected for the grounding set, with its relevance score."""

    model_config = ConfigDict(frozen=True)

    chunk: Chunk
    score: float = Field(..., description="Similarity score; higher is more relevant")
    document_index: int = Field(
        default=0, ge=0, description="Position of the source document in the request"
    )

    @property
    def text(self) -> str:
        return self.chunk.text

    @property
    def source_name(self) -> str:
        return self.chunk.source_name

    @property
    def chunk_index(self) -> int:
        return self.chunk.chunk_index
