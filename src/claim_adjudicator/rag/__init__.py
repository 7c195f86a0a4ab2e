"""RAG (Retrieval-Augmented Generation) module for policy clause retrieval.

This module splits parsed policy documents into chunks, embeds them, and
retrieves the clauses most relevant to a structured claim query.
"""

from claim_adjudicator.rag.chunker import DocumentChunker, TextSplitter
from claim_adjudicator.rag.embeddings import (
    EmbeddingProvider,
    OpenAIEmbedding,
    SentenceTransformerEmbedding,
    get_embedding_provider,
)
from claim_adjudicator.rag.retriever import ClauseRetriever
from claim_adjudicator.rag.vector_store import VectorStore

__all__ = [
    # Chunking
    "DocumentChunker",
    "TextSplitter",
    # Embeddings
    "EmbeddingProvider",
    "OpenAIEmbedding",
    "SentenceTransformerEmbedding",
    "get_embedding_provider",
    # Vector store
    "VectorStore",
    # Retrieval
    "ClauseRetriever",
]
