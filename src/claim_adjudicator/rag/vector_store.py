"""In-memory vector store for one request's chunks.

A simple, numpy-based store: it lives only as long as the retrieval call that
created it and is never shared across requests.
"""

from typing import Sequence

import numpy as np

from claim_adjudicator.models.document import Chunk, RetrievedClause
from claim_adjudicator.rag.embeddings import EmbeddingProvider

# Threshold for considering a vector norm to be zero
ZERO_NORM_THRESHOLD = 1e-8


class EmbeddingShapeError(ValueError):
    """The embedding provider returned a result that does not match its input."""


class VectorStore:
    """Stores chunk embeddings and ranks them by cosine similarity."""

    def __init__(self, embedding_provider: EmbeddingProvider):
        self.embedding_provider = embedding_provider
        self._embeddings: np.ndarray | None = None
        self._chunks: list[Chunk] = []
        self._document_indexes: list[int] = []

    @property
    def size(self) -> int:
        """Return the number of stored chunks."""
        return len(self._chunks)

    def add_chunks(self, entries: Sequence[tuple[int, Chunk]]) -> None:
        """Embed and store chunks in one batch.

        Args:
            entries: ``(document_index, chunk)`` pairs in document order
        """
        if not entries:
            return

        texts = [chunk.text for _, chunk in entries]
        new_embeddings = self._embed(texts)

        for document_index, chunk in entries:
            self._document_indexes.append(document_index)
            self._chunks.append(chunk)

        if self._embeddings is None:
            self._embeddings = new_embeddings
        else:
            self._embeddings = np.vstack([self._embeddings, new_embeddings])

    def search(self, query: str, top_k: int = 5) -> list[RetrievedClause]:
        """Return the ``top_k`` chunks most similar to ``query``.

        Results are sorted by score descending. Equal scores keep insertion
        order, which is (document order, chunk index).
        """
        if self._embeddings is None or not self._chunks or top_k <= 0:
            return []

        query_embedding = self._embed([query])[0]
        scores = self._cosine_similarity(query_embedding, self._embeddings)

        ranked = sorted(range(len(self._chunks)), key=lambda i: (-float(scores[i]), i))
        return [
            RetrievedClause(
                chunk=self._chunks[i],
                score=float(scores[i]),
                document_index=self._document_indexes[i],
            )
            for i in ranked[:top_k]
        ]

    def _embed(self, texts: list[str]) -> np.ndarray:
        embeddings = np.asarray(self.embedding_provider.embed(texts), dtype=float)
        if embeddings.ndim != 2 or embeddings.shape[0] != len(texts):
            raise EmbeddingShapeError(
                f"Expected {len(texts)} embedding rows, got shape {embeddings.shape}"
            )
        if self._embeddings is not None and embeddings.shape[1] != self._embeddings.shape[1]:
            raise EmbeddingShapeError(
                f"Embedding dimension changed from {self._embeddings.shape[1]} "
                f"to {embeddings.shape[1]}"
            )
        return embeddings

    def _cosine_similarity(
        self,
        query_vec: np.ndarray,
        embeddings: np.ndarray,
    ) -> np.ndarray:
        """Compute cosine similarity between query and all embeddings."""
        # Zero-norm query has no direction: every chunk scores zero
        query_norm_value = np.linalg.norm(query_vec)
        if query_norm_value < ZERO_NORM_THRESHOLD:
            return np.zeros(embeddings.shape[0])

        query_norm = query_vec / query_norm_value

        emb_norms = np.linalg.norm(embeddings, axis=1, keepdims=True)

        # Zero-norm embeddings stay zero
        embeddings_norm = np.zeros_like(embeddings)
        valid_mask = emb_norms.squeeze(-1) >= ZERO_NORM_THRESHOLD
        if np.any(valid_mask):
            embeddings_norm[valid_mask] = embeddings[valid_mask] / emb_norms[valid_mask]

        return np.dot(embeddings_norm, query_norm)
