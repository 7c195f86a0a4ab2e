"""Clause retriever for grounding decisions.

Chunks a request's parsed documents, embeds them in a per-request vector
store and returns the clauses most relevant to the structured query.
"""

import logging
from typing import Optional, Sequence

from claim_adjudicator.config.settings import CHUNK_SIZE, TOP_K
from claim_adjudicator.exceptions import CapabilityTimeoutError, RetrievalUnavailableError
from claim_adjudicator.models.document import ParsedDocument, RetrievedClause
from claim_adjudicator.models.query import StructuredQuery
from claim_adjudicator.observability.metrics import RequestMetrics, track_capability_call
from claim_adjudicator.rag.chunker import DocumentChunker
from claim_adjudicator.rag.embeddings import EmbeddingProvider
from claim_adjudicator.rag.vector_store import VectorStore

logger = logging.getLogger(__name__)


class ClauseRetriever:
    """Retrieves the top-K policy clauses for a structured query.

    Nothing is cached between calls: every ``retrieve`` builds and discards
    its own vector store.
    """

    def __init__(
        self,
        embedding_provider: EmbeddingProvider,
        top_k: int = TOP_K,
        chunk_size: int = CHUNK_SIZE,
    ):
        """Initialize the retriever.

        Args:
            embedding_provider: Capability used to embed chunks and the query
            top_k: Maximum number of clauses to return
            chunk_size: Target maximum characters per chunk
        """
        self.embedding_provider = embedding_provider
        self.top_k = top_k
        self.chunker = DocumentChunker(chunk_size=chunk_size)

    def retrieve(
        self,
        documents: Sequence[ParsedDocument],
        query: StructuredQuery,
        metrics: Optional[RequestMetrics] = None,
    ) -> list[RetrievedClause]:
        """Return up to ``top_k`` clauses ranked by similarity to the query.

        Args:
            documents: Parsed documents in submission order
            query: Structured query; its procedure and location form the search text
            metrics: Optional per-request metrics collector

        Returns:
            Clauses sorted by score descending, ties broken by document order
            then chunk index. Empty when no document has text.

        Raises:
            RetrievalUnavailableError: The embedding capability failed.
            CapabilityTimeoutError: The embedding capability timed out.
        """
        entries = self.chunker.chunk_documents(documents)
        if not entries:
            logger.info("No non-empty documents to retrieve from")
            return []

        search_text = query.search_text()
        store = VectorStore(embedding_provider=self.embedding_provider)
        try:
            with track_capability_call(metrics, "embedding"):
                store.add_chunks(entries)
            with track_capability_call(metrics, "embedding"):
                clauses = store.search(search_text, top_k=self.top_k)
        except TimeoutError as e:
            raise CapabilityTimeoutError(
                f"Embedding capability timed out: {e}", stage="retrieving"
            ) from e
        except Exception as e:
            raise RetrievalUnavailableError(
                f"Embedding capability unavailable: {e}", stage="retrieving"
            ) from e

        logger.info(
            "Retrieved %d of %d chunks for search text %r",
            len(clauses),
            store.size,
            search_text,
        )
        return clauses
