"""Embedding generation for clause retrieval.

Supports multiple embedding backends:
- OpenAI embeddings (API-based, default)
- sentence-transformers (local, install the ``local`` extra)
"""

import os
from abc import ABC, abstractmethod
from typing import Optional, Sequence

import numpy as np

from claim_adjudicator.config.settings import get_embedding_config
from claim_adjudicator.utils.retry import with_capability_retry


class EmbeddingProvider(ABC):
    """Abstract base class for embedding providers."""

    @abstractmethod
    def embed(self, texts: Sequence[str]) -> np.ndarray:
        """Generate embeddings for multiple texts.

        Args:
            texts: Texts to embed

        Returns:
            2D numpy array of embeddings (num_texts x embedding_dim), one row
            per input text in input order
        """

    @property
    @abstractmethod
    def dimension(self) -> int:
        """Return the embedding dimension."""


class SentenceTransformerEmbedding(EmbeddingProvider):
    """Sentence-transformers based embeddings (local, no API needed)."""

    # Default model - good balance of quality and speed
    DEFAULT_MODEL = "all-MiniLM-L6-v2"

    def __init__(self, model_name: Optional[str] = None, batch_size: int = 32):
        self.model_name = model_name or self.DEFAULT_MODEL
        self.batch_size = batch_size
        self._model = None
        self._dimension = None

    @property
    def model(self):
        """Lazy load the model."""
        if self._model is None:
            try:
                from sentence_transformers import SentenceTransformer
            except ImportError as e:
                raise ImportError(
                    "sentence-transformers is required for local embeddings. "
                    "Install with: pip install 'claim-adjudicator[local]'"
                ) from e
            self._model = SentenceTransformer(self.model_name)
            self._dimension = self._model.get_sentence_embedding_dimension()
        return self._model

    @property
    def dimension(self) -> int:
        if self._dimension is None:
            _ = self.model
        return self._dimension

    def embed(self, texts: Sequence[str]) -> np.ndarray:
        return self.model.encode(
            list(texts),
            convert_to_numpy=True,
            batch_size=self.batch_size,
            show_progress_bar=False,
        )


class OpenAIEmbedding(EmbeddingProvider):
    """OpenAI API-based embeddings."""

    DEFAULT_MODEL = "text-embedding-3-small"

    # Embedding dimensions for known models
    DIMENSIONS = {
        "text-embedding-3-small": 1536,
        "text-embedding-3-large": 3072,
        "text-embedding-ada-002": 1536,
    }

    def __init__(
        self,
        model_name: Optional[str] = None,
        api_key: Optional[str] = None,
        batch_size: int = 100,
        timeout_seconds: float = 60.0,
    ):
        """Initialize the OpenAI embedding provider.

        Args:
            model_name: Name of the OpenAI embedding model
            api_key: OpenAI API key (defaults to OPENAI_API_KEY env var)
            batch_size: Maximum texts per API request
            timeout_seconds: Client-side timeout per request
        """
        self.model_name = model_name or self.DEFAULT_MODEL
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        self.batch_size = batch_size
        self.timeout_seconds = timeout_seconds
        self._client = None

    @property
    def client(self):
        """Lazy load the OpenAI client."""
        if self._client is None:
            from openai import OpenAI

            self._client = OpenAI(api_key=self.api_key, timeout=self.timeout_seconds)
        return self._client

    @property
    def dimension(self) -> int:
        return self.DIMENSIONS.get(self.model_name, 1536)

    @with_capability_retry("embedding")
    def _call_embeddings_api(self, batch: list[str]):
        """Call the embeddings API; transient failures are retried."""
        import openai

        try:
            return self.client.embeddings.create(model=self.model_name, input=batch)
        except openai.APITimeoutError as e:
            raise TimeoutError(f"Embedding request timed out after {self.timeout_seconds}s") from e
        except (openai.APIConnectionError, openai.RateLimitError, openai.InternalServerError) as e:
            raise ConnectionError(str(e)) from e

    def embed(self, texts: Sequence[str]) -> np.ndarray:
        texts = list(texts)
        embeddings = []

        for i in range(0, len(texts), self.batch_size):
            batch = texts[i : i + self.batch_size]
            # The API rejects empty strings; a single space embeds the same "no content"
            batch = [t if t else " " for t in batch]
            response = self._call_embeddings_api(batch)
            ordered = sorted(response.data, key=lambda d: d.index)
            embeddings.extend(np.array(d.embedding) for d in ordered)

        if not embeddings:
            return np.zeros((0, self.dimension))
        return np.array(embeddings)


def get_embedding_provider(
    provider: Optional[str] = None,
    model_name: Optional[str] = None,
    **kwargs,
) -> EmbeddingProvider:
    """Factory function to get an embedding provider.

    Args:
        provider: Provider type ("openai" or "sentence-transformers");
                  defaults to ADJUDICATOR_EMBEDDING_PROVIDER
        model_name: Model name for the provider
        **kwargs: Additional arguments for the provider

    Returns:
        EmbeddingProvider instance
    """
    config = get_embedding_config()
    provider = (provider or config["provider"]).lower()
    model_name = model_name or config["model_name"]

    if provider == "sentence-transformers":
        return SentenceTransformerEmbedding(model_name=model_name, **kwargs)
    elif provider == "openai":
        return OpenAIEmbedding(model_name=model_name, **kwargs)
    else:
        raise ValueError(f"Unknown embedding provider: {provider}")
