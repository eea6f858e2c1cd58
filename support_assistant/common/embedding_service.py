"""
Embedding Service

On-device query embedding using fastembed.
Any failure to load the model or to embed is reported as EmbeddingUnavailable
so the retriever can fall back to keyword search.
"""

import logging
from typing import List, Optional

import numpy as np

from .errors import EmbeddingUnavailable

logger = logging.getLogger("support_assistant.common.embedding_service")


class EmbeddingService:
    """
    Embedding service for ticket search.

    The fastembed model is loaded lazily on first use; one instance is
    created per process by the caller and injected where needed.
    """

    def __init__(self, model: str = "sentence-transformers/all-MiniLM-L6-v2"):
        self._model_name = model
        self._model = None
        self._load_error: Optional[str] = None

    def _ensure_model(self):
        if self._model is not None:
            return self._model
        if self._load_error is not None:
            raise EmbeddingUnavailable(self._load_error)

        try:
            from fastembed import TextEmbedding

            self._model = TextEmbedding(model_name=self._model_name)
            logger.info("Embedding model loaded: %s", self._model_name)
        except Exception as e:
            self._load_error = f"Embedding model {self._model_name} unavailable: {e}"
            logger.warning(self._load_error)
            raise EmbeddingUnavailable(self._load_error) from e
        return self._model

    @property
    def is_available(self) -> bool:
        """Check if the embedding model can be loaded"""
        try:
            self._ensure_model()
            return True
        except EmbeddingUnavailable:
            return False

    def embed(self, texts: List[str]) -> List[List[float]]:
        """
        Generate embeddings for a list of texts.

        Args:
            texts: List of strings to embed

        Returns:
            List of embedding vectors
        """
        if not texts:
            return []

        model = self._ensure_model()
        try:
            embeddings = list(model.embed(texts))
        except Exception as e:
            raise EmbeddingUnavailable(f"Embedding failed: {e}") from e

        return [np.asarray(vec, dtype=np.float32).tolist() for vec in embeddings]

    def embed_single(self, text: str) -> List[float]:
        """
        Generate embedding for a single text.

        Args:
            text: String to embed

        Returns:
            Embedding vector
        """
        if not text:
            raise ValueError("Cannot embed empty text")

        return self.embed([text])[0]
