"""Local sentence-transformer embedding model wrapper."""
from __future__ import annotations

import logging
from typing import List

from sentence_transformers import SentenceTransformer

logger = logging.getLogger(__name__)


class EmbeddingError(RuntimeError):
    """Raised when the embedding model cannot be loaded or fails to encode."""


class LocalEmbeddingModel:
    """Encodes text locally with normalized sentence-transformer vectors."""

    def __init__(self, model_name: str) -> None:
        if not model_name:
            raise EmbeddingError("Embedding model name is required")
        try:
            self.model = SentenceTransformer(model_name)
        except Exception as exc:
            raise EmbeddingError(f"Could not load embedding model {model_name!r}: {exc}") from exc
        self.model_name = model_name
        logger.info("Loaded embedding model %s", model_name)

    def _encode(self, texts: List[str]) -> List[List[float]]:
        try:
            vectors = self.model.encode(
                texts,
                convert_to_numpy=True,
                normalize_embeddings=True,
                show_progress_bar=False,
            )
        except Exception as exc:
            raise EmbeddingError(f"Failed to create embedding: {exc}") from exc
        return vectors.tolist()

    def embed_documents(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []
        return self._encode(texts)

    def embed_query(self, query: str) -> List[float]:
        return self._encode([query])[0]
