"""Backend glue: embed the question, search the store, generate a cited answer."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from .config import Settings
from .embeddings import LocalEmbeddingModel
from .ingestion import ingest_document
from .llm import GeminiAnswerGenerator
from .types import ChatResponse
from .vector_store import ChromaVectorStore

logger = logging.getLogger(__name__)


class RAGPipeline:
    """Coordinates ingestion, retrieval and answer generation."""

    def __init__(
        self,
        settings: Settings,
        embedding_model: LocalEmbeddingModel,
        vector_store: ChromaVectorStore,
        answer_generator: Optional[GeminiAnswerGenerator] = None,
    ) -> None:
        self.settings = settings
        self.embedding_model = embedding_model
        self.vector_store = vector_store
        self.answer_generator = answer_generator

    @classmethod
    def from_settings(cls, settings: Settings) -> "RAGPipeline":
        """Build every collaborator; raises ConfigurationError when settings are missing."""
        settings.require_backend_settings()
        return cls(
            settings=settings,
            embedding_model=LocalEmbeddingModel(settings.embedding_model_name),
            vector_store=ChromaVectorStore(settings.chroma_dir, settings.collection_name),
            answer_generator=GeminiAnswerGenerator(
                api_key=settings.gemini_api_key,
                model_name=settings.gemini_model_name,
                temperature=settings.gemini_temperature,
                max_output_tokens=settings.gemini_max_output_tokens,
            ),
        )

    def ingest_file(self, file_path: Path, source_name: Optional[str] = None) -> int:
        """Parse, chunk, embed and persist one document."""
        chunks = ingest_document(
            file_path=file_path,
            chunk_size=self.settings.chunk_size,
            chunk_overlap=self.settings.chunk_overlap,
            source_name=source_name,
        )
        if not chunks:
            return 0
        embeddings = self.embedding_model.embed_documents([chunk.text for chunk in chunks])
        return self.vector_store.upsert_chunks(chunks, embeddings)

    def answer_question(self, message: str) -> ChatResponse:
        """Answer ``message`` and return it with the sources in prompt order."""
        if self.answer_generator is None:
            raise RuntimeError("Answer generator is not configured")

        query_embedding = self.embedding_model.embed_query(message)
        sources = self.vector_store.similarity_search(
            query_embedding,
            k=self.settings.match_count,
            source_filter=self.settings.document_filter or None,
        )
        logger.info("Retrieved %d sources for question", len(sources))
        answer = self.answer_generator.generate_answer(message, sources)
        return ChatResponse(answer=answer, sources=sources)
