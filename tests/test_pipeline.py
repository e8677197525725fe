from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional

import pytest

from ragchat.config import ConfigurationError, Settings
from ragchat.rag_pipeline import RAGPipeline
from ragchat.types import Source, SourceMetadata


class FakeEmbeddingModel:
    def __init__(self) -> None:
        self.document_calls: List[List[str]] = []
        self.query_calls: List[str] = []

    def embed_documents(self, texts: List[str]) -> List[List[float]]:
        self.document_calls.append(texts)
        return [[1.0, 0.0] for _ in texts]

    def embed_query(self, query: str) -> List[float]:
        self.query_calls.append(query)
        return [1.0, 0.0]


class FakeVectorStore:
    def __init__(self) -> None:
        self.records: List[Dict[str, object]] = []
        self.searches: List[Dict[str, object]] = []

    def upsert_chunks(self, chunks, embeddings) -> int:
        for chunk, _embedding in zip(chunks, embeddings):
            self.records.append({"text": chunk.text, "source": chunk.source, "page": chunk.page})
        return len(chunks)

    def similarity_search(self, query_embedding: List[float], k: int = 5, source_filter: Optional[str] = None) -> List[Source]:
        self.searches.append({"k": k, "source_filter": source_filter})
        return [
            Source(
                id=index,
                content=str(record["text"]),
                metadata=SourceMetadata(page=int(record["page"]), source=str(record["source"])),  # type: ignore[arg-type]
                similarity=0.9,
            )
            for index, record in enumerate(self.records[:k], start=1)
        ]


class FakeAnswerGenerator:
    def __init__(self) -> None:
        self.calls: List[Dict[str, object]] = []

    def generate_answer(self, question: str, sources: List[Source]) -> str:
        self.calls.append({"question": question, "sources": sources})
        return "mocked grounded answer [1]"


def make_settings(tmp_path: Path, **overrides) -> Settings:
    values = dict(
        chunk_size=5,
        chunk_overlap=2,
        match_count=2,
        chroma_dir=tmp_path / "chroma",
        collection_name="unused",
        document_filter="doc.txt",
        gemini_api_key="test-key",
    )
    values.update(overrides)
    return Settings(**values)


def test_pipeline_ingest_and_answer(tmp_path: Path) -> None:
    file_path = tmp_path / "doc.txt"
    file_path.write_text(
        "First point about topic. Second point about details.\fThird point about results. Fourth point here.",
        encoding="utf-8",
    )
    embedding_model = FakeEmbeddingModel()
    vector_store = FakeVectorStore()
    generator = FakeAnswerGenerator()
    pipeline = RAGPipeline(make_settings(tmp_path), embedding_model, vector_store, generator)

    inserted = pipeline.ingest_file(file_path, source_name="doc.txt")
    assert inserted >= 2
    assert {record["page"] for record in vector_store.records} == {1, 2}
    assert len(embedding_model.document_calls) == 1

    response = pipeline.answer_question("What is in the document?")

    assert response["answer"] == "mocked grounded answer [1]"
    assert len(response["sources"]) == 2
    assert generator.calls[0]["sources"] == response["sources"]
    assert vector_store.searches == [{"k": 2, "source_filter": "doc.txt"}]
    assert embedding_model.query_calls == ["What is in the document?"]


def test_empty_document_filter_searches_everything(tmp_path: Path) -> None:
    vector_store = FakeVectorStore()
    pipeline = RAGPipeline(
        make_settings(tmp_path, document_filter=""), FakeEmbeddingModel(), vector_store, FakeAnswerGenerator()
    )

    response = pipeline.answer_question("Anything?")

    assert response["sources"] == []
    assert vector_store.searches == [{"k": 2, "source_filter": None}]


def test_ingest_empty_file_stores_nothing(tmp_path: Path) -> None:
    file_path = tmp_path / "empty.txt"
    file_path.write_text("   \f  ", encoding="utf-8")
    embedding_model = FakeEmbeddingModel()
    pipeline = RAGPipeline(make_settings(tmp_path), embedding_model, FakeVectorStore())

    assert pipeline.ingest_file(file_path) == 0
    assert embedding_model.document_calls == []


def test_answer_without_generator_raises(tmp_path: Path) -> None:
    pipeline = RAGPipeline(make_settings(tmp_path), FakeEmbeddingModel(), FakeVectorStore())
    with pytest.raises(RuntimeError):
        pipeline.answer_question("q")


def test_from_settings_requires_credentials(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="GEMINI_API_KEY"):
        RAGPipeline.from_settings(make_settings(tmp_path, gemini_api_key=""))
