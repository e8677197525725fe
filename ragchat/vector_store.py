"""Persistent Chroma collection of page chunks."""
from __future__ import annotations

import hashlib
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import chromadb

from .ingestion import ChunkRecord
from .types import Source, SourceMetadata

logger = logging.getLogger(__name__)


class VectorStoreError(RuntimeError):
    """Raised when the collection cannot be opened or queried."""


def chunk_fingerprint(chunk: ChunkRecord) -> str:
    raw = f"{chunk.source}:{chunk.page}:{chunk.chunk_index}:{chunk.text}"
    return hashlib.sha1(raw.encode("utf-8")).hexdigest()


def fingerprint_to_id(fingerprint: str) -> int:
    """Integer id exposed to clients; 48 bits keeps it JSON-safe."""
    return int(fingerprint[:12], 16)


def _as_int(value: object) -> Optional[int]:
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None


def _source_id(record_id: object, metadata: Dict[str, Any]) -> int:
    """Stored ``doc_id``, else an id derived from the Chroma record id."""
    doc_id = _as_int(metadata.get("doc_id"))
    if doc_id is not None:
        return doc_id
    return fingerprint_to_id(hashlib.sha1(str(record_id).encode("utf-8")).hexdigest())


def _similarity(distance: object) -> float:
    """Cosine distance to a similarity clamped into [0, 1]."""
    try:
        similarity = 1.0 - float(distance)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0.0
    return min(1.0, max(0.0, similarity))


class ChromaVectorStore:
    """Stores page chunks and answers cosine similarity queries."""

    def __init__(self, persist_dir: Path, collection_name: str) -> None:
        self.persist_dir = persist_dir
        self.collection_name = collection_name
        try:
            persist_dir.mkdir(parents=True, exist_ok=True)
            self.client = chromadb.PersistentClient(path=str(persist_dir))
            self.collection: Any = self.client.get_or_create_collection(
                name=collection_name,
                metadata={"hnsw:space": "cosine"},
            )
        except Exception as exc:
            raise VectorStoreError(f"Could not open collection {collection_name!r} in {persist_dir}: {exc}") from exc

    def upsert_chunks(self, chunks: List[ChunkRecord], embeddings: List[List[float]]) -> int:
        """Insert or update chunk vectors; returns how many were written."""
        if len(chunks) != len(embeddings):
            raise ValueError("chunks and embeddings must be the same length")
        if not chunks:
            return 0

        ids: List[str] = []
        metadatas: List[Dict[str, Any]] = []
        for chunk in chunks:
            fingerprint = chunk_fingerprint(chunk)
            ids.append(fingerprint)
            metadatas.append(
                {
                    "source": chunk.source,
                    "page": chunk.page,
                    "chunk_index": chunk.chunk_index,
                    "doc_id": fingerprint_to_id(fingerprint),
                }
            )
        self.collection.upsert(
            ids=ids,
            embeddings=embeddings,
            documents=[chunk.text for chunk in chunks],
            metadatas=metadatas,
        )
        logger.info("Upserted %d chunks into %s", len(ids), self.collection_name)
        return len(ids)

    def similarity_search(
        self,
        query_embedding: List[float],
        k: int = 5,
        source_filter: Optional[str] = None,
    ) -> List[Source]:
        """Return up to ``k`` sources, most similar first.

        ``source_filter`` restricts the search to chunks of one document.
        """
        if k <= 0:
            return []
        try:
            total = self.collection.count()
            if total == 0:
                return []
            raw: Dict[str, Any] = self.collection.query(
                query_embeddings=[query_embedding],
                n_results=min(k, total),
                where={"source": source_filter} if source_filter else None,
                include=["documents", "metadatas", "distances"],
            )
        except Exception as exc:
            raise VectorStoreError(f"Search error: {exc}") from exc

        ids = (raw.get("ids") or [[]])[0] or []
        documents = (raw.get("documents") or [[]])[0] or []
        metadatas = (raw.get("metadatas") or [[]])[0] or []
        distances = (raw.get("distances") or [[]])[0] or []

        results: List[Source] = []
        for record_id, document, metadata, distance in zip(ids, documents, metadatas, distances):
            metadata = metadata if isinstance(metadata, dict) else {}
            source_metadata = SourceMetadata()
            page = _as_int(metadata.get("page"))
            if page is not None:
                source_metadata["page"] = page
            if isinstance(metadata.get("source"), str):
                source_metadata["source"] = metadata["source"]
            results.append(
                Source(
                    id=_source_id(record_id, metadata),
                    content=str(document or ""),
                    metadata=source_metadata,
                    similarity=_similarity(distance),
                )
            )
        return results

    def count(self) -> int:
        return int(self.collection.count())

    def list_sources(self, limit: int = 50) -> List[str]:
        """Unique document names currently indexed."""
        if limit <= 0:
            return []
        stored: Dict[str, Any] = self.collection.get(include=["metadatas"])
        names = {
            metadata["source"].strip()
            for metadata in stored.get("metadatas") or []
            if isinstance(metadata, dict) and isinstance(metadata.get("source"), str) and metadata["source"].strip()
        }
        return sorted(names)[:limit]

    def clear(self) -> None:
        stored: Dict[str, Any] = self.collection.get()
        ids = stored.get("ids") or []
        if ids:
            self.collection.delete(ids=ids)
        logger.info("Cleared %d chunks from %s", len(ids), self.collection_name)
