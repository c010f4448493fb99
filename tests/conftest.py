"""Shared pytest configuration, fakes, and fixtures."""

from __future__ import annotations

import math
import re
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager

import pytest
from langchain_core.embeddings import Embeddings

from rag_pipeline.ingestion.embedder import EmbeddingAdapter
from rag_pipeline.ingestion.models import EmbeddedChunk, SourceDocument
from rag_pipeline.retrieval.base import SimilarityStore, StoreTransaction
from rag_pipeline.retrieval.models import SearchResult, StoredDocument

VOCABULARY = ("ship", "label", "invoice", "refund", "return", "carrier", "tax", "intro")


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests requiring external services")


# ── Fake embeddings ─────────────────────────────────────────────────────


class KeywordEmbeddings(Embeddings):
    """Bag-of-keywords vectors over :data:`VOCABULARY`, plus a bias slot.

    Texts sharing keywords get high cosine similarity, which keeps
    ranking assertions readable.
    """

    def __init__(self) -> None:
        self.calls: list[str] = []

    @property
    def dimension(self) -> int:
        return len(VOCABULARY) + 1

    def embed_query(self, text: str) -> list[float]:
        self.calls.append(text)
        words = re.findall(r"[a-z]+", text.lower())
        vector = [float(sum(w.startswith(k) for w in words)) for k in VOCABULARY]
        vector.append(0.1)
        return vector

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        return [self.embed_query(t) for t in texts]


# ── In-memory similarity store ──────────────────────────────────────────


def _cosine(a: Sequence[float], b: Sequence[float]) -> float:
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(x * x for x in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return sum(x * y for x, y in zip(a, b)) / (norm_a * norm_b)


class _MemoryTransaction(StoreTransaction):
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store
        self.documents: dict[str, SourceDocument] = {}
        self.chunks: list[tuple[str, str, EmbeddedChunk]] = []

    async def insert_document(self, document: SourceDocument) -> str:
        self._store.next_id += 1
        doc_id = f"doc-{self._store.next_id}"
        self.documents[doc_id] = document
        return doc_id

    async def insert_chunks(self, document_id: str, chunks: Sequence[EmbeddedChunk]) -> list[str]:
        if self._store.fail_on_insert_chunks:
            raise RuntimeError("simulated insert failure")
        ids = []
        for chunk in chunks:
            chunk_id = f"{document_id}-{chunk.chunk_index}"
            self.chunks.append((chunk_id, document_id, chunk))
            ids.append(chunk_id)
        return ids


class InMemoryStore(SimilarityStore):
    """Transactional in-memory store with brute-force cosine search."""

    def __init__(self) -> None:
        super().__init__("memory")
        self.documents: dict[str, SourceDocument] = {}
        self.chunks: list[tuple[str, str, EmbeddedChunk]] = []
        self.next_id = 0
        self.opened = False
        self.closed = False
        self.fail_on_insert_chunks = False
        self.search_calls: list[tuple[int, str | None]] = []

    async def open(self) -> None:
        self.opened = True

    async def close(self) -> None:
        self.closed = True

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[StoreTransaction]:
        tx = _MemoryTransaction(self)
        yield tx
        self.documents.update(tx.documents)
        self.chunks.extend(tx.chunks)

    async def search_by_vector(
        self,
        embedding: Sequence[float],
        limit: int = 10,
        category: str | None = None,
    ) -> list[SearchResult]:
        self.search_calls.append((limit, category))
        hits = []
        for chunk_id, doc_id, chunk in self.chunks:
            document = self.documents[doc_id]
            if category is not None and document.category != category:
                continue
            hits.append(
                SearchResult(
                    id=chunk_id,
                    document_id=doc_id,
                    content=chunk.content,
                    category=document.category,
                    file_path=document.file_path,
                    chunk_index=chunk.chunk_index,
                    start_offset=chunk.start_offset,
                    end_offset=chunk.end_offset,
                    similarity=_cosine(embedding, chunk.embedding),
                )
            )
        hits.sort(key=lambda h: h.similarity, reverse=True)
        return hits[:limit]

    async def get_document(self, document_id: str) -> StoredDocument | None:
        document = self.documents.get(document_id)
        if document is None:
            return None
        return StoredDocument(
            id=document_id,
            file_path=document.file_path,
            category=document.category,
            content=document.content,
            chunk_count=sum(1 for _, d, _ in self.chunks if d == document_id),
        )

    async def health_check(self) -> bool:
        return self.opened and not self.closed


# ── Fixtures ────────────────────────────────────────────────────────────


@pytest.fixture()
def keyword_embeddings() -> KeywordEmbeddings:
    return KeywordEmbeddings()


@pytest.fixture()
def embedder(keyword_embeddings: KeywordEmbeddings) -> EmbeddingAdapter:
    return EmbeddingAdapter(keyword_embeddings, keyword_embeddings.dimension)


@pytest.fixture()
def memory_store() -> InMemoryStore:
    return InMemoryStore()
