"""Domain models for search results and stored documents."""

from __future__ import annotations

from pydantic import BaseModel, Field


class SearchResult(BaseModel):
    """A persisted chunk returned by a similarity search.

    Attributes
    ----------
    id:
        Store identifier of the chunk.
    document_id:
        Store identifier of the owning document.
    content:
        Trimmed chunk text.
    category:
        Category of the owning document.
    file_path:
        Relative path of the owning document.
    chunk_index:
        0-based position of the chunk within its document.
    start_offset / end_offset:
        Character span of the chunk in the document content.
    similarity:
        ``1 - cosine_distance``; higher is more similar.
    rank:
        1-based position in the ranked result list, set by the retriever.
    """

    id: str
    document_id: str
    content: str
    category: str
    file_path: str
    chunk_index: int
    start_offset: int
    end_offset: int
    similarity: float
    rank: int | None = None

    def short_ref(self) -> str:
        """Return a compact ``[path§chunk]`` reference (chunk numbered from 1)."""
        return f"[{self.file_path}§{self.chunk_index + 1}]"

    def __str__(self) -> str:  # noqa: D105
        return f"{self.short_ref()} {self.content[:120]}…"


class StoredDocument(BaseModel):
    """A document row as persisted by the store."""

    id: str
    file_path: str
    category: str
    content: str
    chunk_count: int = 0


class RetrievalResult(BaseModel):
    """Ranked results for one query, plus timing."""

    query: str
    category: str | None = None
    results: list[SearchResult] = Field(default_factory=list)
    time_taken_ms: float = 0.0
