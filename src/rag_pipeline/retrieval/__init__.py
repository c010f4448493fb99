"""
Retrieval - similarity store, cosine top-K search, and result models.

This package wraps the vector store behind a clean interface so that
ingestion and generation never need to know which DB is backing them.

Public surface
--------------
- :class:`Retriever` - embed a query and return ranked results.
- :class:`SimilarityStore` - abstract backend with transactional writes.
- :class:`ChromaSimilarityStore` - default Chroma backend.
- :class:`SearchResult`, :class:`RetrievalResult`, :class:`StoredDocument` - data models.
"""

from rag_pipeline.retrieval.base import SimilarityStore, StoreTransaction
from rag_pipeline.retrieval.models import RetrievalResult, SearchResult, StoredDocument
from rag_pipeline.retrieval.retriever import Retriever, format_results

__all__ = [
    "ChromaSimilarityStore",
    "RetrievalResult",
    "Retriever",
    "SearchResult",
    "SimilarityStore",
    "StoreTransaction",
    "StoredDocument",
    "format_results",
]


def __getattr__(name: str):  # noqa: ANN001
    """Lazy-import ChromaSimilarityStore to avoid pulling in chromadb at import time."""
    if name == "ChromaSimilarityStore":
        from rag_pipeline.retrieval.chroma_store import ChromaSimilarityStore

        return ChromaSimilarityStore
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
