"""Retrieval orchestrator - embed a query and rank the nearest chunks.

Usage::

    retriever = Retriever(store, embedder, top_k=5)
    result = await retriever.retrieve("How do I create a packing slip?", category="shipping")
    for hit in result.results:
        print(hit.rank, hit.short_ref(), f"{hit.similarity:.4f}")
"""

from __future__ import annotations

import logging
import time

from rag_pipeline.errors import ConfigurationError
from rag_pipeline.ingestion.embedder import EmbeddingAdapter
from rag_pipeline.retrieval.base import SimilarityStore
from rag_pipeline.retrieval.models import RetrievalResult, SearchResult

logger = logging.getLogger(__name__)

PREVIEW_CHARS = 200


class Retriever:
    """Plain cosine top-K retrieval over a :class:`SimilarityStore`.

    Parameters
    ----------
    store:
        An opened similarity store.
    embedder:
        Adapter used to embed the query.
    top_k:
        Default number of results returned by :meth:`retrieve`.
    """

    def __init__(
        self,
        store: SimilarityStore,
        embedder: EmbeddingAdapter,
        *,
        top_k: int = 5,
    ) -> None:
        if top_k <= 0:
            raise ConfigurationError(f"top_k ({top_k}) must be > 0")
        self._store = store
        self._embedder = embedder
        self.top_k = top_k

    async def retrieve(
        self,
        query: str,
        category: str | None = None,
        top_k: int | None = None,
    ) -> RetrievalResult:
        """Return at most *top_k* chunks ranked by descending similarity.

        Parameters
        ----------
        query:
            Natural-language query string.
        category:
            Restrict the search to documents of this category; ``None``
            searches every category.
        top_k:
            Number of results (defaults to ``self.top_k``).

        Raises
        ------
        ConfigurationError
            If *top_k* is not positive.
        ExternalServiceError
            When embedding the query or searching the store fails.
        """
        limit = self.top_k if top_k is None else top_k
        if limit <= 0:
            raise ConfigurationError(f"top_k ({limit}) must be > 0")
        started = time.perf_counter()

        vector = await self._embedder.embed(query)
        hits = await self._store.search_by_vector(vector, limit=limit, category=category)

        # Stable sort: ties keep the store's native order.
        ranked = sorted(hits, key=lambda hit: hit.similarity, reverse=True)[:limit]
        results = [hit.model_copy(update={"rank": rank}) for rank, hit in enumerate(ranked, 1)]

        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "Retrieved %d chunk(s) for query (category=%s) in %.0fms",
            len(results),
            category or "*",
            elapsed_ms,
        )
        return RetrievalResult(
            query=query,
            category=category,
            results=results,
            time_taken_ms=elapsed_ms,
        )


def format_results(results: list[SearchResult]) -> str:
    """Render search results for terminal display."""
    if not results:
        return "No results found."

    lines = [f"Found {len(results)} result(s):\n"]
    for i, result in enumerate(results, 1):
        preview = result.content
        if len(preview) > PREVIEW_CHARS:
            preview = preview[:PREVIEW_CHARS] + "..."
        lines.append(f"--- Result {i} ---")
        lines.append(f"File path: {result.file_path}")
        lines.append(f"Category: {result.category}")
        lines.append(f"Chunk: {result.chunk_index + 1}")
        lines.append(f"Offsets: {result.start_offset}-{result.end_offset}")
        lines.append(f"Similarity: {result.similarity:.4f}")
        lines.append(f"Content:\n{preview}")
        lines.append("")
    return "\n".join(lines)
