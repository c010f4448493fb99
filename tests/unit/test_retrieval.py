"""Unit tests for the retriever and result formatting."""

from __future__ import annotations

import pytest
import pytest_asyncio

from rag_pipeline.errors import ConfigurationError, EmbeddingError
from rag_pipeline.ingestion.chunker import ChunkConfig, RecursiveChunker
from rag_pipeline.ingestion.embedder import EmbeddingAdapter
from rag_pipeline.ingestion.models import SourceDocument
from rag_pipeline.ingestion.pipeline import Ingestor
from rag_pipeline.retrieval import Retriever, SearchResult, format_results

CORPUS = [
    SourceDocument(
        file_path="shipping/labels.md",
        content="Ship labels are printed per carrier. A label covers one package.",
        category="shipping",
    ),
    SourceDocument(
        file_path="shipping/returns.md",
        content="Return shipping uses a prepaid return label.",
        category="shipping",
    ),
    SourceDocument(
        file_path="billing/refunds.md",
        content="Refunds are issued to the original invoice. Tax is refunded too.",
        category="billing",
    ),
    SourceDocument(
        file_path="intro.md",
        content="Intro to the help centre.",
        category="general",
    ),
]


def _hit(chunk_id: str, similarity: float, **overrides) -> SearchResult:
    fields = {
        "id": chunk_id,
        "document_id": "doc-1",
        "content": f"content of {chunk_id}",
        "category": "shipping",
        "file_path": "shipping/labels.md",
        "chunk_index": 0,
        "start_offset": 0,
        "end_offset": 10,
        "similarity": similarity,
    }
    fields.update(overrides)
    return SearchResult(**fields)


@pytest_asyncio.fixture()
async def seeded_store(embedder, memory_store):
    chunker = RecursiveChunker(ChunkConfig(chunk_size=500, chunk_overlap=0))
    await Ingestor(chunker, embedder, memory_store).ingest_documents(CORPUS)
    return memory_store


class TestRetriever:
    @pytest.mark.asyncio
    async def test_category_filter_and_descending_order(self, seeded_store, embedder) -> None:
        retriever = Retriever(seeded_store, embedder, top_k=5)
        result = await retriever.retrieve("ship a label", category="shipping")

        assert result.results
        assert {hit.category for hit in result.results} == {"shipping"}
        similarities = [hit.similarity for hit in result.results]
        assert similarities == sorted(similarities, reverse=True)
        assert result.results[0].file_path == "shipping/labels.md"

    @pytest.mark.asyncio
    async def test_no_category_searches_everything(self, seeded_store, embedder) -> None:
        result = await Retriever(seeded_store, embedder).retrieve("refund the invoice tax")
        assert result.results[0].file_path == "billing/refunds.md"
        assert {hit.category for hit in result.results} == {"shipping", "billing", "general"}

    @pytest.mark.asyncio
    async def test_ranks_are_one_based(self, seeded_store, embedder) -> None:
        result = await Retriever(seeded_store, embedder).retrieve("label")
        assert [hit.rank for hit in result.results] == list(range(1, len(result.results) + 1))

    @pytest.mark.asyncio
    async def test_top_k_limits_results(self, seeded_store, embedder) -> None:
        retriever = Retriever(seeded_store, embedder, top_k=3)
        assert len((await retriever.retrieve("label")).results) == 3
        assert len((await retriever.retrieve("label", top_k=1)).results) == 1
        assert seeded_store.search_calls[-2:] == [(3, None), (1, None)]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("top_k", [0, -1])
    async def test_non_positive_top_k_is_rejected(self, seeded_store, embedder, top_k: int) -> None:
        calls_before = len(seeded_store.search_calls)
        with pytest.raises(ConfigurationError, match="top_k"):
            await Retriever(seeded_store, embedder).retrieve("label", top_k=top_k)
        assert len(seeded_store.search_calls) == calls_before

    @pytest.mark.parametrize("top_k", [0, -3])
    def test_non_positive_default_is_rejected(self, memory_store, embedder, top_k: int) -> None:
        with pytest.raises(ConfigurationError):
            Retriever(memory_store, embedder, top_k=top_k)

    @pytest.mark.asyncio
    async def test_unknown_category_returns_nothing(self, seeded_store, embedder) -> None:
        result = await Retriever(seeded_store, embedder).retrieve("label", category="legal")
        assert result.results == []
        assert result.category == "legal"

    @pytest.mark.asyncio
    async def test_store_order_is_resorted(self, embedder, memory_store) -> None:
        async def unordered(embedding, limit=10, category=None):
            return [_hit("b", 0.2), _hit("a", 0.9), _hit("c", 0.2)]

        memory_store.search_by_vector = unordered
        result = await Retriever(memory_store, embedder).retrieve("anything")
        assert [hit.id for hit in result.results] == ["a", "b", "c"]
        assert result.time_taken_ms >= 0

    @pytest.mark.asyncio
    async def test_embedding_failure_propagates(self, memory_store, keyword_embeddings) -> None:
        wrong_dimension = EmbeddingAdapter(keyword_embeddings, dimension=2)
        with pytest.raises(EmbeddingError):
            await Retriever(memory_store, wrong_dimension).retrieve("label")


class TestSearchResult:
    def test_short_ref_numbers_chunks_from_one(self) -> None:
        assert _hit("x", 0.5, chunk_index=2).short_ref() == "[shipping/labels.md§3]"

    def test_str_includes_reference(self) -> None:
        assert str(_hit("x", 0.5)).startswith("[shipping/labels.md§1] content of x")


class TestFormatResults:
    def test_empty(self) -> None:
        assert format_results([]) == "No results found."

    def test_lists_every_result(self) -> None:
        text = format_results([_hit("a", 0.91234), _hit("b", 0.5, category="billing")])
        assert text.startswith("Found 2 result(s):")
        assert "--- Result 2 ---" in text
        assert "Similarity: 0.9123" in text
        assert "Category: billing" in text

    def test_long_content_is_truncated(self) -> None:
        text = format_results([_hit("a", 0.5, content="x" * 500)])
        assert "x" * 200 + "..." in text
        assert "x" * 201 not in text
