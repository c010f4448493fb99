"""Unit tests for prompts, the chat model factory, and grounded generation."""

from __future__ import annotations

import pytest
import pytest_asyncio
from langchain_core.language_models import FakeListChatModel
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from rag_pipeline.errors import GenerationError, StoreError
from rag_pipeline.generation import GenerationResult, Generator, format_generation_result, get_llm
from rag_pipeline.generation.llm import response_text
from rag_pipeline.generation.prompts import (
    NO_CONTEXT,
    build_generation_prompt,
    build_judge_prompt,
    format_context,
)
from rag_pipeline.ingestion.chunker import ChunkConfig, RecursiveChunker
from rag_pipeline.ingestion.models import SourceDocument
from rag_pipeline.ingestion.pipeline import Ingestor
from rag_pipeline.retrieval import Retriever, SearchResult


class _RecordingLLM:
    """Chat model double that remembers every prompt it was sent."""

    def __init__(self, reply: str = "Use the carrier label page.") -> None:
        self.reply = reply
        self.prompts: list[list] = []

    async def ainvoke(self, messages):
        self.prompts.append(messages)
        return AIMessage(content=self.reply)


class _FailingLLM:
    async def ainvoke(self, messages):
        raise TimeoutError("chat model timed out")


def _hit(path: str, content: str, index: int = 0) -> SearchResult:
    return SearchResult(
        id=f"{path}-{index}",
        document_id="doc-1",
        content=content,
        category="shipping",
        file_path=path,
        chunk_index=index,
        start_offset=0,
        end_offset=len(content),
        similarity=0.8,
    )


@pytest_asyncio.fixture()
async def retriever(embedder, memory_store) -> Retriever:
    documents = [
        SourceDocument(
            file_path="shipping/labels.md",
            content="Carrier labels are printed per package.",
            category="shipping",
        ),
        SourceDocument(
            file_path="billing/refunds.md",
            content="Refunds go back to the invoice.",
            category="billing",
        ),
    ]
    chunker = RecursiveChunker(ChunkConfig(chunk_size=200, chunk_overlap=0))
    await Ingestor(chunker, embedder, memory_store).ingest_documents(documents)
    return Retriever(memory_store, embedder, top_k=5)


# ── Prompts ─────────────────────────────────────────────────────────────


class TestPrompts:
    def test_context_lists_sources_in_order(self) -> None:
        text = format_context([_hit("a.md", "alpha"), _hit("b.md", "beta")])
        assert text.index("[Document 1] (Source: a.md)") < text.index("[Document 2] (Source: b.md)")
        assert "alpha" in text and "beta" in text

    def test_empty_context_placeholder(self) -> None:
        assert format_context([]) == NO_CONTEXT

    def test_generation_prompt_shape(self) -> None:
        messages = build_generation_prompt("How do I void a label?", [_hit("a.md", "Void it.")])
        assert isinstance(messages[0], SystemMessage)
        assert isinstance(messages[1], HumanMessage)
        assert "ONLY" in messages[0].content
        assert "Question: How do I void a label?" in messages[1].content
        assert "Void it." in messages[1].content

    def test_judge_prompt_numbers_chunk_from_one(self) -> None:
        messages = build_judge_prompt("q", _hit("a.md", "text", index=4))
        assert "Chunk index: 5" in messages[1].content
        assert "Return JSON only." in messages[1].content
        assert "relevance" in messages[0].content


# ── Chat model helpers ──────────────────────────────────────────────────


class TestLlm:
    def test_response_text_from_string(self) -> None:
        assert response_text(AIMessage(content="hello")) == "hello"

    def test_response_text_from_blocks(self) -> None:
        message = AIMessage(content=[{"type": "text", "text": "a"}, {"type": "image_url"}, "b"])
        assert response_text(message) == "a\nb"

    def test_get_llm_with_compatible_endpoint(self) -> None:
        llm = get_llm("local-model", base_url="http://localhost:8001/v1", max_tokens=64)
        assert llm.model_name == "local-model"
        assert llm.openai_api_base == "http://localhost:8001/v1"
        assert llm.openai_api_key.get_secret_value() == "EMPTY"
        assert llm.max_tokens == 64


# ── Generator ───────────────────────────────────────────────────────────


class TestGenerator:
    @pytest.mark.asyncio
    async def test_grounded_answer(self, retriever) -> None:
        llm = _RecordingLLM()
        result = await Generator(retriever, llm).generate("Where do I print a carrier label?")

        assert result.response == "Use the carrier label page."
        assert result.grounded is True
        assert result.context_count == len(result.context) == 2
        assert result.context[0].file_path == "shipping/labels.md"
        assert "Carrier labels are printed per package." in llm.prompts[0][1].content
        assert result.total_time_ms >= result.generation_time_ms

    @pytest.mark.asyncio
    async def test_category_is_forwarded(self, retriever, memory_store) -> None:
        llm = FakeListChatModel(responses=["Refunds go to the invoice."])
        result = await Generator(retriever, llm).generate("refund?", category="billing")
        assert [c.category for c in result.context] == ["billing"]
        assert memory_store.search_calls[-1] == (5, "billing")

    @pytest.mark.asyncio
    async def test_retrieval_failure_falls_back_to_empty_context(
        self, retriever, memory_store, caplog: pytest.LogCaptureFixture
    ) -> None:
        async def broken(embedding, limit=10, category=None):
            raise StoreError("connection refused")

        memory_store.search_by_vector = broken
        llm = _RecordingLLM("I could not find documentation for that.")

        with caplog.at_level("WARNING", logger="rag_pipeline.generation.generator"):
            result = await Generator(retriever, llm).generate("anything")

        assert result.grounded is False
        assert result.context == []
        assert result.context_count == 0
        assert result.response == "I could not find documentation for that."
        assert NO_CONTEXT in llm.prompts[0][1].content
        assert "without context" in caplog.text

    @pytest.mark.asyncio
    async def test_chat_model_failure_raises(self, retriever) -> None:
        with pytest.raises(GenerationError) as exc_info:
            await Generator(retriever, _FailingLLM()).generate("label")
        assert isinstance(exc_info.value.original_error, TimeoutError)


class TestFormatGenerationResult:
    def test_sources_are_deduplicated(self) -> None:
        result = GenerationResult(
            query="q",
            response="answer",
            context=[_hit("a.md", "x", 0), _hit("a.md", "y", 1), _hit("b.md", "z")],
            context_count=3,
        )
        text = format_generation_result(result)
        assert "1. a.md" in text
        assert "2. b.md" in text
        assert "3." not in text
        assert "Context chunks used: 3" in text
        assert "WARNING" not in text

    def test_ungrounded_warning(self) -> None:
        text = format_generation_result(GenerationResult(query="q", response="r", grounded=False))
        assert "not grounded" in text
        assert "SOURCES" not in text
