"""Generation orchestrator - retrieve context, then ask the chat model.

Retrieval failure is not fatal: the question is still answered, with an
empty context, and the result is flagged as ungrounded.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from pydantic import BaseModel, Field

from rag_pipeline.errors import ExternalServiceError, GenerationError
from rag_pipeline.generation.llm import response_text
from rag_pipeline.generation.prompts import build_generation_prompt
from rag_pipeline.retrieval.models import SearchResult
from rag_pipeline.retrieval.retriever import Retriever

logger = logging.getLogger(__name__)


class GenerationResult(BaseModel):
    """Answer plus the context and timings that produced it."""

    query: str
    response: str
    context: list[SearchResult] = Field(default_factory=list)
    context_count: int = 0
    retrieval_time_ms: float = 0.0
    generation_time_ms: float = 0.0
    total_time_ms: float = 0.0
    grounded: bool = True


class Generator:
    """Grounded generation over a :class:`Retriever`.

    Parameters
    ----------
    retriever:
        Source of context chunks.
    llm:
        Any LangChain chat model (anything with an async ``ainvoke``).
    """

    def __init__(self, retriever: Retriever, llm: Any) -> None:
        self._retriever = retriever
        self._llm = llm

    async def generate(self, query: str, category: str | None = None) -> GenerationResult:
        """Answer *query* using retrieved chunks as context.

        Raises
        ------
        GenerationError
            When the chat model call fails.
        """
        started = time.perf_counter()

        grounded = True
        try:
            retrieval = await self._retriever.retrieve(query, category=category)
            context = retrieval.results
        except ExternalServiceError as exc:
            logger.warning("Retrieval failed, generating response without context: %s", exc)
            context = []
            grounded = False
        retrieval_ms = (time.perf_counter() - started) * 1000

        generation_started = time.perf_counter()
        try:
            response = await self._llm.ainvoke(build_generation_prompt(query, context))
        except Exception as exc:
            raise GenerationError("Chat model call failed", original_error=exc) from exc
        generation_ms = (time.perf_counter() - generation_started) * 1000

        return GenerationResult(
            query=query,
            response=response_text(response),
            context=context,
            context_count=len(context),
            retrieval_time_ms=retrieval_ms,
            generation_time_ms=generation_ms,
            total_time_ms=(time.perf_counter() - started) * 1000,
            grounded=grounded,
        )


def format_generation_result(result: GenerationResult) -> str:
    """Render a generation result for terminal display."""
    rule = "-" * 60
    banner = "=" * 60
    lines = [
        banner,
        "RAG GENERATION RESULT",
        banner,
        "",
        f"Query: {result.query}",
        "",
        rule,
        "RESPONSE:",
        rule,
        result.response,
        "",
        rule,
        "STATISTICS:",
        rule,
        f"Context chunks used: {result.context_count}",
        f"Retrieval time: {result.retrieval_time_ms:.0f}ms",
        f"Generation time: {result.generation_time_ms:.0f}ms",
        f"Total time: {result.total_time_ms:.0f}ms",
        "",
    ]
    if not result.grounded:
        lines.append("WARNING: retrieval failed; the response is not grounded in the documentation.")
        lines.append("")

    if result.context:
        lines += [rule, "SOURCES:", rule]
        sources = list(dict.fromkeys(c.file_path for c in result.context))
        lines += [f"{i}. {source}" for i, source in enumerate(sources, 1)]

    lines.append(banner)
    return "\n".join(lines)
