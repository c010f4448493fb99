"""Process-level wiring of store, embedder and chat models.

There is no module-level connection state: a :class:`PipelineRuntime`
is opened at process start, handed to whoever needs services from it,
and closed on shutdown.

Usage::

    async with open_runtime(settings) as runtime:
        result = await runtime.retriever().retrieve("How do I ship?")
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

from rag_pipeline.config import Settings
from rag_pipeline.evaluation.judge import RetrievalJudge
from rag_pipeline.generation.generator import Generator
from rag_pipeline.generation.llm import get_llm
from rag_pipeline.ingestion.chunker import RecursiveChunker
from rag_pipeline.ingestion.embedder import EmbeddingAdapter, get_embedding_function
from rag_pipeline.ingestion.pipeline import Ingestor
from rag_pipeline.retrieval.base import SimilarityStore
from rag_pipeline.retrieval.retriever import Retriever

logger = logging.getLogger(__name__)


@dataclass
class PipelineRuntime:
    """Opened collaborators plus factories for the orchestrators.

    Chat models are built on first use so that ingest and retrieve runs
    never need LLM credentials.
    """

    settings: Settings
    store: SimilarityStore
    embedder: EmbeddingAdapter
    llm: Any = None
    judge_llm: Any = None
    _closed: bool = field(default=False, repr=False)

    @classmethod
    async def open(cls, settings: Settings) -> PipelineRuntime:
        """Validate configuration, connect the store and load the embedder."""
        from rag_pipeline.retrieval.chroma_store import ChromaSimilarityStore

        settings.chunk_config()

        store = ChromaSimilarityStore(
            settings.chroma_collection,
            host=settings.chroma_host,
            port=settings.chroma_port,
            dimension=settings.embedding_dimension,
        )
        await store.open()
        embedder = EmbeddingAdapter(
            get_embedding_function(settings.embedding_model, normalize=settings.normalize_embeddings),
            settings.embedding_dimension,
        )
        return cls(settings=settings, store=store, embedder=embedder)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self.store.close()
        logger.debug("Runtime closed")

    # -- orchestrators --------------------------------------------------------

    def retriever(self, top_k: int | None = None) -> Retriever:
        if top_k is None:
            top_k = self.settings.retrieval_top_k
        return Retriever(self.store, self.embedder, top_k=top_k)

    def ingestor(self) -> Ingestor:
        return Ingestor(RecursiveChunker(self.settings.chunk_config()), self.embedder, self.store)

    def generator(self) -> Generator:
        if self.llm is None:
            self.llm = get_llm(
                self.settings.llm_model_name,
                api_key=self.settings.openai_api_key,
                base_url=self.settings.llm_base_url,
                temperature=self.settings.generate_temperature,
                max_tokens=self.settings.generate_max_tokens,
            )
        return Generator(self.retriever(), self.llm)

    def judge(self) -> RetrievalJudge:
        if self.judge_llm is None:
            self.judge_llm = get_llm(
                self.settings.eval_model_name or self.settings.llm_model_name,
                api_key=self.settings.openai_api_key,
                base_url=self.settings.llm_base_url,
                temperature=self.settings.eval_temperature,
                max_tokens=self.settings.eval_max_tokens,
            )
        return RetrievalJudge(self.retriever(), self.judge_llm)


@asynccontextmanager
async def open_runtime(settings: Settings) -> AsyncIterator[PipelineRuntime]:
    """Open a :class:`PipelineRuntime` and close it when the block exits."""
    runtime = await PipelineRuntime.open(settings)
    try:
        yield runtime
    finally:
        await runtime.close()
