"""Ingestion orchestration - load, chunk, embed, persist.

Documents are processed one at a time.  Each document and its chunks are
written in a single store transaction, so a failure while persisting
document *N* rolls back *N* only; documents ``1..N-1`` stay committed and
the error propagates to the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from pydantic import BaseModel, Field

from rag_pipeline.ingestion.chunker import RecursiveChunker
from rag_pipeline.ingestion.embedder import EmbeddingAdapter
from rag_pipeline.ingestion.loader import load_directory
from rag_pipeline.ingestion.models import SourceDocument
from rag_pipeline.retrieval.base import SimilarityStore

logger = logging.getLogger(__name__)


class IngestReport(BaseModel):
    """Summary of one ingest run."""

    documents_found: int = 0
    documents_ingested: int = 0
    documents_skipped: int = 0
    chunks_generated: int = 0
    document_ids: list[str] = Field(default_factory=list)


class Ingestor:
    """Sequential ingest pipeline.

    Parameters
    ----------
    chunker:
        Chunker built from a validated :class:`ChunkConfig`.
    embedder:
        Adapter producing chunk vectors.
    store:
        An opened similarity store.
    """

    def __init__(
        self,
        chunker: RecursiveChunker,
        embedder: EmbeddingAdapter,
        store: SimilarityStore,
    ) -> None:
        self._chunker = chunker
        self._embedder = embedder
        self._store = store

    async def ingest_directory(self, path: str | Path) -> IngestReport:
        """Load every markdown file below *path* and ingest it."""
        logger.info("Ingesting documents from: %s", Path(path).resolve())
        documents = load_directory(path)
        return await self.ingest_documents(documents)

    async def ingest_documents(self, documents: Iterable[SourceDocument]) -> IngestReport:
        """Chunk, embed and persist *documents* in order.

        Documents that produce no chunks are skipped without touching the
        embedding provider or the store.
        """
        report = IngestReport()
        config = self._chunker.config
        logger.info(
            "Chunking documents (size=%d, overlap=%d, separators=%s)",
            config.chunk_size,
            config.chunk_overlap,
            self._chunker.profile.name,
        )

        for document in documents:
            report.documents_found += 1
            chunks = self._chunker.chunk(document)
            logger.info("%s: %d chunks generated", document.file_path, len(chunks))
            if not chunks:
                report.documents_skipped += 1
                continue
            report.chunks_generated += len(chunks)

            embedded = await self._embedder.embed_chunks(chunks)

            async with self._store.transaction() as tx:
                document_id = await tx.insert_document(document)
                await tx.insert_chunks(document_id, embedded)

            report.documents_ingested += 1
            report.document_ids.append(document_id)

        logger.info(
            "Inserted %d document(s) and %d chunk(s); skipped %d empty document(s)",
            report.documents_ingested,
            report.chunks_generated,
            report.documents_skipped,
        )
        return report
