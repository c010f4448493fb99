"""Chroma implementation of the similarity-store abstraction."""

from __future__ import annotations

import hashlib
import logging
import math
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from typing import Any

import chromadb

from rag_pipeline.errors import StoreError
from rag_pipeline.ingestion.models import EmbeddedChunk, SourceDocument
from rag_pipeline.retrieval.base import SimilarityStore, StoreTransaction
from rag_pipeline.retrieval.models import SearchResult, StoredDocument

logger = logging.getLogger(__name__)


def _build_category_where(category: str | None) -> dict[str, Any] | None:
    """Convert an optional category to Chroma ``where`` syntax."""
    if category is None:
        return None
    return {"category": {"$eq": category}}


def document_id_for(document: SourceDocument) -> str:
    """Deterministic id: the same path with the same content maps to the same id."""
    digest = hashlib.sha256(f"{document.file_path}\x00{document.content}".encode())
    return digest.hexdigest()[:16]


def _centroid(vectors: Sequence[Sequence[float]], dimension: int) -> list[float]:
    """Unit-length mean of *vectors*; a zero vector when there are none."""
    if not vectors:
        return [0.0] * dimension
    mean = [sum(column) / len(vectors) for column in zip(*vectors)]
    norm = math.sqrt(sum(v * v for v in mean))
    if norm == 0:
        return mean
    return [v / norm for v in mean]


def _column(result: dict[str, Any], key: str) -> list:
    # Chroma may hand back numpy arrays, which have no truth value.
    value = result.get(key)
    return [] if value is None else list(value)


async def _snapshot(collection: Any, **query: Any) -> dict[str, list]:
    """Fetch the rows matching *query* in a shape ``upsert`` accepts."""
    result = await collection.get(include=["embeddings", "documents", "metadatas"], **query)
    return {
        "ids": _column(result, "ids"),
        "embeddings": [[float(v) for v in vector] for vector in _column(result, "embeddings")],
        "documents": _column(result, "documents"),
        "metadatas": _column(result, "metadatas"),
    }


def _parse_query_result(results: dict[str, Any]) -> list[SearchResult]:
    """Convert a single-query Chroma result into ordered hits."""
    ids = (_column(results, "ids") or [[]])[0]
    docs = (_column(results, "documents") or [[]])[0]
    metas = (_column(results, "metadatas") or [[]])[0]
    distances = (_column(results, "distances") or [[]])[0]

    hits: list[SearchResult] = []
    for chunk_id, content, meta, dist in zip(ids, docs, metas, distances):
        meta = meta or {}
        hits.append(
            SearchResult(
                id=chunk_id,
                document_id=str(meta.get("document_id", "")),
                content=content or "",
                category=str(meta.get("category", "")),
                file_path=str(meta.get("file_path", "")),
                chunk_index=int(meta.get("chunk_index", 0)),
                start_offset=int(meta.get("start_offset", 0)),
                end_offset=int(meta.get("end_offset", 0)),
                # Cosine space: distance = 1 - cosine similarity.
                similarity=1.0 - float(dist),
            )
        )
    return hits


class _ChromaTransaction(StoreTransaction):
    """Stages rows in memory until the owning store commits them."""

    def __init__(self) -> None:
        self.documents: dict[str, SourceDocument] = {}
        self.chunks: dict[str, list[tuple[str, EmbeddedChunk]]] = {}

    async def insert_document(self, document: SourceDocument) -> str:
        doc_id = document_id_for(document)
        self.documents[doc_id] = document
        self.chunks.setdefault(doc_id, [])
        return doc_id

    async def insert_chunks(
        self,
        document_id: str,
        chunks: Sequence[EmbeddedChunk],
    ) -> list[str]:
        if document_id not in self.documents:
            raise StoreError(
                "Chunks must belong to a document inserted in the same transaction",
                details={"document_id": document_id},
            )
        ids = [f"{document_id}_{chunk.chunk_index}" for chunk in chunks]
        self.chunks[document_id].extend(zip(ids, chunks))
        return ids


class ChromaSimilarityStore(SimilarityStore):
    """Chroma-backed similarity store.

    Chunks live in *collection_name* (cosine space).  Whole documents live
    in ``<collection_name>_documents``, indexed by the normalized centroid
    of their chunk vectors.

    Parameters
    ----------
    collection_name:
        Name of the chunk collection.
    host:
        Chroma server hostname.
    port:
        Chroma server port.
    dimension:
        Embedding dimension, used for documents without chunks.
    client:
        Pre-built ``AsyncClientAPI``; when omitted one is created by
        :meth:`open`.
    """

    def __init__(
        self,
        collection_name: str,
        *,
        host: str = "localhost",
        port: int = 8000,
        dimension: int = 1024,
        client: Any = None,
    ) -> None:
        super().__init__(collection_name)
        self._host = host
        self._port = port
        self._dimension = dimension
        self._client = client
        self._chunks: Any = None
        self._documents: Any = None

    # -- lifecycle ------------------------------------------------------------

    async def open(self) -> None:
        if self._chunks is not None:
            return
        try:
            if self._client is None:
                self._client = await chromadb.AsyncHttpClient(host=self._host, port=self._port)
            self._chunks = await self._client.get_or_create_collection(
                name=self.collection_name,
                metadata={"hnsw:space": "cosine"},
                embedding_function=None,
            )
            self._documents = await self._client.get_or_create_collection(
                name=f"{self.collection_name}_documents",
                metadata={"hnsw:space": "cosine"},
                embedding_function=None,
            )
        except Exception as exc:
            raise StoreError(
                "Could not open Chroma collections",
                details={"host": self._host, "port": self._port, "collection": self.collection_name},
                original_error=exc,
            ) from exc
        logger.info("Opened Chroma collection %r at %s:%d", self.collection_name, self._host, self._port)

    async def close(self) -> None:
        self._chunks = None
        self._documents = None
        self._client = None

    def _require_open(self) -> None:
        if self._chunks is None:
            raise StoreError("Store is not open; call open() first")

    # -- SimilarityStore overrides --------------------------------------------

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[StoreTransaction]:
        self._require_open()
        tx = _ChromaTransaction()
        try:
            yield tx
        except Exception:
            logger.warning("Rolling back transaction with %d staged document(s)", len(tx.documents))
            raise
        await self._commit(tx)

    async def _commit(self, tx: _ChromaTransaction) -> None:
        written: list[tuple[Any, list[str]]] = []
        snapshots: list[tuple[Any, dict[str, list]]] = []
        try:
            for doc_id, document in tx.documents.items():
                rows = tx.chunks[doc_id]
                chunk_ids = [chunk_id for chunk_id, _ in rows]

                previous_chunks = await _snapshot(self._chunks, where={"document_id": {"$eq": doc_id}})
                previous_document = await _snapshot(self._documents, ids=[doc_id])
                snapshots.append((self._chunks, previous_chunks))
                snapshots.append((self._documents, previous_document))

                if rows:
                    written.append((self._chunks, chunk_ids))
                    await self._chunks.upsert(
                        ids=chunk_ids,
                        embeddings=[chunk.embedding for _, chunk in rows],
                        documents=[chunk.content for _, chunk in rows],
                        metadatas=[
                            {
                                "document_id": doc_id,
                                "file_path": document.file_path,
                                "category": document.category,
                                "chunk_index": chunk.chunk_index,
                                "start_offset": chunk.start_offset,
                                "end_offset": chunk.end_offset,
                            }
                            for _, chunk in rows
                        ],
                    )

                # Chunks left over from an earlier ingest with more chunks.
                current = set(chunk_ids)
                stale = [chunk_id for chunk_id in previous_chunks["ids"] if chunk_id not in current]
                if stale:
                    logger.info("Removing %d stale chunk(s) of %s", len(stale), document.file_path)
                    await self._chunks.delete(ids=stale)

                written.append((self._documents, [doc_id]))
                await self._documents.upsert(
                    ids=[doc_id],
                    embeddings=[_centroid([chunk.embedding for _, chunk in rows], self._dimension)],
                    documents=[document.content],
                    metadatas=[
                        {
                            "file_path": document.file_path,
                            "category": document.category,
                            "chunk_count": len(rows),
                        }
                    ],
                )
        except Exception as exc:
            await self._restore(written, snapshots)
            raise StoreError(
                "Transaction commit failed",
                details={"documents": [d.file_path for d in tx.documents.values()]},
                original_error=exc,
            ) from exc

    async def _restore(
        self,
        written: list[tuple[Any, list[str]]],
        snapshots: list[tuple[Any, dict[str, list]]],
    ) -> None:
        """Undo a partial commit: drop ids that are new, then re-insert the prior rows."""
        existed: dict[int, set[str]] = {}
        for collection, rows in snapshots:
            existed.setdefault(id(collection), set()).update(rows["ids"])
        for collection, ids in reversed(written):
            new_ids = [row_id for row_id in ids if row_id not in existed.get(id(collection), set())]
            if not new_ids:
                continue
            try:
                await collection.delete(ids=new_ids)
            except Exception:
                logger.error("Could not remove %d row(s) after failed commit", len(new_ids), exc_info=True)
        for collection, rows in snapshots:
            if not rows["ids"]:
                continue
            try:
                await collection.upsert(**rows)
            except Exception:
                logger.error("Could not restore %d row(s) after failed commit", len(rows["ids"]), exc_info=True)

    async def search_by_vector(
        self,
        embedding: Sequence[float],
        limit: int = 10,
        category: str | None = None,
    ) -> list[SearchResult]:
        self._require_open()
        try:
            results = await self._chunks.query(
                query_embeddings=[list(embedding)],
                n_results=limit,
                where=_build_category_where(category),
                include=["documents", "metadatas", "distances"],
            )
        except Exception as exc:
            raise StoreError("Vector search failed", original_error=exc) from exc

        try:
            return _parse_query_result(results)
        except Exception as exc:
            raise StoreError("Malformed vector search result", original_error=exc) from exc

    async def get_document(self, document_id: str) -> StoredDocument | None:
        self._require_open()
        try:
            result = await self._documents.get(ids=[document_id], include=["documents", "metadatas"])
        except Exception as exc:
            raise StoreError("Document lookup failed", original_error=exc) from exc

        ids = result.get("ids") or []
        if not ids:
            return None
        meta = (result.get("metadatas") or [{}])[0] or {}
        content = (result.get("documents") or [""])[0] or ""
        return StoredDocument(
            id=ids[0],
            file_path=str(meta.get("file_path", "")),
            category=str(meta.get("category", "")),
            content=content,
            chunk_count=int(meta.get("chunk_count", 0)),
        )

    async def health_check(self) -> bool:
        if self._client is None:
            return False
        try:
            await self._client.heartbeat()
            return True
        except Exception:
            logger.warning("Chroma health-check failed", exc_info=True)
            return False
