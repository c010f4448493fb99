"""Abstract base class for similarity-store backends.

Adding a backend only requires subclassing :class:`SimilarityStore` and
:class:`StoreTransaction`.  The ingestion and retrieval layers never
know which database is behind them.

Lifecycle
---------
A store is constructed, opened once at process start, passed down to
whoever needs it, and closed on shutdown::

    async with ChromaSimilarityStore(...) as store:
        async with store.transaction() as tx:
            doc_id = await tx.insert_document(document)
            await tx.insert_chunks(doc_id, embedded_chunks)
        hits = await store.search_by_vector(vector, limit=5, category="shipping")
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from contextlib import AbstractAsyncContextManager
from types import TracebackType

from rag_pipeline.ingestion.models import EmbeddedChunk, SourceDocument
from rag_pipeline.retrieval.models import SearchResult, StoredDocument


class StoreTransaction(ABC):
    """Unit of work covering one document and its chunks.

    Everything written through a transaction becomes visible together on
    commit, or not at all.
    """

    @abstractmethod
    async def insert_document(self, document: SourceDocument) -> str:
        """Stage *document* and return its id."""
        ...

    @abstractmethod
    async def insert_chunks(
        self,
        document_id: str,
        chunks: Sequence[EmbeddedChunk],
    ) -> list[str]:
        """Stage *chunks* for *document_id* and return their ids, in order."""
        ...


class SimilarityStore(ABC):
    """Backend-agnostic store for documents, chunks and their vectors.

    Parameters
    ----------
    collection_name:
        Logical name of the collection / index / namespace.
    """

    def __init__(self, collection_name: str) -> None:
        self.collection_name = collection_name

    # -- lifecycle ------------------------------------------------------------

    @abstractmethod
    async def open(self) -> None:
        """Connect to the backend."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release the connection.  Safe to call more than once."""
        ...

    async def __aenter__(self) -> SimilarityStore:
        await self.open()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    # -- required overrides ---------------------------------------------------

    @abstractmethod
    def transaction(self) -> AbstractAsyncContextManager[StoreTransaction]:
        """Return an async context manager yielding a :class:`StoreTransaction`.

        Leaving the block normally commits; an exception rolls back and
        propagates.
        """
        ...

    @abstractmethod
    async def search_by_vector(
        self,
        embedding: Sequence[float],
        limit: int = 10,
        category: str | None = None,
    ) -> list[SearchResult]:
        """Return up to *limit* chunks nearest to *embedding* by cosine distance.

        Results are ordered by descending similarity.  When *category* is
        given only chunks of documents in that category are considered.
        """
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """Return ``True`` when the backend is reachable and ready."""
        ...

    # -- optional overrides ---------------------------------------------------

    async def get_document(self, document_id: str) -> StoredDocument | None:
        """Fetch a stored document by id.  Optional - raises by default."""
        raise NotImplementedError(f"{type(self).__name__} does not support get_document")
