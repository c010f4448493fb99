"""Embedding adapter - text to fixed-dimension vectors."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from rag_pipeline.errors import EmbeddingError
from rag_pipeline.ingestion.models import Chunk, EmbeddedChunk

if TYPE_CHECKING:
    from langchain_core.embeddings import Embeddings

logger = logging.getLogger(__name__)


def get_embedding_function(model_name: str, *, normalize: bool = True) -> Embeddings:
    """Return the configured sentence-transformer embedding function.

    Imported lazily so that loading the package does not pull in
    ``sentence-transformers`` and torch.
    """
    from langchain_huggingface import HuggingFaceEmbeddings

    return HuggingFaceEmbeddings(
        model_name=model_name,
        encode_kwargs={"normalize_embeddings": normalize},
    )


class EmbeddingAdapter:
    """Turn text into vectors of a fixed dimension.

    Parameters
    ----------
    embeddings:
        Any LangChain ``Embeddings`` implementation.
    dimension:
        Expected vector length.  A provider returning anything else is
        treated as a failure.
    """

    def __init__(self, embeddings: Embeddings, dimension: int) -> None:
        self._embeddings = embeddings
        self.dimension = dimension

    async def embed(self, text: str) -> list[float]:
        """Embed a single string.

        Raises
        ------
        EmbeddingError
            On provider / network failure or an unexpected vector length.
        """
        try:
            vector = await self._embeddings.aembed_query(text)
        except Exception as exc:
            raise EmbeddingError("Embedding provider call failed", original_error=exc) from exc

        if len(vector) != self.dimension:
            raise EmbeddingError(
                "Embedding has unexpected dimension",
                details={"expected": self.dimension, "actual": len(vector)},
            )
        return [float(v) for v in vector]

    async def embed_chunks(self, chunks: Sequence[Chunk]) -> list[EmbeddedChunk]:
        """Embed *chunks* one at a time, in order.

        One provider call per chunk, awaited before the next one starts.
        """
        embedded: list[EmbeddedChunk] = []
        for chunk in chunks:
            vector = await self.embed(chunk.content)
            embedded.append(EmbeddedChunk(**chunk.model_dump(), embedding=vector))
        logger.debug("Embedded %d chunk(s)", len(embedded))
        return embedded
