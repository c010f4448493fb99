"""Recursive, content-aware chunking with exact character offsets."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from langchain_text_splitters import RecursiveCharacterTextSplitter

from rag_pipeline.errors import ConfigurationError
from rag_pipeline.ingestion.models import Chunk, SourceDocument
from rag_pipeline.ingestion.offsets import resolve_offsets, trim_span
from rag_pipeline.ingestion.separators import SeparatorProfile, get_separator_profile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChunkConfig:
    """Chunking parameters, validated on construction.

    Attributes
    ----------
    chunk_size:
        Maximum number of characters per chunk.
    chunk_overlap:
        Number of characters shared between consecutive chunks.  Must be
        strictly smaller than *chunk_size*.
    separator_profile:
        Name of the separator list, see
        :func:`~rag_pipeline.ingestion.separators.get_separator_profile`.
    """

    chunk_size: int = 500
    chunk_overlap: int = 100
    separator_profile: str = "markdown"

    def __post_init__(self) -> None:
        if self.chunk_size <= 0:
            raise ConfigurationError(f"chunk_size ({self.chunk_size}) must be > 0")
        if self.chunk_overlap < 0:
            raise ConfigurationError(f"chunk_overlap ({self.chunk_overlap}) must be >= 0")
        if self.chunk_overlap >= self.chunk_size:
            raise ConfigurationError(
                f"chunk_overlap ({self.chunk_overlap}) must be < chunk_size ({self.chunk_size})"
            )


class RecursiveChunker:
    """Split documents into overlapping chunks and locate them in the source.

    Splitting is delegated to LangChain's ``RecursiveCharacterTextSplitter``
    configured from a :class:`SeparatorProfile`.  Whitespace is not
    stripped by the splitter so that the raw fragments can be located in
    the original text; trimming happens afterwards, together with the
    matching offset adjustment.

    Parameters
    ----------
    config:
        Validated chunking parameters.
    profile:
        Explicit separator profile; defaults to ``config.separator_profile``.
    """

    def __init__(self, config: ChunkConfig, profile: SeparatorProfile | None = None) -> None:
        self.config = config
        self.profile = profile or get_separator_profile(config.separator_profile)
        self._splitter = RecursiveCharacterTextSplitter(
            separators=list(self.profile.separators),
            keep_separator=self.profile.keep_separator,
            is_separator_regex=self.profile.is_regex,
            chunk_size=config.chunk_size,
            chunk_overlap=config.chunk_overlap,
            length_function=len,
            strip_whitespace=False,
        )

    def split(self, text: str) -> list[str]:
        """Return the raw splitter fragments for *text*."""
        return self._splitter.split_text(text)

    def chunk(self, document: SourceDocument) -> list[Chunk]:
        """Split *document* into ordered chunks with offsets.

        Returns an empty list for empty or whitespace-only content.
        Whitespace-only fragments are dropped before indices are assigned,
        so ``chunk_index`` runs ``0..n-1`` without gaps.
        """
        content = document.content
        if not content.strip():
            return []

        fragments = [f for f in self.split(content) if f.strip()]
        if not fragments:
            return []

        spans = resolve_offsets(content, fragments, self.config.chunk_overlap)

        chunks: list[Chunk] = []
        for chunk_index, (fragment, span) in enumerate(zip(fragments, spans)):
            trimmed = trim_span(fragment, span, len(content))
            chunks.append(
                Chunk(
                    content=fragment.strip(),
                    chunk_index=chunk_index,
                    start_offset=trimmed.start,
                    end_offset=trimmed.end,
                    file_path=document.file_path,
                )
            )

        logger.debug("Split %s into %d chunk(s)", document.file_path, len(chunks))
        return chunks


def chunk_documents(
    documents: Iterable[SourceDocument],
    config: ChunkConfig,
) -> list[Chunk]:
    """Chunk every document with a single shared splitter.

    Parameters
    ----------
    documents:
        Documents produced by the loader.
    config:
        Chunking parameters.

    Returns
    -------
    list[Chunk]
        All chunks, grouped by document in input order.
    """
    chunker = RecursiveChunker(config)
    chunks: list[Chunk] = []
    for document in documents:
        chunks.extend(chunker.chunk(document))
    return chunks
