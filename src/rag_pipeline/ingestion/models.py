"""Domain models for documents and their chunks."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class SourceDocument(BaseModel):
    """A document loaded from the docs directory.

    Attributes
    ----------
    file_path:
        Path relative to the docs directory; unique within one ingest run.
    content:
        Full file content, untouched.
    category:
        First directory component of *file_path*, or ``"general"`` for
        files at the root.
    """

    model_config = ConfigDict(frozen=True)

    file_path: str
    content: str
    category: str


class Chunk(BaseModel):
    """A trimmed, non-empty span of a :class:`SourceDocument`.

    ``content`` equals ``document.content[start_offset:end_offset]``
    whenever the offsets were resolved exactly.
    """

    content: str = Field(min_length=1)
    chunk_index: int = Field(ge=0)
    start_offset: int = Field(ge=0)
    end_offset: int = Field(ge=0)
    file_path: str


class EmbeddedChunk(Chunk):
    """A :class:`Chunk` together with its embedding vector."""

    embedding: list[float]
