"""Exception hierarchy for the RAG pipeline.

Error categories
----------------
1. :class:`ConfigurationError` - the caller supplied an invalid
   configuration (chunk size / overlap, separator profile, docs
   directory).  Raised before any document is processed.
2. :class:`ExternalServiceError` - an external collaborator failed.
   Subclasses name the collaborator: :class:`EmbeddingError`,
   :class:`StoreError`, :class:`GenerationError`.

Empty or whitespace-only documents are not errors; they simply produce
zero chunks.  Imprecise offsets are reported through logging and
:attr:`~rag_pipeline.ingestion.offsets.Span.exact`, never raised.
"""

from __future__ import annotations

from typing import Any


class RagPipelineError(Exception):
    """Base exception for every error raised by this package.

    Attributes
    ----------
    message:
        Human-readable error description.
    details:
        Additional context about the error.
    original_error:
        The underlying exception, when one was wrapped.
    """

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.original_error = original_error

    def __str__(self) -> str:
        base = self.message
        if self.details:
            base += f" | Details: {self.details}"
        if self.original_error is not None:
            base += f" | Caused by: {type(self.original_error).__name__}: {self.original_error}"
        return base


class ConfigurationError(RagPipelineError):
    """Invalid caller configuration."""


class ExternalServiceError(RagPipelineError):
    """An embedding provider, vector store, or chat model failed."""


class EmbeddingError(ExternalServiceError):
    """The embedding provider failed or returned an unusable vector."""


class StoreError(ExternalServiceError):
    """The similarity store failed to read or write."""


class GenerationError(ExternalServiceError):
    """The chat model failed to produce a response."""
