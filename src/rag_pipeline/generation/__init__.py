"""
Generation - grounded answers from retrieved chunks.

Public API
----------
- :class:`Generator` - retrieve context and call the chat model.
- :class:`GenerationResult` - response, context used, and timings.
- :func:`get_llm` - build the configured chat model.
"""

from rag_pipeline.generation.generator import GenerationResult, Generator, format_generation_result
from rag_pipeline.generation.llm import get_llm

__all__ = [
    "GenerationResult",
    "Generator",
    "format_generation_result",
    "get_llm",
]
