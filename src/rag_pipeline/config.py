"""Shared configuration loaded from environment / ``.env``."""

from __future__ import annotations

import logging

from pydantic import Field
from pydantic_settings import BaseSettings

from rag_pipeline.ingestion.chunker import ChunkConfig


class Settings(BaseSettings):
    """Application-wide settings, populated from env vars or .env file."""

    # Chunking
    chunk_size: int = Field(default=500, description="Maximum characters per chunk")
    chunk_overlap: int = Field(default=100, description="Characters shared by consecutive chunks")
    separator_profile: str = Field(
        default="markdown",
        description="Separator priority list used by the recursive splitter ('markdown', 'text', or a LangChain language)",
    )

    # Ingestion
    docs_directory: str = ""

    # Embedding
    embedding_model: str = "BAAI/bge-large-en-v1.5"
    embedding_dimension: int = 1024
    normalize_embeddings: bool = True

    # Vector store
    chroma_host: str = "localhost"
    chroma_port: int = 8000
    chroma_collection: str = "rag_pipeline"

    # Retrieval
    retrieval_top_k: int = 5

    # Generation
    openai_api_key: str = Field(default="", description="OpenAI API key (or dummy value for a local endpoint)")
    llm_model_name: str = Field(default="gpt-4o-mini", description="Chat model identifier")
    llm_base_url: str = Field(
        default="",
        description=(
            "Base URL for an OpenAI-compatible API. Leave empty to use OpenAI cloud, "
            "e.g. 'http://localhost:8001/v1' for a local vLLM server."
        ),
    )
    generate_max_tokens: int = 1024
    generate_temperature: float = 0.7

    # Evaluation
    eval_model_name: str = Field(default="", description="Judge model; empty means llm_model_name")
    eval_max_tokens: int = 512
    eval_temperature: float = 0.0

    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    def chunk_config(self) -> ChunkConfig:
        """Return the validated chunking configuration."""
        return ChunkConfig(
            chunk_size=self.chunk_size,
            chunk_overlap=self.chunk_overlap,
            separator_profile=self.separator_profile,
        )


def configure_logging(level: str | int = "INFO") -> None:
    """Install a single stream handler on the root logger."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-8s %(name)s - %(message)s",
    )
