"""FastAPI application exposing retrieval and grounded generation."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel, Field

from rag_pipeline.config import Settings, configure_logging
from rag_pipeline.errors import ExternalServiceError
from rag_pipeline.generation.generator import GenerationResult
from rag_pipeline.retrieval.models import RetrievalResult
from rag_pipeline.runtime import PipelineRuntime

logger = logging.getLogger(__name__)


# ── Request schemas ───────────────────────────────────────────────────
class RetrieveRequest(BaseModel):
    """Incoming search request."""

    query: str = Field(min_length=1)
    category: str | None = None
    top_k: int | None = Field(default=None, gt=0)


class GenerateRequest(BaseModel):
    """Incoming question from the user."""

    query: str = Field(min_length=1)
    category: str | None = None


def create_app(runtime: PipelineRuntime | None = None, settings: Settings | None = None) -> FastAPI:
    """Build the API.

    When *runtime* is omitted the lifespan opens one from *settings* (or
    the environment) and closes it on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        active = runtime
        if active is None:
            resolved = settings or Settings()
            configure_logging(resolved.log_level)
            active = await PipelineRuntime.open(resolved)
        app.state.runtime = active
        try:
            yield
        finally:
            await active.close()

    app = FastAPI(
        title="RAG Pipeline API",
        version="0.1.0",
        description="Cosine top-K retrieval and grounded generation over ingested docs.",
        lifespan=lifespan,
    )

    # ── Routes ────────────────────────────────────────────────────────
    @app.get("/health")
    async def health(request: Request) -> dict[str, str]:
        """Liveness check; reports whether the store is reachable."""
        store_ok = await request.app.state.runtime.store.health_check()
        return {"status": "ok", "store": "ok" if store_ok else "unavailable"}

    @app.post("/retrieve", response_model=RetrievalResult)
    async def retrieve(body: RetrieveRequest, request: Request) -> RetrievalResult:
        """Return the chunks nearest to the query."""
        retriever = request.app.state.runtime.retriever(top_k=body.top_k)
        try:
            return await retriever.retrieve(body.query, category=body.category)
        except ExternalServiceError as exc:
            logger.error("Retrieval failed: %s", exc)
            raise HTTPException(status_code=502, detail=exc.message) from exc

    @app.post("/generate", response_model=GenerationResult)
    async def generate(body: GenerateRequest, request: Request) -> GenerationResult:
        """Answer the query from retrieved context."""
        generator = request.app.state.runtime.generator()
        try:
            return await generator.generate(body.query, category=body.category)
        except ExternalServiceError as exc:
            logger.error("Generation failed: %s", exc)
            raise HTTPException(status_code=502, detail=exc.message) from exc

    return app
