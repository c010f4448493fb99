"""LLM-as-judge scoring of retrieved chunks.

Each retrieved chunk is scored on two 1-5 scales:

* **relevance** - how directly the chunk relates to the query;
* **sufficiency** - whether the chunk alone could answer it.
"""

from __future__ import annotations

import json
import logging
import math
import re
import time
from typing import Any

from pydantic import BaseModel, Field

from rag_pipeline.generation.llm import response_text
from rag_pipeline.generation.prompts import build_judge_prompt
from rag_pipeline.retrieval.models import SearchResult
from rag_pipeline.retrieval.retriever import Retriever

logger = logging.getLogger(__name__)

MIN_SCORE = 1
MAX_SCORE = 5

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


class ChunkEvaluation(BaseModel):
    """Judge verdict for one retrieved chunk."""

    chunk_index: int
    file_path: str
    relevance: int = Field(ge=MIN_SCORE, le=MAX_SCORE)
    sufficiency: int = Field(ge=MIN_SCORE, le=MAX_SCORE)
    reasoning: str


class EvaluationReport(BaseModel):
    """Per-chunk verdicts and their averages for one query."""

    query: str
    chunks: list[ChunkEvaluation] = Field(default_factory=list)
    avg_relevance: float = 0.0
    avg_sufficiency: float = 0.0
    time_taken_ms: float = 0.0


def _normalize_score(value: Any, field_name: str) -> int:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid {field_name} score: {value!r}") from None
    if not math.isfinite(number):
        raise ValueError(f"Invalid {field_name} score: {value!r}")
    return min(MAX_SCORE, max(MIN_SCORE, round(number)))


def parse_judge_response(text: str) -> dict[str, Any]:
    """Parse the judge's JSON verdict.

    Accepts bare JSON, JSON in markdown fences, or a JSON object embedded
    in surrounding prose.  Scores are rounded and clamped to 1-5.

    Raises
    ------
    ValueError
        If no JSON object can be recovered or a score is not numeric.
    """
    cleaned = text.strip()
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError:
        match = _JSON_OBJECT.search(cleaned)
        if match is None:
            raise ValueError("No JSON object found in judge response") from None
        parsed = json.loads(match.group(0))

    if not isinstance(parsed, dict):
        raise ValueError("Judge response is not a JSON object")

    reasoning = parsed.get("reasoning")
    return {
        "relevance": _normalize_score(parsed.get("relevance"), "relevance"),
        "sufficiency": _normalize_score(parsed.get("sufficiency"), "sufficiency"),
        "reasoning": reasoning.strip() if isinstance(reasoning, str) else "No reasoning provided.",
    }


class RetrievalJudge:
    """Retrieve for a query and have a chat model grade every chunk.

    Parameters
    ----------
    retriever:
        Retriever whose output is being evaluated.
    llm:
        Judge chat model (anything with an async ``ainvoke``).
    """

    def __init__(self, retriever: Retriever, llm: Any) -> None:
        self._retriever = retriever
        self._llm = llm

    async def evaluate_chunk(self, query: str, result: SearchResult) -> ChunkEvaluation:
        """Score a single chunk; errors propagate."""
        response = await self._llm.ainvoke(build_judge_prompt(query, result))
        verdict = parse_judge_response(response_text(response))
        return ChunkEvaluation(
            chunk_index=result.chunk_index,
            file_path=result.file_path,
            **verdict,
        )

    async def evaluate(self, query: str, category: str | None = None) -> EvaluationReport:
        """Retrieve chunks for *query* and judge them one after another.

        A chunk whose judgement fails is recorded with the lowest scores
        instead of aborting the run.
        """
        started = time.perf_counter()
        retrieval = await self._retriever.retrieve(query, category=category)

        evaluations: list[ChunkEvaluation] = []
        for result in retrieval.results:
            try:
                evaluations.append(await self.evaluate_chunk(query, result))
            except Exception as exc:
                logger.warning("Failed to evaluate chunk %d of %s: %s", result.chunk_index + 1, result.file_path, exc)
                evaluations.append(
                    ChunkEvaluation(
                        chunk_index=result.chunk_index,
                        file_path=result.file_path,
                        relevance=MIN_SCORE,
                        sufficiency=MIN_SCORE,
                        reasoning="Evaluation failed; defaulted to lowest scores.",
                    )
                )

        count = len(evaluations)
        return EvaluationReport(
            query=query,
            chunks=evaluations,
            avg_relevance=sum(e.relevance for e in evaluations) / count if count else 0.0,
            avg_sufficiency=sum(e.sufficiency for e in evaluations) / count if count else 0.0,
            time_taken_ms=(time.perf_counter() - started) * 1000,
        )


def format_evaluation_report(report: EvaluationReport) -> str:
    """Render an evaluation report with aggregate percentages."""
    lines = [f'Evaluating retrieval for: "{report.query}"', ""]
    if not report.chunks:
        lines.append("No retrieved chunks to evaluate.")
        return "\n".join(lines)

    for i, chunk in enumerate(report.chunks, 1):
        lines.append(f"--- Chunk {i} ({chunk.file_path}) ---")
        lines.append(f"Chunk index: {chunk.chunk_index + 1}")
        lines.append(f"Relevance:    {chunk.relevance}/{MAX_SCORE}")
        lines.append(f"Sufficiency:  {chunk.sufficiency}/{MAX_SCORE}")
        lines.append(f"Reasoning:    {chunk.reasoning}")
        lines.append("")

    lines.append("=== AGGREGATE SCORES ===")
    lines.append(f"Avg Relevance:    {report.avg_relevance / MAX_SCORE * 100:.0f}%")
    lines.append(f"Avg Sufficiency:  {report.avg_sufficiency / MAX_SCORE * 100:.0f}%")
    lines.append(f"Chunks evaluated: {len(report.chunks)}")
    lines.append(f"Total time:       {report.time_taken_ms:.0f}ms")
    return "\n".join(lines)
