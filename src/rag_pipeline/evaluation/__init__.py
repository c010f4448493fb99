"""Evaluation - LLM-as-judge scoring of retrieval quality."""

from rag_pipeline.evaluation.judge import (
    ChunkEvaluation,
    EvaluationReport,
    RetrievalJudge,
    format_evaluation_report,
    parse_judge_response,
)

__all__ = [
    "ChunkEvaluation",
    "EvaluationReport",
    "RetrievalJudge",
    "format_evaluation_report",
    "parse_judge_response",
]
