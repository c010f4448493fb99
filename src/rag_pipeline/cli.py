"""Command-line entry point: ``rag-pipeline <command> [args]``.

Commands
--------
ingest     Chunk, embed and store every markdown file in the docs directory.
retrieve   Show the chunks nearest to a query.
generate   Answer a query from retrieved context.
eval       Grade the chunks retrieved for a query with an LLM judge.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from rag_pipeline.config import Settings, configure_logging
from rag_pipeline.errors import ConfigurationError, RagPipelineError
from rag_pipeline.evaluation.judge import format_evaluation_report
from rag_pipeline.generation.generator import format_generation_result
from rag_pipeline.retrieval.retriever import format_results
from rag_pipeline.runtime import open_runtime

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rag-pipeline",
        description="Ingest markdown docs and answer questions over them.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    ingest = subparsers.add_parser("ingest", help="Ingest docs into the vector store")
    ingest.add_argument("--docs-dir", help="Docs directory (default: $DOCS_DIRECTORY)")

    for name, help_text in (
        ("retrieve", "Retrieve context for a query"),
        ("generate", "Generate a response for a query"),
        ("eval", "Evaluate retrieval using an LLM judge"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("query", nargs="+", help="Query text; unquoted words are joined")
        sub.add_argument("--category", default=None, help="Only search this category")
        if name == "retrieve":
            sub.add_argument("--top-k", type=int, default=None, help="Number of results")

    return parser


async def _ingest(settings: Settings, docs_dir: str | None) -> int:
    directory = docs_dir or settings.docs_directory
    if not directory:
        raise ConfigurationError("DOCS_DIRECTORY env var (or --docs-dir) is required to run ingest.")

    async with open_runtime(settings) as runtime:
        report = await runtime.ingestor().ingest_directory(directory)

    if report.documents_found == 0:
        logger.error("No documents found to ingest.")
        return 1
    logger.info("Ingestion complete.")
    return 0


async def _retrieve(settings: Settings, query: str, category: str | None, top_k: int | None) -> int:
    async with open_runtime(settings) as runtime:
        result = await runtime.retriever(top_k=top_k).retrieve(query, category=category)
    print(format_results(result.results))
    print(f"Search completed in {result.time_taken_ms:.0f}ms")
    return 0


async def _generate(settings: Settings, query: str, category: str | None) -> int:
    async with open_runtime(settings) as runtime:
        result = await runtime.generator().generate(query, category=category)
    print(format_generation_result(result))
    return 0


async def _evaluate(settings: Settings, query: str, category: str | None) -> int:
    async with open_runtime(settings) as runtime:
        report = await runtime.judge().evaluate(query, category=category)
    print(format_evaluation_report(report))
    return 0


async def run(args: argparse.Namespace, settings: Settings) -> int:
    """Dispatch parsed *args*; returns the process exit status."""
    if args.command == "ingest":
        return await _ingest(settings, args.docs_dir)

    query = " ".join(args.query).strip()
    if not query:
        logger.error("A non-empty query is required.")
        return 1
    if args.command == "retrieve":
        return await _retrieve(settings, query, args.category, args.top_k)
    if args.command == "generate":
        return await _generate(settings, query, args.category)
    return await _evaluate(settings, query, args.category)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = Settings()
    configure_logging(settings.log_level)
    try:
        return asyncio.run(run(args, settings))
    except RagPipelineError as exc:
        logger.error("%s failed: %s", args.command, exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
