"""Document loaders - markdown discovery on top of LangChain's ``DirectoryLoader``."""

from __future__ import annotations

import logging
from pathlib import Path, PurePath
from typing import TYPE_CHECKING

from langchain_community.document_loaders import DirectoryLoader, TextLoader

from rag_pipeline.errors import ConfigurationError
from rag_pipeline.ingestion.models import SourceDocument

if TYPE_CHECKING:
    from langchain_core.documents import Document

logger = logging.getLogger(__name__)

MARKDOWN_EXTENSIONS = frozenset({".md", ".markdown"})

# Case-insensitive patterns for the extensions above.
MARKDOWN_GLOBS = ("**/*.[mM][dD]", "**/*.[mM][aA][rR][kK][dD][oO][wW][nN]")

# Category given to files that sit directly in the docs directory.
ROOT_CATEGORY = "general"


def extract_category(relative_path: str | PurePath) -> str:
    """Return the top-level directory of *relative_path*.

    ``"shipping/labels/slip.md"`` -> ``"shipping"``; ``"index.md"`` ->
    ``"general"``.
    """
    parts = PurePath(relative_path).parts
    if len(parts) <= 1:
        return ROOT_CATEGORY
    return parts[0]


def to_source_document(document: Document, base_directory: str | Path) -> SourceDocument:
    """Convert a loaded LangChain document into a :class:`SourceDocument`.

    The stored path is relative to *base_directory* and uses forward
    slashes so categories and ids do not depend on the host OS.
    """
    relative = Path(document.metadata["source"]).relative_to(base_directory)
    return SourceDocument(
        file_path=relative.as_posix(),
        content=document.page_content,
        category=extract_category(relative),
    )


def load_directory(path: str | Path) -> list[SourceDocument]:
    """Load every markdown file below *path*.

    Parameters
    ----------
    path:
        Root docs directory.

    Returns
    -------
    list[SourceDocument]
        One document per file, ordered by relative path.

    Raises
    ------
    ConfigurationError
        If *path* is not an existing directory.
    """
    root = Path(path).resolve()
    if not root.is_dir():
        raise ConfigurationError(f"Docs directory does not exist: {root}")

    loader = DirectoryLoader(
        str(root),
        glob=list(MARKDOWN_GLOBS),
        loader_cls=TextLoader,  # type: ignore[arg-type]
        loader_kwargs={"encoding": "utf-8"},
        use_multithreading=False,
    )
    by_path: dict[str, SourceDocument] = {}
    for loaded in loader.load():
        if Path(loaded.metadata["source"]).suffix.lower() not in MARKDOWN_EXTENSIONS:
            continue
        document = to_source_document(loaded, root)
        by_path.setdefault(document.file_path, document)

    documents = [by_path[key] for key in sorted(by_path)]
    logger.info("Found %d markdown file(s) in %s", len(documents), root)
    for document in documents:
        logger.debug("  - %s [%s]", document.file_path, document.category)
    return documents
