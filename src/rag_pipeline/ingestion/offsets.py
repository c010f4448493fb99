"""Reconstruct character offsets for splitter output.

``RecursiveCharacterTextSplitter`` returns fragment strings only.  The
functions here locate every fragment in the original document so that
each persisted chunk carries an ``[start, end)`` span that citations can
point back to.

Fragments may repeat verbatim (a heading used twice) and consecutive
fragments may share up to ``chunk_overlap`` characters, so each search
is anchored just before the end of the previous fragment instead of at
the beginning of the document.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Span:
    """Half-open character range ``[start, end)`` into a document.

    ``exact`` is ``False`` when the fragment could not be found after the
    previous fragment and the span is a best-effort estimate.
    """

    start: int
    end: int
    exact: bool = True

    def __len__(self) -> int:
        return self.end - self.start


def resolve_offsets(
    original_text: str,
    fragments: Sequence[str],
    chunk_overlap: int,
) -> list[Span]:
    """Return one :class:`Span` per fragment, in fragment order.

    Parameters
    ----------
    original_text:
        The untouched document content.
    fragments:
        Raw splitter output in document order.  Must not contain
        whitespace-only fragments.
    chunk_overlap:
        Maximum number of characters a fragment may share with the
        previous one.

    Returns
    -------
    list[Span]
        Spans over the raw (untrimmed) fragments.  Use :func:`trim_span`
        to narrow them to the trimmed chunk text.
    """
    spans: list[Span] = []
    text_length = len(original_text)
    previous_end = 0

    for index, fragment in enumerate(fragments):
        search_start = max(0, previous_end - chunk_overlap)
        exact = True
        start = original_text.find(fragment, search_start)

        if start == -1 and search_start > 0:
            start = original_text.find(fragment)
            exact = False
            if start != -1:
                logger.warning(
                    "Fragment %d not found after offset %d; using unanchored match at %d",
                    index,
                    search_start,
                    start,
                )

        if start == -1:
            logger.warning(
                "Fragment %d (%d chars) not found in document; placing it at offset %d",
                index,
                len(fragment),
                search_start,
            )
            start = search_start
            exact = False

        end = min(start + len(fragment), text_length)
        spans.append(Span(start=start, end=end, exact=exact))
        previous_end = end

    return spans


def trim_span(fragment: str, span: Span, text_length: int) -> Span:
    """Narrow *span* to the whitespace-trimmed form of *fragment*.

    The result never extends past *text_length* and never inverts: if
    trimming would put ``end`` before ``start`` the span collapses to
    zero length at ``start``.
    """
    leading = len(fragment) - len(fragment.lstrip())
    trailing = len(fragment) - len(fragment.rstrip())
    start = min(span.start + leading, text_length)
    end = min(span.end - trailing, text_length)
    return Span(start=start, end=max(start, end), exact=span.exact)
