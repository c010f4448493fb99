"""Separator profiles for the recursive splitter.

A profile is plain data: the ordered separators tried from coarsest to
finest, whether they are regular expressions, and on which side of a
split the matched separator is kept.  Selecting a language is a
configuration value, not a splitter subclass.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from langchain_text_splitters import Language, RecursiveCharacterTextSplitter

from rag_pipeline.errors import ConfigurationError


@dataclass(frozen=True)
class SeparatorProfile:
    """Ordered separator list consumed by ``RecursiveCharacterTextSplitter``.

    Attributes
    ----------
    name:
        Profile identifier used in configuration.
    separators:
        Split boundaries in priority order; ``""`` means character level.
    is_regex:
        Whether *separators* are regular expressions.
    keep_separator:
        ``"start"`` attaches a matched separator to the following piece,
        ``"end"`` to the preceding one.
    """

    name: str
    separators: tuple[str, ...]
    is_regex: bool = False
    keep_separator: Literal["start", "end"] = "start"


TEXT_PROFILE = SeparatorProfile(
    name="text",
    separators=("\n\n", "\n", ". ", " ", ""),
    is_regex=False,
    keep_separator="end",
)


def _language_profile(language: Language) -> SeparatorProfile:
    separators = RecursiveCharacterTextSplitter.get_separators_for_language(language)
    return SeparatorProfile(
        name=language.value,
        separators=tuple(separators),
        is_regex=True,
        keep_separator="start",
    )


def get_separator_profile(name: str) -> SeparatorProfile:
    """Resolve a profile name to its separator list.

    ``"text"`` is the paragraph / line / sentence / word / character
    ladder.  Any other name must be a :class:`langchain_text_splitters.Language`
    value such as ``"markdown"`` or ``"python"``.

    Raises
    ------
    ConfigurationError
        If *name* is not a known profile.
    """
    key = name.strip().lower()
    if key == TEXT_PROFILE.name:
        return TEXT_PROFILE
    try:
        language = Language(key)
    except ValueError as exc:
        raise ConfigurationError(
            f"Unknown separator profile: {name!r}",
            details={"known": ["text", *(lang.value for lang in Language)]},
        ) from exc
    try:
        return _language_profile(language)
    except ValueError as exc:
        raise ConfigurationError(f"No separators defined for language {name!r}") from exc
