"""Identifier-aware tokenizer shared by indexing and querying."""

from __future__ import annotations

import re
from typing import List, Set

MIN_TOKEN_LENGTH = 3

_WORD_PATTERN = re.compile(r"[A-Za-z0-9_]+")
# Order matters: an acronym followed by a capitalized word ("XMLParser")
# must be split before the generic capitalized-word branch runs.
_PART_PATTERN = re.compile(r"[A-Z]+(?=[A-Z][a-z])|[A-Z]?[a-z]+|[A-Z]+|[0-9]+")


def _iter_parts(text: str):
    for word in _WORD_PATTERN.findall(text):
        for part in _PART_PATTERN.findall(word):
            if len(part) >= MIN_TOKEN_LENGTH:
                yield part.lower()


def tokenize(text: str) -> Set[str]:
    """Return the normalized token set of *text*.

    Identifiers are split on underscores, lower-to-upper transitions,
    acronym boundaries and letter/digit boundaries; parts shorter than
    ``MIN_TOKEN_LENGTH`` are dropped. ``"parseXMLConfig"`` yields
    ``{"parse", "xml", "config"}``.
    """

    if not text:
        return set()
    return set(_iter_parts(text))


def tokenize_ordered(text: str) -> List[str]:
    """Return tokens of *text* in first-occurrence order without duplicates."""

    if not text:
        return []
    seen: dict[str, None] = {}
    for token in _iter_parts(text):
        seen.setdefault(token, None)
    return list(seen)
