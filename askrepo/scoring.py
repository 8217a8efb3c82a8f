"""IDF weighting and overlap scoring for indexed chunks."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import AbstractSet, Dict, Iterable, List, Mapping, Sequence, Tuple

import numpy as np

from .chunker import Chunk

DEFAULT_WEIGHT = 1.0


@dataclass(frozen=True, slots=True)
class ScoredChunk:
    chunk: Chunk
    score: float
    matched: int

    def sort_key(self) -> tuple:
        return (
            -self.score,
            -self.matched,
            len(self.chunk.text),
            self.chunk.path,
            self.chunk.line_start,
        )


def compute_idf(chunks: Sequence[Chunk]) -> Dict[str, float]:
    """Return smoothed IDF weights ``ln((N + 1) / (df + 1)) + 1`` per token."""

    document_frequency: Counter[str] = Counter()
    for chunk in chunks:
        document_frequency.update(chunk.tokens)
    if not document_frequency:
        return {}
    vocabulary = sorted(document_frequency)
    df = np.fromiter(
        (document_frequency[token] for token in vocabulary),
        dtype=np.float64,
        count=len(vocabulary),
    )
    total = float(len(chunks))
    weights = np.log((total + 1.0) / (df + 1.0)) + 1.0
    return dict(zip(vocabulary, weights.tolist()))


def score_chunk(
    query_tokens: AbstractSet[str],
    chunk: Chunk,
    idf: Mapping[str, float] | None,
) -> Tuple[float, int]:
    """Return ``(score, matched)`` for *chunk* against *query_tokens*.

    Without an IDF map every matched token weighs 1.0; with one, tokens the
    map does not know also fall back to 1.0.
    """

    matched = sorted(query_tokens & chunk.tokens)
    if not matched:
        return 0.0, 0
    if idf is None:
        return float(len(matched)), len(matched)
    score = 0.0
    for token in matched:
        score += idf.get(token, DEFAULT_WEIGHT)
    return score, len(matched)


def rank_chunks(
    query_tokens: AbstractSet[str],
    chunks: Iterable[Chunk],
    idf: Mapping[str, float] | None,
) -> List[ScoredChunk]:
    """Score every chunk, drop non-matches and order by the tie-break rule."""

    scored: List[ScoredChunk] = []
    for chunk in chunks:
        score, matched = score_chunk(query_tokens, chunk, idf)
        if score > 0:
            scored.append(ScoredChunk(chunk=chunk, score=score, matched=matched))
    scored.sort(key=ScoredChunk.sort_key)
    return scored
