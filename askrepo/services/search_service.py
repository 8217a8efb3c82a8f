"""Logic helpers for the `askrepo query` command."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List

from .cache_service import load_index_safe, mark_stale
from ..chunker import Chunk, read_source_text
from ..config import Config
from ..scoring import rank_chunks
from ..text import Messages
from ..tokenizer import tokenize, tokenize_ordered

logger = logging.getLogger(__name__)

EXCERPT_ELLIPSIS = "..."


class QueryStatus(str, Enum):
    OK = "ok"
    NO_RESULTS = "no_results"
    NEEDS_SETUP = "needs_setup"


@dataclass(slots=True)
class QueryRequest:
    root: Path
    question: str
    config: Config = field(default_factory=Config)
    top_k: int | None = None


@dataclass(frozen=True, slots=True)
class Source:
    path: str
    line_start: int
    line_end: int
    excerpt: str
    score: float
    stale: bool = False

    def to_dict(self) -> dict:
        payload: dict = {
            "path": self.path,
            "lines": [self.line_start, self.line_end],
            "excerpt": self.excerpt,
            "score": round(self.score, 4),
        }
        if self.stale:
            payload["stale"] = True
        return payload


@dataclass(slots=True)
class QueryResponse:
    status: QueryStatus
    answer: str
    sources: List[Source] = field(default_factory=list)

    @property
    def stale_count(self) -> int:
        return sum(1 for source in self.sources if source.stale)

    def to_dict(self) -> dict:
        return {
            "answer": self.answer,
            "sources": [source.to_dict() for source in self.sources],
            "status": self.status.value,
        }


def make_excerpt(text: str, limit: int) -> str:
    """Return the first *limit* characters of *text*, marking truncation with ``...``."""
    if len(text) <= limit:
        return text
    return text[:limit] + EXCERPT_ELLIPSIS


def perform_query(request: QueryRequest) -> QueryResponse:
    """Rank indexed chunks against the question and return the top sources."""

    question = (request.question or "").strip()
    if not question:
        raise ValueError(Messages.ERROR_EMPTY_QUESTION)
    top_k = request.config.max_results if request.top_k is None else request.top_k
    if isinstance(top_k, bool) or not isinstance(top_k, int) or top_k < 1:
        raise ValueError(Messages.ERROR_TOP_INVALID)

    index, records = load_index_safe(request.root)
    if index is None:
        return QueryResponse(
            status=QueryStatus.NEEDS_SETUP,
            answer=Messages.ANSWER_NEEDS_SETUP,
        )
    if index.is_legacy:
        logger.info("Index has no IDF weights; using uniform token weights")

    query_tokens = tokenize(question)
    logger.debug("Query tokens: %s", ", ".join(tokenize_ordered(question)) or "<none>")
    ranked = rank_chunks(query_tokens, index.chunks, index.idf)
    if not ranked:
        return QueryResponse(
            status=QueryStatus.NO_RESULTS,
            answer=Messages.ANSWER_NO_RESULTS.format(question=question),
        )

    limit = request.config.excerpt_chars
    file_lines: Dict[str, List[str]] = {}
    sources = [
        Source(
            path=item.chunk.path,
            line_start=item.chunk.line_start,
            line_end=item.chunk.line_end,
            excerpt=make_excerpt(_chunk_body(request.root, item.chunk, file_lines), limit),
            score=item.score,
        )
        for item in ranked[:top_k]
    ]
    sources = mark_stale(request.root, sources, records)
    response = QueryResponse(
        status=QueryStatus.OK,
        answer="",
        sources=sources,
    )
    response.answer = _summarize(question, response)
    return response


def _chunk_body(root: Path, chunk: Chunk, file_lines: Dict[str, List[str]]) -> str:
    """Return the chunk text, reading its lines from disk when the index kept none."""
    if chunk.text:
        return chunk.text
    if chunk.path not in file_lines:
        text = read_source_text(root / chunk.path)
        file_lines[chunk.path] = text.splitlines() if text else []
    return "\n".join(file_lines[chunk.path][chunk.line_start - 1 : chunk.line_end])


def _summarize(question: str, response: QueryResponse) -> str:
    count = len(response.sources)
    answer = Messages.ANSWER_FOUND.format(
        count=count,
        plural="" if count == 1 else "s",
        question=question,
    )
    stale = response.stale_count
    if stale:
        answer += Messages.ANSWER_STALE_SUFFIX.format(count=stale)
    return answer
