"""Read source files and split them into overlapping line windows."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import FrozenSet, List

from charset_normalizer import from_bytes

from .config import Config, DEFAULT_CHUNK_LINES, DEFAULT_CHUNK_OVERLAP
from .tokenizer import tokenize
from .utils import relative_posix

logger = logging.getLogger(__name__)

BINARY_SNIFF_BYTES = 8192


@dataclass(frozen=True, slots=True)
class Chunk:
    """A contiguous, 1-based inclusive line range of one file."""

    path: str
    line_start: int
    line_end: int
    text: str
    tokens: FrozenSet[str]

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "line_start": self.line_start,
            "line_end": self.line_end,
            "text": self.text,
            "tokens": sorted(self.tokens),
        }

    @classmethod
    def from_dict(cls, payload: dict) -> "Chunk":
        """Build a chunk from its stored form.

        Older indexes store ``start``/``end`` instead of ``line_start``/``line_end``
        and keep only the tokens; such chunks load with empty ``text``.
        """
        text = str(payload.get("text") or "")
        raw_tokens = payload.get("tokens")
        tokens = frozenset(raw_tokens) if isinstance(raw_tokens, list) else frozenset(tokenize(text))
        line_start = payload["line_start"] if "line_start" in payload else payload["start"]
        line_end = payload["line_end"] if "line_end" in payload else payload["end"]
        return cls(
            path=str(payload["path"]),
            line_start=int(line_start),
            line_end=int(line_end),
            text=text,
            tokens=tokens,
        )


def chunk_text(
    path: str,
    text: str,
    window_size: int = DEFAULT_CHUNK_LINES,
    overlap: int = DEFAULT_CHUNK_OVERLAP,
) -> List[Chunk]:
    """Split *text* into windows of *window_size* lines sharing *overlap* lines.

    The last window is truncated to the end of the file and the walk stops as
    soon as a window reaches the final line, so a short file yields exactly
    one chunk and empty text yields none.
    """

    if window_size <= 0:
        raise ValueError("window_size must be greater than 0")
    if overlap < 0 or overlap >= window_size:
        raise ValueError("overlap must be >= 0 and smaller than window_size")

    lines = text.splitlines()
    if not lines:
        return []

    step = window_size - overlap
    total = len(lines)
    chunks: List[Chunk] = []
    start = 0
    while True:
        end = min(start + window_size, total)
        body = "\n".join(lines[start:end])
        chunks.append(
            Chunk(
                path=path,
                line_start=start + 1,
                line_end=end,
                text=body,
                tokens=frozenset(tokenize(body)),
            )
        )
        if end >= total:
            break
        start += step
    return chunks


def is_binary(data: bytes) -> bool:
    return b"\x00" in data[:BINARY_SNIFF_BYTES]


def read_source_text(path: Path) -> str | None:
    """Return decoded text of *path*, or None when it is binary or unreadable."""

    try:
        data = path.read_bytes()
    except OSError as exc:
        logger.debug("Cannot read %s: %s", path, exc)
        return None
    if not data:
        return ""
    if is_binary(data):
        return None
    best = from_bytes(data).best()
    if best is None:
        return None
    return str(best)


def chunk_file(root: Path, path: Path, config: Config) -> List[Chunk] | None:
    """Chunk one file of the corpus.

    Returns None (after logging a warning) when the file is larger than
    ``config.max_file_kb``, binary, or cannot be read.
    """

    rel_path = relative_posix(path, root)
    try:
        size = path.stat().st_size
    except OSError as exc:
        logger.warning("Skipping %s: %s", rel_path, exc)
        return None
    if size > config.max_file_bytes:
        logger.warning(
            "Skipping %s: %d KB exceeds max_file_kb=%d",
            rel_path,
            size // 1024,
            config.max_file_kb,
        )
        return None
    text = read_source_text(path)
    if text is None:
        logger.warning("Skipping %s: binary or unreadable", rel_path)
        return None
    return chunk_text(rel_path, text, config.chunk_lines, config.chunk_overlap)
