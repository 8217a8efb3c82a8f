"""Logic helpers for the `askrepo setup` command."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Mapping, Sequence

from .cache_service import load_index_safe
from ..cache import INDEX_VERSION, Index, MtimeRecord, index_file_path, store_index, utc_now
from ..chunker import Chunk, chunk_file
from ..config import Config
from ..scoring import compute_idf
from ..text import Messages
from ..utils import collect_files, relative_posix

logger = logging.getLogger(__name__)


class IndexStatus(str, Enum):
    EMPTY = "empty"
    UP_TO_DATE = "up_to_date"
    STORED = "stored"


@dataclass(slots=True)
class IndexResult:
    status: IndexStatus
    index_path: Path | None = None
    files_indexed: int = 0
    files_skipped: int = 0
    files_pruned: int = 0
    chunks_written: int = 0
    total_chunks: int = 0
    duration_ms: int = 0
    index_size_kb: float = 0.0

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "files_indexed": self.files_indexed,
            "files_skipped": self.files_skipped,
            "files_pruned": self.files_pruned,
            "chunks_written": self.chunks_written,
            "total_chunks": self.total_chunks,
            "duration_ms": self.duration_ms,
            "index_size_kb": self.index_size_kb,
            "index_path": str(self.index_path) if self.index_path else None,
        }


@dataclass(slots=True)
class SnapshotEntry:
    path: Path
    rel_path: str
    mtime_ns: int
    size: int

    def to_record(self, *, skipped: bool = False) -> MtimeRecord:
        return MtimeRecord(
            path=self.rel_path,
            mtime_ns=self.mtime_ns,
            size=self.size,
            skipped=skipped,
        )


@dataclass(slots=True)
class FileDiff:
    added: list[SnapshotEntry] = field(default_factory=list)
    modified: list[SnapshotEntry] = field(default_factory=list)
    unchanged: list[SnapshotEntry] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)

    @property
    def is_noop(self) -> bool:
        return not (self.added or self.modified or self.removed)

    def changed(self) -> list[SnapshotEntry]:
        return sorted(self.added + self.modified, key=lambda entry: entry.rel_path)


def _snapshot_current_files(files: Sequence[Path], root: Path) -> Dict[str, SnapshotEntry]:
    snapshot: Dict[str, SnapshotEntry] = {}
    for path in files:
        rel = relative_posix(path, root)
        try:
            stat = path.stat()
        except OSError as exc:
            logger.warning("Skipping %s: %s", rel, exc)
            continue
        snapshot[rel] = SnapshotEntry(
            path=path,
            rel_path=rel,
            mtime_ns=stat.st_mtime_ns,
            size=stat.st_size,
        )
    return snapshot


def _diff_snapshot(
    current: Mapping[str, SnapshotEntry],
    records: Mapping[str, MtimeRecord],
) -> FileDiff:
    diff = FileDiff()
    for rel_path, entry in current.items():
        record = records.get(rel_path)
        if record is None:
            diff.added.append(entry)
        elif record.matches(entry.mtime_ns, entry.size):
            diff.unchanged.append(entry)
        else:
            diff.modified.append(entry)
    for rel_path in sorted(records):
        if rel_path not in current:
            diff.removed.append(rel_path)
    return diff


def _requeue_textless(diff: FileDiff, previous: Index) -> None:
    """Move unchanged files whose stored chunks carry no text to ``modified``."""
    textless = previous.textless_paths()
    if not textless:
        return
    keep: list[SnapshotEntry] = []
    for entry in diff.unchanged:
        (diff.modified if entry.rel_path in textless else keep).append(entry)
    diff.unchanged = keep


def build_index(root: Path, config: Config, *, full: bool = False) -> IndexResult:
    """Bring the persisted index of *root* up to date.

    Unchanged files keep their chunks, changed or new files are re-chunked,
    and files that disappeared are pruned. IDF weights are then recomputed
    over the whole chunk set and both index files are written atomically.
    ``full=True`` ignores the previous index entirely.
    """

    started = time.perf_counter()
    files = collect_files(
        root,
        extensions=config.extensions,
        include_patterns=config.include_patterns,
        exclude_patterns=config.exclude_patterns,
        include_hidden=config.include_hidden,
        respect_gitignore=config.respect_gitignore,
    )
    current = _snapshot_current_files(files, root)

    previous: Index | None = None
    previous_records: Dict[str, MtimeRecord] = {}
    if not full:
        previous, previous_records = load_index_safe(root)
        if previous is None and index_file_path(root).exists():
            logger.warning("Previous index is unusable; rebuilding from scratch")
    diff = _diff_snapshot(current, previous_records)
    if previous is not None:
        _requeue_textless(diff, previous)

    if previous is not None and previous.version == INDEX_VERSION and diff.is_noop:
        logger.info(Messages.INFO_SETUP_NOOP)
        index_path = index_file_path(root)
        return IndexResult(
            status=IndexStatus.UP_TO_DATE,
            index_path=index_path,
            files_skipped=len(diff.unchanged),
            total_chunks=len(previous.chunks),
            duration_ms=_elapsed_ms(started),
            index_size_kb=_size_kb(index_path),
        )

    unchanged_paths = {entry.rel_path for entry in diff.unchanged}
    chunks: List[Chunk] = [
        chunk for chunk in (previous.chunks if previous else []) if chunk.path in unchanged_paths
    ]
    records: Dict[str, MtimeRecord] = {
        entry.rel_path: entry.to_record(skipped=previous_records[entry.rel_path].skipped)
        for entry in diff.unchanged
    }

    files_indexed = 0
    chunks_written = 0
    for entry in diff.changed():
        file_chunks = chunk_file(root, entry.path, config)
        if file_chunks is None:
            records[entry.rel_path] = entry.to_record(skipped=True)
            continue
        logger.debug("Indexed %s (%d chunks)", entry.rel_path, len(file_chunks))
        chunks.extend(file_chunks)
        records[entry.rel_path] = entry.to_record()
        files_indexed += 1
        chunks_written += len(file_chunks)

    for rel_path in diff.removed:
        logger.debug("Pruned %s", rel_path)

    chunks.sort(key=lambda chunk: (chunk.path, chunk.line_start))
    index = Index(
        version=INDEX_VERSION,
        generated_at=utc_now(),
        chunks=chunks,
        idf=compute_idf(chunks),
    )
    index_path = store_index(root, index, records)

    result = IndexResult(
        status=IndexStatus.STORED if _indexed_count(records) else IndexStatus.EMPTY,
        index_path=index_path,
        files_indexed=files_indexed,
        files_skipped=len(diff.unchanged),
        files_pruned=len(diff.removed),
        chunks_written=chunks_written,
        total_chunks=len(chunks),
        duration_ms=_elapsed_ms(started),
        index_size_kb=_size_kb(index_path),
    )
    logger.info(
        Messages.INFO_SETUP_DONE.format(
            indexed=result.files_indexed,
            skipped=result.files_skipped,
            pruned=result.files_pruned,
            total=result.total_chunks,
            size=result.index_size_kb,
            duration=result.duration_ms,
        )
    )
    return result


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


def _size_kb(path: Path) -> float:
    try:
        return round(path.stat().st_size / 1024, 1)
    except OSError:
        return 0.0


def _indexed_count(records: Mapping[str, MtimeRecord]) -> int:
    return sum(1 for record in records.values() if not record.skipped)
