"""On-disk index store: chunk index plus the per-file mtime snapshot."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Mapping

from .chunker import Chunk
from .config import data_dir, index_dir
from .errors import IndexWriteError

logger = logging.getLogger(__name__)

INDEX_VERSION = 2
LEGACY_INDEX_VERSION = 1
INDEX_FILENAME = "chunks.json"
MTIME_FILENAME = "last_indexed.json"
_LEGACY_MTIME_TOLERANCE_NS = 1_000_000


@dataclass(slots=True)
class MtimeRecord:
    path: str
    mtime_ns: int
    size: int | None = None
    skipped: bool = False

    def matches(self, mtime_ns: int, size: int) -> bool:
        """Return True when a file with *mtime_ns*/*size* is unchanged."""
        if self.size is None:
            # Legacy records only carry a millisecond mtime.
            return abs(self.mtime_ns - mtime_ns) < _LEGACY_MTIME_TOLERANCE_NS
        return self.mtime_ns == mtime_ns and self.size == size

    def to_dict(self) -> dict:
        payload: dict = {"mtime_ns": self.mtime_ns, "size": self.size}
        if self.skipped:
            payload["skipped"] = True
        return payload

    @classmethod
    def from_stat(cls, path: str, stat: os.stat_result) -> "MtimeRecord":
        return cls(path=path, mtime_ns=stat.st_mtime_ns, size=stat.st_size)


@dataclass(slots=True)
class Index:
    version: int = INDEX_VERSION
    generated_at: str = ""
    chunks: List[Chunk] = field(default_factory=list)
    idf: Dict[str, float] | None = None

    @property
    def is_legacy(self) -> bool:
        return self.idf is None

    def files(self) -> set[str]:
        return {chunk.path for chunk in self.chunks}

    def textless_paths(self) -> set[str]:
        """Paths whose chunks were stored with tokens but no text."""
        return {chunk.path for chunk in self.chunks if chunk.tokens and not chunk.text}

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "generated_at": self.generated_at,
            "idf": self.idf,
            "chunks": [chunk.to_dict() for chunk in self.chunks],
        }


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def index_file_path(root: Path) -> Path:
    return index_dir(root) / INDEX_FILENAME


def mtime_file_path(root: Path) -> Path:
    return index_dir(root) / MTIME_FILENAME


def ensure_index_dir(root: Path) -> Path:
    """Create the index directory and keep the data directory out of git."""

    target = index_dir(root)
    try:
        target.mkdir(parents=True, exist_ok=True)
        gitignore = data_dir(root) / ".gitignore"
        if not gitignore.exists():
            gitignore.write_text("*\n", encoding="utf-8")
    except OSError as exc:
        raise IndexWriteError(target, str(exc)) from exc
    return target


def write_json_atomic(path: Path, payload: object) -> None:
    """Write *payload* as JSON next to *path* and rename it into place."""

    tmp = path.with_name(f"{path.name}.tmp")
    try:
        with tmp.open("w", encoding="utf-8") as handle:
            json.dump(payload, handle, ensure_ascii=False, separators=(",", ":"))
            handle.write("\n")
        os.replace(tmp, path)
    except OSError as exc:
        try:
            tmp.unlink()
        except OSError:
            pass
        raise IndexWriteError(path, str(exc)) from exc


def _read_json(path: Path) -> object | None:
    if not path.exists():
        return None
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        logger.warning("Ignoring unreadable %s: %s", path.name, exc)
        return None


def load_mtime_records(root: Path) -> Dict[str, MtimeRecord] | None:
    """Load the mtime snapshot; None when it is missing or unparseable."""

    raw = _read_json(mtime_file_path(root))
    if not isinstance(raw, Mapping):
        return None
    files = raw.get("files")
    if not isinstance(files, Mapping):
        return None
    records: Dict[str, MtimeRecord] = {}
    for rel_path, value in files.items():
        record = _record_from_json(str(rel_path), value)
        if record is not None:
            records[record.path] = record
    return records


def _record_from_json(rel_path: str, value: object) -> MtimeRecord | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        # Legacy maps store the modification time in milliseconds.
        return MtimeRecord(path=rel_path, mtime_ns=int(value * 1_000_000))
    if isinstance(value, Mapping):
        mtime_ns = value.get("mtime_ns")
        size = value.get("size")
        if not isinstance(mtime_ns, int) or isinstance(mtime_ns, bool):
            return None
        if size is not None and (not isinstance(size, int) or isinstance(size, bool)):
            return None
        return MtimeRecord(
            path=rel_path,
            mtime_ns=mtime_ns,
            size=size,
            skipped=value.get("skipped") is True,
        )
    return None


def load_index(
    root: Path, records: Mapping[str, MtimeRecord] | None = None
) -> Index | None:
    """Load the persisted index, or None when it is missing or unparseable.

    Chunks whose path has no entry in *records* (loaded from disk when not
    given) are dropped. An index without ``idf`` is returned as a legacy
    index, which scores every token with weight 1.
    """

    raw = _read_json(index_file_path(root))
    if not isinstance(raw, Mapping):
        return None
    raw_chunks = raw.get("chunks")
    if not isinstance(raw_chunks, list):
        logger.warning("Ignoring %s: no chunk list", INDEX_FILENAME)
        return None

    if records is None:
        records = load_mtime_records(root) or {}

    chunks: List[Chunk] = []
    dropped: set[str] = set()
    for item in raw_chunks:
        if not isinstance(item, Mapping):
            continue
        try:
            chunk = Chunk.from_dict(dict(item))
        except (KeyError, TypeError, ValueError):
            continue
        if chunk.path not in records:
            dropped.add(chunk.path)
            continue
        chunks.append(chunk)
    if dropped:
        logger.debug("Dropped chunks of %d file(s) without an mtime record", len(dropped))

    version = raw.get("version")
    if not isinstance(version, int) or isinstance(version, bool):
        version = LEGACY_INDEX_VERSION
    idf = _coerce_idf(raw.get("idf")) if version >= INDEX_VERSION else None
    return Index(
        version=version,
        generated_at=str(raw.get("generated_at") or raw.get("generated") or ""),
        chunks=chunks,
        idf=idf,
    )


def _coerce_idf(value: object) -> Dict[str, float] | None:
    if not isinstance(value, Mapping):
        return None
    idf: Dict[str, float] = {}
    for token, weight in value.items():
        if isinstance(weight, (int, float)) and not isinstance(weight, bool):
            idf[str(token)] = float(weight)
    return idf


def store_index(
    root: Path, index: Index, records: Mapping[str, MtimeRecord]
) -> Path:
    """Persist *index* then *records*, each with an atomic rename.

    Both files carry the same timestamp. If the second write fails, the new
    chunks sit next to the previous records: chunks of new files have no
    record and are dropped at load, and changed files no longer match their
    record, so the next build re-chunks them.

    Raises ``IndexWriteError`` when either file cannot be written; the file
    that failed keeps its previous content.
    """

    ensure_index_dir(root)
    if not index.generated_at:
        index.generated_at = utc_now()
    target = index_file_path(root)
    write_json_atomic(target, index.to_dict())
    write_json_atomic(
        mtime_file_path(root),
        {
            "version": index.version,
            "indexed_at": index.generated_at,
            "files": {path: records[path].to_dict() for path in sorted(records)},
        },
    )
    return target
