"""Shared helpers for reading the persisted index and checking freshness."""

from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path
from typing import Dict, List, Mapping, Sequence, Tuple, TypeVar

from ..cache import Index, MtimeRecord, load_index, load_mtime_records

logger = logging.getLogger(__name__)

SourceT = TypeVar("SourceT")


def load_index_safe(root: Path) -> Tuple[Index | None, Dict[str, MtimeRecord]]:
    """Load the index with its mtime snapshot, returning ``(None, {})`` if either is unusable."""

    records = load_mtime_records(root)
    if records is None:
        return None, {}
    index = load_index(root, records)
    if index is None:
        return None, {}
    return index, records


def is_path_stale(root: Path, rel_path: str, record: MtimeRecord | None) -> bool:
    if record is None:
        return False
    try:
        stat = (root / rel_path).stat()
    except OSError:
        return True
    return not record.matches(stat.st_mtime_ns, stat.st_size)


def mark_stale(
    root: Path,
    sources: Sequence[SourceT],
    records: Mapping[str, MtimeRecord],
) -> List[SourceT]:
    """Return *sources* with ``stale=True`` on those whose file changed on disk.

    Each distinct path is stat'ed once. Results are never removed; a path
    without a record is left as is.
    """

    verdicts: Dict[str, bool] = {}
    output: List[SourceT] = []
    for source in sources:
        path = source.path  # type: ignore[attr-defined]
        if path not in verdicts:
            verdicts[path] = is_path_stale(root, path, records.get(path))
            if verdicts[path]:
                logger.warning("%s changed since the last setup; excerpt may be outdated", path)
        output.append(replace(source, stale=True) if verdicts[path] else source)
    return output


def stale_paths(root: Path, records: Mapping[str, MtimeRecord]) -> List[str]:
    """Return every recorded path whose file is missing or changed."""

    return [
        path
        for path in sorted(records)
        if is_path_stale(root, path, records[path])
    ]
