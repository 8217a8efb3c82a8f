"""Utility helpers for filesystem discovery and path handling."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Sequence
import os

from pathspec.gitignore import GitIgnoreSpec

DEFAULT_SKIP_DIRS: frozenset[str] = frozenset(
    {
        ".askrepo",
        ".cache",
        ".git",
        ".next",
        ".sdlc",
        ".venv",
        "__pycache__",
        "build",
        "coverage",
        "dist",
        "node_modules",
        "target",
        "venv",
    }
)


def resolve_directory(path: Path | str) -> Path:
    """Resolve and validate a user supplied directory path."""
    dir_path = Path(path).expanduser().resolve()
    if not dir_path.exists():
        raise FileNotFoundError(f"Directory does not exist: {dir_path}")
    if not dir_path.is_dir():
        raise NotADirectoryError(f"Path is not a directory: {dir_path}")
    return dir_path


def normalize_extensions(values: Iterable[str] | None) -> tuple[str, ...]:
    """Return a sorted, deduplicated tuple of normalized file extensions."""

    if not values:
        return ()

    normalized: set[str] = set()
    for raw in values:
        if raw is None:
            continue
        token = raw.strip().lower()
        if not token:
            continue
        if not token.startswith("."):
            token = f".{token}"
        if token == ".":
            continue
        normalized.add(token)
    return tuple(sorted(normalized))


def normalize_patterns(values: Iterable[str] | None) -> tuple[str, ...]:
    """Strip and deduplicate glob patterns while keeping their order."""

    if not values:
        return ()
    output: list[str] = []
    for raw in values:
        if raw is None:
            continue
        token = raw.strip().replace("\\", "/")
        if token and token not in output:
            output.append(token)
    return tuple(output)


def relative_posix(path: Path, root: Path) -> str:
    rel = path.relative_to(root)
    if rel == Path("."):
        return ""
    return rel.as_posix()


def build_pattern_spec(patterns: Sequence[str] | None) -> GitIgnoreSpec | None:
    """Compile gitignore-style *patterns*; ``None`` when there are none."""

    if not patterns:
        return None
    return GitIgnoreSpec.from_lines(list(patterns))


def matches_spec(spec: GitIgnoreSpec | None, rel_path: str, *, is_dir: bool = False) -> bool:
    if spec is None or not rel_path:
        return False
    candidate = f"{rel_path}/" if is_dir and not rel_path.endswith("/") else rel_path
    return bool(spec.match_file(candidate))


def _read_gitignore_lines(path: Path) -> list[str]:
    try:
        return path.read_text(encoding="utf-8", errors="replace").splitlines()
    except OSError:
        return []


def _scope_gitignore_line(line: str, base_dir: str) -> str | None:
    """Rewrite a nested ``.gitignore`` line so it only applies below *base_dir*."""

    if not line.strip() or (line.startswith("#") and not line.startswith(r"\#")):
        return None
    if not base_dir:
        return line
    negated = line.startswith("!")
    body = line[1:] if negated else line
    prefix = "!" if negated else ""
    if body.startswith("/"):
        return f"{prefix}{base_dir}{body}"
    if "/" in body.rstrip("/"):
        return f"{prefix}{base_dir}/{body}"
    return f"{prefix}{base_dir}/**/{body}"


def _root_ignore_lines(root: Path) -> list[str]:
    lines: list[str] = []
    exclude_file = root / ".git" / "info" / "exclude"
    if exclude_file.is_file():
        lines.extend(_read_gitignore_lines(exclude_file))
    return lines


def collect_files(
    root: Path | str,
    *,
    extensions: Sequence[str] | None = None,
    include_patterns: Sequence[str] | None = None,
    exclude_patterns: Sequence[str] | None = None,
    include_hidden: bool = False,
    respect_gitignore: bool = True,
    skip_dirs: Iterable[str] = DEFAULT_SKIP_DIRS,
) -> List[Path]:
    """Collect indexable files under *root* in sorted order.

    A file is kept when its extension is allowed, it matches the include
    patterns (if any), and neither ``.gitignore`` rules nor the exclude
    patterns match it. Hidden entries and ``skip_dirs`` are pruned while
    walking.
    """

    directory = resolve_directory(root)
    normalized_exts = tuple(extensions or ())
    include_spec = build_pattern_spec(include_patterns)
    exclude_spec = build_pattern_spec(exclude_patterns)
    skipped = frozenset(skip_dirs)

    ignore_lines: dict[Path, list[str]] = {}
    if respect_gitignore:
        ignore_lines[directory] = [
            scoped
            for scoped in (_scope_gitignore_line(line, "") for line in _root_ignore_lines(directory))
            if scoped is not None
        ]

    files: List[Path] = []
    for dirpath, dirnames, filenames in os.walk(directory, topdown=True):
        current = Path(dirpath)
        ignore_spec = None
        if respect_gitignore:
            lines = list(ignore_lines.get(current, []))
            gitignore_file = current / ".gitignore"
            if gitignore_file.is_file():
                base_dir = relative_posix(current, directory)
                for line in _read_gitignore_lines(gitignore_file):
                    scoped = _scope_gitignore_line(line, base_dir)
                    if scoped is not None:
                        lines.append(scoped)
            ignore_spec = GitIgnoreSpec.from_lines(lines) if lines else None
        else:
            lines = []

        kept: list[str] = []
        for dirname in sorted(dirnames):
            if dirname in skipped:
                continue
            if not include_hidden and dirname.startswith("."):
                continue
            rel_dir = relative_posix(current / dirname, directory)
            if matches_spec(ignore_spec, rel_dir, is_dir=True):
                continue
            if matches_spec(exclude_spec, rel_dir, is_dir=True):
                continue
            if respect_gitignore:
                ignore_lines[current / dirname] = lines
            kept.append(dirname)
        dirnames[:] = kept

        for filename in filenames:
            if not include_hidden and filename.startswith("."):
                continue
            candidate = current / filename
            if normalized_exts and not _matches_extension(candidate, normalized_exts):
                continue
            rel_file = relative_posix(candidate, directory)
            if matches_spec(ignore_spec, rel_file):
                continue
            if matches_spec(exclude_spec, rel_file):
                continue
            if include_spec is not None and not matches_spec(include_spec, rel_file):
                continue
            if not candidate.is_file():
                continue
            files.append(candidate)

    files.sort()
    return files


def _matches_extension(path: Path, extensions: Sequence[str]) -> bool:
    """Return True if *path* ends with any of the provided *extensions*."""

    filename = path.name.lower()
    return any(filename.endswith(ext) for ext in extensions)


def format_path(path: Path | str, base: Path | None = None) -> str:
    """Return a user friendly representation of *path* relative to *base* when possible."""
    if isinstance(path, str):
        return f"./{path}" if base else path
    if base:
        try:
            relative = path.relative_to(base)
            return f"./{relative.as_posix()}"
        except ValueError:
            return str(path)
    return str(path)
