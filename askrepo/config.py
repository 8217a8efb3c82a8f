"""Per-corpus configuration management for askrepo."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, fields, replace
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Dict

from dotenv import find_dotenv, load_dotenv

from .errors import ConfigError
from .text import Messages
from .utils import normalize_extensions, normalize_patterns, resolve_directory

DATA_DIR_NAME = ".askrepo"
CONFIG_FILENAME = "config.json"
INDEX_DIRNAME = "index"
ENV_ROOT = "ASKREPO_ROOT"

DEFAULT_CHUNK_LINES = 40
DEFAULT_CHUNK_OVERLAP = 5
DEFAULT_MAX_RESULTS = 5
DEFAULT_MAX_FILE_KB = 500
DEFAULT_EXCERPT_CHARS = 400
DEFAULT_EXTENSIONS: tuple[str, ...] = (
    ".go",
    ".java",
    ".js",
    ".jsx",
    ".md",
    ".py",
    ".rb",
    ".rs",
    ".toml",
    ".ts",
    ".tsx",
    ".txt",
    ".yaml",
    ".yml",
)


@dataclass(frozen=True, slots=True)
class Config:
    chunk_lines: int = DEFAULT_CHUNK_LINES
    chunk_overlap: int = DEFAULT_CHUNK_OVERLAP
    max_results: int = DEFAULT_MAX_RESULTS
    max_file_kb: int = DEFAULT_MAX_FILE_KB
    excerpt_chars: int = DEFAULT_EXCERPT_CHARS
    extensions: tuple[str, ...] = DEFAULT_EXTENSIONS
    include_patterns: tuple[str, ...] = ()
    exclude_patterns: tuple[str, ...] = ()
    include_hidden: bool = False
    respect_gitignore: bool = True

    @property
    def max_file_bytes(self) -> int:
        return self.max_file_kb * 1024

    def to_dict(self) -> Dict[str, Any]:
        return {
            "chunk_lines": self.chunk_lines,
            "chunk_overlap": self.chunk_overlap,
            "max_results": self.max_results,
            "max_file_kb": self.max_file_kb,
            "excerpt_chars": self.excerpt_chars,
            "extensions": list(self.extensions),
            "include_patterns": list(self.include_patterns),
            "exclude_patterns": list(self.exclude_patterns),
            "include_hidden": self.include_hidden,
            "respect_gitignore": self.respect_gitignore,
        }


CONFIG_FIELDS: tuple[str, ...] = tuple(item.name for item in fields(Config))


def resolve_root(path: Path | str | None = None) -> Path:
    """Return the corpus root from *path*, ``$ASKREPO_ROOT`` (``.env`` aware) or cwd."""

    if path is not None and str(path).strip():
        return resolve_directory(path)
    load_dotenv(find_dotenv(usecwd=True))
    env_root = (os.getenv(ENV_ROOT) or "").strip()
    if env_root:
        return resolve_directory(env_root)
    return resolve_directory(Path.cwd())


def data_dir(root: Path) -> Path:
    return root / DATA_DIR_NAME


def index_dir(root: Path) -> Path:
    return data_dir(root) / INDEX_DIRNAME


def config_path(root: Path) -> Path:
    return data_dir(root) / CONFIG_FILENAME


def load_config(root: Path) -> Config:
    """Load the configuration stored under *root*, or defaults when absent."""

    config_file = config_path(root)
    if not config_file.exists():
        return Config()
    try:
        raw = json.loads(config_file.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(Messages.ERROR_CONFIG_JSON_INVALID) from exc
    return config_from_json(raw)


def save_config(config: Config, root: Path) -> Path:
    config_file = config_path(root)
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(
        json.dumps(config.to_dict(), ensure_ascii=False, indent=2),
        encoding="utf-8",
    )
    return config_file


def clear_config(root: Path) -> bool:
    config_file = config_path(root)
    if not config_file.exists():
        return False
    config_file.unlink()
    return True


def config_from_json(
    payload: str | Mapping[str, object], *, base: Config | None = None
) -> Config:
    """Return a validated Config from a JSON string or mapping without saving it."""
    data = _coerce_config_payload(payload)
    config = Config() if base is None else base
    updates = _config_updates(data)
    config = replace(config, **updates)
    _validate(config)
    return config


def update_config_from_json(
    root: Path, payload: str | Mapping[str, object], *, replace_all: bool = False
) -> Config:
    """Update the stored config from a JSON string or mapping and persist it."""
    base = None if replace_all else load_config(root)
    config = config_from_json(payload, base=base)
    save_config(config, root)
    return config


def parse_assignment(value: str) -> tuple[str, object]:
    """Split a ``KEY=VALUE`` CLI assignment; VALUE is parsed as JSON when possible."""

    key, sep, raw = value.partition("=")
    key = key.strip()
    if not sep or not key:
        raise ConfigError(Messages.ERROR_CONFIG_ASSIGNMENT.format(value=value))
    raw = raw.strip()
    try:
        parsed: object = json.loads(raw)
    except json.JSONDecodeError:
        parsed = raw
    return key, parsed


def _coerce_config_payload(payload: str | Mapping[str, object]) -> Mapping[str, object]:
    if isinstance(payload, str):
        try:
            data = json.loads(payload)
        except json.JSONDecodeError as exc:
            raise ConfigError(Messages.ERROR_CONFIG_JSON_INVALID) from exc
    elif isinstance(payload, Mapping):
        data = dict(payload)
    else:
        raise ConfigError(Messages.ERROR_CONFIG_JSON_INVALID)
    if not isinstance(data, Mapping):
        raise ConfigError(Messages.ERROR_CONFIG_JSON_INVALID)
    return data


def _config_updates(payload: Mapping[str, object]) -> Dict[str, Any]:
    updates: Dict[str, Any] = {}
    for key, value in payload.items():
        if key not in CONFIG_FIELDS:
            raise ConfigError(Messages.ERROR_CONFIG_UNKNOWN_FIELD.format(field=key))
        if key in {"chunk_lines", "max_results", "max_file_kb", "excerpt_chars"}:
            updates[key] = _coerce_int(value, key, minimum=1)
        elif key == "chunk_overlap":
            updates[key] = _coerce_int(value, key, minimum=0)
        elif key == "extensions":
            extensions = normalize_extensions(_coerce_str_list(value, key))
            if not extensions:
                raise ConfigError(Messages.ERROR_CONFIG_VALUE_INVALID.format(field=key))
            updates[key] = extensions
        elif key in {"include_patterns", "exclude_patterns"}:
            updates[key] = normalize_patterns(_coerce_str_list(value, key))
        else:
            updates[key] = _coerce_bool(value, key)
    return updates


def _validate(config: Config) -> None:
    if config.chunk_overlap >= config.chunk_lines:
        raise ConfigError(Messages.ERROR_CONFIG_OVERLAP)


def _coerce_int(value: object, field: str, *, minimum: int) -> int:
    if isinstance(value, bool):
        raise ConfigError(Messages.ERROR_CONFIG_VALUE_INVALID.format(field=field))
    if isinstance(value, int):
        result = value
    elif isinstance(value, float) and value.is_integer():
        result = int(value)
    elif isinstance(value, str):
        try:
            result = int(value.strip())
        except ValueError as exc:
            raise ConfigError(Messages.ERROR_CONFIG_VALUE_INVALID.format(field=field)) from exc
    else:
        raise ConfigError(Messages.ERROR_CONFIG_VALUE_INVALID.format(field=field))
    if result < minimum:
        raise ConfigError(Messages.ERROR_CONFIG_VALUE_INVALID.format(field=field))
    return result


def _coerce_bool(value: object, field: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        cleaned = value.strip().lower()
        if cleaned in {"true", "1", "yes", "on"}:
            return True
        if cleaned in {"false", "0", "no", "off"}:
            return False
    raise ConfigError(Messages.ERROR_CONFIG_VALUE_INVALID.format(field=field))


def _coerce_str_list(value: object, field: str) -> list[str]:
    # Accepts ".py,.md" strings as well as lists.
    if value is None:
        return []
    if isinstance(value, str):
        return [part for part in value.split(",")]
    if isinstance(value, (list, tuple)):
        output: list[str] = []
        for item in value:
            if not isinstance(item, str):
                raise ConfigError(Messages.ERROR_CONFIG_VALUE_INVALID.format(field=field))
            output.append(item)
        return output
    raise ConfigError(Messages.ERROR_CONFIG_VALUE_INVALID.format(field=field))
