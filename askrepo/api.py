"""Public Python API for askrepo.

Every entry point returns a :class:`ToolResult` instead of raising, so the
CLI and any embedding tool runner share one envelope:
``{"ok": bool, "data"?: ..., "error"?: str, "duration_ms": int}``.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Tuple

from . import __version__
from .config import Config, config_from_json, load_config, resolve_root
from .errors import AskRepoError
from .services.index_service import build_index
from .services.search_service import QueryRequest, perform_query
from .text import Messages

logger = logging.getLogger(__name__)

TOOL_NAME = "askrepo"
TOOL_DISPLAY_NAME = "Ask Repo"
TOOL_DESCRIPTION = (
    "Answer questions about a source tree by ranking indexed code chunks "
    "with IDF-weighted keyword overlap."
)
TOOL_SETUP_DESCRIPTION = (
    "Walks the source tree and writes a chunk index under .askrepo/index; "
    "re-running it only re-reads files whose mtime or size changed."
)

ConfigInput = Config | Mapping[str, object] | str | None


@dataclass(slots=True)
class ToolResult:
    ok: bool
    data: Dict[str, Any] | None = None
    error: str | None = None
    duration_ms: int = 0

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"ok": self.ok}
        if self.data is not None:
            payload["data"] = self.data
        if self.error is not None:
            payload["error"] = self.error
        payload["duration_ms"] = self.duration_ms
        return payload


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


def _failure(exc: Exception, started: float) -> ToolResult:
    logger.debug("askrepo call failed", exc_info=exc)
    return ToolResult(ok=False, error=str(exc), duration_ms=_elapsed_ms(started))


def _resolve(root: Path | str | None, config: ConfigInput) -> Tuple[Path, Config]:
    root_path = resolve_root(root)
    if isinstance(config, Config):
        return root_path, config
    base = load_config(root_path)
    if config is None:
        return root_path, base
    return root_path, config_from_json(config, base=base)


def parse_payload(payload: Mapping[str, object] | str) -> Tuple[str, int | None]:
    """Extract ``(question, top_k)`` from a query payload.

    Accepts a mapping or a JSON string; ``{"input": {...}}`` envelopes are
    unwrapped.
    """

    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError as exc:
            raise AskRepoError(Messages.ERROR_PAYLOAD_JSON.format(reason=exc.msg)) from exc
    if not isinstance(payload, Mapping):
        raise AskRepoError(Messages.ERROR_PAYLOAD_INVALID)
    if "question" not in payload and isinstance(payload.get("input"), Mapping):
        payload = payload["input"]  # type: ignore[assignment]

    question = payload.get("question")
    if not isinstance(question, str) or not question.strip():
        raise AskRepoError(Messages.ERROR_EMPTY_QUESTION)
    return question.strip(), _check_top_k(payload.get("top_k"))


def _check_top_k(value: object) -> int | None:
    if value is not None and (isinstance(value, bool) or not isinstance(value, int) or value < 1):
        raise AskRepoError(Messages.ERROR_TOP_INVALID)
    return value  # type: ignore[return-value]


def setup(
    root: Path | str | None = None,
    *,
    full: bool = False,
    config: ConfigInput = None,
) -> ToolResult:
    """Build or incrementally refresh the index of *root*."""

    started = time.perf_counter()
    try:
        root_path, settings = _resolve(root, config)
        result = build_index(root_path, settings, full=full)
    except (ValueError, OSError) as exc:
        return _failure(exc, started)
    return ToolResult(ok=True, data=result.to_dict(), duration_ms=_elapsed_ms(started))


def run(
    payload: Mapping[str, object] | str,
    root: Path | str | None = None,
    *,
    config: ConfigInput = None,
    top_k: int | None = None,
) -> ToolResult:
    """Answer one query; ``data`` holds ``answer``, ``sources`` and ``status``.

    A *top_k* argument overrides the ``top_k`` of the payload.
    """

    started = time.perf_counter()
    try:
        question, payload_top_k = parse_payload(payload)
        if top_k is None:
            top_k = payload_top_k
        else:
            top_k = _check_top_k(top_k)
        root_path, settings = _resolve(root, config)
        response = perform_query(
            QueryRequest(root=root_path, question=question, config=settings, top_k=top_k)
        )
    except (ValueError, OSError) as exc:
        return _failure(exc, started)
    return ToolResult(ok=True, data=response.to_dict(), duration_ms=_elapsed_ms(started))


def meta() -> Dict[str, Any]:
    """Describe the tool, its setup step and its input/output schemas."""

    return {
        "name": TOOL_NAME,
        "display_name": TOOL_DISPLAY_NAME,
        "description": TOOL_DESCRIPTION,
        "version": __version__,
        "requires_setup": True,
        "setup_description": TOOL_SETUP_DESCRIPTION,
        "input_schema": {
            "type": "object",
            "properties": {
                "question": {
                    "type": "string",
                    "description": "Question or keywords about the codebase",
                },
                "top_k": {
                    "type": "integer",
                    "minimum": 1,
                    "description": "Maximum number of sources to return",
                },
            },
            "required": ["question"],
        },
        "output_schema": {
            "type": "object",
            "properties": {
                "answer": {"type": "string"},
                "status": {
                    "type": "string",
                    "enum": ["ok", "no_results", "needs_setup"],
                },
                "sources": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "path": {"type": "string"},
                            "lines": {
                                "type": "array",
                                "items": {"type": "integer"},
                                "minItems": 2,
                                "maxItems": 2,
                            },
                            "excerpt": {"type": "string"},
                            "score": {"type": "number"},
                            "stale": {"type": "boolean"},
                        },
                        "required": ["path", "lines", "excerpt", "score"],
                    },
                },
            },
            "required": ["answer", "sources", "status"],
        },
    }
