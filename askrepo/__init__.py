"""askrepo package initialization."""

from __future__ import annotations

__version__ = "0.1.0"

from .api import ToolResult, meta, run, setup  # noqa: E402
from .errors import AskRepoError, ConfigError, IndexWriteError  # noqa: E402

__all__ = [
    "__version__",
    "AskRepoError",
    "ConfigError",
    "IndexWriteError",
    "ToolResult",
    "get_version",
    "meta",
    "run",
    "setup",
]


def get_version() -> str:
    """Return the current package version."""
    return __version__
