"""Exception types raised by askrepo."""

from __future__ import annotations

from .text import Messages


class AskRepoError(ValueError):
    """Raised when askrepo input or state is invalid."""


class ConfigError(AskRepoError):
    """Raised when a configuration value fails validation."""


class IndexWriteError(AskRepoError):
    """Raised when the index cannot be persisted; the previous index stays intact."""

    def __init__(self, path, reason: str) -> None:
        super().__init__(Messages.ERROR_INDEX_WRITE.format(path=path, reason=reason))
        self.path = path
        self.reason = reason
