"""Helpers for formatting CLI output safely across terminals."""

from __future__ import annotations

import sys

from rich.console import Console


def _encoding_supports(text: str, encoding: str | None) -> bool:
    if not encoding:
        return False
    try:
        text.encode(encoding)
    except (LookupError, UnicodeEncodeError):
        return False
    return True


def supports_unicode_output(console: Console | None = None) -> bool:
    sample = "✓⚠"
    if console is not None and _encoding_supports(sample, console.encoding):
        return True
    return _encoding_supports(sample, sys.stdout.encoding)


def format_freshness(stale: bool, console: Console | None = None) -> str:
    """Return a rich-markup marker telling whether a source is still fresh."""
    if supports_unicode_output(console):
        return "[yellow]⚠ stale[/yellow]" if stale else "[green]✓[/green]"
    return "[yellow]STALE[/yellow]" if stale else "[green]OK[/green]"


def format_lines(line_start: int, line_end: int) -> str:
    if line_start == line_end:
        return str(line_start)
    return f"{line_start}-{line_end}"
