"""Command line interface for askrepo."""

from __future__ import annotations

import json
import sys
from difflib import get_close_matches
from enum import Enum
from pathlib import Path
from typing import Any, Callable

import click
import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from typer.core import TyperGroup

from . import __version__, api
from .config import (
    clear_config,
    config_path,
    load_config,
    parse_assignment,
    resolve_root,
    update_config_from_json,
)
from .log import configure_logging
from .output import format_freshness, format_lines
from .services.cache_service import load_index_safe, stale_paths
from .text import Messages, Styles
from .utils import format_path

console = Console()


class DefaultQueryGroup(TyperGroup):
    """Treat unknown subcommands as a question for `query`."""

    def resolve_command(
        self,
        ctx: click.Context,
        args: list[str],
    ) -> tuple[str | None, click.Command | None, list[str]]:
        original_args = list(args)
        try:
            return super().resolve_command(ctx, args)
        except click.UsageError:
            if not original_args:
                raise
            token = original_args[0]
            if token.startswith("-"):
                raise
            if self.commands and get_close_matches(token, list(self.commands), cutoff=0.8):
                raise
            command = self.get_command(ctx, "query")
            if command is None:
                raise
            return "query", command, original_args


app = typer.Typer(
    help=Messages.APP_HELP,
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
    cls=DefaultQueryGroup,
)


class OutputFormat(str, Enum):
    rich = "rich"
    json = "json"


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"askrepo v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help=Messages.HELP_VERBOSE),
) -> None:
    """Global Typer callback for shared options."""
    configure_logging(verbose=verbose)


@app.command()
def setup(
    path: Path | None = typer.Option(None, "--path", "-p", help=Messages.HELP_PATH),
    full: bool = typer.Option(False, "--full", help=Messages.HELP_SETUP_FULL),
    output_format: OutputFormat = typer.Option(
        OutputFormat.rich,
        "--format",
        help=Messages.HELP_FORMAT,
    ),
) -> None:
    """Build the index, or refresh only the files that changed."""
    result = api.setup(path, full=full)
    _emit(result, output_format, _render_setup)


@app.command()
def query(
    question: str | None = typer.Argument(None, help=Messages.HELP_QUESTION),
    path: Path | None = typer.Option(None, "--path", "-p", help=Messages.HELP_PATH),
    top: int | None = typer.Option(None, "--top", "-k", help=Messages.HELP_QUERY_TOP),
    stdin: bool = typer.Option(False, "--stdin", help=Messages.HELP_QUERY_STDIN),
    output_format: OutputFormat = typer.Option(
        OutputFormat.rich,
        "--format",
        help=Messages.HELP_FORMAT,
    ),
) -> None:
    """Rank indexed chunks against a question."""
    payload: Any = sys.stdin.read() if stdin else {"question": question or ""}
    result = api.run(payload, path, top_k=top)
    _emit(result, output_format, _render_query)


@app.command()
def meta() -> None:
    """Print tool metadata as JSON."""
    typer.echo(json.dumps(api.meta(), ensure_ascii=False, indent=2))


@app.command()
def status(
    path: Path | None = typer.Option(None, "--path", "-p", help=Messages.HELP_PATH),
    output_format: OutputFormat = typer.Option(
        OutputFormat.rich,
        "--format",
        help=Messages.HELP_FORMAT,
    ),
) -> None:
    """Summarize the stored index and list files changed since setup."""
    try:
        root = resolve_root(path)
    except OSError as exc:
        _fail(str(exc), output_format)
    index, records = load_index_safe(root)
    if index is None:
        if output_format == OutputFormat.json:
            typer.echo(json.dumps({"ok": True, "data": {"status": "needs_setup"}}))
        else:
            console.print(_styled(Messages.INFO_STATUS_MISSING.format(path=root), Styles.WARNING))
        raise typer.Exit(code=0)

    changed = stale_paths(root, records)
    indexed_files = sum(1 for record in records.values() if not record.skipped)
    summary = {
        "status": "ok",
        "version": index.version,
        "generated_at": index.generated_at,
        "files": indexed_files,
        "chunks": len(index.chunks),
        "tokens": len(index.idf) if index.idf is not None else None,
        "idf": not index.is_legacy,
        "stale": changed,
    }
    if output_format == OutputFormat.json:
        typer.echo(json.dumps({"ok": True, "data": summary}, ensure_ascii=False))
        return
    tokens = summary["tokens"] if summary["tokens"] is not None else "-"
    console.print(
        Messages.INFO_STATUS_SUMMARY.format(
            version=index.version,
            generated=index.generated_at or "-",
            files=indexed_files,
            chunks=len(index.chunks),
            tokens=tokens,
            idf="yes" if summary["idf"] else "no (legacy uniform weights)",
        )
    )
    for rel_path in changed:
        console.print(_styled(f"{format_freshness(True, console)} {escape(rel_path)}", Styles.WARNING))


@app.command()
def config(
    path: Path | None = typer.Option(None, "--path", "-p", help=Messages.HELP_PATH),
    show: bool = typer.Option(False, "--show", help=Messages.HELP_CONFIG_SHOW),
    assignments: list[str] | None = typer.Option(
        None,
        "--set",
        help=Messages.HELP_CONFIG_SET,
    ),
    reset: bool = typer.Option(False, "--reset", help=Messages.HELP_CONFIG_RESET),
) -> None:
    """View or change the per-directory configuration."""
    try:
        root = resolve_root(path)
        if reset:
            clear_config(root)
            console.print(_styled(Messages.INFO_CONFIG_RESET, Styles.SUCCESS))
        if assignments:
            updates = dict(parse_assignment(item) for item in assignments)
            update_config_from_json(root, updates)
            console.print(
                _styled(Messages.INFO_CONFIG_SAVED.format(path=config_path(root)), Styles.SUCCESS)
            )
        if show or not (assignments or reset):
            _render_config(load_config(root).to_dict())
    except (ValueError, OSError) as exc:
        console.print(_styled(escape(str(exc)), Styles.ERROR))
        raise typer.Exit(code=1)


def _emit(
    result: api.ToolResult,
    output_format: OutputFormat,
    render: Callable[[dict], None],
) -> None:
    if output_format == OutputFormat.json:
        typer.echo(json.dumps(result.to_dict(), ensure_ascii=False))
    elif not result.ok:
        console.print(_styled(escape(result.error or ""), Styles.ERROR))
    else:
        render(result.data or {})
    if not result.ok:
        raise typer.Exit(code=1)


def _fail(message: str, output_format: OutputFormat) -> None:
    if output_format == OutputFormat.json:
        typer.echo(json.dumps({"ok": False, "error": message}, ensure_ascii=False))
    else:
        console.print(_styled(escape(message), Styles.ERROR))
    raise typer.Exit(code=1)


def _render_setup(data: dict) -> None:
    if data.get("status") == "up_to_date":
        console.print(_styled(Messages.INFO_SETUP_NOOP, Styles.INFO))
        return
    console.print(
        _styled(
            Messages.INFO_SETUP_DONE.format(
                indexed=data.get("files_indexed", 0),
                skipped=data.get("files_skipped", 0),
                pruned=data.get("files_pruned", 0),
                total=data.get("total_chunks", 0),
                size=data.get("index_size_kb", 0),
                duration=data.get("duration_ms", 0),
            ),
            Styles.SUCCESS,
        )
    )
    if data.get("index_path"):
        console.print(_styled(Messages.INFO_INDEX_SAVED.format(path=data["index_path"]), Styles.INFO))


def _render_query(data: dict) -> None:
    sources = data.get("sources") or []
    style = Styles.SUCCESS if sources else Styles.WARNING
    console.print(_styled(escape(data.get("answer", "")), style))
    if not sources:
        return
    table = Table(title=Messages.TABLE_TITLE, show_header=True, header_style=Styles.TABLE_HEADER)
    table.add_column(Messages.TABLE_HEADER_INDEX, justify="right")
    table.add_column(Messages.TABLE_HEADER_SCORE, justify="right")
    table.add_column(Messages.TABLE_HEADER_PATH, overflow="fold")
    table.add_column(Messages.TABLE_HEADER_LINES, justify="right")
    table.add_column(Messages.TABLE_HEADER_STALE, justify="center")
    table.add_column(Messages.TABLE_HEADER_EXCERPT, overflow="fold")
    for idx, source in enumerate(sources, start=1):
        start, end = source["lines"]
        table.add_row(
            str(idx),
            f"{source['score']:.3f}",
            escape(format_path(source["path"], Path("."))),
            format_lines(start, end),
            format_freshness(bool(source.get("stale")), console),
            escape(_format_excerpt(source["excerpt"])),
        )
    console.print(table)


def _render_config(values: dict) -> None:
    table = Table(show_header=True, header_style=Styles.TABLE_HEADER)
    table.add_column("Key")
    table.add_column("Value", overflow="fold")
    for key, value in values.items():
        if isinstance(value, list):
            display = ", ".join(value) if value else "-"
        else:
            display = str(value)
        table.add_row(key, display)
    console.print(table)


def _styled(text: str, style: str) -> str:
    return f"[{style}]{text}[/{style}]"


def _format_excerpt(text: str, limit: int = 160) -> str:
    snippet = " ".join(text.split())
    if not snippet:
        return "-"
    if len(snippet) <= limit:
        return snippet
    return snippet[: limit - 3].rstrip() + "..."


def run(argv: list[str] | None = None) -> None:
    """Entry point wrapper allowing optional argument override."""
    if argv is None:
        app()
    else:
        app(args=list(argv))
