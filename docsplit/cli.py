"""CLI commands for docsplit."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import replace
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from docsplit import __version__, mime
from docsplit.config import DocsplitConfig, OutputVerbosity, load_config
from docsplit.errors import DocumentNotFoundError, MinimumChunkSizeError, StoreError
from docsplit.retrieval import ContextRetriever, DocumentIndexer
from docsplit.splitter import JsonStructuralSplitter, SourceSplitter, reconstruct
from docsplit.store import SQLiteChunkStore

console = Console()

MAIN_HELP = """
[bold cyan]docsplit[/] - Structure-aware document splitting for retrieval

Splits source code and JSON along their syntax tree into lossless,
hierarchical chunks, stores them in SQLite and reassembles context
around search hits.

[bold yellow]Quick Start:[/]
  docsplit split src/app.ts
  docsplit index src/*.py --library mylib --version 1.0
  docsplit context 12 40 --library mylib --version 1.0

Run [bold]docsplit <command> --help[/] for detailed help on any command.
"""

app = typer.Typer(
    name="docsplit",
    help=MAIN_HELP,
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

_LOG_LEVELS = {
    OutputVerbosity.QUIET: logging.ERROR,
    OutputVerbosity.NORMAL: logging.WARNING,
    OutputVerbosity.VERBOSE: logging.DEBUG,
}


def _load_config(verbose: bool = False) -> DocsplitConfig:
    """Load the user configuration and route log records through rich."""
    config = load_config()
    level = logging.DEBUG if verbose else _LOG_LEVELS[config.output.verbosity]
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
    if not config.output.color_enabled:
        console.no_color = True
    return config


def _read(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        console.print(f"[red]Error:[/red] Cannot read {path}: {e}")
        raise typer.Exit(1)


def _resolve_mime(path: Path, mime_type: str | None) -> str | None:
    return mime.normalize(mime_type) if mime_type else mime.detect_mime_type(path)


def _format_path(path: tuple[str, ...] | list[str]) -> str:
    return " > ".join(path) if path else "[dim](global)[/dim]"


def _line_count(content: str) -> int:
    return content.count("\n") + (0 if content.endswith("\n") else 1)


@app.command()
def split(
    file: Path = typer.Argument(
        ...,
        help="File to split",
        exists=True,
        dir_okay=False,
        metavar="FILE",
    ),
    mime_type: str | None = typer.Option(
        None,
        "--mime",
        "-m",
        help="MIME type (detected from the file extension if omitted)",
        metavar="TYPE",
    ),
    as_json: bool = typer.Option(
        False,
        "--json",
        help="Print the chunks as JSON",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show debug logging",
    ),
) -> None:
    """
    Split a file into structural chunks.

    [bold yellow]Examples:[/]
      docsplit split src/app.ts
      docsplit split script.txt --mime text/x-python --json
    """
    config = _load_config(verbose)
    content = _read(file)
    resolved = _resolve_mime(file, mime_type)
    try:
        chunks = SourceSplitter(config=config).split(content, resolved)
    except MinimumChunkSizeError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if as_json:
        print(json.dumps([chunk.to_dict() for chunk in chunks], indent=2, ensure_ascii=False))
        return

    table = Table(title=f"{file.name} ({resolved or 'unknown type'})")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Section path", style="cyan")
    table.add_column("Level", justify="right")
    table.add_column("Types")
    table.add_column("Lines", justify="right")
    table.add_column("Chars", justify="right")

    for index, chunk in enumerate(chunks):
        table.add_row(
            str(index),
            _format_path(chunk.section.path),
            str(chunk.section.level),
            ", ".join(sorted(t.value for t in chunk.types)),
            str(_line_count(chunk.content)),
            str(len(chunk.content)),
        )

    console.print(table)
    console.print(f"[dim]{len(chunks)} chunks[/dim]")


@app.command()
def verify(
    files: list[Path] = typer.Argument(
        ...,
        help="Files to check",
        exists=True,
        dir_okay=False,
        metavar="FILE...",
    ),
    mime_type: str | None = typer.Option(
        None,
        "--mime",
        "-m",
        help="MIME type for all files (detected per file if omitted)",
        metavar="TYPE",
    ),
) -> None:
    """
    Check that splitting each file is lossless.

    JSON is checked on its lossless route, since annotated JSON pieces
    carry path comments that are not part of the file.

    Exits with status 1 if any file does not reconstruct exactly.

    [bold yellow]Example:[/]
      docsplit verify src/*.ts
    """
    config = _load_config()
    lossless_json = replace(config.splitter.json, lossless=True)
    config = replace(config, splitter=replace(config.splitter, json=lossless_json))
    splitter = SourceSplitter(config=config)
    failures = 0

    for file in files:
        content = _read(file)
        chunks = splitter.split(content, _resolve_mime(file, mime_type))
        if reconstruct(chunks) == content:
            console.print(f"[green]OK[/green]   {file} ({len(chunks)} chunks)")
        else:
            failures += 1
            console.print(f"[red]FAIL[/red] {file} ({len(chunks)} chunks)")

    if failures:
        console.print(f"[red]{failures} of {len(files)} files did not reconstruct[/red]")
        raise typer.Exit(1)


@app.command(name="json")
def json_split(
    file: Path = typer.Argument(
        ...,
        help="JSON file to split",
        exists=True,
        dir_okay=False,
        metavar="FILE",
    ),
) -> None:
    """
    Split a JSON file into path-annotated pieces.

    Each member is printed with a [cyan]// Path:[/cyan] comment naming its
    position in the document.

    [bold yellow]Example:[/]
      docsplit json package.json
    """
    config = _load_config()
    splitter = JsonStructuralSplitter.from_config(config)

    try:
        pieces = splitter.split(_read(file))
    except MinimumChunkSizeError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    for index, piece in enumerate(pieces):
        console.print(
            Panel(
                Text(piece),
                title=f"[bold cyan]{index}[/bold cyan]",
                title_align="left",
                border_style="dim",
            )
        )


async def _index_files(
    config: DocsplitConfig,
    files: list[Path],
    library: str,
    version: str,
    mime_type: str | None,
) -> int:
    total = 0
    async with SQLiteChunkStore(config.store) as store:
        indexer = DocumentIndexer(SourceSplitter(config=config), store)
        for file in files:
            documents = await indexer.index_document(
                library,
                version,
                file.resolve().as_uri(),
                _read(file),
                _resolve_mime(file, mime_type),
            )
            console.print(f"[green]Indexed[/green] {file} ({len(documents)} chunks)")
            total += len(documents)
    return total


@app.command()
def index(
    files: list[Path] = typer.Argument(
        ...,
        help="Files to index",
        exists=True,
        dir_okay=False,
        metavar="FILE...",
    ),
    library: str = typer.Option(
        ...,
        "--library",
        "-l",
        help="Library the files belong to",
        metavar="NAME",
    ),
    version: str = typer.Option(
        "",
        "--version",
        help="Library version",
        metavar="VERSION",
    ),
    mime_type: str | None = typer.Option(
        None,
        "--mime",
        "-m",
        help="MIME type for all files (detected per file if omitted)",
        metavar="TYPE",
    ),
) -> None:
    """
    Split files and store their chunks.

    Re-indexing a file replaces its previous chunks.

    [bold yellow]Example:[/]
      docsplit index src/*.py --library mylib --version 1.0
    """
    config = _load_config()
    try:
        total = asyncio.run(_index_files(config, files, library, version, mime_type))
    except (StoreError, MinimumChunkSizeError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    console.print(f"[dim]{total} chunks stored in {config.store.resolved_path()}[/dim]")


async def _show_chunk(config: DocsplitConfig, chunk_id: str):
    async with SQLiteChunkStore(config.store) as store:
        return await store.require_by_id(chunk_id)


@app.command()
def show(
    chunk_id: str = typer.Argument(
        ...,
        help="Chunk id",
        metavar="CHUNK_ID",
    ),
) -> None:
    """
    Show a stored chunk and its metadata.

    [bold yellow]Example:[/]
      docsplit show 42
    """
    config = _load_config()
    try:
        document = asyncio.run(_show_chunk(config, chunk_id))
    except DocumentNotFoundError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    lines = [
        f"[bold]URL:[/bold] {document.url}",
        f"[bold]MIME type:[/bold] {document.mime_type or 'unknown'}",
        f"[bold]Path:[/bold] {_format_path(document.path)}",
        f"[bold]Level:[/bold] {document.level}",
        f"[bold]Types:[/bold] {', '.join(document.types)}",
        f"[bold]Order:[/bold] {document.sort_order}",
    ]
    console.print(
        Panel(
            Text.from_markup("\n".join(lines)),
            title=f"[bold cyan]Chunk {document.id}[/bold cyan]",
            border_style="cyan",
        )
    )
    console.print(Text(document.content))


async def _assemble(config: DocsplitConfig, library: str, version: str, chunk_ids: list[str]):
    async with SQLiteChunkStore(config.store) as store:
        retriever = ContextRetriever(store, config)
        return await retriever.assemble_by_ids(
            library, version, [(chunk_id, None) for chunk_id in chunk_ids]
        )


@app.command()
def context(
    chunk_ids: list[str] = typer.Argument(
        ...,
        help="Ids of the hit chunks",
        metavar="CHUNK_ID...",
    ),
    library: str = typer.Option(
        ...,
        "--library",
        "-l",
        help="Library the chunks belong to",
        metavar="NAME",
    ),
    version: str = typer.Option(
        "",
        "--version",
        help="Library version",
        metavar="VERSION",
    ),
) -> None:
    """
    Assemble retrieval context around stored chunks.

    Treats the given chunks as search hits and prints one assembled
    context per document.

    [bold yellow]Example:[/]
      docsplit context 12 40 --library mylib --version 1.0
    """
    config = _load_config()
    try:
        contexts = asyncio.run(_assemble(config, library, version, chunk_ids))
    except DocumentNotFoundError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    for assembled in contexts:
        console.print(
            Panel(
                Text(assembled.content),
                title=f"[bold cyan]{assembled.url}[/bold cyan]",
                subtitle=f"[dim]{len(assembled.chunk_ids)} chunks[/dim]",
                border_style="cyan",
            )
        )


# Config subcommand group
config_app = typer.Typer(
    name="config",
    help="Manage docsplit configuration",
    no_args_is_help=True,
)
app.add_typer(config_app, name="config")


@config_app.command(name="show")
def config_show() -> None:
    """
    Show current configuration.

    Displays all configuration settings from ~/.docsplit/config.toml
    or shows defaults if no config file exists.

    [bold yellow]Example:[/]
      docsplit config show
    """
    from docsplit.config import DEFAULT_CONFIG_PATH

    config = load_config()
    config_exists = DEFAULT_CONFIG_PATH.exists()

    splitter = config.splitter
    assembly = config.assembly
    lines = [
        f"[bold]Config file:[/bold] {DEFAULT_CONFIG_PATH}",
        f"[bold]Status:[/bold] {'[green]exists[/green]' if config_exists else '[yellow]using defaults[/yellow]'}",
        "",
        "[bold cyan]Splitter[/bold cyan]",
        f"  Max chunk size: {splitter.max_chunk_size}",
        f"  JSON max nesting depth: {splitter.json.max_nesting_depth}",
        f"  JSON max chunks: {splitter.json.max_chunks}",
        f"  JSON lossless: {splitter.json.lossless}",
        "",
        "[bold cyan]Parser[/bold cyan]",
        f"  Tree-sitter size limit: {config.parser.tree_sitter_size_limit}",
        "",
        "[bold cyan]Assembly[/bold cyan]",
        f"  Max parent chain depth: {assembly.max_parent_chain_depth}",
        f"  Child chunk limit: {assembly.child_chunk_limit}",
        f"  Fallback child limit: {assembly.fallback_child_limit}",
        f"  Prose siblings / children: {assembly.prose_sibling_limit} / {assembly.prose_child_limit}",
        "",
        "[bold cyan]Store[/bold cyan]",
        f"  Database: {config.store.resolved_path()}",
        f"  Busy timeout: {config.store.busy_timeout}ms",
        f"  Journal mode: {config.store.journal_mode.value}",
        "",
        "[bold cyan]Output[/bold cyan]",
        f"  Verbosity: {config.output.verbosity.value}",
        f"  Color: {config.output.color_enabled}",
    ]

    console.print(
        Panel(
            Text.from_markup("\n".join(lines)),
            title="[bold cyan]docsplit Configuration[/bold cyan]",
            border_style="cyan",
        )
    )


@config_app.command(name="init")
def config_init(
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Overwrite existing config file",
    ),
) -> None:
    """
    Create a default configuration file.

    Creates ~/.docsplit/config.toml with default settings.

    [bold yellow]Examples:[/]

      [dim]# Create default config[/]
      docsplit config init

      [dim]# Overwrite existing config[/]
      docsplit config init --force
    """
    from docsplit.config import (
        DEFAULT_CONFIG_PATH,
        ensure_config_dir,
        generate_default_config,
    )

    ensure_config_dir()

    if DEFAULT_CONFIG_PATH.exists() and not force:
        console.print(f"[yellow]Config file already exists:[/yellow] {DEFAULT_CONFIG_PATH}")
        console.print("Use --force to overwrite.")
        return

    DEFAULT_CONFIG_PATH.write_text(generate_default_config())
    console.print(f"[green]Created config file:[/green] {DEFAULT_CONFIG_PATH}")


@config_app.command(name="path")
def config_path() -> None:
    """
    Show configuration file path.

    [bold yellow]Example:[/]
      code $(docsplit config path)
    """
    from docsplit.config import DEFAULT_CONFIG_PATH

    console.print(str(DEFAULT_CONFIG_PATH))


@app.command(name="version")
def show_version() -> None:
    """Show version number."""
    console.print(f"docsplit v{__version__}")


if __name__ == "__main__":
    app()
