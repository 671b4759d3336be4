"""
CLI Interface
=============
Command-line interface for the DOCX question engine.

Usage:
    python -m docx_parser convert <docx_path> [options]
    python -m docx_parser batch <directory> [options]
    python -m docx_parser inspect <docx_path>
    python -m docx_parser serve [options]
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeRemainingColumn,
)
from rich.table import Table

from . import __version__
from .builder import DEFAULT_CATEGORY, DEFAULT_MEDIA_URL_TEMPLATE
from .engine import ConversionEngine, ConverterConfig
from .exceptions import ConversionError
from .line_extractor import LineExtractor
from .models import QuestionType
from .segmenter import BlockSegmenter

console = Console()


@click.group()
@click.version_option(version=__version__, prog_name="docx-parser")
def cli():
    """DOCX Question Parser: numbered exam questions to structured JSON."""
    pass


@cli.command()
@click.argument("docx_path", type=click.Path(exists=True))
@click.option(
    "--output", "-o",
    default="output",
    help="Output directory for converted data",
)
@click.option(
    "--diagnostics", "-d",
    is_flag=True,
    default=False,
    help="Write the full record with diagnostics (<name>.full.json)",
)
@click.option(
    "--category", "-c",
    default=DEFAULT_CATEGORY,
    help="Category assigned to every question",
)
@click.option(
    "--media-url-template",
    default=DEFAULT_MEDIA_URL_TEMPLATE,
    help="Media URL pattern, {index} is replaced by the question index",
)
@click.option(
    "--category-stats",
    is_flag=True,
    default=False,
    help="Include per-category counts in stats",
)
@click.option(
    "--log-level",
    default="INFO",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Logging level",
)
@click.option(
    "--log-file",
    default=None,
    help="Path to log file",
)
@click.option(
    "--json-output",
    is_flag=True,
    default=False,
    help="Output only JSON result to stdout (for programmatic use)",
)
def convert(
    docx_path: str,
    output: str,
    diagnostics: bool,
    category: str,
    media_url_template: str,
    category_stats: bool,
    log_level: str,
    log_file: str,
    json_output: bool,
):
    """Convert a single .docx file into structured questions."""

    if json_output:
        # Suppress console output for JSON mode
        log_level = "ERROR"

    config = ConverterConfig(
        output_dir=output,
        category=category,
        media_url_template=media_url_template,
        category_stats=category_stats,
        log_level=log_level,
        log_file=log_file,
    )

    if not json_output:
        console.print()
        console.print(
            Panel.fit(
                f"[bold cyan]DOCX Question Parser v{__version__}[/]\n"
                f"[dim]Converting: {os.path.basename(docx_path)}[/]",
                border_style="cyan",
            )
        )
        console.print()

    try:
        engine = ConversionEngine(config)
        result = engine.convert_file(docx_path)

        if json_output:
            print(json.dumps(
                result.to_payload(with_diagnostics=diagnostics),
                indent=2,
                ensure_ascii=False,
            ))
            return

        saved = engine.save(
            result,
            Path(docx_path).stem,
            with_diagnostics=diagnostics,
        )
        _display_stats_table(result.stats.model_dump())
        _display_diagnostics_table(
            [d.model_dump(mode="json") for d in result.unparsed]
        )
        console.print(f"[dim]Saved: {saved}[/]")
        console.print()

    except FileNotFoundError as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)
    except ConversionError as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)
    except Exception as e:
        console.print(f"[red]Unexpected error:[/] {e}")
        if log_level == "DEBUG":
            console.print_exception()
        sys.exit(1)


@cli.command()
@click.argument("directory", type=click.Path(exists=True))
@click.option("--output", "-o", default="output", help="Output directory")
@click.option("--diagnostics", "-d", is_flag=True, default=False,
              help="Write full records with diagnostics")
@click.option("--category", "-c", default=DEFAULT_CATEGORY, help="Category")
@click.option("--log-level", default="WARNING", help="Logging level")
def batch(
    directory: str,
    output: str,
    diagnostics: bool,
    category: str,
    log_level: str,
):
    """Batch convert all .docx files in a directory."""

    docx_files = sorted(Path(directory).glob("*.docx"))

    if not docx_files:
        console.print(f"[yellow]No .docx files found in: {directory}[/]")
        return

    console.print()
    console.print(
        Panel.fit(
            f"[bold cyan]Batch DOCX Converter[/]\n"
            f"[dim]Found {len(docx_files)} documents in: {directory}[/]",
            border_style="cyan",
        )
    )
    console.print()

    config = ConverterConfig(
        output_dir=output,
        category=category,
        log_level=log_level,
    )
    engine = ConversionEngine(config)

    results = []
    errors = []

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeRemainingColumn(),
        console=console,
    ) as progress:
        task = progress.add_task(
            "Processing documents...", total=len(docx_files)
        )

        for docx_file in docx_files:
            progress.update(
                task,
                description=f"Converting: {docx_file.name}",
            )

            try:
                result = engine.convert_file(str(docx_file))
                engine.save(result, docx_file.stem, with_diagnostics=diagnostics)
                results.append((docx_file.name, result))
            except (ConversionError, OSError) as e:
                errors.append((docx_file.name, str(e)))

            progress.advance(task)

    _display_batch_summary(results, errors)


@cli.command()
@click.argument("docx_path", type=click.Path(exists=True))
def inspect(docx_path: str):
    """Show how a .docx file is segmented into question blocks."""

    try:
        lines = LineExtractor().extract_document(docx_path)
    except ConversionError as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)

    blocks = BlockSegmenter().segment(lines)

    console.print()
    table = Table(
        title=f"Blocks in {os.path.basename(docx_path)}",
        border_style="cyan",
    )
    table.add_column("#", justify="right")
    table.add_column("Number", justify="right")
    table.add_column("Lines", justify="right")
    table.add_column("First Line")

    for position, block in enumerate(blocks, start=1):
        number = block.declared_number
        table.add_row(
            str(position),
            str(number) if number is not None else "[yellow]-[/]",
            str(len(block.lines)),
            block.first_text[:80],
        )

    console.print(table)
    console.print(
        f"[dim]{len(lines)} lines, {len(blocks)} blocks[/]"
    )
    console.print()


@cli.command()
@click.option("--host", default="0.0.0.0", help="Server host")
@click.option("--port", default=5000, type=int, help="Server port")
@click.option("--debug", is_flag=True, default=False, help="Debug mode")
def serve(host: str, port: int, debug: bool):
    """Start the HTTP conversion service."""
    from .server import run_server

    console.print()
    console.print(
        Panel.fit(
            f"[bold cyan]DOCX Question Service[/]\n"
            f"[dim]Starting on {host}:{port}[/]",
            border_style="cyan",
        )
    )
    console.print()

    run_server(host=host, port=port, debug=debug)


# ─── Display Helpers ──────────────────────────────────────────────────────────


def _display_stats_table(stats: dict):
    """Display conversion stats as a rich table."""
    table = Table(title="Conversion Report", border_style="green")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_column("Status", justify="center")

    total = stats.get("totalBlocks", 0)
    parsed = stats.get("parsed", 0)
    unparsed = stats.get("unparsed", 0)

    table.add_row(
        "Total Blocks",
        str(total),
        "[green]✓[/]" if total > 0 else "[red]✗[/]",
    )
    table.add_row(
        "Parsed Questions",
        str(parsed),
        "[green]✓[/]" if parsed == total else "[red]✗[/]",
    )
    table.add_row(
        "Diagnostic Entries",
        str(unparsed),
        "[green]✓[/]" if unparsed == 0 else "[yellow]⚠[/]",
    )

    for category, count in sorted((stats.get("categories") or {}).items()):
        table.add_row(f"Category: {category}", str(count), "")

    console.print(table)
    console.print()


def _display_diagnostics_table(entries: list[dict]):
    """Display diagnostic entries, if any."""
    if not entries:
        return

    table = Table(title="Diagnostics", border_style="yellow")
    table.add_column("Index", justify="right")
    table.add_column("Reason", style="bold")
    table.add_column("Note")
    table.add_column("Sample")

    for entry in entries:
        index = entry.get("index")
        table.add_row(
            str(index) if index is not None else "-",
            entry["reason"],
            entry.get("note", ""),
            (entry.get("sample") or "")[:60],
        )

    console.print(table)
    console.print()


def _display_batch_summary(results, errors):
    """Display batch processing summary."""
    console.print()

    table = Table(title="Batch Processing Summary", border_style="cyan")
    table.add_column("Document", style="bold")
    table.add_column("Questions", justify="right")
    table.add_column("Multiple Choice", justify="right")
    table.add_column("Diagnostics", justify="right")
    table.add_column("Status", justify="center")

    total_questions = 0
    total_diagnostics = 0

    for name, result in results:
        q_count = len(result.questions)
        mc_count = sum(
            1 for q in result.questions
            if q.type == QuestionType.MULTIPLE_CHOICE
        )
        diag_count = result.stats.unparsed

        total_questions += q_count
        total_diagnostics += diag_count

        status = "[green]✓[/]" if diag_count == 0 else "[yellow]⚠[/]"
        table.add_row(
            name,
            str(q_count),
            str(mc_count),
            str(diag_count),
            status,
        )

    for name, error in errors:
        table.add_row(
            name,
            "-",
            "-",
            "-",
            "[red]✗ FAILED[/]",
        )

    console.print(table)

    for name, error in errors:
        console.print(f"[red]✗ {escape(name)}:[/] {escape(error)}")

    console.print()
    console.print(
        f"[bold]Total:[/] {total_questions} questions from "
        f"{len(results)} documents, {total_diagnostics} diagnostics, "
        f"{len(errors)} failures"
    )
    console.print()


# ─── Entry point (for python -m docx_parser.cli) ──────────────────────────────


if __name__ == "__main__":
    cli()
