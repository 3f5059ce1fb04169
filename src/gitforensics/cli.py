"""Command-line interface for gitforensics."""

import logging
import sys
from pathlib import Path
from typing import Optional

import structlog
import typer
from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table

from gitforensics.analysis import (
    analyze_file_sync,
    create_analysis_context,
    get_api_coupling,
    get_content_coupling,
    get_coupled_files,
    get_docs_coupling,
    get_env_coupling,
    get_schema_coupling,
    get_test_coupling,
    get_transitive_coupling,
    get_type_coupling,
    merge_coupling_results,
    render_markdown,
)
from gitforensics.exceptions import InvalidInputError
from gitforensics.memory import extract_from_history, merge_similar_memories, scan_file
from gitforensics.models import Settings

app = typer.Typer(
    name="gitforensics",
    help="File forensics from Git history - coupling, volatility, drift and tacit knowledge",
    add_completion=False,
)
console = Console()

# Content-based coupling engines, in merge priority order
SIGNAL_ENGINES = (
    get_test_coupling,
    get_api_coupling,
    get_schema_coupling,
    get_env_coupling,
    get_docs_coupling,
    get_type_coupling,
    get_transitive_coupling,
    get_content_coupling,
)


def configure_logging(settings: Settings, verbose: bool = False) -> None:
    """Configure structlog for CLI use; log lines go to stderr."""
    level = logging.DEBUG if verbose else getattr(logging, settings.log_level.upper(), logging.INFO)
    renderer = (
        structlog.processors.JSONRenderer()
        if settings.log_json
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=lambda *args: structlog.PrintLogger(sys.stderr),
        cache_logger_on_first_use=False,
    )


def _resolve_file(file_path: Path) -> Path:
    target = file_path.expanduser().resolve()
    if not target.is_file():
        raise InvalidInputError("Target file does not exist", details={"path": str(file_path)})
    return target


@app.command()
def analyze(
    file_path: Path = typer.Argument(..., help="File to analyse"),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Run the full forensic analysis of a file."""
    settings = Settings()
    configure_logging(settings, verbose)
    try:
        target = _resolve_file(file_path)
        context = create_analysis_context(target, settings=settings)
        try:
            report = analyze_file_sync(target, context)
        finally:
            context.close()

        if as_json:
            typer.echo(report.model_dump_json(indent=2))
        else:
            console.print(Markdown(render_markdown(report)))

    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def coupling(
    file_path: Path = typer.Argument(..., help="File to analyse"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Show every file coupled to the target, across all sources."""
    settings = Settings()
    configure_logging(settings, verbose)
    try:
        target = _resolve_file(file_path)
        context = create_analysis_context(target, settings=settings)
        try:
            merged = merge_coupling_results(
                get_coupled_files(target, context),
                *(engine(target, context) for engine in SIGNAL_ENGINES),
            )
            relative = context.relative(target)
        finally:
            context.close()

        if not merged:
            console.print(f"[yellow]No coupled files found for {relative}[/yellow]")
            return

        table = Table(title=f"Coupling for {relative}", show_header=True, header_style="bold magenta")
        table.add_column("File", style="cyan")
        table.add_column("Score", justify="right", style="green")
        table.add_column("Source", style="blue")
        table.add_column("Detail", style="white")

        for item in merged:
            if item.source == "git":
                detail = f"{item.co_change_count} co-changes, last: {item.last_commit_message}"
            else:
                detail = item.reason
            table.add_row(item.file, f"{item.score * 100:.0f}%", item.source, detail)

        console.print(table)

    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def memories(
    file_path: Path = typer.Argument(..., help="File to mine for memories"),
    history: int = typer.Option(50, "--history", "-n", help="Commits of history to scan"),
    min_confidence: int = typer.Option(50, "--min-confidence", help="Minimum confidence (0-100)"),
    threshold: Optional[float] = typer.Option(
        None, "--threshold", "-t", help="Merge similarity threshold (0-1)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Extract warnings, decisions and lessons from comments and commits."""
    settings = Settings()
    configure_logging(settings, verbose)
    try:
        target = _resolve_file(file_path)
        context = create_analysis_context(target, settings=settings)
        try:
            relative = context.relative(target)
            found = scan_file(target.read_text(encoding="utf-8", errors="replace"), relative, min_confidence)
            if history > 0:
                found.extend(
                    m
                    for m in extract_from_history(context.accessor, relative, max_count=history)
                    if m.confidence >= min_confidence
                )
            if threshold is None:
                threshold = context.settings.similarity_threshold
        finally:
            context.close()

        merged = merge_similar_memories(found, threshold)
        if not merged:
            console.print(f"[yellow]No memories found for {relative}[/yellow]")
            return

        table = Table(title=f"Memories for {relative}", show_header=True, header_style="bold magenta")
        table.add_column("Importance", style="red")
        table.add_column("Type", style="blue")
        table.add_column("Conf.", justify="right", style="green")
        table.add_column("Source", style="cyan")
        table.add_column("Summary", style="white")

        for memory in merged:
            reference = memory.source.reference or ""
            if memory.source.kind == "commit_message":
                reference = reference[:7]
            table.add_row(
                memory.importance,
                memory.memory_type,
                str(memory.confidence),
                f"{memory.source.kind} {reference}".strip(),
                memory.summary,
            )

        console.print(table)
        console.print(f"\n[bold green]✓[/bold green] {len(merged)} memories ({len(found)} before merging)")

    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def version() -> None:
    """Show version information."""
    from gitforensics import __version__

    console.print(f"[bold]gitforensics[/bold] version {__version__}")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
