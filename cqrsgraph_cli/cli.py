"""Typer-based CLI for CQRS architecture analysis."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from . import __version__, config
from .analyzer import CQRSAnalyzer
from .config_manager import AnalyzerOptions, load_options, save_options
from .errors import CQRSGraphError
from .models import IssueSeverity

console = Console()

app = typer.Typer(
    help="🧭 CQRS Graph: map command/query/event buses and their handlers.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"CQRS Graph v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    )
):
    """CQRS Graph: find who dispatches and who handles each message type."""
    pass


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False, show_time=False)],
        force=True,
    )


def _load(config_file: Optional[Path], **overrides) -> AnalyzerOptions:
    try:
        return load_options(config_file, **overrides)
    except CQRSGraphError as exc:
        raise typer.BadParameter(str(exc))


@app.command("analyze")
def analyze(
    src: Optional[str] = typer.Option(None, "--src", "-s", help="Source directory to analyze."),
    out: Optional[str] = typer.Option(None, "--out", "-o", help="Output directory for results."),
    max_edges: Optional[int] = typer.Option(
        None, "--max-edges", "-m", help="Maximum number of edges to keep (0 = no limit)."
    ),
    formats: Optional[str] = typer.Option(
        None, "--formats", "-f", help="Diagram formats to generate (comma-separated: mermaid, dot)."
    ),
    report: Optional[bool] = typer.Option(None, "--report/--no-report", help="Write the Markdown report."),
    json_output: Optional[bool] = typer.Option(None, "--json/--no-json", help="Write a JSON dump of the results."),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", help="Parallel extraction workers."),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to a .cqrsgraph.toml file."),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging."),
):
    """Analyze a TypeScript/NestJS source tree and write report + diagrams."""
    _setup_logging(verbose)
    options = _load(
        config_file,
        src_dir=src,
        out_dir=out,
        max_edges=max_edges,
        formats=formats,
        report=report,
        json=json_output,
        workers=workers,
    )

    try:
        run = CQRSAnalyzer(options).analyze()
    except (CQRSGraphError, FileNotFoundError) as exc:
        console.print(f"[red]Error running analysis:[/red] {exc}")
        raise typer.Exit(code=1)

    metrics = run.architecture.metrics
    issues = run.architecture.issues

    summary = Table(title="Analysis Summary", show_header=False)
    summary.add_column("Metric", style="cyan")
    summary.add_column("Value", justify="right")
    summary.add_row("Classes", str(metrics.total_classes))
    summary.add_row("Events", str(metrics.total_events))
    summary.add_row("Issues found", str(len(issues)))
    summary.add_row("Files generated", str(len(run.output_files)))
    console.print(summary)

    if issues:
        console.print("Issues by severity:")
        console.print(f"  [red]Errors:[/red]   {len(run.architecture.issues_by_severity(IssueSeverity.ERROR))}")
        console.print(f"  [yellow]Warnings:[/yellow] {len(run.architecture.issues_by_severity(IssueSeverity.WARNING))}")
        console.print(f"  Info:     {len(run.architecture.issues_by_severity(IssueSeverity.INFO))}")

    console.print(f"See detailed results in: {Path(options.out_dir).resolve()}")


@app.command("edges")
def edges(
    src: Optional[str] = typer.Option(None, "--src", "-s", help="Source directory to analyze."),
    max_edges: Optional[int] = typer.Option(None, "--max-edges", "-m", help="Maximum number of edges (0 = no limit)."),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to a .cqrsgraph.toml file."),
):
    """Print extracted bus usages and handler declarations."""
    options = _load(config_file, src_dir=src, max_edges=max_edges)
    try:
        result = CQRSAnalyzer(options).extract()
    except (CQRSGraphError, FileNotFoundError) as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1)

    if not result.total_edges:
        typer.echo("No bus usages or handler declarations found.")
        raise typer.Exit(code=0)

    usages = Table(title=f"Bus usages ({len(result.bus_usages)})")
    for column in ("Class", "Method", "Bus", "Message", "Location"):
        usages.add_column(column)
    for u in result.bus_usages:
        usages.add_row(
            u.class_name, u.method_name or "-", u.bus_type, u.event_type,
            f"{u.source_file}:{u.position.line}",
        )
    console.print(usages)

    handlers = Table(title=f"Handler declarations ({len(result.handler_declarations)})")
    for column in ("Class", "Handler", "Message", "Location"):
        handlers.add_column(column)
    for h in result.handler_declarations:
        handlers.add_row(
            h.class_name, h.handler_type, h.event_type, f"{h.source_file}:{h.position.line}",
        )
    console.print(handlers)


@app.command("init")
def init(
    path: Path = typer.Option(Path(config.CONFIG_FILE_NAME), "--path", "-p", help="Config file to create."),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing config."),
):
    """Write a default .cqrsgraph.toml."""
    if path.exists() and not force:
        typer.echo(f"{path} already exists (use --force to overwrite).")
        raise typer.Exit(code=1)
    written = save_options(AnalyzerOptions(), path)
    typer.echo(f"Wrote default configuration to {written}")


if __name__ == "__main__":
    app()
