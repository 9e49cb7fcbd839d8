"""Typer-based CLI for CodeSweep dead-code analysis."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .analyzer import AnalysisSetupError, CodeSweepAnalyzer
from .config_manager import load_settings
from .models import AnalysisResult, ContextReport

console = Console()

app = typer.Typer(
    help="🧹 CodeSweep: find unreachable files and unused code in JS/TS monorepos.",
    add_completion=False,
    rich_markup_mode="rich",
)


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"CodeSweep v{__version__}")
        raise typer.Exit()


def configure_logging(verbose: bool, quiet: bool) -> None:
    level = logging.DEBUG if verbose else logging.ERROR if quiet else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False, show_time=False)],
        force=True,
    )


@app.command()
def sweep(
    directory: Optional[Path] = typer.Option(
        None, "--dir", "-d", exists=True, file_okay=False,
        help="Root directory to analyze (default: current directory).",
    ),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", dir_okay=False, help="Write the JSON report to this file.",
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the JSON report instead of tables."),
    scope_aware: Optional[bool] = typer.Option(
        None, "--scope-aware/--name-based",
        help="Only count references from the declaring file and its importers.",
    ),
    lenient_parse: Optional[bool] = typer.Option(
        None, "--lenient-parse/--strict-parse",
        help="Keep partial syntax trees for files with syntax errors.",
    ),
    fuzzy: Optional[bool] = typer.Option(
        None, "--fuzzy/--no-fuzzy",
        help="Follow file names mentioned in source text during reachability.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-V", help="Show debug logging."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only log errors."),
    version: Optional[bool] = typer.Option(
        None, "--version", "-v", help="Show version and exit.",
        callback=version_callback, is_eager=True,
    ),
):
    """Analyze client/server packages for unreachable files and unused code."""
    configure_logging(verbose, quiet)
    root = (directory or Path.cwd()).resolve()
    settings = load_settings(
        root,
        scope_aware=scope_aware,
        lenient_parse=lenient_parse,
        fuzzy_references=fuzzy,
    )

    try:
        result = CodeSweepAnalyzer(root, settings).run()
    except AnalysisSetupError as exc:
        console.print(f"[red]✗[/red] {escape(str(exc))}")
        raise typer.Exit(code=1)

    report = result.to_dict()
    if output is not None:
        output.write_text(json.dumps(report, indent=2), encoding="utf-8")

    if as_json:
        typer.echo(json.dumps(report, indent=2))
        return

    render_result(result)
    if output is not None:
        console.print(f"\n📄 Detailed report saved to {escape(str(output))}")


# ---------------------------------------------------------------------------
# Console rendering
# ---------------------------------------------------------------------------

def render_result(result: AnalysisResult) -> None:
    console.print("\n[bold green]🎉 Analysis complete[/bold green]\n")

    table = Table(title="Summary", show_header=True, show_lines=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Entry points", str(len(result.entry_points)))
    table.add_row("Total files", str(result.total_files))
    table.add_row("Reachable files", str(result.reachable_files))
    for name, report in result.contexts.items():
        table.add_row(f"{name.capitalize()} issues", str(report.total))
    table.add_row("Total issues", str(result.total_issues))
    console.print(table)

    for name, report in result.contexts.items():
        _render_context(name, report)

    if result.parse_failures:
        console.print(f"\n[yellow]⚠️  {len(result.parse_failures)} files could not be parsed[/yellow]")

    if result.total_issues == 0:
        console.print("\n[green]✨ No unused code found in your project.[/green]")


def _render_context(name: str, report: ContextReport) -> None:
    lines = []
    if report.unused_files:
        lines.append(f"[red]❌ Unused files ({len(report.unused_files)}):[/red]")
        lines.extend(f"  • {escape(path)}" for path in report.unused_files)
    if report.unused_functions:
        lines.append(f"[red]❌ Unused functions ({len(report.unused_functions)}):[/red]")
        lines.extend(f"  • {escape(f.name)} ({f.kind}) in {escape(f.file)}" for f in report.unused_functions)
    if report.unused_variables:
        lines.append(f"[red]❌ Unused variables ({len(report.unused_variables)}):[/red]")
        lines.extend(f"  • {escape(v.name)} in {escape(v.file)}" for v in report.unused_variables)
    if report.unused_imports:
        lines.append(f"[red]❌ Unused imports ({len(report.unused_imports)}):[/red]")
        lines.extend(f'  • {escape(i.name)} from "{escape(i.source)}" in {escape(i.file)}' for i in report.unused_imports)
    for issue in report.schema_issues:
        if issue.issue_type == "unused_model":
            lines.append(f"[red]❌ Unused model: {escape(issue.model)}[/red]")
        else:
            names = escape(", ".join(f.name for f in issue.fields))
            lines.append(f"[red]❌ Model {escape(issue.model)} has unused fields: {names}[/red]")
    if not lines:
        lines.append(f"[green]✅ No unused code found in {name}[/green]")

    console.print(
        Panel("\n".join(lines), title=f"[bold cyan]{name.upper()}[/bold cyan]", border_style="cyan")
    )


if __name__ == "__main__":
    app()
