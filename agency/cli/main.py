"""Main CLI entry point using Typer."""

from pathlib import Path

import anyio
import typer
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from agency import __version__
from agency.cli.plan import Plan
from agency.core.config import get_settings
from agency.core.errors import CreationError
from agency.core.logging import configure_logging
from agency.expression import parse_expression
from agency.journal import JournalMode
from agency.scheduling import Agency, RunReport

app = typer.Typer(
    name="agency",
    help="Agency - dependency-gated task scheduler",
    add_completion=False,
    rich_markup_mode="rich",
)

console = Console()

STATE_COLORS = {
    "completed": "green",
    "dispatched": "yellow",
    "pending": "dim",
}


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold blue]Agency[/bold blue] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """
    Agency - run units of work gated by boolean dependency expressions.
    """


@app.command()
def check(
    expression: str = typer.Argument(..., help="Dependency expression to validate"),
    owner: str | None = typer.Option(
        None,
        "--id",
        "-i",
        help="Id of the task owning the expression (detects self dependency)",
    ),
) -> None:
    """
    Validate a dependency expression and show its tokens.

    Example:
        agency check "id1 && (id2 || !id3)" --id id4
    """
    try:
        parsed = parse_expression(expression, owner)
    except CreationError as e:
        console.print(f"[bold red]{e.code}[/bold red]: {e.message}")
        raise typer.Exit(code=1) from e

    if parsed.is_empty:
        console.print("[dim]Empty expression: no dependencies[/dim]")
        return

    table = Table(title="Tokens")
    table.add_column("#", style="cyan")
    table.add_column("Token", style="bold")
    table.add_column("Kind")

    for index, token in enumerate(parsed.tokens, start=1):
        kind = "dependency" if token in parsed.dependency_ids else "operator"
        table.add_row(str(index), token, kind)

    console.print(table)
    console.print(f"Dependencies: [bold]{', '.join(parsed.dependency_ids)}[/bold]")


@app.command()
def run(
    plan_path: Path = typer.Argument(..., help="Path to a JSON task plan"),
    mode: JournalMode | None = typer.Option(
        None,
        "--mode",
        "-m",
        help="Journal mode (defaults to AGENCY_LOG_MODE)",
    ),
    report: Path | None = typer.Option(
        None,
        "--report",
        "-r",
        help="Journal report file for log mode",
    ),
) -> None:
    """
    Run the tasks described in a JSON plan.

    Exits with code 1 if a halt-on-failure task stopped the run.

    Example:
        agency run plan.json --mode log --report run.json
    """
    settings = get_settings()
    configure_logging(settings)

    try:
        plan = Plan.load(plan_path)
    except (OSError, ValidationError) as e:
        console.print(f"[bold red]Could not load plan {plan_path}:[/bold red] {e}")
        raise typer.Exit(code=1) from e

    agency = Agency(mode=mode, report_target=report, settings=settings)
    try:
        plan.build(agency)
    except (ImportError, AttributeError, ValueError) as e:
        console.print(f"[bold red]Could not resolve task work:[/bold red] {e}")
        raise typer.Exit(code=1) from e

    console.print(
        Panel(
            f"[bold]Plan:[/bold] {plan_path}\n[bold]Tasks:[/bold] {len(plan.tasks)}",
            title="[bold blue]Agency[/bold blue]",
            border_style="blue",
        )
    )

    result: RunReport = anyio.run(agency.run)
    _print_report(result)

    if result.halted:
        raise typer.Exit(code=1)


def _print_report(result: RunReport) -> None:
    table = Table(title="Run Report")
    table.add_column("Task", style="bold")
    table.add_column("State")
    table.add_column("Outcome")
    table.add_column("Detail")

    for summary in result.tasks:
        color = STATE_COLORS.get(summary.state.value, "white")
        if not summary.enabled:
            outcome = "[red]disabled[/red]"
        elif summary.succeeded is None:
            outcome = "-"
        elif summary.succeeded:
            outcome = "[green]ok[/green]"
        else:
            outcome = "[red]failed[/red]"
        detail = summary.error or summary.result or ""
        table.add_row(
            summary.id,
            f"[{color}]{summary.state.value}[/{color}]",
            outcome,
            detail[:60] + "..." if len(detail) > 60 else detail,
        )

    console.print(table)

    if result.halted:
        console.print(f"\n[bold red]Run halted by task {result.halted_by}[/bold red]")
    else:
        console.print("\n[bold green]Run completed[/bold green]")

    if result.report_path:
        console.print(f"[dim]Journal report: {result.report_path}[/dim]")


if __name__ == "__main__":
    app()
