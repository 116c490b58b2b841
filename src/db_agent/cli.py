"""
Command Line Interface
======================

``db-agent run | analyze | migrate``
"""

from pathlib import Path
from typing import Optional

import typer
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Confirm
from rich.table import Table

from db_agent import __version__
from db_agent.agent import create_agent
from db_agent.analyzer import ProjectAnalyzer
from db_agent.config import AgentSettings, load_settings
from db_agent.errors import AnalysisError, MigrationError
from db_agent.migration import CommandMigrationTrigger
from db_agent.models import AgentRequest, AgentResult, ContextSnapshot, ExecutionPlan
from observability.logging_config import setup_logging

APP_HELP = "Natural-language schema, API and component generation for Next.js + Drizzle projects."

app = typer.Typer(help=APP_HELP, no_args_is_help=True)
console = Console()

PROJECT_ROOT_OPTION = typer.Option(
    None,
    "--project-root",
    "-C",
    help="Project to operate on (default: DB_AGENT_PROJECT_ROOT or the current directory).",
)


def _settings(project_root: Optional[Path]) -> AgentSettings:
    if project_root is not None:
        return load_settings(project_root=project_root)
    return load_settings()


def _configure_logging(verbose: bool) -> None:
    setup_logging(level="DEBUG" if verbose else "WARNING")


def _print_plan(plan: ExecutionPlan) -> None:
    table = Table(box=box.SIMPLE_HEAVY, show_header=True, header_style="bold cyan", padding=(0, 1))
    table.add_column("#", justify="right", width=3)
    table.add_column("Kind", style="bold white")
    table.add_column("Description", style="white")
    table.add_column("Files", style="dim white")

    for index, step in enumerate(plan.steps, start=1):
        table.add_row(
            str(index),
            step.kind,
            escape(step.description),
            "\n".join(step.derived_files) or "-",
        )

    console.print(
        Panel(table, title="[bold cyan]Execution plan[/]", subtitle=escape(plan.description))
    )


def _print_result(result: AgentResult) -> None:
    if result.touched_files:
        heading = "Files that would be written" if result.dry_run else "Files written"
        console.print(f"[bold]{heading}:[/]")
        for path in result.touched_files:
            console.print(f"  [green]+[/] {path}")

    if result.backups:
        console.print(f"[dim]{len(result.backups)} backup(s) saved:[/]")
        for record in result.backups:
            console.print(f"  [dim]{record.source_path} -> {record.backup_path}[/]")

    for warning in result.warnings:
        console.print(f"[yellow]warning:[/] {escape(warning)}")
    for error in result.errors:
        console.print(f"[red]error:[/] {escape(error)}")

    if result.migration_completed:
        console.print("[green]Database migration completed[/]")

    if result.dry_run:
        status = "[cyan]Dry run complete[/]"
    elif result.success:
        status = "[bold green]All changes applied successfully[/]"
    else:
        status = f"[bold red]Completed with {len(result.errors)} error(s)[/]"
    console.print(status)


def _print_snapshot(snapshot: ContextSnapshot, verbose: bool) -> None:
    summary = Table.grid(padding=(0, 2))
    summary.add_column(style="bold")
    summary.add_column()
    summary.add_row("Framework", snapshot.framework)
    summary.add_row("TypeScript", "yes" if snapshot.has_typed_source else "no")
    summary.add_row(
        "Database",
        snapshot.database.provider if snapshot.database else "not detected",
    )
    summary.add_row("Schemas", str(len(snapshot.existing_schemas)))
    summary.add_row("API routes", str(len(snapshot.endpoint_paths)))
    summary.add_row("Components", str(len(snapshot.ui_module_paths)))
    console.print(Panel(summary, title="[bold cyan]Project analysis[/]"))

    if not verbose:
        return

    if snapshot.existing_schemas:
        schemas = Table(box=box.SIMPLE, header_style="bold yellow")
        schemas.add_column("Schema")
        schemas.add_column("Tables")
        schemas.add_column("Path", style="dim")
        for schema in snapshot.existing_schemas:
            schemas.add_row(schema.name, ", ".join(schema.tables), schema.path)
        console.print(schemas)

    listings = (("API routes", snapshot.endpoint_paths), ("Components", snapshot.ui_module_paths))
    for label, paths in listings:
        if paths:
            console.print(f"[bold]{label}:[/]")
            for path in paths:
                console.print(f"  {path}")


@app.command()
def run(
    query: str = typer.Argument(..., help="What to build, in plain language."),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Show the files the plan would touch and stop.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs."),
    skip_analysis: bool = typer.Option(
        False,
        "--skip-analysis",
        help="Plan without analyzing the project.",
    ),
    skip_migration: bool = typer.Option(
        False,
        "--skip-migration",
        help="Never run the database migration.",
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Apply the plan without asking."),
    project_root: Optional[Path] = PROJECT_ROOT_OPTION,
) -> None:
    """Plan and apply a change described in natural language."""
    _configure_logging(verbose)
    agent = create_agent(_settings(project_root))
    request = AgentRequest(
        query=query,
        skip_analysis=skip_analysis,
        skip_migration=skip_migration,
        dry_run=dry_run,
    )

    with console.status("Analyzing project and generating plan..."):
        prepared = agent.prepare(request)

    if not prepared.ok:
        for error in prepared.failure.errors:
            console.print(f"[red]error:[/] {escape(error)}")
        raise typer.Exit(code=1)

    _print_plan(prepared.plan)

    if not dry_run and not yes and not Confirm.ask("[bold]Apply these changes?[/]"):
        console.print("Cancelled, no files were changed.")
        raise typer.Exit(code=0)

    with console.status("Applying changes..."):
        result = agent.execute(prepared, request)

    _print_result(result)
    if not result.success:
        raise typer.Exit(code=1)


@app.command()
def analyze(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="List schemas, routes and components."
    ),
    project_root: Optional[Path] = PROJECT_ROOT_OPTION,
) -> None:
    """Show what the agent knows about the project."""
    _configure_logging(verbose)
    settings = _settings(project_root)

    try:
        snapshot = ProjectAnalyzer(settings.project_root, settings.layout).analyze()
    except AnalysisError as exc:
        console.print(f"[red]Project analysis failed:[/] {escape(str(exc))}")
        raise typer.Exit(code=1) from exc

    _print_snapshot(snapshot, verbose)


@app.command()
def migrate(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs."),
    project_root: Optional[Path] = PROJECT_ROOT_OPTION,
) -> None:
    """Run the configured database migration commands."""
    _configure_logging(verbose)
    settings = _settings(project_root)
    trigger = CommandMigrationTrigger(
        settings.project_root,
        settings.migration_commands,
        settings.migration_timeout_seconds,
    )

    try:
        with console.status("Running database migration..."):
            trigger.run()
    except MigrationError as exc:
        console.print(f"[red]{escape(str(exc))}[/]")
        raise typer.Exit(code=1) from exc

    console.print("[bold green]Database migration completed[/]")


@app.command()
def version() -> None:
    """Print the version."""
    console.print(f"db-agent {__version__}")


if __name__ == "__main__":
    app()
