"""
fsprocessor CLI - file system operations from async-hooks captures.

Usage:
    fsprocessor process capture.json
    fsprocessor process --json --kind fs.readFile capture.json
    fsprocessor kinds
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from fsprocessor import __version__
from fsprocessor.capture import load_activities
from fsprocessor.classify.signatures import load_signature_table
from fsprocessor.engine import Engine
from fsprocessor.exceptions import CaptureError, ConfigurationError, ProcessorError
from fsprocessor.processors import get_registry
from fsprocessor.processors.base import describe

app = typer.Typer(
    name="fsprocessor",
    help="Reconstruct file system operations from async-hooks activity captures",
    no_args_is_help=True,
)

console = Console()
error_console = Console(stderr=True)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"fsprocessor version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """fsprocessor - file system operations from async-hooks captures."""
    pass


@app.command()
def process(
    capture_file: Annotated[
        Path,
        typer.Argument(
            help="Path to the activity capture (JSON)",
            exists=True,
            readable=True,
            resolve_path=True,
        ),
    ],
    json_output: Annotated[
        bool,
        typer.Option("--json", "-j", help="Output the report as JSON"),
    ] = False,
    include_activities: Annotated[
        bool,
        typer.Option("--include-activities", help="Attach raw activities to each step"),
    ] = False,
    separate_functions: Annotated[
        bool,
        typer.Option(
            "--separate/--no-separate",
            help="Collect user functions on each operation",
        ),
    ] = True,
    merge_functions: Annotated[
        bool,
        typer.Option(
            "--merge/--no-merge",
            help="Merge user functions sharing a source location",
        ),
    ] = True,
    kinds: Annotated[
        Optional[list[str]],
        typer.Option("--kind", "-k", help="Only process these kinds (repeatable)"),
    ] = None,
    signatures_file: Annotated[
        Optional[Path],
        typer.Option(
            "--signatures",
            help="JSON signature table to classify with",
            exists=True,
            readable=True,
        ),
    ] = None,
) -> None:
    """
    Process an activity capture and report the operations found.

    Examples:

        $ fsprocessor process capture.json

        $ fsprocessor process --json --no-merge capture.json > report.json
    """
    try:
        store = load_activities(capture_file)
        signatures = load_signature_table(signatures_file) if signatures_file else None
        engine = Engine(
            include_kinds=set(kinds) if kinds else None,
            signatures=signatures,
        )
        report = engine.process(
            store,
            include_activities=include_activities,
            separate_functions=separate_functions,
            merge_functions=merge_functions,
        )
    except CaptureError as e:
        error_console.print(f"[red]Error:[/red] {e.message}")
        if e.detail:
            error_console.print(f"\n[dim]{e.detail}[/dim]")
        raise typer.Exit(code=1)
    except (ConfigurationError, ProcessorError) as e:
        error_console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(code=1)

    if json_output:
        console.print_json(json.dumps(report.to_dict()))
        return

    if not report.entries:
        console.print(Panel(
            "[yellow]No file system operations found.[/yellow]\n\n"
            f"Processed {report.metadata.activity_count} activities.",
            title="fsprocessor",
            border_style="yellow",
        ))
        return

    table = Table(title=f"{len(report.entries)} operation(s)")
    table.add_column("Kind", style="cyan")
    table.add_column("Id", justify="right")
    table.add_column("Time alive", justify="right")
    table.add_column("Steps", justify="right")
    table.add_column("User functions", justify="right")
    table.add_column("Created at", style="dim")

    for entry in report.entries:
        operation = entry.operation
        table.add_row(
            entry.kind,
            str(entry.id),
            operation.life_cycle.time_alive.ms,
            str(len(operation.step_ids())),
            str(len(operation.user_functions or [])),
            operation.created_at or "-",
        )

    console.print(table)

    for run in report.failed_runs:
        console.print(f"[red][FAIL][/red] {run.kind}: {run.error_summary}")

    console.print(f"[dim]{report.summary()}[/dim]")


@app.command()
def kinds() -> None:
    """List the registered operation kinds in execution order."""
    table = Table(title="Operation kinds")
    table.add_column("Kind", style="cyan")
    table.add_column("Steps", justify="right")
    table.add_column("Version")
    table.add_column("Description", style="dim")

    for processor_cls in get_registry().ordered():
        info = describe(processor_cls)
        table.add_row(info["kind"], str(info["steps"]), info["version"], info["description"])

    console.print(table)


if __name__ == "__main__":
    app()
