"""
plangraph CLI - MySQL EXPLAIN plan graph builder.

Usage:
    plangraph graph explain.json
    plangraph graph --format json explain.json > graph.json
    mysql -e "EXPLAIN FORMAT=JSON SELECT ..." | plangraph graph -
    plangraph validate explain.json
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel

from plangraph import __version__
from plangraph.config import Config, get_config
from plangraph.engine import PlanGraphService
from plangraph.exceptions import CorruptFieldError, ParseError
from plangraph.output import OutputFormat, build_rich_tree, get_json_schema, render
from plangraph.parser import validate_explain_json

app = typer.Typer(
    name="plangraph",
    help="Turn MySQL EXPLAIN FORMAT=JSON output into a laid-out plan graph",
    no_args_is_help=True,
)

console = Console()
error_console = Console(stderr=True)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"plangraph version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Log pipeline details to stderr.",
        ),
    ] = False,
) -> None:
    """plangraph - MySQL EXPLAIN plan graph builder."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=error_console, show_path=False)],
        force=True,
    )


def _read_input(explain_file: str) -> str:
    """Read EXPLAIN text from a file, or stdin when given '-'."""
    if explain_file == "-":
        return sys.stdin.read()

    path = Path(explain_file)
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        raise ParseError(f"Cannot read file: {path}", detail=str(e), source="file_read") from e


def _report_parse_error(e: ParseError) -> None:
    error_console.print(f"[red]Error:[/red] {escape(e.message)}")
    if e.detail:
        error_console.print(f"\n[dim]{escape(e.detail)}[/dim]")


@app.command()
def graph(
    explain_file: Annotated[
        str,
        typer.Argument(help="Path to EXPLAIN FORMAT=JSON output, or '-' for stdin"),
    ],
    output_format: Annotated[
        OutputFormat,
        typer.Option(
            "--format",
            "-f",
            help="Output format",
        ),
    ] = OutputFormat.TEXT,
    strict: Annotated[
        Optional[bool],
        typer.Option(
            "--strict/--lenient",
            help="Fail on non-numeric cost/row fields instead of zeroing them "
            "(default: PLANGRAPH_STRICT_NUMBERS, else lenient)",
            show_default=False,
        ),
    ] = None,
) -> None:
    """
    Build the plan graph and print it.

    Examples:

        $ mysql -e "EXPLAIN FORMAT=JSON SELECT * FROM users" > explain.json
        $ plangraph graph explain.json
        $ plangraph graph --format json explain.json
    """
    base = get_config()
    config = base
    if strict is not None:
        config = Config(
            parser=base.parser.model_copy(update={"strict_numbers": strict}),
            layout=base.layout,
        )

    try:
        text = _read_input(explain_file)
        result = PlanGraphService(config).build(text)
    except ParseError as e:
        _report_parse_error(e)
        raise typer.Exit(code=1)
    except CorruptFieldError as e:
        error_console.print(f"[red]Error:[/red] {escape(e.message)}")
        raise typer.Exit(code=1)

    if output_format == OutputFormat.TEXT:
        console.print(build_rich_tree(result))
        console.print(
            f"\n[dim]{len(result.nodes)} nodes, {len(result.edges)} edges, "
            f"critical path of {len(result.critical_path)}[/dim]"
        )
        for cf in result.corrupt_fields:
            console.print(
                f"[yellow]Zeroed corrupt field[/yellow] "
                f"{cf.field}={escape(repr(cf.value))} on {cf.node_id}"
            )
        return

    # Machine-readable formats go to stdout untouched
    typer.echo(render(result, output_format))


@app.command()
def validate(
    explain_file: Annotated[
        str,
        typer.Argument(help="Path to EXPLAIN FORMAT=JSON output, or '-' for stdin"),
    ],
) -> None:
    """Check that a file is MySQL EXPLAIN JSON without building the graph."""
    try:
        text = _read_input(explain_file)
    except ParseError as e:
        _report_parse_error(e)
        raise typer.Exit(code=1)

    result = validate_explain_json(text, get_config().parser)
    if not result.valid:
        error_console.print(f"[red]Invalid:[/red] {escape(result.error)}")
        raise typer.Exit(code=1)

    console.print(Panel(
        "[green]Valid MySQL EXPLAIN JSON[/green]",
        title="plangraph",
        border_style="green",
    ))


@app.command()
def schema() -> None:
    """Print the JSON Schema of `graph --format json` output."""
    typer.echo(json.dumps(get_json_schema(), indent=2))


if __name__ == "__main__":
    app()
