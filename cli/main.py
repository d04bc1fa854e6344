from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape

from achistory import get_version
from achistory.errors import AcHistoryError
from cli.commands.history import app as history_app
from cli.utils import build_service

app = typer.Typer(help="Access control tool installation history CLI")
app.add_typer(history_app, name="history")


@app.callback(invoke_without_command=True)
def root(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None, "--config", envvar="ACHISTORY_CONFIG", help="YAML config file"
    ),
    store: Optional[Path] = typer.Option(None, "--store", help="Repository JSON file"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level"),
):
    """Top-level CLI. Shows help when no subcommand is given."""
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()
    if ctx.invoked_subcommand == "version":
        return
    try:
        service = build_service(config, store, log_level)
    except AcHistoryError as e:
        Console().print(f"[red]❌ {escape(str(e))}[/red]")
        raise typer.Exit(1)
    ctx.obj = {"service": service}


@app.command("version")
def version_command():
    """Print the package version."""
    typer.echo(get_version())


# Entry point
if __name__ == "__main__":  # pragma: no cover
    app()
