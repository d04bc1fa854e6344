import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from achistory.errors import AcHistoryError
from cli.utils import get_service, write_output

app = typer.Typer(help="Stored installation histories")


def _fail(console: Console, error: AcHistoryError) -> None:
    console.print(f"[red]❌ {escape(str(error))}[/red]")
    raise typer.Exit(1)


@app.command("list")
def history_list(
    ctx: typer.Context,
    plain: bool = typer.Option(False, "--plain", help="One numbered line per entry"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    List stored installation histories, newest first
    """
    console = Console()
    service = get_service(ctx)

    try:
        summaries = service.summaries()
    except AcHistoryError as e:
        _fail(console, e)

    if json_output:
        typer.echo(
            json.dumps(
                [s.model_dump() | {"status": s.status} for s in summaries],
                ensure_ascii=False,
                indent=2,
            )
        )
        return

    if not summaries:
        console.print("[yellow]No history entries found[/yellow]")
        return

    if plain:
        for summary in summaries:
            typer.echo(summary.to_line())
        return

    console.print("\n[bold cyan]Installation History[/bold cyan]\n")

    table = Table(show_header=True)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Entry", style="cyan")
    table.add_column("Installed", style="magenta")
    table.add_column("Time", justify="right", style="yellow")
    table.add_column("Status")

    for summary in summaries:
        status_style = "green" if summary.success else "red"
        table.add_row(
            str(summary.index),
            summary.name,
            summary.installation_date[:19],
            f"{summary.execution_time_ms} ms",
            f"[{status_style}]{summary.status}[/{status_style}]",
        )

    console.print(table)


@app.command("show")
def history_show(
    ctx: typer.Context,
    name: Optional[str] = typer.Argument(None, help="Entry name (defaults to the newest)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show the verbose log"),
    html: bool = typer.Option(False, "--html", help="Render as HTML"),
    out: Optional[Path] = typer.Option(None, "--out", "-o", help="Write the report to a file"),
):
    """
    Show the log of a stored installation
    """
    console = Console()
    service = get_service(ctx)

    if name is None:
        try:
            latest = service.latest()
        except AcHistoryError as e:
            _fail(console, e)
        if latest is None:
            console.print("[yellow]No history entries found[/yellow]")
            raise typer.Exit(1)
        name = latest.name

    if html:
        report = service.render_html(name, include_verbose=verbose)
    else:
        report = service.render_text(name, include_verbose=verbose)
    write_output(report, out)


@app.command("prune")
def history_prune(
    ctx: typer.Context,
    keep: Optional[int] = typer.Option(
        None, "--keep", "-k", min=0, help="Entries to keep (default: configured retention)"
    ),
    force: bool = typer.Option(False, "--force", help="Skip confirmation"),
):
    """
    Delete all but the newest histories
    """
    console = Console()
    service = get_service(ctx)
    keep_count = service.settings.nr_of_histories_to_save if keep is None else keep

    if not force:
        confirm = typer.confirm(f"Keep only the {keep_count} newest histories?")
        if not confirm:
            typer.echo("Cancelled")
            raise typer.Exit()

    try:
        removed = service.prune(keep_count)
    except AcHistoryError as e:
        _fail(console, e)

    for path in removed:
        console.print(f"[dim]removed {path}[/dim]")
    console.print(f"[green]✓ Removed {len(removed)} history entries[/green]")


@app.command("stats")
def history_stats(ctx: typer.Context):
    """
    Show history statistics
    """
    console = Console()
    service = get_service(ctx)

    try:
        stats = service.get_stats()
    except AcHistoryError as e:
        _fail(console, e)

    if stats["total"] == 0:
        console.print("[yellow]No history entries[/yellow]")
        return

    info = f"[cyan]Total Entries:[/cyan] {stats['total']}\n"
    info += f"[cyan]Succeeded:[/cyan] [green]{stats['succeeded']}[/green]\n"
    info += f"[cyan]Failed:[/cyan] [red]{stats['failed']}[/red]\n"
    info += f"[cyan]Oldest:[/cyan] {stats['oldest'] or 'N/A'}\n"
    info += f"[cyan]Newest:[/cyan] {stats['newest'] or 'N/A'}\n"
    info += f"[cyan]Retention:[/cyan] {service.settings.nr_of_histories_to_save}"

    console.print(
        Panel(info, title="[bold cyan]History Statistics[/bold cyan]", border_style="cyan")
    )
