"""
CLI: ``kvstores config``: configuration inspection.
"""

from __future__ import annotations

import typer

from kvstores.cli.utils import console

app = typer.Typer(no_args_is_help=True)


@app.command("show")
def show_config(
    format: str = typer.Option("table", "--format", "-f", help="Output format: table, json, env"),
) -> None:
    """Show current configuration."""
    from kvstores.config import get_settings

    try:
        settings = get_settings()
    except ValueError as e:
        console.print(f"[red]Configuration Error:[/red] {e}")
        raise typer.Exit(code=1) from e

    data = settings.model_dump(mode="json")
    if data.get("redis_password"):
        data["redis_password"] = "***"

    if format == "json":
        console.print_json(data=data)
        return

    if format == "env":
        for key, value in sorted(data.items()):
            console.print(f"KVSTORES_{key.upper()}={value}", markup=False)
        return

    from rich.table import Table

    console.print(f"[bold]Backend:[/bold] {settings.backend.value}")
    table = Table()
    table.add_column("Setting")
    table.add_column("Value")
    for key, value in sorted(data.items()):
        table.add_row(key, str(value))
    console.print(table)
