"""
CLI utility helpers: store lifecycle and output formatting.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import typer
from redis.exceptions import RedisError
from rich.console import Console
from rich.table import Table

from kvstores.errors import KVStoreError
from kvstores.store import KVStore

console = Console()
err_console = Console(stderr=True)


# ── Store helper ─────────────────────────────────────────────────────────


@contextmanager
def open_store() -> Iterator[KVStore]:
    """Yield the configured store; report store errors and exit with code 1."""
    from kvstores.config import create_store, get_settings

    try:
        store = create_store(get_settings())
    except KVStoreError as e:
        err_console.print(f"[bold red]Error[/bold red] ({e.category.value}): {e.message}")
        raise typer.Exit(code=1) from e
    except ValueError as e:
        err_console.print(f"[bold red]Configuration Error:[/bold red] {e}")
        raise typer.Exit(code=1) from e

    try:
        yield store
    except KVStoreError as e:
        err_console.print(f"[bold red]Error[/bold red] ({e.category.value}): {e.message}")
        raise typer.Exit(code=1) from e
    except RedisError as e:
        err_console.print(f"[bold red]Error[/bold red] (REDIS): {e}")
        raise typer.Exit(code=1) from e
    finally:
        store.close()


def parse_fields(pairs: list[str]) -> dict[str, str]:
    """Turn ``["a=1", "b=2"]`` into ``{"a": "1", "b": "2"}``."""
    fields: dict[str, str] = {}
    for pair in pairs:
        name, sep, value = pair.partition("=")
        if not sep or not name:
            raise typer.BadParameter(f"expected FIELD=VALUE, got {pair!r}")
        fields[name] = value
    return fields


# ── Output helpers ───────────────────────────────────────────────────────


def output_value(value: Any, *, as_json: bool = False, title: str = "") -> None:
    """Render a scalar, map or list read from a store."""
    if as_json:
        console.print_json(json.dumps(value, default=str))
        return

    if value is None:
        console.print("[dim](nil)[/dim]")
    elif isinstance(value, dict):
        _print_map(value, title=title)
    elif isinstance(value, list):
        if not value:
            console.print("[dim]No items.[/dim]")
        for i, item in enumerate(value, 1):
            console.print(f"{i}) {item}")
    else:
        console.print(str(value), markup=False)


def _print_map(data: dict[str, Any], *, title: str = "") -> None:
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    table.add_column("field", style="cyan")
    table.add_column("value", overflow="fold")
    for k, v in data.items():
        table.add_row(str(k), str(v))
    console.print(table)
