"""
Root Typer application for the ``kvstores`` CLI.

Every key command opens the store selected by ``KVSTORES_*`` settings, runs
one operation and closes it again. Values given on the command line are text.
"""

from __future__ import annotations

import typer
from typer import Typer

from kvstores.cli.utils import console, open_store, output_value, parse_fields

app = Typer(
    name="kvstores",
    help="kvstores: inspect and edit a key-value store (memory or Redis).",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from kvstores import __version__

        typer.echo(f"kvstores {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    log_level: str = typer.Option("WARNING", "--log-level", help="Store log level."),
) -> None:
    """kvstores CLI: get, set and inspect keys."""
    from kvstores.logging import configure_logging

    configure_logging(level=log_level, json_format=False, service="kvstores-cli")


# ── Scalars ──────────────────────────────────────────────────────────────


@app.command("get")
def get_cmd(
    key: str,
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Print the scalar stored at KEY."""
    with open_store() as store:
        value = store.get(key)
    output_value(value, as_json=json_out)


@app.command("set")
def set_cmd(key: str, value: str) -> None:
    """Store VALUE at KEY."""
    with open_store() as store:
        store.set(key, value)
    console.print("OK")


# ── Maps ─────────────────────────────────────────────────────────────────


@app.command("get-map")
def get_map_cmd(
    key: str,
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Print the map stored at KEY."""
    with open_store() as store:
        value = store.get_map(key)
    output_value(value, as_json=json_out, title=key)


@app.command("set-map")
def set_map_cmd(
    key: str,
    fields: list[str] = typer.Argument(..., help="FIELD=VALUE pairs"),
) -> None:
    """Replace the map at KEY with FIELD=VALUE pairs."""
    values = parse_fields(fields)
    with open_store() as store:
        store.set_map(key, values)
    console.print("OK")


# ── Lists ────────────────────────────────────────────────────────────────


@app.command("get-slice")
def get_slice_cmd(
    key: str,
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Print the list stored at KEY."""
    with open_store() as store:
        value = store.get_slice(key)
    output_value(value, as_json=json_out)


@app.command("set-slice")
def set_slice_cmd(key: str, values: list[str]) -> None:
    """Store VALUES as the list at KEY."""
    with open_store() as store:
        store.set_slice(key, values)
    console.print("OK")


@app.command("append-slice")
def append_slice_cmd(key: str, values: list[str]) -> None:
    """Append VALUES to the list at KEY."""
    with open_store() as store:
        store.append_slice(key, *values)
    console.print("OK")


# ── Keys ─────────────────────────────────────────────────────────────────


@app.command("exists")
def exists_cmd(key: str) -> None:
    """Exit 0 if KEY exists, 1 otherwise."""
    with open_store() as store:
        found = store.exists(key)
    console.print("true" if found else "false")
    if not found:
        raise typer.Exit(code=1)


@app.command("delete")
def delete_cmd(keys: list[str]) -> None:
    """Delete KEYS."""
    with open_store() as store:
        for key in keys:
            store.delete(key)
    console.print("OK")


@app.command("flush")
def flush_cmd(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation."),
) -> None:
    """Remove every key in the configured store."""
    if not yes:
        typer.confirm("Remove every key in the store?", abort=True)
    with open_store() as store:
        store.flush()
    console.print("OK")


# ── Sub-command registration ─────────────────────────────────────────────

from kvstores.cli.config import app as config_app  # noqa: E402

app.add_typer(config_app, name="config", help="Configuration inspection.")
