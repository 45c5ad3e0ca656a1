"""Command-line interface (``kvstores``)."""

from kvstores.cli.app import app

__all__ = ["app"]
