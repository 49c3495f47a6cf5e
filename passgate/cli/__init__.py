"""CLI application setup using Typer.

Provides the command-line interface for Passgate operations.
"""

from passgate.cli.main import app

__all__ = ["app"]
