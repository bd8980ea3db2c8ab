"""CLI package for masqctl.

This package contains the Typer application and all subcommands.
"""

from masqctl.cli.main import app

__all__ = ["app"]
