"""CLI commands for masqctl.

This package contains all subcommand implementations.
"""

from masqctl.cli.commands import ensure, files, hosts, option, settings, show

__all__ = ["ensure", "files", "hosts", "option", "settings", "show"]
