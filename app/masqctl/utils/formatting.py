"""Rich console formatting utilities.

Provides consistent formatting for CLI output using Rich.
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table

from masqctl.core.theme import get_theme

if TYPE_CHECKING:
    from masqctl.conf.provenance import ValueProvenance


def _detect_color_system() -> str | None:
    """Detect the best color system for the current terminal.

    Returns "truecolor" for interactive terminals to enable full hex color support,
    None otherwise to let Rich auto-detect.
    """
    if sys.stdout.isatty():
        return "truecolor"
    return None


# Shared console instances (theme loaded once at import)
console = Console(theme=get_theme(), color_system=_detect_color_system())
err_console = Console(theme=get_theme(), stderr=True, color_system=_detect_color_system())


def create_table(title: str, *columns: str) -> Table:
    """Create a pre-configured table with the shared styling.

    Args:
        title: Table title.
        *columns: Column headers, added in order.

    Returns:
        Rich Table with zebra striping and themed header.
    """
    table = Table(
        title=title,
        show_header=True,
        header_style="bold_header",
        border_style="border",
        row_styles=["", "on grey7"],
    )
    for column in columns:
        table.add_column(column)
    return table


def format_source(source: ValueProvenance | None) -> str:
    """Format a value's provenance with managed/readonly markup.

    Args:
        source: Provenance of the value, or None when the option is unset.

    Returns:
        Rich markup naming the file (and line) that set the value.
    """
    if source is None:
        return "[muted]-[/]"
    location = source.file_name
    if source.line_number is not None:
        location = f"{location}:{source.line_number}"
    if source.is_managed:
        return f"[managed]{location}[/]"
    return f"[readonly]{location} (readonly)[/]"


def format_flag(enabled: bool) -> str:
    """Format a flag value with on/off markup."""
    if enabled:
        return "[flag_on]on[/]"
    return "[flag_off]off[/]"


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[info]{message}[/]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    err_console.print(f"[warning]Warning:[/] {message}")


def print_error(message: str) -> None:
    """Print an error message."""
    err_console.print(f"[error]Error:[/] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[success]{message}[/]")
