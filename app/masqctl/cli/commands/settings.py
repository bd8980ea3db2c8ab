"""Settings commands.

Shows the effective masqctl settings and writes a settings file.
"""

import json
from typing import Annotated

import typer

from masqctl.cli.types import OutputFormat, get_settings
from masqctl.core.paths import get_settings_path
from masqctl.core.settings import SettingsError, save_settings
from masqctl.utils.formatting import console, create_table, print_error, print_success

app = typer.Typer(
    help="Show and initialize masqctl settings.",
    invoke_without_command=True,
    no_args_is_help=True,
)


@app.command("show")
def show_settings(
    ctx: typer.Context,
    output_format: Annotated[
        OutputFormat,
        typer.Option(
            "--format",
            "-f",
            help="Output format.",
            case_sensitive=False,
        ),
    ] = OutputFormat.TABLE,
) -> None:
    """Show the effective settings."""
    settings = get_settings(ctx)
    data = {
        "settings_file": str(get_settings_path()),
        "main_config_path": str(settings.main_config_path),
        "managed_file_path": str(settings.managed_file_path),
        "managed_hosts_file_path": str(settings.managed_hosts_file_path),
        "watch": settings.watch,
    }

    if output_format == OutputFormat.JSON:
        console.print_json(json.dumps(data))
        return

    table = create_table("masqctl Settings", "Setting", "Value")
    for key, value in data.items():
        table.add_row(key, "[muted]-[/]" if value is None else str(value))
    console.print(table)


@app.command("init")
def init_settings(
    ctx: typer.Context,
    force: Annotated[
        bool,
        typer.Option("--force", help="Overwrite an existing settings file."),
    ] = False,
) -> None:
    """Write the current settings to the settings file."""
    path = get_settings_path()
    if path.exists() and not force:
        print_error(f"Settings file already exists: {path}")
        console.print("Use --force to overwrite.")
        raise typer.Exit(code=1)

    try:
        saved = save_settings(get_settings(ctx), path)
    except SettingsError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    print_success(f"Settings written to {saved}")
