"""Files command implementation.

Lists the files of the config set in the order dnsmasq loads them.
"""

import json
from typing import Annotated

import typer

from masqctl.cli.types import OutputFormat, open_cache
from masqctl.conf.models import ConfigSet
from masqctl.utils.formatting import console, create_table, print_warning

app = typer.Typer(
    help="List the files of the config set.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def list_files(
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
    """List config files in load order, main file first."""
    if ctx.invoked_subcommand is not None:
        return

    with open_cache(ctx) as cache:
        config_set = cache.get_snapshot().config_set

    if config_set.main_path is None:
        print_warning("No main config path configured.")
        return

    if output_format == OutputFormat.JSON:
        _print_json(config_set)
        return

    _print_table(config_set)


# === Private helper functions ===


def _print_table(config_set: ConfigSet) -> None:
    """Display the config set as a Rich table."""
    table = create_table(f"Config Set ({config_set.main_path})", "#", "Role", "File", "Access")
    for index, config_file in enumerate(config_set.files, start=1):
        access = "[managed]managed[/]" if config_file.is_managed else "[readonly]readonly[/]"
        path = str(config_file.path)
        if not config_file.path.exists():
            path = f"{path} [muted](missing)[/]"
        table.add_row(str(index), config_file.role.value, path, access)
    console.print(table)


def _print_json(config_set: ConfigSet) -> None:
    """Display the config set as JSON."""
    data = [
        {
            "order": index,
            "path": str(f.path),
            "role": f.role.value,
            "managed": f.is_managed,
            "exists": f.path.exists(),
        }
        for index, f in enumerate(config_set.files, start=1)
    ]
    console.print_json(json.dumps(data))
