"""Main CLI application entry point.

Defines the Typer application and global options.
"""

import logging
from pathlib import Path
from typing import Annotated

import typer

from masqctl import __version__
from masqctl.cli.commands import ensure, files, hosts, option, settings, show
from masqctl.core.settings import SettingsError, load_settings_or_default
from masqctl.utils.formatting import print_error

# Create main Typer app
app = typer.Typer(
    name="masqctl",
    help="Inspect and edit a dnsmasq configuration.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"masqctl version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Main dnsmasq config file (overrides settings).",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose output.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress non-essential output.",
        ),
    ] = False,
) -> None:
    """masqctl - Inspect and edit a dnsmasq configuration.

    Shows the effective value of every option and where it is set, and
    edits the one config file masqctl manages.
    """
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

    try:
        loaded = load_settings_or_default()
    except SettingsError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if config is not None:
        loaded = loaded.model_copy(update={"main_config_path": config})

    # Store options in context for subcommands
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["settings"] = loaded


# Register commands
app.add_typer(files.app, name="files")
app.add_typer(show.app, name="show")
app.add_typer(hosts.app, name="hosts")
app.add_typer(option.app, name="option")
app.add_typer(ensure.app, name="ensure")
app.add_typer(settings.app, name="settings")


if __name__ == "__main__":
    app()
