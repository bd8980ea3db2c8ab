"""Ensure command implementation.

Makes the main config load the managed file last.
"""

import typer

from masqctl.cli.types import is_quiet, open_cache
from masqctl.conf.errors import MasqConfigError
from masqctl.conf.writer import ManagedConfigWriter
from masqctl.utils.formatting import print_error, print_info, print_success

app = typer.Typer(
    help="Make the main config include the managed file.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def ensure_include(ctx: typer.Context) -> None:
    """Append a conf-file line for the managed file to the main config."""
    if ctx.invoked_subcommand is not None:
        return

    with open_cache(ctx) as cache:
        try:
            changed = ManagedConfigWriter(cache).ensure_managed_include()
        except MasqConfigError as e:
            print_error(str(e))
            raise typer.Exit(code=1) from e
        main_path = cache.main_path

    if is_quiet(ctx):
        return
    if changed:
        print_success(f"Managed file is now included last by {main_path}")
    else:
        print_info(f"{main_path} already includes the managed file last.")
