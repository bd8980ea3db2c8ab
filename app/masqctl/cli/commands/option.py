"""Option editing commands.

Sets and unsets options in the managed file, and explains how to change
values that are set in read-only files.
"""

from typing import Annotated

import typer
from rich.markup import escape

from masqctl.cli.types import is_quiet, open_cache
from masqctl.conf.cache import ConfigSetCache
from masqctl.conf.errors import MasqConfigError
from masqctl.conf.options import OptionBehavior, OptionKind, canonical_name, get_behavior, get_kind
from masqctl.conf.provenance import ValueProvenance, readonly_hint
from masqctl.conf.writer import ManagedConfigWriter, OptionChange, OptionValue
from masqctl.utils.formatting import (
    console,
    print_error,
    print_info,
    print_success,
    print_warning,
)

app = typer.Typer(
    help="Set, unset and explain dnsmasq options.",
    invoke_without_command=True,
    no_args_is_help=True,
)


@app.command("set")
def set_option(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Option name (e.g. cache-size).")],
    values: Annotated[
        list[str] | None,
        typer.Argument(help="Value(s); several only for multi-value options."),
    ] = None,
) -> None:
    """Set an option in the managed file."""
    name = canonical_name(name)
    behavior = get_behavior(name)
    values = values or []

    value: OptionValue
    if behavior == OptionBehavior.FLAG:
        if values:
            print_error(f"{name} is a flag and takes no value")
            raise typer.Exit(code=1)
        value = True
    elif behavior == OptionBehavior.MULTI:
        if not values:
            print_error(f"{name} takes at least one value")
            raise typer.Exit(code=1)
        value = list(values)
    else:
        if len(values) > 1:
            print_error(f"{name} takes a single value")
            raise typer.Exit(code=1)
        value = values[0] if values else ""
        if get_kind(name) == OptionKind.INT and not _is_int(value):
            print_error(f"{name} expects an integer, got '{value}'")
            raise typer.Exit(code=1)

    with open_cache(ctx) as cache:
        _apply(cache, OptionChange(option=name, value=value))
        _warn_if_overridden(cache, name)

    if not is_quiet(ctx):
        print_success(f"Set {name} in managed file")


@app.command("unset")
def unset_option(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Option name.")],
) -> None:
    """Remove an option from the managed file."""
    name = canonical_name(name)
    value: OptionValue = False if get_behavior(name) == OptionBehavior.FLAG else None

    with open_cache(ctx) as cache:
        _apply(cache, OptionChange(option=name, value=value))
        _warn_if_overridden(cache, name)

    if not is_quiet(ctx):
        print_success(f"Unset {name} in managed file")


@app.command("hint")
def hint_option(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Option name.")],
    value: Annotated[
        str | None,
        typer.Option("--value", help="Value to use in the suggested override line."),
    ] = None,
) -> None:
    """Explain how to change an option set in a read-only file."""
    name = canonical_name(name)
    with open_cache(ctx) as cache:
        source = cache.get_snapshot().sources.get(name)

    sources = source if isinstance(source, list) else [source] if source is not None else []
    read_only = [s for s in sources if s.is_read_only]
    if not sources:
        print_info(f"{name} is not set in any config file.")
        return
    if not read_only:
        print_info(f"{name} is set in the managed file and can be edited directly.")
        return

    seen: set[str] = set()
    for provenance in read_only:
        if provenance.file_path in seen:
            continue
        seen.add(provenance.file_path)
        hint = readonly_hint(name, provenance, value)
        console.print(f"[readonly]{escape(provenance.read_only_tooltip() or '')}[/]")
        console.print(f"  Remove: [info]{escape(hint.remove_command)}[/]", highlight=False)
        if hint.override_line is not None:
            console.print(
                f"  Or override in the managed file: [managed]{escape(hint.override_line)}[/]",
                highlight=False,
            )


# === Private helper functions ===


def _is_int(value: str) -> bool:
    try:
        int(value.strip())
    except ValueError:
        return False
    return True


def _apply(cache: ConfigSetCache, change: OptionChange) -> None:
    """Write one option change, exiting with an error on failure."""
    try:
        ManagedConfigWriter(cache).apply_option_changes([change])
    except MasqConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e


def _warn_if_overridden(cache: ConfigSetCache, name: str) -> None:
    """Warn when a read-only file still decides the effective value."""
    source = cache.get_snapshot().sources.get(name)
    if isinstance(source, ValueProvenance) and source.is_read_only:
        print_warning(
            f"{name} is still set by a read-only file: {source.read_only_tooltip()} "
            f"Run 'masqctl option hint {name}' for details."
        )
