"""Show command implementation.

Displays the effective value of dnsmasq options together with the file
and line that set each value.
"""

import json
from typing import Annotated, Any

import typer
from rich.markup import escape

from masqctl.cli.types import OutputFormat, open_cache
from masqctl.conf.cache import ConfigSetSnapshot
from masqctl.conf.options import (
    OPTIONS,
    OptionBehavior,
    OptionSection,
    OptionSpec,
    get_spec,
    options_in,
)
from masqctl.conf.provenance import ValueProvenance
from masqctl.utils.formatting import (
    console,
    create_table,
    format_flag,
    format_source,
    print_warning,
)

app = typer.Typer(
    help="Show the effective dnsmasq configuration.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def show_config(
    ctx: typer.Context,
    names: Annotated[
        list[str] | None,
        typer.Option(
            "--option",
            "-o",
            help="Option to show; repeat for several (default: every option that is set).",
        ),
    ] = None,
    section: Annotated[
        OptionSection | None,
        typer.Option(
            "--section",
            "-s",
            help="Only show options of one section.",
            case_sensitive=False,
        ),
    ] = None,
    show_all: Annotated[
        bool,
        typer.Option("--all", "-a", help="Include options that are not set."),
    ] = False,
    sources: Annotated[
        bool,
        typer.Option("--sources", help="Explain where read-only values are set."),
    ] = False,
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
    """Show effective option values and where they come from."""
    if ctx.invoked_subcommand is not None:
        return

    specs = _select_specs(names, section)

    with open_cache(ctx) as cache:
        snapshot = cache.get_snapshot()

    if not names and not show_all:
        specs = [spec for spec in specs if _is_set(snapshot, spec)]

    if output_format == OutputFormat.JSON:
        _print_json(snapshot, specs)
        return

    if not specs:
        console.print("[muted]No options set.[/]")
        return
    _print_table(snapshot, specs, sources)


# === Private helper functions ===


def _select_specs(names: list[str] | None, section: OptionSection | None) -> list[OptionSpec]:
    """Pick the options to display, in catalog order or the order given."""
    if names:
        specs: list[OptionSpec] = []
        for name in names:
            spec = get_spec(name)
            if spec is None:
                print_warning(f"Unknown option: {name}")
                continue
            if spec not in specs:
                specs.append(spec)
        if section is not None:
            specs = [spec for spec in specs if spec.section == section]
        return specs
    return list(OPTIONS) if section is None else options_in(section)


def _is_set(snapshot: ConfigSetSnapshot, spec: OptionSpec) -> bool:
    value = snapshot.effective.get(spec.name)
    if spec.behavior == OptionBehavior.LAST_WINS:
        return value is not None
    return bool(value)


def _source_list(snapshot: ConfigSetSnapshot, spec: OptionSpec) -> list[ValueProvenance]:
    source = snapshot.sources.get(spec.name)
    if source is None:
        return []
    if isinstance(source, list):
        return source
    return [source]


def _format_value(spec: OptionSpec, value: Any) -> str:
    if spec.behavior == OptionBehavior.FLAG:
        return format_flag(bool(value))
    if spec.behavior == OptionBehavior.MULTI:
        return "\n".join(escape(str(v)) for v in value) if value else "[muted]-[/]"
    if value is None:
        return "[muted]-[/]"
    return escape(str(value))


def _print_table(
    snapshot: ConfigSetSnapshot,
    specs: list[OptionSpec],
    explain: bool,
) -> None:
    """Display options as a Rich table."""
    columns = ["Option", "Value", "Source"]
    if explain:
        columns.append("Note")
    table = create_table("Effective Configuration", *columns)

    for spec in specs:
        value = snapshot.effective.get(spec.name)
        source_list = _source_list(snapshot, spec)
        source_text = (
            "\n".join(format_source(s) for s in source_list) if source_list else format_source(None)
        )
        row = [spec.name, _format_value(spec, value), source_text]
        if explain:
            notes = [tip for s in source_list if (tip := s.read_only_tooltip()) is not None]
            row.append("[muted]" + escape("\n".join(dict.fromkeys(notes))) + "[/]" if notes else "")
        table.add_row(*row)

    console.print(table)


def _print_json(snapshot: ConfigSetSnapshot, specs: list[OptionSpec]) -> None:
    """Display options as JSON."""
    data = {
        spec.name: {
            "value": snapshot.effective.get(spec.name),
            "behavior": spec.behavior.value,
            "section": spec.section.value,
            "sources": [
                {
                    "file": s.file_path,
                    "line": s.line_number,
                    "managed": s.is_managed,
                }
                for s in _source_list(snapshot, spec)
            ],
        }
        for spec in specs
    }
    console.print_json(json.dumps(data))
