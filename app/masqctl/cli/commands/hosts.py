"""DHCP host reservation commands.

Lists the dhcp-host reservations of every config file and edits the ones
in the managed file.
"""

import json
from dataclasses import replace
from pathlib import Path
from typing import Annotated

import typer
from rich.markup import escape

from masqctl.cli.types import OutputFormat, is_quiet, open_cache
from masqctl.conf.dhcp_host import DhcpHostEntry, is_ipv4, is_mac
from masqctl.conf.errors import MasqConfigError
from masqctl.conf.provenance import ValueProvenance
from masqctl.conf.writer import ManagedConfigWriter
from masqctl.utils.formatting import (
    console,
    create_table,
    format_source,
    print_error,
    print_success,
)

app = typer.Typer(
    help="List and edit DHCP host reservations.",
    invoke_without_command=True,
    no_args_is_help=True,
)


@app.command("list")
def list_hosts(
    ctx: typer.Context,
    show_deleted: Annotated[
        bool,
        typer.Option("--deleted", help="Include entries marked deleted."),
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
    """List dhcp-host reservations from all config files."""
    with open_cache(ctx) as cache:
        snapshot = cache.get_snapshot()

    entries = [e for e in snapshot.dhcp_hosts if show_deleted or not e.is_deleted]
    managed_path = snapshot.config_set.managed_file_path

    if output_format == OutputFormat.JSON:
        _print_json(entries)
        return

    if not entries:
        console.print("[muted]No dhcp-host reservations.[/]")
        return
    _print_table(entries, managed_path)


@app.command("set")
def set_host(
    ctx: typer.Context,
    macs: Annotated[
        list[str],
        typer.Argument(help="MAC address(es) of the reservation."),
    ],
    address: Annotated[
        str | None,
        typer.Option("--ip", help="IPv4 address to reserve."),
    ] = None,
    name: Annotated[
        str | None,
        typer.Option("--name", "-n", help="Host name."),
    ] = None,
    lease: Annotated[
        str | None,
        typer.Option("--lease", "-l", help="Lease time (e.g. 12h, infinite)."),
    ] = None,
    ignore: Annotated[
        bool,
        typer.Option("--ignore", help="Ignore DHCP requests from this host."),
    ] = False,
    extra: Annotated[
        list[str] | None,
        typer.Option("--extra", "-e", help="Additional raw field (set:, tag:, id: ...)."),
    ] = None,
    comment: Annotated[
        str | None,
        typer.Option("--comment", help="Trailing comment."),
    ] = None,
    disabled: Annotated[
        bool,
        typer.Option("--disabled", help="Write the reservation commented out."),
    ] = False,
    entry_id: Annotated[
        str | None,
        typer.Option("--id", help="Id of the managed entry to replace."),
    ] = None,
) -> None:
    """Add or replace a reservation in the managed file.

    Without --id, an existing managed entry sharing one of the MACs is
    replaced; otherwise a new entry is appended.
    """
    invalid = [mac for mac in macs if not is_mac(mac)]
    if invalid:
        print_error(f"Invalid MAC address: {', '.join(invalid)}")
        raise typer.Exit(code=1)
    if address is not None and not is_ipv4(address):
        print_error(f"Invalid IPv4 address: {address}")
        raise typer.Exit(code=1)

    with open_cache(ctx) as cache:
        snapshot = cache.get_snapshot()
        existing = _find_existing(snapshot.dhcp_hosts, macs, entry_id)

        entry = DhcpHostEntry(
            mac_addresses=tuple(macs),
            address=address,
            name=name,
            lease=lease,
            ignore=ignore,
            extra=tuple(extra or ()),
            is_comment=disabled,
            comment=comment,
            id=existing.id if existing is not None else None,
        )

        try:
            ManagedConfigWriter(cache).write_dhcp_hosts([entry])
        except MasqConfigError as e:
            print_error(str(e))
            raise typer.Exit(code=1) from e

    if not is_quiet(ctx):
        action = "Updated" if existing is not None else "Added"
        print_success(f"{action} dhcp-host for {', '.join(macs)}")


@app.command("remove")
def remove_host(
    ctx: typer.Context,
    entry_id: Annotated[
        str,
        typer.Argument(help="Id of the managed entry (see 'hosts list')."),
    ],
) -> None:
    """Mark a managed reservation as deleted."""
    with open_cache(ctx) as cache:
        snapshot = cache.get_snapshot()
        existing = _find_existing(snapshot.dhcp_hosts, [], entry_id)
        if existing is None:
            print_error(f"No dhcp-host with id {entry_id}")
            raise typer.Exit(code=1)

        try:
            ManagedConfigWriter(cache).write_dhcp_hosts([replace(existing, is_deleted=True)])
        except MasqConfigError as e:
            print_error(str(e))
            raise typer.Exit(code=1) from e

    if not is_quiet(ctx):
        print_success(f"Removed dhcp-host {entry_id}")


# === Private helper functions ===


def _find_existing(
    entries: tuple[DhcpHostEntry, ...],
    macs: list[str],
    entry_id: str | None,
) -> DhcpHostEntry | None:
    """Find the managed entry an edit applies to.

    Raises typer.Exit when the id names an unknown or read-only entry.
    """
    if entry_id is not None:
        for entry in entries:
            if entry.id != entry_id:
                continue
            if not entry.is_editable:
                print_error(
                    f"dhcp-host {entry_id} is read-only. Edit {entry.source_path} to change it."
                )
                raise typer.Exit(code=1)
            return entry
        print_error(f"No dhcp-host with id {entry_id}")
        raise typer.Exit(code=1)

    wanted = {mac.lower() for mac in macs}
    for entry in entries:
        if entry.is_editable and not entry.is_deleted:
            if wanted & {mac.lower() for mac in entry.mac_addresses}:
                return entry
    return None


def _state(entry: DhcpHostEntry) -> str:
    if entry.is_deleted:
        return "[error]deleted[/]"
    if entry.is_comment:
        return "[muted]disabled[/]"
    return "[success]active[/]"


def _print_table(entries: list[DhcpHostEntry], managed_path: Path | None) -> None:
    """Display reservations as a Rich table."""
    table = create_table("DHCP Hosts", "ID", "MAC", "IP", "Name", "Lease", "State", "Source")
    for entry in entries:
        source = (
            ValueProvenance.for_file(Path(entry.source_path), managed_path, entry.line_number)
            if entry.source_path
            else None
        )
        table.add_row(
            escape(entry.id or "-"),
            "\n".join(entry.mac_addresses) or "-",
            entry.address or "-",
            escape(entry.name or "-"),
            escape(entry.lease or "-"),
            _state(entry),
            format_source(source),
        )
    console.print(table)


def _print_json(entries: list[DhcpHostEntry]) -> None:
    """Display reservations as JSON."""
    data = [
        {
            "id": e.id,
            "mac_addresses": list(e.mac_addresses),
            "address": e.address,
            "name": e.name,
            "lease": e.lease,
            "ignore": e.ignore,
            "extra": list(e.extra),
            "comment": e.comment,
            "is_comment": e.is_comment,
            "is_deleted": e.is_deleted,
            "source_path": e.source_path,
            "line_number": e.line_number,
            "editable": e.is_editable,
        }
        for e in entries
    ]
    console.print_json(json.dumps(data))
