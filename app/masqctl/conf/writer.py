"""Managed config file writer.

Writes the single config file masqctl owns. Every write follows the same
steps:

1. re-read the managed file from disk, never from the cache, so external
   edits made since the last snapshot are not lost
2. merge the change into its structured lines
3. make sure the file has one ``addn-hosts=`` line for the managed hosts file
4. write a temporary file next to it and atomically rename it over the target
5. tell the cache, so it rebuilds and ignores the watcher echo

dhcp-host entries are matched to file lines by stable id. Matched lines are
replaced in place; unmatched entries are appended unless deleted. Lines that
are not dhcp-host directives pass through unchanged.

Unlike the read path, the write path fails loudly: a missing managed path,
a MAC already reserved in a read-only file, or an I/O error raise.
"""

import logging
import os
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path

from masqctl.conf.cache import ConfigSetCache
from masqctl.conf.dhcp_host import DhcpHostEntry, assign_ids, dhcp_host_to_line
from masqctl.conf.directive import parse_directive
from masqctl.conf.errors import MacConflictError, ManagedFileError
from masqctl.conf.includes import CONF_FILE_KEY, resolve_path
from masqctl.conf.lines import (
    AddnHostsLine,
    DhcpHostLine,
    ManagedConfigContent,
    ManagedLine,
    OtherLine,
    parse_managed_lines,
    render_managed_lines,
)
from masqctl.conf.models import ConfigSet
from masqctl.conf.options import OptionBehavior, get_behavior, keys_for
from masqctl.conf.reader import read_config_lines, write_lines_atomic

logger = logging.getLogger(__name__)

OptionValue = bool | int | str | Sequence[str] | None


@dataclass(frozen=True, slots=True)
class OptionChange:
    """A pending change to an option in the managed file.

    Attributes:
        option: Option name.
        value: New value. For flags, True adds and False removes the option.
            For multi-value options, a list replaces every value. A scalar
            replaces the first matching line. None removes the option.
    """

    option: str
    value: OptionValue


class ManagedConfigWriter:
    """Reads and writes the managed config file of a config set.

    Attributes:
        _cache: Cache of the config set; notified after every write.
    """

    def __init__(self, cache: ConfigSetCache) -> None:
        """Initialize the writer.

        Args:
            cache: Cache of the config set the managed file belongs to.
        """
        self._cache = cache

    def _require_managed_path(self, what: str) -> Path:
        path = self._cache.managed_file_path
        if path is None:
            msg = f"No managed file path (main config path is not set). Cannot write {what}."
            raise ManagedFileError(msg)
        return path

    # =========================================================================
    # Reads
    # =========================================================================

    def read_dhcp_hosts(self) -> list[DhcpHostEntry]:
        """Get the dhcp-host entries of every file, with stable ids.

        Returns:
            Entries in load order; empty when no managed file is configured.
        """
        snapshot = self._cache.get_snapshot()
        if snapshot.config_set.managed_file_path is None:
            logger.debug("No managed file path; returning no dhcp hosts")
            return []
        return list(snapshot.dhcp_hosts)

    def read_managed_config(self) -> ManagedConfigContent:
        """Get the parsed content of the managed file from the current snapshot."""
        snapshot = self._cache.get_snapshot()
        if snapshot.config_set.managed_file_path is None:
            return ManagedConfigContent()
        return snapshot.managed_content

    # =========================================================================
    # Writes
    # =========================================================================

    def write_dhcp_hosts(self, entries: Iterable[DhcpHostEntry]) -> None:
        """Write dhcp-host entries to the managed file.

        Only editable entries are written. An entry whose id matches a line
        of the freshly read file replaces that line in place; other entries
        are appended unless they are marked deleted.

        Args:
            entries: Entries to write, typically edited copies of read entries.

        Raises:
            ManagedFileError: If there is no managed file or it cannot be written.
            MacConflictError: If a MAC is already reserved in a non-managed file.
        """
        path = self._require_managed_path("dhcp hosts")
        config_set = self._cache.get_snapshot().config_set

        managed_entries = [e for e in entries if e.is_editable]
        self._check_mac_conflicts(managed_entries, config_set)

        lines = parse_managed_lines(self._read_managed_file(path))
        lines = ensure_one_addn_hosts_line(lines, config_set.managed_hosts_file_path)

        positions = [i for i, line in enumerate(lines) if isinstance(line, DhcpHostLine)]
        file_entries = assign_ids(lines[i].entry for i in positions)  # type: ignore[union-attr]

        by_id: dict[str, DhcpHostEntry] = {}
        for entry in managed_entries:
            if entry.id and entry.id not in by_id:
                by_id[entry.id] = entry

        matched: set[str] = set()
        for position, file_entry in zip(positions, file_entries, strict=True):
            if file_entry.id is None or file_entry.id not in by_id:
                continue
            matched.add(file_entry.id)
            lines[position] = DhcpHostLine(
                line_number=lines[position].line_number,
                entry=by_id[file_entry.id],
            )

        output = render_managed_lines(lines)
        for entry in managed_entries:
            if entry.is_deleted or (entry.id and entry.id in matched):
                continue
            output.append(dhcp_host_to_line(entry))

        self._commit(path, output, config_set)

    def write_managed_config(self, lines: Sequence[ManagedLine]) -> None:
        """Replace the managed file with the given structured lines.

        Args:
            lines: New content of the managed file.

        Raises:
            ManagedFileError: If there is no managed file or it cannot be written.
        """
        path = self._require_managed_path("managed config")
        config_set = self._cache.get_snapshot().config_set
        content = ensure_one_addn_hosts_line(list(lines), config_set.managed_hosts_file_path)
        self._commit(path, render_managed_lines(content), config_set)

    def apply_option_changes(self, changes: Sequence[OptionChange]) -> None:
        """Apply option changes to the managed file.

        The managed file is re-read from disk. Only plain directive lines
        are touched. A line matches an option when it is the bare name of
        one of the option's keys or starts with ``key=``, so aliases such
        as ``local`` for ``server`` are replaced too.

        Args:
            changes: Changes, applied in order.

        Raises:
            ManagedFileError: If there is no managed file or it cannot be written.
        """
        if not changes:
            return
        path = self._require_managed_path("options")
        lines = parse_managed_lines(self._read_managed_file(path))
        next_number = max((line.line_number for line in lines), default=0)

        for change in changes:
            behavior = get_behavior(change.option)
            matching = [i for i, line in enumerate(lines) if _matches_option(line, change.option)]

            if change.value is None or (behavior == OptionBehavior.FLAG and change.value is False):
                # Flags and last-wins values live on one line; multi values on many
                doomed = matching if behavior == OptionBehavior.MULTI else matching[:1]
                for i in reversed(doomed):
                    del lines[i]
                continue

            if behavior == OptionBehavior.MULTI and isinstance(change.value, (list, tuple)):
                for i in reversed(matching):
                    del lines[i]
                insert_at = matching[0] if matching else len(lines)
                for offset, value in enumerate(change.value):
                    next_number += 1
                    lines.insert(
                        insert_at + offset,
                        OtherLine(line_number=next_number, raw=_option_line(change.option, value)),
                    )
                continue

            if behavior == OptionBehavior.FLAG:
                raw = change.option
            else:
                raw = _option_line(change.option, _to_conf_value(change.value))
            next_number += 1
            new_line = OtherLine(line_number=next_number, raw=raw)
            if matching:
                lines[matching[0]] = new_line
            else:
                lines.append(new_line)

        self.write_managed_config(lines)

    def ensure_managed_include(self) -> bool:
        """Make the main config include the managed file as its last line.

        Removes any other ``conf-file=`` line pointing at the managed file,
        drops trailing blank lines, and appends ``conf-file=<path>`` (relative
        to the main config's directory) after a blank line. Creates an empty
        managed file if there is none. Running it twice changes nothing.

        Returns:
            True if the main config was rewritten.

        Raises:
            ManagedFileError: If there is no main config path or a write fails.
        """
        managed = self._require_managed_path("main config include")
        main = self._cache.main_path
        if main is None:
            msg = "No main config path. Cannot add the managed file include."
            raise ManagedFileError(msg)

        base_dir = main.parent
        relative = os.path.relpath(managed, base_dir)
        current = self._read_managed_file(main) if main.exists() else []

        def points_to_managed(line: str) -> bool:
            parsed = parse_directive(line)
            return (
                parsed is not None
                and parsed[0] == CONF_FILE_KEY
                and resolve_path(parsed[1], base_dir) == managed
            )

        kept = [line for line in current if not points_to_managed(line)]
        while kept and not kept[-1].strip():
            kept.pop()
        include = f"{CONF_FILE_KEY}={relative}"
        updated = [*kept, "", include] if kept else [include]

        changed = updated != current
        if changed:
            write_lines_atomic(main, updated)
            logger.info("Added managed file include to %s", main)
        if not managed.exists():
            write_lines_atomic(managed, [])
            logger.info("Created managed config file: %s", managed)
        self._cache.invalidate()
        return changed

    # =========================================================================
    # Helpers
    # =========================================================================

    def _read_managed_file(self, path: Path) -> list[str]:
        if not path.exists():
            return []
        try:
            return read_config_lines(path)
        except (OSError, UnicodeDecodeError) as e:
            msg = f"Failed to read {path}: {e}"
            raise ManagedFileError(msg) from e

    def _check_mac_conflicts(self, entries: list[DhcpHostEntry], config_set: ConfigSet) -> None:
        external = _macs_from_non_managed_files(config_set)
        for entry in entries:
            if entry.is_deleted:
                continue
            for mac in entry.mac_addresses:
                source = external.get(mac.strip().lower())
                if source is not None:
                    raise MacConflictError(mac, source)

    def _commit(self, path: Path, output: list[str], config_set: ConfigSet) -> None:
        """Write the managed file atomically and notify the cache."""
        write_lines_atomic(path, output)
        ensure_managed_hosts_file(config_set.managed_hosts_file_path)
        self._cache.notify_we_wrote_managed_config()
        logger.info("Wrote managed config file: %s", path)


def ensure_one_addn_hosts_line(
    lines: list[ManagedLine],
    managed_hosts_path: Path | None,
) -> list[ManagedLine]:
    """Point the first ``addn-hosts=`` line at the managed hosts file.

    Repoints the first addn-hosts line, or inserts one at the top when the
    file has none, so dnsmasq loads the managed hosts file. A line that
    already points there is kept as written.

    Args:
        lines: Managed file lines.
        managed_hosts_path: Managed hosts file; None leaves the lines unchanged.

    Returns:
        The updated lines (a new list).
    """
    result = list(lines)
    if managed_hosts_path is None:
        return result
    for index, line in enumerate(result):
        if isinstance(line, AddnHostsLine):
            if line.path != str(managed_hosts_path):
                result[index] = AddnHostsLine(
                    line_number=line.line_number, path=str(managed_hosts_path)
                )
            return result
    result.insert(0, AddnHostsLine(line_number=1, path=str(managed_hosts_path)))
    return result


def ensure_managed_hosts_file(path: Path | None) -> None:
    """Create the managed hosts file empty if it does not exist.

    dnsmasq fails to start when an ``addn-hosts=`` target is missing.
    """
    if path is None or path.exists():
        return
    write_lines_atomic(path, [])
    logger.info("Created managed hosts file: %s", path)


def _macs_from_non_managed_files(config_set: ConfigSet) -> dict[str, str]:
    """Map MAC (lowercase) to the first non-managed file that reserves it.

    Files are read fresh. Commented-out reservations are not active and
    do not count.
    """
    result: dict[str, str] = {}
    for config_file in config_set.non_managed_files():
        if not config_file.path.is_file():
            continue
        try:
            raw_lines = read_config_lines(config_file.path)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Cannot read %s for MAC validation: %s", config_file.path, e)
            continue
        for line in parse_managed_lines(raw_lines):
            if not isinstance(line, DhcpHostLine) or line.entry.is_comment:
                continue
            for mac in line.entry.mac_addresses:
                result.setdefault(mac.strip().lower(), str(config_file.path))
    return result


def _matches_option(line: ManagedLine, option: str) -> bool:
    if not isinstance(line, OtherLine):
        return False
    raw = line.raw.strip()
    return any(raw == key or raw.startswith(f"{key}=") for key in keys_for(option))


def _option_line(option: str, value: str) -> str:
    return f"{option}={value}" if value else option


def _to_conf_value(value: OptionValue) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (list, tuple)):
        return ",".join(str(v) for v in value)
    return str(value)
