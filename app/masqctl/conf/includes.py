"""Include resolution for dnsmasq config files.

Finds the files dnsmasq loads for a main config file by following the
main file's ``conf-file=`` and ``conf-dir=`` directives:

- ``conf-file=path`` includes one file.
- ``conf-dir=dir[,filter...]`` includes the files of a directory, sorted
  by name. A ``*.ext`` filter keeps only matching files; any other filter
  suffix excludes matching files. A bare ``*`` filter matches nothing, so
  unless another ``*.ext`` filter is given the directory contributes no
  files. Editor backups (``name~``), dotfiles and ``#name#`` files are
  always skipped, as dnsmasq does.

Relative paths are resolved against the directory of the main file. Only
the main file's directives are followed: included files are not searched
for further includes, and directories are not descended into.

Missing files are skipped rather than reported. The resolver serves a
display-and-merge role, so a config that is not created yet, or is
mid-edit, resolves to whatever exists.
"""

import logging
import os
from pathlib import Path

from masqctl.conf.directive import parse_directive
from masqctl.conf.models import ConfigFile, ConfigSet, FileRole
from masqctl.conf.reader import read_config_lines

logger = logging.getLogger(__name__)

CONF_FILE_KEY = "conf-file"
CONF_DIR_KEY = "conf-dir"


def absolute_path(path: str | Path) -> Path:
    """Make a path absolute and normalized without following symlinks."""
    return Path(os.path.abspath(os.path.expanduser(path)))


def resolve_path(value: str | None, base_dir: Path) -> Path | None:
    """Resolve a path-valued option against a base directory.

    Args:
        value: Option value as written in the config file.
        base_dir: Directory of the file that contains the option.

    Returns:
        The absolute path, or None for a blank value.
    """
    if value is None or not value.strip():
        return None
    value = value.strip()
    if os.path.isabs(value):
        return absolute_path(value)
    return absolute_path(base_dir / value)


def _is_always_ignored(name: str) -> bool:
    """Check for names dnsmasq never loads from a conf-dir."""
    if name.endswith("~") or name.startswith("."):
        return True
    return len(name) > 1 and name.startswith("#") and name.endswith("#")


def _parse_conf_dir(value: str, base_dir: Path) -> tuple[Path | None, list[str], list[str]]:
    """Split a conf-dir value into directory, match suffixes and ignore suffixes.

    Args:
        value: Value of the ``conf-dir=`` directive.
        base_dir: Directory of the file containing the directive.

    Returns:
        Tuple of (directory, match suffixes, ignore suffixes).
    """
    parts = [part.strip() for part in value.split(",")]
    directory = resolve_path(parts[0], base_dir)
    match: list[str] = []
    ignore: list[str] = []
    for part in parts[1:]:
        if not part:
            continue
        if part.startswith("*"):
            match.append(part[1:])
        else:
            ignore.append(part)
    return directory, match, ignore


def list_conf_dir(directory: Path, match: list[str], ignore: list[str]) -> list[Path]:
    """List the files dnsmasq loads from a conf-dir.

    Args:
        directory: Directory to list.
        match: Suffixes to include (all files when the list is empty). An
            empty suffix, from a bare ``*`` filter, matches no file.
        ignore: Suffixes to exclude.

    Returns:
        Matching regular files sorted by name (ordinal comparison).
    """
    try:
        entries = list(directory.iterdir())
    except OSError as e:
        logger.warning("Cannot list conf-dir %s: %s", directory, e)
        return []

    files: list[Path] = []
    for entry in entries:
        name = entry.name
        if _is_always_ignored(name):
            continue
        if match and not any(suffix and name.endswith(suffix) for suffix in match):
            continue
        if any(name.endswith(suffix) for suffix in ignore):
            continue
        if not entry.is_file():
            continue
        files.append(absolute_path(entry))
    return sorted(files, key=lambda p: p.name)


def _read_main(main: Path) -> list[str]:
    try:
        return read_config_lines(main)
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Cannot read main config %s: %s", main, e)
        return []


def resolve_includes(main_path: str | Path) -> list[tuple[Path, FileRole]]:
    """Resolve the ordered list of files dnsmasq loads for a main config.

    Args:
        main_path: Path to the main config file.

    Returns:
        ``(path, role)`` pairs in load order, main file first. Each path
        appears once. A missing main file yields just the main entry.
    """
    main = absolute_path(main_path)
    result: list[tuple[Path, FileRole]] = [(main, FileRole.MAIN)]
    if not main.is_file():
        logger.debug("Main config %s does not exist", main)
        return result

    seen: set[Path] = {main}
    base_dir = main.parent

    def add(path: Path, role: FileRole) -> None:
        if path not in seen:
            seen.add(path)
            result.append((path, role))

    for line in _read_main(main):
        parsed = parse_directive(line)
        if parsed is None:
            continue
        key, value = parsed
        if key == CONF_FILE_KEY:
            target = resolve_path(value, base_dir)
            if target is not None and target.is_file():
                add(target, FileRole.CONF_FILE)
            else:
                logger.debug("Skipping missing conf-file %s", value)
        elif key == CONF_DIR_KEY:
            directory, match, ignore = _parse_conf_dir(value, base_dir)
            if directory is None or not directory.is_dir():
                logger.debug("Skipping missing conf-dir %s", value)
                continue
            for path in list_conf_dir(directory, match, ignore):
                add(path, FileRole.CONF_DIR)

    return result


def build_config_set(
    main_path: str | Path,
    managed_file_path: str | Path | None,
    managed_hosts_file_path: str | Path | None = None,
) -> ConfigSet:
    """Build the config set for a main config and its managed file.

    The managed file is flagged wherever it appears in the include order.
    If the main config does not reach it, it is appended as a
    ``conf-file`` entry so its content still takes part in resolution.

    Args:
        main_path: Path to the main config file.
        managed_file_path: Path of the managed config file.
        managed_hosts_file_path: Path of the managed hosts file.

    Returns:
        The config set in load order.
    """
    main = absolute_path(main_path)
    managed = absolute_path(managed_file_path) if managed_file_path else None
    managed_hosts = absolute_path(managed_hosts_file_path) if managed_hosts_file_path else None

    files = [
        ConfigFile(path=path, role=role, is_managed=managed is not None and path == managed)
        for path, role in resolve_includes(main)
    ]
    if managed is not None and all(f.path != managed for f in files):
        logger.debug("Managed file %s is not included by %s; appending it", managed, main)
        files.append(ConfigFile(path=managed, role=FileRole.CONF_FILE, is_managed=True))

    return ConfigSet(
        main_path=main,
        managed_file_path=managed,
        managed_hosts_file_path=managed_hosts,
        files=tuple(files),
    )
