"""Config set domain models.

This module defines the files that make up one dnsmasq configuration:
the main file, the files it includes, and the managed file that masqctl
is allowed to rewrite.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class FileRole(str, Enum):
    """How a file became part of the config set.

    Attributes:
        MAIN: The main config file dnsmasq is started with.
        CONF_FILE: Included by a ``conf-file=`` directive (or appended as the managed file).
        CONF_DIR: Found in a directory named by a ``conf-dir=`` directive.
    """

    MAIN = "main"
    CONF_FILE = "conf-file"
    CONF_DIR = "conf-dir"


@dataclass(frozen=True, slots=True)
class ConfigFile:
    """A file in the config set.

    Attributes:
        path: Absolute path; identifies the file within the set.
        role: How the file was included.
        is_managed: True for the managed config file.
    """

    path: Path
    role: FileRole
    is_managed: bool = False

    @property
    def name(self) -> str:
        """File name without directory."""
        return self.path.name


@dataclass(frozen=True, slots=True)
class ConfigSet:
    """The ordered files dnsmasq loads, plus the managed file locations.

    The main file is always first. Included files follow in the order
    dnsmasq reads them. The managed file is part of ``files`` even when the
    main config does not include it.

    Attributes:
        main_path: Absolute path of the main config, None when unconfigured.
        managed_file_path: Absolute path of the managed config file.
        managed_hosts_file_path: Absolute path of the managed hosts file.
        files: Files in load order.
    """

    main_path: Path | None
    managed_file_path: Path | None
    managed_hosts_file_path: Path | None
    files: tuple[ConfigFile, ...] = ()

    @property
    def paths(self) -> list[Path]:
        """Paths of all files in load order."""
        return [f.path for f in self.files]

    @property
    def managed_file(self) -> ConfigFile | None:
        """The managed file entry, if the set has one."""
        for f in self.files:
            if f.is_managed:
                return f
        return None

    def non_managed_files(self) -> list[ConfigFile]:
        """Files masqctl must not write, in load order."""
        return [f for f in self.files if not f.is_managed]
