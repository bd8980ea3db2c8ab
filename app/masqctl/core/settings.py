"""masqctl settings.

This module provides the settings model and I/O functions that locate the
dnsmasq configuration masqctl works on:

- main_config_path: the dnsmasq.conf the daemon is started with
- managed_file_name: the single config file masqctl may rewrite
- managed_hosts_file_name: the hosts file referenced from the managed file

Settings are stored in ~/.config/masqctl/settings.toml. The
MASQCTL_MAIN_CONFIG environment variable overrides the main config path.
"""

import logging
import os
import tomllib
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Annotated

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from masqctl.core.paths import get_settings_path

logger = logging.getLogger(__name__)

# Environment variable that overrides main_config_path
MAIN_CONFIG_ENV = "MASQCTL_MAIN_CONFIG"

DEFAULT_MAIN_CONFIG_PATH = Path("/etc/dnsmasq.conf")
DEFAULT_MANAGED_FILE_NAME = "zz-dnsmasq-webui.conf"
DEFAULT_MANAGED_HOSTS_FILE_NAME = "zz-dnsmasq-webui.hosts"


class MasqctlSettings(BaseModel):
    """Settings for locating the dnsmasq config set.

    The managed config and managed hosts files are created next to the
    main config file. The main config must include the managed file with
    a ``conf-file=`` directive (see ``masqctl ensure``) for dnsmasq to
    load it.

    Attributes:
        main_config_path: Path to the main dnsmasq config file.
        managed_file_name: File name of the managed config file.
        managed_hosts_file_name: File name of the managed hosts file.
        watch: Watch the main and managed files for external changes.
    """

    model_config = ConfigDict(extra="forbid")

    main_config_path: Annotated[
        Path,
        Field(description="Main dnsmasq config file"),
    ] = DEFAULT_MAIN_CONFIG_PATH
    managed_file_name: Annotated[
        str,
        Field(min_length=1, description="Managed config file name"),
    ] = DEFAULT_MANAGED_FILE_NAME
    managed_hosts_file_name: Annotated[
        str,
        Field(min_length=1, description="Managed hosts file name"),
    ] = DEFAULT_MANAGED_HOSTS_FILE_NAME
    watch: Annotated[
        bool,
        Field(description="Watch config files for external changes"),
    ] = True

    @property
    def config_dir(self) -> Path:
        """Directory holding the main config, managed file and managed hosts file."""
        return Path(os.path.abspath(self.main_config_path.expanduser())).parent

    @property
    def managed_file_path(self) -> Path:
        """Absolute path of the managed config file."""
        return self.config_dir / self.managed_file_name

    @property
    def managed_hosts_file_path(self) -> Path:
        """Absolute path of the managed hosts file."""
        return self.config_dir / self.managed_hosts_file_name


class SettingsError(Exception):
    """Base exception for settings errors."""


class SettingsNotFoundError(SettingsError):
    """Raised when the settings file is not found."""


class SettingsParseError(SettingsError):
    """Raised when the settings file cannot be parsed."""


def load_settings(path: Path | None = None) -> MasqctlSettings:
    """Load settings from a TOML file.

    Args:
        path: Path to the settings file. If None, uses the default settings path.

    Returns:
        Validated MasqctlSettings object, with the environment override applied.

    Raises:
        SettingsNotFoundError: If the settings file doesn't exist.
        SettingsParseError: If the TOML syntax is invalid.
        SettingsError: If the content doesn't match the schema.
    """
    settings_path = path or get_settings_path()

    if not settings_path.exists():
        raise SettingsNotFoundError(f"Settings not found: {settings_path}")

    try:
        with open(settings_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise SettingsParseError(f"Invalid TOML syntax: {e}") from e
    except OSError as e:
        raise SettingsError(f"Failed to read settings: {e}") from e

    try:
        settings = MasqctlSettings.model_validate(data)
    except (ValueError, ValidationError) as e:
        raise SettingsError(f"Invalid settings content: {e}") from e

    return _apply_env_override(settings)


def load_settings_or_default(path: Path | None = None) -> MasqctlSettings:
    """Load settings, falling back to defaults when no settings file exists.

    Args:
        path: Path to the settings file. If None, uses the default settings path.

    Returns:
        Loaded settings, or defaults (with the environment override applied).

    Raises:
        SettingsParseError: If the file exists but is not valid TOML.
        SettingsError: If the file exists but doesn't match the schema.
    """
    try:
        return load_settings(path)
    except SettingsNotFoundError:
        logger.debug("No settings file, using defaults")
        return _apply_env_override(MasqctlSettings())


def save_settings(settings: MasqctlSettings, path: Path | None = None) -> Path:
    """Save settings to a TOML file.

    The file is written atomically by first writing to a temporary file
    and then using os.replace() for atomic rename.

    Args:
        settings: The settings to save.
        path: Path to save the settings. If None, uses the default settings path.

    Returns:
        Path where the settings were saved.

    Raises:
        SettingsError: If the file cannot be written.
    """
    settings_path = path or get_settings_path()
    settings_path.parent.mkdir(parents=True, exist_ok=True)

    data = _settings_to_dict(settings)

    tmp_path: Path | None = None
    try:
        with NamedTemporaryFile(
            mode="wb",
            dir=settings_path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            tomli_w.dump(data, f)
        os.replace(str(tmp_path), str(settings_path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise SettingsError(f"Failed to write settings: {e}") from e

    return settings_path


def _settings_to_dict(settings: MasqctlSettings) -> dict[str, object]:
    """Convert settings to a dictionary for TOML serialization.

    Paths are stored as strings and defaults of optional flags are omitted.

    Args:
        settings: The settings to convert.

    Returns:
        Dictionary ready for TOML serialization.
    """
    result: dict[str, object] = {
        "main_config_path": str(settings.main_config_path),
        "managed_file_name": settings.managed_file_name,
        "managed_hosts_file_name": settings.managed_hosts_file_name,
    }

    if not settings.watch:
        result["watch"] = False

    return result


def _apply_env_override(settings: MasqctlSettings) -> MasqctlSettings:
    """Apply the MASQCTL_MAIN_CONFIG environment override."""
    override = os.environ.get(MAIN_CONFIG_ENV)
    if not override:
        return settings
    return settings.model_copy(update={"main_config_path": Path(override)})
