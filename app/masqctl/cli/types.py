"""Shared types and utilities for CLI commands.

This module provides common enums and helper functions used across
multiple CLI command modules to avoid code duplication.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from enum import Enum

import typer

from masqctl.conf.cache import ConfigSetCache
from masqctl.core.settings import MasqctlSettings, SettingsError, load_settings_or_default
from masqctl.utils.formatting import print_error


class OutputFormat(str, Enum):
    """Output format options."""

    TABLE = "table"
    JSON = "json"


def get_settings(ctx: typer.Context) -> MasqctlSettings:
    """Get the settings stored by the main callback.

    Falls back to loading them when a command runs without the main app.

    Args:
        ctx: Typer context.

    Returns:
        Settings with the command-line overrides applied.
    """
    obj = ctx.obj or {}
    settings = obj.get("settings")
    if isinstance(settings, MasqctlSettings):
        return settings
    try:
        return load_settings_or_default()
    except SettingsError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e


def is_quiet(ctx: typer.Context) -> bool:
    """Check whether non-essential output is suppressed."""
    obj = ctx.obj or {}
    return bool(obj.get("quiet", False))


@contextmanager
def open_cache(ctx: typer.Context) -> Iterator[ConfigSetCache]:
    """Open a config-set cache for one command.

    Commands are short-lived, so the cache does not watch files.

    Args:
        ctx: Typer context.

    Yields:
        Cache for the configured config set.
    """
    with ConfigSetCache.from_settings(get_settings(ctx), watch=False) as cache:
        yield cache
