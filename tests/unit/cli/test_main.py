"""Unit tests for the main CLI application.

Tests for global options and settings loading.
"""

import json
import logging
from pathlib import Path
from unittest.mock import patch

from masqctl import __version__
from masqctl.cli.main import app
from masqctl.core.paths import get_settings_path
from typer.testing import CliRunner

runner = CliRunner()


class TestGlobalOptions:
    """Tests for options of the main callback."""

    def test_version(self) -> None:
        """--version prints the version and exits."""
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert f"masqctl version {__version__}" in result.stdout

    def test_help_lists_commands(self) -> None:
        """--help lists every command group."""
        result = runner.invoke(app, ["--help"])

        assert result.exit_code == 0
        for command in ("files", "show", "hosts", "option", "ensure", "settings"):
            assert command in result.stdout

    def test_config_overrides_settings(self, conf_tree: Path) -> None:
        """--config selects the main config file."""
        settings_path = get_settings_path()
        settings_path.parent.mkdir(parents=True)
        settings_path.write_text('main_config_path = "/nonexistent/dnsmasq.conf"\n')

        result = runner.invoke(app, ["--config", str(conf_tree), "files", "--format", "json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data[0]["path"] == str(conf_tree)

    def test_broken_settings_file(self) -> None:
        """An unparsable settings file is an error."""
        settings_path = get_settings_path()
        settings_path.parent.mkdir(parents=True)
        settings_path.write_text("main_config_path = [")

        result = runner.invoke(app, ["files"])

        assert result.exit_code == 1
        assert "Invalid TOML syntax" in result.output

    def test_verbose_enables_debug_logging(self, conf_tree: Path) -> None:
        """--verbose configures debug logging."""
        with patch("masqctl.cli.main.logging.basicConfig") as mock_config:
            result = runner.invoke(app, ["--verbose", "--config", str(conf_tree), "files"])

        assert result.exit_code == 0
        mock_config.assert_called_once()
        assert mock_config.call_args.kwargs["level"] == logging.DEBUG
