"""Unit tests for ensure command.

Tests for adding the managed file include to the main config.
"""

from pathlib import Path
from unittest.mock import patch

from masqctl.cli.main import app
from masqctl.conf.errors import ManagedFileError
from typer.testing import CliRunner

runner = CliRunner()


class TestEnsureCommand:
    """Tests for the ensure command."""

    def test_adds_include(self, conf_tree: Path, managed_path: Path) -> None:
        """The include is appended and the managed file created."""
        result = runner.invoke(app, ["--config", str(conf_tree), "ensure"])

        assert result.exit_code == 0, result.output
        assert "Managed file is now included last" in result.stdout
        assert conf_tree.read_text().splitlines()[-1] == "conf-file=zz-dnsmasq-webui.conf"
        assert managed_path.exists()

    def test_second_run_is_noop(self, conf_tree: Path) -> None:
        """Running twice leaves the main config unchanged."""
        runner.invoke(app, ["--config", str(conf_tree), "ensure"])
        content = conf_tree.read_text()

        result = runner.invoke(app, ["--config", str(conf_tree), "ensure"])

        assert result.exit_code == 0
        assert "already includes the managed file" in result.stdout
        assert conf_tree.read_text() == content

    def test_quiet(self, conf_tree: Path) -> None:
        """--quiet suppresses the message."""
        result = runner.invoke(app, ["--quiet", "--config", str(conf_tree), "ensure"])

        assert result.exit_code == 0
        assert result.stdout == ""

    def test_write_error(self, conf_tree: Path) -> None:
        """A failed write exits with an error."""
        with patch(
            "masqctl.cli.commands.ensure.ManagedConfigWriter.ensure_managed_include",
            side_effect=ManagedFileError("Failed to write"),
        ):
            result = runner.invoke(app, ["--config", str(conf_tree), "ensure"])

        assert result.exit_code == 1
        assert "Failed to write" in result.output
