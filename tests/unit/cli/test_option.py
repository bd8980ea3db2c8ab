"""Unit tests for option commands.

Tests for setting, unsetting and explaining options.
"""

from collections.abc import Callable
from pathlib import Path

from masqctl.cli.main import app
from typer.testing import CliRunner

runner = CliRunner()

WriteConf = Callable[[Path, str], Path]


def _option(conf_tree: Path, *args: str):
    return runner.invoke(app, ["--config", str(conf_tree), "option", *args])


def _body(path: Path) -> list[str]:
    """Managed file lines without the addn-hosts line."""
    return [line for line in path.read_text().splitlines() if not line.startswith("addn-hosts=")]


class TestOptionSet:
    """Tests for the option set command."""

    def test_set_last_wins(self, conf_tree: Path, managed_path: Path) -> None:
        """A scalar is written to the managed file."""
        result = _option(conf_tree, "set", "cache-size", "1000")

        assert result.exit_code == 0, result.output
        assert "Set cache-size in managed file" in result.stdout
        assert _body(managed_path) == ["cache-size=1000"]

    def test_set_flag(self, conf_tree: Path, managed_path: Path) -> None:
        """A flag is written as a bare key."""
        result = _option(conf_tree, "set", "no-negcache")

        assert result.exit_code == 0, result.output
        assert _body(managed_path) == ["no-negcache"]

    def test_flag_rejects_value(self, conf_tree: Path, managed_path: Path) -> None:
        """Flags take no value."""
        result = _option(conf_tree, "set", "no-negcache", "1")

        assert result.exit_code == 1
        assert "is a flag and takes no value" in result.output
        assert not managed_path.exists()

    def test_set_multi(self, conf_tree: Path, managed_path: Path) -> None:
        """Multi-value options take several values."""
        result = _option(conf_tree, "set", "server", "9.9.9.9", "/lan/10.0.0.1")

        assert result.exit_code == 0, result.output
        assert _body(managed_path) == ["server=9.9.9.9", "server=/lan/10.0.0.1"]

    def test_multi_requires_value(self, conf_tree: Path) -> None:
        """Multi-value options need at least one value."""
        result = _option(conf_tree, "set", "server")

        assert result.exit_code == 1
        assert "takes at least one value" in result.output

    def test_single_value_only(self, conf_tree: Path) -> None:
        """Last-wins options take one value."""
        result = _option(conf_tree, "set", "cache-size", "1", "2")

        assert result.exit_code == 1
        assert "takes a single value" in result.output

    def test_integer_validation(self, conf_tree: Path) -> None:
        """Integer options reject non-numeric values."""
        result = _option(conf_tree, "set", "cache-size", "lots")

        assert result.exit_code == 1
        assert "expects an integer" in result.output

    def test_alias_uses_canonical_name(self, conf_tree: Path, managed_path: Path) -> None:
        """Aliases are written under the canonical name."""
        result = _option(conf_tree, "set", "local", "/lan/")

        assert result.exit_code == 0, result.output
        assert _body(managed_path) == ["server=/lan/"]


class TestOptionUnset:
    """Tests for the option unset command."""

    def test_unset_scalar(
        self, conf_tree: Path, managed_path: Path, write_conf: WriteConf
    ) -> None:
        """Unsetting removes the line from the managed file."""
        write_conf(managed_path, "port=53\nno-negcache\n")

        result = _option(conf_tree, "unset", "port")

        assert result.exit_code == 0, result.output
        assert "Unset port in managed file" in result.stdout
        assert _body(managed_path) == ["no-negcache"]

    def test_unset_flag(self, conf_tree: Path, managed_path: Path, write_conf: WriteConf) -> None:
        """Unsetting a flag removes it."""
        write_conf(managed_path, "no-negcache\n")

        result = _option(conf_tree, "unset", "no-negcache")

        assert result.exit_code == 0, result.output
        assert _body(managed_path) == []

    def test_warns_when_read_only_source_remains(
        self, conf_tree: Path, managed_path: Path, write_conf: WriteConf
    ) -> None:
        """A value still set by a read-only file triggers a warning."""
        write_conf(managed_path, "cache-size=10\n")

        result = _option(conf_tree, "unset", "cache-size")

        assert result.exit_code == 0, result.output
        assert "still set by a read-only file" in result.output


class TestOptionHint:
    """Tests for the option hint command."""

    def test_not_set(self, conf_tree: Path) -> None:
        """Unset options have nothing to explain."""
        result = _option(conf_tree, "hint", "log-facility")

        assert result.exit_code == 0
        assert "not set in any config file" in result.stdout

    def test_managed(self, conf_tree: Path, managed_path: Path, write_conf: WriteConf) -> None:
        """Managed values can be edited directly."""
        write_conf(managed_path, "log-facility=/var/log/dnsmasq.log\n")

        result = _option(conf_tree, "hint", "log-facility")

        assert result.exit_code == 0
        assert "can be edited directly" in result.stdout

    def test_read_only(self, conf_tree: Path) -> None:
        """Read-only values get remove and override suggestions."""
        result = _option(conf_tree, "hint", "cache-size", "--value", "1000")

        assert result.exit_code == 0
        assert "Remove:" in result.stdout
        assert "sed -i" in result.stdout
        assert "cache-size=1000" in result.stdout

    def test_read_only_multi(self, conf_tree: Path) -> None:
        """Multi-value options get one hint per file and no override line."""
        result = _option(conf_tree, "hint", "server")

        assert result.exit_code == 0
        assert result.stdout.count("Remove:") == 2
        assert "Or override" not in result.stdout
