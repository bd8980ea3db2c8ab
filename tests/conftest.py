"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

import os
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

MANAGED_NAME = "zz-dnsmasq-webui.conf"
MANAGED_HOSTS_NAME = "zz-dnsmasq-webui.hosts"


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path_factory: pytest.TempPathFactory) -> Iterator[None]:
    """Keep tests away from the real settings file and environment overrides."""
    xdg = tmp_path_factory.mktemp("xdg")
    saved = {key: os.environ.get(key) for key in ("XDG_CONFIG_HOME", "MASQCTL_MAIN_CONFIG")}
    os.environ["XDG_CONFIG_HOME"] = str(xdg)
    os.environ.pop("MASQCTL_MAIN_CONFIG", None)
    yield
    for key, value in saved.items():
        if value is None:
            os.environ.pop(key, None)
        else:
            os.environ[key] = value


@pytest.fixture
def write_conf() -> Callable[[Path, str], Path]:
    """Write a config file, creating parent directories."""

    def _write(path: Path, content: str) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def conf_tree(tmp_path: Path) -> Path:
    """A small config set: main file, a conf-file and a conf-dir.

    Layout::

        dnsmasq.conf        main, includes extra.conf and d/ (*.conf only)
        extra.conf          cache-size=100, server=1.1.1.1
        d/a.conf            domain-needed, server=8.8.8.8
        d/z.conf            cache-size=200
        d/ignored.bak       skipped by the filter

    Returns:
        Path to the main config file.
    """
    main = tmp_path / "dnsmasq.conf"
    main.write_text(
        "# main config\n"
        "port=5353\n"
        "conf-file=extra.conf\n"
        "conf-dir=d,*.conf\n"
        "addn-hosts=hosts/main.hosts\n",
        encoding="utf-8",
    )
    (tmp_path / "extra.conf").write_text("cache-size=100\nserver=1.1.1.1\n", encoding="utf-8")
    conf_dir = tmp_path / "d"
    conf_dir.mkdir()
    (conf_dir / "a.conf").write_text("domain-needed\nserver=8.8.8.8\n", encoding="utf-8")
    (conf_dir / "z.conf").write_text("cache-size=200\n", encoding="utf-8")
    (conf_dir / "ignored.bak").write_text("cache-size=999\n", encoding="utf-8")
    return main


@pytest.fixture
def managed_path(conf_tree: Path) -> Path:
    """Managed file path next to the conf_tree main file (not created)."""
    return conf_tree.parent / MANAGED_NAME
