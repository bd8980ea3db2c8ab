"""Unit tests for the config-set cache."""

import asyncio
import threading
from collections.abc import Callable, Sequence
from pathlib import Path
from unittest.mock import patch

import pytest
from masqctl.conf.cache import (
    SELF_WRITE_IGNORE_SECONDS,
    STALE_CACHE_SECONDS,
    CacheState,
    ConfigSetCache,
    build_snapshot,
    read_all_paths,
)
from masqctl.conf.errors import OperationCancelledError
from masqctl.conf.includes import build_config_set
from masqctl.core.settings import MasqctlSettings

WriteConf = Callable[[Path, str], Path]


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeWatcher:
    """Watcher that records its targets and lets tests fire changes."""

    def __init__(self, paths: Sequence[Path], on_change: Callable[[Path], None]) -> None:
        self.paths = list(paths)
        self.on_change = on_change
        self.started = False
        self.stopped = False

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.stopped = True


class WatcherRecorder:
    """Watcher factory that keeps the watchers it creates."""

    def __init__(self) -> None:
        self.watchers: list[FakeWatcher] = []

    def __call__(self, paths: Sequence[Path], on_change: Callable[[Path], None]) -> FakeWatcher:
        watcher = FakeWatcher(paths, on_change)
        self.watchers.append(watcher)
        return watcher


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recorder() -> WatcherRecorder:
    return WatcherRecorder()


@pytest.fixture
def cache(conf_tree: Path, clock: FakeClock, recorder: WatcherRecorder) -> ConfigSetCache:
    return ConfigSetCache(conf_tree, clock=clock, watcher_factory=recorder)


# =============================================================================
# Snapshot building
# =============================================================================


class TestReadAllPaths:
    """Tests for read_all_paths function."""

    def test_missing_files_read_empty(self, tmp_path: Path, write_conf: WriteConf) -> None:
        """Missing files map to no lines."""
        present = write_conf(tmp_path / "a.conf", "port=53\n")
        missing = tmp_path / "b.conf"

        result = read_all_paths([present, missing])

        assert result == {present: ["port=53"], missing: []}

    def test_unreadable_file_reads_empty(self, tmp_path: Path) -> None:
        """Invalid UTF-8 degrades to an empty file."""
        bad = tmp_path / "bad.conf"
        bad.write_bytes(b"\xff\xfe\xfa")

        assert read_all_paths([bad]) == {bad: []}

    def test_cancelled(self, tmp_path: Path) -> None:
        """A set cancel event stops the read."""
        event = threading.Event()
        event.set()

        with pytest.raises(OperationCancelledError):
            read_all_paths([tmp_path / "a.conf"], event)


class TestBuildSnapshot:
    """Tests for build_snapshot function."""

    def test_snapshot_contents(
        self, conf_tree: Path, managed_path: Path, write_conf: WriteConf
    ) -> None:
        """A snapshot carries effective values, sources and dhcp hosts."""
        write_conf(
            managed_path,
            "addn-hosts=/x.hosts\ndhcp-host=aa:bb:cc:dd:ee:ff,192.168.1.10,testpc,infinite\n",
        )
        write_conf(conf_tree.parent / "d" / "h.conf", "dhcp-host=11:22:33:44:55:66,ro-host\n")

        snapshot = build_snapshot(build_config_set(conf_tree, managed_path), built_at=5.0)

        assert snapshot.built_at == 5.0
        assert snapshot.effective.cache_size == 200
        assert snapshot.managed_content.addn_hosts_path == "/x.hosts"
        names = [(e.name, e.is_editable) for e in snapshot.dhcp_hosts]
        assert names == [("ro-host", False), ("testpc", True)]
        assert [e.name for e in snapshot.managed_dhcp_hosts] == ["testpc"]
        managed_entry = snapshot.managed_dhcp_hosts[0]
        assert managed_entry.source_path == str(managed_path)
        assert managed_entry.id == "aa:bb:cc:dd:ee:ff|192.168.1.10|testpc"

    def test_managed_ids_take_precedence(
        self, conf_tree: Path, managed_path: Path, write_conf: WriteConf
    ) -> None:
        """A read-only duplicate of a managed entry gets the suffixed id."""
        write_conf(managed_path, "dhcp-host=aa:bb:cc:dd:ee:ff,pc\n")
        write_conf(conf_tree.parent / "d" / "h.conf", "\ndhcp-host=aa:bb:cc:dd:ee:ff,pc\n")

        snapshot = build_snapshot(build_config_set(conf_tree, managed_path))

        by_editable = {e.is_editable: e.id for e in snapshot.dhcp_hosts}
        assert by_editable[True] == "aa:bb:cc:dd:ee:ff||pc"
        assert by_editable[False] == "aa:bb:cc:dd:ee:ff||pc:2"


# =============================================================================
# Cache lifecycle
# =============================================================================


class TestConfigSetCache:
    """Tests for ConfigSetCache class."""

    def test_paths(self, cache: ConfigSetCache, conf_tree: Path) -> None:
        """Managed files live next to the main config."""
        assert cache.main_path == conf_tree
        assert cache.managed_file_path == conf_tree.parent / "zz-dnsmasq-webui.conf"
        assert cache.managed_hosts_file_path == conf_tree.parent / "zz-dnsmasq-webui.hosts"

    def test_watches_main_and_managed(
        self, cache: ConfigSetCache, recorder: WatcherRecorder, conf_tree: Path
    ) -> None:
        """One watcher covers the main and managed files."""
        [watcher] = recorder.watchers

        assert watcher.started
        assert watcher.paths == [conf_tree, cache.managed_file_path]

    def test_no_watch(self, conf_tree: Path, recorder: WatcherRecorder) -> None:
        """watch=False starts no watcher."""
        ConfigSetCache(conf_tree, watch=False, watcher_factory=recorder)
        assert recorder.watchers == []

    def test_reuses_fresh_snapshot(self, cache: ConfigSetCache) -> None:
        """A fresh snapshot is returned without rebuilding."""
        first = cache.get_snapshot()

        with patch("masqctl.conf.cache.build_snapshot") as mock_build:
            second = cache.get_snapshot()

        mock_build.assert_not_called()
        assert second is first
        assert cache.state == CacheState.FRESH

    def test_initially_dirty(self, cache: ConfigSetCache) -> None:
        """Nothing is built before the first read."""
        assert cache.state == CacheState.DIRTY

    def test_watcher_change_rebuilds(
        self, cache: ConfigSetCache, recorder: WatcherRecorder, conf_tree: Path
    ) -> None:
        """A reported change marks the cache dirty and the next read sees new content."""
        assert cache.get_snapshot().effective.port == 5353

        conf_tree.write_text("port=5454\n")
        recorder.watchers[0].on_change(conf_tree)

        assert cache.state == CacheState.DIRTY
        assert cache.get_snapshot().effective.port == 5454

    def test_stale_snapshot_rebuilds(
        self, cache: ConfigSetCache, clock: FakeClock, conf_tree: Path
    ) -> None:
        """Snapshots older than the staleness window are rebuilt."""
        first = cache.get_snapshot()
        conf_tree.write_text("port=6000\n")

        clock.advance(STALE_CACHE_SECONDS - 1)
        assert cache.get_snapshot() is first

        clock.advance(2)
        assert cache.get_snapshot().effective.port == 6000

    def test_invalidate(self, cache: ConfigSetCache) -> None:
        """invalidate forces a rebuild."""
        first = cache.get_snapshot()
        cache.invalidate()
        assert cache.get_snapshot() is not first

    def test_self_write_echo_ignored(
        self, cache: ConfigSetCache, recorder: WatcherRecorder, clock: FakeClock
    ) -> None:
        """The watcher echo of our own write does not dirty the cache again."""
        cache.notify_we_wrote_managed_config()
        rebuilt = cache.get_snapshot()

        clock.advance(SELF_WRITE_IGNORE_SECONDS / 2)
        assert cache.managed_file_path is not None
        recorder.watchers[0].on_change(cache.managed_file_path)

        assert cache.get_snapshot() is rebuilt

    def test_external_write_after_window(
        self, cache: ConfigSetCache, recorder: WatcherRecorder, clock: FakeClock
    ) -> None:
        """Changes after the suppression window are honored."""
        cache.notify_we_wrote_managed_config()
        rebuilt = cache.get_snapshot()

        clock.advance(SELF_WRITE_IGNORE_SECONDS + 0.1)
        assert cache.managed_file_path is not None
        recorder.watchers[0].on_change(cache.managed_file_path)

        assert cache.get_snapshot() is not rebuilt

    def test_main_change_not_suppressed(
        self, cache: ConfigSetCache, recorder: WatcherRecorder, conf_tree: Path
    ) -> None:
        """Only the managed file echo is suppressed."""
        cache.notify_we_wrote_managed_config()
        rebuilt = cache.get_snapshot()

        recorder.watchers[0].on_change(conf_tree)

        assert cache.get_snapshot() is not rebuilt

    def test_change_during_build_keeps_dirty(
        self, cache: ConfigSetCache, recorder: WatcherRecorder, conf_tree: Path
    ) -> None:
        """A change reported mid-build leaves the new snapshot dirty."""
        real_build = build_snapshot

        def build_and_change(*args, **kwargs):
            snapshot = real_build(*args, **kwargs)
            recorder.watchers[0].on_change(conf_tree)
            return snapshot

        with patch("masqctl.conf.cache.build_snapshot", side_effect=build_and_change):
            cache.get_snapshot()

        assert cache.state == CacheState.DIRTY

    def test_cancelled_rebuild(self, cache: ConfigSetCache) -> None:
        """A cancelled rebuild raises and leaves the cache dirty."""
        event = threading.Event()
        event.set()

        with pytest.raises(OperationCancelledError):
            cache.get_snapshot(event)

        assert cache.state == CacheState.DIRTY
        assert cache.get_snapshot().effective.cache_size == 200

    def test_unconfigured(self, recorder: WatcherRecorder) -> None:
        """Without a main path the cache serves an empty snapshot."""
        cache = ConfigSetCache(None, watcher_factory=recorder)

        snapshot = cache.get_snapshot()

        assert recorder.watchers == []
        assert cache.managed_file_path is None
        assert snapshot.config_set.files == ()
        assert snapshot.dhcp_hosts == ()

    def test_async_snapshot(self, cache: ConfigSetCache) -> None:
        """get_snapshot_async returns the same snapshot off the event loop."""
        snapshot = asyncio.run(cache.get_snapshot_async())
        assert snapshot is cache.get_snapshot()

    def test_context_manager_stops_watcher(
        self, conf_tree: Path, recorder: WatcherRecorder
    ) -> None:
        """Leaving the context stops the watcher."""
        with ConfigSetCache(conf_tree, watcher_factory=recorder):
            pass

        assert recorder.watchers[0].stopped

    def test_from_settings(self, conf_tree: Path, recorder: WatcherRecorder) -> None:
        """Settings provide the paths and the watch switch."""
        settings = MasqctlSettings(
            main_config_path=conf_tree,
            managed_file_name="mine.conf",
            watch=False,
        )

        cache = ConfigSetCache.from_settings(settings)

        assert cache.managed_file_path == conf_tree.parent / "mine.conf"
        assert cache.get_snapshot().config_set.files[-1].path.name == "mine.conf"
