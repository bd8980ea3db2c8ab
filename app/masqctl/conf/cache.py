"""Config-set cache.

Owns the resolved view of one dnsmasq config set: the files, the effective
config and its provenance, the managed file's parsed lines, and every
dhcp-host reservation. The view is an immutable ConfigSetSnapshot that is
rebuilt as a whole, never patched.

A snapshot is reused until one of the following happens:

- a watcher reports a change to the main or managed file
- invalidate() is called
- the snapshot is older than STALE_CACHE_SECONDS, which covers
  filesystem events that were missed or coalesced

A change to the managed file within SELF_WRITE_IGNORE_SECONDS of
notify_we_wrote_managed_config() is this process's own write echoing back
and is ignored. The write itself already marked the cache dirty.

Rebuilds are serialized by a build lock. Readers that find a fresh
snapshot only take the short state lock and never wait for a rebuild.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from types import TracebackType
from typing import TYPE_CHECKING

from masqctl.conf.dhcp_host import (
    DhcpHostEntry,
    assign_ids,
    is_dhcp_host_candidate,
    parse_dhcp_host_line,
)
from masqctl.conf.effective import (
    EffectiveConfig,
    EffectiveConfigSources,
    build_effective_config,
    build_effective_sources,
    default_effective_config,
    default_effective_sources,
)
from masqctl.conf.errors import OperationCancelledError
from masqctl.conf.includes import absolute_path, build_config_set
from masqctl.conf.lines import ManagedConfigContent, build_managed_content
from masqctl.conf.models import ConfigSet
from masqctl.conf.reader import read_config_lines
from masqctl.conf.resolution import DirectiveIndex
from masqctl.conf.watcher import FileWatcherPort, WatchfilesWatcher
from masqctl.core.settings import DEFAULT_MANAGED_FILE_NAME, DEFAULT_MANAGED_HOSTS_FILE_NAME

if TYPE_CHECKING:
    from masqctl.core.settings import MasqctlSettings

logger = logging.getLogger(__name__)

STALE_CACHE_SECONDS = 120.0
SELF_WRITE_IGNORE_SECONDS = 1.5

WatcherFactory = Callable[[Sequence[Path], Callable[[Path], None]], FileWatcherPort]


class CacheState(str, Enum):
    """Lifecycle state of the cached snapshot.

    Attributes:
        FRESH: A snapshot exists, is not flagged dirty and is within the staleness window.
        DIRTY: The next read rebuilds the snapshot.
        BUILDING: A rebuild is in progress.
    """

    FRESH = "fresh"
    DIRTY = "dirty"
    BUILDING = "building"


@dataclass(frozen=True, slots=True)
class ConfigSetSnapshot:
    """Resolved state of a config set at one point in time.

    Attributes:
        config_set: Files in load order and the managed file locations.
        effective: Effective value of every registered option.
        sources: Provenance of every effective value.
        managed_content: Parsed lines of the managed file.
        dhcp_hosts: dhcp-host entries of all files, with stable ids.
        built_at: Clock reading when the snapshot was built.
    """

    config_set: ConfigSet
    effective: EffectiveConfig = field(default_factory=default_effective_config)
    sources: EffectiveConfigSources = field(default_factory=default_effective_sources)
    managed_content: ManagedConfigContent = field(default_factory=ManagedConfigContent)
    dhcp_hosts: tuple[DhcpHostEntry, ...] = ()
    built_at: float = 0.0

    @property
    def managed_dhcp_hosts(self) -> list[DhcpHostEntry]:
        """Entries of the managed file, which are the editable ones."""
        return [entry for entry in self.dhcp_hosts if entry.is_editable]


def empty_snapshot(built_at: float = 0.0) -> ConfigSetSnapshot:
    """Snapshot of an unconfigured config set (no main config path)."""
    return ConfigSetSnapshot(
        config_set=ConfigSet(main_path=None, managed_file_path=None, managed_hosts_file_path=None),
        built_at=built_at,
    )


def _check_cancelled(cancel_event: threading.Event | None) -> None:
    if cancel_event is not None and cancel_event.is_set():
        msg = "Config set read was cancelled"
        raise OperationCancelledError(msg)


def read_all_paths(
    paths: Iterable[Path],
    cancel_event: threading.Event | None = None,
) -> dict[Path, list[str]]:
    """Read every file of a config set once.

    Missing and unreadable files read as empty, so one bad file degrades
    only its own content.

    Args:
        paths: Files to read.
        cancel_event: Checked before each read.

    Returns:
        Mapping of path to its lines.

    Raises:
        OperationCancelledError: If cancel_event is set.
    """
    result: dict[Path, list[str]] = {}
    for path in paths:
        _check_cancelled(cancel_event)
        if path in result:
            continue
        if not path.is_file():
            result[path] = []
            continue
        try:
            result[path] = read_config_lines(path)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Cannot read config file %s: %s", path, e)
            result[path] = []
    return result


def _collect_dhcp_hosts(
    config_set: ConfigSet,
    path_to_lines: dict[Path, list[str]],
) -> tuple[DhcpHostEntry, ...]:
    """Extract the dhcp-host entries of every file, with stable ids.

    Managed entries are assigned ids first, exactly as the writer does when
    it re-reads the managed file alone, so their ids match on write.
    Entries of other files are disambiguated against them.
    """
    per_file: list[tuple[bool, list[DhcpHostEntry]]] = []
    for config_file in config_set.files:
        entries: list[DhcpHostEntry] = []
        for number, line in enumerate(path_to_lines.get(config_file.path, []), start=1):
            if not is_dhcp_host_candidate(line):
                continue
            entry = parse_dhcp_host_line(line, number)
            if entry is not None:
                entries.append(
                    replace(
                        entry,
                        source_path=str(config_file.path),
                        is_editable=config_file.is_managed,
                    )
                )
        per_file.append((config_file.is_managed, entries))

    managed = assign_ids(e for is_managed, entries in per_file if is_managed for e in entries)
    others = iter(
        assign_ids(
            (e for is_managed, entries in per_file if not is_managed for e in entries),
            reserved=(e.id for e in managed if e.id is not None),
        )
    )
    managed_iter = iter(managed)

    ordered: list[DhcpHostEntry] = []
    for is_managed, entries in per_file:
        source = managed_iter if is_managed else others
        ordered.extend(next(source) for _ in entries)
    return tuple(ordered)


def build_snapshot(
    config_set: ConfigSet,
    cancel_event: threading.Event | None = None,
    built_at: float = 0.0,
) -> ConfigSetSnapshot:
    """Read a config set and resolve everything a snapshot holds.

    Args:
        config_set: Files to read, in load order.
        cancel_event: Checked before each file read.
        built_at: Clock reading to record on the snapshot.

    Returns:
        The new snapshot.

    Raises:
        OperationCancelledError: If cancel_event is set during the reads.
    """
    paths = config_set.paths
    path_to_lines = read_all_paths(paths, cancel_event)
    index = DirectiveIndex(paths, path_to_lines)

    effective = build_effective_config(paths, path_to_lines, index=index)
    sources = build_effective_sources(
        paths, path_to_lines, config_set.managed_file_path, index=index
    )
    managed_lines = (
        path_to_lines.get(config_set.managed_file_path, [])
        if config_set.managed_file_path is not None
        else []
    )

    return ConfigSetSnapshot(
        config_set=config_set,
        effective=effective,
        sources=sources,
        managed_content=build_managed_content(managed_lines),
        dhcp_hosts=_collect_dhcp_hosts(config_set, path_to_lines),
        built_at=built_at,
    )


class ConfigSetCache:
    """Cached, self-refreshing snapshot of one dnsmasq config set.

    One instance serves one config set. It owns its file watchers, so it
    must be closed (or used as a context manager) to stop them.

    Example:
        >>> with ConfigSetCache("/etc/dnsmasq.conf") as cache:
        ...     snapshot = cache.get_snapshot()
        ...     snapshot.effective.cache_size
    """

    def __init__(
        self,
        main_config_path: str | Path | None,
        managed_file_name: str = DEFAULT_MANAGED_FILE_NAME,
        managed_hosts_file_name: str = DEFAULT_MANAGED_HOSTS_FILE_NAME,
        *,
        watch: bool = True,
        clock: Callable[[], float] = time.monotonic,
        watcher_factory: WatcherFactory = WatchfilesWatcher,
    ) -> None:
        """Initialize the cache and start watching the main and managed files.

        Args:
            main_config_path: Main dnsmasq config; None or empty for an
                unconfigured cache that always returns an empty snapshot.
            managed_file_name: Managed config file name, next to the main config.
            managed_hosts_file_name: Managed hosts file name, next to the main config.
            watch: Start filesystem watchers.
            clock: Monotonic clock used for staleness and self-write suppression.
            watcher_factory: Creates the watcher for a list of files and a callback.
        """
        self._clock = clock
        self._main_path: Path | None = None
        self._managed_file_path: Path | None = None
        self._managed_hosts_file_path: Path | None = None
        if main_config_path:
            self._main_path = absolute_path(main_config_path)
            config_dir = self._main_path.parent
            self._managed_file_path = config_dir / managed_file_name
            self._managed_hosts_file_path = config_dir / managed_hosts_file_name

        self._state_lock = threading.Lock()
        self._build_lock = threading.Lock()
        self._snapshot: ConfigSetSnapshot | None = None
        self._dirty = True
        self._building = False
        self._generation = 0
        self._last_self_write: float | None = None

        self._watcher: FileWatcherPort | None = None
        if watch and self._main_path is not None and self._managed_file_path is not None:
            self._watcher = watcher_factory(
                [self._main_path, self._managed_file_path], self._on_file_changed
            )
            self._watcher.start()

    @classmethod
    def from_settings(cls, settings: MasqctlSettings, *, watch: bool | None = None) -> ConfigSetCache:
        """Create a cache for the config set described by settings.

        Args:
            settings: masqctl settings.
            watch: Override settings.watch.

        Returns:
            A new cache.
        """
        return cls(
            settings.main_config_path,
            settings.managed_file_name,
            settings.managed_hosts_file_name,
            watch=settings.watch if watch is None else watch,
        )

    @property
    def main_path(self) -> Path | None:
        return self._main_path

    @property
    def managed_file_path(self) -> Path | None:
        return self._managed_file_path

    @property
    def managed_hosts_file_path(self) -> Path | None:
        return self._managed_hosts_file_path

    @property
    def state(self) -> CacheState:
        """Current lifecycle state."""
        with self._state_lock:
            if self._building:
                return CacheState.BUILDING
            if self._is_fresh_locked():
                return CacheState.FRESH
            return CacheState.DIRTY

    def _is_fresh_locked(self) -> bool:
        """Check freshness; caller holds the state lock. Marks stale snapshots dirty."""
        if self._snapshot is None or self._dirty:
            return False
        if self._clock() - self._snapshot.built_at >= STALE_CACHE_SECONDS:
            self._dirty = True
            return False
        return True

    def _mark_dirty_locked(self) -> None:
        self._dirty = True
        self._generation += 1

    def _on_file_changed(self, path: Path) -> None:
        """Watcher callback: flag the snapshot dirty, nothing else."""
        with self._state_lock:
            if (
                path == self._managed_file_path
                and self._last_self_write is not None
                and self._clock() - self._last_self_write < SELF_WRITE_IGNORE_SECONDS
            ):
                logger.debug("Ignoring own write to %s", path)
                return
            self._mark_dirty_locked()
        logger.debug("Config file changed: %s", path)

    def invalidate(self) -> None:
        """Force a rebuild on the next read."""
        with self._state_lock:
            self._mark_dirty_locked()

    def notify_we_wrote_managed_config(self) -> None:
        """Record that this process just wrote the managed file.

        Call after the write has completed. The next read rebuilds, and
        the watcher's echo of the write is ignored for a short window.
        """
        with self._state_lock:
            self._last_self_write = self._clock()
            self._mark_dirty_locked()

    def get_snapshot(self, cancel_event: threading.Event | None = None) -> ConfigSetSnapshot:
        """Get the current snapshot, rebuilding it if needed.

        Args:
            cancel_event: Cancels a rebuild between file reads when set.

        Returns:
            The current snapshot.

        Raises:
            OperationCancelledError: If the rebuild was cancelled.
        """
        if self._main_path is None:
            return empty_snapshot(self._clock())

        with self._state_lock:
            if self._is_fresh_locked() and self._snapshot is not None:
                return self._snapshot

        with self._build_lock:
            with self._state_lock:
                if self._is_fresh_locked() and self._snapshot is not None:
                    return self._snapshot
                generation = self._generation
                self._building = True

            try:
                config_set = build_config_set(
                    self._main_path, self._managed_file_path, self._managed_hosts_file_path
                )
                snapshot = build_snapshot(config_set, cancel_event, built_at=self._clock())
            finally:
                with self._state_lock:
                    self._building = False

            with self._state_lock:
                self._snapshot = snapshot
                # A change reported during the build leaves the cache dirty
                self._dirty = self._generation != generation

        logger.debug(
            "Rebuilt config set snapshot: %d file(s), %d dhcp-host(s)",
            len(snapshot.config_set.files),
            len(snapshot.dhcp_hosts),
        )
        return snapshot

    async def get_snapshot_async(
        self, cancel_event: threading.Event | None = None
    ) -> ConfigSetSnapshot:
        """Get the current snapshot without blocking the event loop.

        Args:
            cancel_event: Cancels a rebuild between file reads when set.

        Returns:
            The current snapshot.
        """
        return await asyncio.to_thread(self.get_snapshot, cancel_event)

    def close(self) -> None:
        """Stop the file watchers."""
        if self._watcher is not None:
            self._watcher.stop()
            self._watcher = None

    def __enter__(self) -> ConfigSetCache:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
