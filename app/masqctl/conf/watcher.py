"""Filesystem watching for config files.

Watches individual files (the main config and the managed file) through
their parent directories and reports creations and modifications on a
background thread. Callbacks run on that thread and must not block; the
config-set cache only flips a flag from them.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Protocol

from watchfiles import Change, watch

logger = logging.getLogger(__name__)

# Changes that signal new file content
_CONTENT_CHANGES: frozenset[Change] = frozenset({Change.added, Change.modified})


class FileWatcherPort(Protocol):
    def start(self) -> None: ...

    def stop(self) -> None: ...


class WatchfilesWatcher:
    """Watch a set of files and call back when one of them changes.

    Implements the ``FileWatcherPort`` protocol. Files whose directory does
    not exist yet are not watched.
    """

    def __init__(
        self,
        paths: Iterable[Path],
        on_change: Callable[[Path], None],
        *,
        debounce_ms: int = 200,
    ) -> None:
        self._targets: frozenset[Path] = frozenset(paths)
        self._on_change = on_change
        self._debounce_ms = debounce_ms
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def directories(self) -> list[Path]:
        """Existing directories that contain a watched file."""
        dirs = sorted({p.parent for p in self._targets})
        watched: list[Path] = []
        for directory in dirs:
            if directory.is_dir():
                watched.append(directory)
            else:
                logger.debug("Directory does not exist yet, not watching: %s", directory)
        return watched

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self._thread is not None:
            return
        directories = self.directories
        if not directories:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._watch,
            args=(directories,),
            name="masqctl-watcher",
            daemon=True,
        )
        self._thread.start()
        logger.debug("Watcher started for %s", ", ".join(str(d) for d in directories))

    def stop(self) -> None:
        if self._thread is None:
            return
        self._stop_event.set()
        self._thread.join(timeout=5)
        self._thread = None
        logger.debug("Watcher stopped")

    def _is_relevant(self, change: Change, path: str) -> bool:
        return change in _CONTENT_CHANGES and Path(path) in self._targets

    def _watch(self, directories: list[Path]) -> None:
        try:
            for changes in watch(
                *directories,
                watch_filter=self._is_relevant,
                debounce=self._debounce_ms,
                stop_event=self._stop_event,
                recursive=False,
                raise_interrupt=False,
            ):
                for _, path in changes:
                    logger.debug("Detected change in %s", path)
                    try:
                        self._on_change(Path(path))
                    except Exception:
                        logger.exception("Error in watcher callback")
        except Exception:
            logger.exception("Watcher for %s stopped unexpectedly", directories)
