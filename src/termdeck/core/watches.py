"""Watch registry: one active file watch per absolute path."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from termdeck.logging import get_logger
from termdeck.watching.watcher import FileChangeEvent

log = get_logger("watches")

PathCallback = Callable[[Path], None]


class WatchHandleLike(Protocol):
    def on_change(self, callback: Callable[[FileChangeEvent], None]) -> None: ...

    def on_delete(self, callback: Callable[[FileChangeEvent], None]) -> None: ...

    def dispose(self) -> None: ...


class WatchSource(Protocol):
    """Anything that can hand out watch handles (FileWatcher, test fakes)."""

    def watch(self, path: Path) -> WatchHandleLike: ...


@dataclass
class WatchEntry:
    path: Path
    owner: str
    handle: WatchHandleLike


class WatchRegistry:
    """Maps absolute file paths to their watch.

    Keyed by path rather than session name, so sessions sharing a manifest
    never get duplicate watchers.
    """

    def __init__(self, source: WatchSource) -> None:
        self._source = source
        self._entries: dict[Path, WatchEntry] = {}

    def __contains__(self, path: object) -> bool:
        return path in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def arm(
        self,
        path: Path,
        owner: str,
        on_change: PathCallback,
        on_delete: PathCallback,
    ) -> WatchEntry:
        """Install a watch on ``path``, replacing any existing one.

        Args:
            path: Absolute path to watch.
            owner: Name of the session the watch restarts/stops.
            on_change: Called with the path when the file changes.
            on_delete: Called with the path when the file is deleted.
        """
        self.disarm(path)

        handle = self._source.watch(path)
        entry = WatchEntry(path=path, owner=owner, handle=handle)

        def changed(event: FileChangeEvent) -> None:
            if self._entries.get(path) is entry:
                on_change(path)

        def deleted(event: FileChangeEvent) -> None:
            if self._entries.get(path) is entry:
                on_delete(path)

        handle.on_change(changed)
        handle.on_delete(deleted)
        self._entries[path] = entry
        log.debug("Armed watch on %s for %s", path, owner)
        return entry

    def get(self, path: Path) -> WatchEntry | None:
        return self._entries.get(path)

    def disarm(self, path: Path) -> bool:
        """Dispose and forget the watch on ``path``; no-op if none."""
        entry = self._entries.pop(path, None)
        if entry is None:
            return False
        self._dispose(entry)
        log.debug("Disarmed watch on %s", path)
        return True

    def disarm_owner(self, owner: str) -> int:
        """Dispose every watch owned by ``owner``.

        Returns:
            Number of watches removed.
        """
        paths = [p for p, e in self._entries.items() if e.owner == owner]
        for path in paths:
            self.disarm(path)
        return len(paths)

    def disarm_all(self) -> int:
        entries = list(self._entries.values())
        self._entries.clear()
        for entry in entries:
            self._dispose(entry)
        return len(entries)

    def owned_by(self, owner: str) -> list[Path]:
        return [p for p, e in self._entries.items() if e.owner == owner]

    def paths(self) -> list[Path]:
        return list(self._entries)

    def _dispose(self, entry: WatchEntry) -> None:
        try:
            entry.handle.dispose()
        except Exception as e:
            log.error("Error disposing watch on %s: %s", entry.path, e)
