"""File watching implementation using polling.

Polling is preferred over native file watchers for cross-platform
reliability. One FileWatcher serves any number of WatchHandles; each handle
watches a single absolute path and carries its own change/delete callbacks.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from termdeck.logging import get_logger

log = get_logger("watching")

WatchCallback = Callable[["FileChangeEvent"], None]


@dataclass
class WatchedFile:
    """Tracks a watched file's state."""

    path: Path
    mtime: float | None = None
    size: int | None = None
    exists: bool = True


@dataclass
class FileChangeEvent:
    """Represents a detected file change."""

    path: Path
    change_type: str  # "modified", "created", "deleted"
    old_mtime: float | None
    new_mtime: float | None
    timestamp: float = field(default_factory=time.time)


class WatchHandle:
    """A live subscription to change/delete events on one path.

    A handle disposes itself after delivering a delete event.
    """

    def __init__(self, watcher: FileWatcher, path: Path) -> None:
        self._watcher = watcher
        self._path = path
        self._change_callbacks: list[WatchCallback] = []
        self._delete_callbacks: list[WatchCallback] = []
        self._disposed = False

    @property
    def path(self) -> Path:
        return self._path

    @property
    def disposed(self) -> bool:
        return self._disposed

    def on_change(self, callback: WatchCallback) -> None:
        self._change_callbacks.append(callback)

    def on_delete(self, callback: WatchCallback) -> None:
        self._delete_callbacks.append(callback)

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        self._change_callbacks.clear()
        self._delete_callbacks.clear()
        self._watcher._release(self)

    def _deliver(self, event: FileChangeEvent) -> None:
        if self._disposed:
            return

        callbacks = (
            self._delete_callbacks if event.change_type == "deleted" else self._change_callbacks
        )
        for callback in list(callbacks):
            try:
                callback(event)
            except Exception as e:
                log.error("Error in file %s callback for %s: %s", event.change_type, self._path, e)

        if event.change_type == "deleted":
            self.dispose()

    def __repr__(self) -> str:
        state = "disposed" if self._disposed else "active"
        return f"<WatchHandle {self._path} {state}>"


class FileWatcher:
    """Watches files for external changes using polling.

    Example:
        watcher = FileWatcher(poll_interval=1.0)
        handle = watcher.watch(Path("/project/api/commands.json"))
        handle.on_change(lambda event: print("changed", event.path))
        handle.on_delete(lambda event: print("deleted", event.path))
        watcher.start()
    """

    def __init__(self, poll_interval: float = 1.0) -> None:
        """Initialize the file watcher.

        Args:
            poll_interval: Seconds between polling cycles (default 1.0)
        """
        self._poll_interval = max(0.1, poll_interval)

        # path -> WatchedFile
        self._watched: dict[Path, WatchedFile] = {}

        # path -> handles watching this path
        self._handles: dict[Path, list[WatchHandle]] = {}

        self._running = False
        self._task: asyncio.Task[None] | None = None

    @property
    def poll_interval(self) -> float:
        return self._poll_interval

    @poll_interval.setter
    def poll_interval(self, value: float) -> None:
        self._poll_interval = max(0.1, value)  # Minimum 100ms

    @property
    def watched_count(self) -> int:
        """Get the number of watched files."""
        return len(self._watched)

    def watch(self, path: str | Path) -> WatchHandle:
        """Start watching an absolute path.

        Args:
            path: File to watch. Relative paths are resolved against the
                process working directory.

        Returns:
            A new handle for subscribing to events on this path.
        """
        resolved = Path(path).resolve()
        handle = WatchHandle(self, resolved)
        self._handles.setdefault(resolved, []).append(handle)

        if resolved not in self._watched:
            self._watched[resolved] = self._snapshot(resolved)

        log.debug("Watching %s", resolved)
        return handle

    def _snapshot(self, path: Path) -> WatchedFile:
        try:
            stat = path.stat()
        except FileNotFoundError:
            return WatchedFile(path=path, mtime=None, size=None, exists=False)
        return WatchedFile(path=path, mtime=stat.st_mtime, size=stat.st_size, exists=True)

    def _release(self, handle: WatchHandle) -> None:
        handles = self._handles.get(handle.path)
        if handles is None:
            return
        if handle in handles:
            handles.remove(handle)
        if not handles:
            del self._handles[handle.path]
            self._watched.pop(handle.path, None)
            log.debug("Removed watch for %s", handle.path)

    def check_changes(self) -> list[FileChangeEvent]:
        """Check all watched files and deliver events to their handles.

        This is a synchronous check suitable for calling from the poll loop
        or directly from tests.

        Returns:
            List of FileChangeEvent for any changed files
        """
        events: list[FileChangeEvent] = []

        for path, watched in list(self._watched.items()):
            event = self._check_file(path, watched)
            if event:
                events.append(event)

        for event in events:
            for handle in list(self._handles.get(event.path, ())):
                handle._deliver(event)

        return events

    def _check_file(self, path: Path, watched: WatchedFile) -> FileChangeEvent | None:
        try:
            stat = path.stat()
            current_mtime = stat.st_mtime
            current_size = stat.st_size

            if not watched.exists:
                watched.exists = True
                watched.mtime = current_mtime
                watched.size = current_size
                return FileChangeEvent(
                    path=path,
                    change_type="created",
                    old_mtime=None,
                    new_mtime=current_mtime,
                )

            if current_mtime != watched.mtime or current_size != watched.size:
                old_mtime = watched.mtime
                watched.mtime = current_mtime
                watched.size = current_size
                return FileChangeEvent(
                    path=path,
                    change_type="modified",
                    old_mtime=old_mtime,
                    new_mtime=current_mtime,
                )

        except FileNotFoundError:
            if watched.exists:
                old_mtime = watched.mtime
                watched.exists = False
                watched.mtime = None
                watched.size = None
                return FileChangeEvent(
                    path=path,
                    change_type="deleted",
                    old_mtime=old_mtime,
                    new_mtime=None,
                )

        except OSError as e:
            log.warning("Error checking %s: %s", path, e)

        return None

    async def run(self) -> None:
        """Run the polling loop until stopped or cancelled."""
        if self._running:
            log.warning("FileWatcher already running")
            return

        self._running = True
        log.info("FileWatcher started (interval: %.1fs)", self._poll_interval)

        try:
            while self._running:
                self.check_changes()
                await asyncio.sleep(self._poll_interval)
        except asyncio.CancelledError:
            log.debug("FileWatcher cancelled")
        finally:
            self._running = False

    def start(self) -> None:
        """Start the polling loop as a background task."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run())

    def stop(self) -> None:
        """Stop the polling loop."""
        self._running = False
        if self._task and not self._task.done():
            self._task.cancel()
        self._task = None
        log.debug("FileWatcher stopped")

    def is_running(self) -> bool:
        return self._running
