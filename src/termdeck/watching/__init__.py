"""File watching module for termdeck.

Provides polling-based file watching so that sessions sourced from a
command file restart when the file changes and stop when it is deleted.
"""

from termdeck.watching.watcher import (
    FileChangeEvent,
    FileWatcher,
    WatchedFile,
    WatchHandle,
)

__all__ = [
    "FileChangeEvent",
    "FileWatcher",
    "WatchHandle",
    "WatchedFile",
]
