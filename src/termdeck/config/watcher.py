"""Config file watcher: re-reads the ConfigStore when any layer file changes.

Polls the user, project and explicit config paths. A file appearing,
disappearing or changing its (mtime, size) fingerprint triggers one store
reload per cycle; the store itself decides whether anything meaningful
changed.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import TYPE_CHECKING

from termdeck.config.paths import get_config_paths

if TYPE_CHECKING:
    from termdeck.config.store import ConfigStore

_log = logging.getLogger("termdeck.config.watcher")

DEFAULT_POLL_INTERVAL = 2.0

Fingerprint = tuple[float, int]


def _fingerprint(path: Path) -> Fingerprint | None:
    try:
        stat = path.stat()
    except OSError:
        return None
    return (stat.st_mtime, stat.st_size)


class ConfigWatcher:
    """Polls config layer files and reloads the store on change.

    Example:
        async with ConfigWatcher(store, poll_interval=1.0):
            ...
    """

    def __init__(
        self,
        store: ConfigStore,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        self._store = store
        self._poll_interval = poll_interval
        self._task: asyncio.Task[None] | None = None
        self._seen: dict[Path, Fingerprint | None] = {}

    @property
    def paths(self) -> list[Path]:
        """Config files currently layered into the store."""
        return get_config_paths(self._store.workspace_root, self._store.config_file)

    def _scan(self) -> dict[Path, Fingerprint | None]:
        return {path: _fingerprint(path) for path in self.paths}

    def prime(self) -> None:
        """Take the current state of every config file as the baseline."""
        self._seen = self._scan()

    def detect_changes(self) -> list[Path]:
        """Paths created, modified or deleted since the last scan."""
        current = self._scan()
        changed = [
            path
            for path in current.keys() | self._seen.keys()
            if current.get(path) != self._seen.get(path)
        ]
        self._seen = current
        return sorted(changed)

    def poll_once(self) -> bool:
        """Run one detection cycle; reload the store if any file changed.

        Returns:
            True if a reload was attempted.
        """
        changed = self.detect_changes()
        if not changed:
            return False

        _log.info("Config files changed: %s", ", ".join(str(p) for p in changed))
        try:
            self._store.reload()
        except Exception as e:
            _log.error("Error reloading config: %s", e)
        return True

    async def _poll_loop(self) -> None:
        self.prime()
        while True:
            await asyncio.sleep(self._poll_interval)
            self.poll_once()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start polling as a background task on the running loop."""
        if self.running:
            return
        self._task = asyncio.create_task(self._poll_loop())
        _log.debug("Config watcher started (interval=%.1fs)", self._poll_interval)

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None
            _log.debug("Config watcher stopped")

    async def __aenter__(self) -> ConfigWatcher:
        self.start()
        return self

    async def __aexit__(self, *args: object) -> None:
        self.stop()
