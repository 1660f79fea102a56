"""Config snapshot holder with change notification.

The store owns the current Config snapshot. ``reload()`` re-reads every
layer and reports which top-level sections changed, so listeners can react
only to what they care about (e.g. the reload engine to ``terminals``).
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, fields
from pathlib import Path

from termdeck.config.loader import load_config
from termdeck.config.schema import Config

_log = logging.getLogger("termdeck.config.store")

ConfigListener = Callable[["ConfigChange"], None]


@dataclass(frozen=True)
class ConfigChange:
    """A transition between two config snapshots."""

    previous: Config
    current: Config
    changed: frozenset[str]

    def affects(self, key: str) -> bool:
        return key in self.changed


def changed_sections(previous: Config, current: Config) -> frozenset[str]:
    """Names of the top-level sections that differ between two snapshots.

    Unknown keys carried in ``extra`` are reported by their own names.
    """
    changed: set[str] = set()
    for f in fields(Config):
        if f.name == "extra":
            continue
        if getattr(previous, f.name) != getattr(current, f.name):
            changed.add(f.name)

    for key in previous.extra.keys() | current.extra.keys():
        if previous.extra.get(key) != current.extra.get(key):
            changed.add(key)

    return frozenset(changed)


class ConfigStore:
    """Holds the current configuration and notifies listeners on change."""

    def __init__(
        self,
        workspace_root: str | Path | None = None,
        config_file: str | Path | None = None,
        loader: Callable[..., Config] = load_config,
    ) -> None:
        self._workspace_root = workspace_root
        self._config_file = config_file
        self._loader = loader
        self._listeners: list[ConfigListener] = []
        self._snapshot = loader(workspace_root=workspace_root, config_file=config_file)

    @property
    def snapshot(self) -> Config:
        """The current configuration."""
        return self._snapshot

    @property
    def workspace_root(self) -> str | Path | None:
        return self._workspace_root

    @property
    def config_file(self) -> str | Path | None:
        return self._config_file

    def reload(self) -> ConfigChange | None:
        """Re-read configuration and notify listeners if anything changed.

        Returns:
            The ConfigChange that was applied, or None if nothing changed.
        """
        current = self._loader(
            workspace_root=self._workspace_root,
            config_file=self._config_file,
        )
        return self.apply(current)

    def apply(self, current: Config) -> ConfigChange | None:
        """Install a new snapshot and notify listeners if it differs."""
        previous = self._snapshot
        changed = changed_sections(previous, current)
        if not changed:
            return None

        self._snapshot = current
        change = ConfigChange(previous=previous, current=current, changed=changed)
        _log.info("Configuration changed: %s", ", ".join(sorted(changed)))

        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception as e:
                _log.warning("Config change listener error: %s", e)

        return change

    def on_change(self, listener: ConfigListener) -> Callable[[], None]:
        """Register a listener for config changes.

        Returns:
            A function to unregister the listener.
        """
        self._listeners.append(listener)

        def unregister() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unregister
