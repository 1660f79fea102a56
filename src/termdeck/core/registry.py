"""Session registry: the single source of truth for running sessions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from termdeck.config.schema import SessionTag
from termdeck.logging import get_logger

if TYPE_CHECKING:
    from termdeck.terminal.protocol import Terminal

log = get_logger("registry")


@dataclass
class SessionEntry:
    """A registered session: its name, ownership tag and terminal handle.

    ``terminal`` is None while the name is reserved but the handle has not
    been created yet.
    """

    name: str
    tag: SessionTag = field(default_factory=SessionTag)
    terminal: Terminal | None = None

    @property
    def reserved(self) -> bool:
        return self.terminal is None


class SessionRegistry:
    """Maps session names to live terminals.

    Names are unique among registered sessions only; once a session is
    removed its name can be used again. All mutations are synchronous so
    a check-and-reserve cannot be interleaved on the event loop.
    """

    def __init__(self) -> None:
        self._entries: dict[str, SessionEntry] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def reserve(self, name: str, tag: SessionTag | None = None) -> bool:
        """Reserve a name before its terminal exists.

        Returns:
            True if reserved, False if the name is already registered.
        """
        if name in self._entries:
            return False
        self._entries[name] = SessionEntry(name=name, tag=tag or SessionTag())
        log.debug("Reserved %s", name)
        return True

    def bind(self, name: str, terminal: Terminal) -> SessionEntry:
        """Attach a created terminal to a reservation.

        Raises:
            KeyError: If ``name`` was never reserved.
        """
        entry = self._entries[name]
        entry.terminal = terminal
        return entry

    def get(self, name: str) -> SessionEntry | None:
        return self._entries.get(name)

    def remove(self, name: str) -> bool:
        """Unregister a session and dispose its terminal.

        Removing an unknown name is a no-op.

        Returns:
            True if an entry was removed.
        """
        entry = self._entries.pop(name, None)
        if entry is None:
            return False
        self._dispose(entry)
        log.debug("Removed %s", name)
        return True

    def remove_all(self) -> int:
        """Dispose every terminal and clear the table.

        Returns:
            Number of sessions removed.
        """
        entries = list(self._entries.values())
        self._entries.clear()
        for entry in entries:
            self._dispose(entry)
        return len(entries)

    def discard_terminal(self, terminal: Terminal) -> str | None:
        """Forget the entry that holds exactly this terminal.

        Used when the host reports a terminal closed. A handle that was
        already replaced by a newer session of the same name removes nothing.

        Returns:
            The name that was removed, or None.
        """
        for name, entry in self._entries.items():
            if entry.terminal is terminal:
                del self._entries[name]
                log.debug("Discarded closed session %s", name)
                return name
        return None

    def names(self) -> list[str]:
        return list(self._entries)

    def entries(self, kind: str | None = None, module: str | None = None) -> list[SessionEntry]:
        """List entries, optionally filtered by tag kind and module."""
        return [
            entry
            for entry in self._entries.values()
            if (kind is None or entry.tag.kind == kind)
            and (module is None or entry.tag.module == module)
        ]

    def _dispose(self, entry: SessionEntry) -> None:
        if entry.terminal is None:
            return
        try:
            entry.terminal.dispose()
        except Exception as e:
            log.error("Error disposing session %s: %s", entry.name, e)
