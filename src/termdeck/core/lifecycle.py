"""Session lifecycle: starting, stopping and file-driven restarts.

A session either gets its commands inline or from a manifest ``location``.
File-sourced sessions are watched: editing the manifest tears the session
down and recreates it from the fresh contents, deleting it stops the
session for good.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from termdeck.config.schema import SessionSpec, SessionTag
from termdeck.errors import ConfigurationError, TermdeckError
from termdeck.logging import get_logger
from termdeck.manifest import read_commands
from termdeck.workspace import resolve_location

if TYPE_CHECKING:
    from termdeck.core.registry import SessionRegistry
    from termdeck.core.watches import WatchRegistry
    from termdeck.terminal.protocol import Terminal, TerminalFactory
    from termdeck.ui.protocol import UserInterface

log = get_logger("lifecycle")


class StartOutcome(Enum):
    """Result of a start request."""

    STARTED = "started"
    ALREADY_EXISTS = "already_exists"
    FAILED = "failed"


class SessionLifecycle:
    """Starts and stops sessions against the shared registry and watch table."""

    def __init__(
        self,
        *,
        registry: SessionRegistry,
        watches: WatchRegistry,
        terminals: TerminalFactory,
        ui: UserInterface,
        workspace_root: str | Path | None,
    ) -> None:
        self._registry = registry
        self._watches = watches
        self._terminals = terminals
        self._ui = ui
        self._workspace_root = workspace_root

    @property
    def workspace_root(self) -> str | Path | None:
        return self._workspace_root

    def resolve_commands(self, spec: SessionSpec) -> tuple[list[str], Path | None]:
        """Work out what to feed a session and which file (if any) it came from.

        Returns:
            (commands, manifest path or None for inline commands)

        Raises:
            ConfigurationError: If the spec has neither commands nor location.
            ManifestError, WorkspaceError: If the location cannot be read.
        """
        if spec.commands:
            return list(spec.commands), None
        if spec.location:
            path = resolve_location(spec.location, self._workspace_root)
            return read_commands(path), path
        raise ConfigurationError(
            f"Terminal {spec.name!r} has neither 'commands' nor 'location'"
        )

    def start(self, spec: SessionSpec) -> StartOutcome:
        """Start a session unless one with the same name is running.

        Failures are reported to the user and leave no session or watch
        behind.
        """
        if spec.name in self._registry:
            self._ui.info(f"Terminal {spec.name!r} is already running.")
            return StartOutcome.ALREADY_EXISTS

        try:
            commands, source = self.resolve_commands(spec)
        except ConfigurationError as e:
            self._ui.warning(str(e))
            return StartOutcome.FAILED
        except (TermdeckError, OSError) as e:
            self._ui.error(f"Cannot start {spec.name!r}: {e}")
            return StartOutcome.FAILED

        terminal = self.open(spec.name, SessionTag(), cwd=None)
        if terminal is None:
            return StartOutcome.FAILED

        for command in commands:
            terminal.send_text(command)
        log.info("Started %s (%d commands)", spec.name, len(commands))

        if source is not None:
            self.arm_watch(source, spec.name)

        return StartOutcome.STARTED

    def open(self, name: str, tag: SessionTag, cwd: str | None) -> Terminal | None:
        """Reserve ``name``, create its terminal, register and show it.

        Returns:
            The terminal, or None if the name is taken or creation failed
            (the reservation is released in that case).
        """
        if not self._registry.reserve(name, tag):
            self._ui.info(f"Terminal {name!r} is already running.")
            return None

        try:
            terminal = self._terminals.create(name, cwd)
        except Exception as e:
            self._registry.remove(name)
            self._ui.error(f"Could not create terminal {name!r}: {e}")
            return None

        self._registry.bind(name, terminal)
        terminal.show()
        return terminal

    def stop(self, name: str, release_watch: bool = True) -> bool:
        """Stop a session; idempotent.

        Args:
            name: Session name.
            release_watch: Also dispose watches owned by this session.

        Returns:
            True if a running session was removed.
        """
        removed = self._registry.remove(name)
        if release_watch:
            self._watches.disarm_owner(name)
        if removed:
            log.info("Stopped %s", name)
        return removed

    def stop_all(self) -> int:
        """Dispose every session and every watch."""
        count = self._registry.remove_all()
        self._watches.disarm_all()
        return count

    def arm_watch(self, path: Path, owner: str) -> None:
        self._watches.arm(
            path,
            owner,
            on_change=lambda p: self._on_file_changed(p, owner),
            on_delete=lambda p: self._on_file_deleted(p, owner),
        )

    def _on_file_changed(self, path: Path, owner: str) -> None:
        self._ui.info(f"{path.name} changed, restarting {owner!r}.")
        # Keep the watch until the restart re-arms it, so a broken edit can be fixed
        self.stop(owner, release_watch=False)
        self.start(SessionSpec(name=owner, location=str(path)))

    def _on_file_deleted(self, path: Path, owner: str) -> None:
        self._ui.warning(f"{path.name} was deleted, stopping {owner!r}.")
        self.stop(owner, release_watch=False)
        self._watches.disarm(path)

    def on_terminal_closed(self, terminal: Terminal) -> None:
        """Registry and watch cleanup when the host reports a terminal closed.

        A session closed by the user stays closed: its manifest watch is
        released so a later edit does not bring it back.
        """
        name = self._registry.discard_terminal(terminal)
        if name is not None:
            self._watches.disarm_owner(name)
            log.info("Terminal %s closed", name)
