"""Terminal protocols for long-lived interactive sessions."""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol


class Terminal(Protocol):
    """An interactive shell the orchestrator can feed text into.

    Implementations:
    - SubprocessTerminal: local shell process over a stdin pipe
    - Test fakes that record sent text
    """

    @property
    def name(self) -> str:
        """Display name of the session."""
        ...

    @property
    def disposed(self) -> bool:
        """True once dispose() was called or the process ended."""
        ...

    def show(self) -> None:
        """Make the session visible to the user."""
        ...

    def send_text(self, text: str) -> None:
        """Send a line of input. Fire-and-forget; a newline is appended."""
        ...

    def dispose(self) -> None:
        """Terminate the session. Safe to call more than once."""
        ...


class TerminalFactory(Protocol):
    """Creates terminals and reports when any of them closes."""

    def create(self, name: str, cwd: str | None = None) -> Terminal:
        """Create a new terminal, optionally rooted in ``cwd``."""
        ...

    def on_did_close(self, callback: Callable[[Terminal], None]) -> Callable[[], None]:
        """Subscribe to close notifications (user exit, process exit, dispose).

        Returns:
            A function to unsubscribe.
        """
        ...
