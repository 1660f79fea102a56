"""Terminal support for long-lived interactive sessions.

Provides the Terminal/TerminalFactory protocols the orchestrator talks to,
with a subprocess-backed implementation for local shells.
"""

from termdeck.terminal.protocol import Terminal, TerminalFactory
from termdeck.terminal.subprocess_terminal import (
    SubprocessTerminal,
    SubprocessTerminalFactory,
    default_shell_command,
)

__all__ = [
    "SubprocessTerminal",
    "SubprocessTerminalFactory",
    "Terminal",
    "TerminalFactory",
    "default_shell_command",
]
