"""Command identifiers and slash command dispatch."""

from __future__ import annotations

import shlex
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table

if TYPE_CHECKING:
    from termdeck.core.orchestrator import Orchestrator


@dataclass(frozen=True)
class Command:
    """A user-invokable orchestrator operation."""

    id: str
    usage: str
    description: str
    run: Callable[[Orchestrator, list[str]], Awaitable[Any]]


async def _start_all(o: Orchestrator, args: list[str]) -> Any:
    return o.start_all()


async def _stop_all(o: Orchestrator, args: list[str]) -> Any:
    return o.stop_all()


async def _reload(o: Orchestrator, args: list[str]) -> Any:
    return o.reload()


def _arg(args: list[str], index: int) -> str | None:
    return args[index] if len(args) > index else None


_COMMAND_LIST = [
    Command("start-all", "", "Start every auto-start terminal", _start_all),
    Command(
        "start-selected", "", "Pick terminals to start",
        lambda o, a: o.start_selected(),
    ),
    Command(
        "stop-selected", "", "Pick running terminals to stop",
        lambda o, a: o.stop_selected(),
    ),
    Command("stop-all", "", "Stop every terminal and watch", _stop_all),
    Command(
        "start-one", "[name]", "Start one terminal",
        lambda o, a: o.start_one(_arg(a, 0)),
    ),
    Command(
        "stop-one", "[name]", "Stop one running terminal",
        lambda o, a: o.stop_one(_arg(a, 0)),
    ),
    Command(
        "start-group", "[group]", "Start every terminal of a group",
        lambda o, a: o.start_group(_arg(a, 0)),
    ),
    Command(
        "stop-group", "[group]", "Stop every terminal of a group",
        lambda o, a: o.stop_group(_arg(a, 0)),
    ),
    Command(
        "run-module-script", "[module] [script]", "Run one script of a module",
        lambda o, a: o.run_module_script(_arg(a, 0), _arg(a, 1)),
    ),
    Command(
        "run-chained-module-scripts", "[module]", "Run a module's runScripts in order",
        lambda o, a: o.run_chained_module_scripts(_arg(a, 0)),
    ),
    Command(
        "stop-module-script", "", "Pick module scripts to stop",
        lambda o, a: o.stop_module_script(),
    ),
    Command(
        "stop-chained-module-scripts", "", "Pick module chains to stop",
        lambda o, a: o.stop_chained_module_scripts(),
    ),
    Command("reload", "", "Stop everything and start auto-start terminals again", _reload),
    Command("list", "", "List running terminals", lambda o, a: _list(o)),
]

COMMANDS: dict[str, Command] = {cmd.id: cmd for cmd in _COMMAND_LIST}


async def _list(orchestrator: Orchestrator, console: Console | None = None) -> Any:
    sessions = orchestrator.sessions()
    console = console or Console()
    if not sessions:
        console.print("[dim]No terminals running[/dim]")
        return sessions

    table = Table(title="Running Terminals")
    table.add_column("Name", style="bold")
    table.add_column("Kind")
    table.add_column("Module")
    table.add_column("Watching", style="dim")
    for info in sessions:
        table.add_row(
            escape(info.name),
            info.kind,
            info.module or "-",
            ", ".join(str(p) for p in info.watched) or "-",
        )
    console.print(table)
    return sessions


async def run_command(orchestrator: Orchestrator, command_id: str, args: list[str] | None = None) -> Any:
    """Run a command by id.

    Raises:
        KeyError: If ``command_id`` is not a known command.
    """
    return await COMMANDS[command_id].run(orchestrator, args or [])


class CommandHandler:
    """Handles slash commands in the REPL."""

    def __init__(self, orchestrator: Orchestrator, console: Console | None = None) -> None:
        self.orchestrator = orchestrator
        self.console = console or Console()

    async def handle(self, line: str) -> bool:
        """Handle a slash command.

        Returns:
            False when the user asked to quit.
        """
        try:
            parts = shlex.split(line)
        except ValueError as e:
            self.console.print(f"[red]{escape(str(e))}[/red]")
            return True
        if not parts:
            return True

        cmd = parts[0].lower().lstrip("/")
        args = parts[1:]

        if cmd in ("quit", "exit"):
            return False
        if cmd == "help":
            self.print_help()
            return True

        command = COMMANDS.get(cmd)
        if command is None:
            self.console.print(f"[red]Unknown command: /{escape(cmd)}[/red]")
            self.console.print("Type [bold]/help[/bold] for available commands.")
            return True

        if command.id == "list":
            await _list(self.orchestrator, self.console)
        else:
            await command.run(self.orchestrator, args)
        return True

    def print_help(self) -> None:
        table = Table(title="Available Commands")
        table.add_column("Command", style="bold")
        table.add_column("Description")

        for command in COMMANDS.values():
            usage = f"/{command.id} {command.usage}".rstrip()
            table.add_row(escape(usage), command.description)
        table.add_row("/help", "Show this help message")
        table.add_row("/quit", "Stop every terminal and exit")

        self.console.print(table)
