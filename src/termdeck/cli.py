"""Command-line interface and interactive REPL for termdeck."""

from __future__ import annotations

import argparse
import asyncio
from collections.abc import Sequence
from dataclasses import replace
from pathlib import Path

from prompt_toolkit import PromptSession
from prompt_toolkit.auto_suggest import AutoSuggestFromHistory
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.history import FileHistory
from rich.console import Console

from termdeck import __version__
from termdeck.commands import COMMANDS, CommandHandler, run_command
from termdeck.config import ConfigStore, ConfigWatcher
from termdeck.config.paths import get_project_config_path
from termdeck.core.orchestrator import Orchestrator
from termdeck.logging import get_logger, setup_logging, verbosity_from_flags
from termdeck.terminal import SubprocessTerminalFactory
from termdeck.ui import ConsoleUI
from termdeck.watching import FileWatcher

log = get_logger("cli")


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="termdeck",
        description="Declarative orchestrator for named interactive shell sessions",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (can be repeated)",
    )
    parser.add_argument(
        "--workspace",
        type=Path,
        default=Path.cwd(),
        help="Workspace root (default: current directory)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Extra config file layered over user and project config",
    )
    parser.add_argument(
        "--no-autostart",
        action="store_true",
        help="Do not start auto-start terminals on launch",
    )
    parser.add_argument(
        "command",
        nargs="?",
        choices=sorted(COMMANDS),
        metavar="COMMAND",
        help="Command to run once before the interactive prompt",
    )
    return parser


class InteractiveRepl:
    """Slash command prompt driving an Orchestrator."""

    def __init__(
        self,
        orchestrator: Orchestrator,
        console: Console,
        history_file: Path | None = None,
    ) -> None:
        self.commands = CommandHandler(orchestrator, console)
        self.console = console
        self._running = False

        history = FileHistory(str(history_file)) if history_file else None
        words = [f"/{cmd}" for cmd in COMMANDS] + ["/help", "/quit"]
        self.session: PromptSession[str] = PromptSession(
            history=history,
            auto_suggest=AutoSuggestFromHistory(),
            completer=WordCompleter(words, sentence=True),
        )

    async def run(self) -> None:
        """Run the interactive REPL until /quit or EOF."""
        self._running = True

        self.console.print(f"[bold]termdeck[/bold] v{__version__}")
        self.console.print("Type [bold]/help[/bold] for commands, [bold]/quit[/bold] to exit.\n")

        while self._running:
            try:
                line = await asyncio.get_event_loop().run_in_executor(
                    None,
                    lambda: self.session.prompt("termdeck> "),
                )
            except KeyboardInterrupt:
                continue
            except EOFError:
                break

            line = line.strip()
            if not line:
                continue

            if not line.startswith("/"):
                self.console.print("[dim]Unknown input. Type /help for commands.[/dim]")
                continue

            try:
                if not await self.commands.handle(line):
                    break
            except Exception as e:
                log.exception("Command failed: %s", line)
                self.console.print(f"[red]Command failed: {e}[/red]")

        self._running = False


async def run_session(
    store: ConfigStore,
    command: str | None = None,
    autostart: bool = True,
) -> int:
    """Run the orchestrator until the REPL exits, then tear everything down."""
    config = store.snapshot
    console = Console()
    ui = ConsoleUI(console)
    terminals = SubprocessTerminalFactory(shell=config.shell, console=console)
    file_watcher = FileWatcher(poll_interval=config.watch.poll_interval)
    config_watcher = ConfigWatcher(store, poll_interval=max(config.watch.poll_interval, 1.0))

    orchestrator = Orchestrator(
        config=store,
        terminals=terminals,
        ui=ui,
        watch_source=file_watcher,
    )
    orchestrator.init()

    try:
        if autostart:
            orchestrator.start_all()

        if config.watch.enabled:
            file_watcher.start()
            config_watcher.start()

        if command is not None:
            await run_command(orchestrator, command)

        history_dir = get_project_config_path(store.workspace_root).parent
        history_file = history_dir / "history" if history_dir.is_dir() else None
        await InteractiveRepl(orchestrator, console, history_file).run()
    finally:
        config_watcher.stop()
        file_watcher.stop()
        orchestrator.teardown()
        await terminals.wait_closed()

    return 0


def run_cli(args: Sequence[str]) -> int:
    """Run the CLI with the given arguments."""
    parser = create_parser()
    parsed = parser.parse_args(args)

    workspace = parsed.workspace.resolve()
    if not workspace.is_dir():
        parser.error(f"workspace is not a directory: {workspace}")

    store = ConfigStore(workspace_root=workspace, config_file=parsed.config)

    logging_config = store.snapshot.logging
    if parsed.verbose:
        logging_config = replace(logging_config, verbose=verbosity_from_flags(parsed.verbose))
    setup_logging(logging_config)
    log.debug("Workspace: %s", workspace)

    try:
        return asyncio.run(
            run_session(store, command=parsed.command, autostart=not parsed.no_autostart)
        )
    except KeyboardInterrupt:
        return 130
