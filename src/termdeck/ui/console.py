"""Console user interface built on rich and prompt_toolkit."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

from prompt_toolkit import PromptSession
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from termdeck.logging import get_logger
from termdeck.ui.protocol import PickItem

log = get_logger("ui")


def parse_selection(text: str, count: int) -> list[int] | None:
    """Parse a picker answer into zero-based indices.

    Accepts comma/space separated numbers and ranges ("1,3", "2-4") or
    "*"/"all". Returns None for empty or invalid input.
    """
    text = text.strip().lower()
    if not text:
        return None
    if text in ("*", "all"):
        return list(range(count))

    indices: list[int] = []
    for part in text.replace(",", " ").split():
        try:
            if "-" in part:
                lo, hi = (int(x) for x in part.split("-", 1))
                numbers = range(lo, hi + 1)
            else:
                numbers = range(int(part), int(part) + 1)
        except ValueError:
            return None
        for n in numbers:
            if not 1 <= n <= count:
                return None
            if n - 1 not in indices:
                indices.append(n - 1)

    return indices or None


class ConsoleUI:
    """Numbered pickers on the terminal plus colored notifications."""

    def __init__(
        self,
        console: Console | None = None,
        session: PromptSession[str] | None = None,
    ) -> None:
        self.console = console or Console()
        self.session: PromptSession[str] = session or PromptSession()

    def info(self, message: str) -> None:
        log.info("%s", message)
        self.console.print(f"[cyan]info[/cyan] {escape(message)}")

    def warning(self, message: str) -> None:
        log.warning("%s", message)
        self.console.print(f"[yellow]warning[/yellow] {escape(message)}")

    def error(self, message: str) -> None:
        log.error("%s", message)
        self.console.print(f"[bold red]error[/bold red] {escape(message)}")

    def _render(self, items: Sequence[PickItem], placeholder: str) -> None:
        table = Table(title=placeholder or None, show_header=False, box=None)
        table.add_column("#", style="bold", justify="right")
        table.add_column("Name")
        table.add_column("Description", style="dim")
        for i, item in enumerate(items, start=1):
            table.add_row(str(i), item.label, item.description)
        self.console.print(table)

    async def _ask(self, prompt: str) -> str:
        try:
            return await asyncio.get_event_loop().run_in_executor(
                None,
                lambda: self.session.prompt(prompt),
            )
        except (EOFError, KeyboardInterrupt):
            return ""

    async def pick_one(
        self, items: Sequence[PickItem], placeholder: str = ""
    ) -> PickItem | None:
        if not items:
            return None
        self._render(items, placeholder)
        indices = parse_selection(await self._ask("pick one> "), len(items))
        if not indices or len(indices) != 1:
            return None
        return items[indices[0]]

    async def pick_many(
        self, items: Sequence[PickItem], placeholder: str = ""
    ) -> list[PickItem] | None:
        if not items:
            return None
        self._render(items, placeholder)
        indices = parse_selection(await self._ask("pick (e.g. 1,3 or 2-4 or *)> "), len(items))
        if not indices:
            return None
        return [items[i] for i in indices]
