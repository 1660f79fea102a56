"""Tests for the console user interface."""

from __future__ import annotations

import io

import pytest
from rich.console import Console

from termdeck.ui import ConsoleUI, PickItem, parse_selection


class FakePromptSession:
    def __init__(self, *answers: str | BaseException) -> None:
        self.answers = list(answers)
        self.prompts: list[str] = []

    def prompt(self, message: str) -> str:
        self.prompts.append(message)
        answer = self.answers.pop(0)
        if isinstance(answer, BaseException):
            raise answer
        return answer


def make_ui(*answers: str | BaseException) -> tuple[ConsoleUI, io.StringIO]:
    out = io.StringIO()
    console = Console(file=out, width=120, color_system=None)
    return ConsoleUI(console, FakePromptSession(*answers)), out  # type: ignore[arg-type]


ITEMS = [PickItem("web", "run serve"), PickItem("api", "api/commands.json"), PickItem("db")]


class TestParseSelection:
    """Test picker answer parsing."""

    def test_single_and_list(self) -> None:
        assert parse_selection("2", 3) == [1]
        assert parse_selection("1,3", 3) == [0, 2]
        assert parse_selection("3 1", 3) == [2, 0]

    def test_ranges(self) -> None:
        assert parse_selection("1-3", 3) == [0, 1, 2]

    def test_all(self) -> None:
        assert parse_selection("*", 2) == [0, 1]
        assert parse_selection("ALL", 2) == [0, 1]

    def test_duplicates_collapsed(self) -> None:
        assert parse_selection("1,1-2", 3) == [0, 1]

    @pytest.mark.parametrize("text", ["", "   ", "0", "4", "x", "1-x", "2-9"])
    def test_invalid(self, text: str) -> None:
        assert parse_selection(text, 3) is None


class TestConsoleUI:
    """Test pickers and notifications."""

    @pytest.mark.asyncio
    async def test_pick_one(self) -> None:
        ui, out = make_ui("2")
        assert await ui.pick_one(ITEMS, "Terminal to start") == ITEMS[1]
        rendered = out.getvalue()
        assert "Terminal to start" in rendered
        assert "api/commands.json" in rendered

    @pytest.mark.asyncio
    async def test_pick_one_rejects_many(self) -> None:
        ui, _ = make_ui("1,2")
        assert await ui.pick_one(ITEMS) is None

    @pytest.mark.asyncio
    async def test_pick_many(self) -> None:
        ui, _ = make_ui("1,3")
        assert await ui.pick_many(ITEMS) == [ITEMS[0], ITEMS[2]]

    @pytest.mark.asyncio
    async def test_cancelled_prompt(self) -> None:
        ui, _ = make_ui(EOFError())
        assert await ui.pick_many(ITEMS) is None

    @pytest.mark.asyncio
    async def test_empty_items_skip_prompt(self) -> None:
        ui, _ = make_ui()
        assert await ui.pick_one([]) is None
        assert await ui.pick_many([]) is None

    def test_notifications_printed(self) -> None:
        ui, out = make_ui()
        ui.info("started [web]")
        ui.warning("careful")
        ui.error("failed")
        text = out.getvalue()
        assert "info started [web]" in text
        assert "warning careful" in text
        assert "error failed" in text
