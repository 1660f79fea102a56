"""User interaction protocol: pickers and notifications."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class PickItem:
    """One entry in a picker."""

    label: str
    description: str = ""


class UserInterface(Protocol):
    """How the orchestrator asks and tells the user things.

    Pickers return None when nothing was chosen (cancelled or empty input).
    Notifications are fire-and-forget.
    """

    async def pick_one(
        self, items: Sequence[PickItem], placeholder: str = ""
    ) -> PickItem | None: ...

    async def pick_many(
        self, items: Sequence[PickItem], placeholder: str = ""
    ) -> list[PickItem] | None: ...

    def info(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...
