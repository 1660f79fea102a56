"""User interaction for termdeck."""

from termdeck.ui.console import ConsoleUI, parse_selection
from termdeck.ui.protocol import PickItem, UserInterface

__all__ = [
    "ConsoleUI",
    "PickItem",
    "UserInterface",
    "parse_selection",
]
