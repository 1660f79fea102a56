"""Root pytest configuration and in-memory host fakes."""

from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from pathlib import Path
from typing import Any

import pytest

from termdeck.config import Config, ConfigStore
from termdeck.core.orchestrator import Orchestrator
from termdeck.ui.protocol import PickItem
from termdeck.watching.watcher import FileChangeEvent

pytest_plugins = ("pytest_asyncio",)


class FakeTerminal:
    """Records input instead of running a shell."""

    def __init__(self, factory: FakeTerminalFactory, name: str, cwd: str | None) -> None:
        self._factory = factory
        self.name = name
        self.cwd = cwd
        self.sent: list[str] = []
        self.shown = False
        self.disposed = False

    def show(self) -> None:
        self.shown = True

    def send_text(self, text: str) -> None:
        self.sent.append(text)

    def dispose(self) -> None:
        self.disposed = True

    def close_externally(self) -> None:
        """Simulate the user closing the terminal."""
        self.disposed = True
        for listener in list(self._factory.listeners):
            listener(self)


class FakeTerminalFactory:
    def __init__(self) -> None:
        self.created: list[FakeTerminal] = []
        self.listeners: list[Callable[[Any], None]] = []
        self.fail_names: set[str] = set()

    def create(self, name: str, cwd: str | None = None) -> FakeTerminal:
        if name in self.fail_names:
            raise OSError(f"cannot spawn {name}")
        terminal = FakeTerminal(self, name, cwd)
        self.created.append(terminal)
        return terminal

    def on_did_close(self, callback: Callable[[Any], None]) -> Callable[[], None]:
        self.listeners.append(callback)
        return lambda: self.listeners.remove(callback)

    def last(self, name: str) -> FakeTerminal:
        """Most recently created terminal with this name."""
        for terminal in reversed(self.created):
            if terminal.name == name:
                return terminal
        raise KeyError(name)

    def live(self) -> list[FakeTerminal]:
        return [t for t in self.created if not t.disposed]


class ScriptedUI:
    """Answers pickers from a script and records every notification.

    Answers are labels: a str for pick_one, a list of str for pick_many,
    or None for a cancelled picker.
    """

    def __init__(self, answers: Sequence[Any] = ()) -> None:
        self.answers: list[Any] = list(answers)
        self.pickers: list[tuple[str, list[PickItem]]] = []
        self.messages: list[tuple[str, str]] = []

    def _next(self, items: Sequence[PickItem], placeholder: str) -> Any:
        self.pickers.append((placeholder, list(items)))
        return self.answers.pop(0) if self.answers else None

    async def pick_one(self, items: Sequence[PickItem], placeholder: str = "") -> PickItem | None:
        label = self._next(items, placeholder)
        return next((item for item in items if item.label == label), None)

    async def pick_many(
        self, items: Sequence[PickItem], placeholder: str = ""
    ) -> list[PickItem] | None:
        labels = self._next(items, placeholder)
        if labels is None:
            return None
        return [item for item in items if item.label in labels]

    def info(self, message: str) -> None:
        self.messages.append(("info", message))

    def warning(self, message: str) -> None:
        self.messages.append(("warning", message))

    def error(self, message: str) -> None:
        self.messages.append(("error", message))

    def of(self, level: str) -> list[str]:
        return [m for lvl, m in self.messages if lvl == level]


class FakeHandle:
    def __init__(self, watcher: ManualFileWatcher, path: Path) -> None:
        self.watcher = watcher
        self.path = path
        self.change_callbacks: list[Callable[[FileChangeEvent], None]] = []
        self.delete_callbacks: list[Callable[[FileChangeEvent], None]] = []
        self.disposed = False

    def on_change(self, callback: Callable[[FileChangeEvent], None]) -> None:
        self.change_callbacks.append(callback)

    def on_delete(self, callback: Callable[[FileChangeEvent], None]) -> None:
        self.delete_callbacks.append(callback)

    def dispose(self) -> None:
        self.disposed = True


class ManualFileWatcher:
    """A watch source whose events are fired by the test."""

    def __init__(self) -> None:
        self.handles: list[FakeHandle] = []

    def watch(self, path: Path) -> FakeHandle:
        handle = FakeHandle(self, Path(path))
        self.handles.append(handle)
        return handle

    def active(self, path: Path | None = None) -> list[FakeHandle]:
        return [
            h for h in self.handles
            if not h.disposed and (path is None or h.path == Path(path))
        ]

    def change(self, path: Path) -> None:
        event = FileChangeEvent(path=Path(path), change_type="modified", old_mtime=1.0, new_mtime=2.0)
        for handle in self.active(path):
            for callback in list(handle.change_callbacks):
                callback(event)

    def delete(self, path: Path) -> None:
        event = FileChangeEvent(path=Path(path), change_type="deleted", old_mtime=1.0, new_mtime=None)
        for handle in self.active(path):
            for callback in list(handle.delete_callbacks):
                callback(event)
            handle.dispose()


class StaticLoader:
    """Config loader returning whatever the test last assigned."""

    def __init__(self, config: Config | None = None) -> None:
        self.config = config or Config()

    def __call__(self, **kwargs: Any) -> Config:
        return self.config


@pytest.fixture
def terminals() -> FakeTerminalFactory:
    return FakeTerminalFactory()


@pytest.fixture
def ui() -> ScriptedUI:
    return ScriptedUI()


@pytest.fixture
def file_watcher() -> ManualFileWatcher:
    return ManualFileWatcher()


@pytest.fixture
def make_orchestrator(
    tmp_path: Path,
    terminals: FakeTerminalFactory,
    ui: ScriptedUI,
    file_watcher: ManualFileWatcher,
) -> Iterator[Callable[..., tuple[Orchestrator, StaticLoader]]]:
    """Build an initialized Orchestrator rooted at tmp_path over the fakes."""
    created: list[Orchestrator] = []

    def build(config: Config | None = None, platform: str = "linux") -> tuple[Orchestrator, StaticLoader]:
        loader = StaticLoader(config)
        store = ConfigStore(workspace_root=tmp_path, loader=loader)
        orchestrator = Orchestrator(
            config=store,
            terminals=terminals,
            ui=ui,
            watch_source=file_watcher,
            platform=platform,
        )
        orchestrator.init()
        created.append(orchestrator)
        return orchestrator, loader

    yield build

    for orchestrator in created:
        orchestrator.teardown()
