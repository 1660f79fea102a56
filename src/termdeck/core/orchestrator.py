"""The orchestrator: owns the session and watch tables and every operation on them.

There is no module-level state. An Orchestrator is created with its host
collaborators, ``init()``-ed on activation and ``teardown()``-ed on exit.
Every user command, file-watch callback and config-change callback runs on
the same event loop and funnels through this object.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from termdeck.config.schema import (
    MODULE_CHAIN_KIND,
    MODULE_SCRIPT_KIND,
    Config,
    ModuleSpec,
    SessionSpec,
)
from termdeck.core.lifecycle import SessionLifecycle, StartOutcome
from termdeck.core.modules import ModuleScriptRunner
from termdeck.core.registry import SessionRegistry
from termdeck.core.reload import ReloadEngine
from termdeck.core.watches import WatchRegistry, WatchSource
from termdeck.logging import get_logger
from termdeck.ui.protocol import PickItem

if TYPE_CHECKING:
    from termdeck.config.store import ConfigChange, ConfigStore
    from termdeck.terminal.protocol import TerminalFactory
    from termdeck.ui.protocol import UserInterface

log = get_logger("orchestrator")


@dataclass(frozen=True)
class SessionInfo:
    """Row for listing running sessions."""

    name: str
    kind: str
    module: str | None
    watched: tuple[Path, ...]


class Orchestrator:
    """Declarative session orchestrator.

    Example:
        orchestrator = Orchestrator(
            config=ConfigStore(workspace_root="."),
            terminals=SubprocessTerminalFactory(),
            ui=ConsoleUI(),
            watch_source=FileWatcher(),
        )
        orchestrator.init()
        orchestrator.start_all()
        ...
        orchestrator.teardown()
    """

    def __init__(
        self,
        *,
        config: ConfigStore,
        terminals: TerminalFactory,
        ui: UserInterface,
        watch_source: WatchSource,
        workspace_root: str | Path | None = None,
        platform: str | None = None,
    ) -> None:
        self._config = config
        self._terminals = terminals
        self._ui = ui

        root = workspace_root if workspace_root is not None else config.workspace_root
        self.registry = SessionRegistry()
        self.watches = WatchRegistry(watch_source)
        self.lifecycle = SessionLifecycle(
            registry=self.registry,
            watches=self.watches,
            terminals=terminals,
            ui=ui,
            workspace_root=root,
        )
        self.reloader = ReloadEngine(self.lifecycle, ui)
        self.modules = ModuleScriptRunner(
            lifecycle=self.lifecycle,
            registry=self.registry,
            ui=ui,
            platform=platform,
        )

        self._unsubscribers: list[Callable[[], None]] = []
        self._active = False

    @property
    def config(self) -> Config:
        """The current configuration snapshot."""
        return self._config.snapshot

    @property
    def active(self) -> bool:
        return self._active

    # --- lifecycle -----------------------------------------------------------

    def init(self) -> None:
        """Subscribe to terminal-close and config-change notifications."""
        if self._active:
            return
        self._active = True
        self._unsubscribers.append(self._terminals.on_did_close(self.lifecycle.on_terminal_closed))
        self._unsubscribers.append(self._config.on_change(self._on_config_change))
        log.debug("Orchestrator initialized")

    def teardown(self) -> None:
        """Dispose every session and watch and drop all subscriptions."""
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
        count = self.lifecycle.stop_all()
        self._active = False
        log.info("Teardown: disposed %d sessions", count)

    def _on_config_change(self, change: ConfigChange) -> None:
        if change.affects("terminals"):
            self.reloader.apply(change.previous.terminals, change.current.terminals)

    def refresh_config(self) -> ConfigChange | None:
        """Re-read every config layer.

        Listeners apply the change; edits to ``terminals`` go through the
        incremental reload.
        """
        change = self._config.reload()
        if change is None:
            log.debug("Configuration unchanged")
        return change

    def reload(self) -> int:
        """Full reset: dispose everything, then start the auto-start specs.

        Works from the current snapshot; the config watcher keeps it fresh.

        Returns:
            Number of sessions disposed.
        """
        return self.reloader.full_reset(self.config.terminals)

    # --- sessions ------------------------------------------------------------

    def _start_each(self, specs: Iterable[SessionSpec]) -> dict[str, StartOutcome]:
        """Start specs independently; one failure never aborts the rest."""
        outcomes: dict[str, StartOutcome] = {}
        for spec in specs:
            try:
                outcomes[spec.name] = self.lifecycle.start(spec)
            except Exception as e:
                log.exception("Unexpected error starting %s", spec.name)
                self._ui.error(f"Failed to start {spec.name!r}: {e}")
                outcomes[spec.name] = StartOutcome.FAILED
        return outcomes

    def start_all(self) -> dict[str, StartOutcome]:
        """Start every auto-start session."""
        return self._start_each(s for s in self.config.terminals if s.auto_start)

    def start(self, name: str) -> StartOutcome:
        """Start one declared session by name."""
        spec = self.config.terminal(name)
        if spec is None:
            self._ui.error(f"Terminal not found: {name}")
            return StartOutcome.FAILED
        return self._start_each([spec])[name]

    def stop(self, name: str) -> bool:
        return self.lifecycle.stop(name)

    def stop_all(self) -> int:
        return self.lifecycle.stop_all()

    async def start_selected(self) -> dict[str, StartOutcome]:
        specs = self.config.terminals
        items = [PickItem(label=s.name, description=s.describe()) for s in specs]
        selection = await self._ui.pick_many(items, "Terminals to start")
        if not selection:
            self._ui.info("No terminals selected.")
            return {}
        chosen = {item.label for item in selection}
        return self._start_each(s for s in self.config.terminals if s.name in chosen)

    async def start_one(self, name: str | None = None) -> StartOutcome | None:
        if name is None:
            items = [PickItem(label=s.name, description=s.describe()) for s in self.config.terminals]
            picked = await self._ui.pick_one(items, "Terminal to start")
            if picked is None:
                return None
            name = picked.label
        return self.start(name)

    def _running_items(self, kind: str | None = None) -> list[PickItem]:
        return [
            PickItem(label=entry.name, description=entry.tag.module or "")
            for entry in self.registry.entries(kind=kind)
        ]

    async def _pick_and_stop(self, kind: str | None, placeholder: str) -> list[str]:
        items = self._running_items(kind)
        if not items:
            self._ui.info("No terminals are running.")
            return []
        selection = await self._ui.pick_many(items, placeholder)
        if not selection:
            self._ui.info("No terminals selected.")
            return []
        stopped = [item.label for item in selection if self.lifecycle.stop(item.label)]
        return stopped

    async def stop_selected(self) -> list[str]:
        return await self._pick_and_stop(None, "Terminals to stop")

    async def stop_one(self, name: str | None = None) -> bool:
        if name is None:
            items = self._running_items()
            if not items:
                self._ui.info("No terminals are running.")
                return False
            picked = await self._ui.pick_one(items, "Terminal to stop")
            if picked is None:
                return False
            name = picked.label
        return self.lifecycle.stop(name)

    # --- groups --------------------------------------------------------------

    async def _pick_group(self, group: str | None, placeholder: str) -> list[str] | None:
        groups = self.config.groups
        if not groups:
            self._ui.warning("No terminal groups defined.")
            return None
        if group is None:
            items = [PickItem(label=g, description=", ".join(m)) for g, m in groups.items()]
            picked = await self._ui.pick_one(items, placeholder)
            if picked is None:
                return None
            group = picked.label
        if group not in groups:
            self._ui.error(f"Group not found: {group}")
            return None
        return groups[group]

    async def start_group(self, group: str | None = None) -> dict[str, StartOutcome]:
        members = await self._pick_group(group, "Group to start")
        if members is None:
            return {}
        specs: list[SessionSpec] = []
        outcomes: dict[str, StartOutcome] = {}
        for name in members:
            spec = self.config.terminal(name)
            if spec is None:
                self._ui.error(f"Terminal not found: {name}")
                outcomes[name] = StartOutcome.FAILED
            else:
                specs.append(spec)
        outcomes.update(self._start_each(specs))
        return outcomes

    async def stop_group(self, group: str | None = None) -> list[str]:
        members = await self._pick_group(group, "Group to stop")
        if members is None:
            return []
        stopped: list[str] = []
        for name in members:
            if self.lifecycle.stop(name):
                stopped.append(name)
            else:
                self._ui.info(f"Terminal {name!r} is not running.")
        return stopped

    # --- modules -------------------------------------------------------------

    async def _pick_module(
        self, name: str | None, chained: bool, placeholder: str
    ) -> ModuleSpec | None:
        if name is not None:
            module = self.config.module(name)
            if module is None:
                self._ui.error(f"Module not found: {name}")
            return module

        candidates = [m for m in self.config.modules if m.chained == chained]
        if not candidates:
            kind = "chained" if chained else "single-script"
            self._ui.warning(f"No {kind} modules defined.")
            return None
        items = [
            PickItem(label=m.name, description=", ".join(m.run_scripts) or m.location)
            for m in candidates
        ]
        picked = await self._ui.pick_one(items, placeholder)
        if picked is None:
            return None
        return self.config.module(picked.label)

    async def run_module_script(
        self, module: str | None = None, script: str | None = None
    ) -> StartOutcome | None:
        spec = await self._pick_module(module, chained=False, placeholder="Module")
        if spec is None:
            return None
        return await self.modules.run_single(spec, script)

    async def run_chained_module_scripts(self, module: str | None = None) -> StartOutcome | None:
        spec = await self._pick_module(module, chained=True, placeholder="Module to chain")
        if spec is None:
            return None
        if not spec.chained:
            self._ui.warning(f"Module {spec.name!r} has no runScripts.")
            return StartOutcome.FAILED
        return self.modules.run_chained(spec)

    async def stop_module_script(self) -> list[str]:
        return await self._pick_and_stop(MODULE_SCRIPT_KIND, "Module scripts to stop")

    async def stop_chained_module_scripts(self) -> list[str]:
        return await self._pick_and_stop(MODULE_CHAIN_KIND, "Module chains to stop")

    # --- inspection ----------------------------------------------------------

    def sessions(self) -> list[SessionInfo]:
        return [
            SessionInfo(
                name=entry.name,
                kind=entry.tag.kind,
                module=entry.tag.module,
                watched=tuple(self.watches.owned_by(entry.name)),
            )
            for entry in self.registry.entries()
        ]
