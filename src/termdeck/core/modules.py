"""Module scripts: run one script from a manifest, or chain several.

A module is a directory with a manifest whose ``scripts`` mapping names the
runnable scripts. Single-script mode runs one picked script in its own
session. Chained mode generates one shell script running each of
``run_scripts`` in order, with optional exit guards, in a single session.
"""

from __future__ import annotations

import sys
from collections.abc import Sequence
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from termdeck.config.schema import (
    MODULE_CHAIN_KIND,
    MODULE_SCRIPT_KIND,
    ModuleSpec,
    SessionTag,
)
from termdeck.core.lifecycle import StartOutcome
from termdeck.errors import ConfigurationError, TermdeckError
from termdeck.logging import get_logger
from termdeck.manifest import module_manifest_path, read_scripts
from termdeck.ui.protocol import PickItem
from termdeck.workspace import resolve_location

if TYPE_CHECKING:
    from termdeck.core.lifecycle import SessionLifecycle
    from termdeck.core.registry import SessionRegistry
    from termdeck.ui.protocol import UserInterface

log = get_logger("modules")


class ShellDialect(Enum):
    POSIX = "posix"
    POWERSHELL = "powershell"


# Exit with the failing status right after a step
_FAIL_GUARDS = {
    ShellDialect.POSIX: 'status=$?; if [ "$status" -ne 0 ]; then exit "$status"; fi',
    ShellDialect.POWERSHELL: "if ($LASTEXITCODE -ne 0) { exit $LASTEXITCODE }",
}


def detect_dialect(platform: str | None = None) -> ShellDialect:
    """Shell dialect of the host's default shell."""
    platform = platform or sys.platform
    if platform == "win32":
        return ShellDialect.POWERSHELL
    return ShellDialect.POSIX


def script_invocation(runner: str, script: str, flags: str = "") -> str:
    """The command line that runs one script, e.g. ``npm run lint --silent``."""
    return " ".join(part for part in (runner.strip(), script, flags.strip()) if part)


def build_chain_script(
    dialect: ShellDialect,
    runner: str,
    scripts: Sequence[str],
    flags: str = "",
    auto_close: bool = False,
    auto_close_when_fail: bool = False,
) -> str:
    """Generate the body of a chained module script.

    With ``auto_close_when_fail`` every step is followed by a guard that exits
    the shell with the failing status, so later steps never run. With
    ``auto_close`` a final ``exit`` closes the shell after the last step.
    With neither, every step runs and the shell stays open.
    """
    lines: list[str] = []
    for script in scripts:
        lines.append(script_invocation(runner, script, flags))
        if auto_close_when_fail:
            lines.append(_FAIL_GUARDS[dialect])
    if auto_close:
        lines.append("exit")
    return "\n".join(lines)


def script_session_name(module: str, script: str) -> str:
    return f"{module} - {script}"


def chain_session_name(module: str) -> str:
    return f"[Module] {module}"


class ModuleScriptRunner:
    """Runs module scripts through the shared session registry."""

    def __init__(
        self,
        *,
        lifecycle: SessionLifecycle,
        registry: SessionRegistry,
        ui: UserInterface,
        platform: str | None = None,
    ) -> None:
        self._lifecycle = lifecycle
        self._registry = registry
        self._ui = ui
        self._platform = platform

    def locate(self, module: ModuleSpec) -> tuple[Path, Path]:
        """Resolve a module to (working directory, manifest path).

        Raises:
            ConfigurationError: If the module location does not exist.
            WorkspaceError: If the location is relative and there is no root.
        """
        location = resolve_location(module.location, self._lifecycle.workspace_root)
        if not location.exists():
            raise ConfigurationError(
                f"Module {module.name!r}: location not found: {location}"
            )
        manifest = module_manifest_path(location)
        return (location if location.is_dir() else location.parent), manifest

    def load_scripts(self, module: ModuleSpec) -> tuple[Path, dict[str, str]]:
        """Validate the module's manifest and return (cwd, scripts)."""
        cwd, manifest = self.locate(module)
        return cwd, read_scripts(manifest)

    async def run_single(
        self, module: ModuleSpec, script: str | None = None
    ) -> StartOutcome | None:
        """Run one script of a module in a session named "<module> - <script>".

        Args:
            module: The module to run from.
            script: Script key; asks the user to pick one when None.

        Returns:
            The start outcome, or None if the user picked nothing.
        """
        try:
            cwd, scripts = self.load_scripts(module)
        except (TermdeckError, OSError) as e:
            self._ui.error(str(e))
            return StartOutcome.FAILED

        if script is None:
            items = [PickItem(label=key, description=body) for key, body in scripts.items()]
            picked = await self._ui.pick_one(items, f"Script to run from {module.name}")
            if picked is None:
                self._ui.info("No script selected.")
                return None
            script = picked.label

        if script not in scripts:
            self._ui.error(f"Module {module.name!r} has no script {script!r}.")
            return StartOutcome.FAILED

        name = script_session_name(module.name, script)
        if name in self._registry:
            self._ui.info(f"Terminal {name!r} is already running.")
            return StartOutcome.ALREADY_EXISTS

        tag = SessionTag(kind=MODULE_SCRIPT_KIND, module=module.name, script=script)
        terminal = self._lifecycle.open(name, tag, cwd=str(cwd))
        if terminal is None:
            return StartOutcome.FAILED

        terminal.send_text(script_invocation(module.runner, script, module.command))
        log.info("Running %s in %s", script, cwd)
        return StartOutcome.STARTED

    def run_chained(self, module: ModuleSpec) -> StartOutcome:
        """Run ``module.run_scripts`` as one generated script.

        A running "[Module] <module>" session is replaced, not kept.
        """
        try:
            cwd, scripts = self.load_scripts(module)
        except (TermdeckError, OSError) as e:
            self._ui.error(str(e))
            return StartOutcome.FAILED

        missing = [s for s in module.run_scripts if s not in scripts]
        if missing:
            log.warning("Module %s: scripts not in manifest: %s", module.name, ", ".join(missing))

        dialect = detect_dialect(self._platform)
        body = build_chain_script(
            dialect,
            module.runner,
            module.run_scripts,
            flags=module.command,
            auto_close=module.auto_close,
            auto_close_when_fail=module.auto_close_when_fail,
        )

        name = chain_session_name(module.name)
        if name in self._registry:
            log.info("Replacing running chain %s", name)
            self._lifecycle.stop(name)

        tag = SessionTag(kind=MODULE_CHAIN_KIND, module=module.name)
        terminal = self._lifecycle.open(name, tag, cwd=str(cwd))
        if terminal is None:
            return StartOutcome.FAILED

        terminal.send_text(body)
        log.info("Running chain %s (%s, %s)", name, ", ".join(module.run_scripts), dialect.value)
        return StartOutcome.STARTED
