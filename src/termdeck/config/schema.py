"""Configuration schema dataclasses for termdeck.

Defines the declared intent the orchestrator acts on: sessions (called
"terminals" in config files), groups of sessions, and script modules.
Every optional field carries an explicit default so that partial configs
load without surprises.

Example config.yaml:
    terminals:
      - name: web
        commands: ["npm run build", "npm run serve"]
        autoStart: true
      - name: api
        location: api/commands.json
    groups:
      backend: [api, worker]
    modules:
      - name: svc
        location: services/svc
        runScripts: [lint, test]
        autoCloseWhenFail: true
"""

from __future__ import annotations

from dataclasses import dataclass, field

SESSION_KIND = "terminal"
MODULE_SCRIPT_KIND = "module-script"
MODULE_CHAIN_KIND = "module-chain"


@dataclass(frozen=True)
class SessionSpec:
    """A declared interactive session.

    At least one of ``commands`` / ``location`` must be set for a start to
    succeed; that is checked at start time, not load time, so a manual
    placeholder entry can live in config.
    """

    name: str
    commands: tuple[str, ...] = ()  # Fed verbatim, in order
    location: str | None = None  # Manifest with a "commands" array
    auto_start: bool = False

    def describe(self) -> str:
        """One-line summary used as a picker description."""
        if self.commands:
            return "; ".join(self.commands)
        return self.location or ""


@dataclass(frozen=True)
class ModuleSpec:
    """A directory with a script manifest whose scripts can be run or chained."""

    name: str
    location: str
    run_scripts: tuple[str, ...] = ()  # Empty = single-script (pick one) mode
    command: str = ""  # Extra flags appended to every invocation
    auto_close: bool = False  # Exit the shell after a fully successful chain
    auto_close_when_fail: bool = False  # Exit the shell at the first failing step
    runner: str = "npm run"  # Invocation prefix: "<runner> <script> <command>"

    @property
    def chained(self) -> bool:
        return bool(self.run_scripts)


@dataclass(frozen=True)
class SessionTag:
    """Structured ownership stored alongside a running session.

    Filtering by kind/module replaces matching on display names.
    """

    kind: str = SESSION_KIND
    module: str | None = None
    script: str | None = None


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str | None = None  # DEBUG, INFO, WARNING, ERROR
    verbose: int | None = None  # 0-4, overrides level
    file: str | None = None  # Log file path


@dataclass
class WatchConfig:
    """File and config watching configuration."""

    enabled: bool = True
    poll_interval: float = 1.0  # Seconds between polling cycles


@dataclass
class ShellConfig:
    """Shell used by the default subprocess terminal."""

    executable: str | None = None  # Default: bash/sh on POSIX, powershell on Windows
    args: list[str] = field(default_factory=list)


@dataclass
class Config:
    """Root configuration snapshot.

    Aggregates all configuration sections. ``extra`` keeps unknown top-level
    keys so that config change detection still sees them.
    """

    terminals: list[SessionSpec] = field(default_factory=list)
    groups: dict[str, list[str]] = field(default_factory=dict)
    modules: list[ModuleSpec] = field(default_factory=list)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    watch: WatchConfig = field(default_factory=WatchConfig)
    shell: ShellConfig = field(default_factory=ShellConfig)

    extra: dict[str, object] = field(default_factory=dict)

    def terminal(self, name: str) -> SessionSpec | None:
        """Look up a declared session by name."""
        for spec in self.terminals:
            if spec.name == name:
                return spec
        return None

    def module(self, name: str) -> ModuleSpec | None:
        """Look up a declared module by name."""
        for spec in self.modules:
            if spec.name == name:
                return spec
        return None
