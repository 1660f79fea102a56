"""Core orchestration: session table, watch table, lifecycle and reload."""

from termdeck.core.lifecycle import SessionLifecycle, StartOutcome
from termdeck.core.modules import (
    ModuleScriptRunner,
    ShellDialect,
    build_chain_script,
    chain_session_name,
    detect_dialect,
    script_session_name,
)
from termdeck.core.orchestrator import Orchestrator, SessionInfo
from termdeck.core.registry import SessionEntry, SessionRegistry
from termdeck.core.reload import ReloadEngine, ReloadPlan, diff
from termdeck.core.watches import WatchEntry, WatchRegistry, WatchSource

__all__ = [
    "ModuleScriptRunner",
    "Orchestrator",
    "ReloadEngine",
    "ReloadPlan",
    "SessionEntry",
    "SessionInfo",
    "SessionLifecycle",
    "SessionRegistry",
    "ShellDialect",
    "StartOutcome",
    "WatchEntry",
    "WatchRegistry",
    "WatchSource",
    "build_chain_script",
    "chain_session_name",
    "detect_dialect",
    "diff",
    "script_session_name",
]
