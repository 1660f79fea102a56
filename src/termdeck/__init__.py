"""termdeck: declarative orchestrator for named interactive shell sessions.

Sessions are declared in YAML config (inline commands or a command file),
started on demand or at launch, restarted when their command file changes,
and reconciled against config edits with minimal disruption.
"""

__version__ = "0.1.0"

from termdeck.config import Config, ConfigStore, ModuleSpec, SessionSpec
from termdeck.core import Orchestrator, StartOutcome
from termdeck.errors import (
    ConfigurationError,
    ManifestError,
    TermdeckError,
    WorkspaceError,
)

__all__ = [
    "Config",
    "ConfigStore",
    "ConfigurationError",
    "ManifestError",
    "ModuleSpec",
    "Orchestrator",
    "SessionSpec",
    "StartOutcome",
    "TermdeckError",
    "WorkspaceError",
    "__version__",
]
