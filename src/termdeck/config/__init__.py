"""Configuration management for termdeck.

Provides layered YAML-based configuration with:
- User-level config (~/.config/termdeck/ or %APPDATA%)
- Project-level config ($workspace/.termdeck/)
- An optional explicit config file
- Environment variable overrides (highest priority)

Example usage:
    from termdeck.config import ConfigStore, ConfigWatcher

    store = ConfigStore(workspace_root="/path/to/project")
    print([t.name for t in store.snapshot.terminals])

    store.on_change(lambda change: print(change.changed))
    watcher = ConfigWatcher(store)
    watcher.start()
"""

from termdeck.config.loader import dict_to_config, load_config
from termdeck.config.paths import (
    get_config_paths,
    get_project_config_path,
    get_user_config_path,
)
from termdeck.config.schema import (
    MODULE_CHAIN_KIND,
    MODULE_SCRIPT_KIND,
    SESSION_KIND,
    Config,
    LoggingConfig,
    ModuleSpec,
    SessionSpec,
    SessionTag,
    ShellConfig,
    WatchConfig,
)
from termdeck.config.store import ConfigChange, ConfigStore, changed_sections
from termdeck.config.watcher import ConfigWatcher

__all__ = [
    # Loading
    "Config",
    "ConfigChange",
    "ConfigStore",
    "ConfigWatcher",
    "changed_sections",
    "dict_to_config",
    "load_config",
    # Schema types
    "LoggingConfig",
    "ModuleSpec",
    "SessionSpec",
    "SessionTag",
    "ShellConfig",
    "WatchConfig",
    "SESSION_KIND",
    "MODULE_SCRIPT_KIND",
    "MODULE_CHAIN_KIND",
    # Path utilities
    "get_config_paths",
    "get_project_config_path",
    "get_user_config_path",
]
