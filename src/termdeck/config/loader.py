"""Configuration file loading.

Handles:
- YAML file parsing
- Environment variable overrides
- Conversion from dict to typed Config dataclass, rejecting malformed entries
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml

from termdeck.config.merge import merge_configs
from termdeck.config.paths import get_config_paths
from termdeck.config.schema import (
    Config,
    LoggingConfig,
    ModuleSpec,
    SessionSpec,
    ShellConfig,
    WatchConfig,
)

_log = logging.getLogger("termdeck.config")

KNOWN_KEYS = frozenset({"terminals", "groups", "modules", "logging", "watch", "shell"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file, returning empty dict if not found or invalid.

    Args:
        path: Path to the YAML file.

    Returns:
        Parsed YAML as dict, or empty dict on error.
    """
    if not path.exists():
        return {}

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
            return data if isinstance(data, dict) else {}
    except (yaml.YAMLError, UnicodeDecodeError) as e:
        _log.warning("Invalid YAML in %s: %s", path, e)
        return {}
    except PermissionError:
        _log.debug("Permission denied reading %s", path)
        return {}
    except OSError as e:
        _log.warning("Error reading %s: %s", path, e)
        return {}


def env_overrides() -> dict[str, Any]:
    """Build config dict from environment variables.

    Returns:
        Config dict with values from environment.
    """
    overrides: dict[str, Any] = {}

    log_path = os.environ.get("TERMDECK_LOG")
    if log_path:
        overrides.setdefault("logging", {})["file"] = log_path

    shell = os.environ.get("TERMDECK_SHELL")
    if shell:
        overrides.setdefault("shell", {})["executable"] = shell

    return overrides


def _field(data: dict[str, Any], camel: str, snake: str, default: Any = None) -> Any:
    """Read a field that may be spelled camelCase or snake_case."""
    if camel in data:
        return data[camel]
    return data.get(snake, default)


def _string_list(value: Any) -> tuple[str, ...] | None:
    """Coerce a YAML value to a tuple of strings; None if it has the wrong shape."""
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return tuple(value)
    return None


def _section(data: dict[str, Any], key: str) -> dict[str, Any]:
    """A mapping-valued top-level section; anything else falls back to defaults."""
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        _log.warning("'%s' must be a mapping, using defaults", key)
        return {}
    return value


def _optional(section: dict[str, Any], prefix: str, key: str, kind: type) -> Any:
    value = section.get(key)
    if value is None:
        return None
    if not isinstance(value, kind) or isinstance(value, bool):
        _log.warning("'%s.%s' must be a %s, ignoring", prefix, key, kind.__name__)
        return None
    return value


def _poll_interval(value: Any) -> float:
    try:
        return max(0.1, float(value))
    except (TypeError, ValueError):
        _log.warning("'watch.poll_interval' must be a number, using 1.0")
        return 1.0


def _parse_terminals(items: Any) -> list[SessionSpec]:
    if not isinstance(items, list):
        if items is not None:
            _log.warning("'terminals' must be a list, ignoring")
        return []

    specs: list[SessionSpec] = []
    seen: set[str] = set()
    for i, item in enumerate(items):
        if not isinstance(item, dict) or not isinstance(item.get("name"), str) or not item["name"]:
            _log.warning("terminals[%d]: missing or invalid 'name', skipping", i)
            continue
        name = item["name"]
        if name in seen:
            _log.warning("terminals[%d]: duplicate name %r, skipping", i, name)
            continue

        commands = _string_list(item.get("commands"))
        if commands is None:
            _log.warning("Terminal %r: 'commands' must be a list of strings, skipping", name)
            continue

        location = item.get("location")
        if location is not None and not isinstance(location, str):
            _log.warning("Terminal %r: 'location' must be a string, skipping", name)
            continue

        seen.add(name)
        specs.append(
            SessionSpec(
                name=name,
                commands=commands,
                location=location or None,
                auto_start=bool(_field(item, "autoStart", "auto_start", False)),
            )
        )
    return specs


def _parse_groups(data: Any) -> dict[str, list[str]]:
    if not isinstance(data, dict):
        if data is not None:
            _log.warning("'groups' must be a mapping, ignoring")
        return {}

    groups: dict[str, list[str]] = {}
    for name, members in data.items():
        names = _string_list(members)
        if names is None:
            _log.warning("Group %r: members must be a list of names, skipping", name)
            continue
        groups[str(name)] = list(names)
    return groups


def _parse_modules(items: Any) -> list[ModuleSpec]:
    if not isinstance(items, list):
        if items is not None:
            _log.warning("'modules' must be a list, ignoring")
        return []

    modules: list[ModuleSpec] = []
    seen: set[str] = set()
    for i, item in enumerate(items):
        if not isinstance(item, dict) or not isinstance(item.get("name"), str) or not item["name"]:
            _log.warning("modules[%d]: missing or invalid 'name', skipping", i)
            continue
        name = item["name"]
        location = item.get("location")
        if not isinstance(location, str) or not location:
            _log.warning("Module %r: 'location' is required, skipping", name)
            continue
        if name in seen:
            _log.warning("modules[%d]: duplicate name %r, skipping", i, name)
            continue

        run_scripts = _string_list(_field(item, "runScripts", "run_scripts"))
        if run_scripts is None:
            _log.warning("Module %r: 'runScripts' must be a list of strings, skipping", name)
            continue

        seen.add(name)
        modules.append(
            ModuleSpec(
                name=name,
                location=location,
                run_scripts=run_scripts,
                command=str(item.get("command") or ""),
                auto_close=bool(_field(item, "autoClose", "auto_close", False)),
                auto_close_when_fail=bool(
                    _field(item, "autoCloseWhenFail", "auto_close_when_fail", False)
                ),
                runner=str(item.get("runner") or "npm run"),
            )
        )
    return modules


def dict_to_config(data: dict[str, Any]) -> Config:
    """Convert merged dict to typed Config dataclass.

    Args:
        data: Merged configuration dictionary.

    Returns:
        Typed Config object.
    """
    log_data = _section(data, "logging")
    logging_config = LoggingConfig(
        level=_optional(log_data, "logging", "level", str),
        verbose=_optional(log_data, "logging", "verbose", int),
        file=_optional(log_data, "logging", "file", str),
    )

    watch_data = _section(data, "watch")
    watch = WatchConfig(
        enabled=bool(watch_data.get("enabled", True)),
        poll_interval=_poll_interval(watch_data.get("poll_interval", 1.0)),
    )

    shell_data = _section(data, "shell")
    args = _string_list(shell_data.get("args"))
    if args is None:
        _log.warning("'shell.args' must be a list of strings, ignoring")
    shell = ShellConfig(
        executable=_optional(shell_data, "shell", "executable", str),
        args=list(args or ()),
    )

    extra = {k: v for k, v in data.items() if k not in KNOWN_KEYS}

    return Config(
        terminals=_parse_terminals(data.get("terminals")),
        groups=_parse_groups(data.get("groups")),
        modules=_parse_modules(data.get("modules")),
        logging=logging_config,
        watch=watch,
        shell=shell,
        extra=extra,
    )


def load_config(
    workspace_root: str | Path | None = None,
    config_file: str | Path | None = None,
) -> Config:
    """Load and merge config from all sources.

    Priority order (highest to lowest):
    1. Environment variables
    2. Explicit config file
    3. Project config ($workspace/.termdeck/config.yaml)
    4. User config (~/.config/termdeck/config.yaml or %APPDATA%)

    Args:
        workspace_root: Workspace directory for project-level config.
        config_file: Optional explicit config file.

    Returns:
        Merged Config object.
    """
    configs: list[dict[str, Any]] = []

    for path in get_config_paths(workspace_root, config_file):
        config_data = load_yaml_file(path)
        if config_data:
            _log.debug("Loaded config from %s", path)
            configs.append(config_data)

    env_config = env_overrides()
    if env_config:
        configs.append(env_config)

    return dict_to_config(merge_configs(*configs))
